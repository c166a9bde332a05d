# backend/modules/reservations/models/reservation_models.py

"""
Booking, table assignment, status history and waitlist models.
"""

from sqlalchemy import (
    Column, Integer, String, DateTime, ForeignKey, Date, Text,
    Enum, UniqueConstraint, Index, CheckConstraint
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import enum

from core.database import Base
from core.mixins import TimestampMixin, UUIDPrimaryKeyMixin, generate_uuid


class DiningStatus(str, enum.Enum):
    """Booking lifecycle from request through seating to completion"""
    PENDING = "pending"
    CONFIRMED = "confirmed"
    ARRIVED = "arrived"
    SEATED = "seated"
    ORDERED = "ordered"
    APPETIZERS = "appetizers"
    MAIN_COURSE = "main_course"
    DESSERT = "dessert"
    PAYMENT = "payment"
    COMPLETED = "completed"
    NO_SHOW = "no_show"
    CANCELLED_BY_USER = "cancelled_by_user"
    CANCELLED_BY_RESTAURANT = "cancelled_by_restaurant"

    @classmethod
    def _missing_(cls, value):
        # Older rows and clients still send the "declined" spelling
        if value == "declined_by_restaurant":
            return cls.CANCELLED_BY_RESTAURANT
        return None


class WaitlistStatus(str, enum.Enum):
    """Waitlist status enum"""
    ACTIVE = "active"
    NOTIFIED = "notified"  # Guest told a table is free, response window running
    BOOKED = "booked"  # Converted to a booking
    EXPIRED = "expired"  # Notification window elapsed without response
    CANCELLED = "cancelled"


class Booking(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    """Reservation instance"""
    __tablename__ = "bookings"

    restaurant_id = Column(String(36), nullable=False, index=True)

    # Identity: registered customer or guest contact
    user_id = Column(String(36), index=True)
    guest_name = Column(String(100))
    guest_phone = Column(String(20))
    guest_email = Column(String(100))

    # Reservation details
    booking_time = Column(DateTime, nullable=False, index=True)
    turn_time_minutes = Column(Integer, nullable=False, default=120)
    party_size = Column(Integer, nullable=False)

    # Status and tracking
    status = Column(Enum(DiningStatus), default=DiningStatus.PENDING, nullable=False, index=True)
    confirmation_code = Column(String(12), unique=True, index=True)
    source = Column(String(50), default="website")  # website, phone, walk-in, waitlist
    special_requests = Column(Text)
    checked_in_at = Column(DateTime)

    waitlist_entry_id = Column(String(36), ForeignKey("waitlist.id"))

    # Relationships
    table_assignments = relationship(
        "BookingTable",
        back_populates="booking",
        cascade="all, delete-orphan",
        lazy="selectin",
    )
    status_history = relationship(
        "BookingStatusHistory",
        back_populates="booking",
        order_by="BookingStatusHistory.changed_at",
    )

    __table_args__ = (
        CheckConstraint("party_size > 0", name="chk_booking_party_size"),
        CheckConstraint("turn_time_minutes > 0", name="chk_booking_turn_time"),
        Index("idx_booking_restaurant_time", "restaurant_id", "booking_time"),
    )

    @property
    def table_ids(self):
        return [assignment.table_id for assignment in self.table_assignments]

    def __repr__(self):
        return f"<Booking {self.id} - party of {self.party_size} at {self.booking_time} ({self.status})>"


class BookingTable(Base):
    """Table assigned to a booking"""
    __tablename__ = "booking_tables"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    booking_id = Column(String(36), ForeignKey("bookings.id"), nullable=False, index=True)
    table_id = Column(String(36), ForeignKey("restaurant_tables.id"), nullable=False, index=True)

    booking = relationship("Booking", back_populates="table_assignments")

    __table_args__ = (
        UniqueConstraint("booking_id", "table_id", name="uix_booking_table"),
    )


class BookingStatusHistory(Base):
    """Append-only audit trail of booking status changes"""
    __tablename__ = "booking_status_history"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    booking_id = Column(String(36), ForeignKey("bookings.id"), nullable=False, index=True)

    old_status = Column(Enum(DiningStatus))  # None when the booking was created
    new_status = Column(Enum(DiningStatus), nullable=False)
    changed_at = Column(DateTime, nullable=False)
    changed_by = Column(String(36))
    reason = Column(Text)

    booking = relationship("Booking", back_populates="status_history")


class WaitlistEntry(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    """Request to be seated when no table is currently free"""
    __tablename__ = "waitlist"

    restaurant_id = Column(String(36), nullable=False, index=True)

    user_id = Column(String(36), index=True)
    guest_name = Column(String(100))
    guest_phone = Column(String(20))
    guest_email = Column(String(100))

    # Requested details
    desired_date = Column(Date, nullable=False, index=True)
    desired_time_range = Column(String(11), nullable=False)  # "19:00-21:00"
    party_size = Column(Integer, nullable=False)
    table_type = Column(String(20), default="any")
    special_requests = Column(Text)

    # Status tracking
    status = Column(Enum(WaitlistStatus), default=WaitlistStatus.ACTIVE, nullable=False, index=True)
    notified_at = Column(DateTime)
    notification_expires_at = Column(DateTime)

    __table_args__ = (
        CheckConstraint("party_size > 0", name="chk_waitlist_party_size"),
        Index("idx_waitlist_restaurant_date_status", "restaurant_id", "desired_date", "status"),
    )

    def __repr__(self):
        return f"<WaitlistEntry {self.id} - party of {self.party_size} on {self.desired_date} {self.desired_time_range}>"
