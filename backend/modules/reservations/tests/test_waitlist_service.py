# backend/modules/reservations/tests/test_waitlist_service.py

"""
Tests for waitlist matching, urgency and conversion planning.
"""

import pytest
from datetime import datetime, time, timedelta

from core.exceptions import (
    ConflictError,
    InvalidWaitlistTransitionError,
    NoAvailabilityError,
    ValidationError,
)
from modules.reservations.models.reservation_models import DiningStatus, WaitlistStatus
from modules.reservations.schemas.reservation_schemas import WaitlistUrgency
from modules.reservations.services.waitlist_service import (
    NOTIFICATION_WINDOW,
    auto_select_tables,
    build_board,
    classify_minutes,
    classify_urgency,
    generate_time_slots,
    has_availability,
    minutes_until,
    notify,
    plan_conversion,
    sweep_expired,
    validate_waitlist_transition,
)
from modules.tables.schemas.table_schemas import TableCombinationRead
from modules.tables.models.table_models import TableType
from modules.tables.services.occupancy_service import resolve_occupancy


NOW = datetime(2024, 3, 13, 19, 0)


class TestUrgency:
    @pytest.mark.parametrize(
        "minutes,expected",
        [
            (-1, WaitlistUrgency.OVERDUE),
            (0, WaitlistUrgency.URGENT),
            (15, WaitlistUrgency.URGENT),
            (16, WaitlistUrgency.SOON),
            (30, WaitlistUrgency.SOON),
            (31, WaitlistUrgency.NORMAL),
        ],
    )
    def test_boundaries(self, minutes, expected):
        assert classify_minutes(minutes) == expected

    def test_ten_minutes_before_is_urgent(self, make_entry):
        entry = make_entry(time_range="19:00-21:00")
        assert classify_urgency(entry, NOW.replace(hour=18, minute=50)) == WaitlistUrgency.URGENT

    def test_after_start_is_overdue(self, make_entry):
        entry = make_entry(time_range="19:00-21:00")
        assert classify_urgency(entry, NOW.replace(minute=5)) == WaitlistUrgency.OVERDUE

    def test_partial_minutes_truncate_toward_zero(self, make_entry):
        entry = make_entry(time_range="19:00-21:00")

        assert minutes_until(entry, datetime(2024, 3, 13, 18, 43, 30)) == 16
        assert minutes_until(entry, datetime(2024, 3, 13, 19, 0, 30)) == 0
        assert minutes_until(entry, datetime(2024, 3, 13, 19, 1, 30)) == -1

    def test_other_day(self, make_entry):
        entry = make_entry(desired_date=(NOW + timedelta(days=1)).date())
        assert classify_urgency(entry, NOW) == WaitlistUrgency.NORMAL


class TestNotify:
    def test_notify_sets_fifteen_minute_window(self, make_entry, make_table):
        tables = [make_table("t1", max_capacity=4)]
        snapshot = resolve_occupancy(tables, [], NOW)

        notified = notify(make_entry(), tables, snapshot, NOW)

        assert notified.status == WaitlistStatus.NOTIFIED
        assert notified.notified_at == NOW
        assert notified.notification_expires_at - notified.notified_at == timedelta(minutes=15)
        assert NOTIFICATION_WINDOW == timedelta(minutes=15)

    def test_notify_requires_free_table(self, make_entry, make_table, make_booking):
        tables = [make_table("t1", max_capacity=4), make_table("t2", max_capacity=2)]
        seated = make_booking("b", NOW, status=DiningStatus.SEATED, table_ids=["t1"])
        snapshot = resolve_occupancy(tables, [seated], NOW)
        entry = make_entry(party_size=3)

        assert not has_availability(entry, tables, snapshot)
        with pytest.raises(NoAvailabilityError):
            notify(entry, tables, snapshot, NOW)

    def test_notify_only_from_active(self, make_entry, make_table):
        tables = [make_table("t1")]
        snapshot = resolve_occupancy(tables, [], NOW)

        with pytest.raises(InvalidWaitlistTransitionError):
            notify(make_entry(status=WaitlistStatus.NOTIFIED), tables, snapshot, NOW)

    def test_availability_ignores_combinations(self, make_entry, make_table):
        tables = [make_table("t1", max_capacity=4), make_table("t2", max_capacity=4)]
        snapshot = resolve_occupancy(tables, [], NOW)

        assert not has_availability(make_entry(party_size=6), tables, snapshot)


class TestSweep:
    def test_expired_after_window(self, make_entry):
        notified_at = NOW - timedelta(minutes=16)
        entry = make_entry(
            status=WaitlistStatus.NOTIFIED,
            notified_at=notified_at,
            notification_expires_at=notified_at + NOTIFICATION_WINDOW,
        )

        result = sweep_expired([entry], NOW)

        assert result.expired_ids == [entry.id]
        assert result.entries[0].status == WaitlistStatus.EXPIRED

    def test_boundary_is_strict(self, make_entry):
        entry = make_entry(
            status=WaitlistStatus.NOTIFIED,
            notified_at=NOW - NOTIFICATION_WINDOW,
            notification_expires_at=NOW,
        )

        assert sweep_expired([entry], NOW).expired_ids == []

    def test_sweep_is_idempotent(self, make_entry):
        entries = [
            make_entry("a", status=WaitlistStatus.NOTIFIED,
                       notified_at=NOW - timedelta(minutes=30),
                       notification_expires_at=NOW - timedelta(minutes=15)),
            make_entry("b", status=WaitlistStatus.ACTIVE),
            make_entry("c", status=WaitlistStatus.CANCELLED),
        ]

        first = sweep_expired(entries, NOW)
        second = sweep_expired(first.entries, NOW)

        assert first.expired_ids == ["a"]
        assert second.expired_ids == []
        assert [e.status for e in second.entries] == [
            WaitlistStatus.EXPIRED, WaitlistStatus.ACTIVE, WaitlistStatus.CANCELLED
        ]


class TestWaitlistTransitions:
    def test_allowed_moves(self):
        validate_waitlist_transition(WaitlistStatus.ACTIVE, WaitlistStatus.NOTIFIED)
        validate_waitlist_transition(WaitlistStatus.NOTIFIED, WaitlistStatus.ACTIVE)
        validate_waitlist_transition(WaitlistStatus.NOTIFIED, WaitlistStatus.BOOKED)

    @pytest.mark.parametrize(
        "current,target",
        [
            (WaitlistStatus.ACTIVE, WaitlistStatus.EXPIRED),
            (WaitlistStatus.BOOKED, WaitlistStatus.ACTIVE),
            (WaitlistStatus.EXPIRED, WaitlistStatus.NOTIFIED),
            (WaitlistStatus.CANCELLED, WaitlistStatus.ACTIVE),
        ],
    )
    def test_rejected_moves(self, current, target):
        with pytest.raises(InvalidWaitlistTransitionError):
            validate_waitlist_transition(current, target)


class TestTimeSlots:
    def test_half_hour_slots_exclude_end(self, make_entry):
        slots = generate_time_slots(make_entry(time_range="19:00-21:00"))
        assert slots == [time(19, 0), time(19, 30), time(20, 0), time(20, 30)]

    def test_uneven_range(self, make_entry):
        slots = generate_time_slots(make_entry(time_range="18:15-19:00"))
        assert slots == [time(18, 15), time(18, 45)]


class TestPlanConversion:
    @pytest.fixture
    def tables(self, make_table):
        return [
            make_table("t1", max_capacity=2),
            make_table("t2", max_capacity=4),
            make_table("t3", max_capacity=4),
            make_table("off", max_capacity=8, is_active=False),
        ]

    def test_builds_confirmed_booking(self, make_entry, tables):
        entry = make_entry(party_size=3, guest_phone="555-0100")

        payload = plan_conversion(entry, time(19, 30), ["t2"], tables, [], NOW)

        assert payload.status == DiningStatus.CONFIRMED
        assert payload.booking_time == datetime(2024, 3, 13, 19, 30)
        assert payload.table_ids == ["t2"]
        assert payload.waitlist_entry_id == entry.id
        assert payload.guest_name == "Walker"
        assert payload.source == "waitlist"

    def test_slot_must_come_from_range(self, make_entry, tables):
        with pytest.raises(ValidationError):
            plan_conversion(make_entry(), time(21, 0), ["t2"], tables, [], NOW)
        with pytest.raises(ValidationError):
            plan_conversion(make_entry(), time(19, 15), ["t2"], tables, [], NOW)

    def test_tables_must_be_selected_and_active(self, make_entry, tables):
        with pytest.raises(ValidationError):
            plan_conversion(make_entry(), time(19, 0), [], tables, [], NOW)
        with pytest.raises(ValidationError):
            plan_conversion(make_entry(), time(19, 0), ["off"], tables, [], NOW)

    def test_capacity_sums_tables(self, make_entry, tables):
        entry = make_entry(party_size=6)

        with pytest.raises(NoAvailabilityError):
            plan_conversion(entry, time(19, 0), ["t2"], tables, [], NOW)
        payload = plan_conversion(entry, time(19, 0), ["t1", "t2"], tables, [], NOW)
        assert payload.table_ids == ["t1", "t2"]

    def test_declared_combination_capacity_wins(self, make_entry, tables):
        combination = TableCombinationRead(
            id="c", restaurant_id="rest-1", primary_table_id="t2",
            secondary_table_id="t3", combined_capacity=6,
        )
        entry = make_entry(party_size=7)

        with pytest.raises(NoAvailabilityError):
            plan_conversion(entry, time(19, 0), ["t2", "t3"], tables, [], NOW,
                            combinations=[combination])

    def test_schedule_conflict(self, make_entry, make_booking, tables):
        booked = make_booking("b", datetime(2024, 3, 13, 20, 0), table_ids=["t2"])

        with pytest.raises(ConflictError):
            plan_conversion(make_entry(), time(19, 0), ["t2"], tables, [booked], NOW)

    def test_expired_notification_cannot_convert(self, make_entry, tables):
        entry = make_entry(
            status=WaitlistStatus.NOTIFIED,
            notified_at=NOW - timedelta(minutes=20),
            notification_expires_at=NOW - timedelta(minutes=5),
        )

        with pytest.raises(InvalidWaitlistTransitionError):
            plan_conversion(entry, time(19, 0), ["t2"], tables, [], NOW)

    def test_registered_customer_keeps_identity(self, make_entry, tables):
        entry = make_entry(user_id="user-9", guest_name=None)

        payload = plan_conversion(entry, time(19, 0), ["t2"], tables, [], NOW)

        assert payload.user_id == "user-9"
        assert payload.guest_name is None


class TestAutoSelect:
    def test_best_fit_with_type_preference(self, make_entry, make_table):
        tables = [
            make_table("booth6", max_capacity=6, table_type=TableType.BOOTH),
            make_table("booth4", max_capacity=4, table_type=TableType.BOOTH),
            make_table("std3", max_capacity=3),
        ]
        snapshot = resolve_occupancy(tables, [], NOW)

        assert auto_select_tables(make_entry(party_size=3), tables, snapshot).id == "std3"
        assert auto_select_tables(
            make_entry(party_size=3, table_type="booth"), tables, snapshot
        ).id == "booth4"

    def test_nothing_fits(self, make_entry, make_table):
        tables = [make_table("t1", max_capacity=2)]
        snapshot = resolve_occupancy(tables, [], NOW)

        with pytest.raises(NoAvailabilityError):
            auto_select_tables(make_entry(party_size=4), tables, snapshot)


class TestBoard:
    def test_open_entries_sorted_with_urgency(self, make_entry, make_table):
        tables = [make_table("t1", max_capacity=4)]
        snapshot = resolve_occupancy(tables, [], NOW)
        entries = [
            make_entry("late", time_range="21:00-22:00"),
            make_entry("soon", time_range="19:10-20:00", party_size=6),
            make_entry("done", status=WaitlistStatus.BOOKED),
        ]

        views = build_board(entries, tables, snapshot, NOW)

        assert [v.entry.id for v in views] == ["soon", "late"]
        assert views[0].urgency == WaitlistUrgency.URGENT
        assert views[0].has_availability is False
        assert views[1].urgency == WaitlistUrgency.NORMAL
        assert views[1].has_availability is True
