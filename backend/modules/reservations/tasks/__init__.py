# backend/modules/reservations/tasks/__init__.py

"""
Background tasks for the floor plan and the waitlist.
"""
