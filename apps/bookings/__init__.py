"""Bookings app package.

This app encapsulates the booking lifecycle: availability checks, the
booking state machine, extensions and cancellations. Date overlap is
enforced twice, by an application-level query that names the conflicting
bookings and by a store-level guard (an exclusion constraint on
PostgreSQL, triggers on SQLite) that catches concurrent writers.
"""
