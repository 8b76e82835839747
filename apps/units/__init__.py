"""Units app package.

This app owns the finite set of rentable units and their housekeeping
status. ``occupied`` is derived from active bookings; ``cleaning`` and
``maintenance`` are set by staff; ``reserved`` is a temporary hold that
is not backed by a booking.
"""
