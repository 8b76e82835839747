"""
Shared Kernel

Value objects, the domain error taxonomy, domain events and the unit of
work used by the units, bookings and finances apps.
"""
