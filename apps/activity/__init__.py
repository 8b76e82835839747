"""Activity app package.

This app keeps the audit trail of the booking and finance domains. It
subscribes to committed domain events on the message bus and stores one
``SystemEvent`` row per event. Writing the trail never affects the
operation that produced the event.
"""
