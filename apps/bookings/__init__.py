"""Bookings app package.

This app encapsulates the booking engine: slot validation against the
operating windows, conflict detection and slot sharing, price computation,
transactional creation with seasonal public references, cancellation and
the chaining of oversized groups over subsequent departures. Creation runs
inside a database transaction holding a row lock on the chosen barque.
"""
