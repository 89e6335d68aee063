"""Audit app package.

Append-only journal of business events (new bookings, cancellations)
readable by the back office.
"""
