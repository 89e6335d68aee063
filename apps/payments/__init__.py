"""Payments app package.

Boundary with payment capture: the provider variants a booking can be
settled with, the instant-capture classification used at booking time and
the later "mark paid" call. Card settlement and ledger bookkeeping live
outside this project.
"""
