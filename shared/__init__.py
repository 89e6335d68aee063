"""
Shared Kernel

Building blocks shared by the fleet, booking and payment contexts: value
objects, Paris wall-clock helpers and database locking utilities.
"""
