"""Fleet app package.

Owns the read side of vessel state: which barques are in service, the
time-based rotation that maps a departure to a barque, and the occupancy
reports built on top of the booking table.
"""
