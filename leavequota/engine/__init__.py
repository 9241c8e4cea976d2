"""Pure leave quota engine: calendar, policy resolution, period keys, recompute, lifecycle.

Nothing in this package performs I/O. Every function takes the already-loaded
records and the tenant's ``LeavePolicySettings`` as arguments.
"""
