"""Slot computation, conflict detection, booking validation, and status rules.

Import the modules directly (``barbershop.scheduling.availability`` etc.);
this package re-exports nothing.
"""
