"""Availability and booking-conflict engine for a barbershop booking platform."""

__version__ = "0.1.0"
