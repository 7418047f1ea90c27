"""Clinic Desk - appointment booking and clinic dashboards."""

__version__ = "0.1.0"
