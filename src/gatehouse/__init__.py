"""Gatehouse: registration, login and a session-gated event discovery page."""

__version__ = "0.1.0"
