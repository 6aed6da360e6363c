"""Telemedicine administration backend, reporting pipeline and API client."""

__version__ = "1.0.0"
