"""
API Module for the Funding Follow-Up Engine.

FastAPI application with routes for:
- Follow-up processing and abandonment scans
- Lead enrichment
- Message composition
"""

from .main import create_app, app

__all__ = ["create_app", "app"]
