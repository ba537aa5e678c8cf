"""
API Module for the Hot Lead service.

FastAPI application with routes for:
- Lead scoring and escalation
- Score history and the hot-lead feed
- Escalation notifications
"""

from .main import create_app, app

__all__ = ["create_app", "app"]
