"""
API Routes for the Hot Lead service.
"""

from . import scoring, leads, notifications

__all__ = ["scoring", "leads", "notifications"]
