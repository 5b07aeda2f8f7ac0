# coachhub/routes/v1/__init__.py
"""
API v1 Routes

Versioned API endpoints under /api/v1.
"""

from . import admin, auth, availability, children, coaches, courses, credits, payments, sessions, videos

__all__ = [
    "admin",
    "auth",
    "availability",
    "children",
    "coaches",
    "courses",
    "credits",
    "payments",
    "sessions",
    "videos",
]
