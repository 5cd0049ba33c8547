"""Routes package for FastAPI endpoints.

This package contains all API route modules for the field survey backend.
"""

from fieldsurvey.routes import health, help, responses, surveys, users

__all__ = ["health", "help", "responses", "surveys", "users"]
