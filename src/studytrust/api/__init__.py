"""
StudyTrust API Layer

FastAPI interface.
"""

from studytrust.api.routes import create_app, router

__all__ = ["create_app", "router"]
