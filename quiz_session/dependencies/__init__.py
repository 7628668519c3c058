"""FastAPI dependencies."""
from quiz_session.dependencies.controller import get_controller

__all__ = ["get_controller"]
