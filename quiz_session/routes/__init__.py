"""API route modules."""
from quiz_session.routes import quiz

__all__ = ["quiz"]
