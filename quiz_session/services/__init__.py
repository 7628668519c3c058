"""Session services: remote calls, timing primitives and the attempt controller."""
from quiz_session.services.notifications import NotificationCenter
from quiz_session.services.quiz_api import QuizApi
from quiz_session.services.session_controller import QuizSessionController

__all__ = ["NotificationCenter", "QuizApi", "QuizSessionController"]
