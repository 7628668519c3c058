"""Session controller dependency for FastAPI."""
from fastapi import HTTPException, Request, status

from quiz_session.services.session_controller import QuizSessionController


def get_controller(request: Request) -> QuizSessionController:
    """Get the panel's session controller.

    Raises:
        HTTPException: 503 if the application has not wired one up.
    """
    controller = getattr(request.app.state, "controller", None)
    if controller is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Quiz session is not available",
        )
    return controller
