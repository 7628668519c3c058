"""Quiz panel endpoints."""
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException

from quiz_session.dependencies import get_controller
from quiz_session.errors import AnswerRejectedError, InvalidStateError
from quiz_session.models import AnswerRequest, LeaveRequest, StartRequest
from quiz_session.services.session_controller import QuizSessionController

router = APIRouter(prefix="/api/quiz", tags=["quiz"])

Controller = Annotated[QuizSessionController, Depends(get_controller)]


def _conflict(exc: InvalidStateError) -> HTTPException:
    return HTTPException(status_code=409, detail=str(exc))


@router.get("/state")
async def get_state(controller: Controller) -> dict[str, object]:
    """Current panel state for rendering."""
    return controller.snapshot()


@router.get("/courses")
async def list_courses(controller: Controller) -> dict[str, object]:
    courses = await controller.load_courses()
    return {"items": [course.model_dump() for course in courses]}


@router.post("/start")
async def start_quiz(payload: StartRequest, controller: Controller) -> dict[str, object]:
    """Start an attempt; ``started`` is False when it was refused or failed."""
    try:
        started = await controller.start(payload.courseId, payload.defaultPassScore)
    except InvalidStateError as exc:
        raise _conflict(exc) from exc
    return {"started": started, **controller.snapshot()}


@router.put("/answers/{question_id}")
async def select_answer(
    question_id: str,
    payload: AnswerRequest,
    controller: Controller,
) -> dict[str, object]:
    try:
        controller.select_answer(question_id, payload.choiceIndex)
    except AnswerRejectedError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return {
        "questionId": question_id,
        "choiceIndex": payload.choiceIndex,
        "saveStatus": controller.save_status.value,
        "savePending": controller.save_pending,
    }


@router.post("/submit")
async def submit_quiz(controller: Controller) -> dict[str, object]:
    try:
        result = await controller.submit()
    except InvalidStateError as exc:
        raise _conflict(exc) from exc
    return {"submitted": result is not None, **controller.snapshot()}


@router.post("/leave")
async def leave_quiz(payload: LeaveRequest, controller: Controller) -> dict[str, object]:
    """The view was hidden or is unloading; progress is flushed in the background."""
    if payload.reason == "hidden":
        accepted = controller.on_visibility_hidden(payload.leaveSeconds)
    else:
        accepted = controller.on_unload(payload.leaveSeconds)
    return {"accepted": accepted, "state": controller.phase.value}


@router.post("/back")
async def back_to_dashboard(controller: Controller) -> dict[str, object]:
    try:
        controller.back_to_dashboard()
    except InvalidStateError as exc:
        raise _conflict(exc) from exc
    return controller.snapshot()


@router.post("/result/retry")
async def retry_result(controller: Controller) -> dict[str, object]:
    """Reload a result that was not available right after submitting."""
    try:
        result = await controller.retry_result()
    except InvalidStateError as exc:
        raise _conflict(exc) from exc
    return result.display()


@router.get("/result/wrongs")
async def list_wrong_answers(controller: Controller) -> dict[str, object]:
    try:
        wrongs = await controller.load_wrong_answers()
    except InvalidStateError as exc:
        raise _conflict(exc) from exc
    return {"items": [wrong.model_dump() for wrong in wrongs]}


@router.get("/notifications")
async def list_notifications(controller: Controller) -> dict[str, object]:
    return {"items": [n.model_dump() for n in controller.notifications.active()]}


@router.delete("/notifications/{notification_id}")
async def dismiss_notification(notification_id: int, controller: Controller) -> dict[str, object]:
    if not controller.notifications.dismiss(notification_id):
        raise HTTPException(status_code=404, detail="Notification not found")
    return {"status": "dismissed", "id": notification_id}
