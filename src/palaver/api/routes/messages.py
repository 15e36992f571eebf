"""Bot Framework messaging endpoint."""

from fastapi import APIRouter, Request, Response
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from palaver.connector import ConnectorAuthenticationError
from palaver.infrastructure import get_logger
from palaver.models import Activity

router = APIRouter(prefix="/api", tags=["Messages"])

logger = get_logger(__name__)


def _error(status_code: int, code: str, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"error": code, "details": [{"code": code, "message": message}]},
    )


@router.post("/messages")
async def messages(request: Request) -> Response:
    """Receive an activity from a channel and run a turn for it.

    Returns the invoke response for invoke activities, the buffered replies
    for expectReplies requests, and 201 otherwise.
    """
    content_type = request.headers.get("Content-Type", "")
    if "application/json" not in content_type:
        return Response(status_code=415)

    try:
        body = await request.json()
        activity = Activity.model_validate(body)
    except ValueError as e:
        # ValidationError is a ValueError
        detail = e.errors()[0]["msg"] if isinstance(e, ValidationError) else str(e)
        logger.warning("invalid_activity", error=detail)
        return _error(400, "BadRequest", detail)

    auth_header = request.headers.get("Authorization", "")
    adapter = request.app.state.adapter
    bot = request.app.state.bot

    try:
        invoke_response = await adapter.process_activity(activity, auth_header, bot.on_turn)
    except ConnectorAuthenticationError as e:
        logger.warning("activity_unauthorized", error=str(e), channel=activity.channel_id)
        return _error(401, "Unauthorized", str(e))

    logger.info(
        "activity_processed",
        activity_type=activity.type,
        channel=activity.channel_id,
        conversation=activity.conversation.id if activity.conversation else None,
    )

    if invoke_response is not None:
        return JSONResponse(status_code=invoke_response.status, content=jsonable_encoder(invoke_response.body))
    return Response(status_code=201)
