"""Domain errors and the JSON envelope used for every failed request."""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class AppError(Exception):
    """Base class for errors raised by services and surfaced unchanged to clients."""

    status_code: int = status.HTTP_400_BAD_REQUEST
    detail: str = "Request failed"

    def __init__(self, detail: str | None = None) -> None:
        super().__init__(detail or self.detail)
        if detail:
            self.detail = detail


# ----------------------------------------------------------------------------
# Not found
# ----------------------------------------------------------------------------


class NotFoundError(AppError):
    status_code = status.HTTP_404_NOT_FOUND
    detail = "Not found"


class StoryNotFound(NotFoundError):
    detail = "Story not found"


class UserNotFound(NotFoundError):
    detail = "User not found"


class CommentNotFound(NotFoundError):
    detail = "Comment not found"


class RepostNotFound(NotFoundError):
    detail = "Repost not found"


class PollNotFound(NotFoundError):
    detail = "Poll not found"


class PollOptionNotFound(NotFoundError):
    detail = "Poll option not found"


class NotificationNotFound(NotFoundError):
    detail = "Notification not found"


class CommunityNotFound(NotFoundError):
    detail = "Community not found"


class HashtagNotFound(NotFoundError):
    detail = "Hashtag not found"


class ConversationNotFound(NotFoundError):
    detail = "Conversation not found"


class MessageNotFound(NotFoundError):
    detail = "Message not found"


# ----------------------------------------------------------------------------
# Authorization
# ----------------------------------------------------------------------------


class ForbiddenError(AppError):
    """Caller is not the owner of the resource or lacks the required role."""

    status_code = status.HTTP_403_FORBIDDEN
    detail = "You don't have permission to access this resource"


class NotParticipant(ForbiddenError):
    detail = "Not a participant of this conversation"


# ----------------------------------------------------------------------------
# Conflicts on exclusive operations
# ----------------------------------------------------------------------------


class ConflictError(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    detail = "Conflict"


class AlreadyReposted(ConflictError):
    detail = "You have already reposted this story"


class AlreadyFollowing(ConflictError):
    detail = "Already following this user"


class SelfFollow(ConflictError):
    detail = "Cannot follow yourself"


class AlreadyVoted(ConflictError):
    detail = "You have already voted on this poll"


class AlreadyMember(ConflictError):
    detail = "Already a member of this community"


class DuplicateCommunity(ConflictError):
    detail = "A community with this name already exists"


# ----------------------------------------------------------------------------
# Expiry and input
# ----------------------------------------------------------------------------


class ExpiredError(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    detail = "Expired"


class PollExpired(ExpiredError):
    detail = "This poll has expired"


class InvalidInputError(AppError):
    """Semantic input errors that schema validation cannot express."""

    status_code = status.HTTP_400_BAD_REQUEST
    detail = "Invalid input"


def _envelope(status_code: int, error: str, **extra) -> JSONResponse:
    content = {"success": False, "data": None, "error": error}
    content.update(extra)
    return JSONResponse(status_code=status_code, content=jsonable_encoder(content))


def install_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError):  # type: ignore[override]
        return _envelope(exc.status_code, exc.detail)

    @app.exception_handler(StarletteHTTPException)
    async def http_exc_handler(request: Request, exc: StarletteHTTPException):  # type: ignore[override]
        response = _envelope(exc.status_code, str(exc.detail))
        if exc.headers:
            response.headers.update(exc.headers)
        return response

    @app.exception_handler(RequestValidationError)
    async def validation_exc_handler(request: Request, exc: RequestValidationError):  # type: ignore[override]
        errors = [
            {
                "field": ".".join(str(part) for part in err.get("loc", ()) if part != "body"),
                "message": err.get("msg"),
                "type": err.get("type"),
            }
            for err in exc.errors()
        ]
        return _envelope(status.HTTP_400_BAD_REQUEST, "Validation failed", errors=errors)

    @app.exception_handler(Exception)
    async def unhandled_exc_handler(request: Request, exc: Exception):  # type: ignore[override]
        logger.exception(f"Unhandled error on {request.method} {request.url.path}: {exc}")
        return _envelope(status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error")
