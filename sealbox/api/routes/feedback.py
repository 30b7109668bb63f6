from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request
from pydantic import ValidationError

from sealbox.core.body_limits import read_body_limited
from sealbox.core.errors import ValidationAppError
from sealbox.core.rate_limit import enforce_rate_limit
from sealbox.schemas.feedback import FeedbackAccepted, FeedbackSubmission
from sealbox.services.feedback_store import AppendOnlyFeedbackStore
from sealbox.utils.pgp_validators import PGPMessageValidator

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api",
    tags=["Feedback"],
    dependencies=[Depends(enforce_rate_limit)],
)


def get_feedback_store(request: Request) -> AppendOnlyFeedbackStore:
    return request.app.state.feedback_store


def get_message_validator(request: Request) -> PGPMessageValidator:
    return request.app.state.message_validator


def _invalid(code: str) -> ValidationAppError:
    # Every rejection shares one message so clients learn nothing about why
    return ValidationAppError(code=code, message="Invalid request")


@router.post("/feedback", response_model=FeedbackAccepted)
async def submit_feedback(
    request: Request,
    store: AppendOnlyFeedbackStore = Depends(get_feedback_store),
    validator: PGPMessageValidator = Depends(get_message_validator),
) -> FeedbackAccepted:
    """Accept one encrypted feedback message.

    The body is read under the size cap first, then parsed, then checked for
    a well-formed PGP envelope, and only then appended to the log.

    Returns:
        FeedbackAccepted: ``{"success": true}``.

    Raises:
        HTTPException: 413 if the body is over the size limit.
        ValidationAppError: 400 for missing, mistyped or malformed input.
        StorageFullError: 507 when the log's device is full.
        StorageAppError: 500 for any other write failure.
    """
    max_bytes = request.app.state.settings.app.max_body_bytes
    body = await read_body_limited(request, max_bytes)

    try:
        submission = FeedbackSubmission.model_validate_json(body)
    except ValidationError as exc:
        logger.info(
            "feedback.rejected",
            extra={"reason": "malformed_body", "error_count": exc.error_count()},
        )
        raise _invalid("malformed_body") from None

    message = submission.encrypted_message
    if not validator.validate(message):
        logger.info(
            "feedback.rejected",
            extra={"reason": "invalid_envelope", "char_count": len(message)},
        )
        raise _invalid("invalid_envelope")

    entry = await store.append(message)
    logger.info(
        "feedback.accepted",
        extra={"entry_date": entry.coarse_date.isoformat(), "char_count": len(message)},
    )
    return FeedbackAccepted()
