"""Pydantic schemas for the feedback API."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, StrictStr


class FeedbackSubmission(BaseModel):
    """Body of ``POST /api/feedback``."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    encrypted_message: StrictStr = Field(
        ...,
        alias="encryptedMessage",
        min_length=1,
        description="ASCII-armored PGP message, encrypted in the browser.",
    )


class FeedbackAccepted(BaseModel):
    success: bool = Field(True, description="Always true; failures use ErrorResponse.")


class PublicKeyResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    public_key: str = Field(
        ...,
        alias="publicKey",
        description="Armored PGP public key block clients encrypt to.",
    )


class ErrorResponse(BaseModel):
    """Uniform error shape for every failing response."""

    error: str = Field(..., description="Generic, client-safe error message.")
