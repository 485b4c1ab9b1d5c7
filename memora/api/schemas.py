"""Request and response bodies for the HTTP API."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from memora.auth.session import OtpType


class StickerResponse(BaseModel):
    """Successful sticker generation."""

    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    image_url: str = Field(alias="imageUrl")


class ErrorResponse(BaseModel):
    error: str
    details: str | None = None


class ClientConfig(BaseModel):
    """Values the web client needs before the first upload."""

    model_config = ConfigDict(populate_by_name=True)

    style_prompt: str = Field(alias="stylePrompt")
    accepted_types: list[str] = Field(alias="acceptedTypes")


class Credentials(BaseModel):
    email: str = Field(min_length=3, max_length=320)
    password: str = Field(min_length=1)


class SignUpRequest(Credentials):
    confirm_password: str


class EmailRequest(BaseModel):
    email: str = Field(min_length=3, max_length=320)


class VerifyOtpRequest(EmailRequest):
    token: str = Field(min_length=1, max_length=32)
    type: OtpType = OtpType.EMAIL


class SessionInfo(BaseModel):
    authenticated: bool
    user_id: str | None = None
    email: str | None = None


class AuthStep(BaseModel):
    """Tells the client which auth view to show next."""

    view: str
    email: str | None = None
    message: str | None = None
