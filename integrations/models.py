"""Pydantic models for chat platform integration data."""

from typing import Literal, Optional

from pydantic import BaseModel, Field

PlatformType = Literal["line"]


class PlatformConfig(BaseModel):
    """Platform connection configuration."""

    platform: PlatformType = "line"
    credentials: dict = Field(..., description="channel_secret and access_token")
    external_channel_id: Optional[str] = Field(None, description="Platform channel identifier")
    api_base_url: str = Field("https://api.line.me", description="Platform API base URL")
    timeout: float = Field(10.0, gt=0, description="Per-request timeout in seconds")


class GroupInfo(BaseModel):
    """Group metadata returned by the platform."""

    group_id: str
    name: Optional[str] = None
    picture_url: Optional[str] = None


class RegistrationResult(BaseModel):
    """Outcome of registering a webhook callback URL with the platform."""

    success: bool
    webhook_url: Optional[str] = None
    error: Optional[str] = None
