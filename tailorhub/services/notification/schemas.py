"""API request schemas for notification endpoints."""

from pydantic import Field

from tailorhub.common.schemas import CamelModel


class NotifyRequest(CamelModel):
    user_id: str = Field(min_length=1)
    title: str = Field(min_length=1)
    body: str = Field(min_length=1)


class DeviceTokenRequest(CamelModel):
    token: str = Field(min_length=1)
