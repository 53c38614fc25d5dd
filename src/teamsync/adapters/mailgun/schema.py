"""Pydantic models describing the Mailgun routes API."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class MailgunBaseModel(BaseModel):
    model_config = ConfigDict(extra="ignore")


class RoutePayload(MailgunBaseModel):
    id: str
    priority: int
    expression: str
    actions: list[str] = Field(default_factory=list)
    # Routes created by hand may carry any JSON value here.
    description: object = None


class RoutesResponse(MailgunBaseModel):
    items: list[RoutePayload]
    total_count: int
