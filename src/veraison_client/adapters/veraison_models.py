"""Pydantic models for Veraison challenge/response payloads."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class EvidenceBlob(BaseModel):
    """Evidence echoed back by the service."""

    type: str
    value: str


class SessionDescriptor(BaseModel):
    """Challenge/response session resource."""

    model_config = ConfigDict(extra="ignore")

    nonce: str
    expiry: datetime | None = None
    accept: list[str] = Field(default_factory=list)
    status: str | None = None
    evidence: EvidenceBlob | None = None
    result: str | None = None


class ProblemDetails(BaseModel):
    """RFC 7807 problem details body."""

    model_config = ConfigDict(extra="ignore")

    type: str | None = None
    title: str | None = None
    status: int | None = None
    detail: str | None = None
