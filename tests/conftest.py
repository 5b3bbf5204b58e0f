"""Shared test fixtures."""

from dataclasses import dataclass, field

import pytest

from veraison_client.adapters.veraison_client import ChallengeResponseTransport
from veraison_client.domain.errors import ApiError
from veraison_client.domain.sessions import (
    CreatedSession,
    NonceRequest,
    SubmittedEvidence,
)
from veraison_client.services.sessions import ChallengeResponseService

BASE_URL = "https://svc/cr"
SESSION_URL = "https://svc/cr/s1"
PSA_MEDIA_TYPE = "application/psa"


@dataclass
class FakeTransport(ChallengeResponseTransport):
    """Transport double that records calls and replays canned responses."""

    create_status: int = 201
    session_url: str = SESSION_URL
    echo_nonce: bytes | None = None
    server_nonce: bytes = b"\x10\x11\x12\x13\x14\x15\x16\x17"
    accepted: list[str] = field(default_factory=lambda: [PSA_MEDIA_TYPE])
    submit_status: int = 200
    session_status: str | None = "complete"
    result: str | None = "PASS"
    close_status: int = 204
    create_error: Exception | None = None
    submit_error: Exception | None = None
    close_error: BaseException | None = None
    created: list[tuple[str, NonceRequest]] = field(default_factory=list)
    submitted: list[tuple[str, str, bytes]] = field(default_factory=list)
    closed: list[str] = field(default_factory=list)

    async def create_session(
        self, base_url: str, nonce: NonceRequest
    ) -> CreatedSession:
        self.created.append((base_url, nonce))
        if self.create_error is not None:
            raise self.create_error
        if not 200 <= self.create_status < 300:
            raise ApiError("Internal Server Error", self.create_status)
        if self.echo_nonce is not None:
            confirmed = self.echo_nonce
        elif nonce.server_generated:
            confirmed = self.server_nonce
        else:
            confirmed = nonce.value
        return CreatedSession(
            status_code=self.create_status,
            session_url=self.session_url,
            confirmed_nonce=confirmed,
            accepted_media_types=list(self.accepted),
        )

    async def submit_evidence(
        self, session_url: str, media_type: str, evidence: bytes
    ) -> SubmittedEvidence:
        self.submitted.append((session_url, media_type, evidence))
        if self.submit_error is not None:
            raise self.submit_error
        if not 200 <= self.submit_status < 300:
            raise ApiError("Bad Request", self.submit_status)
        return SubmittedEvidence(
            status_code=self.submit_status,
            session_status=self.session_status,
            attestation_result=self.result,
        )

    async def close_session(self, session_url: str) -> int:
        self.closed.append(session_url)
        if self.close_error is not None:
            raise self.close_error
        return self.close_status


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def service(transport: FakeTransport) -> ChallengeResponseService:
    return ChallengeResponseService(transport)
