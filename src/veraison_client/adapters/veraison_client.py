"""Veraison challenge/response API client adapter."""

import base64
import binascii
from dataclasses import dataclass
from typing import Protocol

import httpx
from pydantic import ValidationError

from veraison_client.adapters.veraison_models import ProblemDetails, SessionDescriptor
from veraison_client.domain.errors import ApiError
from veraison_client.domain.sessions import (
    CreatedSession,
    NonceRequest,
    SubmittedEvidence,
)

SESSION_MEDIA_TYPE = "application/vnd.veraison.challenge-response-session+json"
PROBLEM_MEDIA_TYPE = "application/problem+json"


class ChallengeResponseTransport(Protocol):
    """Interface for the challenge/response API."""

    async def create_session(
        self, base_url: str, nonce: NonceRequest
    ) -> CreatedSession:
        """Create a session and return its descriptor."""

    async def submit_evidence(
        self, session_url: str, media_type: str, evidence: bytes
    ) -> SubmittedEvidence:
        """Submit evidence to a session and return the outcome."""

    async def close_session(self, session_url: str) -> int:
        """Delete a session and return the response status code."""


@dataclass
class HttpxChallengeResponseTransport(ChallengeResponseTransport):
    """Challenge/response transport implemented with httpx."""

    http_client: httpx.AsyncClient
    timeout: float = 10.0

    @classmethod
    def create(
        cls, timeout: float = 10.0, verify_tls: bool = True
    ) -> "HttpxChallengeResponseTransport":
        """Create a transport with a managed httpx session."""
        return cls(http_client=httpx.AsyncClient(verify=verify_tls), timeout=timeout)

    async def create_session(
        self, base_url: str, nonce: NonceRequest
    ) -> CreatedSession:
        """Request a new session via ``POST {base_url}/newSession``."""
        url = f"{base_url.rstrip('/')}/newSession"
        if nonce.server_generated:
            params = {"nonceSize": str(nonce.size)}
        else:
            params = {"nonce": base64.urlsafe_b64encode(nonce.value).decode("ascii")}
        response = await self.http_client.post(
            url,
            params=params,
            headers={"Accept": SESSION_MEDIA_TYPE},
            timeout=self.timeout,
        )
        _raise_for_problem(response)

        location = response.headers.get("Location")
        if not location:
            raise ApiError(
                "session created without a Location header", response.status_code
            )
        descriptor = _parse_descriptor(response)
        return CreatedSession(
            status_code=response.status_code,
            session_url=str(response.url.join(location)),
            confirmed_nonce=_decode_nonce(descriptor.nonce),
            accepted_media_types=list(descriptor.accept),
            expiry=descriptor.expiry,
        )

    async def submit_evidence(
        self, session_url: str, media_type: str, evidence: bytes
    ) -> SubmittedEvidence:
        """Post evidence to the session resource."""
        response = await self.http_client.post(
            session_url,
            content=evidence,
            headers={"Content-Type": media_type, "Accept": SESSION_MEDIA_TYPE},
            timeout=self.timeout,
        )
        _raise_for_problem(response)
        if response.status_code == httpx.codes.ACCEPTED and not response.content:
            return SubmittedEvidence(
                status_code=response.status_code,
                session_status=None,
                attestation_result=None,
            )
        descriptor = _parse_descriptor(response)
        return SubmittedEvidence(
            status_code=response.status_code,
            session_status=descriptor.status,
            attestation_result=descriptor.result,
        )

    async def close_session(self, session_url: str) -> int:
        """Delete the session resource."""
        response = await self.http_client.delete(session_url, timeout=self.timeout)
        return response.status_code

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()


def _raise_for_problem(response: httpx.Response) -> None:
    """Raise ApiError for a non-2xx response, using problem details if sent."""
    if response.is_success:
        return
    detail = response.reason_phrase or "request failed"
    content_type = response.headers.get("Content-Type", "")
    if content_type.startswith(PROBLEM_MEDIA_TYPE) or content_type.startswith(
        "application/json"
    ):
        try:
            problem = ProblemDetails.model_validate_json(response.content)
        except ValidationError:
            problem = None
        if problem is not None:
            detail = problem.detail or problem.title or detail
    raise ApiError(detail, response.status_code)


def _parse_descriptor(response: httpx.Response) -> SessionDescriptor:
    try:
        return SessionDescriptor.model_validate_json(response.content)
    except ValidationError as exc:
        raise ApiError(
            f"malformed session descriptor: {exc.error_count()} validation error(s)",
            response.status_code,
        ) from exc


def _decode_nonce(encoded: str) -> bytes:
    """Decode a nonce sent in either standard or URL-safe base64."""
    padded = encoded + "=" * (-len(encoded) % 4)
    try:
        if "-" in padded or "_" in padded:
            return base64.urlsafe_b64decode(padded)
        return base64.b64decode(padded, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise ApiError(f"malformed nonce in session descriptor: {exc}") from exc
