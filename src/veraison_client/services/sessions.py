"""Challenge/response session state machine."""

import logging
from collections.abc import AsyncIterator, Callable, Sequence
from contextlib import asynccontextmanager
from dataclasses import dataclass
from urllib.parse import urlsplit

from veraison_client.adapters.veraison_client import ChallengeResponseTransport
from veraison_client.domain.errors import (
    ApiError,
    CallbackError,
    ConfigError,
    FeatureNotImplementedError,
    Status,
)
from veraison_client.domain.sessions import (
    ChallengeResponseSession,
    CreatedSession,
    NonceRequest,
    SessionState,
    SessionStore,
)
from veraison_client.services.errors import normalize_exception

MAX_NONCE_SIZE = 64
MIN_SERVER_NONCE_SIZE = 8

_logger = logging.getLogger(__name__)

NonceSource = bytes | Callable[[], bytes]
EvidenceBuilder = Callable[[bytes, Sequence[str]], tuple[bytes, str]]


@dataclass
class ChallengeResponseService:
    """Drives sessions through open, submit and close."""

    transport: ChallengeResponseTransport

    async def open(
        self, base_url: str, nonce: NonceSource = b"", *, nonce_size: int = 0
    ) -> tuple[ChallengeResponseSession, Status]:
        """Create a session and return its handle with the outcome.

        An empty ``nonce`` asks the service to generate one of ``nonce_size``
        bytes (0 lets the service choose). A callable ``nonce`` is invoked once
        to produce the nonce locally. ``nonce_size`` only applies to server
        generated nonces; passing it with a nonce is a configuration error.
        """
        session = ChallengeResponseSession()
        try:
            _validate_base_url(base_url)
            request = _build_nonce_request(nonce, nonce_size)
            created = await self.transport.create_session(base_url, request)
            store = _store_from_created(created, request)
        except Exception as exc:
            status = normalize_exception(exc)
            session.fault(status.message or "")
            _logger.warning("Session open failed: %s", status.message)
            return session, status

        session.attach(store, SessionState.OPEN)
        _logger.info(
            "Session opened: url=%s accepted=%s",
            store.session_url,
            len(store.accepted_media_types),
        )
        return session, Status.success()

    async def submit(
        self, session: ChallengeResponseSession, media_type: str, evidence: bytes
    ) -> Status:
        """Submit evidence for an open session."""
        try:
            _check_submittable(session, media_type, evidence)
        except ConfigError as exc:
            # Local rejection leaves the session usable.
            _logger.warning("Evidence rejected locally: %s", exc)
            return normalize_exception(exc)

        try:
            outcome = await self.transport.submit_evidence(
                session.session_url or "", media_type, evidence
            )
            result = _result_from_outcome(
                outcome.status_code, outcome.session_status, outcome.attestation_result
            )
        except Exception as exc:
            status = normalize_exception(exc)
            session.fault(status.message or "")
            _logger.warning(
                "Evidence submission failed: url=%s %s",
                session.session_url,
                status.message,
            )
            return status

        session.store.attestation_result = result
        session.state = SessionState.EVIDENCE_SUBMITTED
        _logger.info("Evidence accepted: url=%s", session.session_url)
        return Status.success()

    async def close(self, session: ChallengeResponseSession) -> None:
        """Release a session; safe to call any number of times."""
        if session.released:
            return
        session_url = session.session_url
        try:
            if session_url:
                await self._teardown(session_url)
        finally:
            session.release()

    async def _teardown(self, session_url: str) -> None:
        try:
            status_code = await self.transport.close_session(session_url)
        except Exception as exc:
            _logger.warning("Session teardown failed: url=%s %s", session_url, exc)
        else:
            _logger.info("Session closed: url=%s status=%s", session_url, status_code)

    async def run(
        self,
        base_url: str,
        evidence_builder: EvidenceBuilder,
        nonce: NonceSource = b"",
        *,
        nonce_size: int = 0,
    ) -> tuple[ChallengeResponseSession, Status]:
        """Open a session, build evidence for it and submit it.

        ``evidence_builder`` receives the confirmed nonce and accepted media
        types and returns ``(evidence, media_type)``. The caller closes the
        returned session.
        """
        session, status = await self.open(base_url, nonce, nonce_size=nonce_size)
        if not status.ok:
            return session, status
        try:
            evidence, media_type = evidence_builder(
                session.nonce, session.accepted_media_types
            )
        except Exception as exc:
            status = normalize_exception(
                CallbackError(f"evidence builder failed: {exc}")
            )
            session.fault(status.message or "")
            _logger.warning("Evidence builder failed: %s", exc)
            return session, status
        return session, await self.submit(session, media_type, evidence)

    @asynccontextmanager
    async def session(
        self, base_url: str, nonce: NonceSource = b"", *, nonce_size: int = 0
    ) -> AsyncIterator[tuple[ChallengeResponseSession, Status]]:
        """Open a session for the duration of a ``async with`` block."""
        session, status = await self.open(base_url, nonce, nonce_size=nonce_size)
        try:
            yield session, status
        finally:
            await self.close(session)


def _build_nonce_request(nonce: NonceSource, nonce_size: int) -> NonceRequest:
    if callable(nonce):
        try:
            nonce = nonce()
        except Exception as exc:
            raise CallbackError(f"nonce generator failed: {exc}") from exc
        if not isinstance(nonce, bytes | bytearray) or not nonce:
            raise CallbackError("nonce generator must return non-empty bytes")
    if not isinstance(nonce, bytes | bytearray):
        raise ConfigError(f"nonce must be bytes, got {type(nonce).__name__}")
    value = bytes(nonce)
    if len(value) > MAX_NONCE_SIZE:
        raise ConfigError(
            f"nonce is {len(value)} bytes; at most {MAX_NONCE_SIZE} are allowed"
        )
    if value:
        if nonce_size != 0:
            raise ConfigError("nonce size cannot be combined with a supplied nonce")
        return NonceRequest(value=value)
    if nonce_size != 0 and not MIN_SERVER_NONCE_SIZE <= nonce_size <= MAX_NONCE_SIZE:
        raise ConfigError(
            f"nonce size must be 0 or between {MIN_SERVER_NONCE_SIZE} "
            f"and {MAX_NONCE_SIZE}, got {nonce_size}"
        )
    return NonceRequest(size=nonce_size)


def _validate_base_url(base_url: str) -> None:
    if not base_url or not base_url.strip():
        raise ConfigError("base URL must not be empty")
    try:
        parts = urlsplit(base_url)
    except ValueError as exc:
        raise ConfigError(f"malformed base URL {base_url!r}: {exc}") from exc
    if parts.scheme not in {"http", "https"}:
        raise ConfigError(f"unsupported URL scheme {parts.scheme!r} in {base_url!r}")
    if not parts.hostname:
        raise ConfigError(f"base URL {base_url!r} has no host")


def _store_from_created(created: CreatedSession, request: NonceRequest) -> SessionStore:
    if not created.session_url:
        raise ApiError("service did not assign a session URL", created.status_code)
    if not created.confirmed_nonce:
        raise ApiError("service returned an empty nonce", created.status_code)
    if not request.server_generated and created.confirmed_nonce != request.value:
        raise ApiError("service echoed a different nonce", created.status_code)
    return SessionStore(
        session_url=created.session_url,
        nonce=created.confirmed_nonce,
        accepted_media_types=tuple(dict.fromkeys(created.accepted_media_types)),
        expiry=created.expiry,
    )


def _check_submittable(
    session: ChallengeResponseSession, media_type: str, evidence: bytes
) -> None:
    if session.state is not SessionState.OPEN:
        raise ConfigError(f"cannot submit evidence in state {session.state.value}")
    if media_type not in session.accepted_media_types:
        raise ConfigError(f"media type {media_type!r} is not accepted by the service")
    if not evidence:
        raise ConfigError("evidence must not be empty")


def _result_from_outcome(
    status_code: int, session_status: str | None, result: str | None
) -> str:
    if status_code == 202 or session_status in {"waiting", "processing"}:
        raise FeatureNotImplementedError(
            "asynchronous verification is not supported by this client"
        )
    if session_status == "failed":
        raise ApiError("verification failed on the service", status_code)
    if session_status not in {None, "complete"} or result is None:
        raise ApiError(
            f"session status {session_status!r} carried no attestation result",
            status_code,
        )
    return result


def select_media_type(
    accepted: Sequence[str], preferred: Sequence[str]
) -> str | None:
    """Return the first preferred media type the service accepts.

    Without preferences the service's own first choice wins.
    """
    if not preferred:
        return accepted[0] if accepted else None
    for media_type in preferred:
        if media_type in accepted:
            return media_type
    return None
