"""Domain models for challenge/response sessions."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from veraison_client.domain.errors import SessionReleasedError


class SessionState(Enum):
    """Lifecycle states of a challenge/response session."""

    UNINITIALIZED = "uninitialized"
    OPEN = "open"
    EVIDENCE_SUBMITTED = "evidence_submitted"
    CLOSED = "closed"
    FAULTED = "faulted"


@dataclass(frozen=True)
class NonceRequest:
    """Nonce sent with a new session request.

    An empty ``value`` asks the service to generate the nonce; ``size`` then
    selects its length, with 0 leaving the choice to the service.
    """

    value: bytes = b""
    size: int = 0

    @property
    def server_generated(self) -> bool:
        return not self.value


@dataclass(frozen=True)
class CreatedSession:
    """Session descriptor returned by the transport after creation."""

    status_code: int
    session_url: str
    confirmed_nonce: bytes
    accepted_media_types: list[str]
    expiry: datetime | None = None


@dataclass(frozen=True)
class SubmittedEvidence:
    """Outcome returned by the transport after evidence submission."""

    status_code: int
    session_status: str | None
    attestation_result: str | None


@dataclass
class SessionStore:
    """Data produced for one session, owned by exactly one handle."""

    session_url: str | None = None
    nonce: bytes = b""
    accepted_media_types: tuple[str, ...] = ()
    expiry: datetime | None = None
    attestation_result: str | None = None
    diagnostic_message: str | None = None


@dataclass(eq=False)
class ChallengeResponseSession:
    """Caller handle for a challenge/response session.

    The handle owns its store. It cannot be copied; pass the handle itself.
    Once closed, reading any field other than ``state`` raises
    ``SessionReleasedError``.
    """

    state: SessionState = SessionState.UNINITIALIZED
    _store: SessionStore | None = field(default_factory=SessionStore, repr=False)

    def __copy__(self) -> "ChallengeResponseSession":
        raise TypeError("session handles cannot be copied")

    def __deepcopy__(self, memo: dict) -> "ChallengeResponseSession":
        raise TypeError("session handles cannot be copied")

    @property
    def store(self) -> SessionStore:
        if self._store is None:
            raise SessionReleasedError("session has been closed")
        return self._store

    @property
    def released(self) -> bool:
        return self._store is None

    @property
    def session_url(self) -> str | None:
        return self.store.session_url

    @property
    def nonce(self) -> bytes:
        return self.store.nonce

    @property
    def accepted_media_types(self) -> tuple[str, ...]:
        return self.store.accepted_media_types

    @property
    def expiry(self) -> datetime | None:
        return self.store.expiry

    @property
    def attestation_result(self) -> str | None:
        return self.store.attestation_result

    @property
    def diagnostic_message(self) -> str | None:
        return self.store.diagnostic_message

    def attach(self, store: SessionStore, state: SessionState) -> None:
        """Replace the store in one step and move to ``state``."""
        self._store = store
        self.state = state

    def fault(self, message: str) -> None:
        """Move to FAULTED, keeping already-confirmed fields."""
        self.store.diagnostic_message = message
        self.state = SessionState.FAULTED

    def release(self) -> None:
        self._store = None
        self.state = SessionState.CLOSED
