"""Error taxonomy for challenge/response sessions."""

from dataclasses import dataclass
from enum import IntEnum


class StatusCode(IntEnum):
    """Closed set of outcomes reported to callers."""

    OK = 0
    CONFIG_ERROR = 1
    API_ERROR = 2
    CALLBACK_ERROR = 3
    NOT_IMPLEMENTED = 4
    UNMAPPED_ERROR = 5


_DEFAULT_MESSAGES = {
    StatusCode.CONFIG_ERROR: "invalid client configuration",
    StatusCode.API_ERROR: "verification service request failed",
    StatusCode.CALLBACK_ERROR: "caller callback failed",
    StatusCode.NOT_IMPLEMENTED: "feature not implemented",
    StatusCode.UNMAPPED_ERROR: "unexpected failure",
}


@dataclass(frozen=True)
class Status:
    """Outcome of a session operation."""

    code: StatusCode
    message: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "code", StatusCode(self.code))
        if self.code is not StatusCode.OK and not self.message:
            object.__setattr__(self, "message", _DEFAULT_MESSAGES[self.code])

    @property
    def ok(self) -> bool:
        """Return True when the operation succeeded."""
        return self.code is StatusCode.OK

    @classmethod
    def success(cls) -> "Status":
        return cls(StatusCode.OK)


class ChallengeResponseError(Exception):
    """Base class for failures raised inside the client."""

    code = StatusCode.UNMAPPED_ERROR


class ConfigError(ChallengeResponseError):
    """Raised for malformed input detected before any network call."""

    code = StatusCode.CONFIG_ERROR


class ApiError(ChallengeResponseError):
    """Raised when the verification service rejects or garbles a request."""

    code = StatusCode.API_ERROR

    def __init__(self, detail: str, status_code: int | None = None) -> None:
        super().__init__(detail)
        self.detail = detail
        self.status_code = status_code

    def __str__(self) -> str:
        if self.status_code is None:
            return self.detail
        return f"{self.detail} (HTTP {self.status_code})"


class CallbackError(ChallengeResponseError):
    """Raised when a caller-supplied callback fails."""

    code = StatusCode.CALLBACK_ERROR


class FeatureNotImplementedError(ChallengeResponseError):
    """Raised when an optional protocol feature is unsupported."""

    code = StatusCode.NOT_IMPLEMENTED


class SessionReleasedError(RuntimeError):
    """Raised when reading a session handle after it was closed."""
