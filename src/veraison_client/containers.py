"""Dependency container wiring for the client."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from veraison_client.adapters.veraison_client import (
    ChallengeResponseTransport,
    HttpxChallengeResponseTransport,
)
from veraison_client.app_logging import configure_logging
from veraison_client.config import Settings, parse_media_types
from veraison_client.services.sessions import ChallengeResponseService


@dataclass
class ClientContainer:
    """Holds client-wide dependencies."""

    settings: Settings
    transport: ChallengeResponseTransport
    session_service: ChallengeResponseService
    preferred_media_types: list[str]
    close_resources: Callable[[], Awaitable[None]]


def build_container(settings: Settings | None = None) -> ClientContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    configure_logging(resolved_settings.log_level)
    transport = HttpxChallengeResponseTransport.create(
        timeout=resolved_settings.request_timeout_seconds,
        verify_tls=resolved_settings.verify_tls,
    )
    session_service = ChallengeResponseService(transport)

    async def close_resources() -> None:
        await transport.close()

    return ClientContainer(
        settings=resolved_settings,
        transport=transport,
        session_service=session_service,
        preferred_media_types=parse_media_types(
            resolved_settings.preferred_media_types
        ),
        close_resources=close_resources,
    )
