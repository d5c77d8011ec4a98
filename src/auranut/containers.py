"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from supabase import create_client

from auranut.adapters.json_file_store import JsonFileKeyValueStore
from auranut.adapters.openai_client import OpenAIGenerativeClient
from auranut.adapters.supabase_state_store import SupabaseKeyValueStore
from auranut.config import Settings, parse_state_backend
from auranut.services.ai_gateway import AIGateway
from auranut.services.identity import IdentityService
from auranut.services.sessions import SessionService
from auranut.services.state_store import KeyValueStore, StateRepository


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    state_repository: StateRepository
    ai_gateway: AIGateway
    identity_service: IdentityService
    session_service: SessionService
    close_resources: Callable[[], Awaitable[None]]


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container and load persisted state."""
    resolved_settings = settings or Settings()
    state_repository = StateRepository(
        store=_build_store(resolved_settings),
        prefix=resolved_settings.storage_key_prefix,
    )
    openai_client = OpenAIGenerativeClient.create(resolved_settings.openai_api_key)
    ai_gateway = AIGateway(
        client=openai_client,
        model=resolved_settings.openai_model,
        analysis_model=resolved_settings.openai_analysis_model,
        reasoning_effort=resolved_settings.openai_reasoning_effort,
        analysis_reasoning_effort=resolved_settings.openai_analysis_reasoning_effort,
        store=resolved_settings.openai_store,
        timeout_seconds=resolved_settings.ai_timeout_seconds,
    )
    identity_service = IdentityService(
        delay_seconds=resolved_settings.login_delay_seconds
    )
    session_service = SessionService(
        repository=state_repository,
        gateway=ai_gateway,
        identity=identity_service,
    )
    session_service.load()

    async def close_resources() -> None:
        await openai_client.close()

    return AppContainer(
        settings=resolved_settings,
        state_repository=state_repository,
        ai_gateway=ai_gateway,
        identity_service=identity_service,
        session_service=session_service,
        close_resources=close_resources,
    )


def _build_store(settings: Settings) -> KeyValueStore:
    backend = parse_state_backend(settings.state_backend)
    if backend == "supabase":
        if not settings.supabase_url or not settings.supabase_service_key:
            raise ValueError(
                "Supabase backend needs SUPABASE_URL and SUPABASE_SERVICE_KEY"
            )
        client = create_client(settings.supabase_url, settings.supabase_service_key)
        return SupabaseKeyValueStore(
            client=client,
            table=settings.supabase_state_table,
            prefix=settings.storage_key_prefix,
        )
    return JsonFileKeyValueStore.create(
        settings.state_dir, prefix=settings.storage_key_prefix
    )
