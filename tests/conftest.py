"""Shared test fixtures."""

import asyncio
import copy
from dataclasses import dataclass, field
from datetime import date

import pytest

from auranut.config import Settings
from auranut.containers import AppContainer
from auranut.services.ai_gateway import AIGateway, GenerationResult, GenerativeClient
from auranut.services.identity import IdentityService
from auranut.services.sessions import SessionService
from auranut.services.state_store import KeyValueStore, StateRepository

TODAY = date(2024, 1, 5)


@dataclass
class InMemoryKeyValueStore(KeyValueStore):
    """In-memory key/value store for tests."""

    values: dict[str, object] = field(default_factory=dict)
    writes: list[str] = field(default_factory=list)
    fail_writes: bool = False

    def get(self, key: str) -> object | None:
        return copy.deepcopy(self.values.get(key))

    def set(self, key: str, value: object) -> None:
        if self.fail_writes:
            raise OSError("disk full")
        self.writes.append(key)
        self.values[key] = copy.deepcopy(value)

    def clear(self) -> None:
        self.values.clear()


def _default_payloads() -> dict[str, dict[str, object]]:
    return {
        "food_search": {
            "items": [
                {
                    "name": "Rolled oats",
                    "calories": 150,
                    "protein": 5,
                    "carbs": 27,
                    "fat": 3,
                    "servingSize": 40,
                    "servingUnit": "g",
                    "emoji": "🥣",
                },
                {
                    "name": "Instant oatmeal",
                    "calories": 160,
                    "protein": 4,
                    "carbs": 32,
                    "fat": 2.5,
                    "servingSize": 1,
                    "servingUnit": "packet",
                    "emoji": "🥣",
                },
            ]
        },
        "food_item": {
            "name": "Grilled chicken salad",
            "calories": 420,
            "protein": 38,
            "carbs": 12,
            "fat": 22,
            "servingSize": 1,
            "servingUnit": "bowl",
            "emoji": "🥗",
        },
        "calories_burned": {"calories": 300},
        "daily_goals": {
            "dailyCalorieGoal": 2200,
            "dailyProteinGoal": 140,
            "dailyCarbsGoal": 250,
            "dailyFatGoal": 70,
            "dailyWaterGoal": 9,
        },
    }


@dataclass
class FakeGenerativeClient(GenerativeClient):
    """Fake generative client returning canned payloads and recording calls."""

    payloads: dict[str, dict[str, object]] = field(default_factory=_default_payloads)
    citations: list[str] = field(
        default_factory=lambda: ["https://example.com/oats", "https://example.com/oats"]
    )
    text_reply: str = "Great job staying hydrated!"
    fail_schemas: set[str] = field(default_factory=set)
    fail_web_search: bool = False
    fail_text: bool = False
    gate: asyncio.Event | None = None
    json_calls: list[dict[str, object]] = field(default_factory=list)
    text_calls: list[dict[str, object]] = field(default_factory=list)

    async def generate_json(  # noqa: PLR0913
        self,
        *,
        model: str,
        reasoning_effort: str | None,
        store: bool,
        prompt: str,
        schema: dict[str, object],
        schema_name: str,
        image_data_url: str | None = None,
        web_search: bool = False,
    ) -> GenerationResult:
        self.json_calls.append(
            {
                "model": model,
                "prompt": prompt,
                "schema_name": schema_name,
                "image_data_url": image_data_url,
                "web_search": web_search,
            }
        )
        if self.gate is not None:
            await self.gate.wait()
        if schema_name in self.fail_schemas or (web_search and self.fail_web_search):
            raise RuntimeError("model unavailable")
        return GenerationResult(
            payload=copy.deepcopy(self.payloads[schema_name]),
            citations=list(self.citations) if web_search else [],
        )

    async def generate_text(  # noqa: PLR0913
        self,
        *,
        model: str,
        reasoning_effort: str | None,
        store: bool,
        instructions: str,
        messages: list[dict[str, str]],
    ) -> str:
        self.text_calls.append(
            {
                "model": model,
                "reasoning_effort": reasoning_effort,
                "instructions": instructions,
                "messages": messages,
            }
        )
        if self.gate is not None:
            await self.gate.wait()
        if self.fail_text:
            raise RuntimeError("model unavailable")
        return self.text_reply


def build_gateway(client: GenerativeClient | None = None) -> AIGateway:
    return AIGateway(
        client=client or FakeGenerativeClient(),
        model="gpt-5.2",
        analysis_model="gpt-5.2-pro",
        reasoning_effort="low",
        analysis_reasoning_effort="high",
        store=False,
        timeout_seconds=5.0,
    )


def build_session(
    store: InMemoryKeyValueStore | None = None,
    client: FakeGenerativeClient | None = None,
    today: date = TODAY,
) -> SessionService:
    return SessionService(
        repository=StateRepository(store or InMemoryKeyValueStore()),
        gateway=build_gateway(client),
        identity=IdentityService(delay_seconds=0),
        clock=lambda: today,
        now_ms=lambda: 1_704_412_800_000,
    )


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        openai_api_key="openai-key",
        state_backend="file",
        state_dir=str(tmp_path / "state"),
        login_delay_seconds=0,
    )


@pytest.fixture
def store() -> InMemoryKeyValueStore:
    return InMemoryKeyValueStore()


@pytest.fixture
def generative_client() -> FakeGenerativeClient:
    return FakeGenerativeClient()


@pytest.fixture
def session(
    store: InMemoryKeyValueStore, generative_client: FakeGenerativeClient
) -> SessionService:
    service = build_session(store, generative_client)
    service.load()
    return service


@pytest.fixture
def container(settings: Settings, session: SessionService) -> AppContainer:
    async def close_resources() -> None:
        return None

    return AppContainer(
        settings=settings,
        state_repository=session.repository,
        ai_gateway=session.gateway,
        identity_service=session.identity,
        session_service=session,
        close_resources=close_resources,
    )
