"""Mocked sign-in provider."""

import asyncio
from dataclasses import dataclass

from auranut.domain.models import User

MOCK_USER = User(
    id="google-123",
    name="Auranut Explorer",
    email="hello@auranut.ai",
    photo=(
        "https://ui-avatars.com/api/"
        "?name=Auranut+Explorer&background=3b82f6&color=fff"
    ),
)


@dataclass
class IdentityService:
    """Simulates a third-party sign-in that always succeeds."""

    delay_seconds: float = 1.5

    async def authenticate(self) -> User:
        """Return the mock identity after the simulated provider delay."""
        if self.delay_seconds > 0:
            await asyncio.sleep(self.delay_seconds)
        return MOCK_USER
