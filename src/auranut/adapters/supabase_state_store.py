"""Supabase-backed key/value store."""

from dataclasses import dataclass
from datetime import UTC, datetime

from supabase import Client

from auranut.services.state_store import KeyValueStore


@dataclass
class SupabaseKeyValueStore(KeyValueStore):
    """Supabase implementation storing one JSON row per key."""

    client: Client
    table: str = "app_state"
    prefix: str = "auranut_"

    def get(self, key: str) -> object | None:
        """Return the stored JSON value for a key, if present."""
        response = (
            self.client.table(self.table)
            .select("value")
            .eq("key", key)
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        return response.data[0].get("value")

    def set(self, key: str, value: object) -> None:
        """Insert or replace the row for a key."""
        self.client.table(self.table).upsert(
            {
                "key": key,
                "value": value,
                "updated_at": datetime.now(tz=UTC).isoformat(),
            },
            on_conflict="key",
        ).execute()

    def clear(self) -> None:
        """Delete all rows owned by this application's key prefix."""
        self.client.table(self.table).delete().like("key", f"{self.prefix}%").execute()
