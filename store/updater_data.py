from __future__ import annotations

import asyncio
import json
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path

from store.subscribers import save_subscriber_data_sync


@dataclass(slots=True)
class UpdaterData:
    last_update: datetime
    healthcheck_timestamp: datetime | None = None


def _parse_ts(raw: object) -> datetime | None:
    if not raw:
        return None
    try:
        ts = datetime.fromisoformat(str(raw))
    except ValueError:
        return None
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts


def load_updater_data_sync(path: str) -> UpdaterData:
    """Missing or unreadable data starts the updater from now, so old posts are not replayed."""
    try:
        with open(path, "r", encoding="utf-8") as f:
            raw = json.load(f)
    except (FileNotFoundError, json.JSONDecodeError):
        raw = {}
    if not isinstance(raw, dict):
        raw = {}
    return UpdaterData(
        last_update=_parse_ts(raw.get("last_update")) or datetime.now(timezone.utc),
        healthcheck_timestamp=_parse_ts(raw.get("healthcheck_timestamp")),
    )


def save_updater_data_sync(path: str, data: UpdaterData) -> None:
    payload = {
        "last_update": data.last_update.isoformat(),
        "healthcheck_timestamp": data.healthcheck_timestamp.isoformat() if data.healthcheck_timestamp else None,
    }
    # Same atomic write as the subscriber file.
    save_subscriber_data_sync(path, payload)


class UpdaterDataStore:
    def __init__(self, path: str | Path) -> None:
        self.path = str(path)
        self.lock = asyncio.Lock()

    async def load(self) -> UpdaterData:
        async with self.lock:
            return await asyncio.to_thread(load_updater_data_sync, self.path)

    async def save(self, data: UpdaterData) -> None:
        async with self.lock:
            await asyncio.to_thread(save_updater_data_sync, self.path, data)
