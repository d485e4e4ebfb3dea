from __future__ import annotations

import asyncio
import json
import os
import tempfile
from pathlib import Path
from typing import Any

SubscriberData = dict[str, list[dict[str, Any]]]


def load_subscriber_data_sync(path: str) -> SubscriberData:
    try:
        with open(path, "r", encoding="utf-8") as f:
            raw = json.load(f)
    except FileNotFoundError:
        return {}
    if not isinstance(raw, dict):
        raise ValueError(f"Subscriber data in {path} must be a mapping")
    return {str(k): list(v or []) for k, v in raw.items()}


def save_subscriber_data_sync(path: str, data: SubscriberData) -> None:
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    # Write to a sibling file first so a crash never leaves a half-written document.
    fd, tmp_path = tempfile.mkstemp(prefix=target.name, suffix=".tmp", dir=str(target.parent))
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)
        os.replace(tmp_path, target)
    except BaseException:
        if os.path.exists(tmp_path):
            os.remove(tmp_path)
        raise


def _find_index(records: list[dict[str, Any]], channel_id: str) -> int:
    for i, record in enumerate(records):
        if str(record.get("id")) == str(channel_id):
            return i
    return -1


def _is_empty(record: dict[str, Any]) -> bool:
    return not record.get("game_subs") and not record.get("prefix")


def get_records_sync(path: str, bot_name: str) -> list[dict[str, Any]]:
    return list(load_subscriber_data_sync(path).get(bot_name, []))


def set_records_sync(path: str, bot_name: str, records: list[dict[str, Any]]) -> None:
    data = load_subscriber_data_sync(path)
    data[bot_name] = list(records)
    save_subscriber_data_sync(path, data)


def add_game_sub_sync(path: str, bot_name: str, channel_id: str, game_name: str) -> bool:
    data = load_subscriber_data_sync(path)
    records = data.setdefault(bot_name, [])
    i = _find_index(records, channel_id)
    if i < 0:
        records.append({"id": str(channel_id), "game_subs": [game_name]})
    else:
        subs = list(records[i].get("game_subs") or [])
        if game_name in subs:
            return False
        subs.append(game_name)
        records[i]["game_subs"] = subs
    save_subscriber_data_sync(path, data)
    return True


def remove_game_sub_sync(path: str, bot_name: str, channel_id: str, game_name: str) -> bool:
    data = load_subscriber_data_sync(path)
    records = data.setdefault(bot_name, [])
    i = _find_index(records, channel_id)
    if i < 0:
        return False
    subs = list(records[i].get("game_subs") or [])
    if game_name not in subs:
        return False
    subs.remove(game_name)
    records[i]["game_subs"] = subs
    if _is_empty(records[i]):
        records.pop(i)
    save_subscriber_data_sync(path, data)
    return True


def set_prefix_sync(path: str, bot_name: str, channel_id: str, prefix: str) -> None:
    """Store a custom prefix; an empty prefix means the bot default."""
    data = load_subscriber_data_sync(path)
    records = data.setdefault(bot_name, [])
    i = _find_index(records, channel_id)
    if i < 0:
        if not prefix:
            return
        records.append({"id": str(channel_id), "game_subs": [], "prefix": prefix})
    else:
        if prefix:
            records[i]["prefix"] = prefix
        else:
            records[i].pop("prefix", None)
        if _is_empty(records[i]):
            records.pop(i)
    save_subscriber_data_sync(path, data)


class SubscriberStore:
    """Async facade over the JSON subscriber file.

    Every read-modify-write runs under one lock, so concurrent commands on
    any channel or client never lose each other's updates.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = str(path)
        self.lock = asyncio.Lock()

    async def get_records(self, bot_name: str) -> list[dict[str, Any]]:
        async with self.lock:
            return await asyncio.to_thread(get_records_sync, self.path, bot_name)

    async def set_records(self, bot_name: str, records: list[dict[str, Any]]) -> None:
        async with self.lock:
            await asyncio.to_thread(set_records_sync, self.path, bot_name, records)

    async def add_game_sub(self, bot_name: str, channel_id: str, game_name: str) -> bool:
        async with self.lock:
            return await asyncio.to_thread(add_game_sub_sync, self.path, bot_name, channel_id, game_name)

    async def remove_game_sub(self, bot_name: str, channel_id: str, game_name: str) -> bool:
        async with self.lock:
            return await asyncio.to_thread(remove_game_sub_sync, self.path, bot_name, channel_id, game_name)

    async def set_prefix(self, bot_name: str, channel_id: str, prefix: str) -> None:
        async with self.lock:
            await asyncio.to_thread(set_prefix_sync, self.path, bot_name, channel_id, prefix)
