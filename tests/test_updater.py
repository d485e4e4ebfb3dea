from __future__ import annotations

import tempfile
import unittest
from datetime import datetime, timedelta, timezone
from pathlib import Path

from clients.base import BotClient
from clients.models import Channel
from config.loader import BotSettings, UpdaterConfig
from feeds.notification import Notification, sort_limit_end
from games.catalog import Game, GameCatalog
from jobs.updater import Updater
from store.subscribers import SubscriberStore
from store.updater_data import UpdaterData, UpdaterDataStore, load_updater_data_sync

DOTA = Game(name="dota", label="Dota 2", color="#A72714")
ARTIFACT = Game(name="artifact", label="Artifact")

T0 = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


class _StaticSource:
    def __init__(self, items_by_game):
        self.items_by_game = items_by_game
        self.calls = []

    async def get_notifications(self, game, since, limit):
        self.calls.append((game.name, since, limit))
        return [n for n in self.items_by_game.get(game.name, []) if n.timestamp > since]


class _BrokenSource:
    async def get_notifications(self, game, since, limit):
        raise RuntimeError("feed down")


class _RecordingBot:
    def __init__(self, *, running=True):
        self.is_running = running
        self.sent = []

    async def send_to_game_subs(self, game, message):
        self.sent.append((game.name, message.title))
        return 2


class _ExplodingBot:
    label = "Broken"
    is_running = True

    async def send_to_game_subs(self, game, message):
        raise RuntimeError("client crashed")


class _HalfBrokenClient(BotClient):
    def __init__(self, store):
        super().__init__("fake", "Fake", BotSettings(enabled=True), store)
        self.is_running = True
        self.sent = []

    async def send_message(self, channel, message):
        if channel.id == "bad":
            raise ValueError("unparseable API response")
        self.sent.append((channel.id, message.title))
        return True


def _item(game, minutes, title):
    return Notification(timestamp=T0 + timedelta(minutes=minutes), title=title).with_game_defaults(game)


class NotificationTests(unittest.TestCase):
    def test_sort_limit_end_keeps_newest(self):
        items = [_item(DOTA, m, str(m)) for m in (5, 1, 3, 4, 2)]
        self.assertEqual([n.title for n in sort_limit_end(items, 3)], ["3", "4", "5"])
        self.assertEqual([n.title for n in sort_limit_end(items)], ["1", "2", "3", "4", "5"])

    def test_markdown_with_game_defaults(self):
        n = Notification(title="Patch 7.35", link="https://x.y/p", author="wykrhm", content="Fixes.")
        n.with_game_defaults(DOTA)
        self.assertEqual(n.color, "#A72714")
        self.assertEqual(n.footer, "Dota 2")
        self.assertEqual(
            n.to_markdown(),
            "New **Dota 2** update - wykrhm:\n\n**[Patch 7.35](https://x.y/p)**\n\nFixes.",
        )


class UpdaterTests(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.data_path = Path(self.tmp.name) / "updater_data.json"
        self.data_store = UpdaterDataStore(self.data_path)
        await self.data_store.save(UpdaterData(last_update=T0))

    async def asyncTearDown(self):
        self.tmp.cleanup()

    def _updater(self, sources, bots, **config):
        return Updater(
            catalog=GameCatalog([DOTA, ARTIFACT]),
            get_bots=lambda: bots,
            sources=sources,
            data_store=self.data_store,
            config=UpdaterConfig(**config),
        )

    async def test_tick_delivers_in_order_and_advances_last_update(self):
        source = _StaticSource(
            {
                "dota": [_item(DOTA, -5, "old"), _item(DOTA, 10, "b")],
                "artifact": [_item(ARTIFACT, 3, "a")],
            }
        )
        running, stopped = _RecordingBot(), _RecordingBot(running=False)
        updater = self._updater([source], [running, stopped])

        self.assertEqual(await updater.run_tick(), 4)
        self.assertEqual(running.sent, [("artifact", "a"), ("dota", "b")])
        self.assertEqual(stopped.sent, [])

        data = load_updater_data_sync(str(self.data_path))
        self.assertEqual(data.last_update, T0 + timedelta(minutes=10))
        self.assertIsNotNone(data.healthcheck_timestamp)

        # Nothing new on the second tick.
        running.sent.clear()
        self.assertEqual(await updater.run_tick(), 0)
        self.assertEqual(running.sent, [])

    async def test_failing_source_does_not_block_others(self):
        source = _StaticSource({"dota": [_item(DOTA, 1, "ok")]})
        bot = _RecordingBot()
        updater = self._updater([_BrokenSource(), source], [bot])

        with self.assertLogs("jobs.updater", level="ERROR"):
            await updater.run_tick()
        self.assertEqual(bot.sent, [("dota", "ok")])

    async def test_per_game_limit(self):
        source = _StaticSource({"dota": [_item(DOTA, m, str(m)) for m in range(1, 6)]})
        bot = _RecordingBot()
        updater = self._updater([source], [bot], limit=2)

        await updater.run_tick()
        self.assertEqual(bot.sent, [("dota", "4"), ("dota", "5")])
        self.assertEqual(source.calls[0], ("dota", T0, 2))

    async def test_one_broken_channel_does_not_abort_the_tick(self):
        source = _StaticSource({"dota": [_item(DOTA, 1, "first"), _item(DOTA, 2, "second")]})
        bot = _HalfBrokenClient(SubscriberStore(Path(self.tmp.name) / "subscriber_data.json"))
        bot.channels = {
            cid: Channel(id=cid, bot=bot, game_subs=["dota"]) for cid in ("bad", "good")
        }
        updater = self._updater([source], [bot])

        with self.assertLogs("clients.base", level="ERROR"):
            self.assertEqual(await updater.run_tick(), 2)
        self.assertEqual(bot.sent, [("good", "first"), ("good", "second")])

        data = load_updater_data_sync(str(self.data_path))
        self.assertEqual(data.last_update, T0 + timedelta(minutes=2))

    async def test_one_broken_client_does_not_stop_the_others(self):
        source = _StaticSource({"dota": [_item(DOTA, 1, "x")]})
        healthy = _RecordingBot()
        updater = self._updater([source], [_ExplodingBot(), healthy])

        with self.assertLogs("jobs.updater", level="ERROR"):
            self.assertEqual(await updater.run_tick(), 2)
        self.assertEqual(healthy.sent, [("dota", "x")])
        self.assertEqual(load_updater_data_sync(str(self.data_path)).last_update, T0 + timedelta(minutes=1))

    async def test_autosave_off_keeps_file(self):
        source = _StaticSource({"dota": [_item(DOTA, 1, "x")]})
        updater = self._updater([source], [_RecordingBot()], autosave=False)
        await updater.run_tick()
        self.assertEqual(load_updater_data_sync(str(self.data_path)).last_update, T0)


class UpdaterDataTests(unittest.TestCase):
    def test_missing_file_starts_from_now(self):
        with tempfile.TemporaryDirectory() as tmp:
            before = datetime.now(timezone.utc)
            data = load_updater_data_sync(str(Path(tmp) / "nope.json"))
        self.assertGreaterEqual(data.last_update, before)
        self.assertIsNone(data.healthcheck_timestamp)

    def test_naive_timestamps_are_utc(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "updater_data.json"
            path.write_text('{"last_update": "2024-05-01T12:00:00"}', encoding="utf-8")
            self.assertEqual(load_updater_data_sync(str(path)).last_update, T0)


if __name__ == "__main__":
    unittest.main()
