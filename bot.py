import asyncio
import logging
import os
import signal
from pathlib import Path

from clients.discord_client import DiscordClient
from clients.telegram_client import TelegramClient
from commands.builtin import build_registry
from commands.command_deps import CommandDeps
from config.defaults import API_CONFIG_FILE
from config.defaults import DEFAULT_CONFIG_DIR
from config.defaults import DEFAULT_DATA_DIR
from config.defaults import GAMES_DIR
from config.defaults import PROJECT_NAME
from config.defaults import PROJECT_VERSION
from config.defaults import SUBSCRIBER_DATA_FILE
from config.defaults import UPDATER_CONFIG_FILE
from config.defaults import UPDATER_DATA_FILE
from config.loader import apply_env_overrides
from config.loader import load_api_config
from config.loader import load_updater_config
from feeds.reddit import RedditSource
from feeds.rss import RssSource
from games.catalog import load_game_catalog
from jobs.updater import Updater
from misc.runtime_deps import RuntimeDeps
from misc.runtime_wiring import start_runtime
from misc.runtime_wiring import stop_runtime
from misc.runtime_wiring import wire_bot_runtime
from store.subscribers import SubscriberStore
from store.updater_data import UpdaterDataStore

CONFIG_DIR = Path(os.getenv("GAMEFEEDER_CONFIG_DIR", DEFAULT_CONFIG_DIR))
DATA_DIR = Path(os.getenv("GAMEFEEDER_DATA_DIR", DEFAULT_DATA_DIR))
LOG_LEVEL = (os.getenv("LOG_LEVEL") or "INFO").upper()

logger = logging.getLogger("gamefeeder")


def build_runtime() -> RuntimeDeps:
    api_config, warning = load_api_config(CONFIG_DIR / API_CONFIG_FILE)
    if warning:
        logger.warning("[Config] %s", warning)
    apply_env_overrides(api_config)

    updater_config, warning = load_updater_config(CONFIG_DIR / UPDATER_CONFIG_FILE)
    if warning:
        logger.warning("[Config] %s", warning)

    catalog, warning = load_game_catalog(CONFIG_DIR / GAMES_DIR)
    if warning:
        logger.warning("[Config] %s", warning)
    logger.info("[Config] loaded %d game(s)", len(catalog))

    store = SubscriberStore(DATA_DIR / SUBSCRIBER_DATA_FILE)
    bots = [
        DiscordClient(api_config.bot("discord"), store),
        TelegramClient(api_config.bot("telegram"), store),
    ]

    def get_bots():
        return [b for b in bots if b.is_running]

    registry = build_registry(CommandDeps(catalog=catalog, get_bots=get_bots))

    rss = RssSource()
    updater = Updater(
        catalog=catalog,
        get_bots=get_bots,
        sources=[RedditSource(api_config.reddit), rss],
        data_store=UpdaterDataStore(DATA_DIR / UPDATER_DATA_FILE),
        config=updater_config,
    )
    return RuntimeDeps(
        bots=bots,
        registry=registry,
        updater=updater,
        updater_config=updater_config,
        closeables=[rss],
    )


async def run() -> None:
    logger.info("[Runtime] starting %s v%s", PROJECT_NAME, PROJECT_VERSION)
    deps = build_runtime()
    wire_bot_runtime(deps)

    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop_event.set)
        except NotImplementedError:
            # Windows event loops; Ctrl+C still raises KeyboardInterrupt.
            pass

    tasks = await start_runtime(deps)
    try:
        await stop_event.wait()
    finally:
        logger.info("[Runtime] shutting down")
        await stop_runtime(deps, tasks)


def main() -> None:
    logging.basicConfig(
        level=LOG_LEVEL,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    try:
        asyncio.run(run())
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()
