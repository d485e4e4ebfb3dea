from __future__ import annotations

import asyncio
import logging

from jobs.updater import update_loop
from misc.events_runtime import register_dispatch
from misc.runtime_deps import RuntimeDeps

logger = logging.getLogger(__name__)


def wire_bot_runtime(deps: RuntimeDeps) -> None:
    for bot in deps.bots:
        register_dispatch(bot, registry=deps.registry)


async def start_runtime(deps: RuntimeDeps) -> list[asyncio.Task]:
    """Start every enabled client and the updater. Returns the background tasks."""
    started = []
    for bot in deps.bots:
        if not bot.enabled:
            logger.info("[%s] disabled in config.", bot.label)
            continue
        await bot.load_channels()
        if await bot.start():
            started.append(bot.label)
        else:
            logger.warning("[%s] failed to start.", bot.label)

    if not started:
        logger.warning("[Runtime] no client is running.")
    else:
        logger.info("[Runtime] running clients: %s", ", ".join(started))

    tasks: list[asyncio.Task] = []
    if deps.updater is not None and deps.updater_config.enabled:
        tasks.append(
            asyncio.create_task(
                update_loop(
                    updater=deps.updater,
                    interval_seconds=deps.updater_config.update_delay_sec,
                )
            )
        )
        logger.info("[Updater] started, every %ss.", deps.updater_config.update_delay_sec)
    else:
        logger.info("[Updater] disabled.")
    return tasks


async def stop_runtime(deps: RuntimeDeps, tasks: list[asyncio.Task]) -> None:
    for task in tasks:
        task.cancel()
    await asyncio.gather(*tasks, return_exceptions=True)

    for bot in deps.bots:
        if bot.is_running:
            try:
                await bot.stop()
            except Exception as e:
                logger.error("[%s] failed to stop: %s", bot.label, e)

    for closeable in deps.closeables:
        await closeable.close()
