"""
Start the UrgentSales listing bot.

    python -m urgentsales          or the urgentsales-bot script

DEBUG=true turns on debug output everywhere, including the HTTP and
Telegram libraries; otherwise LOG_LEVEL applies to our loggers and the
libraries only report warnings.
"""

import asyncio
import logging

from urgentsales.config import Settings, settings

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"

# Per-request chatter from these drowns out the wizard logs
CHATTY_LIBRARIES = ("httpx", "httpcore", "aiogram.event")


def resolve_log_level(config: Settings) -> int:
    if config.debug:
        return logging.DEBUG
    level = logging.getLevelName(config.log_level.strip().upper())
    return level if isinstance(level, int) else logging.INFO


def setup_logging(config: Settings = settings) -> None:
    level = resolve_log_level(config)
    logging.basicConfig(level=level, format=LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")
    library_level = logging.DEBUG if config.debug else max(level, logging.WARNING)
    for name in CHATTY_LIBRARIES:
        logging.getLogger(name).setLevel(library_level)


async def main() -> None:
    setup_logging()
    logger = logging.getLogger("urgentsales")

    logger.info("Starting listing bot (env=%s, backend=%s)", settings.app_env, settings.api_base_url)
    if settings.otp_bypass_enabled:
        logger.warning("OTP bypass code is accepted in this build")

    # aiogram is imported only once logging is set up
    from urgentsales.adapters.telegram.bot import TelegramAdapter

    adapter = TelegramAdapter()
    try:
        await adapter.start()
    except KeyboardInterrupt:
        logger.info("Interrupted, stopping")
    finally:
        await adapter.stop()


def run() -> None:
    asyncio.run(main())


if __name__ == "__main__":
    run()
