"""
Telegram adapter — runs the listing wizard and tools over aiogram 3.x.

Single bot identity from TELEGRAM_BOT_TOKEN, polling mode.
"""

import logging

from aiogram import Bot, Dispatcher
from aiogram.client.default import DefaultBotProperties
from aiogram.enums import ParseMode
from aiogram.types import BotCommand, BotCommandScopeAllPrivateChats

from urgentsales.adapters.telegram.listing_handlers import close_client
from urgentsales.adapters.telegram.listing_handlers import router as listing_router
from urgentsales.adapters.telegram.tools_handlers import router as tools_router
from urgentsales.config import settings

logger = logging.getLogger(__name__)


class TelegramAdapter:
    """Owns the Dispatcher, the Bot and the shared backend client."""

    def __init__(self) -> None:
        self.dp = Dispatcher()
        self._bot: Bot | None = None
        self._register_routers()

    def _register_routers(self) -> None:
        """Attach all handler routers to the dispatcher."""
        self.dp.include_router(listing_router)
        self.dp.include_router(tools_router)

    @property
    def bot(self) -> Bot:
        if self._bot is None:
            raise RuntimeError("Bot is not started")
        return self._bot

    async def start(self) -> None:
        """Start polling for Telegram updates."""
        if not settings.telegram_bot_token:
            raise RuntimeError("No bot to run. Set TELEGRAM_BOT_TOKEN in .env")

        logger.info("Starting Telegram bot (polling mode)...")
        self._bot = Bot(
            token=settings.telegram_bot_token,
            default=DefaultBotProperties(parse_mode=ParseMode.HTML),
        )
        me = await self._bot.me()
        logger.info("Bot identity: @%s (id=%d)", me.username, me.id)

        await self._set_commands(self._bot)
        await self.dp.start_polling(self._bot)

    async def _set_commands(self, bot: Bot) -> None:
        """Register the command menu for private chats."""
        commands = [
            BotCommand(command="postproperty", description="Post a property for free"),
            BotCommand(command="back", description="Previous step"),
            BotCommand(command="cancel", description="Cancel the listing"),
            BotCommand(command="emi", description="Home loan EMI calculator"),
        ]
        try:
            await bot.set_my_commands(commands, scope=BotCommandScopeAllPrivateChats())
        except Exception as e:
            logger.warning("Failed to set commands: %s", e)

    async def stop(self) -> None:
        """Shut down the bot and the backend client gracefully."""
        logger.info("Stopping Telegram bot...")
        await close_client()
        if self._bot is not None:
            await self._bot.session.close()
