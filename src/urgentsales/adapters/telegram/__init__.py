"""Telegram front end built on aiogram 3."""
