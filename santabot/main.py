# santabot/main.py
import asyncio
import logging

from aiogram import Bot, Dispatcher
from aiogram.client.default import DefaultBotProperties
from aiogram.enums import ParseMode

from santabot.config import Settings
from santabot.database import Database

# register models on Base.metadata
from santabot.database.models import *  # noqa: F401,F403

from santabot.handlers import router as handlers_router
from santabot.services.notifier import TelegramNotifier
from santabot.services.secret_santa import SecretSantaService
from santabot.utils.middleware import UserUpsertMiddleware


QUIET_LOGGERS = (
    "sqlalchemy",
    "sqlalchemy.engine",
    "sqlalchemy.pool",
    "aiosqlite",
    "aiogram.event",
)


def setup_logging(is_dev: bool) -> None:
    """App logs at INFO (DEBUG in dev); driver and dispatcher chatter at WARNING."""
    logging.basicConfig(
        level=logging.DEBUG if is_dev else logging.INFO,
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    )

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def build_dispatcher(settings: Settings, santa: SecretSantaService) -> Dispatcher:
    dp = Dispatcher(settings=settings, santa=santa)
    dp.update.middleware(UserUpsertMiddleware(santa.store))
    dp.include_router(handlers_router)
    return dp


async def main() -> None:
    settings = Settings.load()
    setup_logging(settings.is_dev)
    log = logging.getLogger("santabot")

    if not settings.admin_ids:
        log.warning("ADMIN_IDS is empty: nobody can open events or draw names")

    db = Database(settings.database_url)
    await db.init_models()
    log.info("DB initialized")

    bot = Bot(
        token=settings.bot_token,
        default=DefaultBotProperties(parse_mode=ParseMode.HTML),
    )

    santa = SecretSantaService.build(settings, db, TelegramNotifier(bot))
    log.info(
        "Secret santa ready (history weights=%s, max attempts=%d)",
        settings.history_weights,
        settings.draw_max_attempts,
    )

    dp = build_dispatcher(settings, santa)

    try:
        await dp.start_polling(bot)
    except (asyncio.CancelledError, KeyboardInterrupt):
        pass
    except Exception:
        log.exception("Bot crashed")
        raise
    finally:
        try:
            await db.close()
        except Exception:
            log.exception("Failed to close DB")

        try:
            await bot.session.close()
        except Exception:
            log.exception("Failed to close bot session")


def run() -> None:
    asyncio.run(main())


if __name__ == "__main__":
    run()
