import asyncio
import logging
import sys
from dataclasses import dataclass

from aiogram import Bot, Dispatcher
from aiogram.enums import ParseMode
from aiogram.client.default import DefaultBotProperties
from sqlalchemy.ext.asyncio import AsyncEngine

from repairdesk.config import Config, ConfigError, load_config
from repairdesk.database.core import create_session_factory, init_db
from repairdesk.database.documents import DocumentStore
from repairdesk.handlers import common, bookings, invoices, quotations, settings
from repairdesk.middlewares.error import GlobalErrorMiddleware
from repairdesk.middlewares.notices import NoticeMiddleware
from repairdesk.middlewares.session import TenantSessionMiddleware
from repairdesk.middlewares.subscription import SubscriptionGateMiddleware
from repairdesk.services.dashboard import SessionRegistry


@dataclass
class App:
    config: Config
    engine: AsyncEngine
    store: DocumentStore
    registry: SessionRegistry
    dispatcher: Dispatcher

    async def shutdown(self):
        await self.registry.close_all()
        await self.engine.dispose()


def setup_logging(level: str = "INFO"):
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s - %(levelname)s - %(name)s - %(message)s",
        stream=sys.stdout,
    )


async def bootstrap(config: Config) -> App:
    """Build the store, session registry and dispatcher from an explicit config"""
    engine, session_factory = create_session_factory(config.DATABASE_URL)
    await init_db(engine)
    store = DocumentStore(session_factory)
    registry = SessionRegistry(store, config.APP_ID)

    dp = Dispatcher(config=config, store=store, registry=registry)

    # Order: Error -> Tenant session -> Notices -> Subscription gate
    dp.update.outer_middleware(GlobalErrorMiddleware())
    dp.update.middleware(TenantSessionMiddleware(registry))
    dp.update.middleware(NoticeMiddleware())
    dp.update.middleware(SubscriptionGateMiddleware())

    # common first: /start, /help, /cancel and the subscribe callback
    dp.include_router(common.router)
    dp.include_router(bookings.router)
    dp.include_router(invoices.router)
    dp.include_router(quotations.router)
    dp.include_router(settings.router)

    return App(config=config, engine=engine, store=store, registry=registry, dispatcher=dp)


async def main():
    try:
        config = load_config()
    except ConfigError as e:
        setup_logging()
        logging.critical(str(e))
        raise SystemExit(1)
    setup_logging(config.LOG_LEVEL)

    app = await bootstrap(config)
    bot = Bot(
        token=config.BOT_TOKEN,
        default=DefaultBotProperties(parse_mode=ParseMode.HTML)
    )

    logging.info("Starting repair desk bot...")
    try:
        await app.dispatcher.start_polling(bot)
    finally:
        await app.shutdown()
        await bot.session.close()


def run():
    try:
        if sys.platform == "win32":
            asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())
        asyncio.run(main())
    except KeyboardInterrupt:
        logging.info("Bot stopped.")


if __name__ == "__main__":
    run()
