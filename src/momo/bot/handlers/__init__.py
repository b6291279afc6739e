"""Bot handlers module."""

from aiogram import Router

from momo.bot.handlers import errors, start, wallet


def setup_routers() -> Router:
    """Create and configure all routers."""
    main_router = Router()

    main_router.include_router(start.router)
    main_router.include_router(wallet.router)
    main_router.include_router(errors.router)

    return main_router
