"""Access to shared CLI state stored on the Typer context."""

from typing import TYPE_CHECKING

import typer

from flashdeck.config.user_config import create_user_config
from flashdeck.core.structlog_logger import get_struct_logger
from flashdeck.firmware.flash.service import create_flash_service


if TYPE_CHECKING:
    from flashdeck.config.user_config import UserConfig
    from flashdeck.firmware.flash.service import FlashService


logger = get_struct_logger(__name__)


def get_user_config_from_context(ctx: typer.Context) -> "UserConfig":
    """Get the UserConfig loaded by the app callback.

    Falls back to loading configuration directly when the command runs
    without the app callback (as in isolated command tests).
    """
    app_ctx = ctx.obj
    user_config = getattr(app_ctx, "user_config", None)
    if user_config is None:
        logger.debug("user_config_missing_from_context")
        user_config = create_user_config()
    return user_config


def get_flash_service(ctx: typer.Context) -> "FlashService":
    """Get the FlashService for this invocation, creating it on first use."""
    app_ctx = ctx.obj
    service = getattr(app_ctx, "flash_service", None)
    if service is None:
        settings = get_user_config_from_context(ctx).settings
        service = create_flash_service(settings=settings)
        if app_ctx is not None:
            app_ctx.flash_service = service
    return service
