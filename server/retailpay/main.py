from fastapi import FastAPI

from retailpay.api.routes import webhooks
from retailpay.core.config import get_settings
from retailpay.core.logging import configure_logging, get_logger


configure_logging()
logger = get_logger(__name__)


def create_application() -> FastAPI:
    settings = get_settings()
    application = FastAPI(title=settings.app_name)
    application.include_router(webhooks.router)

    @application.on_event("startup")
    async def startup_event() -> None:  # pragma: no cover - side effect
        logger.info("application.startup", environment=settings.environment)

    return application


app = create_application()
