from fastapi import FastAPI

from src.tracker.presentation.errors import register_exception_handlers
from src.setup.api_config import get_api_settings
from src.setup.app_config import configure_di, get_orm
from src.setup.logging_config import configure_logging

settings = get_api_settings()
configure_logging(settings.LOG_LEVEL)
configure_di()

app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Task tracker with direct-to-bucket image uploads",
)
register_exception_handlers(app)


async def _dispose_engine() -> None:
    await get_orm().dispose()


app.add_event_handler("shutdown", _dispose_engine)

# Routers build their services at import time, so import them after configure_di().
from src.tracker.presentation.routes import health_router, router as tasks_router  # noqa: E402
from src.tracker.presentation.upload_routes import router as uploads_router  # noqa: E402

app.include_router(tasks_router, prefix="")
app.include_router(uploads_router, prefix="")
app.include_router(health_router, prefix="")
