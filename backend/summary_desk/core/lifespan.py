# summary_desk/core/lifespan.py
from contextlib import asynccontextmanager
from summary_desk.config import settings
from summary_desk.services.sessions import SessionRegistry
from summary_desk.utils.logging import logger


@asynccontextmanager
async def lifespan(app):
    """Run setup and teardown logic for the app lifecycle."""

    # ---------- Startup ----------
    logger.info("Application starting", extra={
        "environment": settings.environment,
        "storage_backend": settings.storage_backend,
        "bucket": settings.s3_bucket,
        "poll_interval_seconds": settings.summary_poll_interval_seconds,
        "poll_timeout_seconds": settings.summary_poll_timeout_seconds,
    })

    if settings.storage_backend != "local" and not settings.s3_configured:
        logger.warning("Object storage is not configured - document endpoints will fail")
    if not settings.summary_webhook_configured:
        logger.warning("Summary webhook is not configured - summary generation will fail")
    if settings.auth_disabled:
        logger.warning("=" * 60)
        logger.warning("AUTH DISABLED - ALL REQUESTS RUN AS %s", settings.dev_user_id)
        logger.warning("=" * 60)

    # Tests may install their own registry before startup
    if getattr(app.state, "sessions", None) is None:
        app.state.sessions = SessionRegistry()

    # yield control to the running app
    yield

    # ---------- Shutdown ----------
    await app.state.sessions.close_all()  # cancels polling and upload verification
    logger.info("Application shutting down")
