import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.responses import HTMLResponse

from newrelic_bridge.apm.factory import create_interactor, initialize_agent
from newrelic_bridge.core.logging import setup_logging
from newrelic_bridge.middleware import NewRelicMiddleware, middleware_options
from newrelic_bridge.settings import Settings
from newrelic_bridge.templating.extension import NewRelicExtension

logger = logging.getLogger(__name__)

INDEX_PAGE = """<!DOCTYPE html>
<html>
<head><title>newrelic_bridge</title></head>
<body><p>newrelic_bridge is running.</p></body>
</html>
"""


def create_app(settings: Settings | None = None) -> FastAPI:
    """Builds the FastAPI application with the New Relic middleware installed.

    The template extension is exposed on `app.state.newrelic_extension`; call
    `app.state.newrelic_extension.install(templates.env)` on any Jinja2Templates
    that should render the browser timing snippets themselves.

    Args:
        settings: Application settings. Read from the environment when omitted.

    Returns:
        The configured application.
    """
    app_settings = settings or Settings()
    interactor = create_interactor(app_settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Application startup sequence initiated.")
        if not initialize_agent(app_settings):
            logger.info("No NEWRELIC_CONFIG_FILE set; relying on the agent's own configuration.")
        yield
        logger.info("Application shutdown complete.")

    app = FastAPI(
        title="newrelic_bridge",
        description="New Relic instrumentation for ASGI request/response cycles.",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.newrelic_extension = NewRelicExtension(interactor, instrument=app_settings.get_instrument())
    app.add_middleware(NewRelicMiddleware, **middleware_options(app_settings, interactor))

    @app.get("/health", tags=["General"], status_code=200)
    async def health_check():
        """Returns the application status."""
        return {"status": "ok"}

    @app.get("/", response_class=HTMLResponse)
    async def read_root():
        return HTMLResponse(INDEX_PAGE)

    return app


def get_app() -> FastAPI:
    """Factory entry point for uvicorn (`--factory newrelic_bridge.main:get_app`)."""
    setup_logging()
    return create_app()
