"""
FastAPI application entry point.
"""

from typing import Optional

from fastapi import FastAPI, Request

from triagebot import __version__
from triagebot.api import webhooks
from triagebot.config import Settings, get_settings, load_settings
from triagebot.errors import ConfigurationError
from triagebot.services.dispatcher import EventDispatcher
from triagebot.services.github_client import GitHubClient
from triagebot.services.llm_client import LLMClient
from triagebot.utils.logging import get_logger, setup_logging

logger = get_logger(__name__)


def create_app(
    settings: Optional[Settings] = None,
    dispatcher: Optional[EventDispatcher] = None,
) -> FastAPI:
    """
    Build the application.
    
    Args:
        settings: Validated settings; loaded from the environment if omitted
        dispatcher: Pre-built dispatcher; built from live clients if omitted
    """
    if settings is None:
        settings = get_settings()
    
    app = FastAPI(
        title="Pull Request Triage Bot",
        description="Summaries, commit reviews, labels and reviewer routing for GitHub pull requests",
        version=__version__
    )
    
    clients = []
    if dispatcher is None:
        github = GitHubClient.from_settings(settings)
        llm = LLMClient.from_settings(settings)
        clients = [github, llm]
        dispatcher = EventDispatcher.from_settings(settings, github, llm)
    
    app.state.settings = settings
    app.state.dispatcher = dispatcher
    
    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        logger.debug(f"→ {request.method} {request.url.path}")
        return await call_next(request)
    
    @app.get("/health")
    async def health_check():
        """Health check endpoint for container orchestration."""
        return {"status": "healthy", "version": __version__}
    
    @app.get("/")
    async def root():
        return {
            "message": "Pull Request Triage Bot",
            "version": __version__,
            "docs": "/docs"
        }
    
    app.include_router(webhooks.router)
    
    @app.on_event("startup")
    async def startup_event():
        logger.info(f"Starting Pull Request Triage Bot on port {settings.port}")
    
    @app.on_event("shutdown")
    async def shutdown_event():
        """Close collaborator connection pools."""
        logger.info("Shutting down Pull Request Triage Bot")
        for client in clients:
            await client.aclose()
    
    return app


def run() -> None:
    """Console entry point: validate configuration, then serve."""
    import uvicorn
    
    setup_logging()
    try:
        settings = load_settings()
    except ConfigurationError as e:
        logger.critical(f"{e}")
        raise SystemExit(1)
    
    setup_logging(settings.log_level)
    uvicorn.run(create_app(settings), host="0.0.0.0", port=settings.port, log_config=None)


if __name__ == "__main__":
    run()
