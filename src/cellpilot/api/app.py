"""FastAPI application factory."""

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from ..agent import SheetAgent, create_agent
from ..config import settings
from .routes import router


def create_app(agent: Optional[SheetAgent] = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        agent: Agent to serve (built from settings at startup if not provided)
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if getattr(app.state, "agent", None) is None:
            app.state.agent = create_agent()
        await app.state.agent.initialize()
        yield
        await app.state.agent.shutdown()

    app = FastAPI(
        title="CellPilot",
        description="Free-text spreadsheet commands resolved into typed actions",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.agent = agent

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allow_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # API routes
    app.include_router(router, prefix="/api")

    return app
