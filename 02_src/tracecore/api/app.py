"""FastAPI application setup."""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from ..app import Application
from .routes import collector, control, events, versions


# Global application instance
_app: Application | None = None


def get_app() -> Application:
    """Get the global application instance."""
    global _app
    if not _app:
        _app = Application()
    return _app


def create_fastapi_app(application: Application | None = None) -> FastAPI:
    """Create and configure FastAPI application."""
    application = application or get_app()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Start components, flush telemetry on shutdown."""
        await application.start()
        sim_instance = control.get_sim_instance()
        if sim_instance and hasattr(sim_instance, "set_pipeline"):
            sim_instance.set_pipeline(application.pipeline)
        yield
        sim_instance = control.get_sim_instance()
        if sim_instance:
            await sim_instance.stop()
        await application.stop()

    fastapi_app = FastAPI(
        title="tracecore API",
        description="Interaction telemetry and content version history",
        version="0.1.0",
        lifespan=lifespan,
    )

    # Enable CORS
    fastapi_app.add_middleware(
        CORSMiddleware,
        allow_origins=["http://localhost:5173", "http://localhost:5174"],  # Vite default
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Include routers
    fastapi_app.include_router(events.create_events_router(application))
    fastapi_app.include_router(versions.create_versions_router(application))
    fastapi_app.include_router(collector.create_collector_router())
    fastapi_app.include_router(control.create_control_router(application))

    return fastapi_app
