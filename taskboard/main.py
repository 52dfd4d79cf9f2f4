import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .config import CORS_ORIGINS
from .database import create_tables
from .errors import TaskboardError
from .logging_setup import setup_logging
from .routers import auth, progress, tasks, timers

logger = logging.getLogger(__name__)


def create_app(init_db: bool = True) -> FastAPI:
    """Build the API application.

    ``init_db`` creates the tables on startup; tests pass False and manage
    their own engine.
    """
    app = FastAPI(
        title="Taskboard API",
        description="Agency task tracking: tasks, checklists, derived progress and time tracking",
        version="1.0.0",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(auth.router, prefix="/api/auth", tags=["auth"])
    app.include_router(tasks.router, prefix="/api", tags=["tasks"])
    app.include_router(progress.router, prefix="/api", tags=["progress"])
    app.include_router(timers.router, prefix="/api", tags=["timers"])

    @app.exception_handler(TaskboardError)
    async def taskboard_error_handler(request: Request, exc: TaskboardError):
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})

    if init_db:
        @app.on_event("startup")
        def on_startup():
            setup_logging()
            create_tables()

    @app.get("/")
    def read_root():
        return {"message": "Taskboard API"}

    @app.get("/health")
    def health_check():
        return {"status": "healthy"}

    return app


app = create_app()
