import os

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from prodtrack.core.logging_config import configure_logging
from prodtrack.core.validation import SnapshotValidationError
from prodtrack.routes import finance, projects, snapshot


def create_app() -> FastAPI:
    configure_logging()
    app = FastAPI(title="Prodtrack Production Engine API", version="0.1.0")

    origins_env = os.getenv("API_CORS_ORIGINS", "")
    origins = [origin.strip() for origin in origins_env.split(",") if origin.strip()]
    if not origins:
        origins = ["http://localhost:3000", "http://127.0.0.1:3000"]

    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(snapshot.router, prefix="/api")
    app.include_router(projects.router, prefix="/api")
    app.include_router(finance.router, prefix="/api")

    @app.exception_handler(SnapshotValidationError)
    async def snapshot_error(_: Request, exc: SnapshotValidationError) -> JSONResponse:
        return JSONResponse(status_code=409, content={"detail": str(exc)})

    @app.get("/", include_in_schema=False)
    async def root() -> JSONResponse:
        """Provide a lightweight landing page for container checks."""
        return JSONResponse(
            {
                "message": "Prodtrack Production Engine API",
                "docs": "/docs",
                "health": "/api/projects",
            }
        )

    return app


app = create_app()
