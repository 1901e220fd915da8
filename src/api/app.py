"""FastAPI application factory for the task workflow REST API."""

from fastapi import APIRouter, FastAPI

from api.task_routes import register_task_routes


def create_app(services) -> FastAPI:
    """Build and return a FastAPI app wired to the given service graph."""
    app = FastAPI(title="task-workflow", docs_url="/api/docs", openapi_url="/api/openapi.json")

    api = APIRouter(prefix="/api")
    register_task_routes(api, services)
    app.include_router(api)

    return app
