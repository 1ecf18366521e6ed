from contextlib import asynccontextmanager

from fastapi import FastAPI
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from starlette.responses import Response

from doctrack.api.areas import router as areas_router
from doctrack.api.companies import router as companies_router
from doctrack.api.dashboard import router as dashboard_router
from doctrack.api.documents import router as documents_router
from doctrack.api.notifications import router as notifications_router
from doctrack.api.users import router as users_router
from doctrack.config import settings
from doctrack.errors import register_error_handlers
from doctrack.logging import configure_logging
from doctrack.services.auth import session_manager


@asynccontextmanager
async def lifespan(app: FastAPI):
    session_manager.initialize()
    try:
        yield
    finally:
        session_manager.teardown()


configure_logging()
app = FastAPI(title=f"{settings.brand_name} API", lifespan=lifespan)
register_error_handlers(app)


def _include_api_router(router, dependencies=None):
    app.include_router(router, dependencies=dependencies)
    app.include_router(router, prefix="/api/v1", dependencies=dependencies)


_include_api_router(companies_router)
_include_api_router(users_router)
_include_api_router(areas_router)
_include_api_router(documents_router)
_include_api_router(notifications_router)
_include_api_router(dashboard_router)


@app.get("/health")
def health_check():
    return {"status": "ok"}


@app.get("/metrics")
def metrics():
    data = generate_latest()
    return Response(content=data, media_type=CONTENT_TYPE_LATEST)
