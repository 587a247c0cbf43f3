from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api.errors import register_exception_handlers
from app.api.v1.courses import router as courses_router
from app.api.v1.health import router as health_router
from app.api.v1.insights import router as insights_router
from app.api.v1.rounds import router as rounds_router
from app.core.logging import configure_logging
from app.core.settings import settings

configure_logging(settings.LOG_LEVEL)

app = FastAPI(title=settings.PROJECT_NAME)

# Mobile clients call from any origin; credentials travel in the Authorization header.
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials="*" not in settings.CORS_ORIGINS,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", "x-client-info", "apikey", "X-User-Id"],
    max_age=86400,
)

register_exception_handlers(app)

app.include_router(
    health_router,
    prefix=settings.API_V1_STR,
    tags=["Health"],
)
app.include_router(
    courses_router,
    prefix=settings.API_V1_STR,
    tags=["Courses"],
)
app.include_router(
    rounds_router,
    prefix=settings.API_V1_STR,
    tags=["Rounds"],
)
app.include_router(
    insights_router,
    prefix=settings.API_V1_STR,
    tags=["Insights"],
)
