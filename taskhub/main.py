"""
TaskHub Backend
FastAPI application entry point

- JWT session auth with sliding refresh (header or HttpOnly cookie)
- Email verification on registration
- Rate limiting on auth endpoints with SlowAPI
- Error sanitization middleware
"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from sqlalchemy import text

from taskhub.api.routes import auth, users, tasks, projects
from taskhub.core.config import settings
from taskhub.core.database import AsyncSessionLocal, Base, engine
from taskhub.core.error_handler import ErrorSanitizationMiddleware, taskhub_error_handler
from taskhub.core.exceptions import TaskHubError
from taskhub.core.rate_limit import limiter, rate_limit_exceeded_handler
from taskhub.core.security import PasswordHasher, TokenCodec
from taskhub.core.utils import Clock
from taskhub.middleware.auth import NEW_TOKEN_HEADER
from taskhub.services.auth_service import AuthService
from taskhub.services.email_service import SendGridMailer
from taskhub.services.user_repository import UserRepository

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


def build_auth_service() -> AuthService:
    """Wire the auth service and its collaborators once per process."""
    clock = Clock()
    return AuthService(
        repository=UserRepository(),
        mailer=SendGridMailer(),
        codec=TokenCodec(clock=clock),
        hasher=PasswordHasher(),
        clock=clock,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create tables in development when asked to, close HTTP clients on shutdown."""
    if settings.DB_AUTO_CREATE:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database tables checked/created.")

    if not settings.email_dispatch_active:
        logger.info("Email dispatch DISABLED - verification emails will not be sent")

    yield

    await app.state.auth_service.mailer.close()
    logger.info("Mailer HTTP client closed")


app = FastAPI(
    lifespan=lifespan,
    title="TaskHub API",
    description="""
## TaskHub API

Task, project and user management.

### Authentication
Register with `/api/users/register`, confirm the emailed link, then log in
with `/api/users/login`. Send the token as `Authorization: Bearer <token>` or
rely on the `authToken` cookie. Tokens last 24 hours; when less than one hour
remains, protected endpoints return a fresh token in the `X-New-Token` header.
    """,
    version="1.0.0",
    docs_url="/api-docs",
    redoc_url="/redoc",
    openapi_tags=[
        {"name": "Health", "description": "Health check endpoints"},
        {"name": "Authentication", "description": "Registration, login, email verification and token lifecycle"},
        {"name": "Users", "description": "User management"},
        {"name": "Tasks", "description": "Task management"},
        {"name": "Projects", "description": "Project management"},
    ],
)

app.state.auth_service = build_auth_service()

# Rate limiting
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)
# Applies RATE_LIMIT_DEFAULT to every route without its own @limiter.limit
app.add_middleware(SlowAPIMiddleware)

app.add_exception_handler(TaskHubError, taskhub_error_handler)

app.add_middleware(ErrorSanitizationMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE"],
    allow_headers=["Content-Type", "Authorization"],
    expose_headers=[NEW_TOKEN_HEADER],
)

# Include routers (auth first so /me, /login etc. win over /{user_id})
app.include_router(auth.router, prefix="/api/users", tags=["Authentication"])
app.include_router(users.router, prefix="/api/users", tags=["Users"])
app.include_router(tasks.router, prefix="/api/tasks", tags=["Tasks"])
app.include_router(projects.router, prefix="/api/projects", tags=["Projects"])


@app.get("/", tags=["Health"])
async def root():
    return {"message": "TaskHub API", "status": "operational"}


@app.get("/api/health", tags=["Health"])
async def health():
    """Liveness plus a database ping."""
    db_status = "ok"
    try:
        async with AsyncSessionLocal() as db:
            await db.execute(text("SELECT 1"))
    except Exception as e:
        logger.warning(f"Health check database ping failed: {e}")
        db_status = "unavailable"

    return {
        "status": "healthy" if db_status == "ok" else "degraded",
        "database": db_status,
        "environment": settings.ENVIRONMENT,
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("taskhub.main:app", host="0.0.0.0", port=3000, reload=settings.DEBUG)
