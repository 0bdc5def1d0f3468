import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
import uvicorn
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager

from core.auth import fastapi_users, auth_backend
from core.config import settings
from core.errors import DashboardError, ExternalServiceError
from core.logging import setup_logging
from db.database import create_db_and_tables, engine
from db.migrations import add_missing_user_columns
from routers.appointments import router as appointments_router
from routers.camps import router as camps_router
from routers.dashboard import router as dashboard_router
from routers.geocoding import router as geocoding_router
from routers.inventory import router as inventory_router
from routers.users import router as profiles_router
from routers.venues import router as venues_router
from schemas.users import UserRead, UserCreate, UserUpdate

setup_logging(settings.log_level)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    await create_db_and_tables()
    await add_missing_user_columns(engine)
    yield


app = FastAPI(
    title="Blood Drive Dashboard API",
    description="Venue blood stock, donation appointments and donation camps",
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(DashboardError)
async def dashboard_error_handler(request: Request, exc: DashboardError):
    if isinstance(exc, ExternalServiceError):
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.public_message})
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


# Authentication routes (fastapi-users)
app.include_router(fastapi_users.get_auth_router(auth_backend), prefix="/auth/jwt", tags=["auth"],)
app.include_router(fastapi_users.get_register_router(UserRead, UserCreate), prefix="/auth", tags=["auth"])
app.include_router(fastapi_users.get_reset_password_router(), prefix="/auth", tags=["auth"])
app.include_router(fastapi_users.get_verify_router(UserRead), prefix="/auth", tags=["auth"])
app.include_router(fastapi_users.get_users_router(UserRead, UserUpdate), prefix="/users", tags=["users"])
app.include_router(profiles_router, prefix="/profiles", tags=["users"])

# Hospital side
app.include_router(venues_router, prefix="/venues", tags=["venues"])
app.include_router(inventory_router, prefix="/inventory", tags=["inventory"])
app.include_router(appointments_router, prefix="/appointments", tags=["appointments"])
app.include_router(dashboard_router, prefix="/dashboard", tags=["dashboard"])

# Organizer side
app.include_router(camps_router, prefix="/camps", tags=["camps"])
app.include_router(geocoding_router, prefix="/geocode", tags=["geocoding"])

if __name__ == "__main__":
    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=True)
