from fastapi import FastAPI, Depends, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import logging

from .config import settings
from .db import init_db
from .dependencies import get_auth_service, get_current_user
from .errors import IdentityError
from .schemas import (
    LoginRequest,
    LoginResponse,
    MessageResponse,
    RefreshTokenRequest,
    RegisterRequest,
    RegisterResponse,
)
from .service import AuthService
from .routes import dev_monitor, health, users
from .utils.event_logger import client_ip, setup_logging

logger = logging.getLogger(__name__)

app = FastAPI(
    title="Identity Service API",
    description="Identity and Access Management Service - Authentication and Authorization",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(users.router)
app.include_router(health.router)
app.include_router(dev_monitor.router)


@app.exception_handler(IdentityError)
async def identity_error_handler(request: Request, exc: IdentityError):
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


@app.on_event("startup")
def startup():
    setup_logging(settings.LOG_DIR, settings.LOG_LEVEL)
    init_db()
    logger.info("Identity Service started")


@app.post("/api/auth/register", response_model=RegisterResponse, status_code=status.HTTP_201_CREATED)
def register(payload: RegisterRequest, service: AuthService = Depends(get_auth_service)):
    try:
        response = service.register(
            full_name=payload.full_name,
            email=payload.email,
            phone=payload.phone,
            password=payload.password,
            confirm_password=payload.confirm_password,
        )
    except IdentityError as e:
        logger.warning("Registration failed for %s: %s", payload.email, e.message)
        raise
    return response


@app.post("/api/auth/login", response_model=LoginResponse)
def login(credentials: LoginRequest, request: Request, service: AuthService = Depends(get_auth_service)):
    try:
        response = service.login(
            credentials.email,
            credentials.password,
            ip_address=client_ip(request),
            user_agent=request.headers.get("user-agent"),
        )
    except IdentityError as e:
        logger.warning("Failed login attempt for %s: %s", credentials.email, e.message)
        raise
    logger.info("User %s logged in successfully", credentials.email)
    return response


@app.post("/api/auth/logout", response_model=MessageResponse)
def logout(payload: RefreshTokenRequest, service: AuthService = Depends(get_auth_service)):
    service.logout(payload.refresh_token)
    return MessageResponse(message="Logout successful")


@app.post("/api/auth/refresh", response_model=LoginResponse)
def refresh(payload: RefreshTokenRequest, service: AuthService = Depends(get_auth_service)):
    try:
        response = service.refresh_token(payload.refresh_token)
    except IdentityError as e:
        logger.warning("Failed token refresh: %s", e.message)
        raise
    return response


@app.get("/api/auth/me")
def me(claims: dict = Depends(get_current_user)):
    """Return the identity asserted by the bearer access token."""
    return {
        "user_id": claims.get("sub"),
        "email": claims.get("email"),
        "name": claims.get("name"),
        "role": claims.get("role"),
        "role_id": claims.get("role_id"),
        "status": claims.get("status"),
    }
