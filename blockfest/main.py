"""
FastAPI backend for BlockFest: VIP verification and ticket queries.
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Optional

from dotenv import load_dotenv
from fastapi import APIRouter, Depends, FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel
import uvicorn

from .config import Settings
from .errors import (AuthError, AuthUnavailable, CacheUnavailable, ExpiredCredential,
                     InvalidCredential, LedgerError)
from .models import Identity
from .services.auth_service import AuthService
from .services.file_source import LocalFileSource
from .services.ledger import LedgerReader
from .services.rate_limiter import AttemptLimiter
from .services.vip_registry import VIPRegistry

# Load environment variables from .env file
load_dotenv()

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


class VIPCheckRequest(BaseModel):
    name: Optional[str] = None
    rollNumber: Optional[str] = None
    walletAddress: Optional[str] = None


class RegisterRequest(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None


class LoginRequest(BaseModel):
    email: Optional[str] = None


def get_client_ip(request: Request) -> str:
    """Extract client IP address from request"""
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


# -------- auth dependencies --------

def get_identity(request: Request) -> Identity:
    """Verify the Bearer token in the Authorization header"""
    header = request.headers.get("Authorization", "")
    if not header.startswith("Bearer "):
        raise HTTPException(
            status_code=403,
            detail={"message": "Unauthorized: No token provided or invalid format."}
        )

    token = header[len("Bearer "):].strip()
    try:
        return request.app.state.auth_service.verify_token(token)
    except ExpiredCredential:
        raise HTTPException(status_code=403, detail={"message": "Unauthorized: Token expired."})
    except InvalidCredential:
        raise HTTPException(status_code=403, detail={"message": "Unauthorized: Invalid token."})
    except AuthUnavailable as e:
        logger.error(f"Token verification unavailable: {e}")
        raise HTTPException(status_code=503, detail={"message": "Authentication service unavailable."})


def require_admin(identity: Identity = Depends(get_identity)) -> Identity:
    if not identity.admin:
        raise HTTPException(status_code=403, detail={"message": "Forbidden: Admin privileges required."})
    return identity


# -------- routes --------

api = APIRouter(prefix="/api")
auth_routes = APIRouter(prefix="/auth")


@api.get("/health")
async def health_check(request: Request):
    """Detailed health check"""
    state = request.app.state
    report = state.registry.last_report
    return {
        "status": "healthy",
        "services": {
            "vip_list": state.registry.available,
            "vip_entries": len(state.registry),
            "vip_watcher": state.registry.watching,
            "vip_last_loaded": report.loaded_at if report else None,
            "ledger": state.ledger is not None,
        }
    }


@api.post("/check-vip")
async def check_vip(body: VIPCheckRequest, request: Request, identity: Identity = Depends(get_identity)):
    """
    Check whether (name, rollNumber, walletAddress) is on the insider list.

    Returns:
        {"isVIP": true, "walletAddress": ...} or {"isVIP": false, "message": ...}
    """
    if not body.name or not body.rollNumber or not body.walletAddress:
        raise HTTPException(
            status_code=400,
            detail={"isVIP": False, "message": "All fields (name, rollNumber, walletAddress) are required."}
        )

    limiter: AttemptLimiter = request.app.state.limiter
    if not limiter.is_allowed(identity.uid):
        logger.warning(f"VIP check rate limit exceeded for user {identity.uid} ({get_client_ip(request)})")
        raise HTTPException(
            status_code=429,
            detail={
                "isVIP": False,
                "message": "Too many VIP checks. Please try again later.",
                "reset_time": limiter.reset_time(identity.uid)
            }
        )

    wallet = request.app.state.registry.lookup(body.name, body.rollNumber, body.walletAddress)
    if wallet is None:
        logger.info(f"User {identity.uid} is not on the VIP list")
        return {"isVIP": False, "message": "Not authorized to access VIP features."}

    logger.info(f"User {identity.uid} verified as VIP")
    return {"isVIP": True, "walletAddress": wallet}


@api.get("/get-all-tickets")
def get_all_tickets(request: Request, identity: Identity = Depends(require_admin)):
    """All issued tickets with owner and QR hash (admin only)"""
    logger.info(f"Admin {identity.uid} requesting all ticket data")
    ledger: Optional[LedgerReader] = request.app.state.ledger
    if ledger is None:
        raise HTTPException(status_code=503, detail={"message": "Blockchain functionality is unavailable."})
    try:
        tickets = ledger.get_all_ticket_data()
    except LedgerError as e:
        logger.error(f"Error in /get-all-tickets route: {e}")
        raise HTTPException(status_code=500, detail={"message": str(e) or "Internal Server Error fetching ticket data."})
    return [ticket.to_dict() for ticket in tickets]


@api.get("/vip-list")
async def get_vip_list(request: Request, name: str = "", roll: str = "",
                       identity: Identity = Depends(require_admin)):
    """Current insider list snapshot with skipped rows (admin only)"""
    registry: VIPRegistry = request.app.state.registry
    records = registry.search(name, roll) if (name or roll) else registry.records()
    report = registry.last_report
    return {
        "count": len(records),
        "lastLoaded": report.loaded_at if report else None,
        "skipped": [row.to_dict() for row in report.skipped] if report else [],
        "entries": [record.to_dict() for record in records],
    }


@auth_routes.post("/register", status_code=201)
def register(body: RegisterRequest, request: Request):
    if not body.email or not body.password:
        raise HTTPException(status_code=400, detail={"error": "Email and password are required."})
    try:
        request.app.state.auth_service.register(body.email, body.password)
    except AuthUnavailable:
        raise HTTPException(status_code=503, detail={"error": "Authentication service unavailable."})
    except AuthError as e:
        raise HTTPException(status_code=400, detail={"error": str(e)})
    return {"message": "Verify your email before login."}


@auth_routes.post("/login")
def login(body: LoginRequest, request: Request):
    if not body.email:
        raise HTTPException(status_code=400, detail={"error": "Email is required."})
    try:
        return request.app.state.auth_service.login(body.email)
    except InvalidCredential as e:
        raise HTTPException(status_code=403, detail={"error": str(e)})
    except AuthUnavailable:
        raise HTTPException(status_code=503, detail={"error": "Authentication service unavailable."})
    except AuthError:
        raise HTTPException(status_code=400, detail={"error": "User not found"})


# -------- app factory --------

def create_ledger(settings: Settings) -> Optional[LedgerReader]:
    if not settings.ledger_configured:
        logger.warning("Missing blockchain environment variables (ETH_RPC_URL, CONTRACT_ADDRESS)")
        return None
    try:
        return LedgerReader.from_settings(settings)
    except LedgerError as e:
        logger.error(f"Error initializing blockchain contract: {e}")
        logger.error("Blockchain functionality will be unavailable")
        return None


def create_app(settings: Optional[Settings] = None,
               registry: Optional[VIPRegistry] = None,
               auth_service: Optional[AuthService] = None,
               ledger: Optional[LedgerReader] = None,
               limiter: Optional[AttemptLimiter] = None) -> FastAPI:
    settings = settings or Settings.from_env()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        app.state.registry.open()
        yield
        app.state.registry.close()

    app = FastAPI(
        title="BlockFest Backend",
        description="VIP verification and NFT ticket queries",
        version="1.0.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.cors_origin],
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )

    app.state.settings = settings
    app.state.registry = registry or VIPRegistry(
        LocalFileSource(settings.insider_list_path),
        watch_interval=settings.vip_watch_interval,
        bootstrap=settings.vip_list_bootstrap,
    )
    app.state.auth_service = auth_service or AuthService(settings.firebase_service_account_path)
    app.state.ledger = ledger if ledger is not None else create_ledger(settings)
    app.state.limiter = limiter or AttemptLimiter(settings.vip_check_max_requests,
                                                  settings.vip_check_window_seconds)

    @app.get("/")
    async def root():
        """Health check endpoint"""
        return {
            "status": "healthy",
            "service": "BlockFest Backend",
            "time": datetime.now().strftime("%H:%M:%S"),
        }

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException):
        """Return dict details as the response body"""
        content = exc.detail if isinstance(exc.detail, dict) else {"message": exc.detail}
        return JSONResponse(status_code=exc.status_code, content=content, headers=exc.headers)

    @app.exception_handler(CacheUnavailable)
    async def cache_unavailable_handler(request: Request, exc: CacheUnavailable):
        logger.error(f"VIP lookup while cache unavailable: {exc}")
        return JSONResponse(
            status_code=503,
            content={"isVIP": False, "message": "VIP list is currently unavailable. Please try again later."}
        )

    app.include_router(api)
    app.include_router(auth_routes)

    logger.info(f"CORS enabled for origin: {settings.cors_origin}")
    logger.info(f"VIP list path: {settings.insider_list_path}")
    return app


app = create_app()


if __name__ == "__main__":
    uvicorn.run(
        "blockfest.main:app",
        host="0.0.0.0",
        port=Settings.from_env().port,
        log_level="info"
    )
