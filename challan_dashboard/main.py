from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from contextlib import asynccontextmanager
import logging
from challan_dashboard.config import get_settings
from challan_dashboard.database import AsyncSessionLocal, init_db
from challan_dashboard.scripts.seed_data import seed_defaults

settings = get_settings()

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create tables and make sure roles, permissions and the admin exist"""
    await init_db()
    async with AsyncSessionLocal() as db:
        await seed_defaults(db)
    logger.info("Challan settlement dashboard started")
    yield


app = FastAPI(
    title="Challan Settlement Dashboard",
    description="Traffic challan hold amounts, settlement rules and pipeline triggers",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

if settings.ENVIRONMENT == "development":
    logger.info(f"CORS allowed origins: {settings.cors_origins}")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS", "PATCH"],
    allow_headers=["*"],
)

app.add_middleware(GZipMiddleware, minimum_size=1000)


@app.get("/")
async def root():
    """Root endpoint"""
    return {
        "message": "Challan Settlement Dashboard",
        "version": "1.0.0",
        "docs": "/docs",
        "status": "operational"
    }


@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return {
        "status": "healthy",
        "environment": settings.ENVIRONMENT
    }


from challan_dashboard.api.v1 import auth, rbac, settlement_configs, challan  # noqa: E402

app.include_router(auth.router, prefix="/api/auth", tags=["Authentication"])
app.include_router(rbac.router, prefix="/api/auth", tags=["RBAC"])
app.include_router(settlement_configs.router, prefix="/api/settlement-configs", tags=["Settlement Configs"])
app.include_router(challan.router, prefix="/api/challan", tags=["Challans"])
