from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
import logging

# Import database components
from invoicehub.database.database import sync_engine, Base

# Import middleware
from invoicehub.common.middleware import RequestLoggingMiddleware, SecurityHeadersMiddleware

# Import routers
from invoicehub.modules.auth.router import auth_router
from invoicehub.modules.company.router import company_router
from invoicehub.modules.clients.router import router as clients_router
from invoicehub.modules.products.router import product_router
from invoicehub.modules.staff.router import router as staff_router
from invoicehub.modules.transactions.router import router as transactions_router
from invoicehub.modules.ledger.router import router as ledger_router
from invoicehub.modules.quick_templates.router import router as quick_templates_router
from invoicehub.modules.invoices.router import router as invoices_router
from invoicehub.modules.dashboard.router import router as dashboard_router

# Import models for table creation
import invoicehub.modules.company.models
import invoicehub.modules.auth.models
import invoicehub.modules.clients.models
import invoicehub.modules.products.models
import invoicehub.modules.staff.models
import invoicehub.modules.transactions.models
import invoicehub.modules.ledger.models
import invoicehub.modules.quick_templates.models

from invoicehub.core.config import settings

# Configure logging
logging.basicConfig(
    level=logging.INFO if settings.ENVIRONMENT == "production" else logging.DEBUG,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

# FastAPI app
app = FastAPI(
    title="InvoiceHub API",
    description="Multi-tenant invoicing, ledger and staff payment API built with FastAPI and PostgreSQL",
    version="1.0.0",
    docs_url="/docs" if settings.ENVIRONMENT != "production" else None,
    redoc_url="/redoc" if settings.ENVIRONMENT != "production" else None
)

# Add middleware (order matters!)
app.add_middleware(GZipMiddleware, minimum_size=1000)
app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(RequestLoggingMiddleware)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(auth_router, prefix="/auth", tags=["Auth"])
app.include_router(company_router, prefix="/company", tags=["Company"])
app.include_router(clients_router)
app.include_router(product_router, tags=["Products"])
app.include_router(staff_router)
app.include_router(transactions_router)
app.include_router(ledger_router)
app.include_router(quick_templates_router)
app.include_router(invoices_router)
app.include_router(dashboard_router)

# Create database tables (only for development - use migrations in production)
if settings.ENVIRONMENT == "development":
    Base.metadata.create_all(bind=sync_engine)

@app.get("/")
async def read_root():
    return {
        "message": "InvoiceHub API is running",
        "version": "1.0.0",
        "environment": settings.ENVIRONMENT
    }

@app.get("/health")
async def health_check():
    return {"status": "healthy", "environment": settings.ENVIRONMENT}

@app.on_event("startup")
async def startup_event():
    logger.info("InvoiceHub API starting up...")
    logger.info(f"Environment: {settings.ENVIRONMENT}")
    logger.info(f"Debug mode: {settings.DEBUG}")

@app.on_event("shutdown")
async def shutdown_event():
    logger.info("InvoiceHub API shutting down...")
