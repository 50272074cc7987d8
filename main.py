import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from core.config import settings
from core.database import create_db_and_tables
from core.exceptions import PaymentServiceError, payment_service_exception_handler
from routes.company import router as company_router
from routes.payment import router as payment_router
from routes.webhook import router as webhook_router

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


# =========================================
# 🏁 Lifespan (DB initialization)
# =========================================
@asynccontextmanager
async def lifespan(app: FastAPI):
    create_db_and_tables()
    logger.info(f"✅ Database tables ready. Environment: {settings.ENVIRONMENT}, Debug: {settings.DEBUG}")
    yield
    logger.info("✅ Application shutting down.")


# =========================================
#  ✅ FastAPI App
# =========================================
app = FastAPI(lifespan=lifespan, title="Marketplace Payment Backend")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE"],
    allow_headers=["*"],
)

app.add_exception_handler(PaymentServiceError, payment_service_exception_handler)


# =========================================
# 📦 Routers
# =========================================
# The webhook route reads the raw request body itself; no body parsing happens before it
app.include_router(webhook_router)
app.include_router(payment_router)
app.include_router(company_router)


# =========================================
# 🩺 Health Check
# =========================================
@app.get("/health")
def health_check():
    return {"status": "ok", "message": "Payment service is running"}


@app.get("/")
def read_root():
    return {"message": "Marketplace payment backend is running!"}
