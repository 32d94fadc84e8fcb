# app/main.py
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.api.v1.api import api_router
from app.core.config import settings
from app.core.exceptions import StorefrontError
from app.core.logging import configure_logging
from app.scheduler import init_scheduler, shutdown_scheduler

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    logger.info("Application starting up...")
    if settings.SCHEDULER_ENABLED:
        init_scheduler()
    yield
    if settings.SCHEDULER_ENABLED:
        shutdown_scheduler()
    logger.info("Application shutting down...")


app = FastAPI(
    title="Storefront Order Service",
    version="1.0.0",
    description="""
        **Storefront Order Service**

        Prices carts and runs the order lifecycle.

        * **Preview**: price a cart with shipping, voucher and loyalty points
        * **Checkout**: re-price and place the order in one transaction
        * **Lifecycle**: cancellation, delivery, returns and refunds
        * **Vouchers**: wallet, eligibility checks and admin management
        * **Loyalty**: balance and ledger

        Most endpoints require JWT authentication via the `Authorization: Bearer <token>` header.
        """,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(StorefrontError)
async def storefront_error_handler(request: Request, exc: StorefrontError):
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def request_validation_error_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=422,
        content={
            "detail": "Request validation failed",
            "code": "ValidationError",
            "errors": jsonable_encoder(exc.errors()),
        },
    )


app.include_router(api_router, prefix="/api/v1")


@app.get("/")
def read_root():
    return {"status": "Storefront Order Service is running"}
