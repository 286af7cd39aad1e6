import logging

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from salesops.api.v1.router import router as api_v1_router
from salesops.core.config import settings as app_settings
from salesops.core.exceptions import (
    AppointmentNotFoundError,
    CommissionNotFoundError,
    CompanyResolutionError,
    ContactNotFoundError,
    InvalidAppointmentDataError,
    InvalidCommissionInputError,
    InvalidPaymentDataError,
    InvalidWebhookSecretError,
    PaymentAlreadyMatchedError,
    UnmatchedPaymentNotFoundError,
)
from salesops.core.rate_limit import limiter

# Configure logging
logging.basicConfig(level=app_settings.LOG_LEVEL)
logger = logging.getLogger(__name__)


app = FastAPI(
    title="SalesOps Appointment & Commission Service",
    description="Appointment inclusion flags, payment matching and commission release",
    version="0.1.0",
)

# Attach rate limiter state so slowapi middleware can find it
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# CORS middleware – restricted to configured origins
app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        o.strip() for o in app_settings.CORS_ORIGINS.split(",") if o.strip()
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(api_v1_router)


@app.exception_handler(AppointmentNotFoundError)
async def appointment_not_found_handler(
    request: Request, exc: AppointmentNotFoundError
):
    logger.warning("Appointment not found: %s", exc.detail)
    return JSONResponse(
        status_code=404,
        content={"detail": exc.detail, "type": "appointment_not_found"},
    )


@app.exception_handler(ContactNotFoundError)
async def contact_not_found_handler(request: Request, exc: ContactNotFoundError):
    logger.warning("Contact not found: %s", exc.detail)
    return JSONResponse(
        status_code=404,
        content={"detail": exc.detail, "type": "contact_not_found"},
    )


@app.exception_handler(CommissionNotFoundError)
async def commission_not_found_handler(
    request: Request, exc: CommissionNotFoundError
):
    logger.warning("Commission not found: %s", exc.detail)
    return JSONResponse(
        status_code=404,
        content={"detail": exc.detail, "type": "commission_not_found"},
    )


@app.exception_handler(UnmatchedPaymentNotFoundError)
async def unmatched_payment_not_found_handler(
    request: Request, exc: UnmatchedPaymentNotFoundError
):
    logger.warning("Unmatched payment not found: %s", exc.detail)
    return JSONResponse(
        status_code=404,
        content={"detail": exc.detail, "type": "unmatched_payment_not_found"},
    )


@app.exception_handler(PaymentAlreadyMatchedError)
async def payment_already_matched_handler(
    request: Request, exc: PaymentAlreadyMatchedError
):
    logger.warning("Payment already matched: %s", exc.detail)
    return JSONResponse(
        status_code=409,
        content={"detail": exc.detail, "type": "payment_already_matched"},
    )


@app.exception_handler(InvalidAppointmentDataError)
async def invalid_appointment_data_handler(
    request: Request, exc: InvalidAppointmentDataError
):
    logger.warning("Invalid appointment data: %s", exc.detail)
    return JSONResponse(
        status_code=422,
        content={"detail": exc.detail, "type": "invalid_appointment_data"},
    )


@app.exception_handler(InvalidCommissionInputError)
async def invalid_commission_input_handler(
    request: Request, exc: InvalidCommissionInputError
):
    logger.warning("Invalid commission input: %s", exc.detail)
    return JSONResponse(
        status_code=422,
        content={"detail": exc.detail, "type": "invalid_commission_input"},
    )


@app.exception_handler(InvalidPaymentDataError)
async def invalid_payment_data_handler(
    request: Request, exc: InvalidPaymentDataError
):
    logger.warning("Invalid payment data: %s", exc.detail)
    return JSONResponse(
        status_code=422,
        content={"detail": exc.detail, "type": "invalid_payment_data"},
    )


@app.exception_handler(CompanyResolutionError)
async def company_resolution_handler(request: Request, exc: CompanyResolutionError):
    logger.warning("Company resolution failed: %s", exc.detail)
    return JSONResponse(
        status_code=400,
        content={"detail": exc.detail, "type": "company_resolution_failed"},
    )


@app.exception_handler(InvalidWebhookSecretError)
async def invalid_webhook_secret_handler(
    request: Request, exc: InvalidWebhookSecretError
):
    logger.warning("Rejected webhook call from %s", request.client)
    return JSONResponse(
        status_code=401,
        content={"detail": exc.detail, "type": "invalid_webhook_secret"},
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    logger.warning("Request validation error: %s", exc.errors())
    return JSONResponse(
        status_code=422,
        content={
            "detail": "Request validation failed",
            # ctx may hold the raw ValueError from a model validator
            "errors": jsonable_encoder(exc.errors(), custom_encoder={Exception: str}),
            "type": "validation_error",
        },
    )


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception):
    """Catch-all handler for unexpected/unhandled exceptions.

    Returns a generic 500 response so that raw stack traces are never
    leaked to the client.
    """
    logger.error(
        "Unhandled exception on %s %s: %s",
        request.method,
        request.url.path,
        exc,
        exc_info=True,
    )
    return JSONResponse(
        status_code=500,
        content={
            "detail": "An unexpected internal error occurred. Please try again later.",
            "type": "internal_server_error",
        },
    )
