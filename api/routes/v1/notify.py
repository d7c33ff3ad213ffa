"""
api/routes/v1/notify.py -- One-time codes and user notifications.

Routes (mounted under /auth):
  POST /auth/send-otp                      -- issue + send a login OTP
  POST /auth/verify-otp                    -- check an OTP (single use)
  POST /auth/send-reset-password-code      -- issue + send a password-reset code
  POST /auth/verify-reset-password-code    -- check a reset code (single use)
  POST /auth/send-purchase-confirmation    -- purchase receipt message
  POST /auth/send-data-deletion-request    -- forward a deletion request to support

These routes serve the end-user app and are public. Code-sending and
code-checking routes share the login rate limit. CodeStore additionally burns
a code after too many wrong guesses.

A notifier failure is reported as 502 delivery_failed. Nothing is retried.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Optional

from fastapi import APIRouter, HTTPException, Request

from api.limiter import AUTH_RATE_LIMIT, limiter
from api.models import (
    CodeVerifyRequest,
    DeletionRequest,
    DestinationRequest,
    MessageResponse,
    PurchaseConfirmationRequest,
    VerifyResponse,
)
from notify.sender import DeliveryError
from notify.service import NotificationService

router = APIRouter()


def _service(request: Request) -> NotificationService:
    return request.app.state.notifications


def _require(value: Optional[str], name: str) -> str:
    if not value:
        raise HTTPException(
            status_code=400,
            detail={"code": "missing_field", "message": f"{name} is required."},
        )
    return value


def _deliver(send: Callable[[], None]) -> None:
    try:
        send()
    except DeliveryError as exc:
        raise HTTPException(
            status_code=502,
            detail={"code": "delivery_failed", "message": "The message could not be delivered."},
        ) from exc


@limiter.limit(AUTH_RATE_LIMIT)
@router.post("/send-otp", response_model=MessageResponse)
def send_otp(request: Request, body: DestinationRequest) -> MessageResponse:
    destination = _require(body.destination, "Destination")
    _deliver(lambda: _service(request).send_otp(destination))
    return MessageResponse(message="OTP sent successfully")


@limiter.limit(AUTH_RATE_LIMIT)
@router.post("/verify-otp", response_model=VerifyResponse)
def verify_otp(request: Request, body: CodeVerifyRequest) -> VerifyResponse:
    destination = _require(body.destination, "Destination")
    code = _require(body.code, "Code")
    if not _service(request).verify_otp(destination, code):
        raise HTTPException(
            status_code=400,
            detail={"code": "invalid_code", "message": "Invalid or expired OTP."},
        )
    return VerifyResponse(verified=True, message="OTP verified successfully")


@limiter.limit(AUTH_RATE_LIMIT)
@router.post("/send-reset-password-code", response_model=MessageResponse)
def send_reset_password_code(request: Request, body: DestinationRequest) -> MessageResponse:
    destination = _require(body.destination, "Destination")
    _deliver(lambda: _service(request).send_reset_password_code(destination))
    return MessageResponse(message="Reset code sent successfully")


@limiter.limit(AUTH_RATE_LIMIT)
@router.post("/verify-reset-password-code", response_model=VerifyResponse)
def verify_reset_password_code(request: Request, body: CodeVerifyRequest) -> VerifyResponse:
    destination = _require(body.destination, "Destination")
    code = _require(body.code, "Code")
    if not _service(request).verify_reset_password_code(destination, code):
        raise HTTPException(
            status_code=400,
            detail={"code": "invalid_code", "message": "Invalid or expired reset code."},
        )
    return VerifyResponse(verified=True, message="Reset code verified successfully")


@router.post("/send-purchase-confirmation", response_model=MessageResponse)
def send_purchase_confirmation(request: Request, body: PurchaseConfirmationRequest) -> MessageResponse:
    destination = _require(body.destination, "Destination")
    _deliver(
        lambda: _service(request).send_purchase_confirmation(
            destination, order_id=body.order_id, item=body.item, amount=body.amount
        )
    )
    return MessageResponse(message="Purchase confirmation sent successfully")


@limiter.limit(AUTH_RATE_LIMIT)
@router.post("/send-data-deletion-request", response_model=MessageResponse)
def send_deletion_request(request: Request, body: DeletionRequest) -> MessageResponse:
    email = _require(body.email, "Email")
    _deliver(lambda: _service(request).send_deletion_request(email, reason=body.reason))
    return MessageResponse(message="Deletion request sent successfully")
