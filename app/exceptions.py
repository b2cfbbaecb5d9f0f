"""
Custom exception classes and FastAPI exception handlers.

The service layer raises domain-specific errors (like InsufficientCreditsError)
without importing HTTP concepts. The handlers registered here translate them
into HTTP responses with a consistent body: {"detail": ..., "error_type": ...}

Exception hierarchy:
    SkillLinkError (base)
    ├── InsufficientCreditsError  — learner cannot cover a connection price or spend
    ├── SelfConnectionError       — learner requested their own skill
    ├── InvalidTransitionError    — connection status change not allowed from current state
    ├── SkillNotFoundError        — requested skill doesn't exist
    ├── ConnectionNotFoundError   — requested connection doesn't exist
    ├── UserNotFoundError         — requested user profile doesn't exist
    ├── ForbiddenError            — caller is not the right party for the operation
    ├── LedgerFaultError          — store failure during a credit transfer
    ├── DuplicateEmailError       — registering an email that's already in use
    └── InvalidCredentialsError   — login with unknown email or wrong password
"""

import uuid

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse


# ---------------------------------------------------------------------------
# Base exception
# ---------------------------------------------------------------------------

class SkillLinkError(Exception):
    """Base exception for all SkillLink domain errors."""

    status_code: int = status.HTTP_400_BAD_REQUEST
    error_type: str = "skilllink_error"

    def __init__(self, detail: str = "An error occurred"):
        self.detail = detail
        super().__init__(self.detail)

    def to_content(self) -> dict:
        return {"detail": self.detail, "error_type": self.error_type}


# ---------------------------------------------------------------------------
# Business-rule failures
# ---------------------------------------------------------------------------

class InsufficientCreditsError(SkillLinkError):
    """
    Raised when a debit would drive a wallet balance below zero.

    Attributes:
        user_id: The wallet owner that lacks sufficient credits.
        requested_cents: The amount that was requested.
        available_cents: The wallet balance at the time of the check.
    """

    error_type = "insufficient_credits"

    def __init__(self, user_id: uuid.UUID, requested_cents: int, available_cents: int):
        self.user_id = user_id
        self.requested_cents = requested_cents
        self.available_cents = available_cents
        super().__init__(
            f"Insufficient credits: requested {requested_cents} cents, "
            f"available {available_cents} cents"
        )

    def to_content(self) -> dict:
        content = super().to_content()
        content["requested_cents"] = self.requested_cents
        content["available_cents"] = self.available_cents
        return content


class SelfConnectionError(SkillLinkError):
    """Raised when a user requests a connection to a skill they own."""

    error_type = "self_connection"

    def __init__(self):
        super().__init__("Cannot connect to your own skill")


class InvalidTransitionError(SkillLinkError):
    """Raised when a connection cannot move from its current status to the requested one."""

    error_type = "invalid_transition"

    def __init__(self, current: str, requested: str):
        self.current = current
        self.requested = requested
        super().__init__(f"Cannot change connection status from {current} to {requested}")


# ---------------------------------------------------------------------------
# Not-found and authorization errors
# ---------------------------------------------------------------------------

class SkillNotFoundError(SkillLinkError):
    """Raised when a requested skill does not exist."""

    status_code = status.HTTP_404_NOT_FOUND
    error_type = "skill_not_found"

    def __init__(self, skill_id: uuid.UUID):
        self.skill_id = skill_id
        super().__init__("Skill not found")


class ConnectionNotFoundError(SkillLinkError):
    """Raised when a requested connection does not exist."""

    status_code = status.HTTP_404_NOT_FOUND
    error_type = "connection_not_found"

    def __init__(self, connection_id: uuid.UUID):
        self.connection_id = connection_id
        super().__init__("Connection not found")


class UserNotFoundError(SkillLinkError):
    """Raised when a requested user profile does not exist."""

    status_code = status.HTTP_404_NOT_FOUND
    error_type = "user_not_found"

    def __init__(self, user_id: uuid.UUID):
        self.user_id = user_id
        super().__init__("User not found")


class ForbiddenError(SkillLinkError):
    """Raised when the caller is not the party allowed to perform an operation."""

    status_code = status.HTTP_403_FORBIDDEN
    error_type = "forbidden"

    def __init__(self, detail: str = "You do not have access to this resource"):
        super().__init__(detail)


# ---------------------------------------------------------------------------
# Infrastructure faults
# ---------------------------------------------------------------------------

class LedgerFaultError(SkillLinkError):
    """
    Raised when the store fails part-way through a credit transfer.

    If the payer's balance was restored the fault is transient (503). If the
    restore failed too, balances are unreconciled and need manual repair (500).
    """

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    error_type = "ledger_fault"

    def __init__(self, transfer_id: uuid.UUID, reconciled: bool = True):
        self.transfer_id = transfer_id
        self.reconciled = reconciled
        if not reconciled:
            self.status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
            self.error_type = "reconciliation_required"
            super().__init__("Credit transfer failed and requires manual reconciliation")
        else:
            super().__init__("Credit transfer failed; no credits were moved")

    def to_content(self) -> dict:
        content = super().to_content()
        content["transfer_id"] = str(self.transfer_id)
        return content


# ---------------------------------------------------------------------------
# Authentication errors
# ---------------------------------------------------------------------------

class DuplicateEmailError(SkillLinkError):
    """Raised when attempting to register with an email that's already in use."""

    status_code = status.HTTP_409_CONFLICT
    error_type = "duplicate_email"

    def __init__(self, email: str):
        self.email = email
        super().__init__(f"Email {email} is already registered")


class InvalidCredentialsError(SkillLinkError):
    """Raised when login credentials are incorrect."""

    status_code = status.HTTP_401_UNAUTHORIZED
    error_type = "invalid_credentials"

    def __init__(self):
        super().__init__("Invalid email or password")


# ---------------------------------------------------------------------------
# FastAPI exception handlers
# ---------------------------------------------------------------------------

def register_exception_handlers(app: FastAPI) -> None:
    """
    Register custom exception handlers with the FastAPI application.

    Every SkillLinkError carries its own status code and error_type, so one
    handler covers the whole hierarchy. Request validation failures are
    reported as 400 to match the rest of the client-error surface.
    """

    @app.exception_handler(SkillLinkError)
    async def skilllink_error_handler(
        request: Request, exc: SkillLinkError
    ) -> JSONResponse:
        return JSONResponse(status_code=exc.status_code, content=exc.to_content())

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={
                "detail": jsonable_encoder(exc.errors()),
                "error_type": "validation_error",
            },
        )
