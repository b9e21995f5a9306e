"""Unified error codes and custom exceptions.

Error code ranges:
  1xxx: Auth/Session
  2xxx: Account/Ledger
  6xxx: Payments
  9xxx: System

Auth errors never say whether an email exists: "account not found" and
"wrong secret" share InvalidCredentialsError.
"""


class AppError(Exception):
    """Base application error."""

    def __init__(
        self,
        code: int,
        message: str,
        http_status: int = 500,
    ) -> None:
        self.code = code
        self.message = message
        self.http_status = http_status
        super().__init__(message)


# --- 1xxx: Auth/Session ---

class EmailExistsError(AppError):
    def __init__(self) -> None:
        super().__init__(1002, "Email already registered", 409)


class InvalidCredentialsError(AppError):
    def __init__(self) -> None:
        super().__init__(1003, "Invalid credentials", 401)


class SessionInvalidError(AppError):
    """Token mismatch or missing token; the caller must treat itself as logged out."""

    def __init__(self) -> None:
        super().__init__(1006, "Session is no longer valid, please log in again", 401)


class PermissionDeniedError(AppError):
    def __init__(self, detail: str) -> None:
        super().__init__(1007, f"Permission denied: {detail}", 403)


class InvalidPinFormatError(AppError):
    def __init__(self) -> None:
        super().__init__(1008, "PIN must be exactly 4 digits", 422)


# --- 2xxx: Account/Ledger ---

class InsufficientFundsError(AppError):
    def __init__(self, required: int, available: int) -> None:
        self.required = required
        self.available = available
        super().__init__(
            2001,
            f"Insufficient credits: required {required}, available {available}",
            422,
        )


class AccountNotFoundError(AppError):
    def __init__(self, account_id: int) -> None:
        super().__init__(2002, f"Account not found: {account_id}", 404)


class InvalidTransferError(AppError):
    def __init__(self, detail: str) -> None:
        super().__init__(2003, f"Invalid transfer: {detail}", 422)


# --- 6xxx: Payments ---

class InvalidPackageError(AppError):
    def __init__(self, credits: int) -> None:
        super().__init__(6001, f"Invalid credit package: {credits}", 422)


class PriceMismatchError(AppError):
    def __init__(self, sent_cents: int, expected_cents: int) -> None:
        super().__init__(
            6002,
            f"Price mismatch: sent {sent_cents} cents, package costs {expected_cents} cents",
            422,
        )


class GatewayError(AppError):
    """Payment gateway unreachable or answered with malformed data. Retryable."""

    def __init__(self, detail: str = "Payment gateway unavailable") -> None:
        super().__init__(6003, detail, 502)


class PaymentNotFoundError(AppError):
    def __init__(self, transaction_id: str) -> None:
        super().__init__(6004, f"Payment not found: {transaction_id}", 404)


class WebhookUnauthorizedError(AppError):
    def __init__(self) -> None:
        super().__init__(6005, "Webhook signature missing or invalid", 401)


# --- 9xxx: System ---

class RateLimitError(AppError):
    def __init__(self) -> None:
        super().__init__(9001, "Rate limit exceeded", 429)


class InternalError(AppError):
    def __init__(self, detail: str = "Internal server error") -> None:
        super().__init__(9002, detail, 500)
