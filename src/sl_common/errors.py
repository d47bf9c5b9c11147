"""Unified error codes and custom exceptions.

Error code ranges:
  1xxx: Input validation
  2xxx: Lookup (event / entry / user)
  3xxx: Settlement (amount bounds, version conflicts, deletes)
  4xxx: Identity
  9xxx: System
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


# --- 1xxx: Input ---

class InvalidInputError(AppError):
    def __init__(self, detail: str) -> None:
        super().__init__(1001, f"Invalid input: {detail}", 422)


# --- 2xxx: Lookup ---

class EventNotFoundError(AppError):
    def __init__(self, event_id: str) -> None:
        super().__init__(2001, f"Event not found: {event_id}", 404)


class EntryNotFoundError(AppError):
    def __init__(self, entry_id: str) -> None:
        super().__init__(2002, f"Ledger entry not found: {entry_id}", 404)


class UserNotFoundError(AppError):
    def __init__(self, user_ids: list[str]) -> None:
        super().__init__(2003, f"User not found: {', '.join(user_ids)}", 404)
        self.user_ids = user_ids


# --- 3xxx: Settlement ---

class InvalidAmountError(AppError):
    def __init__(self, amount: int) -> None:
        super().__init__(3001, f"Payment amount must be positive, got {amount} cents", 422)


class OverPaymentError(AppError):
    def __init__(self, amount: int, remaining: int) -> None:
        super().__init__(
            3002,
            f"Payment of {amount} cents exceeds remaining {remaining} cents",
            422,
        )
        self.amount = amount
        self.remaining = remaining


class VersionConflictError(AppError):
    def __init__(self, entry_id: str, expected_version: int) -> None:
        super().__init__(
            3003,
            f"Ledger entry {entry_id} was modified concurrently "
            f"(expected version {expected_version}); re-fetch and retry",
            409,
        )
        self.entry_id = entry_id
        self.expected_version = expected_version


class DeleteWithBalanceError(AppError):
    def __init__(self, detail: str) -> None:
        super().__init__(3004, f"Cannot delete with recorded payments: {detail}", 409)


# --- 4xxx: Identity ---

class InvalidCredentialsError(AppError):
    def __init__(self) -> None:
        super().__init__(4001, "Invalid or expired token", 401)


class AccountDisabledError(AppError):
    def __init__(self) -> None:
        super().__init__(4002, "Account is disabled", 403)


# --- 9xxx: System ---

class RateLimitError(AppError):
    def __init__(self) -> None:
        super().__init__(9001, "Rate limit exceeded", 429)


class InternalError(AppError):
    def __init__(self, detail: str = "Internal server error") -> None:
        super().__init__(9002, detail, 500)
