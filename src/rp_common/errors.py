"""Unified error codes and custom exceptions.

Error code ranges:
  1xxx: Auth/Authorization
  2xxx: Points ledger
  3xxx: Listing / claim verification
  4xxx: Trade offer
  5xxx: B2B market
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


# --- 1xxx: Auth/Authorization ---

class InvalidCredentialsError(AppError):
    def __init__(self) -> None:
        super().__init__(1001, "Invalid or expired access token", 401)


class AccountExistsError(AppError):
    def __init__(self, account_id: str) -> None:
        super().__init__(1002, f"Account already exists: {account_id}", 409)


class UnauthorizedError(AppError):
    """Requester lacks the role or ownership required for the operation."""

    def __init__(self, detail: str) -> None:
        super().__init__(1003, f"Unauthorized: {detail}", 403)


# --- 2xxx: Points ledger ---

class InvalidAmountError(AppError):
    def __init__(self, detail: str) -> None:
        super().__init__(2001, f"Invalid amount: {detail}", 422)


class InsufficientFundsError(AppError):
    def __init__(self, required: int, available: int) -> None:
        super().__init__(
            2002,
            f"Insufficient funds: required {required} credits, available {available} credits",
            422,
        )


class AccountNotFoundError(AppError):
    def __init__(self, account_id: str) -> None:
        super().__init__(2003, f"Account not found: {account_id}", 404)


# --- 3xxx: Listing ---

class InvalidStateError(AppError):
    """Operation attempted on an entity that is not in a permitted state."""

    def __init__(self, entity: str, entity_id: str, status: str, action: str) -> None:
        self.entity = entity
        self.entity_id = entity_id
        self.status = status
        super().__init__(
            3001, f"Cannot {action} {entity} {entity_id} in status {status}", 409
        )


class CodeNotFoundError(AppError):
    """Deliberately does not say whether the code was wrong, used, or never issued."""

    def __init__(self) -> None:
        super().__init__(3002, "Invalid code. Ensure the receiver has claimed the item.", 404)


class ListingNotFoundError(AppError):
    def __init__(self, listing_id: str) -> None:
        super().__init__(3003, f"Listing not found: {listing_id}", 404)


class EmptyMessageError(AppError):
    def __init__(self) -> None:
        super().__init__(3004, "Message text must not be empty", 422)


# --- 4xxx: Trade offer ---

class OfferNotFoundError(AppError):
    def __init__(self, offer_id: str) -> None:
        super().__init__(4001, f"Trade offer not found: {offer_id}", 404)


# --- 5xxx: B2B market ---

class B2BListingNotFoundError(AppError):
    def __init__(self, listing_id: str) -> None:
        super().__init__(5001, f"B2B listing not found: {listing_id}", 404)


# --- 9xxx: System ---

class RateLimitError(AppError):
    def __init__(self) -> None:
        super().__init__(9001, "Rate limit exceeded", 429)


class InternalError(AppError):
    def __init__(self, detail: str = "Internal server error") -> None:
        super().__init__(9002, detail, 500)
