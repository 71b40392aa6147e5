"""Unified error codes and custom exceptions.

Every precondition failure in the settlement core is one of five
categories, each with its own base class so callers can branch on the
category without knowing the concrete error:

  NotFoundError      404
  ForbiddenError     403
  InvalidStateError  422
  InvalidInputError  422
  ConflictError      409

Error code ranges:
  1xxx: Auth
  2xxx: Listing
  3xxx: Escrow
  4xxx: Barter
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


# --- Categories ---

class NotFoundError(AppError):
    def __init__(self, code: int, message: str) -> None:
        super().__init__(code, message, 404)


class ForbiddenError(AppError):
    def __init__(self, code: int, message: str) -> None:
        super().__init__(code, message, 403)


class InvalidStateError(AppError):
    def __init__(self, code: int, message: str) -> None:
        super().__init__(code, message, 422)


class InvalidInputError(AppError):
    def __init__(self, code: int, message: str) -> None:
        super().__init__(code, message, 422)


class ConflictError(AppError):
    def __init__(self, code: int, message: str) -> None:
        super().__init__(code, message, 409)


# --- 1xxx: Auth ---

class InvalidCredentialsError(AppError):
    def __init__(self) -> None:
        super().__init__(1003, "Invalid or expired token", 401)


# --- 2xxx: Listing ---

class ListingNotFoundError(NotFoundError):
    def __init__(self, listing_id: str) -> None:
        super().__init__(2001, f"Listing not found: {listing_id}")


class ListingNotEligibleError(InvalidStateError):
    def __init__(self) -> None:
        super().__init__(
            2002,
            "This listing is not a distress sale. Escrow is only available for distress sales.",
        )


class SelfPurchaseError(ForbiddenError):
    def __init__(self) -> None:
        super().__init__(2003, "You cannot buy your own listing")


class InvalidListingPriceError(InvalidInputError):
    def __init__(self) -> None:
        super().__init__(2004, "Listing must have a valid price for escrow")


class ListingNotAvailableError(InvalidStateError):
    def __init__(self) -> None:
        super().__init__(2005, "Listing is not available")


# --- 3xxx: Escrow ---

class EscrowNotFoundError(NotFoundError):
    def __init__(self, ref: str) -> None:
        super().__init__(3001, f"Escrow transaction not found: {ref}")


class NotOrderBuyerError(ForbiddenError):
    def __init__(self) -> None:
        super().__init__(3002, "Only the buyer can confirm receipt")


class EscrowNotHeldError(InvalidStateError):
    def __init__(self, status: str) -> None:
        super().__init__(3003, f"Cannot confirm: escrow status is {status}")
        self.status = status


class InvalidConfirmationCodeError(InvalidInputError):
    def __init__(self) -> None:
        super().__init__(3004, "Invalid confirmation code")


class InvalidItemPriceError(InvalidInputError):
    def __init__(self, price: int) -> None:
        super().__init__(3005, f"Item price must be at least 1 cent, got {price}")


class EscrowConflictError(ConflictError):
    def __init__(self, escrow_id: str) -> None:
        super().__init__(3006, f"Escrow {escrow_id} was modified concurrently")


class InvalidWebhookSecretError(ForbiddenError):
    def __init__(self) -> None:
        super().__init__(3007, "Invalid webhook secret")


class NotOrderPartyError(ForbiddenError):
    def __init__(self) -> None:
        super().__init__(3008, "You are not a party to this order")


# --- 4xxx: Barter ---

class OfferNotFoundError(NotFoundError):
    def __init__(self, offer_id: str) -> None:
        super().__init__(4001, f"Trade offer not found: {offer_id}")


class NotTradePartyError(ForbiddenError):
    def __init__(self) -> None:
        super().__init__(4002, "You are not a party to this trade")


class OfferStateError(InvalidStateError):
    def __init__(self, action: str, status: str) -> None:
        super().__init__(4003, f"Cannot {action}: trade status is {status}")
        self.status = status


class PinNotAllowedError(ForbiddenError):
    def __init__(self) -> None:
        super().__init__(4004, "Only the seller can verify with a pickup PIN")


class InvalidPickupPinError(InvalidInputError):
    def __init__(self) -> None:
        super().__init__(4005, "Invalid pickup PIN")


class EmptyDisputeReasonError(InvalidInputError):
    def __init__(self) -> None:
        super().__init__(4006, "A dispute reason is required")


class OfferConflictError(ConflictError):
    def __init__(self, offer_id: str) -> None:
        super().__init__(4007, f"Trade offer {offer_id} was modified concurrently")


# --- 9xxx: System ---

class RateLimitError(AppError):
    def __init__(self) -> None:
        super().__init__(9001, "Rate limit exceeded", 429)


class InternalError(AppError):
    def __init__(self, detail: str = "Internal server error") -> None:
        super().__init__(9002, detail, 500)
