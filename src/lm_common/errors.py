"""Unified error codes and custom exceptions.

Error code ranges:
  1xxx: Auth
  2xxx: Geolocation
  3xxx: Listing
  4xxx: Engagement (views / contact requests)
  9xxx: System

Dedup outcomes (duplicate view, already-existing contact request) are
normal results, not errors, and have no code here.
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


# --- 1xxx: Auth ---

class InvalidCredentialsError(AppError):
    def __init__(self) -> None:
        super().__init__(1001, "Invalid or expired token", 401)


class AdminRequiredError(AppError):
    def __init__(self) -> None:
        super().__init__(1002, "Admin role required", 403)


# --- 2xxx: Geolocation ---

class InvalidCoordinatesError(AppError):
    def __init__(self, latitude: float, longitude: float) -> None:
        super().__init__(
            2001,
            f"Invalid coordinates: lat={latitude} must be in [-90, 90], "
            f"lng={longitude} must be in [-180, 180]",
            422,
        )


class InvalidPrivacyLevelError(AppError):
    def __init__(self, level: object) -> None:
        super().__init__(2002, f"Unknown privacy level: {level!r}", 422)


# --- 3xxx: Listing ---

class ListingNotFoundError(AppError):
    def __init__(self, listing_id: str) -> None:
        super().__init__(3001, f"Listing not found: {listing_id}", 404)


class InvalidTransitionError(AppError):
    def __init__(self, from_status: str, to_status: str) -> None:
        super().__init__(
            3002, f"Cannot change status from {from_status} to {to_status}", 422
        )
        self.from_status = from_status
        self.to_status = to_status


class ConstraintViolationError(AppError):
    def __init__(self, violations: list[str]) -> None:
        super().__init__(3003, "Listing constraint violated: " + "; ".join(violations), 422)
        self.violations = violations


class NotListingOwnerError(AppError):
    def __init__(self, listing_id: str) -> None:
        super().__init__(3004, f"Not the owner of listing {listing_id}", 403)


# --- 4xxx: Engagement ---

class ContactOwnListingError(AppError):
    def __init__(self) -> None:
        super().__init__(4001, "Sellers cannot request contact on their own listing", 422)


class ContactRequestNotFoundError(AppError):
    def __init__(self, request_id: str) -> None:
        super().__init__(4002, f"Contact request not found: {request_id}", 404)


class RequestAlreadyRespondedError(AppError):
    def __init__(self, request_id: str, status: str) -> None:
        super().__init__(
            4003, f"Contact request {request_id} already {status}", 409
        )


# --- 9xxx: System ---

class InternalError(AppError):
    def __init__(self, detail: str = "Internal server error") -> None:
        super().__init__(9002, detail, 500)
