"""Storefront error hierarchy"""

from typing import Optional


class StorefrontError(Exception):
    """Base exception for storefront errors"""
    pass


class BackendError(StorefrontError):
    """The store backend answered with an error status"""

    def __init__(
        self,
        status_code: int,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[dict] = None,
        server_message: Optional[str] = None,
    ):
        super().__init__(f"{status_code}: {message}")
        self.status_code = status_code
        self.message = message
        self.server_message = server_message
        self.error_code = error_code
        self.details = details or {}


class BackendUnavailableError(StorefrontError):
    """The store backend could not be reached"""
    pass


class CartError(StorefrontError):
    """Cart operation refused locally"""
    pass


class InvalidDepartmentError(StorefrontError):
    """Department is not one of the known administrative regions"""

    def __init__(self, department: str):
        super().__init__(f"Unknown department: {department!r}")
        self.department = department


class CheckoutValidationError(StorefrontError):
    """A checkout step failed validation"""

    def __init__(self, errors: dict[str, str]):
        super().__init__(", ".join(sorted(errors)))
        self.errors = errors


class CheckoutInProgressError(StorefrontError):
    """An order submission is already in flight"""
    pass


class OrderError(StorefrontError):
    """Address, order or payment creation failed"""

    def __init__(self, user_message: str, stage: str):
        super().__init__(f"{stage}: {user_message}")
        self.user_message = user_message
        self.stage = stage
