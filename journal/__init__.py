"""Entity schemas, errors and reference data for the VapeLog journal."""

from .errors import (  # noqa: F401
    ConfigurationError,
    ConstraintViolationError,
    JournalError,
    NotFoundError,
    StorageFailureError,
)
from .schema import CheckIn, ConsumptionRoute, Product, ProductType, Session  # noqa: F401

__all__ = [
    "CheckIn",
    "ConfigurationError",
    "ConsumptionRoute",
    "ConstraintViolationError",
    "JournalError",
    "NotFoundError",
    "Product",
    "ProductType",
    "Session",
    "StorageFailureError",
]
