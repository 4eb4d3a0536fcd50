"""CRM relational data core."""

from .core import CRMCore
from .errors import CRMError, DealClosed, DuplicateKey, IntegrityViolation, InvalidTransition, NotFound

__all__ = [
    "CRMCore",
    "CRMError",
    "DealClosed",
    "DuplicateKey",
    "IntegrityViolation",
    "InvalidTransition",
    "NotFound",
]
