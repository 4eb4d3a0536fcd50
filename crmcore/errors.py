"""Errors raised by the CRM core.

All of these describe a problem with caller-supplied data. They are raised
synchronously and never retried; storage failures are not wrapped and
propagate as the driver raised them.
"""

from __future__ import annotations

import uuid
from typing import Any


class CRMError(Exception):
    """Base class for CRM core errors."""


class NotFound(CRMError):
    """No live record of the given kind has the given id."""

    def __init__(self, kind: str, entity_id: uuid.UUID | str):
        super().__init__(f"{kind} {entity_id} not found")
        self.kind = kind
        self.entity_id = entity_id


class DuplicateKey(CRMError):
    """A declared-unique field collides with a live record."""

    def __init__(self, kind: str, field: str, value: Any):
        super().__init__(f"{kind}.{field} {value!r} already exists")
        self.kind = kind
        self.field = field
        self.value = value


class IntegrityViolation(CRMError):
    """A foreign key or cross-entity invariant would be broken."""

    def __init__(self, field: str, reason: str):
        super().__init__(f"{field}: {reason}")
        self.field = field
        self.reason = reason


class InvalidTransition(CRMError):
    """The requested deal status change is not allowed."""


class DealClosed(CRMError):
    """The deal is won or lost and can no longer change."""

    def __init__(self, deal_id: uuid.UUID, status: str):
        super().__init__(f"deal {deal_id} is {status}")
        self.deal_id = deal_id
        self.status = status
