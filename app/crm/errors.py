"""Exceptions raised by the customer service layer."""

from __future__ import annotations


class CrmError(ValueError):
    """Base class for operation failures the caller is expected to handle."""


class NotFoundError(CrmError):
    """Raised when an id does not resolve to an existing record."""

    def __init__(self, entity_type: str, entity_id: object):
        super().__init__(f"{entity_type} not found: {entity_id}")
        self.entity_type = entity_type
        self.entity_id = entity_id


class DuplicateFieldError(CrmError):
    """
    An identity field collides with another customer.

    `field` is one of DUPLICATE_FIELDS. The message keeps the
    "Duplicated <field>" wording clients already match on.
    """

    def __init__(self, field: str):
        if field not in DUPLICATE_FIELDS:
            raise ValueError(f"Unknown identity field: {field!r}")
        super().__init__(f"Duplicated {field}")
        self.field = field


DUPLICATE_FIELDS = ("twitter", "facebook", "email", "phone")
