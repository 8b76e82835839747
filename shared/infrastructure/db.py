"""Translation of store-level failures into domain errors."""

from __future__ import annotations

import logging

from django.db import DatabaseError, IntegrityError, transaction  # type: ignore
from django.db.utils import NotSupportedError  # type: ignore

from shared.domain.exceptions import ConflictError, DomainError, RemoteFailure

logger = logging.getLogger(__name__)

#: Name shared by the PostgreSQL exclusion constraint and the SQLite triggers.
OVERLAP_GUARD_NAME = "prevent_double_booking"
MAIN_INVOICE_CONSTRAINT = "one_main_invoice_per_booking"


def translate_store_error(exc: DatabaseError) -> DomainError:
    """Map a database exception onto the domain error taxonomy."""

    text = str(exc)
    if isinstance(exc, IntegrityError):
        if OVERLAP_GUARD_NAME in text:
            logger.warning("Overlap guard rejected write: %s", text)
            return ConflictError(
                "Unit is no longer available: a concurrent booking took the interval",
                constraint=OVERLAP_GUARD_NAME,
            )
        if MAIN_INVOICE_CONSTRAINT in text or "finances_invoice.booking_id" in text:
            logger.warning("Duplicate main invoice rejected: %s", text)
            return ConflictError(
                "Booking already has a main invoice",
                constraint=MAIN_INVOICE_CONSTRAINT,
            )
    logger.error("Store call failed: %s", text, exc_info=exc)
    return RemoteFailure(f"Store call failed: {text}")


def lock_queryset_if_possible(queryset):
    """Apply select_for_update when inside transaction.atomic()."""

    if not transaction.get_connection().in_atomic_block:
        return queryset

    try:
        return queryset.select_for_update()
    except NotSupportedError:
        return queryset
