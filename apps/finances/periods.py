"""Accounting period services."""

from __future__ import annotations

import logging
from datetime import date

from django.db import transaction  # type: ignore
from django.utils import timezone  # type: ignore

from shared.domain.exceptions import NoOpenPeriodError, NotFoundError, ValidationError

from .models import AccountingPeriod

logger = logging.getLogger(__name__)


def _get_period(period_id, *, lock: bool = False) -> AccountingPeriod:
    qs = AccountingPeriod.objects.all()
    if lock:
        qs = qs.select_for_update()
    try:
        return qs.get(pk=period_id)
    except AccountingPeriod.DoesNotExist:
        raise NotFoundError(f"Accounting period {period_id} not found", period_id=period_id)


def _overlapping_open(start: date, end: date, exclude_id=None):
    qs = AccountingPeriod.objects.filter(
        status=AccountingPeriod.Status.OPEN,
        start_date__lte=end,
        end_date__gte=start,
    )
    if exclude_id is not None:
        qs = qs.exclude(pk=exclude_id)
    return qs


def is_open(posting_date: date) -> bool:
    """True when an open period covers ``posting_date`` (both ends inclusive)."""
    return AccountingPeriod.objects.filter(
        status=AccountingPeriod.Status.OPEN,
        start_date__lte=posting_date,
        end_date__gte=posting_date,
    ).exists()


def require_open_period(posting_date: date) -> None:
    if not is_open(posting_date):
        logger.warning("Posting rejected, no open period for %s", posting_date)
        raise NoOpenPeriodError(posting_date)


@transaction.atomic
def open_period(
    start_date: date,
    end_date: date,
    name: str = "",
    *,
    allow_overlap: bool = False,
) -> AccountingPeriod:
    """Open a new period; overlapping another open period needs ``allow_overlap``."""

    if start_date is None or end_date is None:
        raise ValidationError("A period needs both start_date and end_date")
    if start_date > end_date:
        raise ValidationError(
            f"Period start ({start_date}) must not be after its end ({end_date})",
        )

    if not allow_overlap:
        clash = _overlapping_open(start_date, end_date).first()
        if clash is not None:
            raise ValidationError(
                f"Period [{start_date} .. {end_date}] overlaps open period {clash.name} "
                f"[{clash.start_date} .. {clash.end_date}]",
                period_id=clash.pk,
            )

    period = AccountingPeriod.objects.create(
        name=name or f"{start_date:%Y-%m-%d} .. {end_date:%Y-%m-%d}",
        start_date=start_date,
        end_date=end_date,
    )
    logger.info("Opened accounting period %s", period)
    return period


@transaction.atomic
def close_period(period_id) -> AccountingPeriod:
    period = _get_period(period_id, lock=True)
    if period.status == AccountingPeriod.Status.CLOSED:
        raise ValidationError(f"Period {period.name} is already closed", period_id=period.pk)
    period.status = AccountingPeriod.Status.CLOSED
    period.closed_at = timezone.now()
    period.save(update_fields=["status", "closed_at"])
    logger.info("Closed accounting period %s", period)
    return period


@transaction.atomic
def reopen_period(period_id, *, allow_overlap: bool = False) -> AccountingPeriod:
    period = _get_period(period_id, lock=True)
    if period.status == AccountingPeriod.Status.OPEN:
        raise ValidationError(f"Period {period.name} is already open", period_id=period.pk)
    if not allow_overlap:
        clash = _overlapping_open(period.start_date, period.end_date, exclude_id=period.pk).first()
        if clash is not None:
            raise ValidationError(
                f"Reopening {period.name} would overlap open period {clash.name}",
                period_id=clash.pk,
            )
    period.status = AccountingPeriod.Status.OPEN
    period.closed_at = None
    period.save(update_fields=["status", "closed_at"])
    logger.info("Reopened accounting period %s", period)
    return period
