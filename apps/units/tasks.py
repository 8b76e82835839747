"""Celery tasks for units."""

from __future__ import annotations

import logging

from celery import shared_task  # type: ignore
from django.db import DatabaseError, transaction  # type: ignore
from django.utils import timezone  # type: ignore

from .models import Unit
from .services import sync_unit_status

logger = logging.getLogger(__name__)


# ============================================================================
# PERIODIC TASKS (run by Celery Beat)
# ============================================================================

@shared_task(name="units.sync_unit_statuses")
def sync_unit_statuses() -> dict[str, int]:
    """
    Recompute the derived ``occupied`` status of every unit.

    Runs hourly through Celery Beat.

    Returns:
        dict: {"checked": units looked at, "changed": units whose status moved, "failed": ...}
    """
    today = timezone.localdate()
    checked = changed = failed = 0

    for unit in Unit.objects.all().iterator():
        checked += 1
        before = unit.status
        try:
            with transaction.atomic():
                unit = Unit.objects.select_for_update().get(pk=unit.pk)
                if sync_unit_status(unit, today) != before:
                    changed += 1
        except DatabaseError as exc:
            failed += 1
            logger.error(f"Unit {unit.number} status sync failed: {exc}", exc_info=True)

    logger.info(f"Unit status sync: {checked} checked, {changed} changed, {failed} failed")
    return {"checked": checked, "changed": changed, "failed": failed}
