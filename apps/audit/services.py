"""Append-only audit journal."""

from __future__ import annotations

from django.db import transaction  # type: ignore

from .models import AuditLog


def append(event_type: str, message: str, obj=None, **extra) -> AuditLog:
    """
    Write one journal entry.

    Runs in its own savepoint so that a failing write never poisons the
    caller's transaction; the error itself is raised to the caller.
    """
    entry = AuditLog(action=event_type, details=message, extra=extra)
    if obj is not None:
        entry.object_type = obj.__class__.__name__.lower()
        entry.object_id = str(obj.pk)

    with transaction.atomic():
        entry.save()
    return entry
