"""Audit sink used by the orchestrators.

Orchestrators accept any callable matching the protocol:

    def __call__(self, entity: str, action: str, entity_id: int, summary: str) -> None: ...

They call it once after each committed top-level operation. The sink is not
part of the cascade transaction: `notify()` logs and drops any exception it
raises, so a broken audit log never rolls back or fails an operation.

StorageAuditLog is the production sink; it is bound to the acting role so the
orchestrators never need to know who the caller is.
"""

from __future__ import annotations

import logging
from typing import Protocol

from mission_desk.storage import Storage

logger = logging.getLogger(__name__)


class AuditSink(Protocol):
    def __call__(self, entity: str, action: str, entity_id: int, summary: str) -> None: ...


class StorageAuditLog:
    """Appends audit entries to the store's audit log on behalf of one actor."""

    def __init__(
        self,
        storage: Storage,
        actor_role: str,
        actor_rank: str | None = None,
        actor_name: str | None = None,
    ) -> None:
        self._storage = storage
        self._actor_role = actor_role
        self._actor_rank = actor_rank
        self._actor_name = actor_name

    def __call__(self, entity: str, action: str, entity_id: int, summary: str) -> None:
        self._storage.append_audit(
            entity=entity,
            action=action,
            entity_id=entity_id,
            actor_role=self._actor_role,
            actor_rank=self._actor_rank,
            actor_name=self._actor_name,
            summary=summary,
        )


def notify(
    audit: AuditSink | None, entity: str, action: str, entity_id: int, summary: str
) -> None:
    if audit is None:
        return
    try:
        audit(entity, action, entity_id, summary)
    except Exception as e:
        logger.warning("Audit entry for %s %s (%s) failed: %s", entity, entity_id, action, e)
