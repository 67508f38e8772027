"""Planned record changes and the step that applies them.

A transition is planned as an ordered list of effects before anything is
written. `apply_effects` then runs the whole list inside one store
transaction, so either every effect lands or none does.

Records created earlier in a list can be referenced by later effects through
`Ref(name)`, which resolves to the created record's id at apply time:

    [
        Create(table="missions", fields={...}, ref="mission"),
        Create(table="assignments", fields={"mission_id": Ref(name="mission"), ...}),
    ]
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict

from mission_desk.storage import Storage, Table

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Ref(BaseModel):
    """Id of a record created earlier in the same effect list."""

    model_config = ConfigDict(frozen=True)

    name: str


class Create(BaseModel):
    table: Table
    fields: dict[str, Any]
    ref: str | None = None


class Update(BaseModel):
    table: Table
    id: int
    fields: dict[str, Any]


class Delete(BaseModel):
    table: Table
    id: int


Effect = Create | Update | Delete


def _resolve(fields: dict[str, Any], created: dict[str, int]) -> dict[str, Any]:
    resolved = {}
    for key, value in fields.items():
        if isinstance(value, Ref):
            if value.name not in created:
                raise KeyError(f"Effect refers to {value.name!r} before it is created")
            value = created[value.name]
        resolved[key] = value
    return resolved


def apply_effects(storage: Storage, effects: list[Effect]) -> dict[str, int]:
    """Apply effects in order, atomically. Returns ids of named creates."""
    created: dict[str, int] = {}
    with storage.transaction():
        for effect in effects:
            if isinstance(effect, Create):
                record = storage.insert(effect.table, _resolve(effect.fields, created))
                if effect.ref:
                    created[effect.ref] = record.id
            elif isinstance(effect, Update):
                storage.patch(effect.table, effect.id, _resolve(effect.fields, created))
            else:
                storage.remove(effect.table, effect.id)
    logger.debug("applied %d effects, created %s", len(effects), created)
    return created
