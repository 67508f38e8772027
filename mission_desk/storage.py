"""JSON file storage with transactions.

All entity tables live in one JSON document under a configurable base
directory, so a commit is a single atomic file replace. There is no database
or ORM; reads and writes go through plain helper methods that load and dump
JSON and validate every record with its pydantic model.

Directory layout:

    {base}/
      records.json    ← every entity table plus the per-table id counters
      audit.json      ← append-only audit log, written outside transactions

Transactions: `transaction()` loads a working copy of records.json and holds
the store lock until the block exits. Every read and write inside the block
goes through the working copy; a clean exit writes it back if anything
changed, an exception discards it. Nested blocks join the outer transaction. Writes issued outside
a transaction run in a transaction of their own.
"""

from __future__ import annotations

import json
import os
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, ValidationError

from mission_desk.errors import NotFound, PersistenceFailure
from mission_desk.models import (
    AuditEntry,
    Curse,
    Location,
    Mission,
    MissionParticipant,
    Page,
    Request,
    Sorcerer,
    SorcererAssignment,
)

Table = Literal[
    "locations",
    "sorcerers",
    "curses",
    "requests",
    "missions",
    "assignments",
    "participants",
]

TABLE_MODELS: dict[str, type[BaseModel]] = {
    "locations": Location,
    "sorcerers": Sorcerer,
    "curses": Curse,
    "requests": Request,
    "missions": Mission,
    "assignments": SorcererAssignment,
    "participants": MissionParticipant,
}

_LABELS: dict[str, str] = {
    "locations": "Location",
    "sorcerers": "Sorcerer",
    "curses": "Curse",
    "requests": "Request",
    "missions": "Mission",
    "assignments": "Assignment",
    "participants": "Participant",
}


def _empty_records() -> dict[str, Any]:
    return {
        "next_ids": {table: 1 for table in TABLE_MODELS},
        "tables": {table: {} for table in TABLE_MODELS},
    }


def _empty_audit() -> dict[str, Any]:
    return {"next_id": 1, "entries": []}


class Storage:
    def __init__(self, base_path: Path) -> None:
        self._base = base_path
        self._base.mkdir(parents=True, exist_ok=True)
        self._lock = threading.RLock()
        self._working: dict[str, Any] | None = None
        self._dirty = False

    # ------------------------------------------------------------------
    # Internal file helpers
    # ------------------------------------------------------------------

    def _records_file(self) -> Path:
        return self._base / "records.json"

    def _audit_file(self) -> Path:
        return self._base / "audit.json"

    def _read_json(self, path: Path, default: dict[str, Any]) -> dict[str, Any]:
        if not path.exists():
            return default
        try:
            return json.loads(path.read_text())
        except (OSError, json.JSONDecodeError) as e:
            raise PersistenceFailure(f"Cannot read {path.name}: {e}") from e

    def _write_json(self, path: Path, data: dict[str, Any]) -> None:
        tmp = path.with_name(path.name + ".tmp")
        try:
            tmp.write_text(json.dumps(data, indent=2))
            os.replace(tmp, path)
        except OSError as e:
            raise PersistenceFailure(f"Cannot write {path.name}: {e}") from e

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------

    @property
    def in_transaction(self) -> bool:
        return self._working is not None

    @contextmanager
    def transaction(self) -> Iterator[None]:
        """Run a block of reads and writes as one all-or-nothing unit."""
        with self._lock:
            if self._working is not None:
                yield
                return
            self._working = self._read_json(self._records_file(), _empty_records())
            self._dirty = False
            try:
                yield
                if self._dirty:
                    self._write_json(self._records_file(), self._working)
            finally:
                self._working = None
                self._dirty = False

    def _records(self) -> dict[str, Any]:
        if self._working is not None:
            return self._working
        return self._read_json(self._records_file(), _empty_records())

    def _tx_records(self) -> dict[str, Any]:
        assert self._working is not None, "write outside transaction()"
        return self._working

    # ------------------------------------------------------------------
    # Generic record access (used by the effect applier)
    # ------------------------------------------------------------------

    def _validate(self, table: str, raw: dict[str, Any]) -> Any:
        try:
            return TABLE_MODELS[table].model_validate(raw)
        except ValidationError as e:
            raise PersistenceFailure(f"Rejected {table} record: {e}") from e

    def _fetch(self, table: str, record_id: int) -> Any:
        with self._lock:
            raw = self._records()["tables"][table].get(str(record_id))
        if raw is None:
            return None
        return self._validate(table, raw)

    def _scan(self, table: str, **match: Any) -> list[Any]:
        with self._lock:
            rows = list(self._records()["tables"][table].values())
        found = [
            self._validate(table, raw)
            for raw in rows
            if all(raw.get(key) == value for key, value in match.items())
        ]
        return sorted(found, key=lambda record: record.id)

    def insert(self, table: Table, fields: dict[str, Any]) -> Any:
        """Create a record with the next id for its table."""
        with self.transaction():
            records = self._tx_records()
            new_id = records["next_ids"][table]
            record = self._validate(table, {**fields, "id": new_id})
            records["tables"][table][str(new_id)] = record.model_dump(mode="json")
            records["next_ids"][table] = new_id + 1
            self._dirty = True
        return record

    def patch(self, table: Table, record_id: int, fields: dict[str, Any]) -> Any:
        """Overwrite some fields of an existing record."""
        with self.transaction():
            rows = self._tx_records()["tables"][table]
            raw = rows.get(str(record_id))
            if raw is None:
                raise NotFound(f"{_LABELS[table]} {record_id} not found")
            record = self._validate(table, {**raw, **fields, "id": record_id})
            rows[str(record_id)] = record.model_dump(mode="json")
            self._dirty = True
        return record

    def remove(self, table: Table, record_id: int) -> bool:
        with self.transaction():
            removed = self._tx_records()["tables"][table].pop(str(record_id), None)
            if removed is not None:
                self._dirty = True
        return removed is not None

    def list_page(self, table: Table, cursor: int | None = None, limit: int = 20) -> Page:
        """Return records with id > cursor, ordered by id, at most `limit`."""
        rows = self._scan(table)
        if cursor is not None:
            rows = [r for r in rows if r.id > cursor]
        items = rows[:limit]
        has_more = len(rows) > limit
        next_cursor = items[-1].id if has_more and items else None
        return Page[TABLE_MODELS[table]](items=items, next_cursor=next_cursor, has_more=has_more)

    # ------------------------------------------------------------------
    # Reference data
    # ------------------------------------------------------------------

    def create_location(self, name: str) -> Location:
        return self.insert("locations", {"name": name})

    def get_location(self, location_id: int) -> Location | None:
        return self._fetch("locations", location_id)

    def list_locations(self) -> list[Location]:
        return self._scan("locations")

    def create_sorcerer(
        self,
        name: str,
        grade: str = "student",
        experience: int = 0,
        status: str = "active",
    ) -> Sorcerer:
        return self.insert(
            "sorcerers",
            {"name": name, "grade": grade, "experience": experience, "status": status},
        )

    def get_sorcerer(self, sorcerer_id: int) -> Sorcerer | None:
        return self._fetch("sorcerers", sorcerer_id)

    def list_sorcerers(self) -> list[Sorcerer]:
        return self._scan("sorcerers")

    # ------------------------------------------------------------------
    # Curses and requests
    # ------------------------------------------------------------------

    def get_curse(self, curse_id: int) -> Curse | None:
        return self._fetch("curses", curse_id)

    def get_request(self, request_id: int) -> Request | None:
        return self._fetch("requests", request_id)

    def get_request_for_curse(self, curse_id: int) -> Request | None:
        found = self._scan("requests", curse_id=curse_id)
        return found[0] if found else None

    # ------------------------------------------------------------------
    # Missions, assignments, participants
    # ------------------------------------------------------------------

    def get_mission(self, mission_id: int) -> Mission | None:
        return self._fetch("missions", mission_id)

    def get_assignment(self, assignment_id: int) -> SorcererAssignment | None:
        return self._fetch("assignments", assignment_id)

    def get_assignments_for_request(self, request_id: int) -> list[SorcererAssignment]:
        return self._scan("assignments", request_id=request_id)

    def get_assignments_for_mission(self, mission_id: int) -> list[SorcererAssignment]:
        return self._scan("assignments", mission_id=mission_id)

    def get_assignments_for_sorcerer(self, sorcerer_id: int) -> list[SorcererAssignment]:
        return self._scan("assignments", sorcerer_id=sorcerer_id)

    def get_participants(self, mission_id: int) -> list[MissionParticipant]:
        return self._scan("participants", mission_id=mission_id)

    # ------------------------------------------------------------------
    # Audit log (append-only, not part of any transaction)
    # ------------------------------------------------------------------

    def append_audit(
        self,
        *,
        entity: str,
        action: str,
        entity_id: int,
        actor_role: str,
        actor_rank: str | None = None,
        actor_name: str | None = None,
        summary: str | None = None,
    ) -> AuditEntry:
        with self._lock:
            data = self._read_json(self._audit_file(), _empty_audit())
            entry = AuditEntry(
                id=data["next_id"],
                timestamp=datetime.now(timezone.utc),
                entity=entity,
                action=action,
                entity_id=entity_id,
                actor_role=actor_role,
                actor_rank=actor_rank,
                actor_name=actor_name,
                summary=summary,
            )
            data["entries"].append(entry.model_dump(mode="json"))
            data["next_id"] += 1
            self._write_json(self._audit_file(), data)
        return entry

    def _audit_entries(self, entity: str | None = None) -> list[AuditEntry]:
        with self._lock:
            data = self._read_json(self._audit_file(), _empty_audit())
        entries = [AuditEntry.model_validate(e) for e in data["entries"]]
        if entity is not None:
            entries = [e for e in entries if e.entity == entity]
        return entries

    def list_audit(
        self, limit: int = 20, offset: int = 0, entity: str | None = None
    ) -> list[AuditEntry]:
        """Newest entries first."""
        entries = sorted(self._audit_entries(entity), key=lambda e: e.id, reverse=True)
        return entries[offset:offset + limit]

    def count_audit(self, entity: str | None = None) -> int:
        return len(self._audit_entries(entity))

    def get_audit(self, entry_id: int) -> AuditEntry | None:
        for entry in self._audit_entries():
            if entry.id == entry_id:
                return entry
        return None
