"""Service initialization: the shared store and the per-caller audit sink."""

from pathlib import Path

from mission_desk.audit import StorageAuditLog
from mission_desk.storage import Storage

_data_dir: Path | None = None
_store: Storage | None = None


def init_services(data_dir: Path) -> None:
    global _data_dir, _store
    _data_dir = data_dir
    _data_dir.mkdir(parents=True, exist_ok=True)
    _store = Storage(_data_dir)


def data_dir() -> Path:
    assert _data_dir is not None, "Call init_services() before using services"
    return _data_dir


def store() -> Storage:
    assert _store is not None, "Call init_services() before using services"
    return _store


def audit_sink(actor_role: str) -> StorageAuditLog | None:
    """Audit sink acting as `actor_role`, or None when auditing is switched off."""
    from backend.config import get_config

    if not get_config()["audit_enabled"]:
        return None
    return StorageAuditLog(store(), actor_role)
