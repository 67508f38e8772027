import os
import shutil
from pathlib import Path

import pytest

from backend import services
from mission_desk.models import CurseDraft

TEST_DATA_DIR = Path("data-tests")

# backend.app builds a default app on import; keep it out of ./data
os.environ["DATA_DIR"] = str(TEST_DATA_DIR)


@pytest.fixture(autouse=True)
def clean_test_data():
    """Wipe and re-init data-tests/ before every test."""
    if TEST_DATA_DIR.exists():
        shutil.rmtree(TEST_DATA_DIR)
    services.init_services(TEST_DATA_DIR)
    yield
    # leave data-tests around after tests for inspection; CI can ignore it


@pytest.fixture
def store():
    return services.store()


@pytest.fixture
def world(store):
    """Three locations (ids 1-3) and nine sorcerers (ids 1-9)."""
    locations = [store.create_location(f"Location {i}") for i in range(1, 4)]
    sorcerers = [store.create_sorcerer(f"Sorcerer {i}", grade="mid") for i in range(1, 10)]
    return {"locations": locations, "sorcerers": sorcerers}


@pytest.fixture
def draft(world):
    """Factory for curse drafts appearing at location 1 unless told otherwise."""
    def _draft(name: str = "Alpha", location_id: int = 1, **fields) -> CurseDraft:
        return CurseDraft(
            name=name,
            grade=fields.pop("grade", "grade_2"),
            type=fields.pop("type", "malign"),
            danger_level=fields.pop("danger_level", "moderate"),
            location_id=location_id,
            **fields,
        )
    return _draft


@pytest.fixture
def client():
    from fastapi.testclient import TestClient

    from backend.app import create_app

    return TestClient(create_app(TEST_DATA_DIR))
