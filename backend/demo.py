"""Create demo locations, sorcerers and curses for development/testing."""

from backend import services
from mission_desk import lifecycle
from mission_desk.models import CurseDraft

DEMO_LOCATIONS = [
    "Tokyo Jujutsu High",
    "Shibuya Station",
    "Eishu High School",
]

DEMO_SORCERERS = [
    {"name": "Satoru Gojo", "grade": "special", "experience": 12},
    {"name": "Kento Nanami", "grade": "high", "experience": 8},
    {"name": "Maki Zenin", "grade": "mid", "experience": 3},
    {"name": "Yuji Itadori", "grade": "student", "experience": 1},
    {"name": "Megumi Fushiguro", "grade": "apprentice", "experience": 2},
]

DEMO_CURSES = [
    {
        "name": "Finger Bearer",
        "grade": "special",
        "type": "malign",
        "danger_level": "high",
        "location": "Eishu High School",
    },
    {
        "name": "Station Lurker",
        "grade": "grade_2",
        "type": "residual",
        "danger_level": "moderate",
        "location": "Shibuya Station",
    },
]


def create_demo_data() -> None:
    """Wipe existing records and audit log and create fresh demo data."""
    for name in ("records.json", "audit.json"):
        (services.data_dir() / name).unlink(missing_ok=True)
    store = services.store()

    locations = {name: store.create_location(name).id for name in DEMO_LOCATIONS}
    sorcerers = [store.create_sorcerer(**s) for s in DEMO_SORCERERS]

    reported = []
    for curse in DEMO_CURSES:
        draft = CurseDraft(
            name=curse["name"],
            grade=curse["grade"],
            type=curse["type"],
            danger_level=curse["danger_level"],
            location_id=locations[curse["location"]],
        )
        reported.append(lifecycle.report_curse(store, draft))

    # First curse already has a mission waiting to be deployed
    lifecycle.assign_sorcerer(store, reported[0].request_id, sorcerers[0].id, "critical_emergency")
