import os
import random

import pytest

os.environ["DATABASE_URL"] = "sqlite://"

from app import app as flask_app  # noqa: E402
from models import db  # noqa: E402
from planner import load_catalog, new_week, planned_drill  # noqa: E402

DRILLS_PATH = os.path.join(os.path.dirname(os.path.dirname(__file__)), "drills.json")


def _make_round(**fields):
    r = {
        "holes": 18, "fir_left": 0, "fir_hit": 0, "fir_right": 0, "total_gir": 0,
        "up_and_down_conversions": 0, "missed": 0, "total_putts": 0, "missed_6ft_and_in": 0,
    }
    r.update(fields)
    return r


@pytest.fixture
def make_round():
    """A round dict with every counter zeroed unless given."""
    return _make_round


@pytest.fixture
def catalog():
    return load_catalog(DRILLS_PATH)


@pytest.fixture
def rng():
    return random.Random(42)


@pytest.fixture
def drill_by_id(catalog):
    return {d["id"]: d for d in catalog}


@pytest.fixture
def week_with_drills(drill_by_id, rng):
    """Monday holds a putting-green drill and an 18-hole round entry."""
    week = new_week()
    week[0]["selected"] = True
    week[0]["drills"] = [
        planned_drill(drill_by_id["10"], rng, facility="putting-green", xp_value=50),
        planned_drill(drill_by_id["23"], rng, prefix="round-0-18-hole",
                      title="18-Hole Alternate Club Round", category="On-Course",
                      estimated_minutes=240, xp_value=500, is_round=True),
    ]
    return week


@pytest.fixture
def app():
    flask_app.config.update(TESTING=True, PLAN_SEED="7", COMPLETION_POLICY="repeatable",
                            BACKEND_URL="", BACKEND_KEY="")
    with flask_app.app_context():
        db.drop_all()
        db.create_all()
    yield flask_app


@pytest.fixture
def client(app):
    with app.test_client() as c:
        yield c


@pytest.fixture
def player(client):
    resp = client.post("/login", json={"username": "blake"})
    assert resp.status_code == 200
    return client
