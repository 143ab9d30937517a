"""Persistence for weekly plans and player progress.

The practice engine works on plain dicts; these stores load and save them
wholesale through a key-value backend. Unreadable values are logged and
replaced by defaults so a corrupt row never blocks the player.
"""
import json
import logging

from models import db, StoredState
from planner import new_week
from tracker import HISTORY_LIMIT, new_progress

log = logging.getLogger(__name__)

PLANS_KEY = "weeklyPracticePlans"
PROGRESS_KEY = "userProgress"
CATALOG_KEY = "drillsData"
HISTORY_KEY = "practiceActivityHistory"
MINUTES_KEY = "totalPracticeMinutes"
FREESTYLE_PREFIX = "freestyleXP_"


def freestyle_key(day):
    return f"{FREESTYLE_PREFIX}{day.isoformat()}"


class MemoryBackend:
    """Raw JSON strings in a dict."""

    def __init__(self, data=None):
        self.data = dict(data or {})

    def get_raw(self, key):
        return self.data.get(key)

    def set_raw(self, key, raw):
        self.data[key] = raw


class DatabaseBackend:
    """Rows of StoredState for one profile."""

    def __init__(self, profile_id):
        self.profile_id = profile_id

    def _row(self, key):
        return StoredState.query.filter_by(profile_id=self.profile_id, key=key).first()

    def get_raw(self, key):
        row = self._row(key)
        return row.value if row else None

    def set_raw(self, key, raw):
        row = self._row(key)
        if row is None:
            row = StoredState(profile_id=self.profile_id, key=key)
            db.session.add(row)
        row.value = raw
        db.session.commit()


def read_json(backend, key, default):
    raw = backend.get_raw(key)
    if raw is None:
        return default
    try:
        return json.loads(raw)
    except (TypeError, ValueError) as e:
        log.warning("discarding unreadable %s: %s", key, e)
        return default


def write_json(backend, key, value):
    backend.set_raw(key, json.dumps(value))


class PlanStore:
    def __init__(self, backend):
        self.backend = backend

    def load(self, today=None):
        """Saved weekly plan with int day keys, or an empty week."""
        saved = read_json(self.backend, PLANS_KEY, None)
        week = new_week(today)
        if not isinstance(saved, dict):
            return week
        for key, day in saved.items():
            try:
                idx = int(key)
            except ValueError:
                log.warning("ignoring plan entry with bad day key %r", key)
                continue
            if idx in week and isinstance(day, dict):
                week[idx] = dict(week[idx], **day)
        return week

    def save(self, week):
        write_json(self.backend, PLANS_KEY, {str(k): v for k, v in week.items()})


class ProgressStore:
    def __init__(self, backend):
        self.backend = backend

    def load(self):
        saved = read_json(self.backend, PROGRESS_KEY, None)
        progress = new_progress()
        if isinstance(saved, dict):
            progress.update(saved)
        return progress

    def save(self, progress):
        write_json(self.backend, PROGRESS_KEY, progress)

    def history(self):
        saved = read_json(self.backend, HISTORY_KEY, [])
        return saved if isinstance(saved, list) else []

    def save_history(self, entries):
        write_json(self.backend, HISTORY_KEY, list(entries)[-HISTORY_LIMIT:])

    def freestyle_xp(self, day):
        try:
            return int(read_json(self.backend, freestyle_key(day), 0) or 0)
        except (TypeError, ValueError):
            return 0

    def set_freestyle_xp(self, day, xp):
        write_json(self.backend, freestyle_key(day), int(xp))

    def total_minutes(self):
        try:
            return int(read_json(self.backend, MINUTES_KEY, 0) or 0)
        except (TypeError, ValueError):
            return 0

    def add_minutes(self, minutes):
        total = self.total_minutes() + int(minutes)
        write_json(self.backend, MINUTES_KEY, total)
        return total

    def save_catalog(self, drills):
        write_json(self.backend, CATALOG_KEY, drills)
