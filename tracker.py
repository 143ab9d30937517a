import logging
import random
from datetime import datetime, timezone

from planner import FACILITY_LABELS, CATEGORY_PILLARS, PlanError, get_day, planned_drill, with_tier_xp
from scoring import (FACILITY_BASE_XP, FREESTYLE_BLOCK_MINUTES, FREESTYLE_DAILY_CAP,
                     XP_PER_ROUND, categories_match, drill_xp, freestyle_xp)

log = logging.getLogger(__name__)

HISTORY_LIMIT = 100
SWAP_MINUTES_TOLERANCE = 15

POLICY_REPEATABLE = "repeatable"
POLICY_ONCE = "once"
COMPLETION_POLICIES = (POLICY_REPEATABLE, POLICY_ONCE)

USER_PROGRESS_UPDATED = "userProgressUpdated"
PRACTICE_ACTIVITY_UPDATED = "practiceActivityUpdated"
ROUNDS_UPDATED = "roundsUpdated"
LEADERBOARD_REFRESH = "academyLeaderboardRefresh"


class FreestyleCapReached(PlanError):
    pass


class Signals:
    """Named notifications with no payload; listeners re-read whatever they need."""

    def __init__(self):
        self._listeners = {}

    def connect(self, name, callback):
        self._listeners.setdefault(name, []).append(callback)
        return callback

    def disconnect(self, name, callback):
        if callback in self._listeners.get(name, []):
            self._listeners[name].remove(callback)

    def emit(self, *names):
        for name in names:
            for callback in list(self._listeners.get(name, [])):
                try:
                    callback()
                except Exception:
                    log.exception("listener for %s failed", name)


def new_progress():
    return {
        "completed_drills":  [],
        "total_xp":          0,
        "total_minutes":     0,
        "drill_completions": {},
    }


def _now(now):
    return now or datetime.now(timezone.utc)


def _entry_date(ts, today):
    # ``today`` is the player's local date; history and daily counters share it
    return (today or ts.date()).isoformat()


def record_activity(history, entry):
    """Append ``entry`` and keep only the newest HISTORY_LIMIT entries."""
    history.append(entry)
    del history[:-HISTORY_LIMIT]
    return history


def _drill_at(week, day_index, drill_index):
    day = get_day(week, day_index)
    drills = day.get("drills") or []
    if not 0 <= drill_index < len(drills):
        raise PlanError(f"No drill {drill_index} on {day['day_name']}")
    return day, drills[drill_index]


# ── Completion ────────────────────────────────────────────────────────────────

def mark_complete(week, day_index, drill_index, progress, history,
                  policy=POLICY_REPEATABLE, now=None, today=None):
    """Toggle a planned drill's completion and return the XP granted.

    Completing grants XP every time under the repeatable policy; un-completing
    never takes XP back. Under the once policy a slot only pays out the first
    time it is completed.
    """
    day, drill = _drill_at(week, day_index, drill_index)

    if drill.get("completed"):
        drill["completed"] = False
        drill["xp_earned"] = 0
        return 0

    xp = drill_xp(drill)
    if policy == POLICY_ONCE and drill.get("xp_granted"):
        xp = 0
    drill["completed"] = True
    drill["xp_earned"] = xp
    drill["xp_granted"] = drill.get("xp_granted", False) or xp > 0

    progress["total_xp"] = progress.get("total_xp", 0) + xp
    progress["total_minutes"] = progress.get("total_minutes", 0) + drill.get("estimated_minutes", 0)
    key = drill.get("drill_id") or drill["id"]
    counts = progress.setdefault("drill_completions", {})
    counts[key] = counts.get(key, 0) + 1
    completed = progress.setdefault("completed_drills", [])
    if key not in completed:
        completed.append(key)

    ts = _now(now)
    record_activity(history, {
        "id":          f"practice-{drill['id']}-{ts.timestamp():.6f}",
        "type":        "practice",
        "title":       drill["title"],
        "date":        _entry_date(ts, today),
        "timestamp":   ts.isoformat(),
        "xp":          xp,
        "duration":    drill.get("estimated_minutes", 0),
        "drill_id":    key,
        "drill_title": drill["title"],
        "category":    drill["category"],
        "day_name":    day["day_name"],
    })
    return xp


# ── Swapping ──────────────────────────────────────────────────────────────────

def _same_pillar_group(category, target):
    for pillars in CATEGORY_PILLARS.values():
        if (any(categories_match(p, category) for p in pillars)
                and any(categories_match(p, target) for p in pillars)):
            return True
    return False


def swap_candidates(catalog, current):
    target = current["category"]
    current_id = current.get("drill_id") or current["id"]
    same = [d for d in catalog
            if d["id"] != current_id
            and (categories_match(d["category"], target) or _same_pillar_group(d["category"], target))]
    if same:
        return same
    minutes = current.get("estimated_minutes", 0)
    return [d for d in catalog
            if d["id"] != current_id
            and abs(d.get("estimated_minutes", 0) - minutes) <= SWAP_MINUTES_TOLERANCE]


def swap_drill(week, day_index, drill_index, catalog, rng=None):
    """Replace a planned drill with another from its category and return the new one.

    The slot keeps its facility and round flag; completion starts over.
    """
    rng = rng or random.Random()
    day, current = _drill_at(week, day_index, drill_index)
    candidates = swap_candidates(catalog, current)
    if not candidates:
        raise PlanError("No suitable replacement drill found.")

    replacement = with_tier_xp(rng.choice(candidates))
    new = planned_drill(replacement, rng, prefix=f"swapped-{day_index}-{drill_index}",
                        facility=current.get("facility"),
                        is_round=current.get("is_round", False))
    day["drills"][drill_index] = new
    return new


# ── Freestyle practice ────────────────────────────────────────────────────────

def log_freestyle(progress, history, facility, minutes, already_today, now=None, today=None):
    """Grant XP for unscheduled practice, honouring the daily freestyle cap.

    Sessions are counted in whole FREESTYLE_BLOCK_MINUTES blocks. Returns the
    XP granted. Raises FreestyleCapReached, without touching ``progress`` or
    ``history``, once today's cap has been used up.
    """
    if facility not in FACILITY_BASE_XP:
        raise PlanError(f"Unknown facility: {facility}")
    minutes = int(minutes)
    if minutes < FREESTYLE_BLOCK_MINUTES:
        raise PlanError(f"Log at least {FREESTYLE_BLOCK_MINUTES} minutes")
    if already_today >= FREESTYLE_DAILY_CAP:
        raise FreestyleCapReached(
            f"Daily freestyle practice XP limit reached ({FREESTYLE_DAILY_CAP} XP/day). "
            "Complete your Roadmap drills for more XP!")

    xp = freestyle_xp(facility, minutes, already_today)

    progress["total_xp"] = progress.get("total_xp", 0) + xp
    progress["total_minutes"] = progress.get("total_minutes", 0) + minutes

    ts = _now(now)
    record_activity(history, {
        "id":        f"freestyle-{facility}-{ts.timestamp():.6f}",
        "type":      "practice",
        "title":     f"{FACILITY_LABELS[facility]} Practice",
        "date":      _entry_date(ts, today),
        "timestamp": ts.isoformat(),
        "xp":        xp,
        "duration":  minutes,
        "facility":  facility,
    })
    return xp


# ── Activity feed ─────────────────────────────────────────────────────────────

def activity_feed(rounds, history):
    """Logged rounds and practice history, newest first."""
    items = []
    for r in rounds:
        items.append({
            "id":       f"round-{r.get('id')}",
            "type":     "round",
            "title":    f"{r.get('holes') or 18} Holes at {r.get('course') or 'Unknown Course'}",
            "date":     r.get("date"),
            "xp":       XP_PER_ROUND,
            "course":   r.get("course"),
            "score":    r.get("score"),
            "handicap": r.get("handicap"),
        })
    for entry in history:
        items.append(dict(entry, title=entry.get("title") or entry.get("drill_title") or "Practice Session"))
    items.sort(key=lambda i: (i.get("date") or "", i.get("timestamp") or ""), reverse=True)
    return items
