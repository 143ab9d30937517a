import copy
import json
import logging
import random

from scoring import ROUND_XP, PILLAR_XP, categories_match, tier_xp

log = logging.getLogger(__name__)


class PlanError(ValueError):
    """A plan request the player needs to fix (nothing selected, bad index, ...)."""


DAY_NAMES = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"]

FACILITIES = ["home", "range-mat", "range-grass", "bunker", "chipping-green", "putting-green"]

FACILITY_LABELS = {
    "home":           "Home/Net",
    "range-mat":      "Range (Mat)",
    "range-grass":    "Range (Grass)",
    "bunker":         "Bunker",
    "chipping-green": "Chipping Green",
    "putting-green":  "Putting Green",
}

# ── Facility → drill pillars it can host ─────────────────────────────────────
FACILITY_PILLARS = {
    "home":           ["Putting", "Skills", "Mental Game"],
    "range-mat":      ["Driving", "Irons", "Skills"],
    "range-grass":    ["Skills", "Wedge Play"],
    "bunker":         ["Short Game", "Wedge Play"],
    "chipping-green": ["Short Game", "Wedge Play"],
    "putting-green":  ["Putting"],
}

# ── Stats category → drill pillars that train it ─────────────────────────────
CATEGORY_PILLARS = {
    "Putting":    ["Putting"],
    "Driving":    ["Driving"],
    "Short Game": ["Short Game", "Wedge Play"],
    "Approach":   ["Irons", "Skills"],
    "Sand Play":  ["Short Game", "Wedge Play"],
}

ROUND_MINUTES = {"9-hole": 120, "18-hole": 240}
ROUND_LABELS = {"9-hole": "9-Hole", "18-hole": "18-Hole"}

MAX_DAY_MINUTES = 480
TIME_STEP = 15
MENTAL_GAME_MAX_MINUTES = 30
MAX_DRILLS_PER_FACILITY = 3
MAX_GENERAL_DRILLS = 5

_CHALLENGE_KEYWORDS = ["ladies tee", "alternate club", "scrambling only",
                       "challenge", "target", "3-club"]

DEFAULT_CHALLENGES = [
    {"id": "challenge-ladies-tee",       "title": "Ladies Tee Challenge"},
    {"id": "challenge-alternate-club",   "title": "Alternate Club Round"},
    {"id": "challenge-scrambling-only",  "title": "Scrambling Only"},
    {"id": "challenge-50-scrambling",    "title": "Target: 50% Scrambling"},
    {"id": "challenge-3-club",           "title": "The 3-Club Challenge"},
]
for _c in DEFAULT_CHALLENGES:
    _c.update(category="On-Course Challenge", estimated_minutes=0, xp_value=ROUND_XP)


def load_catalog(path):
    """Read the drill catalog; an unreadable file yields an empty catalog."""
    try:
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)
    except (OSError, ValueError) as e:
        log.warning("could not load drill catalog %s: %s", path, e)
        return []


# ── Day configuration ─────────────────────────────────────────────────────────

def new_day(day_index, today=None):
    return {
        "day_index":      day_index,
        "day_name":       DAY_NAMES[day_index],
        "selected":       False,
        "available_time": 0,
        "facilities":     [],
        "round_type":     None,
        "drills":         [],
        "date":           today.isoformat() if today else None,
    }


def new_week(today=None):
    return {i: new_day(i, today) for i in range(len(DAY_NAMES))}


def get_day(week, day_index):
    day = week.get(day_index)
    if day is None:
        raise PlanError(f"Unknown day {day_index}")
    return day


def configure_day(day, selected=None, available_time=None, facilities=None,
                  round_type=False):
    """Apply a player's choices for one day, validating them first.

    ``round_type=False`` leaves the round untouched; ``None`` clears it.
    Picking the round already on the day toggles it off and keeps the time,
    otherwise the day's time becomes the round's block.
    """
    if available_time is not None:
        minutes = int(available_time)
        if not 0 <= minutes <= MAX_DAY_MINUTES or minutes % TIME_STEP:
            raise PlanError(f"Practice time must be 0-{MAX_DAY_MINUTES} minutes "
                            f"in {TIME_STEP}-minute steps")
        day["available_time"] = minutes
    if facilities is not None:
        unknown = [f for f in facilities if f not in FACILITY_PILLARS]
        if unknown:
            raise PlanError(f"Unknown facility: {', '.join(unknown)}")
        day["facilities"] = list(dict.fromkeys(facilities))
    if round_type is not False:
        if round_type is not None and round_type not in ROUND_MINUTES:
            raise PlanError(f"Unknown round type: {round_type}")
        if round_type is None or day.get("round_type") == round_type:
            day["round_type"] = None
        else:
            day["round_type"] = round_type
            day["available_time"] = ROUND_MINUTES[round_type]
    if selected is not None:
        day["selected"] = bool(selected)
    return day


# ── Drill selection ───────────────────────────────────────────────────────────

def _matches_any(category, pillars):
    return any(categories_match(category, p) for p in pillars)


def with_tier_xp(drill):
    return dict(drill, xp_value=tier_xp(drill["category"], drill.get("xp_value", 0)))


def planned_drill(drill, rng, prefix=None, **extra):
    inst = {
        "id":                drill["id"],
        "drill_id":          drill["id"],
        "title":             drill["title"],
        "category":          drill["category"],
        "estimated_minutes": drill.get("estimated_minutes", 0),
        "xp_value":          drill.get("xp_value", 0),
        "facility":          None,
        "completed":         False,
        "xp_earned":         0,
        "is_round":          False,
        "content_type":      drill.get("content_type"),
        "source":            drill.get("source"),
        "description":       drill.get("description"),
    }
    if prefix:
        inst["id"] = f"{prefix}-{drill['id']}-{rng.getrandbits(32):08x}"
    inst.update(extra)
    return inst


def _greedy_pick(drills, budget, limit, enough, rng):
    """Shuffle, then take drills that still fit until the limit is reached.

    Stops early once ``enough`` drills are chosen and less than one time step
    remains.
    """
    pool = list(drills)
    rng.shuffle(pool)
    chosen = []
    for drill in pool:
        if drill.get("estimated_minutes", 0) <= budget and len(chosen) < limit:
            chosen.append(drill)
            budget -= drill.get("estimated_minutes", 0)
        if len(chosen) >= enough and budget < TIME_STEP:
            break
    return chosen


def relevant_drills(catalog, weakest):
    pillars = CATEGORY_PILLARS.get(weakest, ["Putting"])
    return [with_tier_xp(d) for d in catalog if _matches_any(d["category"], pillars)]


def on_course_challenges(catalog):
    found = [d for d in catalog
             if any(k in d["title"].lower() for k in _CHALLENGE_KEYWORDS)
             or "on-course" in d["category"].lower()
             or "course challenge" in d["category"].lower()]
    if not found:
        return [dict(c) for c in DEFAULT_CHALLENGES]
    return [dict(d, xp_value=ROUND_XP) for d in found]


def pick_challenge(challenges, round_type, rng):
    if round_type == "18-hole":
        for c in challenges:
            if "alternate club" in c["title"].lower():
                return c
        return challenges[0]
    preferred = [c for c in challenges
                 if "ladies tee" in c["title"].lower() or "alternate club" in c["title"].lower()]
    return rng.choice(preferred or challenges)


def facility_drills(catalog, relevant, facility):
    pillars = FACILITY_PILLARS[facility]
    if facility == "range-grass":
        pool = [d for d in catalog
                if "skills" in d["category"].lower()
                or "wedge" in d["category"].lower()
                or _matches_any(d["category"], pillars)]
    else:
        pool = [d for d in relevant if _matches_any(d["category"], pillars)]
    if not pool:
        pool = [d for d in catalog
                if any(p.lower() in d["category"].lower() or p.lower() in d["title"].lower()
                       for p in pillars)]
    return [with_tier_xp(d) for d in pool]


def plan_day(day, weakest, catalog, rng):
    """Return the drill instances for one configured day."""
    available = day.get("available_time") or 0
    facilities = day.get("facilities") or []
    round_type = day.get("round_type")
    idx = day["day_index"]
    relevant = relevant_drills(catalog, weakest)
    picked = []

    round_minutes = 0
    if round_type:
        round_minutes = ROUND_MINUTES[round_type]
        challenge = pick_challenge(on_course_challenges(catalog), round_type, rng)
        picked.append(planned_drill(
            challenge, rng, prefix=f"round-{idx}-{round_type}",
            title=f"{ROUND_LABELS[round_type]} {challenge['title']}",
            category="On-Course",
            estimated_minutes=round_minutes,
            xp_value=PILLAR_XP.get("On-Course", ROUND_XP),
            is_round=True,
        ))

        mental = [d for d in catalog if "mental" in d["category"].lower()]
        if mental and available > round_minutes:
            mental_minutes = min(available - round_minutes, MENTAL_GAME_MAX_MINUTES)
            if mental_minutes >= TIME_STEP:
                drill = rng.choice(mental)
                picked.append(planned_drill(
                    drill, rng, prefix=f"mental-{idx}",
                    xp_value=PILLAR_XP.get("Mental Game", drill.get("xp_value", 0)),
                    estimated_minutes=min(mental_minutes, drill.get("estimated_minutes", 0)),
                ))

    if facilities and available > 0:
        remaining = available - round_minutes
        per_facility = remaining // len(facilities) if remaining > 0 else 0
        for facility in facilities:
            pool = facility_drills(catalog, relevant, facility)
            for drill in _greedy_pick(pool, per_facility, MAX_DRILLS_PER_FACILITY, 2, rng):
                picked.append(planned_drill(drill, rng, facility=facility))
    elif not round_type and available > 0:
        for drill in _greedy_pick(relevant, available, MAX_GENERAL_DRILLS, 3, rng):
            picked.append(planned_drill(drill, rng))

    return picked


def generate_plan(week, weakest, catalog, rng=None, today=None):
    """Build drills for every selected day that has time or a round.

    Returns a new weekly plan; ``week`` is left untouched. Pass a seeded
    ``random.Random`` as ``rng`` for reproducible plans.
    """
    rng = rng or random.Random()
    selected = [d for d in week.values() if d.get("selected")]
    if not selected:
        raise PlanError("Please select at least one day")
    valid = [d for d in selected if (d.get("available_time") or 0) > 0 or d.get("round_type")]
    if not valid:
        raise PlanError("Please set practice time > 0 or select a round for at least one selected day")

    plan = copy.deepcopy(week)
    for day in valid:
        drills = plan_day(day, weakest, catalog, rng)
        if drills or day.get("round_type"):
            plan[day["day_index"]].update(
                drills=drills, date=today.isoformat() if today else day.get("date"))
    log.debug("generated plan for days %s (focus %s)", [d["day_index"] for d in valid], weakest)
    return plan


# ── Summaries ─────────────────────────────────────────────────────────────────

def is_day_complete(day):
    drills = day.get("drills") or []
    return bool(drills) and all(d.get("completed") for d in drills)


def day_summary(day):
    drills = day.get("drills") or []
    if not day.get("selected") or not drills:
        return None
    return {
        "day_name":   day["day_name"],
        "total_time": sum(d.get("estimated_minutes", 0) for d in drills),
        "categories": list(dict.fromkeys(d["category"] for d in drills)),
        "drills":     len(drills),
        "completed":  sum(1 for d in drills if d.get("completed")),
        "done":       is_day_complete(day),
    }
