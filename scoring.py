"""XP tiers, freestyle practice XP and player levels."""

# ── XP tiering by pillar ──────────────────────────────────────────────────────
# Order matters: tier_xp() returns the first pillar that matches.
PILLAR_XP = {
    "Skills":      50,
    "Wedge Play":  75,
    "Putting":     50,
    "Driving":     75,
    "Irons":       60,
    "Short Game":  60,
    "On-Course":   500,
    "Mental Game": 100,
}

ROUND_XP = 500
XP_PER_MINUTE = 10
XP_PER_ROUND = 500  # logged rounds shown in the activity feed

# ── Freestyle (unscheduled) practice ──────────────────────────────────────────
FACILITY_BASE_XP = {
    "home":           5,
    "range-mat":      10,
    "range-grass":    10,
    "bunker":         10,
    "chipping-green": 10,
    "putting-green":  5,
}
FREESTYLE_BLOCK_MINUTES = 15
FREESTYLE_DAILY_CAP = 30

# ── Level thresholds ──────────────────────────────────────────────────────────
# (level, floor xp, span) for the fixed levels; past the last one every
# LEVEL_STEP xp is another level.
_LEVELS = [
    (1, 0,    500),
    (2, 500,  1000),
    (3, 1500, 1500),
]
LEVEL_STEP_FROM = 3000
LEVEL_STEP = 2000


def categories_match(a: str, b: str) -> bool:
    """Loose category comparison: either name contains the other, ignoring case."""
    a, b = (a or "").lower(), (b or "").lower()
    return a in b or b in a


def pillar_for(category):
    for pillar in PILLAR_XP:
        if categories_match(category, pillar):
            return pillar
    return None


def tier_xp(category, default=0) -> int:
    """Flat XP for a drill's pillar, or ``default`` when the category has no tier."""
    pillar = pillar_for(category)
    return PILLAR_XP[pillar] if pillar else default


def drill_xp(instance) -> int:
    """XP granted when a planned drill is completed.

    Rounds are a flat bonus. Every other drill earns a per-minute rate, whatever
    tiered value it was planned with.
    """
    if instance.get("is_round") or instance.get("category") == "On-Course Challenge":
        return ROUND_XP
    return int(instance.get("estimated_minutes") or 0) * XP_PER_MINUTE


def freestyle_xp(facility, minutes, already_today=0) -> int:
    base = FACILITY_BASE_XP.get(facility, 0)
    earned = base * (int(minutes) // FREESTYLE_BLOCK_MINUTES)
    return min(earned, max(0, FREESTYLE_DAILY_CAP - already_today))


def level_info(xp):
    """Return the level for a cumulative XP total and progress through it.

    ``progress`` is the fraction (0-1) of the current level's span already earned.
    """
    xp = max(0, int(xp or 0))
    if xp >= LEVEL_STEP_FROM:
        extra = xp - LEVEL_STEP_FROM
        level = 4 + extra // LEVEL_STEP
        into, span = extra % LEVEL_STEP, LEVEL_STEP
    else:
        level, floor, span = next(l for l in reversed(_LEVELS) if xp >= l[1])
        into = xp - floor
    return {
        "level":         level,
        "xp":            xp,
        "xp_into_level": into,
        "level_span":    span,
        "xp_remaining":  span - into,
        "progress":      into / span,
    }
