"""Round statistics and the weakest-category pick that drives practice plans."""

GOALS = {
    "gir":         50,
    "fir":         55,
    "up_and_down": 45,
    "putts":       32,
}

# Display order doubles as the tie-break order for weakest_category().
CATEGORIES = ["Approach", "Driving", "Short Game", "Putting"]
DEFAULT_CATEGORY = "Putting"

SHORT_PUTT_MISS_LIMIT = 2

SCORING_FIELDS = ["eagles", "birdies", "pars", "bogeys", "double_bogeys"]


def _n(round_, field):
    return round_.get(field) or 0


def compute_averages(rounds):
    """Return achieved GIR%, FIR%, up-and-down% and average putts across rounds."""
    total_gir = total_holes = 0
    fir_pct_sum = fir_rounds = 0
    conversions = opportunities = 0
    total_putts = 0

    for r in rounds:
        tee_shots = _n(r, "fir_left") + _n(r, "fir_hit") + _n(r, "fir_right")
        if tee_shots > 0:
            fir_pct_sum += _n(r, "fir_hit") / tee_shots * 100
            fir_rounds += 1
        total_gir += _n(r, "total_gir")
        total_holes += r.get("holes") or 18
        conversions += _n(r, "up_and_down_conversions")
        opportunities += _n(r, "up_and_down_conversions") + _n(r, "missed")
        total_putts += _n(r, "total_putts")

    return {
        "gir":         total_gir / total_holes * 100 if total_holes else 0,
        "fir":         fir_pct_sum / fir_rounds if fir_rounds else 0,
        "up_and_down": conversions / opportunities * 100 if opportunities else 0,
        "putts":       total_putts / len(rounds) if rounds else 0,
    }


def category_gaps(averages):
    """Shortfall against each goal; putting is inverted because fewer is better."""
    return {
        "Approach":   GOALS["gir"] - averages["gir"],
        "Driving":    GOALS["fir"] - averages["fir"],
        "Short Game": GOALS["up_and_down"] - averages["up_and_down"],
        "Putting":    averages["putts"] - GOALS["putts"],
    }


def weakest_category(rounds):
    """Pick the category a player most needs to practise.

    ``rounds`` is oldest-first; the last entry is the most recent round. Too many
    missed short putts in that round forces Putting.
    """
    if not rounds:
        return DEFAULT_CATEGORY
    if _n(rounds[-1], "missed_6ft_and_in") > SHORT_PUTT_MISS_LIMIT:
        return "Putting"

    gaps = category_gaps(compute_averages(rounds))
    best = CATEGORIES[0]
    for cat in CATEGORIES[1:]:
        if gaps[cat] > gaps[best]:
            best = cat
    return best


def stats_summary(rounds):
    averages = compute_averages(rounds)
    return {
        "rounds":   len(rounds),
        "averages": {k: round(v, 1) for k, v in averages.items()},
        "goals":    dict(GOALS),
        "gaps":     {k: round(v, 1) for k, v in category_gaps(averages).items()},
        "weakest":  weakest_category(rounds),
        "scoring":  {f: sum(_n(r, f) for r in rounds) for f in SCORING_FIELDS},
    }
