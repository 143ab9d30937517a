"""Academy view: XP and practice totals per timeframe, membership tier, trophies, leaderboard."""
import calendar
from datetime import date, timedelta

from planner import PlanError
from scoring import XP_PER_MINUTE, XP_PER_ROUND

TIMEFRAMES = ["week", "month", "year", "all"]

STARTING_HANDICAP = 12.0
GOAL_HANDICAP = 8.7

# ── Membership tiers ──────────────────────────────────────────────────────────
# A tier is reached on XP or on handicap, whichever comes first.
TIER_THRESHOLDS = {
    "Bronze":   {"xp": 0,     "handicap": 15.0},
    "Silver":   {"xp": 3000,  "handicap": 12.0},
    "Gold":     {"xp": 6000,  "handicap": 10.0},
    "Platinum": {"xp": 10000, "handicap": GOAL_HANDICAP},
}

# ── Trophy case ───────────────────────────────────────────────────────────────
# (id, name, requirement, group, metric, target, rule)
#   at_least: metric >= target
#   below:    metric < target (best score)
#   handicap: metric <= target
TROPHIES = [
    ("first-steps",       "First Steps",       "Complete 1 hour of practice",         "Practice",           "practice_hours",    1,     "at_least"),
    ("dedicated",         "Dedicated",         "Complete 10 hours of practice",       "Practice",           "practice_hours",    10,    "at_least"),
    ("practice-master",   "Practice Master",   "Complete 50 hours of practice",       "Practice",           "practice_hours",    50,    "at_least"),
    ("practice-legend",   "Practice Legend",   "Complete 100 hours of practice",      "Practice",           "practice_hours",    100,   "at_least"),
    ("week-warrior",      "Week Warrior",      "Practice 3 days in a row",            "Practice",           "practice_streak",   3,     "at_least"),
    ("monthly-legend",    "Monthly Legend",    "Log 20 total hours in a month",       "Practice",           "best_month_hours",  20,    "at_least"),
    ("student",           "Student",           "Complete 5 lessons",                  "Knowledge",          "lessons",           5,     "at_least"),
    ("scholar",           "Scholar",           "Complete 20 lessons",                 "Knowledge",          "lessons",           20,    "at_least"),
    ("expert",            "Expert",            "Complete 50 lessons",                 "Knowledge",          "lessons",           50,    "at_least"),
    ("putting-professor", "Putting Professor", "Complete 5 Putting lessons",          "Knowledge",          "putting_lessons",   5,     "at_least"),
    ("wedge-wizard",      "Wedge Wizard",      "Complete 5 Wedge Play lessons",       "Knowledge",          "wedge_lessons",     5,     "at_least"),
    ("first-round",       "First Round",       "Log your first round",                "Performance",        "rounds",            1,     "at_least"),
    ("consistent",        "Consistent",        "Log 10 rounds",                       "Performance",        "rounds",            10,    "at_least"),
    ("tracker",           "Tracker",           "Log 25 rounds",                       "Performance",        "rounds",            25,    "at_least"),
    ("birdie-hunter",     "Birdie Hunter",     "Log 1 Birdie in a round",             "Performance",        "most_birdies",      1,     "at_least"),
    ("breaking-90",       "Breaking 90",       "Score below 90 in a round",           "Performance",        "best_score",        90,    "below"),
    ("breaking-80",       "Breaking 80",       "Score below 80 in a round",           "Performance",        "best_score",        80,    "below"),
    ("coachs-pet",        "Coach's Pet",       "Complete a recommended drill",        "Performance",        "recommended_done",  1,     "at_least"),
    ("rising-star",       "Rising Star",       "Earn 1,000 XP",                       "Milestone",          "xp",                1000,  "at_least"),
    ("champion",          "Champion",          "Earn 5,000 XP",                       "Milestone",          "xp",                5000,  "at_least"),
    ("elite",             "Elite",             "Earn 10,000 XP",                      "Milestone",          "xp",                10000, "at_least"),
    ("goal-achiever",     "Goal Achiever",     f"Reach {GOAL_HANDICAP} handicap",     "Milestone",          "handicap",          GOAL_HANDICAP, "handicap"),
    ("breaking-70",       "Breaking 70",       "Score below 70 in a round",           "Scoring Milestones", "best_score",        70,    "below"),
    ("eagle-eye",         "Eagle Eye",         "Score an Eagle in a round",           "Scoring Milestones", "most_eagles",       1,     "at_least"),
    ("birdie-machine",    "Birdie Machine",    "Score 5 Birdies in a single round",   "Scoring Milestones", "most_birdies",      5,     "at_least"),
    ("par-train",         "Par Train",         "Score 5 pars in a round",             "Scoring Milestones", "most_pars",         5,     "at_least"),
]
RARE_TROPHIES = {"eagle-eye"}

LEADERBOARD_METRICS = ["xp", "lessons", "practice_hours", "rounds", "drills",
                       "low_gross", "low_nett", "birdies", "eagles"]
# Lower is better for these; players without a qualifying round are left out
LOW_SCORE_METRICS = {"low_gross", "low_nett"}


# ── Timeframes ────────────────────────────────────────────────────────────────

def _months_back(day, months):
    month = day.month - 1 - months
    year = day.year + month // 12
    month = month % 12 + 1
    return day.replace(year=year, month=month,
                       day=min(day.day, calendar.monthrange(year, month)[1]))


def timeframe_start(timeframe, today):
    """First day counted in ``timeframe`` up to ``today``; None for all time."""
    if timeframe == "week":
        return today - timedelta(days=7)
    if timeframe == "month":
        return _months_back(today, 1)
    if timeframe == "year":
        return _months_back(today, 12)
    if timeframe == "all":
        return None
    raise PlanError(f"Timeframe must be one of {', '.join(TIMEFRAMES)}")


def _day_of(item):
    return (item.get("date") or item.get("timestamp") or "")[:10]


def within(items, start):
    if start is None:
        return list(items)
    since = start.isoformat()
    return [i for i in items if _day_of(i) >= since]


def entry_minutes(entry):
    """Minutes a history entry stands for; older entries only carry XP."""
    return (entry.get("duration") or entry.get("estimated_minutes")
            or (entry.get("xp") or 0) / XP_PER_MINUTE)


def timeframe_summary(rounds, history, progress, timeframe="all", today=None):
    """XP, practice time, rounds, drills and lessons for one timeframe.

    All-time XP and minutes come from the progress totals, because history is
    capped. Shorter timeframes add up the history entries inside them.
    """
    today = today or date.today()
    start = timeframe_start(timeframe, today)
    rounds_in = within(rounds, start)
    practice = [e for e in within(history, start) if e.get("type", "practice") == "practice"]

    if start is None:
        practice_xp = progress.get("total_xp", 0)
        minutes = progress.get("total_minutes", 0)
        lessons = len(progress.get("completed_drills") or [])
    else:
        practice_xp = sum(e.get("xp") or 0 for e in practice)
        minutes = sum(entry_minutes(e) for e in practice)
        lessons = len({e.get("drill_id") or e["drill_title"] for e in practice if e.get("drill_title")})

    full_rounds = [r for r in rounds_in if r.get("holes") == 18 and (r.get("score") or 0) > 0]
    gross = [r["score"] for r in full_rounds]
    nett = [r["score"] - r["handicap"] for r in full_rounds if r.get("handicap") is not None]

    return {
        "timeframe":      timeframe,
        "start":          start.isoformat() if start else None,
        "xp":             practice_xp + len(rounds_in) * XP_PER_ROUND,
        "practice_hours": round(minutes / 60, 2),
        "rounds":         len(rounds_in),
        "drills":         len({e.get("drill_title") or e.get("title") for e in practice} - {None, ""}),
        "lessons":        lessons,
        "low_gross":      min(gross) if gross else None,
        "low_nett":       round(min(nett), 1) if nett else None,
        "birdies":        sum(r.get("birdies") or 0 for r in rounds_in),
        "eagles":         sum(r.get("eagles") or 0 for r in rounds_in),
    }


# ── Tier and handicap goal ────────────────────────────────────────────────────

def current_handicap(rounds):
    """Handicap on the most recent round, or the starting handicap."""
    if rounds and rounds[-1].get("handicap") is not None:
        return rounds[-1]["handicap"]
    return STARTING_HANDICAP


def goal_progress(handicap):
    """Percent of the way from the starting handicap to the goal, 0-100."""
    needed = STARTING_HANDICAP - GOAL_HANDICAP
    return min(100.0, max(0.0, (STARTING_HANDICAP - handicap) / needed * 100))


def membership_tier(handicap, xp):
    if handicap <= GOAL_HANDICAP:
        return "Platinum"
    for name in ("Gold", "Silver"):
        if handicap <= TIER_THRESHOLDS[name]["handicap"] or xp >= TIER_THRESHOLDS[name]["xp"]:
            return name
    return "Bronze"


# ── Trophies ──────────────────────────────────────────────────────────────────

def longest_streak(history):
    """Most consecutive calendar days with at least one practice entry."""
    days = sorted({date.fromisoformat(_day_of(e)) for e in history if _day_of(e)})
    best = run = 0
    previous = None
    for day in days:
        run = run + 1 if previous and day - previous == timedelta(days=1) else 1
        best = max(best, run)
        previous = day
    return best


def best_month_hours(history):
    months = {}
    for e in history:
        if _day_of(e):
            key = _day_of(e)[:7]
            months[key] = months.get(key, 0) + entry_minutes(e)
    return max(months.values(), default=0) / 60


def lessons_by_category(progress, catalog):
    """Completions per catalog category, counting repeats."""
    categories = {d["id"]: d["category"] for d in catalog}
    counts = {}
    for drill_id, n in (progress.get("drill_completions") or {}).items():
        category = categories.get(drill_id)
        if category:
            counts[category] = counts.get(category, 0) + n
    return counts


def trophy_metrics(summary, rounds, history, progress, catalog, recommended=()):
    by_category = lessons_by_category(progress, catalog)
    completions = progress.get("drill_completions") or {}
    done = set(progress.get("completed_drills") or []) | {k for k, n in completions.items() if n > 0}
    scores = [r["score"] for r in rounds if r.get("holes") == 18 and (r.get("score") or 0) > 0]
    return {
        "practice_hours":   summary["practice_hours"],
        "lessons":          summary["lessons"],
        "rounds":           summary["rounds"],
        "xp":               summary["xp"],
        "practice_streak":  longest_streak(history),
        "best_month_hours": round(best_month_hours(history), 2),
        "putting_lessons":  by_category.get("Putting", 0),
        "wedge_lessons":    by_category.get("Wedge Play", 0),
        "recommended_done": len(set(recommended) & done),
        "most_birdies":     max((r.get("birdies") or 0 for r in rounds), default=0),
        "most_eagles":      max((r.get("eagles") or 0 for r in rounds), default=0),
        "most_pars":        max((r.get("pars") or 0 for r in rounds), default=0),
        "best_score":       min(scores) if scores else None,
        "handicap":         current_handicap(rounds),
    }


def _trophy_state(rule, current, target):
    """Return (shown current, shown target, unlocked, percent)."""
    if rule == "below":
        unlocked = current is not None and current < target
        return (current if current is not None else target, target - 1,
                unlocked, 100.0 if unlocked else 0.0)
    if rule == "handicap":
        return current, target, current <= target, goal_progress(current)
    return current, target, current >= target, min(100.0, current / target * 100)


def trophy_case(metrics):
    trophies = []
    for trophy_id, name, requirement, group, metric, target, rule in TROPHIES:
        current, shown_target, unlocked, percent = _trophy_state(rule, metrics[metric], target)
        trophies.append({
            "id":          trophy_id,
            "name":        name,
            "requirement": requirement,
            "category":    group,
            "rare":        trophy_id in RARE_TROPHIES,
            "unlocked":    unlocked,
            "current":     current,
            "target":      shown_target,
            "percentage":  round(percent, 1),
        })
    return trophies


def academy_overview(rounds, history, progress, catalog, recommended=(), timeframe="all", today=None):
    """Everything the academy page shows for one player and timeframe.

    ``rounds`` is oldest-first. ``recommended`` holds the catalog ids
    suggested for the player's weakest category.
    """
    summary = timeframe_summary(rounds, history, progress, timeframe, today)
    handicap = current_handicap(rounds)
    trophies = trophy_case(trophy_metrics(summary, rounds, history, progress, catalog, recommended))
    return {
        "summary":       summary,
        "handicap":      handicap,
        "goal_progress": round(goal_progress(handicap), 1),
        "tier":          membership_tier(handicap, summary["xp"]),
        "trophies":      trophies,
        "unlocked":      sum(1 for t in trophies if t["unlocked"]),
    }


# ── Leaderboard ───────────────────────────────────────────────────────────────

def leaderboard(entries, metric):
    """Rank ``(name, summary)`` pairs on one summary metric.

    Low scores rank ascending, everything else descending; equal values keep
    input order.
    """
    if metric not in LEADERBOARD_METRICS:
        raise PlanError(f"Metric must be one of {', '.join(LEADERBOARD_METRICS)}")
    if metric in LOW_SCORE_METRICS:
        ranked = sorted((e for e in entries if e[1][metric] is not None), key=lambda e: e[1][metric])
    else:
        ranked = sorted(entries, key=lambda e: e[1][metric], reverse=True)
    return [{"rank": i, "name": name, "value": summary[metric]}
            for i, (name, summary) in enumerate(ranked, start=1)]
