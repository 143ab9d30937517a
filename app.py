import os
import random
from functools import wraps
from datetime import date
from flask import Flask, request, jsonify, session

import requests

import backend
from academy import academy_overview, leaderboard, timeframe_summary
from models import db, Profile, Round, today_local
from planner import (FACILITIES, FACILITY_LABELS, PlanError, configure_day, day_summary,
                     generate_plan, get_day, load_catalog, relevant_drills)
from scoring import level_info
from stats import stats_summary, weakest_category
from stores import DatabaseBackend, PlanStore, ProgressStore
from tracker import (COMPLETION_POLICIES, LEADERBOARD_REFRESH, PRACTICE_ACTIVITY_UPDATED,
                     ROUNDS_UPDATED, USER_PROGRESS_UPDATED, FreestyleCapReached, Signals,
                     activity_feed, log_freestyle, mark_complete, swap_drill)

basedir = os.path.abspath(os.path.dirname(__file__))

app = Flask(__name__)
app.config["SECRET_KEY"] = os.environ.get("SECRET_KEY", "dev-secret-key-change-in-production")
app.config["SQLALCHEMY_DATABASE_URI"] = os.environ.get(
    "DATABASE_URL",
    "sqlite:///" + os.path.join(basedir, "golf_practice.db"),
)
app.config["SQLALCHEMY_TRACK_MODIFICATIONS"] = False
app.config["DRILLS_PATH"] = os.environ.get("DRILLS_PATH", os.path.join(basedir, "drills.json"))
app.config["BACKEND_URL"] = os.environ.get("BACKEND_URL", "")
app.config["BACKEND_KEY"] = os.environ.get("BACKEND_KEY", "")
app.config["BACKEND_TIMEOUT"] = float(os.environ.get("BACKEND_TIMEOUT", 5))
# "repeatable": every completion pays out; "once": a plan slot pays out once
app.config["COMPLETION_POLICY"] = os.environ.get("COMPLETION_POLICY", "repeatable")
# Fixed seed makes plan generation and swaps reproducible
app.config["PLAN_SEED"] = os.environ.get("PLAN_SEED")

if app.config["COMPLETION_POLICY"] not in COMPLETION_POLICIES:
    raise RuntimeError(f"COMPLETION_POLICY must be one of {COMPLETION_POLICIES}")

db.init_app(app)

DRILLS = load_catalog(app.config["DRILLS_PATH"])
app.logger.info("loaded %d drills", len(DRILLS))

signals = Signals()
for _name in (USER_PROGRESS_UPDATED, PRACTICE_ACTIVITY_UPDATED, ROUNDS_UPDATED, LEADERBOARD_REFRESH):
    signals.connect(_name, lambda n=_name: app.logger.debug("signal %s", n))


# ── Helpers ───────────────────────────────────────────────────────────────────

def current_profile():
    """Return the signed-in Profile, or None."""
    pid = session.get("profile_id")
    if pid is None:
        return None
    return db.session.get(Profile, pid)


def login_required(f):
    @wraps(f)
    def decorated(*args, **kwargs):
        if current_profile() is None:
            return jsonify({"ok": False, "error": "Please log in to continue."}), 401
        return f(*args, **kwargs)
    return decorated


def _fail(message, status=400):
    return jsonify({"ok": False, "error": str(message)}), status


def _rng():
    seed = app.config.get("PLAN_SEED")
    return random.Random(int(seed)) if seed not in (None, "") else random.Random()


def _stores(profile):
    backend_ = DatabaseBackend(profile.id)
    return PlanStore(backend_), ProgressStore(backend_)


def _rounds_for(profile):
    rounds = (Round.query
              .filter_by(profile_id=profile.id)
              .order_by(Round.date.asc(), Round.id.asc())
              .all())
    return [r.to_dict() for r in rounds]


# ── Session ───────────────────────────────────────────────────────────────────
# Identity only: sign-in proper is done by the hosted backend.

@app.route("/login", methods=["POST"])
def login():
    data = request.get_json(silent=True) or request.form
    username = (data.get("username") or "").strip()
    if not username:
        return _fail("Username is required.")
    profile = Profile.query.filter_by(username=username).first()
    if profile is None:
        profile = Profile(username=username)
        db.session.add(profile)
        db.session.commit()
    session["profile_id"] = profile.id
    _, progress_store = _stores(profile)
    progress_store.save_catalog(DRILLS)
    return jsonify({"ok": True, "profile": {"id": profile.id, "username": profile.username}})


@app.route("/logout")
def logout():
    session.pop("profile_id", None)
    return jsonify({"ok": True})


# ── Drill library ─────────────────────────────────────────────────────────────

DRILL_LEVELS = ["Foundation", "Performance", "Elite"]


@app.route("/api/drills")
def drills():
    category = request.args.get("category", "All")
    level = request.args.get("level", "All")
    q = request.args.get("q", "").strip().lower()
    if level != "All" and level not in DRILL_LEVELS:
        return _fail(f"Level must be one of {', '.join(DRILL_LEVELS)}")
    result = [
        d for d in DRILLS
        if (category == "All" or d["category"] == category)
        and (level == "All" or d.get("level") == level)
        and (not q or q in d["title"].lower()
             or q in d.get("description", "").lower()
             or q in d["category"].lower())
    ]
    return jsonify({"drills": result})


@app.route("/api/drills/categories")
def drill_categories():
    return jsonify({
        "categories": sorted({d["category"] for d in DRILLS}),
        "levels":     DRILL_LEVELS,
    })


# ── Rounds & stats ────────────────────────────────────────────────────────────

def _round_from_json(data):
    try:
        played = date.fromisoformat(data["date"]) if data.get("date") else today_local()
    except (TypeError, ValueError):
        raise PlanError("Date must be YYYY-MM-DD")
    holes = data.get("holes", 18)
    if holes not in (9, 18):
        raise PlanError("Holes must be 9 or 18")
    r = Round(date=played, course=(data.get("course") or "").strip(), holes=holes)
    try:
        r.score = int(data["score"]) if data.get("score") is not None else None
        r.handicap = float(data["handicap"]) if data.get("handicap") is not None else None
        counters = {f: int(data.get(f) or 0) for f in Round.COUNTERS}
    except (TypeError, ValueError):
        raise PlanError("Invalid round value.")
    for field, value in counters.items():
        if value < 0:
            raise PlanError(f"{field} cannot be negative")
        setattr(r, field, value)
    return r


@app.route("/api/rounds", methods=["GET", "POST"])
@login_required
def rounds():
    profile = current_profile()
    if request.method == "POST":
        data = request.get_json(silent=True)
        if not data:
            return _fail("No data provided")
        try:
            r = _round_from_json(data)
        except PlanError as e:
            return _fail(e)
        r.profile_id = profile.id
        db.session.add(r)
        db.session.commit()
        signals.emit(ROUNDS_UPDATED, LEADERBOARD_REFRESH)
        return jsonify({"ok": True, "round": r.to_dict()}), 201
    return jsonify({"rounds": _rounds_for(profile)})


@app.route("/api/rounds/<int:round_id>", methods=["DELETE"])
@login_required
def delete_round(round_id):
    profile = current_profile()
    r = Round.query.filter_by(id=round_id, profile_id=profile.id).first()
    if r is None:
        return _fail("Round not found", 404)
    db.session.delete(r)
    db.session.commit()
    signals.emit(ROUNDS_UPDATED, LEADERBOARD_REFRESH)
    return jsonify({"ok": True})


@app.route("/api/rounds/sync", methods=["POST"])
@login_required
def sync_rounds():
    """Pull this profile's rounds from the hosted backend."""
    profile = current_profile()
    if not (app.config["BACKEND_URL"] and app.config["BACKEND_KEY"] and profile.remote_id):
        return _fail("Hosted backend is not configured for this profile.")
    try:
        rows = backend.fetch_rounds(app.config["BACKEND_URL"], app.config["BACKEND_KEY"],
                                    profile.remote_id, timeout=app.config["BACKEND_TIMEOUT"])
    except requests.RequestException as e:
        app.logger.warning("round sync for %s failed: %s", profile.username, e)
        return _fail("Could not reach the hosted backend.", 502)
    count = backend.import_rounds(profile, rows)
    signals.emit(ROUNDS_UPDATED, LEADERBOARD_REFRESH)
    return jsonify({"ok": True, "imported": count, "skipped": len(rows) - count})


@app.route("/api/stats")
@login_required
def stats():
    return jsonify(stats_summary(_rounds_for(current_profile())))


# ── Weekly plan ───────────────────────────────────────────────────────────────

def _plan_payload(week):
    return {
        "plan": {str(i): week[i] for i in sorted(week)},
        "summaries": [s for s in (day_summary(week[i]) for i in sorted(week)) if s],
        "facilities": [{"id": f, "label": FACILITY_LABELS[f]} for f in FACILITIES],
    }


@app.route("/api/plan")
@login_required
def plan():
    plan_store, _ = _stores(current_profile())
    return jsonify(_plan_payload(plan_store.load(today_local())))


@app.route("/api/plan/days/<int:day_index>", methods=["POST"])
@login_required
def configure(day_index):
    plan_store, _ = _stores(current_profile())
    week = plan_store.load(today_local())
    data = request.get_json(silent=True) or {}
    try:
        day = get_day(week, day_index)
        configure_day(
            day,
            selected=data.get("selected"),
            available_time=data.get("available_time"),
            facilities=data.get("facilities"),
            round_type=data["round_type"] if "round_type" in data else False,
        )
    except PlanError as e:
        return _fail(e, 404 if day_index not in week else 400)
    except (TypeError, ValueError):
        return _fail("Invalid day settings.")
    plan_store.save(week)
    return jsonify({"ok": True, "day": day})


@app.route("/api/plan/generate", methods=["POST"])
@login_required
def generate():
    profile = current_profile()
    plan_store, _ = _stores(profile)
    week = plan_store.load(today_local())
    weakest = weakest_category(_rounds_for(profile))
    try:
        new_week = generate_plan(week, weakest, DRILLS, rng=_rng(), today=today_local())
    except PlanError as e:
        return _fail(e)
    plan_store.save(new_week)
    app.logger.info("generated plan for %s focusing on %s", profile.username, weakest)
    return jsonify(dict(_plan_payload(new_week), ok=True, focus=weakest))


@app.route("/api/plan/days/<int:day_index>/drills/<int:drill_index>/complete", methods=["POST"])
@login_required
def complete_drill(day_index, drill_index):
    plan_store, progress_store = _stores(current_profile())
    week = plan_store.load(today_local())
    progress = progress_store.load()
    history = progress_store.history()
    try:
        xp = mark_complete(week, day_index, drill_index, progress, history,
                           policy=app.config["COMPLETION_POLICY"], today=today_local())
    except PlanError as e:
        return _fail(e, 404)
    drill = week[day_index]["drills"][drill_index]
    plan_store.save(week)
    if drill["completed"]:
        progress_store.save(progress)
        progress_store.save_history(history)
        signals.emit(USER_PROGRESS_UPDATED, PRACTICE_ACTIVITY_UPDATED)
    return jsonify({
        "ok": True,
        "xp": xp,
        "drill": drill,
        "level": level_info(progress["total_xp"]),
    })


@app.route("/api/plan/days/<int:day_index>/drills/<int:drill_index>/swap", methods=["POST"])
@login_required
def swap(day_index, drill_index):
    plan_store, _ = _stores(current_profile())
    week = plan_store.load(today_local())
    try:
        new = swap_drill(week, day_index, drill_index, DRILLS, rng=_rng())
    except PlanError as e:
        missing = day_index not in week or drill_index >= len(week[day_index].get("drills") or [])
        return _fail(e, 404 if missing else 400)
    plan_store.save(week)
    return jsonify({"ok": True, "drill": new})


# ── Freestyle practice & progress ─────────────────────────────────────────────

@app.route("/api/freestyle", methods=["POST"])
@login_required
def freestyle():
    _, progress_store = _stores(current_profile())
    data = request.get_json(silent=True) or {}
    today = today_local()
    already = progress_store.freestyle_xp(today)
    progress = progress_store.load()
    history = progress_store.history()
    try:
        xp = log_freestyle(progress, history, data.get("facility"),
                           data.get("minutes", 0), already, today=today)
    except FreestyleCapReached as e:
        return jsonify({"ok": False, "xp": 0, "error": str(e)}), 400
    except PlanError as e:
        return _fail(e)
    except (TypeError, ValueError):
        return _fail("Duration must be a whole number of minutes.")
    progress_store.set_freestyle_xp(today, already + xp)
    progress_store.add_minutes(int(data["minutes"]))
    progress_store.save(progress)
    progress_store.save_history(history)
    signals.emit(USER_PROGRESS_UPDATED, PRACTICE_ACTIVITY_UPDATED)
    return jsonify({"ok": True, "xp": xp, "level": level_info(progress["total_xp"])})


@app.route("/api/progress")
@login_required
def progress():
    _, progress_store = _stores(current_profile())
    prog = progress_store.load()
    return jsonify({
        "progress": prog,
        "level": level_info(prog.get("total_xp", 0)),
        "total_practice_minutes": progress_store.total_minutes(),
        "freestyle_xp_today": progress_store.freestyle_xp(today_local()),
    })


@app.route("/api/activity")
@login_required
def activity():
    profile = current_profile()
    _, progress_store = _stores(profile)
    return jsonify({"activity": activity_feed(_rounds_for(profile), progress_store.history())})


# ── Academy ───────────────────────────────────────────────────────────────────

def _summary_for(profile, timeframe):
    _, progress_store = _stores(profile)
    return timeframe_summary(_rounds_for(profile), progress_store.history(),
                             progress_store.load(), timeframe, today_local())


@app.route("/api/academy")
@login_required
def academy():
    profile = current_profile()
    _, progress_store = _stores(profile)
    rounds_ = _rounds_for(profile)
    recommended = [d["id"] for d in relevant_drills(DRILLS, weakest_category(rounds_))]
    try:
        overview = academy_overview(rounds_, progress_store.history(), progress_store.load(),
                                    DRILLS, recommended,
                                    timeframe=request.args.get("timeframe", "all"),
                                    today=today_local())
    except PlanError as e:
        return _fail(e)
    return jsonify(overview)


@app.route("/api/academy/leaderboard")
@login_required
def academy_leaderboard():
    """Rank every profile on one metric within a timeframe."""
    profile = current_profile()
    timeframe = request.args.get("timeframe", "all")
    metric = request.args.get("metric", "xp")
    try:
        entries = [(p.username, _summary_for(p, timeframe))
                   for p in Profile.query.order_by(Profile.id).all()]
        ranks = leaderboard(entries, metric)
    except PlanError as e:
        return _fail(e)
    for entry in ranks:
        entry["you"] = entry["name"] == profile.username
    return jsonify({"metric": metric, "timeframe": timeframe, "leaderboard": ranks})


with app.app_context():
    db.create_all()

if __name__ == "__main__":
    app.run(debug=True)
