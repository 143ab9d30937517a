import os
from flask_sqlalchemy import SQLAlchemy
from datetime import date, datetime, timedelta, timezone

db = SQLAlchemy()

# ── Timezone offset ───────────────────────────────────────────────────────────
# Server runs UTC; freestyle caps, history and round dates use the player's
# local day. Set TZ_OFFSET_HOURS=-7 during daylight saving (PDT) if needed.
TZ_OFFSET_HOURS = int(os.environ.get("TZ_OFFSET_HOURS", -8))


def today_local() -> date:
    """Return the current date in the configured local timezone (default PST)."""
    return (datetime.now(timezone.utc) + timedelta(hours=TZ_OFFSET_HOURS)).date()


class Profile(db.Model):
    __tablename__ = "profiles"

    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(80), unique=True, nullable=False)
    # Supabase user id when the profile was pulled from the hosted backend
    remote_id = db.Column(db.String(64), unique=True, nullable=True)
    full_name = db.Column(db.String(120), nullable=True)

    rounds = db.relationship("Round", backref="profile", lazy=True, cascade="all, delete-orphan")
    state = db.relationship("StoredState", backref="profile", lazy=True, cascade="all, delete-orphan")

    def __repr__(self):
        return f"<Profile {self.username}>"


class Round(db.Model):
    __tablename__ = "rounds"

    id = db.Column(db.Integer, primary_key=True)
    profile_id = db.Column(db.Integer, db.ForeignKey("profiles.id"), nullable=False)
    date = db.Column(db.Date, nullable=False, default=today_local)
    course = db.Column(db.String(120), nullable=False, default="")
    holes = db.Column(db.Integer, nullable=False, default=18)
    score = db.Column(db.Integer, nullable=True)
    handicap = db.Column(db.Float, nullable=True)

    eagles = db.Column(db.Integer, nullable=False, default=0)
    birdies = db.Column(db.Integer, nullable=False, default=0)
    pars = db.Column(db.Integer, nullable=False, default=0)
    bogeys = db.Column(db.Integer, nullable=False, default=0)
    double_bogeys = db.Column(db.Integer, nullable=False, default=0)

    fir_left = db.Column(db.Integer, nullable=False, default=0)
    fir_hit = db.Column(db.Integer, nullable=False, default=0)
    fir_right = db.Column(db.Integer, nullable=False, default=0)
    total_gir = db.Column(db.Integer, nullable=False, default=0)
    total_penalties = db.Column(db.Integer, nullable=False, default=0)
    tee_penalties = db.Column(db.Integer, nullable=False, default=0)
    approach_penalties = db.Column(db.Integer, nullable=False, default=0)
    going_for_green = db.Column(db.Integer, nullable=False, default=0)
    gir_8ft = db.Column(db.Integer, nullable=False, default=0)
    gir_20ft = db.Column(db.Integer, nullable=False, default=0)

    up_and_down_conversions = db.Column(db.Integer, nullable=False, default=0)
    missed = db.Column(db.Integer, nullable=False, default=0)
    bunker_attempts = db.Column(db.Integer, nullable=False, default=0)
    bunker_saves = db.Column(db.Integer, nullable=False, default=0)
    chip_inside_6ft = db.Column(db.Integer, nullable=False, default=0)
    double_chips = db.Column(db.Integer, nullable=False, default=0)

    total_putts = db.Column(db.Integer, nullable=False, default=0)
    three_putts = db.Column(db.Integer, nullable=False, default=0)
    missed_6ft_and_in = db.Column(db.Integer, nullable=False, default=0)
    putts_under_6ft_attempts = db.Column(db.Integer, nullable=False, default=0)

    COUNTERS = [
        "eagles", "birdies", "pars", "bogeys", "double_bogeys",
        "fir_left", "fir_hit", "fir_right", "total_gir",
        "total_penalties", "tee_penalties", "approach_penalties",
        "going_for_green", "gir_8ft", "gir_20ft",
        "up_and_down_conversions", "missed", "bunker_attempts", "bunker_saves",
        "chip_inside_6ft", "double_chips",
        "total_putts", "three_putts", "missed_6ft_and_in", "putts_under_6ft_attempts",
    ]

    @property
    def nett(self):
        """Score less handicap to one decimal, or None until both are known."""
        if self.score is None or self.handicap is None:
            return None
        return round(self.score - self.handicap, 1)

    def to_dict(self):
        d = {
            "id":       self.id,
            "date":     self.date.isoformat() if self.date else None,
            "course":   self.course,
            "holes":    self.holes,
            "score":    self.score,
            "handicap": self.handicap,
            "nett":     self.nett,
        }
        for field in self.COUNTERS:
            d[field] = getattr(self, field) or 0
        return d

    def __repr__(self):
        return f"<Round {self.date} {self.course} {self.score}>"


class StoredState(db.Model):
    """One JSON value per (profile, key): plans, progress, history, daily counters."""
    __tablename__ = "stored_state"
    __table_args__ = (db.UniqueConstraint("profile_id", "key"),)

    id = db.Column(db.Integer, primary_key=True)
    profile_id = db.Column(db.Integer, db.ForeignKey("profiles.id"), nullable=False)
    key = db.Column(db.String(64), nullable=False)
    value = db.Column(db.Text, nullable=False, default="null")
    updated_at = db.Column(db.DateTime, nullable=False,
                           default=lambda: datetime.now(timezone.utc),
                           onupdate=lambda: datetime.now(timezone.utc))

    def __repr__(self):
        return f"<StoredState {self.profile_id}:{self.key}>"
