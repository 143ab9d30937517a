"""Read rounds and profiles from the hosted backend (PostgREST over HTTPS).

Run as a script to pull one player's rounds into the local database:

    BACKEND_URL=https://xyz.supabase.co BACKEND_KEY=... python backend.py <username> <remote-user-id>
"""
import logging
import sys
from datetime import date

import requests

from models import db, Profile, Round

log = logging.getLogger(__name__)

# ----------------------------
# CONFIG
# ----------------------------
DEFAULT_TIMEOUT = 5.0
DEFAULT_PROFILE = {"full_name": None, "display_name": None, "initial_handicap": None}

# Backend column → local Round attribute, where they differ
_COLUMN_MAP = {
    "course_name": "course",
}
_IGNORED_COLUMNS = {"id", "user_id", "created_at", "nett", "conversions", "chip_ins", "inside_6ft"}


def _headers(api_key):
    return {
        "apikey": api_key,
        "Authorization": f"Bearer {api_key}",
        "Accept": "application/json",
    }


# ----------------------------
# Fetch from the hosted backend
# ----------------------------
def fetch_rounds(base_url, api_key, user_id, timeout=DEFAULT_TIMEOUT):
    """Return the user's round rows, oldest first. Raises requests.RequestException."""
    response = requests.get(
        f"{base_url.rstrip('/')}/rest/v1/rounds",
        params={"select": "*", "user_id": f"eq.{user_id}", "order": "date.asc"},
        headers=_headers(api_key),
        timeout=timeout,
    )
    response.raise_for_status()
    return response.json()


def fetch_profile(base_url, api_key, user_id, timeout=DEFAULT_TIMEOUT):
    """Return the user's profile fields, or defaults when the lookup fails or times out."""
    try:
        response = requests.get(
            f"{base_url.rstrip('/')}/rest/v1/profiles",
            params={"select": "initial_handicap,full_name,display_name", "id": f"eq.{user_id}"},
            headers=_headers(api_key),
            timeout=timeout,
        )
        response.raise_for_status()
        rows = response.json()
    except (requests.RequestException, ValueError) as e:
        log.warning("profile lookup for %s failed, using defaults: %s", user_id, e)
        return dict(DEFAULT_PROFILE)
    if not rows:
        return dict(DEFAULT_PROFILE)
    return dict(DEFAULT_PROFILE, **rows[0])


# ----------------------------
# Map rows onto local rounds
# ----------------------------
def round_fields(row):
    """Translate one backend row into keyword arguments for models.Round."""
    fields = {}
    for column, value in row.items():
        if column in _IGNORED_COLUMNS:
            continue
        attr = _COLUMN_MAP.get(column, column)
        if attr == "date" and value:
            fields["date"] = date.fromisoformat(str(value)[:10])
        elif attr in Round.COUNTERS:
            fields[attr] = int(value or 0)
        elif attr in ("course", "holes", "score", "handicap"):
            fields[attr] = value
    if fields.get("course") is None:
        fields["course"] = ""
    if fields.get("holes") not in (9, 18):
        fields["holes"] = 18
    return fields


def import_rounds(profile, rows):
    """Replace a profile's rounds with ``rows``; returns how many were stored.

    Rows with an unreadable date or counter are logged and skipped.
    """
    rounds = []
    for row in rows:
        try:
            rounds.append(Round(profile_id=profile.id, **round_fields(row)))
        except (TypeError, ValueError) as e:
            log.warning("skipping round %s for %s: %s", row.get("id"), profile.username, e)
    Round.query.filter_by(profile_id=profile.id).delete()
    db.session.add_all(rounds)
    db.session.commit()
    return len(rounds)


# ----------------------------
# Main
# ----------------------------
def main(argv=None):
    argv = sys.argv[1:] if argv is None else argv
    if len(argv) != 2:
        print(__doc__)
        return 2
    username, remote_id = argv

    from app import app

    base_url = app.config["BACKEND_URL"]
    api_key = app.config["BACKEND_KEY"]
    if not base_url or not api_key:
        print("BACKEND_URL and BACKEND_KEY must be set")
        return 2

    timeout = app.config["BACKEND_TIMEOUT"]
    with app.app_context():
        print(f"Downloading rounds for {remote_id}...")
        rows = fetch_rounds(base_url, api_key, remote_id, timeout=timeout)
        remote_profile = fetch_profile(base_url, api_key, remote_id, timeout=timeout)

        profile = Profile.query.filter_by(username=username).first()
        if profile is None:
            profile = Profile(username=username)
            db.session.add(profile)
        profile.remote_id = remote_id
        profile.full_name = remote_profile.get("full_name") or profile.full_name
        db.session.commit()

        count = import_rounds(profile, rows)
    print(f"Imported {count} rounds for {username}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
