import logging
from datetime import date

import pytest
import requests

import backend
from models import db, Profile, Round


class FakeResponse:
    def __init__(self, payload, status=200):
        self.payload = payload
        self.status_code = status

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")

    def json(self):
        return self.payload


ROW = {
    "id": "9f0c", "user_id": "u-1", "date": "2024-01-15T00:00:00", "course_name": "Pebble Beach",
    "holes": 18, "score": 82, "handicap": 10.2, "nett": 71.8, "birdies": 1, "fir_hit": 6,
    "fir_left": 3, "fir_right": 5, "total_gir": 9, "total_putts": 34, "missed_6ft_and_in": 3,
    "conversions": 3, "up_and_down_conversions": 3, "missed": None,
}


def test_fetch_rounds_queries_user_rows(monkeypatch):
    seen = {}

    def fake_get(url, params=None, headers=None, timeout=None):
        seen.update(url=url, params=params, headers=headers, timeout=timeout)
        return FakeResponse([ROW])

    monkeypatch.setattr(backend.requests, "get", fake_get)
    rows = backend.fetch_rounds("https://example.supabase.co/", "anon-key", "u-1", timeout=2)
    assert rows == [ROW]
    assert seen["url"] == "https://example.supabase.co/rest/v1/rounds"
    assert seen["params"]["user_id"] == "eq.u-1"
    assert seen["headers"]["apikey"] == "anon-key"
    assert seen["timeout"] == 2


def test_fetch_rounds_propagates_http_errors(monkeypatch):
    monkeypatch.setattr(backend.requests, "get", lambda *a, **kw: FakeResponse({}, status=500))
    with pytest.raises(requests.HTTPError):
        backend.fetch_rounds("https://example.supabase.co", "k", "u-1")


def test_profile_lookup_falls_back_on_timeout(monkeypatch):
    def slow(*args, **kwargs):
        raise requests.Timeout("took too long")

    monkeypatch.setattr(backend.requests, "get", slow)
    assert backend.fetch_profile("https://example.supabase.co", "k", "u-1") == backend.DEFAULT_PROFILE


def test_profile_lookup_merges_defaults(monkeypatch):
    monkeypatch.setattr(backend.requests, "get",
                        lambda *a, **kw: FakeResponse([{"full_name": "Blake Dowd"}]))
    profile = backend.fetch_profile("https://example.supabase.co", "k", "u-1")
    assert profile["full_name"] == "Blake Dowd"
    assert profile["initial_handicap"] is None


def test_round_fields_maps_backend_columns():
    fields = backend.round_fields(ROW)
    assert fields["course"] == "Pebble Beach"
    assert fields["date"] == date(2024, 1, 15)
    assert fields["missed"] == 0
    assert fields["missed_6ft_and_in"] == 3
    assert "nett" not in fields and "id" not in fields and "conversions" not in fields


def test_import_replaces_profile_rounds(app):
    with app.app_context():
        profile = Profile(username="blake")
        db.session.add(profile)
        db.session.commit()
        db.session.add(Round(profile_id=profile.id, course="Old", holes=9))
        db.session.commit()

        assert backend.import_rounds(profile, [ROW, dict(ROW, course_name="Augusta", holes=27)]) == 2
        rounds = Round.query.filter_by(profile_id=profile.id).order_by(Round.id).all()
        assert [r.course for r in rounds] == ["Pebble Beach", "Augusta"]
        assert rounds[0].nett == 71.8
        assert rounds[1].holes == 18


def test_import_skips_rows_with_bad_dates(app, caplog):
    with app.app_context():
        profile = Profile(username="blake")
        db.session.add(profile)
        db.session.commit()
        db.session.add(Round(profile_id=profile.id, course="Old", holes=9))
        db.session.commit()

        bad = dict(ROW, id="bad-1", date="15/01/2024")
        with caplog.at_level(logging.WARNING, logger="backend"):
            assert backend.import_rounds(profile, [bad, ROW]) == 1
        assert [r.course for r in Round.query.filter_by(profile_id=profile.id)] == ["Pebble Beach"]
        assert "skipping round bad-1" in caplog.text
