import random

import pytest

from planner import (PlanError, configure_day, day_summary, generate_plan, is_day_complete,
                     new_week, on_course_challenges, pick_challenge)


def _week(**days):
    """new_week() with the given days configured; values are configure_day kwargs."""
    week = new_week()
    for key, settings in days.items():
        configure_day(week[int(key[1:])], selected=True, **settings)
    return week


def test_nothing_selected_is_rejected(catalog, rng):
    with pytest.raises(PlanError, match="select at least one day"):
        generate_plan(new_week(), "Putting", catalog, rng=rng)


def test_selected_day_without_time_or_round_is_rejected(catalog, rng):
    with pytest.raises(PlanError, match="practice time > 0"):
        generate_plan(_week(d0={}), "Putting", catalog, rng=rng)


def test_18_hole_round_is_a_single_500_xp_entry(catalog, rng):
    plan = generate_plan(_week(d5={"round_type": "18-hole"}), "Putting", catalog, rng=rng)
    drills = plan[5]["drills"]
    assert plan[5]["available_time"] == 240
    assert len(drills) == 1
    assert drills[0]["is_round"] is True
    assert drills[0]["xp_value"] == 500
    assert drills[0]["estimated_minutes"] == 240
    assert drills[0]["title"] == "18-Hole Alternate Club Round"


def test_round_is_planned_even_without_time_budget(catalog, rng):
    week = _week(d2={"round_type": "9-hole"})
    configure_day(week[2], available_time=0)
    plan = generate_plan(week, "Driving", catalog, rng=rng)
    rounds = [d for d in plan[2]["drills"] if d["is_round"]]
    assert len(rounds) == 1
    assert rounds[0]["xp_value"] == 500
    assert rounds[0]["estimated_minutes"] == 120
    assert rounds[0]["title"] in ("9-Hole Ladies Tee Challenge", "9-Hole Alternate Club Round")


def test_spare_time_after_round_adds_mental_game(catalog, rng):
    week = _week(d0={"round_type": "9-hole"})
    configure_day(week[0], available_time=165)
    drills = generate_plan(week, "Putting", catalog, rng=rng)[0]["drills"]
    assert [d["is_round"] for d in drills] == [True, False]
    assert drills[1]["category"] == "Mental Game"
    assert drills[1]["xp_value"] == 100
    assert drills[1]["estimated_minutes"] <= 30


def test_round_with_facilities_only_uses_time_left_over(catalog, rng):
    week = _week(d0={"round_type": "9-hole"})
    configure_day(week[0], available_time=180, facilities=["putting-green"])
    drills = generate_plan(week, "Putting", catalog, rng=rng)[0]["drills"]
    facility = [d for d in drills if d["facility"] == "putting-green"]
    assert sum(d["estimated_minutes"] for d in facility) <= 60
    assert sum(1 for d in drills if d["is_round"]) == 1


def test_facility_drills_fit_budget_and_are_tiered(catalog, rng):
    week = _week(d1={"available_time": 60, "facilities": ["putting-green"]})
    drills = generate_plan(week, "Putting", catalog, rng=rng)[1]["drills"]
    assert 1 <= len(drills) <= 3
    assert sum(d["estimated_minutes"] for d in drills) <= 60
    for d in drills:
        assert d["facility"] == "putting-green"
        assert d["category"] == "Putting"
        assert d["xp_value"] == 50
        assert d["completed"] is False
        assert d["xp_earned"] == 0


def test_facility_falls_back_when_focus_has_no_compatible_drills(catalog, rng):
    week = _week(d1={"available_time": 45, "facilities": ["putting-green"]})
    drills = generate_plan(week, "Driving", catalog, rng=rng)[1]["drills"]
    assert drills
    assert {d["category"] for d in drills} == {"Putting"}


def test_range_grass_prefers_skills_and_wedges(catalog, rng):
    week = _week(d3={"available_time": 60, "facilities": ["range-grass"]})
    drills = generate_plan(week, "Putting", catalog, rng=rng)[3]["drills"]
    assert drills
    assert {d["category"] for d in drills} <= {"Skills", "Wedge Play"}


def test_time_is_split_evenly_across_facilities(catalog):
    for seed in range(20):
        week = _week(d4={"available_time": 90, "facilities": ["putting-green", "range-mat"]})
        drills = generate_plan(week, "Approach", catalog, rng=random.Random(seed))[4]["drills"]
        for facility in ("putting-green", "range-mat"):
            chosen = [d for d in drills if d["facility"] == facility]
            assert len(chosen) <= 3
            assert sum(d["estimated_minutes"] for d in chosen) <= 45


def test_general_plan_uses_focus_category(catalog):
    for seed in range(20):
        week = _week(d0={"available_time": 60})
        drills = generate_plan(week, "Putting", catalog, rng=random.Random(seed))[0]["drills"]
        assert 1 <= len(drills) <= 5
        assert sum(d["estimated_minutes"] for d in drills) <= 60
        assert {d["category"] for d in drills} == {"Putting"}
        assert all(d["facility"] is None for d in drills)


def test_same_seed_same_plan_and_input_untouched(catalog):
    week = _week(d0={"available_time": 120, "facilities": ["range-mat", "bunker"]},
                 d6={"round_type": "18-hole"})
    first = generate_plan(week, "Approach", catalog, rng=random.Random(3))
    second = generate_plan(week, "Approach", catalog, rng=random.Random(3))
    assert first == second
    assert week[0]["drills"] == []
    assert week[6]["drills"] == []


def test_unselected_days_are_left_alone(catalog, rng):
    week = _week(d0={"available_time": 30})
    configure_day(week[1], available_time=60)
    plan = generate_plan(week, "Putting", catalog, rng=rng)
    assert plan[1]["drills"] == []
    assert plan[0]["drills"]


@pytest.mark.parametrize("minutes", [-15, 50, 495])
def test_invalid_time_is_rejected(minutes):
    with pytest.raises(PlanError):
        configure_day(new_week()[0], available_time=minutes)


def test_unknown_facility_and_round_are_rejected():
    day = new_week()[0]
    with pytest.raises(PlanError):
        configure_day(day, facilities=["driveway"])
    with pytest.raises(PlanError):
        configure_day(day, round_type="27-hole")


def test_picking_same_round_again_clears_it_and_keeps_time():
    day = new_week()[0]
    configure_day(day, round_type="18-hole")
    assert (day["round_type"], day["available_time"]) == ("18-hole", 240)
    configure_day(day, round_type="18-hole")
    assert (day["round_type"], day["available_time"]) == (None, 240)


def test_default_challenges_when_catalog_has_none(rng):
    challenges = on_course_challenges([{"id": "x", "title": "Gate Putting", "category": "Putting"}])
    assert len(challenges) == 5
    assert all(c["xp_value"] == 500 for c in challenges)
    assert pick_challenge(challenges, "18-hole", rng)["title"] == "Alternate Club Round"


def test_day_summary_and_completion(week_with_drills):
    day = week_with_drills[0]
    summary = day_summary(day)
    assert summary["total_time"] == 255
    assert summary["categories"] == ["Putting", "On-Course"]
    assert summary["done"] is False
    for d in day["drills"]:
        d["completed"] = True
    assert is_day_complete(day)
    assert day_summary(new_week()[0]) is None


def test_plan_shares_nothing_with_input(week_with_drills, catalog, rng):
    configure_day(week_with_drills[2], selected=True, available_time=30)
    plan = generate_plan(week_with_drills, "Putting", catalog, rng=rng)
    plan[0]["drills"][0]["completed"] = True
    plan[0]["drills"].append({"id": "extra"})
    plan[2]["facilities"].append("home")
    assert week_with_drills[0]["drills"][0]["completed"] is False
    assert len(week_with_drills[0]["drills"]) == 2
    assert week_with_drills[2]["facilities"] == []
