import pytest

from stats import CATEGORIES, compute_averages, stats_summary, weakest_category


def test_no_rounds_defaults_to_putting():
    assert weakest_category([]) == "Putting"


def test_approach_wins_with_largest_gir_gap(make_round):
    # FIR 50/60/70 %, GIR 7/8/9 of 18, 50% up-and-down, 30 putts
    rounds = [
        make_round(fir_hit=7, fir_left=4, fir_right=3, total_gir=7,
                   up_and_down_conversions=5, missed=5, total_putts=30),
        make_round(fir_hit=6, fir_left=2, fir_right=2, total_gir=8,
                   up_and_down_conversions=5, missed=5, total_putts=30),
        make_round(fir_hit=7, fir_left=2, fir_right=1, total_gir=9,
                   up_and_down_conversions=5, missed=5, total_putts=30),
    ]
    averages = compute_averages(rounds)
    assert averages["fir"] == pytest.approx(60.0)
    assert averages["gir"] == pytest.approx(24 / 54 * 100)
    assert averages["up_and_down"] == pytest.approx(50.0)
    assert averages["putts"] == pytest.approx(30.0)
    assert weakest_category(rounds) == "Approach"


def test_driving_wins_with_few_fairways(make_round):
    rounds = [make_round(fir_hit=2, fir_left=6, fir_right=6, total_gir=12,
                         up_and_down_conversions=6, missed=4, total_putts=31)]
    assert weakest_category(rounds) == "Driving"


def test_putting_gap_is_inverted(make_round):
    rounds = [make_round(fir_hit=10, fir_left=2, fir_right=2, total_gir=12,
                         up_and_down_conversions=8, missed=2, total_putts=40)]
    assert weakest_category(rounds) == "Putting"


def test_short_game_wins_when_scrambling_is_poor(make_round):
    rounds = [make_round(fir_hit=10, fir_left=2, fir_right=2, total_gir=12,
                         up_and_down_conversions=0, missed=6, total_putts=30)]
    assert weakest_category(rounds) == "Short Game"


def test_missed_short_putts_in_latest_round_forces_putting(make_round):
    rounds = [
        make_round(fir_hit=1, fir_left=7, fir_right=6, total_putts=28),
        make_round(fir_hit=1, fir_left=7, fir_right=6, total_putts=28, missed_6ft_and_in=3),
    ]
    assert weakest_category(rounds) == "Putting"


def test_missed_short_putts_in_older_round_is_ignored(make_round):
    rounds = [
        make_round(fir_hit=1, fir_left=7, fir_right=6, total_gir=12, total_putts=28,
                   missed_6ft_and_in=5),
        make_round(fir_hit=1, fir_left=7, fir_right=6, total_gir=12, total_putts=28,
                   missed_6ft_and_in=2),
    ]
    assert weakest_category(rounds) == "Driving"


def test_zero_denominators_average_to_zero(make_round):
    averages = compute_averages([make_round()])
    assert averages == {"gir": 0, "fir": 0, "up_and_down": 0, "putts": 0}


def test_rounds_without_tee_shots_do_not_dilute_fir(make_round):
    rounds = [make_round(fir_hit=7, fir_left=7), make_round(holes=9)]
    assert compute_averages(rounds)["fir"] == pytest.approx(50.0)
    assert compute_averages(rounds)["gir"] == 0


@pytest.mark.parametrize("fields", [
    {},
    {"total_putts": 45},
    {"fir_hit": 14},
    {"total_gir": 18, "fir_hit": 14, "up_and_down_conversions": 9, "total_putts": 25},
])
def test_weakest_is_always_a_known_category(make_round, fields):
    assert weakest_category([make_round(**fields)]) in CATEGORIES


def test_summary_totals_scoring(make_round):
    rounds = [make_round(birdies=2, pars=9), make_round(birdies=1, eagles=1)]
    summary = stats_summary(rounds)
    assert summary["rounds"] == 2
    assert summary["scoring"]["birdies"] == 3
    assert summary["scoring"]["eagles"] == 1
    assert summary["scoring"]["double_bogeys"] == 0
    assert summary["goals"]["putts"] == 32
    assert summary["weakest"] in CATEGORIES
