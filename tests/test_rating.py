"""
ELO 레이팅 계산 테스트
"""
import pytest

from codeduel.domain.rating import (
    K_FACTOR,
    calculate_draw_change,
    calculate_elo_change,
    calculate_new_ratings,
    expected_score,
)


def test_expected_score_equal_ratings():
    assert expected_score(1500, 1500) == pytest.approx(0.5)


def test_expected_score_is_symmetric():
    assert expected_score(1200, 1000) + expected_score(1000, 1200) == pytest.approx(1.0)
    assert expected_score(1200, 1000) == pytest.approx(0.7597, abs=1e-4)


@pytest.mark.parametrize("rating", [0, 800, 1000, 1500, 2400])
def test_equal_ratings_exchange_half_k(rating):
    winner_delta, loser_delta = calculate_elo_change(rating, rating)
    assert winner_delta == K_FACTOR // 2 == 16
    assert loser_delta == 16


def test_favourite_wins_small_gain():
    winner_delta, loser_delta = calculate_elo_change(1200, 1000)
    assert winner_delta == 8
    assert loser_delta == 8
    assert calculate_new_ratings(1200, 1000) == (1208, 992)


def test_underdog_wins_large_gain():
    winner_new, loser_new = calculate_new_ratings(1000, 1200)
    assert winner_new == 1024
    assert loser_new == 1176


def test_loser_rating_floored_at_zero():
    winner_new, loser_new = calculate_new_ratings(10, 10)
    assert winner_new == 26
    assert loser_new == 0


def test_draw_change_balanced_for_equal_ratings():
    assert calculate_draw_change(1000, 1000) == (0, 0)

    delta_low, delta_high = calculate_draw_change(1000, 1200)
    assert delta_low > 0
    assert delta_high < 0
