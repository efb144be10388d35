"""
ELO 레이팅 계산

K-factor 32의 표준 ELO 공식. I/O 없는 순수 함수만 둡니다.
"""
import math
from typing import Tuple

K_FACTOR = 32


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def expected_score(rating_a: int, rating_b: int) -> float:
    """A가 B를 이길 기대 확률"""
    return 1 / (1 + math.pow(10, (rating_b - rating_a) / 400))


def calculate_elo_change(winner_rating: int, loser_rating: int) -> Tuple[int, int]:
    """
    승패 결과에 따른 레이팅 변화량

    Args:
        winner_rating: 승자의 현재 레이팅
        loser_rating: 패자의 현재 레이팅

    Returns:
        (승자 획득 점수, 패자 차감 점수) - 둘 다 양수
    """
    winner_delta = _round_half_up(K_FACTOR * (1 - expected_score(winner_rating, loser_rating)))
    loser_delta = _round_half_up(K_FACTOR * expected_score(loser_rating, winner_rating))
    return winner_delta, loser_delta


def calculate_new_ratings(winner_rating: int, loser_rating: int) -> Tuple[int, int]:
    """
    승패 결과 반영 후 새 레이팅

    Returns:
        (승자 새 레이팅, 패자 새 레이팅) - 레이팅은 0 미만으로 내려가지 않음
    """
    winner_delta, loser_delta = calculate_elo_change(winner_rating, loser_rating)
    return winner_rating + winner_delta, max(0, loser_rating - loser_delta)


def calculate_draw_change(rating_a: int, rating_b: int) -> Tuple[int, int]:
    """
    무승부 변화량 (기대값 0.5 기준)

    매치 종료 경로에서는 사용하지 않습니다. 타임아웃은 레이팅 변화 없이 끝납니다.
    """
    delta_a = _round_half_up(K_FACTOR * (0.5 - expected_score(rating_a, rating_b)))
    delta_b = _round_half_up(K_FACTOR * (0.5 - expected_score(rating_b, rating_a)))
    return delta_a, delta_b
