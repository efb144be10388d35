"""
매치메이킹 모듈
"""
from codeduel.domain.matchmaking.lobby_queue import LobbyQueue, compute_search_range

__all__ = [
    "LobbyQueue",
    "compute_search_range",
]
