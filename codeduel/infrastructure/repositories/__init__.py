from codeduel.infrastructure.repositories.match_repository import MatchRepository
from codeduel.infrastructure.repositories.player_repository import PlayerRepository
from codeduel.infrastructure.repositories.problem_repository import ProblemRepository

__all__ = [
    "MatchRepository",
    "PlayerRepository",
    "ProblemRepository",
]
