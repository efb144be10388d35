"""
문제 Repository
"""
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from codeduel.domain.models import Problem, TestCase
from codeduel.infrastructure.persistence.models.enums import DifficultyEnum
from codeduel.infrastructure.persistence.models.problems import Problem as ProblemRow


def to_problem(row: ProblemRow) -> Problem:
    return Problem(
        id=row.id,
        title=row.title,
        description=row.description,
        difficulty=DifficultyEnum(row.difficulty),
        test_cases=[TestCase.from_dict(tc) for tc in (row.test_cases or [])],
        created_at=row.created_at,
    )


class ProblemRepository:
    """문제 데이터 접근 계층"""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_by_id(self, problem_id: str) -> Optional[Problem]:
        result = await self.db.execute(select(ProblemRow).where(ProblemRow.id == problem_id))
        row = result.scalar_one_or_none()
        return to_problem(row) if row else None

    async def get_random(self, difficulty: Optional[DifficultyEnum] = None) -> Optional[Problem]:
        """무작위 문제 1개 (난이도 필터 선택)"""
        query = select(ProblemRow)
        if difficulty is not None:
            query = query.where(ProblemRow.difficulty == difficulty)
        query = query.order_by(func.random()).limit(1)

        result = await self.db.execute(query)
        row = result.scalar_one_or_none()
        return to_problem(row) if row else None
