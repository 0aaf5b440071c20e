"""
Roster Index

Read-only view over teacher_students. Unknown teachers or students resolve to
empty sets, never errors; callers own 404 semantics.
"""
import logging
from typing import Set

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from eduprogress.orm.enrollment import TeacherStudent

logger = logging.getLogger(__name__)


class RosterIndex:
    """Teacher ↔ Student enrollment lookups."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def enrolled_students(self, teacher_id: int) -> Set[int]:
        result = await self.db.execute(
            select(TeacherStudent.student_id).where(TeacherStudent.teacher_id == teacher_id)
        )
        return set(result.scalars().all())

    async def enrolled_teachers(self, student_id: int) -> Set[int]:
        result = await self.db.execute(
            select(TeacherStudent.teacher_id).where(TeacherStudent.student_id == student_id)
        )
        return set(result.scalars().all())

    async def is_enrolled(self, teacher_id: int, student_id: int) -> bool:
        result = await self.db.execute(
            select(TeacherStudent.id).where(
                TeacherStudent.teacher_id == teacher_id,
                TeacherStudent.student_id == student_id
            ).limit(1)
        )
        return result.scalar_one_or_none() is not None
