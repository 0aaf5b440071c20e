"""
Shared fixtures: an in-memory async SQLite database per test and a small
factory for the platform's entities.
"""
from datetime import datetime, timedelta
from typing import AsyncGenerator, Iterable, Optional

import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from eduprogress.orm import (
    Base,
    Student,
    Teacher,
    Parent,
    StudentParent,
    TeacherStudent,
    Lesson,
    Assignment,
    LessonProgress,
    LessonStatus,
    Submission,
    SubmissionStatus,
)

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest_asyncio.fixture
async def engine():
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def db(engine) -> AsyncGenerator[AsyncSession, None]:
    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with session_factory() as session:
        yield session


class Factory:
    """Creates and commits rows with sensible defaults."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self._counter = 0

    def _next(self) -> int:
        self._counter += 1
        return self._counter

    async def _save(self, obj):
        self.db.add(obj)
        await self.db.commit()
        await self.db.refresh(obj)
        return obj

    async def teacher(self, first_name: str = "Tara") -> Teacher:
        n = self._next()
        return await self._save(Teacher(first_name=first_name, last_name=f"Teacher{n}", email=f"t{n}@school.test"))

    async def student(self, first_name: str = "Sam", grade: Optional[str] = "5") -> Student:
        n = self._next()
        return await self._save(Student(
            first_name=first_name, last_name=f"Student{n}", email=f"s{n}@school.test", grade=grade
        ))

    async def parent(self) -> Parent:
        n = self._next()
        return await self._save(Parent(first_name="Pat", last_name=f"Parent{n}", email=f"p{n}@home.test"))

    async def link_parent(self, parent: Parent, student: Student) -> StudentParent:
        return await self._save(StudentParent(parent_id=parent.id, student_id=student.id))

    async def enroll(self, teacher: Teacher, *students: Student) -> None:
        for student in students:
            self.db.add(TeacherStudent(teacher_id=teacher.id, student_id=student.id))
        await self.db.commit()

    async def lesson(self, teacher: Teacher, is_active: bool = True, title: str = "Fractions") -> Lesson:
        return await self._save(Lesson(teacher_id=teacher.id, title=title, is_active=is_active))

    async def assignment(
        self,
        teacher: Teacher,
        assigned_to: Iterable[int] = (),
        max_points: float = 100,
        is_active: bool = True,
        due_date: Optional[datetime] = None,
        title: str = "Worksheet",
    ) -> Assignment:
        assignment = Assignment(
            teacher_id=teacher.id,
            title=title,
            max_points=max_points,
            is_active=is_active,
            due_date=due_date or datetime.utcnow() + timedelta(days=7),
        )
        assignment.assign_to(assigned_to)
        return await self._save(assignment)

    async def progress(
        self,
        student: Student,
        lesson_id: int,
        status: LessonStatus = LessonStatus.IN_PROGRESS,
        score: Optional[float] = None,
        time_spent: int = 0,
    ) -> LessonProgress:
        return await self._save(LessonProgress(
            student_id=student.id,
            lesson_id=lesson_id,
            status=status,
            score=score,
            time_spent=time_spent,
            completed_at=datetime.utcnow() if status == LessonStatus.COMPLETED else None,
        ))

    async def submission(
        self,
        student: Student,
        assignment_id: int,
        status: SubmissionStatus = SubmissionStatus.SUBMITTED,
        score: Optional[float] = None,
        content: str = "my answer",
    ) -> Submission:
        return await self._save(Submission(
            assignment_id=assignment_id,
            student_id=student.id,
            status=status,
            score=score,
            content=content,
            submitted_at=datetime.utcnow() if status != SubmissionStatus.DRAFT else None,
        ))


@pytest_asyncio.fixture
async def make(db: AsyncSession) -> Factory:
    return Factory(db)
