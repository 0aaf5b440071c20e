"""
Activity Aggregator: the progress formula, clamping, rounding and exclusion
of rows that point at missing or unusable lessons / assignments.
"""
import logging
from typing import List

import pytest
from sqlalchemy import text

from eduprogress.orm.lesson_progress import LessonStatus
from eduprogress.orm.submission import SubmissionStatus
from eduprogress.services.activity_aggregator import (
    ActivityAggregator,
    ProgressRecord,
    SqlProgressDataSource,
    SubmissionRecord,
    parse_status,
    summarize,
)


class InMemorySource:
    """ProgressDataSource over plain lists."""

    def __init__(
        self,
        progress: List[ProgressRecord],
        total_lessons: int,
        submissions: List[SubmissionRecord],
        total_assignments: int,
    ):
        self.progress = progress
        self.total_lessons = total_lessons
        self.submissions = submissions
        self.total_assignments = total_assignments

    async def progress_rows(self, student_id):
        return self.progress

    async def active_lesson_count(self):
        return self.total_lessons

    async def submission_rows(self, student_id):
        return self.submissions

    async def assignments_in_scope_count(self, student_id):
        return self.total_assignments


def completed(lesson_id, score=None, time_spent=0, **kwargs):
    return ProgressRecord(lesson_id, LessonStatus.COMPLETED, score, time_spent, **kwargs)


def in_progress(lesson_id, time_spent=0):
    return ProgressRecord(lesson_id, LessonStatus.IN_PROGRESS, None, time_spent)


def graded(submission_id, score, max_points=100.0, **kwargs):
    return SubmissionRecord(submission_id, submission_id, SubmissionStatus.GRADED, score, max_points=max_points, **kwargs)


def submitted(submission_id, **kwargs):
    return SubmissionRecord(submission_id, submission_id, SubmissionStatus.SUBMITTED, None, **kwargs)


class TestFormula:

    def test_reference_scenario(self):
        report = summarize(
            student_id=1,
            progress_rows=[completed(1, 80), completed(2, 100)],
            total_lessons=10,
            submission_rows=[graded(1, 45, max_points=50)],
            total_assignments=2,
        )
        assert report.lessons.completion_rate == "20.00"
        assert report.lessons.average_score == "90.00"
        assert report.assignments.submission_rate == "50.00"
        assert report.assignments.average_score == "90.00"
        assert report.overall.progress == "32.00"
        assert report.overall.average_score == "90.00"

    def test_empty_student(self):
        report = summarize(1, [], 0, [], 0)
        dumped = report.model_dump(by_alias=True)
        assert dumped == {
            "lessons": {"viewed": 0, "completed": 0, "total": 0, "completionRate": "0.00", "averageScore": "0.00"},
            "assignments": {"submitted": 0, "graded": 0, "total": 0, "submissionRate": "0.00", "averageScore": "0.00"},
            "overall": {"progress": "0.00", "averageScore": "0.00", "totalTimeSpent": 0},
        }

    def test_viewed_and_completed_counts(self):
        report = summarize(
            1,
            [
                completed(1, 70),
                in_progress(2),
                ProgressRecord(3, LessonStatus.NOT_STARTED, None, 0),
            ],
            total_lessons=4,
            submission_rows=[],
            total_assignments=0,
        )
        assert report.lessons.viewed == 2
        assert report.lessons.completed == 1
        assert report.lessons.total == 4

    def test_unscored_completions_do_not_dilute_average(self):
        report = summarize(1, [completed(1, 60), completed(2)], 2, [], 0)
        assert report.lessons.average_score == "60.00"

    def test_submitted_and_graded_counts(self):
        report = summarize(
            1, [], 0,
            [
                graded(1, 10),
                submitted(2),
                SubmissionRecord(3, 3, SubmissionStatus.DRAFT, None),
                SubmissionRecord(4, 4, SubmissionStatus.RETURNED, 90.0),
            ],
            total_assignments=4,
        )
        assert report.assignments.submitted == 2
        assert report.assignments.graded == 1
        assert report.assignments.submission_rate == "50.00"

    def test_overall_average_weighted_by_sample_size(self):
        # Three scored lessons at 100, one graded submission at 0%
        report = summarize(
            1,
            [completed(1, 100), completed(2, 100), completed(3, 100)],
            3,
            [graded(1, 0)],
            1,
        )
        assert report.overall.average_score == "75.00"

    def test_total_time_spent_is_integer_sum(self):
        report = summarize(1, [completed(1, 90, time_spent=30), in_progress(2, time_spent=45)], 2, [], 0)
        assert report.overall.total_time_spent == 75
        assert isinstance(report.overall.total_time_spent, int)

    def test_rates_are_clamped(self):
        # More completions than active lessons (lessons archived after completion)
        report = summarize(
            1,
            [completed(1, 100), completed(2, 100), completed(3, 100)],
            total_lessons=2,
            submission_rows=[graded(1, 120)],
            total_assignments=0,
        )
        assert report.lessons.completion_rate == "100.00"
        assert report.assignments.average_score == "100.00"
        assert report.assignments.submission_rate == "0.00"
        assert report.overall.progress == "60.00"

    @pytest.mark.parametrize("completed_count,total_lessons,submitted_count,total_assignments", [
        (1, 3, 1, 3),
        (2, 7, 5, 9),
        (0, 5, 3, 3),
        (4, 4, 0, 6),
        (1, 1, 1, 1),
    ])
    def test_overall_is_weighted_blend(self, completed_count, total_lessons, submitted_count, total_assignments):
        report = summarize(
            1,
            [completed(i) for i in range(completed_count)],
            total_lessons,
            [submitted(i) for i in range(submitted_count)],
            total_assignments,
        )
        lesson_rate = float(report.lessons.completion_rate)
        submission_rate = float(report.assignments.submission_rate)
        overall = float(report.overall.progress)
        for value in (lesson_rate, submission_rate, overall):
            assert 0 <= value <= 100
        assert abs(overall - (0.6 * lesson_rate + 0.4 * submission_rate)) <= 0.01


class TestExclusions:

    def test_missing_lesson_is_skipped_and_logged(self, caplog):
        with caplog.at_level(logging.WARNING, logger="eduprogress.services.activity_aggregator"):
            report = summarize(
                1,
                [completed(1, 80, time_spent=10), completed(2, 0, time_spent=50, lesson_exists=False)],
                total_lessons=2,
                submission_rows=[],
                total_assignments=0,
            )
        assert report.lessons.completed == 1
        assert report.lessons.average_score == "80.00"
        assert report.overall.total_time_spent == 10
        assert "missing lesson=2" in caplog.text

    @pytest.mark.parametrize("bad_row", [
        graded(9, 10, assignment_exists=False),
        graded(9, 10, assignment_active=False),
        graded(9, 10, max_points=0),
        graded(9, 10, max_points=None),
    ])
    def test_unusable_assignment_is_skipped(self, bad_row, caplog):
        with caplog.at_level(logging.WARNING, logger="eduprogress.services.activity_aggregator"):
            report = summarize(1, [], 0, [graded(1, 50), bad_row], total_assignments=2)
        assert report.assignments.submitted == 1
        assert report.assignments.graded == 1
        assert report.assignments.average_score == "50.00"
        assert "submission=9" in caplog.text


class TestAggregatorWithSources:

    @pytest.mark.asyncio
    async def test_in_memory_source(self):
        source = InMemorySource([completed(1, 80), completed(2, 100)], 10, [graded(1, 45, max_points=50)], 2)
        report = await ActivityAggregator(source).compute(student_id=1)
        assert report.overall.progress == "32.00"

    @pytest.mark.asyncio
    async def test_sql_source_reference_scenario(self, db, make):
        teacher = await make.teacher()
        student = await make.student()
        await make.enroll(teacher, student)

        lessons = [await make.lesson(teacher, title=f"Lesson {i}") for i in range(10)]
        await make.lesson(teacher, is_active=False, title="Archived")
        await make.progress(student, lessons[0].id, LessonStatus.COMPLETED, score=80, time_spent=20)
        await make.progress(student, lessons[1].id, LessonStatus.COMPLETED, score=100, time_spent=25)
        await make.progress(student, lessons[2].id, LessonStatus.IN_PROGRESS, time_spent=5)

        quiz = await make.assignment(teacher, max_points=50)
        await make.assignment(teacher, assigned_to=[student.id])
        await make.assignment(teacher, assigned_to=[student.id + 1000])
        await make.submission(student, quiz.id, SubmissionStatus.GRADED, score=45)

        report = await ActivityAggregator(SqlProgressDataSource(db)).compute(student.id)
        dumped = report.model_dump(by_alias=True)

        assert dumped["lessons"] == {
            "viewed": 3, "completed": 2, "total": 10, "completionRate": "20.00", "averageScore": "90.00"
        }
        assert dumped["assignments"] == {
            "submitted": 1, "graded": 1, "total": 2, "submissionRate": "50.00", "averageScore": "90.00"
        }
        assert dumped["overall"] == {"progress": "32.00", "averageScore": "90.00", "totalTimeSpent": 50}

    @pytest.mark.asyncio
    async def test_sql_source_skips_inactive_assignment_submission(self, db, make):
        teacher = await make.teacher()
        student = await make.student()
        await make.enroll(teacher, student)
        live = await make.assignment(teacher)
        archived = await make.assignment(teacher, is_active=False)
        await make.submission(student, live.id, SubmissionStatus.GRADED, score=70)
        await make.submission(student, archived.id, SubmissionStatus.GRADED, score=10)

        report = await ActivityAggregator(SqlProgressDataSource(db)).compute(student.id)
        assert report.assignments.total == 1
        assert report.assignments.graded == 1
        assert report.assignments.average_score == "70.00"
        assert report.assignments.submission_rate == "100.00"

    @pytest.mark.asyncio
    async def test_sql_source_skips_unreadable_status(self, db, make, caplog):
        teacher = await make.teacher()
        student = await make.student()
        await make.enroll(teacher, student)
        first = await make.lesson(teacher, title="Kept")
        second = await make.lesson(teacher, title="Corrupted")
        await make.progress(student, first.id, LessonStatus.COMPLETED, score=80, time_spent=10)
        broken = await make.progress(student, second.id, LessonStatus.COMPLETED, score=0, time_spent=40)
        quiz = await make.assignment(teacher)
        other = await make.assignment(teacher)
        await make.submission(student, quiz.id, SubmissionStatus.GRADED, score=60)
        broken_submission = await make.submission(student, other.id, SubmissionStatus.GRADED, score=0)

        await db.execute(text("UPDATE lesson_progress SET status = 'bogus' WHERE id = :id"), {"id": broken.id})
        await db.execute(text("UPDATE submissions SET status = 'bogus' WHERE id = :id"), {"id": broken_submission.id})
        await db.commit()

        with caplog.at_level(logging.WARNING, logger="eduprogress.services.activity_aggregator"):
            report = await ActivityAggregator(SqlProgressDataSource(db)).compute(student.id)

        assert report.lessons.completed == 1
        assert report.lessons.average_score == "80.00"
        assert report.overall.total_time_spent == 10
        assert report.assignments.graded == 1
        assert report.assignments.average_score == "60.00"
        assert "unreadable status" in caplog.text


class TestParseStatus:

    @pytest.mark.parametrize("raw,expected", [
        ("COMPLETED", LessonStatus.COMPLETED),
        ("completed", LessonStatus.COMPLETED),
        (LessonStatus.IN_PROGRESS, LessonStatus.IN_PROGRESS),
        ("bogus", None),
        (None, None),
    ])
    def test_names_and_values(self, raw, expected):
        assert parse_status(LessonStatus, raw) == expected
