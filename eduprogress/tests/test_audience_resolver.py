"""
Audience Resolver: explicit audiences vs the all-enrolled sentinel.
"""
import pytest
from sqlalchemy import delete

from eduprogress.orm.enrollment import TeacherStudent
from eduprogress.services.audience_resolver import (
    Audience,
    AudienceKind,
    AudienceResolver,
    audience_of,
    student_in_audience,
)


class TestAudienceValue:

    def test_empty_list_is_all_enrolled(self):
        audience = Audience.from_assigned_to([])
        assert audience.kind == AudienceKind.ALL_ENROLLED
        assert not audience.is_specific

    def test_none_is_all_enrolled(self):
        assert Audience.from_assigned_to(None) == Audience.all_enrolled()

    def test_specific_keeps_order_and_drops_duplicates(self):
        audience = Audience.from_assigned_to([3, 1, 3, 2])
        assert audience.is_specific
        assert audience.student_ids == (3, 1, 2)

    def test_specific_requires_students(self):
        with pytest.raises(ValueError):
            Audience.specific([])

    def test_predicate_specific_ignores_enrollment(self):
        audience = Audience.specific([7])
        assert student_in_audience(audience, teacher_id=1, student_id=7, student_teacher_ids=set())
        assert not student_in_audience(audience, teacher_id=1, student_id=8, student_teacher_ids={1})

    def test_predicate_all_enrolled_uses_enrollment(self):
        audience = Audience.all_enrolled()
        assert student_in_audience(audience, teacher_id=1, student_id=7, student_teacher_ids={1, 2})
        assert not student_in_audience(audience, teacher_id=1, student_id=7, student_teacher_ids={2})


class TestAllEnrolledScenario:
    """Teacher T with students A, B, C; assignment X has no explicit audience."""

    @pytest.mark.asyncio
    async def test_roster_follows_enrollment(self, db, make):
        teacher = await make.teacher()
        a, b, c = await make.student(), await make.student(), await make.student()
        await make.enroll(teacher, a, b, c)
        x = await make.assignment(teacher)
        resolver = AudienceResolver(db)

        assert audience_of(x).kind == AudienceKind.ALL_ENROLLED
        assert await resolver.is_in_scope(x, a.id) is True
        assert await resolver.total_assigned(x) == 3
        assert await resolver.effective_roster(x) == sorted([a.id, b.id, c.id])

        await db.execute(
            delete(TeacherStudent).where(
                TeacherStudent.teacher_id == teacher.id,
                TeacherStudent.student_id == c.id
            )
        )
        await db.commit()

        assert await resolver.effective_roster(x) == sorted([a.id, b.id])
        assert await resolver.total_assigned(x) == 2
        assert await resolver.is_in_scope(x, c.id) is False

    @pytest.mark.asyncio
    async def test_scope_agrees_with_roster_for_every_student(self, db, make):
        teacher = await make.teacher()
        other = await make.teacher()
        enrolled = [await make.student() for _ in range(3)]
        outsider = await make.student()
        await make.enroll(teacher, *enrolled)
        await make.enroll(other, outsider)
        x = await make.assignment(teacher)
        resolver = AudienceResolver(db)

        roster = set(await resolver.effective_roster(x))
        for student in enrolled + [outsider]:
            assert await resolver.is_in_scope(x, student.id) == (student.id in roster)


class TestExplicitAudienceScenario:

    @pytest.mark.asyncio
    async def test_listed_student_stays_in_scope_after_unenrollment(self, db, make):
        teacher = await make.teacher()
        a, b = await make.student(), await make.student()
        await make.enroll(teacher, a, b)
        y = await make.assignment(teacher, assigned_to=[a.id])
        resolver = AudienceResolver(db)

        assert await resolver.is_in_scope(y, a.id) is True
        assert await resolver.is_in_scope(y, b.id) is False

        await db.execute(delete(TeacherStudent).where(TeacherStudent.student_id == a.id))
        await db.commit()

        assert await resolver.is_in_scope(y, a.id) is True
        assert await resolver.effective_roster(y) == [a.id]
        assert await resolver.total_assigned(y) == 1

    @pytest.mark.asyncio
    async def test_roster_is_verbatim_in_stored_order(self, db, make):
        teacher = await make.teacher()
        y = await make.assignment(teacher, assigned_to=[42, 7, 19])
        resolver = AudienceResolver(db)

        # Unknown ids are kept; no existence check
        assert await resolver.effective_roster(y) == [42, 7, 19]
        assert await resolver.total_assigned(y) == 3

    @pytest.mark.asyncio
    async def test_roster_unaffected_by_new_enrollments(self, db, make):
        teacher = await make.teacher()
        a, b = await make.student(), await make.student()
        y = await make.assignment(teacher, assigned_to=[a.id])
        await make.enroll(teacher, a, b)

        assert await AudienceResolver(db).effective_roster(y) == [a.id]

    @pytest.mark.asyncio
    async def test_replacing_audience_keeps_retained_members(self, db, make):
        teacher = await make.teacher()
        y = await make.assignment(teacher, assigned_to=[1, 2, 3])

        y.assign_to([3, 1, 4])
        await db.commit()
        await db.refresh(y)
        assert y.assigned_to == [3, 1, 4]

        y.assign_to([])
        await db.commit()
        await db.refresh(y)
        assert y.assigned_to == []
        assert audience_of(y).kind == AudienceKind.ALL_ENROLLED


class TestBatchRostersAndListing:

    @pytest.mark.asyncio
    async def test_effective_rosters_match_single_lookups(self, db, make):
        teacher = await make.teacher()
        a, b = await make.student(), await make.student()
        await make.enroll(teacher, a, b)
        x = await make.assignment(teacher)
        y = await make.assignment(teacher, assigned_to=[b.id])
        resolver = AudienceResolver(db)

        rosters = await resolver.effective_rosters([x, y])
        assert rosters[x.id] == await resolver.effective_roster(x)
        assert rosters[y.id] == [b.id]

    @pytest.mark.asyncio
    async def test_assignments_in_scope(self, db, make):
        teacher = await make.teacher()
        stranger_teacher = await make.teacher()
        a, b = await make.student(), await make.student()
        await make.enroll(teacher, a, b)

        for_all = await make.assignment(teacher, title="all")
        only_a = await make.assignment(teacher, assigned_to=[a.id], title="only a")
        only_b = await make.assignment(teacher, assigned_to=[b.id], title="only b")
        inactive = await make.assignment(teacher, is_active=False, title="archived")
        foreign_all = await make.assignment(stranger_teacher, title="foreign all")
        foreign_explicit = await make.assignment(stranger_teacher, assigned_to=[a.id], title="foreign explicit")

        resolver = AudienceResolver(db)
        visible = {assignment.id for assignment in await resolver.assignments_in_scope(a.id)}
        assert visible == {for_all.id, only_a.id, foreign_explicit.id}
        assert only_b.id not in visible
        assert foreign_all.id not in visible

        with_inactive = {
            assignment.id for assignment in await resolver.assignments_in_scope(a.id, active_only=False)
        }
        assert inactive.id in with_inactive

    @pytest.mark.asyncio
    async def test_listing_agrees_with_is_in_scope(self, db, make):
        teacher = await make.teacher()
        students = [await make.student() for _ in range(3)]
        await make.enroll(teacher, students[0], students[1])
        assignments = [
            await make.assignment(teacher),
            await make.assignment(teacher, assigned_to=[students[2].id]),
            await make.assignment(teacher, assigned_to=[students[0].id, students[2].id]),
        ]
        resolver = AudienceResolver(db)

        for student in students:
            listed = {assignment.id for assignment in await resolver.assignments_in_scope(student.id)}
            for assignment in assignments:
                assert (assignment.id in listed) == await resolver.is_in_scope(assignment, student.id)
