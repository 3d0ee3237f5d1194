"""Teacher to classroom assignment in schools without streams."""
import pytest
from sqlalchemy.exc import IntegrityError

from school_admin.core.errors import ConcurrentAssignmentError, WrongModeError
from school_admin.models import ClassroomTeacher, School
from school_admin.services.assignment_engine import AssignmentEngine

API = "/api/v1"


def error_of(response) -> dict:
    body = response.json()
    assert body["success"] is False
    return body


class TestExampleScenario:
    """Capacity and the one-class-teacher rule working together."""

    async def test_capacity_then_class_teacher_elsewhere(self, client, factory, plain_school, admin_headers, count_rows):
        """Two classes fill the teacher, promotion stays free, a second promotion is refused."""
        teacher = await factory.teacher(plain_school, max_classes=2)
        a = await factory.classroom(plain_school, "Grade 7A")
        b = await factory.classroom(plain_school, "Grade 7B")
        c = await factory.classroom(plain_school, "Grade 7C")

        for classroom in (a, b):
            response = await client.post(
                f"{API}/classrooms/{classroom.id}/teachers",
                json={"teacher_id": teacher.id},
                headers=admin_headers
            )
            assert response.status_code == 201

        response = await client.post(
            f"{API}/classrooms/{c.id}/teachers", json={"teacher_id": teacher.id}, headers=admin_headers
        )
        assert response.status_code == 422
        body = error_of(response)
        assert body["error_code"] == "CAPACITY_EXCEEDED"
        assert "2 classes" in body["message"]
        assert "maximum allowed (2)" in body["message"]
        assert body["errors"]["teacher_id"] == [body["message"]]
        assert await count_rows(ClassroomTeacher, ClassroomTeacher.teacher_id == teacher.id) == 2

        response = await client.post(
            f"{API}/classrooms/{a.id}/class-teacher", json={"teacher_id": teacher.id}, headers=admin_headers
        )
        assert response.status_code == 200
        assert response.json()["class_teacher"]["id"] == teacher.id
        assert await count_rows(ClassroomTeacher, ClassroomTeacher.teacher_id == teacher.id) == 2

        response = await client.post(
            f"{API}/classrooms/{b.id}/class-teacher", json={"teacher_id": teacher.id}, headers=admin_headers
        )
        assert response.status_code == 422
        body = error_of(response)
        assert body["error_code"] == "ALREADY_CLASS_TEACHER"
        assert "Grade 7A" in body["message"]
        assert body["details"]["existing_classroom"]["id"] == a.id
        assert await count_rows(
            ClassroomTeacher,
            ClassroomTeacher.teacher_id == teacher.id,
            ClassroomTeacher.is_class_teacher.is_(True)
        ) == 1


class TestAssignTeacherToClassroom:
    """Single attach endpoint."""

    async def test_returns_enriched_link(self, client, factory, plain_school, admin_headers):
        teacher = await factory.teacher(plain_school, name="Amina Otieno")
        classroom = await factory.classroom(plain_school, "Grade 4")

        response = await client.post(
            f"{API}/classrooms/{classroom.id}/teachers",
            json={"teacher_id": teacher.id, "is_class_teacher": True},
            headers=admin_headers
        )

        assert response.status_code == 201
        link = response.json()["link"]
        assert link["is_class_teacher"] is True
        assert link["teacher"]["name"] == "Amina Otieno"
        assert link["classroom"]["name"] == "Grade 4"

    async def test_same_role_twice_is_duplicate(self, client, factory, plain_school, admin_headers, count_rows):
        teacher = await factory.teacher(plain_school)
        classroom = await factory.classroom(plain_school)
        await factory.link(classroom, teacher)

        response = await client.post(
            f"{API}/classrooms/{classroom.id}/teachers", json={"teacher_id": teacher.id}, headers=admin_headers
        )

        assert response.status_code == 422
        assert error_of(response)["error_code"] == "DUPLICATE_ASSIGNMENT"
        assert await count_rows(ClassroomTeacher, ClassroomTeacher.teacher_id == teacher.id) == 1

    async def test_role_change_updates_link_without_using_a_slot(self, client, factory, plain_school, admin_headers, count_rows):
        """A full teacher can still be promoted in a classroom they already teach."""
        teacher = await factory.teacher(plain_school, max_classes=1)
        classroom = await factory.classroom(plain_school)
        await factory.link(classroom, teacher)

        response = await client.post(
            f"{API}/classrooms/{classroom.id}/teachers",
            json={"teacher_id": teacher.id, "is_class_teacher": True},
            headers=admin_headers
        )

        assert response.status_code == 201
        assert response.json()["link"]["is_class_teacher"] is True
        assert await count_rows(ClassroomTeacher, ClassroomTeacher.teacher_id == teacher.id) == 1

    async def test_demotion_through_attach(self, client, factory, plain_school, admin_headers, count_rows):
        teacher = await factory.teacher(plain_school)
        classroom = await factory.classroom(plain_school)
        await factory.link(classroom, teacher, is_class_teacher=True)

        response = await client.post(
            f"{API}/classrooms/{classroom.id}/teachers",
            json={"teacher_id": teacher.id, "is_class_teacher": False},
            headers=admin_headers
        )

        assert response.status_code == 201
        assert await count_rows(
            ClassroomTeacher,
            ClassroomTeacher.classroom_id == classroom.id,
            ClassroomTeacher.is_class_teacher.is_(True)
        ) == 0

    async def test_class_teacher_attach_refused_when_classroom_has_one(self, client, factory, plain_school, admin_headers, count_rows):
        holder = await factory.teacher(plain_school)
        teacher = await factory.teacher(plain_school)
        classroom = await factory.classroom(plain_school)
        await factory.link(classroom, holder, is_class_teacher=True)

        response = await client.post(
            f"{API}/classrooms/{classroom.id}/teachers",
            json={"teacher_id": teacher.id, "is_class_teacher": True},
            headers=admin_headers
        )

        assert response.status_code == 422
        body = error_of(response)
        assert body["error_code"] == "CLASSROOM_HAS_CLASS_TEACHER"
        assert body["details"]["class_teacher_id"] == holder.id
        assert await count_rows(ClassroomTeacher, ClassroomTeacher.teacher_id == teacher.id) == 0

    async def test_class_teacher_attach_refused_when_teacher_heads_another(self, client, factory, plain_school, admin_headers):
        teacher = await factory.teacher(plain_school)
        a = await factory.classroom(plain_school, "Grade 1")
        b = await factory.classroom(plain_school, "Grade 2")
        await factory.link(a, teacher, is_class_teacher=True)

        response = await client.post(
            f"{API}/classrooms/{b.id}/teachers",
            json={"teacher_id": teacher.id, "is_class_teacher": True},
            headers=admin_headers
        )

        assert response.status_code == 422
        body = error_of(response)
        assert body["error_code"] == "ALREADY_CLASS_TEACHER"
        assert "teacher_id" in body["errors"]
        assert "Grade 1" in body["message"]

    async def test_missing_teacher(self, client, factory, plain_school, admin_headers):
        classroom = await factory.classroom(plain_school)

        response = await client.post(
            f"{API}/classrooms/{classroom.id}/teachers", json={"teacher_id": 9999}, headers=admin_headers
        )

        assert response.status_code == 404
        assert error_of(response)["error_code"] == "NOT_FOUND"

    async def test_teacher_of_another_school(self, client, factory, plain_school, admin_headers, count_rows):
        other = await factory.school()
        outsider = await factory.teacher(other)
        classroom = await factory.classroom(plain_school)

        response = await client.post(
            f"{API}/classrooms/{classroom.id}/teachers", json={"teacher_id": outsider.id}, headers=admin_headers
        )

        assert response.status_code == 422
        body = error_of(response)
        assert body["error_code"] == "CROSS_TENANT"
        assert "teacher_id" in body["errors"]
        assert await count_rows(ClassroomTeacher) == 0

    async def test_classroom_of_another_school(self, client, factory, plain_school, admin_headers):
        other = await factory.school()
        teacher = await factory.teacher(plain_school)
        classroom = await factory.classroom(other)

        response = await client.post(
            f"{API}/classrooms/{classroom.id}/teachers", json={"teacher_id": teacher.id}, headers=admin_headers
        )

        assert response.status_code == 403
        assert error_of(response)["error_code"] == "CROSS_TENANT"

    async def test_refused_in_streamed_school(self, client, factory, streamed_school, streamed_admin_headers):
        teacher = await factory.teacher(streamed_school)
        classroom = await factory.classroom(streamed_school)

        response = await client.post(
            f"{API}/classrooms/{classroom.id}/teachers",
            json={"teacher_id": teacher.id},
            headers=streamed_admin_headers
        )

        assert response.status_code == 403
        body = error_of(response)
        assert body["error_code"] == "WRONG_MODE"
        assert body["message"] == "Your school has streams enabled. Assign teachers to streams instead."

    async def test_teachers_cannot_assign(self, client, factory, plain_school, headers_for):
        teacher = await factory.teacher(plain_school)
        classroom = await factory.classroom(plain_school)
        teacher_user = await factory.user(plain_school, role="teacher")

        response = await client.post(
            f"{API}/classrooms/{classroom.id}/teachers",
            json={"teacher_id": teacher.id},
            headers=headers_for(teacher_user)
        )

        assert response.status_code == 403
        assert error_of(response)["error_code"] == "PERMISSION_DENIED"


class TestRemoveTeacherFromClassroom:
    async def test_removes_link(self, client, factory, plain_school, admin_headers, count_rows):
        teacher = await factory.teacher(plain_school)
        classroom = await factory.classroom(plain_school)
        await factory.link(classroom, teacher)

        response = await client.delete(
            f"{API}/classrooms/{classroom.id}/teachers/{teacher.id}", headers=admin_headers
        )

        assert response.status_code == 200
        assert await count_rows(ClassroomTeacher) == 0

    async def test_not_linked(self, client, factory, plain_school, admin_headers):
        teacher = await factory.teacher(plain_school)
        classroom = await factory.classroom(plain_school)

        response = await client.delete(
            f"{API}/classrooms/{classroom.id}/teachers/{teacher.id}", headers=admin_headers
        )

        assert response.status_code == 404


class TestClassTeacherPromotion:
    """The class-teacher endpoint replaces the holder in one step."""

    async def test_replaces_previous_holder(self, client, factory, plain_school, admin_headers, count_rows):
        holder = await factory.teacher(plain_school)
        teacher = await factory.teacher(plain_school)
        classroom = await factory.classroom(plain_school)
        await factory.link(classroom, holder, is_class_teacher=True)

        response = await client.post(
            f"{API}/classrooms/{classroom.id}/class-teacher", json={"teacher_id": teacher.id}, headers=admin_headers
        )

        assert response.status_code == 200
        body = response.json()
        assert body["class_teacher"]["id"] == teacher.id
        flags = {link["teacher_id"]: link["is_class_teacher"] for link in body["teacher_links"]}
        assert flags == {holder.id: False, teacher.id: True}
        assert await count_rows(
            ClassroomTeacher,
            ClassroomTeacher.classroom_id == classroom.id,
            ClassroomTeacher.is_class_teacher.is_(True)
        ) == 1

    async def test_unlinked_teacher_needs_a_free_slot(self, client, factory, plain_school, admin_headers):
        teacher = await factory.teacher(plain_school, max_classes=1)
        a = await factory.classroom(plain_school)
        b = await factory.classroom(plain_school)
        await factory.link(b, teacher)

        response = await client.post(
            f"{API}/classrooms/{a.id}/class-teacher", json={"teacher_id": teacher.id}, headers=admin_headers
        )

        assert response.status_code == 422
        assert error_of(response)["error_code"] == "CAPACITY_EXCEEDED"

    async def test_linked_teacher_is_promoted_without_a_slot(self, client, factory, plain_school, admin_headers):
        teacher = await factory.teacher(plain_school, max_classes=1)
        classroom = await factory.classroom(plain_school)
        await factory.link(classroom, teacher)

        response = await client.post(
            f"{API}/classrooms/{classroom.id}/class-teacher", json={"teacher_id": teacher.id}, headers=admin_headers
        )

        assert response.status_code == 200
        assert response.json()["teacher_count"] == 1

    async def test_repromotion_is_a_no_op(self, client, factory, plain_school, admin_headers, count_rows):
        teacher = await factory.teacher(plain_school)
        classroom = await factory.classroom(plain_school)
        await factory.link(classroom, teacher, is_class_teacher=True)

        response = await client.post(
            f"{API}/classrooms/{classroom.id}/class-teacher", json={"teacher_id": teacher.id}, headers=admin_headers
        )

        assert response.status_code == 200
        assert await count_rows(ClassroomTeacher) == 1

    async def test_remove_class_teacher_is_idempotent(self, client, factory, plain_school, admin_headers, count_rows):
        teacher = await factory.teacher(plain_school)
        classroom = await factory.classroom(plain_school)
        await factory.link(classroom, teacher, is_class_teacher=True)

        first = await client.delete(f"{API}/classrooms/{classroom.id}/class-teacher", headers=admin_headers)
        second = await client.delete(f"{API}/classrooms/{classroom.id}/class-teacher", headers=admin_headers)

        assert first.json()["message"] == "Class teacher removed successfully"
        assert second.json()["message"] == "Classroom has no class teacher"
        # Demoted, still teaching the class
        assert await count_rows(ClassroomTeacher, ClassroomTeacher.teacher_id == teacher.id) == 1


class TestBulkAssignToClassroom:
    """Many teachers to one classroom."""

    async def test_linked_teachers_are_skipped_and_not_charged(self, client, factory, plain_school, admin_headers):
        full = await factory.teacher(plain_school, max_classes=1)
        fresh = await factory.teacher(plain_school)
        classroom = await factory.classroom(plain_school)
        await factory.link(classroom, full)

        response = await client.post(
            f"{API}/classrooms/{classroom.id}/teachers/bulk",
            json={"teacher_ids": [full.id, fresh.id]},
            headers=admin_headers
        )

        assert response.status_code == 200
        body = response.json()
        assert body["newly_assigned"] == 1
        assert body["skipped"] == 1
        assert body["total_requested"] == 2
        assert [t["id"] for t in body["assigned"]] == [fresh.id]
        assert [t["id"] for t in body["already_assigned"]] == [full.id]

    async def test_one_full_teacher_rejects_the_batch(self, client, factory, plain_school, admin_headers, count_rows):
        fresh = await factory.teacher(plain_school)
        full = await factory.teacher(plain_school, max_classes=1)
        classroom = await factory.classroom(plain_school)
        elsewhere = await factory.classroom(plain_school)
        await factory.link(elsewhere, full)

        response = await client.post(
            f"{API}/classrooms/{classroom.id}/teachers/bulk",
            json={"teacher_ids": [fresh.id, full.id]},
            headers=admin_headers
        )

        assert response.status_code == 422
        body = error_of(response)
        assert body["error_code"] == "CAPACITY_EXCEEDED"
        assert list(body["errors"]) == ["teacher_ids.1"]
        assert await count_rows(ClassroomTeacher, ClassroomTeacher.classroom_id == classroom.id) == 0

    async def test_unknown_teacher(self, client, factory, plain_school, admin_headers, count_rows):
        teacher = await factory.teacher(plain_school)
        classroom = await factory.classroom(plain_school)

        response = await client.post(
            f"{API}/classrooms/{classroom.id}/teachers/bulk",
            json={"teacher_ids": [teacher.id, 9999]},
            headers=admin_headers
        )

        assert response.status_code == 404
        assert error_of(response)["details"]["missing_ids"] == [9999]
        assert await count_rows(ClassroomTeacher) == 0


class TestAssignToManyClassrooms:
    """One teacher to many classrooms."""

    async def test_assigns_new_and_skips_linked(self, client, factory, plain_school, admin_headers):
        teacher = await factory.teacher(plain_school, max_classes=3)
        a = await factory.classroom(plain_school)
        b = await factory.classroom(plain_school)
        c = await factory.classroom(plain_school)
        await factory.link(a, teacher)

        response = await client.post(
            f"{API}/teachers/assign-to-multiple-classrooms",
            json={"teacher_id": teacher.id, "classroom_ids": [a.id, b.id, c.id]},
            headers=admin_headers
        )

        assert response.status_code == 200
        body = response.json()
        assert body["newly_assigned"] == 2
        assert body["skipped"] == 1
        assert [room["id"] for room in body["already_assigned"]] == [a.id]
        assert body["current_class_count"] == 3
        assert body["max_classes"] == 3

    async def test_not_enough_slots_writes_nothing(self, client, factory, plain_school, admin_headers, count_rows):
        teacher = await factory.teacher(plain_school, max_classes=2)
        a = await factory.classroom(plain_school)
        b = await factory.classroom(plain_school)
        c = await factory.classroom(plain_school)
        await factory.link(a, teacher)

        response = await client.post(
            f"{API}/teachers/assign-to-multiple-classrooms",
            json={"teacher_id": teacher.id, "classroom_ids": [b.id, c.id]},
            headers=admin_headers
        )

        assert response.status_code == 422
        body = error_of(response)
        assert body["message"] == "Teacher can only be assigned to 1 more class(es), but 2 were requested."
        assert "classroom_ids" in body["errors"]
        assert await count_rows(ClassroomTeacher, ClassroomTeacher.teacher_id == teacher.id) == 1

    async def test_full_teacher_with_only_linked_classrooms_succeeds(self, client, factory, plain_school, admin_headers):
        teacher = await factory.teacher(plain_school, max_classes=1)
        classroom = await factory.classroom(plain_school)
        await factory.link(classroom, teacher)

        response = await client.post(
            f"{API}/teachers/assign-to-multiple-classrooms",
            json={"teacher_id": teacher.id, "classroom_ids": [classroom.id]},
            headers=admin_headers
        )

        assert response.status_code == 200
        assert response.json()["newly_assigned"] == 0

    async def test_repeated_ids_count_once(self, client, factory, plain_school, admin_headers):
        teacher = await factory.teacher(plain_school)
        classroom = await factory.classroom(plain_school)

        response = await client.post(
            f"{API}/teachers/assign-to-multiple-classrooms",
            json={"teacher_id": teacher.id, "classroom_ids": [classroom.id, classroom.id]},
            headers=admin_headers
        )

        assert response.status_code == 200
        assert response.json()["total_requested"] == 1

    async def test_foreign_classroom(self, client, factory, plain_school, admin_headers, count_rows):
        other = await factory.school()
        teacher = await factory.teacher(plain_school)
        mine = await factory.classroom(plain_school)
        theirs = await factory.classroom(other)

        response = await client.post(
            f"{API}/teachers/assign-to-multiple-classrooms",
            json={"teacher_id": teacher.id, "classroom_ids": [mine.id, theirs.id]},
            headers=admin_headers
        )

        assert response.status_code == 422
        assert "classroom_ids" in error_of(response)["errors"]
        assert await count_rows(ClassroomTeacher) == 0


class TestAssignmentQueries:
    async def test_available_classrooms(self, client, factory, plain_school, admin_headers):
        teacher = await factory.teacher(plain_school, max_classes=4)
        a = await factory.classroom(plain_school, "Grade 1")
        b = await factory.classroom(plain_school, "Grade 2")
        await factory.link(a, teacher)

        response = await client.get(f"{API}/teachers/{teacher.id}/available-classrooms", headers=admin_headers)

        assert response.status_code == 200
        body = response.json()
        assert [room["id"] for room in body["classrooms"]] == [b.id]
        assert body["current_class_count"] == 1
        assert body["available_slots"] == 3

    async def test_class_teachers_list(self, client, factory, plain_school, admin_headers):
        teacher = await factory.teacher(plain_school)
        other = await factory.teacher(plain_school)
        classroom = await factory.classroom(plain_school, "Grade 3")
        await factory.link(classroom, teacher, is_class_teacher=True)
        await factory.link(classroom, other)

        response = await client.get(f"{API}/teachers/class-teachers", headers=admin_headers)

        assert response.status_code == 200
        entries = response.json()
        assert len(entries) == 1
        assert entries[0]["teacher"]["id"] == teacher.id
        assert entries[0]["classroom"]["name"] == "Grade 3"
        assert entries[0]["stream"] is None


class TestStructuralBackstops:
    """The database refuses what the engine would never write."""

    async def test_second_class_teacher_row_for_classroom(self, db, factory, plain_school):
        a = await factory.teacher(plain_school)
        b = await factory.teacher(plain_school)
        classroom = await factory.classroom(plain_school)
        await factory.link(classroom, a, is_class_teacher=True)

        db.add(ClassroomTeacher(classroom_id=classroom.id, teacher_id=b.id, is_class_teacher=True))
        with pytest.raises(IntegrityError):
            await db.flush()
        await db.rollback()

    async def test_second_class_teacher_row_for_teacher(self, db, factory, plain_school):
        teacher = await factory.teacher(plain_school)
        a = await factory.classroom(plain_school)
        b = await factory.classroom(plain_school)
        await factory.link(a, teacher, is_class_teacher=True)

        db.add(ClassroomTeacher(classroom_id=b.id, teacher_id=teacher.id, is_class_teacher=True))
        with pytest.raises(IntegrityError):
            await db.flush()
        await db.rollback()

    async def test_lost_race_surfaces_as_conflict(self, session_factory, factory, plain_school, count_rows, monkeypatch):
        """If the elsewhere check is raced past, the index rejects the write and nothing is kept."""
        teacher = await factory.teacher(plain_school)
        a = await factory.classroom(plain_school)
        b = await factory.classroom(plain_school)
        await factory.link(a, teacher, is_class_teacher=True)

        async with session_factory() as session:
            engine = AssignmentEngine(session, await session.get(School, plain_school.id))

            async def raced(*args, **kwargs):
                return None

            monkeypatch.setattr(engine, "ensure_not_class_teacher_elsewhere", raced)
            with pytest.raises(ConcurrentAssignmentError):
                await engine.assign_class_teacher(b.id, teacher.id)

        assert await count_rows(ClassroomTeacher, ClassroomTeacher.classroom_id == b.id) == 0

    async def test_mode_is_checked_before_any_query(self, session_factory, streamed_school):
        async with session_factory() as session:
            engine = AssignmentEngine(session, await session.get(School, streamed_school.id))
            with pytest.raises(WrongModeError):
                await engine.assign_class_teacher(1, 1)
