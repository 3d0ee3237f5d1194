"""Classroom and stream registry endpoints."""
from school_admin.models import Classroom, ClassroomTeacher, Stream, StreamTeacher, SubjectAssignment

API = "/api/v1"


class TestCreateClassroom:
    async def test_plain_school_with_teachers(self, client, factory, plain_school, admin_headers):
        head = await factory.teacher(plain_school)
        helper = await factory.teacher(plain_school)

        response = await client.post(
            f"{API}/classrooms",
            json={
                "name": "Grade 5",
                "capacity": 40,
                "teachers": [
                    {"teacher_id": head.id, "is_class_teacher": True},
                    {"teacher_id": helper.id}
                ]
            },
            headers=admin_headers
        )

        assert response.status_code == 201
        body = response.json()
        assert body["name"] == "Grade 5"
        assert body["capacity"] == 40
        assert body["teacher_count"] == 2
        assert body["class_teacher"]["id"] == head.id

    async def test_streamed_school_with_streams(self, client, factory, streamed_school, streamed_admin_headers):
        teacher = await factory.teacher(streamed_school)

        response = await client.post(
            f"{API}/classrooms",
            json={
                "name": "Grade 7",
                "streams": [
                    {"name": "Blue", "class_teacher_id": teacher.id},
                    {"name": "Red", "capacity": 35}
                ]
            },
            headers=streamed_admin_headers
        )

        assert response.status_code == 201
        streams = {s["name"]: s for s in response.json()["streams"]}
        assert set(streams) == {"Blue", "Red"}
        assert streams["Blue"]["class_teacher_id"] == teacher.id
        assert streams["Red"]["capacity"] == 35

    async def test_streams_need_a_streamed_school(self, client, admin_headers, count_rows):
        response = await client.post(
            f"{API}/classrooms",
            json={"name": "Grade 7", "streams": [{"name": "Blue"}]},
            headers=admin_headers
        )

        assert response.status_code == 403
        assert response.json()["error_code"] == "WRONG_MODE"
        assert await count_rows(Classroom) == 0

    async def test_teachers_need_a_plain_school(self, client, factory, streamed_school, streamed_admin_headers):
        teacher = await factory.teacher(streamed_school)

        response = await client.post(
            f"{API}/classrooms",
            json={"name": "Grade 7", "teachers": [{"teacher_id": teacher.id}]},
            headers=streamed_admin_headers
        )

        assert response.status_code == 403
        assert response.json()["message"] == "Your school has streams enabled. Assign teachers to streams instead."

    async def test_name_is_unique_per_school(self, client, factory, plain_school, admin_headers, count_rows):
        await factory.classroom(plain_school, "Grade 6")
        other = await factory.school()
        await factory.classroom(other, "Grade 7")

        taken = await client.post(f"{API}/classrooms", json={"name": "grade 6"}, headers=admin_headers)
        free = await client.post(f"{API}/classrooms", json={"name": "Grade 7"}, headers=admin_headers)

        assert taken.status_code == 422
        assert "name" in taken.json()["errors"]
        assert free.status_code == 201
        assert await count_rows(Classroom, Classroom.school_id == plain_school.id) == 2

    async def test_payload_with_two_class_teachers(self, client, factory, plain_school, admin_headers):
        a = await factory.teacher(plain_school)
        b = await factory.teacher(plain_school)

        response = await client.post(
            f"{API}/classrooms",
            json={
                "name": "Grade 2",
                "teachers": [
                    {"teacher_id": a.id, "is_class_teacher": True},
                    {"teacher_id": b.id, "is_class_teacher": True}
                ]
            },
            headers=admin_headers
        )

        assert response.status_code == 422
        assert response.json()["error_code"] == "VALIDATION_ERROR"

    async def test_full_teacher_rejects_the_whole_classroom(self, client, factory, plain_school, admin_headers, count_rows):
        fresh = await factory.teacher(plain_school)
        full = await factory.teacher(plain_school, max_classes=1)
        await factory.link(await factory.classroom(plain_school), full)

        response = await client.post(
            f"{API}/classrooms",
            json={"name": "Grade 3", "teachers": [{"teacher_id": fresh.id}, {"teacher_id": full.id}]},
            headers=admin_headers
        )

        assert response.status_code == 422
        body = response.json()
        assert body["error_code"] == "CAPACITY_EXCEEDED"
        assert "teachers.1.teacher_id" in body["errors"]
        assert await count_rows(Classroom, Classroom.name == "Grade 3") == 0
        assert await count_rows(ClassroomTeacher, ClassroomTeacher.teacher_id == fresh.id) == 0

    async def test_class_teacher_elsewhere_rejects_the_classroom(self, client, factory, plain_school, admin_headers, count_rows):
        teacher = await factory.teacher(plain_school)
        await factory.link(await factory.classroom(plain_school, "Grade 8 East"), teacher, is_class_teacher=True)

        response = await client.post(
            f"{API}/classrooms",
            json={"name": "Grade 9 West", "teachers": [{"teacher_id": teacher.id, "is_class_teacher": True}]},
            headers=admin_headers
        )

        assert response.status_code == 422
        body = response.json()
        assert body["error_code"] == "ALREADY_CLASS_TEACHER"
        assert "teachers.0.teacher_id" in body["errors"]
        assert await count_rows(Classroom, Classroom.name == "Grade 9 West") == 0

    async def test_stream_class_teacher_heading_another_stream(self, client, factory, streamed_school, streamed_admin_headers, count_rows):
        teacher = await factory.teacher(streamed_school)
        await factory.stream(await factory.classroom(streamed_school), class_teacher_id=teacher.id)

        response = await client.post(
            f"{API}/classrooms",
            json={"name": "Grade 8", "streams": [{"name": "Green"}, {"name": "Gold", "class_teacher_id": teacher.id}]},
            headers=streamed_admin_headers
        )

        assert response.status_code == 422
        assert "streams.1.class_teacher_id" in response.json()["errors"]
        assert await count_rows(Stream, Stream.name == "Green") == 0

    async def test_foreign_teacher_in_payload(self, client, factory, admin_headers, count_rows):
        outsider = await factory.teacher(await factory.school())

        response = await client.post(
            f"{API}/classrooms",
            json={"name": "Grade 1", "teachers": [{"teacher_id": outsider.id}]},
            headers=admin_headers
        )

        assert response.status_code == 422
        assert response.json()["error_code"] == "CROSS_TENANT"
        assert await count_rows(Classroom) == 0


class TestClassroomCrud:
    async def test_list_is_scoped_and_sorted(self, client, factory, plain_school, admin_headers):
        teacher = await factory.teacher(plain_school)
        b = await factory.classroom(plain_school, "Grade B")
        await factory.classroom(plain_school, "Grade A")
        await factory.classroom(await factory.school(), "Grade C")
        await factory.link(b, teacher, is_class_teacher=True)

        response = await client.get(f"{API}/classrooms", headers=admin_headers)

        assert response.status_code == 200
        rooms = response.json()
        assert [room["name"] for room in rooms] == ["Grade A", "Grade B"]
        assert rooms[1]["teacher_count"] == 1
        assert rooms[1]["class_teacher"]["id"] == teacher.id
        assert rooms[0]["class_teacher"] is None

    async def test_foreign_classroom_is_forbidden(self, client, factory, admin_headers):
        classroom = await factory.classroom(await factory.school())

        response = await client.get(f"{API}/classrooms/{classroom.id}", headers=admin_headers)

        assert response.status_code == 403

    async def test_missing_classroom(self, client, admin_headers):
        response = await client.get(f"{API}/classrooms/424242", headers=admin_headers)

        assert response.status_code == 404

    async def test_rename(self, client, factory, plain_school, admin_headers):
        classroom = await factory.classroom(plain_school, "Grade 1")
        await factory.classroom(plain_school, "Grade 2")

        renamed = await client.put(
            f"{API}/classrooms/{classroom.id}", json={"name": "Grade 1 North", "capacity": 30}, headers=admin_headers
        )
        clash = await client.put(
            f"{API}/classrooms/{classroom.id}", json={"name": "GRADE 2"}, headers=admin_headers
        )

        assert renamed.status_code == 200
        assert renamed.json()["name"] == "Grade 1 North"
        assert renamed.json()["capacity"] == 30
        assert clash.status_code == 422

    async def test_delete_removes_links_and_assignments(self, client, db, factory, plain_school, admin_headers, count_rows):
        teacher = await factory.teacher(plain_school)
        classroom = await factory.classroom(plain_school)
        await factory.link(classroom, teacher)
        subject = await factory.subject(plain_school)
        year = await factory.academic_year(plain_school)
        db.add(SubjectAssignment(
            school_id=plain_school.id,
            teacher_id=teacher.id,
            subject_id=subject.id,
            academic_year_id=year.id,
            classroom_id=classroom.id
        ))
        await db.commit()

        response = await client.delete(f"{API}/classrooms/{classroom.id}", headers=admin_headers)

        assert response.status_code == 200
        assert await count_rows(Classroom) == 0
        assert await count_rows(ClassroomTeacher) == 0
        assert await count_rows(SubjectAssignment) == 0


class TestStreams:
    async def test_add_stream_with_class_teacher(self, client, factory, streamed_school, streamed_admin_headers):
        teacher = await factory.teacher(streamed_school)
        classroom = await factory.classroom(streamed_school)

        response = await client.post(
            f"{API}/classrooms/{classroom.id}/streams",
            json={"name": "North", "class_teacher_id": teacher.id},
            headers=streamed_admin_headers
        )

        assert response.status_code == 201
        body = response.json()
        assert body["class_id"] == classroom.id
        assert body["class_teacher"]["id"] == teacher.id

    async def test_add_stream_with_busy_class_teacher_writes_nothing(self, client, factory, streamed_school, streamed_admin_headers, count_rows):
        teacher = await factory.teacher(streamed_school)
        classroom = await factory.classroom(streamed_school)
        await factory.stream(classroom, "South", class_teacher_id=teacher.id)

        response = await client.post(
            f"{API}/classrooms/{classroom.id}/streams",
            json={"name": "North", "class_teacher_id": teacher.id},
            headers=streamed_admin_headers
        )

        assert response.status_code == 422
        assert "class_teacher_id" in response.json()["errors"]
        assert await count_rows(Stream, Stream.name == "North") == 0

    async def test_stream_name_is_unique_per_classroom(self, client, factory, streamed_school, streamed_admin_headers):
        classroom = await factory.classroom(streamed_school)
        await factory.stream(classroom, "East")

        response = await client.post(
            f"{API}/classrooms/{classroom.id}/streams", json={"name": "east"}, headers=streamed_admin_headers
        )

        assert response.status_code == 422
        assert "name" in response.json()["errors"]

    async def test_add_stream_needs_streams(self, client, factory, plain_school, admin_headers):
        classroom = await factory.classroom(plain_school)

        response = await client.post(
            f"{API}/classrooms/{classroom.id}/streams", json={"name": "East"}, headers=admin_headers
        )

        assert response.status_code == 403

    async def test_list_update_and_delete(self, client, factory, streamed_school, streamed_admin_headers, count_rows):
        teacher = await factory.teacher(streamed_school)
        classroom = await factory.classroom(streamed_school)
        west = await factory.stream(classroom, "West")
        await factory.stream(classroom, "East")
        await factory.stream_link(west, teacher)

        listed = await client.get(f"{API}/classrooms/{classroom.id}/streams", headers=streamed_admin_headers)
        assert [s["name"] for s in listed.json()] == ["East", "West"]

        updated = await client.put(
            f"{API}/streams/{west.id}", json={"name": "Westwood", "capacity": 38}, headers=streamed_admin_headers
        )
        assert updated.status_code == 200
        assert updated.json()["name"] == "Westwood"

        fetched = await client.get(f"{API}/streams/{west.id}", headers=streamed_admin_headers)
        assert fetched.json()["capacity"] == 38

        deleted = await client.delete(f"{API}/streams/{west.id}", headers=streamed_admin_headers)
        assert deleted.status_code == 200
        assert await count_rows(Stream) == 1
        assert await count_rows(StreamTeacher) == 0
