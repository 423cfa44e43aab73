from __future__ import annotations

from uuid import uuid4

from fastapi.testclient import TestClient

from tests.conftest import add_user, auth, correct_answers


def _complete(client: TestClient, classroom, lecture) -> dict:
    resp = client.post(
        f"/v1/progress/{classroom.course.id}/lectures/{lecture.id}/complete",
        headers=auth(classroom.student),
    )
    assert resp.status_code == 200, resp.text
    return resp.json()


# ---- student views ----


def test_get_my_progress(client: TestClient, classroom) -> None:
    resp = client.get(f"/v1/progress/{classroom.course.id}", headers=auth(classroom.student))
    assert resp.status_code == 200
    body = resp.json()
    assert body["overall_progress"] == 0
    assert body["curriculum_progress"] == []
    assert body["student_id"] == str(classroom.student.id)


def test_get_progress_when_not_enrolled_is_404(client: TestClient, classroom) -> None:
    stranger = add_user("student")
    resp = client.get(f"/v1/progress/{classroom.course.id}", headers=auth(stranger))
    assert resp.status_code == 404
    assert resp.json()["detail"] == "Progress not found"


def test_touch_accumulates_time(client: TestClient, classroom) -> None:
    section, lecture = classroom.lectures[0]
    body = {"section_id": str(section.id), "lecture_id": str(lecture.id), "time_spent": 90}
    url = f"/v1/progress/{classroom.course.id}/lectures/touch"
    client.post(url, json=body, headers=auth(classroom.student))
    resp = client.post(url, json=body, headers=auth(classroom.student))

    assert resp.status_code == 200
    (entry,) = resp.json()["curriculum_progress"]
    assert entry["time_spent"] == 180
    assert entry["completed"] is False


def test_touch_with_non_positive_time_is_400(client: TestClient, classroom) -> None:
    section, lecture = classroom.lectures[0]
    resp = client.post(
        f"/v1/progress/{classroom.course.id}/lectures/touch",
        json={"section_id": str(section.id), "lecture_id": str(lecture.id), "time_spent": 0},
        headers=auth(classroom.student),
    )
    assert resp.status_code == 400
    assert resp.json()["code"] == "invalid_input"


def test_touch_unknown_section_is_404(client: TestClient, classroom) -> None:
    _, lecture = classroom.lectures[0]
    resp = client.post(
        f"/v1/progress/{classroom.course.id}/lectures/touch",
        json={"section_id": str(uuid4()), "lecture_id": str(lecture.id), "time_spent": 5},
        headers=auth(classroom.student),
    )
    assert resp.status_code == 404
    assert resp.json()["detail"] == "Section not found"


def test_complete_lecture_scenario(client: TestClient, classroom) -> None:
    bodies = [_complete(client, classroom, lec) for _, lec in classroom.lectures]
    assert [b["progress"]["overall_progress"] for b in bodies] == [13, 25, 38, 50]
    assert all(b["course_completed"] is False for b in bodies)


def test_complete_unknown_lecture_is_404(client: TestClient, classroom) -> None:
    resp = client.post(
        f"/v1/progress/{classroom.course.id}/lectures/{uuid4()}/complete",
        headers=auth(classroom.student),
    )
    assert resp.status_code == 404
    assert resp.json()["detail"] == "Lecture not found in course curriculum"


# ---- full lifecycle ----


def test_course_lifecycle_to_certificate(client: TestClient, classroom) -> None:
    for _, lecture in classroom.lectures:
        _complete(client, classroom, lecture)

    submitted = client.post(
        f"/v1/courses/{classroom.course.id}/assessments/{classroom.quiz.id}/submit",
        json={"answers": correct_answers(classroom.quiz)},
        headers=auth(classroom.student),
    )
    assert submitted.status_code == 200
    assert submitted.json()["passed"] is True

    graded = client.post(
        f"/v1/assessments/{classroom.quiz.id}/grade",
        json={"student_id": str(classroom.student.id), "score": 10, "feedback": "Great"},
        headers=auth(classroom.instructor),
    )
    assert graded.status_code == 200
    assert graded.json()["course_completed"] is True
    assert graded.json()["progress"]["overall_progress"] == 100

    (enrollment,) = client.get("/v1/enrollments", headers=auth(classroom.student)).json()
    assert enrollment["status"] == "completed"
    assert enrollment["progress"] == 100

    eligible = client.get(
        f"/v1/enrollments/{enrollment['id']}/certificate-eligibility",
        params={
            "student_id": str(classroom.student.id),
            "course_id": str(classroom.course.id),
        },
        headers=auth(classroom.instructor),
    )
    assert eligible.status_code == 200
    assert eligible.json()["completed_at"] is not None


# ---- staff views ----


def test_course_progress_for_instructor(client: TestClient, classroom) -> None:
    resp = client.get(
        f"/v1/progress/course/{classroom.course.id}", headers=auth(classroom.instructor)
    )
    assert resp.status_code == 200
    assert [p["student_id"] for p in resp.json()] == [str(classroom.student.id)]


def test_student_progress_for_admin(client: TestClient, classroom) -> None:
    admin = add_user("admin")
    resp = client.get(f"/v1/progress/student/{classroom.student.id}", headers=auth(admin))
    assert resp.status_code == 200
    assert [p["course_id"] for p in resp.json()] == [str(classroom.course.id)]
