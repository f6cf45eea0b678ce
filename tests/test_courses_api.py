def test_admin_creates_course(api, admin, auth_headers) -> None:
    response = api.post(
        "/api/courses",
        json={"title": "Databases", "class_code": "DB-2"},
        headers=auth_headers(admin),
    )

    assert response.status_code == 201
    assert response.json()["member_count"] == 0


def test_duplicate_class_code_conflicts(api, admin, course, auth_headers) -> None:
    response = api.post(
        "/api/courses",
        json={"title": "Algorithms again", "class_code": course.class_code},
        headers=auth_headers(admin),
    )
    assert response.status_code == 409


def test_student_cannot_create_course(api, student, auth_headers) -> None:
    response = api.post(
        "/api/courses", json={"title": "Mine", "class_code": "X-1"}, headers=auth_headers(student)
    )
    assert response.status_code == 403


def test_enroll_and_leave(api, make_user, course, auth_headers) -> None:
    headers = auth_headers(make_user("newcomer"))

    assert api.get("/api/courses/mine", headers=headers).json() == []
    enrolled = api.post(f"/api/courses/{course.id}/enroll", headers=headers).json()
    assert enrolled["is_member"] is True
    assert enrolled["member_count"] == 2
    assert api.post(f"/api/courses/{course.id}/enroll", headers=headers).json()["member_count"] == 2
    assert [item["id"] for item in api.get("/api/courses/mine", headers=headers).json()] == [course.id]

    left = api.delete(f"/api/courses/{course.id}/enroll", headers=headers).json()
    assert left["is_member"] is False
    assert api.post("/api/courses/9999/enroll", headers=headers).status_code == 404


def test_delete_course_cascades_to_tryouts(api, admin, course, make_tryout, auth_headers) -> None:
    tryout_id = make_tryout().id
    headers = auth_headers(admin)

    assert api.delete(f"/api/courses/{course.id}", headers=headers).status_code == 200
    assert api.get(f"/api/tryouts/{tryout_id}", headers=headers).status_code == 404
    assert [item["id"] for item in api.get("/api/courses", headers=headers).json()] == []
