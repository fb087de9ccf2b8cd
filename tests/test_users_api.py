def test_pagination_shape(client, admin, make_user, auth):
    for _ in range(12):
        make_user("student")

    res = client.get("/api/users", params={"role": "student", "limit": 5, "page": 3}, headers=auth(admin))
    assert res.status_code == 200
    body = res.json()
    assert len(body["items"]) == 2
    assert body["pagination"] == {"current": 3, "pages": 3, "total": 12}


def test_default_page_limit(client, admin, make_user, auth):
    for _ in range(11):
        make_user("faculty")
    body = client.get("/api/users/faculty", headers=auth(admin)).json()
    assert len(body["items"]) == 10
    assert body["pagination"]["pages"] == 2


def test_limit_is_capped(client, admin, auth):
    res = client.get("/api/users", params={"limit": 1000}, headers=auth(admin))
    assert res.status_code == 400
    assert res.json()["code"] == "VALIDATION_ERROR"


def test_search_is_literal(client, admin, make_user, auth):
    make_user("student", firstName="Grace")
    make_user("student", firstName="G.race")
    body = client.get("/api/users", params={"search": "g.r"}, headers=auth(admin)).json()
    assert [u["firstName"] for u in body["items"]] == ["G.race"]


def test_listing_requires_admin(client, faculty, auth):
    res = client.get("/api/users", headers=auth(faculty))
    assert res.status_code == 403
    assert res.json()["code"] == "INSUFFICIENT_PERMISSIONS"


def test_faculty_browses_students(client, faculty, student, auth):
    body = client.get("/api/users/students", headers=auth(faculty)).json()
    assert [u["id"] for u in body["items"]] == [str(student["_id"])]
    assert "passwordHash" not in body["items"][0]


def test_admin_creates_user_with_generated_password(client, db, admin, auth):
    res = client.post(
        "/api/users",
        json={"firstName": "Alan", "lastName": "Turing", "email": "alan@example.com", "role": "faculty"},
        headers=auth(admin),
    )
    assert res.status_code == 201
    body = res.json()
    assert len(body["tempPassword"]) == 10
    assert body["user"]["role"] == "faculty"
    assert db.users.count_documents({"email": "alan@example.com"}) == 1


def test_student_reads_only_own_profile(client, student, make_user, auth):
    assert client.get(f"/api/users/{student['_id']}", headers=auth(student)).status_code == 200

    res = client.get(f"/api/users/{make_user('student')['_id']}", headers=auth(student))
    assert res.status_code == 403
    assert res.json()["code"] == "ACCESS_DENIED"


def test_missing_user(client, admin, auth):
    res = client.get("/api/users/000000000000000000000000", headers=auth(admin))
    assert res.status_code == 404
    assert res.json()["code"] == "USER_NOT_FOUND"


def test_update_user_email_conflict(client, admin, student, make_user, auth):
    other = make_user("student")
    res = client.put(f"/api/users/{student['_id']}", json={"email": other["email"]}, headers=auth(admin))
    assert res.status_code == 400
    assert res.json()["code"] == "EMAIL_EXISTS"


def test_deactivate_and_activate(client, db, admin, student, auth):
    res = client.delete(f"/api/users/{student['_id']}", headers=auth(admin))
    assert res.json()["user"]["isActive"] is False
    assert db.users.count_documents({"_id": student["_id"]}) == 1

    res = client.post(f"/api/users/{student['_id']}/activate", headers=auth(admin))
    assert res.json()["user"]["isActive"] is True


def test_user_stats(client, admin, faculty, student, auth):
    overview = client.get("/api/users/stats/overview", headers=auth(admin)).json()["overview"]
    assert overview["totalUsers"] == 3
    assert overview["totalStudents"] == 1
    assert overview["recentRegistrations"] == 3


def test_admin_links_firebase_account(client, db, admin, student, auth):
    res = client.post(
        "/api/users",
        json={
            "firstName": "Alan",
            "lastName": "Turing",
            "email": "alan@example.com",
            "role": "faculty",
            "firebaseUid": "alan-uid",
        },
        headers=auth(admin),
    )
    assert res.status_code == 201
    assert "firebaseUid" not in res.json()["user"]
    assert db.users.find_one({"email": "alan@example.com"})["firebaseUid"] == "alan-uid"

    res = client.put(f"/api/users/{student['_id']}", json={"firebaseUid": "alan-uid"}, headers=auth(admin))
    assert res.status_code == 400
    assert res.json()["code"] == "FIREBASE_UID_EXISTS"

    res = client.put(f"/api/users/{student['_id']}", json={"firebaseUid": "student-uid"}, headers=auth(admin))
    assert res.status_code == 200
    assert db.users.find_one({"_id": student["_id"]})["firebaseUid"] == "student-uid"
