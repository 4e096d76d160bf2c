def test_teacher_builds_quiz_and_student_records_progress(make_client):
    teacher = make_client()
    r = teacher.post("/api/register", json={"username": "t1", "password": "secret1", "role": "teacher"})
    assert r.status_code == 201

    r = teacher.post("/api/subjects", json={
        "name": "Physics",
        "description": "Study of matter and energy",
        "imageUrl": "https://example.com/physics.png",
    })
    assert r.status_code == 201
    subject_id = r.json()["id"]

    r = teacher.post(f"/api/subjects/{subject_id}/topics", json={"name": "Mechanics", "content": "Forces"})
    assert r.status_code == 201
    topic_id = r.json()["id"]

    r = teacher.post(f"/api/topics/{topic_id}/questions", json={
        "question": "Which one?", "options": ["A", "B"], "correctAnswer": 1,
    })
    assert r.status_code == 201

    student = make_client()
    r = student.post("/api/register", json={"username": "s1", "password": "secret1"})
    assert r.status_code == 201
    assert r.json()["role"] == "student"

    questions = student.get(f"/api/topics/{topic_id}/questions").json()
    assert len(questions) == 1
    assert questions[0]["options"] == ["A", "B"]

    r = student.post(f"/api/topics/{topic_id}/progress", json={"score": 100, "completed": True})
    assert r.status_code == 200

    progress = student.get(f"/api/topics/{topic_id}/progress").json()
    assert progress["score"] == 100
    assert progress["completed"] is True


def test_every_response_carries_a_request_id(client):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json() == {"status": "ok"}
    assert "X-Request-ID" in r.headers
    echoed = client.get("/api/subjects", headers={"X-Request-ID": "abc123"})
    assert echoed.headers["X-Request-ID"] == "abc123"
