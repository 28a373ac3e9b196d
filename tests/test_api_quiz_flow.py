from datetime import timedelta

from app.models import QuizAttempt
from app.utils.timing import utcnow
from conftest import auth_headers


def quiz_payload(lesson_id, **overrides):
    payload = {
        "lesson_id": lesson_id,
        "title": "Functions",
        "passing_score": 70,
        "questions": [
            {
                "question_text": "Which keyword defines a function?",
                "question_type": "MULTIPLE_CHOICE",
                "points": 1,
                "options": [
                    {"id": "a", "text": "func", "is_correct": False},
                    {"id": "b", "text": "def", "is_correct": True},
                ],
                "explanation": "Functions start with def.",
            },
            {
                "question_text": "Functions can return multiple values.",
                "question_type": "TRUE_FALSE",
                "points": 1,
                "correct_answer": "true",
            },
        ],
    }
    payload.update(overrides)
    return payload


def create_quiz(client, instructor, lesson, **overrides):
    response = client.post(
        "/quizzes/",
        json=quiz_payload(lesson.id, **overrides),
        headers=auth_headers(instructor),
    )
    assert response.status_code == 201, response.text
    return response.json()


def answers_for(quiz, mc="b", tf="true"):
    mc_question, tf_question = quiz["questions"]
    return [
        {"question_id": mc_question["id"], "selected_answer": mc},
        {"question_id": tf_question["id"], "selected_answer": tf},
    ]


def test_full_quiz_flow(client, learner, instructor, course, lessons):
    quiz = create_quiz(client, instructor, lessons[0], max_attempts=2)
    headers = auth_headers(learner)

    response = client.post("/enrollments/", json={"course_id": course.id}, headers=headers)
    assert response.status_code == 201
    assert response.json()["course_title"] == course.title

    response = client.post("/enrollments/", json={"course_id": course.id}, headers=headers)
    assert response.status_code == 409
    assert response.json()["error"] == "Conflict"

    learner_view = client.get(f"/quizzes/{quiz['id']}", headers=headers).json()
    assert "correct_answer" not in learner_view["questions"][0]
    assert all("is_correct" not in o for o in learner_view["questions"][0]["options"])

    response = client.post(f"/quizzes/{quiz['id']}/attempts", headers=headers)
    assert response.status_code == 201
    started = response.json()
    assert started["attempt"]["state"] == "IN_PROGRESS"
    assert started["attempts_remaining"] == 1

    submit = {"attempt_id": started["attempt"]["id"], "answers": answers_for(quiz)}
    response = client.post(f"/quizzes/{quiz['id']}/submit", json=submit, headers=headers)
    assert response.status_code == 200, response.text
    body = response.json()
    assert body["result"]["percentage"] == 100
    assert body["result"]["passed"] is True
    assert body["attempt"]["state"] == "COMPLETED"

    response = client.post(f"/quizzes/{quiz['id']}/submit", json=submit, headers=headers)
    assert response.status_code == 409
    assert "already submitted" in response.json()["message"]

    detail = client.get(f"/quiz-attempts/{started['attempt']['id']}", headers=headers)
    assert detail.status_code == 200
    assert detail.json()["results"][0]["correct_answer"] == "b"

    stats = client.get(f"/quizzes/{quiz['id']}/attempts/stats", headers=headers).json()
    assert stats["passed"] is True
    assert stats["attempts_remaining"] == 1

    progress = client.get(
        "/progress/", params={"course_id": course.id}, headers=headers
    ).json()
    assert progress["count"] == 1
    assert progress["progress"][0]["status"] == "COMPLETED"

    unread = client.get("/notifications/unread-count", headers=headers).json()
    assert unread["unread"] >= 2

    board = client.get("/leaderboard/").json()
    assert board["entries"][0]["user_id"] == learner.id
    assert board["entries"][0]["points"] == 50

    mine = client.get("/leaderboard/me", headers=headers).json()
    assert mine == {"user_id": learner.id, "points": 50}


def test_attempt_ceiling_over_http(client, db, learner, instructor, course, lessons, enrollment):
    quiz = create_quiz(client, instructor, lessons[0], max_attempts=2)
    headers = auth_headers(learner)

    for _ in range(2):
        assert client.post(f"/quizzes/{quiz['id']}/attempts", headers=headers).status_code == 201

    response = client.post(f"/quizzes/{quiz['id']}/attempts", headers=headers)
    assert response.status_code == 403
    assert response.json()["error"] == "Forbidden"


def test_start_without_enrollment_is_forbidden(client, learner, instructor, lessons):
    quiz = create_quiz(client, instructor, lessons[0])

    response = client.post(f"/quizzes/{quiz['id']}/attempts", headers=auth_headers(learner))

    assert response.status_code == 403
    assert "Not enrolled" in response.json()["message"]


def test_overdue_submission_returns_score(client, db, learner, instructor, lessons, enrollment):
    quiz = create_quiz(client, instructor, lessons[0], time_limit_minutes=10)
    headers = auth_headers(learner)
    attempt_id = client.post(f"/quizzes/{quiz['id']}/attempts", headers=headers).json()[
        "attempt"
    ]["id"]

    db.query(QuizAttempt).filter_by(id=attempt_id).update(
        {"started_at": utcnow() - timedelta(minutes=11)}
    )
    db.commit()

    response = client.post(
        f"/quizzes/{quiz['id']}/submit",
        json={"attempt_id": attempt_id, "answers": answers_for(quiz, mc="a")},
        headers=headers,
    )

    assert response.status_code == 403
    body = response.json()
    assert body["error"] == "Time Limit Exceeded"
    assert body["auto_submitted"] is True
    assert body["attempt_id"] == attempt_id
    assert body["result"]["percentage"] == 50


def test_hidden_answers_are_not_returned(client, learner, instructor, lessons, enrollment):
    quiz = create_quiz(client, instructor, lessons[0], show_answers=False)
    headers = auth_headers(learner)
    attempt = client.post(f"/quizzes/{quiz['id']}/attempts", headers=headers).json()

    response = client.post(
        f"/quizzes/{quiz['id']}/submit",
        json={"attempt_id": attempt["attempt"]["id"], "answers": answers_for(quiz)},
        headers=headers,
    )

    details = response.json()["result"]["detailed_results"]
    assert details[0]["correct_answer"] is None
    assert details[0]["explanation"] is None


def test_authoring_requires_instructor_role(client, learner, lessons):
    response = client.post(
        "/quizzes/", json=quiz_payload(lessons[0].id), headers=auth_headers(learner)
    )
    assert response.status_code == 403


def test_requests_without_token_are_rejected(client, lessons):
    assert client.get("/notifications/").status_code == 401


def test_questions_cannot_be_edited_after_attempts(
    client, learner, instructor, lessons, enrollment
):
    quiz = create_quiz(client, instructor, lessons[0])
    client.post(f"/quizzes/{quiz['id']}/attempts", headers=auth_headers(learner))

    response = client.patch(
        f"/quizzes/{quiz['id']}/questions/{quiz['questions'][0]['id']}",
        json={"points": 3},
        headers=auth_headers(instructor),
    )

    assert response.status_code == 409


def test_certificate_after_course_completion(client, admin, learner, course, lessons, enrollment):
    headers = auth_headers(learner)

    for lesson in lessons:
        response = client.post(
            "/progress/",
            json={"enrollment_id": enrollment.id, "lesson_id": lesson.id},
            headers=headers,
        )
        assert response.status_code == 200

    rollup = response.json()["enrollment"]
    assert rollup["status"] == "COMPLETED"
    assert rollup["progress_percentage"] == 100

    certificates = client.get("/certificates/", headers=headers).json()
    assert certificates["total"] == 1
    code = certificates["certificates"][0]["verification_code"]

    verification = client.get(f"/certificates/verify/{code}").json()
    assert verification["verified"] is True
    assert verification["is_expired"] is False

    response = client.post(
        "/certificates/",
        json={"user_id": learner.id, "course_id": course.id},
        headers=auth_headers(admin),
    )
    assert response.status_code == 409
