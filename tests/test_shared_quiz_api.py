from study_buddy.services.quiz_api_service import ATTEMPT_LIMIT_MESSAGE

AUTH_HEADERS = {"Authorization": "Bearer test-token"}
QUIZ_DATA = [{"question": "Q1", "options": ["a", "b", "c", "d"], "correctAnswer": "a"}]


def _seed_quiz(fake_db, quiz_id="quiz-1", owner="owner-1", attempt_limit=None):
    data = {
        "ownerId": owner,
        "documentId": "doc-1",
        "documentName": "Biology",
        "quizData": QUIZ_DATA,
        "totalQuestions": 1,
    }
    if attempt_limit is not None:
        data["attemptLimit"] = attempt_limit
    fake_db.seed(f"quizzes/{quiz_id}", data)


def _result_payload(quiz_id="quiz-1", score=1):
    return {"quizId": quiz_id, "score": score, "quizData": QUIZ_DATA, "answers": {"0": "a"}, "duration": 42}


def _results(fake_db, quiz_id="quiz-1"):
    prefix = ("quizzes", quiz_id, "results")
    return [data for path, data in fake_db.docs.items() if path[:3] == prefix and len(path) == 4]


def test_save_quiz_returns_quiz_id(client, fake_db, signed_in):
    response = client.post(
        "/save-quiz",
        json={"quizData": QUIZ_DATA, "score": 1, "documentName": "Bio", "documentId": "doc-1", "answers": {"0": "a"}},
        headers=AUTH_HEADERS,
    )

    assert response.status_code == 201
    quiz_id = response.get_json()["quizId"]
    assert fake_db.read(f"quizzes/{quiz_id}")["ownerId"] == signed_in["uid"]


def test_save_quiz_missing_fields_is_400(client, signed_in):
    response = client.post("/save-quiz", json={"quizData": QUIZ_DATA}, headers=AUTH_HEADERS)

    assert response.status_code == 400


def test_update_quiz_name_checks_owner(client, fake_db, signed_in):
    _seed_quiz(fake_db, owner="someone-else")

    response = client.post("/update-quiz-name", json={"quizId": "quiz-1", "newName": "New"}, headers=AUTH_HEADERS)

    assert response.status_code == 403
    assert fake_db.read("quizzes/quiz-1")["documentName"] == "Biology"


def test_share_quiz_clamps_attempt_limit(client, fake_db, signed_in):
    _seed_quiz(fake_db, owner=signed_in["uid"])

    response = client.post("/share-quiz", json={"quizId": "quiz-1", "attemptLimit": 50}, headers=AUTH_HEADERS)

    assert response.status_code == 200
    assert response.get_json()["attemptLimit"] == 10
    assert fake_db.read("quizzes/quiz-1")["attemptLimit"] == 10


def test_get_shared_quiz_without_auth(client, fake_db):
    _seed_quiz(fake_db, attempt_limit=3)

    response = client.get("/shared-quiz/quiz-1")

    assert response.status_code == 200
    body = response.get_json()
    assert body["quizData"] == QUIZ_DATA
    assert body["attemptLimit"] == 3
    assert "ownerId" not in body


def test_get_shared_quiz_unknown_is_404(client):
    assert client.get("/shared-quiz/nope").status_code == 404


def test_save_shared_result_creates_result_and_taker_copy(client, fake_db, signed_in):
    _seed_quiz(fake_db)

    response = client.post("/api/save-shared-quiz-result", json=_result_payload(), headers=AUTH_HEADERS)

    assert response.status_code == 201
    results = _results(fake_db)
    assert len(results) == 1
    assert results[0]["takerId"] == signed_in["uid"]
    assert results[0]["takerEmail"] == signed_in["email"]
    copies = [data for data in fake_db.docs.values() if data.get("originalQuizId") == "quiz-1"]
    assert len(copies) == 1
    assert copies[0]["ownerId"] == signed_in["uid"]


def test_second_attempt_updates_existing_taker_copy(client, fake_db, signed_in):
    _seed_quiz(fake_db)

    client.post("/api/save-shared-quiz-result", json=_result_payload(score=0), headers=AUTH_HEADERS)
    client.post("/api/save-shared-quiz-result", json=_result_payload(score=1), headers=AUTH_HEADERS)

    copies = [data for data in fake_db.docs.values() if data.get("originalQuizId") == "quiz-1"]
    assert len(copies) == 1
    assert copies[0]["score"] == 1
    assert len(_results(fake_db)) == 2


def test_taker_copy_is_read_inside_transaction(client, fake_db, signed_in, monkeypatch):
    _seed_quiz(fake_db)

    class ConcurrentCommit(type(fake_db.transaction())):
        """A parallel first attempt commits its copy while this one is reading."""

        def __init__(self, db):
            super().__init__(db)
            self.reads = 0

        def get(self, ref_or_query):
            self.reads += 1
            if self.reads == 1:
                fake_db.seed("quizzes/copy-parallel", {"ownerId": signed_in["uid"], "originalQuizId": "quiz-1", "score": 0})
            return super().get(ref_or_query)

    monkeypatch.setattr(fake_db, "transaction", lambda: ConcurrentCommit(fake_db))

    response = client.post("/api/save-shared-quiz-result", json=_result_payload(score=1), headers=AUTH_HEADERS)

    assert response.status_code == 201
    copies = [data for data in fake_db.docs.values() if data.get("originalQuizId") == "quiz-1"]
    assert len(copies) == 1
    assert fake_db.read("quizzes/copy-parallel")["score"] == 1


def test_attempt_limit_is_enforced(client, fake_db, signed_in):
    _seed_quiz(fake_db, attempt_limit=2)

    statuses = [
        client.post("/api/save-shared-quiz-result", json=_result_payload(), headers=AUTH_HEADERS).status_code
        for _ in range(3)
    ]

    assert statuses == [201, 201, 403]
    assert len(_results(fake_db)) == 2
    last = client.post("/api/save-shared-quiz-result", json=_result_payload(), headers=AUTH_HEADERS)
    assert last.get_json()["error"] == ATTEMPT_LIMIT_MESSAGE


def test_default_attempt_limit_is_ten(client, fake_db, signed_in):
    _seed_quiz(fake_db)
    for index in range(10):
        fake_db.seed(f"quizzes/quiz-1/results/r{index}", {"takerId": signed_in["uid"], "score": 0})

    response = client.post("/api/save-shared-quiz-result", json=_result_payload(), headers=AUTH_HEADERS)

    assert response.status_code == 403


def test_other_takers_do_not_count_towards_limit(client, fake_db, signed_in):
    _seed_quiz(fake_db, attempt_limit=1)
    fake_db.seed("quizzes/quiz-1/results/r-other", {"takerId": "another-user", "score": 0})

    response = client.post("/api/save-shared-quiz-result", json=_result_payload(), headers=AUTH_HEADERS)

    assert response.status_code == 201


def test_save_shared_result_unknown_quiz_is_404(client, signed_in):
    response = client.post("/api/save-shared-quiz-result", json=_result_payload("missing"), headers=AUTH_HEADERS)

    assert response.status_code == 404


def test_quiz_results_visible_to_owner_only(client, fake_db, signed_in):
    _seed_quiz(fake_db, owner=signed_in["uid"])
    fake_db.seed("quizzes/quiz-1/results/r1", {"takerId": "t1", "score": 1, "completedAt": 1.0})
    fake_db.seed("quizzes/quiz-1/results/r2", {"takerId": "t2", "score": 0, "completedAt": 2.0})
    _seed_quiz(fake_db, quiz_id="quiz-2", owner="someone-else")

    own = client.get("/quizzes/quiz-1/results", headers=AUTH_HEADERS)
    other = client.get("/quizzes/quiz-2/results", headers=AUTH_HEADERS)

    assert own.status_code == 200
    assert [r["id"] for r in own.get_json()["results"]] == ["r2", "r1"]
    assert other.status_code == 403
