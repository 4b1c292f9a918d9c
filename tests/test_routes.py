from contextlib import contextmanager

import pytest
from fastapi.testclient import TestClient

from api.app import create_app
from conftest import FakeGateway


@contextmanager
def make_client(gateway):
    app = create_app(gateway=gateway, load_timeout=2.0, submit_timeout=2.0, tick_interval=60.0)
    with TestClient(app) as client:
        yield client


@pytest.fixture()
def client(gateway):
    with make_client(gateway) as c:
        yield c


def answer_all(client):
    for qid, value in ((1, "A"), (2, "B"), (3, "C")):
        res = client.post("/api/answer", json={"question_id": qid, "answer": value})
        assert res.status_code == 200


def test_state_without_session(client):
    assert client.get("/api/state").status_code == 404


def test_load_and_take_exam(client, gateway):
    state = client.post("/api/load", json={"access_id": "abc123"}).json()

    assert state["phase"] == "in_progress"
    assert state["remaining"] == "01:00"
    assert state["progress"] == 0
    assert state["total"] == 3
    assert state["can_submit"] is False

    q = client.get("/api/question/0").json()
    assert q["text"] == "문제 1"
    assert q["saved_answer"] == ""

    res = client.post("/api/answer", json={"question_id": 1, "answer": "A"}).json()
    assert res["saved"] is True
    assert res["progress"] == 33
    assert res["current_index"] == 1
    assert client.get("/api/question/0").json()["saved_answer"] == "A"


def test_answer_validation(client):
    client.post("/api/load", json={"access_id": "abc123"})

    assert client.post("/api/answer", json={"question_id": 1, "answer": "Z"}).status_code == 400
    assert client.post("/api/answer", json={"question_id": 42, "answer": "A"}).status_code == 404
    assert client.get("/api/question/9").status_code == 404


def test_submit_gated_until_complete(client, gateway):
    client.post("/api/load", json={"access_id": "abc123"})
    client.post("/api/answer", json={"question_id": 1, "answer": "A"})

    res = client.post("/api/submit")

    assert res.status_code == 400
    assert gateway.count("submit") == 0


def test_submit_and_results(client, gateway):
    client.post("/api/load", json={"access_id": "abc123"})
    answer_all(client)

    state = client.post("/api/submit").json()
    assert state["phase"] == "submitted"
    assert state["editable"] is False

    results = client.get("/api/results").json()
    assert results["percentage"] == 100
    assert results["correct_count"] == 3
    assert len(results["rows"]) == 3

    assert client.post("/api/submit").status_code == 409
    assert gateway.count("submit") == 1


def test_results_before_submit(client):
    client.post("/api/load", json={"access_id": "abc123"})
    assert client.get("/api/results").status_code == 400


def test_submit_error_then_retry(client, gateway):
    gateway.submit_failures = 1
    client.post("/api/load", json={"access_id": "abc123"})
    answer_all(client)

    state = client.post("/api/submit").json()
    assert state["phase"] == "submit_error"
    assert state["error"]
    assert state["answered_count"] == 3
    assert state["can_submit"] is True

    state = client.post("/api/submit").json()
    assert state["phase"] == "submitted"
    assert gateway.count("submit") == 2


def test_bad_token_and_reload(client, gateway):
    state = client.post("/api/load", json={"access_id": "missing"}).json()

    assert state["phase"] == "load_error"
    assert state["error_kind"] == "not_found"

    state = client.post("/api/reload").json()
    assert state["phase"] == "load_error"
    assert gateway.count("test") == 2
    assert gateway.count("questions") == 0


def test_reload_not_allowed_in_progress(client):
    client.post("/api/load", json={"access_id": "abc123"})
    assert client.post("/api/reload").status_code == 400


def test_same_token_keeps_running_session(client, gateway):
    client.post("/api/load", json={"access_id": "abc123"})
    client.post("/api/answer", json={"question_id": 1, "answer": "A"})

    state = client.post("/api/load", json={"access_id": "abc123"}).json()

    assert state["answered_count"] == 1
    assert gateway.count("test") == 1


def test_reset_discards_session(client):
    client.post("/api/load", json={"access_id": "abc123"})
    assert client.post("/api/reset").json() == {"ok": True}
    assert client.get("/api/state").status_code == 404


def test_empty_questions_state():
    gateway = FakeGateway(questions=[])
    with make_client(gateway) as client:
        state = client.post("/api/load", json={"access_id": "abc123"}).json()

    assert state["phase"] == "empty_questions"
    assert state["title"] == "중간고사"
    assert state["error_kind"] is None
