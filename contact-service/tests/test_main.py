import json

import pytest


def _assert_cors(resp):
    assert resp.headers["Access-Control-Allow-Origin"] == "*"
    assert resp.headers["Access-Control-Allow-Methods"] == "POST"
    assert resp.headers["Access-Control-Allow-Headers"] == "Content-Type, Authorization"


def test_successful_submission(client, notifier, valid_payload):
    resp = client.post("/", json=valid_payload)

    assert resp.status_code == 200
    assert resp.content_type == "application/json"
    assert resp.get_json() == {"status": "success", "message": "Email send successfully!"}
    _assert_cors(resp)
    assert len(notifier.sent) == 1


def test_response_is_pretty_printed(client, valid_payload):
    resp = client.post("/", json=valid_payload)
    assert b'\n  "status": "success"' in resp.data


@pytest.mark.parametrize("method", ["get", "put", "patch", "delete", "options", "head"])
def test_non_post_methods_are_refused(client, method):
    resp = getattr(client, method)("/", json={"purpose": 0})

    assert resp.status_code == 405
    assert resp.content_type == "application/json"
    _assert_cors(resp)
    if method != "head":
        assert resp.get_json() == {"status": "error", "message": "Only POST requests are allowed"}


def test_refused_methods_do_not_touch_rate_gate(client, limiter, valid_payload):
    client.get("/")
    client.get("/")
    assert len(limiter) == 0
    assert client.post("/", json=valid_payload).status_code == 200
    assert len(limiter) == 1


def test_any_path_is_the_endpoint(client, valid_payload):
    resp = client.post("/api/contact/form", json=valid_payload)
    assert resp.status_code == 200
    _assert_cors(resp)


def test_second_request_within_a_minute_is_rate_limited(client, clock, notifier, valid_payload):
    assert client.post("/", json=valid_payload).status_code == 200
    clock.advance(30)

    resp = client.post("/", json=valid_payload)
    assert resp.status_code == 429
    assert resp.get_json() == {
        "status": "error",
        "message": "Too many requests. Please wait before trying again.",
    }
    _assert_cors(resp)
    assert len(notifier.sent) == 1


def test_request_after_a_minute_is_accepted(client, clock, notifier, valid_payload):
    assert client.post("/", json=valid_payload).status_code == 200
    clock.advance(60)
    assert client.post("/", json=valid_payload).status_code == 200
    assert len(notifier.sent) == 2


def test_rejected_retry_pushes_the_gate_forward(client, clock, valid_payload):
    client.post("/", json=valid_payload)
    clock.advance(45)
    assert client.post("/", json=valid_payload).status_code == 429
    clock.advance(45)
    assert client.post("/", json=valid_payload).status_code == 429
    clock.advance(60)
    assert client.post("/", json=valid_payload).status_code == 200


def test_sessions_are_rate_limited_separately(app, valid_payload):
    first, second = app.test_client(), app.test_client()
    assert first.post("/", json=valid_payload).status_code == 200
    assert second.post("/", json=valid_payload).status_code == 200
    assert first.post("/", json=valid_payload).status_code == 429


def test_invalid_json(client):
    resp = client.post("/", data="{oops", content_type="application/json")
    assert resp.status_code == 400
    assert resp.get_json() == {"status": "error", "message": "Invalid JSON"}
    _assert_cors(resp)


def test_body_is_parsed_regardless_of_content_type(client, valid_payload):
    resp = client.post("/", data=json.dumps(valid_payload), content_type="text/plain")
    assert resp.status_code == 200


def test_invalid_email(client, valid_payload):
    valid_payload["email"] = "not-an-email"
    resp = client.post("/", json=valid_payload)
    assert resp.status_code == 400
    assert resp.get_json()["message"] == "Invalid email format"


def test_missing_message(client, valid_payload):
    valid_payload["message"] = ""
    resp = client.post("/", json=valid_payload)
    assert resp.status_code == 400
    assert resp.get_json()["message"] == "All fields are required"


def test_invalid_purpose(client, valid_payload):
    valid_payload["purpose"] = "0"
    resp = client.post("/", json=valid_payload)
    assert resp.status_code == 400
    assert resp.get_json()["message"] == "Invalid purpose value. Use 0 for contact and 1 for appointment"


def test_dispatch_failure(client, notifier, valid_payload):
    notifier.fail_with = "Connection failed: timed out"
    resp = client.post("/", json=valid_payload)
    assert resp.status_code == 500
    assert resp.get_json() == {
        "status": "error",
        "message": "Error sending email: Connection failed: timed out",
    }
    _assert_cors(resp)


def test_injected_collaborators_are_used(app, settings, limiter, notifier):
    wiring = app.extensions["contact"]
    assert wiring["settings"] is settings
    assert wiring["limiter"] is limiter
    assert wiring["notifier"] is notifier


def test_deeply_nested_body_is_invalid_json(client):
    resp = client.post("/", data=b"[" * 100_000 + b"]" * 100_000)
    assert resp.status_code == 400
    assert resp.get_json() == {"status": "error", "message": "Invalid JSON"}
    _assert_cors(resp)
