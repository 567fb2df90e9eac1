"""
Tests the group request routes and the mapping of errors onto status codes.
"""

from decimal import Decimal

import pytest

from grouplearn.core.uuid import uuid7


def headers(user):
    return {"X-Actor-Id": str(user)}


def event(client, request_id, user, body):
    return client.post(
        f"/requests/{request_id}/events", json={"event": body}, headers=headers(user)
    )


@pytest.fixture
def request_id(client, group_id, users):
    response = client.put(
        "/requests",
        json={"group_id": str(group_id), "title": "Thermodynamics", "rate": "150"},
        headers=headers(users[0]),
    )
    assert response.status_code == 200
    return response.json()["request_id"]


def test_health(client):
    assert client.get("/health").json() == {"status": "healthy"}


def test_create_and_read(client, request_id, users):
    response = client.get(f"/requests/{request_id}")

    assert response.status_code == 200
    content = response.json()
    assert content["status"] == "pending"
    assert content["creator_id"] == str(users[0])
    assert content["vote_count"] == 0


def test_create_rejections(client, group_id, users):
    response = client.put(
        "/requests",
        json={"group_id": str(group_id), "title": "Thermodynamics"},
        headers=headers(users[9]),
    )
    assert response.status_code == 403
    assert response.json()["kind"] == "not_a_member"

    response = client.put(
        "/requests",
        json={"group_id": str(group_id), "title": "Thermodynamics", "rate": "-4"},
        headers=headers(users[0]),
    )
    assert response.status_code == 422

    response = client.put(
        "/requests",
        json={"group_id": str(group_id), "title": "Thermodynamics", "rate": "9.999"},
        headers=headers(users[0]),
    )
    assert response.status_code == 422
    assert response.json()["kind"] == "validation_error"

    response = client.put("/requests", json={"group_id": str(group_id), "title": "x"})
    assert response.status_code == 422


def test_lifecycle_over_http(client, request_id, users, sink):
    for user in users[1:6]:
        response = event(client, request_id, user, {"kind": "cast_vote"})
        assert response.status_code == 200

    assert response.json()["status"] == "voting_open"
    assert "voting_opened" in sink.kinds_for(users[3])

    response = event(client, request_id, users[6], {"kind": "teach_apply"})
    assert response.json()["status"] == "accepted"

    response = event(
        client,
        request_id,
        users[0],
        {"kind": "select_teacher", "teacher_id": str(users[6]), "deadline_hours": 48},
    )
    assert response.status_code == 200
    assert response.json()["status"] == "funding"

    countdown = client.get(f"/requests/{request_id}/countdown").json()
    assert countdown["status"] == "funding"
    assert "record_payment" in countdown["allowed_events"]
    assert countdown["payment"]["expired"] is False
    assert countdown["payment"]["display"].startswith("47:")
    assert Decimal(countdown["amount_due"]) == Decimal("900")
    assert Decimal(countdown["total_paid"]) == 0
    assert countdown["session"] is None

    response = event(
        client,
        request_id,
        users[2],
        {"kind": "record_payment", "user_id": str(users[1]), "amount": "150"},
    )
    assert response.status_code == 403

    response = event(
        client,
        request_id,
        users[1],
        {"kind": "record_payment", "user_id": str(users[1]), "amount": "150"},
    )
    assert response.json()["paid_count"] == 1

    response = event(client, request_id, users[0], {"kind": "cancel", "reason": "ill"})
    assert response.status_code == 200
    content = response.json()
    assert content["status"] == "cancelled"
    assert content["refund_status"] == "pending"
    assert "refund_requested" in sink.kinds_for(users[1])

    response = event(client, request_id, users[1], {"kind": "join"})
    assert response.status_code == 410
    assert response.json()["detail"] == "This request is closed."


def test_error_status_codes(client, request_id, users):
    response = event(client, request_id, users[0], {"kind": "cast_vote"})
    assert response.status_code == 403
    assert response.json()["kind"] == "forbidden"

    response = event(client, request_id, users[9], {"kind": "cast_vote"})
    assert response.status_code == 403
    assert response.json()["kind"] == "not_a_member"

    response = event(client, request_id, users[1], {"kind": "join"})
    assert response.status_code == 409
    assert response.json()["kind"] == "invalid_transition"

    response = event(client, request_id, users[1], {"kind": "teleport"})
    assert response.status_code == 422

    response = event(client, uuid7(), users[1], {"kind": "cast_vote"})
    assert response.status_code == 404

    assert client.get(f"/requests/{uuid7()}").status_code == 404
