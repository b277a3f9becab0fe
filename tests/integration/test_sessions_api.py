"""Testes de ponta a ponta da API HTTP de sessões (TestClient + stores em memória)."""

from __future__ import annotations

from wontan_connect.domain.enums import OfferStatus

from tests.helpers.factories import ALICE, BOB, CAROL, OFFER_ID, make_offer


def _as(user_id: str) -> dict[str, str]:
    return {"X-User-Id": user_id}


def _create(client, user_id: str = ALICE, offer_id: str = OFFER_ID, **body):
    return client.post(
        "/v1/sessions", json={"offer_id": offer_id, **body}, headers=_as(user_id)
    )


def _create_accepted(client) -> str:
    session_id = _create(client, proposed_amount=100).json()["data"]["id"]
    response = client.post(f"/v1/sessions/{session_id}/accept", headers=_as(BOB))
    assert response.status_code == 200
    return session_id


def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_missing_identity_is_unauthorized(client):
    response = client.post("/v1/sessions", json={"offer_id": OFFER_ID})

    assert response.status_code == 401
    body = response.json()
    assert body["success"] is False
    assert body["error"]["code"] == "AUTH_UNAUTHORIZED"


def test_correlation_id_is_echoed(client):
    response = client.get("/health", headers={"X-Correlation-ID": "corr-123"})

    assert response.headers["x-correlation-id"] == "corr-123"


class TestCreate:
    def test_created_with_envelope(self, client, notifier):
        response = _create(client, proposed_amount=250, message="olá")

        assert response.status_code == 201
        body = response.json()
        assert body["success"] is True
        assert body["data"]["status"] == "pending"
        assert body["data"]["initiator_id"] == ALICE
        assert body["data"]["responder_id"] == BOB
        assert body["data"]["agreed_terms"] == {"proposed_amount": 250.0, "message": "olá"}
        assert notifier.delivered[-1].participant_ids == [BOB]

    def test_unknown_offer(self, client):
        response = _create(client, offer_id="missing")

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "RESOURCE_NOT_FOUND"

    def test_own_offer_is_forbidden(self, client):
        response = _create(client, user_id=BOB)

        assert response.status_code == 403
        assert response.json()["error"]["code"] == "RESOURCE_FORBIDDEN"

    def test_duplicate_active_session(self, client):
        assert _create(client).status_code == 201

        response = _create(client)

        assert response.status_code == 409
        assert response.json()["error"]["code"] == "ALREADY_EXISTS"

    def test_inactive_offer(self, client, stores):
        stores.offers.add_offer(make_offer("offer-paused", status=OfferStatus.PAUSED))

        response = _create(client, offer_id="offer-paused")

        assert response.status_code == 409
        assert response.json()["error"]["code"] == "SESSION_INVALID_STATE"

    def test_non_positive_amount_is_rejected(self, client):
        response = _create(client, proposed_amount=0)

        assert response.status_code == 422
        body = response.json()
        assert body["success"] is False
        assert body["error"]["code"] == "VALIDATION_ERROR"

    def test_message_too_long_is_rejected(self, client):
        response = _create(client, message="x" * 501)

        assert response.status_code == 422
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"


class TestLifecycle:
    def test_full_flow_to_completed(self, client):
        session_id = _create_accepted(client)

        first = client.post(
            f"/v1/sessions/{session_id}/confirm",
            json={"confirmation_type": "sent"},
            headers=_as(ALICE),
        )
        assert first.json()["data"]["status"] == "in_progress"

        client.post(
            f"/v1/sessions/{session_id}/confirm",
            json={"confirmation_type": "received"},
            headers=_as(BOB),
        )
        final = client.post(
            f"/v1/sessions/{session_id}/confirm",
            json={"confirmation_type": "received", "notes": "tudo certo"},
            headers=_as(ALICE),
        )

        assert final.status_code == 200
        assert final.json()["data"]["status"] == "completed"
        assert final.json()["data"]["completed_at"] is not None

        details = client.get(f"/v1/sessions/{session_id}", headers=_as(BOB)).json()["data"]
        assert details["consensus"]["is_complete"] is True
        assert details["consensus"]["initiator"] == ["received", "sent"]
        assert details["consensus"]["responder"] == ["received"]
        assert len(details["confirmations"]) == 3
        assert details["conversation_id"] is not None

        history = client.get(f"/v1/sessions/{session_id}/history", headers=_as(ALICE))
        actions = [event["action"] for event in history.json()["data"]]
        assert actions[0] == "session.create"
        assert actions[-1] == "session.complete"

    def test_duplicate_confirmation(self, client):
        session_id = _create_accepted(client)
        payload = {"confirmation_type": "sent"}
        client.post(f"/v1/sessions/{session_id}/confirm", json=payload, headers=_as(ALICE))

        response = client.post(
            f"/v1/sessions/{session_id}/confirm", json=payload, headers=_as(ALICE)
        )

        assert response.status_code == 409
        assert response.json()["error"]["code"] == "ALREADY_EXISTS"

    def test_invalid_confirmation_type(self, client):
        session_id = _create_accepted(client)

        response = client.post(
            f"/v1/sessions/{session_id}/confirm",
            json={"confirmation_type": "maybe"},
            headers=_as(ALICE),
        )

        assert response.status_code == 422

    def test_decline_with_reason(self, client):
        session_id = _create(client).json()["data"]["id"]

        response = client.post(
            f"/v1/sessions/{session_id}/decline", json={"reason": "sem saldo"}, headers=_as(BOB)
        )

        assert response.status_code == 200
        assert response.json()["data"]["status"] == "declined"
        assert response.json()["data"]["decline_reason"] == "sem saldo"

    def test_initiator_cannot_accept(self, client):
        session_id = _create(client).json()["data"]["id"]

        response = client.post(f"/v1/sessions/{session_id}/accept", headers=_as(ALICE))

        assert response.status_code == 403

    def test_cancel_terminal_session_is_invalid(self, client):
        session_id = _create(client).json()["data"]["id"]
        client.post(f"/v1/sessions/{session_id}/cancel", headers=_as(ALICE))

        response = client.post(f"/v1/sessions/{session_id}/cancel", headers=_as(BOB))

        assert response.status_code == 409
        assert response.json()["error"]["code"] == "SESSION_INVALID_STATE"

    def test_dispute_in_progress(self, client):
        session_id = _create_accepted(client)
        client.post(
            f"/v1/sessions/{session_id}/confirm",
            json={"confirmation_type": "sent"},
            headers=_as(BOB),
        )

        response = client.post(
            f"/v1/sessions/{session_id}/dispute",
            json={"reason": "não recebi"},
            headers=_as(ALICE),
        )

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["status"] == "disputed"
        assert data["disputed_by_id"] == ALICE

    def test_dispute_requires_reason(self, client):
        session_id = _create_accepted(client)

        response = client.post(
            f"/v1/sessions/{session_id}/dispute", json={"reason": ""}, headers=_as(ALICE)
        )

        assert response.status_code == 422


class TestReads:
    def test_outsider_cannot_view(self, client):
        session_id = _create(client).json()["data"]["id"]

        response = client.get(f"/v1/sessions/{session_id}", headers=_as(CAROL))

        assert response.status_code == 403

    def test_unknown_session(self, client):
        response = client.get("/v1/sessions/nope", headers=_as(ALICE))

        assert response.status_code == 404

    def test_list_with_pagination_and_filters(self, client, stores):
        stores.offers.add_offer(make_offer("offer-0002"))
        stores.offers.add_offer(make_offer("offer-0003"))
        for offer_id in (OFFER_ID, "offer-0002", "offer-0003"):
            assert _create(client, offer_id=offer_id).status_code == 201

        page = client.get("/v1/sessions?limit=2&page=1", headers=_as(ALICE)).json()["data"]
        assert len(page["items"]) == 2
        assert page["pagination"]["total"] == 3
        assert page["pagination"]["has_next"] is True

        as_responder = client.get("/v1/sessions?role=responder", headers=_as(ALICE))
        assert as_responder.json()["data"]["pagination"]["total"] == 0

        pending = client.get("/v1/sessions?status=pending", headers=_as(BOB))
        assert pending.json()["data"]["pagination"]["total"] == 3

    def test_invalid_status_filter(self, client):
        response = client.get("/v1/sessions?status=unknown", headers=_as(ALICE))

        assert response.status_code == 422
