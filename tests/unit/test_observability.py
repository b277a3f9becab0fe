"""Testes de observabilidade: latência por operação, correlation-id e mascaramento."""

from __future__ import annotations

import logging
import time
from unittest.mock import patch

from fastapi import FastAPI
from fastapi.testclient import TestClient

from wontan_connect.observability.logging import (
    CorrelationIdFilter,
    log_side_effect_failure,
    mask_id,
)
from wontan_connect.observability.middleware import (
    CorrelationIdMiddleware,
    _actor_id,
    _correlation_id,
    get_actor_id,
    get_correlation_id,
)
from wontan_connect.observability.timing import timed


class TestTimed:
    def test_logs_component_and_elapsed(self):
        with patch("wontan_connect.observability.timing.logger") as mock_logger:
            with timed("session.accept"):
                time.sleep(0.01)

        mock_logger.info.assert_called_once()
        extra = mock_logger.info.call_args.kwargs["extra"]
        assert extra["component"] == "session.accept"
        assert extra["elapsed_ms"] >= 10.0

    def test_logs_even_when_operation_fails(self):
        with patch("wontan_connect.observability.timing.logger") as mock_logger:
            try:
                with timed("session.confirm"):
                    raise ValueError("boom")
            except ValueError:
                pass

        mock_logger.info.assert_called_once()
        assert mock_logger.info.call_args.kwargs["extra"]["outcome"] == "ValueError"

    def test_tags_masked_session_and_ok_outcome(self):
        with patch("wontan_connect.observability.timing.logger") as mock_logger:
            with timed("session.cancel", "session-0001"):
                pass

        extra = mock_logger.info.call_args.kwargs["extra"]
        assert extra["session_id"] == "session-..."
        assert extra["outcome"] == "ok"


class TestCorrelationIdFilter:
    def _record(self, **extra) -> logging.LogRecord:
        record = logging.LogRecord("t", logging.INFO, __file__, 1, "msg", None, None)
        for key, value in extra.items():
            setattr(record, key, value)
        return record

    def test_injects_current_correlation_id(self):
        token = _correlation_id.set("corr-abc")
        try:
            record = self._record()
            CorrelationIdFilter("wontan_connect").filter(record)
        finally:
            _correlation_id.reset(token)

        assert record.correlation_id == "corr-abc"  # type: ignore[attr-defined]
        assert record.service == "wontan_connect"  # type: ignore[attr-defined]

    def test_keeps_explicit_correlation_id(self):
        record = self._record(correlation_id="explicit")

        CorrelationIdFilter("svc").filter(record)

        assert record.correlation_id == "explicit"  # type: ignore[attr-defined]

    def test_injects_masked_actor(self):
        token = _actor_id.set("user-alice-0001")
        try:
            record = self._record()
            CorrelationIdFilter("svc").filter(record)
        finally:
            _actor_id.reset(token)

        assert record.actor_id == "user-ali..."  # type: ignore[attr-defined]

    def test_actor_is_none_outside_requests(self):
        record = self._record()

        CorrelationIdFilter("svc").filter(record)

        assert record.actor_id is None  # type: ignore[attr-defined]


def test_mask_id_truncates():
    assert mask_id("user-alice-0001") == "user-ali..."
    assert mask_id(None) is None
    assert mask_id("") == ""


def test_side_effect_failure_is_a_warning(caplog):
    logger = logging.getLogger("test.side_effects")

    with caplog.at_level(logging.WARNING):
        log_side_effect_failure(logger, "notify", "session-0001", RuntimeError("down"))

    record = caplog.records[0]
    assert record.levelno == logging.WARNING
    assert record.side_effect == "notify"  # type: ignore[attr-defined]
    assert record.error_type == "RuntimeError"  # type: ignore[attr-defined]
    assert record.session_id == "session-..."  # type: ignore[attr-defined]


class TestCorrelationIdMiddleware:
    def _client(self) -> TestClient:
        app = FastAPI()
        app.add_middleware(
            CorrelationIdMiddleware, correlation_header="X-Request-Id", actor_header="X-Member"
        )

        @app.get("/whoami")
        async def whoami() -> dict:
            return {"actor": get_actor_id(), "correlation": get_correlation_id()}

        return TestClient(app)

    def test_binds_actor_and_echoes_correlation(self):
        response = self._client().get(
            "/whoami", headers={"X-Request-Id": "req-42", "X-Member": " user-bob-0002 "}
        )

        assert response.json() == {"actor": "user-bob-0002", "correlation": "req-42"}
        assert response.headers["x-request-id"] == "req-42"

    def test_generates_correlation_when_missing(self):
        response = self._client().get("/whoami")

        body = response.json()
        assert body["actor"] == ""
        assert len(body["correlation"]) == 32
        assert response.headers["x-request-id"] == body["correlation"]
        assert get_actor_id() == ""
