import json
import logging
import re

from fastapi.testclient import TestClient

from src.api.main import app
from src.api.observability import JsonFormatter


def test_health_endpoints_return_expected_status_payloads():
    with TestClient(app) as client:
        assert client.get("/health").json() == {"status": "ok"}
        assert client.get("/health/live").json() == {"status": "live"}
        assert client.get("/health/ready").json() == {"status": "ready"}


def test_observability_headers_preserve_inbound_correlation_and_trace_id():
    with TestClient(app) as client:
        response = client.get(
            "/health",
            headers={
                "X-Correlation-Id": "corr-inbound-123",
                "X-Request-Id": "req-inbound-123",
                "traceparent": "00-1234567890abcdef1234567890abcdef-0000000000000001-01",
            },
        )

    assert response.status_code == 200
    assert response.headers["X-Correlation-Id"] == "corr-inbound-123"
    assert response.headers["X-Request-Id"] == "req-inbound-123"
    assert response.headers["X-Trace-Id"] == "1234567890abcdef1234567890abcdef"


def test_observability_headers_generate_ids_when_missing():
    with TestClient(app) as client:
        response = client.get("/health")

    assert re.fullmatch(r"corr_[0-9a-f]{12}", response.headers["X-Correlation-Id"])
    assert re.fullmatch(r"req_[0-9a-f]{12}", response.headers["X-Request-Id"])
    assert re.fullmatch(r"[0-9a-f]{32}", response.headers["X-Trace-Id"])


def test_metrics_endpoint_available():
    with TestClient(app) as client:
        client.get("/health")
        response = client.get("/metrics")
    assert response.status_code == 200
    assert "http_request" in response.text


def test_json_formatter_merges_extra_fields(monkeypatch):
    monkeypatch.setenv("SERVICE_NAME", "valentine-test")
    record = logging.LogRecord(
        name="src.core.proposals.store",
        level=logging.INFO,
        pathname=__file__,
        lineno=1,
        msg="proposal.created",
        args=(),
        exc_info=None,
    )
    record.extra_fields = {"proposal_id": "val_abc123def"}

    payload = json.loads(JsonFormatter().format(record))

    assert payload["service"] == "valentine-test"
    assert payload["message"] == "proposal.created"
    assert payload["proposal_id"] == "val_abc123def"
    assert "correlation_id" not in payload
