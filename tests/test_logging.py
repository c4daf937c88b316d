import logging

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from accord.core.logging import setup_request_logging, should_log_status


@pytest.mark.parametrize(
    ("status_code", "log_requests", "expected"),
    [
        (200, None, False),
        (200, "200", True),
        (404, "200", False),
        (404, "200,404", True),
        (404, "-404", False),
        (500, "-404", True),
        (200, "", False),
    ],
)
def test_should_log_status(status_code: int, log_requests: str | None, expected: bool) -> None:
    assert should_log_status(status_code, log_requests) is expected


def test_request_logging_middleware_logs_matching_status(caplog: pytest.LogCaptureFixture) -> None:
    app = FastAPI()

    @app.get("/ok")
    async def ok() -> dict[str, str]:
        return {"status": "ok"}

    with caplog.at_level(logging.INFO, logger="accord.requests"):
        setup_request_logging(app, "-404")
        setup_request_logging(app, "-404")
        with TestClient(app) as client:
            client.get("/ok")
            client.get("/missing")

    messages = [record.getMessage() for record in caplog.records if record.name == "accord.requests"]
    assert sum("spam your console" in message for message in messages) == 1
    assert any('"GET /ok" 200' in message for message in messages)
    assert not any("/missing" in message for message in messages)


def test_request_logging_disabled_installs_nothing() -> None:
    app = FastAPI()

    setup_request_logging(app, None)

    assert not getattr(app.state, "request_logging", False)
