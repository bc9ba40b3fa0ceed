import asyncio
import json

import httpx
import pytest

from summary_desk.exceptions import ConfigurationError, TriggerRejected
from summary_desk.services.summary_trigger import SummarizationTrigger

WEBHOOK_URL = "https://hooks.example.test/summary"
SPIN_UP_URL = "https://hooks.example.test/spin-up"


def make_trigger(handler, spin_up_url=SPIN_UP_URL):
    return SummarizationTrigger(
        WEBHOOK_URL, "secret", spin_up_url=spin_up_url, transport=httpx.MockTransport(handler),
    )


def test_trigger_posts_document_with_auth_header():
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200, json={"status": "started"})

    asyncio.run(make_trigger(handler).trigger("report.pdf", "uploads/report.pdf"))

    request = seen[0]
    assert request.method == "POST"
    assert str(request.url) == WEBHOOK_URL
    assert request.headers["X-N8N-Auth"] == "secret"
    assert json.loads(request.content) == {"pdfName": "report.pdf", "objectPath": "uploads/report.pdf"}


def test_non_2xx_is_rejected_with_status():
    trigger = make_trigger(lambda request: httpx.Response(500, text="boom"))

    with pytest.raises(TriggerRejected) as exc_info:
        asyncio.run(trigger.trigger("report.pdf", "uploads/report.pdf"))

    assert exc_info.value.status_code == 500
    assert not exc_info.value.already_exists
    assert exc_info.value.key == "report.pdf"


@pytest.mark.parametrize("status", [200, 400])
def test_already_exists_payload_is_flagged(status):
    trigger = make_trigger(lambda request: httpx.Response(status, json={"Error": "Summary already exists"}))

    with pytest.raises(TriggerRejected) as exc_info:
        asyncio.run(trigger.trigger("report.pdf", "uploads/report.pdf"))

    assert exc_info.value.already_exists
    assert exc_info.value.action == "refresh"


def test_network_error_is_rejected():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(TriggerRejected) as exc_info:
        asyncio.run(make_trigger(handler).trigger("report.pdf", "uploads/report.pdf"))

    assert exc_info.value.status_code is None


def test_spin_up_sends_login_event():
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200)

    assert asyncio.run(make_trigger(handler).spin_up()) is True
    body = json.loads(seen[0].content)
    assert str(seen[0].url) == SPIN_UP_URL
    assert body["event"] == "userLoggedIn"
    assert "timestamp" in body


def test_spin_up_failures_are_not_raised():
    assert asyncio.run(make_trigger(lambda request: httpx.Response(503)).spin_up()) is False
    assert asyncio.run(make_trigger(lambda request: httpx.Response(200), spin_up_url="").spin_up()) is False


def test_from_settings_requires_webhook_config(monkeypatch):
    from summary_desk.config import settings

    monkeypatch.setattr(settings, "summary_webhook_url", "")
    with pytest.raises(ConfigurationError):
        SummarizationTrigger.from_settings()
