"""Tests for the Resend email sender."""

import json

import httpx
import pytest

from sattrack.config import Settings
from sattrack.services.email import EmailSender


def make_settings(**overrides) -> Settings:
    values = {
        "supabase_jwt_secret": "test-jwt-secret",
        "resend_api_key": "re_test",
        "site_url": "https://app.example.com/",
    }
    values.update(overrides)
    return Settings(**values)


def mock_client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


async def test_send_posts_rendered_email():
    requests = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(200, json={"id": "email_123"})

    async with mock_client(handler) as client:
        sender = EmailSender(make_settings(), client=client)
        sent = await sender.send(
            "student@example.com",
            "SAT Plan Starting",
            "Your Math plan is starting at 09:00.",
        )

    assert sent is True
    request = requests[0]
    assert str(request.url) == "https://api.resend.com/emails"
    assert request.headers["Authorization"] == "Bearer re_test"
    body = json.loads(request.content)
    assert body["to"] == "student@example.com"
    assert body["from"] == "notifications@satracker.uz"
    assert body["subject"] == "SAT Plan Starting"
    assert "Your Math plan is starting at 09:00." in body["html"]
    assert "https://app.example.com" in body["html"]


async def test_missing_api_key_sends_nothing():
    def handler(request):  # pragma: no cover - must not be called
        raise AssertionError("no request expected")

    async with mock_client(handler) as client:
        sender = EmailSender(make_settings(resend_api_key=None), client=client)
        assert await sender.send("student@example.com", "Subject", "Body") is False


@pytest.mark.parametrize("recipient", [None, ""])
async def test_missing_recipient_sends_nothing(recipient):
    async with mock_client(lambda request: httpx.Response(200)) as client:
        sender = EmailSender(make_settings(), client=client)
        assert await sender.send(recipient, "Subject", "Body") is False


async def test_provider_error_returns_false():
    async with mock_client(lambda request: httpx.Response(422, json={"message": "invalid"})) as client:
        sender = EmailSender(make_settings(), client=client)
        assert await sender.send("student@example.com", "Subject", "Body") is False


async def test_network_error_returns_false():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    async with mock_client(handler) as client:
        sender = EmailSender(make_settings(), client=client)
        assert await sender.send("student@example.com", "Subject", "Body") is False


def test_render_escapes_message_and_links_action():
    sender = EmailSender(make_settings())
    html = sender.render(
        "Premium Expired",
        "<script>alert(1)</script>",
        action_path="/premium",
        action_label="Renew Premium",
    )

    assert "<script>" not in html
    assert "&lt;script&gt;" in html
    assert "https://app.example.com/premium" in html
    assert "Renew Premium" in html
