"""Tests for notifiers — access links, demo mode, endpoint and Resend delivery."""

import asyncio
from unittest.mock import MagicMock, patch

import pytest
import requests

from playbook_gate.tests.conftest import make_signup


def _run(coro):
    return asyncio.new_event_loop().run_until_complete(coro)


def _response(status_code, payload):
    resp = MagicMock()
    resp.status_code = status_code
    resp.ok = 200 <= status_code < 300
    resp.json.return_value = payload
    return resp


class TestBuildAccessLink:
    def test_appends_access_param(self):
        from playbook_gate.services.notifier import build_access_link

        link = build_access_link("https://site.example/playbook", "prism_abc")
        assert link == "https://site.example/playbook?access=prism_abc"

    def test_replaces_existing_query_and_fragment(self):
        from playbook_gate.services.notifier import build_access_link

        link = build_access_link("https://site.example/playbook?access=old&x=1#top", "prism_new")
        assert link == "https://site.example/playbook?access=prism_new"

    def test_encodes_token(self):
        from playbook_gate.services.notifier import build_access_link

        link = build_access_link("https://site.example/playbook", "a b&c")
        assert link.endswith("?access=a+b%26c")


class TestSimulatedNotifier:
    def test_returns_demo_redirect(self):
        from playbook_gate.services.notifier import SimulatedNotifier

        signup = make_signup(email="ada@x.com")
        result = _run(SimulatedNotifier(redirect_seconds=2).send(signup, "https://s/playbook?access=t"))
        assert result == {
            "success": True,
            "email": "ada@x.com",
            "demo": True,
            "redirect_url": "https://s/playbook?access=t",
            "redirect_delay": 2,
        }

    def test_logs_intended_email(self, caplog):
        from playbook_gate.services.notifier import SimulatedNotifier

        signup = make_signup(email="ada@x.com", role="")
        with caplog.at_level("INFO", logger="playbook_gate.services.notifier"):
            _run(SimulatedNotifier().send(signup, "https://s/playbook?access=t"))
        assert "DEMO MODE" in caplog.text
        assert "ada@x.com" in caplog.text
        assert "Not specified" in caplog.text


class TestEndpointNotifier:
    def test_posts_payload_and_returns_message_id(self):
        from playbook_gate.services.notifier import EndpointNotifier

        signup = make_signup(email="ada@x.com", name="Ada", role="", access_token="prism_t")
        with patch("playbook_gate.services.notifier.requests.post") as mock_post:
            mock_post.return_value = _response(200, {"success": True, "messageId": "msg-1"})
            result = _run(EndpointNotifier("https://api.example/send", timeout=5).send(signup, "link"))

        assert result["success"] is True
        assert result["message_id"] == "msg-1"
        args, kwargs = mock_post.call_args
        assert args[0] == "https://api.example/send"
        assert kwargs["timeout"] == 5
        assert kwargs["json"] == {
            "name": "Ada",
            "email": "ada@x.com",
            "company": "Acme",
            "role": "Not specified",
            "accessToken": "prism_t",
        }

    def test_error_status_uses_endpoint_message(self):
        from playbook_gate.services.notifier import EndpointNotifier, NotificationError

        with patch("playbook_gate.services.notifier.requests.post") as mock_post:
            mock_post.return_value = _response(503, {"error": "Provider down"})
            with pytest.raises(NotificationError, match="Provider down"):
                _run(EndpointNotifier("https://api.example/send").send(make_signup(), "link"))

    def test_error_status_without_message(self):
        from playbook_gate.services.notifier import EndpointNotifier, NotificationError

        with patch("playbook_gate.services.notifier.requests.post") as mock_post:
            resp = _response(500, None)
            resp.json.side_effect = ValueError("not json")
            mock_post.return_value = resp
            with pytest.raises(NotificationError, match="Failed to send email"):
                _run(EndpointNotifier("https://api.example/send").send(make_signup(), "link"))

    def test_network_error(self):
        from playbook_gate.services.notifier import EndpointNotifier, NotificationError

        with patch("playbook_gate.services.notifier.requests.post") as mock_post:
            mock_post.side_effect = requests.ConnectionError("connection refused")
            with pytest.raises(NotificationError, match="connection refused"):
                _run(EndpointNotifier("https://api.example/send").send(make_signup(), "link"))


class TestResendNotifier:
    def test_sends_rendered_email(self):
        from playbook_gate.services.notifier import ResendNotifier

        signup = make_signup(email="ada@x.com", name="Ada")
        with patch("playbook_gate.services.notifier.send_access_email", return_value="re-1") as mock_send:
            result = _run(ResendNotifier("https://s/").send(signup, "https://s/playbook?access=t"))

        assert result["message_id"] == "re-1"
        to_email, html = mock_send.call_args[0]
        assert to_email == "ada@x.com"
        assert "https://s/playbook?access=t" in html

    def test_provider_error_becomes_notification_error(self):
        from playbook_gate.services.access_email import ProviderError
        from playbook_gate.services.notifier import NotificationError, ResendNotifier

        with patch("playbook_gate.services.notifier.send_access_email",
                   side_effect=ProviderError(422, "Invalid `to` field")):
            with pytest.raises(NotificationError, match="Invalid `to` field"):
                _run(ResendNotifier("https://s/").send(make_signup(), "link"))


class TestBuildNotifier:
    def test_defaults_to_simulated_without_endpoint(self):
        from playbook_gate.services.notifier import SimulatedNotifier, build_notifier

        notifier = build_notifier(redirect_seconds=3)
        assert isinstance(notifier, SimulatedNotifier)
        assert notifier.redirect_seconds == 3

    def test_defaults_to_endpoint_when_configured(self):
        from playbook_gate.services.notifier import EndpointNotifier, build_notifier

        notifier = build_notifier(send_endpoint="https://api.example/send")
        assert isinstance(notifier, EndpointNotifier)

    def test_explicit_resend(self):
        from playbook_gate.services.notifier import ResendNotifier, build_notifier

        assert isinstance(build_notifier(mode="resend", home_url="https://s/"), ResendNotifier)

    def test_endpoint_mode_requires_url(self):
        from playbook_gate.services.notifier import build_notifier

        with pytest.raises(ValueError, match="SEND_ENDPOINT"):
            build_notifier(mode="endpoint")

    def test_unknown_mode(self):
        from playbook_gate.services.notifier import build_notifier

        with pytest.raises(ValueError, match="Unknown notifier"):
            build_notifier(mode="carrier-pigeon")
