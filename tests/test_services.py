"""
Tests for the Sink Services

- CoverStorage: file layout and rejected uploads
- EmailNotifier: disabled mode and SMTP failures
- Pagination helper
- Throttling key and 429 response
"""

import json
import smtplib
from unittest.mock import MagicMock, patch

import pytest
from fastapi import Request
from slowapi.errors import RateLimitExceeded

from booknet.config import get_settings
from booknet.errors import InvalidRequestError, LendingErrorCode
from booknet.services.notifications import EmailNotifier
from booknet.services.rate_limiter import client_address, rate_limit_exceeded_handler, throttle_key
from booknet.services.security import issue_access_token
from booknet.services.storage import CoverStorage, get_file_extension
from booknet.utils.pagination import Page


class TestCoverStorage:
    def test_save_cover_layout(self, tmp_path):
        storage = CoverStorage(tmp_path, max_size_bytes=100)

        path = storage.save_cover(b"img", "Cover.JPG", owner_id=7)

        assert path.startswith(str(tmp_path / "users" / "7"))
        assert path.endswith(".jpg")
        with open(path, "rb") as f:
            assert f.read() == b"img"

    @pytest.mark.parametrize(
        "content,filename",
        [
            (b"img", "cover.exe"),
            (b"img", None),
            (b"", "cover.png"),
            (b"x" * 101, "cover.png"),
        ],
    )
    def test_rejected_uploads(self, tmp_path, content, filename):
        storage = CoverStorage(tmp_path, max_size_bytes=100)

        with pytest.raises(InvalidRequestError) as exc_info:
            storage.save_cover(content, filename, owner_id=7)

        assert exc_info.value.code is LendingErrorCode.INVALID_FILE
        assert not (tmp_path / "users").exists()

    def test_get_file_extension(self):
        assert get_file_extension("a.tar.GZ") == "gz"
        assert get_file_extension("README") == ""
        assert get_file_extension(None) == ""


class TestEmailNotifier:
    def test_disabled_mail_is_not_sent(self):
        settings = get_settings().model_copy(update={"mail_enabled": False})

        with patch("booknet.services.notifications.smtplib.SMTP") as smtp:
            assert EmailNotifier(settings).notify_borrowed("alice@example.com", "Dune", "bob")

        smtp.assert_not_called()

    def test_sends_through_smtp(self):
        settings = get_settings().model_copy(update={"mail_enabled": True})
        server = MagicMock()

        with patch("booknet.services.notifications.smtplib.SMTP") as smtp:
            smtp.return_value.__enter__.return_value = server
            assert EmailNotifier(settings).notify_return_approved("bob@example.com", "Dune")

        message = server.send_message.call_args.args[0]
        assert message["To"] == "bob@example.com"
        assert "Dune" in message["Subject"]

    def test_smtp_failure_returns_false(self):
        settings = get_settings().model_copy(update={"mail_enabled": True})

        with patch(
            "booknet.services.notifications.smtplib.SMTP",
            side_effect=smtplib.SMTPConnectError(421, "unavailable"),
        ):
            assert EmailNotifier(settings).send_welcome("carol@example.com", "carol") is False


class TestPage:
    @pytest.mark.parametrize(
        "page,size,total,pages,first,last",
        [
            (1, 10, 0, 0, True, True),
            (1, 10, 10, 1, True, True),
            (1, 10, 11, 2, True, False),
            (2, 10, 11, 2, False, True),
        ],
    )
    def test_page_metadata(self, page, size, total, pages, first, last):
        result = Page(items=[], page=page, size=size, total_elements=total)

        assert result.total_pages == pages
        assert result.first is first
        assert result.last is last


def make_request(headers: dict[str, str] | None = None) -> Request:
    return Request(
        {
            "type": "http",
            "method": "GET",
            "path": "/",
            "headers": [(k.lower().encode(), v.encode()) for k, v in (headers or {}).items()],
            "client": ("10.0.0.7", 50000),
        }
    )


class TestThrottleKey:
    def test_member_token_is_counted_per_member(self):
        token = issue_access_token(42)

        assert throttle_key(make_request({"Authorization": f"Bearer {token}"})) == "member:42"

    def test_anonymous_is_counted_per_address(self):
        assert throttle_key(make_request()) == "ip:10.0.0.7"

    def test_invalid_token_falls_back_to_address(self):
        request = make_request({"Authorization": "Bearer not-a-token"})

        assert throttle_key(request) == "ip:10.0.0.7"

    def test_forwarded_address_wins(self):
        request = make_request({"X-Forwarded-For": "203.0.113.5, 10.0.0.1"})

        assert client_address(request) == "203.0.113.5"
        assert throttle_key(request) == "ip:203.0.113.5"


class TestRateLimitHandler:
    def test_throttled_response(self):
        exc = MagicMock(spec=RateLimitExceeded)
        exc.detail = "30 per 1 minute"

        response = rate_limit_exceeded_handler(make_request(), exc)

        assert response.status_code == 429
        assert response.headers["Retry-After"] == "60"
        assert json.loads(response.body)["code"] == "rate_limit_exceeded"
