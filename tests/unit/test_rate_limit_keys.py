from fastapi import Request

from tablehand.api.rate_limit import chat_rate_limit, key_api_key_or_ip
from tablehand.config import settings


def _request(headers: dict[str, str], client: tuple[str, int] = ("127.0.0.1", 1234)) -> Request:
    return Request(
        {
            "type": "http",
            "method": "POST",
            "path": "/v1/chat/message",
            "headers": [(k.lower().encode(), v.encode()) for k, v in headers.items()],
            "client": client,
        }
    )


def test_api_key_selects_bucket():
    assert key_api_key_or_ip(_request({"X-API-Key": "abc"})) == "apikey:abc"
    assert key_api_key_or_ip(_request({"X-API-Key": "abc"})) != key_api_key_or_ip(
        _request({"X-API-Key": "def"})
    )


def test_other_credentials_do_not_select_bucket():
    req = _request({"Authorization": "Bearer t", "X-Rate-Limit-Namespace": "tenant-a"})
    assert key_api_key_or_ip(req) == "ip:127.0.0.1"


def test_ip_fallback_per_client():
    assert key_api_key_or_ip(_request({}, client=("10.0.0.5", 1234))) == "ip:10.0.0.5"


def test_chat_rate_limit_follows_settings(monkeypatch):
    monkeypatch.setattr(settings, "chat_rate_limit", "5/minute")
    assert chat_rate_limit() == "5/minute"
