import random
import re

from cursorgate.adapters.openai_compat.upstream import (
    _build_upstream_headers,
    _extract_auth_token,
    _generate_checksum,
    _resolve_checksum,
)
from cursorgate.config.settings import settings


def test_extract_auth_token_strips_bearer():
    assert _extract_auth_token({"Authorization": "Bearer abc"}) == "abc"


def test_extract_auth_token_uses_first_of_many():
    assert _extract_auth_token({"authorization": "Bearer k1, k2 ,k3"}) == "k1"


def test_extract_auth_token_keeps_part_after_encoded_separator():
    assert _extract_auth_token({"authorization": "Bearer user_01%3A%3Aeyjwt"}) == "eyjwt"


def test_extract_auth_token_missing_header():
    assert _extract_auth_token({}) == ""


def test_generated_checksum_shape():
    checksum = _generate_checksum(random.Random(3))
    assert re.fullmatch(r"zo[0-9A-Za-z_-]{70}/[0-9A-Za-z_-]{64}", checksum)


def test_checksum_prefers_request_header(monkeypatch):
    monkeypatch.setattr(settings, "checksum", "from-settings")
    assert _resolve_checksum({"X-Cursor-Checksum": "from-header"}) == "from-header"
    assert _resolve_checksum({}) == "from-settings"


def test_checksum_generated_when_unset(monkeypatch):
    monkeypatch.setattr(settings, "checksum", "")
    assert _resolve_checksum({}).startswith("zo")


def test_upstream_headers_follow_connect_protocol():
    ids = iter(["trace-1", "req-1"])
    headers = _build_upstream_headers("tok", "sum", ids=lambda: next(ids))
    assert headers["Content-Type"] == "application/connect+proto"
    assert headers["authorization"] == "Bearer tok"
    assert headers["connect-protocol-version"] == "1"
    assert headers["connect-accept-encoding"] == "gzip,br"
    assert headers["x-cursor-checksum"] == "sum"
    assert headers["x-cursor-client-version"] == settings.client_version
    assert headers["x-ghost-mode"] == "false"
    assert headers["x-amzn-trace-id"] == "Root=trace-1"
    assert headers["x-request-id"] == "req-1"
