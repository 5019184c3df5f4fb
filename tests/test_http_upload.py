import json

import httpx
import pytest

from core.http_client import RemoteUploader
from domain.errors import UploadError
from domain.models import RemoteConfig

REMOTE = RemoteConfig(url="https://icons.example.com", api_key="token-123", sender="Jane Doe")
APPS_JSON = json.dumps({"components": [{"pkg": "com.a"}]}, indent=4)


@pytest.fixture
def archive_path(tmp_path):
    path = tmp_path / "IconRequest-2024.01.02.zip"
    path.write_bytes(b"PK\x05\x06" + b"\x00" * 18)
    return str(path)


def test_upload_sends_multipart_with_token(archive_path):
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["token"] = request.headers.get("TokenID")
        seen["agent"] = request.headers.get("User-Agent")
        seen["body"] = request.read()
        return httpx.Response(200, json={"status": "success"})

    result = RemoteUploader(transport=httpx.MockTransport(handler)).upload(
        REMOTE, archive_path, APPS_JSON
    )
    assert result == {"status": "success"}
    assert seen["url"] == "https://icons.example.com/v1/request"
    assert seen["token"] == "token-123"
    assert seen["agent"] == "afollestad/icon-request"
    body = seen["body"]
    assert b'name="requester"' in body and b"Jane Doe" in body
    assert b'name="archive"; filename="IconRequest-2024.01.02.zip"' in body
    # apps are sent compact
    assert b'{"components": [{"pkg": "com.a"}]}' in body


def test_non_success_status_raises(archive_path):
    transport = httpx.MockTransport(lambda r: httpx.Response(403, json={"error": "bad token"}))
    with pytest.raises(UploadError) as exc:
        RemoteUploader(transport=transport).upload(REMOTE, archive_path, APPS_JSON)
    assert exc.value.status_code == 403
    assert "bad token" in str(exc.value)


def test_error_status_in_body_raises(archive_path):
    transport = httpx.MockTransport(
        lambda r: httpx.Response(200, json={"status": "error", "error": "quota exceeded"})
    )
    with pytest.raises(UploadError, match="quota exceeded"):
        RemoteUploader(transport=transport).upload(REMOTE, archive_path, APPS_JSON)


def test_plain_text_error_uses_reason(archive_path):
    transport = httpx.MockTransport(lambda r: httpx.Response(502, text="gateway"))
    with pytest.raises(UploadError, match="502 Bad Gateway"):
        RemoteUploader(transport=transport).upload(REMOTE, archive_path, APPS_JSON)


def test_transport_error_wrapped(archive_path):
    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    with pytest.raises(UploadError, match="refused"):
        RemoteUploader(transport=httpx.MockTransport(handler)).upload(
            REMOTE, archive_path, APPS_JSON
        )


def test_missing_archive_wrapped(tmp_path):
    transport = httpx.MockTransport(lambda r: httpx.Response(200))
    with pytest.raises(UploadError):
        RemoteUploader(transport=transport).upload(REMOTE, str(tmp_path / "none.zip"), APPS_JSON)
