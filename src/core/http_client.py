"""HTTP client for submitting requests to a remote icon request backend.

Separated from the orchestration so the transport can be swapped (e.g. an
``httpx.MockTransport`` in tests). No retries: a failed upload is reported
to the caller as-is.
"""

from __future__ import annotations

import json
import logging
import os
from typing import Any, Optional

import httpx

from config import settings
from domain.errors import UploadError
from domain.models import RemoteConfig

log = logging.getLogger(__name__)


def _error_message(resp: httpx.Response) -> Optional[str]:
    try:
        body = resp.json()
    except ValueError:
        return None
    if isinstance(body, dict) and (body.get("status") == "error" or not resp.is_success):
        return str(body.get("error") or body.get("message") or "")
    return None


class RemoteUploader:
    def __init__(
        self,
        *,
        transport: Optional[httpx.BaseTransport] = None,
        timeout: Optional[float] = None,
        user_agent: Optional[str] = None,
    ) -> None:
        self._transport = transport
        self._timeout = timeout or settings.DEFAULT_TIMEOUT
        self._user_agent = user_agent or settings.DEFAULT_USER_AGENT

    def upload(self, remote: RemoteConfig, archive_path: str, apps_json: str) -> Any:
        """POST the archive and app list as one multipart submission.

        Returns the decoded JSON response (or ``None`` for non-JSON bodies).
        Raises UploadError on transport failures, non-2xx responses and
        responses flagged with ``"status": "error"``.
        """
        headers = {
            "TokenID": remote.api_key,
            "Accept": "application/json",
            "User-Agent": self._user_agent,
        }
        form = {"requester": remote.sender, "apps": json.dumps(json.loads(apps_json))}
        try:
            with httpx.Client(
                base_url=remote.url,
                headers=headers,
                timeout=self._timeout,
                transport=self._transport,
            ) as client, open(archive_path, "rb") as fh:
                files = {"archive": (os.path.basename(archive_path), fh, "application/zip")}
                resp = client.post(settings.UPLOAD_PATH, data=form, files=files)
        except (httpx.HTTPError, OSError) as e:
            raise UploadError(
                f"Failed to send icons to the backend: {e}", context={"url": remote.url}
            ) from e

        message = _error_message(resp)
        if not resp.is_success or message is not None:
            detail = message or resp.reason_phrase
            raise UploadError(
                f"Failed to send icons to the backend: {resp.status_code} {detail}".rstrip(),
                status_code=resp.status_code,
                context={"url": remote.url},
            )
        log.info("Request uploaded to the server!")
        try:
            return resp.json()
        except ValueError:
            return None
