"""Email delivery of a packaged request as a ready-to-send ``.eml`` draft."""

from __future__ import annotations

import logging
import os
from email.message import EmailMessage
from email.policy import SMTP
from typing import Optional, Protocol

from bs4 import BeautifulSoup

log = logging.getLogger(__name__)


class EmailDelivery(Protocol):
    def deliver(
        self, archive_path: str, recipient: str, subject: str, body_html: str
    ) -> Optional[str]: ...  # pragma: no cover - structural


def html_to_text(body_html: str) -> str:
    """Render the request body markup as plain text (``<br/>`` becomes a newline)."""
    soup = BeautifulSoup(body_html, "html.parser")
    for br in soup.find_all("br"):
        br.replace_with("\n")
    return soup.get_text()


class EmlDraftDelivery:
    """Writes an RFC 5322 draft with the archive attached, next to the archive.

    The draft opens in any mail client as a composed message; ``deliver``
    returns its path.
    """

    def __init__(self, out_dir: str | None = None, sender: str | None = None) -> None:
        self.out_dir = out_dir
        self.sender = sender

    def build_message(
        self, archive_path: str, recipient: str, subject: str, body_html: str
    ) -> EmailMessage:
        msg = EmailMessage()
        msg["To"] = recipient
        msg["Subject"] = subject
        if self.sender:
            msg["From"] = self.sender
        msg.set_content(html_to_text(body_html))
        msg.add_alternative(body_html, subtype="html")
        with open(archive_path, "rb") as fh:
            msg.add_attachment(
                fh.read(),
                maintype="application",
                subtype="zip",
                filename=os.path.basename(archive_path),
            )
        return msg

    def deliver(self, archive_path: str, recipient: str, subject: str, body_html: str) -> str:
        msg = self.build_message(archive_path, recipient, subject, body_html)
        out_dir = self.out_dir or os.path.dirname(os.path.abspath(archive_path))
        stem = os.path.splitext(os.path.basename(archive_path))[0]
        path = os.path.join(out_dir, f"{stem}.eml")
        with open(path, "wb") as fh:
            fh.write(msg.as_bytes(policy=SMTP))
        log.info("Email draft for %s written to %s", recipient, path)
        return path
