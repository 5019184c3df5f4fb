"""Global configuration and constants for icon request packaging."""

from __future__ import annotations

import os
from typing import Final

DEFAULT_FILTER_NAME: Final = "appfilter.xml"
DEFAULT_SUBJECT: Final = "Icon Request"
DEFAULT_HEADER: Final = "These apps aren't themed on my device, theme them please!"

WORK_DIR: Final = os.environ.get("ICONREQUEST_WORK_DIR", os.path.join("data", "icon_requests"))

# Generated request files
XML_MANIFEST_NAME: Final = "appfilter.xml"
JSON_MANIFEST_NAME: Final = "appfilter.json"
ARCHIVE_NAME_TEMPLATE: Final = "IconRequest-{date}.zip"
ARCHIVE_DATE_FORMAT: Final = "%Y.%m.%d"
ICON_EXTENSION: Final = ".png"

STORE_LINK_TEMPLATE: Final = "https://play.google.com/store/apps/details?id={package}"

# Remote request backend
UPLOAD_PATH: Final = "/v1/request"
DEFAULT_USER_AGENT: Final = "afollestad/icon-request"
DEFAULT_TIMEOUT: Final = 30  # seconds
