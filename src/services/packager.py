"""Builds the generated appfilter manifests and the request message body."""

from __future__ import annotations

import html
import json
import logging
from typing import Any, Dict, List, Optional, Sequence
from xml.sax.saxutils import escape

from config import settings
from domain.models import App, DeviceInfo, RequestConfig, RequestManifest
from utils import naming

log = logging.getLogger(__name__)

XML_PREAMBLE = (
    "<resources>\n"
    '    <iconback img1="iconback" />\n'
    '    <iconmask img1="iconmask" />\n'
    '    <iconupon img1="iconupon" />\n'
    '    <scale factor="1.0" />'
)
XML_CLOSING = "\n\n</resources>"
LINE_BREAK = "<br/>"


def _xml_item(app: App, drawable: str) -> str:
    comment = app.name.replace("--", "- -")
    component = escape(app.component, {'"': "&quot;"})
    return (
        f"\n\n    <!-- {comment} -->\n"
        "    <item\n"
        f'        component="ComponentInfo{{{component}}}"\n'
        f'        drawable="{drawable}" />'
    )


def _json_item(app: App, drawable: str) -> Dict[str, Any]:
    return {
        "name": app.name,
        "pkg": app.package,
        "componentInfo": app.component,
        "drawable": drawable,
    }


class RequestPackager:
    """Turns the selected apps into manifest text and an HTML message body.

    XML is generated for email requests only; JSON whenever requested or when
    the request goes to a remote backend (which consumes it directly).
    """

    def __init__(self, config: RequestConfig, device: Optional[DeviceInfo] = None) -> None:
        self.config = config
        self.device = device

    @property
    def wants_xml(self) -> bool:
        return self.config.generate_xml and self.config.remote is None

    @property
    def wants_json(self) -> bool:
        return self.config.generate_json or self.config.remote is not None

    def build_manifest(self, apps: Sequence[App]) -> RequestManifest:
        xml_parts: Optional[List[str]] = [XML_PREAMBLE] if self.wants_xml else None
        components: Optional[List[Dict[str, Any]]] = [] if self.wants_json else None
        for app in apps:
            drawable = naming.drawable_name(app.name)
            if xml_parts is not None:
                xml_parts.append(_xml_item(app, drawable))
            if components is not None:
                components.append(_json_item(app, drawable))
            log.debug("Added %s to the new generated appfilter file...", app.component)

        manifest = RequestManifest(apps=list(apps))
        if xml_parts is not None:
            manifest.xml = "".join(xml_parts) + XML_CLOSING
        if components is not None:
            manifest.json = json.dumps({"components": components}, indent=4, ensure_ascii=False)
        return manifest

    def build_body(self, apps: Sequence[App]) -> str:
        cfg = self.config
        parts: List[str] = []
        if cfg.header:
            parts.append(cfg.header.replace("\n", LINE_BREAK))
            parts.append(LINE_BREAK * 2)

        for index, app in enumerate(apps):
            if index > 0:
                parts.append(LINE_BREAK * 2)
            parts.append(f"Name: <b>{html.escape(app.name)}</b>{LINE_BREAK}")
            parts.append(f"Code: <b>{html.escape(app.component)}</b>{LINE_BREAK}")
            link = settings.STORE_LINK_TEMPLATE.format(package=app.package)
            parts.append(f"Link: {link}{LINE_BREAK}")

        footer = cfg.footer.replace("\n", LINE_BREAK) if cfg.footer else None
        if cfg.include_device_info:
            device = self.device or DeviceInfo.from_platform()
            parts.append(
                f"{LINE_BREAK * 2}OS: {device.os_release} {device.os_version_name}"
                f"{LINE_BREAK}Device: {device.manufacturer} {device.model} ({device.product})"
            )
            if footer:
                parts.append(LINE_BREAK + footer)
        elif footer:
            parts.append(LINE_BREAK * 2 + footer)
        return "".join(parts)
