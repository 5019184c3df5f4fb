"""CLI entry point for appfilter checks and headless icon request packaging."""

from __future__ import annotations
import argparse
import json
import logging
import sys
from typing import Any

from core.assets import AssetDirectory
from core.http_client import RemoteUploader
from domain.errors import IconRequestError, InvalidDrawableError
from domain.models import RemoteConfig
from parsing import appfilter_parser
from services.app_source import FileIconResolver, JsonAppSource
from services.email_delivery import EmlDraftDelivery
from services.event_bus import EventBus, RequestEvent
from services.logging_service import LoggingService
from services.request import HostContext, RequestBuilder
from services import state_store
from config import settings


def _print(payload: dict[str, Any]) -> None:
    print(json.dumps(payload, indent=2, ensure_ascii=False))


def cmd_check_filter(args: argparse.Namespace) -> int:
    assets = AssetDirectory(args.assets, args.res)
    resolver = assets if args.res else None
    report: tuple[str, ...] = ()
    try:
        result = appfilter_parser.load_filter(args.filter, assets, resolver=resolver, strict=True)
    except InvalidDrawableError as e:
        result = e.result
        report = result.report
    _print(
        {
            "filter": args.filter,
            "items": len(result.entries),
            "themed_components": len(result.themed),
            "invalid_drawables": list(report),
        }
    )
    return 1 if report else 0


def _build_request(args: argparse.Namespace):
    source = JsonAppSource(args.apps)
    assets = AssetDirectory(args.assets or ".", args.res)
    host = HostContext(
        app_source=source,
        icon_resolver=FileIconResolver(args.icons_dir),
        assets=assets,
        resources=assets if args.res else None,
        email_delivery=EmlDraftDelivery(sender=args.sender),
        uploader=RemoteUploader(),
        device=source.device_info(),
    )
    builder = (
        RequestBuilder(args.work_dir)
        .with_subject(args.subject)
        .include_device_info(not args.no_device_info)
        .generate_xml(not args.no_xml)
        .generate_json(args.json)
        .error_on_invalid_drawables(not args.lenient)
    )
    if args.no_filter or not args.assets:
        builder.filter_off()
    else:
        builder.filter_name(args.filter)
    if args.email:
        builder.to_email(args.email)
    if args.header is not None:
        builder.with_header(args.header)
    if args.footer is not None:
        builder.with_footer(args.footer)
    if args.remote_url:
        remote = RemoteConfig(
            url=args.remote_url, api_key=args.api_key or "", sender=args.sender or ""
        )
        builder.remote_config(remote)
    return builder, host


def cmd_build_request(args: argparse.Namespace) -> int:
    bus = EventBus()
    outcome: dict[str, Any] = {}
    bus.subscribe(RequestEvent.REQUEST_SENT, lambda evt: outcome.update(archive=evt.payload))

    def on_loaded(apps, error):
        outcome["apps_loaded"] = len(apps) if apps is not None else 0
        if error is not None:
            outcome["error"] = str(error)

    def on_error(error):
        outcome["error"] = str(error)

    builder, host = _build_request(args)
    builder.callbacks(on_apps_loaded=on_loaded, on_request_error=on_error)
    request = builder.build(host, event_bus=bus)

    request.load_apps()
    if "error" in outcome:
        _print(outcome)
        return 1

    if args.select:
        wanted = set(args.select)
        for app in request.apps or []:
            if app.component in wanted or app.package in wanted:
                request.select_app(app)
    else:
        request.select_all_apps()
    outcome["selected"] = [a.component for a in request.selected_apps]
    if args.save_state:
        state_store.save_state(request, args.save_state)

    request.send()
    outcome["state"] = request.state.value
    _print(outcome)
    request.cleanup()
    return 0 if "error" not in outcome else 1


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="icon-request")
    p.add_argument("-v", "--verbose", action="store_true", help="Log debug output")
    p.add_argument("--log-file", required=False, help="Export the run log as JSON Lines")
    sub = p.add_subparsers(dest="command", required=True)

    check = sub.add_parser("check-filter", help="Parse an appfilter and report invalid drawables")
    check.add_argument("--assets", required=True, help="Directory holding the appfilter")
    check.add_argument("--filter", default=settings.DEFAULT_FILTER_NAME, help="Appfilter file name")
    check.add_argument("--res", required=False, help="Resource directory with drawable* folders")
    check.set_defaults(func=cmd_check_filter)

    build = sub.add_parser("build-request", help="Package unthemed apps into a request archive")
    build.add_argument("--apps", required=True, help="Installed app inventory JSON")
    build.add_argument("--assets", required=False, help="Directory holding the appfilter")
    build.add_argument("--filter", default=settings.DEFAULT_FILTER_NAME, help="Appfilter file name")
    build.add_argument("--no-filter", action="store_true", help="Request every installed app")
    build.add_argument("--res", required=False, help="Resource directory with drawable* folders")
    build.add_argument("--icons-dir", required=False, help="Base directory of app icon files")
    build.add_argument("--work-dir", required=False, help="Working directory (wiped first)")
    build.add_argument("--email", required=False, help="Recipient address")
    build.add_argument("--subject", default=settings.DEFAULT_SUBJECT)
    build.add_argument("--header", required=False)
    build.add_argument("--footer", required=False)
    build.add_argument("--json", action="store_true", help="Also generate appfilter.json")
    build.add_argument("--no-xml", action="store_true", help="Skip appfilter.xml")
    build.add_argument("--no-device-info", action="store_true")
    build.add_argument("--lenient", action="store_true", help="Ignore invalid filter drawables")
    build.add_argument("--remote-url", required=False, help="Remote request backend host")
    build.add_argument("--api-key", required=False)
    build.add_argument("--sender", required=False, help="Requester identity / email sender")
    build.add_argument("--select", nargs="*", help="Components or packages to select (default all)")
    build.add_argument("--save-state", required=False, help="Write request state JSON here")
    build.set_defaults(func=cmd_build_request)

    return p


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )
    log_service = LoggingService(level=logging.DEBUG if args.verbose else logging.INFO)
    log_service.attach()
    try:
        return args.func(args)
    except IconRequestError as e:
        _print({"error": str(e)})
        return 1
    finally:
        log_service.detach()
        if args.log_file:
            log_service.export_jsonl(args.log_file)


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
