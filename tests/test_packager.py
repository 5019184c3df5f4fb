import io
import json

from domain.models import RemoteConfig, RequestConfig
from parsing.appfilter_parser import parse_appfilter
from services.packager import RequestPackager
from tests.factories import DEVICE, installed_apps, make_app
from utils.naming import drawable_name


def test_drawable_name_normalization():
    assert drawable_name("Google Play Music!") == "google_play_music_"
    assert drawable_name("  K-9   Mail ") == "_k_9_mail_"
    assert drawable_name("Über") == "_ber"
    assert drawable_name("ABC123") == "abc123"
    assert drawable_name("  Camera+ ") == "_camera_"


def test_xml_only_by_default():
    manifest = RequestPackager(RequestConfig()).build_manifest(installed_apps())
    assert manifest.xml is not None
    assert manifest.json is None
    assert manifest.xml.startswith("<resources>")
    assert manifest.xml.endswith("</resources>")
    assert "<!-- Camera Plus! -->" in manifest.xml
    assert 'drawable="camera_plus_" />' in manifest.xml


def test_json_requested_alongside_xml():
    cfg = RequestConfig(generate_json=True)
    manifest = RequestPackager(cfg).build_manifest(installed_apps()[:2])
    data = json.loads(manifest.json)
    assert data["components"][0] == {
        "name": "Alpha",
        "pkg": "com.alpha",
        "componentInfo": "com.alpha/com.alpha.Main",
        "drawable": "alpha",
    }


def test_remote_forces_json_and_skips_xml():
    cfg = RequestConfig(generate_json=False, remote=RemoteConfig("https://x", "k", "me"))
    packager = RequestPackager(cfg)
    assert packager.wants_json and not packager.wants_xml
    manifest = packager.build_manifest(installed_apps())
    assert manifest.xml is None
    assert len(json.loads(manifest.json)["components"]) == 4


def test_both_formats_enumerate_same_order():
    apps = list(reversed(installed_apps()))
    manifest = RequestPackager(RequestConfig(generate_json=True)).build_manifest(apps)
    parsed = parse_appfilter(io.StringIO(manifest.xml))
    from_json = [c["componentInfo"] for c in json.loads(manifest.json)["components"]]
    assert [e.component for e in parsed.entries] == from_json == [a.component for a in apps]


def test_xml_comment_never_closes_early():
    manifest = RequestPackager(RequestConfig()).build_manifest([make_app("A -- B", "com.ab")])
    assert "<!-- A - - B -->" in manifest.xml


def test_body_contains_header_apps_device_and_footer():
    cfg = RequestConfig(header="Line one\nLine two", footer="Thanks")
    body = RequestPackager(cfg, DEVICE).build_body(installed_apps()[:2])
    assert body.startswith("Line one<br/>Line two<br/><br/>Name: <b>Alpha</b><br/>")
    assert "Code: <b>com.alpha/com.alpha.Main</b><br/>" in body
    assert "Link: https://play.google.com/store/apps/details?id=com.beta<br/>" in body
    assert "<br/><br/>OS: 14 Android 14<br/>Device: Google Pixel 8 (shiba)" in body
    assert body.endswith("(shiba)<br/>Thanks")


def test_body_without_device_info():
    cfg = RequestConfig(header=None, footer="Bye", include_device_info=False)
    body = RequestPackager(cfg, DEVICE).build_body([make_app("A&B", "com.ab")])
    assert body.startswith("Name: <b>A&amp;B</b>")
    assert "OS:" not in body
    assert body.endswith("<br/><br/>Bye")
