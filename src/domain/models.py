"""Domain models for icon request collection and packaging."""

from __future__ import annotations

import platform
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional, Protocol, Tuple

from config import settings
from utils import android_versions


class IconResolver(Protocol):
    def load_icon(self, app: "App") -> Any: ...  # pragma: no cover - structural


@dataclass(frozen=True, eq=False)
class App:
    """One launchable app entry.

    Identity is the component (``package/activity``). The icon is resolved on
    first use and cached on the instance; it is never serialized.
    """

    name: str
    package: str
    component: str
    icon_ref: Optional[str] = None
    _icon: Any = field(default=None, init=False, repr=False)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, App):
            return NotImplemented
        return self.component == other.component

    def __hash__(self) -> int:
        return hash(self.component)

    def get_icon(self, resolver: IconResolver) -> Any:
        if self._icon is None:
            object.__setattr__(self, "_icon", resolver.load_icon(self))
        return self._icon

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "package": self.package,
            "component": self.component,
            "icon_ref": self.icon_ref,
        }

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "App":
        component = raw["component"]
        package = raw.get("package") or component.split("/", 1)[0]
        return cls(
            name=raw.get("name") or package,
            package=package,
            component=component,
            icon_ref=raw.get("icon_ref") or raw.get("icon"),
        )


@dataclass(frozen=True, slots=True)
class FilterEntry:
    component: Optional[str]
    drawable: Optional[str]


@dataclass(frozen=True, slots=True)
class FilterParseResult:
    entries: Tuple[FilterEntry, ...] = ()
    themed: frozenset[str] = frozenset()
    report: Tuple[str, ...] = ()

    @classmethod
    def empty(cls) -> "FilterParseResult":
        return cls()


@dataclass(frozen=True, slots=True)
class RemoteConfig:
    url: str
    api_key: str
    sender: str


@dataclass(frozen=True)
class RequestConfig:
    """Serializable request configuration; immutable once a request begins."""

    work_dir: str = settings.WORK_DIR
    filter_name: Optional[str] = settings.DEFAULT_FILTER_NAME
    email: Optional[str] = None
    subject: Optional[str] = settings.DEFAULT_SUBJECT
    header: Optional[str] = settings.DEFAULT_HEADER
    footer: Optional[str] = None
    include_device_info: bool = True
    generate_xml: bool = True
    generate_json: bool = False
    strict_drawables: bool = True
    remote: Optional[RemoteConfig] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "RequestConfig":
        data = dict(raw)
        remote = data.pop("remote", None)
        known = {k: v for k, v in data.items() if k in cls.__dataclass_fields__}
        return cls(remote=RemoteConfig(**remote) if remote else None, **known)


@dataclass(slots=True)
class RequestManifest:
    apps: List[App] = field(default_factory=list)
    xml: Optional[str] = None
    json: Optional[str] = None


@dataclass(frozen=True, slots=True)
class DeviceInfo:
    os_release: str
    os_version_name: str
    manufacturer: str
    model: str
    product: str

    @classmethod
    def for_android(
        cls, release: str, sdk_int: int, manufacturer: str, model: str, product: str
    ) -> "DeviceInfo":
        return cls(
            os_release=release,
            os_version_name=android_versions.version_name(sdk_int),
            manufacturer=manufacturer,
            model=model,
            product=product,
        )

    @classmethod
    def from_platform(cls) -> "DeviceInfo":
        return cls(
            os_release=platform.release(),
            os_version_name=platform.system(),
            manufacturer=platform.machine(),
            model=platform.node(),
            product=platform.python_implementation(),
        )
