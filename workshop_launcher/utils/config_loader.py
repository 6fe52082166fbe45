"""
Utilities for loading YAML configuration with environment overrides.
"""

from __future__ import annotations

from dataclasses import dataclass
import os
from pathlib import Path
import re
import sys
from typing import Any, Dict, MutableMapping, Optional

from dotenv import find_dotenv, load_dotenv
from ruamel.yaml import YAML

from ..errors import PreconditionError

_YAML = YAML(typ="safe")
_ENV_PATTERN = re.compile(r"\$\{([^}:]+)(?::([^}]*))?\}")

BASE_DIR = Path(__file__).resolve().parents[1]
PACKAGE_SETTINGS_PATH = BASE_DIR / "config" / "settings.yaml"
DEFAULT_TIMEZONE = "Europe/London"


def _user_settings_path() -> Path:
    env_override = os.environ.get("WORKSHOP_LAUNCHER_SETTINGS_PATH")
    if env_override:
        return Path(env_override).expanduser()
    home = Path.home()
    if sys.platform == "darwin":
        base = home / "Library" / "Application Support" / "WorkshopLauncher"
    elif sys.platform.startswith("win"):
        appdata = os.environ.get("APPDATA")
        base = Path(appdata) if appdata else (home / "AppData" / "Roaming")
        base = base / "WorkshopLauncher"
    else:
        xdg = os.environ.get("XDG_CONFIG_HOME")
        base = Path(xdg) if xdg else (home / ".config")
        base = base / "workshop_launcher"
    return base / "settings.yaml"


DEFAULT_SETTINGS_PATH = _user_settings_path()


def _substitute_env(value: str) -> str:
    def replacer(match: re.Match[str]) -> str:
        key = match.group(1)
        default = match.group(2)
        return os.environ.get(key, default or "")

    return _ENV_PATTERN.sub(replacer, value)


def _resolve(obj: Any) -> Any:
    if isinstance(obj, str):
        return _substitute_env(obj)
    if isinstance(obj, list):
        return [_resolve(item) for item in obj]
    if isinstance(obj, MutableMapping):
        return {key: _resolve(value) for key, value in obj.items()}
    return obj


@dataclass
class Settings:
    """Container for strongly typed access helpers."""

    raw: Dict[str, Any]

    @property
    def model(self) -> Dict[str, Any]:
        return self.raw.get("model") or {}

    @property
    def prompt(self) -> Dict[str, Any]:
        return self.raw.get("prompt") or {}

    @property
    def schedule(self) -> Dict[str, Any]:
        return self.raw.get("schedule") or {}

    @property
    def luma(self) -> Dict[str, Any]:
        return self.raw.get("luma") or {}

    @property
    def zoom(self) -> Dict[str, Any]:
        return self.raw.get("zoom") or {}

    def get(self, *keys: str, default: Any = None) -> Any:
        cursor: Any = self.raw
        for key in keys:
            if not isinstance(cursor, MutableMapping):
                return default
            cursor = cursor.get(key)
            if cursor is None:
                return default
        return cursor


@dataclass(frozen=True)
class LumaConfig:
    api_key: str
    base_url: str = "https://public-api.luma.com/v1"
    visibility: str = "public"


@dataclass(frozen=True)
class ZoomConfig:
    account_id: str
    client_id: str
    client_secret: str
    oauth_url: str = "https://zoom.us/oauth/token"
    api_base_url: str = "https://api.zoom.us/v2"


@dataclass(frozen=True)
class ProvisioningConfig:
    """Credentials and endpoints, built once and handed to each client."""

    timezone: str = DEFAULT_TIMEZONE
    http_timeout: float = 30.0
    luma: Optional[LumaConfig] = None
    zoom: Optional[ZoomConfig] = None

    def require_luma(self) -> LumaConfig:
        if self.luma is None:
            raise PreconditionError("Event service is not configured. Set luma.api_key (or LUMA_API_KEY)")
        return self.luma

    def require_zoom(self) -> ZoomConfig:
        if self.zoom is None:
            raise PreconditionError(
                "Webinar service is not configured. Set zoom.account_id, zoom.client_id and zoom.client_secret"
            )
        return self.zoom


def provisioning_config(settings: Settings) -> ProvisioningConfig:
    luma_cfg = settings.luma
    zoom_cfg = settings.zoom

    luma = None
    if luma_cfg.get("api_key"):
        luma = LumaConfig(
            api_key=str(luma_cfg["api_key"]),
            base_url=str(luma_cfg.get("base_url") or LumaConfig.base_url).rstrip("/"),
            visibility=str(luma_cfg.get("visibility") or LumaConfig.visibility),
        )

    zoom = None
    if all(zoom_cfg.get(key) for key in ("account_id", "client_id", "client_secret")):
        zoom = ZoomConfig(
            account_id=str(zoom_cfg["account_id"]),
            client_id=str(zoom_cfg["client_id"]),
            client_secret=str(zoom_cfg["client_secret"]),
            oauth_url=str(zoom_cfg.get("oauth_url") or ZoomConfig.oauth_url),
            api_base_url=str(zoom_cfg.get("api_base_url") or ZoomConfig.api_base_url).rstrip("/"),
        )

    return ProvisioningConfig(
        timezone=str(settings.get("schedule", "timezone", default=DEFAULT_TIMEZONE)),
        http_timeout=float(settings.get("http", "timeout", default=30)),
        luma=luma,
        zoom=zoom,
    )


def load_settings(path: str | Path | None = None, *, env_file: str | Path | None = None) -> Settings:
    """Load YAML settings and resolve environment placeholders."""

    load_dotenv(env_file or find_dotenv(usecwd=True))
    settings_path = Path(path) if path else DEFAULT_SETTINGS_PATH
    if not settings_path.exists():
        if path is None and PACKAGE_SETTINGS_PATH.exists():
            settings_path.parent.mkdir(parents=True, exist_ok=True)
            settings_path.write_text(PACKAGE_SETTINGS_PATH.read_text(encoding="utf-8"), encoding="utf-8")
        if not settings_path.exists():
            raise FileNotFoundError(f"Settings file not found: {settings_path}")

    data = _YAML.load(settings_path.read_text(encoding="utf-8")) or {}
    resolved = _resolve(data)
    return Settings(raw=resolved)
