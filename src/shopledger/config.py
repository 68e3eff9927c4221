from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
import os
import sys

from shopledger.domain.numbering import DEFAULT_PADDING, DEFAULT_PREFIX


@dataclass(frozen=True)
class AppPaths:
    base_dir: Path
    db_path: Path
    logs_dir: Path


@dataclass(frozen=True)
class Settings:
    invoice_prefix: str = DEFAULT_PREFIX
    invoice_padding: int = DEFAULT_PADDING
    completion_url: str = ""
    completion_api_key: str = ""
    completion_timeout: float = 15.0
    seed_demo: bool = True


def _windows_appdata() -> Path:
    return Path(os.environ.get("APPDATA", str(Path.home() / "AppData" / "Roaming")))


def _mac_app_support() -> Path:
    return Path.home() / "Library" / "Application Support"


def get_app_paths(app_name: str = "ShopLedger") -> AppPaths:
    override = os.environ.get("SHOPLEDGER_HOME", "").strip()
    if override:
        base = Path(override)
    elif sys.platform.startswith("win"):
        base = _windows_appdata() / app_name
    elif sys.platform == "darwin":
        base = _mac_app_support() / app_name
    else:
        base = Path.home() / f".{app_name.lower()}"

    logs = base / "logs"
    db = base / "shop.db"

    base.mkdir(parents=True, exist_ok=True)
    logs.mkdir(parents=True, exist_ok=True)

    return AppPaths(base_dir=base, db_path=db, logs_dir=logs)


def _env_flag(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() not in {"0", "false", "no", "off"}


def load_settings() -> Settings:
    return Settings(
        invoice_prefix=os.environ.get("SHOPLEDGER_INVOICE_PREFIX", "").strip() or DEFAULT_PREFIX,
        invoice_padding=int(os.environ.get("SHOPLEDGER_INVOICE_PADDING", DEFAULT_PADDING)),
        completion_url=os.environ.get("SHOPLEDGER_COMPLETION_URL", "").strip(),
        completion_api_key=os.environ.get("SHOPLEDGER_COMPLETION_API_KEY", "").strip(),
        completion_timeout=float(os.environ.get("SHOPLEDGER_COMPLETION_TIMEOUT", 15)),
        seed_demo=_env_flag("SHOPLEDGER_SEED_DEMO", True),
    )
