import json
import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

PROJECT_ROOT = Path(__file__).resolve().parents[1]
CONFIG_PATH = PROJECT_ROOT / "sheets_config.json"


def _read_env(name: str) -> str | None:
    value = os.getenv(name)
    if value is None:
        return None
    value = value.strip()
    return value or None


def _read_int(name: str, default: int) -> int:
    raw = _read_env(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise RuntimeError(f"{name} должен быть целым числом, получено {raw!r}") from exc


def _load_from_config() -> dict[str, str]:
    if not CONFIG_PATH.exists():
        return {}
    try:
        with CONFIG_PATH.open("r", encoding="utf-8") as fh:
            return json.load(fh)
    except (OSError, json.JSONDecodeError):
        return {}


_settings = _load_from_config()

SPREADSHEET_ID = _settings.get("SPREADSHEET_ID") or _read_env("SPREADSHEET_ID") or ""
CREDENTIALS = _settings.get("CREDENTIALS") or _read_env("CREDENTIALS") or "credentials.json"

MOYSKLAD_API_URL = (_read_env("MOYSKLAD_API_URL") or "https://api.moysklad.ru/api/remap/1.2").rstrip("/")
MOYSKLAD_TIMEOUT = float(_read_env("MOYSKLAD_TIMEOUT") or 30)
SYNC_MAX_WORKERS = _read_int("SYNC_MAX_WORKERS", 4)

SYNC_API_TOKEN = _read_env("SYNC_API_TOKEN")
LOG_LEVEL = (_read_env("LOG_LEVEL") or "INFO").upper()


def resolve_credentials_path(path_value: str) -> str:
    """
    Относительный путь к ключу сервисного аккаунта считаем от корня проекта.
    Inline JSON возвращается как есть.
    """
    if path_value.lstrip().startswith("{"):
        return path_value
    path = Path(path_value)
    if not path.is_absolute():
        path = PROJECT_ROOT / path
    return str(path)
