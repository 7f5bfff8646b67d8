from __future__ import annotations

import json
import os
from typing import Any, Dict, Union

from google.oauth2.service_account import Credentials
from googleapiclient.discovery import build

from sklad_sync import config

SCOPES = ["https://www.googleapis.com/auth/spreadsheets"]


class SyncConfigurationError(ValueError):
    """Raised when sync settings are incomplete."""


def _load_credentials(creds_source: Union[str, Dict[str, Any], Credentials]) -> Credentials:
    if isinstance(creds_source, Credentials):
        return creds_source

    if isinstance(creds_source, dict):
        return Credentials.from_service_account_info(creds_source, scopes=SCOPES)

    if isinstance(creds_source, str):
        if os.path.isfile(creds_source):
            return Credentials.from_service_account_file(creds_source, scopes=SCOPES)
        try:
            data = json.loads(creds_source)
        except json.JSONDecodeError as exc:
            raise SyncConfigurationError(f"Файл ключа сервисного аккаунта '{creds_source}' не найден") from exc
        return Credentials.from_service_account_info(data, scopes=SCOPES)

    raise TypeError("Unsupported credentials source type")


def build_sheets_service(creds_source: Union[str, Dict[str, Any], Credentials]):
    creds = _load_credentials(creds_source)
    return build("sheets", "v4", credentials=creds, cache_discovery=False)


def resolve_settings(spreadsheet_id: str | None = None, credentials: str | None = None) -> tuple[str, str]:
    """
    Явные аргументы важнее настроек из sheets_config.json / .env.
    """
    spreadsheet_id = (spreadsheet_id or config.SPREADSHEET_ID or "").strip()
    if not spreadsheet_id:
        raise SyncConfigurationError("SPREADSHEET_ID не указан ни в sheets_config.json, ни в .env")
    credentials = credentials or config.CREDENTIALS
    if not credentials:
        raise SyncConfigurationError("Не указан ключ сервисного аккаунта (CREDENTIALS)")
    return spreadsheet_id, config.resolve_credentials_path(credentials)
