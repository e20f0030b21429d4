"""User settings for docdesk and their on-disk form.

Settings live in a JSON file (``~/.docdesk/settings.json`` by default). The
service token never touches that file in plaintext: it is stored as
``service_token_ciphertext``, encrypted with a Fernet key kept next to the
settings file. Values can be overridden per run, first by explicit (CLI)
overrides and then by ``DOCDESK_*`` environment variables.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import asdict, dataclass, fields, replace
from pathlib import Path
from typing import Any, Callable, Dict, Mapping

from cryptography.fernet import Fernet, InvalidToken

from .document_client import ClientSettings

__all__ = [
    "Settings",
    "SettingsStore",
    "SecretVault",
    "redact_secret",
]

LOGGER = logging.getLogger(__name__)

_SETTINGS_VERSION = 1
_TOKEN_FIELD = "service_token_ciphertext"
_TOKEN_PREFIX = "fernet:"
_TRUE_VALUES = frozenset({"1", "true", "yes", "on"})


def _parse_flag(raw: str) -> bool:
    return raw.strip().lower() in _TRUE_VALUES


# (environment variable, settings field, parser)
_ENV_OVERRIDES: tuple[tuple[str, str, Callable[[str], Any]], ...] = (
    ("DOCDESK_SERVICE_URL", "service_url", str),
    ("DOCDESK_SERVICE_TOKEN", "service_token", str),
    ("DOCDESK_USER_ID", "user_id", str),
    ("DOCDESK_DEBUG_LOGGING", "debug_logging", _parse_flag),
    ("DOCDESK_ENFORCE_ACCESS", "enforce_access", _parse_flag),
    ("DOCDESK_REQUEST_TIMEOUT", "request_timeout", float),
    ("DOCDESK_MAX_RETRIES", "max_retries", int),
)


@dataclass(slots=True)
class Settings:
    """User-configurable settings persisted between sessions."""

    service_url: str = "http://localhost:3000/api"
    service_token: str = ""
    user_id: str = ""
    request_timeout: float = 30.0
    max_retries: int = 3
    retry_min_seconds: float = 0.5
    retry_max_seconds: float = 6.0
    enforce_access: bool = True
    debug_logging: bool = False
    open_tabs: list[dict[str, Any]] | None = None  # None = never saved, [] = explicitly empty
    active_tab_key: str | None = None

    def client_settings(self) -> ClientSettings:
        return ClientSettings(
            base_url=self.service_url,
            token=self.service_token,
            request_timeout=self.request_timeout,
            max_retries=self.max_retries,
            retry_min_seconds=self.retry_min_seconds,
            retry_max_seconds=self.retry_max_seconds,
        )

    def session_state(self) -> dict[str, Any]:
        return {"open_tabs": list(self.open_tabs or []), "active_tab_key": self.active_tab_key}


class SecretVault:
    """Fernet encryption for the service token.

    The key is created on first use and written with owner-only permissions.
    Encrypted values carry a ``fernet:`` prefix.
    """

    def __init__(self, *, key_path: Path) -> None:
        self._key_path = key_path
        self._fernet: Fernet | None = None

    def encrypt(self, secret: str) -> str:
        if not secret:
            return ""
        token = self._cipher().encrypt(secret.encode("utf-8"))
        return _TOKEN_PREFIX + token.decode("ascii")

    def decrypt(self, token: str | None) -> str:
        """Return the plaintext for ``token``.

        Raises:
            ValueError: If ``token`` lacks the ``fernet:`` prefix or was not
                produced with this vault's key.
        """

        if not token:
            return ""
        if not token.startswith(_TOKEN_PREFIX):
            raise ValueError("Stored token is not Fernet encrypted")
        try:
            raw = self._cipher().decrypt(token[len(_TOKEN_PREFIX):].encode("ascii"))
        except InvalidToken as exc:
            raise ValueError("Stored token does not match the vault key") from exc
        return raw.decode("utf-8")

    def _cipher(self) -> Fernet:
        if self._fernet is None:
            self._fernet = Fernet(self._read_or_create_key())
        return self._fernet

    def _read_or_create_key(self) -> bytes:
        try:
            return self._key_path.read_bytes().strip()
        except FileNotFoundError:
            pass
        key = Fernet.generate_key()
        self._key_path.parent.mkdir(parents=True, exist_ok=True)
        staging = self._key_path.with_suffix(".keytmp")
        staging.write_bytes(key)
        os.chmod(staging, 0o600)
        staging.replace(self._key_path)
        LOGGER.debug("Created settings key at %s", self._key_path)
        return key


class SettingsStore:
    """Reads and writes :class:`Settings` as versioned JSON."""

    def __init__(self, path: Path | None = None, *, vault: SecretVault | None = None) -> None:
        self._path = path or Path.home() / ".docdesk" / "settings.json"
        self._vault = vault or SecretVault(key_path=self._path.with_suffix(".key"))

    @property
    def path(self) -> Path:
        return self._path

    def load(self, *, overrides: Mapping[str, Any] | None = None) -> Settings:
        """Load settings from disk, then apply CLI and environment overrides.

        Files written by an older version, or still holding a plaintext token,
        are rewritten in the current format before overrides are applied.
        """

        payload = self._read_payload()
        settings = Settings()
        if payload:
            settings, stale = self._from_payload(payload)
            if stale:
                try:
                    self.save(settings)
                except OSError as exc:
                    LOGGER.warning("Could not rewrite %s in the current format: %s", self._path, exc)

        settings = _with_overrides(settings, overrides or {}, source="CLI")
        return _with_overrides(settings, _environment_overrides(), source="environment")

    def save(self, settings: Settings) -> Path:
        """Write ``settings`` atomically; the token is stored encrypted."""

        data = asdict(settings)
        token = data.pop("service_token")
        if token:
            data[_TOKEN_FIELD] = self._vault.encrypt(token)
        data["version"] = _SETTINGS_VERSION

        self._path.parent.mkdir(parents=True, exist_ok=True)
        staging = self._path.with_suffix(".tmp")
        staging.write_text(json.dumps(data, indent=2, sort_keys=True), encoding="utf-8")
        staging.replace(self._path)
        LOGGER.debug("Settings saved to %s", self._path)
        return self._path

    def _read_payload(self) -> Dict[str, Any]:
        try:
            raw = self._path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return {}
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as exc:
            LOGGER.warning("Settings file %s is not valid JSON: %s", self._path, exc)
            return {}
        if not isinstance(data, dict):
            LOGGER.warning("Settings file %s does not contain an object", self._path)
            return {}
        return data

    def _from_payload(self, payload: Mapping[str, Any]) -> tuple[Settings, bool]:
        known = _field_names() - {"service_token"}
        settings = Settings(**{key: value for key, value in payload.items() if key in known})

        plaintext = payload.get("service_token")
        ciphertext = payload.get(_TOKEN_FIELD)
        if ciphertext:
            try:
                settings.service_token = self._vault.decrypt(ciphertext)
            except ValueError as exc:
                LOGGER.warning("Ignoring stored service token: %s", exc)
        elif plaintext:
            LOGGER.info("Moving plaintext service token into encrypted storage")
            settings.service_token = str(plaintext)

        LOGGER.debug(
            "Settings loaded from %s: %d tabs, active_tab_key=%s",
            self._path,
            len(settings.open_tabs or []),
            settings.active_tab_key,
        )
        stale = bool(plaintext) or payload.get("version") != _SETTINGS_VERSION
        return settings, stale


def _field_names() -> set[str]:
    return {item.name for item in fields(Settings)}


def _environment_overrides() -> Dict[str, Any]:
    values: Dict[str, Any] = {}
    for env_name, field_name, parse in _ENV_OVERRIDES:
        raw = os.environ.get(env_name)
        if raw is None:
            continue
        try:
            values[field_name] = parse(raw)
        except ValueError:
            LOGGER.warning("Ignoring environment override %s=%r", env_name, raw)
    return values


def _with_overrides(settings: Settings, values: Mapping[str, Any], *, source: str) -> Settings:
    known = _field_names()
    applicable = {key: value for key, value in values.items() if key in known and value is not None}
    if not applicable:
        return settings
    LOGGER.debug("Applying %s settings overrides: %s", source, sorted(applicable))
    return replace(settings, **applicable)


def redact_secret(value: str) -> str:
    stripped = (value or "").strip()
    if not stripped:
        return ""
    if len(stripped) <= 4:
        return "*" * len(stripped)
    return f"{stripped[:2]}{'*' * (len(stripped) - 4)}{stripped[-2:]}"
