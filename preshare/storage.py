"""Encrypted-at-rest storage for local prep caches.

A prep cache keeps each session's raw data next to its sanitized form so the
review step can diff them, so it is encrypted whenever encryption is enabled.
"""

from __future__ import annotations

import contextlib
import json
import logging
import os
import secrets
from pathlib import Path
from typing import Any

import keyring
from cryptography.fernet import Fernet, InvalidToken
from keyring.errors import KeyringError

from .config import CONFIG_DIR, PreShareConfig, load_config, save_config

logger = logging.getLogger(__name__)

_ENC_PREFIX = "PRESHARE_ENCRYPTED_V1:"
_LOCAL_KEY_FILE = CONFIG_DIR / "encryption.key"
_KEYRING_SERVICE = "preshare"
_FILE_KEY_REF = "file:default"


class EncryptionError(RuntimeError):
    """Raised when an encrypted payload cannot be decrypted."""


def _keyring_get(key_ref: str) -> str | None:
    try:
        return keyring.get_password(_KEYRING_SERVICE, key_ref)
    except KeyringError as exc:
        logger.warning("Keyring lookup failed for %s: %s", key_ref, exc)
        return None


def _keyring_set(key_ref: str, value: str) -> bool:
    try:
        keyring.set_password(_KEYRING_SERVICE, key_ref, value)
    except KeyringError as exc:
        logger.warning("Keyring unavailable, using key file: %s", exc)
        return False
    return True


def _read_local_fallback_key() -> str | None:
    if not _LOCAL_KEY_FILE.exists():
        return None
    try:
        return _LOCAL_KEY_FILE.read_text(encoding="utf-8").strip() or None
    except OSError:
        return None


def _write_local_fallback_key(key: str) -> None:
    write_text(_LOCAL_KEY_FILE, key)


def ensure_encryption_key(config: PreShareConfig | None = None) -> tuple[str, str]:
    """Make sure a key exists, creating one if needed.

    Returns ``(key_ref, backend)`` where backend is ``"keyring"`` or ``"file"``.
    """
    cfg = config if config is not None else load_config()
    key_ref = cfg.get("encryption_key_ref")

    if key_ref and key_ref != _FILE_KEY_REF and _keyring_get(key_ref):
        return key_ref, "keyring"
    if _read_local_fallback_key():
        if key_ref != _FILE_KEY_REF:
            cfg["encryption_key_ref"] = _FILE_KEY_REF
            save_config(cfg)
        return _FILE_KEY_REF, "file"

    raw_key = Fernet.generate_key().decode("ascii")
    new_ref = f"key-{secrets.token_hex(8)}"
    if _keyring_set(new_ref, raw_key):
        cfg["encryption_key_ref"] = new_ref
        save_config(cfg)
        return new_ref, "keyring"

    _write_local_fallback_key(raw_key)
    cfg["encryption_key_ref"] = _FILE_KEY_REF
    save_config(cfg)
    return _FILE_KEY_REF, "file"


def _resolve_raw_key(config: PreShareConfig | None = None) -> str | None:
    cfg = config if config is not None else load_config()
    key_ref = cfg.get("encryption_key_ref")
    if key_ref and key_ref != _FILE_KEY_REF:
        return _keyring_get(key_ref)
    return _read_local_fallback_key()


def encryption_status(config: PreShareConfig | None = None) -> dict[str, Any]:
    cfg = config if config is not None else load_config()
    return {
        "enabled": bool(cfg.get("encryption_enabled", True)),
        "key_ref": cfg.get("encryption_key_ref"),
        "key_present": bool(_resolve_raw_key(cfg)),
    }


def is_encrypted_text(text: str) -> bool:
    return text.startswith(_ENC_PREFIX)


def encrypt_text(plain: str, config: PreShareConfig | None = None) -> str:
    """Encrypt with the configured key; returns ``plain`` unchanged when no key exists."""
    raw_key = _resolve_raw_key(config)
    if not raw_key:
        return plain
    token = Fernet(raw_key.encode("ascii")).encrypt(plain.encode("utf-8")).decode("ascii")
    return f"{_ENC_PREFIX}{token}"


def decrypt_text(payload: str, config: PreShareConfig | None = None) -> str:
    if not is_encrypted_text(payload):
        return payload
    raw_key = _resolve_raw_key(config)
    if not raw_key:
        raise EncryptionError("Payload is encrypted but no encryption key is available")
    token = payload[len(_ENC_PREFIX):]
    try:
        return Fernet(raw_key.encode("ascii")).decrypt(token.encode("ascii")).decode("utf-8")
    except (InvalidToken, ValueError) as exc:
        raise EncryptionError("Payload could not be decrypted with the configured key") from exc


def write_text(path: Path, text: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    if os.name != "nt":
        with contextlib.suppress(OSError):
            path.chmod(0o600)


def read_text(path: Path, config: PreShareConfig | None = None) -> str:
    raw = path.read_text(encoding="utf-8", errors="replace")
    return decrypt_text(raw, config=config)


def write_jsonl(path: Path, rows: list[dict[str, Any]], config: PreShareConfig | None = None) -> bool:
    """Write rows as JSONL, encrypted when enabled in ``config``. Returns True if encrypted."""
    cfg = config if config is not None else load_config()
    text = "".join(json.dumps(row, ensure_ascii=False) + "\n" for row in rows)
    encrypted = False
    if cfg.get("encryption_enabled", True):
        ensure_encryption_key(cfg)
        sealed = encrypt_text(text, config=cfg)
        encrypted = sealed != text
        text = sealed
    write_text(path, text)
    return encrypted


def read_jsonl(path: Path, config: PreShareConfig | None = None) -> list[dict[str, Any]]:
    text = read_text(path, config=config)
    rows: list[dict[str, Any]] = []
    for line in text.splitlines():
        line = line.strip()
        if not line:
            continue
        try:
            rows.append(json.loads(line))
        except json.JSONDecodeError:
            continue
    return rows
