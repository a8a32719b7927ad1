"""Config loading for PromptShield.

Reads `.promptshield/config.yaml` (or `~/.promptshield/config.yaml`).
Raises SystemExit on parse errors, a missing `version` field, or invalid values.
If no config file is found, returns default values (safe to run without config).

Config search order:
  1. `config_path` argument (if provided — for testing or explicit override)
  2. PROMPTSHIELD_CONFIG environment variable (if set)
  3. `.promptshield/config.yaml` (working directory — for development)
  4. `~/.promptshield/config.yaml` (home directory)

Environment variable overrides:
  PROMPTSHIELD_STORE_PATH — forces the sqlite store at this path
  PROMPTSHIELD_LOG_LEVEL  — overrides logging.level
"""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass, field
from typing import Any, NoReturn, Optional

import yaml

from promptshield.constants import (
    BULK_EMAIL_THRESHOLD,
    KEYBOARD_FALLBACK_MS,
    MAX_SCAN_LENGTH,
    PROACTIVE_DEBOUNCE_MS,
)
from promptshield.utils.logger import get_logger

logger = get_logger(__name__)

# ─── Version constants ────────────────────────────────────────────────────────

SUPPORTED_CONFIG_VERSION = 1

SUPPORTED_VERSIONS: frozenset[int] = frozenset({1})

# ─── Validation sets ─────────────────────────────────────────────────────────

VALID_STORE_BACKENDS: frozenset[str] = frozenset({"memory", "sqlite"})

VALID_LOG_LEVELS: frozenset[str] = frozenset({"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"})

DEFAULT_STORE_PATH = "~/.promptshield/settings.db"

DEFAULT_CONFIG_PATHS = [
    ".promptshield/config.yaml",
    os.path.expanduser("~/.promptshield/config.yaml"),
]


# ─── Dataclasses ─────────────────────────────────────────────────────────────


@dataclass
class ScannerConfig:
    """Scanner limits."""

    max_scan_length: int = MAX_SCAN_LENGTH
    bulk_email_threshold: int = BULK_EMAIL_THRESHOLD


@dataclass
class GuardConfig:
    """Submission guard timings.

    debounce_ms:          quiet period before a proactive scan on typing.
    keyboard_fallback_ms: delay before a keyboard replay falls back to clicking
                          the send control; 0 disables the fallback.
    proactive:            run non-blocking scans on paste / text change.
    """

    debounce_ms: int = PROACTIVE_DEBOUNCE_MS
    keyboard_fallback_ms: int = KEYBOARD_FALLBACK_MS
    proactive: bool = True

    @property
    def debounce_s(self) -> float:
        return self.debounce_ms / 1000

    @property
    def keyboard_fallback_s(self) -> float:
        return self.keyboard_fallback_ms / 1000


@dataclass
class StoreConfig:
    """Settings store (enabled flag + session counts)."""

    backend: str = "memory"  # "memory" | "sqlite"
    path: str = DEFAULT_STORE_PATH


@dataclass
class LoggingConfig:
    level: str = "INFO"
    json: bool = True


@dataclass
class Config:
    """Root configuration object populated from .promptshield/config.yaml.

    All fields have safe defaults — PromptShield can start without any config file.
    """

    version: int = SUPPORTED_CONFIG_VERSION
    scanner: ScannerConfig = field(default_factory=ScannerConfig)
    guard: GuardConfig = field(default_factory=GuardConfig)
    store: StoreConfig = field(default_factory=StoreConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    path: Optional[str] = None  # Path to the loaded config file

    @classmethod
    def defaults(cls) -> "Config":
        return cls()

    @classmethod
    def from_dict(cls, raw: dict, path: Optional[str] = None) -> "Config":
        """Construct Config from a parsed YAML dict.

        Merges user-supplied values onto defaults; unknown keys are silently ignored.

        Raises:
            SystemExit(1): On an invalid value in any section.
        """
        # ── Scanner ───────────────────────────────────────────────────────────
        scanner_raw = _section(raw, "scanner")
        scanner = ScannerConfig(
            max_scan_length=_positive_int(
                scanner_raw, "scanner.max_scan_length", "max_scan_length", MAX_SCAN_LENGTH
            ),
            bulk_email_threshold=_positive_int(
                scanner_raw, "scanner.bulk_email_threshold", "bulk_email_threshold", BULK_EMAIL_THRESHOLD
            ),
        )

        # ── Guard ─────────────────────────────────────────────────────────────
        guard_raw = _section(raw, "guard")
        guard = GuardConfig(
            debounce_ms=_non_negative_int(
                guard_raw, "guard.debounce_ms", "debounce_ms", PROACTIVE_DEBOUNCE_MS
            ),
            keyboard_fallback_ms=_non_negative_int(
                guard_raw, "guard.keyboard_fallback_ms", "keyboard_fallback_ms", KEYBOARD_FALLBACK_MS
            ),
            proactive=bool(guard_raw.get("proactive", True)),
        )

        # ── Store ─────────────────────────────────────────────────────────────
        store_raw = _section(raw, "store")
        backend = store_raw.get("backend", "memory")
        if backend not in VALID_STORE_BACKENDS:
            _fail(
                f"CONFIG ERROR: Invalid store.backend: '{backend}'. "
                f"Supported values: {sorted(VALID_STORE_BACKENDS)}."
            )
        store = StoreConfig(
            backend=backend,
            path=store_raw.get("path", DEFAULT_STORE_PATH),
        )

        # ── Logging ───────────────────────────────────────────────────────────
        logging_raw = _section(raw, "logging")
        level = str(logging_raw.get("level", "INFO")).upper()
        if level not in VALID_LOG_LEVELS:
            _fail(
                f"CONFIG ERROR: Invalid logging.level: '{level}'. "
                f"Supported values: {sorted(VALID_LOG_LEVELS)}."
            )
        logging_cfg = LoggingConfig(level=level, json=bool(logging_raw.get("json", True)))

        return cls(
            version=raw.get("version", SUPPORTED_CONFIG_VERSION),
            scanner=scanner,
            guard=guard,
            store=store,
            logging=logging_cfg,
            path=path,
        )


# ─── Validation helpers ───────────────────────────────────────────────────────


def _fail(msg: str) -> NoReturn:
    print(msg, file=sys.stderr)
    raise SystemExit(1)


def _section(raw: dict, name: str) -> dict:
    value = raw.get(name) or {}
    if not isinstance(value, dict):
        _fail(f"CONFIG ERROR: '{name}' must be a mapping.")
    return value


def _int_value(section: dict, dotted: str, key: str, default: int) -> int:
    value: Any = section.get(key, default)
    if isinstance(value, bool) or not isinstance(value, int):
        _fail(f"CONFIG ERROR: {dotted} must be an integer, got {value!r}.")
    return value


def _positive_int(section: dict, dotted: str, key: str, default: int) -> int:
    value = _int_value(section, dotted, key, default)
    if value <= 0:
        _fail(f"CONFIG ERROR: {dotted} must be positive, got {value}.")
    return value


def _non_negative_int(section: dict, dotted: str, key: str, default: int) -> int:
    value = _int_value(section, dotted, key, default)
    if value < 0:
        _fail(f"CONFIG ERROR: {dotted} must not be negative, got {value}.")
    return value


# ─── Config loading ───────────────────────────────────────────────────────────


def load_config(config_path: Optional[str] = None) -> Config:
    """Load and validate PromptShield configuration.

    If no file is found on the search path, returns default Config (not an error).
    If a file is found but invalid, writes the error to stderr and raises SystemExit(1).
    Environment overrides are applied last in both cases.

    Raises:
        SystemExit(1): On YAML parse error, missing ``version`` field, unsupported
                       version, or an invalid section value.
    """
    search_paths: list[str] = []
    if config_path:
        search_paths.append(config_path)
    env_config = os.environ.get("PROMPTSHIELD_CONFIG")
    if env_config:
        search_paths.append(env_config)
    search_paths.extend(DEFAULT_CONFIG_PATHS)

    found_path: Optional[str] = None
    for candidate in search_paths:
        expanded = os.path.expanduser(candidate)
        if os.path.isfile(expanded):
            found_path = expanded
            break

    if found_path is None:
        logger.info("No config file found — using defaults", searched=search_paths)
        config = Config.defaults()
        _apply_env_overrides(config)
        return config

    logger.info("Loading config", path=found_path)

    try:
        with open(found_path) as fh:
            raw = yaml.safe_load(fh)
    except yaml.YAMLError as exc:
        _fail(
            f"CONFIG ERROR: Failed to parse {found_path}: {exc}\n"
            "Check the YAML syntax and try again."
        )
    except OSError as exc:
        _fail(f"CONFIG ERROR: Could not read {found_path}: {exc}")

    if not isinstance(raw, dict):
        if raw is None:
            _fail(
                f"CONFIG ERROR: {found_path} is missing the required 'version' field.\n"
                "Add 'version: 1' to the top of your config file."
            )
        _fail(
            f"CONFIG ERROR: {found_path} is not a valid YAML mapping.\n"
            "The config file must be a YAML dictionary at the top level."
        )

    version = raw.get("version")
    if version is None:
        _fail(
            f"CONFIG ERROR: {found_path} is missing the required 'version' field.\n"
            "Add 'version: 1' to the top of your config file."
        )
    if version not in SUPPORTED_VERSIONS:
        _fail(
            f"CONFIG ERROR: Unsupported config version: {version}. "
            f"Supported versions: {sorted(SUPPORTED_VERSIONS)}."
        )

    config = Config.from_dict(raw, path=found_path)
    _apply_env_overrides(config)

    logger.info(
        "Config loaded",
        path=found_path,
        version=config.version,
        store_backend=config.store.backend,
        proactive=config.guard.proactive,
    )
    return config


def _apply_env_overrides(config: Config) -> None:
    """Apply environment variable overrides to a Config object in-place.

    Handles:
      PROMPTSHIELD_STORE_PATH — switches store to sqlite at the given path
      PROMPTSHIELD_LOG_LEVEL  — overrides logging.level (SystemExit(1) if invalid)
    """
    env_store = os.environ.get("PROMPTSHIELD_STORE_PATH")
    if env_store:
        config.store.backend = "sqlite"
        config.store.path = env_store

    env_level = os.environ.get("PROMPTSHIELD_LOG_LEVEL")
    if env_level is not None:
        level = env_level.upper()
        if level not in VALID_LOG_LEVELS:
            _fail(
                f"CONFIG ERROR: PROMPTSHIELD_LOG_LEVEL is not a valid level: '{env_level}'"
            )
        config.logging.level = level
