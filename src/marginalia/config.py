"""Marginalia configuration loader.

Priority (high → low):
  1. CLI flags           (handled at the call site, not in this module)
  2. Environment variables  (MARGINALIA_DB_PATH, MARGINALIA_MIRROR,
                             MARGINALIA_MIRROR_PROFILE)
  3. Global ~/.marginalia/config.yaml
  4. Hardcoded defaults

All YAML reads use yaml.safe_load(), never yaml.load().
"""

from __future__ import annotations

import os
import sys
import warnings
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from marginalia.mirror.profiles import PROFILE_NAMES

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

_GLOBAL_CONFIG_DIR: Path = Path.home() / ".marginalia"
_GLOBAL_CONFIG_PATH: Path = _GLOBAL_CONFIG_DIR / "config.yaml"

# Known top-level sections; unknown keys produce a warning
_KNOWN_SECTIONS: frozenset[str] = frozenset(["store", "mirror", "policy", "identity"])

_TRUE_WORDS = frozenset(["1", "true", "yes", "on"])
_FALSE_WORDS = frozenset(["0", "false", "no", "off"])


def default_db_path(platform: str | None = None) -> Path:
    """Per-user database location: Application Support on macOS, XDG data dir elsewhere."""
    platform = platform or sys.platform
    if platform == "darwin":
        return Path.home() / "Library" / "Application Support" / "Marginalia" / "notes.db"
    data_home = os.environ.get("XDG_DATA_HOME")
    base = Path(data_home) if data_home else Path.home() / ".local" / "share"
    return base / "marginalia" / "notes.db"


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class ConfigError(ValueError):
    """Raised when a config file contains an invalid value."""


# ---------------------------------------------------------------------------
# Data model
# ---------------------------------------------------------------------------


@dataclass
class StoreCfg:
    """Record store configuration (config.yaml: store:)."""

    path: Path = field(default_factory=default_db_path)
    busy_timeout_ms: int = 5_000


@dataclass
class MirrorCfg:
    """Side-channel mirror configuration (config.yaml: mirror:).

    Attributes:
        enabled: Write notes through to the host's file comment as well.
        profile: ``auto``, ``darwin`` or ``xdg``.
        command_timeout: Seconds before an external tool is abandoned.
        attribute: Override the extended-attribute name of the profile.
        reindex: Ask the host indexer to re-read a file after a raw write.
    """

    enabled: bool = True
    profile: str = "auto"
    command_timeout: float = 5.0
    attribute: str | None = None
    reindex: bool = True


@dataclass
class PolicyCfg:
    """Caller-level policies (config.yaml: policy:).

    Attributes:
        adopt_mirror_notes: When a note is only found in the mirror (a
            duplicated file inherits its comment), create a record for it.
    """

    adopt_mirror_notes: bool = False


@dataclass
class IdentityCfg:
    """Identity resolution (config.yaml: identity:)."""

    search_siblings: bool = True


@dataclass
class MarginaliaConfig:
    """Root configuration object, built by load_config() from merged YAML layers."""

    store: StoreCfg = field(default_factory=StoreCfg)
    mirror: MirrorCfg = field(default_factory=MirrorCfg)
    policy: PolicyCfg = field(default_factory=PolicyCfg)
    identity: IdentityCfg = field(default_factory=IdentityCfg)


# ---------------------------------------------------------------------------
# Validation helpers
# ---------------------------------------------------------------------------


def _warn_unknown_keys(data: dict[str, Any], source: Path) -> None:
    """Emit a UserWarning for unrecognised top-level keys."""
    for key in data:
        if key not in _KNOWN_SECTIONS:
            warnings.warn(
                f"Unknown config key '{key}' in '{source}' (ignored).",
                UserWarning,
                stacklevel=4,
            )


def _as_bool(value: Any, key: str) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in _TRUE_WORDS:
        return True
    if text in _FALSE_WORDS:
        return False
    raise ConfigError(f"'{key}' must be a boolean (true/false), got '{value}'")


def _validate(cfg: MarginaliaConfig) -> None:
    if cfg.mirror.profile not in PROFILE_NAMES:
        raise ConfigError(
            f"mirror.profile must be one of {', '.join(PROFILE_NAMES)}, got '{cfg.mirror.profile}'"
        )
    if cfg.mirror.command_timeout <= 0:
        raise ConfigError(
            f"mirror.command_timeout must be positive, got {cfg.mirror.command_timeout}"
        )
    if cfg.store.busy_timeout_ms < 0:
        raise ConfigError(
            f"store.busy_timeout_ms must not be negative, got {cfg.store.busy_timeout_ms}"
        )


# ---------------------------------------------------------------------------
# Merge + build
# ---------------------------------------------------------------------------


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Return a new dict that is *base* deep-merged with *override*."""
    result = dict(base)
    for k, v in override.items():
        if k in result and isinstance(result[k], dict) and isinstance(v, dict):
            result[k] = _deep_merge(result[k], v)
        else:
            result[k] = v
    return result


def _cfg_from_dict(data: dict[str, Any]) -> MarginaliaConfig:
    """Build a *MarginaliaConfig* from a merged raw YAML dict."""
    cfg = MarginaliaConfig()

    try:
        if "store" in data:
            s = data["store"] or {}
            cfg.store = StoreCfg(
                path=Path(s["path"]).expanduser() if s.get("path") else cfg.store.path,
                busy_timeout_ms=int(s.get("busy_timeout_ms", cfg.store.busy_timeout_ms)),
            )

        if "mirror" in data:
            m = data["mirror"] or {}
            cfg.mirror = MirrorCfg(
                enabled=_as_bool(m.get("enabled", cfg.mirror.enabled), "mirror.enabled"),
                profile=str(m.get("profile", cfg.mirror.profile)),
                command_timeout=float(m.get("command_timeout", cfg.mirror.command_timeout)),
                attribute=m.get("attribute") or cfg.mirror.attribute,
                reindex=_as_bool(m.get("reindex", cfg.mirror.reindex), "mirror.reindex"),
            )

        if "policy" in data:
            p = data["policy"] or {}
            cfg.policy = PolicyCfg(
                adopt_mirror_notes=_as_bool(
                    p.get("adopt_mirror_notes", cfg.policy.adopt_mirror_notes),
                    "policy.adopt_mirror_notes",
                ),
            )

        if "identity" in data:
            i = data["identity"] or {}
            cfg.identity = IdentityCfg(
                search_siblings=_as_bool(
                    i.get("search_siblings", cfg.identity.search_siblings),
                    "identity.search_siblings",
                ),
            )
    except ConfigError:
        raise
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"Invalid config value: {exc}") from exc

    return cfg


def _apply_env_overrides(cfg: MarginaliaConfig) -> MarginaliaConfig:
    """Apply MARGINALIA_* environment variable overrides."""
    if db_path := os.environ.get("MARGINALIA_DB_PATH"):
        cfg.store.path = Path(db_path).expanduser()
    if mirror := os.environ.get("MARGINALIA_MIRROR"):
        cfg.mirror.enabled = _as_bool(mirror, "MARGINALIA_MIRROR")
    if profile := os.environ.get("MARGINALIA_MIRROR_PROFILE"):
        cfg.mirror.profile = profile
    return cfg


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def load_config(*, global_config_path: Path | None = None) -> MarginaliaConfig:
    """Load and return a merged *MarginaliaConfig*.

    Applies layers in order: global YAML → env vars.
    CLI flag overrides must be applied by the caller after this function.

    Args:
        global_config_path: Override the global config path (for testing).

    Returns:
        Fully merged *MarginaliaConfig* with env var overrides applied.

    Raises:
        ConfigError: If a value has the wrong type or is out of range.
    """
    global_path = global_config_path if global_config_path is not None else _GLOBAL_CONFIG_PATH

    merged: dict[str, Any] = {}
    if global_path.exists():
        raw = yaml.safe_load(global_path.read_text(encoding="utf-8")) or {}
        if not isinstance(raw, dict):
            raise ConfigError(f"Config file '{global_path}' must contain a mapping.")
        _warn_unknown_keys(raw, global_path)
        merged = _deep_merge(merged, raw)

    cfg = _apply_env_overrides(_cfg_from_dict(merged))
    _validate(cfg)
    return cfg


def ensure_global_config(global_config_path: Path | None = None) -> Path:
    """Create ``~/.marginalia/config.yaml`` with defaults if it does not exist.

    Creates the parent directory with mode 0o700 and the file with mode 0o600.

    Returns:
        Path to the global config file.
    """
    target = global_config_path if global_config_path is not None else _GLOBAL_CONFIG_PATH
    target.parent.mkdir(mode=0o700, parents=True, exist_ok=True)

    if not target.exists():
        content = (
            "# Marginalia global configuration.\n"
            "\n"
            "mirror:\n"
            "  enabled: true\n"
            "  profile: auto\n"
            "  command_timeout: 5.0\n"
            "\n"
            "policy:\n"
            "  adopt_mirror_notes: false\n"
        )
        target.write_text(content, encoding="utf-8")
        target.chmod(0o600)

    return target
