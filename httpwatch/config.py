"""httpwatch config - run configuration, config file loading, env resolution."""

from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass
from pathlib import Path

import yaml
from dotenv import dotenv_values

from httpwatch.errors import ConfigError, NotFoundError

GLOBAL_DIR = Path.home() / ".httpwatch"
GLOBAL_CONFIG = GLOBAL_DIR / "config.yaml"

CWD_CONFIG_CANDIDATES = [
    ".httpwatch.yaml",
    ".httpwatch.yml",
    "httpwatch.yaml",
    "httpwatch.yml",
]

HTTP_EXTENSIONS = (".http", ".rest")

DEFAULT_WAIT_TIME_MS = 50
DEFAULT_TIMEOUT_MS = 3000
DEFAULT_DEBOUNCE_MS = 100

LOG_FORMAT = "%(levelname)s: %(asctime)s %(message)s"


@dataclass(frozen=True)
class RunConfig:
    """Everything a run needs to know, produced once by the CLI.

    Exactly one of ``watch_file``/``watch_folder`` is set; at most one of
    ``http_file``/``http_folder``. Durations are in milliseconds.
    """

    watch_file: str | None = None
    watch_folder: str | None = None
    http_file: str | None = None
    http_folder: str | None = None
    exclude_file: str | None = None
    exclude_folder: str | None = None
    wait_time_ms: int = DEFAULT_WAIT_TIME_MS
    timeout_ms: int = DEFAULT_TIMEOUT_MS
    debounce_ms: int = DEFAULT_DEBOUNCE_MS
    verbose: bool = False

    @property
    def watch_path(self) -> str:
        return self.watch_file or self.watch_folder or ""

    @property
    def wait_time(self) -> float:
        return self.wait_time_ms / 1000

    @property
    def timeout(self) -> float:
        return self.timeout_ms / 1000

    @property
    def debounce(self) -> float:
        return self.debounce_ms / 1000


def has_http_extension(path: str | Path) -> bool:
    """True for ``.http`` and ``.rest`` files, case-insensitively."""
    return Path(path).suffix.lower() in HTTP_EXTENSIONS


def _check_path(path: str, label: str, want_dir: bool) -> None:
    p = Path(path)
    if not p.exists():
        raise NotFoundError(f"{label} error: path does not exist: {path}")
    if want_dir and not p.is_dir():
        raise ConfigError(f"provided {label} is not a directory: {path}")
    if not want_dir and p.is_dir():
        raise ConfigError(f"provided {label} is a directory: {path}")
    if not want_dir and not has_http_extension(p):
        raise ConfigError(f"{label} must have .http or .rest extension: {path}")


def validate_config(config: RunConfig) -> RunConfig:
    """Check a RunConfig and return it unchanged. Raises ConfigError."""
    if not config.watch_file and not config.watch_folder:
        raise ConfigError("either --watch-folder or --watch-file must be specified")
    if config.watch_file and config.watch_folder:
        raise ConfigError("--watch-folder and --watch-file are mutually exclusive")
    if config.http_file and config.http_folder:
        raise ConfigError("--http-folder and --http-file are mutually exclusive")
    if config.exclude_file and not config.watch_folder:
        raise ConfigError("exclude-file only makes sense when --watch-folder is specified")
    if config.exclude_folder and not config.watch_folder:
        raise ConfigError("exclude-folder only makes sense when --watch-folder is specified")

    if config.watch_folder:
        _check_path(config.watch_folder, "watch folder", want_dir=True)
    if config.watch_file:
        _check_path(config.watch_file, "watch file", want_dir=False)
    if config.http_file:
        _check_path(config.http_file, "http file", want_dir=False)
    if config.http_folder:
        _check_path(config.http_folder, "http folder", want_dir=True)

    if config.wait_time_ms < 0:
        raise ConfigError("wait-time cannot be negative")
    if config.timeout_ms <= 0:
        raise ConfigError("req-time-out must be greater than zero")
    if config.debounce_ms < 0:
        raise ConfigError("debounce cannot be negative")
    return config


# ── Config file ──────────────────────────────────────────────────────────


def resolve_path(
    candidates: list[Path],
    default: Path | None = None,
) -> Path | None:
    """Return the first existing path from candidates, else default."""
    for p in candidates:
        if p.exists():
            return p.resolve()
    return default


def resolve_config_path(config_file: str | None) -> Path | None:
    """Find the config file to use.

    Resolution order:
      1. Explicit -c flag (no fallthrough if missing)
      2. .httpwatch.yaml (variants) in CWD
      3. ~/.httpwatch/config.yaml
    """
    if config_file:
        return resolve_path([Path(config_file)])
    return resolve_path([Path(c) for c in CWD_CONFIG_CANDIDATES] + [GLOBAL_CONFIG])


def load_config(config_path: str | Path | None) -> dict:
    """Load the YAML config file. Returns empty defaults if not found.

    Stores '_config_dir' so an env_file can be found relative to the
    config file.
    """
    if config_path is None:
        return {"defaults": {}, "_config_dir": None}
    path = Path(config_path)
    if not path.exists():
        return {"defaults": {}, "_config_dir": None}
    try:
        with open(path) as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid YAML in config file {path}: {e}") from None
    if not isinstance(data, dict):
        raise ConfigError(f"config file must contain a mapping: {path}")
    defaults = data.get("defaults") or {}
    if not isinstance(defaults, dict):
        raise ConfigError(f"'defaults' in config file must be a mapping: {path}")
    return {
        "defaults": defaults,
        "_config_dir": path.resolve().parent,
    }


def load_env(env_file: str | None, base_dir: str | Path = ".") -> dict[str, str]:
    """Load a .env file merged over os.environ."""
    env = dict(os.environ)
    if env_file:
        dotenv_path = Path(base_dir) / env_file
        if dotenv_path.exists():
            dotenv_vars = dotenv_values(str(dotenv_path))
            env.update({k: v for k, v in dotenv_vars.items() if v is not None})
    return env


def resolve_value(value, env: dict[str, str]):
    """Resolve $VAR and ${VAR} references in a string value.

    Non-string values are returned unchanged; unknown names are kept.
    """
    if value is None or not isinstance(value, str):
        return value

    def _replace(m: re.Match) -> str:
        var_name = m.group(1) or m.group(2)
        return env.get(var_name, m.group(0))

    return re.sub(r"\$\{([^}]+)\}|\$([A-Za-z_][A-Za-z0-9_]*)", _replace, value)


def _as_int(value, name: str) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ConfigError(f"{name} must be an integer, got {value!r}") from None


def _as_bool(value) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "on")
    return bool(value)


def _first_set(*sources, default=None):
    """Return the first source that is not None, or default."""
    for s in sources:
        if s is not None:
            return s
    return default


def build_run_config(config: dict, **options) -> RunConfig:
    """Merge command-line options over config file defaults.

    ``options`` uses the RunConfig field names; None means "not given".
    The result is validated.
    """
    defaults = config.get("defaults", {})
    base_dir = config.get("_config_dir") or "."
    env = load_env(defaults.get("env_file"), base_dir)

    def _default(key):
        return resolve_value(defaults.get(key), env)

    run_config = RunConfig(
        watch_file=options.get("watch_file"),
        watch_folder=options.get("watch_folder"),
        http_file=options.get("http_file"),
        http_folder=options.get("http_folder"),
        exclude_file=options.get("exclude_file"),
        exclude_folder=options.get("exclude_folder"),
        wait_time_ms=_as_int(
            _first_set(options.get("wait_time_ms"), _default("wait_time"), default=DEFAULT_WAIT_TIME_MS),
            "wait-time",
        ),
        timeout_ms=_as_int(
            _first_set(options.get("timeout_ms"), _default("timeout"), default=DEFAULT_TIMEOUT_MS),
            "req-time-out",
        ),
        debounce_ms=_as_int(
            _first_set(options.get("debounce_ms"), _default("debounce"), default=DEFAULT_DEBOUNCE_MS),
            "debounce",
        ),
        verbose=bool(options.get("verbose")) or _as_bool(_default("verbose") or False),
    )
    return validate_config(run_config)


def make_logger(verbose: bool) -> logging.Logger:
    """Return the httpwatch logger, gated on verbosity."""
    log = logging.getLogger("httpwatch")
    if not log.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        log.addHandler(handler)
    log.setLevel(logging.DEBUG if verbose else logging.WARNING)
    return log
