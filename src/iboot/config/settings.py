"""Global runtime settings for the package.

The functions exposed here provide a cheap settings *singleton* with sensible
fallbacks for development environments. Values come from ``IBOOT_`` prefixed
environment variables, an optional ``.env`` file and explicit overrides, in
increasing order of precedence (the process environment wins over the file).

Random seeds are deliberately absent: every resampling call receives its seed
or generator as an explicit argument.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping, MutableMapping

from .constants import BACKENDS

__all__ = [
    "ENV_PREFIX",
    "Settings",
    "get_settings",
    "load_env_file",
    "reset_settings_cache",
]


ENV_PREFIX = "IBOOT_"
"""Prefix used by every environment variable read by the package."""

_BOOL_TRUE = {"1", "true", "yes", "on"}
_BOOL_FALSE = {"0", "false", "no", "off"}


def _coerce_bool(value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in _BOOL_TRUE:
        return True
    if lowered in _BOOL_FALSE:
        return False
    raise ValueError(f"Cannot interpret '{value}' as boolean")


def _parse_value(value: str, *, target: type) -> Any:
    if target is bool:
        return _coerce_bool(value)
    if target is int:
        return int(value)
    if target is float:
        return float(value)
    return value


def _expand_path(path_str: str, *, base: Path) -> Path:
    candidate = Path(path_str).expanduser()
    if not candidate.is_absolute():
        candidate = base / candidate
    return candidate


def load_env_file(path: Path) -> Mapping[str, str]:
    """Parse a ``.env`` style file returning a mapping of key/values.

    Blank lines and comments starting with ``#`` are ignored. Only the first
    ``=`` in each line is treated as the separator.
    """

    entries: MutableMapping[str, str] = {}
    if not path.exists():
        return entries

    for raw_line in path.read_text(encoding="utf-8").splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        if "=" not in line:
            continue
        key, value = line.split("=", 1)
        entries[key.strip()] = value.strip()
    return entries


def _project_root() -> Path:
    return Path(__file__).resolve().parents[3]


@dataclass(slots=True, frozen=True)
class Settings:
    """Immutable set of process-wide settings.

    ``n_jobs`` and ``parallel_backend`` are the defaults used to fan out
    statistic evaluations when a call does not specify them; ``n_jobs <= 1``
    means sequential execution.
    """

    project_root: Path
    logs_dir: Path
    environment: str
    structured_logging: bool
    n_jobs: int
    parallel_backend: str

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"

    def to_dict(self) -> dict[str, Any]:
        return {
            "project_root": str(self.project_root),
            "logs_dir": str(self.logs_dir),
            "environment": self.environment,
            "structured_logging": self.structured_logging,
            "n_jobs": self.n_jobs,
            "parallel_backend": self.parallel_backend,
        }

    @classmethod
    def from_env(
        cls,
        *,
        overrides: Mapping[str, Any] | None = None,
        env_file: str | Path | None = None,
        environ: Mapping[str, str] | None = None,
    ) -> "Settings":
        """Create :class:`Settings` merging defaults, env file, env vars and overrides."""

        overrides = dict(overrides or {})

        env_mapping: MutableMapping[str, str] = {}
        if env_file is not None:
            env_mapping.update(load_env_file(Path(env_file).expanduser()))

        system_environ = dict(os.environ if environ is None else environ)

        project_root_value = overrides.pop("project_root", None)
        if project_root_value is None:
            project_root_value = env_mapping.get(f"{ENV_PREFIX}PROJECT_ROOT")
        if project_root_value is None:
            project_root_value = system_environ.get(f"{ENV_PREFIX}PROJECT_ROOT")

        if project_root_value is None:
            project_root = _project_root()
        else:
            project_root = Path(str(project_root_value)).expanduser().resolve()

        default_env_path = project_root / ".env"
        if env_file is None and default_env_path.exists():
            env_mapping.update(load_env_file(default_env_path))

        # System environment has the highest precedence.
        env_mapping.update(system_environ)

        def pull(name: str, *, default: Any, target: type) -> Any:
            key = f"{ENV_PREFIX}{name}"
            if name in overrides:
                value = overrides.pop(name)
                if target is Path:
                    return _expand_path(str(value), base=project_root)
                if isinstance(value, str) and target in {bool, int, float}:
                    return _parse_value(value, target=target)
                return value
            if key in env_mapping:
                raw = env_mapping[key]
                if target is Path:
                    return _expand_path(raw, base=project_root)
                return _parse_value(raw, target=target)
            if target is Path:
                return _expand_path(str(default), base=project_root)
            return default

        logs_dir = pull("LOGS_DIR", default="logs", target=Path)
        environment = pull("ENVIRONMENT", default="development", target=str)
        structured_logging = pull("STRUCTURED_LOGGING", default=False, target=bool)
        n_jobs = pull("N_JOBS", default=1, target=int)
        parallel_backend = pull("PARALLEL_BACKEND", default="joblib", target=str)

        if overrides:
            unknown = ", ".join(sorted(overrides))
            raise KeyError(f"Unknown override(s): {unknown}")

        parallel_backend = str(parallel_backend).lower()
        if parallel_backend not in BACKENDS:
            raise ValueError(
                f"Unsupported parallel backend '{parallel_backend}'; "
                f"expected one of {', '.join(BACKENDS)}"
            )

        return cls(
            project_root=project_root,
            logs_dir=logs_dir,
            environment=str(environment),
            structured_logging=bool(structured_logging),
            n_jobs=int(n_jobs),
            parallel_backend=parallel_backend,
        )


_SETTINGS_CACHE: Settings | None = None


def get_settings(**kwargs: Any) -> Settings:
    """Return cached settings, building them on the first call.

    When keyword arguments are provided the cache is bypassed and freshly
    computed settings are returned. The cache itself can be cleared with
    :func:`reset_settings_cache`.
    """

    global _SETTINGS_CACHE
    if kwargs:
        return Settings.from_env(**kwargs)
    if _SETTINGS_CACHE is None:
        _SETTINGS_CACHE = Settings.from_env()
    return _SETTINGS_CACHE


def reset_settings_cache() -> None:
    """Clear the singleton cache (useful for tests)."""

    global _SETTINGS_CACHE
    _SETTINGS_CACHE = None
