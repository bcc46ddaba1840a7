"""Configuration loading and validation utilities.

This module loads YAML run descriptions and validates them against Pydantic
schemas. It handles file resolution, parsing, and error reporting.

Example
-------
>>> from iboot.config.loader import load_config
>>> from iboot.config.schemas import BootstrapConfig
>>>
>>> config = load_config("configs/calibrated.yaml", BootstrapConfig)
>>> print(config.n_inner)
200
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional, Type, TypeVar, Union

import yaml
from pydantic import BaseModel, ValidationError

__all__ = ["load_config", "save_config", "ConfigError"]

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseModel)


class ConfigError(Exception):
    """Raised when configuration loading or validation fails."""

    pass


def _resolve_config_path(file_path: Union[str, Path], project_root: Optional[Path] = None) -> Path:
    """Resolve configuration file path.

    Parameters
    ----------
    file_path : str or Path
        Path to configuration file (absolute or relative)
    project_root : Path, optional
        Project root directory. If None, auto-detect from this file's location.

    Returns
    -------
    Path
        Resolved absolute path

    Raises
    ------
    FileNotFoundError
        If file doesn't exist
    """
    path = Path(file_path)

    if path.is_absolute() and path.exists():
        return path

    if project_root is None:
        project_root = Path(__file__).resolve().parents[3]

    resolved = project_root / path
    if resolved.exists():
        return resolved

    # Try relative to current working directory
    if path.exists():
        return path.resolve()

    raise FileNotFoundError(f"Config file not found: {file_path}")


def load_config(
    file_path: Union[str, Path],
    schema: Type[T],
    *,
    project_root: Optional[Path] = None,
    strict: bool = True,
) -> T:
    """Load and validate YAML configuration file.

    Parameters
    ----------
    file_path : str or Path
        Path to YAML configuration file
    schema : Type[BaseModel]
        Pydantic model class to validate against
    project_root : Path, optional
        Project root directory for path resolution
    strict : bool, default=True
        If True, raise exception on validation errors.
        If False, log warnings and return default instance.

    Returns
    -------
    BaseModel
        Validated configuration object

    Raises
    ------
    ConfigError
        If file loading or validation fails (only when strict=True)
    """
    try:
        resolved_path = _resolve_config_path(file_path, project_root)

        logger.debug(f"Loading config from: {resolved_path}")
        with open(resolved_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)

        if data is None:
            raise ConfigError(f"Empty configuration file: {file_path}")

        try:
            config = schema.model_validate(data)
            logger.info(f"Successfully loaded config: {resolved_path.name}")
            return config
        except ValidationError as e:
            error_msg = f"Configuration validation failed for {file_path}:\n{e}"
            if strict:
                raise ConfigError(error_msg) from e
            else:
                logger.warning(error_msg)
                logger.warning("Returning default configuration")
                return schema()

    except FileNotFoundError as e:
        if strict:
            raise ConfigError(f"Configuration file not found: {file_path}") from e
        else:
            logger.warning(f"Config file not found: {file_path}, using defaults")
            return schema()
    except yaml.YAMLError as e:
        error_msg = f"Invalid YAML syntax in {file_path}: {e}"
        if strict:
            raise ConfigError(error_msg) from e
        else:
            logger.warning(error_msg)
            return schema()


def save_config(
    config: BaseModel, file_path: Union[str, Path], *, project_root: Optional[Path] = None
) -> Path:
    """Save Pydantic configuration model to YAML file.

    Tuples (such as an ``alpha`` pair) are written as YAML sequences and read
    back by :func:`load_config` unchanged.
    """
    path = Path(file_path)

    if not path.is_absolute():
        if project_root is None:
            project_root = Path(__file__).resolve().parents[3]
        path = project_root / path

    path.parent.mkdir(parents=True, exist_ok=True)

    data = config.model_dump(mode="json", exclude_none=True)

    with open(path, "w", encoding="utf-8") as f:
        yaml.safe_dump(
            data,
            f,
            default_flow_style=False,
            sort_keys=False,
            allow_unicode=True,
            indent=2,
        )

    logger.info(f"Saved configuration to: {path}")
    return path
