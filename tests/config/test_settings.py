from __future__ import annotations

from pathlib import Path

import pytest

from iboot.config.settings import Settings, get_settings, load_env_file, reset_settings_cache


def test_defaults_without_environment(tmp_path: Path) -> None:
    settings = Settings.from_env(environ={}, overrides={"project_root": tmp_path})

    assert settings.n_jobs == 1
    assert settings.parallel_backend == "joblib"
    assert settings.logs_dir == tmp_path / "logs"
    assert settings.is_production is False


def test_prefixed_variables_are_parsed(tmp_path: Path) -> None:
    environ = {
        "IBOOT_N_JOBS": "4",
        "IBOOT_PARALLEL_BACKEND": "Thread",
        "IBOOT_STRUCTURED_LOGGING": "yes",
        "IBOOT_ENVIRONMENT": "production",
    }

    settings = Settings.from_env(environ=environ, overrides={"project_root": tmp_path})

    assert settings.n_jobs == 4
    assert settings.parallel_backend == "thread"
    assert settings.structured_logging is True
    assert settings.is_production


def test_env_file_is_overridden_by_process_environment(tmp_path: Path) -> None:
    env_file = tmp_path / "custom.env"
    env_file.write_text("# fan-out\nIBOOT_N_JOBS=8\nIBOOT_PARALLEL_BACKEND=process\n")

    settings = Settings.from_env(
        env_file=env_file,
        environ={"IBOOT_N_JOBS": "2"},
        overrides={"project_root": tmp_path},
    )

    assert settings.n_jobs == 2
    assert settings.parallel_backend == "process"


def test_load_env_file_ignores_comments(tmp_path: Path) -> None:
    env_file = tmp_path / ".env"
    env_file.write_text("# comment\n\nIBOOT_N_JOBS = 3\nnot a pair\nKEY=a=b\n")

    assert load_env_file(env_file) == {"IBOOT_N_JOBS": "3", "KEY": "a=b"}


def test_invalid_backend_raises(tmp_path: Path) -> None:
    with pytest.raises(ValueError, match="Unsupported parallel backend"):
        Settings.from_env(environ={"IBOOT_PARALLEL_BACKEND": "dask"}, overrides={"project_root": tmp_path})


def test_unknown_override_raises(tmp_path: Path) -> None:
    with pytest.raises(KeyError):
        Settings.from_env(environ={}, overrides={"project_root": tmp_path, "SEED": 1})


def test_get_settings_is_cached(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("IBOOT_N_JOBS", "5")
    reset_settings_cache()

    first = get_settings()
    monkeypatch.setenv("IBOOT_N_JOBS", "6")

    assert get_settings() is first
    assert first.n_jobs == 5
    reset_settings_cache()
    assert get_settings().n_jobs == 6
