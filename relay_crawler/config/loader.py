"""Configuration loading helpers for relay-crawler."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator

import yaml

from .models import GlobalConfig, JobConfig

CONFIG_EXTENSIONS = (".yaml", ".yml", ".json")
GLOBAL_CONFIG_FILENAME = "global_config.yaml"
HOME_ENV_VAR = "RELAY_CRAWLER_HOME"


def _slugify(name: str) -> str:
    return "".join(ch.lower() if ch.isalnum() else "-" for ch in name).strip("-")


def _read_file(path: Path) -> dict:
    text = path.read_text(encoding="utf-8")
    try:
        data = yaml.safe_load(text) if path.suffix in (".yaml", ".yml") else json.loads(text)
    except (yaml.YAMLError, json.JSONDecodeError) as exc:
        raise ValueError(f"Cannot parse {path}: {exc}") from exc
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ValueError(f"Configuration file must contain a mapping: {path}")
    return data


def _write_file(path: Path, payload: dict) -> None:
    with path.open("w", encoding="utf-8") as stream:
        if path.suffix == ".json":
            json.dump(payload, stream, indent=2, ensure_ascii=False)
        else:
            yaml.safe_dump(payload, stream, allow_unicode=True, sort_keys=False)


def resolve_home(project_root: Path | None = None) -> Path:
    """``$RELAY_CRAWLER_HOME`` if set, else the project root."""

    env_root = os.environ.get(HOME_ENV_VAR)
    if env_root:
        return Path(env_root).expanduser().resolve()
    return (project_root or Path(__file__).resolve().parents[2]).resolve()


@dataclass(slots=True)
class ConfigLocator:
    """Directory layout under the home: ``data/{jobs,outputs}`` and ``logs``."""

    project_root: Path | None = None
    data_dir: Path | None = None
    jobs_dir: Path | None = None
    outputs_dir: Path | None = None
    logs_dir: Path | None = None

    def __post_init__(self) -> None:
        root = resolve_home(self.project_root)
        self.project_root = root
        self.data_dir = root / "data"
        self.jobs_dir = self.data_dir / "jobs"
        self.outputs_dir = self.data_dir / "outputs"
        self.logs_dir = root / "logs"
        for directory in (self.jobs_dir, self.outputs_dir, self.logs_dir / "jobs"):
            directory.mkdir(parents=True, exist_ok=True)

    def global_config_path(self) -> Path:
        return self.data_dir / GLOBAL_CONFIG_FILENAME

    def resolve_outputs(self, config: GlobalConfig) -> Path:
        if config.outputs_dir.is_absolute():
            return config.outputs_dir
        return (self.project_root / config.outputs_dir).resolve()


class ConfigRepository:
    """Read and write the global config and one file per job."""

    def __init__(self, locator: ConfigLocator | None = None) -> None:
        self.locator = locator or ConfigLocator()
        self._global_cache: GlobalConfig | None = None

    def load_global_config(self) -> GlobalConfig:
        """Load the global config, writing the defaults on first use."""

        if self._global_cache is None:
            path = self.locator.global_config_path()
            if path.exists():
                self._global_cache = GlobalConfig.model_validate(_read_file(path))
            else:
                self.save_global_config(GlobalConfig())
        return self._global_cache

    def save_global_config(self, config: GlobalConfig) -> None:
        _write_file(self.locator.global_config_path(), config.model_dump(mode="json"))
        self._global_cache = config

    def job_path(self, job_name: str) -> Path:
        slug = _slugify(job_name)
        if not slug:
            raise ValueError(f"Job name {job_name!r} has no usable characters")
        for suffix in CONFIG_EXTENSIONS:
            candidate = self.locator.jobs_dir / f"{slug}{suffix}"
            if candidate.exists():
                return candidate
        return self.locator.jobs_dir / f"{slug}.yaml"

    def list_job_files(self) -> Iterator[Path]:
        for path in sorted(self.locator.jobs_dir.iterdir()):
            if path.is_file() and path.suffix in CONFIG_EXTENSIONS:
                yield path

    def list_jobs(self) -> list[JobConfig]:
        return [self.load_job(path) for path in self.list_job_files()]

    def load_job(self, identifier: str | Path) -> JobConfig:
        path = identifier if isinstance(identifier, Path) else self.job_path(identifier)
        if not path.exists():
            raise FileNotFoundError(f"Job configuration not found: {identifier}")
        return JobConfig.model_validate(_read_file(path))

    def save_job(self, config: JobConfig, overwrite: bool = True) -> Path:
        """Write ``config``; a different job whose name slugs the same is never replaced."""

        path = self.job_path(config.name)
        if path.exists():
            existing = self.load_job(path).name
            if existing != config.name:
                raise FileExistsError(f"Job `{existing}` already uses {path.name}")
            if not overwrite:
                raise FileExistsError(f"Job `{config.name}` already exists")
        _write_file(path, config.model_dump(mode="json", exclude_none=True))
        return path

    def delete_job(self, job_name: str) -> bool:
        path = self.job_path(job_name)
        if not path.exists():
            return False
        path.unlink()
        return True


__all__ = ["CONFIG_EXTENSIONS", "ConfigLocator", "ConfigRepository", "HOME_ENV_VAR", "resolve_home"]
