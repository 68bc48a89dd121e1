"""Configuration loading with pydantic-settings.

Supports loading configuration from multiple sources with precedence:
1. Direct kwargs (highest priority)
2. Environment variables (JARPATCH__SECTION__KEY)
3. Project config (jarpatch.yaml next to the build)
4. Global config (~/.config/jarpatch/config.yaml)
5. Built-in defaults (lowest priority)
"""

from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict

from jarpatch.config.models import (
    CacheConfig,
    DecompilerConfig,
    GitConfig,
    JarPatchConfig,
    LoggingConfig,
    NetworkConfig,
    ProjectConfig,
)
from jarpatch.core.errors import ConfigError

GLOBAL_CONFIG_PATH = Path("~/.config/jarpatch/config.yaml").expanduser()
PROJECT_CONFIG_NAME = "jarpatch.yaml"


def _load_yaml(path: Path) -> dict[str, Any]:
    if not path.exists():
        return {}
    try:
        with path.open() as f:
            return yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigError.parse_error(str(path), str(e)) from e


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def _resolve_relative_dirs(project: dict[str, Any], base: Path) -> dict[str, Any]:
    """Anchor relative directory settings from a project file at its directory."""
    resolved = dict(project)
    for key in ("source_dir", "patch_dir", "resource_dir", "access_transformations"):
        value = resolved.get(key)
        if value and not Path(value).expanduser().is_absolute():
            resolved[key] = str(base / value)
    return resolved


class _YamlSource(PydanticBaseSettingsSource):
    """Settings source that reads from pre-loaded YAML config."""

    def __init__(self, settings_cls: type[BaseSettings], yaml_config: dict[str, Any]) -> None:
        super().__init__(settings_cls)
        self._yaml_config = yaml_config

    def get_field_value(
        self,
        field: Any,  # noqa: ARG002
        field_name: str,
    ) -> tuple[Any, str, bool]:
        val = self._yaml_config.get(field_name)
        return val, field_name, val is not None

    def __call__(self) -> dict[str, Any]:
        return self._yaml_config


def _make_settings_class(yaml_config: dict[str, Any]) -> type[BaseSettings]:
    """Create a Settings class with instance-based YAML source."""

    class JarPatchSettings(BaseSettings):
        """Root config. Env vars: JARPATCH__LOGGING__LEVEL, JARPATCH__PROJECT__MODULE, etc."""

        model_config = SettingsConfigDict(
            env_prefix="JARPATCH__",
            env_nested_delimiter="__",
            case_sensitive=False,
        )

        logging: LoggingConfig = LoggingConfig()
        project: ProjectConfig = ProjectConfig()
        cache: CacheConfig = CacheConfig()
        network: NetworkConfig = NetworkConfig()
        git: GitConfig = GitConfig()
        decompiler: DecompilerConfig = DecompilerConfig()

        @classmethod
        def settings_customise_sources(
            cls,
            settings_cls: type[BaseSettings],
            init_settings: PydanticBaseSettingsSource,
            env_settings: PydanticBaseSettingsSource,
            dotenv_settings: PydanticBaseSettingsSource,  # noqa: ARG003
            file_secret_settings: PydanticBaseSettingsSource,  # noqa: ARG003
        ) -> tuple[PydanticBaseSettingsSource, ...]:
            # Precedence (first wins): init kwargs > env vars > yaml files
            return (init_settings, env_settings, _YamlSource(settings_cls, yaml_config))

    return JarPatchSettings


def load_config(project_root: Path | None = None, **kwargs: Any) -> JarPatchConfig:
    """Load config: defaults < global yaml < project yaml < env vars < kwargs.

    Args:
        project_root: Directory holding jarpatch.yaml. Defaults to cwd.
        **kwargs: Override values (highest precedence), keyed by section.

    Returns:
        Fully resolved configuration object.

    Raises:
        ConfigError: On invalid YAML syntax or validation errors.
    """
    project_root = project_root or Path.cwd()

    yaml_config = _load_yaml(GLOBAL_CONFIG_PATH)
    project_config = _load_yaml(project_root / PROJECT_CONFIG_NAME)
    if isinstance(project_config.get("project"), dict):
        project_config["project"] = _resolve_relative_dirs(project_config["project"], project_root)
    yaml_config = _deep_merge(yaml_config, project_config)

    settings_cls = _make_settings_class(yaml_config)
    try:
        settings = settings_cls(**kwargs)
    except ValidationError as e:
        err = e.errors()[0]
        field = ".".join(str(loc) for loc in err["loc"])
        raise ConfigError.invalid_value(field, err.get("input"), err["msg"]) from e
    return JarPatchConfig.model_validate(settings.model_dump())


def require_directories(project: ProjectConfig, *names: str) -> dict[str, Path]:
    """Return the named directory settings, failing fast when any is unset."""
    resolved: dict[str, Path] = {}
    for name in names:
        value = getattr(project, name)
        if value is None:
            raise ConfigError.missing_required(f"project.{name}")
        resolved[name] = Path(value)
    return resolved
