"""Pydantic configuration models with env var support.

Configuration Hierarchy (highest to lowest precedence):
1. Direct kwargs to load_config()
2. Environment variables (JARPATCH__SECTION__KEY)
3. Project YAML (jarpatch.yaml)
4. Global YAML (~/.config/jarpatch/config.yaml)
5. Built-in defaults (this file)

Examples:
    JARPATCH__LOGGING__LEVEL=DEBUG
    JARPATCH__PROJECT__MODULE=client
    JARPATCH__PROJECT__GAME_VERSION=1.9.4
    JARPATCH__NETWORK__TIMEOUT_SEC=120
"""

from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, field_validator

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]

LIVE_MAPPING_VERSION = "live"
MODULES = ("client", "server")


class LogOutputConfig(BaseModel):
    """Single logging output configuration."""

    format: Literal["json", "console"] = "console"
    destination: str = "stderr"  # stderr, stdout, or absolute file path
    level: LogLevel | None = None  # Inherits from parent if None

    @field_validator("destination")
    @classmethod
    def validate_destination(cls, v: str) -> str:
        if v in ("stderr", "stdout"):
            return v
        path = Path(v).expanduser()
        if not path.is_absolute():
            raise ValueError(f"File destination must be absolute path: {v}")
        return str(path)


class LoggingConfig(BaseModel):
    """Logging configuration.

    Env vars:
        JARPATCH__LOGGING__LEVEL: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """

    level: LogLevel = Field(default="INFO", description="Root log level.")
    outputs: list[LogOutputConfig] = Field(default_factory=lambda: [LogOutputConfig()])


class ProjectConfig(BaseModel):
    """What to build and where the working directories live.

    Env vars:
        JARPATCH__PROJECT__MODULE: "client" or "server"
        JARPATCH__PROJECT__GAME_VERSION: Game version to fetch
        JARPATCH__PROJECT__MAPPING_VERSION: "<channel>-<date>" or "live"
        JARPATCH__PROJECT__FORCE: Override the dirty working tree safeguard
    """

    module: str = Field(default="server", description="Game module: client or server.")
    game_version: str = Field(default="1.9.4")
    mapping_version: str = Field(
        default="snapshot-20160601",
        description="MCP mapping version as <channel>-<date>, or 'live'.",
    )
    srg_version: str | None = Field(
        default=None,
        description="SRG mapping version. Defaults to the game version.",
    )
    source_dir: Path | None = Field(
        default=None, description="Working tree for the decompiled sources."
    )
    patch_dir: Path | None = Field(default=None, description="Directory holding *.patch files.")
    resource_dir: Path | None = Field(
        default=None, description="Directory receiving extracted resources."
    )
    access_transformations: Path | None = Field(
        default=None, description="Optional access transformation map (JSON or YAML)."
    )
    excluded_resources: list[str] = Field(default_factory=list)
    force: bool = Field(
        default=False,
        description="Skip the dirty working tree safeguard. RISK: may lose uncommitted changes.",
    )

    @field_validator("module")
    @classmethod
    def validate_module(cls, v: str) -> str:
        lowered = v.lower()
        if lowered not in MODULES:
            raise ValueError(f'Invalid module name "{v}"')
        return lowered

    @field_validator("mapping_version")
    @classmethod
    def validate_mapping_version(cls, v: str) -> str:
        if v != LIVE_MAPPING_VERSION and "-" not in v:
            raise ValueError(f"Mapping version must be <channel>-<date> or 'live', got {v!r}")
        return v

    @property
    def is_live_mappings(self) -> bool:
        return self.mapping_version == LIVE_MAPPING_VERSION

    @property
    def effective_srg_version(self) -> str:
        return self.srg_version or self.game_version


class CacheConfig(BaseModel):
    """Artifact cache configuration.

    Env vars:
        JARPATCH__CACHE__ROOT: Local artifact repository root
        JARPATCH__CACHE__SNAPSHOT_TTL_SEC: Age after which snapshot artifacts are refetched
    """

    root: Path = Field(
        default_factory=lambda: Path("~/.cache/jarpatch/repository").expanduser(),
        description="Maven-layout artifact repository used as the stage cache.",
    )
    snapshot_ttl_sec: float = Field(
        default=86400.0,
        description="Snapshot artifacts older than this are treated as missing.",
    )

    @field_validator("root")
    @classmethod
    def expand_root(cls, v: Path) -> Path:
        return Path(v).expanduser()


class NetworkConfig(BaseModel):
    """Remote endpoints and transport settings."""

    version_manifest_url: str = "https://launchermeta.mojang.com/mc/game/version_manifest.json"
    srg_url: str = (
        "https://files.minecraftforge.net/maven/de/oceanlabs/mcp/mcp"
        "/{version}/mcp-{version}-csrg.zip"
    )
    mcp_url: str = (
        "https://export.mcpbot.bspk.rs/mcp_{channel}/{date}-{game_version}/"
        "mcp_{channel}-{date}-{game_version}.zip"
    )
    mcp_live_url: str = "https://export.mcpbot.bspk.rs/{name}.csv"
    timeout_sec: float | None = Field(
        default=60.0,
        description="Per-request timeout. None disables the timeout.",
    )
    verify_digests: bool = Field(
        default=True, description="Check SHA-1 digests published in version metadata."
    )


class GitConfig(BaseModel):
    """Patch workflow configuration."""

    executable: str = "git"
    baseline_branch: str = "upstream"
    author_name: str = "Basin"
    author_email: str = "contact@basinmc.org"
    baseline_message: str = "Added decompiled sources."
    timeout_sec: float | None = Field(
        default=600.0, description="Per-command timeout. None disables the timeout."
    )


class DecompilerConfig(BaseModel):
    """External decompiler and formatter adapters."""

    java: str = "java"
    fernflower_jar: Path | None = Field(default=None, description="Path to a Fernflower jar.")
    formatter_jar: Path | None = Field(
        default=None,
        description="Path to a google-java-format jar. Sources are left unformatted when unset.",
    )
    options: dict[str, int] = Field(
        default_factory=lambda: {"din": 1, "rbr": 0, "rsy": 1, "dgs": 1, "asc": 1},
        description="Fernflower preferences passed as -<key>=<value>.",
    )
    timeout_sec: float | None = None
    included_files: list[str] = Field(
        default_factory=lambda: ["log4j2.xml", "pack.png", "yggdrasil_session_pubkey.der"],
    )
    included_prefixes: list[str] = Field(default_factory=lambda: ["assets", "net"])


class JarPatchConfig(BaseModel):
    """Root configuration model."""

    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    project: ProjectConfig = Field(default_factory=ProjectConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)
    network: NetworkConfig = Field(default_factory=NetworkConfig)
    git: GitConfig = Field(default_factory=GitConfig)
    decompiler: DecompilerConfig = Field(default_factory=DecompilerConfig)
