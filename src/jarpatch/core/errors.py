"""jarpatch error types with typed error codes.

Error code ranges:
- 2xxx: Config
- 3xxx: Artifact resolution / cache
- 4xxx: Transport
- 5xxx: Format (mappings, class files, access maps)
- 6xxx: Version control
- 7xxx: Pipeline stages
- 9xxx: Internal
"""

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any


class ErrorCode(IntEnum):
    """Typed error codes for programmatic handling."""

    # Config (2xxx)
    CONFIG_PARSE_ERROR = 2001
    CONFIG_INVALID_VALUE = 2002
    CONFIG_MISSING_REQUIRED = 2003
    CONFIG_FILE_NOT_FOUND = 2004

    # Artifact resolution (3xxx)
    ARTIFACT_NOT_FOUND = 3001
    ARTIFACT_STORE_FAILED = 3002

    # Transport (4xxx)
    TRANSPORT_REQUEST_FAILED = 4001
    TRANSPORT_BAD_STATUS = 4002
    TRANSPORT_DIGEST_MISMATCH = 4003
    TRANSPORT_UNKNOWN_VERSION = 4004

    # Format (5xxx)
    MAPPING_FORMAT_ERROR = 5001
    CLASS_FORMAT_ERROR = 5002
    ACCESS_FORMAT_ERROR = 5003

    # Version control (6xxx)
    GIT_COMMAND_FAILED = 6001
    GIT_NOT_INSTALLED = 6002
    GIT_PATCH_CONFLICT = 6003
    GIT_DIRTY_WORKING_TREE = 6004
    GIT_REPOSITORY_ERROR = 6005

    # Pipeline (7xxx)
    STAGE_FAILED = 7001
    DECOMPILER_FAILED = 7002

    # Internal (9xxx)
    INTERNAL_ERROR = 9001


@dataclass(eq=False)
class JarPatchError(Exception):
    """Base error with structured context for logs and CLI output.

    Not frozen: the interpreter and contextlib assign ``__traceback__`` as the
    error unwinds through ``with`` blocks.
    """

    code: ErrorCode
    message: str
    retryable: bool = False
    details: dict[str, Any] = field(default_factory=dict)

    @property
    def error_name(self) -> str:
        """String identifier for logging (e.g., 'CONFIG_PARSE_ERROR')."""
        return self.code.name

    def to_dict(self) -> dict[str, Any]:
        """Serialize for structured log output."""
        return {
            "code": self.code.value,
            "error": self.error_name,
            "message": self.message,
            "retryable": self.retryable,
            "details": self.details,
        }

    def __str__(self) -> str:
        return f"[{self.code.value}] {self.error_name}: {self.message}"


class ConfigError(JarPatchError):
    """Configuration-related errors."""

    @classmethod
    def parse_error(cls, path: str, reason: str) -> "ConfigError":
        return cls(
            code=ErrorCode.CONFIG_PARSE_ERROR,
            message=f"Failed to parse config at {path}: {reason}",
            details={"path": path, "reason": reason},
        )

    @classmethod
    def invalid_value(cls, field: str, value: Any, reason: str) -> "ConfigError":
        return cls(
            code=ErrorCode.CONFIG_INVALID_VALUE,
            message=f"Invalid value for '{field}': {reason}",
            details={"field": field, "value": str(value), "reason": reason},
        )

    @classmethod
    def missing_required(cls, field: str) -> "ConfigError":
        return cls(
            code=ErrorCode.CONFIG_MISSING_REQUIRED,
            message=f"Missing required config field: {field}",
            details={"field": field},
        )

    @classmethod
    def file_not_found(cls, path: str) -> "ConfigError":
        return cls(
            code=ErrorCode.CONFIG_FILE_NOT_FOUND,
            message=f"Config file not found: {path}",
            details={"path": path},
        )


class ArtifactNotFoundError(JarPatchError):
    """A required artifact is absent from the cache.

    Distinct from transport and IO failures so callers can populate and retry.
    """

    @classmethod
    def for_coordinate(cls, coordinate: str) -> "ArtifactNotFoundError":
        return cls(
            code=ErrorCode.ARTIFACT_NOT_FOUND,
            message=f"Could not locate artifact {coordinate}",
            details={"coordinate": coordinate},
        )


class CacheError(JarPatchError):
    """Storing an artifact failed."""

    @classmethod
    def store_failed(cls, coordinate: str, reason: str) -> "CacheError":
        return cls(
            code=ErrorCode.ARTIFACT_STORE_FAILED,
            message=f"Could not install artifact {coordinate}: {reason}",
            details={"coordinate": coordinate, "reason": reason},
        )


class TransportError(JarPatchError):
    """Network fetch failures."""

    @classmethod
    def request_failed(cls, url: str, reason: str) -> "TransportError":
        return cls(
            code=ErrorCode.TRANSPORT_REQUEST_FAILED,
            message=f"Request to {url} failed: {reason}",
            retryable=True,
            details={"url": url, "reason": reason},
        )

    @classmethod
    def bad_status(cls, url: str, status: int, reason: str = "") -> "TransportError":
        return cls(
            code=ErrorCode.TRANSPORT_BAD_STATUS,
            message=f"Unexpected status code: {status} - {reason} ({url})",
            details={"url": url, "status": status, "reason": reason},
        )

    @classmethod
    def digest_mismatch(cls, url: str, expected: str, actual: str) -> "TransportError":
        return cls(
            code=ErrorCode.TRANSPORT_DIGEST_MISMATCH,
            message=f"SHA-1 mismatch for {url}: expected {expected}, got {actual}",
            details={"url": url, "expected": expected, "actual": actual},
        )

    @classmethod
    def unknown_version(cls, version: str) -> "TransportError":
        return cls(
            code=ErrorCode.TRANSPORT_UNKNOWN_VERSION,
            message=f"No such game version: {version}",
            details={"version": version},
        )


class MappingFormatError(JarPatchError):
    """Malformed mapping file. Never partially applied."""

    @classmethod
    def malformed(cls, source: str, line: int, reason: str) -> "MappingFormatError":
        return cls(
            code=ErrorCode.MAPPING_FORMAT_ERROR,
            message=f"Malformed mapping at {source}:{line}: {reason}",
            details={"source": source, "line": line, "reason": reason},
        )

    @classmethod
    def missing_entry(cls, archive: str, entry: str) -> "MappingFormatError":
        return cls(
            code=ErrorCode.MAPPING_FORMAT_ERROR,
            message=f"Mapping archive {archive} has no entry {entry}",
            details={"archive": archive, "entry": entry},
        )


class ClassFormatError(JarPatchError):
    """Malformed class file."""

    @classmethod
    def malformed(cls, reason: str, entry: str | None = None) -> "ClassFormatError":
        where = f" in {entry}" if entry else ""
        return cls(
            code=ErrorCode.CLASS_FORMAT_ERROR,
            message=f"Malformed class file{where}: {reason}",
            details={"entry": entry, "reason": reason},
        )


class AccessFormatError(JarPatchError):
    """Malformed access transformation map or unparseable source."""

    @classmethod
    def invalid_map(cls, path: str, reason: str) -> "AccessFormatError":
        return cls(
            code=ErrorCode.ACCESS_FORMAT_ERROR,
            message=f"Invalid access transformation map {path}: {reason}",
            details={"path": path, "reason": reason},
        )

    @classmethod
    def unparseable_source(cls, path: str) -> "AccessFormatError":
        return cls(
            code=ErrorCode.ACCESS_FORMAT_ERROR,
            message=f"Cannot parse source {path}",
            details={"path": path},
        )


class InternalError(JarPatchError):
    """Internal/unexpected errors."""

    @classmethod
    def unexpected(cls, reason: str, **details: Any) -> "InternalError":
        return cls(
            code=ErrorCode.INTERNAL_ERROR,
            message=f"Internal error: {reason}",
            details=details,
        )
