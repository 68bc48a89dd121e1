"""External decompiler and formatter adapters."""

from jarpatch.decompiler.adapters import (
    FernflowerDecompiler,
    GoogleJavaFormatter,
    formatter_from_config,
)
from jarpatch.decompiler.base import Decompiler, DecompilerError, Formatter, IdentityFormatter

__all__ = [
    "Decompiler",
    "DecompilerError",
    "FernflowerDecompiler",
    "Formatter",
    "GoogleJavaFormatter",
    "IdentityFormatter",
    "formatter_from_config",
]
