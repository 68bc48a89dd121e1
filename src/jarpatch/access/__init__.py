"""Access transformation: visibility overrides applied to decompiled sources."""

from jarpatch.access.models import (
    AccessTransformationMap,
    TransformationEntry,
    Visibility,
    normalize_type_name,
)
from jarpatch.access.transformer import AccessTransformer

__all__ = [
    "AccessTransformationMap",
    "AccessTransformer",
    "TransformationEntry",
    "Visibility",
    "normalize_type_name",
]
