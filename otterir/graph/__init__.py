"""Schema graph construction: reference resolution and cycle detection."""

from otterir.graph.cycles import CycleDetector
from otterir.graph.nodes import (
    CycleInfo,
    PrimitiveKind,
    ReferenceEdge,
    SchemaGraph,
    SchemaKind,
    SchemaNode,
)
from otterir.graph.resolver import DEFAULT_MAX_REFERENCE_DEPTH, ReferenceResolver

__all__ = [
    'CycleDetector',
    'CycleInfo',
    'DEFAULT_MAX_REFERENCE_DEPTH',
    'PrimitiveKind',
    'ReferenceEdge',
    'ReferenceResolver',
    'SchemaGraph',
    'SchemaKind',
    'SchemaNode',
]
