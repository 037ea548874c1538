"""Transformation passes, their registry and the pipeline that runs them."""

from otterir.transforms.context import (
    CancellationToken,
    IrContext,
    PassRecord,
    SchemaAnalysis,
    TransformContext,
)
from otterir.transforms.passes import default_registry, register_builtin_passes
from otterir.transforms.pipeline import TransformPipeline
from otterir.transforms.registry import (
    PassDescriptor,
    PassLevel,
    PassPlan,
    PassRegistry,
    RegisteredPass,
    TransformPass,
)

__all__ = [
    'CancellationToken',
    'IrContext',
    'PassDescriptor',
    'PassLevel',
    'PassPlan',
    'PassRecord',
    'PassRegistry',
    'RegisteredPass',
    'SchemaAnalysis',
    'TransformContext',
    'TransformPass',
    'TransformPipeline',
    'default_registry',
    'register_builtin_passes',
]
