"""Built-in transformation passes."""

from otterir.transforms.passes.document import (
    apply_naming_convention,
    normalize_paths,
    normalize_schemas,
    validate_document,
)
from otterir.transforms.passes.ir import (
    analyze_dependencies,
    infer_types,
    record_circular_references,
)
from otterir.transforms.registry import PassDescriptor, PassLevel, PassRegistry

__all__ = ['BUILTIN_PASSES', 'register_builtin_passes', 'default_registry']

_DOCUMENT = frozenset({'document'})
_IR = frozenset({'ir'})

BUILTIN_PASSES = [
    (
        PassDescriptor(
            'validation',
            PassLevel.DOCUMENT,
            critical=False,
            writes=frozenset(),
            description='Check required document information',
        ),
        validate_document,
    ),
    (
        PassDescriptor(
            'path-normalization',
            PassLevel.DOCUMENT,
            dependencies=frozenset({'validation'}),
            writes=_DOCUMENT,
            description='Normalise path keys',
        ),
        normalize_paths,
    ),
    (
        PassDescriptor(
            'schema-normalization',
            PassLevel.DOCUMENT,
            dependencies=frozenset({'validation'}),
            writes=_DOCUMENT,
            description='Rewrite schema keywords into one canonical form',
        ),
        normalize_schemas,
    ),
    (
        PassDescriptor(
            'naming-convention',
            PassLevel.DOCUMENT,
            dependencies=frozenset({'schema-normalization'}),
            writes=_DOCUMENT,
            enabled_by_default=False,
            description='Rename component schemas to one naming convention',
        ),
        apply_naming_convention,
    ),
    (
        PassDescriptor(
            'type-inference',
            PassLevel.IR,
            writes=_IR,
            description='Record the kind of every component schema',
        ),
        infer_types,
    ),
    (
        PassDescriptor(
            'dependency-analysis',
            PassLevel.IR,
            dependencies=frozenset({'type-inference'}),
            writes=_IR,
            description='Record references between component schemas',
        ),
        analyze_dependencies,
    ),
    (
        PassDescriptor(
            'circular-reference-detection',
            PassLevel.IR,
            dependencies=frozenset({'dependency-analysis'}),
            writes=_IR,
            description='Record reference cycles between component schemas',
        ),
        record_circular_references,
    ),
]


def register_builtin_passes(registry: PassRegistry) -> PassRegistry:
    for descriptor, transform in BUILTIN_PASSES:
        registry.register(descriptor, transform)
    return registry


def default_registry() -> PassRegistry:
    """Return a fresh registry holding the built-in passes."""
    return register_builtin_passes(PassRegistry())
