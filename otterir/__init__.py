"""OtterIR - Lower OpenAPI documents into a language-agnostic typed model.

OtterIR resolves the schema reference graph of an OpenAPI 3.x document,
detects reference cycles, runs an ordered set of document-level and IR-level
transformation passes and maps every schema to a recursive, cycle-safe type
expression that per-language emitters turn into source code.

Quick Start:
    >>> from otterir import Generator, GeneratorConfig, SchemaLoader
    >>>
    >>> document = SchemaLoader().load('./openapi.yaml')
    >>> result = Generator(GeneratorConfig(strict_mode=False)).generate(document)
    >>> result.named_types['Pet']

CLI Usage:
    $ otterir analyze ./openapi.yaml
    $ otterir analyze ./openapi.yaml --strict --json
"""

from importlib.metadata import PackageNotFoundError, version as _version

from otterir.config import GeneratorConfig, PassSettings, get_config
from otterir.diagnostics import Diagnostic, DiagnosticKind, DiagnosticSink, Severity
from otterir.exceptions import (
    CircularPassDependencyError,
    ConfigurationError,
    DuplicatePassError,
    InvalidPassConfigurationError,
    MaxDepthExceededError,
    MergeConflictError,
    OtterIRError,
    PassConfigurationError,
    PassExecutionError,
    PassFailedError,
    PassNotFoundError,
    PassTimeoutError,
    PipelineCancelledError,
    SchemaError,
    SchemaLoadError,
    SchemaReferenceError,
    SchemaValidationError,
    TypeMappingError,
    UnsupportedConstructError,
)
from otterir.generator import GenerationResult, Generator, generate
from otterir.graph import CycleDetector, ReferenceResolver, SchemaGraph
from otterir.loader import SchemaLoader
from otterir.model import NullableStrategy, TypeExpression, TypeMapper
from otterir.transforms import (
    CancellationToken,
    PassDescriptor,
    PassLevel,
    PassRegistry,
    TransformContext,
    TransformPipeline,
    default_registry,
)

__all__ = [
    # Main classes
    'Generator',
    'GenerationResult',
    'generate',
    'SchemaLoader',
    'ReferenceResolver',
    'CycleDetector',
    'SchemaGraph',
    'TypeMapper',
    'TypeExpression',
    'NullableStrategy',
    # Passes
    'PassDescriptor',
    'PassLevel',
    'PassRegistry',
    'TransformContext',
    'TransformPipeline',
    'CancellationToken',
    'default_registry',
    # Configuration
    'GeneratorConfig',
    'PassSettings',
    'get_config',
    # Diagnostics
    'Diagnostic',
    'DiagnosticKind',
    'DiagnosticSink',
    'Severity',
    # Exceptions
    'OtterIRError',
    'SchemaError',
    'SchemaLoadError',
    'SchemaValidationError',
    'SchemaReferenceError',
    'MaxDepthExceededError',
    'PassConfigurationError',
    'PassNotFoundError',
    'CircularPassDependencyError',
    'DuplicatePassError',
    'InvalidPassConfigurationError',
    'PassExecutionError',
    'PassFailedError',
    'PassTimeoutError',
    'PipelineCancelledError',
    'TypeMappingError',
    'MergeConflictError',
    'UnsupportedConstructError',
    'ConfigurationError',
]

try:
    __version__ = _version('otterir')
except PackageNotFoundError:
    __version__ = 'unknown'
