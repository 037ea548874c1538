"""Orchestration of one generation run.

This module provides the Generator class, which takes an OpenAPI document
through reference resolution, cycle detection, the document-level and
IR-level passes and finally type mapping, and returns a
:class:`GenerationResult`.
"""

import copy
import dataclasses
import logging
from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel

from otterir.config import GeneratorConfig
from otterir.diagnostics import Diagnostic, DiagnosticSink, Severity
from otterir.exceptions import OtterIRError, attach_diagnostics
from otterir.graph.cycles import CycleDetector
from otterir.graph.nodes import SchemaGraph
from otterir.graph.resolver import ReferenceResolver
from otterir.model.mapper import TypeMapper
from otterir.model.types import TypeExpression
from otterir.transforms.context import (
    CancellationToken,
    IrContext,
    PassRecord,
    SchemaAnalysis,
    TransformContext,
)
from otterir.transforms.passes import default_registry
from otterir.transforms.pipeline import TransformPipeline
from otterir.transforms.registry import PassLevel, PassRegistry

logger = logging.getLogger(__name__)

__all__ = ['GenerationResult', 'Generator', 'generate']


@dataclasses.dataclass
class GenerationResult:
    """The output of a successful run.

    Attributes:
        types: Every schema id in the graph mapped to its type expression.
        diagnostics: All warnings recorded during the run, in order.
        document: The document as left by the document-level passes.
        graph: The resolved schema graph the types were mapped from.
        analysis: Results of the IR-level analysis passes.
        executed: Record of every pass considered.
    """

    types: dict[str, TypeExpression]
    diagnostics: list[Diagnostic]
    document: dict[str, Any]
    graph: SchemaGraph
    analysis: SchemaAnalysis
    executed: list[PassRecord] = dataclasses.field(default_factory=list)

    @property
    def named_types(self) -> dict[str, TypeExpression]:
        """Type expressions of component schemas only, in declaration order."""
        return {node.id: self.types[node.id] for node in self.graph.components}

    @property
    def warnings(self) -> list[Diagnostic]:
        return [d for d in self.diagnostics if d.severity is Severity.WARNING]

    @property
    def errors(self) -> list[Diagnostic]:
        return [d for d in self.diagnostics if d.severity is Severity.ERROR]

    def to_dict(self) -> dict[str, Any]:
        return {
            'types': {k: v.to_dict() for k, v in self.named_types.items()},
            'diagnostics': [d.to_dict() for d in self.diagnostics],
            'analysis': self.analysis.to_dict(),
        }


class Generator:
    """Lowers OpenAPI documents into type expressions.

    A generator may be reused; every call to :meth:`generate` creates its own
    context, graph and memo table.

    Example:
        >>> generator = Generator(GeneratorConfig(strict_mode=True))
        >>> result = generator.generate(document)
        >>> result.named_types['Pet']
        ObjectType(fields=(...), additional=None)
    """

    def __init__(
        self,
        config: GeneratorConfig | None = None,
        registry: PassRegistry | None = None,
    ):
        self.config = config or GeneratorConfig()
        self.registry = registry if registry is not None else default_registry()

    def generate(
        self,
        document: Mapping[str, Any] | BaseModel,
        token: CancellationToken | None = None,
    ) -> GenerationResult:
        """Run the whole pipeline over ``document``.

        Args:
            document: A raw OpenAPI document or a pydantic model of one
                (e.g. ``openapi_pydantic.OpenAPI``). It is never mutated.
            token: Optional cancellation token; by default one is created
                from ``config.deadline``.

        Returns:
            The generation result.

        Raises:
            OtterIRError: On any fatal error. ``error.diagnostics`` holds
                everything recorded up to and including the failure.
        """
        diagnostics = DiagnosticSink()
        try:
            return self._generate(document, diagnostics, token)
        except OtterIRError as e:
            diagnostics.add(e.to_diagnostic())
            attach_diagnostics(e, diagnostics.items)
            raise

    def _generate(
        self,
        document: Mapping[str, Any] | BaseModel,
        diagnostics: DiagnosticSink,
        token: CancellationToken | None,
    ) -> GenerationResult:
        source = _normalize_input(document)
        pipeline = TransformPipeline(self.registry, self.config)
        context = TransformContext(source, self.config, diagnostics, token)

        graph = self._resolve(context.document, diagnostics)
        pristine = copy.deepcopy(context.document)

        pipeline.run_level(context, PassLevel.DOCUMENT)

        if context.document != pristine:
            logger.debug('Document changed by document passes, re-resolving')
            graph = self._resolve(context.document, diagnostics)
        context.ir = IrContext(graph)

        pipeline.run_level(context, PassLevel.IR)

        context.token.check('type-mapping')
        ir = context.require_ir()
        mapper = TypeMapper(
            ir.graph,
            diagnostics=diagnostics,
            nullable_strategy=self.config.nullable_strategy,
            strict_mode=self.config.strict_mode,
            memo=context.types,
        )
        types = mapper.map_all(max_workers=self.config.max_workers)

        logger.info(
            'Generated %d types (%d named) with %d diagnostics',
            len(types),
            len(ir.graph.components),
            len(diagnostics),
        )
        return GenerationResult(
            types=types,
            diagnostics=diagnostics.items,
            document=context.document,
            graph=ir.graph,
            analysis=ir.analysis,
            executed=list(context.executed),
        )

    def _resolve(
        self, document: Mapping[str, Any], diagnostics: DiagnosticSink
    ) -> SchemaGraph:
        resolver = ReferenceResolver(document, self.config.max_reference_depth)
        graph = resolver.resolve()
        CycleDetector(diagnostics).detect(graph)
        return graph


def _normalize_input(document: Mapping[str, Any] | BaseModel) -> dict[str, Any]:
    if isinstance(document, BaseModel):
        return document.model_dump(by_alias=True, exclude_none=True, mode='json')
    if isinstance(document, Mapping):
        return copy.deepcopy(dict(document))
    raise TypeError(
        f'Expected an OpenAPI document mapping or model, got {type(document).__name__}'
    )


def generate(
    document: Mapping[str, Any] | BaseModel, config: GeneratorConfig | None = None
) -> GenerationResult:
    """Shortcut for ``Generator(config).generate(document)``."""
    return Generator(config).generate(document)
