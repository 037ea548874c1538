"""Per-run state threaded through the transformation pipeline."""

import copy
import dataclasses
import time
from typing import Any

from otterir.config import GeneratorConfig
from otterir.diagnostics import DiagnosticSink
from otterir.exceptions import PassTimeoutError, PipelineCancelledError
from otterir.graph.nodes import SchemaGraph, SchemaKind
from otterir.model.types import TypeExpression

__all__ = [
    'RESOURCES',
    'CancellationToken',
    'SchemaAnalysis',
    'IrContext',
    'PassRecord',
    'TransformContext',
]

RESOURCES = ('document', 'ir', 'types', 'artifacts')


class CancellationToken:
    """Cooperative cancellation and deadline, polled between passes.

    Example:
        >>> token = CancellationToken(deadline=30.0)
        >>> token.check('validation')  # raises once cancelled or expired
    """

    def __init__(self, deadline: float | None = None):
        """
        Args:
            deadline: Seconds from now after which the run is out of time.
        """
        self._started = time.monotonic()
        self._deadline = self._started + deadline if deadline is not None else None
        self._cancelled = False

    def cancel(self) -> None:
        self._cancelled = True

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def elapsed(self) -> float:
        return time.monotonic() - self._started

    @property
    def expired(self) -> bool:
        return self._deadline is not None and time.monotonic() >= self._deadline

    def check(self, next_pass: str | None = None) -> None:
        """Raise if the run was cancelled or its deadline has passed.

        Raises:
            PipelineCancelledError: After :meth:`cancel`.
            PassTimeoutError: Once the deadline has passed, naming the pass
                that was about to run.
        """
        if self._cancelled:
            raise PipelineCancelledError(next_pass)
        if self.expired:
            raise PassTimeoutError(next_pass or '<pipeline>', self.elapsed)


@dataclasses.dataclass
class SchemaAnalysis:
    """Auxiliary results computed by IR-level passes.

    Attributes:
        schema_types: Component id to its structural kind.
        dependencies: Component id to the sorted component ids it refers to.
        circular_refs: Each detected cycle as a list of component ids.
    """

    schema_types: dict[str, SchemaKind] = dataclasses.field(default_factory=dict)
    dependencies: dict[str, list[str]] = dataclasses.field(default_factory=dict)
    circular_refs: list[list[str]] = dataclasses.field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            'schema_types': {k: v.value for k, v in self.schema_types.items()},
            'dependencies': {k: list(v) for k, v in self.dependencies.items()},
            'circular_refs': [list(c) for c in self.circular_refs],
        }


@dataclasses.dataclass
class IrContext:
    graph: SchemaGraph
    analysis: SchemaAnalysis = dataclasses.field(default_factory=SchemaAnalysis)


@dataclasses.dataclass
class PassRecord:
    name: str
    level: str
    status: str
    elapsed: float = 0.0
    error: str | None = None


class TransformContext:
    """The mutable state of one pipeline run.

    Owns the working document, the IR, the mapper memo table (``types``),
    free-form ``artifacts`` for passes, and the diagnostics sink. A context
    is created per run and never shared.

    Attributes:
        document: The working OpenAPI document.
        ir: The IR context, set once document passes have completed.
        types: Schema id to mapped type expression (the mapper memo table).
        artifacts: Free-form per-run storage for passes.
        diagnostics: The run's diagnostics sink.
        config: The run configuration.
        token: Cancellation/deadline token for the run.
        executed: Record of every pass considered, in execution order.
    """

    def __init__(
        self,
        document: dict[str, Any],
        config: GeneratorConfig | None = None,
        diagnostics: DiagnosticSink | None = None,
        token: CancellationToken | None = None,
    ):
        self.document = document
        self.config = config or GeneratorConfig()
        self.diagnostics = diagnostics if diagnostics is not None else DiagnosticSink()
        self.token = token or CancellationToken(self.config.deadline)
        self.ir: IrContext | None = None
        self.types: dict[str, TypeExpression] = {}
        self.artifacts: dict[str, Any] = {}
        self.executed: list[PassRecord] = []

    def snapshot(self, resources: frozenset[str] | None = None) -> dict[str, Any]:
        """Deep-copy the given resources (all of them when None).

        Diagnostics are never part of a snapshot.
        """
        names = RESOURCES if resources is None else sorted(resources)
        unknown = set(names) - set(RESOURCES)
        if unknown:
            raise ValueError(f'Unknown context resources: {", ".join(sorted(unknown))}')
        return {name: copy.deepcopy(getattr(self, name)) for name in names}

    def restore(self, snapshot: dict[str, Any]) -> None:
        for name, value in snapshot.items():
            setattr(self, name, value)

    def require_ir(self) -> IrContext:
        if self.ir is None:
            raise RuntimeError('IR context is not available before IR-level passes')
        return self.ir
