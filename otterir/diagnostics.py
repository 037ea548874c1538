"""Diagnostics collected during a generation run.

Every warning or error produced while resolving, transforming or mapping a
document is recorded as a :class:`Diagnostic` carrying a document pointer, so
users can find the offending schema without inspecting internals.
"""

import dataclasses
import logging
import threading
from collections.abc import Iterable, Iterator
from enum import Enum

logger = logging.getLogger(__name__)

__all__ = [
    'Severity',
    'DiagnosticKind',
    'Diagnostic',
    'DiagnosticSink',
]


class Severity(str, Enum):
    ERROR = 'error'
    WARNING = 'warning'


class DiagnosticKind(str, Enum):
    UNRESOLVABLE = 'Unresolvable'
    MAX_DEPTH_EXCEEDED = 'MaxDepthExceeded'
    CIRCULAR_REFERENCE = 'CircularReference'
    CIRCULAR_PASS_DEPENDENCY = 'CircularPassDependency'
    PASS_NOT_FOUND = 'PassNotFound'
    PASS_CONFIGURATION = 'PassConfiguration'
    PASS_FAILED = 'PassFailed'
    PASS_SKIPPED = 'PassSkipped'
    TIMEOUT = 'Timeout'
    CANCELLED = 'Cancelled'
    MERGE_CONFLICT = 'MergeConflict'
    UNSUPPORTED_CONSTRUCT = 'UnsupportedConstruct'
    VALIDATION = 'Validation'
    NORMALIZATION = 'Normalization'
    LOAD = 'Load'
    CONFIGURATION = 'Configuration'
    INTERNAL = 'Internal'


@dataclasses.dataclass(frozen=True)
class Diagnostic:
    """A single warning or error.

    Attributes:
        severity: Whether this is a warning or an error.
        kind: Machine readable category.
        message: Human readable description.
        location: Document pointer, e.g. '#/components/schemas/User/properties/profile'.
    """

    severity: Severity
    kind: DiagnosticKind
    message: str
    location: str = '#'

    def to_dict(self) -> dict[str, str]:
        return {
            'severity': self.severity.value,
            'kind': self.kind.value,
            'message': self.message,
            'location': self.location,
        }

    def __str__(self) -> str:
        return f'{self.severity.value}[{self.kind.value}] {self.location}: {self.message}'


class DiagnosticSink:
    """Append-only, ordered collection of diagnostics for one run.

    Entries are never removed or replaced; a later pass can only add to what
    earlier passes recorded. Appends are guarded by a lock because passes in
    one wave and top-level type mappings may run on worker threads.

    Example:
        >>> sink = DiagnosticSink()
        >>> sink.warning(DiagnosticKind.VALIDATION, 'No paths defined', '#/paths')
        >>> sink.has_errors
        False
    """

    def __init__(self):
        self._items: list[Diagnostic] = []
        self._lock = threading.Lock()

    def add(self, diagnostic: Diagnostic) -> Diagnostic:
        with self._lock:
            self._items.append(diagnostic)

        level = (
            logging.ERROR if diagnostic.severity is Severity.ERROR else logging.WARNING
        )
        logger.log(level, '%s', diagnostic)
        return diagnostic

    def warning(
        self, kind: DiagnosticKind, message: str, location: str = '#'
    ) -> Diagnostic:
        return self.add(Diagnostic(Severity.WARNING, kind, message, location))

    def error(
        self, kind: DiagnosticKind, message: str, location: str = '#'
    ) -> Diagnostic:
        return self.add(Diagnostic(Severity.ERROR, kind, message, location))

    def extend(self, diagnostics: Iterable[Diagnostic]) -> None:
        for diagnostic in diagnostics:
            self.add(diagnostic)

    @property
    def items(self) -> list[Diagnostic]:
        """A copy of all diagnostics in the order they were recorded."""
        with self._lock:
            return list(self._items)

    @property
    def errors(self) -> list[Diagnostic]:
        return [d for d in self.items if d.severity is Severity.ERROR]

    @property
    def warnings(self) -> list[Diagnostic]:
        return [d for d in self.items if d.severity is Severity.WARNING]

    @property
    def has_errors(self) -> bool:
        return bool(self.errors)

    def of_kind(self, kind: DiagnosticKind) -> list[Diagnostic]:
        return [d for d in self.items if d.kind is kind]

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[Diagnostic]:
        return iter(self.items)
