"""Custom exceptions for OtterIR.

This module defines the hierarchy of exceptions raised while lowering an
OpenAPI document into the typed model. Every exception carries a diagnostic
``kind`` and, where one exists, the document pointer of the offending
location, so a fatal error can be reported the same way as a warning.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from otterir.diagnostics import Diagnostic, DiagnosticKind, Severity

if TYPE_CHECKING:
    from otterir.model.types import TypeExpression


class OtterIRError(Exception):
    """Base exception for all OtterIR errors.

    All exceptions raised by OtterIR inherit from this class, making it easy
    to catch all OtterIR-related errors with a single except clause.

    Attributes:
        message: Human readable description of the error.
        location: Document pointer of the offending location, if known.
        diagnostics: Diagnostics accumulated by the run up to the failure.
            Populated by the generator before the error is re-raised.

    Example:
        try:
            generator.generate(document)
        except OtterIRError as e:
            for diagnostic in e.diagnostics:
                print(diagnostic)
    """

    kind: DiagnosticKind = DiagnosticKind.INTERNAL

    def __init__(self, message: str, *args, location: str | None = None, **kwargs):
        self.message = message
        self.location = location
        self.diagnostics: list[Diagnostic] = []
        super().__init__(message, *args, **kwargs)

    def to_diagnostic(self) -> Diagnostic:
        """Convert this error into an ``Error`` diagnostic."""
        return Diagnostic(
            severity=Severity.ERROR,
            kind=self.kind,
            message=self.message,
            location=self.location or '#',
        )


class SchemaError(OtterIRError):
    """Base exception for schema-related errors."""

    pass


class SchemaLoadError(SchemaError):
    """Failed to load an OpenAPI document from a source.

    Attributes:
        source: The source path or URL that failed to load.
        cause: The underlying exception that caused the failure.
    """

    kind = DiagnosticKind.LOAD

    def __init__(self, source: str, cause: Exception | None = None):
        self.source = source
        self.cause = cause
        message = f"Failed to load schema from '{source}'"
        if cause:
            message += f': {cause}'
        super().__init__(message)


class SchemaValidationError(SchemaError):
    """Document failed OpenAPI structural validation.

    Attributes:
        source: The source path or URL of the invalid document.
        errors: List of validation error messages.
    """

    kind = DiagnosticKind.VALIDATION

    def __init__(self, source: str, errors: list[str] | None = None):
        self.source = source
        self.errors = errors or []
        message = f"Schema validation failed for '{source}'"
        if errors:
            message += f': {"; ".join(errors)}'
        super().__init__(message)


class SchemaReferenceError(SchemaError):
    """A ``$ref`` could not be resolved within the document.

    Raised for dangling local references and for any reference that points
    outside the document.

    Attributes:
        reference: The ``$ref`` string that could not be resolved.
        reason: Explanation of why the reference couldn't be resolved.
    """

    kind = DiagnosticKind.UNRESOLVABLE

    def __init__(
        self,
        reference: str,
        reason: str | None = None,
        location: str | None = None,
    ):
        self.reference = reference
        self.reason = reason
        message = f"Failed to resolve reference '{reference}'"
        if reason:
            message += f': {reason}'
        super().__init__(message, location=location)


class MaxDepthExceededError(SchemaError):
    """Reference chasing went deeper than ``max_reference_depth``.

    Attributes:
        chain: The pointers followed, outermost first.
        limit: The configured maximum depth.
    """

    kind = DiagnosticKind.MAX_DEPTH_EXCEEDED

    def __init__(self, chain: list[str], limit: int, location: str | None = None):
        self.chain = list(chain)
        self.limit = limit
        message = (
            f'Maximum reference depth of {limit} exceeded: {" -> ".join(self.chain)}'
        )
        super().__init__(message, location=location)


class PassConfigurationError(OtterIRError):
    """Base exception for pass registration and ordering errors.

    These are detected when the pipeline is built, before any pass runs.
    """

    kind = DiagnosticKind.PASS_CONFIGURATION


class PassNotFoundError(PassConfigurationError):
    """A pass dependency names a pass that was never registered.

    Attributes:
        pass_name: The missing pass.
        required_by: The pass that declared the dependency.
    """

    kind = DiagnosticKind.PASS_NOT_FOUND

    def __init__(self, pass_name: str, required_by: str | None = None):
        self.pass_name = pass_name
        self.required_by = required_by
        message = f"Pass '{pass_name}' not found"
        if required_by:
            message += f" (required by '{required_by}')"
        super().__init__(message)


class CircularPassDependencyError(PassConfigurationError):
    """The pass dependency graph of one level contains a cycle.

    Attributes:
        cycle: The minimal cycle as a list of pass names, where each pass
            depends on the next and the last depends on the first.
    """

    kind = DiagnosticKind.CIRCULAR_PASS_DEPENDENCY

    def __init__(self, cycle: list[str]):
        self.cycle = list(cycle)
        path = ' → '.join(self.cycle + self.cycle[:1])
        super().__init__(f'Circular pass dependency detected: {path}')

    @property
    def names(self) -> str:
        """Comma separated, sorted pass names taking part in the cycle."""
        return ','.join(sorted(self.cycle))


class DuplicatePassError(PassConfigurationError):
    """A pass with the same name is already registered at that level."""

    def __init__(self, pass_name: str, level: str):
        self.pass_name = pass_name
        self.level = level
        super().__init__(f"Pass '{pass_name}' is already registered at level '{level}'")


class InvalidPassConfigurationError(PassConfigurationError):
    """The pass set is inconsistent in a way other than a missing pass or cycle."""

    pass


class PassExecutionError(OtterIRError):
    """Base exception for failures while passes are executing."""

    pass


class PassFailedError(PassExecutionError):
    """A pass raised while transforming the context.

    Attributes:
        pass_name: Name of the pass that failed.
        cause: The exception raised by the pass.
        critical: Whether the pass was critical (and the run aborted).
    """

    kind = DiagnosticKind.PASS_FAILED

    def __init__(self, pass_name: str, cause: Exception, critical: bool = True):
        self.pass_name = pass_name
        self.cause = cause
        self.critical = critical
        location = cause.location if isinstance(cause, OtterIRError) else None
        super().__init__(f"Pass '{pass_name}' failed: {cause}", location=location)


class PassTimeoutError(PassExecutionError):
    """A pass overran its time budget or the run deadline passed.

    Attributes:
        pass_name: The pass that overran, or the pass that was about to run
            when the deadline was found to have passed.
        elapsed: Seconds elapsed (for the pass, or for the run).
    """

    kind = DiagnosticKind.TIMEOUT

    def __init__(self, pass_name: str, elapsed: float):
        self.pass_name = pass_name
        self.elapsed = elapsed
        super().__init__(f"Pass '{pass_name}' timed out after {elapsed:.3f}s")


class PipelineCancelledError(PassExecutionError):
    """The run was cancelled through its cancellation token."""

    kind = DiagnosticKind.CANCELLED

    def __init__(self, pass_name: str | None = None):
        self.pass_name = pass_name
        message = 'Pipeline cancelled'
        if pass_name:
            message += f" before pass '{pass_name}'"
        super().__init__(message)


class TypeMappingError(OtterIRError):
    """Base exception for errors raised while mapping schemas to types."""

    pass


class MergeConflictError(TypeMappingError):
    """Two ``allOf`` members declare the same field with different types.

    Attributes:
        field: The conflicting field name.
        type_a: Type of the field in the first declaring member.
        type_b: Type of the field in the conflicting member.
        schema_id: Id of the ``allOf`` schema being merged.
    """

    kind = DiagnosticKind.MERGE_CONFLICT

    def __init__(
        self,
        field: str,
        type_a: TypeExpression,
        type_b: TypeExpression,
        schema_id: str | None = None,
        location: str | None = None,
    ):
        from otterir.model.types import describe

        self.field = field
        self.type_a = type_a
        self.type_b = type_b
        self.schema_id = schema_id
        message = (
            f"Conflicting types for field '{field}': "
            f'{describe(type_a)} vs {describe(type_b)}'
        )
        if schema_id:
            message += f" (in allOf of '{schema_id}')"
        super().__init__(message, location=location)


class UnsupportedConstructError(TypeMappingError):
    """A schema uses a construct with no defined mapping.

    Attributes:
        schema_id: Id of the offending schema.
        reason: Description of the unsupported construct.
    """

    kind = DiagnosticKind.UNSUPPORTED_CONSTRUCT

    def __init__(self, schema_id: str, reason: str, location: str | None = None):
        self.schema_id = schema_id
        self.reason = reason
        super().__init__(
            f"Unsupported construct in schema '{schema_id}': {reason}",
            location=location,
        )


class ConfigurationError(OtterIRError):
    """Error in configuration.

    Attributes:
        config_path: The path to the configuration file, if applicable.
        field: The specific configuration field that is invalid.
    """

    kind = DiagnosticKind.CONFIGURATION

    def __init__(
        self, message: str, config_path: str | None = None, field: str | None = None
    ):
        self.config_path = config_path
        self.field = field
        full_message = message
        if config_path:
            full_message = f"{message} in '{config_path}'"
        if field:
            full_message += f' (field: {field})'
        super().__init__(full_message)


def attach_diagnostics(
    error: OtterIRError, diagnostics: list[Diagnostic]
) -> OtterIRError:
    """Attach the diagnostics of a run to an error about to be re-raised."""
    error.diagnostics = list(diagnostics)
    return error
