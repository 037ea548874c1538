"""Language-agnostic type expressions.

This module provides the output model of the mapper:
- One frozen dataclass per type-expression variant, each with a ``tag``
- ``describe`` for short human readable renderings used in diagnostics
- ``iter_expressions`` for walking an expression tree
"""

from __future__ import annotations

import dataclasses
from collections.abc import Iterator
from enum import Enum
from typing import Any, ClassVar

from otterir.graph.nodes import PrimitiveKind

__all__ = [
    'NullableStrategy',
    'PrimitiveType',
    'ArrayType',
    'ObjectField',
    'ObjectType',
    'UnionType',
    'EnumType',
    'ReferenceType',
    'NullableType',
    'UnsupportedType',
    'TypeExpression',
    'ANY',
    'NULL',
    'describe',
    'iter_expressions',
    'is_nullable',
]


class NullableStrategy(str, Enum):
    """How a nullable value is represented in the output."""

    WRAP_OPTIONAL = 'WrapOptional'
    SEPARATE_NULLABLE_TYPE = 'SeparateNullableType'

    @classmethod
    def _missing_(cls, value):
        # Accept 'wrap_optional', 'WRAP_OPTIONAL', 'wrap-optional', ...
        if isinstance(value, str):
            key = value.replace('_', '').replace('-', '').lower()
            for member in cls:
                if member.value.lower() == key:
                    return member
        return None


@dataclasses.dataclass(frozen=True)
class PrimitiveType:
    kind: PrimitiveKind
    format: str | None = None

    tag: ClassVar[str] = 'primitive'

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {'tag': self.tag, 'kind': self.kind.value}
        if self.format:
            data['format'] = self.format
        return data


@dataclasses.dataclass(frozen=True)
class ArrayType:
    element: TypeExpression

    tag: ClassVar[str] = 'array'

    def to_dict(self) -> dict[str, Any]:
        return {'tag': self.tag, 'element': self.element.to_dict()}


@dataclasses.dataclass(frozen=True)
class ObjectField:
    """A single field of an object type.

    ``optional`` says whether the field may be absent; whether its value may
    be null is carried by ``type`` (see :attr:`nullable`). The two are never
    folded into each other.
    """

    name: str
    type: TypeExpression
    optional: bool = False
    description: str | None = None

    @property
    def nullable(self) -> bool:
        return is_nullable(self.type)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            'name': self.name,
            'type': self.type.to_dict(),
            'optional': self.optional,
            'nullable': self.nullable,
        }
        if self.description:
            data['description'] = self.description
        return data


@dataclasses.dataclass(frozen=True)
class ObjectType:
    fields: tuple[ObjectField, ...] = ()
    additional: TypeExpression | None = None

    tag: ClassVar[str] = 'object'

    def field(self, name: str) -> ObjectField | None:
        for f in self.fields:
            if f.name == name:
                return f
        return None

    @property
    def field_names(self) -> list[str]:
        return [f.name for f in self.fields]

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            'tag': self.tag,
            'fields': [f.to_dict() for f in self.fields],
        }
        if self.additional is not None:
            data['additional'] = self.additional.to_dict()
        return data


@dataclasses.dataclass(frozen=True)
class UnionType:
    variants: tuple[TypeExpression, ...]
    discriminator: str | None = None

    tag: ClassVar[str] = 'union'

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            'tag': self.tag,
            'variants': [v.to_dict() for v in self.variants],
        }
        if self.discriminator:
            data['discriminator'] = self.discriminator
        return data


@dataclasses.dataclass(frozen=True)
class EnumType:
    values: tuple[Any, ...]
    base: PrimitiveKind | None = None

    tag: ClassVar[str] = 'enum'

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {'tag': self.tag, 'values': list(self.values)}
        if self.base is not None:
            data['base'] = self.base.value
        return data


@dataclasses.dataclass(frozen=True)
class ReferenceType:
    """A reference to another schema by id.

    ``indirect`` is only ever True at a cycle break point; emitters lower it
    to their language's indirection (pointer, box, lazy reference, ...).
    """

    schema_id: str
    indirect: bool = False

    tag: ClassVar[str] = 'reference'

    def to_dict(self) -> dict[str, Any]:
        return {'tag': self.tag, 'schema_id': self.schema_id, 'indirect': self.indirect}


@dataclasses.dataclass(frozen=True)
class NullableType:
    inner: TypeExpression

    tag: ClassVar[str] = 'nullable'

    def to_dict(self) -> dict[str, Any]:
        return {'tag': self.tag, 'inner': self.inner.to_dict()}


@dataclasses.dataclass(frozen=True)
class UnsupportedType:
    reason: str

    tag: ClassVar[str] = 'unsupported'

    def to_dict(self) -> dict[str, Any]:
        return {'tag': self.tag, 'reason': self.reason}


TypeExpression = (
    PrimitiveType
    | ArrayType
    | ObjectType
    | UnionType
    | EnumType
    | ReferenceType
    | NullableType
    | UnsupportedType
)

ANY = PrimitiveType(PrimitiveKind.ANY)
NULL = PrimitiveType(PrimitiveKind.NULL)


def is_nullable(expr: TypeExpression) -> bool:
    """Whether ``expr`` admits null under either nullable strategy."""
    if isinstance(expr, NullableType):
        return True
    if isinstance(expr, UnionType):
        return NULL in expr.variants
    return expr == NULL


def describe(expr: TypeExpression) -> str:
    """Render a short, human readable description of a type expression.

    >>> describe(ArrayType(PrimitiveType(PrimitiveKind.STRING)))
    'Array<String>'
    """
    if isinstance(expr, PrimitiveType):
        name = expr.kind.value.capitalize()
        return f'{name}({expr.format})' if expr.format else name
    if isinstance(expr, ArrayType):
        return f'Array<{describe(expr.element)}>'
    if isinstance(expr, ObjectType):
        return 'Object{' + ', '.join(expr.field_names) + '}'
    if isinstance(expr, UnionType):
        return 'Union<' + ' | '.join(describe(v) for v in expr.variants) + '>'
    if isinstance(expr, EnumType):
        return 'Enum[' + ', '.join(repr(v) for v in expr.values) + ']'
    if isinstance(expr, ReferenceType):
        if expr.indirect:
            return f'Reference({expr.schema_id}, indirect)'
        return f'Reference({expr.schema_id})'
    if isinstance(expr, NullableType):
        return f'Nullable<{describe(expr.inner)}>'
    if isinstance(expr, UnsupportedType):
        return 'Unsupported'
    raise TypeError(f'Not a type expression: {expr!r}')


def iter_expressions(expr: TypeExpression) -> Iterator[TypeExpression]:
    """Yield ``expr`` and every expression nested inside it, depth first."""
    yield expr
    if isinstance(expr, ArrayType):
        yield from iter_expressions(expr.element)
    elif isinstance(expr, ObjectType):
        for f in expr.fields:
            yield from iter_expressions(f.type)
        if expr.additional is not None:
            yield from iter_expressions(expr.additional)
    elif isinstance(expr, UnionType):
        for variant in expr.variants:
            yield from iter_expressions(variant)
    elif isinstance(expr, NullableType):
        yield from iter_expressions(expr.inner)
