"""Typed model: type expressions and the schema-to-type mapper."""

from otterir.model.mapper import TypeMapper
from otterir.model.merge import FieldConflict, merge_objects
from otterir.model.types import (
    ANY,
    NULL,
    ArrayType,
    EnumType,
    NullableStrategy,
    NullableType,
    ObjectField,
    ObjectType,
    PrimitiveType,
    ReferenceType,
    TypeExpression,
    UnionType,
    UnsupportedType,
    describe,
    is_nullable,
    iter_expressions,
)

__all__ = [
    'ANY',
    'NULL',
    'ArrayType',
    'EnumType',
    'FieldConflict',
    'NullableStrategy',
    'NullableType',
    'ObjectField',
    'ObjectType',
    'PrimitiveType',
    'ReferenceType',
    'TypeExpression',
    'TypeMapper',
    'UnionType',
    'UnsupportedType',
    'describe',
    'is_nullable',
    'iter_expressions',
    'merge_objects',
]
