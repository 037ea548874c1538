"""Structural merge of ``allOf`` object shapes."""

import dataclasses
from collections.abc import Iterable, Sequence

from otterir.model.types import (
    ObjectField,
    ObjectType,
    TypeExpression,
    UnsupportedType,
    describe,
)

__all__ = ['FieldConflict', 'merge_objects']


@dataclasses.dataclass(frozen=True)
class FieldConflict:
    """Two members declared the same field with different types."""

    field: str
    type_a: TypeExpression
    type_b: TypeExpression

    @property
    def reason(self) -> str:
        return (
            f"conflicting types for field '{self.field}': "
            f'{describe(self.type_a)} vs {describe(self.type_b)}'
        )


def merge_objects(
    objects: Sequence[ObjectType], required: Iterable[str] = ()
) -> tuple[ObjectType, list[FieldConflict]]:
    """Merge object shapes into one.

    The field set is the union of all members' fields, in the order names are
    first seen. A field is optional only if every member declaring it has it
    optional and it is not listed in ``required``. Types are compared by
    structural equality; a field declared with different types is kept with
    an :class:`UnsupportedType` and reported as a conflict.

    Args:
        objects: The member shapes, in ``allOf`` order.
        required: Names required by the intersection itself.

    Returns:
        Tuple of (merged object type, conflicts found).
    """
    required = set(required)
    declared: dict[str, list[ObjectField]] = {}
    for obj in objects:
        for f in obj.fields:
            declared.setdefault(f.name, []).append(f)

    conflicts: list[FieldConflict] = []
    fields: list[ObjectField] = []
    for name, declarations in declared.items():
        first = declarations[0]
        field_type = first.type
        for other in declarations[1:]:
            if other.type != first.type:
                conflict = FieldConflict(name, first.type, other.type)
                conflicts.append(conflict)
                field_type = UnsupportedType(conflict.reason)
                break

        fields.append(
            ObjectField(
                name=name,
                type=field_type,
                optional=name not in required and all(d.optional for d in declarations),
                description=next(
                    (d.description for d in declarations if d.description), None
                ),
            )
        )

    additional = None
    for obj in objects:
        if obj.additional is None:
            continue
        if additional is None:
            additional = obj.additional
        elif obj.additional != additional:
            conflicts.append(
                FieldConflict('additionalProperties', additional, obj.additional)
            )
            additional = UnsupportedType(conflicts[-1].reason)
            break

    return ObjectType(tuple(fields), additional), conflicts
