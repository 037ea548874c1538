"""Mapping of schema graph nodes to type expressions.

This module provides the TypeMapper, a recursive, memoised mapping from
:class:`~otterir.graph.nodes.SchemaNode` to
:class:`~otterir.model.types.TypeExpression`. Following an edge the cycle
detector marked ``indirect`` yields ``ReferenceType(id, indirect=True)``
instead of recursing, which is how reference cycles are broken. On a graph
the detector has not annotated, re-entering a schema that is still being
expanded does the same.
"""

import logging
import threading
from collections.abc import Iterable
from concurrent.futures import ThreadPoolExecutor

from otterir.diagnostics import DiagnosticKind, DiagnosticSink
from otterir.exceptions import MergeConflictError, UnsupportedConstructError
from otterir.graph.nodes import PrimitiveKind, SchemaGraph, SchemaKind, SchemaNode
from otterir.model.merge import merge_objects
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
    is_nullable,
)
from otterir.utils import join_pointer

logger = logging.getLogger(__name__)

__all__ = ['TypeMapper']


class TypeMapper:
    """Maps schema ids to type expressions.

    The memo table is owned by the caller (normally the run's
    ``TransformContext``) and is never shared between runs. The in-progress
    set is per top-level :meth:`map` call, so independent ids may be mapped
    concurrently.

    Example:
        >>> mapper = TypeMapper(graph, diagnostics=sink)
        >>> mapper.map('TreeNode')
        ObjectType(fields=(ObjectField(name='children', ...),), additional=None)
    """

    def __init__(
        self,
        graph: SchemaGraph,
        diagnostics: DiagnosticSink | None = None,
        nullable_strategy: NullableStrategy = NullableStrategy.WRAP_OPTIONAL,
        strict_mode: bool = False,
        memo: dict[str, TypeExpression] | None = None,
    ):
        self.graph = graph
        self.diagnostics = diagnostics if diagnostics is not None else DiagnosticSink()
        self.nullable_strategy = NullableStrategy(nullable_strategy)
        self.strict_mode = strict_mode
        self.memo = memo if memo is not None else {}
        self._lock = threading.Lock()

    def map(self, schema_id: str) -> TypeExpression:
        """Map one schema id, memoising it and everything it reaches.

        Raises:
            KeyError: If ``schema_id`` is not in the graph.
            UnsupportedConstructError: In strict mode, for constructs with
                no mapping.
            MergeConflictError: In strict mode, for conflicting ``allOf``
                fields.
        """
        if schema_id not in self.graph:
            raise KeyError(f"Schema '{schema_id}' is not in the graph")
        return self._map(schema_id, set())

    def map_all(
        self, ids: Iterable[str] | None = None, max_workers: int = 1
    ) -> dict[str, TypeExpression]:
        """Map every schema and return ``{schema id: type expression}``.

        Component schemas are mapped first, in declaration order, followed by
        the remaining ids. With ``max_workers > 1`` the component schemas are
        mapped on a thread pool.
        """
        if ids is None:
            order = self.graph.traversal_order()
            components = order[: len(self.graph.components)]
            rest = order[len(components) :]
        else:
            components, rest = [], list(ids)

        if max_workers > 1 and len(components) > 1:
            with ThreadPoolExecutor(max_workers=max_workers) as executor:
                for future in [executor.submit(self.map, i) for i in components]:
                    future.result()
        else:
            for schema_id in components:
                self.map(schema_id)

        for schema_id in rest:
            self.map(schema_id)

        targets = components + rest
        logger.debug('Mapped %d schemas', len(targets))
        return {schema_id: self.memo[schema_id] for schema_id in targets}

    def _map(self, schema_id: str, in_progress: set[str]) -> TypeExpression:
        if schema_id in self.memo:
            return self.memo[schema_id]
        if schema_id in in_progress:
            return ReferenceType(schema_id, indirect=True)

        in_progress.add(schema_id)
        try:
            expr = self._map_node(self.graph[schema_id], in_progress)
        finally:
            in_progress.discard(schema_id)

        with self._lock:
            return self.memo.setdefault(schema_id, expr)

    def _map_child(
        self, parent: SchemaNode, child_id: str, in_progress: set[str]
    ) -> TypeExpression:
        # Back-edges become indirect references without recursing, so cycles
        # break where the detector found them whatever the thread scheduling.
        edge = self.graph.edge(parent.id, child_id)
        if edge is not None and edge.indirect:
            return ReferenceType(child_id, indirect=True)
        return self._map(child_id, in_progress)

    def _map_node(self, node: SchemaNode, in_progress: set[str]) -> TypeExpression:
        if node.unsupported:
            return self._unsupported(node, node.unsupported)

        if node.kind is SchemaKind.REFERENCE:
            expr = self._map_reference(node, in_progress)
        elif node.kind is SchemaKind.PRIMITIVE:
            expr = self._map_primitive(node)
        elif node.kind is SchemaKind.ARRAY:
            element = ANY
            if node.items:
                element = self._map_child(node, node.items, in_progress)
            expr = ArrayType(element)
        elif node.kind is SchemaKind.OBJECT:
            expr = self._map_object(node, in_progress)
        elif node.kind is SchemaKind.UNION:
            return self._map_union(node, in_progress)
        elif node.kind is SchemaKind.ENUM:
            return self._map_enum(node)
        elif node.kind is SchemaKind.INTERSECTION:
            expr = self._map_intersection(node, in_progress)
        else:
            return self._unsupported(node, f"schema kind '{node.kind}' has no mapping")

        if node.nullable and not isinstance(expr, UnsupportedType):
            expr = self._nullable(expr)
        return expr

    def _map_reference(self, node: SchemaNode, in_progress: set[str]) -> TypeExpression:
        target = self._map_child(node, node.target, in_progress)
        if isinstance(target, ReferenceType) and target.indirect:
            return target
        return ReferenceType(node.target)

    def _map_primitive(self, node: SchemaNode) -> TypeExpression:
        kinds = [k for k in node.primitives if k is not PrimitiveKind.NULL]
        if not kinds:
            return NULL if node.primitives else ANY
        if len(kinds) == 1:
            return PrimitiveType(kinds[0], node.format)
        return UnionType(tuple(PrimitiveType(k) for k in kinds))

    def _map_object(self, node: SchemaNode, in_progress: set[str]) -> ObjectType:
        fields = []
        for name, child_id in node.properties.items():
            fields.append(
                ObjectField(
                    name=name,
                    type=self._map_child(node, child_id, in_progress),
                    optional=name not in node.required,
                    description=self.graph[child_id].description,
                )
            )

        additional = None
        if node.additional_properties is True:
            additional = ANY
        elif isinstance(node.additional_properties, str):
            additional = self._map_child(node, node.additional_properties, in_progress)

        return ObjectType(tuple(fields), additional)

    def _map_union(self, node: SchemaNode, in_progress: set[str]) -> TypeExpression:
        variants = [self._map_child(node, v, in_progress) for v in node.variants]
        non_null = [v for v in variants if v != NULL]
        nullable = node.nullable or len(non_null) != len(variants)

        if not non_null:
            return NULL
        if len(non_null) == 1:
            expr = non_null[0]
        else:
            expr = UnionType(tuple(non_null), node.discriminator)
        return self._nullable(expr) if nullable else expr

    def _map_enum(self, node: SchemaNode) -> TypeExpression:
        values = tuple(v for v in node.enum_values if v is not None)
        nullable = node.nullable or len(values) != len(node.enum_values)
        if not values:
            return NULL

        base = next((k for k in node.primitives if k is not PrimitiveKind.NULL), None)
        expr = EnumType(values, base)
        return self._nullable(expr) if nullable else expr

    def _map_intersection(
        self, node: SchemaNode, in_progress: set[str]
    ) -> TypeExpression:
        members = [self._map_child(node, v, in_progress) for v in node.variants]
        if len(members) == 1 and not node.properties:
            return members[0]

        shapes: list[ObjectType] = []
        for variant_id, member in zip(node.variants, members):
            shape = self._dereference(member)
            if isinstance(shape, ReferenceType):
                return self._unsupported(
                    node,
                    f"allOf member '{variant_id}' is a cycle break to "
                    f"'{shape.schema_id}' and cannot be merged",
                )
            if not isinstance(shape, ObjectType):
                return self._unsupported(
                    node, f"allOf member '{variant_id}' is not an object shape"
                )
            shapes.append(shape)

        if node.properties or node.additional_properties is not None:
            shapes.append(self._map_object(node, in_progress))

        merged, conflicts = merge_objects(shapes, node.required)
        for conflict in conflicts:
            location = join_pointer(node.location, 'properties', conflict.field)
            if self.strict_mode:
                raise MergeConflictError(
                    conflict.field,
                    conflict.type_a,
                    conflict.type_b,
                    schema_id=node.id,
                    location=location,
                )
            self.diagnostics.warning(
                DiagnosticKind.MERGE_CONFLICT,
                f"Schema '{node.id}': {conflict.reason}",
                location,
            )
        return merged

    def _dereference(self, expr: TypeExpression) -> TypeExpression:
        seen = set()
        while isinstance(expr, ReferenceType) and not expr.indirect:
            if expr.schema_id in seen:
                break
            seen.add(expr.schema_id)
            expr = self.memo.get(expr.schema_id, expr)
        return expr

    def _nullable(self, expr: TypeExpression) -> TypeExpression:
        if is_nullable(expr):
            return expr
        if self.nullable_strategy is NullableStrategy.SEPARATE_NULLABLE_TYPE:
            if isinstance(expr, UnionType):
                return UnionType(expr.variants + (NULL,), expr.discriminator)
            return UnionType((expr, NULL))
        return NullableType(expr)

    def _unsupported(self, node: SchemaNode, reason: str) -> UnsupportedType:
        if self.strict_mode:
            raise UnsupportedConstructError(node.id, reason, location=node.location)
        self.diagnostics.warning(
            DiagnosticKind.UNSUPPORTED_CONSTRUCT,
            f"Schema '{node.id}' has no type mapping and is emitted as "
            f'unsupported: {reason}',
            node.location,
        )
        return UnsupportedType(reason)
