"""Reference resolution for OpenAPI documents.

This module provides the ReferenceResolver class, which walks a raw OpenAPI
document tree, follows every ``$ref`` within the same document and builds
the :class:`~otterir.graph.nodes.SchemaGraph` the rest of the pipeline works
on.
"""

import logging
from collections.abc import Mapping
from typing import Any

from otterir.exceptions import MaxDepthExceededError, SchemaReferenceError
from otterir.graph.nodes import PrimitiveKind, SchemaGraph, SchemaKind, SchemaNode
from otterir.utils import (
    COMPONENT_SCHEMAS_POINTER,
    is_url,
    join_pointer,
    schema_id_for_pointer,
    split_pointer,
)

logger = logging.getLogger(__name__)

__all__ = ['ReferenceResolver', 'DEFAULT_MAX_REFERENCE_DEPTH', 'HTTP_METHODS']

DEFAULT_MAX_REFERENCE_DEPTH = 64

HTTP_METHODS = ('get', 'put', 'post', 'delete', 'options', 'head', 'patch', 'trace')

_PRIMITIVE_TYPES = {
    'string': PrimitiveKind.STRING,
    'number': PrimitiveKind.NUMBER,
    'integer': PrimitiveKind.INTEGER,
    'boolean': PrimitiveKind.BOOLEAN,
    'null': PrimitiveKind.NULL,
}

_UNSUPPORTED_KEYWORDS = {
    'not': "'not' schemas have no type mapping",
    'if': "conditional ('if'/'then'/'else') schemas have no type mapping",
    'patternProperties': "'patternProperties' has no type mapping",
}


class ReferenceResolver:
    """Builds a schema graph from a raw OpenAPI document.

    Every ``$ref`` is looked up within the same document. A dangling local
    reference, or any reference to another document, raises
    :class:`SchemaReferenceError` and no graph is returned. Resolution is
    idempotent: calling :meth:`resolve` again returns the same graph, and
    materialising an already materialised location returns the existing
    node unchanged.

    Example:
        >>> resolver = ReferenceResolver(document, max_depth=32)
        >>> graph = resolver.resolve()
        >>> graph['Pet'].kind
        <SchemaKind.OBJECT: 'object'>
    """

    def __init__(
        self,
        document: Mapping[str, Any],
        max_depth: int = DEFAULT_MAX_REFERENCE_DEPTH,
    ):
        """Initialize the resolver.

        Args:
            document: The raw OpenAPI document tree.
            max_depth: Maximum number of ``$ref`` hops on one resolution
                chain before :class:`MaxDepthExceededError` is raised.
        """
        self.document = document
        self.max_depth = max_depth
        self._graph: SchemaGraph | None = None
        self._building: SchemaGraph | None = None
        self._chain: list[str] = []

    @property
    def is_resolved(self) -> bool:
        return self._graph is not None

    def resolve(self) -> SchemaGraph:
        """Resolve the whole document into a schema graph.

        Returns:
            The resolved graph. Repeated calls return the same object.

        Raises:
            SchemaReferenceError: If a reference is dangling or external.
            MaxDepthExceededError: If a reference chain is too deep.
        """
        if self._graph is not None:
            return self._graph

        self._building = SchemaGraph()
        self._chain = []
        try:
            self._walk_components()
            self._walk_paths()
            self._check_depth(self._building)
        except RecursionError:
            self._building = None
            raise MaxDepthExceededError(
                self._chain or ['#'],
                self.max_depth,
                location=self._chain[-1] if self._chain else '#',
            ) from None
        except Exception:
            self._building = None
            raise

        graph = self._building
        self._building = None

        for node in graph:
            for child in node.child_ids():
                graph.add_edge(
                    node.id,
                    child,
                    via_ref=node.kind is SchemaKind.REFERENCE and child == node.target,
                )

        logger.debug(
            'Resolved %d schemas with %d edges', len(graph), len(graph.edges)
        )
        self._graph = graph
        return graph

    def materialize(self, pointer: str) -> SchemaNode:
        """Return the node for a document location, resolving it if needed.

        Args:
            pointer: A local JSON pointer, e.g. '#/components/schemas/Pet'.

        Raises:
            SchemaReferenceError: If the location does not exist or is not a schema.
        """
        graph = self.resolve()
        schema_id = schema_id_for_pointer(pointer)
        if schema_id in graph:
            return graph[schema_id]

        target_pointer, raw = self._lookup(pointer, pointer)
        target_id = schema_id_for_pointer(target_pointer)
        if target_id in graph:
            return graph[target_id]

        raise SchemaReferenceError(
            pointer,
            'Location is not reachable from any schema in the document',
            location=pointer,
        )

    # -------------------------------------------------------------------------
    # Document walking
    # -------------------------------------------------------------------------

    def _walk_components(self) -> None:
        components = self.document.get('components') or {}
        schemas = components.get('schemas') or {}

        self._building.declare_components(
            schema_id_for_pointer(join_pointer(COMPONENT_SCHEMAS_POINTER, name))
            for name in schemas
        )
        for name, raw in schemas.items():
            self._materialize(join_pointer(COMPONENT_SCHEMAS_POINTER, name), raw)

        for section in ('parameters', 'headers'):
            for name, obj in (components.get(section) or {}).items():
                pointer = join_pointer('#/components', section, name)
                self._walk_parameter(pointer, obj)

        for name, obj in (components.get('requestBodies') or {}).items():
            self._walk_body(join_pointer('#/components/requestBodies', name), obj)

        for name, obj in (components.get('responses') or {}).items():
            self._walk_response(join_pointer('#/components/responses', name), obj)

    def _walk_paths(self) -> None:
        for path, item in (self.document.get('paths') or {}).items():
            pointer, item = self._deref_object(join_pointer('#/paths', path), item)

            for index, parameter in enumerate(item.get('parameters') or []):
                self._walk_parameter(join_pointer(pointer, 'parameters', index), parameter)

            for method in HTTP_METHODS:
                operation = item.get(method)
                if not isinstance(operation, Mapping):
                    continue
                op_pointer = join_pointer(pointer, method)

                for index, parameter in enumerate(operation.get('parameters') or []):
                    self._walk_parameter(
                        join_pointer(op_pointer, 'parameters', index), parameter
                    )

                if operation.get('requestBody') is not None:
                    self._walk_body(
                        join_pointer(op_pointer, 'requestBody'), operation['requestBody']
                    )

                for status, response in (operation.get('responses') or {}).items():
                    self._walk_response(
                        join_pointer(op_pointer, 'responses', status), response
                    )

    def _walk_parameter(self, pointer: str, obj: Any) -> None:
        pointer, obj = self._deref_object(pointer, obj)
        if obj.get('schema') is not None:
            self._materialize(join_pointer(pointer, 'schema'), obj['schema'])
        self._walk_content(pointer, obj)

    def _walk_body(self, pointer: str, obj: Any) -> None:
        pointer, obj = self._deref_object(pointer, obj)
        self._walk_content(pointer, obj)

    def _walk_response(self, pointer: str, obj: Any) -> None:
        pointer, obj = self._deref_object(pointer, obj)
        self._walk_content(pointer, obj)
        for name, header in (obj.get('headers') or {}).items():
            self._walk_parameter(join_pointer(pointer, 'headers', name), header)

    def _walk_content(self, pointer: str, obj: Mapping[str, Any]) -> None:
        for media_type, media in (obj.get('content') or {}).items():
            if isinstance(media, Mapping) and media.get('schema') is not None:
                self._materialize(
                    join_pointer(pointer, 'content', media_type, 'schema'),
                    media['schema'],
                )

    def _deref_object(self, pointer: str, obj: Any) -> tuple[str, Mapping[str, Any]]:
        """Follow ``$ref`` on a non-schema object (parameter, response, ...)."""
        hops: list[str] = []
        while isinstance(obj, Mapping) and '$ref' in obj:
            if len(hops) >= self.max_depth:
                raise MaxDepthExceededError(
                    hops + [obj['$ref']], self.max_depth, location=pointer
                )
            hops.append(obj['$ref'])
            pointer, obj = self._lookup(obj['$ref'], pointer)

        if not isinstance(obj, Mapping):
            raise SchemaReferenceError(
                hops[-1] if hops else pointer,
                'Reference does not point to an object',
                location=pointer,
            )
        return pointer, obj

    # -------------------------------------------------------------------------
    # Schema materialisation
    # -------------------------------------------------------------------------

    def _materialize(self, pointer: str, raw: Any) -> str:
        """Create the node for ``raw`` at ``pointer`` (and its children).

        Returns:
            The node id. If the location is already materialised its
            existing id is returned and nothing is created.
        """
        graph = self._building
        schema_id = schema_id_for_pointer(pointer)
        if schema_id in graph:
            return schema_id

        if raw is True or raw == {}:
            graph.add_node(
                SchemaNode(
                    schema_id,
                    SchemaKind.PRIMITIVE,
                    pointer,
                    primitives=(PrimitiveKind.ANY,),
                )
            )
            return schema_id

        if not isinstance(raw, Mapping):
            graph.add_node(
                SchemaNode(
                    schema_id,
                    SchemaKind.PRIMITIVE,
                    pointer,
                    primitives=(PrimitiveKind.ANY,),
                    unsupported=f'{type(raw).__name__} value is not a schema object',
                )
            )
            return schema_id

        if '$ref' in raw:
            return self._materialize_reference(schema_id, pointer, raw)

        types, nullable = _declared_types(raw)
        node = SchemaNode(
            schema_id,
            SchemaKind.PRIMITIVE,
            pointer,
            nullable=nullable or raw.get('nullable') is True,
            required=frozenset(raw.get('required') or ()),
            format=raw.get('format'),
            title=raw.get('title'),
            description=raw.get('description'),
        )
        # Insert before recursing so a reference back to this location
        # finds the node instead of materialising it twice.
        graph.add_node(node)

        if 'allOf' in raw:
            node.kind = SchemaKind.INTERSECTION
            node.combinator = 'allOf'
            node.variants = self._materialize_variants(pointer, 'allOf', raw['allOf'])
            self._materialize_properties(node, raw)
        elif 'oneOf' in raw or 'anyOf' in raw:
            combinator = 'oneOf' if 'oneOf' in raw else 'anyOf'
            node.kind = SchemaKind.UNION
            node.combinator = combinator
            node.variants = self._materialize_variants(
                pointer, combinator, raw[combinator]
            )
            discriminator = raw.get('discriminator')
            if isinstance(discriminator, Mapping):
                node.discriminator = discriminator.get('propertyName')
            if 'oneOf' in raw and 'anyOf' in raw:
                node.unsupported = "'oneOf' combined with 'anyOf' has no type mapping"
        elif 'enum' in raw or 'const' in raw:
            node.kind = SchemaKind.ENUM
            values = raw['enum'] if 'enum' in raw else [raw['const']]
            node.enum_values = tuple(values or ())
            node.primitives = tuple(_PRIMITIVE_TYPES[t] for t in types if t in _PRIMITIVE_TYPES)
        else:
            self._materialize_typed(node, raw, types)

        for keyword, reason in _UNSUPPORTED_KEYWORDS.items():
            if keyword in raw and node.unsupported is None:
                node.unsupported = reason

        return schema_id

    def _materialize_typed(
        self, node: SchemaNode, raw: Mapping[str, Any], types: list[str]
    ) -> None:
        pointer = node.location

        if not types:
            if 'properties' in raw or 'additionalProperties' in raw:
                types = ['object']
            elif 'items' in raw:
                types = ['array']
            elif node.nullable and raw.get('type') is not None:
                types = ['null']
            else:
                node.primitives = (PrimitiveKind.ANY,)
                return

        if len(types) > 1 and ('array' in types or 'object' in types):
            node.primitives = (PrimitiveKind.ANY,)
            node.unsupported = f'mixed structural types {types} have no type mapping'
            return

        if types == ['array']:
            node.kind = SchemaKind.ARRAY
            items = raw.get('items')
            if isinstance(items, list):
                node.unsupported = 'tuple-form array items have no type mapping'
            elif items is not None:
                node.items = self._materialize(join_pointer(pointer, 'items'), items)
            return

        if types == ['object']:
            node.kind = SchemaKind.OBJECT
            self._materialize_properties(node, raw)
            return

        unknown = [t for t in types if t not in _PRIMITIVE_TYPES]
        if unknown:
            node.primitives = (PrimitiveKind.ANY,)
            node.unsupported = f"unknown type '{unknown[0]}'"
            return

        node.primitives = tuple(_PRIMITIVE_TYPES[t] for t in types)

    def _materialize_properties(self, node: SchemaNode, raw: Mapping[str, Any]) -> None:
        pointer = node.location
        for name, prop in (raw.get('properties') or {}).items():
            node.properties[name] = self._materialize(
                join_pointer(pointer, 'properties', name), prop
            )

        additional = raw.get('additionalProperties')
        if additional is True or additional == {}:
            node.additional_properties = True
        elif isinstance(additional, Mapping):
            node.additional_properties = self._materialize(
                join_pointer(pointer, 'additionalProperties'), additional
            )

    def _materialize_variants(
        self, pointer: str, keyword: str, variants: Any
    ) -> tuple[str, ...]:
        return tuple(
            self._materialize(join_pointer(pointer, keyword, index), variant)
            for index, variant in enumerate(variants or [])
        )

    def _materialize_reference(
        self, schema_id: str, pointer: str, raw: Mapping[str, Any]
    ) -> str:
        ref = raw['$ref']
        node = SchemaNode(
            schema_id,
            SchemaKind.REFERENCE,
            pointer,
            nullable=raw.get('nullable') is True,
            ref=ref,
            title=raw.get('title'),
            description=raw.get('description'),
        )
        self._building.add_node(node)

        target_pointer, target_raw = self._lookup(ref, pointer)
        self._chain.append(ref)
        try:
            node.target = self._materialize(target_pointer, target_raw)
        finally:
            self._chain.pop()
        return schema_id

    def _check_depth(self, graph: SchemaGraph) -> None:
        """Enforce ``max_depth`` on every chain of consecutive ``$ref`` hops.

        A chain starts at a reference node and follows its target for as
        long as the target is itself a reference. Structural schemas end the
        chain, so the result depends only on the document, never on the
        order in which it was walked.
        """
        for schema_id in graph.traversal_order():
            current = graph[schema_id]
            chain: list[str] = []
            while current.kind is SchemaKind.REFERENCE:
                if len(chain) >= self.max_depth:
                    raise MaxDepthExceededError(
                        chain + [current.ref], self.max_depth, location=current.location
                    )
                chain.append(current.ref)
                current = graph[current.target]

    def _lookup(self, ref: Any, location: str) -> tuple[str, Any]:
        """Look up a local reference in the document.

        Args:
            ref: The ``$ref`` value.
            location: Pointer of the referencing location (for errors).

        Returns:
            Tuple of (canonical pointer of the target, raw target value).

        Raises:
            SchemaReferenceError: If the reference is external, malformed
                or dangling.
        """
        if not isinstance(ref, str):
            raise SchemaReferenceError(
                str(ref), 'Reference must be a string', location=location
            )

        if not ref.startswith('#'):
            raise SchemaReferenceError(ref, _external_reason(ref), location=location)

        try:
            tokens = split_pointer(ref)
        except ValueError as e:
            raise SchemaReferenceError(ref, str(e), location=location) from e

        current: Any = self.document
        for depth, token in enumerate(tokens):
            if isinstance(current, Mapping) and token in current:
                current = current[token]
            elif isinstance(current, list) and token.isdigit() and int(token) < len(current):
                current = current[int(token)]
            else:
                raise SchemaReferenceError(
                    ref, self._missing_reason(tokens, depth), location=location
                )

        if not isinstance(current, (Mapping, bool)):
            raise SchemaReferenceError(
                ref, 'Reference does not point to a schema', location=location
            )

        return join_pointer('#', *tokens), current

    def _missing_reason(self, tokens: list[str], depth: int) -> str:
        if len(tokens) == 3 and tokens[:2] == ['components', 'schemas'] and depth >= 2:
            schemas = (self.document.get('components') or {}).get('schemas') or {}
            if not schemas:
                return 'Document has no schemas in components'
            available = ', '.join(sorted(schemas.keys())[:10])
            if len(schemas) > 10:
                available += f', ... ({len(schemas)} total)'
            return f"Schema '{tokens[2]}' not found. Available schemas: {available}"
        missing = '/'.join(tokens[: depth + 1])
        return f"Path '{missing}' not found in document"


def _declared_types(raw: Mapping[str, Any]) -> tuple[list[str], bool]:
    """Return the non-null declared types and whether 'null' was among them."""
    declared = raw.get('type')
    if declared is None:
        return [], False
    if isinstance(declared, str):
        declared = [declared]
    types = [t for t in declared if t != 'null']
    nullable = len(types) != len(declared)
    if nullable and not types:
        return ['null'], True
    return types, nullable


def _external_reason(ref: str) -> str:
    if is_url(ref):
        return (
            'External URL references are not supported. '
            'Consider inlining the referenced schema.'
        )
    if ref.startswith(('./', '../')) or '#' in ref or ref.endswith(('.json', '.yaml', '.yml')):
        return (
            'Relative file references are not supported. '
            'Consider using a tool to bundle your OpenAPI spec.'
        )
    return 'Unknown reference format'
