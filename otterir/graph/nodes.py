"""Schema graph data model.

The graph is an arena of :class:`SchemaNode` objects addressed by a stable
id. Nodes never hold other nodes, only ids, so a schema is owned exactly
once by its graph and cycles are expressed as edges rather than as Python
object cycles.
"""

import dataclasses
from collections.abc import Iterable, Iterator
from enum import Enum
from typing import Any

__all__ = [
    'SchemaKind',
    'PrimitiveKind',
    'SchemaNode',
    'ReferenceEdge',
    'CycleInfo',
    'SchemaGraph',
]


class SchemaKind(str, Enum):
    PRIMITIVE = 'primitive'
    ARRAY = 'array'
    OBJECT = 'object'
    UNION = 'union'
    INTERSECTION = 'intersection'
    ENUM = 'enum'
    REFERENCE = 'reference'


class PrimitiveKind(str, Enum):
    STRING = 'string'
    NUMBER = 'number'
    INTEGER = 'integer'
    BOOLEAN = 'boolean'
    NULL = 'null'
    ANY = 'any'


@dataclasses.dataclass
class SchemaNode:
    """A single schema in the graph.

    Attributes:
        id: Stable id, unique within the graph (component name, or a
            pointer-derived path for inline schemas).
        kind: Structural kind of the schema.
        location: Full document pointer of the schema.
        nullable: Whether the value may be null.
        required: Names of required properties (object-like kinds only).
        primitives: Primitive types for PRIMITIVE and ENUM nodes.
        format: The OpenAPI ``format`` keyword, if any.
        enum_values: Literal values for ENUM nodes, in declaration order.
        properties: Property name to child id, in declaration order.
        items: Child id of the array element schema.
        additional_properties: Child id, True for free-form maps, or None.
        variants: Child ids of oneOf/anyOf/allOf members.
        combinator: 'oneOf', 'anyOf' or 'allOf' for UNION/INTERSECTION nodes.
        discriminator: Discriminator property name of a union, if declared.
        target: Target id of a REFERENCE node.
        ref: Original ``$ref`` string of a REFERENCE node.
        unsupported: Reason string when the schema uses a construct that
            has no mapping.
        cyclic: Set by the cycle detector when the node is the target of a
            back-edge.
    """

    id: str
    kind: SchemaKind
    location: str
    nullable: bool = False
    required: frozenset[str] = frozenset()
    primitives: tuple[PrimitiveKind, ...] = ()
    format: str | None = None
    enum_values: tuple[Any, ...] = ()
    properties: dict[str, str] = dataclasses.field(default_factory=dict)
    items: str | None = None
    additional_properties: str | bool | None = None
    variants: tuple[str, ...] = ()
    combinator: str | None = None
    discriminator: str | None = None
    target: str | None = None
    ref: str | None = None
    title: str | None = None
    description: str | None = None
    unsupported: str | None = None
    cyclic: bool = False

    @property
    def is_component(self) -> bool:
        return self.location.startswith('#/components/schemas/') and '/' not in self.id

    def child_ids(self) -> list[str]:
        """Ids of all nodes directly reachable from this node, in order.

        Order is: properties, additionalProperties, items, variants, target.
        Traversals that must agree with each other (cycle detection and type
        mapping) rely on this order.
        """
        children = list(self.properties.values())
        if isinstance(self.additional_properties, str):
            children.append(self.additional_properties)
        if self.items is not None:
            children.append(self.items)
        children.extend(self.variants)
        if self.target is not None:
            children.append(self.target)
        return children


@dataclasses.dataclass
class ReferenceEdge:
    """A directed edge between two nodes.

    Attributes:
        source: Id of the node the edge starts from.
        target: Id of the node the edge points at.
        indirect: True when the cycle detector classified the edge as a
            back-edge; only such edges may become indirection in the
            type model.
        via_ref: True for ``$ref`` hops, False for containment.
    """

    source: str
    target: str
    indirect: bool = False
    via_ref: bool = False


@dataclasses.dataclass(frozen=True)
class CycleInfo:
    """A reference cycle found by the cycle detector.

    Attributes:
        path: Every node id on the cycle, starting and ending at the node
            the back-edge targets.
        named_path: The same path reduced to component schemas.
        location: Document pointer of the first node of the cycle.
    """

    path: tuple[str, ...]
    named_path: tuple[str, ...]
    location: str

    def describe(self) -> str:
        path = self.named_path if len(self.named_path) > 1 else self.path
        return ' -> '.join(path)


class SchemaGraph:
    """Arena of schema nodes plus the edges between them.

    Example:
        >>> graph = SchemaGraph()
        >>> graph.add_node(SchemaNode('Pet', SchemaKind.OBJECT, '#/components/schemas/Pet'))
        >>> 'Pet' in graph
        True
    """

    def __init__(self):
        self._nodes: dict[str, SchemaNode] = {}
        self._edges: dict[tuple[str, str], ReferenceEdge] = {}
        self._declared: list[str] = []
        self.cycles: list[CycleInfo] = []

    def declare_components(self, ids: Iterable[str]) -> None:
        """Record the declaration order of component schemas."""
        self._declared = list(ids)

    def add_node(self, node: SchemaNode) -> SchemaNode:
        """Add a node to the arena.

        Raises:
            ValueError: If a node with the same id is already present.
        """
        if node.id in self._nodes:
            raise ValueError(f"Schema '{node.id}' is already in the graph")
        self._nodes[node.id] = node
        return node

    def add_edge(self, source: str, target: str, via_ref: bool = False) -> ReferenceEdge:
        key = (source, target)
        if key not in self._edges:
            self._edges[key] = ReferenceEdge(source, target, via_ref=via_ref)
        return self._edges[key]

    def get(self, schema_id: str) -> SchemaNode | None:
        return self._nodes.get(schema_id)

    def __getitem__(self, schema_id: str) -> SchemaNode:
        return self._nodes[schema_id]

    def __contains__(self, schema_id: str) -> bool:
        return schema_id in self._nodes

    def __iter__(self) -> Iterator[SchemaNode]:
        return iter(self._nodes.values())

    def __len__(self) -> int:
        return len(self._nodes)

    @property
    def ids(self) -> list[str]:
        return list(self._nodes)

    @property
    def components(self) -> list[SchemaNode]:
        """Component schemas in declaration order.

        Components never declared (hand-built graphs) follow in insertion
        order.
        """
        declared = [self._nodes[i] for i in self._declared if i in self._nodes]
        seen = {n.id for n in declared}
        return declared + [
            n for n in self._nodes.values() if n.is_component and n.id not in seen
        ]

    def traversal_order(self) -> list[str]:
        """Ids in the order graph-wide traversals visit them: components
        first, then every other node in insertion order.
        """
        components = [n.id for n in self.components]
        named = set(components)
        return components + [i for i in self._nodes if i not in named]

    @property
    def edges(self) -> list[ReferenceEdge]:
        return list(self._edges.values())

    def edge(self, source: str, target: str) -> ReferenceEdge | None:
        return self._edges.get((source, target))

    def edges_from(self, schema_id: str) -> list[ReferenceEdge]:
        node = self._nodes[schema_id]
        return [self._edges[(schema_id, child)] for child in node.child_ids()]

    @property
    def indirect_edges(self) -> list[ReferenceEdge]:
        return [e for e in self._edges.values() if e.indirect]

    @property
    def is_acyclic(self) -> bool:
        return not self.indirect_edges

    def named_dependencies(self, schema_id: str) -> set[str]:
        """Component ids reachable from ``schema_id`` without passing
        through another component.
        """
        found: set[str] = set()
        stack = list(self._nodes[schema_id].child_ids())
        seen: set[str] = set()
        while stack:
            current = stack.pop()
            if current in seen:
                continue
            seen.add(current)
            node = self._nodes[current]
            if node.is_component:
                found.add(current)
                continue
            stack.extend(node.child_ids())
        return found
