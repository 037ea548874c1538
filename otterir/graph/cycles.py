"""Cycle detection over the schema graph."""

import logging

from otterir.diagnostics import DiagnosticKind, DiagnosticSink
from otterir.graph.nodes import CycleInfo, SchemaGraph

logger = logging.getLogger(__name__)

__all__ = ['CycleDetector']

_UNVISITED = 0
_IN_PROGRESS = 1
_DONE = 2


class CycleDetector:
    """Classifies the edges of a schema graph as tree edges or back-edges.

    A depth-first traversal with three-state marking is run from every node
    in :meth:`SchemaGraph.traversal_order`. An edge reaching a node that is still in progress is
    a back-edge: it is marked ``indirect`` and its target is flagged
    ``cyclic``. Cycles are legal in OpenAPI, so nothing is raised; each cycle
    is recorded on ``graph.cycles`` and reported as a ``CircularReference``
    warning.

    Example:
        >>> detector = CycleDetector(sink)
        >>> cycles = detector.detect(graph)
        >>> [c.describe() for c in cycles]
        ['TreeNode -> TreeNode']
    """

    def __init__(self, diagnostics: DiagnosticSink | None = None):
        self.diagnostics = diagnostics

    def detect(self, graph: SchemaGraph) -> list[CycleInfo]:
        """Annotate ``graph`` in place and return the cycles found.

        Running the detector again on the same graph recomputes the same
        annotations and does not add duplicate diagnostics.
        """
        for edge in graph.edges:
            edge.indirect = False
        for node in graph:
            node.cyclic = False
        graph.cycles = []

        state: dict[str, int] = {}
        for root in graph.traversal_order():
            if state.get(root, _UNVISITED) == _UNVISITED:
                self._visit(graph, root, state)

        if graph.cycles:
            logger.debug('Found %d reference cycle(s)', len(graph.cycles))
        self._report(graph.cycles)
        return graph.cycles

    def _visit(self, graph: SchemaGraph, root: str, state: dict[str, int]) -> None:
        # Iterative so deeply nested schemas do not hit the recursion limit.
        path = [root]
        state[root] = _IN_PROGRESS
        stack = [(root, iter(graph[root].child_ids()))]

        while stack:
            current, children = stack[-1]
            child = next(children, None)

            if child is None:
                state[current] = _DONE
                stack.pop()
                path.pop()
                continue

            child_state = state.get(child, _UNVISITED)
            if child_state == _IN_PROGRESS:
                self._record(graph, current, child, path)
            elif child_state == _UNVISITED:
                state[child] = _IN_PROGRESS
                path.append(child)
                stack.append((child, iter(graph[child].child_ids())))

    def _record(
        self, graph: SchemaGraph, source: str, target: str, path: list[str]
    ) -> None:
        graph.add_edge(source, target).indirect = True
        graph[target].cyclic = True

        cycle = tuple(path[path.index(target) :]) + (target,)
        named = tuple(i for i in cycle if graph[i].is_component)
        graph.cycles.append(CycleInfo(cycle, named, graph[target].location))

    def _report(self, cycles: list[CycleInfo]) -> None:
        if self.diagnostics is None:
            return

        reported = {
            (d.message, d.location)
            for d in self.diagnostics.of_kind(DiagnosticKind.CIRCULAR_REFERENCE)
        }
        for cycle in cycles:
            message = f'Circular reference: {cycle.describe()}'
            if (message, cycle.location) in reported:
                continue
            reported.add((message, cycle.location))
            self.diagnostics.warning(
                DiagnosticKind.CIRCULAR_REFERENCE, message, cycle.location
            )
