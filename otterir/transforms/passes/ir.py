"""Built-in IR-level passes."""

from typing import Any

from otterir.transforms.context import TransformContext

__all__ = ['infer_types', 'analyze_dependencies', 'record_circular_references']


def infer_types(context: TransformContext, params: dict[str, Any]) -> None:
    """Record the structural kind of every component schema."""
    ir = context.require_ir()
    ir.analysis.schema_types = {node.id: node.kind for node in ir.graph.components}


def analyze_dependencies(context: TransformContext, params: dict[str, Any]) -> None:
    """Record, per component, the components it refers to."""
    ir = context.require_ir()
    ir.analysis.dependencies = {
        node.id: sorted(ir.graph.named_dependencies(node.id))
        for node in ir.graph.components
    }


def record_circular_references(context: TransformContext, params: dict[str, Any]) -> None:
    ir = context.require_ir()
    ir.analysis.circular_refs = [
        list(cycle.named_path or cycle.path) for cycle in ir.graph.cycles
    ]
