"""Built-in document-level passes.

These operate on ``context.document``, the raw OpenAPI tree, before the IR
is derived from it.
"""

import logging
from collections.abc import Callable
from typing import Any

from otterir.diagnostics import DiagnosticKind
from otterir.transforms.context import TransformContext
from otterir.utils import COMPONENT_SCHEMAS_POINTER, convert_case, join_pointer

logger = logging.getLogger(__name__)

__all__ = [
    'validate_document',
    'normalize_paths',
    'normalize_schemas',
    'apply_naming_convention',
    'walk_schemas',
]

_SCHEMA_MAP_KEYWORDS = ('properties', 'patternProperties', '$defs', 'definitions')
_SCHEMA_LIST_KEYWORDS = ('allOf', 'oneOf', 'anyOf', 'prefixItems')
_SCHEMA_KEYWORDS = ('items', 'additionalProperties', 'not', 'if', 'then', 'else')


def validate_document(context: TransformContext, params: dict[str, Any]) -> None:
    """Check the document carries the information needed downstream."""
    document = context.document
    info = document.get('info') or {}

    missing = [key for key in ('title', 'version') if not info.get(key)]
    if missing:
        raise ValueError(
            f'Document info is missing required field(s): {", ".join(missing)}'
        )

    if not document.get('paths'):
        context.diagnostics.warning(
            DiagnosticKind.VALIDATION, 'Document defines no paths', '#/paths'
        )


def _normalize_path(path: str) -> str:
    path = '/' + path.strip().lstrip('/')
    while '//' in path:
        path = path.replace('//', '/')
    if len(path) > 1:
        path = path.rstrip('/')
    return path


def normalize_paths(context: TransformContext, params: dict[str, Any]) -> None:
    """Normalise path keys: leading slash, no duplicate or trailing slashes."""
    paths = context.document.get('paths')
    if not paths:
        return

    normalized: dict[str, Any] = {}
    for path, item in paths.items():
        key = _normalize_path(path)
        if key in normalized:
            context.diagnostics.warning(
                DiagnosticKind.NORMALIZATION,
                f"Path '{path}' normalizes to '{key}' which is already defined; "
                'keeping the first definition',
                join_pointer('#/paths', path),
            )
            continue
        normalized[key] = item

    if list(normalized) != list(paths):
        context.document['paths'] = normalized


def walk_schemas(document: dict[str, Any], visit: Callable[[dict[str, Any]], None]) -> None:
    """Call ``visit`` on every schema object of ``document``, once each.

    Schemas are found under ``components.schemas`` and under any ``schema``
    key (parameters, headers, media types), then followed through the
    schema keywords that hold subschemas.
    """
    seen: set[int] = set()

    def schema(node: Any) -> None:
        if not isinstance(node, dict) or id(node) in seen:
            return
        seen.add(id(node))
        visit(node)
        for keyword in _SCHEMA_MAP_KEYWORDS:
            for child in (node.get(keyword) or {}).values():
                schema(child)
        for keyword in _SCHEMA_LIST_KEYWORDS:
            for child in node.get(keyword) or []:
                schema(child)
        for keyword in _SCHEMA_KEYWORDS:
            child = node.get(keyword)
            if isinstance(child, list):
                for item in child:
                    schema(item)
            else:
                schema(child)

    def container(node: Any) -> None:
        if isinstance(node, dict):
            for key, value in node.items():
                if key == 'schema':
                    schema(value)
                else:
                    container(value)
        elif isinstance(node, list):
            for item in node:
                container(item)

    components = document.get('components') or {}
    for value in (components.get('schemas') or {}).values():
        schema(value)
    container(document)


def _normalize_schema(schema: dict[str, Any]) -> None:
    declared = schema.get('type')
    if isinstance(declared, list):
        types = [t for t in declared if t != 'null']
        if len(types) != len(declared):
            schema['nullable'] = True
        if len(types) == 1:
            schema['type'] = types[0]
        elif not types:
            schema['type'] = 'null'
        else:
            schema['type'] = types

    if 'const' in schema and 'enum' not in schema:
        schema['enum'] = [schema.pop('const')]


def normalize_schemas(context: TransformContext, params: dict[str, Any]) -> None:
    """Rewrite schema keywords into one canonical form.

    ``type: [X, "null"]`` becomes ``type: X`` with ``nullable: true``,
    single-element type lists become scalars and ``const`` becomes a
    one-value ``enum``.
    """
    walk_schemas(context.document, _normalize_schema)


def _rewrite_refs(node: Any, renames: dict[str, str]) -> None:
    prefix = COMPONENT_SCHEMAS_POINTER + '/'

    def rewrite(ref: str) -> str:
        if not ref.startswith(prefix):
            return ref
        name, sep, rest = ref[len(prefix) :].partition('/')
        if name not in renames:
            return ref
        return join_pointer(COMPONENT_SCHEMAS_POINTER, renames[name]) + sep + rest

    if isinstance(node, dict):
        for key, value in node.items():
            if key == '$ref' and isinstance(value, str):
                node[key] = rewrite(value)
            elif key == 'mapping' and isinstance(value, dict):
                for mapping_key, target in value.items():
                    if isinstance(target, str):
                        value[mapping_key] = rewrite(target)
            else:
                _rewrite_refs(value, renames)
    elif isinstance(node, list):
        for item in node:
            _rewrite_refs(item, renames)


def apply_naming_convention(context: TransformContext, params: dict[str, Any]) -> None:
    """Rename component schemas to one naming convention.

    Params:
        case: 'pascal' (default), 'camel', 'snake' or 'kebab'.
    """
    case = params.get('case', 'pascal')
    schemas = (context.document.get('components') or {}).get('schemas')
    if not schemas:
        return

    renamed: dict[str, Any] = {}
    origins: dict[str, str] = {}
    renames: dict[str, str] = {}
    for name, schema in schemas.items():
        new_name = convert_case(name, case)
        if new_name in origins:
            raise ValueError(
                f"Schemas '{origins[new_name]}' and '{name}' both become "
                f"'{new_name}' in {case} case"
            )
        origins[new_name] = name
        renamed[new_name] = schema
        if new_name != name:
            renames[name] = new_name

    if not renames:
        return

    logger.debug('Renaming %d component schemas to %s case', len(renames), case)
    context.document['components']['schemas'] = renamed
    _rewrite_refs(context.document, renames)
