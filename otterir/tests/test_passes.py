"""Tests for the built-in transformation passes."""

import copy

import pytest

from otterir.diagnostics import DiagnosticKind
from otterir.graph import CycleDetector, ReferenceResolver, SchemaKind
from otterir.transforms import IrContext, TransformContext
from otterir.transforms.passes.document import (
    apply_naming_convention,
    normalize_paths,
    normalize_schemas,
    validate_document,
)
from otterir.transforms.passes.ir import (
    analyze_dependencies,
    infer_types,
    record_circular_references,
)

from .fixtures import MINIMAL_OPENAPI_SPEC, MUTUAL_CYCLE_SPEC, PETSTORE_SPEC, spec_with_schemas


def context_for(document: dict) -> TransformContext:
    return TransformContext(copy.deepcopy(document))


def ir_context_for(document: dict) -> TransformContext:
    context = context_for(document)
    graph = ReferenceResolver(context.document).resolve()
    CycleDetector(context.diagnostics).detect(graph)
    context.ir = IrContext(graph)
    return context


class TestValidation:
    def test_valid_document(self):
        """Test that a complete document passes without diagnostics."""
        context = context_for(PETSTORE_SPEC)
        validate_document(context, {})
        assert len(context.diagnostics) == 0

    def test_missing_info(self):
        """Test that missing title and version are reported."""
        document = copy.deepcopy(PETSTORE_SPEC)
        document['info'] = {}
        with pytest.raises(ValueError, match='title, version'):
            validate_document(context_for(document), {})

    def test_empty_paths_warns(self):
        """Test that a document without paths gets a warning."""
        context = context_for(MINIMAL_OPENAPI_SPEC)
        validate_document(context, {})
        [warning] = context.diagnostics.of_kind(DiagnosticKind.VALIDATION)
        assert warning.location == '#/paths'


class TestPathNormalization:
    def test_normalizes_keys(self):
        """Test leading, duplicate and trailing slashes."""
        document = copy.deepcopy(MINIMAL_OPENAPI_SPEC)
        document['paths'] = {'pets/': {'get': {}}, '//users//': {}, '/': {}}
        context = context_for(document)
        normalize_paths(context, {})
        assert list(context.document['paths']) == ['/pets', '/users', '/']
        assert context.document['paths']['/pets'] == {'get': {}}

    def test_collision_keeps_first(self):
        """Test that colliding paths keep the first definition and warn."""
        document = copy.deepcopy(MINIMAL_OPENAPI_SPEC)
        document['paths'] = {'/pets/': {'summary': 'first'}, '/pets': {'summary': 'second'}}
        context = context_for(document)
        normalize_paths(context, {})

        assert context.document['paths'] == {'/pets': {'summary': 'first'}}
        [warning] = context.diagnostics.of_kind(DiagnosticKind.NORMALIZATION)
        assert warning.location == '#/paths/~1pets'

    def test_unchanged_document_is_left_alone(self):
        """Test that already normal paths are not rewritten."""
        context = context_for(PETSTORE_SPEC)
        context.document['paths'].pop('/pets/')
        paths = context.document['paths']
        normalize_paths(context, {})
        assert context.document['paths'] is paths


class TestSchemaNormalization:
    def test_type_lists_and_const(self):
        """Test that 3.1 type lists and const are rewritten."""
        document = spec_with_schemas(
            {
                'Thing': {
                    'type': 'object',
                    'properties': {
                        'a': {'type': ['string', 'null']},
                        'b': {'type': ['integer']},
                        'c': {'const': 'fixed'},
                        'd': {'type': ['string', 'integer']},
                    },
                }
            },
            paths={
                '/things': {
                    'get': {
                        'parameters': [
                            {'name': 'q', 'in': 'query', 'schema': {'type': ['string', 'null']}}
                        ],
                        'responses': {'200': {'description': 'OK'}},
                    }
                }
            },
        )
        context = context_for(document)
        normalize_schemas(context, {})

        properties = context.document['components']['schemas']['Thing']['properties']
        assert properties['a'] == {'type': 'string', 'nullable': True}
        assert properties['b'] == {'type': 'integer'}
        assert properties['c'] == {'enum': ['fixed']}
        assert properties['d'] == {'type': ['string', 'integer']}

        parameter = context.document['paths']['/things']['get']['parameters'][0]
        assert parameter['schema'] == {'type': 'string', 'nullable': True}

    def test_null_only_type(self):
        """Test that a type list of only null keeps the null type."""
        context = context_for(spec_with_schemas({'Nothing': {'type': ['null']}}))
        normalize_schemas(context, {})
        assert context.document['components']['schemas']['Nothing'] == {
            'type': 'null',
            'nullable': True,
        }


class TestNamingConvention:
    def test_renames_and_rewrites_references(self):
        """Test that schemas are renamed and references follow."""
        document = spec_with_schemas(
            {
                'pet_record': {
                    'type': 'object',
                    'properties': {
                        'owner': {'$ref': '#/components/schemas/user-profile'},
                    },
                },
                'user-profile': {'type': 'object'},
                'Animal': {
                    'oneOf': [{'$ref': '#/components/schemas/pet_record'}],
                    'discriminator': {
                        'propertyName': 'kind',
                        'mapping': {'pet': '#/components/schemas/pet_record'},
                    },
                },
            }
        )
        context = context_for(document)
        apply_naming_convention(context, {})

        schemas = context.document['components']['schemas']
        assert list(schemas) == ['PetRecord', 'UserProfile', 'Animal']
        owner = schemas['PetRecord']['properties']['owner']
        assert owner == {'$ref': '#/components/schemas/UserProfile'}
        assert schemas['Animal']['oneOf'] == [{'$ref': '#/components/schemas/PetRecord'}]
        assert schemas['Animal']['discriminator']['mapping'] == {
            'pet': '#/components/schemas/PetRecord'
        }

    def test_case_param(self):
        """Test that the case parameter selects the convention."""
        context = context_for(spec_with_schemas({'PetRecord': {'type': 'object'}}))
        apply_naming_convention(context, {'case': 'snake'})
        assert list(context.document['components']['schemas']) == ['pet_record']

    def test_collision(self):
        """Test that two schemas mapping to one name are rejected."""
        context = context_for(
            spec_with_schemas({'my_pet': {'type': 'object'}, 'MyPet': {'type': 'object'}})
        )
        with pytest.raises(ValueError, match="'my_pet' and 'MyPet'"):
            apply_naming_convention(context, {})


class TestIrPasses:
    def test_requires_ir(self):
        """Test that IR passes need the IR context."""
        with pytest.raises(RuntimeError):
            infer_types(context_for(PETSTORE_SPEC), {})

    def test_infer_types(self):
        """Test that component kinds are recorded."""
        context = ir_context_for(PETSTORE_SPEC)
        infer_types(context, {})
        assert context.ir.analysis.schema_types == {
            'Pet': SchemaKind.INTERSECTION,
            'NewPet': SchemaKind.OBJECT,
            'Category': SchemaKind.ENUM,
            'Error': SchemaKind.OBJECT,
        }

    def test_dependencies(self):
        """Test that direct component dependencies are recorded."""
        context = ir_context_for(PETSTORE_SPEC)
        analyze_dependencies(context, {})
        assert context.ir.analysis.dependencies == {
            'Pet': ['NewPet'],
            'NewPet': ['Category'],
            'Category': [],
            'Error': [],
        }

    def test_circular_references(self):
        """Test that detected cycles are recorded by component name."""
        context = ir_context_for(MUTUAL_CYCLE_SPEC)
        record_circular_references(context, {})
        assert context.ir.analysis.circular_refs == [['Author', 'Book', 'Author']]
