"""Tests for pass registration and dependency resolution."""

import pytest

from otterir.exceptions import (
    CircularPassDependencyError,
    DuplicatePassError,
    InvalidPassConfigurationError,
    PassNotFoundError,
)
from otterir.transforms import PassDescriptor, PassLevel, PassRegistry, default_registry


def noop(context, params):
    pass


def registry_with(*descriptors: PassDescriptor) -> PassRegistry:
    registry = PassRegistry()
    for descriptor in descriptors:
        registry.register(descriptor, noop)
    return registry


def names(descriptors) -> list[str]:
    return [d.name for d in descriptors]


class TestRegistration:
    def test_decorator(self):
        """Test registering a pass with the decorator form."""
        registry = PassRegistry()

        @registry.register_pass('strip', dependencies=['load'], critical=False)
        def strip(context, params):
            """Strip vendor extensions.

            Longer description.
            """

        registered = registry.get('strip', PassLevel.DOCUMENT)
        assert registered.transform is strip
        assert registered.descriptor.dependencies == frozenset({'load'})
        assert registered.descriptor.critical is False
        assert registered.descriptor.description == 'Strip vendor extensions.'

    def test_duplicate_name(self):
        """Test that a name can be registered only once per level."""
        registry = registry_with(PassDescriptor('A'))
        with pytest.raises(DuplicatePassError):
            registry.register(PassDescriptor('A'), noop)

    def test_same_name_on_other_level(self):
        """Test that levels have separate namespaces."""
        registry = registry_with(PassDescriptor('A'), PassDescriptor('A', PassLevel.IR))
        assert len(registry) == 2

    def test_descriptor_coerces_collections(self):
        """Test that dependencies and writes become frozensets."""
        descriptor = PassDescriptor('A', 'ir', dependencies=['B'], writes=['ir'])
        assert descriptor.level is PassLevel.IR
        assert descriptor.dependencies == frozenset({'B'})
        assert descriptor.writes == frozenset({'ir'})


class TestResolveOrder:
    def test_dependencies_first(self):
        """Test A before B before C for C(A, B), B(A)."""
        registry = registry_with(
            PassDescriptor('C', dependencies={'A', 'B'}),
            PassDescriptor('B', dependencies={'A'}),
            PassDescriptor('A'),
        )
        assert names(registry.resolve_order(PassLevel.DOCUMENT)) == ['A', 'B', 'C']

    def test_ties_broken_by_registration(self):
        """Test that independent passes keep registration order."""
        registry = registry_with(
            PassDescriptor('zeta'),
            PassDescriptor('alpha'),
            PassDescriptor('mid', dependencies={'zeta'}),
            PassDescriptor('beta'),
        )
        assert names(registry.resolve_order(PassLevel.DOCUMENT)) == [
            'zeta',
            'alpha',
            'mid',
            'beta',
        ]

    def test_order_is_reproducible(self):
        """Test that resolving repeatedly yields the same order."""
        registry = default_registry()
        first = names(registry.resolve_order(PassLevel.DOCUMENT))
        for _ in range(5):
            assert names(registry.resolve_order(PassLevel.DOCUMENT)) == first

    def test_two_pass_cycle(self):
        """Test that A <-> B is rejected naming 'A,B'."""
        registry = registry_with(
            PassDescriptor('A', dependencies={'B'}),
            PassDescriptor('B', dependencies={'A'}),
        )
        with pytest.raises(CircularPassDependencyError) as exc_info:
            registry.resolve_order(PassLevel.DOCUMENT)
        assert exc_info.value.names == 'A,B'
        assert exc_info.value.cycle == ['A', 'B']

    def test_minimal_cycle_reported(self):
        """Test that the shortest cycle is reported."""
        registry = registry_with(
            PassDescriptor('A', dependencies={'B'}),
            PassDescriptor('B', dependencies={'C'}),
            PassDescriptor('C', dependencies={'A', 'D'}),
            PassDescriptor('D', dependencies={'C'}),
        )
        with pytest.raises(CircularPassDependencyError) as exc_info:
            registry.validate()
        assert exc_info.value.names == 'C,D'

    def test_self_dependency(self):
        """Test that a pass depending on itself is a cycle."""
        registry = registry_with(PassDescriptor('A', dependencies={'A'}))
        with pytest.raises(CircularPassDependencyError) as exc_info:
            registry.validate()
        assert exc_info.value.cycle == ['A']

    def test_unknown_dependency(self):
        """Test that a missing dependency is reported by name."""
        registry = registry_with(PassDescriptor('A', dependencies={'ghost'}))
        with pytest.raises(PassNotFoundError) as exc_info:
            registry.resolve_order(PassLevel.DOCUMENT)
        assert exc_info.value.pass_name == 'ghost'
        assert exc_info.value.required_by == 'A'

    def test_document_pass_cannot_depend_on_ir(self):
        """Test that document passes may not depend on IR passes."""
        registry = registry_with(
            PassDescriptor('analyse', PassLevel.IR),
            PassDescriptor('normalise', dependencies={'analyse'}),
        )
        with pytest.raises(InvalidPassConfigurationError):
            registry.validate()

    def test_ir_pass_may_depend_on_document(self):
        """Test that IR passes may depend on document passes."""
        registry = registry_with(
            PassDescriptor('normalise'),
            PassDescriptor('analyse', PassLevel.IR, dependencies={'normalise'}),
        )
        assert names(registry.resolve_order(PassLevel.IR)) == ['analyse']


class TestPlan:
    def test_disabled_pass_and_dependents(self):
        """Test that dependents of a disabled pass are skipped."""
        registry = registry_with(
            PassDescriptor('A'),
            PassDescriptor('B', dependencies={'A'}),
            PassDescriptor('C'),
            PassDescriptor('D', PassLevel.IR, dependencies={'B'}),
        )
        plan = registry.plan(PassLevel.DOCUMENT, {'A': False})
        assert plan.names == ['C']
        assert plan.disabled == ['A']
        assert plan.skipped == {'B': "depends on disabled pass 'A'"}

        ir_plan = registry.plan(PassLevel.IR, {'A': False})
        assert ir_plan.names == []
        assert 'D' in ir_plan.skipped

    def test_enabled_by_default(self):
        """Test that passes disabled by default can be switched on."""
        registry = registry_with(PassDescriptor('opt-in', enabled_by_default=False))
        assert registry.plan(PassLevel.DOCUMENT).names == []
        assert registry.plan(PassLevel.DOCUMENT, {'opt-in': True}).names == ['opt-in']


class TestWaves:
    def test_disjoint_writes_share_a_wave(self):
        """Test that independent passes with disjoint writes run together."""
        registry = registry_with(
            PassDescriptor('A', writes={'document'}),
            PassDescriptor('B', writes={'artifacts'}),
            PassDescriptor('C', dependencies={'A', 'B'}, writes={'document'}),
        )
        waves = registry.resolve_waves(PassLevel.DOCUMENT)
        assert [[p.name for p in wave] for wave in waves] == [['A', 'B'], ['C']]

    def test_overlapping_writes_are_serialised(self):
        """Test that passes writing the same resource never share a wave."""
        registry = registry_with(
            PassDescriptor('A', writes={'document'}),
            PassDescriptor('B', writes={'document'}),
        )
        waves = registry.resolve_waves(PassLevel.DOCUMENT)
        assert [[p.name for p in wave] for wave in waves] == [['A'], ['B']]

    def test_undeclared_writes_run_alone(self):
        """Test that a pass without declared writes gets its own wave."""
        registry = registry_with(
            PassDescriptor('A', writes={'document'}),
            PassDescriptor('B'),
        )
        waves = registry.resolve_waves(PassLevel.DOCUMENT)
        assert [[p.name for p in wave] for wave in waves] == [['A'], ['B']]


class TestDefaultRegistry:
    def test_builtin_order(self):
        """Test the order of the built-in passes."""
        registry = default_registry()
        assert names(registry.resolve_order(PassLevel.DOCUMENT)) == [
            'validation',
            'path-normalization',
            'schema-normalization',
            'naming-convention',
        ]
        assert names(registry.resolve_order(PassLevel.IR)) == [
            'type-inference',
            'dependency-analysis',
            'circular-reference-detection',
        ]

    def test_fresh_instances(self):
        """Test that each call returns an independent registry."""
        assert default_registry() is not default_registry()

    def test_naming_convention_is_opt_in(self):
        """Test that naming-convention is disabled by default."""
        plan = default_registry().plan(PassLevel.DOCUMENT)
        assert 'naming-convention' not in plan.names
        assert plan.disabled == ['naming-convention']
