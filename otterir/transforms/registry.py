"""Pass registration and dependency resolution.

This module provides the PassRegistry class, a plain data registry of named
transformation passes. Each pass declares the passes it depends on; the
registry turns these declarations into a deterministic execution order per
level and rejects unknown or cyclic dependencies before anything runs.
"""

import dataclasses
import heapq
import logging
from collections import deque
from collections.abc import Callable, Iterable, Iterator, Mapping
from enum import Enum
from typing import TYPE_CHECKING, Any

from otterir.exceptions import (
    CircularPassDependencyError,
    DuplicatePassError,
    InvalidPassConfigurationError,
    PassNotFoundError,
)

if TYPE_CHECKING:
    from otterir.transforms.context import TransformContext

logger = logging.getLogger(__name__)

__all__ = [
    'PassLevel',
    'PassDescriptor',
    'TransformPass',
    'RegisteredPass',
    'PassPlan',
    'PassRegistry',
]

TransformPass = Callable[['TransformContext', dict[str, Any]], None]


class PassLevel(str, Enum):
    DOCUMENT = 'document'
    IR = 'ir'


@dataclasses.dataclass(frozen=True)
class PassDescriptor:
    """Static description of a pass.

    Attributes:
        name: Unique name within the level.
        level: The representation level the pass operates on.
        dependencies: Names of passes that must run before this one.
        critical: If False, a failure is recorded as a warning and the run
            continues from the state before the pass.
        writes: Context resources the pass mutates ('document', 'ir',
            'types', 'artifacts'). None means the whole context.
        enabled_by_default: Whether the pass runs when not configured.
        description: Short human readable summary.
    """

    name: str
    level: PassLevel = PassLevel.DOCUMENT
    dependencies: frozenset[str] = frozenset()
    critical: bool = True
    writes: frozenset[str] | None = None
    enabled_by_default: bool = True
    description: str = ''

    def __post_init__(self):
        object.__setattr__(self, 'level', PassLevel(self.level))
        object.__setattr__(self, 'dependencies', frozenset(self.dependencies))
        if self.writes is not None:
            object.__setattr__(self, 'writes', frozenset(self.writes))

    def conflicts_with(self, other: 'PassDescriptor') -> bool:
        """Whether the two passes may write to a shared resource."""
        if self.writes is None or other.writes is None:
            return True
        return bool(self.writes & other.writes)


@dataclasses.dataclass
class RegisteredPass:
    descriptor: PassDescriptor
    transform: TransformPass
    index: int

    @property
    def name(self) -> str:
        return self.descriptor.name


@dataclasses.dataclass
class PassPlan:
    """The passes of one level that will run, and those that will not.

    Attributes:
        level: The level this plan is for.
        order: Passes to run, in execution order.
        disabled: Names of passes disabled by configuration.
        skipped: Pass name to reason, for passes dropped because a pass they
            depend on is disabled.
    """

    level: PassLevel
    order: list[RegisteredPass]
    disabled: list[str] = dataclasses.field(default_factory=list)
    skipped: dict[str, str] = dataclasses.field(default_factory=dict)

    @property
    def names(self) -> list[str]:
        return [p.name for p in self.order]


class PassRegistry:
    """Registry of transformation passes.

    Example:
        >>> registry = PassRegistry()
        >>> @registry.register_pass('validation', critical=False)
        ... def validate(context, params):
        ...     ...
        >>> [d.name for d in registry.resolve_order(PassLevel.DOCUMENT)]
        ['validation']
    """

    def __init__(self):
        self._passes: dict[PassLevel, dict[str, RegisteredPass]] = {
            level: {} for level in PassLevel
        }
        self._counter = 0

    def register(
        self, descriptor: PassDescriptor, transform: TransformPass
    ) -> RegisteredPass:
        """Register a pass.

        Raises:
            DuplicatePassError: If the name is already taken at that level.
        """
        passes = self._passes[descriptor.level]
        if descriptor.name in passes:
            raise DuplicatePassError(descriptor.name, descriptor.level.value)

        registered = RegisteredPass(descriptor, transform, self._counter)
        self._counter += 1
        passes[descriptor.name] = registered
        logger.debug(
            'Registered %s pass %s', descriptor.level.value, descriptor.name
        )
        return registered

    def register_pass(
        self,
        name: str,
        level: PassLevel = PassLevel.DOCUMENT,
        dependencies: Iterable[str] = (),
        critical: bool = True,
        writes: Iterable[str] | None = None,
        enabled_by_default: bool = True,
        description: str | None = None,
    ) -> Callable[[TransformPass], TransformPass]:
        """Decorator form of :meth:`register`.

        The description defaults to the first line of the function docstring.
        """

        def decorator(func: TransformPass) -> TransformPass:
            doc = (func.__doc__ or '').strip().splitlines()
            self.register(
                PassDescriptor(
                    name=name,
                    level=level,
                    dependencies=frozenset(dependencies),
                    critical=critical,
                    writes=frozenset(writes) if writes is not None else None,
                    enabled_by_default=enabled_by_default,
                    description=description or (doc[0] if doc else ''),
                ),
                func,
            )
            return func

        return decorator

    def get(self, name: str, level: PassLevel) -> RegisteredPass | None:
        return self._passes[PassLevel(level)].get(name)

    def passes(self, level: PassLevel) -> list[RegisteredPass]:
        """Passes of ``level`` in registration order."""
        return list(self._passes[PassLevel(level)].values())

    def names(self) -> set[str]:
        return {name for passes in self._passes.values() for name in passes}

    def __contains__(self, name: str) -> bool:
        return any(name in passes for passes in self._passes.values())

    def __iter__(self) -> Iterator[RegisteredPass]:
        for level in PassLevel:
            yield from self.passes(level)

    def __len__(self) -> int:
        return sum(len(passes) for passes in self._passes.values())

    # -------------------------------------------------------------------------
    # Validation and ordering
    # -------------------------------------------------------------------------

    def validate(self) -> None:
        """Check every level's dependency declarations.

        Raises:
            PassNotFoundError: A dependency names an unregistered pass.
            InvalidPassConfigurationError: A document-level pass depends on
                an IR-level pass.
            CircularPassDependencyError: A level's dependencies form a cycle.
        """
        documents = self._passes[PassLevel.DOCUMENT]
        irs = self._passes[PassLevel.IR]

        for registered in self:
            descriptor = registered.descriptor
            for dependency in sorted(descriptor.dependencies):
                if descriptor.level is PassLevel.DOCUMENT:
                    if dependency in documents:
                        continue
                    if dependency in irs:
                        raise InvalidPassConfigurationError(
                            f"Document pass '{descriptor.name}' cannot depend on "
                            f"IR pass '{dependency}'"
                        )
                elif dependency in irs or dependency in documents:
                    continue
                raise PassNotFoundError(dependency, required_by=descriptor.name)

        for level in PassLevel:
            cycle = self.find_cycle(level)
            if cycle:
                raise CircularPassDependencyError(cycle)

    def find_cycle(self, level: PassLevel) -> list[str] | None:
        """Return the shortest dependency cycle at ``level``, if any.

        The cycle is listed from the earliest registered pass on it, each
        pass depending on the next and the last depending on the first.
        """
        passes = self._passes[PassLevel(level)]
        best: list[str] | None = None

        for start in passes.values():
            # Breadth-first search along dependency edges back to `start`.
            parents: dict[str, str] = {}
            queue = deque([start.name])
            found = False
            while queue and not found:
                current = queue.popleft()
                for dependency in self._sorted_dependencies(passes[current]):
                    if dependency == start.name:
                        parents[start.name] = current
                        found = True
                        break
                    if dependency not in parents and dependency in passes:
                        parents[dependency] = current
                        queue.append(dependency)

            if not found:
                continue

            cycle = [parents[start.name]]
            while cycle[-1] != start.name:
                cycle.append(parents[cycle[-1]])
            cycle.reverse()

            if best is None or len(cycle) < len(best):
                best = cycle

        return best

    def resolve_order(self, level: PassLevel) -> list[PassDescriptor]:
        """Topologically order every pass of ``level``.

        Kahn's algorithm; ties between passes with no ordering constraint are
        broken by registration order.

        Raises:
            PassNotFoundError: A dependency names an unregistered pass.
            CircularPassDependencyError: The dependencies form a cycle.
        """
        self.validate()
        return [p.descriptor for p in self._order(self.passes(level))]

    def plan(
        self,
        level: PassLevel,
        enabled: Mapping[str, bool] | Callable[[PassDescriptor], bool] | None = None,
    ) -> PassPlan:
        """Resolve the passes of ``level`` that will run.

        Args:
            level: The level to plan.
            enabled: Either a mapping of pass name to enabled flag (missing
                names use the pass default), or a callable deciding per
                descriptor.

        Returns:
            The plan. A pass depending on a disabled or skipped pass, at any
            level, is skipped.
        """
        self.validate()
        level = PassLevel(level)

        if enabled is None:
            is_enabled = lambda d: d.enabled_by_default  # noqa: E731
        elif callable(enabled):
            is_enabled = enabled
        else:
            is_enabled = lambda d: enabled.get(d.name, d.enabled_by_default)  # noqa: E731

        inactive: set[str] = set()
        disabled: list[str] = []
        skipped: dict[str, str] = {}
        for plan_level in PassLevel:
            for registered in self._order(self.passes(plan_level)):
                descriptor = registered.descriptor
                if not is_enabled(descriptor):
                    inactive.add(descriptor.name)
                    if plan_level is level:
                        disabled.append(descriptor.name)
                    continue
                blocked = sorted(descriptor.dependencies & inactive)
                if blocked:
                    inactive.add(descriptor.name)
                    if plan_level is level:
                        skipped[descriptor.name] = (
                            f"depends on disabled pass '{blocked[0]}'"
                        )
            if plan_level is level:
                break

        order = [
            p for p in self._order(self.passes(level)) if p.name not in inactive
        ]
        return PassPlan(level, order, disabled, skipped)

    def resolve_waves(
        self, level: PassLevel, order: list[RegisteredPass] | None = None
    ) -> list[list[RegisteredPass]]:
        """Group an execution order into barrier-separated waves.

        Passes in one wave have no dependency between them and no
        overlapping declared ``writes``; a pass with undeclared writes always
        runs alone. Concatenating the waves yields a valid topological order.
        """
        if order is None:
            order = self.plan(level).order

        waves: list[list[RegisteredPass]] = []
        placed: dict[str, int] = {}
        for registered in order:
            wave = 1 + max(
                (placed[d] for d in registered.descriptor.dependencies if d in placed),
                default=-1,
            )
            while wave < len(waves) and any(
                registered.descriptor.conflicts_with(other.descriptor)
                for other in waves[wave]
            ):
                wave += 1
            if wave == len(waves):
                waves.append([])
            waves[wave].append(registered)
            placed[registered.name] = wave

        # Registration order within a wave.
        for wave in waves:
            wave.sort(key=lambda p: p.index)
        return waves

    def _order(self, passes: list[RegisteredPass]) -> list[RegisteredPass]:
        by_name = {p.name: p for p in passes}
        indegree = {
            p.name: len([d for d in p.descriptor.dependencies if d in by_name])
            for p in passes
        }
        dependents: dict[str, list[str]] = {p.name: [] for p in passes}
        for p in passes:
            for dependency in p.descriptor.dependencies:
                if dependency in by_name:
                    dependents[dependency].append(p.name)

        heap = [(by_name[n].index, n) for n, degree in indegree.items() if degree == 0]
        heapq.heapify(heap)

        order: list[RegisteredPass] = []
        while heap:
            _, name = heapq.heappop(heap)
            order.append(by_name[name])
            for dependent in dependents[name]:
                indegree[dependent] -= 1
                if indegree[dependent] == 0:
                    heapq.heappush(heap, (by_name[dependent].index, dependent))

        if len(order) != len(passes):
            level = passes[0].descriptor.level
            raise CircularPassDependencyError(self.find_cycle(level) or sorted(indegree))
        return order

    @staticmethod
    def _sorted_dependencies(registered: RegisteredPass) -> list[str]:
        return sorted(registered.descriptor.dependencies)
