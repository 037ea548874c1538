"""Execution of ordered transformation passes.

This module provides the TransformPipeline class. A pipeline is built once
from a :class:`PassRegistry` and a :class:`GeneratorConfig`; building it
validates the pass configuration, so configuration errors surface before
any pass runs.
"""

import logging
import time
from concurrent.futures import ThreadPoolExecutor

from otterir.config import GeneratorConfig
from otterir.diagnostics import DiagnosticKind
from otterir.exceptions import (
    OtterIRError,
    PassFailedError,
    PassNotFoundError,
    PassTimeoutError,
)
from otterir.transforms.context import PassRecord, TransformContext
from otterir.transforms.registry import PassLevel, PassPlan, PassRegistry, RegisteredPass

logger = logging.getLogger(__name__)

__all__ = ['TransformPipeline']


class TransformPipeline:
    """Runs the document-level and IR-level passes of a registry.

    Example:
        >>> pipeline = TransformPipeline(default_registry(), config)
        >>> pipeline.run_level(context, PassLevel.DOCUMENT)
    """

    def __init__(self, registry: PassRegistry, config: GeneratorConfig | None = None):
        """Build the pipeline and validate its configuration.

        Raises:
            PassNotFoundError: A dependency, or a configured pass name, does
                not name a registered pass.
            CircularPassDependencyError: A level's dependencies form a cycle.
            InvalidPassConfigurationError: A document pass depends on an IR pass.
        """
        self.registry = registry
        self.config = config or GeneratorConfig()

        registry.validate()
        for name in self.config.passes:
            if name not in registry:
                raise PassNotFoundError(name, required_by='configuration')

        self.plans: dict[PassLevel, PassPlan] = {
            level: registry.plan(level, self._is_enabled) for level in PassLevel
        }

    def _is_enabled(self, descriptor) -> bool:
        return self.config.pass_enabled(descriptor.name, descriptor.enabled_by_default)

    def order(self, level: PassLevel) -> list[str]:
        return self.plans[PassLevel(level)].names

    def run_level(self, context: TransformContext, level: PassLevel) -> None:
        """Run every planned pass of ``level`` over ``context``.

        Raises:
            PassFailedError: A critical pass failed.
            PassTimeoutError: A pass overran ``pass_timeout``, or the run
                deadline passed before a pass could start.
            PipelineCancelledError: The run was cancelled.
        """
        plan = self.plans[PassLevel(level)]

        for name in plan.disabled:
            logger.debug('Pass %s is disabled', name)
        for name, reason in plan.skipped.items():
            context.diagnostics.warning(
                DiagnosticKind.PASS_SKIPPED, f"Pass '{name}' skipped: {reason}"
            )
            context.executed.append(PassRecord(name, plan.level.value, 'skipped'))

        if self.config.max_workers > 1:
            waves = self.registry.resolve_waves(plan.level, plan.order)
        else:
            waves = [[registered] for registered in plan.order]

        for wave in waves:
            context.token.check(wave[0].name)
            if len(wave) == 1:
                self._execute(context, wave[0])
            else:
                self._execute_wave(context, wave)

    def _execute_wave(self, context: TransformContext, wave: list[RegisteredPass]) -> None:
        logger.debug('Running wave: %s', ', '.join(p.name for p in wave))
        with ThreadPoolExecutor(max_workers=min(self.config.max_workers, len(wave))) as executor:
            futures = [executor.submit(self._execute, context, p) for p in wave]

        # Barrier: every pass of the wave has finished; surface the first
        # failure in registration order.
        for future in futures:
            future.result()

    def _execute(self, context: TransformContext, registered: RegisteredPass) -> None:
        descriptor = registered.descriptor
        level = descriptor.level.value
        snapshot = context.snapshot(descriptor.writes)
        params = self.config.pass_params(descriptor.name)

        logger.debug('Running %s pass %s', level, descriptor.name)
        start = time.perf_counter()
        try:
            registered.transform(context, params)
        except Exception as e:
            elapsed = time.perf_counter() - start
            context.restore(snapshot)
            context.executed.append(
                PassRecord(descriptor.name, level, 'failed', elapsed, str(e))
            )
            if descriptor.critical:
                logger.error('Critical pass %s failed: %s', descriptor.name, e)
                raise PassFailedError(descriptor.name, e, critical=True) from e

            location = e.location if isinstance(e, OtterIRError) else None
            context.diagnostics.warning(
                DiagnosticKind.PASS_FAILED,
                f"Pass '{descriptor.name}' failed and was rolled back: {e}",
                location or '#',
            )
            return

        elapsed = time.perf_counter() - start
        context.executed.append(PassRecord(descriptor.name, level, 'ok', elapsed))
        logger.debug('Pass %s finished in %.3fs', descriptor.name, elapsed)

        timeout = self.config.pass_timeout
        if timeout is not None and elapsed > timeout:
            raise PassTimeoutError(descriptor.name, elapsed)
