"""Concurrent connect, resolve and list across many clusters."""

from __future__ import annotations

import asyncio
import contextlib
import logging
import time
from typing import List, Optional, Sequence

from kubemc import debug
from kubemc.client import ClientFactory, ClusterConnection
from kubemc.discovery.resolver import ResourceResolver
from kubemc.errors import KubeMCError, TargetTimeoutError
from kubemc.models import (
    ClusterFailure,
    ClusterPipelineState,
    ClusterTarget,
    FanOutResult,
    ListOutcome,
    PipelineStage,
)

logger = logging.getLogger(__name__)


class ResultCollector:
    """Accumulates finished pipelines in the order they complete."""

    def __init__(self) -> None:
        self._outcomes: List[ListOutcome] = []
        self._failures: List[ClusterFailure] = []

    def add(self, state: ClusterPipelineState) -> None:
        if state.stage is PipelineStage.LISTED and state.resolved is not None:
            self._outcomes.append(
                ListOutcome(
                    cluster_name=state.target.name,
                    kind=state.resolved.descriptor.kind,
                    items=list(state.items or []),
                )
            )
            return

        error = state.error or KubeMCError("pipeline did not finish", cluster=state.target.name)
        stage = state.failed_stage or state.stage
        logger.warning("Skipping cluster %s (failed while %s): %s", state.target.name, stage.value, error)
        self._failures.append(
            ClusterFailure(cluster_name=state.target.name, stage=stage, error=error)
        )

    def result(self) -> FanOutResult:
        return FanOutResult(outcomes=list(self._outcomes), failures=list(self._failures))


class FanOutExecutor:
    """Run one pipeline per cluster target and aggregate what succeeds.

    A failure in one cluster is recorded and never affects the others.
    ``max_concurrency`` caps how many pipelines run at once (unbounded when
    None) and ``timeout`` bounds each pipeline in seconds.
    """

    def __init__(
        self,
        factory: ClientFactory,
        resolver: ResourceResolver,
        *,
        timeout: Optional[float] = None,
        max_concurrency: Optional[int] = None,
    ) -> None:
        if max_concurrency is not None and max_concurrency < 1:
            raise ValueError("max_concurrency must be at least 1")
        self.factory = factory
        self.resolver = resolver
        self.timeout = timeout
        self.max_concurrency = max_concurrency

    async def run(
        self,
        targets: Sequence[ClusterTarget],
        resource_name: str,
        namespace: Optional[str] = None,
        all_namespaces: bool = False,
    ) -> FanOutResult:
        collector = ResultCollector()
        semaphore = asyncio.Semaphore(self.max_concurrency) if self.max_concurrency else None

        tasks = [
            asyncio.create_task(
                self._run_target(target, resource_name, namespace, all_namespaces, semaphore)
            )
            for target in targets
        ]
        for finished in asyncio.as_completed(tasks):
            collector.add(await finished)

        result = collector.result()
        if result.all_failed:
            logger.warning("All %d clusters failed to list %s", len(targets), resource_name)
        return result

    async def _run_target(
        self,
        target: ClusterTarget,
        resource_name: str,
        namespace: Optional[str],
        all_namespaces: bool,
        semaphore: Optional[asyncio.Semaphore],
    ) -> ClusterPipelineState:
        state = ClusterPipelineState(target=target)
        async with semaphore if semaphore else contextlib.nullcontext():
            try:
                pipeline = self._drive(state, resource_name, namespace, all_namespaces)
                if self.timeout is not None:
                    await asyncio.wait_for(pipeline, self.timeout)
                else:
                    await pipeline
            except asyncio.TimeoutError:
                state.fail(
                    TargetTimeoutError(
                        f"timed out after {self.timeout}s", cluster=target.name
                    )
                )
            except KubeMCError as exc:
                if exc.cluster is None:
                    exc.cluster = target.name
                state.fail(exc)
            except Exception as exc:
                logger.exception("Unexpected failure for cluster %s", target.name)
                error = KubeMCError(f"unexpected error: {exc}", cluster=target.name)
                error.__cause__ = exc
                state.fail(error)
            finally:
                if state.connection is not None:
                    await asyncio.to_thread(state.connection.close)
        return state

    async def _connect(self, target: ClusterTarget) -> ClusterConnection:
        """Connect in a worker thread.

        If the pipeline is cancelled (for example by its timeout) while the
        thread is still connecting, the connection it eventually returns is
        closed instead of leaked.
        """
        pending = asyncio.ensure_future(asyncio.to_thread(self.factory.connect, target))
        try:
            return await asyncio.shield(pending)
        except asyncio.CancelledError:
            pending.add_done_callback(_close_late_connection)
            raise

    async def _drive(
        self,
        state: ClusterPipelineState,
        resource_name: str,
        namespace: Optional[str],
        all_namespaces: bool,
    ) -> None:
        started = time.monotonic()
        state.connection = await self._connect(state.target)
        state.advance(PipelineStage.CONNECTED)
        debug.log_stage(state.target.name, state.stage.value, time.monotonic() - started)

        state.resolved = await self.resolver.resolve(state.connection, resource_name)
        state.advance(PipelineStage.RESOLVED)
        debug.log_stage(state.target.name, state.stage.value, time.monotonic() - started)

        state.client = self.factory.build(
            state.connection, state.resolved, namespace, all_namespaces
        )
        state.items = await asyncio.to_thread(state.client.list)
        state.advance(PipelineStage.LISTED)
        debug.log_stage(state.target.name, state.stage.value, time.monotonic() - started)
        logger.debug(
            "Listed %d %s from %s", len(state.items), state.resolved.descriptor.plural, state.target.name
        )


def _close_late_connection(future: "asyncio.Future[ClusterConnection]") -> None:
    if future.cancelled() or future.exception() is not None:
        return
    connection = future.result()
    logger.debug("Closing connection to %s opened after its pipeline stopped", connection.name)
    connection.close()
