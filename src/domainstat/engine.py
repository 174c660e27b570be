"""
Resolution engine: turns a set of adapters into one verdict for one domain.

Two modes:

- staggered (default): adapters are launched one at a time, each getting a
  head start of `stagger_delay[namespace]` ms before the next one is
  launched. A definitive answer ends the wait immediately.
- burst: every adapter is launched at once and the first definitive answer
  wins.

In both modes a single domain token is the parent of every adapter's
private timeout token. When a definitive response arrives the token fires,
in-flight adapters abort, and anything that settles afterwards is ignored.
"""

import asyncio
import logging
from typing import Sequence

from .adapters.base import ROLE_RDAP, BaseAdapter
from .adapters.tld import TldRegistry
from .cancellation import CancellationToken
from .errors import AdapterError, classify_exception
from .models import (
    RESOLVER_APP,
    AdapterResponse,
    Availability,
    CheckOptions,
    DomainStatus,
    ParsedDomain,
)

logger = logging.getLogger(__name__)

# Head start each adapter gets before the next one is launched (serial mode)
DEFAULT_STAGGER_DELAY_MS = 200

RESOLVED_REASON = "resolved"
FINISHED_REASON = "finished"


class _Resolution:
    """Mutable state of one domain resolution. Touched only from the event loop."""

    def __init__(self, domain: ParsedDomain) -> None:
        self.domain = domain
        self.token = CancellationToken()
        self.raw: dict = {}
        self.latencies: dict[str, int] = {}
        self.verdict: AdapterResponse | None = None
        self.last_error: AdapterError | None = None
        self.pending = 0
        self.sealed = False
        self.settled = asyncio.Event()

    def launched(self) -> None:
        self.pending += 1
        self.settled.clear()

    def record(self, response: AdapterResponse) -> None:
        self.pending -= 1
        if self.pending == 0:
            self.settled.set()

        if self.sealed:
            logger.debug("discarding late %s response for %s", response.source, self.domain.domain)
            return

        self.raw[response.source] = response.raw
        if response.latency is not None:
            self.latencies[response.source] = response.latency

        if response.definitive:
            self.verdict = response
            self.sealed = True
            self.settled.set()
            self.token.cancel(RESOLVED_REASON)
        elif response.error is not None:
            logger.warning(
                "%s failed for %s: %s %s",
                response.source, self.domain.domain, response.error.code, response.error.message,
            )
            self.last_error = response.error

    @property
    def finished(self) -> bool:
        return self.sealed or self.pending == 0

    def result(self) -> DomainStatus:
        if self.verdict is not None:
            return DomainStatus(
                domain=self.domain.domain,
                availability=self.verdict.availability,
                resolver=self.verdict.source,
                raw=dict(self.raw),
                latencies=dict(self.latencies),
            )
        return DomainStatus(
            domain=self.domain.domain,
            availability=Availability.UNKNOWN,
            resolver=RESOLVER_APP,
            raw=dict(self.raw),
            latencies=dict(self.latencies),
            error=self.last_error,
        )


class ResolutionEngine:
    """
    Resolves single domains against an ordered adapter list.

    Args:
        adapters: Default adapters, in launch order
        tld_registry: Suffix -> {role: adapter} substitutions
    """

    def __init__(self, adapters: Sequence[BaseAdapter], tld_registry: TldRegistry | None = None) -> None:
        self.adapters = list(adapters)
        self.tld_registry = tld_registry or TldRegistry()

    def build_plan(self, domain: ParsedDomain, options: CheckOptions) -> list[BaseAdapter]:
        """The adapters to run for `domain`, in launch order."""
        overrides = self.tld_registry.lookup(domain.public_suffix)
        plan: list[BaseAdapter] = []
        for adapter in self.adapters:
            adapter = overrides.get(adapter.role, adapter)
            if adapter in plan:
                continue
            if options.tld_config.skip_rdap and adapter.role == ROLE_RDAP:
                continue
            if not options.adapter_allowed(adapter.namespace):
                continue
            plan.append(adapter)
        return plan

    async def resolve(self, domain: ParsedDomain, options: CheckOptions) -> DomainStatus:
        plan = self.build_plan(domain, options)
        mode = "burst" if options.burst_mode else "serial"
        logger.info(
            "domain check start: %s (%s: %s)",
            domain.domain, mode, ", ".join(a.namespace for a in plan) or "no adapters",
        )

        state = _Resolution(domain)
        tasks: list[asyncio.Task] = []
        try:
            if options.burst_mode:
                await self._run_burst(plan, state, options, tasks)
            else:
                await self._run_staggered(plan, state, options, tasks)
        finally:
            state.token.cancel(FINISHED_REASON)
            leftovers = [t for t in tasks if not t.done()]
            for task in leftovers:
                task.cancel()
            if leftovers:
                await asyncio.gather(*leftovers, return_exceptions=True)

        status = state.result()
        logger.info(
            "domain check end: %s -> %s (resolver %s)",
            domain.domain, status.availability.value, status.resolver,
        )
        return status

    def _launch(
        self, adapter: BaseAdapter, state: _Resolution, options: CheckOptions, tasks: list
    ) -> asyncio.Task:
        # 0 and missing both mean "use the adapter's default"
        timeout_ms = options.timeout_config.get(adapter.namespace) or None

        async def run() -> None:
            try:
                response = await adapter.check(
                    state.domain,
                    timeout_ms=timeout_ms,
                    tld_config=options.tld_config,
                    token=state.token,
                )
            except Exception as e:
                response = adapter.respond(
                    state.domain, Availability.UNKNOWN, error=classify_exception(e, timeout_ms)
                )
            state.record(response)

        state.launched()
        task = asyncio.ensure_future(run())
        tasks.append(task)
        return task

    async def _run_burst(self, plan, state: _Resolution, options: CheckOptions, tasks: list) -> None:
        for adapter in plan:
            self._launch(adapter, state, options, tasks)
        if plan:
            await state.settled.wait()

    async def _run_staggered(self, plan, state: _Resolution, options: CheckOptions, tasks: list) -> None:
        for index, adapter in enumerate(plan):
            if state.sealed:
                break
            self._launch(adapter, state, options, tasks)
            if index < len(plan) - 1:
                delay_ms = options.stagger_delay.get(adapter.namespace, DEFAULT_STAGGER_DELAY_MS)
                await self._pause(state, delay_ms / 1000)
        await self._pause(state, None)

    async def _pause(self, state: _Resolution, timeout: float | None) -> None:
        """
        Wait until `timeout` elapses, the domain token fires, or every
        launched adapter has settled. `timeout=None` waits for the latter two.
        """
        if state.finished:
            return
        if timeout is not None and timeout <= 0:
            return
        waiter = asyncio.ensure_future(state.token.wait())
        settled = asyncio.ensure_future(state.settled.wait())
        try:
            await asyncio.wait({waiter, settled}, timeout=timeout, return_when=asyncio.FIRST_COMPLETED)
        finally:
            waiter.cancel()
            settled.cancel()
