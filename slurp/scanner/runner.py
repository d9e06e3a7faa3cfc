"""Enumeration pipeline runner - orchestrates one slurp invocation.

This is where all the pieces come together:
1. Expand targets/keywords into candidate hostnames
2. Fill the pending queue
3. Dispatch: take a permit, pop a candidate, spawn a probe task
4. Settle each outcome: record it, or put the candidate back with back-off
5. Stop when no work is outstanding, report stats
"""

import asyncio
import logging
from contextlib import suppress
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Set

import aiohttp

from slurp.util.concurrency import ConcurrencyLimiter
from slurp.util.log import log_result
from slurp.util.time import now_utc, duration_ms
from slurp.util.types import Candidate, Classification, ProbeOutcome, ScanConfig, Target
from slurp.scanner.pending_queue import PendingQueue
from slurp.scanner.permutations import PermutationGenerator, TemplateSet, load_templates
from slurp.scanner.prober import BucketProber, RetryPolicy
from slurp.scanner.stats import StatsAggregator

logger = logging.getLogger(__name__)


@dataclass
class RunContext:
    """Everything one run shares between the dispatcher and its probe tasks.

    Built fresh per run and dropped afterwards - no module-level state.
    """
    config: ScanConfig
    prober: BucketProber
    queue: PendingQueue
    limiter: ConcurrencyLimiter
    stats: StatsAggregator
    retry: RetryPolicy
    tasks: Set["asyncio.Task"] = field(default_factory=set)


class Dispatcher:
    """Single consumer of the pending queue.

    Keeps at most `concurrency` probe tasks alive. Returns once every entry
    ever put on the queue (including retries) has been resolved.
    """

    def __init__(self, ctx: RunContext):
        self.ctx = ctx

    async def run(self):
        loop_task = asyncio.create_task(self._dispatch_loop())
        try:
            await self.ctx.queue.join()
        finally:
            loop_task.cancel()
            with suppress(asyncio.CancelledError):
                await loop_task
            if self.ctx.tasks:
                await asyncio.gather(*self.ctx.tasks, return_exceptions=True)

    async def _dispatch_loop(self):
        while True:
            await self.ctx.limiter.acquire()
            try:
                (candidate,) = await self.ctx.queue.get(1)
            except asyncio.CancelledError:
                self.ctx.limiter.release()
                raise

            task = asyncio.create_task(self._probe_task(candidate))
            self.ctx.tasks.add(task)
            task.add_done_callback(self.ctx.tasks.discard)

    async def _probe_task(self, candidate: Candidate):
        """Probe, settle, and resolve one queue entry.

        The permit is released before any back-off sleep so waiting retries
        don't block fresh work. task_done() always comes last, after a retry
        has been put back, so the outstanding count never dips to zero early.
        """
        released = False
        try:
            outcome = await self.ctx.prober.probe(candidate)
            retry = settle(self.ctx, outcome)

            self.ctx.limiter.release()
            released = True

            if retry is not None:
                delay = self.ctx.retry.backoff(retry.attempt)
                if delay:
                    await asyncio.sleep(delay)
                self.ctx.queue.put(retry)
        except Exception:
            logger.exception(f"Unexpected error while probing http://{candidate.hostname}")
        finally:
            if not released:
                self.ctx.limiter.release()
            self.ctx.queue.task_done()


def settle(ctx: RunContext, outcome: ProbeOutcome) -> Optional[Candidate]:
    """Record an outcome and decide whether the candidate goes around again.

    Returns:
        The retried candidate to re-insert, or None when it's finished
    """
    candidate = outcome.candidate
    classification = outcome.classification
    logger.debug(f"Outcome: {outcome.to_dict()}")

    if classification in (Classification.PUBLIC, Classification.FORBIDDEN):
        log_result(logger, logging.INFO, classification, _display(outcome), candidate.origin)
        ctx.stats.record(classification, outcome.link)
    elif classification is Classification.NOT_FOUND:
        log_result(logger, logging.DEBUG, classification, _display(outcome), candidate.origin)
        ctx.stats.record(classification, outcome.link)
    elif classification is Classification.RATE_LIMITED:
        log_result(logger, logging.INFO, classification, f"http://{candidate.hostname}",
                   note="(added to queue to process later)")
        ctx.stats.record(classification, outcome.link)
    elif classification is Classification.UNKNOWN:
        log_result(logger, logging.INFO, classification, _display(outcome), candidate.origin,
                   note=f"({outcome.status})")

    if not outcome.requeue:
        return None

    if ctx.retry.should_retry(candidate):
        return candidate.retried()

    log_result(logger, logging.WARNING, Classification.GAVE_UP, f"http://{candidate.hostname}",
               candidate.origin, note=f"after {candidate.attempt + 1} attempts")
    ctx.stats.record(Classification.GAVE_UP, candidate.hostname)
    return None


def _display(outcome: ProbeOutcome) -> str:
    """Redirect targets are already full URLs; bare hostnames get a scheme."""
    if outcome.redirected:
        return outcome.link
    return f"http://{outcome.link}"


class ScanRunner:
    """Runs a domain or keyword enumeration end to end.

    This is the main engine - coordinates all the moving parts.
    """

    def __init__(self, config: ScanConfig,
                 template_set: Optional[TemplateSet] = None,
                 session: Optional[aiohttp.ClientSession] = None):
        """Initialize runner; loads templates from config if none are given.

        Raises:
            PermutationConfigError: the template resource is unusable
        """
        self.config = config
        self.template_set = template_set or load_templates(config.permutations_file)
        self.generator = PermutationGenerator(self.template_set)
        self.session = session

        logger.info(f"Concurrency: {config.concurrency}, endpoint: {config.endpoint}")
        logger.debug(f"{len(self.template_set.templates)} templates, service suffix {self.template_set.service_suffix}")

    async def run_domains(self, targets: List[Target]) -> StatsAggregator:
        logger.info("Building permutations....")
        candidates = [c for target in targets for c in self.generator.domain_candidates(target)]
        return await self.run(candidates)

    async def run_keywords(self, keywords: List[str]) -> StatsAggregator:
        logger.info("Building permutations....")
        candidates = [c for keyword in keywords for c in self.generator.keyword_candidates(keyword)]
        return await self.run(candidates)

    async def run(self, candidates: Iterable[Candidate]) -> StatsAggregator:
        """Probe every candidate until nothing is outstanding."""
        start_time = now_utc()

        async with BucketProber(self.config, session=self.session) as prober:
            ctx = RunContext(
                config=self.config,
                prober=prober,
                queue=PendingQueue(),
                limiter=ConcurrencyLimiter(self.config.concurrency),
                stats=StatsAggregator(),
                retry=RetryPolicy.from_config(self.config),
            )

            for candidate in candidates:
                ctx.queue.put(candidate)

            logger.info(f"Processing {len(ctx.queue)} permutations....")
            if ctx.queue.outstanding:
                await Dispatcher(ctx).run()

        elapsed = duration_ms(start_time) / 1000
        logger.info(
            f"Done in {elapsed:.1f}s: {ctx.queue.total_put} probes queued "
            f"(peak {ctx.limiter.peak_in_flight} in flight)"
        )
        return ctx.stats
