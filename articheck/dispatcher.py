"""
Bounded fan-out of sections to a verification callable.

Every dispatch call owns its own semaphore: all sections are submitted at
once, each task acquires a permit before calling `verify` and releases it
whether the call succeeds or fails. Results come back keyed by section_id,
one outcome per section, after every call has resolved. Failures are
recorded per section; siblings keep running and nothing is retried.

Author: articheck maintainers | 2026-10-19
"""

import asyncio
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Awaitable, Callable, Dict, List, Sequence

from articheck.config import DEFAULT_CONCURRENCY
from articheck.models import DispatchOutcome, FactCheckResult, Section

import logging

logger = logging.getLogger(__name__)

VerifyFn = Callable[[Section], FactCheckResult]
AsyncVerifyFn = Callable[[Section], Awaitable[FactCheckResult]]


def _check_unique(sections: Sequence[Section]) -> None:
    seen = set()
    for s in sections:
        if s.section_id in seen:
            raise ValueError(f"Duplicate section_id in dispatch: {s.section_id}")
        seen.add(s.section_id)


class BoundedDispatcher:
    """
    Fan sections out to `verify` with at most `max_concurrency` calls in flight.

    Example:
        dispatcher = BoundedDispatcher(max_concurrency=4)
        outcomes = dispatcher.dispatch_all(sections, verifier)
        failed = [o for o in outcomes.values() if not o.ok]
    """

    def __init__(self, max_concurrency: int = DEFAULT_CONCURRENCY):
        if max_concurrency < 1:
            raise ValueError(f"max_concurrency must be >= 1, got {max_concurrency}")
        self.max_concurrency = max_concurrency

    def dispatch_all(
        self,
        sections: Sequence[Section],
        verify: VerifyFn,
    ) -> Dict[str, DispatchOutcome]:
        """Verify every section on a thread pool and wait for all of them."""
        _check_unique(sections)
        if not sections:
            return {}

        permits = threading.BoundedSemaphore(self.max_concurrency)

        def _run(section: Section) -> DispatchOutcome:
            with permits:
                t0 = time.perf_counter()
                try:
                    result = verify(section)
                except Exception as e:
                    elapsed = int((time.perf_counter() - t0) * 1000)
                    logger.warning(f"[dispatcher] {section.section_id} failed: {e}")
                    return DispatchOutcome(section.section_id, error=e, elapsed_ms=elapsed)
            elapsed = int((time.perf_counter() - t0) * 1000)
            logger.debug(f"[dispatcher] {section.section_id} done in {elapsed} ms")
            return DispatchOutcome(section.section_id, result=result, elapsed_ms=elapsed)

        logger.info(
            f"[dispatcher] {len(sections)} sections, "
            f"max {self.max_concurrency} in flight"
        )
        outcomes: Dict[str, DispatchOutcome] = {}
        with ThreadPoolExecutor(max_workers=len(sections)) as executor:
            futures = {executor.submit(_run, s): s for s in sections}
            for future, section in futures.items():
                outcomes[section.section_id] = future.result()

        _log_summary(outcomes)
        return outcomes

    async def dispatch_all_async(
        self,
        sections: Sequence[Section],
        verify: AsyncVerifyFn,
    ) -> Dict[str, DispatchOutcome]:
        """Same contract as dispatch_all() for coroutine verifiers."""
        _check_unique(sections)
        if not sections:
            return {}

        semaphore = asyncio.Semaphore(self.max_concurrency)
        elapsed: Dict[str, int] = {}

        async def bounded(section: Section) -> FactCheckResult:
            async with semaphore:
                t0 = time.perf_counter()
                try:
                    return await verify(section)
                finally:
                    elapsed[section.section_id] = int((time.perf_counter() - t0) * 1000)

        logger.info(
            f"[dispatcher] {len(sections)} sections (async), "
            f"max {self.max_concurrency} in flight"
        )
        results = await asyncio.gather(
            *[bounded(s) for s in sections], return_exceptions=True
        )

        outcomes: Dict[str, DispatchOutcome] = {}
        for section, res in zip(sections, results):
            if isinstance(res, BaseException):
                if not isinstance(res, Exception):
                    raise res
                logger.warning(f"[dispatcher] {section.section_id} failed: {res}")
                outcomes[section.section_id] = DispatchOutcome(
                    section.section_id, error=res, elapsed_ms=elapsed.get(section.section_id, 0)
                )
            else:
                outcomes[section.section_id] = DispatchOutcome(
                    section.section_id, result=res, elapsed_ms=elapsed.get(section.section_id, 0)
                )

        _log_summary(outcomes)
        return outcomes


def _log_summary(outcomes: Dict[str, DispatchOutcome]) -> None:
    failed: List[str] = [sid for sid, o in outcomes.items() if not o.ok]
    if failed:
        logger.warning(f"[dispatcher] {len(failed)}/{len(outcomes)} sections failed: {failed}")
    else:
        logger.info(f"[dispatcher] all {len(outcomes)} sections verified")


def dispatch_all(
    sections: Sequence[Section],
    verify: VerifyFn,
    max_concurrency: int = DEFAULT_CONCURRENCY,
) -> Dict[str, DispatchOutcome]:
    """Convenience wrapper: one dispatcher, one call."""
    return BoundedDispatcher(max_concurrency).dispatch_all(sections, verify)
