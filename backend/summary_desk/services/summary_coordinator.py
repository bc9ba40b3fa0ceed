# summary_desk/services/summary_coordinator.py
"""Summary generation coordinator.

Drives one document from "no summary" to "summary available":

    IDLE -> TRIGGERING -> POLLING -> READY
                 |            |
                 v            v
               FAILED     TIMED_OUT

The summarization webhook gives no completion signal, so after dispatching it
the coordinator re-fetches the whole catalog at a fixed interval until the
document shows has_summary, or until the wall-clock budget runs out.

Each coordinator belongs to one client context (a user session, a CLI run).
The set of names currently in progress is its only shared mutable state.
"""
import asyncio
import time
from contextlib import contextmanager
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable, Dict, FrozenSet, Optional, Set

from summary_desk.config import settings
from summary_desk.core.tasks import OwnedTasks
from summary_desk.exceptions import (
    GenerationInProgress,
    NotFoundError,
    PollTimeout,
    StoreError,
    TriggerRejected,
)
from summary_desk.models import Document
from summary_desk.services.catalog import Catalog
from summary_desk.services.summary_trigger import SummarizationTrigger
from summary_desk.utils.logging import logger

CatalogSource = Callable[[], Awaitable[Catalog]]

# Results kept per coordinator; the oldest names not in progress are dropped first
MAX_RESULTS = 100


class GenerationState(str, Enum):
    IDLE = "idle"
    TRIGGERING = "triggering"
    POLLING = "polling"
    READY = "ready"
    TIMED_OUT = "timed_out"
    FAILED = "failed"

    @property
    def terminal(self) -> bool:
        return self in (GenerationState.READY, GenerationState.TIMED_OUT, GenerationState.FAILED)


@dataclass
class GenerationResult:
    name: str
    state: GenerationState
    catalog: Optional[Catalog] = None
    error: Optional[Exception] = None
    polls: int = 0

    @property
    def has_summary(self) -> bool:
        if self.catalog is None:
            return False
        doc = self.catalog.find(self.name)
        return bool(doc and doc.has_summary)

    @property
    def message(self) -> Optional[str]:
        if self.state == GenerationState.READY:
            return f'Summary ready for "{self.name}".'
        if self.state == GenerationState.TIMED_OUT:
            return (f'Summary generation is taking longer than expected for "{self.name}". '
                    "Please check back in a few minutes or refresh the page.")
        if self.error is not None:
            return str(self.error)
        if self.state == GenerationState.POLLING:
            return "Generating summary..."
        return None


class SummaryGenerationCoordinator:
    """Triggers the summarization webhook and polls the catalog for the result."""

    def __init__(
        self,
        trigger: SummarizationTrigger,
        catalog_source: CatalogSource,
        *,
        poll_interval: Optional[float] = None,
        poll_timeout: Optional[float] = None,
        await_trigger: Optional[bool] = None,
        on_catalog: Optional[Callable[[Catalog], None]] = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        owner: str = "summary-coordinator",
        max_results: int = MAX_RESULTS,
    ):
        self.trigger = trigger
        self.catalog_source = catalog_source
        self.poll_interval = settings.summary_poll_interval_seconds if poll_interval is None else poll_interval
        self.poll_timeout = settings.summary_poll_timeout_seconds if poll_timeout is None else poll_timeout
        self.await_trigger = settings.await_trigger_response if await_trigger is None else await_trigger
        self.on_catalog = on_catalog
        self.clock = clock
        self.sleep = sleep
        self.owner = owner
        self.max_results = max_results

        self._alive = True
        self._in_progress: Set[str] = set()
        self._results: Dict[str, GenerationResult] = {}
        self._catalog: Optional[Catalog] = None
        self._tasks = OwnedTasks(owner)

    # ---------- Observers ----------

    @property
    def alive(self) -> bool:
        return self._alive

    @property
    def in_progress(self) -> FrozenSet[str]:
        return frozenset(self._in_progress)

    @property
    def catalog(self) -> Optional[Catalog]:
        """Latest catalog snapshot seen by any poll."""
        return self._catalog

    def result(self, name: str) -> Optional[GenerationResult]:
        return self._results.get(name)

    def state(self, name: str) -> GenerationState:
        result = self._results.get(name)
        return result.state if result else GenerationState.IDLE

    # ---------- In-progress gate ----------

    def _acquire(self, name: str) -> None:
        if not self._alive:
            raise RuntimeError(f"Coordinator '{self.owner}' is closed")
        if name in self._in_progress:
            raise GenerationInProgress(
                f'Summary generation already in progress for "{name}"',
                operation="generate_summary",
                key=name,
            )
        self._in_progress.add(name)

    def _release(self, name: str) -> None:
        self._in_progress.discard(name)

    @contextmanager
    def _claim(self, name: str):
        self._acquire(name)
        try:
            yield
        finally:
            self._release(name)

    # ---------- Entry points ----------

    async def generate_summary(self, document: Document) -> GenerationResult:
        """Run the full state machine for document and return the terminal result.

        Raises:
            GenerationInProgress: If this coordinator is already generating document.name
        """
        with self._claim(document.name):
            return await self._run(document)

    def start(self, document: Document) -> asyncio.Task:
        """Run generate_summary as a background task owned by this coordinator."""
        self._acquire(document.name)
        self._record(document.name, GenerationState.TRIGGERING)
        try:
            task = self._tasks.spawn(self._run(document), name=f"summary:{document.name}")
        except Exception:
            self._release(document.name)
            raise
        task.add_done_callback(lambda _task: self._release(document.name))
        return task

    async def close(self) -> None:
        """Stop scheduling polls and cancel background work."""
        self._alive = False
        await self._tasks.shutdown()
        logger.info("Summary coordinator closed", extra={"owner": self.owner})

    # ---------- State machine ----------

    def _record(self, name: str, state: GenerationState, **fields) -> GenerationResult:
        result = GenerationResult(name=name, state=state, **fields)
        self._results.pop(name, None)
        self._results[name] = result
        if len(self._results) > self.max_results:
            stale = [n for n in self._results if n not in self._in_progress]
            for old in stale[:len(self._results) - self.max_results]:
                del self._results[old]
        return result

    def _replace_catalog(self, catalog: Catalog) -> None:
        self._catalog = catalog
        if self.on_catalog is not None:
            self.on_catalog(catalog)

    async def _run(self, document: Document) -> GenerationResult:
        name = document.name
        try:
            if document.has_summary:
                result = await self._confirm_summary(document)
                if result is not None:
                    return result

            self._record(name, GenerationState.TRIGGERING)
            try:
                await self._dispatch(document)
            except TriggerRejected as e:
                if e.already_exists:
                    result = await self._confirm_summary(document, rejection=e)
                    if result is not None:
                        return result
                logger.warning("Summary trigger failed", extra={"document": name, "error": str(e)})
                return self._record(name, GenerationState.FAILED, error=e)

            return await self._poll(document)
        except asyncio.CancelledError:
            logger.info("Summary generation cancelled", extra={"document": name, "owner": self.owner})
            raise
        except Exception as e:
            logger.exception("Summary generation crashed", extra={"document": name})
            self._record(name, GenerationState.FAILED, error=e)
            raise

    async def _dispatch(self, document: Document) -> None:
        if self.await_trigger:
            await self.trigger.trigger(document.name, document.storage_key)
        else:
            # Fire-and-forget: failures are logged by the task group, polling starts now
            self._tasks.spawn(
                self.trigger.trigger(document.name, document.storage_key),
                name=f"trigger:{document.name}",
            )
        logger.info("Started summary generation, beginning polling", extra={"document": document.name})

    async def _confirm_summary(self, document: Document,
                               rejection: Optional[TriggerRejected] = None) -> Optional[GenerationResult]:
        """Refresh once to pick up a summary that should already exist.

        Returns READY if the catalog confirms it, FAILED if it doesn't and the
        trigger said it exists, otherwise None (caller proceeds to trigger).
        """
        name = document.name
        try:
            catalog = await self.catalog_source()
        except StoreError as e:
            return self._record(name, GenerationState.FAILED, error=e)

        self._replace_catalog(catalog)
        doc = catalog.find(name)
        if doc is not None and doc.has_summary:
            logger.info("Summary already available", extra={"document": name})
            return self._record(name, GenerationState.READY, catalog=catalog)
        if rejection is not None:
            return self._record(name, GenerationState.FAILED, catalog=catalog, error=rejection)
        return None

    async def _poll(self, document: Document) -> GenerationResult:
        name = document.name
        self._record(name, GenerationState.POLLING)
        started = self.clock()
        polls = 0

        while True:
            if not self._alive:
                logger.info("Coordinator closed, stopping poll", extra={"document": name})
                return self._record(name, GenerationState.POLLING, catalog=self._catalog, polls=polls)

            polls += 1
            try:
                catalog = await self.catalog_source()
            except StoreError as e:
                logger.warning("Catalog refresh failed during polling", extra={"document": name, "error": str(e)})
            else:
                self._replace_catalog(catalog)
                doc = catalog.find(name)
                if doc is None:
                    error = NotFoundError(f"Document no longer exists: {name}", operation="poll_summary", key=name)
                    return self._record(name, GenerationState.FAILED, catalog=catalog, error=error, polls=polls)
                if doc.has_summary:
                    logger.info("Summary ready", extra={"document": name, "polls": polls})
                    return self._record(name, GenerationState.READY, catalog=catalog, polls=polls)
                self._record(name, GenerationState.POLLING, catalog=catalog, polls=polls)

            elapsed = self.clock() - started
            if elapsed >= self.poll_timeout:
                logger.info("Polling timeout", extra={"document": name, "polls": polls, "elapsed": elapsed})
                error = PollTimeout(
                    f'Summary for "{name}" is still in progress, check back later',
                    operation="poll_summary",
                    key=name,
                )
                return self._record(name, GenerationState.TIMED_OUT, catalog=self._catalog, error=error, polls=polls)

            if not self._alive:
                continue
            await self.sleep(self.poll_interval)


__all__ = [
    "CatalogSource",
    "GenerationResult",
    "GenerationState",
    "SummaryGenerationCoordinator",
]
