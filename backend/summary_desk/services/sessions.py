# summary_desk/services/sessions.py
"""Per-user session state.

A session is the client context that owns everything long-lived for one
signed-in user: the "spin-up already fired" flag, the summary coordinator with
its in-progress set and polling tasks, upload verification tasks, and the last
catalog snapshot. Logging out ends the session and cancels all of it.
"""
import asyncio
from typing import Callable, Dict, Optional

from summary_desk.core.storage.blob_store import BlobStore, get_blob_store
from summary_desk.core.tasks import OwnedTasks
from summary_desk.exceptions import ConfigurationError
from summary_desk.services.catalog import Catalog, CatalogBuilder
from summary_desk.services.summary_coordinator import SummaryGenerationCoordinator
from summary_desk.services.summary_trigger import SummarizationTrigger
from summary_desk.utils.logging import logger

TriggerFactory = Callable[[], SummarizationTrigger]
StoreFactory = Callable[[], BlobStore]


class UserSession:
    def __init__(self, user_id: str, store_factory: StoreFactory, trigger_factory: TriggerFactory,
                 coordinator_options: Optional[dict] = None):
        self.user_id = user_id
        self.store_factory = store_factory
        self.trigger_factory = trigger_factory
        self.coordinator_options = coordinator_options or {}
        self.spin_up_triggered = False
        self.tasks = OwnedTasks(f"session:{user_id}")
        self.catalog: Optional[Catalog] = None
        self._coordinator: Optional[SummaryGenerationCoordinator] = None

    @property
    def coordinator(self) -> SummaryGenerationCoordinator:
        """Created on first use so a missing webhook config only fails summary calls."""
        if self._coordinator is None:
            self._coordinator = SummaryGenerationCoordinator(
                self.trigger_factory(),
                self.load_catalog,
                on_catalog=self.replace_catalog,
                owner=f"session:{self.user_id}",
                **self.coordinator_options,
            )
        return self._coordinator

    @property
    def in_progress(self):
        return self._coordinator.in_progress if self._coordinator else frozenset()

    def generation_result(self, name: str):
        """Latest generation result for name, without creating a coordinator."""
        return self._coordinator.result(name) if self._coordinator else None

    def replace_catalog(self, catalog: Catalog) -> None:
        self.catalog = catalog

    def build_catalog(self) -> Catalog:
        catalog = CatalogBuilder(self.store_factory()).build()
        self.replace_catalog(catalog)
        return catalog

    async def load_catalog(self) -> Catalog:
        return await asyncio.to_thread(CatalogBuilder(self.store_factory()).build)

    async def ensure_spin_up(self) -> bool:
        """Fire the spin-up webhook once per session."""
        if self.spin_up_triggered:
            return False
        self.spin_up_triggered = True
        try:
            trigger = self.trigger_factory()
        except ConfigurationError as e:
            logger.warning(f"Skipping spin-up: {e}", extra={"user_id": self.user_id})
            return False
        return await trigger.spin_up()

    async def end(self) -> None:
        if self._coordinator is not None:
            await self._coordinator.close()
        await self.tasks.shutdown()
        logger.info("Session ended", extra={"user_id": self.user_id})


class SessionRegistry:
    """Maps user ids to live sessions. Owned by the application, not a module global."""

    def __init__(self, store_factory: StoreFactory = get_blob_store,
                 trigger_factory: TriggerFactory = SummarizationTrigger.from_settings,
                 coordinator_options: Optional[dict] = None):
        self.store_factory = store_factory
        self.trigger_factory = trigger_factory
        self.coordinator_options = coordinator_options or {}
        self._sessions: Dict[str, UserSession] = {}

    def __contains__(self, user_id: str) -> bool:
        return user_id in self._sessions

    def get(self, user_id: str) -> UserSession:
        session = self._sessions.get(user_id)
        if session is None:
            session = UserSession(user_id, self.store_factory, self.trigger_factory, self.coordinator_options)
            self._sessions[user_id] = session
            logger.info("Session started", extra={"user_id": user_id})
        return session

    async def end(self, user_id: str) -> bool:
        session = self._sessions.pop(user_id, None)
        if session is None:
            return False
        await session.end()
        return True

    async def close_all(self) -> None:
        sessions = list(self._sessions.values())
        self._sessions.clear()
        for session in sessions:
            await session.end()
