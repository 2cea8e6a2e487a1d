"""Auto-save pipeline — debounced persistence of dirty scenario fields.

State machine per active scenario::

    idle --edit--> pending --quiet period--> saving --ok--> saved
                                                    \\--fail--> error

Each edit restarts the quiet-period timer. Edits that arrive while a save is
in flight stay in the store's dirty set and go out with the next cycle. A
save result for a scenario that is no longer active is discarded.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Optional, Protocol

from dealdesk.config import settings
from dealdesk.exceptions import PersistenceFailure
from dealdesk.models.persistence import PersistScenarioRequest
from dealdesk.models.scenario import Scenario
from dealdesk.services.scenario_store import ScenarioStore

logger = logging.getLogger(__name__)


class ScenarioPersistence(Protocol):
    async def persist_scenario(self, request: PersistScenarioRequest) -> Scenario: ...


class AutoSavePipeline:
    """Debounces store edits into single persistence calls."""

    def __init__(
        self,
        store: ScenarioStore,
        persistence: ScenarioPersistence,
        acting_user_id: str,
        debounce_seconds: Optional[float] = None,
    ) -> None:
        self._store = store
        self._persistence = persistence
        self._acting_user_id = acting_user_id
        if debounce_seconds is None:
            debounce_seconds = settings.AUTOSAVE_DEBOUNCE_MS / 1000.0
        self._debounce_seconds = debounce_seconds
        self._timer: Optional[asyncio.TimerHandle] = None
        self._save_task: Optional[asyncio.Task] = None
        self._rearm_after_save = False
        self.save_count = 0

    @property
    def is_pending(self) -> bool:
        return self._timer is not None

    @property
    def is_saving(self) -> bool:
        return self._save_task is not None and not self._save_task.done()

    def schedule(self) -> None:
        """Restart the quiet-period timer if the store has dirty fields.

        Must be called from a running event loop.
        """
        if not self._store.is_dirty:
            return
        self._cancel_timer()
        self._store.mark_pending()
        loop = asyncio.get_running_loop()
        self._timer = loop.call_later(self._debounce_seconds, self._on_quiet_period)

    def retry(self) -> None:
        """Re-arm the timer after a failed save."""
        self.schedule()

    def cancel(self) -> None:
        """Cancel the pending timer. An in-flight save is left to finish."""
        self._cancel_timer()
        self._rearm_after_save = False

    async def flush(self) -> None:
        """Save dirty fields now and wait for the result."""
        self._cancel_timer()
        if self.is_saving:
            await self._save_task
        if self._store.is_dirty:
            self._save_task = asyncio.ensure_future(self._save())
            await self._save_task

    async def aclose(self) -> None:
        self.cancel()
        if self.is_saving:
            await self._save_task

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------
    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _on_quiet_period(self) -> None:
        self._timer = None
        if self.is_saving:
            self._rearm_after_save = True
            return
        self._save_task = asyncio.ensure_future(self._save())

    async def _save(self) -> None:
        request = self._store.begin_save(self._acting_user_id)
        if request is None:
            return
        self.save_count += 1
        logger.info(
            "Saving %d field(s) on scenario %s: %s",
            len(request.updates), request.scenario_id, ", ".join(request.updates),
        )
        try:
            record = await self._persistence.persist_scenario(request)
        except PersistenceFailure as e:
            if request.scenario_id != self._store.scenario_id:
                logger.info("Discarding failed save for inactive scenario %s", request.scenario_id)
                return
            logger.warning("Save failed for scenario %s: %s", request.scenario_id, e)
            self._store.fail_save(request, e)
            self._rearm_after_save = False
            return
        except Exception as e:
            # Unexpected collaborator error; the captured fields go back to the dirty set
            logger.exception("Save raised unexpectedly for scenario %s", request.scenario_id)
            self._store.fail_save(request, e)
            self._rearm_after_save = False
            return

        if request.scenario_id != self._store.scenario_id:
            logger.info("Discarding save result for inactive scenario %s", request.scenario_id)
            return
        self._store.complete_save(request, record)

        if self._rearm_after_save or self._store.is_dirty:
            self._rearm_after_save = False
            self.schedule()
