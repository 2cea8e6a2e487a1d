"""Auto-save pipeline: debounce, coalescing, failure and in-flight edits."""
import asyncio

import pytest

from conftest import FakeDealApi
from dealdesk.models.scenario import Scenario, ScenarioType
from dealdesk.services.autosave import AutoSavePipeline
from dealdesk.services.scenario_store import SaveStatus, ScenarioStore

DEBOUNCE = 0.02
SETTLE = 0.15


def _make_scenario(**overrides) -> Scenario:
    defaults = dict(
        id="S-1",
        deal_id="D-1",
        scenario_type=ScenarioType.FINANCE,
        vehicle_price="20000",
        down_payment="2000",
        term=60,
        apr="6",
    )
    defaults.update(overrides)
    return Scenario(**defaults)


def _make_pipeline(**overrides):
    store = ScenarioStore(_make_scenario(**overrides))
    api = FakeDealApi(scenarios=[store.scenario])
    pipeline = AutoSavePipeline(store, api, "U-1", debounce_seconds=DEBOUNCE)
    return store, api, pipeline


def _edit(store, pipeline, **values):
    store.update_fields(values)
    pipeline.schedule()


@pytest.mark.asyncio
async def test_rapid_edits_coalesce_into_one_save():
    store, api, pipeline = _make_pipeline()
    _edit(store, pipeline, vehicle_price="21000")
    _edit(store, pipeline, down_payment="2500")
    _edit(store, pipeline, term=72)
    assert store.save_status == SaveStatus.PENDING
    assert pipeline.is_pending

    await asyncio.sleep(SETTLE)

    assert len(api.persist_calls) == 1
    request = api.persist_calls[0]
    assert {"vehicle_price", "down_payment", "term", "monthly_payment"} <= set(request.updates)
    assert store.save_status == SaveStatus.SAVED
    assert not store.has_unsaved_changes
    await pipeline.aclose()


@pytest.mark.asyncio
async def test_schedule_without_edits_does_nothing():
    store, api, pipeline = _make_pipeline()
    pipeline.schedule()
    assert not pipeline.is_pending
    await asyncio.sleep(SETTLE)
    assert api.persist_calls == []
    assert store.save_status == SaveStatus.IDLE


@pytest.mark.asyncio
async def test_failed_save_keeps_edits_until_retry():
    store, api, pipeline = _make_pipeline()
    api.persist_failures = 1
    _edit(store, pipeline, vehicle_price="21000")
    await asyncio.sleep(SETTLE)

    assert store.save_status == SaveStatus.ERROR
    assert "vehicle_price" in store.dirty_fields
    assert "500" in store.last_error

    pipeline.retry()
    await asyncio.sleep(SETTLE)
    assert len(api.persist_calls) == 2
    assert store.save_status == SaveStatus.SAVED
    assert not store.is_dirty
    assert api.scenarios["S-1"].vehicle_price == store.scenario.vehicle_price


@pytest.mark.asyncio
async def test_edits_during_save_go_out_in_next_cycle():
    store, api, pipeline = _make_pipeline()
    api.hold_saves = asyncio.Event()
    _edit(store, pipeline, vehicle_price="21000")
    await asyncio.sleep(SETTLE)
    assert pipeline.is_saving
    assert store.save_status == SaveStatus.SAVING

    _edit(store, pipeline, down_payment="3000")
    await asyncio.sleep(SETTLE)
    assert len(api.persist_calls) == 1

    api.hold_saves.set()
    await asyncio.sleep(SETTLE)

    assert len(api.persist_calls) == 2
    assert "vehicle_price" in api.persist_calls[0].updates
    assert "down_payment" not in api.persist_calls[0].updates
    assert "down_payment" in api.persist_calls[1].updates
    assert "vehicle_price" not in api.persist_calls[1].updates
    assert store.save_status == SaveStatus.SAVED


@pytest.mark.asyncio
async def test_save_result_for_switched_scenario_is_discarded():
    store, api, pipeline = _make_pipeline()
    api.hold_saves = asyncio.Event()
    _edit(store, pipeline, vehicle_price="21000")
    await asyncio.sleep(SETTLE)
    assert pipeline.is_saving

    store.receive_server_snapshot(_make_scenario(id="S-2", vehicle_price="15000"))
    pipeline.cancel()
    api.hold_saves.set()
    await asyncio.sleep(SETTLE)

    assert store.scenario_id == "S-2"
    assert store.save_status == SaveStatus.IDLE
    assert store.last_saved_at is None
    assert not store.is_dirty


@pytest.mark.asyncio
async def test_flush_saves_immediately():
    store, api, pipeline = _make_pipeline()
    _edit(store, pipeline, vehicle_price="21000")
    await pipeline.flush()
    assert len(api.persist_calls) == 1
    assert not pipeline.is_pending
    assert store.save_status == SaveStatus.SAVED
    assert pipeline.save_count == 1


class _BrokenPersistence:
    def __init__(self):
        self.calls = 0

    async def persist_scenario(self, request):
        self.calls += 1
        raise RuntimeError("connection pool exhausted")


@pytest.mark.asyncio
async def test_unexpected_save_error_keeps_edits_for_retry():
    store = ScenarioStore(_make_scenario())
    persistence = _BrokenPersistence()
    pipeline = AutoSavePipeline(store, persistence, "U-1", debounce_seconds=DEBOUNCE)
    _edit(store, pipeline, vehicle_price="21000")
    await asyncio.sleep(SETTLE)

    assert persistence.calls == 1
    assert store.save_status == SaveStatus.ERROR
    assert "connection pool exhausted" in store.last_error
    assert "vehicle_price" in store.dirty_fields
    assert not pipeline.is_saving

    await pipeline.flush()
    assert persistence.calls == 2
    assert "vehicle_price" in store.dirty_fields
