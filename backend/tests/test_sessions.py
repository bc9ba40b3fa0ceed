import asyncio

from helpers import FakeTrigger, at, put_pdf, put_summary
from summary_desk.exceptions import ConfigurationError
from summary_desk.services.sessions import SessionRegistry


def _unconfigured():
    raise ConfigurationError("Summary generation is not configured", operation="trigger_summary")


def test_spin_up_only_once_per_session(store):
    trigger = FakeTrigger()
    registry = SessionRegistry(store_factory=lambda: store, trigger_factory=lambda: trigger)
    session = registry.get("user-1")

    async def scenario():
        return [await session.ensure_spin_up(), await session.ensure_spin_up()]

    assert asyncio.run(scenario()) == [True, False]
    assert trigger.spin_ups == 1


def test_missing_webhook_config_skips_spin_up(store):
    registry = SessionRegistry(store_factory=lambda: store, trigger_factory=_unconfigured)
    session = registry.get("user-1")

    assert asyncio.run(session.ensure_spin_up()) is False
    assert session.spin_up_triggered


def test_sessions_are_per_user(store):
    registry = SessionRegistry(store_factory=lambda: store, trigger_factory=FakeTrigger)

    assert registry.get("a") is registry.get("a")
    assert registry.get("a") is not registry.get("b")


def test_catalog_snapshot_is_replaced(store):
    registry = SessionRegistry(store_factory=lambda: store, trigger_factory=FakeTrigger)
    session = registry.get("user-1")
    put_pdf(store, "a.pdf", at(1))

    first = session.build_catalog()
    put_summary(store, "a")
    second = session.build_catalog()

    assert session.catalog is second
    assert not first.find("a.pdf").has_summary
    assert second.find("a.pdf").has_summary


def test_no_coordinator_until_first_generation(store):
    registry = SessionRegistry(store_factory=lambda: store, trigger_factory=_unconfigured)
    session = registry.get("user-1")

    assert session.in_progress == frozenset()
    assert session.generation_result("a.pdf") is None


def test_end_cancels_polling_and_background_tasks(store):
    put_pdf(store, "a.pdf", at(1))
    registry = SessionRegistry(
        store_factory=lambda: store,
        trigger_factory=FakeTrigger,
        coordinator_options={"poll_interval": 0.01, "poll_timeout": 30},
    )

    async def scenario():
        session = registry.get("user-1")
        catalog = await session.load_catalog()
        poll_task = session.coordinator.start(catalog.find("a.pdf"))
        idle_task = session.tasks.spawn(asyncio.sleep(60), name="idle")
        await asyncio.sleep(0.05)
        ended = await registry.end("user-1")
        return session, poll_task, idle_task, ended

    session, poll_task, idle_task, ended = asyncio.run(scenario())

    assert ended
    assert poll_task.cancelled()
    assert idle_task.cancelled()
    assert session.tasks.closed
    assert "user-1" not in registry
    assert asyncio.run(registry.end("user-1")) is False


def test_close_all_ends_every_session(store):
    registry = SessionRegistry(store_factory=lambda: store, trigger_factory=FakeTrigger)

    async def scenario():
        sessions = [registry.get("a"), registry.get("b")]
        await registry.close_all()
        return sessions

    sessions = asyncio.run(scenario())

    assert all(s.tasks.closed for s in sessions)
    assert "a" not in registry and "b" not in registry
