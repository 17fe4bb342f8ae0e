import asyncio

from streamdesk.services.guards import SessionStore
from streamdesk.services.state_machine import FlowState, Service

from tests.conftest import FakeClock


class TestSessionStore:
    def test_unknown_conversation_is_idle(self):
        store = SessionStore(clock=FakeClock())
        session = store.get("a")
        assert session.state == FlowState.IDLE
        assert store.has("a") is False

    def test_update_keeps_omitted_fields(self):
        store = SessionStore(clock=FakeClock())
        store.update("a", state=FlowState.AWAITING_EMAIL_PICK, service=Service.NETFLIX, email_options=["x@y.z"])
        store.update("a", state=FlowState.IDLE)
        session = store.get("a")
        assert session.service == Service.NETFLIX
        assert session.email_options == ["x@y.z"]

    def test_expiry(self):
        clock = FakeClock()
        store = SessionStore(ttl_ms=1_000, clock=clock)
        store.update("a", state=FlowState.MANUAL_EMAIL_ENTRY)
        clock.advance(999)
        assert store.expired("a") is False
        clock.advance(2)
        assert store.expired("a")

    def test_update_refreshes_ttl(self):
        clock = FakeClock()
        store = SessionStore(ttl_ms=1_000, clock=clock)
        store.update("a", state=FlowState.AWAITING_TV_EMAIL_PICK)
        clock.advance(800)
        store.update("a", state=FlowState.AWAITING_TV_CODE, email_options=["x@y.z"])
        clock.advance(800)
        assert store.expired("a") is False
        assert store.get("a").selected_email == "x@y.z"

    def test_sweep(self):
        clock = FakeClock()
        store = SessionStore(ttl_ms=1_000, clock=clock)
        store.update("a", state=FlowState.MANUAL_EMAIL_ENTRY)
        clock.advance(500)
        store.update("b", state=FlowState.MANUAL_EMAIL_ENTRY)
        clock.advance(600)
        assert store.sweep() == 1
        assert store.has("a") is False
        assert store.has("b")
        assert len(store) == 1

    def test_sweeper_task_runs_hooks(self):
        clock = FakeClock()
        store = SessionStore(ttl_ms=1_000, clock=clock)
        store.update("a", state=FlowState.MANUAL_EMAIL_ENTRY)
        clock.advance(2_000)
        calls = []

        def hook():
            calls.append(True)
            return 0

        async def run():
            store.start_sweeper(100, hooks=(hook,))
            await asyncio.sleep(0.25)
            await store.stop_sweeper()

        asyncio.run(run())
        assert store.has("a") is False
        assert calls
