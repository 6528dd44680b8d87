from __future__ import annotations

import asyncio
import uuid

from bridge.models import SessionStatus
from bridge.store import SessionStore


def test_create_and_snapshot():
    async def _run():
        store = SessionStore()
        session = await store.create(provider="telnyx", from_phone="+15551234567", to_phone="+15557654321")
        snapshot = await store.get(session.session_id)
        snapshot["status"] = "bridged"
        return session, await store.get(session.session_id), await store.count()

    session, snapshot, count = asyncio.run(_run())

    assert uuid.UUID(session.session_id)
    assert snapshot["status"] == "created"
    assert snapshot["leg_a"] == {"provider_call_id": None, "status": "dialing", "dial_command_id": None}
    assert count == 1


def test_locked_yields_none_for_unknown_session():
    async def _run():
        store = SessionStore()
        async with store.locked("missing") as session:
            return session

    assert asyncio.run(_run()) is None


def test_locked_mutations_are_visible_and_serialized():
    async def _run():
        store = SessionStore()
        session_id = (await store.create(provider="telnyx", from_phone="+1555000001", to_phone="+1555000002")).session_id
        order: list[str] = []
        release = asyncio.Event()

        async def holder():
            async with store.locked(session_id) as session:
                order.append("holder-in")
                await release.wait()
                session.status = SessionStatus.A_DIALING
                order.append("holder-out")

        async def waiter():
            async with store.locked(session_id) as session:
                order.append(f"waiter-saw-{session.status.value}")

        tasks = [asyncio.create_task(holder()), asyncio.create_task(waiter())]
        await asyncio.sleep(0.01)
        release.set()
        await asyncio.gather(*tasks)
        return order

    assert asyncio.run(_run()) == ["holder-in", "holder-out", "waiter-saw-a_dialing"]


def test_delete():
    async def _run():
        store = SessionStore()
        session_id = (await store.create(provider="telnyx", from_phone="+1555000001", to_phone="+1555000002")).session_id
        deleted = await store.delete(session_id)
        return deleted, await store.delete(session_id), await store.get(session_id), await store.count()

    assert asyncio.run(_run()) == (True, False, None, 0)
