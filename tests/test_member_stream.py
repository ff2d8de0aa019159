"""
회원 목록 실시간 구독(SSE) 테스트.
- 구독은 스트림이 시작될 때만 생기고 스트림을 닫으면 해제되는지,
  읽기 전에 쌓인 변경은 가장 최근 스냅샷 하나로 전달되는지 검증한다.
"""

import asyncio
import json
from datetime import datetime, timezone

import pytest

from app.models.member import Member
from app.routers import members as members_router
from app.routers.members import stream_members
from app.services.snapshots import LatestSnapshotSlot, member_snapshots


def _payload(chunk: str) -> list:
    assert chunk.startswith("event: snapshot\n")
    return json.loads(chunk.split("data: ", 1)[1])


def test_closing_unstarted_stream_leaves_no_subscriber():
    async def scenario():
        response = await stream_members(_=None)
        await response.body_iterator.aclose()

    before = member_snapshots.subscriber_count
    asyncio.run(scenario())
    assert member_snapshots.subscriber_count == before


def test_stream_sends_snapshot_then_latest_update(db_session, session_factory, monkeypatch):
    db_session.add(Member(name="Existing", email="e@x.com", created_at=datetime.now(timezone.utc)))
    db_session.commit()
    monkeypatch.setattr(members_router, "SessionLocal", session_factory)

    async def scenario():
        response = await stream_members(_=None)
        events = response.body_iterator
        first = await events.__anext__()
        subscribed = member_snapshots.subscriber_count

        member_snapshots.publish([{"name": "stale"}])
        member_snapshots.publish([{"name": "fresh"}])
        second = await events.__anext__()

        await events.aclose()
        return first, subscribed, second

    first, subscribed, second = asyncio.run(scenario())
    assert [m["name"] for m in _payload(first)] == ["Existing"]
    assert subscribed == 1
    assert _payload(second) == [{"name": "fresh"}]
    assert member_snapshots.subscriber_count == 0


def test_latest_snapshot_slot_keeps_only_newest():
    async def scenario():
        slot = LatestSnapshotSlot(asyncio.get_running_loop())
        slot([1])
        slot([2])
        slot([3])
        newest = await slot.get(timeout=1)
        with pytest.raises(asyncio.TimeoutError):
            await slot.get(timeout=0.01)
        return newest

    assert asyncio.run(scenario()) == [3]
