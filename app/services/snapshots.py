"""
services/snapshots.py

컬렉션 실시간 구독(snapshot subscription) 허브.

회원 목록이 바뀔 때마다 "변경분"이 아니라 컬렉션 전체 스냅샷을
모든 구독자에게 전달한다. 구독자는 받은 스냅샷으로
자신이 들고 있던 목록 전체를 교체해야 한다 (병합하지 않음).

설계 원칙:
- subscribe()는 해제 가능한 Subscription 핸들을 반환
- 화면 이탈 / 연결 종료 시 반드시 unsubscribe (with 문 지원)
- unsubscribe는 여러 번 호출해도 안전
- 한 구독자의 콜백 오류가 다른 구독자 전달을 막지 않음

관련 파일:
- app.services.members   : 회원 변경 후 publish 호출
- app.routers.members    : /members/stream (Server-Sent Events)

"""

import asyncio
import logging
import threading
from typing import Any, Callable, Sequence

LOGGER = logging.getLogger(__name__)

SnapshotCallback = Callable[[list], None]


class Subscription:
    def __init__(self, hub: "SnapshotHub", callback: SnapshotCallback):
        self._hub = hub
        self.callback = callback
        self.active = True

    def unsubscribe(self) -> None:
        if self.active:
            self.active = False
            self._hub._remove(self)

    def __enter__(self) -> "Subscription":
        return self

    def __exit__(self, *exc) -> None:
        self.unsubscribe()


class SnapshotHub:
    def __init__(self, name: str):
        self.name = name
        self._subscribers: list[Subscription] = []
        self._lock = threading.Lock()

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscribers)

    def subscribe(self, callback: SnapshotCallback) -> Subscription:
        subscription = Subscription(self, callback)
        with self._lock:
            self._subscribers.append(subscription)
        LOGGER.debug("%s: subscriber added (total=%d)", self.name, len(self._subscribers))
        return subscription

    def _remove(self, subscription: Subscription) -> None:
        with self._lock:
            if subscription in self._subscribers:
                self._subscribers.remove(subscription)
        LOGGER.debug("%s: subscriber removed", self.name)

    def publish(self, snapshot: Sequence[Any]) -> None:
        with self._lock:
            targets = list(self._subscribers)
        for subscription in targets:
            # 구독자마다 별도 복사본 전달
            try:
                subscription.callback(list(snapshot))
            except Exception:
                LOGGER.exception("%s: snapshot delivery failed", self.name)


class SnapshotView:
    """마지막으로 받은 스냅샷을 그대로 들고 있는 구독자."""

    def __init__(self):
        self.items: list = []
        self.version = 0

    def __call__(self, snapshot: list) -> None:
        self.items = snapshot
        self.version += 1


class LatestSnapshotSlot:
    """
    이벤트 루프 쪽 구독자. 가장 최근 스냅샷 하나만 보관한다.

    - publish는 어느 스레드에서든 호출될 수 있으므로 loop.call_soon_threadsafe로 넘김
    - 읽기 전에 새 스냅샷이 오면 이전 것은 버림
    """

    def __init__(self, loop: asyncio.AbstractEventLoop):
        self._loop = loop
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=1)

    def __call__(self, snapshot: list) -> None:
        self._loop.call_soon_threadsafe(self._replace, snapshot)

    def _replace(self, snapshot: list) -> None:
        if self._queue.full():
            self._queue.get_nowait()
        self._queue.put_nowait(snapshot)

    async def get(self, timeout: float) -> list:
        return await asyncio.wait_for(self._queue.get(), timeout)


member_snapshots = SnapshotHub("members")
