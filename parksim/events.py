"""イベントキュー (時刻順の優先度付きキュー)。"""

import heapq
import itertools
from dataclasses import dataclass, field

# イベント種別
EVENT_ARRIVAL = 0
EVENT_ENTRY_COMPLETE = 1
EVENT_EXIT_START = 2
EVENT_EXIT_COMPLETE = 3


@dataclass(order=True)
class Event:
    time: float
    # 同時刻のイベントは登録順に取り出す
    seq: int
    event_type: int = field(compare=False)
    vehicle_id: int = field(compare=False, default=-1)


class EventQueue:
    """heapq ベースの時刻順キュー。"""

    def __init__(self):
        self._heap: list[Event] = []
        self._counter = itertools.count()

    def push(self, time: float, event_type: int, vehicle_id: int) -> Event:
        event = Event(
            time=time,
            seq=next(self._counter),
            event_type=event_type,
            vehicle_id=vehicle_id,
        )
        heapq.heappush(self._heap, event)
        return event

    def pop(self) -> Event:
        return heapq.heappop(self._heap)

    def peek(self) -> Event | None:
        return self._heap[0] if self._heap else None

    def __len__(self) -> int:
        return len(self._heap)

    def __bool__(self) -> bool:
        return bool(self._heap)
