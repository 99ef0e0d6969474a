"""入口 / 出口ゲートのマルチチャネルモデル。"""

from dataclasses import dataclass


@dataclass(frozen=True)
class ServiceTicket:
    """1 台分の処理結果 (時刻はすべて分)。"""

    start: float
    end: float
    wait: float


class ServiceStation:
    """c 本の同一チャネルを持つゲート。

    待ち行列そのものは持たず、各チャネルの busy-until だけを管理する。
    到着車両は最も早く空くチャネルに割り当てられる。
    """

    def __init__(self, channels: int):
        self.channels = channels
        self.busy_until: list[float] = [0.0] * channels

    def enqueue(self, now: float, service_time: float) -> ServiceTicket:
        """now に到着した車両を処理に回し、開始・終了・待ち時間を返す。"""
        earliest = min(self.busy_until)
        channel = self.busy_until.index(earliest)

        start = max(now, earliest)
        end = start + service_time
        self.busy_until[channel] = end

        return ServiceTicket(start=start, end=end, wait=start - now)

    def queue_length(self, now: float) -> int:
        """now 時点で埋まっているチャネル数。

        処理中の車両も数えるため、厳密な待ち行列長ではなく近似値。
        """
        return sum(1 for t in self.busy_until if t > now)

    def reset(self):
        self.busy_until = [0.0] * self.channels
