"""車両のライフサイクル。"""

from dataclasses import dataclass
from enum import Enum


class VehicleState(Enum):
    ARRIVED = "ARRIVED"
    REJECTED = "REJECTED"
    ENTERING = "ENTERING"
    PARKED = "PARKED"
    EXITING = "EXITING"
    DEPARTED = "DEPARTED"


# 許可される状態遷移
_TRANSITIONS: dict[VehicleState, tuple[VehicleState, ...]] = {
    VehicleState.ARRIVED: (VehicleState.REJECTED, VehicleState.ENTERING),
    VehicleState.ENTERING: (VehicleState.PARKED,),
    VehicleState.PARKED: (VehicleState.EXITING,),
    VehicleState.EXITING: (VehicleState.DEPARTED,),
    VehicleState.REJECTED: (),
    VehicleState.DEPARTED: (),
}


class IllegalTransition(RuntimeError):
    pass


@dataclass
class Vehicle:
    """1 レプリケーション内でのみ使う車両レコード。

    各時刻フィールドは対応する状態に入った時点で設定される。
    """

    vehicle_id: int
    arrival_time: float
    state: VehicleState = VehicleState.ARRIVED
    entry_start_time: float | None = None
    parking_duration: float | None = None
    entry_complete_time: float | None = None
    exit_start_time: float | None = None
    exit_complete_time: float | None = None

    def _move(self, target: VehicleState):
        if target not in _TRANSITIONS[self.state]:
            raise IllegalTransition(
                f"vehicle {self.vehicle_id}: {self.state.value} -> {target.value}"
            )
        self.state = target

    def reject(self):
        self._move(VehicleState.REJECTED)

    def start_entry(self, time: float, parking_duration: float):
        self._move(VehicleState.ENTERING)
        self.entry_start_time = time
        self.parking_duration = parking_duration

    def park(self, time: float):
        self._move(VehicleState.PARKED)
        self.entry_complete_time = time

    def start_exit(self, time: float):
        self._move(VehicleState.EXITING)
        self.exit_start_time = time

    def depart(self, time: float):
        self._move(VehicleState.DEPARTED)
        self.exit_complete_time = time

    @property
    def departure_due(self) -> float:
        """駐車が終わり出口に向かう時刻。"""
        if self.state is not VehicleState.PARKED:
            raise IllegalTransition(
                f"vehicle {self.vehicle_id} is {self.state.value}, not PARKED"
            )
        return self.entry_complete_time + self.parking_duration
