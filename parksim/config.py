"""シナリオとシミュレーション設定。"""

from dataclasses import dataclass, field
from enum import Enum

ENGINE_VERSION = "1.0.0"


class Variability(str, Enum):
    """駐車時間のばらつき区分。"""

    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


# ばらつき区分 → 変動係数 (CV)
VARIABILITY_CV: dict[Variability, float] = {
    Variability.LOW: 0.3,
    Variability.MEDIUM: 0.6,
    Variability.HIGH: 1.0,
}


@dataclass(frozen=True)
class DemandParams:
    """到着需要。"""

    # ベース到着率 (台/時)
    arrival_rate_per_hour: float
    # ピーク時の倍率 (>= 1)
    peak_multiplier: float = 1.0
    # ウォームアップ終了からピーク開始までの時間 (分)
    peak_start_minute: float = 0.0
    # ピーク継続時間 (分)
    peak_duration_minutes: float = 60.0

    @property
    def base_rate_per_minute(self) -> float:
        return self.arrival_rate_per_hour / 60

    @property
    def peak_rate_per_minute(self) -> float:
        return self.arrival_rate_per_hour * self.peak_multiplier / 60


@dataclass(frozen=True)
class CapacityParams:
    """駐車容量。"""

    floors: int
    spots_per_floor: int

    @property
    def total(self) -> int:
        return self.floors * self.spots_per_floor


@dataclass(frozen=True)
class ParkingDurationParams:
    """駐車時間の分布。"""

    # 平均駐車時間 (分)
    mean_minutes: float
    variability: Variability = Variability.MEDIUM

    @property
    def cv(self) -> float:
        return VARIABILITY_CV[Variability(self.variability)]


@dataclass(frozen=True)
class StationParams:
    """入口 / 出口ゲート。"""

    # ゲート (チャネル) 数
    channels: int
    # 平均処理時間 (秒)
    mean_service_time_seconds: float

    @property
    def service_rate_per_minute(self) -> float:
        return 60 / self.mean_service_time_seconds


@dataclass(frozen=True)
class Scenario:
    """評価対象の駐車場設計 1 案。"""

    name: str
    demand: DemandParams
    capacity: CapacityParams
    parking_duration: ParkingDurationParams
    entry: StationParams
    exit: StationParams

    @property
    def total_capacity(self) -> int:
        return self.capacity.total


@dataclass(frozen=True)
class Thresholds:
    """合否判定のしきい値。"""

    # 許容する最大拒否率
    rejection_rate: float = 0.05
    # 出口待ち時間 p95 の上限 (分)
    exit_p95_sla_minutes: float = 3.0


@dataclass(frozen=True)
class SimulationConfig:
    """モンテカルロ実行のハイパーパラメータ。"""

    # レプリケーション数 (1〜2000)
    iterations: int = 500
    # マスターシード (レプリケーション i は master_seed + i)
    master_seed: int = 42
    # 計測から除外する立ち上がり期間 (分)
    warm_up_minutes: float = 30.0
    # ピーク後の安定化期間 (分)
    stabilization_buffer_minutes: float = 60.0
    thresholds: Thresholds = field(default_factory=Thresholds)

    def horizon_minutes(self, demand: DemandParams) -> float:
        """到着を生成する時間幅 (分)。"""
        return (
            self.warm_up_minutes
            + demand.peak_start_minute
            + demand.peak_duration_minutes
            + self.stabilization_buffer_minutes
        )

    @property
    def metrics_window_minutes(self) -> float:
        """稼働率・スループットの正規化に使う時間幅 (分)。"""
        return self.warm_up_minutes + self.stabilization_buffer_minutes


DEFAULT_CONFIG = SimulationConfig()
