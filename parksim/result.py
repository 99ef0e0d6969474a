"""シミュレーション結果。"""

from dataclasses import asdict, dataclass, field
from enum import Enum


class Bottleneck(str, Enum):
    NONE = "NONE"
    ENTRY = "ENTRY"
    EXIT = "EXIT"
    BOTH = "BOTH"


@dataclass
class RunMetrics:
    """1 レプリケーション分の生データ (ウォームアップ後のみ)。"""

    total_arrivals: int = 0
    total_exits: int = 0
    rejections: int = 0
    # 入口待ち時間 (秒)
    entry_wait_times: list[float] = field(default_factory=list)
    # 出口待ち時間 (分)
    exit_wait_times: list[float] = field(default_factory=list)
    # 1 分ごとの駐車台数
    occupancy_samples: list[int] = field(default_factory=list)
    # 1 分ごとの出口チャネル使用数
    exit_queue_samples: list[int] = field(default_factory=list)
    max_occupancy: int = 0
    max_entry_queue: int = 0
    max_exit_queue: int = 0
    # 満車だった累積時間 (分)
    time_at_full_capacity: float = 0.0

    @property
    def rejection_ratio(self) -> float:
        return self.rejections / self.total_arrivals if self.total_arrivals > 0 else 0.0


@dataclass
class EntryWaitMetrics:
    avg_seconds: float = 0.0
    p95_seconds: float = 0.0
    queue_max: int = 0


@dataclass
class ExitWaitMetrics:
    avg_minutes: float = 0.0
    p90_minutes: float = 0.0
    p95_minutes: float = 0.0
    p95_ci: tuple[float, float] = (0.0, 0.0)
    p99_minutes: float = 0.0
    queue_max: int = 0
    queue_avg: float = 0.0


@dataclass
class ScenarioMetrics:
    """全レプリケーションを集計した指標。"""

    # 平均稼働率 (0〜1)
    avg_occupancy_pct: float = 0.0
    max_occupancy: int = 0
    # 満車時間の割合 (0〜1)
    pct_time_full: float = 0.0
    rejection_rate: float = 0.0
    rejection_rate_ci: tuple[float, float] = (0.0, 0.0)
    entry_wait: EntryWaitMetrics = field(default_factory=EntryWaitMetrics)
    exit_wait: ExitWaitMetrics = field(default_factory=ExitWaitMetrics)
    throughput_per_hour: float = 0.0
    # レプリケーションあたりの平均到着 / 退出台数
    arrivals_total: int = 0
    exits_total: int = 0


@dataclass
class ScenarioResult:
    scenario_name: str
    capacity: int
    metrics: ScenarioMetrics
    bottleneck: Bottleneck
    passed: bool

    def to_dict(self) -> dict:
        data = asdict(self)
        data["bottleneck"] = self.bottleneck.value
        return data


@dataclass
class SimulationMetadata:
    """再現に必要な実行情報。"""

    engine_version: str
    rng_algorithm: str
    master_seed: int
    iterations: int
    warm_up_minutes: float
    timestamp_utc: str
    execution_time_ms: int


@dataclass
class SimulationResponse:
    results: list[ScenarioResult]
    metadata: SimulationMetadata
    warning: str | None = None

    def to_dict(self) -> dict:
        data = {
            "results": [r.to_dict() for r in self.results],
            "metadata": asdict(self.metadata),
        }
        if self.warning:
            data["warning"] = self.warning
        return data
