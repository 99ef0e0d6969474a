"""駐車場の離散イベントシミュレーションエンジン (1 レプリケーション)。"""

import math

from parksim.config import Scenario, SimulationConfig
from parksim.events import (
    EVENT_ARRIVAL,
    EVENT_ENTRY_COMPLETE,
    EVENT_EXIT_COMPLETE,
    EVENT_EXIT_START,
    Event,
    EventQueue,
)
from parksim.result import RunMetrics
from parksim.rng import PCGRandom
from parksim.station import ServiceStation
from parksim.vehicle import Vehicle

# 稼働率サンプリング間隔 (分)
SAMPLE_INTERVAL = 1.0


def lognormal_params(mean: float, cv: float) -> tuple[float, float]:
    """平均と変動係数から対数正規分布の (mu, sigma) を求める。"""
    sigma2 = math.log(1 + cv * cv)
    sigma = math.sqrt(sigma2)
    mu = math.log(mean) - sigma2 / 2
    return mu, sigma


class ParkingSimulator:
    """入口ゲート → 駐車 → 出口ゲートの離散イベントシミュレータ。"""

    def __init__(self, scenario: Scenario, config: SimulationConfig, rng: PCGRandom):
        self.scenario = scenario
        self.config = config
        self.rng = rng

        self.total_capacity = scenario.total_capacity
        self.horizon = config.horizon_minutes(scenario.demand)
        self.mu, self.sigma = lognormal_params(
            scenario.parking_duration.mean_minutes, scenario.parking_duration.cv
        )

        demand = scenario.demand
        self.peak_start = config.warm_up_minutes + demand.peak_start_minute
        self.peak_end = self.peak_start + demand.peak_duration_minutes
        self.max_rate = demand.peak_rate_per_minute

        # ゲート
        self.entry_station = ServiceStation(scenario.entry.channels)
        self.exit_station = ServiceStation(scenario.exit.channels)

        # イベントキュー
        self.events = EventQueue()

        # 駐車中の台数
        self.occupancy: int = 0
        # 入口処理中 (枠を予約済み) の台数
        self.pending_entries: int = 0
        self.vehicle_counter: int = 0
        self.vehicles: dict[int, Vehicle] = {}

        self.metrics = RunMetrics()
        self._last_occupancy_change = 0.0
        self._last_sample_time = 0.0

    def run(self) -> RunMetrics:
        """シミュレーション実行。"""
        self._schedule_next_arrival(0.0)

        # イベントループ
        while self.events:
            event = self.events.pop()
            self._take_samples(event.time)

            if event.event_type == EVENT_ARRIVAL:
                self._handle_arrival(event)
            elif event.event_type == EVENT_ENTRY_COMPLETE:
                self._handle_entry_complete(event)
            elif event.event_type == EVENT_EXIT_START:
                self._handle_exit_start(event)
            elif event.event_type == EVENT_EXIT_COMPLETE:
                self._handle_exit_complete(event)

        # ホライズン終了時点でまだ満車なら残り時間を加算
        if (
            self._is_metrics_time(self._last_occupancy_change)
            and self.occupancy == self.total_capacity
        ):
            duration = self.horizon - max(
                self._last_occupancy_change, self.config.warm_up_minutes
            )
            if duration > 0:
                self.metrics.time_at_full_capacity += duration

        return self.metrics

    def _is_metrics_time(self, time: float) -> bool:
        return time >= self.config.warm_up_minutes

    def arrival_rate(self, time: float) -> float:
        """時刻 time の到着率 (台/分)。"""
        if self.peak_start <= time < self.peak_end:
            return self.max_rate
        return self.scenario.demand.base_rate_per_minute

    def _schedule_next_arrival(self, current_time: float):
        """間引き法で次の到着を 1 件だけスケジュールする。"""
        t = current_time
        while t < self.horizon:
            t += self.rng.exponential(self.max_rate)
            if t >= self.horizon:
                break

            if self.rng.uniform01() < self.arrival_rate(t) / self.max_rate:
                self.vehicle_counter += 1
                self.events.push(t, EVENT_ARRIVAL, self.vehicle_counter)
                break

    def _take_samples(self, time: float):
        """time までの 1 分刻みの境界ごとに稼働状況を記録する。"""
        while self._last_sample_time + SAMPLE_INTERVAL <= time:
            self._last_sample_time += SAMPLE_INTERVAL
            if self._is_metrics_time(self._last_sample_time):
                self.metrics.occupancy_samples.append(self.occupancy)
                self.metrics.exit_queue_samples.append(
                    self.exit_station.queue_length(self._last_sample_time)
                )

    def _set_occupancy(self, time: float, new_occupancy: int):
        """駐車台数を更新し、満車時間と最大値を記録する。"""
        if self._is_metrics_time(self._last_occupancy_change):
            duration = time - max(
                self._last_occupancy_change, self.config.warm_up_minutes
            )
            if self.occupancy == self.total_capacity and duration > 0:
                self.metrics.time_at_full_capacity += duration

        self._last_occupancy_change = time
        self.occupancy = new_occupancy
        self.metrics.max_occupancy = max(self.metrics.max_occupancy, new_occupancy)

    def _handle_arrival(self, event: Event):
        """到着を処理。満車 (予約分を含む) なら拒否する。"""
        now = event.time
        measuring = self._is_metrics_time(now)
        vehicle = Vehicle(vehicle_id=event.vehicle_id, arrival_time=now)

        if measuring:
            self.metrics.total_arrivals += 1

        if self.occupancy + self.pending_entries >= self.total_capacity:
            vehicle.reject()
            if measuring:
                self.metrics.rejections += 1
        else:
            self.pending_entries += 1

            service_time = self.rng.exponential(
                self.scenario.entry.service_rate_per_minute
            )
            ticket = self.entry_station.enqueue(now, service_time)

            if measuring:
                self.metrics.entry_wait_times.append(ticket.wait * 60)
                self.metrics.max_entry_queue = max(
                    self.metrics.max_entry_queue,
                    self.entry_station.queue_length(now) + 1,
                )

            self.events.push(ticket.end, EVENT_ENTRY_COMPLETE, vehicle.vehicle_id)

            parking_duration = self.rng.lognormal(self.mu, self.sigma)
            vehicle.start_entry(now, parking_duration)
            self.vehicles[vehicle.vehicle_id] = vehicle

        self._schedule_next_arrival(now)

    def _handle_entry_complete(self, event: Event):
        vehicle = self.vehicles[event.vehicle_id]
        vehicle.park(event.time)

        self.pending_entries -= 1
        self._set_occupancy(event.time, self.occupancy + 1)

        self.events.push(vehicle.departure_due, EVENT_EXIT_START, vehicle.vehicle_id)

    def _handle_exit_start(self, event: Event):
        """駐車枠を解放し、出口ゲートに並ばせる。"""
        now = event.time
        vehicle = self.vehicles[event.vehicle_id]
        vehicle.start_exit(now)

        self._set_occupancy(now, self.occupancy - 1)

        service_time = self.rng.exponential(self.scenario.exit.service_rate_per_minute)
        ticket = self.exit_station.enqueue(now, service_time)

        if self._is_metrics_time(now):
            self.metrics.exit_wait_times.append(ticket.wait)
            self.metrics.max_exit_queue = max(
                self.metrics.max_exit_queue,
                self.exit_station.queue_length(now) + 1,
            )

        self.events.push(ticket.end, EVENT_EXIT_COMPLETE, vehicle.vehicle_id)

    def _handle_exit_complete(self, event: Event):
        vehicle = self.vehicles.pop(event.vehicle_id)
        vehicle.depart(event.time)

        if self._is_metrics_time(vehicle.exit_start_time):
            self.metrics.total_exits += 1


def run_replication(scenario: Scenario, config: SimulationConfig, seed: int) -> RunMetrics:
    """seed 固定で 1 レプリケーションを実行する (副作用なし)。"""
    return ParkingSimulator(scenario, config, PCGRandom(seed)).run()
