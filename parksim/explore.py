"""設計パラメータのグリッドサーチ。"""

import csv
import itertools
import time
from dataclasses import replace

from parksim.config import CapacityParams, Scenario, SimulationConfig
from parksim.montecarlo import run_scenario

# 探索するパラメータ空間
PARAM_GRID = {
    "floors": [1, 2, 3, 4, 6],
    "entry_channels": [1, 2, 3],
    "exit_channels": [1, 2, 3, 4],
}

DEFAULT_OUTPUT_CSV = "design_sweep.csv"

FIELDNAMES = [
    "floors",
    "entry_channels",
    "exit_channels",
    "capacity",
    "rejection_rate",
    "exit_p95_minutes",
    "avg_occupancy_pct",
    "throughput_per_hour",
    "bottleneck",
    "passed",
]

_SUMMARY_HEADER = (
    f"{'floors':>6} {'entry':>6} {'exit':>5} {'cap':>6} "
    f"{'reject':>8} {'p95(min)':>9} {'occ':>6} {'tput/h':>8} {'bneck':>6}"
)


def _format_row(r: dict) -> str:
    return (
        f"{r['floors']:>6} {r['entry_channels']:>6} {r['exit_channels']:>5} "
        f"{r['capacity']:>6} "
        f"{float(r['rejection_rate']):>8.4f} "
        f"{float(r['exit_p95_minutes']):>9.2f} "
        f"{float(r['avg_occupancy_pct']):>6.2f} "
        f"{float(r['throughput_per_hour']):>8.1f} "
        f"{r['bottleneck']:>6}"
    )


def design_variant(
    base: Scenario, floors: int, entry_channels: int, exit_channels: int
) -> Scenario:
    """base の階数・ゲート数だけを差し替えたシナリオ。"""
    return replace(
        base,
        name=f"{base.name} f{floors}/e{entry_channels}/x{exit_channels}",
        capacity=CapacityParams(
            floors=floors, spots_per_floor=base.capacity.spots_per_floor
        ),
        entry=replace(base.entry, channels=entry_channels),
        exit=replace(base.exit, channels=exit_channels),
    )


def run_grid_search(
    base: Scenario,
    config: SimulationConfig,
    output_csv: str = DEFAULT_OUTPUT_CSV,
    grid: dict[str, list[int]] | None = None,
    workers: int | None = None,
) -> str:
    """グリッドサーチを実行し、結果を CSV に出力する。"""
    grid = grid or PARAM_GRID
    combinations = list(
        itertools.product(
            grid["floors"], grid["entry_channels"], grid["exit_channels"]
        )
    )
    total = len(combinations)

    print(f"Total designs: {total}")
    print(f"Output: {output_csv}")
    print()

    with open(output_csv, "w", newline="") as f:
        writer = csv.DictWriter(f, fieldnames=FIELDNAMES)
        writer.writeheader()

        passed_count = 0
        start_time = time.time()

        for i, (floors, entry_channels, exit_channels) in enumerate(combinations):
            scenario = design_variant(base, floors, entry_channels, exit_channels)
            result = run_scenario(scenario, config, workers=workers)
            m = result.metrics

            writer.writerow(
                {
                    "floors": floors,
                    "entry_channels": entry_channels,
                    "exit_channels": exit_channels,
                    "capacity": result.capacity,
                    "rejection_rate": round(m.rejection_rate, 4),
                    "exit_p95_minutes": round(m.exit_wait.p95_minutes, 3),
                    "avg_occupancy_pct": round(m.avg_occupancy_pct, 3),
                    "throughput_per_hour": round(m.throughput_per_hour, 1),
                    "bottleneck": result.bottleneck.value,
                    "passed": result.passed,
                }
            )

            if result.passed:
                passed_count += 1

            if (i + 1) % 10 == 0 or (i + 1) == total:
                elapsed = time.time() - start_time
                eta = elapsed / (i + 1) * (total - i - 1)
                print(
                    f"  [{i+1}/{total}] "
                    f"elapsed={elapsed:.1f}s "
                    f"ETA={eta:.1f}s "
                    f"passed={passed_count}/{i+1}",
                    flush=True,
                )

    elapsed = time.time() - start_time
    print()
    print(f"Completed in {elapsed:.1f}s")
    print(f"Designs passed: {passed_count}/{total}")
    print(f"Results saved to {output_csv}")
    return output_csv


def print_summary(output_csv: str = DEFAULT_OUTPUT_CSV):
    """CSV から結果を読み込み、サマリーを表示する。"""
    with open(output_csv) as f:
        rows = list(csv.DictReader(f))

    passed = [r for r in rows if r["passed"] == "True"]
    failed = [r for r in rows if r["passed"] == "False"]

    print(f"\n{'='*80}")
    print("DESIGN SWEEP SUMMARY")
    print(f"{'='*80}")
    print(f"Total designs: {len(rows)}")
    print(f"Passed: {len(passed)}")
    print(f"Failed: {len(failed)}")

    if passed:
        # 小さい (安い) 設計から順に
        passed.sort(
            key=lambda r: (
                int(r["capacity"]),
                int(r["entry_channels"]) + int(r["exit_channels"]),
            )
        )
        print("\n--- Smallest passing designs ---")
        print(_SUMMARY_HEADER)
        print("-" * 80)
        for r in passed[:20]:
            print(_format_row(r))

    if failed:
        failed.sort(key=lambda r: float(r["rejection_rate"]) + float(r["exit_p95_minutes"]))
        print("\n--- Near-miss (closest to thresholds) ---")
        print(_SUMMARY_HEADER)
        print("-" * 80)
        for r in failed[:10]:
            print(_format_row(r))
