"""argparse エントリポイント。"""

import argparse
import json
import logging
import sys

from parksim.config import Scenario, SimulationConfig, Variability
from parksim.montecarlo import run_scenario, simulate
from parksim.validation import (
    RequestValidationError,
    check_capacity_warning,
    validate_request,
)

DEFAULT_SERVER_URL = "http://localhost:3001"


def _request_from_args(args: argparse.Namespace) -> dict:
    """CLI 引数を API と同じ形のリクエスト本体に組み立てる。"""
    scenario = {
        "name": args.name,
        "demand": {
            "arrival_rate_per_hour": args.arrival_rate,
            "peak_multiplier": args.peak_multiplier,
            "peak_start_minute": args.peak_start,
            "peak_duration_minutes": args.peak_duration,
        },
        "capacity": {"floors": args.floors, "spots_per_floor": args.spots_per_floor},
        "parking_duration": {
            "mean_minutes": args.parking_mean,
            "variability": args.variability,
        },
        "entry": {
            "channels": args.entry_channels,
            "mean_service_time_seconds": args.entry_service,
        },
        "exit": {
            "channels": args.exit_channels,
            "mean_service_time_seconds": args.exit_service,
        },
    }
    config = {
        "iterations": args.iterations,
        "master_seed": args.seed,
        "warm_up_minutes": args.warm_up,
        "stabilization_buffer_minutes": args.stabilization,
        "thresholds": {
            "rejection_rate": args.max_rejection,
            "exit_p95_sla_minutes": args.exit_sla,
        },
    }
    return {"scenarios": [scenario], "config": config}


def _validate_or_exit(data) -> tuple[list[Scenario], SimulationConfig]:
    """検証エラーは stderr に出して終了コード 2 で抜ける。"""
    try:
        return validate_request(data)
    except RequestValidationError as e:
        print(f"{e.code}: {e}", file=sys.stderr)
        for d in e.details:
            print(f"  {d['field']}: {d['reason']}", file=sys.stderr)
        sys.exit(2)


def _load_request(path: str) -> dict:
    with open(path) as f:
        return json.load(f)


def _cmd_simulate(args: argparse.Namespace) -> None:
    """単一シナリオ実行。"""
    scenarios, config = _validate_or_exit(_request_from_args(args))
    scenario = scenarios[0]

    warning = check_capacity_warning([scenario])
    if warning:
        print(f"Warning: {warning}", file=sys.stderr)

    result = run_scenario(scenario, config, workers=args.workers)
    m = result.metrics

    print("=== Simulation Result ===")
    print(
        f"Scenario: {result.scenario_name} "
        f"(capacity={result.capacity}, "
        f"entry={scenario.entry.channels}ch, exit={scenario.exit.channels}ch)"
    )
    print(f"Iterations: {config.iterations}, seed: {config.master_seed}")
    print(
        f"Occupancy: avg={m.avg_occupancy_pct:.1%} max={m.max_occupancy} "
        f"time full={m.pct_time_full:.1%}"
    )
    print(
        f"Rejection rate: {m.rejection_rate:.2%} "
        f"(95% CI {m.rejection_rate_ci[0]:.2%} - {m.rejection_rate_ci[1]:.2%})"
    )
    print(
        f"Entry wait: avg={m.entry_wait.avg_seconds:.1f}s "
        f"p95={m.entry_wait.p95_seconds:.1f}s queue max={m.entry_wait.queue_max}"
    )
    print(
        f"Exit wait: avg={m.exit_wait.avg_minutes:.2f}min "
        f"p90={m.exit_wait.p90_minutes:.2f} "
        f"p95={m.exit_wait.p95_minutes:.2f} "
        f"(95% CI {m.exit_wait.p95_ci[0]:.2f} - {m.exit_wait.p95_ci[1]:.2f}) "
        f"p99={m.exit_wait.p99_minutes:.2f}"
    )
    print(f"Throughput: {m.throughput_per_hour:.1f} vehicles/h")
    print(f"Arrivals/run: {m.arrivals_total}, exits/run: {m.exits_total}")
    print(f"Bottleneck: {result.bottleneck.value}")
    print(f"Passed: {result.passed}")


def _cmd_run(args: argparse.Namespace) -> None:
    """JSON リクエストファイルを実行。"""
    scenarios, config = _validate_or_exit(_load_request(args.request))

    warning = check_capacity_warning(scenarios)
    response = simulate(scenarios, config, warning=warning, workers=args.workers)
    output = json.dumps(response.to_dict(), indent=2)

    if args.output:
        with open(args.output, "w") as f:
            f.write(output + "\n")
        print(f"Results written to {args.output}")
    else:
        print(output)


def _cmd_explore(args: argparse.Namespace) -> None:
    """設計グリッドサーチ実行。"""
    from parksim.explore import print_summary, run_grid_search

    if args.summary:
        print_summary(args.output)
        return

    scenarios, config = _validate_or_exit(_request_from_args(args))
    base = scenarios[0]
    run_grid_search(base, config, output_csv=args.output, workers=args.workers)
    print_summary(args.output)


def _cmd_serve(args: argparse.Namespace) -> None:
    """API サーバ起動。"""
    from parksim.server import main as serve

    serve(port=args.port)


def _cmd_remote(args: argparse.Namespace) -> None:
    """起動中のサーバにリクエストファイルを送る。"""
    import requests

    payload = _load_request(args.request)
    url = f"{args.url.rstrip('/')}/v1/simulate"
    try:
        resp = requests.post(url, json=payload, timeout=args.timeout)
    except requests.RequestException as e:
        logging.error(f"Error: {e}")
        print(
            json.dumps({"error": {"code": "NETWORK_ERROR", "message": str(e)}}),
            file=sys.stderr,
        )
        sys.exit(1)

    body = resp.json()
    if not resp.ok:
        print(json.dumps(body, indent=2), file=sys.stderr)
        sys.exit(1)
    print(json.dumps(body, indent=2))


def _add_scenario_args(p: argparse.ArgumentParser) -> None:
    p.add_argument("--name", default="baseline")
    p.add_argument("--arrival-rate", type=float, default=60.0, help="台/時")
    p.add_argument("--peak-multiplier", type=float, default=1.0)
    p.add_argument("--peak-start", type=int, default=0, help="分")
    p.add_argument("--peak-duration", type=float, default=60.0, help="分")
    p.add_argument("--floors", type=int, default=2)
    p.add_argument("--spots-per-floor", type=int, default=50)
    p.add_argument("--parking-mean", type=float, default=60.0, help="分")
    p.add_argument(
        "--variability", default="MEDIUM", choices=[v.value for v in Variability]
    )
    p.add_argument("--entry-channels", type=int, default=2)
    p.add_argument("--entry-service", type=float, default=10.0, help="秒")
    p.add_argument("--exit-channels", type=int, default=2)
    p.add_argument("--exit-service", type=float, default=15.0, help="秒")


def _add_config_args(p: argparse.ArgumentParser) -> None:
    p.add_argument("--iterations", type=int, default=100)
    p.add_argument("--seed", type=int, default=42)
    p.add_argument("--warm-up", type=float, default=30.0, help="分")
    p.add_argument("--stabilization", type=float, default=60.0, help="分")
    p.add_argument("--max-rejection", type=float, default=0.05)
    p.add_argument("--exit-sla", type=float, default=3.0, help="出口 p95 上限 (分)")
    p.add_argument("--workers", type=int, default=1, help="並列プロセス数")


def build_parser() -> argparse.ArgumentParser:
    """ArgumentParser を構築する。"""
    parser = argparse.ArgumentParser(
        prog="parksim",
        description="駐車場設計のモンテカルロ・離散イベントシミュレータ",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="デバッグログを表示"
    )
    sub = parser.add_subparsers(dest="command")

    # --- simulate ---
    sim_p = sub.add_parser("simulate", help="単一シナリオ実行")
    _add_scenario_args(sim_p)
    _add_config_args(sim_p)

    # --- run ---
    run_p = sub.add_parser("run", help="JSON リクエストファイルを実行")
    run_p.add_argument("request", help="リクエスト JSON のパス")
    run_p.add_argument("--output", default=None, help="JSON 出力先")
    run_p.add_argument("--workers", type=int, default=1, help="並列プロセス数")

    # --- explore ---
    exp_p = sub.add_parser("explore", help="設計グリッドサーチ実行")
    _add_scenario_args(exp_p)
    _add_config_args(exp_p)
    exp_p.add_argument("--output", default="design_sweep.csv", help="CSV 出力先")
    exp_p.add_argument("--summary", action="store_true", help="サマリーのみ表示")

    # --- serve ---
    srv_p = sub.add_parser("serve", help="API サーバ起動")
    srv_p.add_argument("--port", type=int, default=None)

    # --- remote ---
    rem_p = sub.add_parser("remote", help="サーバにリクエストを送信")
    rem_p.add_argument("request", help="リクエスト JSON のパス")
    rem_p.add_argument("--url", default=DEFAULT_SERVER_URL)
    rem_p.add_argument("--timeout", type=float, default=60.0, help="秒")

    return parser


def main(argv: list[str] | None = None) -> None:
    """CLI エントリポイント。"""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(1)

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING)

    dispatch = {
        "simulate": _cmd_simulate,
        "run": _cmd_run,
        "explore": _cmd_explore,
        "serve": _cmd_serve,
        "remote": _cmd_remote,
    }
    dispatch[args.command](args)


if __name__ == "__main__":
    main()
