"""シミュレーション API サーバ (Flask)。"""

import logging
import os
import time
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from datetime import datetime, timezone

from flask import Flask, request

from parksim.config import ENGINE_VERSION
from parksim.montecarlo import simulate
from parksim.validation import (
    RequestValidationError,
    check_capacity_warning,
    validate_request,
)

logger = logging.getLogger("ParkingServer")

DEFAULT_PORT = 3001
DEFAULT_REQUEST_TIMEOUT_SECS = 30.0
# リクエスト本体の上限 (バイト)
MAX_CONTENT_LENGTH = 64 * 1024


def _error(code: str, message: str, status: int, details: list | None = None):
    body = {"error": {"code": code, "message": message}}
    if details is not None:
        body["error"]["details"] = details
    return body, status


def create_app(
    request_timeout: float | None = None,
    workers: int | None = None,
) -> Flask:
    """Flask アプリを構築する。未指定の設定は環境変数から読む。"""
    if request_timeout is None:
        request_timeout = float(
            os.environ.get(
                "PARKSIM_REQUEST_TIMEOUT_SECS", DEFAULT_REQUEST_TIMEOUT_SECS
            )
        )
    if workers is None:
        workers = int(os.environ.get("PARKSIM_WORKERS", "1"))

    app = Flask(__name__)
    app.config["MAX_CONTENT_LENGTH"] = MAX_CONTENT_LENGTH
    app.config["REQUEST_TIMEOUT_SECS"] = request_timeout
    app.config["SIMULATION_WORKERS"] = workers

    # タイムアウトを超えたジョブは結果を捨てるだけで、スレッドは走り切る
    executor = ThreadPoolExecutor(max_workers=4, thread_name_prefix="simulate")

    @app.after_request
    def add_cors_headers(response):
        response.headers["Access-Control-Allow-Origin"] = "*"
        response.headers["Access-Control-Allow-Methods"] = "GET, POST, OPTIONS"
        response.headers["Access-Control-Allow-Headers"] = "Content-Type"
        return response

    @app.errorhandler(413)
    def payload_too_large(e):
        return _error(
            "PAYLOAD_TOO_LARGE",
            f"Request body exceeds {MAX_CONTENT_LENGTH // 1024} KB",
            413,
        )

    @app.route("/v1/simulate", methods=["POST", "OPTIONS"])
    def run_simulation():
        if request.method == "OPTIONS":
            return "", 200

        data = request.get_json(silent=True)
        try:
            scenarios, config = validate_request(data)
        except RequestValidationError as e:
            return _error(e.code, "Invalid input parameters", 400, e.details)

        # 警告はブロックしない
        warning = check_capacity_warning(scenarios)
        if warning:
            logger.warning(f"Capacity warning: {warning}")

        start = time.perf_counter()
        future = executor.submit(
            simulate,
            scenarios,
            config,
            warning,
            app.config["SIMULATION_WORKERS"],
        )
        try:
            response = future.result(timeout=app.config["REQUEST_TIMEOUT_SECS"])
        except FutureTimeoutError:
            logger.error(
                f"Simulation timed out after {time.perf_counter() - start:.1f}s "
                f"({len(scenarios)} scenarios x {config.iterations} iterations)"
            )
            return _error("TIMEOUT", "Simulation exceeded time limit", 408)
        except Exception:
            logger.exception("Simulation error")
            return _error("INTERNAL_ERROR", "Unexpected engine failure", 500)

        logger.info(
            f"Simulated {len(scenarios)} scenario(s) | "
            f"passed: {sum(r.passed for r in response.results)}/{len(response.results)} | "
            f"{response.metadata.execution_time_ms} ms"
        )
        return response.to_dict(), 200

    @app.route("/health", methods=["GET"])
    def health():
        """ヘルスチェック。"""
        return {
            "status": "ok",
            "engine_version": ENGINE_VERSION,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    return app


def main(port: int | None = None):
    logging.basicConfig(level=logging.INFO)
    if port is None:
        port = int(os.environ.get("PARKSIM_PORT", DEFAULT_PORT))

    app = create_app()
    logger.info(f"Parking Simulator API running on port {port}")
    logger.info(f"Health check: http://localhost:{port}/health")
    logger.info(f"Simulate: POST http://localhost:{port}/v1/simulate")
    app.run(port=port)


if __name__ == "__main__":
    main()
