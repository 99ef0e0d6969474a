"""集計用の統計関数。空データは 0 を返す。"""

import math
from collections.abc import Callable, Sequence

from parksim.rng import PCGRandom

BOOTSTRAP_RESAMPLES = 1000
CONFIDENCE_LEVEL = 0.95


def mean(values: Sequence[float]) -> float:
    return sum(values) / len(values) if values else 0.0


def percentile(sorted_values: Sequence[float], p: float) -> float:
    """ソート済み列の p パーセンタイル (順序統計量間を線形補間)。"""
    if not sorted_values:
        return 0.0
    index = (p / 100) * (len(sorted_values) - 1)
    lower = math.floor(index)
    upper = math.ceil(index)
    if lower == upper:
        return sorted_values[lower]
    return sorted_values[lower] + (sorted_values[upper] - sorted_values[lower]) * (
        index - lower
    )


def p95(values: Sequence[float]) -> float:
    return percentile(sorted(values), 95)


def round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def bootstrap_ci(
    data: Sequence[float],
    stat_fn: Callable[[list[float]], float],
    rng: PCGRandom,
    resamples: int = BOOTSTRAP_RESAMPLES,
    confidence: float = CONFIDENCE_LEVEL,
) -> tuple[float, float]:
    """パーセンタイル・ブートストラップ信頼区間。

    rng は呼び出しごとに前進するので、呼び出し順で結果が変わる。
    """
    if not data:
        return (0.0, 0.0)

    n = len(data)
    stats = []
    for _ in range(resamples):
        sample = [data[math.floor(u * n)] for u in rng.uniform_batch(n)]
        stats.append(stat_fn(sample))

    stats.sort()

    alpha = 1 - confidence
    lower_idx = math.floor((alpha / 2) * resamples)
    upper_idx = math.floor((1 - alpha / 2) * resamples)
    return (stats[lower_idx], stats[upper_idx])
