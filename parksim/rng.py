"""PCG-XSH-RR 乱数生成器 (64-bit state, 32-bit output)。

同じ (seed, seq) からは常に同じ系列が得られる。シミュレーションの再現性は
すべてこの性質に依存するので、状態更新は必ず 2^64 で剰余を取る。
"""

import copy
import math

MASK64 = 0xFFFFFFFFFFFFFFFF
MASK32 = 0xFFFFFFFF

RNG_ALGORITHM = "PCG-XSH-RR-64/32"


class PCGRandom:
    """シード付き PCG 生成器と派生分布。"""

    MULTIPLIER = 6364136223846793005

    def __init__(self, seed: int = 42, seq: int = 1):
        self.state = 0
        self.inc = ((seq << 1) | 1) & MASK64

        self._step()
        self.state = (self.state + seed) & MASK64
        self._step()

    def _step(self):
        self.state = (self.state * self.MULTIPLIER + self.inc) & MASK64

    def next_u32(self) -> int:
        """32-bit 符号なし整数を 1 つ返す。"""
        old = self.state
        self._step()

        xorshifted = (((old >> 18) ^ old) >> 27) & MASK32
        rot = old >> 59
        return ((xorshifted >> rot) | (xorshifted << ((-rot) & 31))) & MASK32

    def uniform01(self) -> float:
        """[0, 1) の一様乱数。"""
        return self.next_u32() / 4294967296

    def uniform_batch(self, count: int) -> list[float]:
        """uniform01() を count 回呼んだのと同じ値を返す。

        ブートストラップのように大量に引く場合用。
        """
        state = self.state
        inc = self.inc
        mult = self.MULTIPLIER
        out = []
        append = out.append
        for _ in range(count):
            old = state
            state = (state * mult + inc) & MASK64
            x = (((old >> 18) ^ old) >> 27) & MASK32
            rot = old >> 59
            append(((x >> rot) | (x << ((-rot) & 31))) & MASK32)
        self.state = state
        return [v / 4294967296 for v in out]

    def randint(self, n: int) -> int:
        """[0, n) の整数。"""
        return math.floor(self.uniform01() * n)

    def exponential(self, rate: float) -> float:
        """指数分布。rate == 0 は呼び出し側で避けること。"""
        u = self.uniform01()
        while u == 0:
            u = self.uniform01()
        return -math.log(u) / rate

    def normal(self, mean: float = 0.0, stddev: float = 1.0) -> float:
        """Box-Muller 法 (cos 側のみ使用)。"""
        u1 = self.uniform01()
        u2 = self.uniform01()
        while u1 == 0:
            u1 = self.uniform01()

        z0 = math.sqrt(-2 * math.log(u1)) * math.cos(2 * math.pi * u2)
        return mean + stddev * z0

    def lognormal(self, mu: float, sigma: float) -> float:
        """対数正規分布。mu, sigma は元の正規分布のパラメータ。"""
        z = self.normal(0.0, 1.0)
        return math.exp(mu + sigma * z)

    def poisson(self, lam: float) -> int:
        """ポアソン分布。lam < 30 は Knuth 法、それ以上は正規近似。"""
        if lam < 30:
            limit = math.exp(-lam)
            k = 0
            p = 1.0
            while True:
                k += 1
                p *= self.uniform01()
                if p <= limit:
                    break
            return k - 1

        approx = self.normal(lam, math.sqrt(lam))
        return max(0, math.floor(approx + 0.5))

    def clone(self) -> "PCGRandom":
        """現在の状態を複製した独立な生成器を返す。"""
        return copy.copy(self)
