"""ロジスティック損失による局所目的関数とその勾配。

責務:
    - 数値的に安定な log-sigmoid（log_phi）と sigmoid（phi）の提供
    - 1 パーティション分の拡張ラグランジュ目的関数
          f(w) = Σ_i -log_phi(y_i w·a_i) + (ρ/2)‖w - z + u‖²
      とその勾配の計算

設計意図:
    ソルバ（L-BFGS）や Updater は損失の中身を知らず、value / gradient だけを使う。
    ロジスティック損失を計算するモデルは、必ずここの log_phi / phi を使うこと
    （log(1/(1+exp(-t))) を素直に書くと |t| が大きいときに overflow する）。

注意:
    マージンは exp を取る前に [-MAX_ABS_MARGIN, MAX_ABS_MARGIN] へクリップする。
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Tuple, Union

import numpy as np

from .types import ArrayLike, Vector

if TYPE_CHECKING:
    from .state import ADMMState

# 数値精度の問題を避けるためのマージンの上限（絶対値）。
MAX_ABS_MARGIN = 10000.0

Scalar = Union[float, np.ndarray]


def clamp_margin(
    margin: ArrayLike,
    lower: float = -MAX_ABS_MARGIN,
    upper: float = MAX_ABS_MARGIN,
) -> np.ndarray:
    """マージンを [lower, upper] にクリップする。"""
    return np.clip(np.asarray(margin, dtype=float), lower, upper)


def _split_margin(margin: ArrayLike) -> Tuple[np.ndarray, bool]:
    t = clamp_margin(margin)
    return np.atleast_1d(t).astype(float), t.ndim == 0


def _restore(values: np.ndarray, scalar: bool) -> Scalar:
    return float(values[0]) if scalar else values


def log_phi(margin: ArrayLike) -> Scalar:
    """安定な log-sigmoid。

    t > 0 なら -log1p(exp(-t))、そうでなければ t - log1p(exp(t))。
    どちらの分岐でも exp の引数は非正なので overflow しない。
    """
    t, scalar = _split_margin(margin)
    out = np.empty_like(t)
    pos = t > 0
    out[pos] = -np.log1p(np.exp(-t[pos]))
    neg = ~pos
    out[neg] = t[neg] - np.log1p(np.exp(t[neg]))
    return _restore(out, scalar)


def phi(margin: ArrayLike) -> Scalar:
    """安定な sigmoid。

    t > 0 なら 1/(1+exp(-t))、そうでなければ exp(t)/(1+exp(t))。
    """
    t, scalar = _split_margin(margin)
    out = np.empty_like(t)
    pos = t > 0
    out[pos] = 1.0 / (1.0 + np.exp(-t[pos]))
    neg = ~pos
    e = np.exp(t[neg])
    out[neg] = e / (1.0 + e)
    return _restore(out, scalar)


class LogisticObjective:
    """1 パーティション分のロジスティック拡張目的関数。

    Args:
        rho: ADMM のペナルティ係数 ρ。
    """

    def __init__(self, rho: float) -> None:
        self.rho = float(rho)

    def margins(self, state: "ADMMState", weights: Vector) -> np.ndarray:
        """各点のマージン y_i (w·a_i) を返す（y_i は {-1, +1}）。"""
        return state.signed_labels * (state.features @ weights)

    def loss(self, state: "ADMMState", weights: Vector) -> float:
        """データ項 Σ_i -log_phi(margin_i) のみを返す。"""
        if state.num_points == 0:
            return 0.0
        return float(-np.sum(log_phi(self.margins(state, weights))))

    def value(self, state: "ADMMState", weights: Vector) -> float:
        """目的関数値 f(w) を返す。"""
        residual = weights - state.z + state.u
        penalty = 0.5 * self.rho * float(residual @ residual)
        return self.loss(state, weights) + penalty

    def gradient(self, state: "ADMMState", weights: Vector) -> Vector:
        """勾配 ∇f(w) = Σ_i y_i a_i (phi(margin_i) - 1) + ρ(w - z + u) を返す。"""
        residual = weights - state.z + state.u
        grad = self.rho * residual
        if state.num_points > 0:
            coeff = state.signed_labels * (phi(self.margins(state, weights)) - 1.0)
            grad = grad + state.features.T @ coeff
        return grad
