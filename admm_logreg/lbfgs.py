"""局所部分問題（x 更新）を解く準ニュートン法ソルバ。

SciPy の L-BFGS-B を制約なしで使い、以下の契約を満たすように包む:
    - 反復回数の上限（既定 5）と履歴サイズ（既定 10）、停止許容誤差（既定 1e-4）
    - 初期点は前回の x（ウォームスタート）
    - 乱数を使わないので同じ入力に対して同じ点を返す
    - 収束しなくても例外にせず、得られた最良点を返す
"""

from __future__ import annotations

from typing import Callable, Tuple

import numpy as np
from scipy import optimize

from .points import to_vector
from .types import ArrayLike, Vector

ObjectiveFn = Callable[[Vector], float]
GradientFn = Callable[[Vector], Vector]


class LBFGSSolver:
    """制限メモリ BFGS による滑らかな凸関数の最小化。

    Args:
        max_num_iterations: 内部反復の上限。
        history: 準ニュートン近似に使う履歴数 m。
        tolerance: 相対的な目的関数の減少量および勾配ノルムに対する停止閾値。
    """

    def __init__(
        self,
        max_num_iterations: int = 5,
        history: int = 10,
        tolerance: float = 1e-4,
    ) -> None:
        if int(max_num_iterations) <= 0:
            raise ValueError("lbfgs_max_num_iterations は正の整数である必要があります。")
        if int(history) <= 0:
            raise ValueError("lbfgs_history は正の整数である必要があります。")
        if not (float(tolerance) > 0.0):
            raise ValueError("lbfgs_tolerance は正の値である必要があります。")
        self.max_num_iterations = int(max_num_iterations)
        self.history = int(history)
        self.tolerance = float(tolerance)

    def minimize(
        self,
        objective_fn: ObjectiveFn,
        gradient_fn: GradientFn,
        initial_point: ArrayLike,
    ) -> Vector:
        """initial_point から出発して objective_fn を最小化した点を返す。"""
        x0 = to_vector(initial_point)
        f0 = float(objective_fn(x0))

        def fun_and_grad(w: np.ndarray) -> Tuple[float, np.ndarray]:
            return float(objective_fn(w)), np.asarray(gradient_fn(w), dtype=float)

        result = optimize.minimize(
            fun_and_grad,
            x0,
            jac=True,
            method="L-BFGS-B",
            options={
                "maxiter": self.max_num_iterations,
                "maxcor": self.history,
                "ftol": self.tolerance,
                "gtol": self.tolerance,
            },
        )

        # 打ち切り・line search 失敗でも、初期点より悪化していなければ採用する。
        x_new = np.asarray(result.x, dtype=float)
        f_new = float(result.fun)
        if not np.all(np.isfinite(x_new)) or not np.isfinite(f_new):
            return x0
        if np.isfinite(f0) and f_new > f0:
            return x0
        return x_new
