"""ADMM の更新ステップ（x 更新・z 更新・双対更新）。

責務:
    - ADMMUpdater: モデルごとの x 更新と z 更新を束ねる戦略インターフェース
    - linear_z_update / l1_z_update: 正則化ごとの z 更新の閉形式
    - dual_update: z を放送したうえでの u の局所更新
    - SparseLogisticRegressionADMMUpdater: ロジスティック回帰用の実装

設計意図:
    ドライバ（optimizer.ADMMOptimizer）は ADMMUpdater のメソッドだけを呼び、
    どのモデルの実装かは調べない。
"""

from __future__ import annotations

import functools
from dataclasses import dataclass

import numpy as np

from .lbfgs import LBFGSSolver
from .objective import LogisticObjective
from .partitioned import PartitionedCollection
from .state import ADMMState, zeros
from .types import Vector

REGULARIZATIONS = ("l2", "l1")


def soft_threshold(v: np.ndarray, thresh: float) -> np.ndarray:
    return np.sign(v) * np.maximum(np.abs(v) - thresh, 0.0)


def _accumulate_x_plus_u(acc: Vector, state: ADMMState) -> Vector:
    return acc + state.x + state.u


def _add(a: Vector, b: Vector) -> Vector:
    return a + b


def sum_x_plus_u(states: PartitionedCollection[ADMMState]) -> Vector:
    """全パーティションの x_p + u_p の総和を集約で求める。"""
    dim = states.collect()[0].dimension
    return states.aggregate(zeros(dim), _accumulate_x_plus_u, _add)


def linear_z_update(
    states: PartitionedCollection[ADMMState], lambda_: float, rho: float
) -> Vector:
    """L2 正則化 (λ/2)‖z‖² に対する z 更新。

    z = ρ Σ_p (x_p + u_p) / (λ + ρ P)
    """
    total = sum_x_plus_u(states)
    return (rho * total) / (lambda_ + rho * states.num_partitions)


def l1_z_update(
    states: PartitionedCollection[ADMMState], lambda_: float, rho: float
) -> Vector:
    """L1 正則化 λ‖z‖₁ に対する z 更新（平均の soft-thresholding）。

    z = S_{λ/(ρP)}( (1/P) Σ_p (x_p + u_p) )
    """
    n_parts = states.num_partitions
    mean = sum_x_plus_u(states) / n_parts
    return soft_threshold(mean, lambda_ / (rho * n_parts))


def dual_update(state: ADMMState, z: Vector) -> ADMMState:
    """放送された z を受け取り u ← u + x - z と更新した状態を返す。"""
    return state.copy_with(z=z, u=state.u + state.x - z)


class ADMMUpdater:
    """モデルごとの ADMM 更新の戦略インターフェース。"""

    def x_update(self, state: ADMMState) -> ADMMState:
        """局所部分問題を解き、x だけを差し替えた状態を返す。"""
        raise NotImplementedError("x_update is not implemented yet.")

    def z_update(self, states: PartitionedCollection[ADMMState]) -> Vector:
        """全パーティションの (x, u) から新しい合意変数 z を 1 つ求める。"""
        raise NotImplementedError("z_update is not implemented yet.")

    def loss(self, state: ADMMState, weights: Vector) -> float:
        """パーティションのデータ項を weights で評価する（監視用）。"""
        raise NotImplementedError("loss is not implemented yet.")

    def regularizer(self, z: Vector) -> float:
        """z に対する正則化項の値（監視用）。"""
        raise NotImplementedError("regularizer is not implemented yet.")


@dataclass(frozen=True)
class SparseLogisticRegressionADMMUpdater(ADMMUpdater):
    """ロジスティック回帰の ADMM 更新。

    x 更新は L-BFGS によるウォームスタート付きの局所最小化、
    z 更新は regularization に応じた閉形式（'l2' または 'l1'）。
    """

    lambda_: float
    rho: float
    lbfgs_max_num_iterations: int = 5
    lbfgs_history: int = 10
    lbfgs_tolerance: float = 1e-4
    regularization: str = "l2"

    def __post_init__(self) -> None:
        if not (float(self.rho) > 0.0):
            raise ValueError(f"rho は正の値である必要があります: {self.rho!r}")
        if not (float(self.lambda_) > 0.0):
            raise ValueError(f"lambda は正の値である必要があります: {self.lambda_!r}")
        if self.regularization not in REGULARIZATIONS:
            raise ValueError(
                f"regularization は {REGULARIZATIONS} のいずれかである必要があります: "
                f"{self.regularization!r}"
            )
        # 内部ソルバ設定の検証も構築時に済ませる。
        self.solver()

    def solver(self) -> LBFGSSolver:
        return LBFGSSolver(
            max_num_iterations=self.lbfgs_max_num_iterations,
            history=self.lbfgs_history,
            tolerance=self.lbfgs_tolerance,
        )

    def objective_function(self) -> LogisticObjective:
        return LogisticObjective(self.rho)

    def x_update(self, state: ADMMState) -> ADMMState:
        objective = self.objective_function()
        # 前回の x から始める（ウォームスタート）。
        x_new = self.solver().minimize(
            functools.partial(objective.value, state),
            functools.partial(objective.gradient, state),
            state.x,
        )
        return state.copy_with(x=x_new)

    def z_update(self, states: PartitionedCollection[ADMMState]) -> Vector:
        if self.regularization == "l1":
            return l1_z_update(states, lambda_=self.lambda_, rho=self.rho)
        return linear_z_update(states, lambda_=self.lambda_, rho=self.rho)

    def loss(self, state: ADMMState, weights: Vector) -> float:
        return self.objective_function().loss(state, weights)

    def regularizer(self, z: Vector) -> float:
        if self.regularization == "l1":
            return float(self.lambda_ * np.sum(np.abs(z)))
        return float(0.5 * self.lambda_ * (z @ z))

    # 値・勾配を直接確かめたい場合の窓口。
    def objective(self, state: ADMMState, weights: Vector) -> float:
        return self.objective_function().value(state, weights)

    def gradient(self, state: ADMMState, weights: Vector) -> Vector:
        return self.objective_function().gradient(state, weights)
