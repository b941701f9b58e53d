"""合意形成 ADMM のドライバ（外側反復）。

責務:
    - パーティションごとの初期状態の構築
    - 決められた回数だけ
          (1) x 更新（各パーティションで独立・並列）
          (2) z 更新（全パーティションの集約、ここが唯一の同期点）
          (3) z の放送と双対更新（各パーティションで独立）
      を繰り返す
    - 残差・目的関数の履歴の記録と、最終的な合意変数 z の返却

設計意図:
    モデル固有の計算は ADMMUpdater に任せ、本クラスはどの実装かを知らない。
    既定では反復回数固定で停止する。tol_primal と tol_dual を両方指定した場合に限り、
    残差がともに閾値以下になった時点で打ち切る（オプションの拡張）。
"""

from __future__ import annotations

import functools
from typing import Any, Callable, Dict, List, Optional, Sequence

import numpy as np
from tqdm.auto import tqdm

from .partitioned import PartitionedCollection
from .points import LabeledPoint, to_vector
from .state import ADMMState, zeros
from .types import ArrayLike, Vector
from .updater import ADMMUpdater, dual_update

IterationCallback = Callable[[int, Dict[str, Any]], None]


def _initial_state(points: Sequence[LabeledPoint], initial_weights: Vector) -> ADMMState:
    return ADMMState.initial(points, initial_weights)


def _accumulate_primal_sq(acc: float, state: ADMMState) -> float:
    diff = state.x - state.z
    return acc + float(diff @ diff)


def _accumulate_loss(
    updater: ADMMUpdater, weights: Vector, acc: float, state: ADMMState
) -> float:
    return acc + updater.loss(state, weights)


def _add(a: float, b: float) -> float:
    return a + b


class ADMMOptimizer:
    """ADMM による分散最適化ドライバ。

    Args:
        num_iterations: 外側反復の回数。0 なら初期重みをそのまま返す。
        updater: x 更新・z 更新を提供する ADMMUpdater。
        tol_primal: primal residual の停止閾値（None で無効）。
        tol_dual: dual residual の停止閾値（None で無効）。
        callback: 反復ごとに callback(iteration, history_row) を呼ぶ。
        show_progress: tqdm の進捗表示を出すか。
    """

    def __init__(
        self,
        num_iterations: int,
        updater: ADMMUpdater,
        tol_primal: Optional[float] = None,
        tol_dual: Optional[float] = None,
        callback: Optional[IterationCallback] = None,
        show_progress: bool = True,
    ) -> None:
        if int(num_iterations) < 0:
            raise ValueError("num_iterations は 0 以上である必要があります。")
        for name, tol in (("tol_primal", tol_primal), ("tol_dual", tol_dual)):
            if tol is not None and not (float(tol) >= 0.0):
                raise ValueError(f"{name} は 0 以上である必要があります: {tol!r}")
        self.num_iterations = int(num_iterations)
        self.updater = updater
        self.tol_primal = tol_primal
        self.tol_dual = tol_dual
        self.callback = callback
        self.show_progress = show_progress

    @property
    def early_stopping(self) -> bool:
        return self.tol_primal is not None and self.tol_dual is not None

    def optimize(
        self,
        data: PartitionedCollection[Sequence[LabeledPoint]],
        initial_weights: ArrayLike,
    ) -> Vector:
        """ADMM を回し、最終的な合意変数 z を重みベクトルとして返す。

        Args:
            data: パーティションごとの LabeledPoint 列。
            initial_weights: 初期重み（各パーティションの x の初期値）。

        Returns:
            学習された重みベクトル。num_iterations == 0 なら initial_weights のコピー。

        Raises:
            ValueError: 初期重みと特徴量の次元が一致しない場合など（反復開始前に送出）。
        """
        weights0 = to_vector(initial_weights)
        states = data.map_partitions(
            functools.partial(_initial_state, initial_weights=weights0)
        )
        n_parts = states.num_partitions
        rho = float(getattr(self.updater, "rho", np.nan))

        history: Dict[str, Any] = {
            # 目的関数値: Σ_p loss_p(z) + 正則化(z)
            "objective": [],
            # primal residual: sqrt(Σ_p ‖x_p - z‖²)
            "primal_residual": [],
            # dual residual: ρ sqrt(P) ‖z^k - z^{k-1}‖
            "dual_residual": [],
            "rho": [],
        }

        z = zeros(weights0.shape[0])
        iterations_run = 0
        stopped_early = False

        for iteration in tqdm(
            range(self.num_iterations),
            desc="ADMM",
            leave=False,
            disable=not self.show_progress,
        ):
            # (1) x 更新: パーティション間のやり取りはない。
            states = states.map_partitions(self.updater.x_update)

            # (2) z 更新: 同じ反復の全パーティションの x, u がそろってから集約する。
            z_prev = z
            z = np.asarray(self.updater.z_update(states), dtype=float)

            # (3) z の放送と双対更新。
            states = states.map_partitions(functools.partial(dual_update, z=z))
            iterations_run += 1

            primal_sq = states.aggregate(0.0, _accumulate_primal_sq, _add)
            primal_residual = float(np.sqrt(primal_sq))
            dual_residual = float(rho * np.sqrt(n_parts) * np.linalg.norm(z - z_prev))
            loss = states.aggregate(
                0.0, functools.partial(_accumulate_loss, self.updater, z), _add
            )
            objective = float(loss + self.updater.regularizer(z))

            row = {
                "objective": objective,
                "primal_residual": primal_residual,
                "dual_residual": dual_residual,
                "rho": rho,
            }
            for key, value in row.items():
                history[key].append(value)
            if self.callback is not None:
                self.callback(iteration, row)

            if (
                self.early_stopping
                and primal_residual <= float(self.tol_primal)
                and dual_residual <= float(self.tol_dual)
            ):
                stopped_early = True
                break

        history["iterations_run"] = iterations_run
        history["stopped_early"] = stopped_early
        self.history_ = history
        self.states_: List[ADMMState] = states.collect()

        if iterations_run == 0:
            self.z_ = weights0.copy()
            return weights0.copy()
        self.z_ = z.copy()
        return z.copy()
