"""ADMM によるスパースロジスティック回帰の推定器と、学習結果の線形モデル。

本モジュールは利用者向けの "顔" を提供する:
    - train(): 分割済みデータから重みベクトルを直接得る関数 API
    - SparseLogisticRegressionWithADMM: sklearn 風の推定器（fit / run / predict）
    - LogisticRegressionModel: 重みから予測を行う線形モデル

ハイパーパラメータは __init__ 引数、学習結果は fit 後属性（末尾 '_'）として保持する。
ラベルは {0, 1} を要求し、最適化の開始前に検証する。
切片は扱わない（必要なら特徴量に定数列を足しておく）。
"""

from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

import numpy as np

from .config import resolve_config
from .objective import phi
from .optimizer import ADMMOptimizer, IterationCallback
from .partitioned import PartitionedCollection
from .points import (
    LabeledPoint,
    points_from_arrays,
    split_into_partitions,
    to_vector,
    validate_classification_labels,
)
from .types import ArrayLike, Vector
from .updater import SparseLogisticRegressionADMMUpdater

PartitionedInput = Union[
    PartitionedCollection[Sequence[LabeledPoint]], Sequence[Sequence[LabeledPoint]]
]


class LogisticRegressionModel:
    """重みベクトルから確率・クラスを予測する線形モデル。

    Args:
        weights: 重みベクトル。
        intercept: 切片（ADMM 学習では常に 0）。
        threshold: クラス 1 と判定する確率の閾値。
    """

    def __init__(
        self, weights: ArrayLike, intercept: float = 0.0, threshold: float = 0.5
    ) -> None:
        self.weights = to_vector(weights)
        self.intercept = float(intercept)
        self.threshold = float(threshold)

    def margin(self, X: ArrayLike) -> np.ndarray:
        X_array = np.asarray(X, dtype=float)
        if X_array.ndim == 1:
            X_array = X_array.reshape(1, -1)
        if X_array.shape[1] != self.weights.shape[0]:
            raise ValueError("X の特徴量数が重みの次元と一致しません。")
        return X_array @ self.weights + self.intercept

    def predict_proba(self, X: ArrayLike) -> np.ndarray:
        """クラス 1 の確率を返す。"""
        return np.atleast_1d(phi(self.margin(X)))

    def predict(self, X: ArrayLike) -> np.ndarray:
        """{0, 1} のクラスを返す。"""
        return (self.predict_proba(X) > self.threshold).astype(int)

    def score(self, X: ArrayLike, y: ArrayLike) -> float:
        """正解率を返す。"""
        y_array = np.asarray(y).reshape(-1)
        return float(np.mean(self.predict(X) == y_array))


class SparseLogisticRegressionWithADMM:
    """ADMM による（スパース）ロジスティック回帰の推定器。

    主要ハイパーパラメータ:
        - num_iterations: ADMM の外側反復回数
        - lambda_: 正則化の強さ λ
        - rho: ADMM のペナルティ係数 ρ
        - lbfgs_*: x 更新で使う L-BFGS の設定
        - regularization: 'l2'（閉形式の縮小）または 'l1'（soft-thresholding）
        - num_partitions / parallel_mode / max_workers: fit() でのデータ分割と並列実行
    """

    def __init__(
        self,
        num_iterations: int = 100,
        lambda_: float = 0.01,
        rho: float = 1.0,
        lbfgs_max_num_iterations: int = 5,
        lbfgs_history: int = 10,
        lbfgs_tolerance: float = 1e-4,
        regularization: str = "l2",
        num_partitions: int = 4,
        parallel_mode: str = "none",
        max_workers: Optional[int] = None,
        tol_primal: Optional[float] = None,
        tol_dual: Optional[float] = None,
        show_progress: bool = True,
        callback: Optional[IterationCallback] = None,
    ) -> None:
        self.num_iterations = num_iterations
        self.lambda_ = lambda_
        self.rho = rho
        self.lbfgs_max_num_iterations = lbfgs_max_num_iterations
        self.lbfgs_history = lbfgs_history
        self.lbfgs_tolerance = lbfgs_tolerance
        self.regularization = regularization
        self.num_partitions = num_partitions
        self.parallel_mode = parallel_mode
        self.max_workers = max_workers
        self.tol_primal = tol_primal
        self.tol_dual = tol_dual
        self.show_progress = show_progress
        self.callback = callback

    @classmethod
    def from_config(
        cls, config: Mapping[str, Any], callback: Optional[IterationCallback] = None
    ) -> "SparseLogisticRegressionWithADMM":
        """設定辞書（TOML/JSON をロードしたもの）から推定器を構築する。

        Raises:
            ValueError: 未知のキーや不正な値が含まれる場合。
        """
        return cls(callback=callback, **resolve_config(config))

    def build_optimizer(self) -> ADMMOptimizer:
        """Updater とドライバを構築する（設定の誤りはここで ValueError になる）。"""
        updater = SparseLogisticRegressionADMMUpdater(
            lambda_=self.lambda_,
            rho=self.rho,
            lbfgs_max_num_iterations=self.lbfgs_max_num_iterations,
            lbfgs_history=self.lbfgs_history,
            lbfgs_tolerance=self.lbfgs_tolerance,
            regularization=self.regularization,
        )
        return ADMMOptimizer(
            self.num_iterations,
            updater,
            tol_primal=self.tol_primal,
            tol_dual=self.tol_dual,
            callback=self.callback,
            show_progress=self.show_progress,
        )

    def run(
        self, data: PartitionedInput, initial_weights: Optional[ArrayLike] = None
    ) -> LogisticRegressionModel:
        """分割済みデータで学習し、LogisticRegressionModel を返す。

        Args:
            data: PartitionedCollection、またはパーティションごとの LabeledPoint 列のリスト。
            initial_weights: 初期重み。None ならゼロベクトル。

        Raises:
            ValueError: ラベルが 0/1 以外、パーティションが 0 個、点が 1 つもない、
                ハイパーパラメータが不正、など（最適化は開始されない）。
        """
        if isinstance(data, PartitionedCollection):
            collection = data
        else:
            collection = PartitionedCollection(
                [tuple(part) for part in data],
                parallel_mode=self.parallel_mode,
                max_workers=self.max_workers,
            )

        all_points: List[LabeledPoint] = [
            point for part in collection.collect() for point in part
        ]
        if not all_points:
            raise ValueError("データ点が 1 つもありません。")
        validate_classification_labels(all_points)

        if initial_weights is None:
            weights0 = np.zeros(all_points[0].dimension, dtype=float)
        else:
            weights0 = to_vector(initial_weights)

        optimizer = self.build_optimizer()
        with collection:
            weights = optimizer.optimize(collection, weights0)

        self.n_features_in_ = int(weights0.shape[0])
        self.n_partitions_ = collection.num_partitions
        self.coef_ = weights
        self.z_ = optimizer.z_
        self.u_ = [state.u.copy() for state in optimizer.states_]
        self.x_ = [state.x.copy() for state in optimizer.states_]
        self.history_: Dict[str, Any] = optimizer.history_
        self.model_ = LogisticRegressionModel(weights)
        return self.model_

    def fit(self, X: ArrayLike, y: ArrayLike) -> "SparseLogisticRegressionWithADMM":
        """特徴量行列とラベルから学習する（num_partitions 個に分割して ADMM を回す）。"""
        points = points_from_arrays(X, y)
        self.run(split_into_partitions(points, self.num_partitions))
        return self

    def predict_proba(self, X: ArrayLike) -> np.ndarray:
        self._check_is_fitted()
        return self.model_.predict_proba(X)

    def predict(self, X: ArrayLike) -> np.ndarray:
        self._check_is_fitted()
        return self.model_.predict(X)

    def score(self, X: ArrayLike, y: ArrayLike) -> float:
        self._check_is_fitted()
        return self.model_.score(X, y)

    def _check_is_fitted(self) -> None:
        if not hasattr(self, "model_"):
            raise RuntimeError(
                "This SparseLogisticRegressionWithADMM instance is not fitted yet."
            )


def train(
    data: PartitionedInput,
    num_iterations: int,
    lambda_: float,
    rho: float,
    **options: Any,
) -> Vector:
    """分割済みのラベル付きデータから重みベクトルを学習する。

    Args:
        data: パーティションごとの LabeledPoint 列（または PartitionedCollection）。
        num_iterations: ADMM の外側反復回数。
        lambda_: 正則化の強さ。
        rho: ADMM のペナルティ係数。
        **options: lbfgs_max_num_iterations など、推定器のその他の引数。

    Returns:
        学習された重みベクトル（最終的な合意変数 z）。
    """
    options.setdefault("show_progress", False)
    estimator = SparseLogisticRegressionWithADMM(
        num_iterations=num_iterations, lambda_=lambda_, rho=rho, **options
    )
    return estimator.run(data).weights
