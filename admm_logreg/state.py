"""各パーティションが ADMM 反復を通じて保持する状態。

ADMMState はパーティションごとに 1 つ作られ、外側反復ごとに
dataclasses.replace で更新済みのコピーに置き換えられる（元の状態は変更しない）。

変数の意味:
    x: 局所主変数（そのパーティションだけの推定値）
    z: 合意変数（全パーティションに放送される共通の推定値）
    u: スケール済み双対変数（x と z の食い違いの累積）
    dual: 一部のアルゴリズムが使う追加の双対変数。基本アルゴリズムでは None。
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Optional, Sequence, Tuple

import numpy as np

from .points import LabeledPoint, to_vector
from .types import ArrayLike, Vector


def zeros(n: int) -> Vector:
    return np.zeros(int(n), dtype=float)


@dataclass(frozen=True, eq=False)
class PartitionData:
    """1 パーティション分のデータ点（初期化時に一度だけ作り、以後は読み取り専用）。

    features は (n, d) の行列、signed_labels は {0,1} -> {-1,+1} に変換したラベル。
    """

    points: Tuple[LabeledPoint, ...]
    features: np.ndarray
    signed_labels: np.ndarray

    @classmethod
    def from_points(
        cls, points: Sequence[LabeledPoint], dimension: int
    ) -> "PartitionData":
        points = tuple(points)
        for point in points:
            if point.dimension != dimension:
                raise ValueError(
                    f"特徴量の次元が一致しません（期待値 {dimension}, 実際 {point.dimension}）。"
                )
        if points:
            features = np.vstack([p.features for p in points])
        else:
            features = np.zeros((0, dimension), dtype=float)
        signed_labels = np.array([2.0 * p.label - 1.0 for p in points], dtype=float)
        features.setflags(write=False)
        signed_labels.setflags(write=False)
        return cls(points=points, features=features, signed_labels=signed_labels)


@dataclass(frozen=True, eq=False)
class ADMMState:
    """1 パーティションの ADMM 状態。"""

    data: PartitionData
    x: Vector
    z: Vector
    u: Vector
    # 追加の結合制約を持つ変種のための双対変数（基本アルゴリズムでは使わない）。
    dual: Optional[Vector] = None

    def __post_init__(self) -> None:
        dim = self.data.features.shape[1]
        for name in ("x", "z", "u", "dual"):
            value = getattr(self, name)
            if value is None:
                continue
            vector = np.asarray(value, dtype=float)
            if vector.shape != (dim,):
                raise ValueError(
                    f"{name} の次元 {vector.shape} が特徴量次元 {dim} と一致しません。"
                )
            object.__setattr__(self, name, vector)

    @classmethod
    def initial(
        cls, points: Sequence[LabeledPoint], initial_weights: ArrayLike
    ) -> "ADMMState":
        """初期状態を作る（x = 初期重み、z = u = 0、dual = None）。"""
        weights = to_vector(initial_weights)
        data = PartitionData.from_points(points, weights.shape[0])
        return cls(
            data=data,
            x=weights,
            z=zeros(weights.shape[0]),
            u=zeros(weights.shape[0]),
            dual=None,
        )

    def copy_with(self, **changes) -> "ADMMState":
        """指定した変数だけ差し替えたコピーを返す（data は共有する）。"""
        return replace(self, **changes)

    @property
    def points(self) -> Tuple[LabeledPoint, ...]:
        return self.data.points

    @property
    def features(self) -> np.ndarray:
        return self.data.features

    @property
    def signed_labels(self) -> np.ndarray:
        return self.data.signed_labels

    @property
    def num_points(self) -> int:
        return len(self.data.points)

    @property
    def dimension(self) -> int:
        return int(self.data.features.shape[1])
