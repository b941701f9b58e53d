"""ラベル付きデータ点と、配列との明示的な変換ユーティリティ。

責務:
    - LabeledPoint（ラベル + 特徴量ベクトル）の定義
    - ArrayLike <-> Vector の変換（暗黙変換は行わず、境界で必ずここを通す）
    - 2 値ラベル {0, 1} の検証
    - データ点をパーティションへ分割する

注意:
    ラベルは公開 API 上 {0, 1} だが、最適化の内部では {-1, +1} として扱う。
    その変換は state.ADMMState が担当する。
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Sequence, Tuple

import numpy as np

from .types import ArrayLike, Vector


def to_vector(values: ArrayLike) -> Vector:
    """ArrayLike を 1 次元 float64 配列（コピー）へ変換する。

    Raises:
        ValueError: 1 次元でない、または NaN/inf を含む場合。
    """
    vector = np.array(values, dtype=float)
    if vector.ndim == 0:
        vector = vector.reshape(1)
    if vector.ndim != 1:
        raise ValueError("ベクトルは 1 次元配列である必要があります。")
    if np.any(~np.isfinite(vector)):
        raise ValueError("ベクトルに NaN/inf が含まれています。")
    return vector


def to_list(vector: Vector) -> List[float]:
    """Vector を JSON 化しやすい list[float] に変換する。"""
    return [float(v) for v in np.asarray(vector, dtype=float).reshape(-1)]


@dataclass(frozen=True, eq=False)
class LabeledPoint:
    """ラベル付きデータ点（不変）。

    Attributes:
        label: 公開ラベル（0 または 1）。
        features: 特徴量ベクトル。
    """

    label: float
    features: Vector

    def __post_init__(self) -> None:
        features = to_vector(self.features)
        # 共有される読み取り専用データとして扱うため書き込みを禁止する。
        features.setflags(write=False)
        object.__setattr__(self, "features", features)
        object.__setattr__(self, "label", float(self.label))

    @property
    def dimension(self) -> int:
        return int(self.features.shape[0])


def validate_classification_labels(points: Sequence[LabeledPoint]) -> None:
    """全ラベルが {0, 1} であることを検証する。

    Raises:
        ValueError: 0/1 以外のラベルが含まれる場合。
    """
    bad = sorted({p.label for p in points if p.label not in (0.0, 1.0)})
    if bad:
        raise ValueError(
            f"ラベルは 0/1 の二値である必要があります（不正な値: {bad[:5]}）。"
        )


def points_from_arrays(X: ArrayLike, y: ArrayLike) -> List[LabeledPoint]:
    """特徴量行列 X と ラベル y から LabeledPoint のリストを作る。"""
    X_array = np.asarray(X, dtype=float)
    if X_array.ndim == 1:
        X_array = X_array.reshape(-1, 1)
    elif X_array.ndim != 2:
        raise ValueError("X は 2 次元配列（n, p）である必要があります。")

    y_array = np.asarray(y, dtype=float).reshape(-1)
    if X_array.shape[0] != y_array.shape[0]:
        raise ValueError("X と y の行数が一致しません。")
    if np.any(~np.isfinite(y_array)):
        raise ValueError("y に NaN/inf が含まれています。")

    return [LabeledPoint(label, row) for label, row in zip(y_array, X_array)]


def split_into_partitions(
    points: Sequence[LabeledPoint], num_partitions: int
) -> List[Tuple[LabeledPoint, ...]]:
    """データ点を num_partitions 個の連続ブロックに分割する。

    点の順序は保たれ、各点はちょうど 1 つのパーティションに属する。
    点数がパーティション数より少ない場合、空のパーティションは作らない。

    Raises:
        ValueError: num_partitions < 1、または点が 1 つもない場合。
    """
    if int(num_partitions) < 1:
        raise ValueError("num_partitions は 1 以上である必要があります。")
    if len(points) == 0:
        raise ValueError("データ点が 1 つもありません。")

    n_parts = min(int(num_partitions), len(points))
    bounds = np.linspace(0, len(points), n_parts + 1).astype(int)
    return [
        tuple(points[bounds[k] : bounds[k + 1]]) for k in range(n_parts)
    ]
