"""admm_logreg パッケージ。

外部に公開する API（推定器・関数 API・線形モデル）をここで再エクスポートする。
利用者は基本的に `from admm_logreg import SparseLogisticRegressionWithADMM` の形で import できる。
"""

from .model import LogisticRegressionModel, SparseLogisticRegressionWithADMM, train
from .points import LabeledPoint

__all__ = [
    "LabeledPoint",
    "LogisticRegressionModel",
    "SparseLogisticRegressionWithADMM",
    "train",
]
