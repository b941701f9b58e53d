from __future__ import annotations

import sys
from pathlib import Path

import numpy as np

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

from generation.generator import DataGenerator


def test_clusters_are_balanced_and_separable() -> None:
    generator = DataGenerator({"n": 101, "p": 3, "kind": "clusters", "seed": 1})
    df, raw = generator.simulate()
    if list(df.columns) != ["x1", "x2", "x3", "label"]:
        raise AssertionError(f"unexpected columns: {list(df.columns)}")
    y = raw["y"]
    if int(y.sum()) != 51:
        raise AssertionError(f"unexpected class balance: {int(y.sum())}")
    # 中心方向への射影で完全に分離できる
    projection = raw["X"] @ generator.center
    if not np.all((projection > 0) == (y == 1)):
        raise AssertionError("clusters are not separable through the origin")


def test_logistic_labels_follow_beta() -> None:
    generator = DataGenerator({"n": 2000, "p": 2, "kind": "logistic", "beta": [4.0, 0.0]})
    X, y = generator.generate()
    if set(np.unique(y)) - {0, 1}:
        raise AssertionError("labels must be 0/1")
    agreement = np.mean((X[:, 0] > 0) == (y == 1))
    if agreement < 0.8:
        raise AssertionError(f"labels do not follow beta: agreement={agreement:.3f}")


def test_invalid_generator_config() -> None:
    for config in ({"kind": "spiral"}, {"p": 2, "beta": [1.0]}, {"n": 0}):
        try:
            DataGenerator(config)
        except ValueError:
            continue
        raise AssertionError(f"expected ValueError for {config}")


def main() -> None:
    test_clusters_are_balanced_and_separable()
    test_logistic_labels_follow_beta()
    test_invalid_generator_config()
    print("OK: data generator checks passed")


if __name__ == "__main__":
    main()
