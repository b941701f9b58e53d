#!/usr/bin/env python3
"""ADMM の収束履歴の可視化スクリプト

目的:
    main.py --output で保存した結果 JSON を 1 つ以上読み込み、
    目的関数と primal/dual residual の推移を重ねて描く。

使い方:
    python scripts/visualize_history.py outputs/run_a.json outputs/run_b.json --output-dir outputs
"""

import argparse
import json
from pathlib import Path
from typing import Dict, List

import matplotlib.pyplot as plt
import numpy as np


def load_history(result_path: Path) -> Dict[str, List[float]]:
    """結果JSONから history を読み込む。"""
    with open(result_path, "r", encoding="utf-8") as f:
        payload = json.load(f)
    history = payload.get("history")
    if not isinstance(history, dict) or "objective" not in history:
        raise ValueError(f"history がありません: {result_path}")
    return history


def plot_histories(histories: Dict[str, Dict[str, List[float]]], output_dir: Path) -> None:
    """目的関数と残差の推移をプロット

    Args:
        histories: ラベル -> history
        output_dir: プロット保存先ディレクトリ
    """
    fig, axes = plt.subplots(1, 3, figsize=(15, 4))
    keys = ["objective", "primal_residual", "dual_residual"]

    for label, history in histories.items():
        for ax, key in zip(axes, keys):
            values = np.asarray(history.get(key, []), dtype=float)
            if values.size == 0:
                continue
            ax.plot(np.arange(1, values.size + 1), values, label=label, alpha=0.8)

    for ax, key in zip(axes, keys):
        if key != "objective":
            ax.set_yscale("log")
        ax.set_xlabel("iteration")
        ax.set_ylabel(key)
        ax.grid(True, alpha=0.3)
    axes[0].legend(loc="best", fontsize="small")

    fig.tight_layout()
    output_path = output_dir / "admm_history.png"
    fig.savefig(output_path, dpi=150, bbox_inches="tight")
    print(f"Saved plot to: {output_path}")
    plt.close(fig)


def main() -> None:
    parser = argparse.ArgumentParser(description="ADMM 収束履歴の可視化")
    parser.add_argument("results", type=Path, nargs="+", help="結果JSONのパス")
    parser.add_argument(
        "--output-dir",
        type=Path,
        default=Path("."),
        help="出力ディレクトリ（デフォルト: カレント）",
    )
    args = parser.parse_args()

    args.output_dir.mkdir(parents=True, exist_ok=True)
    histories = {path.stem: load_history(path) for path in args.results}
    plot_histories(histories, args.output_dir)


if __name__ == "__main__":
    main()
