"""CLI エントリポイント。

目的:
    設定ファイル（TOML/JSON）から `SparseLogisticRegressionWithADMM` 推定器を構築し、
    CSV のデータで学習して結果を表示・保存する。

想定される例外:
    - 設定ファイルが存在しない: FileNotFoundError
    - JSON/TOML の構文エラー: パーサ由来の例外
    - ラベルが 0/1 以外・ハイパーパラメータが不正: ValueError
"""

import argparse
import json
from pathlib import Path
from typing import Optional, Sequence

import numpy as np
import pandas as pd

try:
    import matplotlib.pyplot as plt
except ImportError:
    plt = None

from admm_logreg.config import load_config
from admm_logreg.logger import logger_from_env
from admm_logreg.model import SparseLogisticRegressionWithADMM
from admm_logreg.points import to_list


def main(argv: Optional[Sequence[str]] = None) -> None:
    """コマンドライン引数を解釈し、学習を実行する。"""

    parser = argparse.ArgumentParser(description="Sparse logistic regression with ADMM")

    # --config: 既定ではカレントディレクトリの config.toml を使う。
    parser.add_argument(
        "--config",
        type=Path,
        default=Path("config.toml"),
        help="Path to a TOML or JSON config file.",
    )
    parser.add_argument(
        "--data",
        type=Path,
        default=Path("data/simulated_data.csv"),
        help="Path to a CSV dataset (feature columns + label column).",
    )
    parser.add_argument(
        "--label-column",
        type=str,
        default="label",
        help="Name of the 0/1 label column.",
    )
    # 切片は推定しないので、必要ならここで定数列を特徴量に足す。
    parser.add_argument(
        "--add-bias",
        action="store_true",
        help="Append a constant 1.0 feature column (bias term).",
    )
    parser.add_argument(
        "--output",
        type=Path,
        default=None,
        help="Path to write result JSON (optional).",
    )
    parser.add_argument(
        "--plot",
        action="store_true",
        help="Save residual history (and 2-D decision boundary) plots (requires matplotlib).",
    )

    args = parser.parse_args(argv)

    config = load_config(args.config)

    data_path = args.data
    data = pd.read_csv(data_path)
    if args.label_column not in data.columns:
        raise ValueError(f"Missing label column in {data_path}: {args.label_column!r}")

    feature_cols = [col for col in data.columns if col != args.label_column]
    X = data[feature_cols].to_numpy(dtype=float)
    y = data[args.label_column].to_numpy()
    if args.add_bias:
        X = np.column_stack([X, np.ones(X.shape[0], dtype=float)])
        feature_cols = feature_cols + ["bias"]

    # WandB ログの準備（任意）。
    wandb_logger = logger_from_env("admm-logreg-run", config={"config": config})

    print("\n=== Run parameters ===")
    print(
        {
            "config_path": str(args.config),
            "data_path": str(data_path),
            "output_path": str(args.output) if args.output is not None else None,
            "add_bias": bool(args.add_bias),
            "plot": bool(args.plot),
            "config": config,
        }
    )

    callback = wandb_logger.log_iteration if wandb_logger is not None else None
    model = SparseLogisticRegressionWithADMM.from_config(config, callback=callback)
    model.fit(X, y)

    coef = pd.Series(model.coef_, index=feature_cols, name="weight")
    accuracy = model.score(X, y)
    history = model.history_

    def last(key):
        return history[key][-1] if history[key] else None

    summary = {
        "train_accuracy": accuracy,
        "objective_last": last("objective"),
        "primal_residual_last": last("primal_residual"),
        "dual_residual_last": last("dual_residual"),
        "iterations_run": history["iterations_run"],
        "stopped_early": history["stopped_early"],
    }

    print("\n=== Estimated weights (coef_) ===")
    print(coef)
    print("\n=== Summary ===")
    print(summary)

    if args.plot:
        if plt is None:
            print("matplotlib が利用できないためプロットをスキップします。")
        else:
            _plot_history(history, Path("admm_history.png"))
            if X.shape[1] == 2 or (args.add_bias and X.shape[1] == 3):
                _plot_boundary(X, y, model.coef_, Path("decision_boundary.png"))

    if args.output is not None:
        output_path = args.output
        output_path.parent.mkdir(parents=True, exist_ok=True)
        result = {
            "data_path": str(data_path),
            "n_samples": int(X.shape[0]),
            "n_features": int(X.shape[1]),
            "feature_cols": feature_cols,
            "coef": to_list(model.coef_),
            "n_partitions": model.n_partitions_,
            "history": history,
            "summary": summary,
            "config": config,
        }
        with output_path.open("w", encoding="utf-8") as handle:
            json.dump(result, handle, ensure_ascii=False, indent=2)
        print(f"Saved result JSON to {output_path}")

    if wandb_logger is not None:
        wandb_logger.log_summary(summary)
        wandb_logger.finish()


def _plot_history(history, output_path: Path) -> None:
    fig, axes = plt.subplots(1, 2, figsize=(10, 4))
    iters = np.arange(1, len(history["objective"]) + 1)
    axes[0].plot(iters, history["objective"], marker=".")
    axes[0].set_xlabel("iteration")
    axes[0].set_ylabel("objective")
    axes[1].semilogy(iters, history["primal_residual"], label="primal")
    axes[1].semilogy(iters, history["dual_residual"], label="dual")
    axes[1].set_xlabel("iteration")
    axes[1].set_ylabel("residual")
    axes[1].legend(loc="best")
    for ax in axes:
        ax.grid(True, linestyle=":", alpha=0.6)
    fig.tight_layout()
    fig.savefig(output_path, dpi=150)
    plt.close(fig)
    print(f"Saved history plot to {output_path}")


def _plot_boundary(X: np.ndarray, y: np.ndarray, coef: np.ndarray, output_path: Path) -> None:
    # w0 x + w1 y + b = 0（bias 列がなければ b = 0）
    bias = float(coef[2]) if coef.shape[0] == 3 else 0.0
    fig, ax = plt.subplots(figsize=(5, 5))
    ax.scatter(X[y == 1, 0], X[y == 1, 1], s=10, label="1")
    ax.scatter(X[y == 0, 0], X[y == 0, 1], s=10, label="0")
    xs = np.linspace(X[:, 0].min(), X[:, 0].max(), 100)
    if abs(coef[1]) > 1e-12:
        ax.plot(xs, -(coef[0] * xs + bias) / coef[1], color="black", linewidth=1)
    ax.set_title("Decision boundary")
    ax.legend(loc="best")
    fig.tight_layout()
    fig.savefig(output_path, dpi=150)
    plt.close(fig)
    print(f"Saved decision boundary plot to {output_path}")


if __name__ == "__main__":
    main()
