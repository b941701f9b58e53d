import argparse
import json
import numpy as np
import pandas as pd


class DataGenerator:
    """
    2 値分類（ラベル {0, 1}）用のデータ生成器。

    モード（configの "kind" で指定）
      - "clusters": 原点に関して対称な 2 つのガウス塊
            ラベル1: N(+center, σ^2 I)、ラベル0: N(-center, σ^2 I)
            center と σ が十分離れていれば原点を通る超平面で線形分離できる
      - "logistic": P(y=1 | x) = 1 / (1 + exp(-x·β)) に従うラベル

    設定パラメータ（configにて指定可能）
      - n: サンプルサイズ（デフォルト: 200）
      - p: 特徴量の個数（デフォルト: 2）
      - kind: "clusters" または "logistic"（デフォルト: "clusters"）
      - center: clusters の塊の中心（長さ p、未指定なら全成分 2.0）
      - sigma: clusters の標準偏差（デフォルト: 0.5）
      - beta: logistic の係数ベクトル（長さ p）。未指定なら N(0,1) から乱数生成
      - seed: 乱数シード（デフォルト: 42）
    """

    def __init__(self, config=None):
        cfg = config or {}
        self.n = int(cfg.get("n", 200))
        self.p = int(cfg.get("p", 2))
        self.kind = cfg.get("kind", "clusters")
        self.sigma = float(cfg.get("sigma", 0.5))
        self.seed = cfg.get("seed", 42)

        if self.n <= 0 or self.p <= 0:
            raise ValueError("n と p は正の整数である必要があります")
        if self.kind not in {"clusters", "logistic"}:
            raise ValueError(f"Unknown kind: {self.kind}")

        center_cfg = cfg.get("center")
        if center_cfg is None:
            self.center = np.full(self.p, 2.0)
        else:
            self.center = np.asarray(center_cfg, dtype=float)
            if self.center.shape != (self.p,):
                raise ValueError("center の長さは p と一致させてください")

        beta_cfg = cfg.get("beta")
        if beta_cfg is None:
            self.beta = np.random.default_rng(self.seed).normal(0.0, 1.0, self.p)
        else:
            self.beta = np.asarray(beta_cfg, dtype=float)
            if self.beta.shape != (self.p,):
                raise ValueError("beta の長さは p と一致させてください")

    def generate(self, seed=None):
        """特徴量行列 X (n, p) とラベル y (n,) を生成する。"""
        rng = np.random.default_rng(self.seed if seed is None else seed)
        if self.kind == "clusters":
            # 半分ずつ（奇数なら 1 が 1 つ多い）
            y = (np.arange(self.n) < (self.n + 1) // 2).astype(int)
            sign = np.where(y == 1, 1.0, -1.0)
            X = sign[:, None] * self.center[None, :] + rng.normal(
                0.0, self.sigma, size=(self.n, self.p)
            )
            order = rng.permutation(self.n)
            return X[order], y[order]

        X = rng.normal(0.0, 1.0, size=(self.n, self.p))
        prob = 1.0 / (1.0 + np.exp(-X.dot(self.beta)))
        y = (rng.uniform(size=self.n) < prob).astype(int)
        return X, y

    def simulate(self, seed=None):
        """X と y を生成し、DataFrame を返す。"""
        X, y = self.generate(seed)
        df = pd.DataFrame(X, columns=[f"x{k}" for k in range(1, self.p + 1)])
        df["label"] = y
        return df, {"X": X, "y": y}


def load_config(config_path: str) -> dict:
    """JSON設定ファイルの読み込み。"""
    with open(config_path, "r", encoding="utf-8") as f:
        return json.load(f)


def main():
    parser = argparse.ArgumentParser(
        description="ロジスティック回帰用の 2 値分類データを生成"
    )
    parser.add_argument(
        "--config",
        type=str,
        help="設定ファイル（JSON形式）のパス",
        default=None,
    )
    parser.add_argument(
        "--output", type=str, help="出力CSVファイルのパス", default="simulated_data.csv"
    )
    args = parser.parse_args()

    config = load_config(args.config) if args.config else {}
    generator = DataGenerator(config)
    df, _ = generator.simulate()
    df.to_csv(args.output, index=False)
    print(f"シミュレーションデータを {args.output} に保存しました。")


if __name__ == "__main__":
    main()
