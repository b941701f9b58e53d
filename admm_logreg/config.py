"""設定ファイル（TOML/JSON）の読み込みと、推定器引数への正規化。

目的:
    学習ジョブを「設定ファイルで再現可能」にするため、ハイパーパラメータを
    JSON/TOML として外部化し、SparseLogisticRegressionWithADMM の引数辞書に変換する。

設定例（TOML）:
    num_iterations = 20
    lambda = 0.01
    rho = 1.0
    num_partitions = 4

    [lbfgs]
    max_num_iterations = 5
    history = 10
    tolerance = 1e-4
"""

from __future__ import annotations

import json
import tomllib
from pathlib import Path
from typing import Any, Dict, Mapping

DEFAULT_CONFIG: Dict[str, Any] = {
    "num_iterations": 100,
    "lambda_": 0.01,
    "rho": 1.0,
    "lbfgs_max_num_iterations": 5,
    "lbfgs_history": 10,
    "lbfgs_tolerance": 1e-4,
    "regularization": "l2",
    "num_partitions": 4,
    "parallel_mode": "none",
    "max_workers": None,
    "tol_primal": None,
    "tol_dual": None,
    "show_progress": True,
}

# camelCase 表記や "lambda"（Python の予約語）を推定器の引数名へ対応付ける。
KEY_ALIASES: Dict[str, str] = {
    "numIterations": "num_iterations",
    "lambda": "lambda_",
    "lbfgsMaxNumIterations": "lbfgs_max_num_iterations",
    "lbfgsHistory": "lbfgs_history",
    "lbfgsTolerance": "lbfgs_tolerance",
    "numPartitions": "num_partitions",
}

# [lbfgs] サブテーブルのキー。
LBFGS_KEYS: Dict[str, str] = {
    "max_num_iterations": "lbfgs_max_num_iterations",
    "history": "lbfgs_history",
    "tolerance": "lbfgs_tolerance",
}


def load_config(path: Path) -> Dict[str, Any]:
    """設定ファイルを読み込み、Python の辞書として返す。

    Raises:
        FileNotFoundError: 指定パスが存在しない場合。
        ValueError: 対応していない拡張子の場合。
        json.JSONDecodeError / tomllib.TOMLDecodeError: パースに失敗した場合。
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    if path.suffix == ".toml":
        # tomllib.load はバイナリファイルオブジェクトを想定する。
        with path.open("rb") as handle:
            return tomllib.load(handle)

    if path.suffix == ".json":
        with path.open("r", encoding="utf-8") as handle:
            return json.load(handle)

    raise ValueError(f"Unsupported config format: {path.suffix}")


def resolve_config(config: Mapping[str, Any]) -> Dict[str, Any]:
    """設定辞書を既定値で補い、推定器の引数名にそろえた辞書を返す。

    値の妥当性（rho > 0 など）は推定器・Updater の構築時に検証する。

    Raises:
        ValueError: 未知のキー、または同じ設定が別名で重複している場合。
    """
    config_dict = dict(config)
    resolved: Dict[str, Any] = {}

    lbfgs = config_dict.pop("lbfgs", None) or {}
    if not isinstance(lbfgs, Mapping):
        raise ValueError("lbfgs はテーブル（dict）である必要があります。")
    for key, value in lbfgs.items():
        if key not in LBFGS_KEYS:
            raise ValueError(f"Unknown lbfgs config key: {key!r}")
        _set_once(resolved, LBFGS_KEYS[key], value)

    for key, value in config_dict.items():
        name = KEY_ALIASES.get(key, key)
        if name not in DEFAULT_CONFIG:
            raise ValueError(f"Unknown config key: {key!r}")
        _set_once(resolved, name, value)

    return {**DEFAULT_CONFIG, **resolved}


def _set_once(resolved: Dict[str, Any], name: str, value: Any) -> None:
    if name in resolved:
        raise ValueError(f"Config key specified more than once: {name!r}")
    resolved[name] = value
