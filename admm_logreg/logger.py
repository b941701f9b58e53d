"""Weights & Biases へ ADMM の反復履歴を送るためのロガー。

方針:
    - wandb は任意依存。未インストールでも学習自体は動作させる。
    - ロガーは推定器から分離し、反復ごとのコールバック（log_iteration）として渡す。
    - 有効化は環境変数 WANDB_PROJECT / WANDB_ENABLED で行う（logger_from_env）。
"""

from __future__ import annotations

import importlib
import os
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Optional


def _import_wandb():
    try:
        return importlib.import_module("wandb")
    except ImportError as exc:
        raise RuntimeError(
            "wandb がインストールされていません。"
            " `pip install wandb` を実行するか、ロギングを無効化してください。"
        ) from exc


def wandb_available() -> bool:
    """wandb が利用可能かを返す。"""

    try:
        _import_wandb()
        return True
    except RuntimeError:
        return False


@dataclass
class WandBLogger:
    """ADMM の学習経過を WandB に記録する。"""

    project: str
    entity: Optional[str] = None
    name: Optional[str] = None
    tags: Optional[Iterable[str]] = None
    enabled: bool = True
    _run: Any = field(default=None, init=False, repr=False)

    def start_run(self, config: Optional[Dict[str, Any]] = None) -> None:
        if not self.enabled:
            return
        wandb = _import_wandb()
        self._run = wandb.init(
            project=self.project,
            entity=self.entity,
            name=self.name,
            tags=list(self.tags) if self.tags else None,
            config=config,
        )

    def log_iteration(self, iteration: int, row: Dict[str, Any]) -> None:
        """ADMM の 1 反復分（objective / 残差など）を記録する。

        ADMMOptimizer の callback としてそのまま渡せる。
        """

        if not self.enabled or self._run is None:
            return
        wandb = _import_wandb()
        wandb.log({f"admm/{key}": value for key, value in row.items()}, step=iteration)

    def log_summary(self, metrics: Dict[str, Any]) -> None:
        """学習後の要約（正解率・最終残差など）を run の summary に書き込む。"""

        if not self.enabled or self._run is None:
            return
        for key, value in metrics.items():
            self._run.summary[f"summary/{key}"] = value

    def finish(self) -> None:
        if not self.enabled or self._run is None:
            return
        wandb = _import_wandb()
        wandb.finish()
        self._run = None


def logger_from_env(
    run_name: str, config: Optional[Dict[str, Any]] = None
) -> Optional[WandBLogger]:
    """環境変数に応じて WandBLogger を開始して返す。無効なら None。"""

    project = os.getenv("WANDB_PROJECT")
    enabled = os.getenv("WANDB_ENABLED", "").lower() in {"1", "true", "yes"}
    if not (project or enabled):
        return None
    if not wandb_available():
        print("WandB が利用できないためロギングをスキップします。")
        return None
    logger = WandBLogger(project=project or "admm-logreg", name=run_name)
    logger.start_run(config=config)
    return logger
