from __future__ import annotations

import os
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

from admm_logreg.logger import WandBLogger, logger_from_env


def test_logger_disabled_without_env() -> None:
    saved = {key: os.environ.pop(key, None) for key in ("WANDB_PROJECT", "WANDB_ENABLED")}
    try:
        if logger_from_env("run") is not None:
            raise AssertionError("logger must be None when WandB is not requested")
    finally:
        for key, value in saved.items():
            if value is not None:
                os.environ[key] = value


def test_disabled_logger_is_a_no_op_callback() -> None:
    logger = WandBLogger(project="admm-logreg", enabled=False)
    logger.start_run(config={"rho": 1.0})
    logger.log_iteration(0, {"objective": 1.0})
    logger.log_summary({"train_accuracy": 1.0})
    logger.finish()


def main() -> None:
    test_logger_disabled_without_env()
    test_disabled_logger_is_a_no_op_callback()
    print("OK: logger checks passed")


if __name__ == "__main__":
    main()
