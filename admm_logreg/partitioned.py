"""パーティション分割されたコレクション（分散実行ランタイムの最小実装）。

ADMM ドライバが必要とするのは次の 2 操作だけ:
    - map_partitions: 各パーティションへ独立に関数を適用する（x 更新・双対更新）
    - aggregate: 全パーティションの値を 1 つに畳み込む（z 更新）

並列化は concurrent.futures の Executor で行う（'none' / 'threading' / 'multiprocessing'）。
Executor はコンテキストマネージャとして開いている間だけ使われ、
開いていなければ逐次実行になる。

結果は常にパーティション番号順に並ぶので、畳み込みの順序も実行順序に依存しない。
"""

from __future__ import annotations

import functools
import multiprocessing as mp
from concurrent.futures import Executor, ProcessPoolExecutor, ThreadPoolExecutor
from typing import Any, Callable, Generic, Iterator, List, Optional, Sequence, TypeVar

T = TypeVar("T")
R = TypeVar("R")
A = TypeVar("A")

PARALLEL_MODES = ("none", "threading", "multiprocessing")


class _ExecutorHandle:
    """派生コレクション間で 1 つの Executor を共有するための入れ物。"""

    def __init__(self, parallel_mode: str, max_workers: int) -> None:
        self.parallel_mode = parallel_mode
        self.max_workers = max_workers
        self.executor: Optional[Executor] = None
        self.depth = 0

    def open(self) -> None:
        if self.depth == 0:
            if self.parallel_mode == "threading":
                self.executor = ThreadPoolExecutor(max_workers=self.max_workers)
            elif self.parallel_mode == "multiprocessing":
                self.executor = ProcessPoolExecutor(max_workers=self.max_workers)
        self.depth += 1

    def close(self) -> None:
        self.depth -= 1
        if self.depth == 0 and self.executor is not None:
            self.executor.shutdown(wait=True)
            self.executor = None


class PartitionedCollection(Generic[T]):
    """パーティションごとに 1 要素を持つコレクション。

    Args:
        partitions: パーティションの要素列（1 つ以上）。
        parallel_mode: 'none' / 'threading' / 'multiprocessing'。
        max_workers: ワーカ数。None なら min(CPU 数, 8)。

    Raises:
        ValueError: パーティションが 0 個、または未知の parallel_mode の場合。
    """

    def __init__(
        self,
        partitions: Sequence[T],
        parallel_mode: str = "none",
        max_workers: Optional[int] = None,
        _handle: Optional[_ExecutorHandle] = None,
    ) -> None:
        self._partitions: List[T] = list(partitions)
        if not self._partitions:
            raise ValueError("パーティションが 1 つもありません。")
        if _handle is None:
            mode = str(parallel_mode)
            if mode not in PARALLEL_MODES:
                raise ValueError(
                    f"parallel_mode は {PARALLEL_MODES} のいずれかである必要があります: {mode!r}"
                )
            workers = int(max_workers) if max_workers else min(mp.cpu_count(), 8)
            if workers <= 0:
                raise ValueError("max_workers は正の整数である必要があります。")
            _handle = _ExecutorHandle(mode, workers)
        self._handle = _handle

    def __enter__(self) -> "PartitionedCollection[T]":
        self._handle.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self._handle.close()

    def __len__(self) -> int:
        return len(self._partitions)

    def __iter__(self) -> Iterator[T]:
        return iter(list(self._partitions))

    @property
    def num_partitions(self) -> int:
        return len(self._partitions)

    @property
    def parallel_mode(self) -> str:
        return self._handle.parallel_mode

    def collect(self) -> List[T]:
        """現在の要素のスナップショット（リストのコピー）を返す。"""
        return list(self._partitions)

    def map_partitions(self, fn: Callable[[T], R]) -> "PartitionedCollection[R]":
        """各パーティションに fn を適用し、全結果がそろってから新しいコレクションを返す。

        multiprocessing モードでは fn と要素が pickle 可能である必要がある。
        """
        return PartitionedCollection(self._run(fn), _handle=self._handle)

    def aggregate(
        self,
        zero: A,
        seq_op: Callable[[A, T], A],
        comb_op: Callable[[A, A], A],
    ) -> A:
        """各パーティションを seq_op(zero, 要素) で畳み込み、comb_op で順に結合する。

        seq_op / comb_op は引数を書き換えずに新しい値を返すこと。
        """
        partials = self._run(functools.partial(_fold_one, zero, seq_op))
        return functools.reduce(comb_op, partials, zero)

    def _run(self, fn: Callable[[T], Any]) -> List[Any]:
        executor = self._handle.executor
        if executor is None:
            return [fn(part) for part in self._partitions]
        futures = [executor.submit(fn, part) for part in self._partitions]
        # 失敗したパーティションの例外はそのまま呼び出し側へ伝播する。
        return [future.result() for future in futures]


def _fold_one(zero: A, seq_op: Callable[[A, T], A], part: T) -> A:
    return seq_op(zero, part)
