"""型定義。

ArrayLike は「np.asarray に渡せるもの」全般（list / tuple / ndarray など）を表す。
Vector は内部で扱う 1 次元 float64 配列を表す。
公開 API の境界では points.to_vector で ArrayLike -> Vector に明示的に変換する。
"""

from typing import Any

import numpy as np

# ArrayLike:
# - 利用者から受け取る「配列のように扱える」入力。
ArrayLike = Any

# Vector:
# - x / z / u / 重みなど、特徴量次元と同じ長さの 1 次元配列。
Vector = np.ndarray
