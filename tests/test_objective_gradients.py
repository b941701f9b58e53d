from __future__ import annotations

import sys
from pathlib import Path

import numpy as np

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

from admm_logreg.objective import MAX_ABS_MARGIN, LogisticObjective, log_phi, phi
from admm_logreg.points import LabeledPoint
from admm_logreg.state import ADMMState


def assert_allclose(
    a: np.ndarray, b: np.ndarray, *, atol: float, rtol: float, name: str
) -> None:
    a = np.asarray(a, dtype=float)
    b = np.asarray(b, dtype=float)
    diff = np.max(np.abs(a - b))
    denom = np.max(np.abs(b))
    if not np.all(np.isfinite(a)) or not np.all(np.isfinite(b)):
        raise AssertionError(f"{name}: contains NaN/inf")
    if diff > atol + rtol * denom:
        raise AssertionError(
            f"{name}: not close (max|a-b|={diff:.3e}, max|b|={denom:.3e}, atol={atol:.1e}, rtol={rtol:.1e})"
        )


def make_state(rng: np.random.Generator, n: int = 10, p: int = 3) -> ADMMState:
    X = rng.normal(size=(n, p))
    y = rng.integers(0, 2, size=n)
    points = [LabeledPoint(label, row) for label, row in zip(y, X)]
    state = ADMMState.initial(points, np.zeros(p))
    return state.copy_with(z=rng.normal(size=p), u=rng.normal(scale=0.5, size=p))


def test_phi_and_log_phi_stable_at_extremes() -> None:
    margins = np.array([-1e6, -1e4, -50.0, -1.0, 0.0, 1.0, 50.0, 1e4, 1e6])
    p = phi(margins)
    lp = log_phi(margins)
    if not np.all(np.isfinite(p)) or not np.all(np.isfinite(lp)):
        raise AssertionError(f"phi/log_phi not finite: {p}, {lp}")
    if np.any(p < 0.0) or np.any(p > 1.0):
        raise AssertionError(f"phi out of [0,1]: {p}")
    if np.any(lp > 0.0):
        raise AssertionError(f"log_phi must be <= 0: {lp}")

    # クリップされるので -1e6 でも -MAX_ABS_MARGIN になる
    if log_phi(-1e6) != -MAX_ABS_MARGIN:
        raise AssertionError(f"log_phi(-1e6) unexpected: {log_phi(-1e6)}")
    if not isinstance(phi(0.0), float) or phi(0.0) != 0.5:
        raise AssertionError(f"phi(0) unexpected: {phi(0.0)!r}")


def test_log_phi_matches_log_of_phi() -> None:
    t = np.linspace(-30.0, 30.0, 121)
    p = phi(t)
    if np.any(p <= 0.0) or np.any(p >= 1.0):
        raise AssertionError("phi must be strictly inside (0,1) for moderate margins")
    assert_allclose(log_phi(t), np.log(p), atol=1e-12, rtol=1e-10, name="log_phi")

    # 対称性: phi(t) + phi(-t) = 1
    assert_allclose(phi(t) + phi(-t), np.ones_like(t), atol=1e-12, rtol=0.0, name="phi symmetry")


def test_gradient_matches_finite_difference() -> None:
    rng = np.random.default_rng(0)
    state = make_state(rng)
    objective = LogisticObjective(rho=1.3)

    eps = 1e-6
    for _ in range(3):
        w = rng.normal(size=state.dimension)
        grad = objective.gradient(state, w)
        grad_fd = np.zeros_like(grad)
        for i in range(w.size):
            step = np.zeros_like(w)
            step[i] = eps
            f_plus = objective.value(state, w + step)
            f_minus = objective.value(state, w - step)
            grad_fd[i] = (f_plus - f_minus) / (2 * eps)
        assert_allclose(grad, grad_fd, atol=1e-5, rtol=1e-5, name="gradient")


def test_objective_is_convex_along_segments() -> None:
    rng = np.random.default_rng(1)
    state = make_state(rng, n=25, p=4)
    objective = LogisticObjective(rho=0.7)

    for _ in range(20):
        a = rng.normal(scale=3.0, size=state.dimension)
        b = rng.normal(scale=3.0, size=state.dimension)
        mid = objective.value(state, 0.5 * (a + b))
        avg = 0.5 * (objective.value(state, a) + objective.value(state, b))
        if mid > avg + 1e-10:
            raise AssertionError(f"convexity violated: f(mid)={mid}, avg={avg}")


def test_objective_finite_for_huge_weights() -> None:
    rng = np.random.default_rng(2)
    state = make_state(rng)
    objective = LogisticObjective(rho=1.0)
    w = np.full(state.dimension, 1e8)
    if not np.isfinite(objective.loss(state, w)):
        raise AssertionError("loss overflowed for huge weights")
    if not np.all(np.isfinite(objective.gradient(state, w))):
        raise AssertionError("gradient overflowed for huge weights")


def main() -> None:
    test_phi_and_log_phi_stable_at_extremes()
    test_log_phi_matches_log_of_phi()
    test_gradient_matches_finite_difference()
    test_objective_is_convex_along_segments()
    test_objective_finite_for_huge_weights()
    print("OK: logistic objective stability/gradient checks passed")


if __name__ == "__main__":
    main()
