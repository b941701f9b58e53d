from __future__ import annotations

import sys
from pathlib import Path

import numpy as np

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

from admm_logreg.lbfgs import LBFGSSolver
from admm_logreg.partitioned import PartitionedCollection
from admm_logreg.points import LabeledPoint
from admm_logreg.state import ADMMState
from admm_logreg.updater import (
    SparseLogisticRegressionADMMUpdater,
    dual_update,
    l1_z_update,
    linear_z_update,
)


def assert_allclose(
    a: np.ndarray, b: np.ndarray, *, atol: float, rtol: float, name: str
) -> None:
    a = np.asarray(a, dtype=float)
    b = np.asarray(b, dtype=float)
    diff = np.max(np.abs(a - b))
    denom = np.max(np.abs(b))
    if diff > atol + rtol * denom:
        raise AssertionError(f"{name}: not close (max|a-b|={diff:.3e})")


def random_states(rng: np.random.Generator, n_parts: int, p: int) -> list:
    states = []
    for _ in range(n_parts):
        X = rng.normal(size=(5, p))
        y = rng.integers(0, 2, size=5)
        points = [LabeledPoint(label, row) for label, row in zip(y, X)]
        state = ADMMState.initial(points, rng.normal(size=p))
        states.append(state.copy_with(u=rng.normal(size=p)))
    return states


def test_linear_z_update_closed_form() -> None:
    rng = np.random.default_rng(0)
    states = random_states(rng, n_parts=3, p=4)
    lambda_, rho = 0.5, 2.0
    z = linear_z_update(PartitionedCollection(states), lambda_=lambda_, rho=rho)
    expected = rho * sum(s.x + s.u for s in states) / (lambda_ + rho * 3)
    assert_allclose(z, expected, atol=1e-12, rtol=1e-12, name="linear z")


def test_z_update_is_order_independent() -> None:
    rng = np.random.default_rng(1)
    states = random_states(rng, n_parts=7, p=5)
    reference_l2 = linear_z_update(PartitionedCollection(states), lambda_=0.1, rho=1.0)
    reference_l1 = l1_z_update(PartitionedCollection(states), lambda_=0.1, rho=1.0)
    for _ in range(10):
        order = rng.permutation(len(states))
        shuffled = PartitionedCollection([states[i] for i in order])
        assert_allclose(
            linear_z_update(shuffled, lambda_=0.1, rho=1.0),
            reference_l2,
            atol=1e-12,
            rtol=1e-12,
            name="permuted l2 z",
        )
        assert_allclose(
            l1_z_update(shuffled, lambda_=0.1, rho=1.0),
            reference_l1,
            atol=1e-12,
            rtol=1e-12,
            name="permuted l1 z",
        )


def test_l1_z_update_zeroes_small_coordinates() -> None:
    rng = np.random.default_rng(2)
    states = random_states(rng, n_parts=2, p=3)
    # 閾値 λ/(ρP) が十分大きければ z は 0 になる
    z = l1_z_update(PartitionedCollection(states), lambda_=1e6, rho=1.0)
    if not np.all(z == 0.0):
        raise AssertionError(f"expected all-zero z, got {z}")


def test_dual_update_fixed_point_and_accumulation() -> None:
    rng = np.random.default_rng(3)
    state = random_states(rng, n_parts=1, p=3)[0]

    # x == z なら u は変わらない
    fixed = dual_update(state, state.x.copy())
    if not np.array_equal(fixed.u, state.u):
        raise AssertionError("u changed at the fixed point x == z")

    z = rng.normal(size=3)
    updated = dual_update(state, z)
    assert_allclose(updated.u, state.u + state.x - z, atol=0.0, rtol=0.0, name="u")
    if not np.array_equal(updated.z, z):
        raise AssertionError("z was not broadcast into the state")
    if updated.points is not state.points:
        raise AssertionError("points must be shared, not copied")


def test_x_update_warm_start_and_no_mutation() -> None:
    rng = np.random.default_rng(4)
    state = random_states(rng, n_parts=1, p=3)[0]
    z_before, u_before = state.z.copy(), state.u.copy()
    updater = SparseLogisticRegressionADMMUpdater(lambda_=0.1, rho=1.0)

    new_state = updater.x_update(state)
    if not np.array_equal(state.z, z_before) or not np.array_equal(state.u, u_before):
        raise AssertionError("x_update mutated z or u")
    if not np.array_equal(new_state.z, z_before) or not np.array_equal(new_state.u, u_before):
        raise AssertionError("x_update must only replace x")
    if updater.objective(state, new_state.x) > updater.objective(state, state.x):
        raise AssertionError("x_update increased the local objective")

    # 同じ入力なら同じ結果
    again = updater.x_update(state)
    if not np.array_equal(again.x, new_state.x):
        raise AssertionError("x_update is not deterministic")


def test_lbfgs_returns_best_iterate_without_convergence() -> None:
    target = np.array([3.0, -1.0, 2.0])
    scales = np.array([1.0, 10.0, 100.0])

    def f(w):
        return float(np.sum(scales * (w - target) ** 2))

    def g(w):
        return 2.0 * scales * (w - target)

    x0 = np.zeros(3)
    short = LBFGSSolver(max_num_iterations=1, history=2, tolerance=1e-12).minimize(f, g, x0)
    if not np.all(np.isfinite(short)) or f(short) > f(x0):
        raise AssertionError("truncated solve must not be worse than the warm start")

    full = LBFGSSolver(max_num_iterations=100, history=10, tolerance=1e-12).minimize(f, g, x0)
    assert_allclose(full, target, atol=1e-4, rtol=0.0, name="lbfgs optimum")
    if not np.array_equal(x0, np.zeros(3)):
        raise AssertionError("initial point was mutated")


def test_invalid_updater_configuration() -> None:
    for kwargs in (
        {"lambda_": 0.1, "rho": 0.0},
        {"lambda_": -1.0, "rho": 1.0},
        {"lambda_": 0.1, "rho": 1.0, "regularization": "elastic"},
        {"lambda_": 0.1, "rho": 1.0, "lbfgs_history": 0},
        {"lambda_": 0.1, "rho": 1.0, "lbfgs_tolerance": 0.0},
    ):
        try:
            SparseLogisticRegressionADMMUpdater(**kwargs)
        except ValueError:
            continue
        raise AssertionError(f"expected ValueError for {kwargs}")


def main() -> None:
    test_linear_z_update_closed_form()
    test_z_update_is_order_independent()
    test_l1_z_update_zeroes_small_coordinates()
    test_dual_update_fixed_point_and_accumulation()
    test_x_update_warm_start_and_no_mutation()
    test_lbfgs_returns_best_iterate_without_convergence()
    test_invalid_updater_configuration()
    print("OK: updater / local solver checks passed")


if __name__ == "__main__":
    main()
