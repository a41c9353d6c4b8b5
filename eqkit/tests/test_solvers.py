import jax
jax.config.update('jax_enable_x64', True)
import jax.numpy as jnp
import numpy as np

from eqkit.utils.linalg import (
    assemble_kkt,
    factorize_kkt,
    max_step_to_boundary,
    solve_spd_regularized,
)
from eqkit.utils.solvers import NewtonConfig, newton_with_line_search


def test_newton_converges_on_exponential_system():
    # e^x + y = 3, x + y^3 = 1.5
    def residual(v):
        x, y = v
        return jnp.array([jnp.exp(x) + y - 3.0, x + y ** 3 - 1.5])

    jac = jax.jacfwd(residual)
    state = newton_with_line_search(residual, jac, jnp.array([0.0, 0.0]))

    assert state.converged
    assert state.iteration < NewtonConfig().max_iter
    assert float(jnp.max(jnp.abs(residual(state.x)))) <= NewtonConfig().atol


def test_newton_step_cap_and_budget():
    def residual(v):
        return jnp.arctan(v)

    config = NewtonConfig(max_iter=3, max_step=0.5)
    state = newton_with_line_search(residual, jax.jacfwd(residual), jnp.array([20.0]), config)

    assert not state.converged
    assert state.iteration == 3
    assert float(state.x[0]) >= 20.0 - 3 * 0.5 - 1e-12


def test_kkt_factorization_solves_multiple_rhs():
    H = jnp.array([[2.0, 0.5], [0.5, 1.0]])
    A = jnp.array([[1.0, 1.0]])
    K = assemble_kkt(H, A, jnp.array([1e3, 1e-3]))
    fact = factorize_kkt(K, 2)

    rhs = jnp.array([[1.0, 0.0], [2.0, 1.0], [3.0, -1.0]])
    w = fact.solve(rhs)
    np.testing.assert_allclose(np.asarray(K @ w), np.asarray(rhs), atol=1e-10)
    np.testing.assert_allclose(np.asarray(fact.solve(rhs[:, 0])), np.asarray(w[:, 0]), atol=1e-12)
    assert 0.0 < fact.rcond <= 1.0


def test_singular_kkt_has_tiny_rcond():
    A = jnp.array([[1.0, 1.0]])
    K = assemble_kkt(jnp.zeros((2, 2)), A, jnp.array([1e-12, 1e-12]))
    assert factorize_kkt(K, 2).rcond < 1e-7


def test_fraction_to_boundary():
    v = jnp.array([1.0, 2.0])
    assert max_step_to_boundary(v, jnp.array([1.0, 1.0])) == 1.0
    np.testing.assert_allclose(max_step_to_boundary(v, jnp.array([-4.0, 0.0]), tau=0.99), 0.2475)


def test_regularized_spd_solve():
    J = jnp.array([[4.0, 1.0], [1.0, 3.0]])
    x = solve_spd_regularized(J, jnp.array([1.0, 2.0]))
    np.testing.assert_allclose(np.asarray(J @ x), [1.0, 2.0], atol=1e-10)
