"""
化学平衡求解器模块

EquilibriumSolver 提供两种计算：

- approximate: 理想稀溶液松弛下的元素势估计 (E×E 牛顿迭代)，
  n(π) = exp(A^T π - u)，u = μ(T, P, 1)/RT。廉价，常用作初值。
- solve: 吉布斯能最小化的原对偶内点法，从状态中的 n / y / z 热启动，
  收敛后可复用 KKT 分解计算 dn/dT、dn/dP、dn/db。

两者仅修改传入的 EquilibriumState；数值失败通过 statistics 报告，不抛异常。
"""

import logging
import time
from typing import Optional, Tuple

import jax.numpy as jnp

from eqkit.core.options import EquilibriumOptions
from eqkit.core.problem import EquilibriumProblem
from eqkit.core.sensitivity import compute_sensitivities
from eqkit.core.types import EquilibriumResult, EquilibriumState, EquilibriumStatistics
from eqkit.optimization.ipnewton import OptimumSolver
from eqkit.optimization.types import ExitStatus, InvalidProblemError
from eqkit.utils.linalg import solve_spd_regularized
from eqkit.utils.precision import R_GAS, to_fp64
from eqkit.utils.solvers import newton_with_line_search

logger = logging.getLogger(__name__)

# 冷启动物种量下限 / 热启动时零值物种的替代量
_MIN_COLD_AMOUNT = 1e-3
_MIN_WARM_AMOUNT = 1e-10
# exp 参数截断，防止溢出
_MAX_EXPONENT = 300.0


def _cold_start(problem: EquilibriumProblem) -> jnp.ndarray:
    N = problem.system.num_species
    scale = float(jnp.sum(jnp.abs(problem.b))) / max(N, 1)
    return jnp.ones(N) * max(scale, _MIN_COLD_AMOUNT)


class EquilibriumSolver:
    """平衡求解器

    Example:
        solver = EquilibriumSolver(EquilibriumOptions(compute=DerivativeFlags(dndt=True)))
        state = EquilibriumState(system)
        solver.approximate(problem, state)
        result = solver.solve(problem, state)
        print(state.n, result.dndt)
    """

    def __init__(self, options: Optional[EquilibriumOptions] = None):
        self.options = EquilibriumOptions() if options is None else options

    @staticmethod
    def _check_state(problem: EquilibriumProblem, state: EquilibriumState):
        if state.system is not problem.system:
            raise InvalidProblemError("equilibrium state belongs to a different chemical system")

    # ==========================================================================
    # 元素势近似
    # ==========================================================================

    def approximate(
        self,
        problem: EquilibriumProblem,
        state: EquilibriumState,
        options: Optional[EquilibriumOptions] = None
    ) -> EquilibriumResult:
        """理想稀溶液近似

        min Σ n_i (u_i + ln n_i - 1)  s.t.  A n = b
        驻点条件 ln n_i = (A^T π)_i - u_i，对 π 求解 A n(π) = b。

        Args:
            problem: 平衡问题
            state: 平衡状态 (写入 n、y = -π，清除 z)
            options: 覆盖求解器配置

        Returns:
            EquilibriumResult (statistics.method == "approximate")
        """
        self._check_state(problem, state)
        opts = self.options if options is None else options
        start = time.perf_counter()

        system = problem.system
        A = problem.constraint_matrix()
        b = problem.constraint_vector()
        T, P = problem.T, problem.P

        props = system.model(to_fp64(T), to_fp64(P), jnp.ones(system.num_species))
        u = props.mu / (R_GAS * T)

        def n_of_pi(pi):
            return jnp.exp(jnp.clip(A.T @ pi - u, -_MAX_EXPONENT, _MAX_EXPONENT))

        def residual_fn(pi):
            return A @ n_of_pi(pi) - b

        def jacobian_fn(pi):
            return (A * n_of_pi(pi)) @ A.T

        n0 = state.n if state.has_solution else _cold_start(problem)
        n0 = jnp.maximum(n0, _MIN_WARM_AMOUNT)
        pi0 = jnp.linalg.lstsq(A.T, u + jnp.log(n0))[0]

        scale = max(1.0, float(jnp.max(jnp.abs(b)))) if b.size else 1.0
        newton = newton_with_line_search(
            residual_fn, jacobian_fn, pi0, opts.approximate,
            linear_solver=solve_spd_regularized, scale=scale)

        n = n_of_pi(newton.x)
        state.n, state.y, state.z = n, -newton.x, None
        state.T, state.P = T, P

        error = float(jnp.max(jnp.abs(newton.residual))) / scale if b.size else 0.0
        statistics = EquilibriumStatistics(
            converged=newton.converged,
            status=ExitStatus.CONVERGED if newton.converged else ExitStatus.MAX_ITERATIONS,
            iterations=newton.iteration,
            num_objective_evaluations=0,
            error=error,
            error_primal=error,
            error_dual=0.0,
            error_complementarity=0.0,
            barrier_parameter=0.0,
            time=time.perf_counter() - start,
            method="approximate",
            num_gibbs_evaluations=1,
            sensitivity_valid=not opts.compute.any,
        )

        if newton.converged:
            logger.info("approximate equilibrium converged in %d iterations", newton.iteration)
        else:
            logger.warning("approximate equilibrium did not converge (error=%.3e)", error)

        return EquilibriumResult(n=n, statistics=statistics)

    # ==========================================================================
    # 内点法求解
    # ==========================================================================

    def solve(
        self,
        problem: EquilibriumProblem,
        state: EquilibriumState,
        options: Optional[EquilibriumOptions] = None
    ) -> EquilibriumResult:
        """吉布斯能最小化

        state 持有解时热启动 (n 中的零值替换为 1e-10，y / z 维度匹配时沿用)，
        否则冷启动。求解后 n、y、z、T、P 写回 state。

        Args:
            problem: 平衡问题
            state: 平衡状态
            options: 覆盖求解器配置

        Returns:
            EquilibriumResult

        Raises:
            InvalidProblemError: state 与 problem 不属于同一体系，或问题维度不合法
        """
        self._check_state(problem, state)
        opts = self.options if options is None else options

        optimum_problem = problem.to_optimum_problem()
        N, M = optimum_problem.num_variables, optimum_problem.num_constraints

        if state.has_solution:
            x0 = jnp.where(state.n > 0, state.n, _MIN_WARM_AMOUNT)
            y0 = state.y if state.y is not None and state.y.shape == (M,) else None
            z0 = state.z if state.z is not None and state.z.shape == (N,) else None
            logger.debug("warm start (y0=%s, z0=%s)", y0 is not None, z0 is not None)
        else:
            x0, y0, z0 = _cold_start(problem), None, None
            logger.debug("cold start")

        optimum = OptimumSolver(opts.optimum).solve(optimum_problem, x0, y0, z0)

        state.n, state.y, state.z = optimum.x, optimum.y, optimum.z
        state.T, state.P = problem.T, problem.P

        dndt = dndp = dndb = None
        num_evals = optimum.statistics.num_objective_evaluations
        valid, rcond = True, None
        if optimum.factorization is not None:
            rcond = optimum.factorization.rcond
        if opts.compute.any:
            if optimum.statistics.converged and optimum.factorization is not None:
                sens = compute_sensitivities(
                    problem, optimum.x, optimum.factorization, opts.compute,
                    opts.sensitivity_threshold)
                dndt, dndp, dndb = sens.dndt, sens.dndp, sens.dndb
                valid = sens.valid
                num_evals += 1
            else:
                valid = False

        statistics = EquilibriumStatistics.from_optimum(
            optimum.statistics,
            method="interior-point",
            num_gibbs_evaluations=num_evals,
            sensitivity_valid=valid,
            sensitivity_rcond=rcond,
        )

        return EquilibriumResult(
            n=optimum.x,
            statistics=statistics,
            optimum=optimum,
            dndt=dndt,
            dndp=dndp,
            dndb=dndb,
        )


def equilibrate(
    problem: EquilibriumProblem,
    options: Optional[EquilibriumOptions] = None
) -> Tuple[EquilibriumState, EquilibriumResult]:
    """一步求解：新建状态并冷启动求解

    Returns:
        (state, result)
    """
    state = EquilibriumState(problem.system, T=problem.T, P=problem.P)
    result = EquilibriumSolver(options).solve(problem, state)
    return state, result
