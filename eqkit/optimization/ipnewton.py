"""
原对偶内点牛顿法

求解 min f(x) s.t. A x = b, x >= l。消去 Δz 后每次迭代求解约化 KKT 系统

    [ H + Z S^-1   A^T ] [Δx]   [ -r_d - r_c / s ]
    [ A            0   ] [Δy] = [ -r_p            ]

    Δz = -(r_c + z Δx) / s

其中 s = x - l，r_d = ∇f + A^T y - z，r_p = A x - b，r_c = s z - μ。
障碍参数采用 Mehrotra 预测-校正，预测步与校正步共用同一分解。
收敛点的 KKT 分解随结果返回，供灵敏度分析复用。
"""

import logging
import time
from typing import NamedTuple, Optional, Tuple

import jax.numpy as jnp

from eqkit.optimization.types import (
    ExitStatus,
    InvalidProblemError,
    ObjectiveState,
    OptimumOptions,
    OptimumProblem,
    OptimumResult,
    OptimumStatistics,
)
from eqkit.utils.linalg import (
    KKTFactorization,
    assemble_kkt,
    factorize_kkt,
    max_step_to_boundary,
)
from eqkit.utils.precision import ensure_fp64, is_finite, to_fp64

logger = logging.getLogger(__name__)

# 严格内点所需的最小松弛
_MIN_SLACK = 1e-10


class _Errors(NamedTuple):
    primal: float
    dual: float
    complementarity: float

    @property
    def total(self) -> float:
        return max(self.primal, self.dual, self.complementarity)


def _inf_norm(v: jnp.ndarray) -> float:
    return float(jnp.max(jnp.abs(v))) if v.size else 0.0


def _check_shape(name: str, v: jnp.ndarray, size: int):
    if v.shape != (size,):
        raise InvalidProblemError(f"{name} has shape {v.shape}, expected ({size},)")


class OptimumSolver:
    """内点法求解器

    Example:
        solver = OptimumSolver(OptimumOptions(tolerance=1e-10))
        result = solver.solve(problem, x0)
        result = solver.solve(problem, result.x, result.y, result.z)  # 热启动
    """

    def __init__(self, options: OptimumOptions = OptimumOptions()):
        self.options = options

    # ==========================================================================
    # 残差与误差
    # ==========================================================================

    @staticmethod
    def _errors(problem: OptimumProblem, x, y, z, grad) -> _Errors:
        s = x - problem.lower
        primal = _inf_norm(problem.A @ x - problem.b) / max(1.0, _inf_norm(problem.b))
        dual = _inf_norm(grad + problem.A.T @ y - z) / max(1.0, _inf_norm(grad))
        comp = float(jnp.max(s * z)) if s.size else 0.0
        return _Errors(primal, dual, comp)

    @staticmethod
    def _kkt_residual_norm(problem: OptimumProblem, x, y, z, grad, mu_target: float) -> float:
        r_d = grad + problem.A.T @ y - z
        r_p = problem.A @ x - problem.b
        r_c = (x - problem.lower) * z - mu_target
        return float(jnp.sqrt(jnp.sum(r_d ** 2) + jnp.sum(r_p ** 2) + jnp.sum(r_c ** 2)))

    @staticmethod
    def _newton_direction(
        factorization: KKTFactorization,
        problem: OptimumProblem,
        s, z, r_d, r_p, r_c
    ) -> Tuple[jnp.ndarray, jnp.ndarray, jnp.ndarray]:
        n = problem.num_variables
        rhs = jnp.concatenate([-r_d - r_c / s, -r_p])
        w = factorization.solve(rhs)
        dx, dy = w[:n], w[n:]
        dz = -(r_c + z * dx) / s
        return dx, dy, dz

    # ==========================================================================
    # 主循环
    # ==========================================================================

    @ensure_fp64("x0", "y0", "z0")
    def solve(
        self,
        problem: OptimumProblem,
        x0: jnp.ndarray,
        y0: Optional[jnp.ndarray] = None,
        z0: Optional[jnp.ndarray] = None
    ) -> OptimumResult:
        """从 (x0, y0, z0) 出发求解

        y0 缺省为零，z0 缺省为 μ0 / s0。数值失败不抛异常，
        通过 statistics.converged / statistics.status 报告。

        Args:
            problem: 优化问题
            x0: 初始原始变量 (n,)
            y0: 等式约束乘子初值 (m,)
            z0: 下界乘子初值 (n,)

        Returns:
            OptimumResult

        Raises:
            InvalidProblemError: 初值维度与问题不匹配
        """
        opts = self.options
        n, m = problem.num_variables, problem.num_constraints
        A, lower = problem.A, problem.lower

        x = x0
        _check_shape("x0", x, n)
        if y0 is not None:
            _check_shape("y0", y0, m)
        if z0 is not None:
            _check_shape("z0", z0, n)

        start = time.perf_counter()

        # 推入严格内部
        x = jnp.where(x - lower > 0, x, lower + _MIN_SLACK)
        s = x - lower
        mu0 = opts.initial_barrier_parameter
        y = jnp.zeros(m) if y0 is None else y0
        z = mu0 / s if z0 is None else jnp.where(z0 > 0, z0, mu0 / s)

        num_evals = 1
        state: ObjectiveState = problem.objective(x)

        history = []
        best = None
        status = ExitStatus.MAX_ITERATIONS
        factorization = None
        iterations = 0

        while True:
            if not (is_finite(state.grad) and is_finite(state.hessian)):
                status = ExitStatus.NONFINITE
                break

            s = x - lower
            errors = self._errors(problem, x, y, z, state.grad)
            history.append(errors.total)
            if best is None or errors.total < best[3].total:
                best = (x, y, z, errors)

            logger.debug(
                "ip iter=%d primal=%.3e dual=%.3e comp=%.3e",
                iterations, errors.primal, errors.dual, errors.complementarity)

            K = assemble_kkt(to_fp64(state.hessian), A, z / s)
            fact = factorize_kkt(K, n)

            if errors.total <= opts.tolerance:
                status = ExitStatus.CONVERGED
                factorization = fact
                best = (x, y, z, errors)
                break
            if iterations >= opts.max_iterations:
                break
            if fact.rcond == 0.0:
                status = ExitStatus.SINGULAR_MATRIX
                break

            # ---------------- 预测步 (μ = 0) ----------------
            mu = float(jnp.mean(s * z))
            r_d = state.grad + A.T @ y - z
            r_p = A @ x - problem.b
            dx_a, dy_a, dz_a = self._newton_direction(fact, problem, s, z, r_d, r_p, s * z)
            if not (is_finite(dx_a) and is_finite(dy_a) and is_finite(dz_a)):
                status = ExitStatus.SINGULAR_MATRIX
                break
            alpha_a = min(max_step_to_boundary(s, dx_a), max_step_to_boundary(z, dz_a))
            mu_aff = float(jnp.mean((s + alpha_a * dx_a) * (z + alpha_a * dz_a)))
            sigma = min(max(mu_aff / mu, 0.0), 1.0) ** 3 if mu > 0 else 0.0
            mu_target = max(sigma * mu, min(mu, 0.1 * opts.tolerance))

            # ---------------- 校正步 ----------------
            r_c = s * z + dx_a * dz_a - mu_target
            dx, dy, dz = self._newton_direction(fact, problem, s, z, r_d, r_p, r_c)
            if not (is_finite(dx) and is_finite(dy) and is_finite(dz)):
                status = ExitStatus.SINGULAR_MATRIX
                break

            # ---------------- 步长：到边界比例 + 回溯 ----------------
            tau = max(opts.fraction_to_boundary, 1.0 - mu)
            alpha = min(max_step_to_boundary(s, dx, tau), max_step_to_boundary(z, dz, tau))
            phi0 = self._kkt_residual_norm(problem, x, y, z, state.grad, mu_target)

            accepted = None
            for _ in range(opts.max_backtracks):
                x_t, y_t, z_t = x + alpha * dx, y + alpha * dy, z + alpha * dz
                state_t = problem.objective(x_t)
                num_evals += 1
                if is_finite(state_t.grad) and is_finite(state_t.hessian):
                    accepted = (x_t, y_t, z_t, state_t)
                    phi = self._kkt_residual_norm(problem, x_t, y_t, z_t, state_t.grad, mu_target)
                    if phi <= (1.0 - opts.armijo * alpha) * phi0:
                        break
                alpha *= 0.5

            if accepted is None:
                status = ExitStatus.NONFINITE
                break
            x, y, z, state = accepted
            iterations += 1

        if best is None:
            best = (x, y, z, _Errors(jnp.inf, jnp.inf, jnp.inf))
        x, y, z, errors = best
        barrier = float(jnp.mean((x - lower) * z)) if n else 0.0
        statistics = OptimumStatistics(
            converged=status is ExitStatus.CONVERGED,
            status=status,
            iterations=iterations,
            num_objective_evaluations=num_evals,
            error=errors.total,
            error_primal=errors.primal,
            error_dual=errors.dual,
            error_complementarity=errors.complementarity,
            barrier_parameter=barrier,
            history=tuple(history),
            time=time.perf_counter() - start,
        )

        if statistics.converged:
            logger.info("interior point converged in %d iterations (error=%.3e)",
                        iterations, errors.total)
        else:
            logger.warning("interior point stopped without convergence: status=%s iterations=%d error=%.3e",
                           status.value, iterations, errors.total)

        return OptimumResult(x=x, y=y, z=z, statistics=statistics, factorization=factorization)
