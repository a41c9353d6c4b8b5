"""
阻尼牛顿法模块

小规模非线性方程组 F(x) = 0 的牛顿迭代 (Armijo 回溯 + 步长上限)。
用于元素势近似 (approximate) 等 E×E 级别的问题；
大规模 KKT 迭代见 eqkit.optimization.ipnewton。
"""

import logging

import jax
import jax.numpy as jnp
from typing import Callable, NamedTuple, Optional

from eqkit.utils.precision import to_fp64, is_finite

logger = logging.getLogger(__name__)


class NewtonState(NamedTuple):
    """牛顿迭代状态"""
    x: jnp.ndarray          # 当前解 (FP64)
    residual: jnp.ndarray   # 残差向量 (FP64)
    iteration: int          # 迭代次数
    converged: bool         # 是否收敛


class NewtonConfig(NamedTuple):
    """牛顿法配置"""
    max_iter: int = 50          # 最大迭代次数
    atol: float = 1e-10         # 绝对容差 (残差无穷范数)
    max_step: float = 5.0       # 单步 2-范数上限
    c1: float = 1e-4            # Armijo 条件参数
    rho: float = 0.5            # 步长收缩因子
    max_backtracks: int = 20    # 最多回溯次数


def newton_with_line_search(
    residual_fn: Callable[[jnp.ndarray], jnp.ndarray],
    jacobian_fn: Callable[[jnp.ndarray], jnp.ndarray],
    x0: jnp.ndarray,
    config: NewtonConfig = NewtonConfig(),
    linear_solver: Optional[Callable[[jnp.ndarray, jnp.ndarray], jnp.ndarray]] = None,
    scale: float = 1.0
) -> NewtonState:
    """带线搜索的牛顿法

    使用 Armijo 回溯线搜索确定步长，价值函数为 0.5*||F||^2。
    回溯失败时接受最后一个有限的试探点，迭代预算是唯一的终止条件。

    Args:
        residual_fn: 残差函数
        jacobian_fn: Jacobian 函数
        x0: 初始猜测
        config: 牛顿法配置
        linear_solver: 线性求解器 (J, rhs) -> delta，默认 jnp.linalg.solve
        scale: 收敛判据的残差尺度 (||F||_inf <= atol * scale)

    Returns:
        NewtonState
    """
    if linear_solver is None:
        linear_solver = jnp.linalg.solve

    x = to_fp64(x0)

    def merit_function(r):
        return 0.5 * float(jnp.sum(r ** 2))

    residual = to_fp64(residual_fn(x))
    iterations = config.max_iter
    for iteration in range(config.max_iter):
        res_norm = float(jnp.max(jnp.abs(residual))) if residual.size else 0.0
        logger.debug("newton iter=%d |F|=%.3e", iteration, res_norm)

        if res_norm <= config.atol * scale:
            return NewtonState(x=x, residual=residual, iteration=iteration, converged=True)

        # 计算搜索方向
        J = to_fp64(jacobian_fn(x))
        delta = to_fp64(linear_solver(J, -residual))
        if not is_finite(delta):
            iterations = iteration
            break

        step_norm = float(jnp.linalg.norm(delta))
        if step_norm > config.max_step:
            delta = delta * (config.max_step / step_norm)

        # 线搜索
        alpha = 1.0
        merit_x = merit_function(residual)
        grad_merit = float(jnp.dot(residual, jax.jvp(residual_fn, (x,), (delta,))[1]))

        x_new, residual_new = x, residual
        for _ in range(config.max_backtracks):
            x_trial = x + alpha * delta
            residual_trial = to_fp64(residual_fn(x_trial))
            if is_finite(residual_trial):
                x_new, residual_new = x_trial, residual_trial
                if merit_function(residual_trial) <= merit_x + config.c1 * alpha * grad_merit:
                    break
            alpha *= config.rho

        x, residual = x_new, residual_new

    res_norm = float(jnp.max(jnp.abs(residual))) if residual.size else 0.0
    converged = res_norm <= config.atol * scale
    return NewtonState(x=x, residual=residual, iteration=iterations, converged=converged)
