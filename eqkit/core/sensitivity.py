"""
平衡灵敏度模块 (隐函数定理)

在收敛点对 KKT 条件求全微分：

    K [dn/dp; dy/dp] = [-∂g/∂p; ∂b/∂p],   g = μ/RT

    ∂g/∂T = (∂μ/∂T)/RT - μ/(R T^2)
    ∂g/∂P = (∂μ/∂P)/RT
    ∂b/∂b_j = e_j (元素行 j)

K 为内点法收敛时保留的 KKT 分解 (H + Z S^-1 已包含下界互补条件的线性化)，
所有方向的右端项按列堆叠后一次回代求解，不重新分解。
"""

import logging
from typing import NamedTuple, Optional

import jax.numpy as jnp

from eqkit.core.options import DerivativeFlags
from eqkit.core.problem import EquilibriumProblem
from eqkit.utils.linalg import KKTFactorization
from eqkit.utils.precision import R_GAS, is_finite, to_fp64

logger = logging.getLogger(__name__)


class Sensitivities(NamedTuple):
    """灵敏度结果；valid 为 False 时各导数均为 None"""
    dndt: Optional[jnp.ndarray]
    dndp: Optional[jnp.ndarray]
    dndb: Optional[jnp.ndarray]
    valid: bool
    rcond: float


def compute_sensitivities(
    problem: EquilibriumProblem,
    n: jnp.ndarray,
    factorization: KKTFactorization,
    flags: DerivativeFlags,
    threshold: float = 1e-7
) -> Sensitivities:
    """计算所请求的 dn/dT、dn/dP、dn/db

    Args:
        problem: 已求解的平衡问题
        n: 收敛点物种量 (N,)
        factorization: 收敛点 KKT 分解
        flags: 灵敏度开关
        threshold: 倒条件数下限

    Returns:
        Sensitivities
    """
    rcond = factorization.rcond
    if not flags.any:
        return Sensitivities(None, None, None, True, rcond)

    if rcond < threshold:
        logger.warning("sensitivity system is singular (rcond=%.3e < %.1e); derivatives not computed",
                       rcond, threshold)
        return Sensitivities(None, None, None, False, rcond)

    system = problem.system
    N, E = system.num_species, system.num_elements
    size = factorization.size
    T, P = problem.T, problem.P
    RT = R_GAS * T

    props = system.model(to_fp64(T), to_fp64(P), to_fp64(n))

    columns = []
    if flags.dndt:
        g_T = props.dmu_dT / RT - props.mu / (RT * T)
        columns.append(jnp.concatenate([-g_T, jnp.zeros(size - N)])[:, None])
    if flags.dndp:
        g_P = props.dmu_dP / RT
        columns.append(jnp.concatenate([-g_P, jnp.zeros(size - N)])[:, None])
    if flags.dndb:
        columns.append(jnp.zeros((size, E)).at[N:N + E, :].set(jnp.eye(E)))

    rhs = jnp.concatenate(columns, axis=1)
    solution = factorization.solve(rhs)[:N]

    if not is_finite(solution):
        logger.warning("sensitivity solution is not finite; derivatives not computed")
        return Sensitivities(None, None, None, False, rcond)

    col = 0
    dndt = dndp = dndb = None
    if flags.dndt:
        dndt = solution[:, col]
        col += 1
    if flags.dndp:
        dndp = solution[:, col]
        col += 1
    if flags.dndb:
        dndb = solution[:, col:col + E]

    return Sensitivities(dndt, dndp, dndb, True, rcond)
