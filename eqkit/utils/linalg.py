"""
线性代数工具模块

KKT 矩阵组装、对称对角缩放 LU 分解与重复求解。
分解结果以 KKTFactorization 句柄的形式保留，供灵敏度模块复用。
"""

import jax.numpy as jnp
import jax.scipy.linalg as jsl
from typing import NamedTuple

from eqkit.utils.precision import to_fp64


class KKTFactorization(NamedTuple):
    """缩放后 KKT 矩阵的 LU 分解句柄

    分解对象为 D K D，其中 D = diag(scaling)。求解 K w = r 时
    先缩放右端项，再还原解：w = D (DKD)^{-1} D r。
    """
    lu: jnp.ndarray
    piv: jnp.ndarray
    scaling: jnp.ndarray      # (n + m,)
    num_variables: int        # n
    rcond: float              # 主元比估计的倒条件数 (0 表示奇异/非有限)

    @property
    def size(self) -> int:
        return self.scaling.shape[0]

    def solve(self, rhs: jnp.ndarray) -> jnp.ndarray:
        """求解 K w = rhs，rhs 可为向量 (n+m,) 或矩阵 (n+m, k)"""
        rhs = to_fp64(rhs)
        d = self.scaling if rhs.ndim == 1 else self.scaling[:, None]
        w = jsl.lu_solve((self.lu, self.piv), d * rhs)
        return d * w


def assemble_kkt(
    hessian: jnp.ndarray,
    A: jnp.ndarray,
    barrier_diag: jnp.ndarray
) -> jnp.ndarray:
    """组装消去 Δz 后的约化 KKT 矩阵

        [ H + Z S^-1   A^T ]
        [ A            0   ]

    Args:
        hessian: 目标函数 Hessian (n, n)
        A: 等式约束矩阵 (m, n)
        barrier_diag: 障碍项对角 z / s (n,)

    Returns:
        KKT 矩阵 (n+m, n+m)
    """
    m = A.shape[0]
    H = hessian + jnp.diag(barrier_diag)
    return jnp.block([
        [H, A.T],
        [A, jnp.zeros((m, m), dtype=A.dtype)],
    ])


def pivot_rcond(lu: jnp.ndarray) -> float:
    """由 U 的对角主元估计倒条件数 min|u_ii| / max|u_ii|"""
    d = jnp.abs(jnp.diag(lu))
    dmax = float(jnp.max(d)) if d.size else 0.0
    if not jnp.all(jnp.isfinite(d)) or dmax == 0.0:
        return 0.0
    return float(jnp.min(d)) / dmax


def factorize_kkt(K: jnp.ndarray, num_variables: int) -> KKTFactorization:
    """对 KKT 矩阵做对称对角缩放后 LU 分解

    原始变量块按 1/sqrt(max(1, |K_ii|)) 缩放：非活跃物种 (z/s 很大)
    的对角被归一，剩余的小主元才真正反映退化 (例如相界处)。
    乘子块不缩放。

    Args:
        K: KKT 矩阵 (n+m, n+m)
        num_variables: 原始变量数 n

    Returns:
        KKTFactorization
    """
    K = to_fp64(K)
    size = K.shape[0]
    diag = jnp.abs(jnp.diag(K)[:num_variables])
    dx = 1.0 / jnp.sqrt(jnp.maximum(diag, 1.0))
    scaling = jnp.concatenate([dx, jnp.ones(size - num_variables)])
    K_scaled = K * scaling[:, None] * scaling[None, :]
    lu, piv = jsl.lu_factor(K_scaled)
    return KKTFactorization(
        lu=lu,
        piv=piv,
        scaling=scaling,
        num_variables=num_variables,
        rcond=pivot_rcond(lu),
    )


def solve_spd_regularized(J: jnp.ndarray, rhs: jnp.ndarray, jitter: float = 1e-12) -> jnp.ndarray:
    """求解 (近似) 对称正定系统，对角加相对抖动以应对秩亏

    Args:
        J: 对称半正定矩阵 (k, k)
        rhs: 右端项 (k,)
        jitter: 相对正则化系数

    Returns:
        解向量 (k,)
    """
    J = 0.5 * (J + J.T)
    scale = jnp.maximum(jnp.max(jnp.abs(jnp.diag(J))), 1.0)
    J_reg = J + jitter * scale * jnp.eye(J.shape[0], dtype=J.dtype)
    return jnp.linalg.solve(J_reg, rhs)


def max_step_to_boundary(v: jnp.ndarray, dv: jnp.ndarray, tau: float = 1.0) -> float:
    """分数到边界规则：最大 alpha ∈ (0, 1] 使 v + alpha*dv >= (1 - tau) v

    Args:
        v: 当前正值向量
        dv: 搜索方向
        tau: 到边界的比例 (1.0 即允许到达边界)

    Returns:
        最大步长
    """
    neg = dv < 0
    if not bool(jnp.any(neg)):
        return 1.0
    ratios = jnp.where(neg, -tau * v / jnp.where(neg, dv, -1.0), jnp.inf)
    return float(jnp.minimum(1.0, jnp.min(ratios)))
