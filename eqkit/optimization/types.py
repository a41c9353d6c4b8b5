"""
优化问题数据结构

min f(x)  s.t.  A x = b,  x >= l

目标函数以回调形式给出 (x -> ObjectiveState)，约束为线性等式与下界。
配置使用 NamedTuple，结果与统计使用冻结 dataclass。
"""

import enum
from dataclasses import dataclass, field
from typing import Callable, NamedTuple, Optional, Tuple

import jax.numpy as jnp

from eqkit.utils.linalg import KKTFactorization
from eqkit.utils.precision import to_fp64


class InvalidProblemError(ValueError):
    """问题定义不合法 (维度不匹配、非有限输入等)，立即抛出"""


class ExitStatus(enum.Enum):
    """求解终止状态"""
    CONVERGED = "converged"
    MAX_ITERATIONS = "max_iterations"
    SINGULAR_MATRIX = "singular_matrix"
    NONFINITE = "nonfinite"


class ObjectiveState(NamedTuple):
    """目标函数在某点的取值"""
    f: float
    grad: jnp.ndarray       # (n,)
    hessian: jnp.ndarray    # (n, n)


class OptimumOptions(NamedTuple):
    """内点法配置"""
    max_iterations: int = 100
    tolerance: float = 1e-8
    initial_barrier_parameter: float = 0.1
    fraction_to_boundary: float = 0.99
    max_backtracks: int = 10
    armijo: float = 1e-4


@dataclass(frozen=True)
class OptimumProblem:
    """线性约束、有下界的最小化问题

    Attributes:
        objective: x -> ObjectiveState
        A: 等式约束矩阵 (m, n)
        b: 等式右端项 (m,)
        lower: 下界 (n,)，默认全零
    """
    objective: Callable[[jnp.ndarray], ObjectiveState]
    A: jnp.ndarray
    b: jnp.ndarray
    lower: Optional[jnp.ndarray] = None

    def __post_init__(self):
        A = to_fp64(self.A)
        b = to_fp64(self.b)
        if A.ndim != 2:
            raise InvalidProblemError(f"constraint matrix must be 2-D, got shape {A.shape}")
        m, n = A.shape
        if b.shape != (m,):
            raise InvalidProblemError(
                f"constraint vector has shape {b.shape}, expected ({m},) to match matrix {A.shape}")
        lower = jnp.zeros(n) if self.lower is None else to_fp64(self.lower)
        if lower.shape != (n,):
            raise InvalidProblemError(f"lower bounds have shape {lower.shape}, expected ({n},)")
        object.__setattr__(self, "A", A)
        object.__setattr__(self, "b", b)
        object.__setattr__(self, "lower", lower)

    @property
    def num_variables(self) -> int:
        return self.A.shape[1]

    @property
    def num_constraints(self) -> int:
        return self.A.shape[0]


@dataclass(frozen=True)
class OptimumStatistics:
    """求解统计

    error 为 primal / dual / complementarity 三者的最大值；
    history 记录每次迭代 (含初始点) 的 error。
    """
    converged: bool
    status: ExitStatus
    iterations: int
    num_objective_evaluations: int
    error: float
    error_primal: float
    error_dual: float
    error_complementarity: float
    barrier_parameter: float
    history: Tuple[float, ...] = ()
    time: float = 0.0


@dataclass(frozen=True)
class OptimumResult:
    """求解结果

    factorization 为收敛点的 KKT 分解，未收敛时为 None。
    """
    x: jnp.ndarray
    y: jnp.ndarray
    z: jnp.ndarray
    statistics: OptimumStatistics
    factorization: Optional[KKTFactorization] = field(default=None, repr=False)
