"""
eqkit Optimization 模块：线性约束 + 下界的内点牛顿法
"""

from eqkit.optimization.types import (
    ExitStatus,
    InvalidProblemError,
    ObjectiveState,
    OptimumOptions,
    OptimumProblem,
    OptimumResult,
    OptimumStatistics,
)
from eqkit.optimization.ipnewton import OptimumSolver

__all__ = [
    'ExitStatus',
    'InvalidProblemError',
    'ObjectiveState',
    'OptimumOptions',
    'OptimumProblem',
    'OptimumResult',
    'OptimumStatistics',
    'OptimumSolver',
]
