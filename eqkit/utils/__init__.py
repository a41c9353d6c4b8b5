"""eqkit Utils Module - 工具函数"""

from eqkit.utils.precision import to_fp64, ensure_fp64, is_finite
from eqkit.utils.linalg import KKTFactorization, assemble_kkt, factorize_kkt
from eqkit.utils.solvers import NewtonConfig, NewtonState, newton_with_line_search

__all__ = [
    "to_fp64",
    "ensure_fp64",
    "is_finite",
    "KKTFactorization",
    "assemble_kkt",
    "factorize_kkt",
    "NewtonConfig",
    "NewtonState",
    "newton_with_line_search",
]
