"""
eqkit
=====

基于 JAX 的化学平衡计算引擎。

主要功能：
- 吉布斯能最小化：原对偶内点牛顿法 (KKT 系统，保留分解)
- 灵敏度分析：dn/dT、dn/dP、dn/db (隐函数定理，复用 KKT 分解)
- 元素势近似：理想稀溶液松弛的快速初值
"""

__version__ = "0.1.0"

import logging

# 全程 FP64
import jax
jax.config.update("jax_enable_x64", True)

logging.getLogger(__name__).addHandler(logging.NullHandler())

_LAZY = {
    "EquilibriumSolver": "eqkit.core.equilibrium",
    "equilibrate": "eqkit.core.equilibrium",
    "EquilibriumProblem": "eqkit.core.problem",
    "EquilibriumState": "eqkit.core.types",
    "EquilibriumResult": "eqkit.core.types",
    "ChemicalSystem": "eqkit.core.types",
    "EquilibriumOptions": "eqkit.core.options",
    "DerivativeFlags": "eqkit.core.options",
    "OptimumSolver": "eqkit.optimization.ipnewton",
    "OptimumOptions": "eqkit.optimization.types",
    "InvalidProblemError": "eqkit.optimization.types",
    "build_chemical_system": "eqkit.physics.models",
}


# 延迟导入，避免循环依赖
def __getattr__(name):
    if name in _LAZY:
        import importlib
        return getattr(importlib.import_module(_LAZY[name]), name)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = list(_LAZY) + ["__version__"]
