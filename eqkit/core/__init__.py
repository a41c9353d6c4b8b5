"""
eqkit Core 模块：化学平衡求解

内点法吉布斯能最小化 + KKT 灵敏度
"""

from eqkit.core.types import (
    ChemicalProperties,
    ChemicalSystem,
    EquilibriumResult,
    EquilibriumState,
    EquilibriumStatistics,
    Phase,
)
from eqkit.core.options import DerivativeFlags, EquilibriumOptions
from eqkit.core.problem import EquilibriumProblem
from eqkit.core.sensitivity import Sensitivities, compute_sensitivities
from eqkit.core.equilibrium import EquilibriumSolver, equilibrate

__all__ = [
    'ChemicalProperties', 'ChemicalSystem', 'EquilibriumResult', 'EquilibriumState',
    'EquilibriumStatistics', 'Phase', 'DerivativeFlags', 'EquilibriumOptions',
    'EquilibriumProblem', 'Sensitivities', 'compute_sensitivities',
    'EquilibriumSolver', 'equilibrate',
]
