"""
eqkit Physics 模块：标准态热力学与活度模型
"""

from eqkit.physics.models import (
    AqueousPhase,
    ChemicalModel,
    IdealGasPhase,
    IdealSolutionPhase,
    PhaseModel,
    PureCondensedPhase,
    SpeciesData,
    build_chemical_system,
    build_formula_matrix,
)

__all__ = [
    'AqueousPhase', 'ChemicalModel', 'IdealGasPhase', 'IdealSolutionPhase',
    'PhaseModel', 'PureCondensedPhase', 'SpeciesData',
    'build_chemical_system', 'build_formula_matrix',
]
