"""
测试用化学体系

- ab_system:    元素 X, Y；理想气体 A, B, AB (AB 生成焓 -10 kJ/mol)
- dimer_system: 元素 X；理想气体 A, A2 (K = 1)
- fixed_system: 元素 A, B；理想气体 A2, B2, AB
- twophase_system: 元素 X；气相 X(g) + 纯凝聚相 X(l)
- aqueous_system: 水溶液 (Debye-Hückel) + 气相 + 石盐，含电荷行 Z
"""

import jax
jax.config.update('jax_enable_x64', True)
import pytest

from eqkit.core import EquilibriumProblem
from eqkit.physics import (
    AqueousPhase,
    IdealGasPhase,
    PureCondensedPhase,
    SpeciesData,
    build_chemical_system,
)

# AB 生成数据 (A, B 为参考态)
H_AB = -10000.0   # J/mol
S_AB = -16.7      # J/(mol·K)


@pytest.fixture
def ab_system():
    phases = [IdealGasPhase("gas", ["A", "B", "AB"])]
    data = {
        "A": SpeciesData.from_constants({"X": 1}, 0.0, 0.0),
        "B": SpeciesData.from_constants({"Y": 1}, 0.0, 0.0),
        "AB": SpeciesData.from_constants({"X": 1, "Y": 1}, H_AB, S_AB),
    }
    return build_chemical_system(phases, data)


@pytest.fixture
def ab_problem(ab_system):
    problem = EquilibriumProblem(ab_system)
    problem.set_temperature(298.15)
    problem.set_pressure(1.0e5)
    problem.set_element_amounts([1.0, 1.0])
    return problem


@pytest.fixture
def dimer_system():
    phases = [IdealGasPhase("gas", ["A", "A2"])]
    data = {
        "A": SpeciesData.from_constants({"X": 1}, 0.0, 0.0),
        "A2": SpeciesData.from_constants({"X": 2}, 0.0, 0.0),
    }
    return build_chemical_system(phases, data)


@pytest.fixture
def fixed_system():
    phases = [IdealGasPhase("gas", ["A2", "B2", "AB"])]
    data = {
        "A2": SpeciesData.from_constants({"A": 2}, 0.0, 0.0),
        "B2": SpeciesData.from_constants({"B": 2}, 0.0, 0.0),
        "AB": SpeciesData.from_constants({"A": 1, "B": 1}, -5000.0, 0.0),
    }
    return build_chemical_system(phases, data)


@pytest.fixture
def twophase_system():
    phases = [
        IdealGasPhase("gas", ["X(g)"]),
        PureCondensedPhase("liquid", ["X(l)"]),
    ]
    data = {
        "X(g)": SpeciesData.from_constants({"X": 1}, 0.0, 0.0),
        "X(l)": SpeciesData.from_constants({"X": 1}, -1000.0, 0.0),
    }
    return build_chemical_system(phases, data)


@pytest.fixture
def aqueous_system():
    # 25 °C 标准生成焓 (J/mol) 与熵 (J/(mol·K))
    phases = [
        AqueousPhase("aqueous", ["H2O(l)", "H+", "OH-", "Na+", "Cl-"]),
        IdealGasPhase("gas", ["H2O(g)", "O2(g)", "N2(g)"]),
        PureCondensedPhase("halite", ["NaCl(s)"]),
    ]
    data = {
        "H2O(l)": SpeciesData.from_constants({"H": 2, "O": 1}, -285830.0, 69.95),
        "H+": SpeciesData.from_constants({"H": 1}, 0.0, 0.0, charge=1.0),
        "OH-": SpeciesData.from_constants({"O": 1, "H": 1}, -230015.0, -10.9, charge=-1.0),
        "Na+": SpeciesData.from_constants({"Na": 1}, -240340.0, 58.45, charge=1.0),
        "Cl-": SpeciesData.from_constants({"Cl": 1}, -167080.0, 56.6, charge=-1.0),
        "H2O(g)": SpeciesData.from_constants({"H": 2, "O": 1}, -241826.0, 188.835),
        "O2(g)": SpeciesData.from_constants({"O": 2}, 0.0, 205.152),
        "N2(g)": SpeciesData.from_constants({"N": 2}, 0.0, 191.609),
        "NaCl(s)": SpeciesData.from_constants({"Na": 1, "Cl": 1}, -411120.0, 72.11),
    }
    return build_chemical_system(phases, data)


@pytest.fixture
def aqueous_problem(aqueous_system):
    problem = EquilibriumProblem(aqueous_system)
    problem.add("H2O(l)", 55.508)
    problem.add("NaCl(s)", 0.5)
    problem.add("O2(g)", 0.01)
    problem.add("N2(g)", 0.1)
    return problem
