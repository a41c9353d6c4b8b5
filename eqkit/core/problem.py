"""
平衡问题定义与转换

EquilibriumProblem 持有 T、P、元素量 b 与附加线性约束 (固定物种量、固定相量)，
并将其转换为内点法的 OptimumProblem：

    min  Σ n_i μ_i(T, P, n) / RT
    s.t. A n = b,  [附加约束行] n = [固定值],  n >= 0
"""

import math
from typing import Dict, List, Tuple, Union

import jax.numpy as jnp

from eqkit.core.types import ChemicalSystem
from eqkit.optimization.types import InvalidProblemError, ObjectiveState, OptimumProblem
from eqkit.utils.precision import R_GAS, to_fp64


def _finite_positive(name: str, value: float) -> float:
    value = float(value)
    if not (math.isfinite(value) and value > 0):
        raise InvalidProblemError(f"{name} must be positive and finite, got {value!r}")
    return value


def _finite(name: str, value: float) -> float:
    value = float(value)
    if not math.isfinite(value):
        raise InvalidProblemError(f"{name} must be finite, got {value!r}")
    return value


class EquilibriumProblem:
    """平衡问题

    Example:
        problem = EquilibriumProblem(system)
        problem.set_temperature(298.15)
        problem.set_pressure(1.0e5)
        problem.add("H2O", 1.0)
        problem.set_species_amount("CO2(g)", 0.5)
    """

    def __init__(self, system: ChemicalSystem):
        self.system = system
        self.T = 298.15
        self.P = 1.0e5
        self.b = jnp.zeros(system.num_elements)
        # 下标 -> 固定值；字典保留设定顺序
        self._fixed_species: Dict[int, float] = {}
        self._fixed_phases: Dict[int, float] = {}

    # ==========================================================================
    # 设定
    # ==========================================================================

    def set_temperature(self, T: float):
        self.T = _finite_positive("temperature", T)

    def set_pressure(self, P: float):
        self.P = _finite_positive("pressure", P)

    def set_element_amounts(self, b):
        b = to_fp64(b)
        if b.shape != (self.system.num_elements,):
            raise InvalidProblemError(
                f"element amounts have shape {b.shape}, expected ({self.system.num_elements},)")
        if not bool(jnp.all(jnp.isfinite(b))):
            raise InvalidProblemError("element amounts must be finite")
        self.b = b

    def add(self, species: Union[str, int], amount: float):
        """加入 amount mol 物种，其元素组成累加到 b"""
        j = self.system.species_index(species)
        amount = _finite("amount", amount)
        self.b = self.b + amount * self.system.formula_matrix[:, j]

    def set_species_amount(self, species: Union[str, int], amount: float):
        """固定物种量 n_j = amount"""
        j = self.system.species_index(species)
        self._fixed_species[j] = _finite("species amount", amount)

    def set_phase_amount(self, phase: Union[str, int], amount: float):
        """固定相总量 Σ_{i∈phase} n_i = amount"""
        k = self.system.phase_index(phase)
        self._fixed_phases[k] = _finite("phase amount", amount)

    # ==========================================================================
    # 约束与目标
    # ==========================================================================

    @property
    def element_amounts(self) -> jnp.ndarray:
        return self.b

    def _extra_constraints(self) -> Tuple[List[jnp.ndarray], List[float]]:
        N = self.system.num_species
        rows, values = [], []
        for j, amount in self._fixed_species.items():
            rows.append(jnp.zeros(N).at[j].set(1.0))
            values.append(amount)
        for k, amount in self._fixed_phases.items():
            indices = jnp.array(self.system.phases[k].indices)
            rows.append(jnp.zeros(N).at[indices].set(1.0))
            values.append(amount)
        return rows, values

    def constraint_matrix(self) -> jnp.ndarray:
        """[A; 附加约束行] ((E + k), N)"""
        rows, _ = self._extra_constraints()
        if not rows:
            return self.system.formula_matrix
        return jnp.vstack([self.system.formula_matrix, jnp.stack(rows)])

    def constraint_vector(self) -> jnp.ndarray:
        """[b; 固定值] (E + k,)"""
        _, values = self._extra_constraints()
        return jnp.concatenate([self.b, to_fp64(values).reshape(-1)])

    def objective(self):
        """n -> ObjectiveState，f = n·μ/RT，梯度 μ/RT，Hessian (∂μ/∂n)/RT"""
        model = self.system.model
        T, P = to_fp64(self.T), to_fp64(self.P)
        RT = R_GAS * self.T

        def evaluate(n: jnp.ndarray) -> ObjectiveState:
            props = model(T, P, n)
            g = props.mu / RT
            return ObjectiveState(f=float(jnp.dot(n, g)), grad=g, hessian=props.dmu_dn / RT)

        return evaluate

    def to_optimum_problem(self) -> OptimumProblem:
        return OptimumProblem(
            objective=self.objective(),
            A=self.constraint_matrix(),
            b=self.constraint_vector(),
            lower=jnp.zeros(self.system.num_species),
        )
