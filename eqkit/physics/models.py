"""
化学势模型模块

μ_i(T, P, n) = G0_i(T) + R T ln a_i(T, P, n)

各相的活度模型为 equinox Module (名称、物种为静态字段)；ChemicalModel 将
NASA 系数与相模型组合，一次前向自动微分给出 μ 及其对 n、T、P 的导数。
"""

import logging
from typing import Mapping, NamedTuple, Optional, Sequence, Tuple, Union

import equinox as eqx
import jax
import jax.numpy as jnp
import numpy as np

from eqkit.core.types import ChemicalProperties, ChemicalSystem, Phase
from eqkit.optimization.types import InvalidProblemError
from eqkit.physics.thermo import coeffs_from_constants, compute_standard_gibbs_batch
from eqkit.utils.precision import LN10, P_REF, R_GAS, to_fp64

logger = logging.getLogger(__name__)

# Debye-Hückel 参数 (25 °C 水溶液)
DEBYE_HUCKEL_A = 0.5091     # (kg/mol)^0.5
WATER_MOLAR_MASS = 0.018015  # kg/mol


# ==============================================================================
# 相活度模型
# ==============================================================================

class PhaseModel(eqx.Module):
    """相模型基类：返回该相各物种的 ln a"""
    name: str = eqx.field(static=True)
    species: Tuple[str, ...] = eqx.field(static=True)

    def __init__(self, name: str, species: Sequence[str]):
        self.name = name
        self.species = tuple(species)

    def ln_activity(self, T, P, n, charges) -> jnp.ndarray:
        raise NotImplementedError


def _mole_fractions(n):
    return n / jnp.maximum(jnp.sum(n), 1e-300)


class IdealGasPhase(PhaseModel):
    """理想气体混合物：ln a_i = ln x_i + ln(P/P0)"""

    def ln_activity(self, T, P, n, charges):
        return jnp.log(_mole_fractions(n)) + jnp.log(P / P_REF)


class IdealSolutionPhase(PhaseModel):
    """理想溶液：ln a_i = ln x_i"""

    def ln_activity(self, T, P, n, charges):
        return jnp.log(_mole_fractions(n))


class PureCondensedPhase(PhaseModel):
    """纯凝聚相：活度恒为 1"""

    def ln_activity(self, T, P, n, charges):
        return jnp.zeros_like(n)


class AqueousPhase(PhaseModel):
    """稀水溶液，Debye-Hückel (Güntelberg) 活度系数

    溶剂水: ln a_w = ln x_w
    溶质:   ln a_i = ln m_i + ln γ_i
            ln γ_i = -ln10 * A * z_i^2 * sqrt(I) / (1 + sqrt(I))
            I = 0.5 * Σ m_j z_j^2

    Args:
        name: 相名称
        species: 物种名称 (须包含溶剂)
        water: 溶剂物种名称
    """
    water_index: int = eqx.field(static=True)
    A: float = eqx.field(static=True)

    def __init__(self, name: str, species: Sequence[str], water: str = "H2O(l)",
                 A: float = DEBYE_HUCKEL_A):
        self.name = name
        self.species = tuple(species)
        if water not in self.species:
            raise InvalidProblemError(f"aqueous phase {name!r} has no solvent species {water!r}")
        self.water_index = self.species.index(water)
        self.A = A

    def ln_activity(self, T, P, n, charges):
        w = self.water_index
        n_w = n[w]
        molality = n / (n_w * WATER_MOLAR_MASS)
        solute = jnp.ones_like(n).at[w].set(0.0)
        ionic_strength = 0.5 * jnp.sum(solute * molality * charges ** 2)
        sqrt_i = jnp.sqrt(jnp.maximum(ionic_strength, 1e-300))
        ln_gamma = -LN10 * self.A * charges ** 2 * sqrt_i / (1.0 + sqrt_i)
        ln_a = jnp.log(molality) + ln_gamma
        ln_xw = jnp.log(n_w / jnp.maximum(jnp.sum(n), 1e-300))
        return ln_a.at[w].set(ln_xw)


# ==============================================================================
# 体系化学模型
# ==============================================================================

class ChemicalModel(eqx.Module):
    """组合标准态 G0(T) 与各相活度模型

    调用 model(T, P, n) 返回 ChemicalProperties(mu, dmu_dn, dmu_dT, dmu_dP)。
    """
    coeffs: jnp.ndarray                  # (n_species, 7)
    charges: jnp.ndarray                 # (n_species,)
    phases: Tuple[PhaseModel, ...]
    slices: Tuple[Tuple[int, int], ...] = eqx.field(static=True)

    def __init__(self, coeffs, charges, phases: Sequence[PhaseModel]):
        self.coeffs = to_fp64(coeffs)
        self.charges = to_fp64(charges)
        self.phases = tuple(phases)
        slices, start = [], 0
        for phase in self.phases:
            slices.append((start, start + len(phase.species)))
            start += len(phase.species)
        self.slices = tuple(slices)
        if start != self.coeffs.shape[0]:
            raise InvalidProblemError(
                f"phases hold {start} species but {self.coeffs.shape[0]} coefficient rows were given")

    def chemical_potentials(self, T, P, n) -> jnp.ndarray:
        """μ (J/mol)"""
        g0 = compute_standard_gibbs_batch(self.coeffs, T)
        ln_a = jnp.concatenate([
            phase.ln_activity(T, P, n[i:j], self.charges[i:j])
            for phase, (i, j) in zip(self.phases, self.slices)
        ])
        return g0 + R_GAS * T * ln_a

    def __call__(self, T, P, n) -> ChemicalProperties:
        # T、P 以数组传入，变化时不触发重新编译
        return _evaluate(self, to_fp64(T), to_fp64(P), to_fp64(n))


@eqx.filter_jit
def _evaluate(model: ChemicalModel, T, P, n) -> ChemicalProperties:
    mu = model.chemical_potentials(T, P, n)
    dmu_dT, dmu_dP, dmu_dn = jax.jacfwd(model.chemical_potentials, argnums=(0, 1, 2))(T, P, n)
    return ChemicalProperties(mu=mu, dmu_dn=dmu_dn, dmu_dT=dmu_dT, dmu_dP=dmu_dP)


# ==============================================================================
# 体系构建
# ==============================================================================

class SpeciesData(NamedTuple):
    """物种数据：元素组成、电荷与 NASA 7 系数"""
    formula: Mapping[str, float]
    coeffs: jnp.ndarray
    charge: float = 0.0

    @classmethod
    def from_constants(cls, formula: Mapping[str, float], h0: float, s0: float,
                       charge: float = 0.0) -> "SpeciesData":
        """由常数 H0 (J/mol)、S0 (J/(mol·K)) 构造"""
        return cls(formula=dict(formula), coeffs=coeffs_from_constants(h0, s0), charge=charge)


def build_formula_matrix(
    species: Sequence[str],
    formulas: Sequence[Mapping[str, float]],
    charges: Optional[Sequence[float]] = None,
    elements: Optional[Sequence[str]] = None
) -> Tuple[Tuple[str, ...], jnp.ndarray]:
    """构建元素组成矩阵 A (elements × species)

    存在带电物种时追加电荷行 "Z"。

    Args:
        species: 物种名称
        formulas: 各物种的 {元素: 原子数}
        charges: 各物种电荷
        elements: 元素顺序；缺省按首次出现顺序

    Returns:
        (elements, A)
    """
    if elements is None:
        order = []
        for formula in formulas:
            for e in formula:
                if e not in order:
                    order.append(e)
        elements = order
    elements = list(elements)

    A = np.zeros((len(elements), len(species)))
    for j, formula in enumerate(formulas):
        for e, count in formula.items():
            if e not in elements:
                raise InvalidProblemError(f"species {species[j]!r} contains unknown element {e!r}")
            A[elements.index(e), j] = float(count)

    if charges is not None and any(c != 0 for c in charges):
        A = np.vstack([A, np.asarray(charges, dtype=float)[None, :]])
        elements.append("Z")

    return tuple(elements), to_fp64(A)


def build_chemical_system(
    phases: Sequence[PhaseModel],
    species_data: Mapping[str, Union[SpeciesData, Mapping]],
    elements: Optional[Sequence[str]] = None
) -> ChemicalSystem:
    """由相模型与物种数据组装 ChemicalSystem

    Args:
        phases: 相模型序列 (物种顺序即体系物种顺序)
        species_data: 物种名 -> SpeciesData (或含 formula/coeffs/charge 的字典)
        elements: 元素顺序 (可选)

    Returns:
        ChemicalSystem

    Raises:
        KeyError: 相中引用了未提供数据的物种
    """
    species, infos, start = [], [], 0
    for phase in phases:
        indices = tuple(range(start, start + len(phase.species)))
        infos.append(Phase(name=phase.name, species=phase.species, indices=indices))
        species.extend(phase.species)
        start += len(phase.species)

    if len(set(species)) != len(species):
        raise InvalidProblemError("species names must be unique across phases")

    data = []
    for name in species:
        if name not in species_data:
            raise KeyError(f"no data for species {name!r}; available: {sorted(species_data)}")
        entry = species_data[name]
        if not isinstance(entry, SpeciesData):
            entry = SpeciesData(**entry)
        data.append(entry)

    charges = [float(d.charge) for d in data]
    element_names, A = build_formula_matrix(species, [d.formula for d in data], charges, elements)
    coeffs = jnp.stack([to_fp64(d.coeffs) for d in data])
    model = ChemicalModel(coeffs, charges, phases)

    logger.debug("built system: %d species, %d elements, %d phases",
                 len(species), len(element_names), len(infos))

    return ChemicalSystem(
        species=tuple(species),
        elements=element_names,
        formula_matrix=A,
        phases=tuple(infos),
        model=model,
    )
