# eqkit/core/types.py
"""
化学平衡核心数据结构

ChemicalSystem 持有物种、元素、组成矩阵与化学势模型 (只读)；
EquilibriumState 为可变的求解状态 (热启动的载体)；
EquilibriumResult / EquilibriumStatistics 为不可变的求解输出。
"""

import dataclasses
from dataclasses import dataclass, field
from typing import Callable, NamedTuple, Optional, Sequence, Tuple, Union

import jax.numpy as jnp

from eqkit.optimization.types import InvalidProblemError, OptimumResult, OptimumStatistics
from eqkit.utils.precision import is_finite, to_fp64


class ChemicalProperties(NamedTuple):
    """化学势及其导数 (J/mol)"""
    mu: jnp.ndarray       # (N,)
    dmu_dn: jnp.ndarray   # (N, N)
    dmu_dT: jnp.ndarray   # (N,)
    dmu_dP: jnp.ndarray   # (N,)


class Phase(NamedTuple):
    """相信息：名称与所含物种在体系中的下标"""
    name: str
    species: Tuple[str, ...]
    indices: Tuple[int, ...]


def _lookup(kind: str, names: Sequence[str], key: Union[str, int]) -> int:
    if isinstance(key, str):
        if key not in names:
            raise KeyError(f"unknown {kind} {key!r}; available: {list(names)}")
        return list(names).index(key)
    index = int(key)
    if not 0 <= index < len(names):
        raise KeyError(f"{kind} index {index} out of range [0, {len(names)})")
    return index


@dataclass(frozen=True, eq=False)
class ChemicalSystem:
    """多相多组分化学体系

    Attributes:
        species: 物种名称 (N,)
        elements: 元素名称 (E,)，带电体系末尾为电荷行 "Z"
        formula_matrix: 组成矩阵 A (E, N)
        phases: 相信息
        model: (T, P, n) -> ChemicalProperties
    """
    species: Tuple[str, ...]
    elements: Tuple[str, ...]
    formula_matrix: jnp.ndarray
    phases: Tuple[Phase, ...]
    model: Callable[..., ChemicalProperties]

    def __post_init__(self):
        A = to_fp64(self.formula_matrix)
        if A.shape != (len(self.elements), len(self.species)):
            raise InvalidProblemError(
                f"formula matrix has shape {A.shape}, expected "
                f"({len(self.elements)}, {len(self.species)})")
        object.__setattr__(self, "formula_matrix", A)

    @property
    def num_species(self) -> int:
        return len(self.species)

    @property
    def num_elements(self) -> int:
        return len(self.elements)

    @property
    def num_phases(self) -> int:
        return len(self.phases)

    def species_index(self, species: Union[str, int]) -> int:
        return _lookup("species", self.species, species)

    def element_index(self, element: Union[str, int]) -> int:
        return _lookup("element", self.elements, element)

    def phase_index(self, phase: Union[str, int]) -> int:
        return _lookup("phase", [p.name for p in self.phases], phase)

    def element_amounts(self, n: jnp.ndarray) -> jnp.ndarray:
        """b = A n"""
        return self.formula_matrix @ to_fp64(n)

    def phase_amounts(self, n: jnp.ndarray) -> jnp.ndarray:
        """各相总摩尔数"""
        n = to_fp64(n)
        return jnp.array([jnp.sum(n[jnp.array(p.indices)]) for p in self.phases])


@dataclass
class EquilibriumState:
    """平衡求解状态

    n 为物种摩尔数；y、z 为上次内点求解的乘子，
    存在时作为下一次求解的热启动点。
    """
    system: ChemicalSystem
    T: float = 298.15
    P: float = 1.0e5
    n: Optional[jnp.ndarray] = None
    y: Optional[jnp.ndarray] = None
    z: Optional[jnp.ndarray] = None

    def __post_init__(self):
        if self.n is None:
            self.n = jnp.zeros(self.system.num_species)
        self.n = to_fp64(self.n)
        if self.n.shape != (self.system.num_species,):
            raise InvalidProblemError(
                f"species amounts have shape {self.n.shape}, expected ({self.system.num_species},)")

    @property
    def has_solution(self) -> bool:
        """是否持有可用于热启动的解"""
        return bool(jnp.sum(self.n) > 0) and is_finite(self.n)

    def species_amount(self, species: Union[str, int]) -> float:
        return float(self.n[self.system.species_index(species)])

    def element_amounts(self) -> jnp.ndarray:
        return self.system.element_amounts(self.n)

    def phase_amounts(self) -> jnp.ndarray:
        return self.system.phase_amounts(self.n)

    def set_species_amounts(self, n: jnp.ndarray):
        """直接设置 n，并清除乘子"""
        n = to_fp64(n)
        if n.shape != (self.system.num_species,):
            raise InvalidProblemError(
                f"species amounts have shape {n.shape}, expected ({self.system.num_species},)")
        self.n, self.y, self.z = n, None, None


@dataclass(frozen=True)
class EquilibriumStatistics(OptimumStatistics):
    """平衡求解统计 (在内点统计基础上增加平衡层信息)"""
    method: str = "interior-point"
    num_gibbs_evaluations: int = 0
    sensitivity_valid: bool = True
    sensitivity_rcond: Optional[float] = None

    @classmethod
    def from_optimum(cls, statistics: OptimumStatistics, **extra) -> "EquilibriumStatistics":
        values = {f.name: getattr(statistics, f.name) for f in dataclasses.fields(statistics)}
        values.update(extra)
        return cls(**values)


@dataclass(frozen=True)
class EquilibriumResult:
    """平衡求解结果

    dndt / dndp / dndb 仅在 options.compute 请求且灵敏度系统非奇异时给出。
    """
    n: jnp.ndarray
    statistics: EquilibriumStatistics
    optimum: Optional[OptimumResult] = field(default=None, repr=False)
    dndt: Optional[jnp.ndarray] = None   # (N,)
    dndp: Optional[jnp.ndarray] = None   # (N,)
    dndb: Optional[jnp.ndarray] = None   # (N, E)

    @property
    def converged(self) -> bool:
        return self.statistics.converged
