"""
平衡求解配置

不可变 NamedTuple 配置，支持 _replace 覆盖与扁平键映射加载：

    options = EquilibriumOptions.from_mapping({
        "compute.dndt": True,
        "maxIterations": 200,
        "tolerance": 1e-10,
    })
"""

from typing import Any, Mapping, NamedTuple

from eqkit.optimization.types import OptimumOptions
from eqkit.utils.solvers import NewtonConfig


class DerivativeFlags(NamedTuple):
    """需要计算的灵敏度 (彼此独立)"""
    dndt: bool = False
    dndp: bool = False
    dndb: bool = False

    @property
    def any(self) -> bool:
        return self.dndt or self.dndp or self.dndb


class EquilibriumOptions(NamedTuple):
    """平衡求解配置

    Attributes:
        compute: 灵敏度开关
        optimum: 内点法配置
        approximate: 元素势近似的牛顿法配置
        sensitivity_threshold: KKT 分解倒条件数下限，低于此值灵敏度视为奇异
    """
    compute: DerivativeFlags = DerivativeFlags()
    optimum: OptimumOptions = OptimumOptions()
    approximate: NewtonConfig = NewtonConfig()
    sensitivity_threshold: float = 1e-7

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Any]) -> "EquilibriumOptions":
        """由扁平键值构造

        Raises:
            KeyError: 未知键
            ValueError: 取值非法
        """
        compute = {}
        optimum = {}
        extra = {}
        for key, value in mapping.items():
            if key not in _KEYS:
                raise KeyError(f"unknown option {key!r}; accepted: {sorted(_KEYS)}")
            group, name, convert = _KEYS[key]
            value = convert(key, value)
            {"compute": compute, "optimum": optimum, "root": extra}[group][name] = value
        return cls(
            compute=DerivativeFlags(**compute),
            optimum=OptimumOptions(**optimum),
            **extra,
        )


# ==============================================================================
# 键表与取值校验
# ==============================================================================

def _as_bool(key, value) -> bool:
    if not isinstance(value, bool):
        raise ValueError(f"option {key!r} must be a bool, got {value!r}")
    return value


def _as_positive_int(key, value) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise ValueError(f"option {key!r} must be a positive integer, got {value!r}")
    return value


def _as_positive_float(key, value) -> float:
    if isinstance(value, bool):
        raise ValueError(f"option {key!r} must be a positive number, got {value!r}")
    try:
        value = float(value)
    except (TypeError, ValueError):
        raise ValueError(f"option {key!r} must be a positive number, got {value!r}") from None
    if not value > 0 or value == float("inf"):
        raise ValueError(f"option {key!r} must be a positive finite number, got {value!r}")
    return value


_KEYS = {
    "compute.dndt": ("compute", "dndt", _as_bool),
    "compute.dndp": ("compute", "dndp", _as_bool),
    "compute.dndb": ("compute", "dndb", _as_bool),
    "maxIterations": ("optimum", "max_iterations", _as_positive_int),
    "max_iterations": ("optimum", "max_iterations", _as_positive_int),
    "tolerance": ("optimum", "tolerance", _as_positive_float),
    "initialBarrierParameter": ("optimum", "initial_barrier_parameter", _as_positive_float),
    "initial_barrier_parameter": ("optimum", "initial_barrier_parameter", _as_positive_float),
    "sensitivityThreshold": ("root", "sensitivity_threshold", _as_positive_float),
    "sensitivity_threshold": ("root", "sensitivity_threshold", _as_positive_float),
}
