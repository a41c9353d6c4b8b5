"""
精度控制工具模块

平衡求解全程使用 FP64：KKT 矩阵在接近收敛时条件数极差，
FP32 无法满足质量守恒容差。提供转换函数、参数包装器与物理常数。
"""

import jax.numpy as jnp
from functools import wraps
from typing import Callable, Any


def to_fp64(x: Any) -> jnp.ndarray:
    """将输入转换为 float64 数组

    Args:
        x: 数组、列表或标量

    Returns:
        float64 数组
    """
    return jnp.asarray(x, dtype=jnp.float64)


def ensure_fp64(*names: str):
    """确保指定参数为 FP64 的装饰器

    用于公共入口 (元素量、初值等)，调用方传入 list / numpy / int 数组均可。

    Args:
        *names: 需要转换为 FP64 的参数名

    Example:
        @ensure_fp64('x0', 'y0')
        def solve(problem, x0, y0=None):
            ...
    """
    def decorator(func: Callable) -> Callable:
        import inspect
        sig = inspect.signature(func)

        @wraps(func)
        def wrapper(*args, **kwargs):
            bound = sig.bind(*args, **kwargs)
            for name in names:
                value = bound.arguments.get(name)
                if value is not None:
                    bound.arguments[name] = to_fp64(value)
            return func(*bound.args, **bound.kwargs)
        return wrapper
    return decorator


def is_finite(x: jnp.ndarray) -> bool:
    """数组是否全部有限 (返回 Python bool，用于主机端控制流)"""
    return bool(jnp.all(jnp.isfinite(x)))


# 常量定义
R_GAS = 8.314462618  # J/(mol·K) - 通用气体常数
P_REF = 1.0e5        # Pa - 标准压力 (1 bar)
LN10 = 2.302585092994046
