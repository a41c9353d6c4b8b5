"""
标准态热力学函数模块

基于 NASA 7 系数多项式计算物种的 Cp, H, S 与标准态吉布斯能 G0(T)。
所有函数均为纯 JAX 函数，可对 T 求导 (jax.grad / jax.jacfwd)。
"""

import jax
import jax.numpy as jnp

from eqkit.utils.precision import R_GAS, to_fp64


@jax.jit
def compute_cp(coeffs: jnp.ndarray, T: float) -> float:
    """计算定压热容 Cp

    Cp/R = a1 + a2*T + a3*T^2 + a4*T^3 + a5*T^4

    Args:
        coeffs: NASA 7 系数 [a1, ..., a7]
        T: 温度 (K)

    Returns:
        Cp (J/(mol·K))
    """
    T = to_fp64(T)
    c = coeffs
    return R_GAS * (c[0] + c[1]*T + c[2]*T**2 + c[3]*T**3 + c[4]*T**4)


@jax.jit
def compute_enthalpy(coeffs: jnp.ndarray, T: float) -> float:
    """计算摩尔焓 H

    H/RT = a1 + a2*T/2 + a3*T^2/3 + a4*T^3/4 + a5*T^4/5 + a6/T
    """
    T = to_fp64(T)
    c = coeffs
    h_over_rt = c[0] + c[1]*T/2.0 + c[2]*T**2/3.0 + c[3]*T**3/4.0 + c[4]*T**4/5.0 + c[5]/T
    return R_GAS * T * h_over_rt


@jax.jit
def compute_entropy(coeffs: jnp.ndarray, T: float) -> float:
    """计算标准摩尔熵 S

    S/R = a1*lnT + a2*T + a3*T^2/2 + a4*T^3/3 + a5*T^4/4 + a7
    """
    T = to_fp64(T)
    c = coeffs
    s_over_r = c[0]*jnp.log(T) + c[1]*T + c[2]*T**2/2.0 + c[3]*T**3/3.0 + c[4]*T**4/4.0 + c[6]
    return R_GAS * s_over_r


@jax.jit
def compute_standard_gibbs(coeffs: jnp.ndarray, T: float) -> float:
    """标准态摩尔吉布斯能 G0 = H - T*S (J/mol)"""
    T = to_fp64(T)
    return compute_enthalpy(coeffs, T) - T * compute_entropy(coeffs, T)


@jax.jit
def compute_standard_gibbs_batch(coeffs_all: jnp.ndarray, T: float) -> jnp.ndarray:
    """批量计算所有物种的 G0

    Args:
        coeffs_all: NASA 系数 (n_species, 7)
        T: 温度 (K)

    Returns:
        G0 数组 (n_species,) (J/mol)
    """
    return jax.vmap(compute_standard_gibbs, in_axes=(0, None))(coeffs_all, T)


def coeffs_from_constants(h0: float, s0: float) -> jnp.ndarray:
    """由温度无关的 H0 (J/mol)、S0 (J/(mol·K)) 构造等效 NASA 7 系数

    Cp = 0，于是 H = R*a6，S = R*a7。
    """
    return to_fp64([0.0, 0.0, 0.0, 0.0, 0.0, h0 / R_GAS, s0 / R_GAS])
