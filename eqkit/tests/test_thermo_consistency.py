# test_thermo_consistency.py
"""
热力学一致性单元测试套件

验证内容:
1. NASA 7 多项式的 Cp = dH/dT, Cp/T = dS/dT 关系
2. 常数 H0/S0 的等效系数
3. 化学势模型的自动微分导数 (理想气体、Debye-Hückel 水溶液)
"""
import jax
jax.config.update('jax_enable_x64', True)
import jax.numpy as jnp
import numpy as np
import unittest

from eqkit.physics.models import (
    DEBYE_HUCKEL_A,
    WATER_MOLAR_MASS,
    AqueousPhase,
    IdealGasPhase,
    IdealSolutionPhase,
    SpeciesData,
    build_chemical_system,
)
from eqkit.physics.thermo import (
    coeffs_from_constants,
    compute_cp,
    compute_enthalpy,
    compute_entropy,
    compute_standard_gibbs,
)
from eqkit.utils.precision import LN10, P_REF, R_GAS

# ============================================================================
# 测试参数
# ============================================================================
# N2 低温段 NASA 7 系数 (200-1000 K)
N2_LOW = jnp.array([3.298677, 1.4082404e-3, -3.963222e-6, 5.641515e-9,
                    -2.444854e-12, -1020.8999, 3.950372])
T_POINTS = (300.0, 500.0, 900.0)


class NasaPolynomialTests(unittest.TestCase):
    """NASA 多项式一致性"""

    def test_cp_is_enthalpy_derivative(self):
        dH_dT = jax.grad(compute_enthalpy, argnums=1)
        for T in T_POINTS:
            self.assertAlmostEqual(float(dH_dT(N2_LOW, T)), float(compute_cp(N2_LOW, T)), places=8)

    def test_entropy_derivative(self):
        dS_dT = jax.grad(compute_entropy, argnums=1)
        for T in T_POINTS:
            self.assertAlmostEqual(float(dS_dT(N2_LOW, T)), float(compute_cp(N2_LOW, T)) / T, places=10)

    def test_n2_reference_values(self):
        # 298.15 K: Cp ≈ 29.07 J/(mol·K), S ≈ 191.5 J/(mol·K), H ≈ 0
        self.assertAlmostEqual(float(compute_cp(N2_LOW, 298.15)), 29.07, delta=0.1)
        self.assertAlmostEqual(float(compute_entropy(N2_LOW, 298.15)), 191.5, delta=0.2)
        self.assertAlmostEqual(float(compute_enthalpy(N2_LOW, 298.15)), 0.0, delta=5.0)

    def test_constant_coefficients(self):
        coeffs = coeffs_from_constants(-10000.0, -16.7)
        for T in T_POINTS:
            self.assertAlmostEqual(float(compute_enthalpy(coeffs, T)), -10000.0, places=6)
            self.assertAlmostEqual(float(compute_entropy(coeffs, T)), -16.7, places=8)
            self.assertAlmostEqual(float(compute_standard_gibbs(coeffs, T)), -10000.0 + 16.7 * T, places=6)


class ChemicalModelTests(unittest.TestCase):
    """化学势模型的导数"""

    @classmethod
    def setUpClass(cls):
        cls.gas = build_chemical_system(
            [IdealGasPhase("gas", ["N2", "A"])],
            {
                "N2": SpeciesData(formula={"N": 2}, coeffs=N2_LOW),
                "A": SpeciesData.from_constants({"N": 1}, 470000.0, 150.0),
            },
        )
        cls.aqueous = build_chemical_system(
            [AqueousPhase("aqueous", ["H2O(l)", "Na+", "Cl-"])],
            {
                "H2O(l)": SpeciesData.from_constants({"H": 2, "O": 1}, -285830.0, 69.95),
                "Na+": SpeciesData.from_constants({"Na": 1}, -240100.0, 59.0, charge=1.0),
                "Cl-": SpeciesData.from_constants({"Cl": 1}, -167200.0, 56.5, charge=-1.0),
            },
        )

    def test_ideal_gas_potentials(self):
        T, P = 600.0, 2.0e5
        n = jnp.array([0.75, 0.25])
        props = self.gas.model(T, P, n)
        x = n / jnp.sum(n)
        g0 = jnp.array([compute_standard_gibbs(c, T) for c in self.gas.model.coeffs])
        expected = g0 + R_GAS * T * jnp.log(x * P / P_REF)
        np.testing.assert_allclose(np.asarray(props.mu), np.asarray(expected), rtol=1e-12)

        # ∂μ/∂P = RT/P, ∂μ/∂n_j = RT (δ_ij / n_i - 1 / N)
        np.testing.assert_allclose(np.asarray(props.dmu_dP), R_GAS * T / P * np.ones(2), rtol=1e-12)
        N = float(jnp.sum(n))
        expected_dn = R_GAS * T * (np.diag(1.0 / np.asarray(n)) - 1.0 / N)
        np.testing.assert_allclose(np.asarray(props.dmu_dn), expected_dn, rtol=1e-10)

    def test_temperature_derivative_is_minus_entropy(self):
        # ∂μ_i/∂T = -S_i + R ln a_i
        T, P = 600.0, 1.0e5
        n = jnp.array([0.5, 0.5])
        props = self.gas.model(T, P, n)
        S = jnp.array([compute_entropy(c, T) for c in self.gas.model.coeffs])
        expected = -S + R_GAS * jnp.log(jnp.array([0.5, 0.5]))
        np.testing.assert_allclose(np.asarray(props.dmu_dT), np.asarray(expected), rtol=1e-10)

    def test_charge_row_appended(self):
        self.assertEqual(self.aqueous.elements, ("H", "O", "Na", "Cl", "Z"))
        np.testing.assert_allclose(np.asarray(self.aqueous.formula_matrix[-1]), [0.0, 1.0, -1.0])
        self.assertNotIn("Z", self.gas.elements)

    def test_debye_huckel_activity(self):
        T, P = 298.15, 1.0e5
        n_w = 1.0 / WATER_MOLAR_MASS      # 1 kg 水
        n = jnp.array([n_w, 0.1, 0.1])    # 0.1 mol/kg NaCl
        phase = self.aqueous.model.phases[0]
        ln_a = phase.ln_activity(T, P, n, self.aqueous.model.charges)

        sqrt_i = np.sqrt(0.1)
        ln_gamma = -LN10 * DEBYE_HUCKEL_A * sqrt_i / (1.0 + sqrt_i)
        self.assertAlmostEqual(ln_gamma / LN10, -0.1223, places=4)
        np.testing.assert_allclose(np.asarray(ln_a[1:]), np.log(0.1) + ln_gamma, rtol=1e-10)
        self.assertAlmostEqual(float(ln_a[0]), float(np.log(n_w / (n_w + 0.2))), places=12)

    def test_ideal_solution_is_pressure_independent(self):
        phase = IdealSolutionPhase("liquid", ["a", "b"])
        n = jnp.array([0.2, 0.8])
        for P in (1.0e5, 1.0e7):
            np.testing.assert_allclose(np.asarray(phase.ln_activity(300.0, P, n, jnp.zeros(2))),
                                       np.log([0.2, 0.8]), rtol=1e-12)


if __name__ == '__main__':
    unittest.main()
