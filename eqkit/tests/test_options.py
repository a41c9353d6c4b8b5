import pytest

from eqkit.core.options import DerivativeFlags, EquilibriumOptions
from eqkit.optimization import OptimumOptions


def test_defaults():
    options = EquilibriumOptions()
    assert options.compute == DerivativeFlags(False, False, False)
    assert not options.compute.any
    assert options.optimum.max_iterations == 100
    assert options.optimum.tolerance == 1e-8
    assert options.optimum.initial_barrier_parameter == 0.1
    assert options.sensitivity_threshold == 1e-7


def test_from_mapping_flat_keys():
    options = EquilibriumOptions.from_mapping({
        "compute.dndt": True,
        "compute.dndb": True,
        "maxIterations": 250,
        "tolerance": 1e-10,
        "initialBarrierParameter": 0.5,
    })
    assert options.compute == DerivativeFlags(dndt=True, dndp=False, dndb=True)
    assert options.optimum == OptimumOptions(
        max_iterations=250, tolerance=1e-10, initial_barrier_parameter=0.5)


def test_from_mapping_snake_case():
    options = EquilibriumOptions.from_mapping({
        "max_iterations": 10,
        "initial_barrier_parameter": 1e-3,
        "sensitivity_threshold": 1e-9,
    })
    assert options.optimum.max_iterations == 10
    assert options.optimum.initial_barrier_parameter == 1e-3
    assert options.sensitivity_threshold == 1e-9


def test_override_with_replace():
    options = EquilibriumOptions()._replace(compute=DerivativeFlags(dndp=True))
    assert options.compute.any and options.compute.dndp


def test_unknown_key_raises():
    with pytest.raises(KeyError):
        EquilibriumOptions.from_mapping({"compute.dndx": True})


@pytest.mark.parametrize("mapping", [
    {"maxIterations": 0},
    {"maxIterations": 2.5},
    {"tolerance": -1.0},
    {"tolerance": float("nan")},
    {"tolerance": "tight"},
    {"initialBarrierParameter": 0.0},
    {"compute.dndt": "yes"},
])
def test_invalid_value_raises(mapping):
    with pytest.raises(ValueError):
        EquilibriumOptions.from_mapping(mapping)
