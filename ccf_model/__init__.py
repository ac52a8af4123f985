"""
Cloud Carbon Footprint instance model

Estimates operational energy (kWh) and embodied emissions of a cloud compute
workload from a provider, an instance type and a series of utilization
observations.

Example usage (programmatic):
    from ccf_model import CloudCarbonFootprint

    model = CloudCarbonFootprint()
    model.configure("web-tier", {"provider": "aws", "instance_type": "m5.large"})
    totals = model.calculate([
        {"duration": 300, "cpu": 0.35, "datetime": "2024-01-01T00:00:00Z"},
        {"duration": 300, "cpu": 0.80, "datetime": "2024-01-01T00:05:00Z"},
    ])
    print(f"Energy: {totals['e']:.6f} kWh, embodied: {totals['m']:.6f}")

Example usage (JSON config):
    from ccf_model import load_config, load_observations, Runner, save_result

    config = load_config("configs/web-tier.json")
    result = Runner(config).run(load_observations("usage.json"))
    save_result(result, "results/web-tier.json")

CLI usage:
    python -m ccf_model usage.json --provider gcp --instance-type n2-standard-4
"""

from .errors import (
    CcfModelError,
    MissingParameterError,
    InvalidParameterError,
    UnsupportedProviderError,
    UnsupportedInstanceTypeError,
    NotConfiguredError,
    MissingObservationFieldError,
    MissingFieldError,
    InvalidObservationError,
    CatalogError,
)

from .model import (
    PowerProfile,
    Observation,
    NaturalCubicSpline,
    estimate_wattage,
    energy_kwh,
    embodied_share,
    validate_observation,
    DEFAULT_EXPECTED_LIFESPAN_YEARS,
    HOURS_PER_YEAR,
)

from .catalog import (
    Catalog,
    ArchitectureWatts,
    ProviderTables,
    ReferenceTables,
    SUPPORTED_PROVIDERS,
    AVERAGE_ARCHITECTURE,
    build_catalog,
    load_catalog,
    load_reference_tables,
    default_catalog,
)

from .facade import (
    CloudCarbonFootprint,
    ModelSelection,
    MODEL_IDENTIFIER,
)

from .config import (
    ModelConfig,
    load_config,
    save_config,
    validate_config,
)

from .runner import (
    Runner,
    RunResult,
    CalculationResult,
    load_observations,
    save_result,
)

# Plotting (optional, requires matplotlib)
from .plot import HAS_MATPLOTLIB as _HAS_PLOT
if _HAS_PLOT:
    from .plot import plot_power_profile
else:
    plot_power_profile = None

__all__ = [
    # Errors
    'CcfModelError',
    'MissingParameterError',
    'InvalidParameterError',
    'UnsupportedProviderError',
    'UnsupportedInstanceTypeError',
    'NotConfiguredError',
    'MissingObservationFieldError',
    'MissingFieldError',
    'InvalidObservationError',
    'CatalogError',
    # Core model
    'PowerProfile',
    'Observation',
    'NaturalCubicSpline',
    'estimate_wattage',
    'energy_kwh',
    'embodied_share',
    'validate_observation',
    'DEFAULT_EXPECTED_LIFESPAN_YEARS',
    'HOURS_PER_YEAR',
    # Catalog
    'Catalog',
    'ArchitectureWatts',
    'ProviderTables',
    'ReferenceTables',
    'SUPPORTED_PROVIDERS',
    'AVERAGE_ARCHITECTURE',
    'build_catalog',
    'load_catalog',
    'load_reference_tables',
    'default_catalog',
    # Facade
    'CloudCarbonFootprint',
    'ModelSelection',
    'MODEL_IDENTIFIER',
    # Config
    'ModelConfig',
    'load_config',
    'save_config',
    'validate_config',
    # Runner
    'Runner',
    'RunResult',
    'CalculationResult',
    'load_observations',
    'save_result',
    # Plotting (optional)
    'plot_power_profile',
]

__version__ = '0.1.0'
