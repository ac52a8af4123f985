"""
Cloud Carbon Footprint model facade.

Exposes the contract the surrounding pipeline uses:

    model = CloudCarbonFootprint()
    model.configure("ccf", {"provider": "aws", "instance_type": "m5.large"})
    totals = model.calculate([
        {"duration": 3600, "cpu": 0.5, "datetime": "2024-01-01T00:00:00Z"},
    ])
    # {"e": <energy kWh>, "m": <embodied emissions>}
"""

from dataclasses import dataclass, replace
from typing import Any, Dict, Iterable, Mapping, Optional, Union
import math

from .catalog import Catalog, SUPPORTED_PROVIDERS, default_catalog
from .errors import (
    InvalidParameterError,
    MissingParameterError,
    NotConfiguredError,
    UnsupportedInstanceTypeError,
    UnsupportedProviderError,
)
from .model import (
    DEFAULT_EXPECTED_LIFESPAN_YEARS,
    ObservationLike,
    PowerProfile,
    as_batch,
    embodied_share,
    energy_kwh,
    validate_observation,
)


MODEL_IDENTIFIER = "ccf.cloud.sci"


@dataclass(frozen=True)
class ModelSelection:
    """Provider, instance type and lifespan chosen by configure()."""
    provider: Optional[str] = None
    instance_type: Optional[str] = None
    expected_lifespan: float = DEFAULT_EXPECTED_LIFESPAN_YEARS

    @property
    def is_configured(self) -> bool:
        return self.provider is not None and self.instance_type is not None


class CloudCarbonFootprint:
    """
    Energy and embodied-emissions model for cloud compute instances.

    The catalog is injected at construction and only ever replaced whole
    via replace_catalog().
    """

    def __init__(self, catalog: Optional[Catalog] = None):
        self._catalog = catalog if catalog is not None else default_catalog()
        self._selection = ModelSelection()
        self.name: Optional[str] = None
        self.auth_params: Optional[Mapping[str, Any]] = None

    @property
    def catalog(self) -> Catalog:
        return self._catalog

    @property
    def selection(self) -> ModelSelection:
        return self._selection

    @property
    def profile(self) -> PowerProfile:
        """Power profile of the configured instance type."""
        if not self._selection.is_configured:
            raise NotConfiguredError(
                "Model is not configured: call configure() with a provider and instance_type"
            )
        return self._catalog.get(self._selection.provider, self._selection.instance_type)

    def model_identifier(self) -> str:
        return MODEL_IDENTIFIER

    def authenticate(self, auth_params: Mapping[str, Any]) -> None:
        self.auth_params = auth_params

    def configure(self, name: str, static_params: Optional[Mapping[str, Any]] = None) -> "CloudCarbonFootprint":
        """
        Select provider, instance type and expected lifespan.

        Args:
            name: Name of the model instance in the pipeline
            static_params: Mapping with 'provider' and optional 'instance_type'
                and 'expected_lifespan' (years)

        Returns:
            self

        Raises:
            MissingParameterError: If static_params is None
            UnsupportedProviderError: If provider is not aws, gcp or azure
            UnsupportedInstanceTypeError: If instance_type is not in the catalog
            InvalidParameterError: If expected_lifespan is not a positive, finite number
        """
        if static_params is None:
            raise MissingParameterError("Required parameters not provided")

        selection = self._selection

        if 'provider' in static_params:
            provider = static_params['provider']
            if provider not in SUPPORTED_PROVIDERS:
                raise UnsupportedProviderError(provider, SUPPORTED_PROVIDERS)
            selection = replace(selection, provider=provider)

        if 'instance_type' in static_params:
            instance_type = static_params['instance_type']
            if selection.provider is None:
                raise MissingParameterError("instance_type requires a provider")
            if not self._catalog.has_instance(selection.provider, instance_type):
                raise UnsupportedInstanceTypeError(selection.provider, instance_type)
            selection = replace(selection, instance_type=instance_type)
        elif selection.instance_type is not None and not self._catalog.has_instance(
            selection.provider, selection.instance_type
        ):
            # Provider changed under a previously selected instance type
            selection = replace(selection, instance_type=None)

        if 'expected_lifespan' in static_params:
            lifespan = static_params['expected_lifespan']
            if (isinstance(lifespan, bool) or not isinstance(lifespan, (int, float))
                    or not math.isfinite(lifespan) or lifespan <= 0):
                raise InvalidParameterError(
                    f"expected_lifespan must be a positive, finite number of years, got {lifespan!r}"
                )
            selection = replace(selection, expected_lifespan=lifespan)

        self.name = name
        self._selection = selection
        return self

    def replace_catalog(self, catalog: Catalog) -> None:
        """
        Swap in a rebuilt catalog.

        Raises:
            UnsupportedInstanceTypeError: If the configured instance type is
                missing from the new catalog (the old catalog stays in place)
        """
        sel = self._selection
        if sel.is_configured and not catalog.has_instance(sel.provider, sel.instance_type):
            raise UnsupportedInstanceTypeError(sel.provider, sel.instance_type)
        self._catalog = catalog

    def calculate(
        self,
        observations: Union[ObservationLike, Iterable[ObservationLike], None],
    ) -> Dict[str, float]:
        """
        Total energy and embodied emissions over a batch of observations.

        Every observation is validated before any is computed, so an invalid
        observation aborts the whole batch.

        Args:
            observations: One observation or an iterable of them

        Returns:
            {"e": total energy in kWh, "m": total embodied emissions}

        Raises:
            MissingParameterError: If observations is None
            NotConfiguredError: If configure() has not selected an instance
            MissingObservationFieldError: If any observation lacks a field
            InvalidObservationError: If any observation has an unusable value,
                or observations is neither an observation nor an iterable
        """
        if observations is None:
            raise MissingParameterError("Required parameters not provided")

        profile = self.profile
        lifespan = self._selection.expected_lifespan

        batch = as_batch(observations)
        for i, observation in enumerate(batch):
            validate_observation(observation, index=i)

        e_total = math.fsum(energy_kwh(o, profile) for o in batch)
        m_total = math.fsum(embodied_share(o, profile, lifespan) for o in batch)

        return {
            "e": e_total,
            "m": m_total,
        }
