"""
Exception types raised by the cloud carbon footprint model.

All errors derive from CcfModelError so callers can catch the whole family,
and from the closest builtin (ValueError / RuntimeError) so code that only
knows about builtins keeps working.
"""


class CcfModelError(Exception):
    """Base class for all model errors."""


class MissingParameterError(CcfModelError, ValueError):
    """configure() or calculate() was called without its required argument."""


class InvalidParameterError(CcfModelError, ValueError):
    """A static parameter has a value the model cannot use."""


class UnsupportedProviderError(CcfModelError, ValueError):
    """Provider is not one of the supported cloud providers."""

    def __init__(self, provider, supported):
        self.provider = provider
        self.supported = tuple(supported)
        super().__init__(
            f"Provider not supported: {provider!r}. "
            f"Valid providers: {', '.join(self.supported)}"
        )


class UnsupportedInstanceTypeError(CcfModelError, ValueError):
    """Instance type is not present in the catalog for the chosen provider."""

    def __init__(self, provider: str, instance_type):
        self.provider = provider
        self.instance_type = instance_type
        super().__init__(
            f"Instance type not supported for provider '{provider}': {instance_type!r}"
        )


class NotConfiguredError(CcfModelError, RuntimeError):
    """calculate() was called before configure() selected a provider and instance type."""


class MissingObservationFieldError(CcfModelError, ValueError):
    """An observation lacks one of the required fields."""

    def __init__(self, missing, index=None):
        self.missing = tuple(missing)
        self.index = index
        where = f"observation {index}" if index is not None else "observation"
        super().__init__(
            f"Required parameters {', '.join(self.missing)} not provided for {where}"
        )


# Short name used by the energy estimator
MissingFieldError = MissingObservationFieldError


class InvalidObservationError(CcfModelError, ValueError):
    """An observation field is present but holds an unusable value."""


class CatalogError(CcfModelError, ValueError):
    """Reference tables are malformed and the instance catalog cannot be built."""
