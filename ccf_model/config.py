"""
Configuration loading and serialization for model runs.

Provides a JSON-serializable config structure and conversion utilities.
"""

from dataclasses import dataclass, asdict
from typing import Optional, List, Any, Dict
import json
import math
from pathlib import Path

try:
    import json5
    _HAS_JSON5 = True
except ImportError:
    _HAS_JSON5 = False

from .catalog import SUPPORTED_PROVIDERS
from .model import DEFAULT_EXPECTED_LIFESPAN_YEARS


@dataclass
class ModelConfig:
    """
    Model selection for a run.

    Args:
        name: Run name (used in result metadata and output filenames)
        provider: Cloud provider, one of aws, gcp, azure
        instance_type: Instance type name as it appears in the provider's tables
        expected_lifespan: Expected hardware lifespan in years
        data_dir: Optional directory with reference tables (default: bundled)
    """
    name: str = "unnamed"
    provider: str = "aws"
    instance_type: Optional[str] = None
    expected_lifespan: float = DEFAULT_EXPECTED_LIFESPAN_YEARS
    data_dir: Optional[str] = None

    def to_dict(self) -> dict:
        d = asdict(self)
        if d["data_dir"] is None:
            del d["data_dir"]
        return d

    def static_params(self) -> Dict[str, Any]:
        """Parameters in the shape configure() expects."""
        params: Dict[str, Any] = {
            "provider": self.provider,
            "expected_lifespan": self.expected_lifespan,
        }
        if self.instance_type is not None:
            params["instance_type"] = self.instance_type
        return params

    @classmethod
    def from_dict(cls, data: dict) -> "ModelConfig":
        return cls(
            name=data.get("name", "unnamed"),
            provider=data.get("provider", "aws"),
            instance_type=data.get("instance_type"),
            expected_lifespan=data.get("expected_lifespan", DEFAULT_EXPECTED_LIFESPAN_YEARS),
            data_dir=data.get("data_dir"),
        )


def load_config(path: str | Path) -> ModelConfig:
    """
    Load a model configuration from a JSON file.

    Supports JSON with comments (JSONC) if json5 is installed. A relative
    data_dir is resolved against the config file's directory.

    Args:
        path: Path to JSON config file

    Returns:
        ModelConfig instance

    Raises:
        FileNotFoundError: If config file doesn't exist
        json.JSONDecodeError: If JSON is invalid
    """
    path = Path(path)
    with open(path, 'r') as f:
        if _HAS_JSON5:
            data = json5.load(f)
        else:
            data = json.load(f)
    config = ModelConfig.from_dict(data)
    if config.data_dir and not Path(config.data_dir).is_absolute():
        config.data_dir = str(path.parent / config.data_dir)
    return config


def save_config(config: ModelConfig, path: str | Path) -> None:
    """
    Save a model configuration to a JSON file.

    Args:
        config: ModelConfig to save
        path: Path to output file
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, 'w') as f:
        json.dump(config.to_dict(), f, indent=2)


def validate_config(config: ModelConfig) -> List[str]:
    """
    Validate a configuration and return list of error messages.

    Instance type membership is checked against the catalog by configure(),
    not here.

    Returns empty list if config is valid.
    """
    errors = []

    if not config.name or not str(config.name).strip():
        errors.append("Config must have a non-empty 'name'")

    if config.provider not in SUPPORTED_PROVIDERS:
        errors.append(f"Unknown provider: {config.provider}. "
                      f"Valid: {', '.join(SUPPORTED_PROVIDERS)}")

    if not config.instance_type:
        errors.append("Config must specify an 'instance_type'")

    lifespan = config.expected_lifespan
    if isinstance(lifespan, bool) or not isinstance(lifespan, (int, float)):
        errors.append(f"expected_lifespan must be a number, got {lifespan!r}")
    elif not math.isfinite(lifespan) or lifespan <= 0:
        errors.append(f"expected_lifespan must be positive and finite, got {lifespan}")

    if config.data_dir is not None and not Path(config.data_dir).is_dir():
        errors.append(f"data_dir is not a directory: {config.data_dir}")

    return errors
