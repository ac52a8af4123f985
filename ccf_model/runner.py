"""
Run a model config over an observation series and produce structured results.

Orchestrates config -> catalog -> facade -> structured output.
"""

from dataclasses import dataclass, asdict
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Dict, Any, Iterable, List, Union
import json

from .catalog import Catalog, default_catalog, load_catalog
from .config import ModelConfig, validate_config
from .errors import InvalidParameterError
from .facade import CloudCarbonFootprint
from .model import ObservationLike, as_batch, validate_observation


VERSION = "0.1.0"


def _format_timestamp() -> str:
    """Return ISO 8601 timestamp in UTC."""
    return datetime.now(timezone.utc).isoformat()


@dataclass
class CalculationResult:
    """Totals for one run."""
    energy_kwh: float
    embodied_emissions: float
    observations: int
    total_duration_s: float


@dataclass
class RunResult:
    """
    Complete result from running a config over observations.

    Contains metadata, echoed config, and totals.
    """
    meta: Dict[str, Any]
    config: dict
    results: CalculationResult

    def to_dict(self) -> dict:
        """Convert to JSON-serializable dict."""
        return {
            "meta": self.meta,
            "config": self.config,
            "results": asdict(self.results),
        }


def load_observations(path: str | Path) -> List[dict]:
    """
    Load observations from a JSON file.

    The file holds either an array of observation objects or an object with
    an "observations" array.
    """
    path = Path(path)
    with open(path, 'r') as f:
        data = json.load(f)
    if isinstance(data, dict):
        data = data.get("observations")
    if not isinstance(data, list):
        raise InvalidParameterError(
            f"{path}: expected a JSON array of observations or an object with 'observations'"
        )
    return data


class Runner:
    """
    Runs a ModelConfig over an observation series.

    Example:
        config = load_config("configs/web-tier.json")
        runner = Runner(config)
        result = runner.run(load_observations("usage.json"))
        save_result(result, "results/web-tier.json")
    """

    def __init__(
        self,
        config: ModelConfig,
        config_path: Optional[str] = None,
        catalog: Optional[Catalog] = None,
    ):
        """
        Initialize runner with a model config.

        Args:
            config: Model configuration
            config_path: Optional path to config file (for metadata)
            catalog: Optional pre-built catalog; otherwise loaded from
                config.data_dir or the bundled tables
        """
        self.config = config
        self.config_path = config_path

        errors = validate_config(config)
        if errors:
            raise InvalidParameterError(f"Invalid config: {'; '.join(errors)}")

        if catalog is None:
            catalog = load_catalog(config.data_dir) if config.data_dir else default_catalog()
        self.model = CloudCarbonFootprint(catalog=catalog)
        self.model.configure(config.name, config.static_params())

    def run(self, observations: Union[ObservationLike, Iterable[ObservationLike]]) -> RunResult:
        """
        Calculate totals for the observations.

        Accepts the same shapes as CloudCarbonFootprint.calculate(); the
        batch is materialized once and reused for the totals.

        Returns:
            RunResult containing metadata, config echo, and totals
        """
        meta = {
            "timestamp": _format_timestamp(),
            "version": VERSION,
            "model": self.model.model_identifier(),
            "config_file": self.config_path,
            "run_name": self.config.name,
        }

        batch = as_batch(observations)
        totals = self.model.calculate(batch)
        total_duration = sum(validate_observation(o)[0] for o in batch)

        return RunResult(
            meta=meta,
            config=self.config.to_dict(),
            results=CalculationResult(
                energy_kwh=totals["e"],
                embodied_emissions=totals["m"],
                observations=len(batch),
                total_duration_s=total_duration,
            ),
        )


def save_result(result: RunResult, path: str | Path) -> None:
    """
    Save a run result to JSON file.

    Args:
        result: RunResult to save
        path: Output file path
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, 'w') as f:
        json.dump(result.to_dict(), f, indent=2)


def generate_output_filename(config: ModelConfig, timestamp: Optional[str] = None) -> str:
    """
    Generate a default output filename for a config.

    Format: {name}_{timestamp}.json
    """
    if timestamp is None:
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    else:
        # Clean up ISO timestamp for filename
        timestamp = timestamp.replace(":", "").replace("-", "")[:15]

    safe_name = config.name.replace(" ", "_").replace("/", "_")
    return f"{safe_name}_{timestamp}.json"
