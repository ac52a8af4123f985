"""
Instance metrics catalog.

Normalizes the per-provider reference datasets into a single
provider -> instance type -> PowerProfile mapping:

- AWS instances carry measured wattage at 0/10/50/100% load (decimal-comma
  strings) and map directly onto four curve points.
- GCP and Azure instances declare a microarchitecture; the architecture's
  Min/Max Watts per vCPU are scaled by the instance's vCPU count to give a
  two-point 0/100% curve. Unmeasured architectures use a synthetic
  "Average" entry.
- Embodied-emissions tables are joined on by instance type.

The catalog is built once and never mutated; rebuilding produces a new
Catalog that callers swap in as a whole.
"""

from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, Iterator, List, Mapping, Optional, Tuple
import json
import logging

from .errors import CatalogError
from .model import AWS_LOAD_POINTS, MIN_MAX_LOAD_POINTS, PowerProfile

logger = logging.getLogger(__name__)


SUPPORTED_PROVIDERS = ('aws', 'gcp', 'azure')
AVERAGE_ARCHITECTURE = 'Average'

DEFAULT_DATA_DIR = Path(__file__).parent / 'data'

# Column holding the instance type name in each provider's instance table
INSTANCE_NAME_COLUMNS = {
    'aws': 'Instance type',
    'gcp': 'Machine type',
    'azure': 'Virtual Machine',
}

AWS_WATTAGE_COLUMNS = (
    'Instance @ Idle',
    'Instance @ 10%',
    'Instance @ 50%',
    'Instance @ 100%',
)

Row = Mapping[str, Any]


@dataclass
class ProviderTables:
    """Raw reference tables for one provider."""
    instances: List[Row] = field(default_factory=list)
    use: List[Row] = field(default_factory=list)
    embodied: List[Row] = field(default_factory=list)


@dataclass
class ReferenceTables:
    """Raw reference tables for all supported providers."""
    aws: ProviderTables = field(default_factory=ProviderTables)
    gcp: ProviderTables = field(default_factory=ProviderTables)
    azure: ProviderTables = field(default_factory=ProviderTables)

    def for_provider(self, provider: str) -> ProviderTables:
        if provider not in SUPPORTED_PROVIDERS:
            raise KeyError(f"Unknown provider: {provider}. Available: {list(SUPPORTED_PROVIDERS)}")
        return getattr(self, provider)


@dataclass(frozen=True)
class ArchitectureWatts:
    """Per-vCPU Min/Max Watts for a microarchitecture."""
    architecture: str
    min_watts: float
    max_watts: float


class Catalog:
    """
    Read-only provider -> instance type -> PowerProfile mapping.

    Example:
        catalog = load_catalog()
        profile = catalog.get('aws', 'm5.large')
    """

    def __init__(
        self,
        profiles: Mapping[str, Mapping[str, PowerProfile]],
        architectures: Optional[Mapping[str, Mapping[str, ArchitectureWatts]]] = None,
    ):
        self._profiles = MappingProxyType({
            provider: MappingProxyType(dict(profiles.get(provider, {})))
            for provider in SUPPORTED_PROVIDERS
        })
        architectures = architectures or {}
        self._architectures = MappingProxyType({
            provider: MappingProxyType(dict(architectures.get(provider, {})))
            for provider in SUPPORTED_PROVIDERS
        })

    @property
    def providers(self) -> Tuple[str, ...]:
        return SUPPORTED_PROVIDERS

    def instances(self, provider: str) -> Mapping[str, PowerProfile]:
        """Instance profiles for a provider."""
        if provider not in self._profiles:
            raise KeyError(f"Unknown provider: {provider}. Available: {list(SUPPORTED_PROVIDERS)}")
        return self._profiles[provider]

    def architectures(self, provider: str) -> Mapping[str, ArchitectureWatts]:
        """Architecture Min/Max Watts table for a provider, including 'Average'."""
        if provider not in self._architectures:
            raise KeyError(f"Unknown provider: {provider}. Available: {list(SUPPORTED_PROVIDERS)}")
        return self._architectures[provider]

    def has_instance(self, provider: str, instance_type: str) -> bool:
        return provider in self._profiles and instance_type in self._profiles[provider]

    def get(self, provider: str, instance_type: str) -> PowerProfile:
        return self.instances(provider)[instance_type]

    def __iter__(self) -> Iterator[Tuple[str, str, PowerProfile]]:
        for provider in SUPPORTED_PROVIDERS:
            for name, profile in self._profiles[provider].items():
                yield provider, name, profile

    def __len__(self) -> int:
        return sum(len(p) for p in self._profiles.values())


# --- Field parsing ---

def _column(row: Row, column: str, provider: str, table: str, index: int) -> Any:
    if column not in row:
        raise CatalogError(
            f"{provider} {table} table row {index} is missing column '{column}'"
        )
    return row[column]


def parse_decimal(value: Any) -> float:
    """Parse a number that may use a decimal comma ("1,2" -> 1.2)."""
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return float(value)
    if not isinstance(value, str):
        raise ValueError(f"not a number: {value!r}")
    return float(value.strip().replace(',', '.'))


def _parse_float(row: Row, column: str, provider: str, table: str, index: int) -> float:
    value = _column(row, column, provider, table, index)
    try:
        return parse_decimal(value)
    except ValueError:
        raise CatalogError(
            f"{provider} {table} table row {index}: cannot parse '{column}' value {value!r}"
        ) from None


def _parse_count(row: Row, column: str, provider: str, table: str, index: int,
                 required: bool = True) -> Optional[int]:
    if not required and (column not in row or row[column] in (None, '')):
        return None
    value = _column(row, column, provider, table, index)
    try:
        count = parse_decimal(value)
    except ValueError:
        count = None
    if count is None or not count.is_integer():
        raise CatalogError(
            f"{provider} {table} table row {index}: '{column}' must be a whole number, got {value!r}"
        )
    return int(count)


# --- Builders ---

def build_architecture_table(provider: str, use_rows: List[Row]) -> Dict[str, ArchitectureWatts]:
    """
    Index a usage table by architecture and add the synthetic 'Average' entry.

    'Average' is the arithmetic mean of Min/Max Watts over the distinct
    architectures in the table (a repeated architecture keeps its last row).
    """
    table: Dict[str, ArchitectureWatts] = {}
    for i, row in enumerate(use_rows):
        name = str(_column(row, 'Architecture', provider, 'use', i))
        table[name] = ArchitectureWatts(
            architecture=name,
            min_watts=_parse_float(row, 'Min Watts', provider, 'use', i),
            max_watts=_parse_float(row, 'Max Watts', provider, 'use', i),
        )

    measured = [a for name, a in table.items() if name != AVERAGE_ARCHITECTURE]
    if measured:
        table[AVERAGE_ARCHITECTURE] = ArchitectureWatts(
            architecture=AVERAGE_ARCHITECTURE,
            min_watts=sum(a.min_watts for a in measured) / len(measured),
            max_watts=sum(a.max_watts for a in measured) / len(measured),
        )
    return table


def build_aws_profiles(instance_rows: List[Row]) -> Dict[str, dict]:
    """Profile fields for AWS instances (four measured load points)."""
    name_col = INSTANCE_NAME_COLUMNS['aws']
    profiles = {}
    for i, row in enumerate(instance_rows):
        name = str(_column(row, name_col, 'aws', 'instances', i))
        watts = [_parse_float(row, col, 'aws', 'instances', i) for col in AWS_WATTAGE_COLUMNS]
        profiles[name] = {
            'name': name,
            'curve_points': tuple(zip(AWS_LOAD_POINTS, watts)),
            'vcpus': _parse_count(row, 'Instance vCPU', 'aws', 'instances', i),
            'max_vcpus': _parse_count(row, 'Platform Total Number of vCPU', 'aws', 'instances', i,
                                      required=False),
        }
    return profiles


def build_min_max_profiles(
    provider: str,
    instance_rows: List[Row],
    architectures: Mapping[str, ArchitectureWatts],
) -> Dict[str, dict]:
    """Profile fields for GCP/Azure instances (architecture watts x vCPUs)."""
    name_col = INSTANCE_NAME_COLUMNS[provider]
    profiles = {}
    fallbacks = 0
    for i, row in enumerate(instance_rows):
        name = str(_column(row, name_col, provider, 'instances', i))
        vcpus = _parse_count(row, 'Instance vCPUs', provider, 'instances', i)
        architecture = str(_column(row, 'Microarchitecture', provider, 'instances', i))
        if architecture not in architectures:
            if AVERAGE_ARCHITECTURE not in architectures:
                raise CatalogError(
                    f"{provider} instance '{name}' uses unmeasured architecture "
                    f"'{architecture}' and the {provider} use table is empty"
                )
            logger.debug("%s %s: architecture %r not measured, using %s",
                         provider, name, architecture, AVERAGE_ARCHITECTURE)
            architecture = AVERAGE_ARCHITECTURE
            fallbacks += 1
        arch = architectures[architecture]
        profiles[name] = {
            'name': name,
            'curve_points': tuple(zip(MIN_MAX_LOAD_POINTS,
                                      (arch.min_watts * vcpus, arch.max_watts * vcpus))),
            'vcpus': vcpus,
            'max_vcpus': _parse_count(row, 'Platform vCPUs (highest vCPU possible)',
                                      provider, 'instances', i, required=False),
            'architecture': architecture,
        }
    if fallbacks:
        logger.info("%s: %d instance type(s) use the %s architecture",
                    provider, fallbacks, AVERAGE_ARCHITECTURE)
    return profiles


def join_embodied(provider: str, profiles: Dict[str, dict], embodied_rows: List[Row]) -> None:
    """Set embodied_emission_total on profile fields from an embodied table."""
    skipped = []
    for i, row in enumerate(embodied_rows):
        name = str(_column(row, 'type', provider, 'embodied', i))
        total = _parse_float(row, 'total', provider, 'embodied', i)
        if name not in profiles:
            skipped.append(name)
            continue
        profiles[name]['embodied_emission_total'] = total
    if skipped:
        logger.warning("%s: skipped %d embodied row(s) for unknown instance types: %s",
                       provider, len(skipped), ', '.join(skipped[:5]) + (' ...' if len(skipped) > 5 else ''))


def build_catalog(tables: ReferenceTables) -> Catalog:
    """
    Build the unified instance catalog from raw reference tables.

    Raises:
        CatalogError: If any table is malformed
    """
    profiles: Dict[str, Dict[str, PowerProfile]] = {}
    architectures: Dict[str, Dict[str, ArchitectureWatts]] = {}

    for provider in SUPPORTED_PROVIDERS:
        raw = tables.for_provider(provider)
        if provider == 'aws':
            # aws use table is informational only; AWS curves come from measured load points
            architectures[provider] = build_architecture_table(provider, raw.use) if raw.use else {}
            fields = build_aws_profiles(raw.instances)
        else:
            architectures[provider] = build_architecture_table(provider, raw.use)
            fields = build_min_max_profiles(provider, raw.instances, architectures[provider])

        join_embodied(provider, fields, raw.embodied)
        profiles[provider] = {name: PowerProfile(**f) for name, f in fields.items()}
        logger.debug("%s: %d instance types, %d architectures",
                     provider, len(profiles[provider]), len(architectures[provider]))

    return Catalog(profiles, architectures)


# --- Loading ---

def _read_table(path: Path, required: bool = True) -> List[Row]:
    if not path.exists():
        if required:
            raise FileNotFoundError(f"Reference table not found: {path}")
        return []
    with open(path, 'r') as f:
        data = json.load(f)
    if not isinstance(data, list):
        raise CatalogError(f"Reference table {path} must contain a JSON array")
    return data


def load_reference_tables(data_dir: Optional[str | Path] = None) -> ReferenceTables:
    """
    Load the nine reference tables from a directory.

    Files are named {provider}-instances.json, {provider}-use.json and
    {provider}-embodied.json. aws-use.json is optional.

    Args:
        data_dir: Directory holding the tables (default: bundled data)

    Returns:
        ReferenceTables instance
    """
    data_dir = Path(data_dir) if data_dir is not None else DEFAULT_DATA_DIR
    tables = {}
    for provider in SUPPORTED_PROVIDERS:
        tables[provider] = ProviderTables(
            instances=_read_table(data_dir / f"{provider}-instances.json"),
            use=_read_table(data_dir / f"{provider}-use.json", required=(provider != 'aws')),
            embodied=_read_table(data_dir / f"{provider}-embodied.json"),
        )
    return ReferenceTables(**tables)


def load_catalog(data_dir: Optional[str | Path] = None) -> Catalog:
    """Load reference tables and build the catalog."""
    catalog = build_catalog(load_reference_tables(data_dir))
    logger.debug("Loaded catalog with %d instance types from %s",
                 len(catalog), data_dir or DEFAULT_DATA_DIR)
    return catalog


_default_catalog: Optional[Catalog] = None


def default_catalog() -> Catalog:
    """Catalog built from the bundled tables, loaded once per process."""
    global _default_catalog
    if _default_catalog is None:
        _default_catalog = load_catalog()
    return _default_catalog
