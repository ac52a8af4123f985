"""
Unit tests for building the instance metrics catalog.

Run with: pytest ccf_model/test_catalog.py -v
"""

import json
import logging

import pytest
from .catalog import (
    AVERAGE_ARCHITECTURE, DEFAULT_DATA_DIR,
    Catalog, ProviderTables, ReferenceTables,
    build_architecture_table, build_catalog, default_catalog,
    load_catalog, load_reference_tables, parse_decimal,
)
from .errors import CatalogError
from .model import estimate_wattage


def _aws_row(name, idle, ten, fifty, hundred, vcpu="2", platform="96"):
    return {
        "Instance type": name,
        "Instance @ Idle": idle,
        "Instance @ 10%": ten,
        "Instance @ 50%": fifty,
        "Instance @ 100%": hundred,
        "Instance vCPU": vcpu,
        "Platform Total Number of vCPU": platform,
    }


def _vm_row(name_col, name, arch, vcpus="4", platform="64"):
    return {
        name_col: name,
        "Microarchitecture": arch,
        "Instance vCPUs": vcpus,
        "Platform vCPUs (highest vCPU possible)": platform,
    }


@pytest.fixture(scope="module")
def bundled_catalog():
    return load_catalog()


@pytest.fixture
def tables():
    """Small reference tables covering every provider shape."""
    return ReferenceTables(
        aws=ProviderTables(
            instances=[
                _aws_row("m5.large", "3,6", "8,6", "21,1", "29,5"),
                _aws_row("a1.medium", "1,2", "2,0", "3,9", "5,4", vcpu="1", platform="16"),
            ],
            embodied=[{"type": "m5.large", "total": 1647.3}],
        ),
        gcp=ProviderTables(
            instances=[
                _vm_row("Machine type", "n1-standard-4", "Skylake"),
                _vm_row("Machine type", "n1-standard-2", "Sandy Bridge", vcpus="2"),
                _vm_row("Machine type", "t2d-standard-1", "AMD EPYC 3rd Gen", vcpus="1", platform=""),
            ],
            use=[
                {"Architecture": "Skylake", "Min Watts": 0.6, "Max Watts": 4.0},
                {"Architecture": "Haswell", "Min Watts": 2.0, "Max Watts": 6.0},
                {"Architecture": "Sandy Bridge", "Min Watts": 2.2, "Max Watts": 8.6},
            ],
            embodied=[
                {"type": "n1-standard-4", "total": 1680.6},
                {"type": "n1-standard-2", "total": 1500.0},
            ],
        ),
        azure=ProviderTables(
            instances=[
                _vm_row("Virtual Machine", "D4s v3", "Skylake"),
                _vm_row("Virtual Machine", "D2as v5", "EPYC 3rd Gen", vcpus="2"),
            ],
            use=[
                {"Architecture": "Skylake", "Min Watts": "0.6", "Max Watts": "4.0"},
                {"Architecture": "EPYC 2nd Gen", "Min Watts": "0.4", "Max Watts": "2.0"},
            ],
            embodied=[{"type": "D4s v3", "total": 1488.3}],
        ),
    )


class TestParseDecimal:
    """Tests for decimal-comma parsing."""

    def test_comma_decimal(self):
        assert parse_decimal("1,2") == 1.2

    def test_dot_decimal(self):
        assert parse_decimal("29.5") == 29.5

    def test_numbers_pass_through(self):
        assert parse_decimal(7) == 7.0
        assert parse_decimal(0.25) == 0.25

    def test_rejects_garbage(self):
        with pytest.raises(ValueError):
            parse_decimal("n/a")
        with pytest.raises(ValueError):
            parse_decimal(None)


class TestArchitectureTable:
    """Tests for the architecture Min/Max Watts table."""

    def test_average_is_mean_of_architectures(self, tables):
        table = build_architecture_table("gcp", tables.gcp.use)
        avg = table[AVERAGE_ARCHITECTURE]
        assert avg.min_watts == pytest.approx((0.6 + 2.0 + 2.2) / 3)
        assert avg.max_watts == pytest.approx((4.0 + 6.0 + 8.6) / 3)

    def test_repeated_architecture_counted_once(self):
        rows = [
            {"Architecture": "Skylake", "Min Watts": 1.0, "Max Watts": 3.0},
            {"Architecture": "Skylake", "Min Watts": 1.0, "Max Watts": 5.0},
            {"Architecture": "Haswell", "Min Watts": 3.0, "Max Watts": 7.0},
        ]
        table = build_architecture_table("gcp", rows)
        assert table["Skylake"].max_watts == 5.0
        assert table[AVERAGE_ARCHITECTURE].min_watts == pytest.approx(2.0)
        assert table[AVERAGE_ARCHITECTURE].max_watts == pytest.approx(6.0)

    def test_empty_table_has_no_average(self):
        assert build_architecture_table("gcp", []) == {}


class TestBuildCatalog:
    """Tests for build_catalog."""

    def test_aws_curve_from_load_points(self, tables):
        profile = build_catalog(tables).get("aws", "m5.large")
        assert profile.curve_points == ((0.0, 3.6), (10.0, 8.6), (50.0, 21.1), (100.0, 29.5))
        assert profile.vcpus == 2
        assert profile.max_vcpus == 96
        assert profile.architecture is None

    def test_gcp_curve_scaled_by_vcpus(self, tables):
        profile = build_catalog(tables).get("gcp", "n1-standard-4")
        assert profile.curve_points == ((0.0, pytest.approx(2.4)), (100.0, pytest.approx(16.0)))
        assert profile.architecture == "Skylake"
        assert profile.max_vcpus == 64

    def test_gcp_uses_its_own_architecture_table(self, tables):
        """Sandy Bridge is measured for GCP only and must not fall back to Average."""
        profile = build_catalog(tables).get("gcp", "n1-standard-2")
        assert profile.architecture == "Sandy Bridge"
        assert profile.idle_watts == pytest.approx(2.2 * 2)
        assert profile.max_watts == pytest.approx(8.6 * 2)

    def test_unmeasured_architecture_uses_average(self, tables):
        catalog = build_catalog(tables)
        profile = catalog.get("gcp", "t2d-standard-1")
        avg = catalog.architectures("gcp")[AVERAGE_ARCHITECTURE]
        assert profile.architecture == AVERAGE_ARCHITECTURE
        assert profile.idle_watts == pytest.approx(avg.min_watts)
        assert profile.max_watts == pytest.approx(avg.max_watts)

    def test_azure_average_fallback(self, tables):
        profile = build_catalog(tables).get("azure", "D2as v5")
        assert profile.architecture == AVERAGE_ARCHITECTURE
        assert profile.idle_watts == pytest.approx((0.6 + 0.4) / 2 * 2)
        assert profile.max_watts == pytest.approx((4.0 + 2.0) / 2 * 2)

    def test_blank_platform_vcpus_is_none(self, tables):
        profile = build_catalog(tables).get("gcp", "t2d-standard-1")
        assert profile.max_vcpus is None

    def test_embodied_joined(self, tables):
        catalog = build_catalog(tables)
        assert catalog.get("aws", "m5.large").embodied_emission_total == 1647.3
        assert catalog.get("aws", "a1.medium").embodied_emission_total is None
        assert catalog.get("azure", "D4s v3").embodied_emission_total == 1488.3

    def test_unknown_embodied_type_skipped(self, tables, caplog):
        tables.aws.embodied.append({"type": "z9.mega", "total": 1.0})
        with caplog.at_level(logging.WARNING, logger="ccf_model.catalog"):
            catalog = build_catalog(tables)
        assert not catalog.has_instance("aws", "z9.mega")
        assert "z9.mega" in caplog.text

    def test_missing_column_is_fatal(self, tables):
        del tables.aws.instances[0]["Instance @ 50%"]
        with pytest.raises(CatalogError, match="Instance @ 50%"):
            build_catalog(tables)

    def test_unparsable_number_is_fatal(self, tables):
        tables.gcp.use[0]["Max Watts"] = "lots"
        with pytest.raises(CatalogError, match="Max Watts"):
            build_catalog(tables)

    @pytest.mark.parametrize("value", ["2,5", "1.5", "many"])
    def test_fractional_vcpu_count_is_fatal(self, tables, value):
        tables.azure.instances[0]["Instance vCPUs"] = value
        with pytest.raises(CatalogError, match="whole number"):
            build_catalog(tables)

    def test_whole_number_vcpu_with_decimal_comma(self, tables):
        tables.aws.instances[0]["Instance vCPU"] = "2,0"
        assert build_catalog(tables).get("aws", "m5.large").vcpus == 2

    def test_missing_use_table_is_fatal_for_unmeasured_architecture(self, tables):
        tables.azure.use.clear()
        with pytest.raises(CatalogError, match="unmeasured architecture"):
            build_catalog(tables)

    def test_catalog_is_read_only(self, tables):
        catalog = build_catalog(tables)
        with pytest.raises(TypeError):
            catalog.instances("aws")["new"] = catalog.get("aws", "m5.large")

    def test_iteration_and_len(self, tables):
        catalog = build_catalog(tables)
        entries = list(catalog)
        assert len(entries) == len(catalog) == 7
        assert ("aws", "m5.large", catalog.get("aws", "m5.large")) in entries

    def test_unknown_provider(self, tables):
        catalog = build_catalog(tables)
        with pytest.raises(KeyError):
            catalog.instances("oracle")
        assert not catalog.has_instance("oracle", "m5.large")

    def test_empty_catalog(self):
        catalog = Catalog({})
        assert len(catalog) == 0
        assert dict(catalog.instances("gcp")) == {}


class TestBundledCatalog:
    """Properties of the bundled reference data."""

    def test_all_providers_populated(self, bundled_catalog):
        for provider in ("aws", "gcp", "azure"):
            assert len(bundled_catalog.instances(provider)) > 0

    def test_aws_reproduces_load_points(self, bundled_catalog):
        for name, profile in bundled_catalog.instances("aws").items():
            for util, watts in profile.curve_points:
                assert estimate_wattage(profile, util) == watts, name

    @pytest.mark.parametrize("provider", ["gcp", "azure"])
    def test_min_max_profiles_monotonic(self, bundled_catalog, provider):
        for name, profile in bundled_catalog.instances(provider).items():
            assert profile.idle_watts <= profile.max_watts
            values = [estimate_wattage(profile, u) for u in range(0, 101, 5)]
            assert all(b >= a for a, b in zip(values, values[1:])), name

    @pytest.mark.parametrize("provider", ["gcp", "azure"])
    def test_average_matches_use_table(self, bundled_catalog, provider):
        with open(DEFAULT_DATA_DIR / f"{provider}-use.json") as f:
            rows = json.load(f)
        mins = {r["Architecture"]: float(r["Min Watts"]) for r in rows}
        maxs = {r["Architecture"]: float(r["Max Watts"]) for r in rows}
        avg = bundled_catalog.architectures(provider)[AVERAGE_ARCHITECTURE]
        assert avg.min_watts == pytest.approx(sum(mins.values()) / len(mins))
        assert avg.max_watts == pytest.approx(sum(maxs.values()) / len(maxs))

    def test_mixed_architecture_machine_uses_average(self, bundled_catalog):
        assert bundled_catalog.get("gcp", "e2-standard-2").architecture == AVERAGE_ARCHITECTURE

    def test_default_catalog_cached(self):
        assert default_catalog() is default_catalog()


class TestLoadReferenceTables:
    """Tests for loading tables from a directory."""

    def _write(self, directory, name, rows):
        with open(directory / name, "w") as f:
            json.dump(rows, f)

    def test_load_from_directory(self, tmp_path, tables):
        for provider in ("aws", "gcp", "azure"):
            raw = tables.for_provider(provider)
            self._write(tmp_path, f"{provider}-instances.json", raw.instances)
            self._write(tmp_path, f"{provider}-embodied.json", raw.embodied)
            if provider != "aws":
                self._write(tmp_path, f"{provider}-use.json", raw.use)

        loaded = load_reference_tables(tmp_path)
        assert loaded.aws.use == []
        assert loaded.gcp.instances == tables.gcp.instances
        assert load_catalog(tmp_path).has_instance("azure", "D4s v3")

    def test_missing_required_table(self, tmp_path):
        with pytest.raises(FileNotFoundError, match="aws-instances.json"):
            load_reference_tables(tmp_path)

    def test_table_must_be_array(self, tmp_path):
        self._write(tmp_path, "aws-instances.json", {"Instance type": "m5.large"})
        with pytest.raises(CatalogError, match="JSON array"):
            load_reference_tables(tmp_path)
