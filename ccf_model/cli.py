"""
Command-line interface for estimating energy and embodied emissions.

Usage:
    python -m ccf_model usage.json --provider aws --instance-type m5.large
    python -m ccf_model usage.json --config configs/web-tier.json --stdout
    python -m ccf_model usage.json --config configs/web-tier.json -o results/web.json
    python -m ccf_model usage.json --config configs/web-tier.json --output-dir results
    python -m ccf_model --list-instances gcp
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

from .catalog import Catalog, SUPPORTED_PROVIDERS, default_catalog, load_catalog
from .config import ModelConfig, load_config
from .errors import CcfModelError
from .formatter import badge, colorize, kv_block, supports_color, table, title
from .runner import Runner, RunResult, generate_output_filename, load_observations, save_result

# Optional plotting support
try:
    from .plot import plot_power_profile, HAS_MATPLOTLIB as HAS_PLOT
except ImportError:
    HAS_PLOT = False
    plot_power_profile = None

logger = logging.getLogger(__name__)


def format_result_summary(result: RunResult, runner: Runner) -> str:
    """Format a human-readable summary of a run."""
    r = result.results
    profile = runner.model.profile
    sel = runner.model.selection

    lines = [title(result.meta["run_name"]), ""]
    lines.append(kv_block([
        ("Provider", sel.provider),
        ("Instance type", sel.instance_type),
        ("vCPUs", f"{profile.vcpus} of {profile.max_vcpus or 'unknown'}"),
        ("Expected lifespan", f"{sel.expected_lifespan:g} years"),
        ("Observations", str(r.observations)),
        ("Total duration", f"{r.total_duration_s:g} s"),
    ]))
    lines.append("")
    lines.append(table(
        ["Utilization %", "Watts"],
        [[f"{u:g}", f"{w:.2f}"] for u, w in profile.curve_points],
        aligns=['r', 'r'],
    ))
    lines.append("")
    lines.append(badge("Energy", f"{r.energy_kwh:.6g} kWh"))
    lines.append(badge("Embodied emissions", f"{r.embodied_emissions:.6g}"))
    return "\n".join(lines)


def format_instance_list(catalog: Catalog, provider: str) -> str:
    """Format the instance types known for a provider."""
    rows = []
    for name, profile in sorted(catalog.instances(provider).items()):
        rows.append([
            name,
            profile.vcpus if profile.vcpus is not None else "N/A",
            profile.max_vcpus if profile.max_vcpus is not None else "N/A",
            f"{profile.idle_watts:.2f}",
            f"{profile.max_watts:.2f}",
            f"{profile.embodied_emission_total:g}" if profile.embodied_emission_total is not None else "N/A",
        ])
    return "\n".join([
        title(f"{provider} instance types"),
        table(["Instance type", "vCPUs", "Platform vCPUs", "Idle W", "Max W", "Embodied"],
              rows, aligns=['l', 'r', 'r', 'r', 'r', 'r']),
    ])


def _build_config(args: argparse.Namespace) -> ModelConfig:
    if args.config is not None:
        config = load_config(args.config)
    else:
        config = ModelConfig(name=args.name or "cli")

    if args.provider is not None:
        config.provider = args.provider
    if args.instance_type is not None:
        config.instance_type = args.instance_type
    if args.expected_lifespan is not None:
        config.expected_lifespan = args.expected_lifespan
    if args.data_dir is not None:
        config.data_dir = str(args.data_dir)
    if args.name is not None:
        config.name = args.name
    return config


def run(args: argparse.Namespace) -> bool:
    """
    Run the model for parsed CLI arguments.

    Returns True on success, False on failure.
    """
    use_color = supports_color() and not args.stdout

    def emit(text: str) -> None:
        print(colorize(text) if use_color else text)

    try:
        config = _build_config(args)
    except FileNotFoundError:
        print(f"Error: Config file not found: {args.config}", file=sys.stderr)
        return False
    except (json.JSONDecodeError, ValueError) as e:
        print(f"Error: Invalid config {args.config}: {e}", file=sys.stderr)
        return False

    try:
        observations = load_observations(args.observations)
    except FileNotFoundError:
        print(f"Error: Observations file not found: {args.observations}", file=sys.stderr)
        return False
    except (json.JSONDecodeError, CcfModelError) as e:
        print(f"Error: Invalid observations in {args.observations}: {e}", file=sys.stderr)
        return False

    try:
        runner = Runner(config, config_path=str(args.config) if args.config else None)
        result = runner.run(observations)
    except (CcfModelError, FileNotFoundError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return False

    if args.stdout:
        print(json.dumps(result.to_dict(), indent=2))
    else:
        emit(format_result_summary(result, runner))

    output_path = args.output
    if output_path is None and args.output_dir is not None:
        output_path = args.output_dir / generate_output_filename(config, result.meta["timestamp"])
    if output_path is not None:
        save_result(result, output_path)
        if not args.stdout:
            print(f"\nResults saved to: {output_path}")

    if args.plot is not None:
        if not HAS_PLOT:
            print("Warning: --plot requires matplotlib. Install with: pip install -e '.[plot]'",
                  file=sys.stderr)
        else:
            plot_power_profile(runner.model.profile, save_path=args.plot)
            if not args.stdout:
                print(f"Plot saved to: {args.plot}")

    return True


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Estimate energy and embodied emissions of a cloud instance workload",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s usage.json --provider aws --instance-type m5.large
  %(prog)s usage.json --config configs/web-tier.json --stdout
  %(prog)s usage.json --provider gcp --instance-type n2-standard-4 --expected-lifespan 6
  %(prog)s --list-instances azure
        """,
    )

    parser.add_argument(
        "observations",
        nargs="?",
        type=Path,
        help="JSON file with observations (duration, cpu, datetime)",
    )
    parser.add_argument("-c", "--config", type=Path, default=None,
                        help="Model config file (JSON)")
    parser.add_argument("--name", default=None, help="Run name (overrides config)")
    parser.add_argument("--provider", choices=SUPPORTED_PROVIDERS, default=None,
                        help="Cloud provider (overrides config)")
    parser.add_argument("--instance-type", default=None,
                        help="Instance type (overrides config)")
    parser.add_argument("--expected-lifespan", type=float, default=None,
                        help="Expected hardware lifespan in years (default: 4)")
    parser.add_argument("--data-dir", type=Path, default=None,
                        help="Directory with reference tables (default: bundled data)")
    parser.add_argument("-o", "--output", type=Path, default=None,
                        help="Save JSON result to this path")
    parser.add_argument("--output-dir", type=Path, default=None,
                        help="Save JSON result under this directory with a generated filename")
    parser.add_argument("--stdout", action="store_true",
                        help="Print JSON result to stdout instead of a summary")
    parser.add_argument("--plot", type=Path, default=None, metavar="PATH",
                        help="Save a power curve plot of the instance (requires matplotlib)")
    parser.add_argument("--list-instances", choices=SUPPORTED_PROVIDERS, default=None,
                        metavar="PROVIDER", help="List instance types for a provider and exit")
    parser.add_argument("-v", "--verbose", action="store_true",
                        help="Enable debug logging")

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s: %(name)s: %(message)s",
    )

    if args.list_instances:
        try:
            catalog = load_catalog(args.data_dir) if args.data_dir else default_catalog()
        except (CcfModelError, FileNotFoundError) as e:
            print(f"Error: {e}", file=sys.stderr)
            return 1
        print(format_instance_list(catalog, args.list_instances))
        return 0

    if args.observations is None:
        parser.error("an observations file is required (or use --list-instances)")
    if args.config is None and (args.provider is None or args.instance_type is None):
        parser.error("either --config or both --provider and --instance-type are required")

    logger.debug("Running %s", args.observations)
    return 0 if run(args) else 1


if __name__ == "__main__":
    sys.exit(main())
