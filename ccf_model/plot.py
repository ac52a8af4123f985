"""
Plotting utilities for visualizing instance power profiles.

Requires the 'plot' optional dependency: pip install -e ".[plot]"

Usage:
    from ccf_model import load_catalog
    from ccf_model.plot import plot_power_profile

    profile = load_catalog().get("aws", "m5.large")
    plot_power_profile(profile, save_path="m5.large.png")
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

import numpy as np

try:
    import matplotlib.pyplot as plt
    HAS_MATPLOTLIB = True
except ImportError:
    HAS_MATPLOTLIB = False

from .model import PowerProfile, estimate_wattage


COLORS = {
    'curve': '#1a5276',
    'knots': '#e74c3c',
}


@dataclass
class PlotStyle:
    """Style settings for power profile plots."""
    line_width: float = 1.5
    marker_size: int = 7
    grid_alpha: float = 0.3
    grid_linestyle: str = '--'
    dpi: int = 150
    figsize: tuple = (6.0, 4.0)
    samples: int = 201


DEFAULT_STYLE = PlotStyle()


def _check_matplotlib():
    """Raise helpful error if matplotlib is not installed."""
    if not HAS_MATPLOTLIB:
        raise ImportError(
            "Plotting requires matplotlib. Install with: pip install -e '.[plot]'"
        )


def plot_power_profile(
    profile: PowerProfile,
    save_path: Optional[Union[str, Path]] = None,
    show: bool = False,
    style: PlotStyle = DEFAULT_STYLE,
):
    """
    Plot the interpolated wattage curve of an instance with its knots.

    Args:
        profile: Power profile to plot
        save_path: If given, save the figure to this path
        show: Call plt.show() after drawing
        style: Plot style settings

    Returns:
        The matplotlib Figure
    """
    _check_matplotlib()

    utils = np.linspace(0.0, 100.0, style.samples)
    watts = [estimate_wattage(profile, u) for u in utils]
    knot_u = [u for u, _ in profile.curve_points]
    knot_w = [w for _, w in profile.curve_points]

    fig, ax = plt.subplots(figsize=style.figsize)
    ax.plot(utils, watts, color=COLORS['curve'], linewidth=style.line_width,
            label='Natural cubic spline')
    ax.plot(knot_u, knot_w, 'o', color=COLORS['knots'], markersize=style.marker_size,
            label='Measured load points')
    ax.set_xlabel('CPU utilization (%)')
    ax.set_ylabel('Power (W)')
    subtitle = f" ({profile.architecture})" if profile.architecture else ""
    ax.set_title(f"{profile.name}{subtitle}")
    ax.set_xlim(0, 100)
    ax.grid(True, alpha=style.grid_alpha, linestyle=style.grid_linestyle)
    ax.spines['top'].set_visible(False)
    ax.spines['right'].set_visible(False)
    ax.legend()
    fig.tight_layout()

    if save_path is not None:
        save_path = Path(save_path)
        save_path.parent.mkdir(parents=True, exist_ok=True)
        fig.savefig(save_path, dpi=style.dpi)
    if show:
        plt.show()
    return fig
