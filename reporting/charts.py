"""
Chart rendering for report sections.

Charts are drawn with matplotlib on the Agg backend and returned as PNG
bytes, which the section builders embed as data URLs. A chart with no data
renders as None; the containing section simply leaves it out.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from io import BytesIO
from typing import Optional

logger = logging.getLogger(__name__)


CHART_COLORS = [
    "#3b82f6",  # Blue
    "#10b981",  # Green
    "#f59e0b",  # Amber
    "#ef4444",  # Red
    "#8b5cf6",  # Violet
    "#6b7280",  # Gray
]

CHART_KINDS = ("radar", "line", "bar", "doughnut")


@dataclass(frozen=True)
class ChartSpec:
    """
    What to draw.

    kind is one of radar, line, bar, doughnut. labels and values are
    parallel sequences; a spec whose values are all missing is empty.
    """
    kind: str
    title: str
    labels: tuple[str, ...] = ()
    values: tuple[float, ...] = ()
    series_label: str = ""
    reference_value: Optional[float] = None
    value_format: str = "{:,.0f}"

    def __post_init__(self):
        if self.kind not in CHART_KINDS:
            raise ValueError(f"Unknown chart kind: {self.kind!r}")
        if len(self.labels) != len(self.values):
            raise ValueError("labels and values must have the same length")

    @property
    def is_empty(self) -> bool:
        if self.kind == "doughnut":
            return not any(value > 0 for value in self.values)
        return not self.values or not any(self.values)


# =============================================================================
# Matplotlib Setup
# =============================================================================

_mpl_lock = threading.Lock()
_plt = None


def ensure_chart_backend(dpi: int = 150):
    """
    Select the Agg backend and apply report styling, once per process.

    Safe to call repeatedly; later calls return the configured pyplot.
    """
    global _plt
    with _mpl_lock:
        if _plt is not None:
            return _plt
        import matplotlib
        matplotlib.use("Agg")
        import matplotlib.pyplot as plt
        plt.rcParams.update({
            "font.size": 9,
            "axes.titlesize": 11,
            "axes.labelsize": 9,
            "xtick.labelsize": 8,
            "ytick.labelsize": 8,
            "legend.fontsize": 8,
            "figure.dpi": dpi,
        })
        logger.debug("Matplotlib Agg backend initialised at %d dpi", dpi)
        _plt = plt
        return _plt


def _fig_to_png(plt, fig, dpi: int) -> bytes:
    buf = BytesIO()
    try:
        fig.savefig(buf, format="png", dpi=dpi, bbox_inches="tight")
    finally:
        plt.close(fig)
    return buf.getvalue()


# =============================================================================
# Chart Renderer
# =============================================================================


class MatplotlibChartRenderer:
    """Renders ChartSpec objects to PNG bytes."""

    def __init__(self, dpi: int = 150):
        self.dpi = dpi

    def render_chart(self, spec: ChartSpec) -> Optional[bytes]:
        """Render a chart, or return None when the spec has nothing to plot."""
        if spec.is_empty:
            logger.debug("Chart %r has no data, skipping", spec.title)
            return None

        plt = ensure_chart_backend(self.dpi)
        draw = {
            "radar": self._draw_radar,
            "line": self._draw_line,
            "bar": self._draw_bar,
            "doughnut": self._draw_doughnut,
        }[spec.kind]
        fig = draw(plt, spec)
        return _fig_to_png(plt, fig, self.dpi)

    def _draw_radar(self, plt, spec: ChartSpec):
        import numpy as np

        count = len(spec.values)
        angles = np.linspace(0, 2 * np.pi, count, endpoint=False).tolist()
        values = list(spec.values)
        # Close the polygon
        angles.append(angles[0])
        values.append(values[0])

        fig, ax = plt.subplots(figsize=(5, 4), subplot_kw={"polar": True})
        ax.plot(angles, values, color=CHART_COLORS[0], linewidth=2)
        ax.fill(angles, values, color=CHART_COLORS[0], alpha=0.2)
        ax.set_xticks(angles[:-1])
        ax.set_xticklabels(spec.labels)
        ax.set_ylim(0, 100)
        ax.set_yticks([20, 40, 60, 80, 100])
        ax.set_title(spec.title, fontweight="bold", pad=18)
        return fig

    def _draw_line(self, plt, spec: ChartSpec):
        fig, ax = plt.subplots(figsize=(6.5, 3.2))
        ax.plot(
            spec.labels,
            spec.values,
            color=CHART_COLORS[0],
            marker="o",
            linewidth=2,
            label=spec.series_label or None,
        )
        ax.fill_between(range(len(spec.values)), spec.values, color=CHART_COLORS[0], alpha=0.1)
        ax.set_title(spec.title, fontweight="bold")
        ax.grid(axis="y", alpha=0.3)
        ax.yaxis.set_major_formatter(_value_formatter(spec.value_format))
        if spec.series_label:
            ax.legend()
        fig.tight_layout()
        return fig

    def _draw_bar(self, plt, spec: ChartSpec):
        fig, ax = plt.subplots(figsize=(6.5, 3.2))
        colors = [CHART_COLORS[(i + 1) % len(CHART_COLORS)] for i in range(len(spec.values))]
        ax.bar(spec.labels, spec.values, color=colors)
        if spec.reference_value is not None:
            ax.axhline(spec.reference_value, color=CHART_COLORS[3], linestyle="--", linewidth=1.5)
        ax.set_title(spec.title, fontweight="bold")
        ax.grid(axis="y", alpha=0.3)
        ax.yaxis.set_major_formatter(_value_formatter(spec.value_format))
        fig.tight_layout()
        return fig

    def _draw_doughnut(self, plt, spec: ChartSpec):
        pairs = [(label, value) for label, value in zip(spec.labels, spec.values) if value > 0]
        labels, values = zip(*pairs)
        fig, ax = plt.subplots(figsize=(4.5, 3.5))
        ax.pie(
            values,
            labels=labels,
            colors=CHART_COLORS[:len(values)],
            autopct="%1.1f%%",
            startangle=90,
            pctdistance=0.8,
            wedgeprops={"width": 0.4},
        )
        ax.set_title(spec.title, fontweight="bold")
        ax.axis("equal")
        return fig


def _value_formatter(template: str):
    from matplotlib.ticker import FuncFormatter
    return FuncFormatter(lambda value, _: template.format(value))
