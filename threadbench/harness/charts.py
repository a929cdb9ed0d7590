from __future__ import annotations

import logging
from pathlib import Path

import matplotlib.pyplot as plt
import pandas as pd
import seaborn as sns

LOGGER = logging.getLogger("threadbench.harness.charts")

sns.set_style("whitegrid")
plt.rcParams["figure.dpi"] = 100
plt.rcParams["savefig.dpi"] = 150
plt.rcParams["font.size"] = 10
plt.rcParams["axes.labelsize"] = 11
plt.rcParams["axes.titlesize"] = 13

# Single-thread steel blue, multi-thread forest green
PASS_COLORS = {
    "Single-thread": "#4682B4",
    "Multi-thread": "#228B22",
}


def render_timing_chart(single_ms: float, multi_ms: float, chart_path: Path) -> Path:
    """Render the two pass timings as a labelled bar chart."""
    chart_path.parent.mkdir(parents=True, exist_ok=True)
    fig, ax = plt.subplots(figsize=(6, 4))

    labels = list(PASS_COLORS)
    values = [single_ms, multi_ms]
    bars = ax.bar(
        labels,
        values,
        color=[PASS_COLORS[label] for label in labels],
        alpha=0.85,
        edgecolor="white",
        linewidth=2,
    )
    ax.set_ylabel("Time (ms)", fontweight="semibold")
    ax.set_title("Single vs Multi-threaded Wall-clock", fontweight="bold", pad=15)
    ax.set_ylim(bottom=0)
    ax.grid(True, alpha=0.3, axis="y", linestyle="--")

    for bar in bars:
        height = bar.get_height()
        ax.text(
            bar.get_x() + bar.get_width() / 2.0,
            height,
            f"{height:.0f} ms",
            ha="center",
            va="bottom",
            fontweight="semibold",
        )

    plt.tight_layout()
    fig.savefig(chart_path, bbox_inches="tight", facecolor="white")
    plt.close(fig)
    LOGGER.info("Rendering chart %s", chart_path)
    return chart_path


def render_history_chart(history: pd.DataFrame, chart_path: Path) -> Path:
    """Grouped bars of both pass timings for every recorded performance run."""
    chart_path.parent.mkdir(parents=True, exist_ok=True)
    if history.empty:
        LOGGER.warning("No performance runs recorded; skipping history chart")
        return chart_path

    long_df = history.melt(
        id_vars=["run"],
        value_vars=["single_elapsed_ms", "multi_elapsed_ms"],
        var_name="pass",
        value_name="elapsed_ms",
    )
    long_df["pass"] = long_df["pass"].map(
        {"single_elapsed_ms": "Single-thread", "multi_elapsed_ms": "Multi-thread"}
    )

    fig, ax = plt.subplots(figsize=(max(6, len(history) * 1.5), 4))
    sns.barplot(
        data=long_df,
        x="run",
        y="elapsed_ms",
        hue="pass",
        hue_order=list(PASS_COLORS),
        palette=PASS_COLORS,
        ax=ax,
    )
    ax.set_xlabel("Run", fontweight="semibold")
    ax.set_ylabel("Time (ms)", fontweight="semibold")
    ax.set_title("Wall-clock per Run", fontweight="bold", pad=15)
    ax.legend(title="Pass", frameon=True, fancybox=True)
    ax.grid(True, alpha=0.3, axis="y", linestyle="--")

    plt.tight_layout()
    fig.savefig(chart_path, bbox_inches="tight", facecolor="white")
    plt.close(fig)
    LOGGER.info("Rendering chart %s", chart_path)
    return chart_path
