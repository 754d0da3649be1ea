from __future__ import annotations

import json
import math
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import numpy as np

from rbfsweep.config import SweepConfig, load_config
from rbfsweep.sweep import SweepResult, reference_point_sweep
from rbfsweep.validation import smoothness_ratio, summary_stats


@dataclass(frozen=True)
class PipelineResult:
    sweep: SweepResult
    stats: dict[str, Any]
    metadata: dict[str, Any]


__all__ = ["PipelineResult", "run_pipeline", "run_sweep_and_write"]


def _stats(result: SweepResult) -> dict[str, Any]:
    ok = result.errors[result.valid]
    stats: dict[str, Any] = summary_stats(ok) if ok.size else {}
    stats["smoothness_ratio"] = smoothness_ratio(result.errors)
    stats["n_failed"] = len(result.failed)
    stats["failed"] = list(result.failed)
    return stats


def _json_safe(obj: Any) -> Any:
    # strict JSON has no NaN/Infinity: NaN becomes null, infinities become "inf"/"-inf"
    if isinstance(obj, dict):
        return {k: _json_safe(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [_json_safe(v) for v in obj]
    if isinstance(obj, (float, np.floating)):
        if math.isnan(obj):
            return None
        if math.isinf(obj):
            return "inf" if obj > 0 else "-inf"
        return float(obj)
    if isinstance(obj, np.integer):
        return int(obj)
    return obj


def run_sweep_and_write(config: SweepConfig, outdir: str | Path, *, plot: bool = False) -> PipelineResult:
    """Run the sweep and write ``summary.json`` and ``errors.csv`` to ``outdir``."""
    result = reference_point_sweep(config)
    stats = _stats(result)

    outdir = Path(outdir)
    outdir.mkdir(parents=True, exist_ok=True)
    with (outdir / "summary.json").open("w") as f:
        summary = {"stats": stats, "metadata": result.metadata, "config": config.to_dict()}
        json.dump(_json_safe(summary), f, indent=2, default=str, allow_nan=False)
    table = np.column_stack([result.eval_points, result.errors])
    np.savetxt(outdir / "errors.csv", table, delimiter=",", header="x,y,z,error", comments="")

    if plot:
        from rbfsweep.plots import _require_matplotlib, plot_surface_errors

        plt = _require_matplotlib()
        ax = plot_surface_errors(result.eval_points, result.errors)
        ax.figure.savefig(outdir / "errors.png", dpi=150)
        plt.close(ax.figure)

    metadata = {"outdir": str(outdir), **result.metadata}
    return PipelineResult(sweep=result, stats=stats, metadata=metadata)


def run_pipeline(config_path: str | Path) -> PipelineResult:
    config, output_cfg = load_config(config_path)
    outdir = output_cfg.get("dir", "outputs/pipeline")
    return run_sweep_and_write(config, outdir, plot=bool(output_cfg.get("plot", False)))
