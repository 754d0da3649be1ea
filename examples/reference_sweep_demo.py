import os

os.environ.setdefault("JAX_ENABLE_X64", "1")

import numpy as np

from rbfsweep import SweepConfig, reference_point_sweep


def main():
    base = SweepConfig(n_points=600, n_eval=101)
    for bc_choice in (1, 2):
        res = reference_point_sweep(base.with_updates(bc_choice=bc_choice, workers=4))
        ok = res.errors[res.valid]
        best = res.eval_points[np.nanargmin(res.errors)]
        print(
            f"mode {'A' if bc_choice == 1 else 'B'}: min={ok.min():.3e} median={np.median(ok):.3e} "
            f"max={ok.max():.3e} failed={len(res.failed)} best reference={np.round(best, 3)}"
        )


if __name__ == "__main__":
    main()
