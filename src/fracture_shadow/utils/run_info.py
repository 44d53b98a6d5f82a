"""Run-time info printing utilities."""

from __future__ import annotations

from datetime import datetime
from typing import Optional
from zoneinfo import ZoneInfo

from fracture_shadow.control import PropagationControl
from fracture_shadow.numba.utils import numba_available
from fracture_shadow.population import FractureSet


def _fmt_float(x: Optional[float], fmt: str = "{:.3g}") -> str:
    if x is None:
        return "n/a"
    return fmt.format(float(x))


def print_run_header(tag: str) -> None:
    # Use a stable timezone so logs are comparable across machines.
    ts = datetime.now(ZoneInfo("Europe/Berlin")).strftime("%Y-%m-%d %H:%M:%S %Z")
    print(f"\n[run] {tag}  start={ts}")


def print_control_summary(control: PropagationControl) -> None:
    req = bool(control.use_numba)
    av = bool(numba_available())
    print(
        f"[control] mode={control.distribution_mode.value}  policy={control.mean_distance_policy.value}"
        f"  min_clear_zone={control.minimum_clear_zone_volume:.3g}"
        f"  coupling={'yes' if control.cross_set_shadow_coupling else 'no'}"
    )
    if req and not av:
        print("[numba] requested=yes  available=no  (falling back to pure Python; install the 'numba' extra)")
    else:
        print(f"[numba] requested={'yes' if req else 'no'}  available={'yes' if av else 'no'}")


def print_set_summary(fracture_set: FractureSet, label: str = "set") -> None:
    psi = fracture_set.stress_shadow_volume()
    print(
        f"[{label}] strike={fracture_set.strike:.4g} rad  P32={fracture_set.total_density:.4g}"
        f"  psi={psi:.4g}  segments={len(fracture_set.segments)}"
    )
    for k, ds in enumerate(fracture_set.dip_sets):
        print(
            f"[{label}]   dipset {k}: W={_fmt_float(ds.stress_shadow_width, '{:.4g}')}"
            f"  P32={_fmt_float(ds.p32, '{:.4g}')}  clear_zone={_fmt_float(ds.clear_zone_volume, '{:.4f}')}"
            f"  stage={ds.stage.value}"
        )
