#!/usr/bin/env python3
"""
run_transform.py – Four-point perspective transform estimation

Loads configuration from configs/default.yaml (or a user-specified file),
computes the homography for every transform defined in the config, reports
reprojection errors, and writes the matrices (plus optional diagnostic
figures) to the results directory.

Usage
-----
    python run_transform.py
    python run_transform.py --config configs/default.yaml
    python run_transform.py --transforms scale2x keystone
    python run_transform.py --normalize --verbose
    python run_transform.py --no-plot
"""

import argparse
import os
import sys
import time

import numpy as np
import yaml

# Ensure the project root is on the Python path when invoked directly
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from perspec.errors import HomographyError
from perspec.geometry.homography import compute_homography, reprojection_error
from perspec.geometry.normalization import compute_normalized_homography
from perspec.types import IDENTITY


# ──────────────────────────────────────────────────────────────────────────────
# Helpers
# ──────────────────────────────────────────────────────────────────────────────

def load_config(path: str) -> dict:
    with open(path, "r") as fh:
        return yaml.safe_load(fh)


def banner(text: str) -> None:
    width = 60
    print("\n" + "─" * width)
    print(f"  {text}")
    print("─" * width)


def format_matrix(H) -> str:
    rows = np.asarray(H, dtype=float).reshape(3, 3)
    return "\n".join("    [" + ", ".join(f"{v:>12.6f}" for v in row) + "]"
                     for row in rows)


def check_fallback(H, src, dst):
    """Tell an identity fallback apart from a genuine estimate.

    Returns
    -------
    fallback : bool
        True when *H* is the identity and does not reproduce *dst*.
    errors : np.ndarray or None
        Per-corner reprojection errors, or *None* for unusable corners.
    """
    try:
        errors = reprojection_error(H, src, dst)
    except HomographyError:
        return True, None
    # src == dst legitimately yields the identity
    return H == IDENTITY and not bool(np.all(errors < 1e-9)), errors


# ──────────────────────────────────────────────────────────────────────────────
# Per-transform estimation
# ──────────────────────────────────────────────────────────────────────────────

def run_transform(tf_cfg: dict, results_dir: str, normalize: bool,
                  plot: bool, verbose: bool) -> dict:
    """Estimate one configured transform and return summary metrics."""
    name = tf_cfg["name"]
    banner(f"Transform: {name}")

    src, dst = tf_cfg.get("src"), tf_cfg.get("dst")
    log = print if verbose else None
    estimate = compute_normalized_homography if normalize else compute_homography

    H = estimate(src, dst, log=log)
    fallback, errors = check_fallback(H, src, dst)
    print(format_matrix(H))

    metrics = {
        "name": name,
        "matrix": [float(v) for v in H],
        "fallback": fallback,
        "max_error": None,
    }

    if fallback:
        print("  Estimation failed – identity fallback returned")
        return metrics

    metrics["max_error"] = float(np.max(errors))
    print(f"  Max reprojection error: {metrics['max_error']:.3e}")

    if plot:
        # matplotlib is only loaded when figures are requested
        from perspec.utils.visualization import save_correspondence_plot
        path = save_correspondence_plot(src, dst, H, name, results_dir)
        print(f"  Saved figure → {path}")

    return metrics


# ──────────────────────────────────────────────────────────────────────────────
# Entry point
# ──────────────────────────────────────────────────────────────────────────────

def parse_args(argv=None):
    p = argparse.ArgumentParser(
        description="Four-point perspective transform estimation"
    )
    p.add_argument(
        "--config", default="configs/default.yaml",
        help="Path to YAML configuration file (default: configs/default.yaml)",
    )
    p.add_argument(
        "--transforms", nargs="*", default=None,
        help="Subset of transform names to process (default: all in config)",
    )
    p.add_argument(
        "--normalize", action="store_true",
        help="Solve in normalised coordinates (overrides the config)",
    )
    p.add_argument(
        "--verbose", action="store_true",
        help="Print a trace of every estimation stage",
    )
    p.add_argument(
        "--no-plot", action="store_true",
        help="Skip writing correspondence figures",
    )
    return p.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)

    if not os.path.exists(args.config):
        print(f"[ERROR] Config file not found: {args.config}")
        sys.exit(1)
    cfg = load_config(args.config)

    results_dir = cfg.get("results_dir", "results")
    transforms = cfg.get("transforms", [])
    normalize = args.normalize or bool(cfg.get("normalize", False))
    plot = (not args.no_plot
            and cfg.get("visualization", {}).get("enabled", True))

    if args.transforms:
        unknown = set(args.transforms) - {t["name"] for t in transforms}
        if unknown:
            print(f"[ERROR] No matching transforms found for: {sorted(unknown)}")
            sys.exit(1)
        transforms = [t for t in transforms if t["name"] in args.transforms]

    os.makedirs(results_dir, exist_ok=True)

    banner("Four-Point Perspective Transform")
    print(f"  Config    : {args.config}")
    print(f"  Transforms: {[t['name'] for t in transforms]}")
    print(f"  Normalize : {'enabled' if normalize else 'disabled'}")
    print(f"  Output    : {results_dir}/")

    t0 = time.time()
    all_metrics = [run_transform(tf, results_dir, normalize, plot, args.verbose)
                   for tf in transforms]

    # ── Summary table ──────────────────────────────────────────────────────
    banner("Results Summary")
    header = f"{'Transform':<14} {'Status':>10} {'Max error':>12}"
    print(header)
    print("─" * len(header))
    for m in all_metrics:
        status = "fallback" if m["fallback"] else "ok"
        err = f"{m['max_error']:.3e}" if m["max_error"] is not None else "–"
        print(f"{m['name']:<14} {status:>10} {err:>12}")

    out_path = os.path.join(results_dir, "homographies.yaml")
    with open(out_path, "w") as fh:
        yaml.safe_dump({m["name"]: {"matrix": m["matrix"],
                                    "fallback": m["fallback"]}
                        for m in all_metrics}, fh, sort_keys=False)

    elapsed = time.time() - t0
    print(f"\nDone in {elapsed:.2f}s")
    print(f"Matrices saved to: {os.path.abspath(out_path)}")
    return all_metrics


if __name__ == "__main__":
    main()
