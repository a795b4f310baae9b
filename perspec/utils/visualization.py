"""
Diagnostic figures for corner correspondences.

Figures are written to disk rather than displayed, so the module works in
headless environments.
"""

import os
import numpy as np
import matplotlib
matplotlib.use("Agg")          # non-interactive backend
import matplotlib.pyplot as plt

from perspec.geometry.homography import CORNER_NAMES, apply_homography
from perspec.types import as_corners


def _closed(points: np.ndarray) -> np.ndarray:
    return np.vstack([points, points[:1]])


def save_correspondence_plot(src, dst, H, name: str, out_dir: str) -> str:
    """Save source quad, destination quad and projected source corners.

    A good estimate puts every projected marker on its destination corner.

    Parameters
    ----------
    src, dst : Corners or sequence of four (x, y) pairs
        Corner sets the homography was computed from.
    H : Matrix3x3 or np.ndarray
        The estimated homography.
    name : str
        Transform name; used for the title and the output subdirectory.
    out_dir : str
        Root output directory.

    Returns
    -------
    str
        Path of the written image.
    """
    src_pts = np.asarray(as_corners(src), dtype=float)
    dst_pts = np.asarray(as_corners(dst), dtype=float)
    projected = apply_homography(H, src_pts)

    fig, ax = plt.subplots(figsize=(7, 7))
    ax.plot(*_closed(src_pts).T, "b-", linewidth=1.5, label="source")
    ax.plot(*_closed(dst_pts).T, "g-", linewidth=1.5, label="destination")
    ax.plot(projected[:, 0], projected[:, 1], "r+", markersize=12,
            markeredgewidth=2, label="H · source")

    for label, (x, y) in zip(CORNER_NAMES, dst_pts):
        ax.annotate(label, (x, y), textcoords="offset points", xytext=(4, 4))

    ax.set_title(f"{name} – corner correspondence")
    ax.set_aspect("equal")
    ax.invert_yaxis()          # image convention: y grows downwards
    ax.legend(loc="best")

    os.makedirs(os.path.join(out_dir, name), exist_ok=True)
    path = os.path.join(out_dir, name, "correspondence.png")
    plt.savefig(path, dpi=120, bbox_inches="tight")
    plt.close(fig)
    return path
