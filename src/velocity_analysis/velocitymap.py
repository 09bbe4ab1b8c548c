import numpy as np
import pandas as pd
from pandas import DataFrame

from syncom.helper import position_angle_deg
from syncom.syncommetadata import VelocityParameters
from velocity_analysis.crosscorrelation import estimate_velocity_with_params


def cube_to_distance_time(cube: np.ndarray) -> np.ndarray:
    """(angle, radius, time) image cube -> (angle, time, radius) distance-time volume."""
    cube = np.asarray(cube)
    assert cube.ndim == 3, f"Expected a 3D image cube, got shape {cube.shape}"
    return np.transpose(cube, (0, 2, 1))


def compute_velocity_map(
    cube: np.ndarray, vp: VelocityParameters, angles=None
) -> DataFrame:
    """
    Run the cross-correlation velocity estimate over the angles of a SynCOM cube.

    Parameters
    ----------
    cube : np.ndarray
        (angle, radius, time) cube, as written by the simulation.
    vp : VelocityParameters
        Radii, lag window and conversion constants.
    angles : sequence of int, optional
        Angular pixel indices to analyse. All angles when None.

    Returns a DataFrame with one row per angle.
    """
    volume = cube_to_distance_time(cube)
    nx = volume.shape[0]
    if angles is None:
        angles = np.arange(nx)
    else:
        angles = np.asarray(angles, dtype=int)
    volume = volume[angles]

    velocities, lags = estimate_velocity_with_params(volume, vp, return_lags=True)

    return pd.DataFrame(
        {
            "angle_index": angles,
            "position_angle_deg": position_angle_deg(angles, nx),
            "peak_lag": lags,
            "velocity_kms": velocities,
        }
    )


def summarize_velocity_map(df: DataFrame) -> dict:
    """Summary of the finite velocities in a velocity map."""
    finite = df["velocity_kms"][np.isfinite(df["velocity_kms"])]
    return {
        "angles": int(len(df)),
        "finite": int(len(finite)),
        "mean_velocity_kms": float(finite.mean()) if len(finite) > 0 else np.nan,
        "median_velocity_kms": float(finite.median()) if len(finite) > 0 else np.nan,
    }
