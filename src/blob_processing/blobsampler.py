from dataclasses import dataclass, asdict
import numpy as np
import pandas as pd
from pandas import DataFrame
from typing import Optional

from syncom.angularfield import AngularField, sinusoidal_velocity
from syncom.errors import ConfigurationError
from syncom.helper import angle_index_from_deg
from syncom.syncommetadata import SyncomParameters


@dataclass(frozen=True)
class BlobRecord:
    launch_radius: float  # px
    angular_position: float  # Index into the angular field (tenths of a degree by default)
    launch_time: float  # s
    period: float  # s
    velocity: float  # px / frame
    size: float  # deg
    velocity_kms: float = float("nan")
    acceleration: float = 0.0  # px / frame^2

    def dict(self):
        return {k: v for k, v in asdict(self).items()}


def assign_launch_times(velocities) -> np.ndarray:
    """
    Launch times for blobs already sorted by descending velocity. A blob whose
    integer-truncated velocity equals its predecessor's joins the predecessor's
    launch; otherwise the counter moves on by one. The first blob opens launch 0.
    """
    launch_times = np.zeros(len(velocities), dtype=float)
    counter = 0
    previous = None
    for i, v in enumerate(velocities):
        truncated = int(v)
        if previous is not None and truncated != previous:
            counter += 1
        launch_times[i] = counter
        previous = truncated
    return launch_times


def sample_blobs(
    n_blobs: int,
    field: Optional[AngularField],
    params: SyncomParameters,
    rng: Optional[np.random.Generator] = None,
) -> tuple:
    """
    Draw the parameters of every blob in a run.

    Launch radius, position angle and size are drawn from independent streams
    spawned from `rng` (or from params.seed when no generator is given). Velocity
    and period are read from the angular field at each blob's position angle.

    Returns a tuple of BlobRecord ordered by descending velocity.
    """
    if n_blobs is None or n_blobs <= 0:
        raise ConfigurationError(f"n_blobs must be positive, was {n_blobs}")
    if params.use_sinusoidal_profile:
        # The profile replaces the field's velocity, its period is kept
        n = len(field) if field is not None else params.angular_resolution
        field = AngularField(
            sinusoidal_velocity(params.sine_base_kms, params.sine_amplitude_kms, n),
            period=field.period if field is not None else None,
            default_period_s=params.default_period_s,
        )
    elif field is None:
        raise ConfigurationError(
            "An angular field is required unless use_sinusoidal_profile is set"
        )
    if len(field) == 0:
        raise ConfigurationError("Angular field has zero length")

    if rng is None:
        rng = np.random.default_rng(params.seed)
    radius_rng, angle_rng, size_rng = rng.spawn(3)

    initial_radius = params.get_initial_radius_pixels()
    if initial_radius is None:
        radii = radius_rng.uniform(0, params.ny, n_blobs)
    else:
        radii = np.full(n_blobs, float(initial_radius))

    angle_deg = angle_rng.uniform(0.0, 360.0, n_blobs)
    psi = angle_index_from_deg(angle_deg, len(field))

    sizes = (
        size_rng.uniform(params.size_min_deg, params.size_max_deg, n_blobs)
        * params.blob_size_scale
    )

    velocity_kms = field.velocity_at(psi)
    velocity = params.kms_to_pixels_per_frame(velocity_kms)
    period = field.period_at(psi)
    if not np.all(np.isfinite(velocity)):
        raise ConfigurationError("The angular field gave a non-finite velocity")

    order = np.argsort(-velocity, kind="stable")
    launch_times = assign_launch_times(velocity[order])

    return tuple(
        BlobRecord(
            launch_radius=float(radii[i]),
            angular_position=float(psi[i]),
            launch_time=float(launch),
            period=float(period[i]),
            velocity=float(velocity[i]),
            size=float(sizes[i]),
            velocity_kms=float(velocity_kms[i]),
            acceleration=float(params.acceleration),
        )
        for i, launch in zip(order, launch_times)
    )


def blobs_to_dataframe(blobs) -> DataFrame:
    columns = list(BlobRecord.__dataclass_fields__.keys())
    return pd.DataFrame([b.dict() for b in blobs], columns=columns)


def blobs_from_dataframe(df: DataFrame) -> tuple:
    known = BlobRecord.__dataclass_fields__.keys()
    return tuple(
        BlobRecord(**{k: float(v) for k, v in row.items() if k in known})
        for row in df.to_dict(orient="records")
    )
