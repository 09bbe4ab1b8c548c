import numpy as np

from blob_processing.gaussian import gaussian_2d
from syncom.errors import ConfigurationError

DEFAULT_RECURRENCE = (2, 4)


def _pixels(shift) -> int:
    # Shifts are whole pixels, truncated toward zero
    return int(np.trunc(shift))


def blob_radius_at(blob, t: float, time_offset: float = 0.0) -> float:
    """Radial distance (px) the blob has been advected by at simulation time t."""
    elapsed = t + time_offset + blob.launch_time
    return blob.velocity * elapsed + 0.5 * blob.acceleration * elapsed**2


def recurrence_shifts(blob, recurrence=DEFAULT_RECURRENCE) -> list:
    """
    Angular displacement (px) of each repeated launch: k * period * velocity + k * size
    for k in +/- recurrence.
    """
    shifts = []
    for k in recurrence:
        for signed in (k, -k):
            shifts.append(
                _pixels(signed * blob.period * blob.velocity + signed * blob.size)
            )
    return shifts


def render_blob(
    blob,
    nx: int,
    ny: int,
    angular_resolution: int = 3600,
    recurrence=DEFAULT_RECURRENCE,
) -> np.ndarray:
    """The blob kernel with its recurring copies, before radial advection."""
    psi = blob.angular_position * nx / angular_resolution
    kernel = gaussian_2d(nx, ny, (psi, blob.launch_radius), (blob.size, 2 * blob.size))

    composite = kernel.copy()
    for shift in recurrence_shifts(blob, recurrence):
        composite += np.roll(kernel, shift, axis=0)
    return composite


def render_frame(
    blobs,
    t: float,
    nx: int,
    ny: int,
    time_offset: float = 0.0,
    recurrence=DEFAULT_RECURRENCE,
    angular_resolution: int = 3600,
) -> np.ndarray:
    """
    Render one (nx, ny) frame at simulation time t by adding up every blob, each
    rolled radially to where it has travelled by time t. Values are not normalised.
    """
    if nx <= 0 or ny <= 0:
        raise ConfigurationError(f"Grid dimensions must be positive, was ({nx}, {ny})")

    frame = np.zeros((nx, ny), dtype=float)
    for blob in blobs:
        if not blob.size > 0:
            raise ConfigurationError(f"Blob size must be > 0, was {blob.size}")
        if not blob.period > 0:
            raise ConfigurationError(f"Blob period must be > 0, was {blob.period}")

        composite = render_blob(blob, nx, ny, angular_resolution, recurrence)
        radius = blob_radius_at(blob, t, time_offset)
        frame += np.roll(composite, _pixels(radius), axis=1)
    return frame
