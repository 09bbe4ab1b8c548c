import numpy as np
import os
from scipy.io import readsav
from scipy.ndimage import gaussian_filter1d
from typing import Optional

from syncom.errors import ConfigurationError
from syncom.helper import read_from_csv, position_angle_deg
from syncom.syncommetadata import SyncomParameters


class AngularField:
    """
    Velocity (km/s) and period (s) sampled over position angle.

    Index i covers the angle i * 360 / len(field) degrees, so the default
    3600 samples are 0.1 degree apart. Arrays are read-only once built.
    """

    def __init__(self, velocity, period=None, default_period_s: float = 3600.0):
        velocity = np.array(velocity, dtype=float).ravel()
        if velocity.size == 0:
            raise ConfigurationError("Angular field has zero length")
        if period is None:
            if default_period_s <= 0:
                raise ConfigurationError("default_period_s must be positive")
            period = np.full(velocity.size, float(default_period_s))
        else:
            period = np.array(period, dtype=float).ravel()
        if period.size != velocity.size:
            raise ConfigurationError(
                f"Velocity ({velocity.size}) and period ({period.size}) fields differ in length"
            )
        if np.any(~np.isfinite(period)) or np.any(period <= 0):
            raise ConfigurationError("Every period in the angular field must be > 0")

        velocity.setflags(write=False)
        period.setflags(write=False)
        self.velocity = velocity
        self.period = period

    def __len__(self):
        return self.velocity.size

    def angles_deg(self):
        return position_angle_deg(np.arange(len(self)), len(self))

    def velocity_at(self, index):
        return self.velocity[np.mod(np.asarray(index, dtype=int), len(self))]

    def period_at(self, index):
        return self.period[np.mod(np.asarray(index, dtype=int), len(self))]

    def to_string(self):
        return f"""Angular field : \n
        Samples : {len(self)} \n
        Angle range (deg) : [{self.angles_deg()[0]:.2f}, {self.angles_deg()[-1]:.2f}] \n
        Velocity range (km/s) : ({self.velocity.min():.1f}, {self.velocity.max():.1f}) \n
        Period range (s) : ({self.period.min():.1f}, {self.period.max():.1f}) \n
        """


def frequency_to_period(frequency) -> np.ndarray:
    """Convert a frequency (Hz) to a period (s). Zero frequency maps to an infinite period."""
    frequency = np.asarray(frequency, dtype=float)
    with np.errstate(divide="ignore"):
        return 1.0 / frequency


def smooth_field(values, sigma: float) -> np.ndarray:
    """Gaussian smoothing along position angle, wrapping at 360 degrees."""
    values = np.asarray(values, dtype=float)
    if sigma is None or sigma <= 0:
        return values.copy()
    return gaussian_filter1d(values, sigma=sigma, mode="wrap")


def reorder_field(values, shift: int = 0, flip: bool = False) -> np.ndarray:
    """
    Put a field into the simulation's angular convention: optionally reverse the
    direction in which position angle increases, then roll by `shift` samples.
    """
    values = np.asarray(values, dtype=float)
    if flip:
        values = values[::-1]
    return np.roll(values, int(shift))


def sinusoidal_velocity(
    base_kms: float, amplitude_kms: float, angular_resolution: int = 3600
) -> np.ndarray:
    """velocity(angle) = base + amplitude * cos(2 pi angle / 180), angle in degrees."""
    angle = position_angle_deg(np.arange(angular_resolution), angular_resolution)
    return base_kms + amplitude_kms * np.cos(2 * np.pi * angle / 180.0)


def resample_field(values, angular_resolution: int) -> np.ndarray:
    """Periodic linear interpolation of a field onto `angular_resolution` samples."""
    values = np.asarray(values, dtype=float)
    if values.size == angular_resolution:
        return values
    src = np.arange(values.size) * (360.0 / values.size)
    dst = np.arange(angular_resolution) * (360.0 / angular_resolution)
    return np.interp(dst, src, values, period=360.0)


def build_angular_field(
    params: SyncomParameters,
    velocity=None,
    period=None,
    frequency=None,
) -> AngularField:
    """
    Build the field used by the blob sampler from the statistics dataset
    arrays (or the sinusoidal profile when the parameters ask for it).

    Parameters
    ----------
    params : SyncomParameters
        Smoothing, reordering, resolution and profile settings.
    velocity : array, optional
        Velocity per angular bin in km/s. Ignored for the sinusoidal profile.
    period : array, optional
        Period per angular bin in seconds.
    frequency : array, optional
        Frequency per angular bin in Hz, used when no period is given.
    """
    n = params.angular_resolution
    if params.use_sinusoidal_profile:
        v = sinusoidal_velocity(params.sine_base_kms, params.sine_amplitude_kms, n)
    else:
        if velocity is None:
            raise ConfigurationError(
                "A velocity field is required unless use_sinusoidal_profile is set"
            )
        v = np.asarray(velocity, dtype=float).ravel()
        if v.size == 0:
            raise ConfigurationError("Angular field has zero length")
        v = reorder_field(
            smooth_field(v, params.field_smoothing_sigma),
            params.field_shift,
            params.field_flip,
        )
        v = resample_field(v, n)

    if period is None and frequency is not None:
        period = frequency_to_period(frequency)

    if period is not None:
        p = np.asarray(period, dtype=float).ravel()
        if p.size == 0:
            raise ConfigurationError("Period field has zero length")
        p = reorder_field(
            smooth_field(p, params.field_smoothing_sigma),
            params.field_shift,
            params.field_flip,
        )
        p = resample_field(p, n)
    else:
        p = None

    return AngularField(v, p, default_period_s=params.default_period_s)


def load_angular_statistics(
    filename: str,
    velocity_key: str = "velocity",
    period_key: Optional[str] = "period",
    frequency_key: Optional[str] = "frequency",
):
    """
    Read the angular statistics dataset. Supports IDL save files (.sav), numpy
    archives (.npz) and CSV files with one row per angular bin.

    Returns (velocity, period, frequency); missing quantities are None.
    """
    assert os.path.isfile(filename), f"Angular statistics file {filename} does not exist"
    print(f"Reading angular statistics {filename}")
    ext = os.path.splitext(filename)[1].lower()

    if ext == ".sav":
        data = readsav(filename)
        keys = {k.lower(): k for k in data.keys()}

        def _get(key):
            if key is None or key.lower() not in keys:
                return None
            return np.asarray(data[keys[key.lower()]], dtype=float).ravel()

    elif ext == ".npz":
        with np.load(filename) as data:
            arrays = {k: np.asarray(data[k], dtype=float).ravel() for k in data.files}

        def _get(key):
            return arrays.get(key) if key is not None else None

    elif ext == ".csv":
        df = read_from_csv(filename)

        def _get(key):
            if key is None or key not in df.columns:
                return None
            return df[key].to_numpy(dtype=float)

    else:
        raise ValueError(f"Unsupported angular statistics format {ext}")

    velocity = _get(velocity_key)
    if velocity is None:
        raise ConfigurationError(
            f"Angular statistics file {filename} has no '{velocity_key}' column"
        )
    return velocity, _get(period_key), _get(frequency_key)
