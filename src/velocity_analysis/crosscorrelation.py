import numpy as np
from typing import Optional

from syncom.errors import BoundsError, ConfigurationError
from syncom.helper import moving_average_edge_truncated
from syncom.syncommetadata import VelocityParameters

FINE_LAG_STEP = 0.01
PEAK_HALF_WINDOW = 2


def radial_index(r_rsun: float, pixels_per_rsun: float) -> int:
    return int(round(r_rsun * pixels_per_rsun))


def lag_range(max_lag: int) -> np.ndarray:
    half = int(max_lag) // 2
    return np.arange(-half, half + 1)


def detrend(series, time_scale: int) -> np.ndarray:
    """Remove the slow component: series minus its edge-truncated moving average."""
    series = np.asarray(series, dtype=float)
    return series - moving_average_edge_truncated(series, time_scale)


def cross_correlate(x, y, lags) -> np.ndarray:
    """
    Normalised cross-correlation of y against x at each lag. A positive lag means
    y trails x. Sums run over the overlapping samples and are normalised by the
    full-series variances. A constant series gives NaN.
    """
    x = np.asarray(x, dtype=float)
    y = np.asarray(y, dtype=float)
    assert x.shape == y.shape, f"Series lengths differ: {x.shape} vs {y.shape}"
    n = x.size
    x = x - x.mean()
    y = y - y.mean()

    corr = np.empty(len(lags), dtype=float)
    for i, lag in enumerate(lags):
        lag = int(lag)
        if lag >= 0:
            corr[i] = np.sum(x[: n - lag] * y[lag:])
        else:
            corr[i] = np.sum(x[-lag:] * y[: n + lag])

    with np.errstate(divide="ignore", invalid="ignore"):
        return corr / np.sqrt(np.sum(x**2) * np.sum(y**2))


def refine_peak(corr, lags, peak: int, poly_order: int) -> float:
    """
    Fit a polynomial of `poly_order` through the five samples around the peak and
    return the lag at the fitted maximum, searched on a 0.01-lag grid.
    """
    window = slice(peak - PEAK_HALF_WINDOW, peak + PEAK_HALF_WINDOW + 1)
    window_lags = np.asarray(lags[window], dtype=float)
    window_corr = np.asarray(corr[window], dtype=float)
    if not np.all(np.isfinite(window_corr)):
        return np.nan

    coeffs = np.polyfit(window_lags, window_corr, poly_order)
    fine = np.arange(
        window_lags[0], window_lags[-1] + FINE_LAG_STEP / 2, FINE_LAG_STEP
    )
    fitted = np.polyval(coeffs, fine)
    if not np.all(np.isfinite(fitted)):
        return np.nan
    return float(fine[np.argmax(fitted)])


def find_peak_lag(corr, lags, poly_order: Optional[int] = None) -> float:
    """
    Lag of the correlation maximum. With a polynomial order the peak is refined,
    unless it sits within two samples of either end of the lag range, in which
    case the integer lag is kept.
    """
    corr = np.asarray(corr, dtype=float)
    if corr.size == 0 or np.all(np.isnan(corr)):
        return np.nan
    peak = int(np.nanargmax(corr))

    if (
        poly_order is not None
        and PEAK_HALF_WINDOW <= peak <= len(lags) - 1 - PEAK_HALF_WINDOW
    ):
        return refine_peak(corr, lags, peak, poly_order)
    return float(lags[peak])


def lag_to_velocity(
    lag,
    r1_rsun: float,
    r2_rsun: float,
    pixels_per_rsun: float,
    km_per_pixel: float,
    time_cadence_s: float,
):
    """
    Velocity in km/s for a feature travelling from r1 to r2 in `lag` frames. A zero
    lag gives an infinite (or NaN) velocity, which is left for the caller to filter.
    """
    distance_km = np.float64(r2_rsun - r1_rsun) * pixels_per_rsun * km_per_pixel
    with np.errstate(divide="ignore", invalid="ignore"):
        return distance_km / (np.float64(lag) * time_cadence_s)


def estimate_peak_lag(
    profile1,
    profile2,
    max_lag: int,
    poly_order: Optional[int] = None,
    time_scale: Optional[int] = None,
):
    """
    Returns (peak_lag, lags, correlation) for two time series taken at the inner
    (profile1) and outer (profile2) radius.
    """
    profile1 = np.asarray(profile1, dtype=float)
    profile2 = np.asarray(profile2, dtype=float)
    if max_lag is None or max_lag < 0:
        raise BoundsError(f"max_lag must be >= 0, was {max_lag}")
    if int(max_lag) // 2 >= profile1.size:
        raise BoundsError(
            f"Lag window +/-{int(max_lag) // 2} does not fit in {profile1.size} time samples"
        )
    if poly_order is not None and poly_order < 1:
        raise ConfigurationError(f"poly_order must be at least 1, was {poly_order}")
    if time_scale is not None and time_scale < 1:
        raise ConfigurationError(f"time_scale must be at least 1, was {time_scale}")

    if time_scale is not None:
        profile1 = detrend(profile1, time_scale)
        profile2 = detrend(profile2, time_scale)

    lags = lag_range(max_lag)
    corr = cross_correlate(profile1, profile2, lags)
    return find_peak_lag(corr, lags, poly_order), lags, corr


def estimate_velocity(
    data,
    r1: float,
    r2: float,
    max_lag: int,
    poly_order: Optional[int] = None,
    time_scale: Optional[int] = None,
    time_cadence_s: float = 300.0,
    pixel_size_rsun: float = 0.014,
    rsun_km: float = 696000.0,
    pixels_per_rsun: Optional[float] = None,
    return_lags: bool = False,
):
    """
    Propagation velocity (km/s) for every angle of a distance-time volume.

    Parameters
    ----------
    data : array
        (angle, time, radius) volume, or (time, radius) for a single angle.
    r1, r2 : float
        Inner and outer radius in solar radii. Radial index = round(r * pixels_per_rsun).
    max_lag : int
        Total lag span, lags run over [-max_lag // 2, max_lag // 2].
    poly_order : int, optional
        Polynomial order for sub-sample peak refinement. None keeps integer lags.
    time_scale : int, optional
        Moving-average window (frames) subtracted from both series. None skips it.
    time_cadence_s, pixel_size_rsun, rsun_km : float
        Frame cadence and plate scale used to convert lags to km/s.
    pixels_per_rsun : float, optional
        Radial pixels per solar radius, 1 / pixel_size_rsun when not given.
    return_lags : bool
        Also return the peak lag per angle.
    """
    data = np.asarray(data, dtype=float)
    if data.ndim == 2:
        data = data[np.newaxis, :, :]
    if data.ndim != 3:
        raise ConfigurationError(
            f"Expected a (time, radius) or (angle, time, radius) volume, got shape {data.shape}"
        )

    if pixels_per_rsun is None:
        pixels_per_rsun = 1.0 / pixel_size_rsun
    km_per_pixel = rsun_km * pixel_size_rsun

    n_angles, n_time, n_radius = data.shape
    i1 = radial_index(r1, pixels_per_rsun)
    i2 = radial_index(r2, pixels_per_rsun)
    for r, idx in ((r1, i1), (r2, i2)):
        if idx < 0 or idx >= n_radius:
            raise BoundsError(
                f"Radius {r} Rsun maps to index {idx}, outside the {n_radius} radial samples"
            )

    velocities = np.empty(n_angles, dtype=float)
    peak_lags = np.empty(n_angles, dtype=float)
    for a in range(n_angles):
        lag, _, _ = estimate_peak_lag(
            data[a, :, i1],
            data[a, :, i2],
            max_lag,
            poly_order=poly_order,
            time_scale=time_scale,
        )
        peak_lags[a] = lag
        velocities[a] = lag_to_velocity(
            lag, r1, r2, pixels_per_rsun, km_per_pixel, time_cadence_s
        )

    if return_lags:
        return velocities, peak_lags
    return velocities


def estimate_velocity_with_params(
    data, vp: VelocityParameters, return_lags: bool = False
):
    return estimate_velocity(
        data,
        vp.r1_rsun,
        vp.r2_rsun,
        vp.max_lag,
        poly_order=vp.poly_order,
        time_scale=vp.detrend_time_scale,
        time_cadence_s=vp.time_cadence_s,
        pixel_size_rsun=vp.pixel_size_rsun,
        rsun_km=vp.rsun_km,
        pixels_per_rsun=vp.get_pixels_per_rsun(),
        return_lags=return_lags,
    )
