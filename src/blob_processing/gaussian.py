import numpy as np


def gaussian_1d(nx: int, mean: float, stddev: float) -> np.ndarray:
    """exp(-(x - mean)^2 / (2 stddev^2)) for x = 0 .. nx-1. Requires stddev > 0."""
    x = np.arange(nx, dtype=float)
    return np.exp(-((x - mean) ** 2) / (2.0 * stddev**2))


def gaussian_2d(nx: int, ny: int, mean, stddev) -> np.ndarray:
    """
    Separable 2D Gaussian of shape (nx, ny).

    The x (angular) profile is built around nx // 2 and then rolled onto mean[0],
    so a blob near the angular boundary wraps around to the other side. The y
    (radial) profile is evaluated directly at mean[1] and does not wrap.

    Parameters
    ----------
    nx, ny : int
        Angular and radial pixel counts.
    mean : (float, float)
        Peak position (angular pixel, radial pixel).
    stddev : (float, float)
        Standard deviation along each axis, both > 0.
    """
    mean_x, mean_y = float(mean[0]), float(mean[1])
    sd_x, sd_y = float(stddev[0]), float(stddev[1])

    whole = int(np.floor(mean_x))
    # The fraction stays in the profile, the integer part goes into the roll
    gx = gaussian_1d(nx, nx // 2 + (mean_x - whole), sd_x)
    gy = gaussian_1d(ny, mean_y, sd_y)

    g = np.outer(gx, gy)
    return np.roll(g, whole - nx // 2, axis=0)
