import numpy as np
import pandas as pd
from pandas import DataFrame
import csv
import os


def ensure_path_exists(path: str):
    try:
        if os.path.isdir(path):
            return True
        else:
            os.makedirs(path, exist_ok=True)
            return True

    except Exception as e:
        print(f"Failed to create {path}")
        raise Exception(f"Error creating folder {path}", repr(e))


def position_angle_deg(angle_index, angular_resolution: int = 3600):
    """Convert an index into the angular field to a position angle in degrees."""
    return np.asarray(angle_index) * (360.0 / angular_resolution)


def angle_index_from_deg(angle_deg, angular_resolution: int = 3600):
    """Convert degrees to the (truncated) index of the angular field, wrapping at 360."""
    idx = np.floor(np.asarray(angle_deg) * angular_resolution / 360.0).astype(int)
    return np.mod(idx, angular_resolution)


def moving_average_edge_truncated(series, window: int) -> np.ndarray:
    """
    Centred moving average whose window shrinks near the ends of the series
    instead of wrapping or padding.
    """
    assert window >= 1, f"Moving average window must be >= 1, was {window}"
    return (
        pd.Series(np.asarray(series, dtype=float))
        .rolling(window=int(window), center=True, min_periods=1)
        .mean()
        .to_numpy()
    )


def read_from_csv(filename) -> DataFrame:
    assert os.path.isfile(filename), f"CSV file {filename} does not exist"
    return pd.read_csv(filename)


def write_result_to_csv(result: dict, filename):
    """
    Append a result dict to a CSV file.
    Creates the file with headers if it doesn't exist.
    """
    file_exists = os.path.isfile(filename)

    with open(filename, mode="a", newline="") as f:
        writer = csv.DictWriter(f, fieldnames=result.keys())
        if not file_exists:
            writer.writeheader()
        writer.writerow(result)
