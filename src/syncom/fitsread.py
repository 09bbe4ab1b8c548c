import numpy as np
from astropy.io import fits
from astropy.table import Table
import os
from pandas import DataFrame

from syncom.helper import ensure_path_exists
from syncom.syncommetadata import SyncomParameters


def fits_file_exists(filename):
    filename = str.replace(filename, "//", "/")

    file_exists = os.path.isfile(filename)

    return file_exists


def get_frame_filename(folder: str, version: str, t: int) -> str:
    return os.path.join(folder, f"syncom_{version}_{int(t):04d}.fits")


def get_cube_filename(folder: str, version: str) -> str:
    return os.path.join(folder, f"syncom_{version}_cube.fits")


def get_blob_filename(folder: str, version: str) -> str:
    return os.path.join(folder, f"syncom_{version}_blobs.fits")


def _params_header(params: SyncomParameters = None, seed: int = None) -> fits.Header:
    header = fits.Header()
    if params is None:
        return header
    if seed is None:
        seed = params.seed
    header["SYNCOMID"] = (params.id, "SynCOM parameter set")
    header["VERSION"] = (params.version, "SynCOM version label")
    header["NBLOBS"] = (params.n_blobs, "Number of blobs")
    header["CADENCE"] = (params.time_cadence_s, "Time cadence [s]")
    header["PIXSIZE"] = (params.pixel_size_rsun, "Pixel size [Rsun]")
    header["RSUNKM"] = (params.rsun_km, "Solar radius [km]")
    header["ANGRES"] = (params.angular_resolution, "Angular field samples")
    if seed is not None:
        header["SEED"] = (int(seed), "Random seed")
    return header


def fits_save_frame(
    frame: np.ndarray,
    t: int,
    folder: str,
    params: SyncomParameters = None,
    version: str = None,
    seed: int = None,
) -> str:
    """
    Save one (angle, radius) frame as a FITS image named by version label and time index.
    """
    if version is None:
        version = params.version if params is not None else "v1"
    ensure_path_exists(folder)
    filename = get_frame_filename(folder, version, t)

    header = _params_header(params, seed)
    header["TINDEX"] = (int(t), "Simulation time index")
    try:
        fits.PrimaryHDU(data=np.asarray(frame, dtype=np.float32), header=header).writeto(
            filename, overwrite=True
        )
    except Exception as e:
        raise Exception(f"Error saving SynCOM frame {filename}") from e
    return filename


def fits_save_cube(
    cube: np.ndarray,
    folder: str,
    params: SyncomParameters = None,
    version: str = None,
    time0: int = 0,
    seed: int = None,
) -> str:
    """
    Save the full (angle, radius, time) image cube as a single FITS image.
    """
    if version is None:
        version = params.version if params is not None else "v1"
    ensure_path_exists(folder)
    filename = get_cube_filename(folder, version)
    print(f"Saving SynCOM cube {cube.shape} to {filename}")

    header = _params_header(params, seed)
    header["TIME0"] = (int(time0), "First simulation time index")
    try:
        fits.PrimaryHDU(data=np.asarray(cube, dtype=np.float32), header=header).writeto(
            filename, overwrite=True
        )
    except Exception as e:
        raise Exception(f"Error saving SynCOM cube {filename}") from e
    return filename


def fits_read_cube(filename: str) -> tuple[np.ndarray, fits.Header]:
    assert fits_file_exists(filename), f"FITS file {filename} does not exist!"
    print(f"Reading cube {filename}")
    with fits.open(filename) as hdul:
        data = np.array(hdul[0].data, dtype=float)
        header = hdul[0].header.copy()
    return data, header


def fits_save_blob_table(blobs: DataFrame, filename: str) -> str:
    """
    Save the blob parameter table as a FITS binary table.
    """
    assert len(blobs) > 0, "Blob DataFrame is empty"
    folder = os.path.dirname(filename)
    if folder:
        ensure_path_exists(folder)
    print(f"Saving {len(blobs)} blobs to {filename}")
    try:
        table = Table.from_pandas(blobs)
        table.write(filename, format="fits", overwrite=True)
    except Exception as e:
        raise Exception(f"Error saving blob table {filename}") from e
    return filename


def fits_read_blob_table(filename: str) -> DataFrame:
    assert fits_file_exists(filename), f"FITS file {filename} does not exist!"
    table = Table.read(filename, format="fits")
    return table.to_pandas()
