import os
import numpy as np
import pytest
from astropy.io import fits

from blob_processing.blobsampler import BlobRecord, blobs_from_dataframe
from blob_processing.compositor import render_frame
from blob_processing.simulation import run_syncom, simulate
from syncom.angularfield import build_angular_field
from syncom.errors import ConfigurationError
from syncom.fitsread import fits_read_blob_table, fits_read_cube
from syncom.metadatahandler import load_run_metadata
from syncom.syncommetadata import SyncomParameters


def _blobs():
    return (
        BlobRecord(20.0, 100.0, 0.0, 100.0, 1.5, 2.0),
        BlobRecord(5.0, 2000.0, 1.0, 40.0, 0.5, 3.0),
    )


def test_simulate_stacks_frames_in_time_order():
    blobs = _blobs()
    seen = []
    cube = simulate(blobs, 3, 8, 72, 48, frame_sink=lambda frame, t: seen.append(t))
    assert cube.shape == (72, 48, 5)
    assert seen == [3, 4, 5, 6, 7]
    for i, t in enumerate(range(3, 8)):
        assert np.allclose(cube[:, :, i], render_frame(blobs, t, 72, 48))


def test_simulate_passes_frames_to_sink():
    frames = {}
    cube = simulate(_blobs(), 0, 3, 36, 24, frame_sink=lambda f, t: frames.update({t: f}))
    assert sorted(frames) == [0, 1, 2]
    assert np.allclose(frames[2], cube[:, :, 2])


def test_simulate_rejects_empty_time_range():
    with pytest.raises(ConfigurationError):
        simulate(_blobs(), 5, 5, 36, 24)
    with pytest.raises(ConfigurationError):
        simulate(_blobs(), 0, 4, 36, 0)


def _small_params(**kwargs):
    defaults = dict(
        id="small",
        n_blobs=6,
        nx=90,
        ny=32,
        time0=0,
        time_t=4,
        use_sinusoidal_profile=True,
        seed=21,
        version="t1",
    )
    defaults.update(kwargs)
    return SyncomParameters(**defaults)


def test_run_syncom_writes_frames_cube_blobs_and_metadata(tmp_path):
    params = _small_params()
    out = str(tmp_path / "fits")
    meta_folder = str(tmp_path / "meta")
    field = build_angular_field(params)

    meta, cube, blobs = run_syncom(
        params, field, output_folder=out, meta_folder=meta_folder, run_id="run1"
    )

    assert cube.shape == (90, 32, 4)
    assert len(blobs) == 6
    assert len(meta.frame_files) == 4
    for filename in meta.frame_files:
        assert os.path.isfile(filename)
    assert meta.frame_files[0].endswith("syncom_t1_0000.fits")

    with fits.open(meta.frame_files[1]) as hdul:
        assert hdul[0].header["TINDEX"] == 1
        assert np.allclose(hdul[0].data, cube[:, :, 1], rtol=1e-6, atol=1e-6)

    saved_cube, header = fits_read_cube(meta.cube_file)
    assert saved_cube.shape == cube.shape
    assert header["VERSION"] == "t1"

    assert blobs_from_dataframe(fits_read_blob_table(meta.blob_file)) == blobs

    loaded = load_run_metadata("run1", meta_folder)
    assert loaded.seed == 21
    assert loaded.params_hash == params.get_hash()
    assert loaded.cube_file == meta.cube_file


def test_run_syncom_is_reproducible(tmp_path):
    params = _small_params()
    field = build_angular_field(params)
    _, cube_a, blobs_a = run_syncom(
        params, field, output_folder=str(tmp_path / "a"), save_frames=False,
        meta_folder=str(tmp_path / "meta"),
    )
    _, cube_b, blobs_b = run_syncom(
        params, field, output_folder=str(tmp_path / "b"), save_frames=False,
        meta_folder=str(tmp_path / "meta"),
    )
    assert blobs_a == blobs_b
    assert np.allclose(cube_a, cube_b)


def test_run_syncom_records_drawn_seed(tmp_path):
    params = _small_params(seed=None)
    meta, _, _ = run_syncom(
        params, None, output_folder=str(tmp_path / "fits"), save_frames=False,
        meta_folder=str(tmp_path / "meta"),
    )
    assert meta.seed is not None
    assert meta.frame_files == []


def test_drawn_seed_is_written_to_fits_headers(tmp_path):
    params = _small_params(seed=None)
    meta, _, _ = run_syncom(
        params, None, output_folder=str(tmp_path / "fits"),
        meta_folder=str(tmp_path / "meta"),
    )
    _, header = fits_read_cube(meta.cube_file)
    assert header["SEED"] == meta.seed
    with fits.open(meta.frame_files[0]) as hdul:
        assert hdul[0].header["SEED"] == meta.seed
