import numpy as np
import uuid
from typing import Callable, Optional

from blob_processing.blobsampler import blobs_to_dataframe, sample_blobs
from blob_processing.compositor import DEFAULT_RECURRENCE, render_frame
from syncom.angularfield import AngularField
from syncom.errors import ConfigurationError
from syncom.fitsread import (
    fits_save_blob_table,
    fits_save_cube,
    fits_save_frame,
    get_blob_filename,
)
from syncom.metadatahandler import META_FOLDER, save_run_metadata
from syncom.syncommetadata import SyncomParameters, SyncomRunMetadata


def simulate(
    blobs,
    time0: int,
    time_t: int,
    nx: int,
    ny: int,
    time_offset: float = 0.0,
    recurrence=DEFAULT_RECURRENCE,
    angular_resolution: int = 3600,
    frame_sink: Optional[Callable[[np.ndarray, int], None]] = None,
) -> np.ndarray:
    """
    Render the frames for t = time0 .. time_t-1, in order, into an
    (nx, ny, time_t - time0) cube. frame_sink(frame, t) is called after each frame.
    """
    if time_t <= time0:
        raise ConfigurationError(
            f"time_t ({time_t}) must be larger than time0 ({time0})"
        )
    if nx <= 0 or ny <= 0:
        raise ConfigurationError(f"Grid dimensions must be positive, was ({nx}, {ny})")

    cube = np.zeros((nx, ny, time_t - time0), dtype=float)
    for i, t in enumerate(range(time0, time_t)):
        frame = render_frame(
            blobs,
            t,
            nx,
            ny,
            time_offset=time_offset,
            recurrence=recurrence,
            angular_resolution=angular_resolution,
        )
        cube[:, :, i] = frame
        if frame_sink is not None:
            frame_sink(frame, t)
    return cube


def run_syncom(
    params: SyncomParameters,
    field: Optional[AngularField],
    output_folder: str = None,
    save_frames: bool = True,
    meta_folder: str = META_FOLDER,
    run_id: str = None,
) -> tuple[SyncomRunMetadata, np.ndarray, tuple]:
    """
    Full SynCOM run: sample the blobs, render every frame, write the frames, the
    cube and the blob table to FITS and record the run metadata.
    """
    assert params is not None, "SynCOM parameters cannot be None"
    folder = output_folder if output_folder is not None else params.output_folder

    # Without a configured seed, draw one so the run can be reproduced from its metadata
    seed = params.seed
    if seed is None:
        seed = int(np.random.SeedSequence().generate_state(1)[0])
    rng = np.random.default_rng(seed)

    if run_id is None:
        run_id = f"{params.id}_{params.version}_{str(uuid.uuid4())[:8]}"

    print(
        f"{run_id}: sampling {params.n_blobs} blobs on a {params.nx}x{params.ny} grid (seed {seed})"
    )
    blobs = sample_blobs(params.n_blobs, field, params, rng=rng)

    meta = SyncomRunMetadata(
        id=run_id,
        params_id=params.id,
        params_hash=params.get_hash(),
        seed=seed,
        time0=params.time0,
        time_t=params.time_t,
        n_blobs=len(blobs),
    )
    meta.blob_file = fits_save_blob_table(
        blobs_to_dataframe(blobs), get_blob_filename(folder, params.version)
    )

    n_frames = params.time_t - params.time0

    def _sink(frame, t):
        if save_frames:
            meta.frame_files.append(fits_save_frame(frame, t, folder, params, seed=seed))
        done = t - params.time0 + 1
        if done % 10 == 0 or done == n_frames:
            print(f"{run_id}: rendered frame {done} / {n_frames}")

    cube = simulate(
        blobs,
        params.time0,
        params.time_t,
        params.nx,
        params.ny,
        time_offset=params.time_offset,
        recurrence=params.recurrence,
        angular_resolution=len(field) if field is not None else params.angular_resolution,
        frame_sink=_sink,
    )

    meta.cube_file = fits_save_cube(cube, folder, params, time0=params.time0, seed=seed)
    save_run_metadata(meta, meta_folder)
    return meta, cube, blobs
