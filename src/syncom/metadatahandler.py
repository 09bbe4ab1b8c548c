import json
from syncom.syncommetadata import (
    NpEncoder,
    SyncomParameters,
    SyncomRunMetadata,
    VelocityParameters,
)
from syncom.helper import ensure_path_exists
import os

META_FOLDER = "meta_files"


def save_syncom_params(metadata: SyncomParameters, folder: str = META_FOLDER) -> str:
    """
    Serialize the SyncomParameters object to JSON and write it to a file.
    """
    ensure_path_exists(os.path.join(folder, "syncom"))
    path = os.path.join(folder, "syncom", f"{metadata.id}.json")

    with open(path, "w") as f:
        # Write the dictionary in a human-readable (pretty-printed) way
        json.dump(metadata.dict(), f, indent=4, cls=NpEncoder)

    print(f"Saved SynCOM parameters : {path}")
    return path


def load_syncom_params(id: str, folder: str = META_FOLDER) -> SyncomParameters:
    """
    Read JSON data from a file and reconstruct a SyncomParameters object.
    Returns None if no parameter file exists for the id.
    """
    assert id is not None, "Cannot load SynCOM parameters for id None"
    path = os.path.join(folder, "syncom", f"{id}.json")
    if not os.path.isfile(path):
        return None
    print(f"Loading SynCOM parameters {path}")
    with open(path, "r") as f:
        data = json.load(f)

    # Older files may predate some of the fields
    if "acceleration" not in data:
        data["acceleration"] = 0.0
    if "time_offset" not in data:
        data["time_offset"] = 0.0
    if "recurrence" not in data or data["recurrence"] is None:
        data["recurrence"] = (2, 4)
    if "field_flip" not in data:
        data["field_flip"] = False
    if "field_shift" not in data:
        data["field_shift"] = 0
    if "version" not in data:
        data["version"] = "v1"

    known = SyncomParameters.__dataclass_fields__.keys()
    params = SyncomParameters(**{k: v for k, v in data.items() if k in known})
    assert params.id == id, "What - the file and internal id has diverged"
    return params


def save_velocity_params(
    metadata: VelocityParameters, folder: str = META_FOLDER
) -> str:
    """
    Serialize the VelocityParameters object to JSON and write it to a file.
    """
    ensure_path_exists(os.path.join(folder, "velocity"))
    path = os.path.join(folder, "velocity", f"{metadata.id}.json")

    with open(path, "w") as f:
        json.dump(metadata.dict(), f, indent=4, cls=NpEncoder)

    print(f"Saved velocity parameters : {path}")
    return path


def load_velocity_params(id: str, folder: str = META_FOLDER) -> VelocityParameters:
    assert id is not None, "Cannot load velocity parameters for id None"
    path = os.path.join(folder, "velocity", f"{id}.json")
    if not os.path.isfile(path):
        return None
    print(f"Loading velocity parameters {path}")
    with open(path, "r") as f:
        data = json.load(f)

    metadata = VelocityParameters(
        id=data["id"],
        r1_rsun=data["r1_rsun"],
        r2_rsun=data["r2_rsun"],
        max_lag=data["max_lag"],
        poly_order=data.get("poly_order", None),
        detrend_time_scale=data.get("detrend_time_scale", None),
        time_cadence_s=data.get("time_cadence_s", 300.0),
        pixel_size_rsun=data.get("pixel_size_rsun", 0.014),
        rsun_km=data.get("rsun_km", 696000.0),
        pixels_per_rsun=data.get("pixels_per_rsun", None),
    )
    assert metadata.id == id, "What - the file and internal id has diverged"
    return metadata


def save_run_metadata(meta: SyncomRunMetadata, folder: str = META_FOLDER) -> str:
    ensure_path_exists(os.path.join(folder, "runs"))
    path = os.path.join(folder, "runs", f"{meta.id}.json")

    with open(path, "w") as f:
        json.dump(meta.dict(), f, indent=4, cls=NpEncoder)
    print(f"Saved run metadata : {path}")
    return path


def load_run_metadata(id: str, folder: str = META_FOLDER) -> SyncomRunMetadata:
    assert id is not None, "Cannot load run metadata for id None"
    path = os.path.join(folder, "runs", f"{id}.json")
    if not os.path.isfile(path):
        print(f"File {path} was not on disk!")
        return None
    with open(path, "r") as f:
        data = json.load(f)

    return SyncomRunMetadata(
        id=data["id"],
        params_id=data["params_id"],
        params_hash=data["params_hash"],
        seed=data["seed"],
        time0=data["time0"],
        time_t=data["time_t"],
        n_blobs=data["n_blobs"],
        cube_file=data.get("cube_file", None),
        blob_file=data.get("blob_file", None),
        frame_files=data.get("frame_files", []),
    )
