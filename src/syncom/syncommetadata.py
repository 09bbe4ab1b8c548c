from dataclasses import dataclass, asdict, field
import json
import numpy as np
import hashlib
from typing import Optional

from syncom.errors import ConfigurationError


class NpEncoder(json.JSONEncoder):
    def default(self, obj):
        if isinstance(obj, np.integer):
            return int(obj)
        if isinstance(obj, np.floating):
            return float(obj)
        if isinstance(obj, np.ndarray):
            return obj.tolist()
        return super(NpEncoder, self).default(obj)


@dataclass
class SyncomParameters:
    id: str
    n_blobs: int = 1000
    nx: int = 3600  # Angular pixels (position angle)
    ny: int = 640  # Radial pixels
    time0: int = 0
    time_t: int = 100
    time_cadence_s: float = 300.0
    pixel_size_rsun: float = 0.014  # Solar radii per pixel
    rsun_km: float = 696000.0
    initial_radius_rsun: Optional[float] = None  # If set, every blob launches here
    blob_size_scale: float = 1.0
    size_min_deg: float = 2.0
    size_max_deg: float = 6.0
    angular_resolution: int = 3600  # Samples in the angular field (0.1 deg steps)
    use_sinusoidal_profile: bool = False
    sine_base_kms: float = 350.0
    sine_amplitude_kms: float = 150.0
    default_period_s: float = 3600.0  # Used when the field carries no period data
    field_smoothing_sigma: float = 10.0  # In angular samples, 0 disables smoothing
    field_shift: int = 0  # Roll (in samples) into the simulation angle convention
    field_flip: bool = False
    recurrence: tuple = (2, 4)
    time_offset: float = 0.0
    acceleration: float = 0.0  # px / frame^2
    seed: Optional[int] = None
    version: str = "v1"
    output_folder: str = "fits/syncom"

    def __post_init__(self):
        self.recurrence = tuple(int(k) for k in self.recurrence)
        if self.n_blobs is None or self.n_blobs <= 0:
            raise ConfigurationError(f"n_blobs must be positive, was {self.n_blobs}")
        if self.nx <= 0 or self.ny <= 0:
            raise ConfigurationError(
                f"Grid dimensions must be positive, was ({self.nx}, {self.ny})"
            )
        if self.time_t <= self.time0:
            raise ConfigurationError(
                f"time_t ({self.time_t}) must be larger than time0 ({self.time0})"
            )
        if self.time_cadence_s <= 0:
            raise ConfigurationError("time_cadence_s must be positive")
        if self.pixel_size_rsun <= 0 or self.rsun_km <= 0:
            raise ConfigurationError("pixel_size_rsun and rsun_km must be positive")
        if self.angular_resolution <= 0:
            raise ConfigurationError("angular_resolution must be positive")
        if self.size_min_deg <= 0 or self.size_max_deg < self.size_min_deg:
            raise ConfigurationError(
                f"Blob size range must be positive and ordered, was ({self.size_min_deg}, {self.size_max_deg})"
            )
        if self.blob_size_scale <= 0:
            raise ConfigurationError("blob_size_scale must be positive")
        if self.default_period_s <= 0:
            raise ConfigurationError("default_period_s must be positive")
        if 0 in self.recurrence:
            raise ConfigurationError("Recurrence multiples must be non-zero")

    def to_string(self):
        return f"""SynCOM params : \n
        Id :  {self.id} \n
        Blobs : {self.n_blobs} \n
        Grid (nx, ny) : ({self.nx}, {self.ny}) \n
        Time range : [{self.time0}, {self.time_t}) \n
        Time cadence (s) : {self.time_cadence_s} \n
        Pixel size (Rsun) : {self.pixel_size_rsun} \n
        Rsun (km) : {self.rsun_km} \n
        Initial radius (Rsun) : {self.initial_radius_rsun} \n
        Blob size scale : {self.blob_size_scale} \n
        Blob size range (deg) : ({self.size_min_deg}, {self.size_max_deg}) \n
        Angular resolution : {self.angular_resolution} \n
        Sinusoidal profile : {self.use_sinusoidal_profile} ({self.sine_base_kms} + {self.sine_amplitude_kms} cos) \n
        Default period (s) : {self.default_period_s} \n
        Field smoothing : {self.field_smoothing_sigma} \n
        Field shift / flip : {self.field_shift} / {self.field_flip} \n
        Recurrence : {self.recurrence} \n
        Time offset : {self.time_offset} \n
        Acceleration : {self.acceleration} \n
        Seed : {self.seed} \n
        Version : {self.version} \n
        """

    def dict(self):
        return {k: v for k, v in asdict(self).items()}

    def km_per_pixel(self):
        return self.rsun_km * self.pixel_size_rsun

    def kms_to_pixels_per_frame(self, velocity_kms):
        return velocity_kms * self.time_cadence_s / self.km_per_pixel()

    def get_initial_radius_pixels(self):
        if self.initial_radius_rsun is None:
            return None
        return self.initial_radius_rsun / self.pixel_size_rsun

    def get_hash(self):
        return hashlib.sha256(self.to_string().encode("utf-8")).hexdigest()


@dataclass
class VelocityParameters:
    id: str
    r1_rsun: float
    r2_rsun: float
    max_lag: int
    poly_order: Optional[int] = None  # None disables peak interpolation
    detrend_time_scale: Optional[int] = None  # None disables detrending
    time_cadence_s: float = 300.0
    pixel_size_rsun: float = 0.014
    rsun_km: float = 696000.0
    pixels_per_rsun: Optional[float] = None  # Defaults to 1 / pixel_size_rsun

    def __post_init__(self):
        if self.max_lag is None or self.max_lag < 0:
            raise ConfigurationError(f"max_lag must be >= 0, was {self.max_lag}")
        if self.time_cadence_s <= 0:
            raise ConfigurationError("time_cadence_s must be positive")
        if self.pixel_size_rsun <= 0 or self.rsun_km <= 0:
            raise ConfigurationError("pixel_size_rsun and rsun_km must be positive")
        if self.poly_order is not None and self.poly_order < 1:
            raise ConfigurationError("poly_order must be at least 1")
        if self.detrend_time_scale is not None and self.detrend_time_scale < 1:
            raise ConfigurationError("detrend_time_scale must be at least 1")

    def to_string(self):
        return f"""Velocity params : \n
        Id :  {self.id} \n
        r1 (Rsun) : {self.r1_rsun} \n
        r2 (Rsun) : {self.r2_rsun} \n
        Max lag : {self.max_lag} \n
        Polynomial order : {self.poly_order} \n
        Detrend time scale : {self.detrend_time_scale} \n
        Time cadence (s) : {self.time_cadence_s} \n
        Pixel size (Rsun) : {self.pixel_size_rsun} \n
        Rsun (km) : {self.rsun_km} \n
        Pixels per Rsun : {self.get_pixels_per_rsun()} \n
        """

    def dict(self):
        return {k: v for k, v in asdict(self).items()}

    def get_pixels_per_rsun(self):
        if self.pixels_per_rsun is None:
            return 1.0 / self.pixel_size_rsun
        return self.pixels_per_rsun

    def get_hash(self):
        return hashlib.sha256(self.to_string().encode("utf-8")).hexdigest()


@dataclass
class SyncomRunMetadata:
    id: str
    params_id: str
    params_hash: str
    seed: int
    time0: int
    time_t: int
    n_blobs: int
    cube_file: str = None
    blob_file: str = None
    frame_files: list = field(default_factory=list)

    def to_string(self):
        return f"""Id : {self.id}\n
        params_id :  {self.params_id} \n
        params_hash : {self.params_hash} \n
        seed : {self.seed} \n
        time range : [{self.time0}, {self.time_t}) \n
        n_blobs : {self.n_blobs} \n
        cube_file : {self.cube_file} \n
        blob_file : {self.blob_file} \n
        frames : {len(self.frame_files)} \n
        """

    def dict(self):
        return {k: v for k, v in asdict(self).items()}

    def get_frame_count(self):
        return self.time_t - self.time0

    def get_hash(self):
        return hashlib.sha256(self.to_string().encode("utf-8")).hexdigest()
