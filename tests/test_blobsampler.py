import dataclasses
import numpy as np
import pytest

from blob_processing.blobsampler import (
    BlobRecord,
    assign_launch_times,
    blobs_from_dataframe,
    blobs_to_dataframe,
    sample_blobs,
)
from syncom.angularfield import AngularField
from syncom.errors import ConfigurationError
from syncom.syncommetadata import SyncomParameters


def _params(**kwargs):
    defaults = dict(id="test", n_blobs=200, nx=360, ny=128, time_t=10, seed=3)
    defaults.update(kwargs)
    return SyncomParameters(**defaults)


def _stepped_field():
    # Four sectors; the first two share a truncated pixel velocity
    velocity = np.repeat([300.0, 300.4, 450.2, 600.9], 900)
    period = np.repeat([1000.0, 2000.0, 3000.0, 4000.0], 900)
    return AngularField(velocity, period)


def test_assign_launch_times_groups_equal_truncated_velocities():
    launch = assign_launch_times([10.5, 10.1, 9.9, 9.0, 7.2])
    assert list(launch) == [0, 0, 1, 1, 2]


def test_assign_launch_times_first_blob_starts_at_zero():
    assert list(assign_launch_times([3.7])) == [0]
    assert list(assign_launch_times([])) == []


def test_sample_blobs_sorted_by_descending_velocity():
    blobs = sample_blobs(200, _stepped_field(), _params())
    assert len(blobs) == 200
    velocities = [b.velocity for b in blobs]
    assert velocities == sorted(velocities, reverse=True)


def test_sample_blobs_launch_time_tie_break():
    blobs = sample_blobs(200, _stepped_field(), _params())
    assert blobs[0].launch_time == 0
    for prev, cur in zip(blobs[:-1], blobs[1:]):
        if int(prev.velocity) == int(cur.velocity):
            assert cur.launch_time == prev.launch_time
        else:
            assert cur.launch_time - prev.launch_time == 1


def test_sample_blobs_reads_velocity_and_period_from_field():
    params = _params()
    field = _stepped_field()
    blobs = sample_blobs(100, field, params)
    for b in blobs:
        assert 0 <= b.angular_position < 3600
        assert b.velocity_kms == field.velocity_at(int(b.angular_position))
        assert b.period == field.period_at(int(b.angular_position))
        assert np.isclose(b.velocity, params.kms_to_pixels_per_frame(b.velocity_kms))


def test_sample_blobs_sizes_and_radii_in_range():
    params = _params(size_min_deg=2.0, size_max_deg=4.0, blob_size_scale=1.5)
    blobs = sample_blobs(150, _stepped_field(), params)
    for b in blobs:
        assert 3.0 <= b.size <= 6.0
        assert 0 <= b.launch_radius < params.ny


def test_sample_blobs_initial_radius():
    params = _params(initial_radius_rsun=0.7)
    blobs = sample_blobs(20, _stepped_field(), params)
    for b in blobs:
        assert np.isclose(b.launch_radius, 0.7 / 0.014)


def test_sample_blobs_is_reproducible_with_seed():
    a = sample_blobs(50, _stepped_field(), _params(seed=11))
    b = sample_blobs(50, _stepped_field(), _params(seed=11))
    c = sample_blobs(50, _stepped_field(), _params(seed=12))
    assert a == b
    assert a != c


def test_sample_blobs_uses_given_generator():
    a = sample_blobs(30, _stepped_field(), _params(), rng=np.random.default_rng(5))
    b = sample_blobs(30, _stepped_field(), _params(), rng=np.random.default_rng(5))
    assert a == b


def test_sample_blobs_sinusoidal_profile_without_field():
    params = _params(
        use_sinusoidal_profile=True, sine_base_kms=400.0, sine_amplitude_kms=100.0
    )
    blobs = sample_blobs(100, None, params)
    for b in blobs:
        assert 300.0 - 1e-9 <= b.velocity_kms <= 500.0 + 1e-9
        assert b.period == params.default_period_s


def test_sinusoidal_profile_overrides_field_velocity():
    params = _params(
        use_sinusoidal_profile=True, sine_base_kms=400.0, sine_amplitude_kms=100.0
    )
    field = AngularField(np.full(3600, 1000.0), np.full(3600, 1234.0))
    blobs = sample_blobs(50, field, params)
    for b in blobs:
        assert 300.0 - 1e-9 <= b.velocity_kms <= 500.0 + 1e-9
        assert b.period == 1234.0


def test_sample_blobs_records_are_immutable():
    blobs = sample_blobs(5, _stepped_field(), _params())
    assert isinstance(blobs, tuple)
    with pytest.raises(dataclasses.FrozenInstanceError):
        blobs[0].velocity = 1.0


def test_sample_blobs_rejects_bad_counts_and_fields():
    with pytest.raises(ConfigurationError):
        sample_blobs(0, _stepped_field(), _params())
    with pytest.raises(ConfigurationError):
        sample_blobs(-3, _stepped_field(), _params())
    with pytest.raises(ConfigurationError):
        sample_blobs(10, AngularField([]), _params())
    with pytest.raises(ConfigurationError):
        sample_blobs(10, None, _params())


def test_blob_dataframe_round_trip():
    blobs = sample_blobs(12, _stepped_field(), _params())
    df = blobs_to_dataframe(blobs)
    assert list(df.columns) == list(BlobRecord.__dataclass_fields__.keys())
    assert blobs_from_dataframe(df) == blobs
