import numpy as np
import pytest

from blob_processing.blobsampler import BlobRecord
from blob_processing.compositor import (
    blob_radius_at,
    recurrence_shifts,
    render_blob,
    render_frame,
)
from blob_processing.gaussian import gaussian_2d
from syncom.errors import ConfigurationError


def _blob(**kwargs):
    defaults = dict(
        launch_radius=0.0,
        angular_position=0.0,
        launch_time=0.0,
        period=100.0,
        velocity=1.0,
        size=5.0,
    )
    defaults.update(kwargs)
    return BlobRecord(**defaults)


def test_zero_blobs_give_empty_frame():
    frame = render_frame((), 3, 40, 20)
    assert frame.shape == (40, 20)
    assert not frame.any()


def test_single_blob_at_origin_peaks_at_origin():
    frame = render_frame([_blob()], 0, 3600, 64, angular_resolution=3600)
    assert frame.shape == (3600, 64)
    assert np.unravel_index(np.argmax(frame), frame.shape) == (0, 0)
    assert np.isclose(frame[0, 0], frame.max())


def test_recurrence_shifts_couple_period_velocity_and_size():
    blob = _blob(period=100.0, velocity=1.0, size=5.0)
    assert recurrence_shifts(blob) == [210, -210, 420, -420]
    assert recurrence_shifts(blob, (2, 4, 6)) == [210, -210, 420, -420, 630, -630]


def test_recurrence_shifts_truncate_to_whole_pixels():
    blob = _blob(period=10.0, velocity=0.33, size=1.0)
    # 2 * 10 * 0.33 + 2 = 8.6
    assert recurrence_shifts(blob, (2,)) == [8, -8]


def test_render_blob_adds_recurring_copies():
    nx, ny = 1000, 32
    blob = _blob(angular_position=500.0, launch_radius=10.0, size=3.0)
    composite = render_blob(blob, nx, ny, angular_resolution=1000)
    base = gaussian_2d(nx, ny, (500, 10), (3.0, 6.0))
    # period * velocity + size = 103 for k = 1
    expected = base.copy()
    for shift in (206, -206, 412, -412):
        expected += np.roll(base, shift, axis=0)
    assert np.allclose(composite, expected)
    for row in (500, 706, 294, 912, 88):
        assert np.isclose(composite[row, 10], 1.0)


def test_blob_is_advected_radially():
    blob = _blob(launch_radius=20.0, velocity=1.0)
    frame = render_frame([blob], 10, 360, 128, angular_resolution=3600)
    assert np.argmax(frame[0]) == 30


def test_radial_advection_wraps_around():
    blob = _blob(launch_radius=10.0, velocity=1.0)
    frame = render_frame([blob], 60, 360, 64, angular_resolution=3600)
    assert np.argmax(frame[0]) == (10 + 60) % 64


def test_time_offset_and_launch_time_shift_the_clock():
    blob = _blob(launch_radius=5.0, velocity=2.0)
    later = render_frame([blob], 7, 360, 128)
    assert np.allclose(render_frame([blob], 2, 360, 128, time_offset=5.0), later)
    assert np.allclose(render_frame([_blob(launch_radius=5.0, velocity=2.0, launch_time=5.0)], 2, 360, 128), later)


def test_blob_radius_with_acceleration():
    blob = _blob(velocity=2.0, acceleration=0.5, launch_time=1.0)
    # elapsed = 4 + 1 = 5 frames
    assert np.isclose(blob_radius_at(blob, 4), 2.0 * 5 + 0.5 * 0.5 * 25)
    assert np.isclose(blob_radius_at(_blob(velocity=3.0), 4, time_offset=2.0), 18.0)


def test_frame_is_sum_of_blob_contributions():
    a = _blob(angular_position=100.0, launch_radius=3.0, velocity=1.5, size=2.0)
    b = _blob(angular_position=2500.0, launch_radius=40.0, velocity=0.5, size=4.0, period=50.0)
    both = render_frame([a, b], 6, 360, 96)
    assert np.allclose(both, render_frame([a], 6, 360, 96) + render_frame([b], 6, 360, 96))
    assert np.allclose(both, render_frame([b, a], 6, 360, 96))
    assert (both >= 0).all()


def test_angular_position_is_scaled_to_grid():
    blob = _blob(angular_position=1800.0, period=1.0, velocity=0.0, size=2.0)
    frame = render_frame([blob], 0, 360, 32, angular_resolution=3600)
    assert np.unravel_index(np.argmax(frame), frame.shape)[0] == 180


def test_invalid_blobs_are_rejected():
    with pytest.raises(ConfigurationError):
        render_frame([_blob(size=0.0)], 0, 36, 16)
    with pytest.raises(ConfigurationError):
        render_frame([_blob(period=-1.0)], 0, 36, 16)
    with pytest.raises(ConfigurationError):
        render_frame([], 0, 0, 16)
