from __future__ import annotations

import pytest

from microlesson.hdd_physics import DRIVE_PROFILES, HddConfig, HddKernel, rotational_latency_ms


def test_rotational_latency_is_half_a_revolution() -> None:
    assert rotational_latency_ms(7200) == pytest.approx(4.1667, abs=1e-3)
    assert rotational_latency_ms(15000) == pytest.approx(2.0)
    latencies = [rotational_latency_ms(p.rpm) for p in DRIVE_PROFILES]
    assert latencies == sorted(latencies, reverse=True)


def test_default_drive_access_time() -> None:
    kernel = HddKernel(seed=7)
    status = kernel.derive_status()

    assert status.rpm == 7200
    assert status.seek_ms == pytest.approx(9.0)
    assert status.total_access_ms == pytest.approx(13.1667, abs=1e-3)
    assert status.random_iops == pytest.approx(1000.0 / 13.1667, rel=1e-3)
    assert status.crash_risk is False


def test_sequential_access_skips_the_seek() -> None:
    kernel = HddKernel(seed=7)
    random_ms = kernel.total_access_ms()

    kernel.set_parameter("sequential", 1)
    assert kernel.seek_ms() == pytest.approx(1.0)
    assert kernel.total_access_ms() < random_ms
    assert kernel.derive_status().sequential is True


def test_head_ramps_toward_target() -> None:
    kernel = HddKernel(seed=7)
    kernel.set_parameter("target_position", 60)

    kernel.tick(10.0)
    assert kernel.head_position == pytest.approx(52.0)
    assert kernel.derive_status().head_settled is False

    for _ in range(4):
        kernel.tick(10.0)
    assert kernel.head_position == pytest.approx(60.0)
    assert kernel.derive_status().head_settled is True

    kernel.tick(10.0)
    assert kernel.head_position == pytest.approx(60.0)


def test_platter_rotates_with_rpm() -> None:
    kernel = HddKernel(seed=7)
    kernel.set_parameter("drive_index", 0)

    kernel.tick(10.0)
    assert kernel.derive_status().platter_angle_deg == pytest.approx(180.0)


def test_random_read_completes_after_scaled_access_time() -> None:
    kernel = HddKernel(seed=7)

    assert kernel.trigger("random_read") is True
    assert kernel.trigger("random_read") is False
    assert 10 <= kernel.parameter("target_position") <= 90
    assert kernel.derive_status().read_in_progress is True

    # 13.17 ms access scaled by 10 -> 132 ms of simulated time.
    for _ in range(13):
        kernel.tick(10.0)
    assert kernel.reads_completed == 0

    kernel.tick(10.0)
    status = kernel.derive_status()
    assert status.read_in_progress is False
    assert status.reads_completed == 1
    assert status.bytes_read == 4096
    assert status.last_read_ms == pytest.approx(13.1667, abs=1e-3)


def test_park_head_and_unknown_action() -> None:
    kernel = HddKernel(seed=7)

    assert kernel.trigger("park_head") is True
    assert kernel.parameter("target_position") == 0
    assert kernel.trigger("format_disk") is False


def test_low_fly_height_flags_crash_risk() -> None:
    kernel = HddKernel(seed=7)

    kernel.set_parameter("fly_height_nm", 4.5)
    assert kernel.derive_status().crash_risk is True
    kernel.set_parameter("fly_height_nm", 5.0)
    assert kernel.derive_status().crash_risk is False


def test_reset_restores_parameters_and_random_sequence() -> None:
    kernel = HddKernel(seed=11)
    kernel.trigger("random_read")
    first_target = kernel.parameter("target_position")
    kernel.set_parameter("drive_index", 3)
    kernel.tick(10.0)

    kernel.reset()
    assert kernel.parameters() == {
        "drive_index": 1.0,
        "sequential": 0.0,
        "target_position": 50.0,
        "fly_height_nm": 10.0,
    }
    assert kernel.head_position == pytest.approx(50.0)
    assert kernel.reads_completed == 0

    kernel.trigger("random_read")
    assert kernel.parameter("target_position") == first_target


def test_config_validation() -> None:
    with pytest.raises(ValueError):
        HddConfig(head_step=0.0)
    with pytest.raises(ValueError):
        HddConfig(default_drive_index=4)
