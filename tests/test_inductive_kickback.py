from __future__ import annotations

import pytest

from microlesson.inductive_kickback import KickbackConfig, KickbackKernel, boost_explored, experimented_enough
from microlesson.thermal_throttling import ThermalKernel


def test_opening_switch_without_diode_spikes_and_sparks() -> None:
    kernel = KickbackKernel()
    assert kernel.switch_on is True

    assert kernel.trigger("toggle_switch") is True
    status = kernel.derive_status()
    assert status.switch_on is False
    assert status.kickback_v == pytest.approx(350.0)
    assert status.peak_kickback_v == pytest.approx(350.0)
    assert status.spark_visible is True
    assert status.experiment_count == 1


def test_spike_decays_and_spark_fades() -> None:
    kernel = KickbackKernel()
    kernel.trigger("toggle_switch")

    kernel.tick(16.0)
    assert kernel.kickback_v == pytest.approx(335.0)

    for _ in range(19):
        kernel.tick(16.0)
    status = kernel.derive_status()
    assert status.spark_visible is False
    assert status.peak_kickback_v == pytest.approx(350.0)

    for _ in range(30):
        kernel.tick(16.0)
    assert kernel.kickback_v == 0.0


def test_closing_switch_does_not_spike() -> None:
    kernel = KickbackKernel()
    kernel.trigger("toggle_switch")
    for _ in range(40):
        kernel.tick(16.0)

    kernel.trigger("toggle_switch")
    status = kernel.derive_status()
    assert status.switch_on is True
    assert status.kickback_v == 0.0
    assert status.experiment_count == 2


def test_flyback_diode_clamps_spike() -> None:
    kernel = KickbackKernel()
    kernel.set_parameter("flyback_diode", 1)

    kernel.trigger("toggle_switch")
    status = kernel.derive_status()
    assert status.kickback_v == pytest.approx(12.0)
    assert status.spark_visible is False


def test_spike_scales_with_inductance() -> None:
    kernel = KickbackKernel()
    kernel.set_parameter("inductance_mh", 200)
    assert kernel.spike_v() == pytest.approx(700.0)


def test_boost_output() -> None:
    kernel = KickbackKernel()
    assert kernel.boost_output_v() == pytest.approx(5.0 / 0.6)

    kernel.set_parameter("duty_cycle_pct", 90)
    status = kernel.derive_status()
    assert status.boost_output_v == pytest.approx(50.0)
    assert status.boost_ratio == pytest.approx(10.0)


def test_gating_helpers() -> None:
    kernel = KickbackKernel()
    check = experimented_enough(3)

    assert check(kernel) is False
    for _ in range(3):
        kernel.trigger("toggle_switch")
    assert check(kernel) is True
    assert check(ThermalKernel()) is False

    assert boost_explored(kernel) is False
    kernel.set_parameter("boost_active", 1)
    assert boost_explored(kernel) is True


def test_unknown_action_and_reset() -> None:
    kernel = KickbackKernel()
    assert kernel.trigger("smash") is False

    kernel.trigger("toggle_switch")
    kernel.set_parameter("inductance_mh", 500)
    kernel.reset()
    status = kernel.derive_status()
    assert status.switch_on is True
    assert status.experiment_count == 0
    assert status.peak_kickback_v == 0.0
    assert status.inductance_mh == 100.0


def test_config_validation() -> None:
    with pytest.raises(ValueError):
        KickbackConfig(min_duty_gap=0.0)
    with pytest.raises(ValueError):
        KickbackConfig(required_toggles=-1)
