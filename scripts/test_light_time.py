import warnings

import numpy as np
import pytest

from linktime.constants import C_KM_S
from linktime.convergence import LightTimeConvergenceCriteria, LightTimeFailureHandling
from linktime.corrections import ConstantLightTimeCorrection
from linktime.errors import LightTimeConvergenceError, LightTimeWarning
from linktime.light_time import LightTimeCalculator
from linktime.state_providers import ConstantStateProvider, LinearMotionStateProvider

D_KM = 1.0e6


def _static_leg(**kwargs) -> LightTimeCalculator:
    return LightTimeCalculator(
        ConstantStateProvider([0.0, 0.0, 0.0]),
        ConstantStateProvider([D_KM, 0.0, 0.0]),
        **kwargs,
    )


def test_static_link_ends_give_distance_over_c():
    calc = _static_leg()
    solution = calc.solve(100.0)
    np.testing.assert_allclose(solution.light_time, D_KM / C_KM_S, rtol=0.0, atol=1e-12)
    assert solution.reception_time == 100.0
    np.testing.assert_allclose(solution.transmission_time, 100.0 - D_KM / C_KM_S, atol=1e-9)
    assert solution.converged


def test_extra_correction_iteration_runs_once_without_corrections():
    frozen = _static_leg().solve(0.0)
    refreshed = _static_leg(
        convergence_criteria=LightTimeConvergenceCriteria(iterate_corrections=True)
    ).solve(0.0)
    assert frozen.iterations == 2
    assert refreshed.iterations == 1
    assert frozen.light_time == refreshed.light_time


def test_receding_receiver_matches_closed_form():
    v = 10.0
    calc = LightTimeCalculator(
        ConstantStateProvider([0.0, 0.0, 0.0]),
        LinearMotionStateProvider([D_KM, 0.0, 0.0], [v, 0.0, 0.0]),
    )
    solution = calc.solve(0.0, is_time_at_reception=False)
    expected = D_KM / (C_KM_S - v)
    np.testing.assert_allclose(solution.light_time, expected, rtol=0.0, atol=1e-11)
    assert solution.transmission_time == 0.0
    np.testing.assert_allclose(solution.reception_time, expected, atol=1e-11)
    np.testing.assert_allclose(solution.receiver_state[0], D_KM + v * expected, atol=1e-6)


def test_moving_transmitter_with_reception_time_fixed():
    # at transmission (t < 0) the transmitter is u * tau further from the receiver
    u = 25.0
    calc = LightTimeCalculator(
        LinearMotionStateProvider([0.0, 0.0, 0.0], [u, 0.0, 0.0]),
        ConstantStateProvider([D_KM, 0.0, 0.0]),
    )
    light_time = calc.calculate_light_time(0.0)
    np.testing.assert_allclose(light_time, D_KM / (C_KM_S - u), rtol=0.0, atol=1e-11)


def test_constant_corrections_are_summed():
    a, b = 1.0e-3, 2.0e-4
    calc = _static_leg(corrections=[ConstantLightTimeCorrection(a), lambda *args: b])
    solution = calc.solve(0.0)
    np.testing.assert_allclose(solution.light_time, D_KM / C_KM_S + a + b, rtol=0.0, atol=1e-12)
    np.testing.assert_allclose(calc.current_ideal_light_time, D_KM / C_KM_S, atol=1e-12)
    np.testing.assert_allclose(calc.current_correction, a + b, atol=1e-15)
    assert len(calc.corrections) == 2


def test_correction_depending_on_times_is_picked_up_by_final_refresh():
    def late_delay(tx_state, rx_state, tx_time, rx_time):
        return 1.0e-3 if rx_time - tx_time > 1.0 else 0.0

    calc = _static_leg(corrections=[late_delay])
    light_time = calc.calculate_light_time(50.0)
    np.testing.assert_allclose(light_time, D_KM / C_KM_S + 1.0e-3, atol=1e-12)


def test_throw_policy_raises_with_residual_and_time():
    criteria = LightTimeConvergenceCriteria(
        max_iterations=3,
        absolute_tolerance=0.0,
        failure_handling=LightTimeFailureHandling.THROW_EXCEPTION,
    )
    calc = _static_leg(convergence_criteria=criteria)
    with pytest.raises(LightTimeConvergenceError) as excinfo:
        calc.solve(10.0)
    assert excinfo.value.time == 10.0
    assert excinfo.value.residual >= 0.0
    assert excinfo.value.correction == 0.0
    assert "unconverged" in str(excinfo.value)


def test_accept_policy_returns_unconverged_estimate():
    criteria = LightTimeConvergenceCriteria(max_iterations=3, absolute_tolerance=0.0)
    calc = _static_leg(convergence_criteria=criteria)
    with warnings.catch_warnings():
        warnings.simplefilter("error")
        solution = calc.solve(10.0)
    np.testing.assert_allclose(solution.light_time, D_KM / C_KM_S, atol=1e-12)
    assert solution.iterations == 4
    assert not solution.converged


def test_warn_policy_warns_and_returns():
    criteria = LightTimeConvergenceCriteria(
        max_iterations=2,
        absolute_tolerance=0.0,
        failure_handling="print_warning_and_accept",
    )
    calc = _static_leg(
        corrections=[ConstantLightTimeCorrection(2.0e-6)], convergence_criteria=criteria
    )
    with pytest.warns(LightTimeWarning) as record:
        light_time = calc.calculate_light_time(5.0)
    message = str(record[0].message)
    assert "unconverged at level 0.000000e+00" in message
    assert "light-time corrections are: 2.000000e-06" in message
    assert "current time was 5.000000" in message
    np.testing.assert_allclose(light_time, D_KM / C_KM_S + 2.0e-6, atol=1e-12)


def _flip_flop_correction(ideal_light_time: float):
    def correction(tx_state, rx_state, tx_time, rx_time):
        return 1.0e-3 if (rx_time - tx_time) < ideal_light_time + 0.5e-3 else 0.0

    return correction


@pytest.mark.parametrize("max_iterations", [1, 2, 3, 4, 5, 6])
def test_iteration_limit_holds_across_correction_refresh(max_iterations):
    speed = 30.0
    correction = _flip_flop_correction(D_KM / (C_KM_S - speed))

    def receding_leg(failure_handling):
        criteria = LightTimeConvergenceCriteria(
            max_iterations=max_iterations, failure_handling=failure_handling
        )
        return LightTimeCalculator(
            ConstantStateProvider([0.0, 0.0, 0.0]),
            LinearMotionStateProvider([D_KM, 0.0, 0.0], [speed, 0.0, 0.0]),
            corrections=[correction],
            convergence_criteria=criteria,
        )

    with pytest.raises(LightTimeConvergenceError):
        receding_leg(LightTimeFailureHandling.THROW_EXCEPTION).solve(
            0.0, is_time_at_reception=False
        )

    with warnings.catch_warnings():
        warnings.simplefilter("error")
        accepted = receding_leg(LightTimeFailureHandling.ACCEPT_WITHOUT_WARNING).solve(
            0.0, is_time_at_reception=False
        )
    assert accepted.iterations <= max_iterations + 2
    assert not accepted.converged

    with pytest.warns(LightTimeWarning, match="unconverged"):
        warned = receding_leg(LightTimeFailureHandling.PRINT_WARNING_AND_ACCEPT).solve(
            0.0, is_time_at_reception=False
        )
    assert warned.iterations <= max_iterations + 2
    assert not warned.converged


def test_single_precision_solve():
    static = _static_leg(scalar_type=np.float32).solve(0.0)
    assert np.asarray(static.light_time).dtype == np.float32
    np.testing.assert_allclose(float(static.light_time), D_KM / C_KM_S, rtol=1e-6)
    assert static.converged

    receding = LightTimeCalculator(
        ConstantStateProvider([0.0, 0.0, 0.0]),
        LinearMotionStateProvider([D_KM, 0.0, 0.0], [30.0, 0.0, 0.0]),
        scalar_type=np.float32,
    ).solve(0.0, is_time_at_reception=False)
    assert np.asarray(receding.light_time).dtype == np.float32
    np.testing.assert_allclose(float(receding.light_time), D_KM / (C_KM_S - 30.0), rtol=1e-6)


def test_warm_start_needs_no_more_iterations():
    calc = LightTimeCalculator(
        LinearMotionStateProvider([0.0, 0.0, 0.0], [-30.0, 5.0, 0.0]),
        ConstantStateProvider([D_KM, 0.0, 0.0]),
    )
    cold = calc.solve(1000.0)
    warm = calc.solve(1000.0, initial_guess=(cold.transmission_time, cold.reception_time))
    np.testing.assert_allclose(warm.light_time, cold.light_time, rtol=0.0, atol=1e-12)
    assert warm.iterations <= cold.iterations


def test_non_finite_initial_guess_falls_back_to_zero_seed():
    calc = _static_leg()
    cold = calc.solve(0.0)
    seeded = calc.solve(0.0, initial_guess=(np.nan, 0.0))
    assert seeded.light_time == cold.light_time
    assert seeded.iterations == cold.iterations


def test_relative_range_vector_and_link_end_states():
    calc = _static_leg()
    np.testing.assert_allclose(calc.calculate_relative_range_vector(0.0), [D_KM, 0.0, 0.0])
    light_time, tx_state, rx_state = calc.calculate_light_time_with_link_end_states(0.0)
    assert tx_state.shape == (6,)
    np.testing.assert_allclose(rx_state[:3], [D_KM, 0.0, 0.0])
    np.testing.assert_allclose(light_time, D_KM / C_KM_S, atol=1e-12)


def test_position_partial_scales_with_correction():
    a = 1.0e-3
    calc = _static_leg(corrections=[ConstantLightTimeCorrection(a)])
    tx = np.zeros(6)
    rx = np.array([D_KM, 0.0, 0.0, 0.0, 0.0, 0.0])
    wrt_rx = calc.partial_of_light_time_wrt_link_end_position(tx, rx, 0.0, 3.0, True)
    wrt_tx = calc.partial_of_light_time_wrt_link_end_position(tx, rx, 0.0, 3.0, False)
    np.testing.assert_allclose(wrt_rx, [1.0 + a / D_KM, 0.0, 0.0], rtol=1e-15)
    np.testing.assert_allclose(wrt_tx, -wrt_rx)
    assert calc.current_correction == a


def test_extended_precision_scalar_type():
    calc = _static_leg(scalar_type=np.longdouble)
    solution = calc.solve(0.0)
    assert solution.light_time.dtype == np.dtype(np.longdouble)
    np.testing.assert_allclose(float(solution.light_time), D_KM / C_KM_S, atol=1e-12)


def test_bad_state_shape_is_rejected():
    calc = LightTimeCalculator(lambda t: np.zeros(3), ConstantStateProvider([D_KM, 0.0, 0.0]))
    with pytest.raises(ValueError, match="6 components"):
        calc.solve(0.0)


def test_non_positive_speed_is_rejected():
    with pytest.raises(ValueError):
        _static_leg(speed_of_light=0.0)
