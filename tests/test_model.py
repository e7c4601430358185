import math

import numpy as np
import pytest

from dbw_control.estimator import tracking_errors
from dbw_control.model import VehicleState, project_state


def test_heading_error_is_negative_arctan_of_slope():
    errors = tracking_errors([0.3, 1.0, 0.0, 0.0])
    assert errors.cte == pytest.approx(0.3)
    assert errors.epsi == pytest.approx(-math.pi / 4)


def test_tracking_errors_need_linear_term():
    with pytest.raises(ValueError):
        tracking_errors([1.0])


def test_latency_no_op_with_zero_command():
    state = project_state(v=10.0, cte=0.2, epsi=0.0, delta=0.0, throttle=0.0, latency=0.1)
    assert state.psi == 0.0
    assert state.v == 10.0
    assert state.y == 0.0
    assert state.x == pytest.approx(10.0 * 0.1)
    assert state.cte == pytest.approx(0.2)
    assert state.epsi == 0.0


def test_latency_projection_with_steering_and_throttle():
    v, cte, epsi, delta, throttle = 8.0, 0.5, 0.1, 0.05, 0.4
    L, Lf = 0.1, 2.67

    state = project_state(v, cte, epsi, delta, throttle, latency=L, wheelbase=Lf)

    yaw_change = v * delta * L / Lf
    assert state.x == pytest.approx(v * math.cos(delta) * L)
    assert state.y == pytest.approx(v * math.sin(delta) * L)
    assert state.psi == pytest.approx(delta + yaw_change)
    assert state.cte == pytest.approx(cte + v * math.sin(epsi) * L)
    assert state.epsi == pytest.approx(epsi + yaw_change)
    assert state.v == pytest.approx(v + throttle * L)


def test_braking_reduces_projected_speed():
    state = project_state(v=5.0, cte=0.0, epsi=0.0, delta=0.0, throttle=-1.0, latency=0.1)
    assert state.v == pytest.approx(4.9)


def test_zero_latency_leaves_errors_unchanged():
    state = project_state(v=12.0, cte=-0.4, epsi=0.2, delta=0.3, throttle=0.5, latency=0.0)
    assert state.x == 0.0
    assert state.y == 0.0
    assert state.cte == pytest.approx(-0.4)
    assert state.epsi == pytest.approx(0.2)
    assert state.v == pytest.approx(12.0)


def test_state_array_order():
    state = VehicleState(x=1.0, y=2.0, psi=3.0, v=4.0, cte=5.0, epsi=6.0)
    np.testing.assert_array_equal(state.to_array(), [1.0, 2.0, 3.0, 4.0, 5.0, 6.0])
