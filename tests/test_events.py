"""Tests for odjax.events.

The detector is exercised on straight-line motion, for which the Hermite
interpolant of a step is exact, so located crossings can be compared with
closed-form times.
"""

import math

import jax.numpy as jnp
import pytest

from odjax.epoch import Epoch
from odjax.errors import InvalidConfiguration
from odjax.events import Event, EventDetector, StepWindow
from odjax.state import State

_EPC = Epoch(2018, 2, 27)
_X0 = jnp.array([7000e3, 0.0, 0.0, 100.0, 7500.0, 0.0])


def _line(t):
    return _X0.at[:3].add(_X0[3:] * t)


def _deriv(x):
    return jnp.concatenate([x[3:], jnp.zeros(3)])


def _state_at(t, x):
    return State(x, _EPC + t)


def _window(t0, t1):
    x0, x1 = _line(t0), _line(t1)
    return StepWindow(t0, x0, _deriv(x0), t1, x1, _deriv(x1), _state_at)


def _x_crossing(value, **kwargs):
    return Event("x", lambda state, elapsed: state.vector[0] - value, **kwargs)


# ──────────────────────────────────────────────
# Event construction
# ──────────────────────────────────────────────


class TestEventConstruction:
    def test_elapsed_time(self):
        event = Event.elapsed_time(600.0)
        assert event.target_elapsed == 600.0
        assert event.terminal
        assert event(None, 500.0) == -100.0

    def test_epoch_reached(self):
        event = Event.epoch_reached(_EPC + 90.0, _EPC)
        assert event.target_elapsed == pytest.approx(90.0, abs=1e-9)

    def test_element_crossing_degrees(self):
        event = Event.element_crossing("ta", 180.0, direction=1, use_degrees=True)
        assert event.angular
        assert event.direction == 1
        assert event.target_elapsed is None

    def test_unknown_element(self):
        with pytest.raises(KeyError, match="argp"):
            Event.element_crossing("argp", 0.0)

    def test_invalid_direction(self):
        with pytest.raises(InvalidConfiguration, match="direction"):
            _x_crossing(0.0, direction=2)

    def test_invalid_tolerance(self):
        with pytest.raises(InvalidConfiguration, match="tolerance"):
            _x_crossing(0.0, epoch_tolerance=0.0)

    def test_angular_value_wrapped(self):
        event = Event("angle", lambda state, elapsed: 1.5 * math.pi, angular=True)
        assert event(None, 0.0) == pytest.approx(-0.5 * math.pi)


# ──────────────────────────────────────────────
# Location
# ──────────────────────────────────────────────


class TestEventLocation:
    def test_bisection_accuracy(self):
        event = _x_crossing(7000e3 + 1234.5, epoch_tolerance=1e-6)
        crossing = EventDetector([event]).locate(_window(0.0, 60.0))
        assert crossing is not None
        assert crossing.t == pytest.approx(12.345, abs=1e-6)
        assert crossing.direction == 1
        assert crossing.epoch == _EPC + crossing.t

    def test_backward_window(self):
        event = _x_crossing(7000e3 - 500.0, epoch_tolerance=1e-6)
        crossing = EventDetector([event]).locate(_window(0.0, -60.0))
        assert crossing.t == pytest.approx(-5.0, abs=1e-6)
        assert crossing.direction == -1

    def test_no_crossing(self):
        event = _x_crossing(8000e3)
        assert EventDetector([event]).locate(_window(0.0, 60.0)) is None

    def test_direction_filter(self):
        increasing = _x_crossing(7000e3 + 1000.0, direction=1)
        decreasing = _x_crossing(7000e3 + 1000.0, direction=-1)
        assert EventDetector([increasing]).locate(_window(0.0, 60.0)) is not None
        assert EventDetector([decreasing]).locate(_window(0.0, 60.0)) is None

    def test_zero_at_step_start_is_not_a_crossing(self):
        event = _x_crossing(7000e3)
        assert EventDetector([event]).locate(_window(0.0, 60.0)) is None

    def test_angular_wrap_is_not_a_crossing(self):
        event = Event("wrap", lambda state, elapsed: 3.0 + 0.01 * elapsed, angular=True)
        assert EventDetector([event]).locate(_window(0.0, 60.0)) is None

    def test_earliest_event_wins(self):
        late = _x_crossing(7000e3 + 3000.0)
        early = _x_crossing(7000e3 + 1000.0)
        crossing = EventDetector([late, early]).locate(_window(0.0, 60.0))
        assert crossing.event is early

    def test_time_event_exact(self):
        event = Event.elapsed_time(42.0)
        crossing = EventDetector([event]).locate(_window(0.0, 60.0))
        assert crossing.t == 42.0

    def test_time_event_at_window_end(self):
        event = Event.elapsed_time(60.0)
        assert EventDetector([event]).locate(_window(0.0, 60.0)).t == 60.0
        assert EventDetector([event]).locate(_window(60.0, 120.0)) is None

    def test_recorded_crossing_not_repeated(self):
        event = Event.elapsed_time(42.0)
        detector = EventDetector([event])
        crossing = detector.locate(_window(0.0, 60.0))
        detector.record(crossing)
        assert detector.locate(_window(0.0, 60.0)) is None

    def test_rewind_forgets_crossing(self):
        event = Event.elapsed_time(42.0)
        detector = EventDetector([event])
        mark = detector.checkpoint()
        detector.record(detector.locate(_window(0.0, 60.0)))
        detector.rewind(mark)
        assert detector.locate(_window(0.0, 60.0)) is not None


class TestDetectorHelpers:
    def test_needs_derivatives(self):
        assert not EventDetector([Event.elapsed_time(10.0)]).needs_derivatives
        assert EventDetector([Event.elapsed_time(10.0), _x_crossing(0.0)]).needs_derivatives

    def test_time_targets(self):
        detector = EventDetector([Event.elapsed_time(10.0), _x_crossing(0.0), Event.elapsed_time(-5.0)])
        assert detector.time_targets() == [10.0, -5.0]

    def test_at_start(self):
        state = State(_X0, _EPC)
        detector = EventDetector([_x_crossing(0.0), Event.elapsed_time(0.0)])
        crossing = detector.at_start(state)
        assert crossing.t == 0.0
        assert crossing.direction == 0

    def test_at_start_ignores_non_terminal(self):
        state = State(_X0, _EPC)
        event = Event("t0", lambda s, t: t, terminal=False, target_elapsed=0.0)
        assert EventDetector([event]).at_start(state) is None
