import logging
import time

import numpy as np
import pytest

from carrot_control.config import MIN_DT
from carrot_control.controller import CarrotController
from carrot_control.model import FrameMismatchError, Goal, PoseStamped
from carrot_control.scan_buffer import RangeScanBuffer

from conftest import NUM_BEAMS, make_scan


def test_goal_in_wrong_frame_is_rejected(controller, caplog):
    controller.set_goal(PoseStamped.from_xy_yaw(1.0, 0.5, 0.4))
    before = controller.goal

    with caplog.at_level(logging.ERROR):
        with pytest.raises(FrameMismatchError):
            controller.set_goal(PoseStamped.from_xy_yaw(3.0, 3.0, 1.0, frame_id="/map"))

    assert controller.goal is before
    assert "no planning possible" in caplog.text


def test_small_heading_is_snapped_to_zero(controller, caplog):
    with caplog.at_level(logging.WARNING):
        goal = controller.set_goal(PoseStamped.from_xy_yaw(1.0, 0.0, 0.01))

    assert goal.heading == 0.0
    assert "will be ignored" in caplog.text


def test_heading_outside_dead_band_is_kept(controller):
    goal = controller.set_goal(PoseStamped.from_xy_yaw(1.0, 0.0, 0.5))

    assert goal.heading == pytest.approx(0.5)
    assert np.allclose(goal.position, [1.0, 0.0, 0.0])


def test_first_invocation_uses_minimum_time_step(controller, limits):
    controller.set_goal(PoseStamped.from_xy_yaw(2.0, 0.0, 0.0))
    command = controller.compute_velocity_command(now=100.0)

    assert controller.get_diagnostics()["dt"] == MIN_DT
    assert command.speed == pytest.approx(limits.max_acc * MIN_DT)


def test_non_increasing_clock_uses_minimum_time_step(controller):
    controller.set_goal(PoseStamped.from_xy_yaw(2.0, 0.0, 0.0))
    controller.compute_velocity_command(now=10.0)
    controller.compute_velocity_command(now=10.0)

    assert controller.get_diagnostics()["dt"] == MIN_DT

    controller.compute_velocity_command(now=10.1)
    assert controller.get_diagnostics()["dt"] == pytest.approx(0.1)


def test_blocked_path_only_rotates(limits, caplog):
    buffer = RangeScanBuffer()
    buffer.update(make_scan(np.full(NUM_BEAMS, 0.3)))
    controller = CarrotController(limits=limits, scan_buffer=buffer)
    controller.set_goal(PoseStamped.from_xy_yaw(2.0, 1.0, 0.5))

    with caplog.at_level(logging.WARNING):
        for step in range(10):
            command = controller.compute_velocity_command(now=step * 0.1)
            assert command.speed == 0.0

    assert command.angular > 0.0
    assert controller.get_diagnostics()["blocked"] is True
    assert np.allclose(controller.goal.position, [2.0, 1.0, 0.0])
    assert "Path is not free: only consider rotation" in caplog.text


def test_blocked_path_ramps_translation_down(controller, limits):
    controller.set_goal(PoseStamped.from_xy_yaw(3.0, 0.0, 0.0))
    for step in range(50):
        controller.compute_velocity_command(now=step * 0.1)
    moving = controller.state.last_command.speed

    controller.update_scan(make_scan(np.full(NUM_BEAMS, 0.3)))
    command = controller.compute_velocity_command(now=5.0)

    assert moving > 0.0
    assert command.speed == pytest.approx(moving - limits.max_acc * 0.1)


def test_missing_scan_blocks_translation(limits):
    controller = CarrotController(limits=limits)
    controller.set_goal(PoseStamped.from_xy_yaw(2.0, 0.0, 0.0))

    assert controller.compute_velocity_command(now=0.0).speed == 0.0
    assert controller.get_diagnostics()["blocked"] is True


def test_sequence_respects_velocity_and_acceleration_limits(controller, limits):
    previous = controller.state.last_command
    previous_time = None
    for step in range(150):
        now = step * 0.05
        command = controller.move_to_goal(PoseStamped.from_xy_yaw(2.0, 1.0, 0.8), now=now)
        dt = controller.get_diagnostics()["dt"]

        assert command.speed <= limits.max_vel + 1e-9
        assert abs(command.angular) <= limits.max_vel_theta + 1e-9
        assert np.linalg.norm(command.linear - previous.linear) <= limits.max_acc * dt + 1e-9
        assert abs(command.angular - previous.angular) <= 1.5 * limits.max_acc_theta * dt + 1e-9
        assert command.linear[2] == 0.0

        previous = command
        previous_time = now

    assert previous_time == pytest.approx(7.45)
    assert command.angular == pytest.approx(limits.max_vel_theta)
    assert command.speed == pytest.approx(limits.max_vel)


def test_explicit_goal_overrides_stored_goal(controller):
    controller.set_goal(PoseStamped.from_xy_yaw(2.0, 0.0, 0.0))
    command = controller.compute_velocity_command(goal=Goal(position=[0.0, -2.0, 0.0]), now=0.0)

    assert command.linear[1] < 0.0
    assert command.linear[0] == pytest.approx(0.0)


def test_move_to_goal_publishes_to_sinks(scan_buffer):
    commands = []
    markers = []
    controller = CarrotController(
        scan_buffer=scan_buffer, command_sink=commands.append, marker_sink=markers.append
    )

    command = controller.move_to_goal(PoseStamped.from_xy_yaw(2.0, 1.0, 0.0), now=0.0)

    assert commands == [command]
    assert markers[0].points[-1] == (2.0, 1.0, 0.05)
    assert markers[0].frame_id == "/base_link"


def test_move_to_goal_in_wrong_frame_publishes_nothing(scan_buffer):
    commands = []
    controller = CarrotController(scan_buffer=scan_buffer, command_sink=commands.append)

    with pytest.raises(FrameMismatchError):
        controller.move_to_goal(PoseStamped.from_xy_yaw(2.0, 1.0, 0.0, frame_id="/odom"))

    assert commands == []
    assert controller.get_diagnostics() == {}


def test_injected_logger_receives_diagnostics(scan_buffer, caplog):
    logger = logging.getLogger("test.carrot")
    controller = CarrotController(scan_buffer=scan_buffer, logger=logger)

    with caplog.at_level(logging.INFO, logger="test.carrot"):
        controller.move_to_goal(PoseStamped.from_xy_yaw(2.0, 0.0, 0.0), now=0.0)

    assert any(record.name == "test.carrot" for record in caplog.records)
    assert "Final velocity command" in caplog.text


def test_diagnostics_describe_last_computation(controller):
    controller.move_to_goal(PoseStamped.from_xy_yaw(3.0, 4.0, 0.0), now=1.0)
    diagnostics = controller.get_diagnostics()

    assert diagnostics["timestamp"] == 1.0
    assert diagnostics["blocked"] is False
    assert diagnostics["direction_x"] == pytest.approx(0.6)
    assert diagnostics["direction_y"] == pytest.approx(0.8)
    assert diagnostics["linear_branch"] == "rate_limited"
    assert diagnostics["angular_phase"] == "still"


def test_reset_clears_goal_and_history(controller):
    controller.move_to_goal(PoseStamped.from_xy_yaw(2.0, 0.0, 0.5), now=0.0)
    controller.reset()

    assert controller.goal.distance == 0.0
    assert controller.state.last_timestamp is None
    assert controller.state.last_command.speed == 0.0
    assert controller.scan_buffer.latest() is not None


def test_clock_stepping_backwards_keeps_acceleration_bound(controller, limits):
    controller.set_goal(PoseStamped.from_xy_yaw(3.0, 0.0, 0.0))
    controller.compute_velocity_command(now=10.0)
    controller.compute_velocity_command(now=5.0)
    before = controller.state.last_command.speed

    command = controller.compute_velocity_command(now=10.05)

    assert controller.get_diagnostics()["dt"] == pytest.approx(0.05)
    assert command.speed - before <= limits.max_acc * 0.05 + 1e-9
    assert controller.state.last_timestamp == 10.05


def test_default_clock_is_monotonic():
    assert CarrotController().clock is time.monotonic
