import matplotlib

matplotlib.use("Agg")

import numpy as np
import pytest

from carrot_control.config import FRONT_LASER_FRAME
from carrot_control.controller import CarrotController
from carrot_control.model import Limits, RangeScan
from carrot_control.scan_buffer import RangeScanBuffer

# 181 beams from -0.9 to 0.9 rad, beam 90 points straight ahead
NUM_BEAMS = 181
ANGLE_MIN = -0.9
ANGLE_INCREMENT = 0.01
CENTER_BEAM = 90


def make_scan(ranges=None, frame_id=FRONT_LASER_FRAME, angle_increment=ANGLE_INCREMENT, **overrides):
    """Front scan with every beam at 5 m unless `ranges` or index overrides are given."""
    if ranges is None:
        ranges = np.full(NUM_BEAMS, 5.0)
    ranges = np.array(ranges, dtype=float)
    for index, value in overrides.get("beams", {}).items():
        ranges[index] = value
    return RangeScan(
        frame_id=frame_id,
        angle_min=ANGLE_MIN,
        angle_increment=angle_increment,
        ranges=ranges,
    )


@pytest.fixture
def limits():
    return Limits()


@pytest.fixture
def clear_scan():
    return make_scan()


@pytest.fixture
def scan_buffer(clear_scan):
    buffer = RangeScanBuffer()
    buffer.update(clear_scan)
    return buffer


@pytest.fixture
def controller(limits, scan_buffer):
    return CarrotController(limits=limits, scan_buffer=scan_buffer)
