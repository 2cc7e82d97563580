"""Carrot Control - Reactive Local-Motion Controller for Holonomic Robots

A "carrot" controller: given a goal pose in the robot frame, it produces a
velocity command (translation in x/y plus a yaw rate) that steers toward the
goal while respecting velocity and acceleration limits and refusing to
translate into obstacles seen by the front laser.

## Architecture Overview

Each goal runs one control-loop invocation through four components:

### Scan Buffer (scan_buffer.py)
Holds the latest front-laser scan. Scans from any other frame are dropped.

### Safety Gate (safety_gate.py)
Checks a window of beams around the goal heading, sized to the robot radius
at the virtual-wall distance. Any valid reading closer than the wall blocks
translation.

### Linear Velocity Profiler (linear_profiler.py)
Speed toward the goal follows the braking law v = sqrt(2 * a_max * d) capped at
v_max; the change per step is bounded by a_max * dt.

### Angular Velocity Profiler (angular_profiler.py)
Trapezoidal yaw-rate profile (still / accelerate / constant / decelerate)
selected from the stopping distance at the current yaw rate.

## Modules

- `config.py` - Centralized configuration parameters with documentation
- `model.py` - Poses, scans, goals, commands, limits and the carrot marker
- `controller.py` - Goal validation and the control-loop invocation
- `client.py` - WebSocket bridge and logging setup
- `data_collector.py` - CSV logging of goals, commands and scans
- `plot_styles.py`, `visualization.py`, `plot_results.py` - Post-run plots

## Quick Start

```python
from carrot_control import CarrotController, PoseStamped

controller = CarrotController()
command = controller.move_to_goal(PoseStamped.from_xy_yaw(1.0, 0.5, 0.3))
```

Or use the command-line interface:
```bash
python -m carrot_control --uri ws://localhost:8765 --param max_vel_translation=0.3
```
"""

__version__ = "0.1.0"

from .angular_profiler import AngularVelocityProfiler, ProfilePhase
from .controller import CarrotController
from .data_collector import DataCollector
from .linear_profiler import LinearBranch, LinearVelocityProfiler
from .model import (
    CarrotMarker,
    FrameMismatchError,
    Goal,
    Limits,
    PoseStamped,
    RangeScan,
    VelocityCommand,
)
from .safety_gate import SafetyGate
from .scan_buffer import RangeScanBuffer

__all__ = [
    "AngularVelocityProfiler",
    "CarrotController",
    "CarrotMarker",
    "DataCollector",
    "FrameMismatchError",
    "Goal",
    "Limits",
    "LinearBranch",
    "LinearVelocityProfiler",
    "PoseStamped",
    "ProfilePhase",
    "RangeScan",
    "RangeScanBuffer",
    "SafetyGate",
    "VelocityCommand",
]
