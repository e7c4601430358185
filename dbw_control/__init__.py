"""Drive-by-Wire Control - Trajectory Tracking Loop for Autonomous Vehicles

Produces steering and throttle/brake commands at a fixed rate from a rolling
window of reference waypoints, the vehicle pose and its velocity.

## Pipeline

Each Active tick runs:

### 1. Frame transform (transform.py)
Selects a window of waypoints starting at the one closest to the vehicle and
moves it into the vehicle frame (rotate by -psi, translate by -(px, py)).

### 2. Curve fit (polyfit.py)
Fits a cubic to the local points with a QR least-squares solve and rejects
ill-conditioned systems.

### 3. Error estimation (estimator.py)
Cross-track error is the constant coefficient; heading error is -atan(c1).

### 4. Latency compensation (model.py)
Projects the state through the actuation latency with a kinematic bicycle
model driven by the previous command.

### 5. Optimization and dispatch (optimizer.py, dispatcher.py)
An external optimizer returns [steering, actuation]; positive actuation is
published as throttle percent, anything else as brake torque.

## Modules

- `config.py` - Documented constants, `ControllerConfig`, YAML loading
- `channels.py` - Latest-value input channels and publisher interfaces
- `controller.py` - Fixed-rate loop with Idle/Active gating
- `client.py` - WebSocket transport and logging setup
- `data_collector.py` - CSV run recording
- `visualization.py`, `plot_results.py` - Run plots and CLI

## Quick Start

```bash
python -m dbw_control --uri ws://localhost:8765
python -m dbw_control.plot_results --latest
```
"""

__version__ = "0.1.0"

from .channels import CallbackPublisher, InputBuffer, Publisher, RecordingPublisher
from .config import ControllerConfig, load_config
from .controller import DbwController, LoopState
from .data_collector import DataCollector
from .dispatcher import CommandDispatcher
from .optimizer import FeedbackOptimizer, Optimizer

__all__ = [
    "ControllerConfig",
    "load_config",
    "DbwController",
    "LoopState",
    "CommandDispatcher",
    "Optimizer",
    "FeedbackOptimizer",
    "Publisher",
    "RecordingPublisher",
    "CallbackPublisher",
    "InputBuffer",
    "DataCollector",
]
