"""Exceptions raised by the tracking pipeline.

Every per-tick failure derives from ``PipelineError`` so the control loop can
skip a tick without catching unrelated errors.
"""


class PipelineError(Exception):
    """A pipeline stage could not produce a usable result for this tick."""


class PreconditionError(PipelineError, ValueError):
    """Inputs violate a stage precondition; the tick must be skipped."""


class WaypointWindowError(PreconditionError):
    """The waypoint window would run past the end of the waypoint sequence."""


class FitDegreeError(PreconditionError):
    """Too few samples for the requested polynomial degree."""


class IllConditionedFitError(PipelineError):
    """The least-squares system is near-singular or produced non-finite values."""


class OptimizerError(PipelineError):
    """The optimizer failed or returned an unusable control vector."""
