"""Conversion of optimizer output into drive-by-wire commands.

Steering is always published. Throttle and brake are mutually exclusive: a
strictly positive actuation value becomes a throttle percentage, anything else
becomes brake torque carrying the magnitude of the value.
"""

import logging
from typing import Union

from .channels import Publisher
from .messages import BrakeCmd, ControlCommand, SteeringCmd, ThrottleCmd


class CommandDispatcher:
    """Publishes exactly one steering and one of {throttle, brake} per command.

    Attributes:
        steering_publisher: Outbound steering channel.
        throttle_publisher: Outbound throttle channel.
        brake_publisher: Outbound brake channel.
    """

    def __init__(
        self,
        steering_publisher: Publisher[SteeringCmd],
        throttle_publisher: Publisher[ThrottleCmd],
        brake_publisher: Publisher[BrakeCmd],
    ) -> None:
        self.steering_publisher = steering_publisher
        self.throttle_publisher = throttle_publisher
        self.brake_publisher = brake_publisher

    @staticmethod
    def actuation_command(actuation: float) -> Union[ThrottleCmd, BrakeCmd]:
        """Map a signed actuation value to its pedal command.

        Args:
            actuation: Signed actuation from the optimizer.

        Returns:
            ThrottleCmd (percent) if actuation > 0, else BrakeCmd (torque)
            carrying abs(actuation).
        """
        if actuation > 0.0:
            return ThrottleCmd(pedal_cmd=actuation)
        return BrakeCmd(pedal_cmd=abs(actuation))

    def dispatch(self, command: ControlCommand) -> Union[ThrottleCmd, BrakeCmd]:
        """Publish steering plus the matching actuation command.

        Args:
            command: Validated control command for this tick.

        Returns:
            The throttle or brake command that was published.
        """
        self.steering_publisher.publish(SteeringCmd(steering_wheel_angle_cmd=command.steering))

        pedal = self.actuation_command(command.actuation)
        if isinstance(pedal, ThrottleCmd):
            self.throttle_publisher.publish(pedal)
        else:
            self.brake_publisher.publish(pedal)

        logging.debug(
            f"Dispatched steering={command.steering:+.4f} "
            f"{type(pedal).__name__}={pedal.pedal_cmd:.4f}"
        )
        return pedal
