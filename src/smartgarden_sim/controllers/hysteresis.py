"""Hysteresis (deadband) controller implementation."""

from __future__ import annotations

from smartgarden_sim.core.base import Controller
from smartgarden_sim.core.registry import register_component


@register_component("controller", "hysteresis")
class HysteresisController(Controller):
    """On/off controller with a deadband between two thresholds.

    Direct acting (heating): turns on when the process value falls below
    the lower threshold and off once it reaches the upper threshold.
    Reverse acting (cooling): turns on above the upper threshold and off
    once the value is back down at the lower threshold.

    Example: heating band 15-17 (setpoint=16, hysteresis=2)
    - ON when temperature < 15
    - stays ON at 15 and 16
    - OFF when temperature >= 17

    Attributes:
        hysteresis: Total deadband width.
        output_on: Output value when the controller is "on".
        output_off: Output value when the controller is "off".
    """

    def __init__(
        self,
        name: str,
        *,
        setpoint: float = 16.0,
        hysteresis: float = 2.0,
        output_on: float = 1.0,
        output_off: float = 0.0,
        reverse_acting: bool = False,
        enabled: bool = True,
    ) -> None:
        """Initialize hysteresis controller.

        Args:
            name: Identifier.
            setpoint: Centre of the deadband.
            hysteresis: Total deadband width (>= 0).
            output_on: Output value when active.
            output_off: Output value when inactive.
            reverse_acting: If True, turns on when the value is too high.
            enabled: Whether controller is active.
        """
        super().__init__(name, setpoint=setpoint, enabled=enabled)
        self._hysteresis = 0.0
        self.hysteresis = hysteresis
        self._output_on = output_on
        self._output_off = output_off
        self._reverse_acting = reverse_acting
        self._is_on: bool = False
        self._output = output_off

    @property
    def hysteresis(self) -> float:
        """Total deadband width."""
        return self._hysteresis

    @hysteresis.setter
    def hysteresis(self, value: float) -> None:
        if value < 0:
            msg = f"Hysteresis must be non-negative, got {value}"
            raise ValueError(msg)
        self._hysteresis = value

    @property
    def reverse_acting(self) -> bool:
        return self._reverse_acting

    @property
    def is_on(self) -> bool:
        """Whether controller is currently in "on" state."""
        return self._is_on

    @property
    def upper_threshold(self) -> float:
        """Upper threshold (setpoint + hysteresis/2)."""
        return self._setpoint + self._hysteresis / 2

    @property
    def lower_threshold(self) -> float:
        """Lower threshold (setpoint - hysteresis/2)."""
        return self._setpoint - self._hysteresis / 2

    def set_band(self, lower: float, upper: float) -> None:
        """Place the deadband between two thresholds.

        Raises:
            ValueError: If lower > upper.
        """
        if lower > upper:
            msg = f"Lower threshold ({lower}) cannot exceed upper threshold ({upper})"
            raise ValueError(msg)
        self._setpoint = (lower + upper) / 2
        self._hysteresis = upper - lower

    def compute(self, process_value: float) -> float:
        """Compute hysteresis control output.

        Args:
            process_value: Current measured value.

        Returns:
            Output value (output_on or output_off).
        """
        if self._reverse_acting:
            if process_value > self.upper_threshold:
                self._is_on = True
            elif process_value <= self.lower_threshold:
                self._is_on = False
        elif process_value < self.lower_threshold:
            self._is_on = True
        elif process_value >= self.upper_threshold:
            self._is_on = False

        self._output = self._output_on if self._is_on else self._output_off
        return self._output

    def force_off(self) -> None:
        """Switch off regardless of the process value."""
        self._is_on = False
        self._output = self._output_off

    def reset(self) -> None:
        """Reset controller to initial state."""
        super().reset()
        self.force_off()
