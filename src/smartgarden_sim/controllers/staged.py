"""Staged (multi-stage) controller implementation."""

from __future__ import annotations

from dataclasses import dataclass

from smartgarden_sim.core.base import Controller
from smartgarden_sim.core.registry import register_component


@dataclass(frozen=True)
class Stage:
    """A single stage in a staged controller.

    Attributes:
        threshold: The stage is active when the process value exceeds this.
        output: Output value when this stage is active.
    """

    threshold: float
    output: float


@register_component("controller", "staged")
class StagedController(Controller):
    """Multi-stage controller selecting an output level from thresholds.

    The highest stage whose threshold the process value strictly exceeds
    wins; below every threshold the base output applies.

    Example: thermal power from a temperature error
    - error <= 5: base output 1 (LOW)
    - error > 5: 2 (MEDIUM)
    - error > 10: 3 (HIGH)

    Attributes:
        stages: Stages sorted by threshold.
        base_output: Output when no stage is active.
        hysteresis: Margin a value must drop below an active stage's
            threshold before that stage releases.
    """

    def __init__(
        self,
        name: str,
        *,
        stages: list[tuple[float, float]] | None = None,
        base_output: float = 0.0,
        hysteresis: float = 0.0,
        enabled: bool = True,
    ) -> None:
        """Initialize staged controller.

        Args:
            name: Identifier.
            stages: (threshold, output) tuples in any order.
            base_output: Output when no stage threshold is exceeded.
            hysteresis: Release margin for active stages.
            enabled: Whether controller is active.
        """
        super().__init__(name, enabled=enabled)
        self._base_output = base_output
        self._hysteresis = hysteresis
        self._current_stage: int = -1  # -1 = base level
        self._stages = sorted(
            (Stage(threshold=t, output=o) for t, o in stages or []),
            key=lambda s: s.threshold,
        )
        self._output = base_output

    @property
    def stages(self) -> list[Stage]:
        return list(self._stages)

    @property
    def current_stage(self) -> int:
        """Index of the active stage (-1 = base level)."""
        return self._current_stage

    @property
    def base_output(self) -> float:
        return self._base_output

    def compute(self, process_value: float) -> float:
        """Compute the staged output for a process value.

        Args:
            process_value: Current measured value.

        Returns:
            Output of the active stage, or the base output.
        """
        new_stage = -1
        for i, stage in enumerate(self._stages):
            threshold = stage.threshold
            if self._current_stage >= i:
                threshold -= self._hysteresis
            if process_value > threshold:
                new_stage = i

        self._current_stage = new_stage
        self._output = (
            self._stages[new_stage].output if new_stage >= 0 else self._base_output
        )
        return self._output

    def reset(self) -> None:
        """Reset controller to the base level."""
        super().reset()
        self._current_stage = -1
        self._output = self._base_output
