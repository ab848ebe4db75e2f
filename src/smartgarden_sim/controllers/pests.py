"""Pests living on garden cells: harmful pests and beneficial insects."""

from __future__ import annotations

import itertools
import logging
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

from smartgarden_sim.model.catalog import DEFAULT_PEST_DAMAGE, HARMFUL_PEST_DAMAGE

if TYPE_CHECKING:
    from smartgarden_sim.core.state import Position
    from smartgarden_sim.model.plant import Plant

logger = logging.getLogger(__name__)

DEFAULT_HARMFUL_TYPE = "Red Mite"
DEFAULT_BENEFICIAL_TYPE = "Honey Bee"
POLLINATION_BONUS = 2

_pest_ids = itertools.count(1)


class Pest(ABC):
    """A pest sitting on one garden cell until eliminated.

    Attributes:
        pest_id: Process-unique identifier.
        pest_type: Type name, e.g. "Red Mite".
        damage_rate: Damage rating derived from the type.
        position: Cell the pest occupies.
        alive: False once eliminated.
    """

    def __init__(self, pest_type: str, damage_rate: int, position: Position) -> None:
        self.pest_id = next(_pest_ids)
        self.pest_type = pest_type
        self.damage_rate = damage_rate
        self.position = position
        self.alive = True

    def __repr__(self) -> str:
        state = "alive" if self.alive else "eliminated"
        return f"{type(self).__name__}({self.pest_type!r}, {self.position}, {state})"

    @property
    @abstractmethod
    def is_beneficial(self) -> bool:
        """Whether the insect helps rather than harms plants."""

    @abstractmethod
    def act_on(self, plant: Plant) -> None:
        """Interact with the plant on the pest's cell."""

    def eliminate(self) -> None:
        if self.alive:
            self.alive = False
            logger.debug("%s at %s eliminated", self.pest_type, self.position)


class HarmfulPest(Pest):
    """A pest that attacks the plant on its cell every tick."""

    def __init__(self, position: Position, pest_type: str = DEFAULT_HARMFUL_TYPE) -> None:
        super().__init__(
            pest_type,
            HARMFUL_PEST_DAMAGE.get(pest_type, DEFAULT_PEST_DAMAGE),
            position,
        )

    @property
    def is_beneficial(self) -> bool:
        return False

    def cause_damage(self, plant: Plant) -> int:
        """Attack a plant.

        Returns:
            Health damage dealt.
        """
        if not self.alive or plant.is_dead:
            return 0
        return plant.pest_attack()

    def act_on(self, plant: Plant) -> None:
        self.cause_damage(plant)


class BeneficialInsect(Pest):
    """A pollinator that heals the plant on its cell."""

    def __init__(
        self,
        position: Position,
        insect_type: str = DEFAULT_BENEFICIAL_TYPE,
        *,
        pollination_bonus: int = POLLINATION_BONUS,
    ) -> None:
        super().__init__(insect_type, 0, position)
        self.pollination_bonus = pollination_bonus

    @property
    def is_beneficial(self) -> bool:
        return True

    def pollinate(self, plant: Plant) -> None:
        if self.alive and not plant.is_dead:
            plant.heal(self.pollination_bonus)

    def act_on(self, plant: Plant) -> None:
        self.pollinate(plant)
