"""Pest detection and treatment control loop.

Per tick the system may spawn a random harmful pest, lets every live pest
act on the plant below it, assesses each planted zone and schedules a
pesticide treatment for zones at HIGH or CRITICAL threat, then recomputes
zone infestation percentages.

Treatment is a two-phase protocol: detection schedules a pending treatment
that is applied once ``treatment_delay`` seconds have passed on the
system's clock. At most one treatment is pending per zone; further
detections for that zone are coalesced into it.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from enum import IntEnum
from typing import TYPE_CHECKING

import numpy as np

from smartgarden_sim.controllers.pests import HarmfulPest, Pest
from smartgarden_sim.core.base import ControlSystem
from smartgarden_sim.core.errors import InvalidCommandError
from smartgarden_sim.core.events import EventBus, EventType
from smartgarden_sim.core.registry import register_component
from smartgarden_sim.model.catalog import HARMFUL_PEST_TYPES

if TYPE_CHECKING:
    from numpy.random import Generator

    from smartgarden_sim.core.state import Position
    from smartgarden_sim.model.garden import Garden
    from smartgarden_sim.model.zone import Zone

logger = logging.getLogger(__name__)

DEFAULT_PESTICIDE_STOCK = 50
DEFAULT_SPAWN_PROBABILITY = 0.05
DEFAULT_TREATMENT_THRESHOLD = 30
DEFAULT_TREATMENT_DELAY = 3.0
CRITICAL_INFESTATION = 80
MEDIUM_INFESTATION = 40
TREATMENT_INFESTATION_DROP = 50
TREATMENT_ATTACK_REDUCTION = 5


class ThreatLevel(IntEnum):
    """Severity of a zone's infestation."""

    LOW = 0
    MEDIUM = 1
    HIGH = 2
    CRITICAL = 3

    @property
    def needs_treatment(self) -> bool:
        return self >= ThreatLevel.HIGH


@register_component("system", "pest_control")
class PestControlSystem(ControlSystem):
    """Pest spawning, damage, threat assessment and pesticide treatment.

    Attributes:
        pesticide_stock: Remaining treatments.
        pesticide_used: Treatments applied since construction.
        pests: Pests currently tracked (live ones only after each update).
        auto_spawn: Whether update() spawns random pests.
        treatment_threshold: Infestation percentage treated as HIGH.
        treatment_delay: Seconds between detection and treatment.
    """

    def __init__(
        self,
        name: str,
        garden: Garden,
        *,
        initial_stock: int = DEFAULT_PESTICIDE_STOCK,
        spawn_probability: float = DEFAULT_SPAWN_PROBABILITY,
        treatment_threshold: int = DEFAULT_TREATMENT_THRESHOLD,
        treatment_delay: float = DEFAULT_TREATMENT_DELAY,
        auto_spawn: bool = True,
        clock: Callable[[], float] | None = None,
        rng: Generator | None = None,
        seed: int | None = None,
        enabled: bool = True,
        event_bus: EventBus | None = None,
    ) -> None:
        """Initialize pest control.

        Args:
            name: Identifier.
            garden: Garden under protection.
            initial_stock: Starting pesticide treatments.
            spawn_probability: Chance per tick of a random pest.
            treatment_threshold: Infestation percentage counted as HIGH.
            treatment_delay: Seconds from detection to treatment; 0 treats
                immediately.
            auto_spawn: Whether update() spawns random pests.
            clock: Time source in seconds for pending treatments
                (time.monotonic if None).
            rng: Random generator for spawning.
            seed: Seed for a new generator when rng is None.
            enabled: Whether update() runs.
            event_bus: Bus for pest and treatment events.
        """
        super().__init__(name, garden, enabled=enabled, event_bus=event_bus)
        if initial_stock < 0:
            msg = f"initial_stock must be non-negative, got {initial_stock}"
            raise ValueError(msg)
        if not 0.0 <= spawn_probability <= 1.0:
            msg = f"spawn_probability {spawn_probability} outside valid range [0, 1]"
            raise ValueError(msg)
        if treatment_delay < 0:
            msg = f"treatment_delay must be non-negative, got {treatment_delay}"
            raise ValueError(msg)

        self.pesticide_stock = initial_stock
        self.pesticide_used = 0
        self.pests: list[Pest] = []
        self.auto_spawn = auto_spawn
        self.spawn_probability = spawn_probability
        self.treatment_threshold = treatment_threshold
        self.treatment_delay = treatment_delay
        self.total_spawned = 0
        self._clock = clock or time.monotonic
        self._rng = rng if rng is not None else np.random.default_rng(seed)
        self._pending: dict[int, float] = {}
        logger.info("Pest control initialized with %d treatments", initial_stock)

    @property
    def harmful_pest_count(self) -> int:
        """Live harmful pests in the garden."""
        return sum(1 for pest in self.pests if pest.alive and not pest.is_beneficial)

    @property
    def pending_treatments(self) -> dict[int, float]:
        """Zone id -> clock time at which its treatment is due."""
        return dict(self._pending)

    def set_clock(self, clock: Callable[[], float]) -> None:
        """Use clock (seconds) for pending treatment deadlines."""
        self._clock = clock

    def pests_at(self, position: Position) -> list[Pest]:
        """Live pests on a cell."""
        return [pest for pest in self.pests if pest.alive and pest.position == position]

    def live_harmful_in_zone(self, zone: Zone) -> int:
        return sum(
            1
            for pest in self.pests
            if pest.alive and not pest.is_beneficial and zone.contains(pest.position)
        )

    def update(self) -> None:
        """Run one pest control cycle."""
        if not self.enabled:
            return

        self.process_pending()
        if self.auto_spawn:
            self._maybe_spawn()
        self._apply_pest_damage()
        for zone in self._garden.zones.values():
            if zone.living_plant_count > 0:
                self.assess_and_treat(zone)
        self._update_infestation_levels()

    def _maybe_spawn(self) -> None:
        living = self._garden.living_plants()
        if not living or self._rng.random() >= self.spawn_probability:
            return
        plant = living[int(self._rng.integers(len(living)))]
        pest_type = HARMFUL_PEST_TYPES[int(self._rng.integers(len(HARMFUL_PEST_TYPES)))]
        pest = HarmfulPest(plant.position, pest_type)
        self.pests.append(pest)
        self.total_spawned += 1
        logger.info("%s appeared on %s at %s", pest_type, plant.name, plant.position)
        self._event_bus.emit_simple(
            EventType.PEST_SPAWNED,
            source=self.name,
            message=f"{pest_type} spawned at {plant.position}",
            pest_type=pest_type,
            position=plant.position,
        )

    def _apply_pest_damage(self) -> None:
        survivors: list[Pest] = []
        for pest in self.pests:
            if not pest.alive:
                continue
            plant = self._garden.get_plant(pest.position)
            if plant is None or plant.is_dead:
                pest.eliminate()
                continue
            pest.act_on(plant)
            survivors.append(pest)
        self.pests = survivors

    def assess_threat(self, zone: Zone) -> ThreatLevel:
        """Classify a zone's infestation.

        Live harmful pests make the zone at least HIGH; without any the
        infestation percentage decides.
        """
        live = self.live_harmful_in_zone(zone)
        infestation = zone.pest_infestation_level
        if live > 0:
            if infestation >= CRITICAL_INFESTATION or live >= 2:
                return ThreatLevel.CRITICAL
            return ThreatLevel.HIGH
        if infestation >= CRITICAL_INFESTATION:
            return ThreatLevel.CRITICAL
        if infestation >= self.treatment_threshold:
            return ThreatLevel.HIGH
        if infestation >= MEDIUM_INFESTATION:
            return ThreatLevel.MEDIUM
        return ThreatLevel.LOW

    def assess_and_treat(self, zone: Zone) -> ThreatLevel:
        """Assess a zone and schedule treatment if needed."""
        threat = self.assess_threat(zone)
        if threat.needs_treatment:
            self.schedule_treatment(zone, threat)
        return threat

    def schedule_treatment(self, zone: Zone, threat: ThreatLevel = ThreatLevel.HIGH) -> bool:
        """Schedule a deferred treatment for a zone.

        Returns:
            False if a treatment for the zone is already pending.
        """
        if zone.zone_id in self._pending:
            logger.debug("Treatment for zone %d already pending", zone.zone_id)
            return False

        if self.treatment_delay <= 0:
            logger.warning("%s threat in zone %d, treating now", threat.name, zone.zone_id)
            self.apply_treatment(zone)
            return True

        due = self._clock() + self.treatment_delay
        self._pending[zone.zone_id] = due
        logger.warning(
            "%s threat in zone %d, treatment in %.1fs",
            threat.name,
            zone.zone_id,
            self.treatment_delay,
        )
        self._event_bus.emit_simple(
            EventType.TREATMENT_SCHEDULED,
            source=self.name,
            message=f"Treatment scheduled for zone {zone.zone_id}",
            zone_id=zone.zone_id,
            threat=threat.name,
            due=due,
        )
        return True

    def process_pending(self) -> int:
        """Apply every pending treatment whose delay has elapsed.

        Returns:
            Number of treatments executed.
        """
        if not self._pending:
            return 0
        now = self._clock()
        due_zones = [zone_id for zone_id, due in self._pending.items() if now >= due]
        for zone_id in due_zones:
            del self._pending[zone_id]
            zone = self._garden.get_zone(zone_id)
            if zone is not None:
                self.apply_treatment(zone)
        return len(due_zones)

    def apply_treatment(self, zone: Zone) -> bool:
        """Spray a zone with pesticide.

        Eliminates the zone's live pests, reduces its plants' attack counts,
        lowers infestation by 50 and uses one unit of stock.

        Returns:
            False if the stock is empty.
        """
        self._pending.pop(zone.zone_id, None)
        if self.pesticide_stock <= 0:
            logger.error("Pesticide stock empty, zone %d not treated", zone.zone_id)
            self._event_bus.emit_simple(
                EventType.PESTICIDE_DEPLETED,
                source=self.name,
                message="Pesticide stock empty",
                zone_id=zone.zone_id,
            )
            return False

        eliminated = 0
        for pest in self.pests:
            if pest.alive and zone.contains(pest.position):
                pest.eliminate()
                eliminated += 1
        self.pests = [pest for pest in self.pests if pest.alive]

        for plant in zone.living_plants():
            plant.reduce_pest_attacks(TREATMENT_ATTACK_REDUCTION)
        zone.update_pest_level(-TREATMENT_INFESTATION_DROP)
        self.pesticide_stock -= 1
        self.pesticide_used += 1

        logger.info(
            "Zone %d treated: %d pests eliminated, %d treatments left",
            zone.zone_id,
            eliminated,
            self.pesticide_stock,
        )
        self._event_bus.emit_simple(
            EventType.TREATMENT_APPLIED,
            source=self.name,
            message=f"Zone {zone.zone_id} treated",
            zone_id=zone.zone_id,
            eliminated=eliminated,
            pesticide_stock=self.pesticide_stock,
        )
        return True

    def manual_treat(self, zone_id: int) -> bool:
        """Treat a zone immediately, bypassing threat assessment.

        Returns:
            False if the zone is unknown or the stock is empty.
        """
        zone = self._garden.get_zone(zone_id)
        if zone is None:
            logger.warning("Manual treatment requested for unknown zone %d", zone_id)
            return False
        logger.info("Manual treatment of zone %d", zone_id)
        return self.apply_treatment(zone)

    def register_pest(self, pest: Pest) -> bool:
        """Track an externally introduced pest and assess its zone.

        Returns:
            False if the pest is dead or off the grid.
        """
        if not pest.alive:
            return False
        zone = self._garden.zone_for_position(pest.position)
        if zone is None:
            logger.warning("Ignoring %s outside the garden at %s", pest.pest_type, pest.position)
            return False
        self.pests.append(pest)
        self.assess_and_treat(zone)
        return True

    def refill_pesticide(self, amount: int) -> None:
        """Add treatments to the stock.

        Raises:
            InvalidCommandError: If amount is not positive.
        """
        if amount <= 0:
            msg = f"Refill amount must be positive, got {amount}"
            raise InvalidCommandError(msg)
        self.pesticide_stock += amount
        logger.info("Pesticide refilled by %d to %d", amount, self.pesticide_stock)
        self._event_bus.emit_simple(
            EventType.PESTICIDE_REFILLED,
            source=self.name,
            message=f"Pesticide refilled by {amount}",
            amount=amount,
            pesticide_stock=self.pesticide_stock,
        )

    def _update_infestation_levels(self) -> None:
        for zone in self._garden.zones.values():
            living = zone.living_plant_count
            if living == 0:
                zone.set_pest_level(0)
                continue
            harmful = self.live_harmful_in_zone(zone)
            zone.set_pest_level(min(100, harmful * 100 // (living * 2)))

    def reset(self) -> None:
        self.pests.clear()
        self._pending.clear()
