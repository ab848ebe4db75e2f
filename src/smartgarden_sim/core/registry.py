"""Component registry for garden subsystems, sensors and actuators.

Classes register themselves at import time with @register_component and
are later looked up by (category, type) when an engine is assembled from
configuration.

Usage:
    @register_component("system", "watering")
    class WateringSystem(ControlSystem):
        ...

    registry = get_registry()
    watering = registry.create("system", "watering", name="watering", garden=garden)
"""

from __future__ import annotations

from collections import defaultdict
from typing import TYPE_CHECKING, Any, TypeVar

if TYPE_CHECKING:
    from smartgarden_sim.core.base import Component

T = TypeVar("T", bound="Component")

# Global registry instance
_registry: ComponentRegistry | None = None


class ComponentRegistry:
    """Registry mapping category -> type -> component class.

    Categories used by the package are "sensor", "actuator" and "system".
    """

    def __init__(self) -> None:
        """Initialize empty registry."""
        self._components: dict[str, dict[str, type[Component]]] = defaultdict(dict)

    def register(
        self,
        category: str,
        component_type: str,
        component_class: type[T],
    ) -> type[T]:
        """Register a component class.

        Args:
            category: Component category (e.g. "system").
            component_type: Type within the category (e.g. "watering").
            component_class: The class to register.

        Returns:
            The registered class (for use as decorator).

        Raises:
            ValueError: If a different class is already registered under
                the same category/type.
        """
        existing = self._components[category].get(component_type)
        # Re-registration of the same class name is allowed after module reloads
        if existing is not None and existing.__name__ != component_class.__name__:
            msg = (
                f"Component '{category}/{component_type}' already registered "
                f"as {existing.__name__}"
            )
            raise ValueError(msg)

        self._components[category][component_type] = component_class
        return component_class

    def get(self, category: str, component_type: str) -> type[Component]:
        """Get a registered component class.

        Args:
            category: Component category.
            component_type: Type within the category.

        Returns:
            The registered component class.

        Raises:
            KeyError: If nothing is registered under category/type.
        """
        if category not in self._components:
            msg = f"Unknown category: {category}"
            raise KeyError(msg)

        types = self._components[category]
        if component_type not in types:
            msg = (
                f"Unknown type '{component_type}' in category '{category}'. "
                f"Available: {sorted(types)}"
            )
            raise KeyError(msg)

        return types[component_type]

    def get_or_none(self, category: str, component_type: str) -> type[Component] | None:
        """Get a registered component class or None if not found."""
        try:
            return self.get(category, component_type)
        except KeyError:
            return None

    def list_types(self, category: str) -> list[str]:
        """List registered types in a category."""
        return sorted(self._components.get(category, {}))

    def list_all(self) -> dict[str, list[str]]:
        """List all registered components as category -> sorted types."""
        return {cat: sorted(types) for cat, types in self._components.items()}

    def create(
        self,
        category: str,
        component_type: str,
        name: str,
        **kwargs: Any,
    ) -> Component:
        """Instantiate a registered component.

        Args:
            category: Component category.
            component_type: Type within the category.
            name: Instance name passed to the constructor.
            **kwargs: Additional constructor arguments.

        Returns:
            New component instance.
        """
        component_class = self.get(category, component_type)
        return component_class(name=name, **kwargs)

    def clear(self) -> None:
        """Remove all registrations."""
        self._components.clear()


def get_registry() -> ComponentRegistry:
    """Get the global component registry, creating it on first call."""
    global _registry
    if _registry is None:
        _registry = ComponentRegistry()
    return _registry


def reset_registry() -> None:
    """Reset the global registry.

    Primarily useful for testing.
    """
    global _registry
    if _registry is not None:
        _registry.clear()
    _registry = None


def register_component(
    category: str,
    component_type: str,
) -> Any:
    """Decorator registering a component class under category/type.

    Args:
        category: Component category ("sensor", "actuator", "system").
        component_type: Type within the category.

    Returns:
        Decorator function that registers the class.
    """

    def decorator(cls: type[T]) -> type[T]:
        cls.registry_key = (category, component_type)  # type: ignore[attr-defined]
        return get_registry().register(category, component_type, cls)

    return decorator


def list_components() -> dict[str, list[str]]:
    """List all registered components."""
    return get_registry().list_all()
