"""
Component registry - name and hierarchy bookkeeping for one context.
"""

from abc import ABC, abstractmethod
from typing import Dict, Optional, Set, Tuple
import logging

from .metadata import get_classes
from .naming import build_component_name


logger = logging.getLogger("strix.registry")


class ComponentRegistry(ABC):
    """Maps component names to classes and base classes to implementations."""

    @abstractmethod
    def register_component(self, name: Optional[str], cls: type) -> None:
        """
        Register a component class.

        Args:
            name: Component name, derived from the class name when None
            cls: Component class
        """

    @abstractmethod
    def contains_component(self, name: str) -> bool:
        ...

    @abstractmethod
    def contains_component_class(self, cls: type) -> bool:
        ...

    @abstractmethod
    def get_component_class(self, name: str) -> Optional[type]:
        ...

    @abstractmethod
    def get_component_name(self, cls: type) -> Optional[str]:
        ...

    @abstractmethod
    def resolve_component_class(self, cls: type) -> Tuple[type, ...]:
        """Get the registered implementations of a class (empty when none)."""


class DefaultComponentRegistry(ComponentRegistry):
    """
    In-memory registry.

    Registering a class records it as an implementation of itself and of
    every ancestor, so any base class resolves to its concrete components.
    """

    __slots__ = (
        "_components_by_name",
        "_component_names_by_class",
        "_component_impls_by_class",
        "_component_classes",
    )

    def __init__(self):
        self._components_by_name: Dict[str, type] = {}
        self._component_names_by_class: Dict[type, str] = {}
        # Dict keys keep insertion order, used as ordered sets
        self._component_impls_by_class: Dict[type, Dict[type, None]] = {}
        self._component_classes: Set[type] = set()

    def register_component(self, name: Optional[str], cls: type) -> None:
        component_name = name if name is not None else build_component_name(cls)

        for klass in get_classes(cls):
            self._component_impls_by_class.setdefault(klass, {})[cls] = None
            self._component_classes.add(klass)

        previous_name = self._component_names_by_class.get(cls)
        if previous_name is not None and previous_name != component_name:
            logger.warning(
                f"Component class {cls.__name__} re-registered as '{component_name}' "
                f"(was '{previous_name}')"
            )
            self._components_by_name.pop(previous_name, None)

        previous_class = self._components_by_name.get(component_name)
        if previous_class is not None and previous_class is not cls:
            logger.warning(
                f"Component name '{component_name}' now refers to {cls.__name__} "
                f"(was {previous_class.__name__})"
            )
            self._component_names_by_class.pop(previous_class, None)

        self._components_by_name[component_name] = cls
        self._component_names_by_class[cls] = component_name
        logger.debug(f"Registered component {cls.__name__} as '{component_name}'")

    def contains_component(self, name: str) -> bool:
        return name in self._components_by_name

    def contains_component_class(self, cls: type) -> bool:
        return cls in self._component_classes

    def get_component_class(self, name: str) -> Optional[type]:
        return self._components_by_name.get(name)

    def get_component_name(self, cls: type) -> Optional[str]:
        return self._component_names_by_class.get(cls)

    def resolve_component_class(self, cls: type) -> Tuple[type, ...]:
        return tuple(self._component_impls_by_class.get(cls, ()))
