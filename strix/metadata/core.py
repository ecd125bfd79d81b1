"""
Metadata records attached to component classes and their members.

Records live in side-tables keyed by class (and member name), so declaring a
class as a component never touches its namespace. Lookups are strictly
per-class: an ancestor's records are not visible through a subclass, walking
the hierarchy is up to the caller.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import (
    TYPE_CHECKING,
    Any,
    Awaitable,
    Callable,
    Dict,
    List,
    Mapping,
    Optional,
    Tuple,
    Union,
)
import weakref

if TYPE_CHECKING:
    from ..registry import ComponentRegistry


class Stereotype(str, Enum):
    """Architectural role of a component."""

    COMPONENT = "component"
    CONFIGURATION = "configuration"
    CONTROLLER = "controller"
    REPOSITORY = "repository"
    SERVICE = "service"


class ScopeType(str, Enum):
    """Component lifetimes."""

    SINGLETON = "singleton"  # One instance per context
    PROTOTYPE = "prototype"  # New instance on every lookup


@dataclass
class DependencyInfo:
    """How a single injection point must be resolved."""

    name: Optional[str] = None
    value: Optional[str] = None
    optional: bool = False
    order: Optional[int] = None
    element_class: Optional[type] = None


@dataclass
class MethodParameterInfo(DependencyInfo):
    """Dependency information of one method (or constructor) parameter."""


@dataclass
class PropertyInfo(DependencyInfo):
    """Dependency information of one injected property."""


@dataclass
class MethodInfo:
    """Metadata of a method, or of the constructor pseudo-method."""

    # Sparse: index == parameter position, holes are None
    parameters: List[Optional[MethodParameterInfo]] = field(default_factory=list)
    post_construct: bool = False
    pre_destroy: bool = False
    order: Optional[int] = None

    def get_parameter(self, index: int) -> Optional[MethodParameterInfo]:
        if 0 <= index < len(self.parameters):
            return self.parameters[index]
        return None

    @property
    def is_lifecycle(self) -> bool:
        return self.post_construct or self.pre_destroy


@dataclass
class ConditionContext:
    """What a condition can inspect when deciding whether a component is enabled."""

    registry: "ComponentRegistry"
    properties: Mapping[str, Any] = field(default_factory=dict)


Condition = Callable[[ConditionContext, type], Union[bool, Awaitable[bool]]]

# A configuration reference: the class itself, an awaitable resolving to it,
# or a zero-argument callable returning either.
ConfigurationRef = Union[type, Awaitable[type], Callable[[], Any]]


@dataclass
class ComponentInfo:
    """Metadata of one class."""

    name: Optional[str] = None
    stereotype: Optional[Stereotype] = None
    scope: Optional[ScopeType] = None
    implementations: List[type] = field(default_factory=list)
    properties: List[str] = field(default_factory=list)
    conditions: List[Condition] = field(default_factory=list)
    imported_configurations: List[ConfigurationRef] = field(default_factory=list)
    scanned_components: List[type] = field(default_factory=list)

    @property
    def is_component(self) -> bool:
        return self.stereotype is not None


# Side-tables
_component_infos: "weakref.WeakKeyDictionary[type, ComponentInfo]" = weakref.WeakKeyDictionary()
_member_infos: "weakref.WeakKeyDictionary[type, Dict[Tuple[str, Optional[str]], Any]]" = (
    weakref.WeakKeyDictionary()
)

_METHOD = "method"
_PROPERTY = "property"


def get_component_info(cls: type) -> Optional[ComponentInfo]:
    """Get the component info declared on ``cls`` itself."""
    return _component_infos.get(cls)


def set_component_info(cls: type, info: ComponentInfo) -> None:
    _component_infos[cls] = info


def get_method_info(cls: type, method_name: Optional[str] = None) -> Optional[MethodInfo]:
    """
    Get method metadata.

    Args:
        cls: Class declaring the method
        method_name: Method name, ``None`` for the constructor

    Returns:
        MethodInfo or None if nothing was declared
    """
    return _member_infos.get(cls, {}).get((_METHOD, method_name))


def set_method_info(cls: type, method_name: Optional[str], info: MethodInfo) -> None:
    _member_infos.setdefault(cls, {})[(_METHOD, method_name)] = info


def get_property_info(cls: type, name: str) -> Optional[PropertyInfo]:
    return _member_infos.get(cls, {}).get((_PROPERTY, name))


def set_property_info(cls: type, name: str, info: PropertyInfo) -> None:
    _member_infos.setdefault(cls, {})[(_PROPERTY, name)] = info
