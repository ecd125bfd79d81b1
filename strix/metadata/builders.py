"""
Fluent builders used to populate the metadata side-tables.
"""

from typing import Optional
import inspect

from ..errors import ComponentConfigurationError
from .core import (
    ComponentInfo,
    Condition,
    ConfigurationRef,
    MethodInfo,
    MethodParameterInfo,
    PropertyInfo,
    ScopeType,
    Stereotype,
    get_component_info,
    get_method_info,
    get_property_info,
    set_component_info,
    set_method_info,
    set_property_info,
)
from .types import get_classes


class ComponentInfoBuilder:
    """
    Builds the ComponentInfo of a class.

    Creating a builder registers the class as an implementation of itself and
    of every ancestor, so base classes can later be resolved to their
    concrete components.

    Example:
        ComponentInfoBuilder.of(UserService).stereotype(Stereotype.SERVICE)
    """

    __slots__ = ("_cls", "_info")

    def __init__(self, cls: type):
        self._cls = cls
        self._info = self._get_or_create(cls)

        for klass in get_classes(cls):
            info = self._get_or_create(klass)
            if cls not in info.implementations:
                info.implementations.append(cls)

    @classmethod
    def of(cls, component_class: type) -> "ComponentInfoBuilder":
        return cls(component_class)

    @staticmethod
    def _get_or_create(klass: type) -> ComponentInfo:
        info = get_component_info(klass)
        if info is None:
            info = ComponentInfo()
            set_component_info(klass, info)
        return info

    @property
    def info(self) -> ComponentInfo:
        return self._info

    def stereotype(self, stereotype: Stereotype, name: Optional[str] = None) -> "ComponentInfoBuilder":
        self._info.stereotype = Stereotype(stereotype)
        if name is not None:
            self._info.name = name
        return self

    def name(self, name: str) -> "ComponentInfoBuilder":
        self._info.name = name
        return self

    def scope(self, scope: ScopeType) -> "ComponentInfoBuilder":
        self._info.scope = ScopeType(scope)
        return self

    def conditional(self, *conditions: Condition) -> "ComponentInfoBuilder":
        self._info.conditions.extend(conditions)
        return self

    def component_scan(self, *component_classes: type) -> "ComponentInfoBuilder":
        for component_class in component_classes:
            info = get_component_info(component_class)
            if info is None or not info.is_component:
                raise ComponentConfigurationError(
                    f"invalid component scan: class {component_class.__name__} "
                    f"is not a component class",
                    component=component_class,
                )
        self._info.scanned_components.extend(component_classes)
        return self

    def imports(self, *configurations: ConfigurationRef) -> "ComponentInfoBuilder":
        for configuration in configurations:
            # Awaitables and loader callables are validated when registered
            if not inspect.isclass(configuration):
                continue
            info = get_component_info(configuration)
            if info is None or info.stereotype is not Stereotype.CONFIGURATION:
                raise ComponentConfigurationError(
                    f"invalid import: class {configuration.__name__} "
                    f"is not a configuration class",
                    component=configuration,
                )
        self._info.imported_configurations.extend(configurations)
        return self

    def add_property(self, name: str) -> "ComponentInfoBuilder":
        if name not in self._info.properties:
            self._info.properties.append(name)
        return self


class MethodInfoBuilder:
    """
    Builds the MethodInfo of a method, or of the constructor when no method
    name is given.
    """

    __slots__ = ("_info",)

    def __init__(self, cls: type, method_name: Optional[str] = None):
        info = get_method_info(cls, method_name)
        if info is None:
            info = MethodInfo()
            set_method_info(cls, method_name, info)
        self._info = info

    @classmethod
    def of(cls, component_class: type, method_name: Optional[str] = None) -> "MethodInfoBuilder":
        return cls(component_class, method_name)

    @property
    def info(self) -> MethodInfo:
        return self._info

    def _parameter(self, index: int) -> MethodParameterInfo:
        parameters = self._info.parameters
        if len(parameters) <= index:
            parameters.extend([None] * (index + 1 - len(parameters)))
        if parameters[index] is None:
            parameters[index] = MethodParameterInfo()
        return parameters[index]

    def inject(self) -> "MethodInfoBuilder":
        # Having a MethodInfo at all is what marks the method as injected
        return self

    def post_construct(self) -> "MethodInfoBuilder":
        self._info.post_construct = True
        return self

    def pre_destroy(self) -> "MethodInfoBuilder":
        self._info.pre_destroy = True
        return self

    def order(self, order: int) -> "MethodInfoBuilder":
        self._info.order = order
        return self

    def name(self, index: int, name: str) -> "MethodInfoBuilder":
        self._parameter(index).name = name
        return self

    def value(self, index: int, value: str) -> "MethodInfoBuilder":
        self._parameter(index).value = value
        return self

    def optional(self, index: int, optional: bool = True) -> "MethodInfoBuilder":
        self._parameter(index).optional = optional
        return self

    def order_param(self, index: int, order: int) -> "MethodInfoBuilder":
        self._parameter(index).order = order
        return self

    def element_class(self, index: int, element_class: type) -> "MethodInfoBuilder":
        self._parameter(index).element_class = element_class
        return self


class PropertyInfoBuilder:
    """Builds the PropertyInfo of an injected property."""

    __slots__ = ("_cls", "_name", "_info")

    def __init__(self, cls: type, name: str):
        info = get_property_info(cls, name)
        if info is None:
            info = PropertyInfo()
            set_property_info(cls, name, info)
        self._cls = cls
        self._name = name
        self._info = info

    @classmethod
    def of(cls, component_class: type, name: str) -> "PropertyInfoBuilder":
        return cls(component_class, name)

    @property
    def info(self) -> PropertyInfo:
        return self._info

    def inject(self) -> "PropertyInfoBuilder":
        ComponentInfoBuilder.of(self._cls).add_property(self._name)
        return self

    def name(self, name: str) -> "PropertyInfoBuilder":
        self._info.name = name
        return self

    def value(self, value: str) -> "PropertyInfoBuilder":
        self._info.value = value
        return self

    def optional(self, optional: bool = True) -> "PropertyInfoBuilder":
        self._info.optional = optional
        return self

    def order(self, order: int) -> "PropertyInfoBuilder":
        self._info.order = order
        return self

    def element_class(self, element_class: type) -> "PropertyInfoBuilder":
        self._info.element_class = element_class
        return self
