"""
Component metadata model.

Metadata is attached to classes and members at declaration time and read by
the registry, factory and context. Builders are the only write path.
"""

from .core import (
    Stereotype,
    ScopeType,
    DependencyInfo,
    MethodParameterInfo,
    PropertyInfo,
    MethodInfo,
    ComponentInfo,
    ConditionContext,
    Condition,
    ConfigurationRef,
    get_component_info,
    set_component_info,
    get_method_info,
    set_method_info,
    get_property_info,
    set_property_info,
)
from .builders import ComponentInfoBuilder, MethodInfoBuilder, PropertyInfoBuilder
from .types import (
    ParameterSpec,
    get_classes,
    get_ancestors,
    get_method_names,
    get_constructor_owner,
    get_parameters,
    get_parameter_names,
    get_property_type,
    is_array_type,
    is_map_type,
    element_class_of,
    unwrap_annotation,
)


__all__ = [
    # Enums
    "Stereotype",
    "ScopeType",
    # Records
    "DependencyInfo",
    "MethodParameterInfo",
    "PropertyInfo",
    "MethodInfo",
    "ComponentInfo",
    "ConditionContext",
    "Condition",
    "ConfigurationRef",
    # Side-tables
    "get_component_info",
    "set_component_info",
    "get_method_info",
    "set_method_info",
    "get_property_info",
    "set_property_info",
    # Builders
    "ComponentInfoBuilder",
    "MethodInfoBuilder",
    "PropertyInfoBuilder",
    # Reflection
    "ParameterSpec",
    "get_classes",
    "get_ancestors",
    "get_method_names",
    "get_constructor_owner",
    "get_parameters",
    "get_parameter_names",
    "get_property_type",
    "is_array_type",
    "is_map_type",
    "element_class_of",
    "unwrap_annotation",
]
