"""
Strix - async-first dependency injection container.

Key Features:
- Components declared with stereotypes (component, configuration, controller,
  repository, service) and singleton or prototype scope
- Constructor, property and injector-method injection across class hierarchies
- Deterministic member ordering and post-construct / pre-destroy hooks
- Optional, named, collection (list) and named-map (dict) dependencies
- Configuration classes with component scans and (lazy) imports
- Cycle detection during concurrent singleton construction
"""

__version__ = "0.1.0"

from .metadata import (
    Stereotype,
    ScopeType,
    ComponentInfo,
    MethodInfo,
    MethodParameterInfo,
    PropertyInfo,
    DependencyInfo,
    ConditionContext,
    Condition,
    ComponentInfoBuilder,
    MethodInfoBuilder,
    PropertyInfoBuilder,
    get_component_info,
    get_method_info,
    get_property_info,
)

from .decorators import (
    Inject,
    inject,
    order,
    post_construct,
    pre_destroy,
    component,
    configuration,
    controller,
    repository,
    service,
    scope,
    component_scan,
    imports,
    conditional,
)

from .naming import build_component_name
from .ordering import OrderedElement, build_ordered_element_list

from .registry import ComponentRegistry, DefaultComponentRegistry

from .factory import (
    ComponentFactory,
    DefaultComponentFactory,
    ComponentFactorySettings,
    ComponentFactoryResolverSettings,
)

from .context import (
    ApplicationContext,
    ApplicationContextState,
    DefaultApplicationContext,
)
from .annotation import AnnotationConfigApplicationContext

from .config import ContextSettings, SettingsLoader, ConfigError

from .errors import (
    DIError,
    ComponentConfigurationError,
    ContextStateError,
    ComponentNotFoundError,
    ComponentTypeMismatchError,
    AmbiguousComponentError,
    DependencyCycleError,
)


__all__ = [
    # Metadata
    "Stereotype",
    "ScopeType",
    "ComponentInfo",
    "MethodInfo",
    "MethodParameterInfo",
    "PropertyInfo",
    "DependencyInfo",
    "ConditionContext",
    "Condition",
    "ComponentInfoBuilder",
    "MethodInfoBuilder",
    "PropertyInfoBuilder",
    "get_component_info",
    "get_method_info",
    "get_property_info",
    # Decorators
    "Inject",
    "inject",
    "order",
    "post_construct",
    "pre_destroy",
    "component",
    "configuration",
    "controller",
    "repository",
    "service",
    "scope",
    "component_scan",
    "imports",
    "conditional",
    # Utilities
    "build_component_name",
    "OrderedElement",
    "build_ordered_element_list",
    # Registry
    "ComponentRegistry",
    "DefaultComponentRegistry",
    # Factory
    "ComponentFactory",
    "DefaultComponentFactory",
    "ComponentFactorySettings",
    "ComponentFactoryResolverSettings",
    # Context
    "ApplicationContext",
    "ApplicationContextState",
    "DefaultApplicationContext",
    "AnnotationConfigApplicationContext",
    # Configuration
    "ContextSettings",
    "SettingsLoader",
    "ConfigError",
    # Errors
    "DIError",
    "ComponentConfigurationError",
    "ContextStateError",
    "ComponentNotFoundError",
    "ComponentTypeMismatchError",
    "AmbiguousComponentError",
    "DependencyCycleError",
]
