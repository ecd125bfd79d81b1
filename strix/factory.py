"""
Component factory - builds and initializes component instances.

The factory owns no lookup logic: every dependency is obtained through the
resolver callbacks it is configured with, which lets it run inside an
application context or stand-alone (tests, manual wiring).
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, fields, replace
from typing import (
    Any,
    Awaitable,
    Callable,
    Dict,
    Iterable,
    List,
    Optional,
    Tuple,
    Type,
    TypeVar,
)
import asyncio
import logging

from .errors import ComponentConfigurationError, DIError
from .injection import InjectionTarget, wait_for_result
from .metadata import (
    ComponentInfo,
    DependencyInfo,
    MethodInfo,
    MethodParameterInfo,
    ParameterSpec,
    PropertyInfo,
    element_class_of,
    get_classes,
    get_component_info,
    get_constructor_owner,
    get_method_info,
    get_method_names,
    get_parameters,
    get_property_info,
    get_property_type,
    is_array_type,
    is_map_type,
)
from .ordering import OrderedElement, build_ordered_element_list


logger = logging.getLogger("strix.factory")

T = TypeVar("T")

ComponentResolver = Callable[[Optional[type], Optional[str]], Awaitable[Any]]
ArrayResolver = Callable[[type], Awaitable[List[Any]]]
MapResolver = Callable[[type], Awaitable[Dict[str, Any]]]
ConstantResolver = Callable[[str, Optional[type]], Awaitable[Any]]


async def unsupported_constant_resolver(name: str, expected_class: Optional[type]) -> Any:
    raise DIError("Constant resolution is not implemented")


@dataclass
class ComponentFactoryResolverSettings:
    """Callbacks the factory uses to obtain dependencies."""

    component: ComponentResolver
    array: ArrayResolver
    map: MapResolver
    constant: ConstantResolver = unsupported_constant_resolver


@dataclass
class ComponentFactorySettings:
    resolvers: Optional[ComponentFactoryResolverSettings] = None


class ComponentFactory(ABC):
    """Creates fully injected component instances."""

    @abstractmethod
    async def new_instance(self, cls: Type[T]) -> T:
        """
        Build one instance of a class.

        Constructor parameters are resolved first, then properties and
        injector methods of every class level (base first), then
        post-construct methods are called.
        """

    @abstractmethod
    async def destroy_instance(self, instance: Any) -> None:
        """Call the pre-destroy methods of an instance."""


class DefaultComponentFactory(ComponentFactory):
    """
    Default factory implementation.

    Example:
        factory = DefaultComponentFactory(ComponentFactorySettings(
            resolvers=ComponentFactoryResolverSettings(
                component=resolve_component,
                array=resolve_array,
                map=resolve_map,
            )
        ))
        service = await factory.new_instance(UserService)
    """

    def __init__(self, settings: Optional[ComponentFactorySettings] = None):
        self.settings = settings or ComponentFactorySettings()

    @property
    def resolvers(self) -> ComponentFactoryResolverSettings:
        if self.settings.resolvers is None:
            raise DIError("no dependency resolvers have been configured for this component factory")
        return self.settings.resolvers

    async def new_instance(self, cls: Type[T]) -> T:
        logger.debug(f"Creating instance of {cls.__name__}")

        instance = await self._instantiate_component(cls)
        for target in self._build_injection_targets(cls, instance):
            await self._initialize_instance(target)

        return instance

    async def destroy_instance(self, instance: Any) -> None:
        # Descendants are torn down before their ancestors
        for target in reversed(self._build_injection_targets(type(instance), instance)):
            for element in self._get_ordered_methods(target.cls):
                if element.info.pre_destroy:
                    await wait_for_result(target.bind(element.name))

    async def resolve_dependency(
        self,
        dependency_info: Optional[DependencyInfo],
        required_class: Any,
    ) -> Any:
        """
        Resolve one injection point.

        Collections go to the array or map resolver (keyed by element class),
        values to the constant resolver and everything else to the component
        resolver. Failures of optional injection points give ``None``, or an
        empty collection for collection types.
        """
        info = dependency_info or DependencyInfo()
        try:
            return await self._do_resolve_dependency(info, required_class)
        except Exception as e:
            if not info.optional:
                raise
            logger.debug(f"Optional dependency {_describe(required_class, info)} not resolved: {e}")
            return self._build_unresolved_dependency(required_class)

    async def _do_resolve_dependency(self, info: DependencyInfo, required_class: Any) -> Any:
        resolvers = self.resolvers

        if info.value is not None:
            return await resolvers.constant(info.value, required_class)

        if is_array_type(required_class):
            element_class = info.element_class or element_class_of(required_class)
            if element_class is None:
                raise ComponentConfigurationError(
                    "injected array parameter without any element class information "
                    "(missing element class declaration)"
                )
            return await resolvers.array(element_class)

        if is_map_type(required_class):
            element_class = info.element_class or element_class_of(required_class)
            if element_class is None:
                raise ComponentConfigurationError(
                    "injected map parameter without any element class information "
                    "(missing element class declaration)"
                )
            return await resolvers.map(element_class)

        return await resolvers.component(required_class, info.name)

    @staticmethod
    def _build_unresolved_dependency(required_class: Any) -> Any:
        if is_array_type(required_class):
            return []
        if is_map_type(required_class):
            return {}
        return None

    def _build_injection_targets(self, cls: type, instance: Any) -> List[InjectionTarget]:
        """Build one target per class level, base first."""
        targets = [
            InjectionTarget(klass, get_component_info(klass) or ComponentInfo(), instance)
            for klass in get_classes(cls)
        ]
        targets.reverse()
        return targets

    async def _instantiate_component(self, cls: Type[T]) -> T:
        owner = get_constructor_owner(cls)
        constructor_info = get_method_info(owner) if owner is not object else None

        args, kwargs = await self._resolve_parameters(cls, constructor_info, get_parameters(cls))
        return cls(*args, **kwargs)

    async def _initialize_instance(self, target: InjectionTarget) -> None:
        await self._inject_properties(target)

        methods = self._get_ordered_methods(target.cls)
        for element in methods:
            if not element.info.is_lifecycle:
                await self._inject_method(target, element.name, element.info)

        for element in methods:
            if element.info.post_construct:
                await wait_for_result(target.bind(element.name))

    async def _inject_properties(self, target: InjectionTarget) -> None:
        elements = build_ordered_element_list(
            target.info.properties,
            lambda name: get_property_info(target.cls, name),
        )

        # Sequential: later properties may rely on earlier ones
        for element in elements:
            property_class, optional = get_property_type(target.cls, element.name)
            info = element.info or PropertyInfo()
            if optional and not info.optional:
                info = replace(info, optional=True)

            if property_class is None and info.name is None and info.value is None:
                raise ComponentConfigurationError(
                    f"Missing type annotation for property '{element.name}' "
                    f"in {target.cls.__qualname__}",
                    component=target.cls,
                )

            value = await self.resolve_dependency(info, property_class)
            setattr(target.instance, element.name, value)

    async def _inject_method(self, target: InjectionTarget, method_name: str, method_info: MethodInfo) -> None:
        args, kwargs = await self._resolve_parameters(
            target.cls,
            method_info,
            get_parameters(target.cls, method_name),
        )
        await wait_for_result(target.bind(method_name), *args, **kwargs)

    def _get_ordered_methods(self, cls: type) -> List[OrderedElement[MethodInfo]]:
        """Get the methods of a class level that carry metadata, in order."""
        elements = build_ordered_element_list(
            get_method_names(cls),
            lambda name: get_method_info(cls, name),
        )
        return [element for element in elements if element.info is not None]

    async def _resolve_parameters(
        self,
        cls: type,
        method_info: Optional[MethodInfo],
        parameters: List[ParameterSpec],
    ) -> Tuple[List[Any], Dict[str, Any]]:
        """
        Resolve parameters concurrently.

        Every request is issued before any is awaited; the values are then
        assembled in declaration order.
        """
        values = await asyncio.gather(*(
            self._resolve_parameter(cls, method_info, parameter)
            for parameter in parameters
        ))

        args: List[Any] = []
        kwargs: Dict[str, Any] = {}
        for parameter, value in zip(parameters, values):
            if parameter.keyword_only:
                kwargs[parameter.name] = value
            else:
                args.append(value)

        return args, kwargs

    async def _resolve_parameter(
        self,
        cls: type,
        method_info: Optional[MethodInfo],
        parameter: ParameterSpec,
    ) -> Any:
        declared = method_info.get_parameter(parameter.index) if method_info else None
        info = _merge_dependency_info((*parameter.markers, declared))
        if parameter.optional:
            info.optional = True

        if parameter.annotation is None and info.name is None and info.value is None:
            if parameter.has_default:
                return parameter.default
            raise ComponentConfigurationError(
                f"Missing type annotation for parameter '{parameter.name}' in {cls.__qualname__}",
                component=cls,
            )

        try:
            return await self.resolve_dependency(info, parameter.annotation)
        except Exception as e:
            if not parameter.has_default:
                raise
            logger.warning(
                f"Parameter '{parameter.name}' of {cls.__qualname__} falls back to its default: {e}"
            )
            return parameter.default


def _merge_dependency_info(sources: Iterable[Optional[DependencyInfo]]) -> MethodParameterInfo:
    """Merge dependency declarations, later sources winning."""
    info = MethodParameterInfo()
    for source in sources:
        if source is None:
            continue
        for field in fields(DependencyInfo):
            value = getattr(source, field.name)
            if value is not None and value is not False:
                setattr(info, field.name, value)
    return info


def _describe(required_class: Any, info: DependencyInfo) -> str:
    if info.name is not None:
        return f"'{info.name}'"
    return getattr(required_class, "__name__", repr(required_class))
