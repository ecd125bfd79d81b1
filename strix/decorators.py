"""
Decorators and markers for declaring components.

Everything here only writes metadata through the builders; nothing is
registered anywhere until a context is told about the classes.

Example:
    @service
    class UserService:
        repo: UserRepository = Inject()

        def __init__(self, cache: Annotated[Cache, Inject(optional=True)]):
            self.cache = cache

        @post_construct
        async def warm_up(self):
            ...
"""

from dataclasses import dataclass
from typing import Any, Callable, List, Optional, Type, TypeVar, Union
import inspect

from .errors import ComponentConfigurationError
from .metadata import (
    ComponentInfoBuilder,
    Condition,
    ConfigurationRef,
    DependencyInfo,
    MethodInfoBuilder,
    PropertyInfoBuilder,
    ScopeType,
    Stereotype,
    get_parameter_names,
)


T = TypeVar("T")


@dataclass(unsafe_hash=True)
class Inject(DependencyInfo):
    """
    Injection marker.

    As a class attribute it declares an injected property; inside
    ``Annotated`` it describes a constructor or method parameter.

    Usage:
        class Handler:
            repo: UserRepo = Inject(name="primaryRepo")

            def __init__(self, plugins: Annotated[list[Plugin], Inject(optional=True)]):
                ...
    """

    def __set_name__(self, owner: type, name: str) -> None:
        self._attribute = name

        builder = PropertyInfoBuilder.of(owner, name).inject()
        if self.name is not None:
            builder.name(self.name)
        if self.value is not None:
            builder.value(self.value)
        if self.optional:
            builder.optional()
        if self.order is not None:
            builder.order(self.order)
        if self.element_class is not None:
            builder.element_class(self.element_class)

    def __get__(self, instance: Any, owner: type) -> Any:
        if instance is None:
            return self
        raise AttributeError(
            f"'{owner.__name__}' property '{getattr(self, '_attribute', '?')}' "
            f"has not been injected"
        )


# ============================================================================
# Member declarations
# ============================================================================

MethodCallback = Callable[[MethodInfoBuilder, Callable[..., Any]], None]


class _MethodDeclaration:
    """
    Holds a function and its pending metadata until the owner class exists.

    Once the class body has been executed, ``__set_name__`` records the
    metadata against the owner and puts the plain function back in place.
    """

    __slots__ = ("func", "callbacks")

    def __init__(self, func: Callable[..., Any]):
        self.func = func
        self.callbacks: List[MethodCallback] = []

    def __set_name__(self, owner: type, name: str) -> None:
        setattr(owner, name, self.func)

        # __init__ carries the constructor metadata
        builder = MethodInfoBuilder.of(owner, None if name == "__init__" else name)
        for callback in self.callbacks:
            callback(builder, self.func)


def _declare(
    func: Union[Callable[..., Any], _MethodDeclaration],
    callback: MethodCallback,
) -> _MethodDeclaration:
    declaration = func if isinstance(func, _MethodDeclaration) else _MethodDeclaration(func)
    declaration.callbacks.append(callback)
    return declaration


def _apply_parameter(builder: MethodInfoBuilder, index: int, marker: DependencyInfo) -> None:
    if marker.name is not None:
        builder.name(index, marker.name)
    if marker.value is not None:
        builder.value(index, marker.value)
    if marker.optional:
        builder.optional(index)
    if marker.order is not None:
        builder.order_param(index, marker.order)
    if marker.element_class is not None:
        builder.element_class(index, marker.element_class)


def inject(func: Optional[Callable[..., Any]] = None, /, **parameters: DependencyInfo) -> Any:
    """
    Mark a method as an injector, or describe constructor parameters.

    Keyword arguments map parameter names to ``Inject`` markers.

    Example:
        @inject
        def set_repository(self, repo: UserRepo): ...

        @inject(cache=Inject(optional=True))
        def __init__(self, cache: Cache): ...
    """
    def decorator(f: Any) -> _MethodDeclaration:
        target = f.func if isinstance(f, _MethodDeclaration) else f
        names = get_parameter_names(target)
        indexed = []
        for name, marker in parameters.items():
            if name not in names:
                raise ComponentConfigurationError(
                    f"{target.__qualname__} has no injectable parameter named '{name}'"
                )
            indexed.append((names.index(name), marker))

        def declare(builder: MethodInfoBuilder, _: Callable[..., Any]) -> None:
            builder.inject()
            for index, marker in indexed:
                _apply_parameter(builder, index, marker)

        return _declare(f, declare)

    if func is not None:
        return decorator(func)
    return decorator


def order(value: int) -> Callable[[Any], _MethodDeclaration]:
    """Set the position of an injector or lifecycle method."""
    def decorator(f: Any) -> _MethodDeclaration:
        return _declare(f, lambda builder, _: builder.order(value))
    return decorator


def post_construct(func: Any) -> _MethodDeclaration:
    """Call the method once every dependency has been injected."""
    return _declare(func, lambda builder, _: builder.post_construct())


def pre_destroy(func: Any) -> _MethodDeclaration:
    """Call the method when the owning context stops."""
    return _declare(func, lambda builder, _: builder.pre_destroy())


# ============================================================================
# Class declarations
# ============================================================================

def _stereotype(stereotype: Stereotype, target: Any = None, name: Optional[str] = None) -> Any:
    if inspect.isclass(target):
        ComponentInfoBuilder.of(target).stereotype(stereotype, name)
        return target

    component_name = target if target is not None else name

    def decorator(cls: Type[T]) -> Type[T]:
        ComponentInfoBuilder.of(cls).stereotype(stereotype, component_name)
        return cls

    return decorator


def component(target: Any = None, *, name: Optional[str] = None) -> Any:
    """
    Declare a class as a generic component.

    Usable bare or with an explicit registration name; without one the name
    is derived from the class name (``UserService`` -> ``userService``).

    Example:
        @component
        class Clock: ...

        @component("utcClock")
        class UtcClock(Clock): ...
    """
    return _stereotype(Stereotype.COMPONENT, target, name)


def configuration(target: Any = None, *, name: Optional[str] = None) -> Any:
    """Declare a configuration class (entry point for scans and imports)."""
    return _stereotype(Stereotype.CONFIGURATION, target, name)


def controller(target: Any = None, *, name: Optional[str] = None) -> Any:
    return _stereotype(Stereotype.CONTROLLER, target, name)


def repository(target: Any = None, *, name: Optional[str] = None) -> Any:
    return _stereotype(Stereotype.REPOSITORY, target, name)


def service(target: Any = None, *, name: Optional[str] = None) -> Any:
    return _stereotype(Stereotype.SERVICE, target, name)


def scope(value: Union[ScopeType, str]) -> Callable[[Type[T]], Type[T]]:
    """Set the lifetime of a component (singleton by default)."""
    def decorator(cls: Type[T]) -> Type[T]:
        ComponentInfoBuilder.of(cls).scope(ScopeType(value))
        return cls
    return decorator


def component_scan(*component_classes: type) -> Callable[[Type[T]], Type[T]]:
    """Register the given components along with the decorated configuration."""
    def decorator(cls: Type[T]) -> Type[T]:
        ComponentInfoBuilder.of(cls).component_scan(*component_classes)
        return cls
    return decorator


def imports(*configurations: ConfigurationRef) -> Callable[[Type[T]], Type[T]]:
    """
    Import other configurations.

    Entries may be configuration classes, awaitables resolving to one, or
    zero-argument callables returning either (lazy loading).
    """
    def decorator(cls: Type[T]) -> Type[T]:
        ComponentInfoBuilder.of(cls).imports(*configurations)
        return cls
    return decorator


def conditional(*conditions: Condition) -> Callable[[Type[T]], Type[T]]:
    """Only enable the component when every condition holds."""
    def decorator(cls: Type[T]) -> Type[T]:
        ComponentInfoBuilder.of(cls).conditional(*conditions)
        return cls
    return decorator


__all__ = [
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
]
