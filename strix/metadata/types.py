"""
Type utilities: class hierarchies, member discovery and annotation reflection.

Parameter and property types are read from regular Python annotations.
``Annotated[T, Inject(...)]`` carries per-parameter dependency markers and
``Optional[T]`` marks an injection point as optional.
"""

from dataclasses import dataclass
from typing import Annotated, Any, List, Optional, Tuple, Union, get_args, get_origin
import collections.abc
import inspect
import types
import typing

from ..errors import ComponentConfigurationError
from .core import DependencyInfo


_EXCLUDED_ANCESTORS = (object, typing.Generic, typing.Protocol)

_ARRAY_TYPES = (list, collections.abc.Sequence, collections.abc.MutableSequence)
_MAP_TYPES = (dict, collections.abc.Mapping, collections.abc.MutableMapping)


@dataclass(frozen=True)
class ParameterSpec:
    """One injectable parameter of a method or constructor."""

    index: int
    name: str
    annotation: Any = None
    optional: bool = False
    has_default: bool = False
    default: Any = None
    keyword_only: bool = False
    markers: Tuple[DependencyInfo, ...] = ()


def get_classes(cls: type) -> List[type]:
    """Get ``cls`` followed by its ancestors, in MRO order."""
    return [klass for klass in cls.__mro__ if klass not in _EXCLUDED_ANCESTORS]


def get_ancestors(cls: type) -> List[type]:
    return get_classes(cls)[1:]


def get_method_names(cls: type) -> List[str]:
    """
    Get the names of the methods defined by ``cls`` itself.

    Inherited methods and the constructor are not included.
    """
    return [
        name
        for name, member in vars(cls).items()
        if name != "__init__" and inspect.isfunction(member)
    ]


def get_constructor_owner(cls: type) -> type:
    """Get the class whose ``__init__`` builds instances of ``cls``."""
    for klass in cls.__mro__:
        if "__init__" in vars(klass):
            return klass
    return object


def is_array_type(annotation: Any) -> bool:
    return annotation in _ARRAY_TYPES or get_origin(annotation) in _ARRAY_TYPES


def is_map_type(annotation: Any) -> bool:
    return annotation in _MAP_TYPES or get_origin(annotation) in _MAP_TYPES


def element_class_of(annotation: Any) -> Optional[type]:
    """
    Get the element class of a parameterized collection annotation.

    ``list[Foo]`` and ``dict[str, Foo]`` both give ``Foo``.
    """
    args = get_args(annotation)
    if is_array_type(annotation) and len(args) == 1:
        element = args[0]
    elif is_map_type(annotation) and len(args) == 2:
        element = args[1]
    else:
        return None

    return element if inspect.isclass(element) else None


def unwrap_annotation(annotation: Any) -> Tuple[Any, bool, Tuple[DependencyInfo, ...]]:
    """
    Strip ``Annotated`` and ``Optional`` wrappers.

    Returns:
        Tuple of (bare annotation, optional flag, dependency markers)
    """
    optional = False
    markers: Tuple[DependencyInfo, ...] = ()

    while True:
        origin = get_origin(annotation)
        if origin is Annotated:
            base, *extras = get_args(annotation)
            markers += tuple(extra for extra in extras if isinstance(extra, DependencyInfo))
            annotation = base
        elif origin is Union or origin is types.UnionType:
            args = [arg for arg in get_args(annotation) if arg is not type(None)]
            if len(args) != 1:
                break
            optional = True
            annotation = args[0]
        else:
            break

    return annotation, optional, markers


def _is_injectable(position: int, param: inspect.Parameter) -> bool:
    if position == 0 and param.kind in (
        inspect.Parameter.POSITIONAL_ONLY,
        inspect.Parameter.POSITIONAL_OR_KEYWORD,
    ):
        # self
        return False
    return param.kind not in (inspect.Parameter.VAR_POSITIONAL, inspect.Parameter.VAR_KEYWORD)


def get_parameter_names(func: Any) -> List[str]:
    """Get the injectable parameter names of a function defined in a class body."""
    return [
        name
        for position, (name, param) in enumerate(inspect.signature(func).parameters.items())
        if _is_injectable(position, param)
    ]


def _get_type_hints(obj: Any) -> dict:
    try:
        return typing.get_type_hints(obj, include_extras=True)
    except Exception as e:
        raise ComponentConfigurationError(
            f"unable to resolve type annotations of {getattr(obj, '__qualname__', obj)}: {e}"
        ) from e


def get_parameters(cls: type, method_name: Optional[str] = None) -> List[ParameterSpec]:
    """
    Get the injectable parameters of a method.

    Args:
        cls: Class defining the method
        method_name: Method name, ``None`` for the constructor

    Returns:
        Parameters in declaration order, ``self`` and variadics excluded
    """
    if method_name is None:
        owner = get_constructor_owner(cls)
        if owner is object:
            return []
        func = vars(owner)["__init__"]
    else:
        func = vars(cls).get(method_name) or getattr(cls, method_name)

    signature = inspect.signature(func)
    hints = _get_type_hints(func)

    specs: List[ParameterSpec] = []
    for position, (name, param) in enumerate(signature.parameters.items()):
        if not _is_injectable(position, param):
            continue

        annotation = hints.get(name)
        annotation, optional, markers = unwrap_annotation(annotation)
        has_default = param.default is not inspect.Parameter.empty

        specs.append(ParameterSpec(
            index=len(specs),
            name=name,
            annotation=annotation,
            optional=optional,
            has_default=has_default,
            default=param.default if has_default else None,
            keyword_only=param.kind is inspect.Parameter.KEYWORD_ONLY,
            markers=markers,
        ))

    return specs


def get_property_type(cls: type, name: str) -> Tuple[Any, bool]:
    """
    Get the annotated type of a class-level property.

    Returns:
        Tuple of (type or None when unannotated, optional flag)
    """
    hints = _get_type_hints(cls)
    annotation, optional, _ = unwrap_annotation(hints.get(name))
    return annotation, optional
