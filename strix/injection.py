"""
Injection targets and invocation helpers used by the component factory.
"""

from dataclasses import dataclass
from typing import Any, Callable, Generic, TypeVar
import inspect

from .metadata import ComponentInfo


T = TypeVar("T")


@dataclass(frozen=True)
class InjectionTarget(Generic[T]):
    """
    One level of an instance's class hierarchy.

    ``cls`` is the level being processed, ``info`` its own metadata and
    ``instance`` the object under construction.
    """

    cls: type
    info: ComponentInfo
    instance: T

    def bind(self, method_name: str) -> Callable[..., Any]:
        """
        Bind the method defined at this level to the instance.

        The level's own function is used, not the most-derived override, so
        each level receives the arguments its own metadata describes.
        """
        func = vars(self.cls)[method_name]
        return func.__get__(self.instance, type(self.instance))


async def wait_for_result(func: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
    """Call a sync or async callable and wait for its result."""
    result = func(*args, **kwargs)
    if inspect.isawaitable(result):
        result = await result
    return result
