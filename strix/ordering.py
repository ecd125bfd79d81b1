"""
Deterministic ordering of injected members.
"""

from dataclasses import dataclass
from typing import Callable, Generic, Iterable, List, Optional, TypeVar
import math


T = TypeVar("T")


@dataclass(frozen=True)
class OrderedElement(Generic[T]):
    """A member name paired with its (possibly missing) metadata."""

    name: str
    info: Optional[T] = None

    @property
    def order(self) -> float:
        order = getattr(self.info, "order", None)
        return order if order is not None else math.inf


def build_ordered_element_list(
    names: Iterable[str],
    info_resolver: Callable[[str], Optional[T]],
) -> List[OrderedElement[T]]:
    """
    Build a sorted list of ordered elements.

    Elements sort by explicit order (unordered ones last), then by name so
    equal orders always produce the same sequence.

    Args:
        names: Member names
        info_resolver: Returns the metadata of a member, or None

    Returns:
        Ordered elements
    """
    elements = [OrderedElement(name, info_resolver(name)) for name in names]
    return sorted(elements, key=lambda element: (element.order, element.name))
