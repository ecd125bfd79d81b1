"""
Container error types.

Messages are part of the public contract: callers (and tests) match on them,
so every error builds a stable, human-readable message.
"""

from typing import Any, Iterable, List, Optional


class DIError(Exception):
    """Base exception for container errors."""
    pass


class ComponentConfigurationError(DIError):
    """Invalid component metadata or registration request."""

    def __init__(self, message: str, component: Optional[type] = None):
        self.component = component
        super().__init__(message)


class ContextStateError(DIError):
    """Operation not allowed in the current context state."""

    def __init__(self, message: str, state: Any = None):
        self.state = state
        super().__init__(message)


class ComponentNotFoundError(DIError):
    """Requested component class or name is unknown to the context."""

    def __init__(
        self,
        message: str,
        component: Optional[type] = None,
        name: Optional[str] = None,
    ):
        self.component = component
        self.name = name
        super().__init__(message)


class ComponentTypeMismatchError(DIError):
    """Named component does not have the expected class."""

    def __init__(self, name: str, expected: type, actual: type):
        self.name = name
        self.expected = expected
        self.actual = actual

        msg = (
            f"component {name}'s type is not {expected.__name__} "
            f"(actual class: {actual.__name__})"
        )
        super().__init__(msg)


class AmbiguousComponentError(DIError):
    """Base class resolves to more than one implementation."""

    def __init__(self, component: type, implementations: Iterable[type]):
        self.component = component
        self.implementations: List[type] = list(implementations)

        names = ", ".join(impl.__name__ for impl in self.implementations)
        msg = (
            f"component class {component.__name__} has more than one "
            f"registered implementation: {names}"
        )
        super().__init__(msg)


class DependencyCycleError(DIError):
    """Circular dependency detected while building components."""

    def __init__(self, cycle: List[type]):
        self.cycle = cycle

        # Build error message
        msg = "Detected dependency cycle:"
        for i, cls in enumerate(cycle):
            arrow = " ->" if i < len(cycle) - 1 else ""
            msg += f"\n  {cls.__name__}{arrow}"

        msg += "\n\nSuggested fixes:"
        msg += "\n  - Inject the ApplicationContext and look one side up lazily"
        msg += "\n  - Extract an interface to decouple directionally"
        super().__init__(msg)


__all__ = [
    "DIError",
    "ComponentConfigurationError",
    "ContextStateError",
    "ComponentNotFoundError",
    "ComponentTypeMismatchError",
    "AmbiguousComponentError",
    "DependencyCycleError",
]
