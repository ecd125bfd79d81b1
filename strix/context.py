"""
Application context - registration, lifecycle and component lookup.

State machine:

    INITIALIZING -> STARTING -> STARTED -> STOPPING -> STOPPED

Classes can only be registered while initializing. ``start()`` builds every
singleton; lookups are allowed from STARTING on, since building a singleton
looks its own dependencies up through the context.
"""

from abc import ABC, abstractmethod
from collections import deque
from contextvars import ContextVar
from enum import Enum
from typing import Any, Dict, List, Optional, Set, Tuple, Type, TypeVar
import asyncio
import logging

from .config import ContextSettings
from .errors import (
    AmbiguousComponentError,
    ComponentConfigurationError,
    ComponentNotFoundError,
    ComponentTypeMismatchError,
    ContextStateError,
    DependencyCycleError,
)
from .factory import (
    ComponentFactory,
    ComponentFactoryResolverSettings,
    ComponentFactorySettings,
    DefaultComponentFactory,
)
from .injection import wait_for_result
from .metadata import ConditionContext, ScopeType, get_component_info
from .naming import build_component_name
from .registry import ComponentRegistry, DefaultComponentRegistry


logger = logging.getLogger("strix.context")

T = TypeVar("T")

# Classes being built by the current task, outermost first, tagged with the
# owning context
_construction_stack: ContextVar[Tuple[Tuple[int, type], ...]] = ContextVar(
    "strix_construction_stack", default=()
)

_PENDING = object()


class ApplicationContextState(str, Enum):
    """Application context lifecycle states."""

    INITIALIZING = "initializing"
    STARTING = "starting"
    STARTED = "started"
    STOPPING = "stopping"
    STOPPED = "stopped"


class ApplicationContext(ABC):
    """
    Container of registered components.

    Usable as an async context manager:

        async with context:
            service = await context.get_component(UserService)
    """

    @property
    @abstractmethod
    def state(self) -> ApplicationContextState:
        ...

    @abstractmethod
    def register_component_class(self, cls: type) -> None:
        ...

    @abstractmethod
    async def start(self) -> None:
        ...

    @abstractmethod
    async def stop(self) -> None:
        ...

    @abstractmethod
    async def get_component(self, cls: Type[T]) -> T:
        ...

    @abstractmethod
    async def get_component_by_name(self, name: str, cls: Optional[Type[T]] = None) -> T:
        ...

    @abstractmethod
    async def get_components(self, cls: Type[T]) -> List[T]:
        ...

    @abstractmethod
    async def get_named_components(self, cls: Type[T]) -> Dict[str, T]:
        ...

    async def __aenter__(self) -> "ApplicationContext":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.stop()


class DefaultApplicationContext(ApplicationContext):
    """
    Default application context.

    Args:
        settings: Context settings
        component_registry: Registry to use instead of a fresh one
        component_factory: Factory to use instead of the default one

    Example:
        context = DefaultApplicationContext()
        context.register_component_class(UserService)
        await context.start()
        service = await context.get_component(UserService)
    """

    def __init__(
        self,
        settings: Optional[ContextSettings] = None,
        component_registry: Optional[ComponentRegistry] = None,
        component_factory: Optional[ComponentFactory] = None,
    ):
        self.settings = settings or ContextSettings()
        self._state = ApplicationContextState.INITIALIZING
        self._registry = component_registry or DefaultComponentRegistry()

        if component_factory is None:
            resolvers = self.settings.resolvers or ComponentFactoryResolverSettings(
                component=self._resolve_component,
                array=self.get_components,
                map=self.get_named_components,
            )
            component_factory = DefaultComponentFactory(ComponentFactorySettings(resolvers=resolvers))
        self._factory = component_factory

        # Registration order, used as an ordered set
        self._registered: Dict[type, None] = {}
        self._disabled: Set[type] = set()

        # Singleton cache: class -> instance or _PENDING
        self._singletons: Dict[type, Any] = {}
        self._built: List[type] = []

        # In-flight singleton constructions, and what each one is blocked on
        self._constructing: Dict[type, asyncio.Future] = {}
        self._waits: Dict[type, Set[type]] = {}

    @property
    def state(self) -> ApplicationContextState:
        return self._state

    @property
    def component_registry(self) -> ComponentRegistry:
        return self._registry

    @property
    def component_factory(self) -> ComponentFactory:
        return self._factory

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def register_component_class(self, cls: type) -> None:
        """
        Register a component class.

        Raises:
            ContextStateError: If the context is no longer initializing
            ComponentConfigurationError: If the class carries no stereotype
        """
        self._check_initializing(cls)

        info = get_component_info(cls)
        if info is None or not info.is_component:
            raise ComponentConfigurationError(
                f"class {cls.__name__} does not appear to be a component",
                component=cls,
            )

        self._register(info.name, cls)
        if info.scope is None or info.scope is ScopeType.SINGLETON:
            self._singletons.setdefault(cls, _PENDING)

    def _check_initializing(self, cls: type) -> None:
        if self._state is not ApplicationContextState.INITIALIZING:
            raise ContextStateError(
                f"class {cls.__name__} cannot be registered after the context initialization phase",
                state=self._state,
            )

    def _register(self, name: Optional[str], cls: type) -> None:
        component_name = name if name is not None else build_component_name(cls)

        registered_name = self._registry.get_component_name(cls)
        if registered_name is not None and registered_name != component_name:
            self._report_conflict(
                f"component class {cls.__name__} is already registered as '{registered_name}'",
                cls,
            )

        registered_class = self._registry.get_component_class(component_name)
        if registered_class is not None and registered_class is not cls:
            self._report_conflict(
                f"component name '{component_name}' is already registered "
                f"for class {registered_class.__name__}",
                cls,
            )

        self._registry.register_component(name, cls)
        self._registered[cls] = None

    def _report_conflict(self, message: str, cls: type) -> None:
        if self.settings.strict:
            raise ComponentConfigurationError(message, component=cls)
        logger.warning(message)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Evaluate component conditions and build every singleton."""
        if self._state is not ApplicationContextState.INITIALIZING:
            raise ContextStateError(
                f"the context cannot be started from the {self._state.value} state",
                state=self._state,
            )

        logger.info("Starting application context")
        self._state = ApplicationContextState.STARTING

        await self._evaluate_conditions()

        for cls in list(self._singletons):
            if cls not in self._disabled:
                await self._get_singleton(cls)

        self._state = ApplicationContextState.STARTED
        logger.info(f"Application context started ({len(self._built)} singletons)")

    async def stop(self) -> None:
        """
        Stop the context.

        Pre-destroy methods of the built singletons run in reverse build
        order. Failures are logged and do not interrupt the shutdown.
        """
        if self._state in (ApplicationContextState.STOPPING, ApplicationContextState.STOPPED):
            logger.debug("Already stopped")
            return

        logger.info("Stopping application context")
        self._state = ApplicationContextState.STOPPING

        for cls in reversed(self._built):
            try:
                await self._factory.destroy_instance(self._singletons[cls])
            except Exception as e:
                logger.warning(f"Error while destroying component {cls.__name__}: {e}")

        self._state = ApplicationContextState.STOPPED
        logger.info("Application context stopped")

    async def _evaluate_conditions(self) -> None:
        condition_context = ConditionContext(self._registry, self.settings.properties)

        for cls in self._registered:
            info = get_component_info(cls)
            for condition in info.conditions if info else ():
                if not await wait_for_result(condition, condition_context, cls):
                    logger.info(f"Component {cls.__name__} disabled by its conditions")
                    self._disabled.add(cls)
                    break

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def _check_started(self, subject: str) -> None:
        if self._state not in (ApplicationContextState.STARTING, ApplicationContextState.STARTED):
            raise ContextStateError(
                f"unable to retrieve a {subject} component: the context is not started",
                state=self._state,
            )

    async def get_component(self, cls: Type[T]) -> T:
        """
        Get a component by class.

        A base class resolves to its single registered implementation.

        Raises:
            ContextStateError: If the context is not started
            ComponentNotFoundError: If the class is unknown or has no implementation
            AmbiguousComponentError: If the class has several implementations
        """
        self._check_started(cls.__name__)

        if cls is ApplicationContext:
            return self  # type: ignore[return-value]

        if not self._registry.contains_component_class(cls):
            raise ComponentNotFoundError(
                f"component class {cls.__name__} has not been registered in this context",
                component=cls,
            )

        if self._registry.get_component_name(cls) is not None:
            component_class = cls
        else:
            component_class = self._resolve_single_component_class(cls)

        return await self._do_get_component(component_class)

    async def get_component_by_name(self, name: str, cls: Optional[Type[T]] = None) -> T:
        """
        Get a component by name.

        Args:
            name: Component name
            cls: Expected class, compared by identity with the registered one
        """
        self._check_started(name)

        component_class = self._registry.get_component_class(name)
        if component_class is None:
            raise ComponentNotFoundError(
                f"component {name} has not been registered in this context",
                name=name,
            )
        if cls is not None and component_class is not cls:
            raise ComponentTypeMismatchError(name, cls, component_class)

        return await self._do_get_component(component_class)

    async def get_components(self, cls: Type[T]) -> List[T]:
        """Get an instance of every implementation of a class."""
        implementations = self._get_implementations(cls)
        if not implementations:
            raise ComponentNotFoundError(
                f"no implementation classes have been registered for class {cls.__name__}",
                component=cls,
            )

        return list(await asyncio.gather(*(
            self.get_component(implementation) for implementation in implementations
        )))

    async def get_named_components(self, cls: Type[T]) -> Dict[str, T]:
        """Get every implementation of a class, keyed by component name."""
        instances = await self.get_components(cls)
        return {
            self._registry.get_component_name(type(instance)): instance
            for instance in instances
        }

    async def _resolve_component(self, cls: Optional[type], name: Optional[str]) -> Any:
        """Component resolver wired into the factory."""
        if name is None:
            return await self.get_component(cls)

        instance = await self.get_component_by_name(name)
        # Named injection points may be typed with a base class
        if isinstance(cls, type) and not isinstance(instance, cls):
            raise ComponentTypeMismatchError(name, cls, type(instance))
        return instance

    def _get_implementations(self, cls: type) -> Tuple[type, ...]:
        return tuple(
            implementation
            for implementation in self._registry.resolve_component_class(cls)
            if implementation not in self._disabled
        )

    def _resolve_single_component_class(self, cls: type) -> type:
        implementations = self._get_implementations(cls)
        if not implementations:
            raise ComponentNotFoundError(
                f"no implementation classes have been registered for class {cls.__name__}",
                component=cls,
            )
        if len(implementations) > 1:
            raise AmbiguousComponentError(cls, implementations)
        return implementations[0]

    async def _do_get_component(self, cls: type) -> Any:
        if cls in self._disabled:
            raise ComponentNotFoundError(
                f"component class {cls.__name__} has been disabled by its conditions",
                component=cls,
            )

        info = get_component_info(cls)
        if info is not None and info.scope is ScopeType.PROTOTYPE:
            return await self._new_prototype(cls)
        return await self._get_singleton(cls)

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    def _current_stack(self) -> Tuple[type, ...]:
        owner = id(self)
        return tuple(cls for context_id, cls in _construction_stack.get() if context_id == owner)

    async def _construct(self, cls: type) -> Any:
        token = _construction_stack.set(_construction_stack.get() + ((id(self), cls),))
        try:
            return await self._factory.new_instance(cls)
        finally:
            _construction_stack.reset(token)

    async def _new_prototype(self, cls: type) -> Any:
        stack = self._current_stack()
        if cls in stack:
            raise DependencyCycleError([*stack[stack.index(cls):], cls])
        return await self._construct(cls)

    async def _get_singleton(self, cls: type) -> Any:
        instance = self._singletons.get(cls, _PENDING)
        if instance is not _PENDING:
            return instance

        stack = self._current_stack()
        if cls in stack:
            raise DependencyCycleError([*stack[stack.index(cls):], cls])

        future = self._constructing.get(cls)
        if future is None:
            return await self._build_singleton(cls, stack)

        # Another task is building it: waiting is only safe if that build
        # does not itself wait on something this task is building
        blocked = [klass for klass in stack if klass in self._constructing]
        path = self._find_wait_path(cls, set(blocked))
        if path is not None:
            raise DependencyCycleError([*stack[stack.index(path[-1]):], *path])

        for klass in blocked:
            self._waits.setdefault(klass, set()).add(cls)
        return await asyncio.shield(future)

    async def _build_singleton(self, cls: type, stack: Tuple[type, ...]) -> Any:
        future = asyncio.get_running_loop().create_future()
        self._constructing[cls] = future

        blocked = [klass for klass in stack if klass in self._constructing]
        if blocked:
            self._waits.setdefault(blocked[-1], set()).add(cls)

        try:
            instance = await self._construct(cls)
        except asyncio.CancelledError:
            future.cancel()
            raise
        except Exception as e:
            future.set_exception(e)
            # Mark as retrieved, the error propagates from here
            future.exception()
            raise
        else:
            self._singletons[cls] = instance
            self._built.append(cls)
            future.set_result(instance)
            logger.debug(f"Singleton {cls.__name__} created")
            return instance
        finally:
            del self._constructing[cls]
            self._waits.pop(cls, None)
            for waited in self._waits.values():
                waited.discard(cls)

    def _find_wait_path(self, start: type, goals: Set[type]) -> Optional[List[type]]:
        """Find a chain of waits leading from ``start`` to one of ``goals``."""
        queue = deque([[start]])
        seen = {start}

        while queue:
            path = queue.popleft()
            for nxt in self._waits.get(path[-1], ()):
                if nxt in goals:
                    return path + [nxt]
                if nxt not in seen:
                    seen.add(nxt)
                    queue.append(path + [nxt])

        return None
