"""
Application context driven by configuration classes.
"""

from typing import Any, List
import asyncio
import inspect
import logging

from .context import DefaultApplicationContext
from .errors import ComponentConfigurationError
from .metadata import ConfigurationRef, Stereotype, get_component_info


logger = logging.getLogger("strix.context")


class AnnotationConfigApplicationContext(DefaultApplicationContext):
    """
    Context populated from configuration classes.

    Registering a configuration also registers the configurations it
    imports and the components it scans, transitively.

    Example:
        @configuration
        @component_scan(UserService, UserRepository)
        class AppConfiguration: ...

        context = AnnotationConfigApplicationContext()
        await context.register_configuration(AppConfiguration)
        await context.start()
    """

    def __init__(self, *args: Any, **kwargs: Any):
        super().__init__(*args, **kwargs)
        self._configurations: set = set()

    async def register_configuration(self, *configurations: ConfigurationRef) -> None:
        """
        Register configuration classes.

        Args:
            configurations: Configuration classes, awaitables resolving to
                one, or zero-argument callables returning either

        Raises:
            ComponentConfigurationError: If a class is not a configuration class
            ContextStateError: If the context is no longer initializing
        """
        for cls in await self._load_configurations(configurations):
            await self._register_configuration(cls)

    async def _load_configurations(self, configurations: tuple) -> List[type]:
        results = await asyncio.gather(
            *(self._load_configuration(ref) for ref in configurations),
            return_exceptions=True,
        )

        classes = []
        for ref, result in zip(configurations, results):
            if isinstance(result, BaseException):
                if self.settings.strict:
                    raise result
                logger.warning(f"Dropping configuration {ref!r} that failed to load: {result}")
                continue
            classes.append(result)

        return classes

    @staticmethod
    async def _load_configuration(ref: ConfigurationRef) -> type:
        if inspect.isclass(ref):
            return ref
        if callable(ref):
            ref = ref()
        if inspect.isawaitable(ref):
            ref = await ref
        return ref

    async def _register_configuration(self, cls: type) -> None:
        if not inspect.isclass(cls):
            raise ComponentConfigurationError(f"{cls!r} is not a configuration class")

        # Import cycles and diamonds
        if cls in self._configurations:
            return

        info = get_component_info(cls)
        if info is None or info.stereotype is None:
            raise ComponentConfigurationError(
                f"class {cls.__name__} cannot be used as a configuration class "
                f"as it lacks a @Configuration decorator",
                component=cls,
            )
        if info.stereotype is not Stereotype.CONFIGURATION:
            raise ComponentConfigurationError(
                f"class {cls.__name__} cannot be used as a configuration class "
                f"as it has a @{info.stereotype.value.capitalize()} decorator "
                f"instead of a @Configuration decorator",
                component=cls,
            )

        self._check_initializing(cls)
        self._configurations.add(cls)
        self._register(info.name, cls)
        logger.debug(f"Registered configuration {cls.__name__}")

        if info.imported_configurations:
            await self.register_configuration(*info.imported_configurations)

        for component_class in info.scanned_components:
            self.register_component_class(component_class)
