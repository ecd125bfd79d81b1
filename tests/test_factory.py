"""
DefaultComponentFactory: constructor, property and method injection,
dependency resolution policy and lifecycle methods.
"""

from typing import Annotated, Dict, List, Optional
from unittest.mock import call
import asyncio
import logging

import pytest

from strix.decorators import Inject, component, inject, order, post_construct, pre_destroy
from strix.errors import ComponentConfigurationError, DIError
from strix.factory import (
    ComponentFactoryResolverSettings,
    ComponentFactorySettings,
    DefaultComponentFactory,
    unsupported_constant_resolver,
)
from strix.metadata import DependencyInfo, MethodInfoBuilder


class Dependency:
    pass


class OtherDependency:
    pass


# ============================================================================
# Instantiation
# ============================================================================

class TestConstructorInjection:

    @pytest.mark.asyncio
    async def test_simple_component(self, factory):
        @component
        class Simple:
            pass

        instance = await factory.new_instance(Simple)
        assert isinstance(instance, Simple)

    @pytest.mark.asyncio
    async def test_parameters_resolved_by_type(self, factory, resolvers):
        dependency, other = Dependency(), OtherDependency()
        resolvers.component.side_effect = lambda cls, name: {
            Dependency: dependency,
            OtherDependency: other,
        }[cls]

        @component
        class Sample:
            def __init__(self, dependency: Dependency, other: OtherDependency):
                self.dependency = dependency
                self.other = other

        instance = await factory.new_instance(Sample)

        assert instance.dependency is dependency
        assert instance.other is other
        resolvers.component.assert_has_awaits(
            [call(Dependency, None), call(OtherDependency, None)], any_order=True
        )

    @pytest.mark.asyncio
    async def test_named_parameter(self, factory, resolvers):
        @component
        class Sample:
            def __init__(self, dependency: Annotated[Dependency, Inject(name="primary")]):
                self.dependency = dependency

        await factory.new_instance(Sample)
        resolvers.component.assert_awaited_once_with(Dependency, "primary")

    @pytest.mark.asyncio
    async def test_inherited_constructor_metadata(self, factory, resolvers):
        class Base:
            @inject(dependency=Inject(name="primary"))
            def __init__(self, dependency: Dependency):
                self.dependency = dependency

        @component
        class Derived(Base):
            pass

        instance = await factory.new_instance(Derived)

        assert instance.dependency is resolvers.component.return_value
        resolvers.component.assert_awaited_once_with(Dependency, "primary")

    @pytest.mark.asyncio
    async def test_parameters_requested_concurrently(self, factory, resolvers):
        started = []
        both_started = asyncio.Event()

        async def resolve(cls, name):
            started.append(cls)
            if len(started) == 2:
                both_started.set()
            await both_started.wait()
            return cls()

        resolvers.component.side_effect = resolve

        @component
        class Sample:
            def __init__(self, dependency: Dependency, other: OtherDependency):
                self.dependency = dependency
                self.other = other

        instance = await asyncio.wait_for(factory.new_instance(Sample), timeout=1)

        assert isinstance(instance.dependency, Dependency)
        assert isinstance(instance.other, OtherDependency)

    @pytest.mark.asyncio
    async def test_positional_order_kept(self, factory, resolvers):
        async def resolve(cls, name):
            # First parameter completes last
            if cls is Dependency:
                await asyncio.sleep(0.01)
            return cls()

        resolvers.component.side_effect = resolve

        @component
        class Sample:
            def __init__(self, first: Dependency, second: OtherDependency):
                self.first = first
                self.second = second

        instance = await factory.new_instance(Sample)

        assert isinstance(instance.first, Dependency)
        assert isinstance(instance.second, OtherDependency)

    @pytest.mark.asyncio
    async def test_keyword_only_and_defaults(self, factory, resolvers):
        def resolve(cls, name):
            if cls is not Dependency:
                raise LookupError(cls)
            return Dependency()

        resolvers.component.side_effect = resolve

        @component
        class Sample:
            def __init__(self, *, dependency: Dependency, retries: int = 3, label="x"):
                self.dependency = dependency
                self.retries = retries
                self.label = label

        instance = await factory.new_instance(Sample)

        assert isinstance(instance.dependency, Dependency)
        assert instance.retries == 3
        assert instance.label == "x"

    @pytest.mark.asyncio
    async def test_default_fallback_is_logged(self, factory, resolvers, caplog):
        resolvers.component.side_effect = LookupError("two implementations")

        @component
        class Sample:
            def __init__(self, retries: int = 3):
                self.retries = retries

        with caplog.at_level(logging.WARNING, logger="strix.factory"):
            instance = await factory.new_instance(Sample)

        assert instance.retries == 3
        assert "Parameter 'retries' of" in caplog.text
        assert "falls back to its default: two implementations" in caplog.text

    @pytest.mark.asyncio
    async def test_unannotated_parameter(self, factory):
        @component
        class Sample:
            def __init__(self, dependency):
                pass

        with pytest.raises(
            ComponentConfigurationError,
            match="Missing type annotation for parameter 'dependency'",
        ):
            await factory.new_instance(Sample)

    @pytest.mark.asyncio
    async def test_unannotated_named_parameter(self, factory, resolvers):
        @component
        class Sample:
            @inject(dependency=Inject(name="primary"))
            def __init__(self, dependency):
                self.dependency = dependency

        await factory.new_instance(Sample)
        resolvers.component.assert_awaited_once_with(None, "primary")

    @pytest.mark.asyncio
    async def test_failure_propagates(self, factory, resolvers):
        resolvers.component.side_effect = LookupError("no such component")

        @component
        class Sample:
            def __init__(self, dependency: Dependency):
                pass

        with pytest.raises(LookupError, match="no such component"):
            await factory.new_instance(Sample)


# ============================================================================
# Properties and methods
# ============================================================================

class TestMemberInjection:

    @pytest.mark.asyncio
    async def test_property_injection(self, factory, resolvers):
        @component
        class Sample:
            dependency: Dependency = Inject()
            named: OtherDependency = Inject(name="other")

        instance = await factory.new_instance(Sample)

        assert instance.dependency is resolvers.component.return_value
        assert instance.named is resolvers.component.return_value
        resolvers.component.assert_has_awaits([call(Dependency, None), call(OtherDependency, "other")])

    @pytest.mark.asyncio
    async def test_method_injection(self, factory, resolvers):
        @component
        class Sample:
            @inject
            def set_dependency(self, dependency: Dependency):
                self.dependency = dependency

            @inject
            async def set_other(self, other: Annotated[OtherDependency, Inject(name="other")]):
                self.other = other

        instance = await factory.new_instance(Sample)

        assert instance.dependency is resolvers.component.return_value
        assert instance.other is resolvers.component.return_value
        resolvers.component.assert_has_awaits([call(Dependency, None), call(OtherDependency, "other")])

    @pytest.mark.asyncio
    async def test_property_order(self, factory, resolvers):
        values = ["v0", "v1", "v2"]
        resolvers.component.side_effect = values

        @component
        class Sample:
            p0: Dependency = Inject(order=4)
            p1: Dependency = Inject(order=2)
            p2: Dependency = Inject(order=7)

        instance = await factory.new_instance(Sample)

        assert instance.p0 == "v1"
        assert instance.p1 == "v0"
        assert instance.p2 == "v2"

    @pytest.mark.asyncio
    async def test_method_order(self, factory, resolvers):
        values = ["v0", "v1", "v2"]
        resolvers.component.side_effect = values

        @component
        class Sample:
            @order(4)
            @inject
            def set_a(self, value: Dependency):
                self.a = value

            @order(2)
            @inject
            def set_b(self, value: Dependency):
                self.b = value

            @order(7)
            @inject
            def set_c(self, value: Dependency):
                self.c = value

        instance = await factory.new_instance(Sample)

        assert (instance.a, instance.b, instance.c) == ("v1", "v0", "v2")

    @pytest.mark.asyncio
    async def test_property_without_annotation(self, factory):
        @component
        class Sample:
            dependency = Inject()

        with pytest.raises(ComponentConfigurationError, match="Missing type annotation for property"):
            await factory.new_instance(Sample)


# ============================================================================
# Resolution policy
# ============================================================================

class TestResolveDependency:

    @pytest.mark.asyncio
    async def test_optional_scalar(self, factory, resolvers):
        resolvers.component.side_effect = LookupError("missing")

        @component
        class Sample:
            dependency: Dependency = Inject(optional=True)

            def __init__(self, other: Optional[OtherDependency]):
                self.other = other

        instance = await factory.new_instance(Sample)

        assert instance.dependency is None
        assert instance.other is None

    @pytest.mark.asyncio
    async def test_optional_collections(self, factory, resolvers):
        resolvers.array.side_effect = LookupError("missing")
        resolvers.map.side_effect = LookupError("missing")

        @component
        class Sample:
            @inject(
                items=Inject(optional=True),
                named=Inject(optional=True),
            )
            def wire(self, items: List[Dependency], named: Dict[str, Dependency]):
                self.items = items
                self.named = named

        instance = await factory.new_instance(Sample)

        assert instance.items == []
        assert instance.named == {}

    @pytest.mark.asyncio
    async def test_array_with_declared_element_class(self, factory, resolvers):
        resolvers.array.return_value = ["a", "b"]

        @component
        class Sample:
            items: list = Inject(element_class=Dependency)

        instance = await factory.new_instance(Sample)

        assert instance.items == ["a", "b"]
        resolvers.array.assert_awaited_once_with(Dependency)

    @pytest.mark.asyncio
    async def test_array_with_inferred_element_class(self, factory, resolvers):
        resolvers.array.return_value = ["a"]

        @component
        class Sample:
            def __init__(self, items: list[Dependency]):
                self.items = items

        instance = await factory.new_instance(Sample)

        assert instance.items == ["a"]
        resolvers.array.assert_awaited_once_with(Dependency)

    @pytest.mark.asyncio
    async def test_map(self, factory, resolvers):
        resolvers.map.return_value = {"dependency": "a"}

        @component
        class Sample:
            named: Dict[str, Dependency] = Inject()

        instance = await factory.new_instance(Sample)

        assert instance.named == {"dependency": "a"}
        resolvers.map.assert_awaited_once_with(Dependency)

    @pytest.mark.asyncio
    async def test_array_without_element_class(self, factory):
        with pytest.raises(
            ComponentConfigurationError,
            match=r"injected array parameter without any element class information",
        ):
            await factory.resolve_dependency(DependencyInfo(), list)

    @pytest.mark.asyncio
    async def test_map_without_element_class(self, factory):
        with pytest.raises(
            ComponentConfigurationError,
            match=r"injected map parameter without any element class information",
        ):
            await factory.resolve_dependency(None, dict)

    @pytest.mark.asyncio
    async def test_value_goes_to_constant_resolver(self, factory, resolvers):
        resolvers.constant.return_value = "postgres://"

        result = await factory.resolve_dependency(DependencyInfo(value="db.url"), str)

        assert result == "postgres://"
        resolvers.constant.assert_awaited_once_with("db.url", str)

    @pytest.mark.asyncio
    async def test_default_constant_resolver(self):
        with pytest.raises(DIError, match="Constant resolution is not implemented"):
            await unsupported_constant_resolver("db.url", str)

    @pytest.mark.asyncio
    async def test_explicit_declaration_beats_marker(self, factory, resolvers):
        @component
        class Sample:
            @inject(dependency=Inject(name="declared"))
            def __init__(self, dependency: Annotated[Dependency, Inject(name="marker")]):
                pass

        await factory.new_instance(Sample)
        resolvers.component.assert_awaited_once_with(Dependency, "declared")

    @pytest.mark.asyncio
    async def test_builder_declared_parameter(self, factory, resolvers):
        resolvers.component.side_effect = LookupError("missing")

        @component
        class Sample:
            def __init__(self, dependency: Dependency):
                self.dependency = dependency

        MethodInfoBuilder.of(Sample).optional(0)

        instance = await factory.new_instance(Sample)
        assert instance.dependency is None

    @pytest.mark.asyncio
    async def test_no_resolvers(self):
        factory = DefaultComponentFactory()

        @component
        class Sample:
            def __init__(self, dependency: Dependency):
                pass

        with pytest.raises(DIError, match="no dependency resolvers"):
            await factory.new_instance(Sample)

    def test_resolver_settings_store_callbacks(self):
        async def component_resolver(cls, name):
            return None

        async def array_resolver(cls):
            return []

        async def map_resolver(cls):
            return {}

        settings = ComponentFactoryResolverSettings(
            component=component_resolver,
            array=array_resolver,
            map=map_resolver,
        )

        assert settings.component is component_resolver
        assert settings.array is array_resolver
        assert settings.map is map_resolver
        assert settings.constant is unsupported_constant_resolver
        assert ComponentFactorySettings(resolvers=settings).resolvers is settings


# ============================================================================
# Hierarchies and lifecycle
# ============================================================================

class TestHierarchyAndLifecycle:

    @pytest.mark.asyncio
    async def test_base_first_and_post_construct_last(self, factory, resolvers):
        events = []
        resolvers.component.side_effect = lambda cls, name: cls()

        class Base:
            base_dependency: Dependency = Inject()

            @inject
            def wire_base(self, other: OtherDependency):
                events.append("base-method")

            @post_construct
            def base_ready(self):
                events.append(f"base-ready:{type(self.base_dependency).__name__}")

        @component
        class Derived(Base):
            @inject
            def wire_derived(self, other: OtherDependency):
                events.append("derived-method")

            @post_construct
            async def derived_ready(self):
                events.append("derived-ready")

        await factory.new_instance(Derived)

        assert events == [
            "base-method",
            "base-ready:Dependency",
            "derived-method",
            "derived-ready",
        ]

    @pytest.mark.asyncio
    async def test_each_level_calls_its_own_method(self, factory, resolvers):
        resolvers.component.side_effect = lambda cls, name: cls()

        class Base:
            @inject
            def set_dependency(self, dependency: Dependency):
                self.base_value = dependency

        @component
        class Derived(Base):
            @inject
            def set_dependency(self, dependency: OtherDependency):
                self.derived_value = dependency

        instance = await factory.new_instance(Derived)

        assert isinstance(instance.base_value, Dependency)
        assert isinstance(instance.derived_value, OtherDependency)

    @pytest.mark.asyncio
    async def test_lifecycle_order(self, factory):
        events = []

        @component
        class Sample:
            @order(2)
            @post_construct
            def second(self):
                events.append("second")

            @order(1)
            @post_construct
            def first(self):
                events.append("first")

        await factory.new_instance(Sample)
        assert events == ["first", "second"]

    @pytest.mark.asyncio
    async def test_destroy_instance(self, factory):
        events = []

        class Base:
            @pre_destroy
            def close_base(self):
                events.append("base")

        @component
        class Derived(Base):
            @pre_destroy
            async def close_derived(self):
                events.append("derived")

        instance = await factory.new_instance(Derived)
        assert events == []

        await factory.destroy_instance(instance)
        assert events == ["derived", "base"]
