"""
Shared test fixtures for the Strix test suite.
"""

from unittest.mock import AsyncMock, Mock

import pytest

from strix import (
    AnnotationConfigApplicationContext,
    ComponentFactoryResolverSettings,
    ComponentFactorySettings,
    DefaultApplicationContext,
    DefaultComponentFactory,
    DefaultComponentRegistry,
)


# ============================================================================
# Factory Helpers
# ============================================================================

@pytest.fixture
def resolvers():
    """Resolver callbacks backed by AsyncMocks."""
    return ComponentFactoryResolverSettings(
        component=AsyncMock(name="component"),
        array=AsyncMock(name="array"),
        map=AsyncMock(name="map"),
        constant=AsyncMock(name="constant"),
    )


@pytest.fixture
def factory(resolvers):
    """Factory wired to the mocked resolvers."""
    return DefaultComponentFactory(ComponentFactorySettings(resolvers=resolvers))


# ============================================================================
# Context Helpers
# ============================================================================

@pytest.fixture
def registry():
    """Real registry wrapped in a Mock so calls can be counted."""
    return Mock(wraps=DefaultComponentRegistry())


@pytest.fixture
def context():
    return DefaultApplicationContext()


@pytest.fixture
def annotation_context(registry):
    return AnnotationConfigApplicationContext(component_registry=registry)
