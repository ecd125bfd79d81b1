"""
Installed distribution metadata.
"""

from importlib import metadata
import re

import pytest

import strix


@pytest.fixture
def distribution():
    try:
        return metadata.distribution("strix")
    except metadata.PackageNotFoundError:
        pytest.skip("strix is not installed")


def test_install_requirements(distribution):
    requirements = {
        re.split(r"[<>=!~ ;\[]", requirement, maxsplit=1)[0].lower()
        for requirement in distribution.requires or []
        if "extra ==" not in requirement
    }

    assert {"pyyaml", "python-dotenv"} <= requirements


def test_version(distribution):
    assert distribution.version == strix.__version__
