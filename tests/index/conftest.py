"""Shared fixtures for index tests."""

from __future__ import annotations

import pytest

from compnav.index._internal.indexing import ComponentIndexBuilder
from compnav.index._internal.parsing import TreeSitterParser


@pytest.fixture(scope="session")
def parser() -> TreeSitterParser:
    return TreeSitterParser()


@pytest.fixture
def builder(parser: TreeSitterParser) -> ComponentIndexBuilder:
    return ComponentIndexBuilder(parser)
