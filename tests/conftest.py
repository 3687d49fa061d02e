from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterator

import pytest

from tsgen.config import GeneratorOptions
from tsgen.metadata.memory import TypeGraphBuilder
from tsgen.storage import MemoryFileSystem


@pytest.fixture
def options() -> GeneratorOptions:
    """Options writing below `out/` with the file heading disabled."""
    return GeneratorOptions(output_dir=Path("out"), file_heading=None)


@pytest.fixture
def memory_fs() -> MemoryFileSystem:
    return MemoryFileSystem()


@pytest.fixture
def order_graph() -> TypeGraphBuilder:
    """shop.Order with `items: list[shop.OrderLine]`."""
    graph = TypeGraphBuilder()
    line = graph.add_class("shop.OrderLine").member("sku", graph.primitive("str"))
    graph.add_class("shop.Order").member("items", graph.list_of(line.ref))
    return graph


@pytest.fixture(autouse=True)
def _reset_tsgen_logger() -> Iterator[None]:
    """CLI runs attach handlers to the tsgen logger; detach them between tests."""
    yield
    logger = logging.getLogger("tsgen")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    logger.propagate = True
    logger.setLevel(logging.NOTSET)
