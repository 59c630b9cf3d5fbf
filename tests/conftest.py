import sys

import pytest
from loguru import logger

from filegen.config import RunConfig


@pytest.fixture(autouse=True)
def reset_logger():
    logger.remove()
    logger.add(sys.stderr, level="DEBUG")
    yield
    logger.remove()


@pytest.fixture
def make_config(tmp_path):
    def make(**kwargs):
        params = dict(directory=str(tmp_path), seed=1, chunk_size=4096)
        params.update(kwargs)
        return RunConfig(**params)

    return make
