from __future__ import annotations

import os
import random

import numpy as np
import pytest

from tiny_collage.graph.op_patterns import reset_op_patterns

DEFAULT_SEED = int(os.getenv("TINY_COLLAGE_SEED", "1234"))


def pytest_configure(config) -> None:  # pylint: disable=unused-argument
    random.seed(DEFAULT_SEED)
    np.random.seed(DEFAULT_SEED)

    try:
        import torch

        torch.manual_seed(DEFAULT_SEED)
    except ModuleNotFoundError:
        pass


@pytest.fixture(autouse=True)
def _restore_op_patterns():
    # Tests may register operators; keep the global table pristine.
    yield
    reset_op_patterns()
