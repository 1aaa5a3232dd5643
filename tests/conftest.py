"""Shared fixtures for the test-suite."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable

import numpy as np
import pytest

from stsrun.config import InputSection, OutputSection, RunSection, StsConfig
from stsrun.config import TestsSection as EnabledTests
from stsrun.tests.universal import MIN_BITSTREAM_LENGTH


@pytest.fixture
def make_config(tmp_path: Path) -> Callable[..., StsConfig]:
    """Build an in-memory configuration writing below ``tmp_path``."""

    def factory(**run_options) -> StsConfig:
        run_options.setdefault("bitstream_length", MIN_BITSTREAM_LENGTH)
        return StsConfig(
            run=RunSection(**run_options),
            tests=EnabledTests(enabled_tests=("universal",)),
            input=InputSection(),
            output=OutputSection(
                directory=tmp_path / "experiments",
                report_path=None,
                log_results=False,
                run_log_path=tmp_path / "logs" / "run_log.jsonl",
                run_log_format="jsonl",
                run_log_retention=None,
            ),
        )

    return factory


@pytest.fixture
def random_bits() -> Callable[[int], np.ndarray]:
    def factory(count: int, seed: int = 2024) -> np.ndarray:
        return np.random.default_rng(seed).integers(0, 2, size=count, dtype=np.uint8)

    return factory


@pytest.fixture(autouse=True)
def _reset_stsrun_logger():
    yield
    logger = logging.getLogger("stsrun")
    for handler in list(logger.handlers):
        if getattr(handler, "_stsrun_handler", False):
            logger.removeHandler(handler)
    logger.setLevel(logging.NOTSET)
