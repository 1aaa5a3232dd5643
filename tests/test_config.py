"""Tests for configuration loading."""

from __future__ import annotations

import logging
from pathlib import Path

import pytest

from stsrun.config import RunSection, load_config
from stsrun.errors import InvalidConfigurationError, MissingFileError


def _write(tmp_path: Path, text: str) -> Path:
    path = tmp_path / "config.ini"
    path.write_text(text, encoding="utf-8")
    return path


def test_load_config_reads_every_section(tmp_path: Path) -> None:
    path = _write(
        tmp_path,
        """
[run]
bitstream_length = 387840
iterations = 4
threads = 2  ; two workers
alpha = 0.05
uniformity_bins = 5
legacy_output = yes
write_results = no

[tests]
universal = true
frequency = false

[input]
format = Binary

[output]
directory = results
report_path = reports/run.md

[logging]
enabled = true
path = history.csv
format = csv
retention = 0
level = info
""",
    )

    config = load_config(path)

    assert config.run == RunSection(
        bitstream_length=387840,
        iterations=4,
        threads=2,
        alpha=0.05,
        uniformity_bins=5,
        legacy_output=True,
        write_results=False,
    )
    assert config.tests.enabled_tests == ("universal",)
    assert config.input.format == "binary"
    assert config.output.directory == (tmp_path / "results").resolve()
    assert config.output.report_path == (tmp_path / "reports" / "run.md").resolve()
    assert config.output.log_results is True
    assert config.output.run_log_path == (tmp_path / "history.csv").resolve()
    assert config.output.run_log_format == "csv"
    assert config.output.run_log_retention is None
    assert config.output.log_level == logging.INFO
    assert config.warnings == ()


def test_defaults_when_optional_sections_are_missing(tmp_path: Path) -> None:
    config = load_config(_write(tmp_path, "[tests]\nuniversal = 1\n"))

    assert config.run == RunSection()
    assert config.input.format == "ascii"
    assert config.output.directory == (tmp_path / "experiments").resolve()
    assert config.output.report_path is None
    assert config.output.log_results is False
    assert config.output.run_log_retention == 100
    assert config.warnings


def test_missing_file_raises(tmp_path: Path) -> None:
    with pytest.raises(MissingFileError):
        load_config(tmp_path / "absent.ini")


@pytest.mark.parametrize(
    "text",
    [
        "[run]\niterations = 2\n",
        "[tests]\nuniversal = false\n",
        "[tests]\nuniversal = maybe\n",
        "[run]\nalpha = 1.5\n[tests]\nuniversal = yes\n",
        "[run]\nthreads = 0\n[tests]\nuniversal = yes\n",
        "[run]\niterations = many\n[tests]\nuniversal = yes\n",
        "[input]\nformat = hex\n[tests]\nuniversal = yes\n",
        "[logging]\nformat = xml\n[tests]\nuniversal = yes\n",
        "[logging]\nlevel = chatty\n[tests]\nuniversal = yes\n",
        "not an ini file",
    ],
)
def test_invalid_configurations_are_rejected(tmp_path: Path, text: str) -> None:
    with pytest.raises(InvalidConfigurationError):
        load_config(_write(tmp_path, text))


def test_overrides_replace_run_values(tmp_path: Path) -> None:
    config = load_config(_write(tmp_path, "[run]\nthreads = 2\n[tests]\nuniversal = yes\n"))

    updated = config.with_overrides(threads=6, legacy_output=True)

    assert updated.run.threads == 6
    assert updated.run.legacy_output is True
    assert config.run.threads == 2
    assert config.with_overrides() == config
    with pytest.raises(InvalidConfigurationError):
        config.with_overrides(threads=0)
