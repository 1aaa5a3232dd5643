"""Bit sources supplying one bitstream per iteration.

A bit source hands out consecutive, non-overlapping bitstreams of a fixed
length ``n``.  Bitstream ``i`` always covers bits ``[i * n, (i + 1) * n)`` of
the underlying data, so the result does not depend on which worker thread
asks for it.  Bits are returned as read-only ``uint8`` numpy arrays holding
0/1 values.
"""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Literal, Protocol

import numpy as np

from .errors import InsufficientBitsError, InvalidInputError, MissingFileError

logger = logging.getLogger(__name__)

InputFormat = Literal["ascii", "binary"]

_ASCII_ZERO = ord("0")
_ASCII_ONE = ord("1")


class BitSource(Protocol):
    """Protocol implemented by every bit source."""

    bitstream_length: int

    def bitstream(self, index: int) -> np.ndarray:
        """Return the bits of bitstream ``index`` (0-based)."""

    def available_bitstreams(self) -> int:
        """Return how many complete bitstreams the source can supply."""


class SequenceBitSource:
    """Bit source backed by an in-memory sequence of 0/1 values."""

    def __init__(self, bits, bitstream_length: int) -> None:
        if bitstream_length <= 0:
            raise InvalidInputError("Bitstream length must be positive.")
        array = np.array(bits, dtype=np.uint8)
        if array.ndim != 1:
            raise InvalidInputError("Bits must be a one dimensional sequence.")
        if array.size and int(array.max()) > 1:
            raise InvalidInputError("Bits must only contain the values 0 and 1.")
        array.setflags(write=False)
        self._bits = array
        self.bitstream_length = bitstream_length

    def available_bitstreams(self) -> int:
        return self._bits.size // self.bitstream_length

    def bitstream(self, index: int) -> np.ndarray:
        return _slice_bitstream(self._bits, index, self.bitstream_length)


class FileBitSource:
    """Bit source reading a file of ASCII ``0``/``1`` characters or packed bytes.

    ASCII files may contain whitespace or other separators; only ``0`` and
    ``1`` characters are kept.  Binary files are unpacked most significant
    bit first.  The file is loaded on first use.
    """

    def __init__(self, path: Path | str, bitstream_length: int, *, fmt: InputFormat = "ascii") -> None:
        if bitstream_length <= 0:
            raise InvalidInputError("Bitstream length must be positive.")
        if fmt not in ("ascii", "binary"):
            raise InvalidInputError(f"Unsupported input format: {fmt}")
        self.path = Path(path).expanduser().resolve()
        if not self.path.exists():
            raise MissingFileError(f"Input file not found: {self.path}")
        self.bitstream_length = bitstream_length
        self.format = fmt
        self._bits: np.ndarray | None = None
        self._lock = threading.Lock()

    def available_bitstreams(self) -> int:
        return self._load().size // self.bitstream_length

    def bitstream(self, index: int) -> np.ndarray:
        return _slice_bitstream(self._load(), index, self.bitstream_length)

    def _load(self) -> np.ndarray:
        with self._lock:
            if self._bits is None:
                self._bits = self._read()
            return self._bits

    def _read(self) -> np.ndarray:
        try:
            raw = np.fromfile(self.path, dtype=np.uint8)
        except OSError as exc:  # pragma: no cover - filesystem guard
            raise MissingFileError(f"Could not read input file: {self.path}") from exc
        if self.format == "binary":
            bits = np.unpackbits(raw)
        else:
            digits = raw[(raw == _ASCII_ZERO) | (raw == _ASCII_ONE)]
            bits = (digits - _ASCII_ZERO).astype(np.uint8)
        if bits.size == 0:
            raise InvalidInputError(f"Input file '{self.path}' does not contain any bits.")
        logger.debug("loaded %d bits from %s (%s)", bits.size, self.path, self.format)
        bits.setflags(write=False)
        return bits


def open_bit_source(path: Path | str, bitstream_length: int, fmt: InputFormat = "ascii") -> FileBitSource:
    """Open ``path`` as a :class:`FileBitSource`."""

    return FileBitSource(path, bitstream_length, fmt=fmt)


def _slice_bitstream(bits: np.ndarray, index: int, length: int) -> np.ndarray:
    if index < 0:
        raise InvalidInputError(f"Bitstream index must be non-negative, got {index}.")
    start = index * length
    stop = start + length
    if stop > bits.size:
        raise InsufficientBitsError(
            f"Bitstream {index + 1} needs bits [{start}, {stop}) but only {bits.size} bits are available."
        )
    return bits[start:stop]


__all__ = [
    "BitSource",
    "FileBitSource",
    "InputFormat",
    "SequenceBitSource",
    "open_bit_source",
]
