"""
Digit sequences - extraction from venue prices and loading from disk.
"""
from __future__ import annotations

import json
import math
import re
from pathlib import Path
from typing import Any, Iterable, Optional, Sequence

from loguru import logger

from digitlab.utils.exceptions import DataLoadError

_TOKEN_SPLIT = re.compile(r"[,;\s]+")


def last_digit(price: float, pip_size: int) -> int:
    """Last significant digit of ``price`` rounded to ``pip_size`` decimals."""
    if pip_size < 0:
        raise DataLoadError(f"pip_size must be non-negative, got {pip_size}")
    if not math.isfinite(price):
        raise DataLoadError(f"price must be finite, got {price}")
    return int(f"{price:.{pip_size}f}"[-1])


def digits_from_prices(prices: Iterable[float], pip_size: int) -> tuple[int, ...]:
    return tuple(last_digit(float(price), pip_size) for price in prices)


def validate_digits(values: Iterable[Any], source: str = "") -> tuple[int, ...]:
    """Return ``values`` as a tuple of ints in [0, 9] or raise DataLoadError."""
    digits = []
    for index, value in enumerate(values):
        if isinstance(value, bool) or not isinstance(value, int):
            raise DataLoadError(
                f"value at index {index} is not an integer digit: {value!r}", source
            )
        if not 0 <= value <= 9:
            raise DataLoadError(f"digit at index {index} out of range [0, 9]: {value}", source)
        digits.append(value)
    return tuple(digits)


def load_digits(path: Path, pip_size: Optional[int] = None) -> tuple[int, ...]:
    """
    Load a digit sequence from a JSON, CSV or plain-text file.

    Accepted layouts:
    - JSON list of digits (or prices when ``pip_size`` is given)
    - JSON object with "digits", or "prices" plus an optional "pip_size"
    - CSV / text with one value per line or comma separated, optional header

    Args:
        path: File to read
        pip_size: Venue decimal precision; forces values to be read as prices

    Returns:
        Tuple of digits in [0, 9]
    """
    source = str(path)
    if not path.exists():
        raise DataLoadError("file not found", source)

    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise DataLoadError(f"cannot read file: {exc}", source) from exc

    if path.suffix.lower() == ".json":
        digits = _from_json(raw, pip_size, source)
    else:
        digits = _from_text(raw, pip_size, source)

    logger.info(f"Loaded {len(digits)} digits from {source}")
    return digits


def _from_json(raw: str, pip_size: Optional[int], source: str) -> tuple[int, ...]:
    try:
        payload = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise DataLoadError(
            f"invalid JSON: {exc.msg} (line {exc.lineno}, column {exc.colno})", source
        ) from exc

    if isinstance(payload, list):
        if pip_size is not None:
            return digits_from_prices(_as_floats(payload, source), pip_size)
        return validate_digits(payload, source)

    if isinstance(payload, dict):
        if "digits" in payload:
            return validate_digits(payload["digits"], source)
        if "prices" in payload:
            effective_pip = payload.get("pip_size", pip_size)
            if effective_pip is None:
                raise DataLoadError("price file needs a pip_size", source)
            return digits_from_prices(_as_floats(payload["prices"], source), int(effective_pip))

    raise DataLoadError("JSON root must be a list or an object with 'digits' or 'prices'", source)


def _from_text(raw: str, pip_size: Optional[int], source: str) -> tuple[int, ...]:
    tokens = [token for token in _TOKEN_SPLIT.split(raw.strip()) if token]
    if tokens and not _is_number(tokens[0]):
        tokens = tokens[1:]

    if pip_size is not None:
        return digits_from_prices(_as_floats(tokens, source), pip_size)

    values = []
    for token in tokens:
        try:
            values.append(int(token))
        except ValueError:
            raise DataLoadError(
                f"'{token}' is not a digit; pass pip_size to read prices", source
            ) from None
    return validate_digits(values, source)


def _as_floats(values: Sequence[Any], source: str) -> list[float]:
    try:
        prices = [float(value) for value in values]
    except (TypeError, ValueError) as exc:
        raise DataLoadError(f"non-numeric price: {exc}", source) from exc
    for index, price in enumerate(prices):
        if not math.isfinite(price):
            raise DataLoadError(f"price at index {index} is not finite: {price}", source)
    return prices


def _is_number(token: str) -> bool:
    try:
        float(token)
    except ValueError:
        return False
    return True
