"""Unit conversion and unit guessing for pressure, flow and time channels."""

import numpy as np

from ._logging import logger
from .constants import (
    CM_PER_M,
    FLOW_CM_PER_S_RANGE,
    FLOW_M_PER_S_RANGE,
    MMHG_TO_PASCAL,
    MS_PER_S,
    PRESSURE_MMHG_RANGE,
    PRESSURE_PASCAL_RANGE,
)
from .exceptions import UnitConversionError
from .types import Signal, Unit

# Multiply by the factor to go from the unit to its family's canonical unit
_TO_CANONICAL = {
    Unit.SECONDS: 1.0,
    Unit.MILLISECONDS: 1.0 / MS_PER_S,
    Unit.PASCAL: 1.0,
    Unit.MMHG: MMHG_TO_PASCAL,
    Unit.M_PER_S: 1.0,
    Unit.CM_PER_S: 1.0 / CM_PER_M,
}

CANONICAL_UNITS = (Unit.SECONDS, Unit.PASCAL, Unit.M_PER_S)


def conversion_factor(source: Unit, target: Unit) -> float:
    """Return the factor that converts values in ``source`` to ``target``.

    Args:
        source: Unit the values are currently in.
        target: Unit to convert to.

    Returns:
        Multiplicative factor.

    Raises:
        UnitConversionError: If the units measure different quantities.
    """
    if source.role != target.role:
        raise UnitConversionError(
            f"Cannot convert {source.value} to {target.value}: "
            f"{source.role.value} and {target.role.value} are different quantities"
        )
    return _TO_CANONICAL[source] / _TO_CANONICAL[target]


def convert(values: Signal, source: Unit, target: Unit) -> Signal:
    """Convert an array between two units of the same quantity.

    Examples:
        >>> convert(np.array([100.0]), Unit.CM_PER_S, Unit.M_PER_S)
        array([1.])
    """
    if source == target:
        return np.array(values, dtype=np.float64, copy=True)
    return np.asarray(values, dtype=np.float64) * conversion_factor(source, target)


def canonical_unit(unit: Unit) -> Unit:
    """Return the canonical unit (s, Pa or m/s) of the quantity ``unit`` measures."""
    for candidate in CANONICAL_UNITS:
        if candidate.role == unit.role:
            return candidate
    raise UnitConversionError(f"No canonical unit for {unit.value}")


def mmhg_to_pascal(values: Signal) -> Signal:
    return convert(values, Unit.MMHG, Unit.PASCAL)


def pascal_to_mmhg(values: Signal) -> Signal:
    return convert(values, Unit.PASCAL, Unit.MMHG)


def _majority_in_range(values: Signal, low: float, high: float) -> bool:
    nonzero = values[values != 0]
    if nonzero.size == 0:
        return False
    in_range = np.count_nonzero((nonzero >= low) & (nonzero <= high))
    return in_range > nonzero.size / 2


def guess_pressure_unit(values: Signal) -> Unit | None:
    """Guess whether a pressure trace is in mmHg or pascals.

    The guess is made from the share of non-zero samples lying in a
    physiological range for each unit.

    Args:
        values: Pressure samples.

    Returns:
        ``Unit.MMHG``, ``Unit.PASCAL`` or None if neither range holds the
        majority of samples.
    """
    values = np.asarray(values, dtype=np.float64)
    if _majority_in_range(values, *PRESSURE_MMHG_RANGE):
        return Unit.MMHG
    if _majority_in_range(values, *PRESSURE_PASCAL_RANGE):
        return Unit.PASCAL
    logger.warning("Could not determine pressure unit from data range")
    return None


def guess_flow_unit(values: Signal) -> Unit | None:
    """Guess whether a flow velocity trace is in m/s or cm/s.

    Args:
        values: Flow velocity samples.

    Returns:
        ``Unit.M_PER_S``, ``Unit.CM_PER_S`` or None if undecidable.
    """
    values = np.abs(np.asarray(values, dtype=np.float64))
    if _majority_in_range(values, *FLOW_M_PER_S_RANGE):
        return Unit.M_PER_S
    if _majority_in_range(values, *FLOW_CM_PER_S_RANGE):
        return Unit.CM_PER_S
    logger.warning("Could not determine flow unit from data range")
    return None
