"""Unit converter: known units, best-fit conversions and fraction settings."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterator, Union

from .units import (
    BestUnitNotFoundError,
    FractionsConfig,
    MixedQuantitiesError,
    PhysicalQuantity,
    System,
    Unit,
    UnitIndex,
    convert_f64 as _convert_f64,
)

#: A value to convert: a number, or an inclusive ``(start, end)`` range.
ConvertValue = Union[float, tuple[float, float]]

#: A unit given directly or by any of its names, symbols or aliases.
ConvertUnit = Union[Unit, str]

#: Target of a conversion: ``None`` for the best unit in the same system, a
#: :class:`System` for the best unit in that system, or a unit.
ConvertTo = Union[None, System, Unit, str]

_THRESHOLD_TOLERANCE = 0.001


def _normalize_value(value: ConvertValue) -> ConvertValue:
    if isinstance(value, tuple):
        start, end = value
        return float(start), float(end)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise TypeError(f"expected a number or a (start, end) range, got {value!r}")
    return float(value)


@dataclass
class Fractions:
    """Resolved fractions settings at every level of precedence."""

    all: FractionsConfig | None = None
    metric: FractionsConfig | None = None
    imperial: FractionsConfig | None = None
    quantity: dict[PhysicalQuantity, FractionsConfig] = field(default_factory=dict)
    unit: dict[int, FractionsConfig] = field(default_factory=dict)

    def config(
        self, system: System | None, quantity: PhysicalQuantity, unit_id: int
    ) -> FractionsConfig:
        """Settings for a unit: by unit, else quantity, else system, else all, else default."""
        if unit_id in self.unit:
            return self.unit[unit_id]
        if quantity in self.quantity:
            return self.quantity[quantity]
        by_system = {System.METRIC: self.metric, System.IMPERIAL: self.imperial}
        if system is not None and by_system[system] is not None:
            return by_system[system]
        if self.all is not None:
            return self.all
        return FractionsConfig()


@dataclass
class BestConversions:
    """Candidate units as ``(threshold, unit id)`` pairs sorted by ratio.

    The first pair is the base unit; a threshold is one unit expressed in the
    base unit.
    """

    conversions: list[tuple[float, int]] = field(default_factory=list)

    def base(self) -> int | None:
        """Id of the base unit, or ``None`` when there are no candidates."""
        return self.conversions[0][1] if self.conversions else None

    def best_unit(self, converter: Converter, value: ConvertValue, unit: Unit) -> Unit | None:
        """The largest candidate whose threshold the value reaches."""
        value = _normalize_value(value)
        start = value[0] if isinstance(value, tuple) else value
        base_id = self.base()
        if base_id is None:
            return None
        units = list(converter.all_units())
        norm = converter.convert_f64(abs(start), unit, units[base_id])
        for threshold, unit_id in reversed(self.conversions):
            if norm >= threshold - _THRESHOLD_TOLERANCE:
                return units[unit_id]
        return units[self.conversions[0][1]]

    def all_units(self, converter: Converter) -> Iterator[Unit]:
        """Iterate over the candidate units, smallest first."""
        units = list(converter.all_units())
        return (units[unit_id] for _, unit_id in self.conversions)


@dataclass
class BestConversionsStore:
    """Best conversions shared by every system, or one set per system."""

    unified: BestConversions | None = field(default_factory=BestConversions)
    metric: BestConversions | None = None
    imperial: BestConversions | None = None

    @classmethod
    def by_system(cls, metric: BestConversions, imperial: BestConversions) -> BestConversionsStore:
        return cls(unified=None, metric=metric, imperial=imperial)

    def conversions(self, system: System) -> BestConversions:
        """Conversions to use for ``system``."""
        if self.unified is not None:
            return self.unified
        return self.metric if system is System.METRIC else self.imperial  # type: ignore[return-value]


class Converter:
    """Known units and how to convert between them.

    Two converters are equal when their units, index, best conversions and
    default system are equal; fractions settings are not compared.
    """

    def __init__(
        self,
        units: list[Unit] | None = None,
        unit_index: UnitIndex | None = None,
        best: dict[PhysicalQuantity, BestConversionsStore] | None = None,
        fractions: Fractions | None = None,
        default_system: System = System.METRIC,
        quantity_index: dict[PhysicalQuantity, list[int]] | None = None,
    ) -> None:
        self._units: list[Unit] = list(units or [])
        self.unit_index = unit_index if unit_index is not None else UnitIndex()
        self.best: dict[PhysicalQuantity, BestConversionsStore] = {
            q: BestConversionsStore() for q in PhysicalQuantity
        }
        if best:
            self.best.update(best)
        self.fractions = fractions if fractions is not None else Fractions()
        self.default_system = default_system
        if quantity_index is None:
            quantity_index = {q: [] for q in PhysicalQuantity}
            for unit_id, unit in enumerate(self._units):
                quantity_index[unit.physical_quantity].append(unit_id)
        self.quantity_index = quantity_index

    @classmethod
    def empty(cls) -> Converter:
        """A converter with no units; every conversion fails."""
        return cls()

    def unit_count(self) -> int:
        """Number of different units (not of unit keys)."""
        return len(self._units)

    def all_units(self) -> Iterator[Unit]:
        return iter(self._units)

    def _unit_id(self, unit: Unit) -> int:
        return self.unit_index.get_unit_id(unit.symbol())

    def is_best_unit(self, unit: Unit) -> bool:
        """True when the converter may pick ``unit`` as a best fit in its system.

        Raises :class:`UnknownUnit` if the unit is not known.
        """
        unit_id = self._unit_id(unit)
        if unit.system is None:
            return False
        conversions = self.best[unit.physical_quantity].conversions(unit.system)
        return any(candidate == unit_id for _, candidate in conversions.conversions)

    def best_units(self, quantity: PhysicalQuantity, system: System | None = None) -> list[Unit]:
        """Best units of a quantity in a system, or in every system when ``None``."""
        store = self.best[quantity]
        if store.unified is not None:
            return list(store.unified.all_units(self))
        if system is System.METRIC:
            return list(store.metric.all_units(self))  # type: ignore[union-attr]
        if system is System.IMPERIAL:
            return list(store.imperial.all_units(self))  # type: ignore[union-attr]
        return [
            *store.metric.all_units(self),  # type: ignore[union-attr]
            *store.imperial.all_units(self),  # type: ignore[union-attr]
        ]

    def find_unit(self, key: str) -> Unit | None:
        """Find a unit by any of its names, symbols or aliases."""
        if key not in self.unit_index:
            return None
        return self._units[self.unit_index.get_unit_id(key)]

    def fractions_config(self, unit: Unit) -> FractionsConfig:
        """Fractions settings for a known unit."""
        unit_id = self._unit_id(unit)
        return self.fractions.config(unit.system, unit.physical_quantity, unit_id)

    def should_fit_fraction(self, unit: Unit) -> bool:
        return self.fractions_config(unit).enabled

    def get_unit(self, unit: ConvertUnit) -> Unit:
        """Resolve a unit given directly or by key; raises :class:`UnknownUnit`."""
        if isinstance(unit, Unit):
            return unit
        return self._units[self.unit_index.get_unit_id(unit)]

    def convert(
        self, value: ConvertValue, unit: ConvertUnit, to: ConvertTo = None
    ) -> tuple[ConvertValue, Unit]:
        """Convert ``value`` in ``unit`` and return the new value and its unit."""
        value = _normalize_value(value)
        source = self.get_unit(unit)
        if to is None:
            system = source.system if source.system is not None else self.default_system
            return self._convert_to_best(value, source, system)
        if isinstance(to, System):
            return self._convert_to_best(value, source, to)
        target = self.get_unit(to)
        if source.physical_quantity is not target.physical_quantity:
            raise MixedQuantitiesError(source.physical_quantity, target.physical_quantity)
        return self._convert_value(value, source, target), target

    def _convert_to_best(
        self, value: ConvertValue, unit: Unit, system: System
    ) -> tuple[ConvertValue, Unit]:
        conversions = self.best[unit.physical_quantity].conversions(system)
        best = conversions.best_unit(self, value, unit)
        if best is None:
            raise BestUnitNotFoundError(unit.physical_quantity, unit.system)
        return self._convert_value(value, unit, best), best

    def _convert_value(self, value: ConvertValue, source: Unit, target: Unit) -> ConvertValue:
        if isinstance(value, tuple):
            start, end = value
            return self.convert_f64(start, source, target), self.convert_f64(end, source, target)
        return self.convert_f64(value, source, target)

    def convert_f64(self, value: float, source: Unit, target: Unit) -> float:
        """Convert a number between two units of the same quantity."""
        if source is target:
            return value
        return _convert_f64(value, source, target)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Converter):
            return NotImplemented
        return (
            self._units == other._units
            and self.unit_index == other.unit_index
            and self.quantity_index == other.quantity_index
            and self.best == other.best
            and self.default_system == other.default_system
        )

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return f"Converter(units={len(self._units)}, default_system={self.default_system})"