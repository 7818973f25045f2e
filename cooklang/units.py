"""Units, physical quantities and unit conversion primitives."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Iterator


class PhysicalQuantity(enum.Enum):
    """Physical quantity a unit measures."""

    VOLUME = "volume"
    MASS = "mass"
    LENGTH = "length"
    TEMPERATURE = "temperature"
    TIME = "time"

    def __str__(self) -> str:
        return self.value


class System(enum.Enum):
    """Unit system. The default system is metric."""

    METRIC = "metric"
    IMPERIAL = "imperial"

    def __str__(self) -> str:
        return self.value


@dataclass
class Unit:
    """A unit.

    A value is normalised with ``(value + difference) * ratio``.
    """

    names: list[str] = field(default_factory=list)
    symbols: list[str] = field(default_factory=list)
    aliases: list[str] = field(default_factory=list)
    ratio: float = 1.0
    difference: float = 0.0
    physical_quantity: PhysicalQuantity = PhysicalQuantity.VOLUME
    system: System | None = None

    def all_keys(self) -> Iterator[str]:
        """Iterate over every name, symbol and alias, in that order."""
        yield from self.names
        yield from self.symbols
        yield from self.aliases

    def symbol(self) -> str:
        """The first symbol, or else the first name, or else the first alias."""
        for group in (self.symbols, self.names, self.aliases):
            if group:
                return group[0]
        raise ValueError("unit has no symbol, name or alias")

    def display(self, alternate: bool = False) -> str:
        """Text for the unit: the first name when ``alternate``, else the symbol."""
        if alternate and self.names:
            return self.names[0]
        return self.symbol()

    def __str__(self) -> str:
        return self.display()


#: Largest whole number allowed by default when fitting fractions.
MAX_WHOLE = 2**32 - 1


@dataclass(frozen=True)
class FractionsConfig:
    """Resolved configuration for approximating values as fractions."""

    enabled: bool = False
    accuracy: float = 0.05
    max_denominator: int = 4
    max_whole: int = MAX_WHOLE


class ConvertError(Exception):
    """Base error for unit conversions."""


class UnknownUnit(ConvertError):
    """Raised when a unit key is not known."""

    def __init__(self, unit: str) -> None:
        super().__init__(f"Unknown unit: '{unit}'")
        self.unit = unit


class TextValueError(ConvertError):
    """Raised when trying to convert a text value."""

    def __init__(self, text: str) -> None:
        super().__init__(f"Tried to convert a text value: {text}")
        self.text = text


class MixedQuantitiesError(ConvertError):
    """Raised when converting between different physical quantities."""

    def __init__(self, source: PhysicalQuantity, target: PhysicalQuantity) -> None:
        super().__init__(f"Mixed physical quantities: {source} {target}")
        self.source = source
        self.target = target


class BestUnitNotFoundError(ConvertError):
    """Raised when no best unit is configured for a quantity and system."""

    def __init__(self, physical_quantity: PhysicalQuantity, system: System | None) -> None:
        super().__init__(
            f"Could not find best unit for a {physical_quantity} unit. System: {system}"
        )
        self.physical_quantity = physical_quantity
        self.system = system


@dataclass
class UnitIndex:
    """Index from every unit key (name, symbol or alias) to a unit id."""

    entries: dict[str, int] = field(default_factory=dict)

    def get_unit_id(self, key: str) -> int:
        """Return the id of the unit with ``key``, or raise :class:`UnknownUnit`."""
        try:
            return self.entries[key]
        except KeyError:
            raise UnknownUnit(key) from None

    def __contains__(self, key: object) -> bool:
        return key in self.entries

    def __len__(self) -> int:
        return len(self.entries)


def convert_f64(value: float, source: Unit, target: Unit) -> float:
    """Convert ``value`` from ``source`` to ``target`` of the same quantity."""
    if source.physical_quantity is not target.physical_quantity:
        raise MixedQuantitiesError(source.physical_quantity, target.physical_quantity)
    norm = (value + source.difference) * source.ratio
    return norm / target.ratio - target.difference