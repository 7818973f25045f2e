"""Configuration data read from units files and layered by the converter builder."""

from __future__ import annotations

import enum
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, TypeVar

from .units import MAX_WHOLE, FractionsConfig, PhysicalQuantity, System

_E = TypeVar("_E", bound=enum.Enum)
_MISSING = object()
_U8_MAX = 2**8 - 1


class UnitsFileError(ValueError):
    """Raised when units file data does not have the expected shape."""


class SIPrefix(enum.Enum):
    """Supported SI prefixes."""

    KILO = "kilo"
    HECTO = "hecto"
    DECA = "deca"
    DECI = "deci"
    CENTI = "centi"
    MILLI = "milli"

    def __str__(self) -> str:
        return self.value

    def ratio(self) -> float:
        """The factor the prefix multiplies a unit by."""
        return _SI_RATIOS[self]


_SI_RATIOS = {
    SIPrefix.KILO: 1e3,
    SIPrefix.HECTO: 1e2,
    SIPrefix.DECA: 1e1,
    SIPrefix.DECI: 1e-1,
    SIPrefix.CENTI: 1e-2,
    SIPrefix.MILLI: 1e-3,
}


class Precedence(enum.Enum):
    """How a list is joined with the one from earlier layers."""

    BEFORE = "before"
    AFTER = "after"
    OVERRIDE = "override"


def _table(value: Any, what: str) -> dict[str, Any]:
    if not isinstance(value, dict):
        raise UnitsFileError(f"{what}: expected a table")
    return value


def _reject_unknown(data: dict[str, Any], allowed: set[str], what: str) -> None:
    unknown = sorted(set(data) - allowed)
    if unknown:
        raise UnitsFileError(f"{what}: unknown field(s): {', '.join(unknown)}")


def _aliased(data: dict[str, Any], name: str, alias: str, what: str) -> Any:
    if name in data and alias in data:
        raise UnitsFileError(f"{what}: duplicate field '{name}'")
    return data.get(name, data.get(alias, _MISSING))


def _required(value: Any, name: str, what: str) -> Any:
    if value is _MISSING:
        raise UnitsFileError(f"{what}: missing field '{name}'")
    return value


def _number(value: Any, what: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise UnitsFileError(f"{what}: expected a number")
    return float(value)


def _boolean(value: Any, what: str) -> bool:
    if not isinstance(value, bool):
        raise UnitsFileError(f"{what}: expected a boolean")
    return value


def _unsigned(value: Any, maximum: int, what: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise UnitsFileError(f"{what}: expected an integer")
    if not 0 <= value <= maximum:
        raise UnitsFileError(f"{what}: {value} is out of range 0 to {maximum}")
    return value


def _strings(value: Any, what: str) -> list[str]:
    if not isinstance(value, list) or not all(isinstance(s, str) for s in value):
        raise UnitsFileError(f"{what}: expected a list of strings")
    return list(value)


def _variant(enum_cls: type[_E], value: Any, what: str) -> _E:
    try:
        if not isinstance(value, str):
            raise ValueError
        return enum_cls(value)
    except ValueError:
        expected = ", ".join(m.value for m in enum_cls)
        raise UnitsFileError(f"{what}: unknown variant {value!r}, expected one of {expected}") from None


def _prefix_map(value: Any, what: str) -> dict[SIPrefix, list[str]]:
    data = _table(value, what)
    _reject_unknown(data, {p.value for p in SIPrefix}, what)
    result = {}
    for prefix in SIPrefix:
        raw = _required(data.get(prefix.value, _MISSING), prefix.value, what)
        result[prefix] = _strings(raw, f"{what}.{prefix.value}")
    return result


@dataclass
class SI:
    """SI expansion configuration."""

    prefixes: dict[SIPrefix, list[str]] | None = None
    symbol_prefixes: dict[SIPrefix, list[str]] | None = None
    precedence: Precedence = Precedence.BEFORE

    @classmethod
    def from_dict(cls, data: Any) -> SI:
        data = _table(data, "si")
        _reject_unknown(data, {"prefixes", "symbol_prefixes", "precedence"}, "si")
        prefixes = data.get("prefixes")
        symbol_prefixes = data.get("symbol_prefixes")
        return cls(
            prefixes=None if prefixes is None else _prefix_map(prefixes, "si.prefixes"),
            symbol_prefixes=(
                None
                if symbol_prefixes is None
                else _prefix_map(symbol_prefixes, "si.symbol_prefixes")
            ),
            precedence=_variant(
                Precedence, data.get("precedence", Precedence.BEFORE.value), "si.precedence"
            ),
        )


@dataclass(frozen=True)
class FractionsConfigHelper:
    """One layer of fractions configuration; unset values are ``None``."""

    enabled: bool | None = None
    accuracy: float | None = None
    max_denominator: int | None = None
    max_whole: int | None = None

    @classmethod
    def from_value(cls, value: Any) -> FractionsConfigHelper:
        """Read a layer from a boolean toggle or a table of settings."""
        return cls._parse(value, "fractions")

    @classmethod
    def _parse(cls, value: Any, what: str) -> FractionsConfigHelper:
        if isinstance(value, bool):
            return cls(enabled=value)
        if not isinstance(value, dict):
            raise UnitsFileError(f"{what}: expected a boolean or a table")
        _reject_unknown(value, {"enabled", "accuracy", "max_denominator", "max_whole"}, what)
        enabled = value.get("enabled")
        accuracy = value.get("accuracy")
        max_denominator = value.get("max_denominator")
        max_whole = value.get("max_whole")
        return cls(
            enabled=None if enabled is None else _boolean(enabled, f"{what}.enabled"),
            accuracy=None if accuracy is None else _number(accuracy, f"{what}.accuracy"),
            max_denominator=(
                None
                if max_denominator is None
                else _unsigned(max_denominator, _U8_MAX, f"{what}.max_denominator")
            ),
            max_whole=(
                None if max_whole is None else _unsigned(max_whole, MAX_WHOLE, f"{what}.max_whole")
            ),
        )

    def merge(self, other: FractionsConfigHelper) -> FractionsConfigHelper:
        """Keep the values set here and fall back to ``other``."""
        return FractionsConfigHelper(
            enabled=self.enabled if self.enabled is not None else other.enabled,
            accuracy=self.accuracy if self.accuracy is not None else other.accuracy,
            max_denominator=(
                self.max_denominator if self.max_denominator is not None else other.max_denominator
            ),
            max_whole=self.max_whole if self.max_whole is not None else other.max_whole,
        )

    def define(self) -> FractionsConfig:
        """Resolve to a full configuration, filling unset values with defaults."""
        default = FractionsConfig()
        accuracy = self.accuracy if self.accuracy is not None else default.accuracy
        max_denominator = (
            self.max_denominator if self.max_denominator is not None else default.max_denominator
        )
        return FractionsConfig(
            enabled=self.enabled if self.enabled is not None else default.enabled,
            accuracy=min(max(accuracy, 0.0), 1.0),
            max_denominator=min(max(max_denominator, 1), 16),
            max_whole=self.max_whole if self.max_whole is not None else default.max_whole,
        )


@dataclass
class Fractions:
    """Fractions configuration for all units, per system, per quantity and per unit."""

    all: FractionsConfigHelper | None = None
    metric: FractionsConfigHelper | None = None
    imperial: FractionsConfigHelper | None = None
    quantity: dict[PhysicalQuantity, FractionsConfigHelper] = field(default_factory=dict)
    unit: dict[str, FractionsConfigHelper] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Any) -> Fractions:
        data = _table(data, "fractions")
        _reject_unknown(data, {"all", "metric", "imperial", "quantity", "unit"}, "fractions")

        def layer(key: str) -> FractionsConfigHelper | None:
            value = data.get(key)
            return None if value is None else FractionsConfigHelper._parse(value, f"fractions.{key}")

        quantity = {
            _variant(PhysicalQuantity, key, "fractions.quantity"): FractionsConfigHelper._parse(
                value, f"fractions.quantity.{key}"
            )
            for key, value in _table(data.get("quantity", {}), "fractions.quantity").items()
        }
        unit = {
            key: FractionsConfigHelper._parse(value, f"fractions.unit.{key}")
            for key, value in _table(data.get("unit", {}), "fractions.unit").items()
        }
        return cls(
            all=layer("all"),
            metric=layer("metric"),
            imperial=layer("imperial"),
            quantity=quantity,
            unit=unit,
        )


@dataclass
class ExtendUnitEntry:
    """Changes to a unit from an earlier layer. Expanded units only take aliases."""

    ratio: float | None = None
    difference: float | None = None
    names: list[str] | None = None
    symbols: list[str] | None = None
    aliases: list[str] | None = None

    @classmethod
    def from_dict(cls, data: Any) -> ExtendUnitEntry:
        return cls._parse(data, "extend unit")

    @classmethod
    def _parse(cls, data: Any, what: str) -> ExtendUnitEntry:
        data = _table(data, what)

        def optional_list(name: str, alias: str) -> list[str] | None:
            value = _aliased(data, name, alias, what)
            return None if value is _MISSING else _strings(value, f"{what}.{name}")

        ratio = data.get("ratio")
        difference = data.get("difference")
        return cls(
            ratio=None if ratio is None else _number(ratio, f"{what}.ratio"),
            difference=None if difference is None else _number(difference, f"{what}.difference"),
            names=optional_list("names", "name"),
            symbols=optional_list("symbols", "symbol"),
            aliases=optional_list("aliases", "alias"),
        )


@dataclass
class Extend:
    """Edits to units from earlier layers, keyed by any name, symbol or alias."""

    precedence: Precedence = Precedence.BEFORE
    units: dict[str, ExtendUnitEntry] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Any) -> Extend:
        data = _table(data, "extend")
        _reject_unknown(data, {"precedence", "units"}, "extend")
        units = {
            key: ExtendUnitEntry._parse(value, f"extend.units.{key}")
            for key, value in _table(data.get("units", {}), "extend.units").items()
        }
        return cls(
            precedence=_variant(
                Precedence, data.get("precedence", Precedence.BEFORE.value), "extend.precedence"
            ),
            units=units,
        )


@dataclass
class BestUnits:
    """Units eligible for automatic conversion.

    Either ``unified`` holds one list for every system, or ``metric`` and
    ``imperial`` hold a list each.
    """

    unified: list[str] | None = None
    metric: list[str] = field(default_factory=list)
    imperial: list[str] = field(default_factory=list)

    @property
    def by_system(self) -> bool:
        return self.unified is None

    @classmethod
    def from_value(cls, value: Any) -> BestUnits:
        return cls._parse(value, "best")

    @classmethod
    def _parse(cls, value: Any, what: str) -> BestUnits:
        if isinstance(value, list):
            return cls(unified=_strings(value, what))
        if isinstance(value, dict):
            _reject_unknown(value, {"metric", "imperial"}, what)
            return cls(
                metric=_strings(_required(value.get("metric", _MISSING), "metric", what), f"{what}.metric"),
                imperial=_strings(
                    _required(value.get("imperial", _MISSING), "imperial", what), f"{what}.imperial"
                ),
            )
        raise UnitsFileError(f"{what}: expected a list or a table of lists per system")

    def is_empty(self) -> bool:
        """True when the unified list, or any per-system list, is empty."""
        if self.unified is not None:
            return not self.unified
        return not self.metric or not self.imperial


@dataclass
class UnitEntry:
    """A new unit. Names and symbols expand with SI prefixes when ``expand_si``."""

    names: list[str]
    symbols: list[str]
    ratio: float
    aliases: list[str] = field(default_factory=list)
    difference: float = 0.0
    expand_si: bool = False

    @classmethod
    def from_dict(cls, data: Any) -> UnitEntry:
        return cls._parse(data, "unit")

    @classmethod
    def _parse(cls, data: Any, what: str) -> UnitEntry:
        data = _table(data, what)
        _reject_unknown(
            data,
            {"names", "name", "symbols", "symbol", "aliases", "alias", "ratio", "difference", "expand_si"},
            what,
        )
        names = _required(_aliased(data, "names", "name", what), "names", what)
        symbols = _required(_aliased(data, "symbols", "symbol", what), "symbols", what)
        aliases = _aliased(data, "aliases", "alias", what)
        ratio = _required(data.get("ratio", _MISSING), "ratio", what)
        return cls(
            names=_strings(names, f"{what}.names"),
            symbols=_strings(symbols, f"{what}.symbols"),
            ratio=_number(ratio, f"{what}.ratio"),
            aliases=[] if aliases is _MISSING else _strings(aliases, f"{what}.aliases"),
            difference=_number(data.get("difference", 0.0), f"{what}.difference"),
            expand_si=_boolean(data.get("expand_si", False), f"{what}.expand_si"),
        )


def _entries(value: Any, what: str) -> list[UnitEntry]:
    if not isinstance(value, list):
        raise UnitsFileError(f"{what}: expected a list of units")
    return [UnitEntry._parse(entry, f"{what}[{i}]") for i, entry in enumerate(value)]


@dataclass
class Units:
    """New units, either in one list or split by system."""

    unified: list[UnitEntry] | None = None
    metric: list[UnitEntry] = field(default_factory=list)
    imperial: list[UnitEntry] = field(default_factory=list)
    unspecified: list[UnitEntry] = field(default_factory=list)

    @property
    def by_system(self) -> bool:
        return self.unified is None

    @classmethod
    def from_value(cls, value: Any) -> Units:
        return cls._parse(value, "units")

    @classmethod
    def _parse(cls, value: Any, what: str) -> Units:
        if isinstance(value, list):
            return cls(unified=_entries(value, what))
        if isinstance(value, dict):
            _reject_unknown(value, {"metric", "imperial", "unspecified"}, what)
            return cls(
                metric=_entries(value.get("metric", []), f"{what}.metric"),
                imperial=_entries(value.get("imperial", []), f"{what}.imperial"),
                unspecified=_entries(value.get("unspecified", []), f"{what}.unspecified"),
            )
        raise UnitsFileError(f"{what}: expected a list or a table of lists per system")


@dataclass
class QuantityGroup:
    """Units and best units of one physical quantity."""

    quantity: PhysicalQuantity
    best: BestUnits | None = None
    units: Units | None = None

    @classmethod
    def from_dict(cls, data: Any) -> QuantityGroup:
        return cls._parse(data, "quantity")

    @classmethod
    def _parse(cls, data: Any, what: str) -> QuantityGroup:
        data = _table(data, what)
        _reject_unknown(data, {"quantity", "best", "units"}, what)
        quantity = _required(data.get("quantity", _MISSING), "quantity", what)
        best = data.get("best")
        units = data.get("units")
        return cls(
            quantity=_variant(PhysicalQuantity, quantity, f"{what}.quantity"),
            best=None if best is None else BestUnits._parse(best, f"{what}.best"),
            units=None if units is None else Units._parse(units, f"{what}.units"),
        )


@dataclass
class UnitsFile:
    """One layer of units configuration."""

    default_system: System | None = None
    si: SI | None = None
    fractions: Fractions | None = None
    extend: Extend | None = None
    quantity: list[QuantityGroup] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Any) -> UnitsFile:
        data = _table(data, "units file")
        _reject_unknown(
            data, {"default_system", "si", "fractions", "extend", "quantity"}, "units file"
        )
        default_system = data.get("default_system")
        si = data.get("si")
        fractions = data.get("fractions")
        extend = data.get("extend")
        groups = data.get("quantity", [])
        if not isinstance(groups, list):
            raise UnitsFileError("quantity: expected a list of tables")
        return cls(
            default_system=(
                None if default_system is None else _variant(System, default_system, "default_system")
            ),
            si=None if si is None else SI.from_dict(si),
            fractions=None if fractions is None else Fractions.from_dict(fractions),
            extend=None if extend is None else Extend.from_dict(extend),
            quantity=[QuantityGroup._parse(g, f"quantity[{i}]") for i, g in enumerate(groups)],
        )

    @classmethod
    def from_toml(cls, text: str) -> UnitsFile:
        """Read a units file from TOML text."""
        try:
            data = tomllib.loads(text)
        except tomllib.TOMLDecodeError as err:
            raise UnitsFileError(f"invalid TOML: {err}") from err
        return cls.from_dict(data)

    @classmethod
    def load(cls, path: str | Path) -> UnitsFile:
        """Read a units file from a TOML file on disk."""
        return cls.from_toml(Path(path).read_text(encoding="utf-8"))