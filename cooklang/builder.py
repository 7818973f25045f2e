"""Builder that layers units files into a :class:`Converter`."""

from __future__ import annotations

import copy
from dataclasses import dataclass
from functools import reduce

from .converter import BestConversions, BestConversionsStore, Converter
from .converter import Fractions as ConverterFractions
from .units import PhysicalQuantity, System, Unit, UnitIndex, convert_f64
from .units_file import (
    SI,
    BestUnits,
    Extend,
    FractionsConfigHelper,
    Precedence,
    SIPrefix,
    UnitsFile,
)
from .units_file import Fractions as FileFractions


class ConverterBuilderError(Exception):
    """Base error raised while building a converter."""


class DuplicateUnitError(ConverterBuilderError):
    """Two units share a name, symbol or alias."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Duplicate unit: {name}")
        self.name = name


class DuplicateExtendUnitError(ConverterBuilderError):
    """Two keys of one extend group point to the same unit."""

    def __init__(self, key: str) -> None:
        super().__init__(
            f"Duplicate unit in extend, another key points to the same unit: {key}"
        )
        self.key = key


class InvalidExtendExpandedError(ConverterBuilderError):
    """An extend group edits more than the aliases of an expanded unit."""

    def __init__(self, key: str) -> None:
        super().__init__(f"Can only edit aliases in auto expanded unit: {key}")
        self.key = key


class EmptyUnitError(ConverterBuilderError):
    """A unit has no names, symbols or aliases."""

    def __init__(self, unit: Unit) -> None:
        super().__init__(f"Unit without names or symbols in {unit.physical_quantity}")
        self.unit = unit


class EmptyUnitKeyError(ConverterBuilderError):
    """A unit has a blank name, symbol or alias."""

    def __init__(self, unit: Unit) -> None:
        first = next(iter(unit.names or unit.symbols or unit.aliases), "-")
        super().__init__(
            "Unit where a name, symbol or alias is empty in "
            f"{unit.physical_quantity}: {first}"
        )
        self.unit = unit


class EmptyBestError(ConverterBuilderError):
    """A physical quantity has no usable best units."""

    def __init__(self, reason: str, quantity: PhysicalQuantity) -> None:
        super().__init__(f"Best units for '{quantity}' empty: {reason}")
        self.reason = reason
        self.quantity = quantity


class EmptySIPrefixesError(ConverterBuilderError):
    """A unit asks for SI expansion but no prefixes are configured."""

    def __init__(self) -> None:
        super().__init__("No SI prefixes found when expanding SI on a unit")


@dataclass
class _UnitBuilder:
    unit: Unit
    expand_si: bool = False
    is_expanded: bool = False
    expanded_units: dict[SIPrefix, int] | None = None


class ConverterBuilder:
    """Layer :class:`UnitsFile` configurations and build a :class:`Converter`.

    Order matters: a file can extend units of files added before it and be
    overridden by files added after. Unknown unit keys raise
    :class:`~cooklang.units.UnknownUnit`.
    """

    def __init__(self) -> None:
        self._all_units: list[_UnitBuilder] = []
        self._index = UnitIndex()
        self._extend: list[Extend] = []
        self._si = SI()
        self._fractions: list[FileFractions] = []
        self._best_units: dict[PhysicalQuantity, BestUnits] = {}
        self._default_system = System.METRIC

    def with_units_file(self, units: UnitsFile) -> ConverterBuilder:
        """Add a units file and return the builder."""
        return self.add_units_file(units)

    def add_units_file(self, units: UnitsFile) -> ConverterBuilder:
        """Add a units file as a new layer and return the builder."""
        for group in units.quantity:
            if group.units is not None:
                if group.units.by_system:
                    batches = [
                        (group.units.metric, System.METRIC),
                        (group.units.imperial, System.IMPERIAL),
                        (group.units.unspecified, None),
                    ]
                else:
                    batches = [(group.units.unified or [], None)]
                for entries, system in batches:
                    for entry in entries:
                        unit = Unit(
                            names=list(entry.names),
                            symbols=list(entry.symbols),
                            aliases=list(entry.aliases),
                            ratio=entry.ratio,
                            difference=entry.difference,
                            physical_quantity=group.quantity,
                            system=system,
                        )
                        _add_unit(
                            self._all_units,
                            self._index,
                            _UnitBuilder(unit, expand_si=entry.expand_si),
                        )

            # best units always replace the ones from earlier layers
            if group.best is not None:
                if group.best.is_empty():
                    raise EmptyBestError("empty list of units", group.quantity)
                self._best_units[group.quantity] = copy.deepcopy(group.best)

        if units.extend is not None:
            self._extend.append(copy.deepcopy(units.extend))

        if units.si is not None:
            si = units.si
            self._si = SI(
                prefixes=_join_prefixes(self._si.prefixes, si.prefixes, si.precedence),
                symbol_prefixes=_join_prefixes(
                    self._si.symbol_prefixes, si.symbol_prefixes, si.precedence
                ),
                precedence=si.precedence,
            )

        if units.default_system is not None:
            self._default_system = units.default_system

        if units.fractions is not None:
            self._fractions.append(copy.deepcopy(units.fractions))

        return self

    def finish(self) -> Converter:
        """Build the converter from every layer added so far."""
        all_units = copy.deepcopy(self._all_units)
        index = UnitIndex(dict(self._index.entries))

        for unit_id in range(len(all_units)):
            builder = all_units[unit_id]
            if builder.expand_si:
                expanded = _expand_si(builder, self._si)
                builder.expanded_units = {
                    prefix: _add_unit(all_units, index, new_unit)
                    for prefix, new_unit in expanded.items()
                }

        _apply_extend_groups(self._extend, all_units, index, self._si)

        best: dict[PhysicalQuantity, BestConversionsStore] = {}
        for quantity in PhysicalQuantity:
            best_units = self._best_units.get(quantity)
            if best_units is None:
                raise EmptyBestError("no best units given", quantity)
            best[quantity] = _best_store(best_units, index, all_units)

        quantity_index: dict[PhysicalQuantity, list[int]] = {q: [] for q in PhysicalQuantity}
        for unit_id, builder in enumerate(all_units):
            quantity_index[builder.unit.physical_quantity].append(unit_id)

        fractions = _build_fractions(self._fractions, index, all_units)

        return Converter(
            units=[builder.unit for builder in all_units],
            unit_index=index,
            best=best,
            fractions=fractions,
            default_system=self._default_system,
            quantity_index=quantity_index,
        )


def _index_add(index: UnitIndex, unit: Unit, unit_id: int) -> int:
    added = 0
    for key in unit.all_keys():
        if not key.strip():
            raise EmptyUnitKeyError(unit)
        if key in index.entries:
            raise DuplicateUnitError(key)
        index.entries[key] = unit_id
        added += 1
    if added == 0:
        raise EmptyUnitError(unit)
    return added


def _index_remove_rec(
    index: UnitIndex, all_units: list[_UnitBuilder], builder: _UnitBuilder
) -> None:
    if builder.expanded_units is not None:
        for expanded_id in builder.expanded_units.values():
            _index_remove_rec(index, all_units, all_units[expanded_id])
    for key in builder.unit.all_keys():
        index.entries.pop(key, None)


def _add_unit(all_units: list[_UnitBuilder], index: UnitIndex, builder: _UnitBuilder) -> int:
    unit_id = len(all_units)
    _index_add(index, builder.unit, unit_id)
    all_units.append(builder)
    return unit_id


def _best_conversions(
    names: list[str], index: UnitIndex, all_units: list[_UnitBuilder]
) -> BestConversions:
    ids = [index.get_unit_id(name) for name in names]
    ids.sort(key=lambda unit_id: all_units[unit_id].unit.ratio)
    base_id, *rest = ids
    base = all_units[base_id].unit
    conversions = [(1.0, base_id)]
    conversions.extend(
        (convert_f64(1.0, all_units[unit_id].unit, base), unit_id) for unit_id in rest
    )
    return BestConversions(conversions)


def _best_store(
    best_units: BestUnits, index: UnitIndex, all_units: list[_UnitBuilder]
) -> BestConversionsStore:
    if best_units.unified is not None:
        return BestConversionsStore(unified=_best_conversions(best_units.unified, index, all_units))
    return BestConversionsStore.by_system(
        metric=_best_conversions(best_units.metric, index, all_units),
        imperial=_best_conversions(best_units.imperial, index, all_units),
    )


def _apply_extend_groups(
    extend: list[Extend], all_units: list[_UnitBuilder], index: UnitIndex, si: SI
) -> None:
    for group in extend:
        to_update = []
        # resolve every key before editing anything
        for key, entry in group.units.items():
            unit_id = index.get_unit_id(key)
            if any(other == unit_id for other, _ in to_update):
                raise DuplicateExtendUnitError(key)
            edits_more_than_aliases = any(
                value is not None
                for value in (entry.ratio, entry.difference, entry.names, entry.symbols)
            )
            if all_units[unit_id].is_expanded and edits_more_than_aliases:
                raise InvalidExtendExpandedError(key)
            to_update.append((unit_id, entry))

        for unit_id, entry in to_update:
            _index_remove_rec(index, all_units, all_units[unit_id])
            unit = all_units[unit_id].unit
            if entry.ratio is not None:
                unit.ratio = entry.ratio
            if entry.difference is not None:
                unit.difference = entry.difference
            if entry.names is not None:
                unit.names = _join_aliases(unit.names, entry.names, group.precedence)
            if entry.symbols is not None:
                unit.symbols = _join_aliases(unit.symbols, entry.symbols, group.precedence)
            if entry.aliases is not None:
                unit.aliases = _join_aliases(unit.aliases, entry.aliases, group.precedence)

            if all_units[unit_id].expand_si:
                _update_expanded_units(unit_id, all_units, index, si)
            _index_add(index, unit, unit_id)


def _update_expanded_units(
    unit_id: int, all_units: list[_UnitBuilder], index: UnitIndex, si: SI
) -> None:
    builder = all_units[unit_id]
    expanded_ids = builder.expanded_units or {}
    for prefix, expanded in _expand_si(builder, si).items():
        expanded_id = expanded_ids[prefix]
        expanded.unit.aliases = list(all_units[expanded_id].unit.aliases)
        all_units[expanded_id] = expanded
        _index_add(index, expanded.unit, expanded_id)


def _build_fractions(
    fractions: list[FileFractions], index: UnitIndex, all_units: list[_UnitBuilder]
) -> ConverterFractions:
    all_cfg: FractionsConfigHelper | None = None
    metric: FractionsConfigHelper | None = None
    imperial: FractionsConfigHelper | None = None
    quantity: dict[PhysicalQuantity, FractionsConfigHelper] = {}

    for cfg in fractions:
        if cfg.all is not None:
            all_cfg = cfg.all
        if cfg.metric is not None:
            metric = cfg.metric
        if cfg.imperial is not None:
            imperial = cfg.imperial
        quantity.update(cfg.quantity)

    by_system = {System.METRIC: metric, System.IMPERIAL: imperial}
    unit = {}
    for cfg in fractions:
        for key, helper in cfg.unit.items():
            unit_id = index.get_unit_id(key)
            target = all_units[unit_id].unit
            layers = [
                layer
                for layer in (
                    quantity.get(target.physical_quantity),
                    by_system.get(target.system) if target.system is not None else None,
                    all_cfg,
                )
                if layer is not None
            ]
            if layers:
                helper = helper.merge(reduce(lambda acc, layer: acc.merge(layer), layers))
            unit[unit_id] = helper.define()

    return ConverterFractions(
        all=None if all_cfg is None else all_cfg.define(),
        metric=None if metric is None else metric.define(),
        imperial=None if imperial is None else imperial.define(),
        quantity={q: c.define() for q, c in quantity.items()},
        unit=unit,
    )


def _join_aliases(target: list[str], src: list[str], precedence: Precedence) -> list[str]:
    if precedence is Precedence.BEFORE:
        return [*src, *target]
    if precedence is Precedence.AFTER:
        return [*target, *src]
    return list(src)


def _join_prefixes(
    a: dict[SIPrefix, list[str]] | None,
    b: dict[SIPrefix, list[str]] | None,
    b_precedence: Precedence,
) -> dict[SIPrefix, list[str]] | None:
    if a is None and b is None:
        return None
    if a is None or b is None:
        present = a if a is not None else b
        return {prefix: list(values) for prefix, values in present.items()}  # type: ignore[union-attr]
    if b_precedence is Precedence.BEFORE:
        return {p: [*b.get(p, []), *a.get(p, [])] for p in SIPrefix}
    if b_precedence is Precedence.AFTER:
        return {p: [*a.get(p, []), *b.get(p, [])] for p in SIPrefix}
    return {prefix: list(values) for prefix, values in b.items()}


def _expand_si(builder: _UnitBuilder, si: SI) -> dict[SIPrefix, _UnitBuilder]:
    if si.prefixes is None or si.symbol_prefixes is None:
        raise EmptySIPrefixesError()
    unit = builder.unit
    expanded = {}
    for prefix in SIPrefix:
        names = [f"{p}{n}" for p in si.prefixes.get(prefix, []) for n in unit.names]
        symbols = [f"{p}{s}" for p in si.symbol_prefixes.get(prefix, []) for s in unit.symbols]
        expanded[prefix] = _UnitBuilder(
            Unit(
                names=names,
                symbols=symbols,
                aliases=[],
                ratio=unit.ratio * prefix.ratio(),
                difference=unit.difference,
                physical_quantity=unit.physical_quantity,
                system=unit.system,
            ),
            expand_si=False,
            is_expanded=True,
        )
    return expanded