import pytest

from cooklang.converter import (
    BestConversions,
    BestConversionsStore,
    Converter,
    Fractions,
)
from cooklang.units import (
    BestUnitNotFoundError,
    FractionsConfig,
    MixedQuantitiesError,
    PhysicalQuantity,
    System,
    Unit,
    UnitIndex,
    UnknownUnit,
)


def _build(fractions=None):
    units = [
        Unit(["grams"], ["g"], [], 1.0, 0.0, PhysicalQuantity.MASS, System.METRIC),
        Unit(["kilograms"], ["kg"], ["kilo"], 1000.0, 0.0, PhysicalQuantity.MASS, System.METRIC),
        Unit(["milligrams"], ["mg"], [], 0.001, 0.0, PhysicalQuantity.MASS, System.METRIC),
        Unit(["ounces"], ["oz"], [], 28.349523125, 0.0, PhysicalQuantity.MASS, System.IMPERIAL),
        Unit(["pounds"], ["lb"], [], 453.59237, 0.0, PhysicalQuantity.MASS, System.IMPERIAL),
        Unit(["celsius"], ["C"], [], 1.0, 0.0, PhysicalQuantity.TEMPERATURE, None),
        Unit(["fahrenheit"], ["F"], [], 5 / 9, -32.0, PhysicalQuantity.TEMPERATURE, None),
    ]
    index = UnitIndex()
    for unit_id, unit in enumerate(units):
        for key in unit.all_keys():
            index.entries[key] = unit_id
    oz_in_lb = units[4].ratio / units[3].ratio
    best = {
        PhysicalQuantity.MASS: BestConversionsStore.by_system(
            BestConversions([(1.0, 0), (1000.0, 1)]),
            BestConversions([(1.0, 3), (oz_in_lb, 4)]),
        ),
    }
    return Converter(
        units=units,
        unit_index=index,
        best=best,
        fractions=fractions,
        default_system=System.METRIC,
    )


@pytest.fixture
def converter():
    return _build()


def test_find_unit_by_any_key(converter):
    kg = converter.find_unit("kg")
    assert kg is converter.find_unit("kilograms")
    assert kg is converter.find_unit("kilo")
    assert converter.find_unit("cups") is None


def test_get_unit_unknown_raises(converter):
    with pytest.raises(UnknownUnit):
        converter.get_unit("cups")


def test_unit_count_and_quantity_index(converter):
    assert converter.unit_count() == len(list(converter.all_units()))
    total = sum(len(ids) for ids in converter.quantity_index.values())
    assert total == converter.unit_count()
    assert all(
        list(converter.all_units())[i].physical_quantity is q
        for q, ids in converter.quantity_index.items()
        for i in ids
    )


def test_empty_converter():
    empty = Converter.empty()
    assert empty.unit_count() == 0
    assert empty.find_unit("g") is None
    assert empty.best_units(PhysicalQuantity.MASS) == []
    with pytest.raises(UnknownUnit):
        empty.convert(1.0, "g", "kg")


def test_convert_to_unit_round_trip(converter):
    value, unit = converter.convert(2.5, "kg", "g")
    assert unit.symbol() == "g"
    back, back_unit = converter.convert(value, unit, "kg")
    assert back_unit.symbol() == "kg"
    assert back == pytest.approx(2.5)


def test_convert_mixed_quantities(converter):
    with pytest.raises(MixedQuantitiesError):
        converter.convert(10.0, "g", "C")


def test_convert_to_best_picks_larger_unit(converter):
    value, unit = converter.convert(1500.0, "g", System.METRIC)
    assert unit.symbol() == "kg"
    assert value == pytest.approx(1.5)


def test_convert_to_best_keeps_base_for_small_values(converter):
    value, unit = converter.convert(0.5, "kg", System.METRIC)
    assert unit.symbol() == "g"
    back, _ = converter.convert(value, unit, "kg")
    assert back == pytest.approx(0.5)


def test_convert_same_system_imperial(converter):
    value, unit = converter.convert(32.0, "oz")
    assert unit.symbol() == "lb"
    back, _ = converter.convert(value, unit, "oz")
    assert back == pytest.approx(32.0)


def test_convert_across_systems(converter):
    value, unit = converter.convert(2000.0, "g", System.IMPERIAL)
    assert unit.system is System.IMPERIAL
    back, _ = converter.convert(value, unit, "g")
    assert back == pytest.approx(2000.0)


def test_best_unit_not_found(converter):
    with pytest.raises(BestUnitNotFoundError):
        converter.convert(20.0, "C", System.METRIC)


def test_range_conversion_matches_numbers(converter):
    (start, end), unit = converter.convert((1000, 2000), "g", "kg")
    assert unit.symbol() == "kg"
    assert start == converter.convert(1000, "g", "kg")[0]
    assert end == converter.convert(2000, "g", "kg")[0]


def test_range_best_unit_uses_start(converter):
    (start, end), unit = converter.convert((500.0, 1500.0), "g", System.METRIC)
    assert unit.symbol() == "g"
    assert (start, end) == (500.0, 1500.0)


def test_temperature_with_difference(converter):
    value, unit = converter.convert(212.0, "F", "C")
    assert unit.symbol() == "C"
    assert value == pytest.approx(100.0)
    back, _ = converter.convert(value, "C", "F")
    assert back == pytest.approx(212.0)


def test_convert_f64_same_unit_is_identity(converter):
    g = converter.find_unit("g")
    assert converter.convert_f64(123.456, g, g) == 123.456


def test_is_best_unit(converter):
    assert converter.is_best_unit(converter.find_unit("kg"))
    assert converter.is_best_unit(converter.find_unit("lb"))
    assert not converter.is_best_unit(converter.find_unit("mg"))
    assert not converter.is_best_unit(converter.find_unit("C"))
    with pytest.raises(UnknownUnit):
        converter.is_best_unit(Unit(["cups"], ["cup"]))


def test_best_units_by_system(converter):
    metric = [u.symbol() for u in converter.best_units(PhysicalQuantity.MASS, System.METRIC)]
    imperial = [u.symbol() for u in converter.best_units(PhysicalQuantity.MASS, System.IMPERIAL)]
    both = [u.symbol() for u in converter.best_units(PhysicalQuantity.MASS)]
    assert metric == ["g", "kg"]
    assert imperial == ["oz", "lb"]
    assert both == metric + imperial


def test_best_conversions_negative_value_uses_absolute(converter):
    conversions = converter.best[PhysicalQuantity.MASS].conversions(System.METRIC)
    g = converter.find_unit("g")
    assert conversions.base() == 0
    assert conversions.best_unit(converter, -5000.0, g).symbol() == "kg"
    assert BestConversions().best_unit(converter, 1.0, g) is None


def test_unified_store_same_for_all_systems():
    conversions = BestConversions([(1.0, 0)])
    store = BestConversionsStore(unified=conversions)
    assert store.conversions(System.METRIC) is store.conversions(System.IMPERIAL)


def test_fractions_default_disabled(converter):
    g = converter.find_unit("g")
    assert converter.fractions_config(g) == FractionsConfig()
    assert not converter.should_fit_fraction(g)


def test_fractions_precedence():
    all_cfg = FractionsConfig(enabled=False, max_denominator=2)
    imperial_cfg = FractionsConfig(enabled=True, max_denominator=3)
    temp_cfg = FractionsConfig(enabled=True, max_denominator=5)
    unit_cfg = FractionsConfig(enabled=True, max_denominator=8)
    fractions = Fractions(
        all=all_cfg,
        imperial=imperial_cfg,
        quantity={PhysicalQuantity.TEMPERATURE: temp_cfg},
        unit={4: unit_cfg},
    )
    conv = _build(fractions)
    assert conv.fractions_config(conv.find_unit("lb")) == unit_cfg
    assert conv.fractions_config(conv.find_unit("oz")) == imperial_cfg
    assert conv.fractions_config(conv.find_unit("F")) == temp_cfg
    assert conv.fractions_config(conv.find_unit("g")) == all_cfg
    assert conv.should_fit_fraction(conv.find_unit("oz"))
    assert not conv.should_fit_fraction(conv.find_unit("g"))


def test_equality_ignores_fractions(converter):
    other = _build(Fractions(all=FractionsConfig(enabled=True)))
    assert converter == other
    assert converter != Converter.empty()