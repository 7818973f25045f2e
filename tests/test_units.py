import pytest

from cooklang.units import (
    BestUnitNotFoundError,
    ConvertError,
    FractionsConfig,
    MixedQuantitiesError,
    PhysicalQuantity,
    System,
    TextValueError,
    Unit,
    UnitIndex,
    UnknownUnit,
    convert_f64,
)


def gram():
    return Unit(
        names=["gram", "grams"],
        symbols=["g"],
        aliases=["gr"],
        ratio=1.0,
        physical_quantity=PhysicalQuantity.MASS,
        system=System.METRIC,
    )


def kilogram():
    return Unit(
        names=["kilogram"],
        symbols=["kg"],
        ratio=1000.0,
        physical_quantity=PhysicalQuantity.MASS,
        system=System.METRIC,
    )


def celsius():
    return Unit(
        names=["celsius"],
        symbols=["°C"],
        ratio=1.0,
        physical_quantity=PhysicalQuantity.TEMPERATURE,
        system=System.METRIC,
    )


def fahrenheit():
    return Unit(
        names=["fahrenheit"],
        symbols=["°F"],
        ratio=5 / 9,
        difference=-32.0,
        physical_quantity=PhysicalQuantity.TEMPERATURE,
        system=System.IMPERIAL,
    )


def test_symbol_prefers_symbols():
    assert gram().symbol() == "g"


def test_symbol_falls_back_to_name_then_alias():
    assert Unit(names=["cup"], aliases=["c"]).symbol() == "cup"
    assert Unit(aliases=["c"]).symbol() == "c"


def test_symbol_without_keys_raises():
    with pytest.raises(ValueError):
        Unit().symbol()


def test_display():
    unit = gram()
    assert unit.display() == "g"
    assert unit.display(alternate=True) == "gram"
    assert str(unit) == "g"
    assert Unit(symbols=["tsp"]).display(alternate=True) == "tsp"


def test_all_keys_order():
    assert list(gram().all_keys()) == ["gram", "grams", "g", "gr"]


def test_unit_equality():
    assert gram() == gram()
    assert gram() != kilogram()


def test_enum_text():
    assert str(PhysicalQuantity.VOLUME) == "volume"
    assert PhysicalQuantity("time") is PhysicalQuantity.TIME
    assert System("imperial") is System.IMPERIAL
    assert str(System.METRIC) == "metric"


def test_fractions_config_defaults():
    cfg = FractionsConfig()
    assert cfg.enabled is False
    assert cfg.accuracy == 0.05
    assert cfg.max_denominator == 4
    assert cfg.max_whole == 2**32 - 1


def test_unit_index_lookup():
    index = UnitIndex({"g": 0, "gram": 0, "kg": 1})
    assert index.get_unit_id("gram") == 0
    assert index.get_unit_id("kg") == 1
    assert "g" in index
    assert len(index) == 3


def test_unit_index_unknown():
    with pytest.raises(UnknownUnit) as info:
        UnitIndex().get_unit_id("cup")
    assert str(info.value) == "Unknown unit: 'cup'"
    assert info.value.unit == "cup"
    assert isinstance(info.value, ConvertError)


def test_convert_same_unit_is_identity():
    assert convert_f64(42.5, gram(), gram()) == pytest.approx(42.5)


@pytest.mark.parametrize("value", [0.0, 1.0, 250.0, -3.5])
def test_convert_round_trip_mass(value):
    there = convert_f64(value, gram(), kilogram())
    assert convert_f64(there, kilogram(), gram()) == pytest.approx(value)


@pytest.mark.parametrize("value", [-40.0, 0.0, 37.0, 180.0])
def test_convert_round_trip_temperature(value):
    there = convert_f64(value, celsius(), fahrenheit())
    assert convert_f64(there, fahrenheit(), celsius()) == pytest.approx(value)


def test_convert_larger_unit_gives_smaller_value():
    assert convert_f64(500.0, gram(), kilogram()) < 500.0


def test_convert_mixed_quantities():
    with pytest.raises(MixedQuantitiesError) as info:
        convert_f64(1.0, gram(), celsius())
    assert info.value.source is PhysicalQuantity.MASS
    assert info.value.target is PhysicalQuantity.TEMPERATURE
    assert str(info.value) == "Mixed physical quantities: mass temperature"


def test_text_value_error_message():
    err = TextValueError("a pinch")
    assert str(err) == "Tried to convert a text value: a pinch"
    assert err.text == "a pinch"


def test_best_unit_not_found_message():
    err = BestUnitNotFoundError(PhysicalQuantity.TIME, None)
    assert str(err).startswith("Could not find best unit for a time unit.")
    assert err.system is None
    assert isinstance(err, ConvertError)