# cooklang

Building blocks for tools that work with Cooklang recipes:

- **Diagnostics** (`cooklang.error`): `SourceDiag`, `SourceReport` and
  `PassResult` collect the errors and warnings of a pass and render readable
  reports that point into the recipe source.
- **Analysis options** (`cooklang.analysis`): `ParseOptions`, `CheckOptions`,
  `CheckResult`, `DefineMode` and `DuplicateMode` describe how an analysis
  pass should treat metadata entries, recipe references and components.
- **Unit conversion** (`cooklang.units`, `cooklang.units_file`,
  `cooklang.converter`, `cooklang.builder`): describe units in layered TOML
  files and convert values between units, to the best unit of a system, or to
  the best unit of the unit's own system.

## Installation

```
pip install cooklang
```

## Defining units

Units are described in TOML and read with `UnitsFile.from_toml`,
`UnitsFile.load` (a path) or `UnitsFile.from_dict`. Data of the wrong shape,
including unknown fields, raises `UnitsFileError`.

Every physical quantity (`volume`, `mass`, `length`, `temperature`, `time`)
must have a list of best units in at least one layer, otherwise building the
converter raises `EmptyBestError`. A small but complete file:

```toml
default_system = "metric"

[si.prefixes]
kilo = ["kilo"]
hecto = ["hecto"]
deca = ["deca"]
deci = ["deci"]
centi = ["centi"]
milli = ["milli"]

[si.symbol_prefixes]
kilo = ["k"]
hecto = ["h"]
deca = ["da"]
deci = ["d"]
centi = ["c"]
milli = ["m"]

[[quantity]]
quantity = "mass"
best = { metric = ["g", "kg"], imperial = ["oz", "lb"] }

[quantity.units]
metric = [
    { names = ["gram", "grams"], symbols = ["g"], ratio = 1, expand_si = true },
]
imperial = [
    { names = ["ounce", "ounces"], symbols = ["oz"], ratio = 28.3495 },
    { names = ["pound", "pounds"], symbols = ["lb"], ratio = 453.592 },
]

[[quantity]]
quantity = "volume"
best = { metric = ["ml", "l"], imperial = ["cup"] }

[quantity.units]
metric = [
    { names = ["litre", "litres"], symbols = ["l"], ratio = 1, expand_si = true },
]
imperial = [
    { names = ["cup", "cups"], symbols = ["cup"], ratio = 0.236588 },
]

[[quantity]]
quantity = "length"
best = ["cm", "m"]
units = [
    { names = ["metre", "metres"], symbols = ["m"], ratio = 1, expand_si = true },
]

[[quantity]]
quantity = "temperature"
best = { metric = ["C"], imperial = ["F"] }

[quantity.units]
metric = [
    { names = ["celsius"], symbols = ["C"], ratio = 1 },
]
imperial = [
    { names = ["fahrenheit"], symbols = ["F"], ratio = 0.5555555555555556, difference = -32 },
]

[[quantity]]
quantity = "time"
best = ["s", "min", "h"]
units = [
    { names = ["second", "seconds"], symbols = ["s"], ratio = 1 },
    { names = ["minute", "minutes"], symbols = ["min"], ratio = 60 },
    { names = ["hour", "hours"], symbols = ["h"], ratio = 3600 },
]
```

A value is normalised with `(value + difference) * ratio`. Units marked
`expand_si` gain one unit per SI prefix (`kilogram`/`kg`, `millilitre`/`ml`,
and so on). Besides `si` and `quantity`, a file may hold `default_system`,
`fractions` (settings for approximating values as fractions, for all units,
per system, per quantity or per unit) and `extend` (edits to units declared in
earlier layers, joined `before`, `after` or as an `override`).

## Building a converter

Layer one or more units files with `ConverterBuilder`. Later files can extend
units declared by earlier ones, and their best units replace earlier ones.

```python
from cooklang.builder import ConverterBuilder
from cooklang.units import System
from cooklang.units_file import UnitsFile

converter = ConverterBuilder().add_units_file(UnitsFile.load("units.toml")).finish()

kg = converter.find_unit("kg")
print(kg.symbol(), kg.ratio)                                # kg 1000.0
print(converter.convert_f64(1.0, kg, converter.find_unit("g")))  # 1000.0

value, unit = converter.convert(1500, "g")         # best unit in the same system
print(value, unit)                                 # 1.5 kg
value, unit = converter.convert((1, 2), "kg", "g")  # inclusive range to a unit
print(value, unit)                                 # (1000.0, 2000.0) g
value, unit = converter.convert(500, "g", System.IMPERIAL)  # best imperial unit
```

`Converter.convert` takes a number or a `(start, end)` range, a unit or any of
its names, symbols or aliases, and a target: `None` for the best unit in the
unit's own system (or the default system), a `System`, or a unit. Other
useful members are `find_unit`, `get_unit`, `unit_count`, `all_units`,
`best_units`, `is_best_unit`, `fractions_config` and `should_fit_fraction`.
`Converter.empty()` gives a converter with no units.

Conversion problems raise subclasses of `ConvertError`: `UnknownUnit`,
`MixedQuantitiesError`, `BestUnitNotFoundError` and `TextValueError`.
Problems in the configuration raise subclasses of `ConverterBuilderError`:
`DuplicateUnitError`, `DuplicateExtendUnitError`,
`InvalidExtendExpandedError`, `EmptyUnitError`, `EmptyUnitKeyError`,
`EmptyBestError` and `EmptySIPrefixesError`. A key that names no known unit
in `best`, `extend` or `fractions.unit` raises `UnknownUnit`.

## Reporting diagnostics

```python
import sys

from cooklang.error import SourceDiag, SourceReport, Stage

source = "Add @salt{} and @pepper{a pinch}.\n"
report = SourceReport()
report.warn(SourceDiag.warning("Quantity missing", ((4, 10), "here"), Stage.ANALYSIS))
report.write("recipe.cook", source, False, sys.stdout)
```

A label is a `(span, text)` pair; the span may be an offset, a `(start, end)`
pair, a `range`, or an object with `start` and `end`. Reports list warnings
first and then errors, each with its labelled source snippet and up to two
hints (`Help:` and `Note:`); pass `True` for ANSI colours. `print` and
`eprint` write to standard output and standard error, and `write_rich_error`
writes a single diagnostic.

`PassResult` pairs a pass's output with its report. `is_valid()` is true when
there is output and no errors; `into_result()` returns the output and a
warnings-only report, or raises `SourceReportError` carrying the report.

## Analysis options

`CheckResult.ok()`, `CheckResult.warning(*hints)` and
`CheckResult.error(*hints)` are what user checks return;
`into_source_diag(message)` turns a failed check into a `SourceDiag`.
`ParseOptions` holds an optional `recipe_ref_check` and
`metadata_validator`, and `CheckOptions` tells whether a metadata entry is
kept (`include`) and whether the standard key checks run (`run_std_checks`).

## What this package does not do

It does not read Cooklang recipe text: there is no parser and no analysis
pass here, so nothing in the package calls the hooks in `ParseOptions` or
produces recipes to convert. It ships no built-in unit definitions either;
supply your own units file, or use `Converter.empty()`. There is no
command-line tool.