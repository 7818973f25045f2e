from cooklang.analysis import CheckOptions, CheckResult, ParseOptions
from cooklang.error import Severity, Stage


def test_ok_gives_no_diag_and_skips_message():
    calls = []

    def message():
        calls.append(1)
        return "msg"

    assert CheckResult.ok().into_source_diag(message) is None
    assert calls == []


def test_warning_into_diag():
    diag = CheckResult.warning("a", "b").into_source_diag(lambda: "Invalid metadata entry")
    assert diag.severity is Severity.WARNING
    assert diag.stage is Stage.ANALYSIS
    assert diag.message == "Invalid metadata entry"
    assert diag.hints == ["a", "b"]
    assert diag.labels == []


def test_error_into_diag_with_string_message():
    diag = CheckResult.error("fix it").into_source_diag("Referenced recipe not found: x")
    assert diag.is_error()
    assert diag.message == "Referenced recipe not found: x"
    assert diag.hints == ["fix it"]


def test_check_result_equality():
    assert CheckResult.error("x") == CheckResult.error("x")
    assert CheckResult.error("x") != CheckResult.warning("x")
    assert CheckResult.ok() == CheckResult()


def test_check_options_defaults_and_changes():
    opts = CheckOptions()
    assert opts.include is True
    assert opts.run_std_checks is True
    opts.include = False
    assert opts == CheckOptions(include=False)


def test_parse_options_hooks():
    assert ParseOptions().recipe_ref_check is None
    assert ParseOptions().metadata_validator is None

    def validator(key, value, action):
        action.include = key != "drop"
        return CheckResult.ok() if key != "bad" else CheckResult.error("no")

    options = ParseOptions(
        recipe_ref_check=lambda name: CheckResult.ok() if name == "known" else CheckResult.warning(),
        metadata_validator=validator,
    )
    assert options.recipe_ref_check("known") == CheckResult.ok()
    assert options.recipe_ref_check("other").severity is Severity.WARNING
    action = CheckOptions()
    assert options.metadata_validator("drop", "v", action) == CheckResult.ok()
    assert action.include is False
    assert options.metadata_validator("bad", "v", CheckOptions()).severity is Severity.ERROR