import json

import pytest

from spotgate.core.config import AnalysisConfig, FilterResource, ReportSinks


def test_config_from_yaml_maps_fields(tmp_path) -> None:
    config_path = tmp_path / "spotbugs.yaml"
    config_path.write_text(
        """
classes: [build/classes/java/main]
classpath: [libs/guava.jar]
engine_classpath: [tools/spotbugs-4.8.3.jar]
effort: max
report_level: low
max_heap_size: 1g
ignore_failures: true
visitors: [FindSqlInjection]
omit_visitors: [FindDeadLocalStores]
include_filter: config/include.xml
exclude_filter:
  text: <FindBugsFilter/>
system_properties:
  findbugs.assumeNonnull: true
reports:
  xml:
    destination: build/reports/spotbugs.xml
  html:
    enabled: false
    destination: build/reports/spotbugs.html
worker:
  timeout_ms: 60000
""",
        encoding="utf-8",
    )

    config = AnalysisConfig.from_file(str(config_path))

    assert config.classes == ["build/classes/java/main"]
    assert config.effort == "max"
    assert config.report_level == "low"
    assert config.ignore_failures is True
    assert config.include_filter == FilterResource(path="config/include.xml")
    assert config.exclude_filter == FilterResource(text="<FindBugsFilter/>")
    assert config.exclude_bugs_filter is None
    assert config.system_properties == {"findbugs.assumeNonnull": True}
    assert config.project_dir == str(tmp_path.resolve())
    assert config.worker.timeout_ms == 60000
    assert [sink.name for sink in config.reports.enabled()] == ["xml"]


def test_config_from_json(tmp_path) -> None:
    config_path = tmp_path / "spotbugs.json"
    config_path.write_text(
        json.dumps({"classes": ["a.jar"], "project_dir": "/work", "reports": {"sarif": "out.sarif"}}),
        encoding="utf-8",
    )

    config = AnalysisConfig.from_file(str(config_path))

    assert config.project_dir == "/work"
    assert config.reports.first_enabled().name == "sarif"
    assert config.effort is None


def test_config_rejects_unknown_extension(tmp_path) -> None:
    config_path = tmp_path / "spotbugs.toml"
    config_path.write_text("", encoding="utf-8")

    with pytest.raises(ValueError):
        AnalysisConfig.from_file(str(config_path))


def test_config_helpers_chain() -> None:
    config = AnalysisConfig()

    returned = (
        config.add_extra_args("-nested:false", "-longBugCodes")
        .add_jvm_args("-Duser.language=en")
        .set_system_property("findbugs.maskedfields.locals", False)
        .update_system_properties({"a": 1})
    )

    assert returned is config
    assert config.extra_args == ["-nested:false", "-longBugCodes"]
    assert config.jvm_args == ["-Duser.language=en"]
    assert config.system_properties == {"findbugs.maskedfields.locals": False, "a": 1}


def test_report_sinks_first_enabled_follows_declaration_order() -> None:
    reports = ReportSinks()
    reports.enable("html", "build/report.html")
    reports.enable("xml", "build/report.xml")

    assert reports.first_enabled().name == "xml"
    assert [sink.name for sink in reports.enabled()] == ["xml", "html"]


def test_report_sinks_unknown_name() -> None:
    with pytest.raises(KeyError):
        ReportSinks()["pdf"]


def test_filter_resource_rejects_unsupported_value() -> None:
    with pytest.raises(ValueError):
        FilterResource.from_value(42)


def test_report_sinks_resolved_copies_with_absolute_destinations(tmp_path) -> None:
    reports = ReportSinks()
    reports.enable("xml", "build/report.xml")

    resolved = reports.resolved(str(tmp_path))

    assert resolved.first_enabled().destination == str(tmp_path / "build" / "report.xml")
    assert reports.first_enabled().destination == "build/report.xml"


@pytest.mark.parametrize("value", [True, 1, ["build/report.xml"]])
def test_report_sinks_rejects_unsupported_definition(value) -> None:
    with pytest.raises(ValueError):
        ReportSinks.from_dict({"xml": value})


def test_report_sinks_disabled_by_false() -> None:
    reports = ReportSinks.from_dict({"xml": False, "html": "build/report.html"})

    assert [sink.name for sink in reports.enabled()] == ["html"]


def test_config_rejects_non_mapping_document(tmp_path) -> None:
    config_path = tmp_path / "spotbugs.yaml"
    config_path.write_text("- build/classes\n", encoding="utf-8")

    with pytest.raises(ValueError):
        AnalysisConfig.from_file(str(config_path))


def test_config_rejects_non_mapping_worker() -> None:
    with pytest.raises(ValueError):
        AnalysisConfig.from_dict({"worker": "java"})
