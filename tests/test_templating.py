from __future__ import annotations

import pytest

from saymon_datasource.core.templating import VariableTemplateSrv


@pytest.fixture()
def template_srv() -> VariableTemplateSrv:
    return VariableTemplateSrv(variables={"region": "eu", "host": ["web.1", "web-2"]})


@pytest.mark.parametrize("expression", ["objects:$region", "objects:${region}", "objects:[[region]]"])
def test_replace_supports_reference_syntaxes(template_srv, expression):
    assert template_srv.replace(expression) == "objects:eu"


def test_replace_regex_formats_multi_value(template_srv):
    assert template_srv.replace("$host", fmt="regex") == r"(web\.1|web-2)"


def test_replace_regex_escapes_single_value():
    template_srv = VariableTemplateSrv(variables={"name": "a.b*"})

    assert template_srv.replace("^$name$", fmt="regex") == r"^a\.b\*$"


def test_replace_explicit_format_wins(template_srv):
    assert template_srv.replace("${host:csv}", fmt="regex") == "web.1,web-2"
    assert template_srv.replace("[[host:pipe]]") == "web.1|web-2"
    assert template_srv.replace("${host:glob}") == "{web.1,web-2}"


def test_replace_prefers_scoped_vars(template_srv):
    scoped = {"region": {"text": "US", "value": "us"}}

    assert template_srv.replace("$region", scoped) == "us"


def test_replace_leaves_unknown_variables(template_srv):
    assert template_srv.replace("$missing-$region") == "$missing-eu"


def test_set_registers_variable():
    template_srv = VariableTemplateSrv()
    template_srv.set("env", ["prod"])

    assert template_srv.replace("$env", fmt="regex") == "prod"
    assert template_srv.replace("") == ""
