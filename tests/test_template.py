#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Tests for wrapper template expansion.
"""

import pytest

from remotify.core.signature import CallableReference, ParameterDescriptor
from remotify.core.template import (
    ARGUMENTS_PLACEHOLDER,
    BODY_PLACEHOLDER,
    DEFAULT_TEMPLATE,
    DEFAULTS_NAME,
    PARAMETERS_PLACEHOLDER,
    REMOTING_PARAMETERS,
    WrapperTemplate,
    expand_template,
)
from remotify.core.utils.exceptions import DuplicateParameterNameError, TemplateMismatchError


def tally(count: int):
    return count


REFERENCE = CallableReference.from_callable(tally)


def _descriptors(*names):
    return [ParameterDescriptor(name=name, declaration=name) for name in names]


def test_remoting_parameter_set_names_and_groups():
    assert REMOTING_PARAMETERS.names == ("targets", "credential", "sessions")
    assert REMOTING_PARAMETERS.targets.parameter_set == "by_address"
    assert REMOTING_PARAMETERS.credential.parameter_set == "by_address"
    assert REMOTING_PARAMETERS.sessions.parameter_set == "by_session"


def test_expand_single_parameter_definition():
    parameters = [ParameterDescriptor(name="count", declaration="count: int")]

    definition = expand_template(DEFAULT_TEMPLATE, parameters, REFERENCE)

    assert "count: int" in definition.parameter_block
    for remoting in REMOTING_PARAMETERS.descriptors:
        assert remoting.declaration in definition.parameter_block
    assert definition.argument_list == "count"
    assert definition.arguments == ("count",)
    assert definition.body_expression == "__remotify__.lookup('tally')"
    assert definition.original_name == "tally"
    for placeholder in (PARAMETERS_PLACEHOLDER, ARGUMENTS_PLACEHOLDER, BODY_PLACEHOLDER):
        assert placeholder not in definition.source


@pytest.mark.parametrize("names", [(), ("a",), ("a", "b", "c"), ("z", "y", "x", "w")])
def test_expand_puts_remoting_parameters_first(names):
    definition = expand_template(DEFAULT_TEMPLATE, _descriptors(*names), REFERENCE)

    block_names = [parameter.name for parameter in definition.parameters]
    assert len(block_names) == len(names) + 3
    assert block_names[:3] == ["targets", "credential", "sessions"]
    assert block_names[3:] == list(names)
    assert definition.arguments == tuple(names)


def test_expand_zero_parameters_forwards_empty_list():
    definition = expand_template(DEFAULT_TEMPLATE, [], REFERENCE)

    assert definition.argument_list == ""
    assert "[]" in definition.source


@pytest.mark.parametrize(
    "reserved",
    ["targets", "credential", "sessions", "__remotify__", "__remotify_defaults__", "__options__", "__sessions__"],
)
def test_expand_rejects_reserved_parameter_names(reserved):
    with pytest.raises(DuplicateParameterNameError) as exc_info:
        expand_template(DEFAULT_TEMPLATE, _descriptors("value", reserved), REFERENCE)

    assert exc_info.value.parameter_name == reserved
    assert exc_info.value.callable_name == "tally"


def test_template_missing_placeholder_is_rejected():
    template = WrapperTemplate(text="def f(*, <#PARAMETERS#>):\n    return <#BODY#>\n")

    with pytest.raises(TemplateMismatchError) as exc_info:
        expand_template(template, [], REFERENCE)

    assert exc_info.value.placeholder == ARGUMENTS_PLACEHOLDER
    assert exc_info.value.occurrences == 0


def test_template_repeated_placeholder_is_rejected():
    template = WrapperTemplate(
        text="def f(*, <#PARAMETERS#>):\n    return <#BODY#>([<#ARGUMENTS#>], [<#ARGUMENTS#>])\n"
    )

    with pytest.raises(TemplateMismatchError) as exc_info:
        template.validate()

    assert exc_info.value.placeholder == ARGUMENTS_PLACEHOLDER
    assert exc_info.value.occurrences == 2


def test_template_unknown_placeholder_is_rejected():
    template = WrapperTemplate(
        text="def f(*, <#PARAMETERS#>):\n    return <#BODY#>([<#ARGUMENTS#>], <#EXTRA#>)\n"
    )

    with pytest.raises(TemplateMismatchError) as exc_info:
        template.validate()

    assert exc_info.value.placeholder == "<#EXTRA#>"


def test_placeholder_text_inside_declarations_is_not_reexpanded():
    parameters = [ParameterDescriptor(name="marker", declaration="marker='<#BODY#>'")]

    definition = expand_template(DEFAULT_TEMPLATE, parameters, REFERENCE)

    assert "marker='<#BODY#>'" in definition.source
    assert definition.source.count("__remotify__.lookup('tally')") == 1


def test_default_template_is_valid():
    DEFAULT_TEMPLATE.validate()


def test_default_template_bound_names():
    assert DEFAULT_TEMPLATE.bound_names() == ("__options__", "__sessions__")


def test_custom_template_locals_are_reserved():
    template = WrapperTemplate(
        text=(
            "def __remotify_wrapper__(*, <#PARAMETERS#>):\n"
            "    body = <#BODY#>\n"
            "    return body(<#ARGUMENTS#>)\n"
        )
    )

    with pytest.raises(DuplicateParameterNameError) as exc_info:
        expand_template(template, _descriptors("body"), REFERENCE)

    assert exc_info.value.parameter_name == "body"


def test_live_defaults_are_bound_by_name():
    marker = object()
    parameters = [
        ParameterDescriptor(name="count", declaration="count: int = 3", default=3),
        ParameterDescriptor(name="cap", declaration="cap=limit", default=marker),
        ParameterDescriptor(name="label", declaration="label"),
    ]

    definition = expand_template(DEFAULT_TEMPLATE, parameters, REFERENCE)

    assert "count: int = 3" in definition.parameter_block
    assert "cap=limit" in definition.parameter_block
    assert "count: int = {0}['count']".format(DEFAULTS_NAME) in definition.source
    assert "cap={0}['cap']".format(DEFAULTS_NAME) in definition.source
    assert "limit" not in definition.source
    assert definition.defaults == {"count": 3, "cap": marker}
    assert definition.defaults["cap"] is marker
