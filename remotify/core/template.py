#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Wrapper template expansion.

A wrapper template is Python source with three placeholders:

- ``<#PARAMETERS#>``: the full parameter block, remoting parameters first,
  then the original parameters in declaration order.
- ``<#ARGUMENTS#>``: the original parameter names, forwarded to the remote
  body in declaration order.
- ``<#BODY#>``: a call-time lookup of the original callable by name.

Expansion is a pure text transformation. Original parameters that have a
live default are compiled as ``name = __remotify_defaults__['name']`` so the
wrapper reuses the original default object; the verbatim declarations are
kept in ``GeneratedDefinition.parameter_block``.
"""

import ast
import re
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Sequence, Tuple

from .signature import CallableReference, ParameterDescriptor
from .utils.exceptions import DuplicateParameterNameError, TemplateMismatchError

PARAMETERS_PLACEHOLDER = "<#PARAMETERS#>"
ARGUMENTS_PLACEHOLDER = "<#ARGUMENTS#>"
BODY_PLACEHOLDER = "<#BODY#>"

PLACEHOLDERS: Tuple[str, ...] = (
    PARAMETERS_PLACEHOLDER,
    ARGUMENTS_PLACEHOLDER,
    BODY_PLACEHOLDER,
)

_PLACEHOLDER_PATTERN = re.compile(r"<#[A-Z_]+#>")

# Name the runtime handle is bound to inside generated code.
RUNTIME_NAME = "__remotify__"

# Mapping of live default values, bound next to the runtime handle.
DEFAULTS_NAME = "__remotify_defaults__"

# Name of the function a template defines; the installer renames it.
WRAPPER_FUNCTION_NAME = "__remotify_wrapper__"

DECLARATION_SEPARATOR = ",\n    "


@dataclass(frozen=True)
class RemotingParameterSet:
    """
    The generator-owned remoting parameters.

    ``targets`` and ``credential`` form the "by_address" set, ``sessions`` the
    "by_session" set. A caller supplies one set or the other.
    """

    targets: ParameterDescriptor = ParameterDescriptor(
        name="targets",
        declaration="targets: Optional[Sequence[str]] = None",
        parameter_set="by_address",
    )
    credential: ParameterDescriptor = ParameterDescriptor(
        name="credential",
        declaration="credential: Optional[Credential] = None",
        parameter_set="by_address",
    )
    sessions: ParameterDescriptor = ParameterDescriptor(
        name="sessions",
        declaration="sessions: Optional[Sequence[RemoteSession]] = None",
        parameter_set="by_session",
    )

    @property
    def descriptors(self) -> Tuple[ParameterDescriptor, ...]:
        return (self.targets, self.credential, self.sessions)

    @property
    def names(self) -> Tuple[str, ...]:
        return tuple(descriptor.name for descriptor in self.descriptors)

    @property
    def reserved_names(self) -> Tuple[str, ...]:
        return self.names + (RUNTIME_NAME, DEFAULTS_NAME)


REMOTING_PARAMETERS = RemotingParameterSet()


@dataclass(frozen=True)
class WrapperTemplate:
    """Source skeleton of a generated wrapper."""

    text: str

    def placeholder_counts(self) -> Dict[str, int]:
        counts = {placeholder: 0 for placeholder in PLACEHOLDERS}
        for match in _PLACEHOLDER_PATTERN.finditer(self.text):
            token = match.group(0)
            if token not in counts:
                raise TemplateMismatchError(token, -1)
            counts[token] += 1
        return counts

    def validate(self) -> None:
        """Raise ``TemplateMismatchError`` unless every placeholder appears exactly once."""
        for placeholder, occurrences in self.placeholder_counts().items():
            if occurrences != 1:
                raise TemplateMismatchError(placeholder, occurrences)

    def substitute(self, values: Dict[str, str]) -> str:
        """
        Replace every placeholder in a single pass.

        Substituted text is never scanned again, so placeholder-like text inside
        a declaration stays literal.
        """
        self.validate()
        return _PLACEHOLDER_PATTERN.sub(lambda match: values[match.group(0)], self.text)

    def bound_names(self) -> Tuple[str, ...]:
        """
        Names the template itself binds inside the wrapper.

        An original parameter with one of these names would be overwritten
        before its value is forwarded. Returns an empty tuple when the
        template text is not parseable; compilation reports that later.
        """
        skeleton = self.substitute(
            {
                PARAMETERS_PLACEHOLDER: "_",
                ARGUMENTS_PLACEHOLDER: "",
                BODY_PLACEHOLDER: "None",
            }
        )
        try:
            tree = ast.parse(skeleton)
        except SyntaxError:
            return ()

        names = set()
        for node in ast.walk(tree):
            if isinstance(node, ast.Name) and isinstance(node.ctx, (ast.Store, ast.Del)):
                names.add(node.id)
            elif isinstance(node, ast.ExceptHandler) and node.name:
                names.add(node.name)
            elif isinstance(node, (ast.FunctionDef, ast.AsyncFunctionDef, ast.ClassDef)):
                if node.name != WRAPPER_FUNCTION_NAME:
                    names.add(node.name)
        return tuple(sorted(names))


DEFAULT_TEMPLATE = WrapperTemplate(
    text='''\
def __remotify_wrapper__(
    *,
    <#PARAMETERS#>,
):
    __options__ = __remotify__.options(
        targets=targets, credential=credential, sessions=sessions
    )
    __sessions__ = __remotify__.resolve(__options__)
    try:
        return __remotify__.dispatch(__sessions__, <#BODY#>, [<#ARGUMENTS#>])
    finally:
        __remotify__.teardown(__sessions__, __options__)
'''
)


@dataclass(frozen=True)
class GeneratedDefinition:
    """
    Expanded wrapper source plus the pieces it was built from.

    ``parameter_block`` holds the declarations as written in the original;
    ``source`` is what gets compiled, with live defaults bound through
    ``defaults``.
    """

    original_name: str
    source: str
    parameters: Tuple[ParameterDescriptor, ...]
    arguments: Tuple[str, ...]
    parameter_block: str = field(repr=False)
    argument_list: str = field(repr=False)
    body_expression: str = field(repr=False)
    defaults: Mapping[str, Any] = field(default_factory=dict, repr=False, compare=False)


def _declaration_head(declaration: str) -> Optional[str]:
    """Return ``name`` or ``name: annotation`` of a declaration, without its default."""
    stub = "def _(*, {0}): pass".format(declaration)
    try:
        node = ast.parse(stub).body[0]
    except SyntaxError:
        return None
    if len(node.args.kwonlyargs) != 1:
        return None
    argument = node.args.kwonlyargs[0]
    if argument.annotation is None:
        return argument.arg
    annotation = ast.get_source_segment(stub, argument.annotation)
    if annotation is None:
        return None
    return "{0}: {1}".format(argument.arg, annotation)


def compiled_declaration(parameter: ParameterDescriptor) -> str:
    """
    Declaration text used in compiled source.

    A parameter with a live default refers to it by name in the defaults
    mapping, so closure locals, class attributes and side-effecting default
    expressions behave exactly as in the original.
    """
    if not parameter.has_default:
        return parameter.declaration
    head = _declaration_head(parameter.declaration) or parameter.name
    separator = " = " if ":" in head else "="
    return "{0}{1}{2}[{3!r}]".format(head, separator, DEFAULTS_NAME, parameter.name)


def build_parameter_block(
    parameters: Sequence[ParameterDescriptor],
    remoting: RemotingParameterSet = REMOTING_PARAMETERS,
) -> Tuple[Tuple[ParameterDescriptor, ...], str]:
    """
    Combine remoting and original parameters into one declaration block.
    """
    combined = tuple(remoting.descriptors) + tuple(parameters)
    return combined, DECLARATION_SEPARATOR.join(parameter.declaration for parameter in combined)


def build_argument_list(parameters: Sequence[ParameterDescriptor]) -> Tuple[Tuple[str, ...], str]:
    names = tuple(parameter.name for parameter in parameters)
    return names, ", ".join(names)


def build_body_reference(reference: CallableReference) -> str:
    return "{0}.lookup({1!r})".format(RUNTIME_NAME, reference.name)


def check_reserved_names(
    parameters: Sequence[ParameterDescriptor],
    remoting: RemotingParameterSet = REMOTING_PARAMETERS,
    callable_name: Optional[str] = None,
    template_names: Sequence[str] = (),
) -> None:
    reserved = set(remoting.reserved_names) | set(template_names)
    for parameter in parameters:
        if parameter.name in reserved:
            raise DuplicateParameterNameError(parameter.name, callable_name)


def expand_template(
    template: WrapperTemplate,
    parameters: Sequence[ParameterDescriptor],
    reference: CallableReference,
    remoting: RemotingParameterSet = REMOTING_PARAMETERS,
) -> GeneratedDefinition:
    """
    Expand ``template`` into the source of a remoting wrapper for ``reference``.

    Raises:
        TemplateMismatchError: a placeholder is missing, repeated or unknown.
        DuplicateParameterNameError: an original parameter uses a reserved name
            or a name the template binds.
    """
    template.validate()
    check_reserved_names(parameters, remoting, reference.name, template.bound_names())

    combined, parameter_block = build_parameter_block(parameters, remoting)
    compiled_block = DECLARATION_SEPARATOR.join(compiled_declaration(parameter) for parameter in combined)
    defaults = {parameter.name: parameter.default for parameter in parameters if parameter.has_default}
    arguments, argument_list = build_argument_list(parameters)
    body_expression = build_body_reference(reference)

    source = template.substitute(
        {
            PARAMETERS_PLACEHOLDER: compiled_block,
            ARGUMENTS_PLACEHOLDER: argument_list,
            BODY_PLACEHOLDER: body_expression,
        }
    )
    return GeneratedDefinition(
        original_name=reference.name,
        source=source,
        parameters=combined,
        arguments=arguments,
        parameter_block=parameter_block,
        argument_list=argument_list,
        body_expression=body_expression,
        defaults=defaults,
    )
