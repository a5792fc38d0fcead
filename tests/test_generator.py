#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
End-to-end tests for remoting wrapper generation.
"""

import inspect
from typing import List

import pytest

from remotify.core.config import RemotifyConfig
from remotify.core.generator import generate_remote_wrapper
from remotify.core.registry import FunctionRegistry
from remotify.core.sessions import Credential, close_owned_sessions, open_sessions
from remotify.core.template import WrapperTemplate
from remotify.core.transport import LocalTransport, SessionHost
from remotify.core.utils.exceptions import (
    DuplicateParameterNameError,
    FunctionNotFoundError,
    NoTargetError,
    NotIntrospectableError,
    ParameterSetError,
    RemoteInvocationError,
    SessionConnectionError,
    TemplateMismatchError,
)

SCALE = 10


def count_items(items: List[str], count: int = 3) -> int:
    return min(len(items), count)


def scaled(value: int, factor: int = SCALE):
    return value * factor


def ping():
    return "pong"


def tally(count: int):
    return count


def with_collision(value, sessions):
    return value, sessions


def _setup(*addresses, **host_kwargs):
    hosts = {address: SessionHost(name=address, **host_kwargs) for address in addresses}
    return FunctionRegistry(), LocalTransport(hosts), hosts


def test_wrapper_signature_has_remoting_parameters_first():
    registry, transport, _ = _setup("node-a")

    wrapper = generate_remote_wrapper(count_items, registry=registry, transport=transport)

    parameters = list(inspect.signature(wrapper).parameters.values())
    assert [parameter.name for parameter in parameters] == [
        "targets",
        "credential",
        "sessions",
        "items",
        "count",
    ]
    assert all(parameter.kind is inspect.Parameter.KEYWORD_ONLY for parameter in parameters)
    assert parameters[4].default == 3
    assert wrapper.__name__ == "count_items_remote"
    assert wrapper.__module__ == count_items.__module__


def test_round_trip_single_parameter_definition():
    registry, transport, _ = _setup("node-a")

    wrapper = generate_remote_wrapper(tally, registry=registry, transport=transport)
    definition = wrapper.__remotify_definition__

    assert "count: int" in definition.parameter_block
    assert "targets: Optional[Sequence[str]] = None" in definition.parameter_block
    assert "credential: Optional[Credential] = None" in definition.parameter_block
    assert "sessions: Optional[Sequence[RemoteSession]] = None" in definition.parameter_block
    assert definition.argument_list == "count"


def test_wrapper_runs_body_on_every_target():
    registry, transport, hosts = _setup("node-a", "node-b")
    wrapper = generate_remote_wrapper(count_items, registry=registry, transport=transport)

    results = wrapper(targets=["node-a", "node-b"], items=["x", "y", "z", "w"])

    assert results == [3, 3]
    assert hosts["node-a"].session_ids() == []
    assert hosts["node-b"].session_ids() == []


def test_wrapper_evaluates_defaults_in_original_module():
    registry, transport, _ = _setup("node-a")
    wrapper = generate_remote_wrapper(scaled, registry=registry, transport=transport)

    assert wrapper(targets=["node-a"], value=2) == [20]


def test_wrapper_for_function_without_parameters():
    registry, transport, _ = _setup("node-a")
    wrapper = generate_remote_wrapper(ping, registry=registry, transport=transport)

    assert len(inspect.signature(wrapper).parameters) == 3
    assert wrapper(targets="node-a") == ["pong"]


def test_wrapper_reuses_caller_sessions_without_closing_them():
    registry, transport, hosts = _setup("node-a", "node-b")
    wrapper = generate_remote_wrapper(ping, registry=registry, transport=transport)
    sessions = open_sessions(["node-a", "node-b"], transport=transport)
    try:
        assert wrapper(sessions=sessions) == ["pong", "pong"]
        assert wrapper(sessions=sessions) == ["pong", "pong"]

        assert all(session.is_open for session in sessions)
        assert hosts["node-a"].get_session(sessions[0].session_id).invocation_count == 2
    finally:
        close_owned_sessions(sessions)


def test_wrapper_partial_connection_failure_closes_opened_session():
    registry, transport, hosts = _setup("node-a")
    wrapper = generate_remote_wrapper(ping, registry=registry, transport=transport)

    with pytest.raises(SessionConnectionError) as exc_info:
        wrapper(targets=["node-a", "node-unreachable"])

    assert exc_info.value.address == "node-unreachable"
    assert hosts["node-a"].session_ids() == []


def test_wrapper_closes_owned_sessions_when_body_fails():
    registry, transport, hosts = _setup("node-a", "node-b")

    def explode(reason: str):
        raise RuntimeError(reason)

    wrapper = generate_remote_wrapper(explode, registry=registry, transport=transport)

    with pytest.raises(RemoteInvocationError) as exc_info:
        wrapper(targets=["node-a", "node-b"], reason="disk full")

    assert len(exc_info.value.failures) == 2
    assert exc_info.value.failures[0].error.remote_message == "disk full"
    assert hosts["node-a"].session_ids() == []
    assert hosts["node-b"].session_ids() == []


def test_wrapper_without_targets_raises_no_target():
    registry, transport, _ = _setup("node-a")
    wrapper = generate_remote_wrapper(ping, registry=registry, transport=transport)

    with pytest.raises(NoTargetError):
        wrapper()


def test_wrapper_rejects_mixed_parameter_sets():
    registry, transport, _ = _setup("node-a")
    wrapper = generate_remote_wrapper(ping, registry=registry, transport=transport)
    sessions = open_sessions(["node-a"], transport=transport)

    with pytest.raises(ParameterSetError):
        wrapper(targets=["node-a"], sessions=sessions)
    with pytest.raises(ParameterSetError):
        wrapper(sessions=sessions, credential=Credential("ops", "pw"))

    close_owned_sessions(sessions)


def test_wrapper_forwards_credential():
    registry, transport, hosts = _setup("node-a", credentials={"ops": "pw"})
    wrapper = generate_remote_wrapper(ping, registry=registry, transport=transport)

    assert wrapper(targets=["node-a"], credential=Credential("ops", "pw")) == ["pong"]
    with pytest.raises(SessionConnectionError):
        wrapper(targets=["node-a"])


def test_collision_with_remoting_parameter_installs_nothing():
    registry, transport, _ = _setup("node-a")

    with pytest.raises(DuplicateParameterNameError):
        generate_remote_wrapper(with_collision, registry=registry, transport=transport)

    assert registry.names() == []


def test_not_introspectable_target_installs_nothing():
    registry, transport, _ = _setup("node-a")

    with pytest.raises(NotIntrospectableError):
        generate_remote_wrapper(len, registry=registry, transport=transport)

    assert registry.names() == []


def test_bad_template_installs_nothing():
    registry, transport, _ = _setup("node-a")
    template = WrapperTemplate(text="def __remotify_wrapper__(*, <#PARAMETERS#>):\n    pass\n")

    with pytest.raises(TemplateMismatchError):
        generate_remote_wrapper(ping, registry=registry, transport=transport, template=template)

    assert registry.names() == []


def test_generate_by_registered_name():
    registry, transport, _ = _setup("node-a")
    registry.register(tally)

    wrapper = generate_remote_wrapper("tally", registry=registry, transport=transport)

    assert wrapper(targets=["node-a"], count=4) == [4]


def test_generate_unknown_name_raises():
    registry, transport, _ = _setup("node-a")

    with pytest.raises(FunctionNotFoundError):
        generate_remote_wrapper("missing", registry=registry, transport=transport)


def test_explicit_name_and_namespace_binding():
    registry, transport, _ = _setup("node-a")
    namespace = {}

    wrapper = generate_remote_wrapper(
        ping,
        name="Invoke-Ping",
        registry=registry,
        transport=transport,
        namespace=namespace,
    )

    assert namespace["Invoke-Ping"] is wrapper
    assert registry.lookup("Invoke-Ping") is wrapper
    assert registry.lookup("ping") is ping


def test_wrapper_name_cannot_shadow_original():
    registry, transport, _ = _setup("node-a")

    with pytest.raises(ValueError):
        generate_remote_wrapper(ping, name="ping", registry=registry, transport=transport)


def test_configured_suffix_names_wrapper():
    registry, transport, _ = _setup("node-a")

    wrapper = generate_remote_wrapper(
        ping, registry=registry, transport=transport, config=RemotifyConfig(wrapper_suffix="Remote")
    )

    assert wrapper.__name__ == "pingRemote"
    assert "pingRemote" in registry


def test_regenerating_replaces_previous_wrapper():
    registry, transport, _ = _setup("node-a")

    def report():
        return "v1"

    generate_remote_wrapper(report, registry=registry, transport=transport)

    def report():  # noqa: F811
        return "v2"

    generate_remote_wrapper(report, name="report_remote", registry=registry, transport=transport)

    assert registry.lookup("report_remote")(targets=["node-a"]) == ["v2"]


def test_body_is_looked_up_by_name_at_call_time():
    registry, transport, hosts = _setup("node-a")
    wrapper = generate_remote_wrapper(tally, registry=registry, transport=transport)

    registry.register(lambda count: count * 100, "tally")

    assert wrapper(targets=["node-a"], count=2) == [200]

    registry.unregister("tally")
    with pytest.raises(FunctionNotFoundError):
        wrapper(targets=["node-a"], count=2)
    assert hosts["node-a"].session_ids() == []


def test_parallel_sessions_from_config():
    registry, transport, _ = _setup("node-a", "node-b", "node-c")
    wrapper = generate_remote_wrapper(
        tally,
        registry=registry,
        transport=transport,
        config=RemotifyConfig(max_parallel_sessions=3),
    )

    assert wrapper(targets=["node-a", "node-b", "node-c"], count=1) == [1, 1, 1]


def make_clipper(limit):
    def clipped(value: int, cap=limit):
        return min(value, cap)

    return clipped


class Shelf:
    LIMIT = 4

    def take(self, count=LIMIT):
        return count


def test_default_from_enclosing_scope():
    registry, transport, _ = _setup("node-a")

    wrapper = generate_remote_wrapper(make_clipper(5), registry=registry, transport=transport)

    assert wrapper(targets=["node-a"], value=9) == [5]
    assert wrapper(targets=["node-a"], value=9, cap=7) == [7]


def test_default_from_class_body():
    registry, transport, _ = _setup("node-a")

    wrapper = generate_remote_wrapper(Shelf().take, registry=registry, transport=transport)

    assert wrapper.__name__ == "take_remote"
    assert wrapper(targets=["node-a"]) == [4]


def test_default_expression_is_not_evaluated_again():
    registry, transport, _ = _setup("node-a")
    calls = []

    def fresh_bucket():
        calls.append(1)
        return []

    def collect(item, bucket=fresh_bucket()):
        bucket.append(item)
        return len(bucket)

    wrapper = generate_remote_wrapper(collect, registry=registry, transport=transport)

    assert calls == [1]
    assert wrapper.__kwdefaults__["bucket"] is collect.__defaults__[0]
    assert wrapper(targets=["node-a"], item="x") == [1]
    assert collect("y") == 2


def echo_options(__options__):
    return __options__


def echo_sessions(__sessions__):
    return __sessions__


@pytest.mark.parametrize("func", [echo_options, echo_sessions])
def test_parameter_named_like_template_local_is_rejected(func):
    registry, transport, _ = _setup("node-a")

    with pytest.raises(DuplicateParameterNameError):
        generate_remote_wrapper(func, registry=registry, transport=transport)

    assert registry.names() == []


def test_default_without_source_form_is_bound_live():
    registry, transport, _ = _setup("node-a")
    sentinel = object()
    pick = lambda value=sentinel: value is sentinel  # noqa: E731

    wrapper = generate_remote_wrapper(pick, name="pick_remote", registry=registry, transport=transport)

    assert wrapper(targets=["node-a"]) == [True]
