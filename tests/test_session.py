import dataclasses
from types import SimpleNamespace

import pytest

from mqttkit.session import Session


def test_state_and_sink_are_kept():
    state = SimpleNamespace(client_id="my-client-id")
    sink = object()
    session = Session(state, sink)
    assert session.state is state
    assert session.sink is sink


def test_default_params():
    session = Session(None, None)
    assert session.params() == (0, 0)


def test_v5_params():
    session = Session("st", "sink", max_receive=5, max_topic_alias=7)
    assert session.params() == (5, 7)


def test_attributes_delegate_to_state():
    session = Session(SimpleNamespace(client_id="my-client-id"), None)
    assert session.client_id == "my-client-id"


def test_missing_attribute_raises():
    session = Session(SimpleNamespace(), None)
    with pytest.raises(AttributeError):
        session.unknown_field
    assert getattr(session, "unknown_field", "fallback") == "fallback"


def test_session_is_immutable():
    session = Session("st", "sink")
    with pytest.raises(dataclasses.FrozenInstanceError):
        session.state = "other"
    assert session.state == "st"


def test_copies_share_state():
    state = SimpleNamespace(subscriptions=[])
    session = Session(state, None)
    clone = dataclasses.replace(session)
    clone.subscriptions.append("topic1")
    assert session.subscriptions == ["topic1"]