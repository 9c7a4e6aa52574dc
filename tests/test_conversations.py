from uuid import uuid4

import pytest

from app.conversations import (
    conversation_id,
    conversation_participants,
    is_participant,
    other_participant,
)
from app.exceptions import ValidationError


def _id():
    return uuid4().hex


def test_conversation_id_is_commutative():
    a, b = _id(), _id()
    assert conversation_id(a, b) == conversation_id(b, a)


def test_conversation_id_sorts_and_joins():
    assert conversation_id("bbb", "aaa") == "aaa_bbb"


def test_three_users_give_three_distinct_ids():
    a, b, c = _id(), _id(), _id()
    ids = {conversation_id(a, b), conversation_id(a, c), conversation_id(b, c)}
    assert len(ids) == 3


def test_conversation_id_is_stable():
    a, b = _id(), _id()
    assert conversation_id(a, b) == conversation_id(a, b)


def test_participants_round_trip():
    a, b = _id(), _id()
    assert set(conversation_participants(conversation_id(a, b))) == {a, b}


@pytest.mark.parametrize("value", ["", "abc", "a_b_c", "_abc", "abc_", None])
def test_malformed_conversation_id_is_rejected(value):
    with pytest.raises(ValidationError):
        conversation_participants(value)


def test_is_participant():
    a, b, c = _id(), _id(), _id()
    value = conversation_id(a, b)
    assert is_participant(value, a)
    assert is_participant(value, b)
    assert not is_participant(value, c)
    assert not is_participant("garbage", a)


def test_other_participant():
    a, b = _id(), _id()
    value = conversation_id(a, b)
    assert other_participant(value, a) == b
    assert other_participant(value, b) == a
