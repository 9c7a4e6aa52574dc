"""
Conversation identity.

A conversation is not stored anywhere: it is the set of messages exchanged
between exactly two users, named by sorting both user ids and joining them
with ``CONVERSATION_SEPARATOR``. User ids are hex strings, so the separator
never appears inside an id and the mapping is injective over unordered pairs.
"""

from typing import Tuple

from app.exceptions import ValidationError

CONVERSATION_SEPARATOR = "_"


def conversation_id(user_a: str, user_b: str) -> str:
    """Return the canonical conversation id for two participants.

    The result does not depend on argument order.
    """
    first, second = sorted((str(user_a), str(user_b)))
    return f"{first}{CONVERSATION_SEPARATOR}{second}"


def conversation_participants(value: str) -> Tuple[str, str]:
    """Split a conversation id back into its two participant ids."""
    parts = (value or "").split(CONVERSATION_SEPARATOR)
    if len(parts) != 2 or not all(parts):
        raise ValidationError("Invalid conversation id")
    return parts[0], parts[1]


def is_participant(value: str, user_id: str) -> bool:
    try:
        return str(user_id) in conversation_participants(value)
    except ValidationError:
        return False


def other_participant(value: str, user_id: str) -> str:
    first, second = conversation_participants(value)
    return second if first == str(user_id) else first
