"""Transcript parsing for line-oriented support conversations.

Transcripts arrive as ``Speaker: text`` lines, for example::

    Customer: My card was declined
    Agent: Sorry to hear that, which card?
    Customer: The visa ending 4242

Customer-side markers are ``Customer:`` and ``User:``; agent-side markers are
``Agent:``, ``Assistant:`` and ``You:``. Matching is case-insensitive. Lines
without a marker are ignored.
"""

import re
from dataclasses import dataclass
from enum import StrEnum

_USER_MARKER = re.compile(r"^\s*(customer|user)\s*:\s?", re.IGNORECASE)
_ASSISTANT_MARKER = re.compile(r"^\s*(assistant|agent|you)\s*:\s?", re.IGNORECASE)


class Speaker(StrEnum):
    CUSTOMER = "Customer"
    AGENT = "Agent"


@dataclass(frozen=True, slots=True)
class ConversationTurn:
    speaker: Speaker
    text: str


def _lines(transcript: str) -> list[str]:
    normalized = transcript.replace("\\r\\n", "\n").replace("\\n", "\n").replace("\r\n", "\n")
    return [line for line in normalized.split("\n") if line.strip()]


def _classify(line: str) -> ConversationTurn | None:
    match = _USER_MARKER.match(line)
    if match:
        return ConversationTurn(Speaker.CUSTOMER, line[match.end() :].strip())
    match = _ASSISTANT_MARKER.match(line)
    if match:
        return ConversationTurn(Speaker.AGENT, line[match.end() :].strip())
    return None


def parse_turns(transcript: str) -> list[ConversationTurn]:
    """Return every attributed line as a turn, in transcript order."""
    turns: list[ConversationTurn] = []
    for line in _lines(transcript):
        turn = _classify(line)
        if turn is not None:
            turns.append(turn)
    return turns


def parse_conversation_history(transcript: str) -> list[tuple[str, str]]:
    """Pair customer messages with the agent reply that follows them.

    A customer line that is followed by another customer line is flushed with
    an empty reply, as is a trailing unanswered customer line. An agent line
    with no customer line pending (an opening greeting) is paired with an
    empty customer message. A transcript with no recognised markers yields
    ``[]``; callers treat the raw text as a single unattributed message.
    """
    pairs: list[tuple[str, str]] = []
    pending_user: str | None = None
    for turn in parse_turns(transcript):
        if turn.speaker is Speaker.CUSTOMER:
            if pending_user is not None:
                pairs.append((pending_user, ""))
            pending_user = turn.text
            continue
        pairs.append((pending_user or "", turn.text))
        pending_user = None
    if pending_user is not None:
        pairs.append((pending_user, ""))
    return pairs


def has_role_markers(transcript: str) -> bool:
    return any(_classify(line) is not None for line in _lines(transcript))


def latest_user_message(transcript: str) -> str:
    """Last line that is not agent-attributed, minus its customer marker.

    Falls back to the whole (stripped) transcript when every line belongs to
    the agent or the transcript is blank.
    """
    for line in reversed(_lines(transcript)):
        if _ASSISTANT_MARKER.match(line):
            continue
        match = _USER_MARKER.match(line)
        text = line[match.end() :] if match else line
        return text.strip()
    return transcript.strip()
