"""
Pure reconciliation of a conversation timeline.

Timelines are tuples of ``Message`` (confirmed) and ``ProvisionalMessage``
entries ordered by ``created_at``. Functions here never mutate their input.
A provisional entry is superseded by the first confirmed message with the
same sender, recipient and content; confirmed entries are unique by id.
"""

from datetime import datetime, timezone
from typing import Iterable, Sequence, Union

from pawshare.models.message import Message, ProvisionalMessage

Entry = Union[Message, ProvisionalMessage]
Timeline = tuple[Entry, ...]


def _sort_key(entry: Entry) -> datetime:
    ts = entry.created_at
    return ts if ts.tzinfo else ts.replace(tzinfo=timezone.utc)


def ordered(entries: Iterable[Entry]) -> Timeline:
    return tuple(sorted(entries, key=_sort_key))


def append(entries: Sequence[Entry], entry: ProvisionalMessage) -> Timeline:
    return (*entries, entry)


def remove(entries: Sequence[Entry], entry_id: str) -> Timeline:
    return tuple(e for e in entries if e.id != entry_id)


def merge_confirmed(entries: Sequence[Entry], message: Message) -> Timeline:
    """Fold a confirmed message into the timeline.

    Drops provisional entries it supersedes, then inserts it unless an entry
    with its id is already present. Delivering the same message twice yields
    the same timeline.
    """
    kept = [e for e in entries if not (isinstance(e, ProvisionalMessage) and e.matches(message))]
    if any(isinstance(e, Message) and e.id == message.id for e in kept):
        return tuple(kept)
    kept.append(message)
    return ordered(kept)


def adopt_history(entries: Sequence[Entry], history: Iterable[Message]) -> Timeline:
    """Replace the confirmed part of a timeline with a freshly loaded history.

    Entries that arrived while the history was loading (change feed inserts
    and provisional sends) are folded back in.
    """
    result = ordered(history)
    for entry in entries:
        if isinstance(entry, Message):
            result = merge_confirmed(result, entry)
        elif not any(isinstance(m, Message) and entry.matches(m) for m in result):
            result = ordered((*result, entry))
    return result


def confirmed_ids(entries: Iterable[Entry]) -> list[str]:
    return [e.id for e in entries if isinstance(e, Message)]
