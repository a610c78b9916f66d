"""Basic unit tests for the pawshare package."""

import typing

from pawshare import (
    AsyncPawshare,
    AuthError,
    PawshareError,
    RealtimeError,
    SendError,
    StoreError,
    UnreadTracker,
    __version__,
)
from pawshare.models.events import ChangeType, RealtimeEvent
from pawshare.models.message import TEMP_ID_PREFIX, ProvisionalMessage
from pawshare.models.unread import EMPTY, UnreadAggregate


def test_version():
    assert __version__ == "0.1.0"


def test_public_exports():
    assert AsyncPawshare is not None
    assert UnreadTracker is not None


def test_error_hierarchy():
    assert issubclass(AuthError, PawshareError)
    assert issubclass(StoreError, PawshareError)
    assert issubclass(SendError, PawshareError)
    assert issubclass(RealtimeError, PawshareError)


def test_error_attributes():
    err = PawshareError(code="test_code", message="something broke")
    assert err.code == "test_code"
    assert str(err) == "something broke"
    assert err.details is None

    err_with_body = SendError("not sent", details={"body": "hi"})
    assert err_with_body.code == "send_error"
    assert err_with_body.details == {"body": "hi"}


def test_event_constants():
    assert RealtimeEvent.POSTGRES_CHANGES == "postgres_changes"
    assert RealtimeEvent.SUBSCRIBE == "realtime:subscribe"
    assert ChangeType("INSERT") is ChangeType.INSERT


def test_provisional_ids_are_unique():
    a = ProvisionalMessage(sender_id="a", recipient_id="b", content="hi")
    b = ProvisionalMessage(sender_id="a", recipient_id="b", content="hi")
    assert a.id.startswith(TEMP_ID_PREFIX)
    assert a.id != b.id
    assert a.provisional


def test_unread_aggregate_bounds():
    agg = EMPTY.bumped("c1").bumped("c1").bumped(None)
    assert agg.total == 3
    assert agg.by_conversation == {"c1": 2}
    assert agg.has_new_messages

    drained = agg.decremented("c1").decremented("c1").decremented("c1").decremented(None)
    assert drained.total == 0
    assert drained.by_conversation == {}
    assert drained.count_for("c1") == 0
    assert isinstance(drained, UnreadAggregate)


def test_session_annotations_resolve():
    from pawshare import timeline
    from pawshare.conversation import ConversationSession

    hints = typing.get_type_hints(ConversationSession._apply)
    assert hints["update"] == typing.Callable[[timeline.Timeline], timeline.Timeline]
    assert typing.get_type_hints(ConversationSession.open)["return"] is type(None)
