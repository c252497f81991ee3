"""
Tests for SessionContext and the session channel
"""
import asyncio

import pytest

from licensing.api.events import session_event_stream
from licensing.domain.entities import AccessDenied, AuthenticationRequired
from licensing.domain.principal import Principal
from licensing.domain.value_objects import AppRole
from licensing.services.session_channel import SessionChannel, SessionEvent, SessionEventType
from licensing.services.session_context import SessionContext


@pytest.fixture
def channel():
    return SessionChannel()


def user_context(channel, user_id="user-1", token_id="token-1", roles=(AppRole.USER,)):
    return SessionContext(Principal.user(user_id, roles), token_id=token_id, channel=channel)


def test_anonymous_context_requires_sign_in():
    """Anonymous context raises on require()"""
    context = SessionContext.anonymous()

    assert not context.is_authenticated
    with pytest.raises(AuthenticationRequired):
        context.require()


def test_system_context_passes_admin_check():
    context = SessionContext.system()

    assert context.require_admin().is_system


def test_plain_user_fails_admin_check(channel):
    context = user_context(channel)

    with pytest.raises(AccessDenied):
        context.require_admin()


def test_authenticated_context_subscribes_and_close_unsubscribes(channel):
    context = user_context(channel)
    assert channel.listener_count == 1

    context.close()
    context.close()
    assert channel.listener_count == 0


def test_anonymous_context_does_not_subscribe(channel):
    SessionContext(channel=channel)

    assert channel.listener_count == 0


def test_sign_out_of_own_token_makes_context_anonymous(channel):
    """Signing out mid-request turns the live context anonymous"""
    context = user_context(channel)

    channel.publish(SessionEvent(SessionEventType.SIGNED_OUT, "user-1", token_id="token-1"))

    assert not context.is_authenticated
    assert channel.listener_count == 0
    with pytest.raises(AuthenticationRequired):
        context.require()


def test_sign_out_of_other_token_keeps_context(channel):
    context = user_context(channel)

    channel.publish(SessionEvent(SessionEventType.SIGNED_OUT, "user-1", token_id="token-2"))

    assert context.is_authenticated


def test_sign_out_of_all_sessions_applies_to_every_token(channel):
    first = user_context(channel, token_id="token-1")
    second = user_context(channel, token_id="token-2")

    channel.publish(SessionEvent(SessionEventType.SIGNED_OUT, "user-1"))

    assert not first.is_authenticated
    assert not second.is_authenticated


def test_events_for_other_users_are_ignored(channel):
    context = user_context(channel)

    channel.publish(SessionEvent(SessionEventType.SIGNED_OUT, "user-2"))

    assert context.is_authenticated


def test_roles_changed_drops_roles(channel):
    context = user_context(channel, roles=(AppRole.ADMIN, AppRole.USER))
    assert context.principal.is_admin

    channel.publish(SessionEvent(SessionEventType.ROLES_CHANGED, "user-1"))

    assert context.is_authenticated
    assert context.principal.roles == frozenset()


def test_failing_listener_does_not_block_others(channel):
    calls = []

    def broken(event):
        raise RuntimeError("boom")

    channel.subscribe(broken)
    channel.subscribe(calls.append)

    channel.publish(SessionEvent(SessionEventType.SIGNED_IN, "user-1"))

    assert len(calls) == 1


def test_event_payload_shape():
    event = SessionEvent(SessionEventType.ROLES_CHANGED, "user-1")

    payload = event.to_dict()

    assert payload["event"] == "ROLES_CHANGED"
    assert payload["user_id"] == "user-1"
    assert "timestamp" in payload


@pytest.mark.asyncio
async def test_event_stream_delivers_events_and_ends_on_sign_out(channel):
    """SSE stream forwards the user's events and stops at its own sign-out"""
    stream = session_event_stream("user-1", "token-1", channel)

    connected = await stream.__anext__()
    assert '"connected"' in connected
    assert channel.stream_count == 1

    channel.publish(SessionEvent(SessionEventType.ROLES_CHANGED, "user-1"))
    channel.publish(SessionEvent(SessionEventType.SIGNED_OUT, "user-1", token_id="token-1"))

    frames = []
    async for frame in stream:
        frames.append(frame)

    assert len(frames) == 2
    assert "ROLES_CHANGED" in frames[0]
    assert "SIGNED_OUT" in frames[1]
    assert channel.stream_count == 0


@pytest.mark.asyncio
async def test_connect_queues_only_matching_user(channel):
    queue = channel.connect("user-1")

    channel.publish(SessionEvent(SessionEventType.SIGNED_IN, "user-2"))
    channel.publish(SessionEvent(SessionEventType.SIGNED_IN, "user-1"))

    event = await asyncio.wait_for(queue.get(), timeout=1)
    assert event.user_id == "user-1"
    assert queue.empty()

    channel.disconnect("user-1", queue)
    assert channel.stream_count == 0
