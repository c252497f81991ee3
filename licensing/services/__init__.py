"""
Services package - identity, sessions and session-change notifications.
"""
from licensing.services.identity_service import IdentityService
from licensing.services.session_channel import SessionChannel, SessionEvent, SessionEventType, session_channel
from licensing.services.session_context import SessionContext

__all__ = [
    'IdentityService',
    'SessionChannel',
    'SessionEvent',
    'SessionEventType',
    'SessionContext',
    'session_channel',
]
