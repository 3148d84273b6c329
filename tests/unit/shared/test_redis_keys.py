import pytest

from shared.constants import Collections, RedisKeys


def test_document_key():
    assert RedisKeys.document_key(Collections.USER_ANALYTICS, "abc") == (
        "user_analytics:abc"
    )
    assert RedisKeys.document_key(Collections.USER_SESSIONS, "s1") == "user_sessions:s1"


def test_changes_channel():
    assert RedisKeys.changes_channel(Collections.USER_SESSIONS) == (
        "telemetry:changes:user_sessions"
    )


def test_unknown_collection_rejected():
    with pytest.raises(ValueError):
        RedisKeys.document_key("audit_log", "x")
    with pytest.raises(ValueError):
        RedisKeys.changes_channel("audit_log")
