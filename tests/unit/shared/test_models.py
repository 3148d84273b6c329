import pytest
from pydantic import ValidationError

from shared.models import (
    EventDraft,
    TrackingConfig,
    UserEvent,
    UserEventCategory,
    UserEventType,
    UserRole,
    UserSession,
    create_clinical_action_event,
    create_error_event,
    create_page_view_event,
    create_search_event,
    create_session_event,
    resolve_clinical_event_type,
    sanitize_document,
    to_document,
)


def test_page_view_factory():
    """Page views carry the previous page alongside caller data."""
    draft = create_page_view_event(
        "u1", UserRole.DOCTOR, "s1", "/patients", previous_page="/", data={"a": 1}
    )
    assert draft.event_type is UserEventType.PAGE_VIEW
    assert draft.category is UserEventCategory.NAVIGATION
    assert draft.data == {"previousPage": "/", "a": 1}


def test_search_factory():
    draft = create_search_event("u1", UserRole.STAFF, "s1", "smith", "/search", 4)
    assert draft.event_type is UserEventType.SEARCH_QUERY
    assert draft.category is UserEventCategory.FEATURE_USAGE
    assert draft.data == {"searchTerm": "smith", "resultsCount": 4}


@pytest.mark.parametrize(
    "action,resource_type,expected",
    [
        ("patient_edit", "patient", UserEventType.PATIENT_EDIT),
        ("PRESCRIPTION_CREATE", "prescription", UserEventType.PRESCRIPTION_CREATE),
        ("create", "prescription", UserEventType.PRESCRIPTION_CREATE),
        ("schedule", "appointment", UserEventType.APPOINTMENT_SCHEDULE),
        ("view", "treatment", UserEventType.TREATMENT_VIEW),
        ("export_data", "patient", UserEventType.PATIENT_VIEW),
        ("open", "chart", UserEventType.PATIENT_VIEW),
    ],
)
def test_resolve_clinical_event_type(action, resource_type, expected):
    assert resolve_clinical_event_type(action, resource_type) is expected


def test_clinical_action_factory_keeps_resource_fields():
    draft = create_clinical_action_event(
        "u1",
        UserRole.NURSE,
        "s1",
        action="view",
        resource_type="treatment",
        page="/treatments/9",
        resource_id="t-9",
        extra={"ward": "B"},
    )
    assert draft.category is UserEventCategory.CLINICAL_ACTION
    assert draft.action == "view"
    assert draft.data == {"resourceType": "treatment", "resourceId": "t-9", "ward": "B"}


def test_error_factory_captures_traceback():
    try:
        raise KeyError("dob")
    except KeyError as e:
        draft = create_error_event("u1", UserRole.ADMIN, "s1", e, "/forms")
    assert draft.event_type is UserEventType.ERROR_ENCOUNTERED
    assert draft.data["errorType"] == "KeyError"
    assert "raise KeyError" in draft.data["errorStack"]


def test_session_event_factory_rejects_non_lifecycle_types():
    with pytest.raises(ValueError):
        create_session_event(
            "u1", UserRole.DOCTOR, "s1", UserEventType.PAGE_VIEW, page="/"
        )


def test_event_draft_is_frozen():
    draft = create_search_event("u1", UserRole.STAFF, "s1", "x", "/")
    with pytest.raises(ValidationError):
        draft.page = "/other"


def test_user_event_round_trips_through_camel_case_document():
    event = UserEvent(
        **create_search_event("u1", UserRole.STAFF, "s1", "x", "/").model_dump(),
        timestamp=1_700_000_000_000,
    )
    doc = to_document(event)
    assert doc["userId"] == "u1"
    assert doc["eventType"] == "search_query"
    assert doc["sessionId"] == "s1"
    assert "userAgent" not in doc
    assert "resultsCount" not in doc["data"]
    assert UserEvent.model_validate(doc).user_id == "u1"


def test_sanitize_document_drops_none_at_every_level():
    doc = {
        "a": 1,
        "b": None,
        "nested": {"c": None, "d": {"e": None, "f": 0}},
        "items": [{"g": None, "h": False}, None, 3],
    }
    assert sanitize_document(doc) == {
        "a": 1,
        "nested": {"d": {"f": 0}},
        "items": [{"h": False}, None, 3],
    }


def test_session_document_uses_aliases():
    session = UserSession(
        id="s1",
        user_id="u1",
        user_role=UserRole.PATIENT,
        start_time=1,
        last_activity=2,
        entry_page="/",
    )
    doc = to_document(session)
    assert doc["isActive"] is True
    assert doc["entryPage"] == "/"
    assert "endTime" not in doc
    assert doc["browserInfo"] == {}


def test_event_requires_known_event_type():
    with pytest.raises(ValidationError):
        EventDraft(
            user_id="u1",
            user_role=UserRole.DOCTOR,
            session_id="s1",
            event_type="teleport",
            category="system",
        )


@pytest.mark.parametrize(
    "changes",
    [{"sample_rate": -0.1}, {"sample_rate": 1.01}, {"batch_size": 0}, {"flush_interval": 0}],
)
def test_tracking_config_validation(changes):
    with pytest.raises(ValidationError):
        TrackingConfig().updated(**changes)


def test_tracking_config_updated_returns_new_instance():
    base = TrackingConfig()
    changed = base.updated(batch_size=25, exclude_pages=["/admin"])
    assert base.batch_size == 10
    assert changed.batch_size == 25
    assert changed.is_page_excluded("/admin/users")
    assert not changed.is_page_excluded(None)
