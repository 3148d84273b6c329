import traceback
from typing import Any

from pydantic import Field

from .base import BrowserInfo, FrozenDocumentModel, PerformanceTimings
from .enums import DeviceType, UserEventCategory, UserEventType, UserRole


class EventDraft(FrozenDocumentModel):
    """Event content decided by the caller, before the agent stamps it."""

    user_id: str
    user_role: UserRole
    session_id: str
    event_type: UserEventType
    category: UserEventCategory
    page: str | None = None
    component: str | None = None
    feature: str | None = None
    action: str | None = None
    data: dict[str, Any] = Field(default_factory=dict)


class UserEvent(EventDraft):
    """One immutable, timestamped fact about user behaviour."""

    id: str | None = Field(None, description="Assigned by the store on write")
    timestamp: int = Field(..., description="Epoch-ms when the event occurred")

    user_agent: str | None = None
    ip_address: str | None = None
    device_type: DeviceType | None = None
    browser_info: BrowserInfo | None = None

    performance: PerformanceTimings | None = None


def create_page_view_event(
    user_id: str,
    user_role: UserRole,
    session_id: str,
    page: str,
    previous_page: str | None = None,
    data: dict[str, Any] | None = None,
) -> EventDraft:
    return EventDraft(
        user_id=user_id,
        user_role=user_role,
        session_id=session_id,
        event_type=UserEventType.PAGE_VIEW,
        category=UserEventCategory.NAVIGATION,
        page=page,
        data={"previousPage": previous_page, **(data or {})},
    )


def create_feature_click_event(
    user_id: str,
    user_role: UserRole,
    session_id: str,
    feature: str,
    component: str,
    page: str | None,
    action: str | None = None,
    extra: dict[str, Any] | None = None,
) -> EventDraft:
    return EventDraft(
        user_id=user_id,
        user_role=user_role,
        session_id=session_id,
        event_type=UserEventType.FEATURE_CLICK,
        category=UserEventCategory.FEATURE_USAGE,
        page=page,
        component=component,
        feature=feature,
        action=action,
        data=dict(extra or {}),
    )


def create_search_event(
    user_id: str,
    user_role: UserRole,
    session_id: str,
    search_term: str,
    page: str | None,
    results_count: int | None = None,
) -> EventDraft:
    return EventDraft(
        user_id=user_id,
        user_role=user_role,
        session_id=session_id,
        event_type=UserEventType.SEARCH_QUERY,
        category=UserEventCategory.FEATURE_USAGE,
        page=page,
        data={"searchTerm": search_term, "resultsCount": results_count},
    )


def resolve_clinical_event_type(action: str, resource_type: str) -> UserEventType:
    """Map a clinical action onto the closest clinical event type.

    ``"patient_edit"`` resolves directly, ``("schedule", "appointment")``
    resolves through ``appointment_schedule``; anything else is a patient view.
    """
    clinical = UserEventType.clinical()
    for candidate in (action, f"{resource_type}_{action}"):
        try:
            event_type = UserEventType(candidate.lower())
        except ValueError:
            continue
        if event_type in clinical:
            return event_type
    return UserEventType.PATIENT_VIEW


def create_clinical_action_event(
    user_id: str,
    user_role: UserRole,
    session_id: str,
    action: str,
    resource_type: str,
    page: str | None,
    resource_id: str | None = None,
    extra: dict[str, Any] | None = None,
) -> EventDraft:
    return EventDraft(
        user_id=user_id,
        user_role=user_role,
        session_id=session_id,
        event_type=resolve_clinical_event_type(action, resource_type),
        category=UserEventCategory.CLINICAL_ACTION,
        page=page,
        action=action,
        data={
            "resourceType": resource_type,
            "resourceId": resource_id,
            **(extra or {}),
        },
    )


def create_error_event(
    user_id: str,
    user_role: UserRole,
    session_id: str,
    error: BaseException,
    page: str | None,
    context: dict[str, Any] | None = None,
) -> EventDraft:
    stack = "".join(
        traceback.format_exception(type(error), error, error.__traceback__)
    )
    return EventDraft(
        user_id=user_id,
        user_role=user_role,
        session_id=session_id,
        event_type=UserEventType.ERROR_ENCOUNTERED,
        category=UserEventCategory.SYSTEM,
        page=page,
        data={
            "errorType": type(error).__name__,
            "errorMessage": str(error),
            "errorStack": stack,
            "context": context,
        },
    )


def create_session_event(
    user_id: str,
    user_role: UserRole,
    session_id: str,
    event_type: UserEventType,
    page: str | None,
    data: dict[str, Any] | None = None,
) -> EventDraft:
    if event_type not in UserEventType.lifecycle():
        raise ValueError(f"Not a session lifecycle event: {event_type}")
    return EventDraft(
        user_id=user_id,
        user_role=user_role,
        session_id=session_id,
        event_type=event_type,
        category=UserEventCategory.SYSTEM,
        page=page,
        data=dict(data or {}),
    )
