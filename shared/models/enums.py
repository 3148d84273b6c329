from enum import Enum


class UserRole(str, Enum):
    """Roles resolved by the identity provider."""

    PATIENT = "patient"
    DOCTOR = "doctor"
    ADMIN = "admin"
    ADMIN_TEST = "admin-test"
    NURSE = "nurse"
    STAFF = "staff"


class UserEventType(str, Enum):
    """Every kind of user interaction the capture agent can record."""

    # Navigation
    PAGE_VIEW = "page_view"
    NAVIGATION = "navigation"
    ROUTE_CHANGE = "route_change"

    # Feature usage
    FEATURE_CLICK = "feature_click"
    SEARCH_QUERY = "search_query"
    FILTER_APPLIED = "filter_applied"
    EXPORT_DATA = "export_data"

    # Dashboard interactions
    DASHBOARD_WIDGET_VIEW = "dashboard_widget_view"
    DASHBOARD_FILTER_CHANGE = "dashboard_filter_change"
    CHART_INTERACTION = "chart_interaction"

    # Patient management
    PATIENT_VIEW = "patient_view"
    PATIENT_SEARCH = "patient_search"
    PATIENT_EDIT = "patient_edit"

    # Clinical actions
    TREATMENT_VIEW = "treatment_view"
    APPOINTMENT_SCHEDULE = "appointment_schedule"
    PRESCRIPTION_CREATE = "prescription_create"

    # System
    SESSION_START = "session_start"
    SESSION_END = "session_end"
    ERROR_ENCOUNTERED = "error_encountered"

    @classmethod
    def clinical(cls) -> frozenset["UserEventType"]:
        """Event types recorded through clinical action tracking."""
        return frozenset(
            {
                cls.PATIENT_VIEW,
                cls.PATIENT_SEARCH,
                cls.PATIENT_EDIT,
                cls.TREATMENT_VIEW,
                cls.APPOINTMENT_SCHEDULE,
                cls.PRESCRIPTION_CREATE,
            }
        )

    @classmethod
    def lifecycle(cls) -> frozenset["UserEventType"]:
        """Session boundary events, never subject to exclusion lists."""
        return frozenset({cls.SESSION_START, cls.SESSION_END})


class UserEventCategory(str, Enum):
    NAVIGATION = "navigation"
    FEATURE_USAGE = "feature_usage"
    CLINICAL_ACTION = "clinical_action"
    SYSTEM = "system"
    DASHBOARD = "dashboard"


class DeviceType(str, Enum):
    DESKTOP = "desktop"
    TABLET = "tablet"
    MOBILE = "mobile"
