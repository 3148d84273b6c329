class Collections:
    """Centralised store collection names"""

    # One document per event
    USER_ANALYTICS = "user_analytics"

    # One document per session
    USER_SESSIONS = "user_sessions"

    @classmethod
    def all_collections(cls) -> list[str]:
        return [cls.USER_ANALYTICS, cls.USER_SESSIONS]
