from .collections import Collections


class RedisKeys:
    """Centralised Redis key pattern definitions"""

    # Document patterns
    DOCUMENT = "{collection}:{doc_id}"

    # Index patterns
    EVENT_TIMESTAMP_INDEX = f"{Collections.USER_ANALYTICS}:index:timestamp"
    SESSION_ACTIVITY_INDEX = f"{Collections.USER_SESSIONS}:index:last_activity"

    # PubSub patterns
    PUBSUB_CHANNEL_CHANGES = "telemetry:changes:{collection}"

    @classmethod
    def document_key(cls, collection: str, doc_id: str) -> str:
        """Generate document key for given collection and id."""
        if collection not in Collections.all_collections():
            raise ValueError(f"Unknown collection: {collection}")
        return cls.DOCUMENT.format(collection=collection, doc_id=doc_id)

    @classmethod
    def changes_channel(cls, collection: str) -> str:
        """Generate change notification channel for given collection."""
        if collection not in Collections.all_collections():
            raise ValueError(f"Unknown collection: {collection}")
        return cls.PUBSUB_CHANNEL_CHANGES.format(collection=collection)
