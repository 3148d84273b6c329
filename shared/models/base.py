from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class DocumentModel(BaseModel):
    """Base for records stored as documents.

    Python code uses snake_case attributes; documents use camelCase keys.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class FrozenDocumentModel(DocumentModel):
    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, frozen=True
    )


class BrowserInfo(FrozenDocumentModel):
    name: str | None = None
    version: str | None = None
    os: str | None = None


class PerformanceTimings(FrozenDocumentModel):
    load_time: float | None = None
    render_time: float | None = None
    response_time: float | None = None
