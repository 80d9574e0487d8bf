"""
Pydantic models for the raw WeRead API payloads.

Only the fields the sync pipeline reads are declared; everything else the
API sends is ignored. Decoding failures surface as MalformedPayload.
"""
from typing import Any, List, Optional, Type, TypeVar

from pydantic import BaseModel, ConfigDict, ValidationError
from pydantic.alias_generators import to_camel

from weread_sync.core.errors import MalformedPayload

class RawModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        coerce_numbers_to_str=True,
        extra="ignore",
    )

class RawBook(RawModel):
    book_id: str
    title: str = ""
    author: str = ""
    url: str = ""
    cover: str
    publish_time: str = ""
    category: Optional[str] = None

class RawNotebook(RawModel):
    """One entry of the notebook list: the book plus its annotation counters."""
    book: RawBook
    note_count: int = 0
    review_count: int = 0

class RawChapter(RawModel):
    chapter_uid: int
    title: str = ""

class RawHighlight(RawModel):
    bookmark_id: str
    chapter_uid: int
    range: str = ""
    create_time: int = 0
    mark_text: str = ""

class RawHighlightCollection(RawModel):
    chapters: List[RawChapter] = []
    updated: List[RawHighlight] = []

class RawReview(RawModel):
    review_id: str
    book_id: str = ""
    chapter_uid: Optional[int] = None
    chapter_title: Optional[str] = None
    content: str = ""
    html_content: Optional[str] = None
    range: Optional[str] = None
    abstract: Optional[str] = None
    type: Optional[int] = None
    create_time: int = 0

class RawReviewEntry(RawModel):
    review: RawReview

class RawReviewCollection(RawModel):
    reviews: List[RawReviewEntry] = []

M = TypeVar("M", bound=RawModel)

def decode(model: Type[M], data: Any) -> M:
    """Validates a raw payload, passing already-decoded models through."""
    if isinstance(data, model):
        return data
    if data is None:
        raise MalformedPayload(f"{model.__name__}: payload is missing")
    try:
        return model.model_validate(data)
    except ValidationError as e:
        raise MalformedPayload(f"{model.__name__}: {e}") from e
