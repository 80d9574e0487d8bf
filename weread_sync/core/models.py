from dataclasses import dataclass, field
from typing import List, Optional

@dataclass(frozen=True)
class Metadata:
    """Book metadata for one sync pass. Built once, never modified."""
    book_id: str
    title: str
    author: str
    url: str
    cover: str         # High-resolution cover URL
    publish_time: str
    note_count: int = 0
    review_count: int = 0
    category: Optional[str] = None
    duplicate: bool = False  # Another book in the pass has the same sanitized title

@dataclass
class Highlight:
    """A highlighted passage, optionally carrying the inline review written on it."""
    bookmark_id: str   # e.g. '3300028078-26-3462-3512'
    chapter_uid: int
    range: str         # Only compared against review ranges, never parsed
    created: int       # Epoch seconds
    create_time: str   # Local time, 'YYYY-MM-DD HH:MM:SS'
    mark_text: str
    chapter_title: Optional[str] = None
    review_content: Optional[str] = None

@dataclass
class ChapterHighlight:
    chapter_uid: int
    chapter_title: Optional[str]
    chapter_review_count: int = 0
    highlights: List[Highlight] = field(default_factory=list)

@dataclass
class Review:
    """A review as returned by the review endpoint."""
    review_id: str
    book_id: str
    chapter_uid: Optional[int]
    created: int
    create_time: str
    content: str
    type: Optional[int]         # 1: chapter review, 4: whole-book review
    chapter_title: Optional[str] = None
    md_content: Optional[str] = None  # htmlContent converted to Markdown
    range: Optional[str] = None
    abstract: Optional[str] = None

@dataclass
class ChapterReview:
    chapter_uid: Optional[int]
    chapter_title: Optional[str]
    reviews: List[Review] = field(default_factory=list)
    chapter_review: Optional[Review] = None  # Review on the chapter itself, not on a passage

@dataclass
class BookReview:
    chapter_reviews: List[ChapterReview] = field(default_factory=list)
    book_review: Optional[Review] = None

@dataclass
class Notebook:
    """The root object handed to rendering and persistence."""
    metadata: Metadata
    chapter_highlights: List[ChapterHighlight]
    book_review: BookReview

@dataclass(frozen=True)
class AnnotationFile:
    """A note already synced into the vault, as described by its front matter."""
    book_id: str
    note_count: int
    review_count: int
    file: str          # Vault-relative path of the note
    new: bool = False  # Read from the vault, so never a new note

@dataclass
class SyncResult:
    """Outcome of syncing one book."""
    book_id: str
    title: str
    action: str          # 'created', 'updated', 'skipped' or 'failed'
    path: Optional[str] = None
    error: Optional[str] = None
