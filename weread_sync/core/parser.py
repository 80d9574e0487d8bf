from typing import Any, Dict, List, Optional

from weread_sync.core.models import (
    BookReview, ChapterHighlight, ChapterReview, Highlight, Metadata, Notebook, Review
)
from weread_sync.core.payloads import (
    RawHighlightCollection, RawNotebook, RawReviewCollection, decode
)
from weread_sync.utils.text import format_timestamp, html_to_markdown, normalize_id

CHAPTER_REVIEW_TYPE = 1
BOOK_REVIEW_TYPE = 4

def build_notebook(notebook_data: Any, highlight_data: Any, review_data: Any,
                   duplicate: bool = False) -> Notebook:
    """
    Main logic: Metadata -> Highlights (with inline reviews) -> Chapter groups
    -> Reviews -> Chapter review groups -> Notebook.
    Raises MalformedPayload when a required field is missing.
    """
    metadata = parse_metadata(notebook_data, duplicate=duplicate)
    highlights = parse_highlights(highlight_data, review_data)
    return Notebook(
        metadata=metadata,
        chapter_highlights=parse_chapter_highlights(highlights),
        book_review=parse_chapter_reviews(review_data),
    )

def parse_metadata(notebook_data: Any, duplicate: bool = False) -> Metadata:
    notebook = decode(RawNotebook, notebook_data)
    book = notebook.book
    return Metadata(
        book_id=book.book_id,
        title=book.title,
        author=book.author,
        url=book.url,
        # '/s_' is the small thumbnail, '/t9_' the full size cover
        cover=book.cover.replace('/s_', '/t9_'),
        publish_time=book.publish_time,
        note_count=notebook.note_count,
        review_count=notebook.review_count,
        category=book.category,
        duplicate=duplicate,
    )

def parse_highlights(highlight_data: Any, review_data: Any) -> List[Highlight]:
    collection = decode(RawHighlightCollection, highlight_data)
    reviews = decode(RawReviewCollection, review_data).reviews
    chapter_titles = {chapter.chapter_uid: chapter.title for chapter in collection.chapters}

    highlights = []
    for raw in collection.updated:
        review_content = None
        if raw.range:
            # First review on the exact same range wins
            match = next((entry.review for entry in reviews if entry.review.range == raw.range), None)
            if match is not None:
                review_content = match.content

        highlights.append(Highlight(
            bookmark_id=normalize_id(raw.bookmark_id),
            chapter_uid=raw.chapter_uid,
            chapter_title=chapter_titles.get(raw.chapter_uid),
            range=raw.range,
            created=raw.create_time,
            create_time=format_timestamp(raw.create_time),
            mark_text=raw.mark_text,
            review_content=review_content,
        ))
    return highlights

def parse_chapter_highlights(highlights: List[Highlight]) -> List[ChapterHighlight]:
    """Groups highlights by chapter. Chapters ascend by uid, highlights by creation time."""
    chapters: Dict[int, ChapterHighlight] = {}
    for highlight in highlights:
        chapter = chapters.get(highlight.chapter_uid)
        if chapter is None:
            chapter = ChapterHighlight(
                chapter_uid=highlight.chapter_uid,
                chapter_title=highlight.chapter_title,
            )
            chapters[highlight.chapter_uid] = chapter
        if highlight.review_content:
            chapter.chapter_review_count += 1
        chapter.highlights.append(highlight)

    for chapter in chapters.values():
        chapter.highlights.sort(key=lambda h: h.created)
    return sorted(chapters.values(), key=lambda c: c.chapter_uid)

def parse_reviews(review_data: Any) -> List[Review]:
    collection = decode(RawReviewCollection, review_data)
    reviews = []
    for entry in collection.reviews:
        raw = entry.review
        reviews.append(Review(
            review_id=normalize_id(raw.review_id),
            book_id=raw.book_id,
            chapter_uid=raw.chapter_uid,
            chapter_title=raw.chapter_title,
            created=raw.create_time,
            create_time=format_timestamp(raw.create_time),
            content=raw.content,
            md_content=html_to_markdown(raw.html_content) if raw.html_content else None,
            range=raw.range,
            abstract=raw.abstract,
            type=raw.type,
        ))
    return reviews

def parse_chapter_reviews(review_data: Any) -> BookReview:
    """
    Splits reviews into the whole-book review and per-chapter groups.
    Only the first whole-book review is kept. A chapter review without a
    range is the review of the chapter itself; the last one seen wins.
    """
    reviews = parse_reviews(review_data)

    chapter_reviews = sorted(
        (r for r in reviews if r.type == CHAPTER_REVIEW_TYPE),
        key=lambda r: r.created,
        reverse=True,
    )
    book_review: Optional[Review] = next(
        (r for r in reviews if r.type == BOOK_REVIEW_TYPE), None
    )

    chapters: Dict[Optional[int], ChapterReview] = {}
    for review in chapter_reviews:
        chapter = chapters.get(review.chapter_uid)
        if chapter is None:
            chapter = ChapterReview(chapter_uid=review.chapter_uid, chapter_title=review.chapter_title)
            chapters[review.chapter_uid] = chapter
        if review.range:
            chapter.reviews.append(review)
        else:
            chapter.chapter_review = review

    return BookReview(
        chapter_reviews=sorted(chapters.values(), key=_chapter_sort_key),
        book_review=book_review,
    )

# --- Internal Helpers ---

def _chapter_sort_key(chapter: ChapterReview):
    # Reviews without a chapter uid go last
    return (chapter.chapter_uid is None, chapter.chapter_uid or 0)
