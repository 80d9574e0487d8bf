"""Tests for note naming, foldering and the create-or-merge decision."""

import asyncio
from datetime import date

import pytest

from weread_sync.core.config import Settings
from weread_sync.core.errors import ConfigurationError, PersistenceFailure
from weread_sync.core.frontmatter import DOC_TYPE, read_tags
from weread_sync.core.models import AnnotationFile, Metadata
from weread_sync.core.obsidian import (
    NotebookFileManager,
    find_duplicate_titles,
    get_file_name,
    get_note_folder,
    get_sub_folder_path,
    sanitize_title,
)
from weread_sync.core.parser import build_notebook
from weread_sync.core.renderer import Renderer


def metadata(title="Design", author="Alice", book_id="id1", duplicate=False, category=None):
    return Metadata(book_id=book_id, title=title, author=author, url="", cover="",
                    publish_time="", note_count=3, review_count=2,
                    category=category, duplicate=duplicate)


@pytest.fixture
def manager(memory_storage):
    return NotebookFileManager(memory_storage, Renderer(), Settings())


class TestNaming:
    """Tests for file names of new notes."""

    def test_sanitize_title(self):
        assert sanitize_title(" a/b: c?|#'d ") == "ab cd"

    def test_plain(self):
        assert get_file_name(metadata(), "BOOK_NAME") == "Design"

    def test_plain_duplicate(self):
        assert get_file_name(metadata(duplicate=True), "BOOK_NAME") == "Design-id1"

    def test_author(self):
        assert get_file_name(metadata(), "BOOK_NAME-AUTHOR") == "Design-Alice"

    def test_author_duplicate(self):
        assert get_file_name(metadata(duplicate=True), "BOOK_NAME-AUTHOR") == "Design-Alice-id1"

    def test_book_id(self):
        assert get_file_name(metadata(), "BOOK_NAME-BOOKID") == "Design-id1"
        assert get_file_name(metadata(duplicate=True), "BOOK_NAME-BOOKID") == "Design-id1"

    def test_title_is_sanitized(self):
        assert get_file_name(metadata(title="Why: a/b"), "BOOK_NAME") == "Why ab"

    def test_empty_sanitized_title_uses_book_id(self):
        assert get_file_name(metadata(title="???"), "BOOK_NAME") == "id1"
        assert get_file_name(metadata(title="???"), "BOOK_NAME-AUTHOR") == "id1-Alice"


class TestDuplicates:
    def test_same_sanitized_title(self):
        assert find_duplicate_titles(["Design", "Design ", "Other"]) == {"Design"}

    def test_no_duplicates(self):
        assert find_duplicate_titles(["Design", "Other"]) == set()


class TestFoldering:
    """Tests for sub folders and the note location template."""

    def test_none(self):
        assert get_sub_folder_path(metadata(), "none") == ""

    def test_title(self):
        assert get_sub_folder_path(metadata(title="Design: Ideas"), "title") == "Design Ideas"

    def test_category(self):
        assert get_sub_folder_path(metadata(category="精品小说-历史小说"), "category") == "精品小说"

    def test_category_without_separator(self):
        assert get_sub_folder_path(metadata(category="计算机"), "category") == "计算机"

    def test_uncategorized(self):
        assert get_sub_folder_path(metadata(), "category") == "未分类"

    def test_official_account(self):
        assert get_sub_folder_path(metadata(author="公众号"), "category") == "公众号"

    def test_note_folder(self):
        settings = Settings(note_location="/weread", sub_folder_type="title")
        assert get_note_folder(metadata(), settings) == "weread/Design"

    def test_note_location_placeholders(self):
        settings = Settings(note_location="/weread/{author}", sub_folder_type="category")
        assert get_note_folder(metadata(), settings) == "weread/Alice/未分类"

    @pytest.mark.parametrize("location", ["/weread/{oops}", "/weread/{", "/weread/{0}"])
    def test_bad_note_location(self, location):
        with pytest.raises(ConfigurationError):
            get_note_folder(metadata(), Settings(note_location=location))


class TestNotebookFiles:
    """Tests for the inventory of synced notes."""

    def test_keeps_only_synced_notes(self, manager, memory_storage):
        memory_storage.files = {
            "weread/Design.md": f"---\ndoc_type: {DOC_TYPE}\nbookId: 'b1'\nnoteCount: 3\nreviewCount: 1\n---\n\nbody\n",
            "notes/todo.md": "---\ntags: [todo]\n---\n\n- [ ] read\n",
            "plain.md": "no front matter",
            "weread/broken.md": f"---\ndoc_type: {DOC_TYPE}\n---\n\nno id\n",
        }
        files = asyncio.run(manager.get_notebook_files())
        assert files == [AnnotationFile(book_id="b1", note_count=3, review_count=1, file="weread/Design.md")]
        assert files[0].new is False

    def test_numeric_book_id(self, manager, memory_storage):
        memory_storage.files = {
            "a.md": f"---\ndoc_type: {DOC_TYPE}\nbookId: 695233\nnoteCount: x\n---\n\nbody\n",
        }
        files = asyncio.run(manager.get_notebook_files())
        assert files[0].book_id == "695233"
        assert files[0].note_count == 0


class TestSaveNotebook:
    """Tests for creating and merging notes."""

    def test_creates_note(self, manager, memory_storage, notebook):
        result = asyncio.run(manager.save_notebook(notebook, None))

        assert result.action == "created"
        assert result.path == "weread/Design.md"
        assert "weread" in memory_storage.folders
        content = memory_storage.files["weread/Design.md"]
        assert read_tags(content) == {"doc_type": DOC_TYPE, "bookId": "b1", "noteCount": 3, "reviewCount": 2}
        assert "^abc-1" in content

    def test_existing_folder_not_recreated(self, manager, memory_storage, notebook):
        memory_storage.files["weread"] = ""
        memory_storage.fail_create_folder = True
        result = asyncio.run(manager.save_notebook(notebook, None))
        assert result.action == "created"

    def test_folder_failure(self, manager, memory_storage, notebook):
        memory_storage.fail_create_folder = True
        with pytest.raises(PersistenceFailure):
            asyncio.run(manager.save_notebook(notebook, None))
        assert memory_storage.files == {}

    def test_merges_into_existing_note(self, manager, memory_storage, notebook):
        memory_storage.files["books/My Design.md"] = (
            f"---\ndoc_type: {DOC_TYPE}\nbookId: 'b1'\nnoteCount: 1\nreviewCount: 0\nrating: 5\n---\n\nold body\n"
        )
        local = AnnotationFile(book_id="b1", note_count=1, review_count=0, file="books/My Design.md")

        result = asyncio.run(manager.save_notebook(notebook, local))

        assert result.action == "updated"
        assert list(memory_storage.files) == ["books/My Design.md"]
        content = memory_storage.files["books/My Design.md"]
        tags = read_tags(content)
        assert tags["noteCount"] == 3
        assert tags["reviewCount"] == 2
        assert tags["rating"] == 5
        assert "old body" not in content
        assert "^abc-1" in content

    def test_skips_unchanged_note(self, manager, memory_storage, notebook):
        memory_storage.files["weread/Design.md"] = "unchanged"
        local = AnnotationFile(book_id="b1", note_count=3, review_count=2, file="weread/Design.md")

        result = asyncio.run(manager.save_notebook(notebook, local))

        assert result.action == "skipped"
        assert memory_storage.files["weread/Design.md"] == "unchanged"

    def test_force_rewrites_unchanged_note(self, manager, memory_storage, notebook):
        created = asyncio.run(manager.save_notebook(notebook, None))
        first = memory_storage.files[created.path]
        local = AnnotationFile(book_id="b1", note_count=3, review_count=2, file=created.path)

        result = asyncio.run(manager.save_notebook(notebook, local, force=True))

        assert result.action == "updated"
        assert memory_storage.files[created.path] == first

    def test_user_note_with_same_name_is_kept(self, manager, memory_storage, notebook):
        memory_storage.files["weread/Design.md"] = "my own notes on Design"

        result = asyncio.run(manager.save_notebook(notebook, None))

        assert result.action == "created"
        assert result.path == "weread/Design-b1.md"
        assert memory_storage.files["weread/Design.md"] == "my own notes on Design"
        assert read_tags(memory_storage.files["weread/Design-b1.md"])["bookId"] == "b1"

    def test_no_free_name_fails_without_writing(self, manager, memory_storage, notebook):
        memory_storage.files["weread/Design.md"] = "mine"
        memory_storage.files["weread/Design-b1.md"] = "also mine"

        with pytest.raises(PersistenceFailure):
            asyncio.run(manager.save_notebook(notebook, None))

        assert memory_storage.files == {"weread/Design.md": "mine", "weread/Design-b1.md": "also mine"}

    def test_taken_book_id_name_fails(self, memory_storage, notebook):
        manager = NotebookFileManager(memory_storage, Renderer(), Settings(file_name_type="BOOK_NAME-BOOKID"))
        memory_storage.files["weread/Design-b1.md"] = "mine"

        with pytest.raises(PersistenceFailure):
            asyncio.run(manager.save_notebook(notebook, None))
        assert memory_storage.files["weread/Design-b1.md"] == "mine"

    def test_author_file_names_for_duplicates(self, memory_storage, notebook_factory, highlight_data, review_data):
        settings = Settings(file_name_type="BOOK_NAME-AUTHOR")
        manager = NotebookFileManager(memory_storage, Renderer(), settings)
        first = build_notebook(notebook_factory("id1", author="Alice"), highlight_data, review_data, duplicate=True)
        second = build_notebook(notebook_factory("id2", author="Bob"), highlight_data, review_data, duplicate=True)

        paths = [asyncio.run(manager.save_notebook(nb, None)).path for nb in (first, second)]

        assert paths == ["weread/Design-Alice-id1.md", "weread/Design-Bob-id2.md"]


class TestDailyNotes:
    """Tests for linking highlights from the daily note."""

    def test_missing_daily_note(self, manager, memory_storage, notebook):
        highlights = notebook.chapter_highlights[0].highlights
        assert asyncio.run(manager.append_daily_note(notebook.metadata, highlights, date(2024, 3, 1))) is False
        assert memory_storage.files == {}

    def test_appends_references(self, manager, memory_storage, notebook):
        memory_storage.files["Daily Notes/2024-03-01.md"] = "# Friday"
        highlights = notebook.chapter_highlights[0].highlights

        assert asyncio.run(manager.append_daily_note(notebook.metadata, highlights, date(2024, 3, 1))) is True
        assert memory_storage.files["Daily Notes/2024-03-01.md"] == (
            "# Friday\n### Design\n![[Design#^abc-1]]\n![[Design#^b1-2-30-40]]"
        )

    def test_links_into_given_note(self, manager, memory_storage, notebook):
        memory_storage.files["Daily Notes/2024-03-01.md"] = "# Friday"
        highlights = notebook.chapter_highlights[0].highlights[:1]

        asyncio.run(manager.append_daily_note(notebook.metadata, highlights, date(2024, 3, 1),
                                              "books/My Design.md"))

        assert memory_storage.files["Daily Notes/2024-03-01.md"].endswith("![[My Design#^abc-1]]")

    def test_existing_references_not_repeated(self, manager, memory_storage, notebook):
        memory_storage.files["Daily Notes/2024-03-01.md"] = "# Friday"
        highlights = notebook.chapter_highlights[0].highlights

        asyncio.run(manager.append_daily_note(notebook.metadata, highlights, date(2024, 3, 1)))
        first = memory_storage.files["Daily Notes/2024-03-01.md"]
        assert asyncio.run(manager.append_daily_note(notebook.metadata, highlights, date(2024, 3, 1))) is True

        assert memory_storage.files["Daily Notes/2024-03-01.md"] == first
        assert first.count("### Design") == 1

    def test_daily_note_path_format(self, memory_storage):
        settings = Settings(daily_notes_location="/journal/", daily_notes_format="%Y/%m/%d")
        manager = NotebookFileManager(memory_storage, Renderer(), settings)
        assert manager.get_daily_note_path(date(2024, 3, 1)) == "journal/2024/03/01.md"

    def test_empty_daily_note_format(self, memory_storage):
        manager = NotebookFileManager(memory_storage, Renderer(), Settings(daily_notes_format=" "))
        with pytest.raises(ConfigurationError):
            manager.get_daily_note_path(date(2024, 3, 1))
