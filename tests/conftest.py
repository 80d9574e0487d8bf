"""Shared payloads and an in-memory note storage for the sync tests."""

import pytest

from weread_sync.core.errors import PersistenceFailure
from weread_sync.core.frontmatter import read_tags
from weread_sync.core.parser import build_notebook


class MemoryStorage:
    """Note storage keeping everything in dicts. Folder creation can be made to fail."""

    def __init__(self):
        self.files = {}
        self.folders = set()
        self.fail_create_folder = False

    async def exists(self, path):
        return path in self.files or path in self.folders

    async def read(self, path):
        return self.files[path]

    async def write(self, path, content):
        self.files[path] = content

    async def create(self, path, content):
        if path in self.files:
            raise PersistenceFailure(f"{path} already exists")
        self.files[path] = content

    async def create_folder(self, path):
        if self.fail_create_folder:
            raise PersistenceFailure(f"Cannot create folder {path}")
        self.folders.add(path)

    async def list_notes(self):
        return [(path, read_tags(content)) for path, content in sorted(self.files.items())]


def make_notebook_data(book_id="b1", title="Design", author="Alice",
                       note_count=3, review_count=2, category=None):
    book = {
        "bookId": book_id,
        "title": title,
        "author": author,
        "url": f"https://weread.qq.com/web/bookDetail/{book_id}",
        "cover": f"https://wfqqreader.myqcloud.com/cover/{book_id}/s_{book_id}.jpg",
        "publishTime": "2020-01-01 00:00:00",
    }
    if category:
        book["category"] = category
    return {"bookId": book_id, "book": book, "noteCount": note_count, "reviewCount": review_count}


@pytest.fixture
def notebook_factory():
    return make_notebook_data


@pytest.fixture
def notebook_data():
    return make_notebook_data()


@pytest.fixture
def highlight_data():
    return {
        "chapters": [
            {"chapterUid": 2, "title": "Chapter 2"},
            {"chapterUid": 10, "title": "Chapter 10"},
        ],
        "updated": [
            {"bookmarkId": "b1_10_5-9", "chapterUid": 10, "range": "5-9",
             "createTime": 1700000300, "markText": "late"},
            {"bookmarkId": "b1_2_30-40", "chapterUid": 2, "range": "30-40",
             "createTime": 1700000200, "markText": "second"},
            {"bookmarkId": "abc_1", "chapterUid": 2, "range": "10-20",
             "createTime": 1700000000, "markText": "x"},
        ],
    }


@pytest.fixture
def review_data():
    return {
        "reviews": [
            {"review": {"reviewId": "r_1", "bookId": "b1", "chapterUid": 2, "chapterTitle": "Chapter 2",
                        "range": "10-20", "abstract": "x", "content": "note", "type": 1,
                        "createTime": 1700000100}},
            {"review": {"reviewId": "r_2", "bookId": "b1", "chapterUid": 2, "chapterTitle": "Chapter 2",
                        "content": "chapter thoughts", "type": 1, "createTime": 1700000400}},
            {"review": {"reviewId": "r_3", "bookId": "b1", "content": "great book",
                        "htmlContent": "<p>great <b>book</b></p>", "type": 4,
                        "createTime": 1700000500}},
        ]
    }


@pytest.fixture
def notebook(notebook_data, highlight_data, review_data):
    return build_notebook(notebook_data, highlight_data, review_data)


@pytest.fixture
def memory_storage():
    return MemoryStorage()
