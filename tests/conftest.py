"""Shared fixtures: an in-memory Drive tree and a SQLite-backed gateway."""

import os
import sys
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional

import pytest

# Add src to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from crmsync.api_clients import BaseTreeSource, DriveItem, APIConnectionError
from crmsync.database import DatabaseManager, DatabaseService


class FakeTreeSource(BaseTreeSource):
    """Tree source answering from a dict of ``container id -> children``."""

    def __init__(self, tree: Dict[Optional[str], Dict[str, List[DriveItem]]], failing=()):
        super().__init__()
        self.tree = tree
        self.failing = set(failing)
        self.calls = []

    async def authenticate(self) -> bool:
        self._authenticated = True
        return True

    async def list_folders(self, parent_id, drive_id=None):
        self.calls.append(("folders", parent_id, drive_id))
        if parent_id in self.failing:
            raise APIConnectionError(f"listing {parent_id} failed")
        return list(self.tree.get(parent_id, {}).get("folders", []))

    async def list_files(self, folder_id, drive_id=None):
        self.calls.append(("files", folder_id, drive_id))
        if folder_id in self.failing:
            raise APIConnectionError(f"listing {folder_id} failed")
        return list(self.tree.get(folder_id, {}).get("files", []))


def folder(item_id: str, name: str) -> DriveItem:
    return DriveItem(id=item_id, name=name, mime_type="application/vnd.google-apps.folder")


def file(item_id: str, name: str, mime_type: str) -> DriveItem:
    return DriveItem(id=item_id, name=name, mime_type=mime_type)


class Clock:
    """Manually advanced clock."""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now = self.now + timedelta(seconds=seconds)


@pytest.fixture
def drive_tree():
    """
    root
    ├── Projects/
    │   ├── 2024/
    │   │   ├── report.pdf
    │   │   └── photo.png
    │   └── budget.xlsx
    └── readme.txt
    """
    return {
        "root": {
            "folders": [folder("f-projects", "Projects")],
            "files": [file("d-readme", "readme.txt", "text/plain")],
        },
        "f-projects": {
            "folders": [folder("f-2024", "2024")],
            "files": [file("d-budget", "budget.xlsx", "application/vnd.ms-excel")],
        },
        "f-2024": {
            "folders": [],
            "files": [
                file("d-report", "report.pdf", "application/pdf"),
                file("d-photo", "photo.png", "image/png"),
            ],
        },
    }


@pytest.fixture
def tree_source(drive_tree):
    return FakeTreeSource(drive_tree)


@pytest.fixture
def db_manager(tmp_path):
    manager = DatabaseManager(f"sqlite:///{tmp_path / 'crmsync_test.db'}")
    manager.create_tables()
    yield manager
    manager.drop_tables()
    manager.close()


@pytest.fixture
def db_service(db_manager):
    return DatabaseService(db_manager)


@pytest.fixture
def clock():
    return Clock(datetime(2026, 1, 9, 14, 0, 0, tzinfo=timezone.utc))
