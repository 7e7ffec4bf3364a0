from __future__ import annotations

import pytest

from helpers import FakeDownloader, FakeExecutor, FakeInspector


@pytest.fixture
def downloader() -> FakeDownloader:
    return FakeDownloader()


@pytest.fixture
def inspector() -> FakeInspector:
    return FakeInspector()


@pytest.fixture
def executor() -> FakeExecutor:
    return FakeExecutor()
