"""
Shared fixtures: in-memory storage and scripted collaborators.
"""

import pytest

from fakes import RecordingChatProvider, StaticWebSearch
from vectorchat.core.storage import InMemoryStorage


@pytest.fixture
def storage():
    return InMemoryStorage()


@pytest.fixture
def chat_provider():
    return RecordingChatProvider()


@pytest.fixture
def web_search():
    return StaticWebSearch()
