"""Test fakes for storybooker source and builder tests."""

from tests.fakes.fake_http import FakeHttpClient, FakeMirror
from tests.fakes.fake_pandoc import FakePandocRunner

__all__ = ["FakeHttpClient", "FakeMirror", "FakePandocRunner"]
