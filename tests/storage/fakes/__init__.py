# Fake implementations for testing

from .fake_fetcher import FakeByteSource, FakeObjectFetcher

__all__ = ["FakeByteSource", "FakeObjectFetcher"]
