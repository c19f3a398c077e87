import pytest

from .fakes import FakeClock, PunctuationClassifier


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def classifier() -> PunctuationClassifier:
    return PunctuationClassifier()
