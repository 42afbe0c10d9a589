"""Shared fixtures and dummy collaborators for the picker tests."""

import pytest

import theme_picker


class DummyConfig:
    def __init__(self, current="b"):
        self.current = current
        self.reads = 0

    def current_theme(self):
        self.reads += 1
        if isinstance(self.current, Exception):
            raise self.current
        return self.current


class DummyHelper:
    def __init__(self, themes=("a", "b", "c")):
        self.themes = list(themes)
        self.applied = []
        self.listed = 0

    def list(self):
        self.listed += 1
        return list(self.themes)

    def apply(self, name):
        self.applied.append(name)


class DummyPicker:
    def __init__(self, selection=None):
        self.selection = selection
        self.candidates = None

    def select(self, candidates):
        self.candidates = candidates
        return self.selection


@pytest.fixture
def config():
    return DummyConfig()


@pytest.fixture
def helper():
    return DummyHelper()


@pytest.fixture
def picker():
    return DummyPicker()


@pytest.fixture
def switcher(config, helper, picker):
    return theme_picker.Switcher(config=config, helper=helper, picker=picker)


@pytest.fixture
def alacritty_home(tmp_path, monkeypatch):
    """A fake HOME with an empty ~/.config/alacritty directory."""
    monkeypatch.setenv("HOME", str(tmp_path))
    confdir = tmp_path / ".config" / "alacritty"
    confdir.mkdir(parents=True)
    return confdir
