import json

import pytest

from timer.durations import DEFAULT_DURATIONS, STORAGE_KEY, DurationStore, TimerMode, clamp_minutes
from timer.storage import MemoryStorage


@pytest.mark.parametrize("minutes, expected", [(0, 1), (-5, 1), (1, 1), (25, 25), (60, 60), (90, 60), (2.5, 2.5), (60.5, 60)])
def test_clamp_minutes(minutes, expected):
    assert clamp_minutes(minutes) == expected


def test_defaults():
    store = DurationStore()
    assert store.seconds("focus") == 25 * 60
    assert store.seconds(TimerMode.SHORT_BREAK) == 5 * 60
    assert store.minutes(TimerMode.LONG_BREAK) == 15


def test_mode_labels():
    assert TimerMode.FOCUS.label == "Focus"
    assert TimerMode("shortBreak").label == "Short Break"


def test_update_clamps_and_persists():
    storage = MemoryStorage()
    store = DurationStore.load(storage)
    assert store.update("focus", 90) == 3600
    assert json.loads(storage.get_item(STORAGE_KEY)) == {"focus": 3600, "shortBreak": 300, "longBreak": 900}


def test_load_round_trip():
    storage = MemoryStorage()
    DurationStore.load(storage).update(TimerMode.SHORT_BREAK, 7)
    assert DurationStore.load(storage).seconds(TimerMode.SHORT_BREAK) == 420


@pytest.mark.parametrize("raw", [
    "garbage",
    "[]",
    json.dumps({"focus": 1500}),
    json.dumps({"focus": "1500", "shortBreak": 300, "longBreak": 900}),
    json.dumps({"focus": 10, "shortBreak": 300, "longBreak": 900}),
    json.dumps({"focus": 1500, "shortBreak": 300, "longBreak": 99999}),
])
def test_load_falls_back_to_defaults(raw):
    store = DurationStore.load(MemoryStorage({STORAGE_KEY: raw}))
    assert store.as_dict() == {mode.value: seconds for mode, seconds in DEFAULT_DURATIONS.items()}


def test_unknown_mode_rejected():
    with pytest.raises(ValueError):
        DurationStore().seconds("nap")


@pytest.mark.parametrize("minutes, seconds", [(2.5, 150), (0.5, 60), (12.75, 765), (59.99, 3599)])
def test_update_keeps_fractional_minutes(minutes, seconds):
    assert DurationStore(MemoryStorage()).update("focus", minutes) == seconds
