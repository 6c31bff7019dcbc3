import logging

import pytest

from connectn.debug import DebugManager, DebugLevel, parse_level


def test_component_messages_use_child_loggers(caplog):
    manager = DebugManager(DebugLevel.DEBUG)

    with caplog.at_level(logging.DEBUG, logger="connectn"):
        manager.debug("searching", "search")
        manager.trace("too detailed", "search")

    assert [(r.name, r.getMessage()) for r in caplog.records] == [("connectn.search", "searching")]


def test_component_level_overrides_the_global_level():
    manager = DebugManager(DebugLevel.WARNING)
    manager.configure(component_levels={'engine': DebugLevel.DEBUG})

    assert manager.is_enabled_for(DebugLevel.DEBUG, 'engine')
    assert not manager.is_enabled_for(DebugLevel.DEBUG, 'search')
    assert manager.is_enabled_for(DebugLevel.WARNING, 'search')


def test_component_allow_list():
    manager = DebugManager(DebugLevel.INFO)
    manager.configure(components=['engine'])

    assert manager.is_enabled_for(DebugLevel.INFO, 'engine')
    assert not manager.is_enabled_for(DebugLevel.ERROR, 'board')
    assert manager.is_enabled_for(DebugLevel.INFO)


def test_unknown_components_are_rejected():
    with pytest.raises(ValueError):
        DebugManager().configure(components=['graphics'])


def test_disabled_manager_logs_nothing():
    manager = DebugManager(DebugLevel.TRACE)
    manager.configure(enabled=False)

    assert not manager.is_enabled_for(DebugLevel.ERROR, 'game')


def test_timer_samples_are_summarized():
    manager = DebugManager()

    for _ in range(3):
        with manager.timer("decision"):
            pass

    samples, total, mean = manager.timing_summary()["decision"]
    assert samples == 3
    assert total >= 0 and mean == pytest.approx(total / 3)

    manager.clear_timings()
    assert manager.timing_summary() == {}


def test_ending_an_unknown_timer_returns_none():
    assert DebugManager().end_timer("missing") is None


@pytest.mark.parametrize("text, level", [
    ("trace", DebugLevel.TRACE),
    (" Warning ", DebugLevel.WARNING),
    ("loud", None),
])
def test_parse_level(text, level):
    assert parse_level(text) == level
