"""
debug.py - Debug and logging functionality for the connection-game core

Every module logs through the `debug` singleton with a component tag ('board',
'game', 'win', 'threats', 'eval', 'engine', 'search', 'playout', 'env', 'cli').
Each tag maps to a child of the `connectn` logger, so standard logging
configuration still applies. The manager adds:

1. A global debug level plus optional per-component overrides
2. An allow-list of components (empty means all of them)
3. Named performance timers whose samples are kept for a summary
"""

import logging
import sys
import time
from contextlib import contextmanager
from enum import Enum
from typing import Dict, Iterable, Iterator, List, Optional, Set, Tuple


class DebugLevel(Enum):
    NONE = 0
    ERROR = 1
    WARNING = 2
    INFO = 3
    DEBUG = 4
    TRACE = 5


TRACE = 5
logging.addLevelName(TRACE, "TRACE")

# Mapping to standard logging levels
LEVEL_MAP = {
    DebugLevel.ERROR: logging.ERROR,
    DebugLevel.WARNING: logging.WARNING,
    DebugLevel.INFO: logging.INFO,
    DebugLevel.DEBUG: logging.DEBUG,
    DebugLevel.TRACE: TRACE,
}

LOGGER_NAME = "connectn"
COMPONENTS = frozenset({'board', 'game', 'win', 'threats', 'eval', 'engine',
                        'search', 'playout', 'env', 'cli', 'debug'})

_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def parse_level(text: str) -> Optional[DebugLevel]:
    """Look up a DebugLevel by name, ignoring case; None if unknown."""
    try:
        return DebugLevel[text.strip().upper()]
    except KeyError:
        return None


class DebugManager:
    """Routes tagged log messages to component loggers and keeps timings."""

    def __init__(self, level: DebugLevel = DebugLevel.WARNING):
        self._level = level
        self._enabled = True
        self._log_file: Optional[str] = None
        self._component_levels: Dict[str, DebugLevel] = {}
        self._only: Set[str] = set()
        self._loggers: Dict[str, logging.Logger] = {}
        self._timers: Dict[str, float] = {}
        self._timings: Dict[str, List[float]] = {}
        self._root = self._setup_logger()

    def _setup_logger(self) -> logging.Logger:
        logger = logging.getLogger(LOGGER_NAME)
        # Filtering happens in is_enabled_for; the logger passes everything on
        logger.setLevel(TRACE)

        if not any(getattr(h, "_connectn_console", False) for h in logger.handlers):
            console_handler = logging.StreamHandler(sys.stdout)
            console_handler._connectn_console = True
            console_handler.setFormatter(logging.Formatter(_FORMAT, datefmt='%H:%M:%S'))
            logger.addHandler(console_handler)

        return logger

    def _logger_for(self, component: Optional[str]) -> logging.Logger:
        if not component:
            return self._root
        logger = self._loggers.get(component)
        if logger is None:
            logger = self._root.getChild(component)
            self._loggers[component] = logger
        return logger

    @property
    def level(self) -> DebugLevel:
        return self._level

    def level_for(self, component: Optional[str] = None) -> DebugLevel:
        """Effective level of a component: its override or the global level."""
        return self._component_levels.get(component, self._level)

    def configure(self, level: DebugLevel = None,
                  enabled: bool = None,
                  log_file: str = None,
                  components: Iterable[str] = None,
                  component_levels: Dict[str, DebugLevel] = None):
        """
        Configure the debug manager settings.

        Args:
            level: Global debug level
            enabled: Master switch
            log_file: Path to log file ("" removes file logging)
            components: Components allowed to log (empty for all)
            component_levels: Per-component level overrides, replacing earlier ones
        """
        if level is not None:
            self._level = level

        if enabled is not None:
            self._enabled = enabled

        if log_file is not None:
            self._set_log_file(log_file)

        if components is not None:
            self._only = self._check_components(components)

        if component_levels is not None:
            self._check_components(component_levels)
            self._component_levels = dict(component_levels)

    def _check_components(self, names: Iterable[str]) -> Set[str]:
        names = set(names)
        unknown = names - COMPONENTS
        if unknown:
            raise ValueError(f"Unknown debug components: {', '.join(sorted(unknown))}")
        return names

    def _set_log_file(self, log_file: str):
        for handler in self._root.handlers[:]:
            if isinstance(handler, logging.FileHandler):
                self._root.removeHandler(handler)
                handler.close()

        self._log_file = log_file or None
        if self._log_file:
            file_handler = logging.FileHandler(self._log_file)
            file_handler.setFormatter(logging.Formatter(_FORMAT, datefmt='%Y-%m-%d %H:%M:%S'))
            self._root.addHandler(file_handler)

    def is_enabled_for(self, level: DebugLevel, component: str = None) -> bool:
        """Determine if a message should be logged based on settings."""
        if not self._enabled or level == DebugLevel.NONE:
            return False
        if component and self._only and component not in self._only:
            return False
        return level.value <= self.level_for(component).value

    def log(self, level: DebugLevel, message: str, component: str = None):
        if self.is_enabled_for(level, component):
            self._logger_for(component).log(LEVEL_MAP[level], message)

    def error(self, message: str, component: str = None):
        self.log(DebugLevel.ERROR, message, component)

    def warning(self, message: str, component: str = None):
        self.log(DebugLevel.WARNING, message, component)

    def info(self, message: str, component: str = None):
        self.log(DebugLevel.INFO, message, component)

    def debug(self, message: str, component: str = None):
        self.log(DebugLevel.DEBUG, message, component)

    def trace(self, message: str, component: str = None):
        self.log(DebugLevel.TRACE, message, component)

    # Performance tracking methods
    def start_timer(self, marker_name: str):
        self._timers[marker_name] = time.perf_counter()

    def end_timer(self, marker_name: str, component: str = None) -> Optional[float]:
        """
        End a timer, record the sample and log the elapsed time.

        Returns:
            Elapsed time in seconds, or None if the timer was never started
        """
        if marker_name not in self._timers:
            self.warning(f"Timer '{marker_name}' not started", "debug")
            return None

        elapsed = time.perf_counter() - self._timers.pop(marker_name)
        self._timings.setdefault(marker_name, []).append(elapsed)
        self.debug(f"Performance [{marker_name}]: {elapsed:.6f} seconds", component)
        return elapsed

    @contextmanager
    def timer(self, marker_name: str, component: str = None) -> Iterator[None]:
        """Time the enclosed block as one sample of `marker_name`."""
        self.start_timer(marker_name)
        try:
            yield
        finally:
            self.end_timer(marker_name, component)

    def timing_summary(self) -> Dict[str, Tuple[int, float, float]]:
        """Map each timer name to (samples, total seconds, mean seconds)."""
        return {name: (len(samples), sum(samples), sum(samples) / len(samples))
                for name, samples in self._timings.items()}

    def clear_timings(self):
        self._timers.clear()
        self._timings.clear()

    def set_from_string(self, level_str: str):
        """Set debug level from a string (for command line arguments)."""
        level = parse_level(level_str)
        if level is None:
            self.warning(f"Unknown debug level: {level_str}", "debug")
            return
        self.configure(level=level)
        self.info(f"Debug level set to {level.name}", "debug")


# Create a singleton instance
debug = DebugManager()
