"""
Rule matching engine.

This module owns the live configuration and the priority-ordered rule index
derived from it, and resolves a window observation to at most one rule.

Resolution runs in two phases:

1. Exact phase: the observation's app name is looked up verbatim in the
   index and the first rule (lowest priority value) whose window pattern
   matches is returned.
2. Fuzzy phase: only when the exact phase finds nothing. Index keys are
   visited in lexicographic order and compared case-insensitively by
   equality, containment in either direction, or containment of any
   whitespace-delimited token of the key.
"""
import copy
import dataclasses
import logging
import threading
from typing import Optional

from .config_store import ConfigStore, default_config
from .models import Config, Rule, WindowObservation
from .rwlock import ReadWriteLock


class RuleIndexError(IndexError):
    """Raised when a rule is addressed by an index outside the rule list."""


class ConfigNotLoadedError(RuntimeError):
    """Raised when rules are edited before any configuration was loaded."""


def window_name_matches(window_name: str, pattern: str) -> bool:
    """
    Check a window title against a rule's window pattern.

    An empty pattern matches every window. Otherwise the comparison is a
    case-insensitive substring test; ``*`` characters are dropped from the
    pattern, so ``"*docs*"`` behaves like ``"docs"``.
    """
    if not pattern:
        return True

    window_name = window_name.strip().lower()
    pattern = pattern.strip().lower()

    if "*" in pattern:
        pattern = pattern.replace("*", "")

    return pattern in window_name


def app_name_matches(app_name: str, rule_app: str) -> bool:
    """
    Loose comparison of an observed app name with an index key.

    :param app_name: App name from the window observation
    :param rule_app: App-name token taken from a rule
    :return: True on equality, containment either way, or when any
             whitespace-delimited word of ``rule_app`` occurs in ``app_name``
    """
    app_name = app_name.strip().lower()
    rule_app = rule_app.strip().lower()

    if not app_name or not rule_app:
        return False

    if app_name == rule_app:
        return True

    if rule_app in app_name or app_name in rule_app:
        return True

    return any(part in app_name for part in rule_app.split())


class RuleIndex:
    """
    Immutable lookup from app-name token to its enabled rules.

    Each token's rules are ordered by ascending priority; rules with equal
    priority keep their order from the rule list.
    """

    def __init__(self, rules=()):
        buckets: dict[str, list[Rule]] = {}
        for rule in rules:
            if not rule.enabled:
                continue
            for token in rule.app_tokens():
                buckets.setdefault(token, []).append(rule)

        # sorted() is stable, which keeps list order among equal priorities
        self._rules = {
            token: tuple(sorted(bucket, key=lambda r: r.priority))
            for token, bucket in buckets.items()
        }
        self._keys = tuple(sorted(self._rules))

    def __len__(self):
        return len(self._rules)

    def __contains__(self, key):
        return key in self._rules

    def keys(self) -> tuple[str, ...]:
        """Index keys in lexicographic order."""
        return self._keys

    def rules_for(self, key: str) -> tuple[Rule, ...]:
        return self._rules.get(key, ())

    def first_window_match(self, key: str, window_name: str) -> Optional[Rule]:
        for rule in self.rules_for(key):
            if window_name_matches(window_name, rule.window_pattern):
                return rule
        return None


class RuleMatcher:
    """
    Owns the Config lifecycle and answers which rule applies to a window.

    The config and index are shared between the poll-driven ``match`` calls
    and rule editing; a reader/writer lock lets matches run concurrently
    while saves are exclusive. The index is always built into a fresh
    object and swapped in, so readers never see a partial rebuild.
    """

    def __init__(self, store: ConfigStore):
        self.logger = logging.getLogger(__name__)
        self.store = store
        self._config: Optional[Config] = None
        self._index = RuleIndex()
        self._lock = ReadWriteLock()
        # Serializes read-modify-write rule edits
        self._edit_lock = threading.Lock()

    @property
    def index(self) -> RuleIndex:
        with self._lock.read_locked():
            return self._index

    @property
    def is_loaded(self) -> bool:
        with self._lock.read_locked():
            return self._config is not None

    def load_config(self) -> Config:
        """
        Load the persisted config, creating the default rule set if absent.

        On any failure the previously loaded config stays in place.

        :raises ConfigError: If the file is malformed or cannot be written
        """
        if not self.store.exists():
            self.logger.info(f"No config at {self.store.config_path}, writing default rules")
            return self.save_config(default_config())

        config = self.store.read()
        index = RuleIndex(config.rules)
        with self._lock.write_locked():
            self._config = config
            self._index = index

        self.logger.info(f"Loaded {len(config.rules)} rules ({len(index)} app keys)")
        return copy.deepcopy(config)

    def reload_config(self) -> Config:
        return self.load_config()

    def save_config(self, config: Config) -> Config:
        """
        Persist ``config`` and make it the live config.

        The file is written first; only when that succeeds are the in-memory
        config and index replaced, under the exclusive lock.

        :return: Snapshot of the saved config, with ``last_modified`` stamped
        :raises ConfigError: If the file cannot be written
        """
        with self._lock.write_locked():
            saved = self.store.write(config)
            self._config = saved
            self._index = RuleIndex(saved.rules)

        self.logger.debug(f"Saved {len(saved.rules)} rules to {self.store.config_path}")
        return copy.deepcopy(saved)

    def get_config(self) -> Optional[Config]:
        """Deep copy of the live config, or None before the first load."""
        with self._lock.read_locked():
            if self._config is None:
                return None
            return copy.deepcopy(self._config)

    def _snapshot(self) -> Config:
        config = self.get_config()
        if config is None:
            raise ConfigNotLoadedError("config not loaded")
        return config

    @staticmethod
    def _check_index(config: Config, index: int):
        if not 0 <= index < len(config.rules):
            raise RuleIndexError(
                f"rule index {index} out of range (0..{len(config.rules) - 1})"
            )

    def add_rule(self, rule: Rule) -> Config:
        """
        Append a rule. A rule without priority (0) is placed after the
        existing ones by giving it ``len(rules) + 1``.
        """
        with self._edit_lock:
            config = self._snapshot()
            if rule.priority == 0:
                rule = dataclasses.replace(rule, priority=len(config.rules) + 1)
            config.rules.append(rule)
            return self.save_config(config)

    def update_rule(self, index: int, rule: Rule) -> Config:
        with self._edit_lock:
            config = self._snapshot()
            self._check_index(config, index)
            config.rules[index] = rule
            return self.save_config(config)

    def delete_rule(self, index: int) -> Rule:
        """
        Remove the rule at ``index``.

        :return: The removed rule
        """
        with self._edit_lock:
            config = self._snapshot()
            self._check_index(config, index)
            removed = config.rules.pop(index)
            self.save_config(config)
            return removed

    def import_rules(self, path, replace: bool = False) -> Config:
        """Append (or with ``replace`` substitute) the rules read from a file."""
        rules = ConfigStore.read_rules(path)
        with self._edit_lock:
            config = self._snapshot()
            config.rules = rules if replace else config.rules + rules
            saved = self.save_config(config)
        self.logger.info(f"Imported {len(rules)} rules from {path}")
        return saved

    def export_rules(self, path):
        ConfigStore.export_rules(self._snapshot().rules, path)

    def app_rules(self, app_name: str) -> list[Rule]:
        """Indexed rules for an exact app key, in priority order."""
        return list(self.index.rules_for(app_name))

    def match(self, observation: Optional[WindowObservation]) -> Optional[Rule]:
        """
        Resolve an observation to the rule that applies to it.

        :param observation: Current window observation
        :return: The matching Rule, or None if no rule applies
        """
        if observation is None or not observation.app_name:
            return None

        with self._lock.read_locked():
            index = self._index

        # Exact phase
        rule = index.first_window_match(observation.app_name, observation.window_name)
        if rule:
            self.logger.debug(f"Exact rule match for '{observation.app_name}': {rule}")
            return rule

        # Fuzzy phase
        for key in index.keys():
            if not app_name_matches(observation.app_name, key):
                continue
            rule = index.first_window_match(key, observation.window_name)
            if rule:
                self.logger.debug(
                    f"Fuzzy rule match for '{observation.app_name}' via key '{key}': {rule}"
                )
                return rule

        return None
