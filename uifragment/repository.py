# uifragment/repository.py
from __future__ import annotations

import json
import os
import threading
from typing import Any, Dict, List, Optional, Type

import yaml
from jsonschema import Draft202012Validator

from .capabilities import Button, ElementList, Label, TextField
from .config import TimeConfig
from .criteria import (Contains, Exact, Pattern, ScopeMode, SearchCriteria,
                       TextMatcher)
from .exceptions import ConfigError, InvalidCriteriaError
from .fragment import Fragment
from .interfaces import DriverPort

SCHEMA_PATH = os.path.join(os.path.dirname(__file__), "schemas", "fragment_map.schema.json")

FRAGMENT_TYPES: Dict[str, Type[Fragment]] = {
    "fragment": Fragment,
    "button": Button,
    "text_field": TextField,
    "label": Label,
    "list": ElementList,
}


class FragmentMap:
    """
    Loads a fragment map YAML (object map of named fragments).

    Each entry describes one fragment: a selector, an optional parent entry
    it is scoped under, text and index filters, and the Fragment type that
    decides which operations it offers.
    """

    def __init__(self, path: str, schema_path: str = SCHEMA_PATH):
        self.path = os.path.abspath(path)
        self._raw: Dict[str, Any] = self._load_yaml(self.path)
        self._validator = Draft202012Validator(self._load_schema(schema_path))
        self._validate_schema()
        self._fragments: Dict[str, Dict[str, Any]] = self._raw["fragments"]
        self._validate_references()
        self._criteria: Dict[str, SearchCriteria] = {}
        self._config = self._build_config(self._raw.get("defaults") or {})

    @staticmethod
    def _load_yaml(path: str) -> Dict[str, Any]:
        if not os.path.exists(path):
            raise ConfigError(f"Fragment map YAML not found: {path}")
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f)
            if not isinstance(data, dict):
                raise ConfigError("Fragment map YAML must be a mapping at root.")
            return data
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML: {e}") from e

    @staticmethod
    def _load_schema(path: str) -> Dict[str, Any]:
        """Load JSON schema file."""
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)

    def _validate_schema(self) -> None:
        errors = sorted(self._validator.iter_errors(self._raw), key=lambda e: [str(p) for p in e.path])
        if errors:
            lines = ["Fragment map schema validation failed:"]
            for e in errors:
                lines.append(f"- {list(e.path)}: {e.message}")
            raise ConfigError("\n".join(lines))

    def _validate_references(self) -> None:
        for name, spec in self._fragments.items():
            parent = spec.get("parent")
            if parent is not None and parent not in self._fragments:
                raise ConfigError(f"fragments.{name}.parent references unknown fragment '{parent}'")

        for name in self._fragments:
            seen = [name]
            parent = self._fragments[name].get("parent")
            while parent is not None:
                if parent in seen:
                    cycle = " -> ".join(seen + [parent])
                    raise ConfigError(f"fragments.{name}: parent cycle {cycle}")
                seen.append(parent)
                parent = self._fragments[parent].get("parent")

    @staticmethod
    def _build_config(defaults: Dict[str, Any]) -> Optional[TimeConfig]:
        if not defaults:
            return None
        overrides = dict(defaults.get("overrides") or {})
        if "artifacts_dir" in defaults:
            overrides["artifacts_dir"] = defaults["artifacts_dir"]
        return TimeConfig.build_from(preset=defaults.get("preset", "default"), overrides=overrides)

    @staticmethod
    def _text_matcher(name: str, spec: Dict[str, Any]) -> TextMatcher:
        normalize = bool(spec.get("normalize_whitespace", False))
        if "exact" in spec:
            return Exact(spec["exact"], normalize)
        if "contains" in spec:
            return Contains(spec["contains"], normalize)
        try:
            return Pattern(spec["pattern"])
        except InvalidCriteriaError as e:
            raise ConfigError(f"fragments.{name}.text: {e}") from e

    @property
    def config(self) -> Optional[TimeConfig]:
        """Timing snapshot from ``defaults``; None when the map sets none."""
        return self._config

    def criteria(self, name: str) -> SearchCriteria:
        """SearchCriteria for an entry, with its parent chain resolved."""
        if name in self._criteria:
            return self._criteria[name]
        spec = self.get_fragment_spec(name)
        parent = self.criteria(spec["parent"]) if "parent" in spec else None
        criteria = SearchCriteria(
            selector=spec["selector"],
            text=self._text_matcher(name, spec["text"]) if "text" in spec else None,
            index=spec.get("index"),
            parent=parent,
            scope_mode=ScopeMode(spec.get("scope", ScopeMode.FIRST.value)),
        )
        self._criteria[name] = criteria
        return criteria

    def fragment(
        self,
        name: str,
        driver: DriverPort,
        cancel: Optional[threading.Event] = None,
    ) -> Fragment:
        """Build the typed Fragment for an entry. No browser I/O happens here."""
        spec = self.get_fragment_spec(name)
        fragment_type = FRAGMENT_TYPES[spec.get("type", "fragment")]
        return fragment_type(driver, self.criteria(name), name=name, config=self._config, cancel=cancel)

    def get_fragment_spec(self, name: str) -> Dict[str, Any]:
        if name not in self._fragments:
            raise ConfigError(f"Unknown fragment: {name}")
        return self._fragments[name]

    def list_fragments(self) -> List[str]:
        return sorted(self._fragments.keys())
