"""Shared variable store threaded through a test run.

Extraction rules write into the context and later tests' substitution
rules read from it, so one TestContext is passed by reference to every
test of a run. Variables extracted during a run are persisted to a JSON
side file and merged with what an earlier run stored there.
"""

import json
import logging
import os
from pathlib import Path
from typing import Any, Mapping

from dotenv import dotenv_values

logger = logging.getLogger(__name__)

VARS_FILE_NAME = ".harwise.env.json"


class TestContext:
    """Variable store with ``get``/``set``; lookups fall back to the environment."""

    __test__ = False

    def __init__(self, variables: Mapping[str, Any] | None = None, environ: Mapping[str, str] | None = None):
        self._variables: dict[str, Any] = dict(variables or {})
        self._extracted: dict[str, Any] = {}
        self._environ = os.environ if environ is None else environ

    def get(self, key: str, default: Any = None) -> Any:
        if key in self._variables:
            return self._variables[key]
        return self._environ.get(key, default)

    def set(self, key: str, value: Any) -> None:
        self._variables[key] = value
        self._extracted[key] = value

    @property
    def extracted(self) -> dict[str, Any]:
        """Variables set during this run."""
        return dict(self._extracted)


def load_environ(env_file: Path | None) -> dict[str, str]:
    """Process environment overlaid on a ``.env`` file's values.

    Values already present in the environment win, as with ``load_dotenv``.
    """
    values: dict[str, str] = {}
    if env_file is not None and Path(env_file).exists():
        values = {k: v for k, v in dotenv_values(env_file).items() if v is not None}
        logger.info("Loaded %d variables from %s", len(values), env_file)
    values.update(os.environ)
    return values


def load_variables(path: Path) -> dict[str, Any]:
    """Read a persisted variable store; a missing or unreadable file is empty."""
    if not path.exists():
        return {}
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        logger.warning("Ignoring unreadable variable store %s: %s", path, e)
        return {}
    if not isinstance(data, dict):
        logger.warning("Ignoring variable store %s: not a JSON object", path)
        return {}
    return data


def save_variables(path: Path, variables: Mapping[str, Any]) -> dict[str, Any]:
    """Merge ``variables`` into the store at ``path`` and write it back."""
    merged = load_variables(path)
    merged.update(variables)
    path.write_text(json.dumps(merged, indent=2), encoding="utf-8")
    logger.info("Saved %d variables to %s", len(variables), path)
    return merged
