"""
Loader for SSVC decision tree documents.

Reads a tree description from a JSON or YAML file, or from an HTTP(S)
URL, and parses it into a fresh ParsedDecisionTree. Every load builds a
new snapshot; nothing is shared between documents.
"""
import json
import logging
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional, Union

import requests
import yaml

from decisioning.tree import ParsedDecisionTree, parse_decision_tree
from .http_client import CircuitOpenError, HttpClient, RetryConfig

logger = logging.getLogger(__name__)

DEFAULT_TREE_PATH = Path(__file__).parent.parent / "decisioning" / "trees" / "cisa_coordinator.json"


class TreeLoadError(RuntimeError):
    """Raised when a decision tree source cannot be read or parsed."""


@dataclass
class LoaderHealth:
    """Outcome of the last load attempt."""
    source: str
    is_healthy: bool
    last_load: Optional[datetime]
    decision_points: int = 0
    error_message: Optional[str] = None


class TreeLoader:
    """
    Loads decision tree documents from files or URLs.

    Config keys:
        source: file path or http(s) URL (defaults to the bundled tree)
        http: retry settings passed to RetryConfig.from_dict
    """

    def __init__(self, config: Optional[Dict[str, Any]] = None, http_client: Optional[HttpClient] = None):
        config = config or {}
        self.source = str(config.get("source") or DEFAULT_TREE_PATH)
        self.http_client = http_client or HttpClient(
            retry_config=RetryConfig.from_dict(config.get("http"))
        )
        self.health = LoaderHealth(source=self.source, is_healthy=False, last_load=None)

    @property
    def is_remote(self) -> bool:
        return self.source.startswith(("http://", "https://"))

    def load(self) -> ParsedDecisionTree:
        """
        Load and parse the configured tree.

        Raises:
            TreeLoadError: If the source cannot be read or is not a tree document
        """
        try:
            document = self.load_document()
            tree = parse_decision_tree(document)
        except TreeLoadError as e:
            self._record_failure(str(e))
            raise
        except (KeyError, TypeError, AttributeError) as e:
            self._record_failure(f"Malformed decision tree: {e}")
            raise TreeLoadError(f"Malformed decision tree in {self.source}: {e}") from e

        self.health = LoaderHealth(
            source=self.source,
            is_healthy=True,
            last_load=datetime.utcnow(),
            decision_points=len(tree.decision_points),
        )
        logger.info(
            f"Loaded decision tree '{tree.title}' {tree.version} from {self.source}: "
            f"steps={', '.join(tree.steps)}"
        )
        return tree

    def load_document(self) -> Dict[str, Any]:
        """Read the raw document as a dictionary."""
        if self.is_remote:
            data = self._fetch_remote()
        else:
            data = load_document_file(self.source)

        if not isinstance(data, dict):
            raise TreeLoadError(f"Decision tree in {self.source} is not a mapping")
        return data

    def _fetch_remote(self) -> Any:
        try:
            return self.http_client.get_json(self.source)
        except (requests.RequestException, CircuitOpenError, ValueError) as e:
            raise TreeLoadError(f"Failed to fetch decision tree from {self.source}: {e}") from e

    def _record_failure(self, message: str) -> None:
        logger.error(message)
        self.health = LoaderHealth(
            source=self.source,
            is_healthy=False,
            last_load=datetime.utcnow(),
            error_message=message,
        )


def load_document_file(path: Union[str, Path]) -> Any:
    """
    Read a JSON or YAML document from disk.

    Files ending in .yaml or .yml are read as YAML, anything else as JSON.
    """
    path = Path(path)
    if not path.exists():
        raise TreeLoadError(f"Decision tree file not found: {path}")

    try:
        with open(path, encoding="utf-8") as f:
            if path.suffix.lower() in (".yaml", ".yml"):
                return yaml.safe_load(f)
            return json.load(f)
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise TreeLoadError(f"Failed to parse decision tree file {path}: {e}") from e
