"""
SLA Policy File
===============

Loads the priority → budget table from YAML and reloads it when the file
changes on disk.

File format::

    due_soon_minutes: 15
    targets:
      urgent: {response: 5, resolution: 120}
      high: {response: 15, resolution: 240}

Anything left out falls back to the built-in table.
"""

import threading
from pathlib import Path
from typing import Optional, Union

import yaml
from pydantic import ValidationError
from watchdog.events import FileSystemEventHandler
from watchdog.observers import Observer

from inbox_routing.core import ConfigurationException
from inbox_routing.shared.infrastructure.logging import get_logger
from inbox_routing.sla.application import ISLAPolicyProvider
from inbox_routing.sla.domain import SLAPolicy

logger = get_logger(__name__)


class ConfigFileHandler(FileSystemEventHandler):
    """Watchdog event handler for SLA policy file changes."""

    def __init__(self, policy_manager: "SLAPolicyManager", config_path: Path):
        self.policy_manager = policy_manager
        self.config_path = config_path
        super().__init__()

    def on_modified(self, event):
        if event.is_directory:
            return
        if Path(event.src_path).resolve() == self.config_path.resolve():
            logger.info("SLA policy file changed", extra={"path": str(event.src_path)})
            self.policy_manager.reload()

    on_created = on_modified


class SLAPolicyManager(ISLAPolicyProvider):
    """
    Thread-safe SLA policy holder with hot reload.

    The watchdog observer runs on its own thread; readers always see either
    the old policy or the new one, never a partial load. A file that fails
    to parse on reload is logged and the previous policy stays in force.
    """

    def __init__(self):
        self._policy: Optional[SLAPolicy] = None
        self._lock = threading.Lock()
        self._path: Optional[Path] = None
        self._observer = None

    def load(self, path: Union[str, Path]) -> SLAPolicy:
        """
        Initial load.

        Raises:
            ConfigurationException: If the file exists but is not a valid policy
        """
        self._path = Path(path)
        policy = self._load_from_file(self._path)
        with self._lock:
            self._policy = policy
        logger.info(
            "SLA policy loaded",
            extra={"path": str(self._path), "due_soon_minutes": policy.due_soon_minutes},
        )
        return policy

    def _load_from_file(self, path: Path) -> SLAPolicy:
        if not path.exists():
            logger.warning("SLA policy file not found, using defaults", extra={"path": str(path)})
            return SLAPolicy.default()

        try:
            with open(path, "r") as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            raise ConfigurationException(f"Cannot read SLA policy {path}: {e}") from e

        if not isinstance(data, dict):
            raise ConfigurationException(f"SLA policy {path} must be a mapping")

        try:
            return SLAPolicy(**data)
        except (TypeError, ValidationError) as e:
            raise ConfigurationException(f"Invalid SLA policy {path}: {e}") from e

    def reload(self) -> bool:
        """Reload from the file given to ``load``. Returns whether it took effect."""
        if self._path is None:
            return False

        try:
            new_policy = self._load_from_file(self._path)
        except ConfigurationException as e:
            logger.error("Failed to reload SLA policy", extra={"error": e.message})
            return False

        with self._lock:
            self._policy = new_policy
        logger.info("SLA policy reloaded")
        return True

    def start_watching(self) -> None:
        """
        Start watching the policy file for changes.

        Skipped when the file does not exist or the platform has no usable
        file notification.
        """
        if self._path is None:
            raise RuntimeError("SLA policy not loaded. Call load() first.")

        if not self._path.exists():
            logger.info("SLA policy file missing, not watching", extra={"path": str(self._path)})
            return

        try:
            self._observer = Observer()
            handler = ConfigFileHandler(self, self._path)
            self._observer.schedule(handler, str(self._path.parent), recursive=False)
            self._observer.start()
            logger.info("Watching SLA policy file", extra={"path": str(self._path)})
        except OSError as e:
            logger.warning("File watching not available, policy is static", extra={"error": str(e)})
            self._observer = None

    def stop_watching(self) -> None:
        """Stop watching (safe to call even if not watching)."""
        if self._observer is not None:
            self._observer.stop()
            self._observer.join(timeout=5)
            self._observer = None

    def get_policy(self) -> SLAPolicy:
        with self._lock:
            policy = self._policy
        if policy is None:
            raise RuntimeError("SLA policy not loaded")
        return policy
