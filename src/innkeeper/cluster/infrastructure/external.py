"""
Cluster External Service Integrations
=====================================

- HTTP coordinator probe (httpx) used by coordinator discovery
- YAML cluster config with watchdog hot-reload
"""

import threading
from pathlib import Path
from typing import Callable, Optional

import httpx
import yaml
from pydantic import ValidationError
from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from innkeeper.cluster.application.services import ICoordinatorProbe
from innkeeper.cluster.domain import ClusterConfig, CoordinatorProbeResult
from innkeeper.config import settings
from innkeeper.core import ConfigurationException, PeerUnreachableException
from innkeeper.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)

COORDINATOR_PATH = "/is-coordinator"


# ========== Coordinator Probe ==========

class HTTPCoordinatorProbe(ICoordinatorProbe):
    """
    Asks a peer `GET /is-coordinator` over HTTP.

    Stored addresses are bare IPs or hostnames; an address that already
    carries a scheme is used as the base URL as is.
    """

    def __init__(
        self,
        peer_port: Optional[int] = None,
        timeout_seconds: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self._peer_port = peer_port or settings.peer_port
        self._client = httpx.AsyncClient(
            timeout=timeout_seconds or settings.peer_timeout_seconds,
            transport=transport
        )

    def build_url(self, address: str) -> str:
        if "://" in address:
            return address.rstrip("/") + COORDINATOR_PATH
        return f"http://{address}:{self._peer_port}{COORDINATOR_PATH}"

    async def query_coordinator_flag(self, address: str) -> CoordinatorProbeResult:
        """
        Query a single peer.

        Raises:
            PeerUnreachableException: connection failure or transport timeout
        """
        try:
            response = await self._client.get(self.build_url(address))
        except httpx.HTTPError as e:
            raise PeerUnreachableException(address, str(e) or type(e).__name__) from e

        if response.status_code != 200:
            logger.warning(
                "Cluster peer returned non-200",
                extra={"ip_address": address, "status_code": response.status_code}
            )
            return CoordinatorProbeResult(reachable=True, is_coordinator=False)

        return CoordinatorProbeResult(
            reachable=True,
            is_coordinator=response.text.strip() == "true"
        )

    async def close(self) -> None:
        await self._client.aclose()


# ========== Cluster Config ==========

class ConfigFileHandler(FileSystemEventHandler):
    """Calls `on_change` when the watched file is written or recreated."""

    def __init__(self, path: Path, on_change: Callable[[], object]):
        super().__init__()
        self._target = path.resolve()
        self._on_change = on_change

    def _is_target(self, event: FileSystemEvent) -> bool:
        return not event.is_directory and Path(event.src_path).resolve() == self._target

    def on_modified(self, event: FileSystemEvent) -> None:
        if self._is_target(event):
            logger.info("Cluster config file changed", extra={"path": event.src_path})
            self._on_change()

    def on_created(self, event: FileSystemEvent) -> None:
        if self._is_target(event):
            logger.info("Cluster config file created", extra={"path": event.src_path})
            self._on_change()


def read_cluster_config(path: Path, default_coordinator: bool) -> ClusterConfig:
    """
    Parse the YAML cluster config at `path`.

    A missing file yields `default_coordinator`; an empty file yields
    the model defaults.

    Raises:
        ConfigurationException: the file exists but is not valid
    """
    if not path.exists():
        logger.warning(
            "Cluster config file not found, using settings",
            extra={"path": str(path), "coordinator": default_coordinator}
        )
        return ClusterConfig(coordinator=default_coordinator)

    try:
        data = yaml.safe_load(path.read_text())
    except (OSError, yaml.YAMLError) as e:
        raise ConfigurationException(f"Invalid cluster config: {path}", {"error": str(e)}) from e

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigurationException(
            f"Invalid cluster config: {path}",
            {"error": "Cluster config must be a mapping"}
        )

    try:
        return ClusterConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigurationException(f"Invalid cluster config: {path}", {"error": str(e)}) from e


class ClusterConfigManager:
    """
    Thread-safe holder of this node's coordinator flag with hot-reload support.

    The flag comes from the YAML file when it exists and from
    `default_coordinator` otherwise. watchdog reloads the file on change
    so the coordinator role can move without a restart.
    """

    def __init__(self, default_coordinator: Optional[bool] = None):
        self._default = settings.coordinator if default_coordinator is None else default_coordinator
        self._lock = threading.Lock()
        self._current: Optional[ClusterConfig] = None
        self._source: Optional[Path] = None
        self._observer: Optional[Observer] = None

    def load(self, path: Path) -> ClusterConfig:
        """
        Initial configuration load.

        Raises:
            ConfigurationException: the file exists but is not valid
        """
        self._source = Path(path)
        loaded = read_cluster_config(self._source, self._default)
        with self._lock:
            self._current = loaded
        logger.info(
            "Cluster configuration loaded",
            extra={"path": str(self._source), "coordinator": loaded.coordinator}
        )
        return loaded

    def reload(self) -> bool:
        """Re-read the file; the previous value is kept on failure."""
        if self._source is None:
            return False

        try:
            loaded = read_cluster_config(self._source, self._default)
        except ConfigurationException as e:
            logger.error(
                "Failed to reload cluster config",
                extra={"path": str(self._source), "error": e.details.get("error", e.message)}
            )
            return False

        with self._lock:
            previous, self._current = self._current, loaded

        if previous is None or previous.coordinator != loaded.coordinator:
            logger.warning("Coordinator role changed", extra={"coordinator": loaded.coordinator})
        return True

    def start_watching(self) -> None:
        """
        Watch the config file's directory for changes.

        Does nothing when the directory is missing or inotify is
        unavailable, as in some containers.
        """
        if self._source is None:
            raise RuntimeError("Call load() before start_watching()")

        directory = self._source.parent
        if not directory.is_dir():
            logger.info(
                "Cluster config directory missing, not watching",
                extra={"path": str(self._source)}
            )
            return

        observer = Observer()
        try:
            observer.schedule(ConfigFileHandler(self._source, self.reload), str(directory), recursive=False)
            observer.start()
        except OSError as e:
            logger.warning("Cluster config watch unavailable", extra={"error": str(e)})
            return

        self._observer = observer
        logger.info("Watching cluster config", extra={"path": str(self._source)})

    def stop_watching(self) -> None:
        """Idempotent."""
        observer, self._observer = self._observer, None
        if observer is not None:
            observer.stop()
            observer.join(timeout=5)

    def is_coordinator(self) -> bool:
        """
        This node's coordinator flag.

        Before load() it reports the settings default.
        """
        with self._lock:
            return self._default if self._current is None else self._current.coordinator
