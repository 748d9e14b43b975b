"""Session, organization and global sector configuration."""
import logging
import threading
import time
from typing import Callable, Dict, Optional

from models.sector import SectorConfiguration, SectorSettings
from services.sector_registry import SectorPolicyRegistry, DEFAULT_SECTOR_NAME, normalize_sector
from config import DEFAULT_SECTOR

logger = logging.getLogger(__name__)


def current_millis() -> int:
    return int(time.time() * 1000)


class SectorConfigurationService:
    """
    Resolves which sector applies to a request.

    Precedence is session configuration, then organization configuration,
    then the global default sector. Writes are last-writer-wins per key.
    """

    def __init__(
        self,
        registry: SectorPolicyRegistry,
        default_sector: str = DEFAULT_SECTOR,
        clock: Callable[[], int] = current_millis
    ):
        """
        Args:
            registry: Registry used to validate sector names
            default_sector: Initial global sector
            clock: Returns the current time in epoch milliseconds
        """
        self.registry = registry
        self._clock = clock
        self._lock = threading.RLock()
        self._session_configs: Dict[str, SectorConfiguration] = {}
        self._organization_configs: Dict[str, SectorConfiguration] = {}

        name = normalize_sector(default_sector)
        if not registry.is_valid_sector(name):
            logger.warning(f"Configured default sector '{default_sector}' is unknown, using '{DEFAULT_SECTOR_NAME}'")
            name = DEFAULT_SECTOR_NAME
        self._default_sector = name

    def get_default_sector(self) -> str:
        with self._lock:
            return self._default_sector

    def set_default_sector(self, sector: str) -> bool:
        name = normalize_sector(sector)
        if not self.registry.is_valid_sector(name):
            logger.warning(f"Rejected unknown default sector: '{sector}'")
            return False
        with self._lock:
            self._default_sector = name
        logger.info(f"Default sector set to '{name}'")
        return True

    def set_session_sector(self, session_id: str, sector: str, settings: Optional[SectorSettings] = None) -> bool:
        return self._store(self._session_configs, "session", session_id, sector, settings)

    def set_organization_sector(
        self, organization_id: str, sector: str, settings: Optional[SectorSettings] = None
    ) -> bool:
        return self._store(self._organization_configs, "organization", organization_id, sector, settings)

    def get_session_configuration(self, session_id: Optional[str]) -> Optional[SectorConfiguration]:
        if not session_id:
            return None
        with self._lock:
            return self._session_configs.get(session_id)

    def get_organization_configuration(self, organization_id: Optional[str]) -> Optional[SectorConfiguration]:
        if not organization_id:
            return None
        with self._lock:
            return self._organization_configs.get(organization_id)

    def get_effective_configuration(
        self, session_id: Optional[str] = None, organization_id: Optional[str] = None
    ) -> Optional[SectorConfiguration]:
        """Session configuration if present, else organization configuration, else None."""
        with self._lock:
            return (
                self.get_session_configuration(session_id)
                or self.get_organization_configuration(organization_id)
            )

    def get_effective_sector(self, session_id: Optional[str] = None, organization_id: Optional[str] = None) -> str:
        configuration = self.get_effective_configuration(session_id, organization_id)
        if configuration is not None:
            return configuration.sector
        return self.get_default_sector()

    def remove_session_configuration(self, session_id: str) -> bool:
        with self._lock:
            removed = self._session_configs.pop(session_id, None) is not None
        if removed:
            logger.info(f"Removed sector configuration for session {session_id}")
        return removed

    def cleanup_expired_sessions(self, max_age_millis: int) -> int:
        """
        Remove session configurations older than max_age_millis.

        Returns:
            Number of sessions removed
        """
        cutoff = self._clock() - max_age_millis
        with self._lock:
            expired = [sid for sid, c in self._session_configs.items() if c.created_at_millis < cutoff]
            for session_id in expired:
                del self._session_configs[session_id]

        logger.info(f"Cleaned up {len(expired)} expired session configurations", extra={"removed": len(expired)})
        return len(expired)

    def _store(
        self,
        target: Dict[str, SectorConfiguration],
        scope: str,
        key: str,
        sector: str,
        settings: Optional[SectorSettings]
    ) -> bool:
        if not key or not key.strip():
            logger.warning(f"Rejected {scope} sector configuration without an id")
            return False
        name = normalize_sector(sector)
        if not self.registry.is_valid_sector(name):
            logger.warning(f"Rejected unknown sector '{sector}' for {scope} {key}")
            return False

        configuration = SectorConfiguration(
            sector=name,
            settings=settings or SectorSettings(),
            created_at_millis=self._clock(),
        )
        with self._lock:
            target[key] = configuration
        logger.info(f"Configured sector '{name}' for {scope} {key}")
        return True
