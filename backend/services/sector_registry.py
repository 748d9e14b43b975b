"""Registry mapping sector names to their answer policies."""
import logging
from typing import Dict, Iterable, List, Optional

from models.sector import SectorPolicy, ServiceInfo
from services.sectors import DEFAULT_POLICY, SECTOR_POLICIES

logger = logging.getLogger(__name__)

DEFAULT_SECTOR_NAME = "default"


def normalize_sector(sector: Optional[str]) -> str:
    return (sector or "").strip().lower()


class SectorPolicyRegistry:
    """
    Fixed table of sector policies built once at startup.

    The default policy always exists and is never listed among the
    available sectors.
    """

    def __init__(
        self,
        policies: Iterable[SectorPolicy] = SECTOR_POLICIES,
        default_policy: SectorPolicy = DEFAULT_POLICY
    ):
        """
        Args:
            policies: Specialized policies, one per sector name
            default_policy: Policy used for blank or unknown sectors

        Raises:
            ValueError: On duplicate sector names or a specialized policy named "default"
        """
        self.default_policy = default_policy
        self._policies: Dict[str, SectorPolicy] = {}

        for policy in policies:
            name = normalize_sector(policy.sector_name)
            if name == DEFAULT_SECTOR_NAME:
                raise ValueError("The default policy cannot be registered as a sector")
            if name in self._policies:
                raise ValueError(f"Duplicate sector policy: {name}")
            self._policies[name] = policy

        logger.info(f"Registered sector policies: {', '.join(self.get_available_sectors()) or 'none'}")

    def get_service(self, sector: Optional[str]) -> SectorPolicy:
        """Policy for a sector; blank or unknown names get the default policy."""
        name = normalize_sector(sector)
        policy = self._policies.get(name)
        if policy is None:
            if name and name != DEFAULT_SECTOR_NAME:
                logger.debug(f"No policy for sector '{name}', using default")
            return self.default_policy
        return policy

    def has_sector_service(self, sector: Optional[str]) -> bool:
        return normalize_sector(sector) in self._policies

    def is_valid_sector(self, sector: Optional[str]) -> bool:
        """True for "default" or any registered sector name."""
        name = normalize_sector(sector)
        return name == DEFAULT_SECTOR_NAME or name in self._policies

    def get_available_sectors(self) -> List[str]:
        return sorted(self._policies)

    def get_service_info(self, sector: Optional[str]) -> ServiceInfo:
        name = normalize_sector(sector) or DEFAULT_SECTOR_NAME
        policy = self.get_service(name)
        return ServiceInfo(
            sector=name,
            policy_name=policy.sector_name,
            specialized=policy is not self.default_policy,
            description=policy.description,
        )
