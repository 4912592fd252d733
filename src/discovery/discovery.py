from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Sequence, Tuple

from src.common.naming import WORKFLOW_NAMESPACE
from src.gateway import GatewayError, ResourceGateway

from .errors import DiscoveryError
from .probes import PROBES, CredentialCorrection, Probe
from .profile import ConfigurationProfile

logger = logging.getLogger(__name__)


@dataclass
class Discovery:
    profile: ConfigurationProfile
    corrections: List[CredentialCorrection] = field(default_factory=list)


def discover(
    gateway: ResourceGateway,
    namespace: str = WORKFLOW_NAMESPACE,
    probes: Sequence[Tuple[str, Probe]] = PROBES,
) -> Discovery:
    """Rebuild the chart values by running each probe in order.

    Probes only read from the cluster. The first probe that fails stops
    discovery; gateway failures are re-raised as ``DiscoveryError`` naming the
    probe. Secret corrections collected along the way are returned unapplied.
    """
    profile = ConfigurationProfile()
    corrections: List[CredentialCorrection] = []
    for name, probe in probes:
        try:
            result = probe(gateway, namespace)
        except GatewayError as exc:
            raise DiscoveryError(f"{name} probe failed: {exc}") from exc
        logger.info("%s probe: %s", name, ", ".join(sorted(result.values)) or "no values")
        profile.update(result.values)
        corrections.extend(result.corrections)

    _check_exclusive(profile, ConfigurationProfile.STORAGE_VARIANTS, "storage")
    _check_exclusive(profile, ConfigurationProfile.REGISTRY_VARIANTS, "registry")
    return Discovery(profile=profile, corrections=corrections)


def _check_exclusive(profile: ConfigurationProfile, names: Sequence[str], concern: str) -> None:
    populated = profile.populated(names)
    if len(populated) > 1:
        raise DiscoveryError(f"more than one {concern} backend populated: {', '.join(populated)}")


__all__ = ["Discovery", "discover"]
