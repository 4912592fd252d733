from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, List

from src.gateway import NotFoundError, ResourceGateway
from src.gateway.objects import set_secret_value

from .probes import CredentialCorrection

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CorrectionOutcome:
    secret: str
    applied: bool
    message: str


def reconcile_credentials(
    gateway: ResourceGateway,
    namespace: str,
    corrections: Iterable[CredentialCorrection],
) -> List[CorrectionOutcome]:
    """Write connection fields from the deployments into their credentials secrets.

    Newer charts read name/host/port (or db/host/port) from the secret rather
    than the deployment. Each correction re-reads the secret and replaces it
    once. A secret that disappears between the read and the write is skipped
    with a warning; any other gateway error propagates.
    """
    outcomes: List[CorrectionOutcome] = []
    for correction in corrections:
        try:
            secret = gateway.get("secret", namespace, correction.secret)
            for key, value in correction.fields.items():
                set_secret_value(secret, key, value)
            gateway.replace(namespace, secret)
        except NotFoundError as exc:
            logger.warning("secret %s vanished before it could be updated: %s", correction.secret, exc)
            outcomes.append(CorrectionOutcome(correction.secret, False, "not found"))
            continue
        logger.info("secret %s updated with %s", correction.secret, ", ".join(sorted(correction.fields)))
        outcomes.append(CorrectionOutcome(correction.secret, True, "updated"))
    return outcomes


__all__ = ["CorrectionOutcome", "reconcile_credentials"]
