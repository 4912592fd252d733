from __future__ import annotations

import logging
from typing import Iterable, List

from src.common.naming import STALE_DEPLOYMENTS
from src.gateway import NotFoundError, ResourceGateway

logger = logging.getLogger(__name__)


def delete_deployments(
    gateway: ResourceGateway,
    namespace: str,
    names: Iterable[str] = STALE_DEPLOYMENTS,
) -> List[str]:
    """Delete the named deployments and return the ones that existed.

    A deployment that is already gone is skipped; any other error stops the
    removal and propagates.
    """
    deleted: List[str] = []
    for name in names:
        try:
            gateway.delete("deployment", namespace, name)
        except NotFoundError:
            logger.info("deployment %s not found; nothing to delete", name)
            continue
        logger.info("deleted deployment %s", name)
        deleted.append(name)
    return deleted


__all__ = ["delete_deployments"]
