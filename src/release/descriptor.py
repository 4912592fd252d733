from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Optional, Tuple

from src.common.naming import CHART_NAME

from .schema import Release, StatusCode

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def to_timestamp(value: datetime) -> Tuple[int, int]:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    delta = value - _EPOCH
    return delta.days * 86400 + delta.seconds, delta.microseconds * 1000


def from_timestamp(seconds: int, nanos: int) -> datetime:
    return _EPOCH + timedelta(seconds=seconds, microseconds=nanos // 1000)


@dataclass
class ReleaseDescriptor:
    """A Helm v2 release describing the migrated installation."""

    name: str
    namespace: str
    chart_version: str
    config_raw: str
    manifest: str
    version: int = 1
    chart_name: str = CHART_NAME
    status: StatusCode = StatusCode.DEPLOYED
    first_deployed: datetime = field(default_factory=utc_now)
    last_deployed: Optional[datetime] = None
    description: str = ""

    def __post_init__(self) -> None:
        if self.last_deployed is None:
            self.last_deployed = self.first_deployed
        self.status = StatusCode(self.status)

    def to_proto(self) -> Any:
        message = Release()
        message.name = self.name
        message.namespace = self.namespace
        message.version = self.version
        message.manifest = self.manifest
        message.config.raw = self.config_raw
        message.chart.metadata.name = self.chart_name
        message.chart.metadata.version = self.chart_version
        # Tiller reads the chart defaults from chart.values; the migrated values
        # are the only values this release has.
        message.chart.values.raw = self.config_raw
        message.info.status.code = int(self.status)
        message.info.Description = self.description
        message.info.first_deployed.seconds, message.info.first_deployed.nanos = to_timestamp(self.first_deployed)
        message.info.last_deployed.seconds, message.info.last_deployed.nanos = to_timestamp(self.last_deployed)
        return message

    @classmethod
    def from_proto(cls, message: Any) -> "ReleaseDescriptor":
        info = message.info
        return cls(
            name=message.name,
            namespace=message.namespace,
            chart_version=message.chart.metadata.version,
            config_raw=message.config.raw,
            manifest=message.manifest,
            version=message.version,
            chart_name=message.chart.metadata.name,
            status=StatusCode(info.status.code),
            first_deployed=from_timestamp(info.first_deployed.seconds, info.first_deployed.nanos),
            last_deployed=from_timestamp(info.last_deployed.seconds, info.last_deployed.nanos),
            description=info.Description,
        )


__all__ = ["ReleaseDescriptor", "from_timestamp", "to_timestamp", "utc_now"]
