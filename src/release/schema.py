"""Protobuf message types matching the Helm v2 release record.

Tiller stores releases as ``hapi.release.Release`` messages. Only the fields
this tool writes are declared; the field numbers and types follow the hapi
protos so Tiller can decode what is written here.
"""

from __future__ import annotations

from enum import IntEnum
from typing import Optional

from google.protobuf import descriptor_pb2, descriptor_pool, message_factory, timestamp_pb2

FieldProto = descriptor_pb2.FieldDescriptorProto


class StatusCode(IntEnum):
    UNKNOWN = 0
    DEPLOYED = 1
    DELETED = 2
    SUPERSEDED = 3
    FAILED = 4
    DELETING = 5
    PENDING_INSTALL = 6
    PENDING_UPGRADE = 7
    PENDING_ROLLBACK = 8


def _field(
    message: descriptor_pb2.DescriptorProto,
    name: str,
    number: int,
    field_type: int,
    type_name: Optional[str] = None,
) -> None:
    entry = message.field.add()
    entry.name = name
    entry.number = number
    entry.type = field_type
    entry.label = FieldProto.LABEL_OPTIONAL
    if type_name:
        entry.type_name = type_name


def _chart_file() -> descriptor_pb2.FileDescriptorProto:
    proto = descriptor_pb2.FileDescriptorProto(name="hapi/chart/chart.proto", package="hapi.chart", syntax="proto3")

    config = proto.message_type.add(name="Config")
    _field(config, "raw", 1, FieldProto.TYPE_STRING)

    metadata = proto.message_type.add(name="Metadata")
    _field(metadata, "name", 1, FieldProto.TYPE_STRING)
    _field(metadata, "version", 4, FieldProto.TYPE_STRING)
    _field(metadata, "description", 5, FieldProto.TYPE_STRING)
    _field(metadata, "apiVersion", 10, FieldProto.TYPE_STRING)

    chart = proto.message_type.add(name="Chart")
    _field(chart, "metadata", 1, FieldProto.TYPE_MESSAGE, ".hapi.chart.Metadata")
    _field(chart, "values", 4, FieldProto.TYPE_MESSAGE, ".hapi.chart.Config")
    return proto


def _release_file() -> descriptor_pb2.FileDescriptorProto:
    proto = descriptor_pb2.FileDescriptorProto(
        name="hapi/release/release.proto",
        package="hapi.release",
        syntax="proto3",
        dependency=["google/protobuf/timestamp.proto", "hapi/chart/chart.proto"],
    )

    status = proto.message_type.add(name="Status")
    code = status.enum_type.add(name="Code")
    for member in StatusCode:
        code.value.add(name=member.name, number=member.value)
    _field(status, "code", 1, FieldProto.TYPE_ENUM, ".hapi.release.Status.Code")
    _field(status, "resources", 3, FieldProto.TYPE_STRING)
    _field(status, "notes", 4, FieldProto.TYPE_STRING)

    info = proto.message_type.add(name="Info")
    _field(info, "status", 1, FieldProto.TYPE_MESSAGE, ".hapi.release.Status")
    _field(info, "first_deployed", 2, FieldProto.TYPE_MESSAGE, ".google.protobuf.Timestamp")
    _field(info, "last_deployed", 3, FieldProto.TYPE_MESSAGE, ".google.protobuf.Timestamp")
    _field(info, "deleted", 4, FieldProto.TYPE_MESSAGE, ".google.protobuf.Timestamp")
    _field(info, "Description", 5, FieldProto.TYPE_STRING)

    release = proto.message_type.add(name="Release")
    _field(release, "name", 1, FieldProto.TYPE_STRING)
    _field(release, "info", 2, FieldProto.TYPE_MESSAGE, ".hapi.release.Info")
    _field(release, "chart", 3, FieldProto.TYPE_MESSAGE, ".hapi.chart.Chart")
    _field(release, "config", 4, FieldProto.TYPE_MESSAGE, ".hapi.chart.Config")
    _field(release, "manifest", 5, FieldProto.TYPE_STRING)
    _field(release, "version", 7, FieldProto.TYPE_INT32)
    _field(release, "namespace", 8, FieldProto.TYPE_STRING)
    return proto


_POOL = descriptor_pool.DescriptorPool()
_POOL.AddSerializedFile(timestamp_pb2.DESCRIPTOR.serialized_pb)
_POOL.AddSerializedFile(_chart_file().SerializeToString())
_POOL.AddSerializedFile(_release_file().SerializeToString())

Release = message_factory.GetMessageClass(_POOL.FindMessageTypeByName("hapi.release.Release"))


__all__ = ["Release", "StatusCode"]
