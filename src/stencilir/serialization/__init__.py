"""
Persistence layer

Serializes a StencilInstantiation (metadata + IIR) or a HIR root to the
protocol-buffers wire format shared with the other tools of the chain,
either as deterministic binary bytes (`SerializationFormat.BYTE`) or as JSON
text (`SerializationFormat.JSON`).

    data = encode(instantiation)
    assert decode(data) == instantiation
"""

import logging
from enum import Enum
from pathlib import Path
from typing import Union

from google.protobuf import json_format
from google.protobuf.message import DecodeError

from ..hir.nodes import HIR
from ..metadata.instantiation import StencilInstantiation
from ..shared.errors import InvariantViolationError, MalformedEncodingError
from ..utils.config import DEFAULT_SERIALIZATION_FORMAT, JSON_INDENT
from ..utils.io_utils import read_binary_file, read_text_file, write_binary_file, write_text_file
from . import schema
from .decoder import ProtoDecoder, proto_to_hir, proto_to_instantiation
from .encoder import ASTEncoder, hir_to_proto, instantiation_to_proto
from .sexpr import dump_ast, dump_iir, dump_instantiation

logger = logging.getLogger("stencilir.serialization")


class SerializationFormat(Enum):
    BYTE = "byte"
    JSON = "json"


_DEFAULT_FORMAT = SerializationFormat(DEFAULT_SERIALIZATION_FORMAT)


def _build(to_proto, obj, what: str):
    """Message for `obj`; a value outside the range of its wire field is an InvariantViolationError"""
    try:
        return to_proto(obj)
    except ValueError as e:
        raise InvariantViolationError(f"{what} does not fit the wire format: {e}") from e


def _to_wire(msg, fmt: SerializationFormat) -> Union[bytes, str]:
    if fmt is SerializationFormat.JSON:
        return json_format.MessageToJson(msg, preserving_proto_field_name=True, indent=JSON_INDENT,
                                         sort_keys=True)
    return msg.SerializeToString(deterministic=True)


def _from_wire(message_class, data: Union[bytes, str], fmt: SerializationFormat):
    msg = message_class()
    name = message_class.DESCRIPTOR.full_name
    if fmt is SerializationFormat.JSON:
        try:
            json_format.Parse(data, msg)
        except json_format.ParseError as e:
            raise MalformedEncodingError(f"invalid {name} JSON: {e}") from e
    else:
        try:
            msg.ParseFromString(data)
        except DecodeError as e:
            raise MalformedEncodingError(f"invalid {name} bytes: {e}") from e
    return msg


def serialize_instantiation(instantiation: StencilInstantiation,
                            fmt: SerializationFormat = _DEFAULT_FORMAT) -> Union[bytes, str]:
    data = _to_wire(_build(instantiation_to_proto, instantiation, "stencil instantiation"), fmt)
    logger.debug(f"serialized stencil instantiation '{instantiation.metadata.stencil_name}' "
                 f"({fmt.value}, {len(data)} bytes)")
    return data


def deserialize_instantiation(data: Union[bytes, str],
                              fmt: SerializationFormat = _DEFAULT_FORMAT) -> StencilInstantiation:
    msg = _from_wire(schema.iir.StencilInstantiation, data, fmt)
    instantiation = proto_to_instantiation(msg)
    logger.debug(f"deserialized stencil instantiation '{instantiation.metadata.stencil_name}' "
                 f"({fmt.value}, {len(data)} bytes)")
    return instantiation


def serialize_hir(hir: HIR, fmt: SerializationFormat = _DEFAULT_FORMAT) -> Union[bytes, str]:
    data = _to_wire(_build(hir_to_proto, hir, "HIR"), fmt)
    logger.debug(f"serialized HIR of '{hir.filename}' ({fmt.value}, {len(data)} bytes)")
    return data


def deserialize_hir(data: Union[bytes, str], fmt: SerializationFormat = _DEFAULT_FORMAT) -> HIR:
    return proto_to_hir(_from_wire(schema.statements.HIR, data, fmt))


def encode(instantiation: StencilInstantiation) -> bytes:
    return serialize_instantiation(instantiation, SerializationFormat.BYTE)


def decode(data: bytes) -> StencilInstantiation:
    return deserialize_instantiation(data, SerializationFormat.BYTE)


def encode_hir(hir: HIR) -> bytes:
    return serialize_hir(hir, SerializationFormat.BYTE)


def decode_hir(data: bytes) -> HIR:
    return deserialize_hir(data, SerializationFormat.BYTE)


def _write(path: Union[str, Path], data: Union[bytes, str]) -> None:
    if isinstance(data, bytes):
        write_binary_file(path, data)
    else:
        write_text_file(path, data)


def _read(path: Union[str, Path], fmt: SerializationFormat) -> Union[bytes, str]:
    if fmt is SerializationFormat.JSON:
        return read_text_file(path)
    return read_binary_file(path)


def save(instantiation: StencilInstantiation, path: Union[str, Path],
         fmt: SerializationFormat = _DEFAULT_FORMAT) -> None:
    _write(path, serialize_instantiation(instantiation, fmt))


def load(path: Union[str, Path], fmt: SerializationFormat = _DEFAULT_FORMAT) -> StencilInstantiation:
    return deserialize_instantiation(_read(path, fmt), fmt)


def save_hir(hir: HIR, path: Union[str, Path], fmt: SerializationFormat = _DEFAULT_FORMAT) -> None:
    _write(path, serialize_hir(hir, fmt))


def load_hir(path: Union[str, Path], fmt: SerializationFormat = _DEFAULT_FORMAT) -> HIR:
    return deserialize_hir(_read(path, fmt), fmt)


__all__ = [
    "SerializationFormat",
    "encode", "decode", "encode_hir", "decode_hir",
    "serialize_instantiation", "deserialize_instantiation", "serialize_hir", "deserialize_hir",
    "save", "load", "save_hir", "load_hir",
    "instantiation_to_proto", "proto_to_instantiation", "hir_to_proto", "proto_to_hir",
    "ASTEncoder", "ProtoDecoder", "schema",
    "dump_ast", "dump_iir", "dump_instantiation",
]
