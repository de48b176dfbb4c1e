"""
SCIP index decoding.

Only the subset of the SCIP schema the analysis reads is declared; protobuf
skips the remaining fields on parse. Field numbers match scip.proto. Enum
fields (symbol kind) are declared as int32, which is wire compatible and
keeps unknown kinds from newer indexers intact.

The message classes are built at import time from a ``FileDescriptorProto``
so no generated ``_pb2`` module is needed.
"""
from __future__ import annotations

import enum
from pathlib import Path
from typing import Dict, Sequence, Tuple

from google.protobuf import descriptor_pb2, descriptor_pool, message_factory
from google.protobuf.message import DecodeError as ProtobufDecodeError

from .errors import DecodeError, IoError
from .records import SourceSpan

SCIP_SUFFIX = ".scip"

_F = descriptor_pb2.FieldDescriptorProto

# (name, number, type, label, message type name)
_SCHEMA: Dict[str, Sequence[Tuple[str, int, int, int, str]]] = {
    "ToolInfo": (
        ("name", 1, _F.TYPE_STRING, _F.LABEL_OPTIONAL, ""),
        ("version", 2, _F.TYPE_STRING, _F.LABEL_OPTIONAL, ""),
        ("arguments", 3, _F.TYPE_STRING, _F.LABEL_REPEATED, ""),
    ),
    "Metadata": (
        ("version", 1, _F.TYPE_INT32, _F.LABEL_OPTIONAL, ""),
        ("tool_info", 2, _F.TYPE_MESSAGE, _F.LABEL_OPTIONAL, "ToolInfo"),
        ("project_root", 3, _F.TYPE_STRING, _F.LABEL_OPTIONAL, ""),
        ("text_document_encoding", 4, _F.TYPE_INT32, _F.LABEL_OPTIONAL, ""),
    ),
    "SymbolInformation": (
        ("symbol", 1, _F.TYPE_STRING, _F.LABEL_OPTIONAL, ""),
        ("documentation", 3, _F.TYPE_STRING, _F.LABEL_REPEATED, ""),
        ("kind", 5, _F.TYPE_INT32, _F.LABEL_OPTIONAL, ""),
        ("display_name", 6, _F.TYPE_STRING, _F.LABEL_OPTIONAL, ""),
        ("enclosing_symbol", 8, _F.TYPE_STRING, _F.LABEL_OPTIONAL, ""),
    ),
    "Occurrence": (
        ("range", 1, _F.TYPE_INT32, _F.LABEL_REPEATED, ""),
        ("symbol", 2, _F.TYPE_STRING, _F.LABEL_OPTIONAL, ""),
        ("symbol_roles", 3, _F.TYPE_INT32, _F.LABEL_OPTIONAL, ""),
        ("syntax_kind", 5, _F.TYPE_INT32, _F.LABEL_OPTIONAL, ""),
        ("enclosing_range", 7, _F.TYPE_INT32, _F.LABEL_REPEATED, ""),
    ),
    "Document": (
        ("relative_path", 1, _F.TYPE_STRING, _F.LABEL_OPTIONAL, ""),
        ("occurrences", 2, _F.TYPE_MESSAGE, _F.LABEL_REPEATED, "Occurrence"),
        ("symbols", 3, _F.TYPE_MESSAGE, _F.LABEL_REPEATED, "SymbolInformation"),
        ("language", 4, _F.TYPE_STRING, _F.LABEL_OPTIONAL, ""),
    ),
    "Index": (
        ("metadata", 1, _F.TYPE_MESSAGE, _F.LABEL_OPTIONAL, "Metadata"),
        ("documents", 2, _F.TYPE_MESSAGE, _F.LABEL_REPEATED, "Document"),
        ("external_symbols", 3, _F.TYPE_MESSAGE, _F.LABEL_REPEATED, "SymbolInformation"),
    ),
}


def _file_descriptor() -> descriptor_pb2.FileDescriptorProto:
    fdp = descriptor_pb2.FileDescriptorProto(
        name="deadsym/scip_subset.proto", package="scip", syntax="proto3"
    )
    for message_name, fields in _SCHEMA.items():
        msg = fdp.message_type.add(name=message_name)
        for name, number, ftype, label, type_name in fields:
            field = msg.field.add(name=name, number=number, type=ftype, label=label)
            if type_name:
                field.type_name = f".scip.{type_name}"
    return fdp


_pool = descriptor_pool.DescriptorPool()
_pool.AddSerializedFile(_file_descriptor().SerializeToString())


def _message_class(name: str):
    return message_factory.GetMessageClass(_pool.FindMessageTypeByName(f"scip.{name}"))


Index = _message_class("Index")
Document = _message_class("Document")
Occurrence = _message_class("Occurrence")
SymbolInformation = _message_class("SymbolInformation")
Metadata = _message_class("Metadata")
ToolInfo = _message_class("ToolInfo")


class SymbolRole(enum.IntFlag):
    Definition = 0x1
    Import = 0x2
    WriteAccess = 0x4
    ReadAccess = 0x8
    Generated = 0x10
    Test = 0x20
    ForwardDefinition = 0x40


# SymbolInformation.Kind values from scip.proto
SYMBOL_KINDS: Dict[int, str] = {
    1: "Array",
    2: "Assertion",
    3: "AssociatedType",
    4: "Attribute",
    5: "Axiom",
    6: "Boolean",
    7: "Class",
    8: "Constant",
    9: "Constructor",
    10: "DataFamily",
    11: "Enum",
    12: "EnumMember",
    13: "Event",
    14: "Fact",
    15: "Field",
    16: "File",
    17: "Function",
    18: "Getter",
    19: "Grammar",
    20: "Instance",
    21: "Interface",
    22: "Key",
    23: "Lang",
    24: "Lemma",
    25: "Macro",
    26: "Method",
    27: "MethodReceiver",
    28: "Message",
    29: "Module",
    30: "Namespace",
    31: "Null",
    32: "Number",
    33: "Object",
    34: "Operator",
    35: "Package",
    36: "PackageObject",
    37: "Parameter",
    38: "ParameterLabel",
    39: "Pattern",
    40: "Predicate",
    41: "Property",
    42: "Protocol",
    43: "Quasiquoter",
    44: "SelfParameter",
    45: "Setter",
    46: "Signature",
    47: "Subscript",
    48: "String",
    49: "Struct",
    50: "Tactic",
    51: "Theorem",
    52: "Trait",
    53: "Type",
    54: "TypeAlias",
    55: "TypeClass",
    56: "TypeFamily",
    57: "TypeParameter",
    58: "Union",
    59: "Value",
    60: "Variable",
    62: "Contract",
    63: "Error",
    64: "Library",
    65: "Modifier",
    66: "AbstractMethod",
    67: "MethodSpecification",
    68: "ProtocolMethod",
    69: "PureVirtualMethod",
    70: "TraitMethod",
    71: "TypeClassMethod",
    72: "Accessor",
    73: "Delegate",
    74: "MethodAlias",
    75: "SingletonClass",
    76: "SingletonMethod",
    77: "StaticDataMember",
    78: "StaticEvent",
    79: "StaticField",
    80: "StaticMethod",
    81: "StaticProperty",
    82: "StaticVariable",
    83: "ThisParameter",
    84: "Extension",
    85: "Mixin",
    86: "Concept",
}
UNKNOWN_KIND = "<unknown>"


def kind_name(kind: int) -> str:
    if not kind:
        return UNKNOWN_KIND
    return SYMBOL_KINDS.get(kind, f"Kind({kind})")


def occurrence_span(relative_path: str, rng: Sequence[int]) -> SourceSpan:
    """Convert a 0-based SCIP range to a 1-based ``SourceSpan``.

    Ranges have four elements ``[startLine, startCol, endLine, endCol]`` or
    three ``[line, startCol, endCol]`` when the occurrence spans one line.
    """
    if len(rng) == 4:
        start_line, start_col, end_line, end_col = rng
    elif len(rng) == 3:
        start_line, start_col, end_col = rng
        end_line = start_line
    else:
        raise DecodeError(f"{relative_path}: occurrence range has {len(rng)} elements")
    return SourceSpan(
        file_name=relative_path,
        line_start=start_line + 1,
        column_start=start_col + 1,
        line_end=end_line + 1,
        column_end=end_col + 1,
    )


def parse_index(payload: bytes, source: str = "<memory>"):
    index = Index()
    try:
        index.ParseFromString(payload)
    except ProtobufDecodeError as exc:
        raise DecodeError(f"{source}: invalid SCIP index: {exc}") from exc
    return index


def read_index(path: Path):
    try:
        payload = Path(path).read_bytes()
    except OSError as exc:
        raise IoError(f"cannot read {path}: {exc}") from exc
    return parse_index(payload, source=str(path))
