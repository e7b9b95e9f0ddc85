"""A parsed proto file with helpers for reading and editing its source text."""

from __future__ import annotations

import logging
import os
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Optional, Union

from gmicro.pbcontent import NodeType, PbContent, PbContentNode
from gmicro.protoparse import (
    Enum,
    EnumField,
    MapField,
    Message,
    NormalField,
    Option,
    ProtoFile,
    Rpc,
    Service,
    parse_proto,
)

logger = logging.getLogger(__name__)

_MSG_TEMPLATE = "\nmessage {} {{\n}}\n"


@dataclass(eq=False)
class RpcNode:
    """An rpc together with the settings read from its options."""

    rpc: Rpc
    api_method: str = "POST"
    auth_type: str = "user"
    ignore_svr_rpc: bool = False
    options: dict[str, str] = field(default_factory=dict)


@dataclass(eq=False)
class MsgFields:
    normal_fields: list[NormalField] = field(default_factory=list)
    map_fields: list[MapField] = field(default_factory=list)


def is_model(msg: Message) -> bool:
    """True if the message describes a stored model."""
    return msg.name.startswith("Model")


def get_msg_fields(msg: Message) -> MsgFields:
    """The fields declared directly in ``msg``."""
    return MsgFields(
        normal_fields=[e for e in msg.elements if isinstance(e, NormalField)],
        map_fields=[e for e in msg.elements if isinstance(e, MapField)],
    )


def get_enum_fields(enum: Enum) -> list[EnumField]:
    """The values declared in ``enum``."""
    return [e for e in enum.elements if isinstance(e, EnumField)]


def _full_name(element: Union[Message, Enum]) -> str:
    names = [element.name]
    parent = element.parent
    while parent is not None:
        names.append(parent.name)
        parent = parent.parent
    return ".".join(reversed(names))


def _start(element: Union[Rpc, Message, Enum]) -> int:
    return element.comment.offset if element.comment is not None else element.offset


def _rpc_node(rpc: Rpc) -> RpcNode:
    node = RpcNode(rpc=rpc)
    for opt in rpc.elements:
        if not isinstance(opt, Option):
            continue
        if "lb.ApiMethod" in opt.name and opt.source:
            node.api_method = opt.source
        if "lb.AuthType" in opt.name and opt.source:
            node.auth_type = opt.source
        if "lb.IgnoreSvrRpc" in opt.name:
            node.ignore_svr_rpc = True
        node.options[opt.name] = opt.source
    return node


def _line_spans(content: str, start: int) -> Iterable[tuple[int, int]]:
    """Yield ``(begin, end)`` of each line from ``start``, ``end`` excluding the newline."""
    begin = start
    while begin < len(content):
        end = content.find("\n", begin)
        if end < 0:
            end = len(content)
        yield begin, end
        begin = end + 1


@dataclass(eq=False)
class PbContext:
    """What the code generators need to know about one proto file."""

    enum_list: list[Enum] = field(default_factory=list)
    msg_list: list[Message] = field(default_factory=list)
    rpc_list: list[RpcNode] = field(default_factory=list)
    service_name: str = ""
    go_package_name: str = ""
    import_list: list[str] = field(default_factory=list)
    package_name: str = ""
    content: str = ""
    proto_file_path: str = ""
    git_path: str = ""
    include_paths: list[str] = field(default_factory=list)
    rpc_map: dict[str, RpcNode] = field(default_factory=dict)
    _msg_map: dict[str, Message] = field(default_factory=dict, repr=False)
    _enum_map: dict[str, Enum] = field(default_factory=dict, repr=False)

    @classmethod
    def _from_proto(cls, proto: ProtoFile, content: str) -> PbContext:
        ctx = cls(content=content, package_name=proto.package, import_list=list(proto.imports))
        for element in proto.walk():
            if isinstance(element, Enum):
                ctx.enum_list.append(element)
            elif isinstance(element, Message):
                ctx.msg_list.append(element)
            elif isinstance(element, Rpc):
                ctx.rpc_list.append(_rpc_node(element))
            elif isinstance(element, Service):
                ctx.service_name = element.name
            elif isinstance(element, Option) and element.name == "go_package":
                ctx.go_package_name = element.source
        ctx._msg_map = {_full_name(m): m for m in ctx.msg_list}
        ctx._enum_map = {_full_name(e): e for e in ctx.enum_list}
        ctx.rpc_map = {n.rpc.name: n for n in ctx.rpc_list}
        return ctx

    # lookups -------------------------------------------------------------

    def get_rpc(self, name: str) -> Optional[RpcNode]:
        return self.rpc_map.get(name)

    def get_msg(self, name: str) -> Optional[Message]:
        """The message with the dotted full name ``name``."""
        return self._msg_map.get(name)

    def get_enum(self, name: str) -> Optional[Enum]:
        """The enum with the dotted full name ``name``."""
        return self._enum_map.get(name)

    # splitting -----------------------------------------------------------

    def split_content(self) -> PbContent:
        """Split the source into blocks, one per rpc, message and enum."""
        typed = [
            PbContentNode(kind=NodeType.RPC, name=n.rpc.name, pos=_start(n.rpc))
            for n in self.rpc_list
        ]
        typed += [
            PbContentNode(kind=NodeType.MSG, name=m.name, pos=_start(m)) for m in self.msg_list
        ]
        typed += [
            PbContentNode(kind=NodeType.ENUM, name=e.name, pos=_start(e)) for e in self.enum_list
        ]
        typed.sort(key=lambda n: n.pos)

        content = self.content
        nodes: list[PbContentNode] = []
        if typed:
            if typed[0].pos > 0:
                nodes.append(PbContentNode(buf=content[: typed[0].pos]))
            for node, nxt in zip(typed, typed[1:]):
                node.buf = content[node.pos : nxt.pos]
                nodes.append(node)
            last = typed[-1]
            if last.pos < len(content):
                nodes.append(PbContentNode(buf=content[last.pos :]))
        else:
            nodes.append(PbContentNode(buf=content))

        # Move partial trailing lines into the following block.
        for node, nxt in zip(nodes, nodes[1:]):
            if not node.buf or node.buf.endswith("\n"):
                continue
            cut = node.buf.rfind("\n")
            if cut > 0:
                cut += 1
                nxt.buf = node.buf[cut:] + nxt.buf
                node.buf = node.buf[:cut]

        result: list[PbContentNode] = []
        for index, node in enumerate(nodes):
            next_kind = nodes[index + 1].kind if index + 1 < len(nodes) else NodeType.UNDEFINED
            if node.kind == NodeType.RPC and node.kind != next_kind:
                node.to_lines()
                if len(node.lines) < 3:
                    raise ValueError(f"rpc block {node.name} is too short to split")
                tail = PbContentNode(lines=["", *node.lines[-3:]])
                node.lines = node.lines[:-3]
                node.pack()
                tail.pack()
                result.extend((node, tail))
            else:
                result.append(node)

        for node in result:
            node.to_lines()
        return PbContent(nodes=result)

    # editing -------------------------------------------------------------

    def append_err_code(self, names: Iterable[str], errcode_beg: int = 0) -> int:
        """Add the new ``names`` to the ``ErrCode`` enum; returns how many were added."""
        enum = self.get_enum("ErrCode")
        if enum is None:
            logger.error("err is not found ErrCode enum")
            raise LookupError("not found ErrCode enum")

        fields = get_enum_fields(enum)
        max_code = max((f.integer for f in fields if f.integer > 0), default=0)
        if max_code == 0:
            if errcode_beg == 0:
                logger.error("err is not found any err code")
                raise ValueError("not found any err code")
            max_code = errcode_beg

        pos = next(
            (b for b, e in _line_spans(self.content, enum.offset) if self.content[b:e].strip() == "}"),
            -1,
        )

        existing = {f.name for f in fields}
        added = []
        for name in names:
            if name in existing:
                logger.warning("%s existed, skip", name)
                continue
            max_code += 1
            added.append(f"\t{name} = {max_code};\n")

        if not added:
            return 0
        if pos <= 0:
            logger.error("err is invalid enum block, missed }")
            raise ValueError("invalid enum block, missed }")
        self.content = self.content[:pos] + "".join(added) + self.content[pos:]
        return len(added)

    def append_block(self, block: str) -> None:
        """Append ``block`` to the source, separated by a blank line."""
        sep = "" if self.content.endswith("\n") else "\n"
        if not block.startswith("\n"):
            sep += "\n"
        self.content = f"{self.content}{sep}{block}"

    def append_empty_msg_if_not_existed(self, name: str) -> None:
        if name not in self._msg_map:
            self.append_block(_MSG_TEMPLATE.format(name))

    def append_msg_if_not_existed(self, name: str, block: str) -> None:
        if name not in self._msg_map:
            self.append_block(block)
            self._msg_map[name] = Message(name)

    def append_enum_if_not_existed(self, name: str, block: str) -> None:
        if name not in self._enum_map:
            self.append_block(block)

    def insert_rpc_block(self, block: str) -> None:
        """Insert an rpc declaration after the last rpc, or into an empty service."""
        content = self.content
        if self.rpc_list:
            last = self.rpc_list[-1]
            pos = next(
                (
                    e
                    for b, e in _line_spans(content, last.rpc.offset)
                    if content[b:e].strip() in ("};", "}")
                ),
                -1,
            )
            if pos < 0:
                raise ValueError("invalid proto format, not found rpc block ending }")
            self.content = content[:pos] + block + content[pos:]
            return

        start = content.find("service ")
        if start < 0:
            raise ValueError("not found `service ` block")
        pos = len(content)
        for b, e in _line_spans(content, start):
            if content[b:e].strip() == "}":
                pos = b
                break
        line = f"\t{block.strip()}\n"
        self.content = content[:pos] + line + content[pos:]

    def write_content_and_reparse(self) -> PbContext:
        """Save the edited source to its file and parse it again."""
        with open(self.proto_file_path, "w", encoding="utf-8") as fh:
            fh.write(self.content)
        return parse_pb(self.proto_file_path, self.include_paths)


def search_import_pb(imp_path: str, include_paths: Iterable[str] = ()) -> Optional[str]:
    """Find ``imp_path`` as given or under one of ``include_paths``."""
    if os.path.exists(imp_path):
        return imp_path
    for inc in include_paths:
        candidate = f"{inc}{os.sep}{imp_path}"
        if os.path.exists(candidate):
            return candidate
    return None


def parse_pb(proto_file: str, include_paths: Iterable[str] = ()) -> PbContext:
    """Locate and parse a proto file."""
    paths = list(include_paths)
    found = search_import_pb(proto_file, paths)
    if found is None:
        logger.error("not found proto file %s", proto_file)
        raise FileNotFoundError(f"not found proto file {proto_file}")
    with open(found, encoding="utf-8") as fh:
        content = fh.read()
    ctx = PbContext._from_proto(parse_proto(content), content)
    ctx.proto_file_path = found
    ctx.include_paths = paths
    return ctx