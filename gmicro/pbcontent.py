"""Proto source split into blocks that can be edited and joined back."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Optional

_COMMENT_LEADING = "\t"


class NodeType(enum.IntEnum):
    UNDEFINED = 0
    RPC = 1
    MSG = 2
    ENUM = 3


@dataclass(eq=False)
class PbContentNode:
    """One block of proto source: an rpc, a message, an enum or other text."""

    kind: NodeType = NodeType.UNDEFINED
    buf: str = ""
    name: str = ""
    pos: int = 0
    lines: list[str] = field(default_factory=list)

    def to_lines(self) -> None:
        """Split ``buf`` into ``lines``."""
        self.lines = self.buf.split("\n")

    def pack(self) -> None:
        """Join ``lines`` back into ``buf``."""
        self.buf = "\n".join(self.lines)

    def find_comment_cmd(self, cmd: str) -> int:
        """Index of the leading comment line holding ``@cmd``, or -1."""
        if not cmd.startswith("@"):
            cmd = "@" + cmd
        for index, line in enumerate(self.lines):
            text = line.strip()
            if not text.startswith("//"):
                break
            if text[2:].strip().startswith(cmd):
                return index
        return -1

    def add_error(self, err: str, comment: str) -> bool:
        """Add ``err`` under the ``@error`` comment; False if it is already listed."""
        err_at = self.find_comment_cmd("@error")
        cmd_line = f"{_COMMENT_LEADING}// @error:"
        err_line = f"{_COMMENT_LEADING}//  {err}"
        if comment:
            err_line = f"{err_line} {comment}"
        if err_at < 0:
            self.lines = [cmd_line, err_line, *self.lines]
        else:
            for line in self.lines[err_at + 1 :]:
                text = line.strip()
                marker = text.rfind("//")
                if marker == -1:
                    break
                if text[marker + 2 :].strip().split(" ")[0] == err:
                    return False
            self.lines.insert(err_at + 1, err_line)
        self.pack()
        return True

    def remove_error(self, err_codes: list[str]) -> None:
        """Drop the error lines under ``@error`` whose code is not in ``err_codes``."""
        if not err_codes:
            return
        keep = set(err_codes)
        err_at = self.find_comment_cmd("@error")
        if err_at < 0:
            return
        drop = set()
        for index, line in enumerate(self.lines[err_at + 1 :], start=err_at + 1):
            text = line.strip()
            if text.rfind("//") != 0:
                break
            text = text[2:].strip()
            if text.startswith("@"):
                break
            if text.split(" ")[0] not in keep:
                drop.add(index)
        if drop:
            self.lines = [line for index, line in enumerate(self.lines) if index not in drop]
        self.pack()


@dataclass(eq=False)
class PbContent:
    """A proto file as an ordered list of blocks."""

    nodes: list[PbContentNode] = field(default_factory=list)

    def find_rpc_node(self, name: str) -> Optional[PbContentNode]:
        return next(
            (n for n in self.nodes if n.kind == NodeType.RPC and n.name == name), None
        )

    def append_rpc_node_if_not_existed(self, name: str, buf: str) -> None:
        """Insert an rpc block after the last rpc, unless one named ``name`` exists."""
        insert_index = 0
        for index, node in enumerate(self.nodes):
            if node.kind == NodeType.RPC:
                if node.name == name:
                    return
                insert_index = index
        if insert_index == 0:
            return
        node = PbContentNode(NodeType.RPC, buf, name)
        node.to_lines()
        self.nodes.insert(insert_index + 1, node)

    def append_model_node_if_not_existed(self, name: str, buf: str) -> None:
        """Insert a message block after the last ``Model`` message, unless ``name`` exists."""
        insert_index = 0
        for index, node in enumerate(self.nodes):
            if node.kind != NodeType.MSG:
                continue
            if node.name == name:
                return
            if node.name.startswith("Model"):
                insert_index = index
                if node.buf.endswith("{\n") or node.buf.endswith("{\n\n"):
                    insert_index += 1
        if insert_index == 0:
            return
        node = PbContentNode(NodeType.MSG, buf + "\n", name)
        node.to_lines()
        self.nodes.insert(insert_index + 1, node)

    def append_msg_node_if_not_existed(self, name: str, buf: str) -> None:
        """Append a message block at the end, unless one named ``name`` exists."""
        if any(n.kind == NodeType.MSG and n.name == name for n in self.nodes):
            return
        node = PbContentNode(NodeType.MSG, buf, name)
        node.to_lines()
        if self.nodes:
            last = self.nodes[-1]
            if last.lines:
                if not last.buf.endswith("\n"):
                    last.buf += "\n\n"
                elif not last.buf.endswith("\n\n"):
                    last.buf += "\n"
                last.to_lines()
        self.nodes.append(node)

    def to_buf(self) -> str:
        """Join every block back into source text, with four spaces made tabs."""
        for node in self.nodes:
            node.pack()
        return "".join(node.buf for node in self.nodes).replace("    ", "\t")