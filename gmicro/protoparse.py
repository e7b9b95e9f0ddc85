"""A parser for the subset of Protocol Buffers source used by the code generators.

Every element records the character offset and line where it starts, and the
comment that directly precedes it, so that callers can edit the source text.
"""

from __future__ import annotations

import bisect
import re
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from typing import NamedTuple, Optional, Union


class ProtoSyntaxError(ValueError):
    """Raised when the source is not valid protocol buffer syntax."""

    def __init__(self, message: str, line: int = 0) -> None:
        super().__init__(f"line {line}: {message}" if line else message)
        self.line = line


@dataclass(eq=False)
class Comment:
    """One or more adjacent comment lines, without their ``//`` markers."""

    lines: list[str] = field(default_factory=list)
    offset: int = 0
    line: int = 0
    c_style: bool = False

    def message(self) -> str:
        """The first line, or an empty string."""
        return self.lines[0] if self.lines else ""


@dataclass(eq=False)
class Option:
    name: str
    source: str = ""
    is_string: bool = False
    comment: Optional[Comment] = None
    inline_comment: Optional[Comment] = None
    offset: int = 0
    line: int = 0


@dataclass(eq=False)
class NormalField:
    name: str
    type: str
    sequence: int = 0
    repeated: bool = False
    optional: bool = False
    required: bool = False
    options: list[Option] = field(default_factory=list)
    comment: Optional[Comment] = None
    inline_comment: Optional[Comment] = None
    offset: int = 0
    line: int = 0


@dataclass(eq=False)
class MapField:
    name: str
    key_type: str
    type: str
    sequence: int = 0
    options: list[Option] = field(default_factory=list)
    comment: Optional[Comment] = None
    inline_comment: Optional[Comment] = None
    offset: int = 0
    line: int = 0


@dataclass(eq=False)
class EnumField:
    name: str
    integer: int = 0
    options: list[Option] = field(default_factory=list)
    comment: Optional[Comment] = None
    inline_comment: Optional[Comment] = None
    offset: int = 0
    line: int = 0


@dataclass(eq=False)
class Enum:
    name: str
    elements: list[Union[EnumField, Option]] = field(default_factory=list)
    comment: Optional[Comment] = None
    inline_comment: Optional[Comment] = None
    offset: int = 0
    line: int = 0
    parent: Optional[Message] = field(default=None, repr=False)


@dataclass(eq=False)
class Message:
    name: str
    elements: list = field(default_factory=list)
    comment: Optional[Comment] = None
    inline_comment: Optional[Comment] = None
    offset: int = 0
    line: int = 0
    parent: Optional[Message] = field(default=None, repr=False)


@dataclass(eq=False)
class Rpc:
    name: str
    request_type: str = ""
    returns_type: str = ""
    streams_request: bool = False
    streams_returns: bool = False
    elements: list[Option] = field(default_factory=list)
    comment: Optional[Comment] = None
    inline_comment: Optional[Comment] = None
    offset: int = 0
    line: int = 0


@dataclass(eq=False)
class Service:
    name: str
    elements: list[Union[Rpc, Option]] = field(default_factory=list)
    comment: Optional[Comment] = None
    inline_comment: Optional[Comment] = None
    offset: int = 0
    line: int = 0


_CONTAINERS = (Message, Enum, Service, Rpc)


def _walk(elements: Iterable) -> Iterator:
    for element in elements:
        yield element
        if isinstance(element, _CONTAINERS):
            yield from _walk(element.elements)


@dataclass(eq=False)
class ProtoFile:
    """A parsed ``.proto`` file."""

    elements: list = field(default_factory=list)
    syntax: str = ""
    package: str = ""
    imports: list[str] = field(default_factory=list)

    def walk(self) -> Iterator:
        """Every element, depth first, each before its children."""
        return _walk(self.elements)


class _Token(NamedTuple):
    kind: str
    text: str
    offset: int
    line: int
    end_line: int


_COMMENT_KINDS = ("line_comment", "block_comment")

_TOKEN_RE = re.compile(
    r"""
     (?P<ws>\s+)
    |(?P<line_comment>//[^\n]*)
    |(?P<block_comment>/\*.*?\*/)
    |(?P<string>"(?:[^"\\\n]|\\.)*"|'(?:[^'\\\n]|\\.)*')
    |(?P<number>[-+]?(?:0[xX][0-9a-fA-F]+|\d+(?:\.\d*)?(?:[eE][-+]?\d+)?|\.\d+(?:[eE][-+]?\d+)?))
    |(?P<ident>\.?[A-Za-z_][A-Za-z0-9_]*(?:\.[A-Za-z_][A-Za-z0-9_]*)*)
    |(?P<symbol>[{}()\[\];=,<>:])
    """,
    re.S | re.X,
)

_ESCAPES = {"n": "\n", "t": "\t", "r": "\r", "0": "\0", "\\": "\\", '"': '"', "'": "'"}


def _tokenize(text: str) -> list[_Token]:
    newlines = [i for i, ch in enumerate(text) if ch == "\n"]

    def line_of(offset: int) -> int:
        return bisect.bisect_left(newlines, offset) + 1

    tokens = []
    pos = 0
    while pos < len(text):
        match = _TOKEN_RE.match(text, pos)
        if match is None:
            raise ProtoSyntaxError(f"unexpected character {text[pos]!r}", line_of(pos))
        kind = match.lastgroup
        if kind != "ws":
            tokens.append(
                _Token(kind, match.group(), pos, line_of(pos), line_of(match.end() - 1))
            )
        pos = match.end()
    return tokens


def _unquote(text: str) -> str:
    return re.sub(
        r"\\(.)", lambda m: _ESCAPES.get(m.group(1), m.group(1)), text[1:-1], flags=re.S
    )


def _comment_lines(tok: _Token) -> list[str]:
    if tok.kind == "line_comment":
        return [tok.text[2:]]
    return tok.text[2:-2].split("\n")


def _parse_int(tok: _Token) -> int:
    text = tok.text
    sign = -1 if text.startswith("-") else 1
    body = text.lstrip("+-")
    try:
        if body[:2].lower() == "0x":
            value = int(body[2:], 16)
        elif len(body) > 1 and body.startswith("0"):
            value = int(body, 8)
        else:
            value = int(body)
    except ValueError:
        raise ProtoSyntaxError(f"invalid integer {text!r}", tok.line) from None
    return sign * value


class _Parser:
    def __init__(self, text: str) -> None:
        self.text = text
        self.tokens = _tokenize(text)
        self.pos = 0
        self.pending: Optional[Comment] = None
        self.pending_end = 0

    # token stream --------------------------------------------------------

    def _collect_comments(self) -> None:
        while self.pos < len(self.tokens) and self.tokens[self.pos].kind in _COMMENT_KINDS:
            tok = self.tokens[self.pos]
            self.pos += 1
            lines = _comment_lines(tok)
            if (
                self.pending is not None
                and tok.kind == "line_comment"
                and not self.pending.c_style
                and tok.line == self.pending_end + 1
            ):
                self.pending.lines.extend(lines)
            else:
                self.pending = Comment(lines, tok.offset, tok.line, tok.kind == "block_comment")
            self.pending_end = tok.end_line

    def peek(self, ahead: int = 0) -> Optional[_Token]:
        self._collect_comments()
        index = self.pos
        while index < len(self.tokens):
            tok = self.tokens[index]
            index += 1
            if tok.kind in _COMMENT_KINDS:
                continue
            if ahead == 0:
                return tok
            ahead -= 1
        return None

    def next(self) -> _Token:
        tok = self.peek()
        if tok is None:
            last = self.tokens[-1].end_line if self.tokens else 0
            raise ProtoSyntaxError("unexpected end of input", last)
        self.pos += 1
        return tok

    def expect(self, text: str) -> _Token:
        tok = self.next()
        if tok.text != text:
            raise ProtoSyntaxError(f"expected {text!r}, found {tok.text!r}", tok.line)
        return tok

    def expect_kind(self, kind: str) -> _Token:
        tok = self.next()
        if tok.kind != kind:
            raise ProtoSyntaxError(f"expected {kind}, found {tok.text!r}", tok.line)
        return tok

    def expect_string(self) -> str:
        return _unquote(self.expect_kind("string").text)

    def leading_comment(self, tok: _Token) -> Optional[Comment]:
        comment, self.pending = self.pending, None
        if comment is not None and tok.line - 1 <= self.pending_end <= tok.line:
            return comment
        return None

    def inline_comment(self, line: int) -> Optional[Comment]:
        if self.pos < len(self.tokens):
            tok = self.tokens[self.pos]
            if tok.kind in _COMMENT_KINDS and tok.line == line:
                self.pos += 1
                return Comment(_comment_lines(tok), tok.offset, tok.line, tok.kind == "block_comment")
        return None

    def skip_statement(self) -> None:
        depth = 0
        while True:
            tok = self.next()
            if tok.text == ";" and depth == 0:
                return
            if tok.text == "{":
                depth += 1
            elif tok.text == "}":
                depth -= 1
                if depth <= 0:
                    return

    # grammar -------------------------------------------------------------

    def parse(self) -> ProtoFile:
        proto = ProtoFile()
        while (tok := self.peek()) is not None:
            comment = self.leading_comment(tok)
            keyword = tok.text
            if keyword == ";":
                self.next()
            elif keyword in ("syntax", "edition"):
                self.next()
                self.expect("=")
                proto.syntax = self.expect_string()
                self.expect(";")
            elif keyword == "package":
                self.next()
                proto.package = self.expect_kind("ident").text
                self.expect(";")
            elif keyword == "import":
                self.next()
                modifier = self.peek()
                if modifier is not None and modifier.text in ("weak", "public"):
                    self.next()
                proto.imports.append(self.expect_string())
                self.expect(";")
            elif keyword == "option":
                self.next()
                proto.elements.append(self.parse_option(tok, comment))
            elif keyword == "message":
                self.next()
                proto.elements.append(self.parse_message(tok, comment, None))
            elif keyword == "enum":
                self.next()
                proto.elements.append(self.parse_enum(tok, comment, None))
            elif keyword == "service":
                self.next()
                proto.elements.append(self.parse_service(tok, comment))
            elif keyword == "extend":
                self.skip_statement()
            else:
                raise ProtoSyntaxError(f"unexpected {keyword!r}", tok.line)
        return proto

    def parse_option_name(self) -> str:
        parts = []
        while True:
            tok = self.peek()
            if tok is None or tok.text in ("=",):
                break
            if tok.text == "(":
                self.next()
                inner = self.expect_kind("ident").text
                self.expect(")")
                parts.append(f"({inner})")
            elif tok.kind == "ident":
                self.next()
                parts.append(tok.text)
            else:
                raise ProtoSyntaxError(f"invalid option name at {tok.text!r}", tok.line)
        if not parts:
            raise ProtoSyntaxError("missing option name", tok.line if tok else 0)
        return "".join(parts)

    def parse_constant(self) -> tuple[str, bool]:
        tok = self.peek()
        if tok is None:
            raise ProtoSyntaxError("missing constant", 0)
        if tok.text == "{":
            depth = 0
            while True:
                part = self.next()
                if part.text == "{":
                    depth += 1
                elif part.text == "}":
                    depth -= 1
                    if depth == 0:
                        return self.text[tok.offset : part.offset + 1], False
        if tok.kind == "string":
            pieces = []
            while (part := self.peek()) is not None and part.kind == "string":
                pieces.append(_unquote(self.next().text))
            return "".join(pieces), True
        if tok.kind in ("ident", "number"):
            return self.next().text, False
        raise ProtoSyntaxError(f"invalid constant {tok.text!r}", tok.line)

    def parse_option(self, start: _Token, comment: Optional[Comment]) -> Option:
        name = self.parse_option_name()
        self.expect("=")
        source, is_string = self.parse_constant()
        semi = self.expect(";")
        return Option(
            name, source, is_string, comment, self.inline_comment(semi.line),
            start.offset, start.line,
        )

    def parse_field_options(self) -> list[Option]:
        tok = self.peek()
        if tok is None or tok.text != "[":
            return []
        self.next()
        options = []
        while True:
            start = self.peek()
            if start is None:
                raise ProtoSyntaxError("unterminated field options", tok.line)
            name = self.parse_option_name()
            self.expect("=")
            source, is_string = self.parse_constant()
            options.append(Option(name, source, is_string, offset=start.offset, line=start.line))
            sep = self.next()
            if sep.text == "]":
                return options
            if sep.text != ",":
                raise ProtoSyntaxError(f"expected ',' or ']', found {sep.text!r}", sep.line)

    def parse_message(
        self, start: _Token, comment: Optional[Comment], parent: Optional[Message]
    ) -> Message:
        name = self.expect_kind("ident").text
        brace = self.expect("{")
        msg = Message(name, comment=comment, offset=start.offset, line=start.line, parent=parent)
        msg.inline_comment = self.inline_comment(brace.line)
        while True:
            tok = self.peek()
            if tok is None:
                raise ProtoSyntaxError(f"message {name} is missing '}}'", start.line)
            if tok.text == "}":
                self.next()
                return msg
            if tok.text == ";":
                self.next()
                continue
            lead = self.leading_comment(tok)
            keyword = tok.text
            third = self.peek(2)
            opens_block = third is not None and third.text == "{"
            if keyword == "message" and opens_block:
                self.next()
                msg.elements.append(self.parse_message(tok, lead, msg))
            elif keyword == "enum" and opens_block:
                self.next()
                msg.elements.append(self.parse_enum(tok, lead, msg))
            elif keyword == "option":
                self.next()
                msg.elements.append(self.parse_option(tok, lead))
            elif keyword in ("oneof", "extend") and opens_block:
                self.skip_statement()
            elif keyword in ("reserved", "extensions"):
                self.skip_statement()
            elif keyword == "map" and (second := self.peek(1)) is not None and second.text == "<":
                msg.elements.append(self.parse_map_field(tok, lead))
            else:
                msg.elements.append(self.parse_normal_field(tok, lead))

    def parse_normal_field(self, start: _Token, comment: Optional[Comment]) -> NormalField:
        labels = {"repeated": False, "optional": False, "required": False}
        third = self.peek(2)
        if start.text in labels and third is not None and third.text != "=":
            labels[self.next().text] = True
        typ = self.expect_kind("ident").text
        name = self.expect_kind("ident").text
        self.expect("=")
        sequence = _parse_int(self.expect_kind("number"))
        options = self.parse_field_options()
        semi = self.expect(";")
        return NormalField(
            name, typ, sequence, labels["repeated"], labels["optional"], labels["required"],
            options, comment, self.inline_comment(semi.line), start.offset, start.line,
        )

    def parse_map_field(self, start: _Token, comment: Optional[Comment]) -> MapField:
        self.expect("map")
        self.expect("<")
        key_type = self.expect_kind("ident").text
        self.expect(",")
        value_type = self.expect_kind("ident").text
        self.expect(">")
        name = self.expect_kind("ident").text
        self.expect("=")
        sequence = _parse_int(self.expect_kind("number"))
        options = self.parse_field_options()
        semi = self.expect(";")
        return MapField(
            name, key_type, value_type, sequence, options, comment,
            self.inline_comment(semi.line), start.offset, start.line,
        )

    def parse_enum(
        self, start: _Token, comment: Optional[Comment], parent: Optional[Message]
    ) -> Enum:
        name = self.expect_kind("ident").text
        brace = self.expect("{")
        enum = Enum(name, comment=comment, offset=start.offset, line=start.line, parent=parent)
        enum.inline_comment = self.inline_comment(brace.line)
        while True:
            tok = self.peek()
            if tok is None:
                raise ProtoSyntaxError(f"enum {name} is missing '}}'", start.line)
            if tok.text == "}":
                self.next()
                return enum
            if tok.text == ";":
                self.next()
                continue
            lead = self.leading_comment(tok)
            if tok.text == "option":
                self.next()
                enum.elements.append(self.parse_option(tok, lead))
            elif tok.text == "reserved":
                self.skip_statement()
            else:
                field_name = self.expect_kind("ident").text
                self.expect("=")
                value = _parse_int(self.expect_kind("number"))
                options = self.parse_field_options()
                semi = self.expect(";")
                enum.elements.append(
                    EnumField(
                        field_name, value, options, lead,
                        self.inline_comment(semi.line), tok.offset, tok.line,
                    )
                )

    def parse_service(self, start: _Token, comment: Optional[Comment]) -> Service:
        name = self.expect_kind("ident").text
        brace = self.expect("{")
        service = Service(name, comment=comment, offset=start.offset, line=start.line)
        service.inline_comment = self.inline_comment(brace.line)
        while True:
            tok = self.peek()
            if tok is None:
                raise ProtoSyntaxError(f"service {name} is missing '}}'", start.line)
            if tok.text == "}":
                self.next()
                return service
            if tok.text == ";":
                self.next()
                continue
            lead = self.leading_comment(tok)
            if tok.text == "option":
                self.next()
                service.elements.append(self.parse_option(tok, lead))
            elif tok.text == "rpc":
                self.next()
                service.elements.append(self.parse_rpc(tok, lead))
            else:
                raise ProtoSyntaxError(f"unexpected {tok.text!r} in service", tok.line)

    def parse_rpc_type(self) -> tuple[str, bool]:
        self.expect("(")
        stream = False
        tok = self.expect_kind("ident")
        if tok.text == "stream" and (after := self.peek()) is not None and after.text != ")":
            stream = True
            tok = self.expect_kind("ident")
        self.expect(")")
        return tok.text, stream

    def parse_rpc(self, start: _Token, comment: Optional[Comment]) -> Rpc:
        name = self.expect_kind("ident").text
        request, streams_request = self.parse_rpc_type()
        self.expect("returns")
        returns, streams_returns = self.parse_rpc_type()
        rpc = Rpc(
            name, request, returns, streams_request, streams_returns,
            comment=comment, offset=start.offset, line=start.line,
        )
        tok = self.next()
        if tok.text == ";":
            rpc.inline_comment = self.inline_comment(tok.line)
            return rpc
        if tok.text != "{":
            raise ProtoSyntaxError(f"expected ';' or '{{', found {tok.text!r}", tok.line)
        while True:
            inner = self.peek()
            if inner is None:
                raise ProtoSyntaxError(f"rpc {name} is missing '}}'", start.line)
            if inner.text == "}":
                self.next()
                break
            if inner.text == ";":
                self.next()
                continue
            lead = self.leading_comment(inner)
            self.expect("option")
            rpc.elements.append(self.parse_option(inner, lead))
        after = self.peek()
        if after is not None and after.text == ";":
            self.next()
        return rpc


def parse_proto(text: str) -> ProtoFile:
    """Parse protocol buffer source text."""
    return _Parser(text).parse()


def parse_proto_file(path: str) -> ProtoFile:
    """Read and parse a ``.proto`` file."""
    with open(path, encoding="utf-8") as fh:
        return parse_proto(fh.read())