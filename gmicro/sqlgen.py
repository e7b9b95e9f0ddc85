"""Generate MySQL ``CREATE TABLE`` statements from model messages in a proto file."""

from __future__ import annotations

import logging
import os
from typing import Optional

from gmicro.protoparse import Comment, Message, NormalField, parse_proto_file

logger = logging.getLogger(__name__)

_SQL_LINE = "\t`{}` {} DEFAULT {}"
_COMMENT_LINE = "\tCOMMENT '{}'"
_PRIMARY_KEY_LINE = "\tPRIMARY KEY (`{}`),\n"
_INDEX_LINE = "\tINDEX `{}` ({}),\n"
_MYSQL_ENGINE = "INNODB"
_CREATE_HEAD = "CREATE TABLE `{}` (\n"
_CREATE_TAIL = (
    "\n)\nENGINE=" + _MYSQL_ENGINE
    + " DEFAULT CHARSET=utf8mb4 COLLATE=utf8mb4_general_ci COMMENT '{}';"
)
_SEPARATOR = ",\n"

_SQL_TYPES = {
    "uint64": "BIGINT UNSIGNED",
    "int64": "BIGINT",
    "uint32": "INT UNSIGNED",
    "int32": "INT",
    "string": "VARCHAR(255)",
    "bool": "BOOLEAN",
}

_DEFAULTS = {
    "uint64": "0",
    "uint32": "0",
    "int64": "0",
    "int32": "0",
    "string": "''",
    "bool": "false",
}


def extract_desc(comment: Optional[Comment]) -> str:
    """The text after ``@desc:`` in the first comment line, or an empty string."""
    if comment is None:
        return ""
    message = comment.message()
    if "@desc:" in message:
        return message.strip().replace("@desc:", "")
    return ""


def extract_index(comment: Optional[Comment]) -> str:
    """The index name given as ``@index:"name"`` in the comment, or an empty string."""
    if comment is None:
        return ""
    marker = '@index:"'
    for line in comment.lines:
        line = line.strip()
        if "@index:" not in line:
            continue
        start = line.find(marker)
        if start >= 0:
            rest = line[start + len(marker) :]
            end = rest.find('"')
            if end > 0:
                return rest[:end]
    return ""


def map_proto_to_sql(proto_type: str) -> str:
    """The SQL column type for a proto scalar type."""
    return _SQL_TYPES.get(proto_type, "TEXT")


def default_value(proto_type: str) -> str:
    """The SQL default value for a proto scalar type."""
    return _DEFAULTS.get(proto_type, "NULL")


def backtick_join(cols: list[str]) -> str:
    return ", ".join(f"`{c}`" for c in cols)


def to_snake_case(name: str) -> str:
    """Convert CamelCase to snake_case."""
    parts = []
    for index, ch in enumerate(name):
        if index > 0 and "A" <= ch <= "Z":
            parts.append("_")
        parts.append(ch)
    return "".join(parts).lower()


def build_create_sql(message: Message) -> str:
    """The ``CREATE TABLE`` statement for a model message."""
    table = to_snake_case(message.name)
    indexes: dict[str, list[str]] = {}
    primary_key = ""
    sql = _CREATE_HEAD.format(table)
    for fld in message.elements:
        if not isinstance(fld, NormalField):
            continue
        if fld.name.lower() == "id":
            primary_key = fld.name
        index_name = extract_index(fld.comment)
        if index_name:
            indexes.setdefault(index_name, []).append(fld.name)
        sql += _SQL_LINE.format(fld.name, map_proto_to_sql(fld.type), default_value(fld.type))
        desc = extract_desc(fld.comment)
        if desc:
            sql += _COMMENT_LINE.format(desc)
        sql += _SEPARATOR

    if primary_key:
        sql += _PRIMARY_KEY_LINE.format(primary_key)
    for index_name, cols in indexes.items():
        if cols:
            sql += _INDEX_LINE.format(index_name, backtick_join(cols))

    sql = sql.removesuffix(_SEPARATOR) + "\n"
    return sql + _CREATE_TAIL.format(message.name)


def proto_to_sql(proto_path: str, out_dir: str = "mysql") -> list[str]:
    """Write one ``<table>.sql`` file into ``out_dir`` per model message.

    Returns the paths written.
    """
    proto = parse_proto_file(proto_path)
    written = []
    for element in proto.walk():
        if not isinstance(element, Message) or not element.name.startswith("Model"):
            continue
        sql = build_create_sql(element)
        logger.info("Generated SQL: %s", sql)
        path = os.path.join(out_dir, to_snake_case(element.name) + ".sql")
        with open(path, "w", encoding="utf-8") as fh:
            fh.write(sql)
        written.append(path)
    return written