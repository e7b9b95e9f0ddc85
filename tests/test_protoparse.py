import pytest

from gmicro.protoparse import (
    Enum,
    EnumField,
    MapField,
    Message,
    NormalField,
    Option,
    ProtoSyntaxError,
    Rpc,
    Service,
    parse_proto,
    parse_proto_file,
)

SAMPLE = '''syntax = "proto3";

package demo;

import "base.proto";

option go_package = "example/demo";

service Demo {
    // @desc: add a thing
    rpc AddThing (AddThingReq) returns (AddThingRsp) {
        option (lb.ApiMethod) = "GET";
        option (lb.IgnoreSvrRpc) = true;
    };
    rpc GetThing (GetThingReq) returns (stream GetThingRsp);
}

enum ErrCode {
    Success = 0;
    ErrThingNotFound = 20001; // thing not found
}

// @desc: the thing
// @index:"idx_name"
message ModelThing {
    uint64 id = 1;
    // @desc: name of the thing
    string name = 2;
    repeated string tags = 3 [(validate.rules).repeated = {min_items: 1}];
    map<string, int32> counts = 4;
    message Inner {
        enum Kind {
            KindNil = 0;
        }
    }
}
'''


@pytest.fixture
def proto():
    return parse_proto(SAMPLE)


def _find(proto, cls, name):
    return next(e for e in proto.walk() if isinstance(e, cls) and e.name == name)


def test_header(proto):
    assert proto.syntax == "proto3"
    assert proto.package == "demo"
    assert proto.imports == ["base.proto"]
    opt = next(e for e in proto.elements if isinstance(e, Option))
    assert (opt.name, opt.source, opt.is_string) == ("go_package", "example/demo", True)


def test_service_and_rpcs(proto):
    service = _find(proto, Service, "Demo")
    rpcs = [e for e in service.elements if isinstance(e, Rpc)]
    assert [r.name for r in rpcs] == ["AddThing", "GetThing"]
    add, get = rpcs
    assert (add.request_type, add.returns_type) == ("AddThingReq", "AddThingRsp")
    assert get.streams_returns and not get.streams_request
    assert get.returns_type == "GetThingRsp"
    assert [(o.name, o.source) for o in add.elements] == [
        ("(lb.ApiMethod)", "GET"),
        ("(lb.IgnoreSvrRpc)", "true"),
    ]


def test_rpc_comment_and_offsets(proto):
    add = _find(proto, Rpc, "AddThing")
    assert add.comment.message() == " @desc: add a thing"
    assert add.comment.offset == SAMPLE.index("// @desc: add a thing")
    assert add.offset == SAMPLE.index("rpc AddThing")


def test_enum_fields(proto):
    enum = _find(proto, Enum, "ErrCode")
    fields = [e for e in enum.elements if isinstance(e, EnumField)]
    assert [(f.name, f.integer) for f in fields] == [("Success", 0), ("ErrThingNotFound", 20001)]
    assert fields[1].inline_comment.lines == [" thing not found"]
    assert fields[0].inline_comment is None


def test_message_comment(proto):
    msg = _find(proto, Message, "ModelThing")
    assert msg.comment.lines == [" @desc: the thing", ' @index:"idx_name"']
    assert msg.comment.offset == SAMPLE.index("// @desc: the thing")
    assert msg.offset == SAMPLE.index("message ModelThing")
    assert msg.parent is None


def test_message_fields(proto):
    msg = _find(proto, Message, "ModelThing")
    normal = [e for e in msg.elements if isinstance(e, NormalField)]
    assert [(f.name, f.type, f.sequence) for f in normal] == [
        ("id", "uint64", 1),
        ("name", "string", 2),
        ("tags", "string", 3),
    ]
    assert normal[2].repeated and not normal[0].repeated
    assert normal[1].comment.message() == " @desc: name of the thing"
    assert normal[0].comment is None
    assert normal[2].options[0].name == "(validate.rules).repeated"
    assert normal[2].options[0].source == "{min_items: 1}"
    mapped = [e for e in msg.elements if isinstance(e, MapField)]
    assert [(m.name, m.key_type, m.type) for m in mapped] == [("counts", "string", "int32")]


def test_nested_parents(proto):
    outer = _find(proto, Message, "ModelThing")
    inner = _find(proto, Message, "Inner")
    kind = _find(proto, Enum, "Kind")
    assert inner.parent is outer
    assert kind.parent is inner


def test_walk_order(proto):
    names = [e.name for e in proto.walk() if isinstance(e, (Message, Enum))]
    assert names == ["ErrCode", "ModelThing", "Inner", "Kind"]


def test_detached_comment_is_not_attached():
    proto = parse_proto("// lonely\n\nmessage A {}\n")
    assert proto.elements[0].comment is None


def test_enum_integer_forms():
    proto = parse_proto("enum E { A = -1; B = 0x10; }")
    assert [f.integer for f in proto.elements[0].elements] == [-1, 16]


def test_block_comment():
    proto = parse_proto("/* block */\nmessage A {}\n")
    assert proto.elements[0].comment.lines == [" block "]


@pytest.mark.parametrize(
    "text",
    [
        "message Foo {",
        "message Foo { string x = ; }",
        "message Foo { string x = 1; } $",
        "service S { message X {} }",
        "bogus;",
    ],
)
def test_syntax_errors(text):
    with pytest.raises(ProtoSyntaxError):
        parse_proto(text)


def test_parse_file_matches_text(tmp_path):
    path = tmp_path / "demo.proto"
    path.write_text(SAMPLE, encoding="utf-8")
    from_file = parse_proto_file(str(path))
    names = [e.name for e in from_file.walk() if hasattr(e, "name")]
    expected = [e.name for e in parse_proto(SAMPLE).walk() if hasattr(e, "name")]
    assert names == expected


def test_parse_missing_file(tmp_path):
    with pytest.raises(OSError):
        parse_proto_file(str(tmp_path / "missing.proto"))