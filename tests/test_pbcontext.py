import pytest

from gmicro.pbcontent import NodeType
from gmicro.pbcontext import (
    get_enum_fields,
    get_msg_fields,
    is_model,
    parse_pb,
    search_import_pb,
)

SAMPLE = """syntax = "proto3";

package demo;

option go_package = "example/demo";

service Demo {
    // add a user
    rpc AddUser(AddUserReq) returns (AddUserRsp) {
        option (lb.ApiMethod) = "GET";
        option (lb.AuthType) = "admin";
    };

    rpc GetUser(GetUserReq) returns (GetUserRsp) {
        option (lb.IgnoreSvrRpc) = true;
    };
}

enum ErrCode {
    Success = 0;
    ErrUserNotFound = 20001;
}

message ModelUser {
    uint64 id = 1;
    string name = 2;
    map<string, string> tags = 3;
    message Inner {
        int32 x = 1;
    }
}

message AddUserReq {
}
"""


def _write(tmp_path, text, name="demo.proto"):
    path = tmp_path / name
    path.write_text(text, encoding="utf-8")
    return str(path)


@pytest.fixture
def ctx(tmp_path):
    return parse_pb(_write(tmp_path, SAMPLE))


def test_basic_names(ctx):
    assert ctx.service_name == "Demo"
    assert ctx.package_name == "demo"
    assert ctx.go_package_name == "example/demo"


def test_rpc_options(ctx):
    add = ctx.get_rpc("AddUser")
    assert add.api_method == "GET"
    assert add.auth_type == "admin"
    assert add.ignore_svr_rpc is False
    get = ctx.get_rpc("GetUser")
    assert get.api_method == "POST"
    assert get.auth_type == "user"
    assert get.ignore_svr_rpc is True
    assert get.options == {"(lb.IgnoreSvrRpc)": "true"}
    assert ctx.get_rpc("Missing") is None


def test_nested_full_names(ctx):
    assert ctx.get_msg("ModelUser.Inner").name == "Inner"
    assert ctx.get_msg("Inner") is None
    assert ctx.get_enum("ErrCode").name == "ErrCode"


def test_fields(ctx):
    msg = ctx.get_msg("ModelUser")
    fields = get_msg_fields(msg)
    assert [f.name for f in fields.normal_fields] == ["id", "name"]
    assert [f.name for f in fields.map_fields] == ["tags"]
    assert [f.name for f in get_enum_fields(ctx.get_enum("ErrCode"))] == ["Success", "ErrUserNotFound"]
    assert is_model(msg)
    assert not is_model(ctx.get_msg("AddUserReq"))


def test_append_err_code_and_reparse(ctx):
    old_max = max(f.integer for f in get_enum_fields(ctx.get_enum("ErrCode")))
    assert ctx.append_err_code(["ErrA", "ErrUserNotFound"], 0) == 1
    new = ctx.write_content_and_reparse()
    values = {f.name: f.integer for f in get_enum_fields(new.get_enum("ErrCode"))}
    assert values["ErrA"] == old_max + 1
    assert len(values) == 3


def test_append_err_code_nothing_new(ctx):
    before = ctx.content
    assert ctx.append_err_code(["Success"], 0) == 0
    assert ctx.content == before


def test_append_err_code_uses_beginning(tmp_path):
    text = "syntax = \"proto3\";\nenum ErrCode {\n    Success = 0;\n}\n"
    ctx = parse_pb(_write(tmp_path, text))
    with pytest.raises(ValueError):
        ctx.append_err_code(["ErrA"], 0)
    assert ctx.append_err_code(["ErrA"], 100) == 1
    new = ctx.write_content_and_reparse()
    assert {f.name: f.integer for f in get_enum_fields(new.get_enum("ErrCode"))}["ErrA"] == 101


def test_append_err_code_without_enum(tmp_path):
    ctx = parse_pb(_write(tmp_path, "syntax = \"proto3\";\nmessage A {\n}\n"))
    with pytest.raises(LookupError):
        ctx.append_err_code(["ErrA"], 1)


def test_append_empty_msg(ctx):
    before = ctx.content
    ctx.append_empty_msg_if_not_existed("ModelUser")
    assert ctx.content == before
    ctx.append_empty_msg_if_not_existed("Foo")
    assert ctx.content.startswith(before)
    new = ctx.write_content_and_reparse()
    assert new.get_msg("Foo").name == "Foo"


def test_append_block_separation(ctx):
    ctx.content = "abc"
    ctx.append_block("message X {\n}\n")
    assert ctx.content == "abc\n\nmessage X {\n}\n"


def test_append_msg_only_once(ctx):
    block = "message Once {\n}\n"
    ctx.append_msg_if_not_existed("Once", block)
    ctx.append_msg_if_not_existed("Once", block)
    assert ctx.content.count("message Once") == 1


def test_append_enum_skips_existing(ctx):
    before = ctx.content
    ctx.append_enum_if_not_existed("ErrCode", "enum ErrCode {\n}\n")
    assert ctx.content == before


def test_insert_rpc_after_last(ctx):
    ctx.insert_rpc_block("\n    rpc DelUser(DelUserReq) returns (DelUserRsp);")
    new = ctx.write_content_and_reparse()
    assert [n.rpc.name for n in new.rpc_list] == ["AddUser", "GetUser", "DelUser"]


def test_insert_rpc_into_empty_service(tmp_path):
    text = "syntax = \"proto3\";\nservice S {\n}\n"
    ctx = parse_pb(_write(tmp_path, text))
    ctx.insert_rpc_block("rpc A(B) returns (C);")
    new = ctx.write_content_and_reparse()
    assert [n.rpc.name for n in new.rpc_list] == ["A"]


def test_insert_rpc_without_service(tmp_path):
    ctx = parse_pb(_write(tmp_path, "syntax = \"proto3\";\nmessage A {\n}\n"))
    with pytest.raises(ValueError):
        ctx.insert_rpc_block("rpc A(B) returns (C);")


def test_split_content_round_trip(ctx):
    content = ctx.split_content()
    assert "".join(n.buf for n in content.nodes) == ctx.content
    assert content.find_rpc_node("AddUser").name == "AddUser"
    kinds = [n.kind for n in content.nodes]
    index = next(i for i, n in enumerate(content.nodes) if n.name == "GetUser")
    assert kinds[index + 1] == NodeType.UNDEFINED
    assert "}" in content.nodes[index + 1].buf
    assert any(n.kind == NodeType.ENUM and n.name == "ErrCode" for n in content.nodes)
    assert content.to_buf() == ctx.content.replace("    ", "\t")


def test_split_content_rpc_starts_at_comment(ctx):
    node = ctx.split_content().find_rpc_node("AddUser")
    assert "// add a user" in node.buf


def test_search_import_pb(tmp_path):
    inc = tmp_path / "inc"
    inc.mkdir()
    (inc / "x.proto").write_text("syntax = \"proto3\";\n", encoding="utf-8")
    found = search_import_pb("x.proto", [str(tmp_path / "none"), str(inc)])
    assert found is not None and found.endswith("x.proto")
    assert search_import_pb("y.proto", [str(inc)]) is None
    ctx = parse_pb("x.proto", [str(inc)])
    assert ctx.proto_file_path == found


def test_parse_pb_missing(tmp_path):
    with pytest.raises(FileNotFoundError):
        parse_pb(str(tmp_path / "nope.proto"))