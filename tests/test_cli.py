from gmicro.cli import main

PROTO = """syntax = "proto3";

message ModelItem {
    uint64 id = 1;
    string title = 2;
}
"""


def test_no_arguments_prints_usage(capsys):
    assert main([]) == 0
    assert "Usage: proto2gorm path/to/file.proto" in capsys.readouterr().out


def test_generates_sql(tmp_path, monkeypatch, capsys):
    monkeypatch.chdir(tmp_path)
    (tmp_path / "mysql").mkdir()
    (tmp_path / "item.proto").write_text(PROTO, encoding="utf-8")
    assert main(["item.proto"]) == 0
    sql = (tmp_path / "mysql" / "model_item.sql").read_text(encoding="utf-8")
    assert sql.startswith("CREATE TABLE `model_item` (")
    assert "All done" in capsys.readouterr().out


def test_custom_output_dir(tmp_path):
    out = tmp_path / "sql"
    out.mkdir()
    proto = tmp_path / "item.proto"
    proto.write_text(PROTO, encoding="utf-8")
    assert main([str(proto), "--out", str(out)]) == 0
    assert [p.name for p in out.iterdir()] == ["model_item.sql"]


def test_missing_file_fails(tmp_path, capsys):
    assert main([str(tmp_path / "none.proto")]) == 1
    assert "Failed to parse proto" in capsys.readouterr().err


def test_invalid_proto_fails(tmp_path):
    proto = tmp_path / "bad.proto"
    proto.write_text("message {", encoding="utf-8")
    assert main([str(proto), "--out", str(tmp_path)]) == 1