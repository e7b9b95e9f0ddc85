# gmicro

Building blocks for small HTTP/JSON services described by `.proto` files.

## What is inside

- `gmicro.uint64s.Uint64s`: an immutable sequence of unsigned 64-bit integers
  with helpers such as `unique`, `diff`, `intersect`, `median`, `mode`,
  `sequence`, `sub_slice`, `shuffle`, `random` and JSON output. Every method
  returns a new value; arithmetic that would overflow wraps modulo 2**64.
  `gmicro.sliceops` holds the underlying functions (`diff`, `intersect`,
  `median`, `mode`, `average`, `stddev`, `sequence`, `sub_slice`, `drop_while`,
  `wrap_uint64`).
- `gmicro.shutdown`: hooks run once, in registration order, when the process
  receives SIGHUP, SIGINT, SIGTERM or SIGQUIT (`ShutdownHooks`, `watch`).
  Failing hooks are logged and the rest still run.
- `gmicro.trace`: a thread-safe map from a thread or task id to a trace id
  (`TraceContext` with `get`, `set`, `remove`; a shared instance `trace.ctx`),
  and `gen_trace_id()` for a new random id.
- `gmicro.uctx`: the request context carried through handlers (`BaseUCtx`
  with `sid`, `device_id`, `trace_id`, `auth_type`, `protocol_type`,
  `ext_info`), and `to_uctx`, which raises `ConvertError` for values lacking
  those attributes.
- `gmicro.syscfg`: load `application.yaml` (or `.yml`) and `mysql.json`, build
  the MySQL DSN and the server address (`load_syscfg`, `new_syscfg`,
  `init_global`, `get_server_conf`, `get_srv_addr`, `load_mysql_conf`,
  `json_convert`). Problems raise `ConfigError`.
- `gmicro.rpc`: call another service's JSON endpoint and unwrap its
  `{"data", "errcode", "errmsg", "hint"}` envelope (`RpcClient`,
  `do_request`). A positive `errcode` or a bad reply raises `RpcError`, whose
  `code` holds the service's error code.
- `gmicro.protoparse`: a parser for the part of proto syntax the tools use
  (`parse_proto`, `parse_proto_file`), recording offsets, lines and comments of
  every element.
- `gmicro.pbcontext` and `gmicro.pbcontent`: look up messages, enums and rpcs
  of a parsed file (`parse_pb`, `PbContext`) and edit its text: append error
  codes to the `ErrCode` enum, append messages and enums, insert rpc
  declarations, split the file into blocks and join them back, then
  `write_content_and_reparse`.
- `gmicro.sqlgen`: turn every `Model*` message into a MySQL `CREATE TABLE`
  statement (`build_create_sql`, `proto_to_sql`).

## Install

```
pip install .
```

## Generating SQL from a proto file

```
mkdir -p mysql
proto2gorm path/to/file.proto
```

Each message whose name starts with `Model` becomes `mysql/<table>.sql`, where
the table name is the message name in snake case. `--out DIR` writes into
another directory; the directory must already exist. Without a file argument
the command prints its usage line.

Field comments drive the output:

```proto
message ModelUser {
    // @desc: primary key
    uint64 id = 1;
    // @index:"idx_name"
    string name = 2;
}
```

`@desc:` becomes the column comment, `@index:"name"` groups columns into an
index, and a field called `id` becomes the primary key. Proto scalar types map
to MySQL types (`uint64` to `BIGINT UNSIGNED`, `string` to `VARCHAR(255)`,
`bool` to `BOOLEAN`, anything else to `TEXT`).

From Python:

```python
from gmicro.protoparse import Message, parse_proto_file
from gmicro.sqlgen import build_create_sql

proto = parse_proto_file("user.proto")
for element in proto.walk():
    if isinstance(element, Message) and element.name.startswith("Model"):
        print(build_create_sql(element))
```

## Configuration

```python
from gmicro import syscfg

syscfg.init_global("/etc/work/")      # reads application.yaml
print(syscfg.get_srv_addr())          # "<server.ip>:<server.port>"

mysql = syscfg.load_mysql_conf("/etc/work/")
print(mysql.dsn())
```

## Calling a service

```python
from gmicro.rpc import RpcClient, RpcError

client = RpcClient("http://127.0.0.1:20002")
try:
    data = client.do_request("/user/get", "POST", {"id": 1})
except RpcError as exc:
    print(exc.code, exc)
```

## Slice helpers

```python
from gmicro.uint64s import Uint64s

values = Uint64s([3, 1, 2, 2])
values.sort()                      # Uint64s([1, 2, 2, 3])
values.median()                    # 2
added, removed = values.diff([1, 5])
```

## What this package does not do

- It has no HTTP server: it can call JSON endpoints but does not serve them.
- It has no helpers for running work in the background.
- The `proto2gorm` command writes SQL files only; it does not generate ORM
  models or any other code from them.
- The proto parser skips `oneof`, `extend`, `reserved` and `extensions`
  blocks rather than describing them.

## Tests

```
pip install .[test]
pytest
```