# rpcware

Small, composable interceptors for RPC calls. An interceptor is a plain
function that wraps a call: it receives the request context, the method name
or call description, and the next step in the chain (an invoker, a streamer or
a handler), and adds one concern such as reporting, authentication, rate
limiting or logging.

The package needs nothing beyond the standard library.

## Modules

### `rpcware.status`

- `Code`: the canonical status codes (`OK`, `CANCELED`, `UNKNOWN`, ...,
  `UNAUTHENTICATED`). `str(Code.FAILED_PRECONDITION)` is `"FailedPrecondition"`.
- `StatusError(code, message)`: an exception with a `code` and a `message`;
  its text reads `rpc error: code = <Code> desc = <message>`.
- `EndOfStream`: raised by a stream when no more messages will arrive.
- `code_of(err)`: `Code.OK` for `None`, the error's code for a `StatusError`,
  and `Code.UNKNOWN` for anything else.

### `rpcware.context`

`Context` is an immutable carrier of request-scoped data; start from
`background()`. Each `with_*` method returns a new context:

- `with_value(key, value)` / `value(key)` (missing keys give `None`)
- `with_deadline(deadline)` and the `deadline` property
- `with_peer(address)` and the `peer` property
- `with_incoming_metadata(mapping)` / `incoming_metadata()`. Keys are
  lower-cased. A value may be one string or several.

### `rpcware.calls`

- `GRPCType`: `UNARY`, `CLIENT_STREAM`, `SERVER_STREAM`, `BIDI_STREAM`.
- `CallMeta`: service, method, type, whether it is a client call, and the
  request when there is one; `full_method()` gives `"/service/method"`.
- `StreamDesc`, `StreamServerInfo`, `UnaryServerInfo`: descriptions of a call
  passed to interceptors.
- `split_full_method_name("/pkg.Service/Method")` returns
  `("pkg.Service", "Method")`. A name without a `/` after the leading one
  returns `("unknown", "unknown")`.
- `new_client_call_meta(...)` and `new_server_call_meta(...)` build a
  `CallMeta`. When there is no stream description the call is unary.

### `rpcware.client`

`unary_client_interceptor(reportable)` and
`stream_client_interceptor(reportable)` take a `ClientReportable`, an object
with `client_reporter(ctx, call_meta)` that returns a `Reporter` and a
context. The reporter is told about every message sent (`post_msg_send`),
every message received (`post_msg_receive`) and the end of the call
(`post_call`), each with the error, if any, and the time taken.

The unary interceptor has the signature `(ctx, method, request, invoker)`,
where `invoker(ctx, method, request)` returns the reply. The stream
interceptor has the signature `(ctx, desc, method, streamer)`. It wraps the
stream returned by `streamer(ctx, desc, method)` in a `MonitoredClientStream`
with `send_msg`, `recv_msg` and iteration. `EndOfStream` is reported to
`post_call` as a successful finish, and other receive errors as failures. A
failure to open the stream is reported to `post_call` and re-raised.

### `rpcware.auth`

- `unary_server_interceptor(auth_func)` and
  `stream_server_interceptor(auth_func)` call `auth_func(ctx)` before the
  handler and pass the context it returns on to the handler. For streams, the
  stream is wrapped in a `WrappedServerStream` whose `context()` is that new
  context. If the auth function raises, the handler is not called.
- A service that has `auth_func_override(ctx, full_method_name)`
  (`ServiceAuthFuncOverride`) is asked instead of the global function.
- `auth_from_md(ctx, expected_scheme)` reads the first `authorization` value
  of the incoming metadata. It compares the scheme without regard to case and
  returns the credential after the first space. `"Bearer token"` yields
  `"token"`. A missing or empty value, a value with no space, or a different
  scheme raises `StatusError` with `Code.UNAUTHENTICATED`.

```python
from rpcware import auth
from rpcware.context import background

ctx = background().with_incoming_metadata({"authorization": "Bearer token"})
assert auth.auth_from_md(ctx, "bearer") == "token"
```

### `rpcware.ratelimit`

A `Limiter` has `limit(ctx)`. It returns normally to let the call through and
raises to reject it. The module provides `unary_server_interceptor`,
`stream_server_interceptor`, `unary_client_interceptor` and
`stream_client_interceptor`, each taking a limiter. A rejected call raises
`StatusError(Code.RESOURCE_EXHAUSTED, "<method> is rejected by grpc_ratelimit
middleware, please retry later. <reason>")`, and the handler, invoker or
streamer is never run.

### `rpcware.logs.fields`

- `Fields`: a list of alternating keys and values, with `pairs()`,
  `delete(key)`, `with_unique(add)` and `append_unique(add)`. In both merges
  the keys already present win.
- `Level`: `DEBUG` (-4), `INFO` (0), `WARN` (4), `ERROR` (8).
- `inject_fields(ctx, fields)`, `inject_log_field(ctx, key, value)` and
  `extract_fields(ctx)` store fields in a context and read them back. Newly
  injected values win over ones already stored.
- `Logger`: any object with `log(ctx, level, msg, *fields)`. `LoggerFunc`
  wraps a plain function.

### `rpcware.logs.options`

`Options` holds the logging settings. Option functions adjust it:
`with_log_on_events(*events)` (`LoggableEvent.START_CALL`, `FINISH_CALL`,
`PAYLOAD_RECEIVED`, `PAYLOAD_SENT`), `with_levels`, `with_codes`,
`with_duration_field`, `with_timestamp_format`, `with_fields_from_context`,
`with_fields_from_context_and_call_meta` and `with_disable_logging_fields`.
`evaluate_client_options` and `evaluate_server_options` apply them over the
defaults. By default the events are start and finish, and the duration goes
in `grpc.time_ms`. The level mapping is `default_client_code_to_level` or
`default_server_code_to_level`. `duration_to_duration_field` puts the
duration in `grpc.duration` instead, as text such as `1.5ms`.

### `rpcware.logs.interceptors`

`unary_client_interceptor(logger, *options)` and
`stream_client_interceptor(logger, *options)` are reporting client
interceptors that write through a `CallReporter`. They log "started call" and
"finished call", and with the payload events they also log "request sent" and
"response received". `make_reportable(logger, options)` builds the reporter
factory. It has both `client_reporter` and `server_reporter`.

Each line carries `protocol`, `grpc.component`, `grpc.service`, `grpc.method`
and `grpc.method_type`, plus `grpc.start_time`. When the context has a
deadline the line also carries `grpc.request.deadline`, and on the server side
with a known peer it carries `peer.address`. The finishing line adds
`grpc.code`, `grpc.error` when there is an error, and the duration field.

```python
from rpcware.context import background
from rpcware.logs.fields import LoggerFunc
from rpcware.logs.interceptors import unary_client_interceptor

lines = []
logger = LoggerFunc(lambda ctx, level, msg, *fields: lines.append((level, msg, fields)))
intercept = unary_client_interceptor(logger)
reply = intercept(background(), "/pkg.Service/Ping", {"value": "hi"},
                  lambda ctx, method, request: {"value": request["value"]})
# lines now holds a "started call" and a "finished call" entry.
```

## What the package does not do

- It has no transport, server or client connection. Interceptors are plain
  callables that you call from your own RPC framework.
- Reporting is provided for client calls only. There are no server-side
  reporting interceptors and no server-side logging interceptors.
- A payload counts as a message whenever it is not `None`. Payloads are not
  serialised or validated.
- There is no metrics, tracing or request-validation middleware.

## Running the tests

```
pip install -e .[test]
pytest
```