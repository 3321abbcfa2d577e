# wings

Building blocks for a node daemon that hosts game servers on behalf of a
control Panel:

- `wings.ufs` – a filesystem rooted in one directory. Every path is resolved
  relative to that base, and anything that would resolve outside it (through
  `..` or a symbolic link) raises `BadPathResolutionError`. A `Quota` variant
  tracks disk usage against a limit.
- `wings.remote` – an HTTP client for the Panel's remote API with
  authentication headers and retries with exponential backoff for
  server-side failures (`wings.remote.http`), the `RequestError` it raises
  (`wings.remote.exceptions`), and request and response records
  (`wings.remote.types`).
- `wings.models` – the `Activity` record that is sent to the Panel.
- `wings.progress` – a byte counter that renders a text progress bar.
- `wings.clilog` – a `logging` handler that prints coloured, aligned lines.

The filesystem layer needs a POSIX system.

Install with `pip install .`; the tests need the `test` extra
(`pip install ".[test]"`).

## Sandboxed filesystem

```python
import os

from wings.ufs.errors import BadPathResolutionError
from wings.ufs.unixfs import UnixFS

with UnixFS("/srv/daemon/volumes/abc") as fs:
    fs.mkdir_all("config/plugins", 0o755)
    f = fs.touch("config/server.properties", os.O_RDWR, 0o644)
    f.close()

    fs.rename("config/server.properties", "config/old.properties")
    print(fs.stat("config/old.properties").is_dir())   # False

    try:
        fs.remove_all("../other")
    except BadPathResolutionError:
        print("refused: outside the sandbox")
```

`touch` creates missing parent directories. `rename` refuses to overwrite an
existing target and refuses to move or replace the base directory; `remove`
and `remove_all` refuse the base directory too.

`walk_dir(root, fn)` calls `fn(path, entry, err)` for each entry in lexical
order; the callback may raise `SkipDir` or `SkipAll` from `wings.ufs.walk` to
prune the walk. `wings.ufs.dirwalk` has `walk_dirat`, which walks relative to
an open directory descriptor, and `read_dir_map`, which applies a function to
every entry of a directory.

Errors are subclasses of `UfsError` in `wings.ufs.errors`; the common ones
also derive from the matching built-in exceptions (`NotExistError` is a
`FileNotFoundError`, `ExistError` a `FileExistsError`, and so on).

### Disk quota

```python
from wings.ufs.quota import Quota

fs = Quota("/srv/daemon/volumes/abc", 1024 * 1024 * 1024)
fs.set_usage(0)
print(fs.can_fit(4096))    # True
fs.add(4096)
print(fs.usage)            # 4096
```

A limit of `0` means unlimited and `-1` refuses every write; a usage of `-1`
means it has not been calculated. Removing regular files through the quota
filesystem lowers the tracked usage, which never goes below zero.

`wings.ufs.counted` has `CountedWriter` and `CountedReader`, which wrap a file
or reader and count the bytes passing through them.

## Panel API client

```python
from wings.remote.exceptions import as_request_error
from wings.remote.http import HttpClient

client = HttpClient(
    "https://panel.example.com",
    token_id="node-identifier",
    token="token",
    session=None,
    max_attempts=3,
)

try:
    response = client.get("/servers", {"page": "1", "per_page": "50"})
    print(response.bind_json())
except Exception as exc:
    request_error = as_request_error(exc)
    if request_error is not None:
        print(request_error.status_code, request_error)
```

Requests go to `<base>/api/remote<path>` with a bearer token made of the
token id and token. Responses with a 4xx status raise their `RequestError`
at once; 5xx responses and connection failures are retried with backoff, at
most `max_attempts` times when it is above zero, otherwise for about thirty
seconds. `post(path, data)` sends `data` as JSON.

`wings.remote.types` holds the records exchanged with the Panel, such as
`Pagination`, `ServerConfigurationResponse`, `ProcessConfiguration`,
`SftpAuthRequest`, `BackupRequest` and `OutputLineMatcher`, which matches a
console line against a plain string or, with a `regex:` prefix, a pattern.

## Activity records

```python
from wings.models import Activity

activity = Activity(server="server-uuid", event="server:power.start", ip="10.0.0.5:51234")
activity.before_create()          # strips the port, sets a UTC timestamp
print(activity.to_dict())
```

## Progress bar

```python
from wings.progress import Progress

progress = Progress(1000, None)
progress.write(b" " * 100)
print(progress.progress(25))
# [==                       ] 100 B / 1000 B
```

## Console logging

```python
import logging
import sys

from wings.clilog import CliHandler

logger = logging.getLogger("wings")
logger.addHandler(CliHandler(sys.stderr, True))
logger.warning("configuring system crons", extra={"subsystem": "cron"})
```

Extra attributes on a record are printed as `key=value` fields; an exception
in the `error` field or in `exc_info` is followed by its traceback.

## What the package does not do

- It has no command-line program and starts no daemon.
- It has no typed calls for individual Panel endpoints (listing servers,
  validating SFTP credentials, reporting backup or install status, sending
  activity logs); use `HttpClient.get` and `HttpClient.post` with the records
  in `wings.remote.types`.
- It does not store activity records; `Activity` is a plain record with its
  JSON form.
- It does not read a daemon configuration file.