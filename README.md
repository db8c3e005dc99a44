# actlocal

`actlocal` is a library of parts for running CI workflow jobs on your own
machine: composable executors, an artifact server, git helpers, plan reports
and the reading of run configuration. It is used from Python code; it installs
no command.

## What is in it

- **`actlocal.context`**: `Context`, an immutable chain of key/value pairs
  that can be made cancellable with `with_cancel()`. `background()` returns an
  empty root. `err()` returns a `Cancelled` error once the context is
  cancelled, and `wait(timeout)` blocks until then. Helpers keep values in a
  context: `with_dryrun` / `dryrun`, `with_job_error_container` /
  `set_job_error` / `job_error`, and `with_logger` / `logger` (which falls back
  to the `actlocal` logger).
- **`actlocal.executor`**: `Executor` wraps a callable that takes a context and
  raises on failure.
  - Chain executors with `then`.
  - Guard them with `if_`, `if_not` or `if_bool`.
  - Add cleanup with `finally_`. If the cleanup fails, it raises
    `FinallyError`.
  - An `ExecutorWarning` (see `warningf`) raised inside a `then` chain is
    logged as a warning and the chain goes on.
  - The builders are `pipeline`, `conditional_executor`, `error_executor`,
    `info_executor`, `debug_executor` and `parallel_executor`.
    `parallel_executor` runs at most `parallel` executors at a time and waits
    for all of them. A cancelled context takes precedence over the first error.
  - `Conditional` wraps a predicate, and `negate()` inverts it.
- **`actlocal.cartesian`**: `cartesian_product` returns every combination of a
  mapping of lists. An empty mapping gives no combinations, and so does any
  empty list.
- **`actlocal.draw`**: `Pen` draws boxes in one of four `Style` values. The
  result is a `Drawing`. `draw_boxes` draws a row of boxes and `draw_arrow`
  draws a downward arrow. `Drawing.draw` writes the result centred on a width.
  Setting `CLICOLOR=0` turns the colour codes off.
- **`actlocal.line_writer`**: `LineWriter.write` buffers text or bytes. It
  calls the handlers once for each complete line, newline included. The
  handlers run in order until one returns False.
- **`actlocal.files`**:
  - `copy_file` copies one file.
  - `copy_dir` copies a tree. A failure on one entry is printed and the copy
    goes on; the last such failure is raised at the end.
  - `get_outbound_ip` returns the local address used for outgoing traffic.
- **`actlocal.artifacts`**: the artifact upload and download API.
  - `ArtifactRouter.handle(method, url, host, headers, body)` serves one
    request and returns a `Response`.
  - Storage goes through `LocalFS` by default, or through any object with the
    same methods.
  - `safe_resolve` keeps every path inside the base directory.
  - Gzip-encoded uploads are stored with a `.gz__` suffix.
  - `serve(ctx, artifact_path, addr, port)` starts an HTTP server in a
    background thread and returns a function that stops it. Nothing is started
    when `artifact_path` is empty.
- **`actlocal.inputs`**: `Input`, a dataclass of run options with their
  defaults.
  - The `resolved_*` methods return paths made absolute against `workdir`.
  - `new_platforms()` returns the default platform-to-image map with
    `platform=image` overrides applied.
- **`actlocal.secrets`**: `new_secrets` builds a secrets map from `NAME=value`
  or bare `NAME` entries, with names upper-cased. A bare name takes its value
  from the environment. If the environment has none, the value is asked for on
  the terminal.
- **`actlocal.notices`**: version notices from a remote service, with an ETag
  cache kept under `$XDG_CACHE_HOME/act` (or `~/.cache/act`).
  - `NoticeLoader.start` fetches the notices in a background thread.
  - `NoticeLoader.display` shows them and waits one second by default.
  - Setting `ACT_DISABLE_VERSION_CHECK=1` turns the fetch off.
- **`actlocal.git`**:
  - `find_git_revision`, `find_git_ref`, `find_git_remote_url` and
    `find_github_repo` read a repository's `.git` directory directly.
  - `find_git_slug` recognises CodeCommit, GitHub and GitHub Enterprise remote
    URLs.
  - `git_clone_executor(CloneInput(...))` clones or updates a repository and
    checks out a tag, branch or full SHA by running the `git` program. A short
    SHA raises `ShortRefError`.
- **`actlocal.report`**: `print_list` prints a plan as a table, and
  `draw_graph` draws it as rows of boxes.
  - A plan is any object with `stages`. Each stage has `runs`. Each run has
    `job_id` and `workflow`, and its `str()` is used as the job name.
  - A workflow has `name`, `file` and an `on()` method.
- **`actlocal.config`**:
  - `read_args_file`, `config_locations` and `collect_args` read `.actrc`
    argument files.
  - `parse_envs` reads `KEY=value` pairs and `read_envs` reads dotenv files.
  - `survey_option` and `default_image_survey` write a starter `.actrc` for
    the `Large`, `Medium` or `Micro` image choice. `default_image_survey` asks
    on the terminal when no answer is given.
- **`actlocal.bugreport`**:
  - `found_sockets` lists the container sockets that exist.
  - `bug_report` builds, prints and returns a system summary. A container
    engine section is added only when you pass its info as `host_info`.

## Examples

Expand a job matrix:

```python
from actlocal.cartesian import cartesian_product

combos = cartesian_product({"os": ["linux", "windows"], "node": [16, 18]})
# four dicts, each with an "os" key and a "node" key
```

Chain steps and always clean up:

```python
from actlocal.context import background
from actlocal.executor import pipeline

steps = pipeline(lambda ctx: print("build"), lambda ctx: print("test"))
steps.finally_(lambda ctx: print("cleanup"))(background())
```

Keep artifact paths inside the storage directory:

```python
from actlocal.artifacts import safe_resolve

safe_resolve("/srv/artifacts", "../../etc/passwd")
# '/srv/artifacts/etc/passwd'
```

Read `KEY=value` pairs into a dictionary:

```python
from actlocal.config import parse_envs

envs = {}
parse_envs(["FOO=bar", "EMPTY"], envs)
# envs == {"FOO": "bar", "EMPTY": ""}
```

## What it does not do

- It has no command-line program.
- It does not read workflow files or build plans from them. The report
  functions take a plan object that you supply.
- It does not start or manage containers. `bug_report` does not query a
  container engine itself; pass its info in if you want that section.

## Requirements

- Python 3.10 or newer.
- `python-dotenv`.
- `git_clone_executor` runs the `git` program, so it must be on `PATH`.