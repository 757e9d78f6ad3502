"""httpwatch CLI - run .http files and re-run them on every change."""

import sys
from datetime import datetime

import click

TOOL_HELP = """\
httpwatch - re-send the requests in .http files whenever files change.

Reads a .http/.rest file, sends every request in it in order, prints one
line per request, then watches a file or folder and runs everything again
after each change.

\b
USAGE
─────
  httpwatch --watch-folder ./src
  httpwatch --watch-file api.http
  httpwatch --watch-folder ./src --http-folder ./requests
  httpwatch --watch-file api.http --once

  Without --http-file/--http-folder, the first .http file in the current
  directory is used.

\b
FILE FORMAT
───────────
  \b
  @host = http://localhost:8080

  ### list users
  GET {{host}}/users
    ?page=1
    &size=10

  ### create user
  // @no-redirect
  POST {{host}}/users
  Content-Type: application/json

  {"name": "test"}

  ###
  HTTP/1.1 201 Created

  Blocks are separated by lines starting with ###; text after ### is the
  block label. // lines are comments, except // @name, // @note,
  // @prompt, // @no-redirect and // @no-cookie-jar. A block that starts
  with a status line is the expected response of the request before it;
  the status line is compared with the one received.

\b
CONFIG FILE FORMAT (.httpwatch.yaml)
────────────────────────────────────
  Config resolution order:
    1. -c/--config flag (explicit path)
    2. .httpwatch.yaml / .httpwatch.yml / httpwatch.yaml / httpwatch.yml in CWD
    3. ~/.httpwatch/config.yaml (global)

  \b
  defaults:
    wait_time: 50                   # ms between requests
    timeout: ${REQ_TIMEOUT}         # ms per request, env var resolved
    debounce: 100                   # ms of quiet before a re-run
    verbose: false
    env_file: .env                  # load .env file

  Command-line flags take precedence over the config file.
"""


@click.command(
    cls=click.Command,
    help=TOOL_HELP,
    context_settings={"max_content_width": 88},
)
@click.option("--watch-folder", default=None, help="Folder to watch for changes.")
@click.option("--watch-file", default=None, help="File to watch for changes.")
@click.option("--http-file", default=None, help="HTTP request file to run.")
@click.option("--http-folder", default=None, help="Folder of HTTP request files to run.")
@click.option(
    "--exclude-file",
    default=None,
    help="File name pattern to ignore while watching. Needs --watch-folder.",
)
@click.option(
    "--exclude-folder",
    default=None,
    help="Subfolder to ignore while watching. Needs --watch-folder.",
)
@click.option(
    "--wait-time",
    type=int,
    default=None,
    help="Milliseconds to wait between requests. Default: 50.",
)
@click.option(
    "--req-time-out",
    "req_timeout",
    type=int,
    default=None,
    help="Milliseconds before a request fails. Default: 3000.",
)
@click.option(
    "--debounce",
    type=int,
    default=None,
    help="Milliseconds of quiet after a change before re-running. Default: 100.",
)
@click.option("--verbose", is_flag=True, default=False, help="Enable debug logging.")
@click.option(
    "-c",
    "--config",
    "config_file",
    default=None,
    help="Config file path. Default: .httpwatch.yaml in CWD, then ~/.httpwatch/config.yaml.",
)
@click.option(
    "--once",
    is_flag=True,
    default=False,
    help="Run the requests once and exit. Exit 1 on any failure or mismatch.",
)
def main(
    watch_folder,
    watch_file,
    http_file,
    http_folder,
    exclude_file,
    exclude_folder,
    wait_time,
    req_timeout,
    debounce,
    verbose,
    config_file,
    once,
):
    """Run .http files and re-run them on every change."""
    from httpwatch.config import build_run_config, load_config, make_logger, resolve_config_path
    from httpwatch.errors import ConfigError
    from httpwatch.executor import execute_request
    from httpwatch.runner import Runner
    from httpwatch.watcher import WatchCoordinator

    # --- Load config ---
    try:
        config = load_config(resolve_config_path(config_file))
        run_config = build_run_config(
            config,
            watch_file=watch_file,
            watch_folder=watch_folder,
            http_file=http_file,
            http_folder=http_folder,
            exclude_file=exclude_file,
            exclude_folder=exclude_folder,
            wait_time_ms=wait_time,
            timeout_ms=req_timeout,
            debounce_ms=debounce,
            verbose=verbose,
        )
    except ConfigError as e:
        click.echo(f"ERROR: {e}", err=True)
        sys.exit(1)

    log = make_logger(run_config.verbose)
    log.debug("Configuration loaded successfully: %s", run_config)

    cycle = _Cycle(run_config, Runner(run_config, transport=execute_request, log=log), log)
    records = cycle()

    if once:
        from httpwatch.display import summarize

        if records is not None:
            click.echo(summarize(records))
        if records is None or not all(r.ok for r in records):
            sys.exit(1)
        return

    coordinator = WatchCoordinator(run_config, cycle.reload, log=log)
    coordinator.start()
    click.echo(f"Watching {run_config.watch_path} (Ctrl+C to stop)")
    try:
        coordinator.wait()
    except KeyboardInterrupt:
        pass
    finally:
        coordinator.stop()


# ── Helpers ──────────────────────────────────────────────────────────────


class _Cycle:
    """One numbered load-parse-run pass with its console output."""

    def __init__(self, config, runner, log):
        self.config = config
        self.runner = runner
        self.log = log
        self.count = 0

    def __call__(self):
        from httpwatch.display import format_done, format_error, format_record, format_run_header
        from httpwatch.runner import run_cycle

        self.count += 1
        click.echo(format_run_header(self.count, datetime.now()))
        records = run_cycle(
            self.config,
            self.runner,
            on_record=lambda r: click.echo(format_record(r)),
            on_error=lambda e: click.echo(format_error(e)),
            log=self.log,
        )
        click.echo(format_done())
        return records

    def reload(self, path):
        click.clear()
        self.log.debug("Change detected: %s", path)
        return self()
