"""CLI entry points: pmemo parse-log, pmemo parse-config, pmemo search, pmemo suggest, ..."""

from __future__ import annotations

import json
import logging
import os
from dataclasses import asdict

import click

from .config import Config
from .models import Category
from .store import Store
from .transcripts.command_log import PARSE_MODES

_LOGGER = logging.getLogger(__name__)

_PREVIEW_LINES = 5


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx: click.Context, verbose: bool) -> None:
    """Penguin Memo: shell commands, SSH servers and session logs."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    ctx.ensure_object(dict)
    Config().load_env_file()  # Seed os.environ before constructing final config
    ctx.obj["config"] = Config()


def _open_store(config: Config) -> Store:
    try:
        return Store(config.store_path)
    except RuntimeError as e:
        raise click.ClickException(str(e))


# --- Transcript import ---


@cli.command("parse-log")
@click.argument("transcript", type=click.File("r"), default="-")
@click.option("--mode", type=click.Choice(PARSE_MODES), default=None, help="auto: detect commands by prompt and verb; lines: one command per line")
@click.option("--exclude", "-x", type=int, multiple=True, help="Drop entry #N before committing (repeatable)")
@click.option("--edit", "edits", multiple=True, metavar="N:FIELD=VALUE", help="Change a field of entry #N (repeatable)")
@click.option("--json", "as_json", is_flag=True, help="Output entries as JSON")
@click.option("--commit", "thread_id", help="Append the entries to this thread")
@click.pass_context
def parse_log(ctx: click.Context, transcript, mode: str | None, exclude: tuple[int, ...], edits: tuple[str, ...], as_json: bool, thread_id: str | None) -> None:
    """Split a pasted terminal transcript into command logs."""
    from .transcripts.command_log import parse_command_log

    config = ctx.obj["config"]
    mode = mode or config.parse_mode
    if mode not in PARSE_MODES:
        raise click.ClickException(f"Invalid parse mode {mode!r} (PM_PARSE_MODE). Use 'auto' or 'lines'.")

    entries = parse_command_log(transcript.read(), mode=mode)
    entries = _review(entries, exclude, edits)

    if as_json:
        click.echo(json.dumps([{**asdict(e), "edit_target": e.edit_target} for e in entries], indent=2))
    elif not entries:
        click.echo("No commands recognized. Check that the transcript contains prompt lines such as '[user@host dir]$ ls'.")
        return
    else:
        click.echo(f"Found {len(entries)} command(s)")
        for index, entry in enumerate(entries, start=1):
            context = "@".join(p for p in (entry.user, entry.directory) if p)
            click.echo(f"\n#{index} {'[' + context + '] ' if context else ''}$ {entry.command}")
            if entry.edit_target:
                click.echo(f"  (edits {entry.edit_target})")
            _echo_preview(entry.output)

    if thread_id and entries:
        store = _open_store(config)
        try:
            created = store.append_logs(thread_id, entries)
        except KeyError as e:
            raise click.ClickException(str(e.args[0]))
        _reindex_if_enabled(config, store)
        if not as_json:
            click.echo(f"\nSaved {len(created)} log(s) to thread {thread_id}")


@cli.command("parse-config")
@click.argument("transcript", type=click.File("r"), default="-")
@click.option("--exclude", "-x", type=int, multiple=True, help="Drop entry #N before committing (repeatable)")
@click.option("--edit", "edits", multiple=True, metavar="N:FIELD=VALUE", help="Change a field of entry #N (repeatable)")
@click.option("--json", "as_json", is_flag=True, help="Output entries as JSON")
@click.option("--commit", "server_id", help="Save the files under this server")
@click.pass_context
def parse_config(ctx: click.Context, transcript, exclude: tuple[int, ...], edits: tuple[str, ...], as_json: bool, server_id: str | None) -> None:
    """Extract config files shown with `pwd` / `cat <file>` from a transcript."""
    from .transcripts.config_files import parse_config_transcript

    config = ctx.obj["config"]
    entries = _review(parse_config_transcript(transcript.read()), exclude, edits)

    if as_json:
        click.echo(json.dumps([asdict(e) for e in entries], indent=2))
    elif not entries:
        click.echo("No config files recognized. Check that the transcript contains 'cat <file>' commands.")
        return
    else:
        click.echo(f"Found {len(entries)} config file(s)")
        for index, entry in enumerate(entries, start=1):
            click.echo(f"\n#{index} {entry.path} ({entry.type})")
            _echo_preview(entry.content)

    if server_id and entries:
        store = _open_store(config)
        try:
            created = store.append_configs(server_id, entries)
        except KeyError as e:
            raise click.ClickException(str(e.args[0]))
        _reindex_if_enabled(config, store)
        if not as_json:
            click.echo(f"\nSaved {len(created)} config file(s) to server {server_id}")


@cli.command("detect-type")
@click.argument("path")
def detect_type_cmd(path: str) -> None:
    """Print the config category inferred from a file path."""
    from .transcripts.config_files import detect_type

    click.echo(detect_type(path))


# --- Servers, threads, logs ---


@cli.command("add-server")
@click.argument("name")
@click.argument("host")
@click.option("--user", "username", default="", help="SSH username")
@click.option("--port", type=int, default=22)
@click.option("--auth-type", type=click.Choice(["password", "key"]), default="password")
@click.option("--auth-value", default="", help="Password, or key path/content")
@click.option("--project", default="")
@click.option("--description", default="")
@click.option("--tag", "tags", multiple=True)
@click.pass_context
def add_server(ctx: click.Context, name: str, host: str, username: str, port: int, auth_type: str, auth_value: str, project: str, description: str, tags: tuple[str, ...]) -> None:
    """Register an SSH server."""
    store = _open_store(ctx.obj["config"])
    server = store.add_server(
        name, host,
        username=username, port=port, auth_type=auth_type, auth_value=auth_value,
        project=project, description=description, tags=list(tags),
    )
    click.echo(server.id)


@cli.command()
@click.option("--project", default=None, help="Only list servers of this project")
@click.pass_context
def servers(ctx: click.Context, project: str | None) -> None:
    """List registered servers."""
    store = _open_store(ctx.obj["config"])
    for server in store.servers_in(project):
        login = f"{server.username}@{server.host}" if server.username else server.host
        port = f":{server.port}" if server.port != 22 else ""
        label = f"  [{server.project}]" if server.project else ""
        click.echo(f"{server.id}  {server.name}  {login}{port}{label}")


@cli.command("delete-server")
@click.argument("server_id")
@click.confirmation_option(prompt="Delete the server with all of its threads, logs and config files?")
@click.pass_context
def delete_server(ctx: click.Context, server_id: str) -> None:
    """Delete a server together with its threads, logs and config files."""
    config = ctx.obj["config"]
    store = _open_store(config)
    try:
        store.delete_server(server_id)
    except KeyError as e:
        raise click.ClickException(str(e.args[0]))
    _reindex_if_enabled(config, store)
    click.echo(f"Deleted server {server_id}")


@cli.command("add-thread")
@click.argument("server_id")
@click.argument("title")
@click.pass_context
def add_thread(ctx: click.Context, server_id: str, title: str) -> None:
    """Start a new session thread on a server."""
    store = _open_store(ctx.obj["config"])
    try:
        thread = store.add_thread(server_id, title)
    except KeyError as e:
        raise click.ClickException(str(e.args[0]))
    click.echo(thread.id)


@cli.command("add-log")
@click.argument("thread_id")
@click.argument("command")
@click.option("--output", default="", help="Command output")
@click.option("--user", default=None)
@click.option("--directory", default=None)
@click.option("--before", type=click.File("r"), help="File contents before an editor session")
@click.option("--after", type=click.File("r"), help="File contents after an editor session")
@click.pass_context
def add_log(ctx: click.Context, thread_id: str, command: str, output: str, user: str | None, directory: str | None, before, after) -> None:
    """Add a single command log to a thread."""
    from .transcripts.lines import detect_editor

    config = ctx.obj["config"]
    command = command.strip()
    if not command:
        raise click.ClickException("Command is empty.")

    invocation = detect_editor(command)
    if invocation and not (before or after):
        target = invocation.target_filename or "<file>"
        click.echo(f"File edit detected ({invocation.editor} {target}).")
        click.echo(f"  Capture contents with: cat {target}  (then pass --before/--after)")

    store = _open_store(config)
    try:
        log = store.add_log(
            thread_id, command, output,
            user=(user or "").strip() or None,
            directory=(directory or "").strip() or None,
            file_content_before=before.read() if before else None,
            file_content_after=after.read() if after else None,
        )
    except KeyError as e:
        raise click.ClickException(str(e.args[0]))
    _reindex_if_enabled(config, store)
    click.echo(log.id)


@cli.command()
@click.argument("server_id")
@click.pass_context
def threads(ctx: click.Context, server_id: str) -> None:
    """List the threads of a server."""
    store = _open_store(ctx.obj["config"])
    for thread in store.threads_for(server_id):
        count = len(store.logs_for(thread.id))
        click.echo(f"{thread.id}  {thread.title}  ({count} log(s))")


@cli.command()
@click.argument("thread_id")
@click.pass_context
def logs(ctx: click.Context, thread_id: str) -> None:
    """Show the command logs of a thread in order."""
    store = _open_store(ctx.obj["config"])
    for log in store.logs_for(thread_id):
        context = "@".join(p for p in (log.user, log.directory) if p)
        click.echo(f"\n[{log.order}] {'[' + context + '] ' if context else ''}$ {log.command}")
        if log.note:
            click.echo(f"  # {log.note}")
        _echo_preview(log.output or "")


@cli.command()
@click.argument("server_id")
@click.pass_context
def configs(ctx: click.Context, server_id: str) -> None:
    """List the config files saved for a server."""
    store = _open_store(ctx.obj["config"])
    for config_file in store.configs_for(server_id):
        lines = len(config_file.content.splitlines())
        click.echo(f"{config_file.id}  {config_file.path}  [{config_file.type}]  {lines} line(s)")


@cli.command("rename-thread")
@click.argument("thread_id")
@click.argument("title")
@click.pass_context
def rename_thread(ctx: click.Context, thread_id: str, title: str) -> None:
    """Change the title of a thread."""
    store = _open_store(ctx.obj["config"])
    try:
        store.update_thread(thread_id, title=title)
    except KeyError as e:
        raise click.ClickException(str(e.args[0]))
    click.echo(f"Renamed thread {thread_id}")


@cli.command("delete-thread")
@click.argument("thread_id")
@click.confirmation_option(prompt="Delete the thread and its command logs?")
@click.pass_context
def delete_thread(ctx: click.Context, thread_id: str) -> None:
    """Delete a thread and its command logs."""
    config = ctx.obj["config"]
    store = _open_store(config)
    try:
        store.delete_thread(thread_id)
    except KeyError as e:
        raise click.ClickException(str(e.args[0]))
    _reindex_if_enabled(config, store)
    click.echo(f"Deleted thread {thread_id}")


# --- Command library ---

_CATEGORY_CHOICE = click.Choice([c.name for c in Category] + [c.value for c in Category], case_sensitive=False)


@cli.command("add-command")
@click.argument("command")
@click.option("--description", default="")
@click.option("--output", default="", help="Example output")
@click.option("--category", type=_CATEGORY_CHOICE, default=Category.OTHER.value)
@click.option("--tag", "tags", multiple=True)
@click.pass_context
def add_command(ctx: click.Context, command: str, description: str, output: str, category: str, tags: tuple[str, ...]) -> None:
    """Save a reusable command to the library."""
    command = command.strip()
    if not command:
        raise click.ClickException("Command is empty.")
    store = _open_store(ctx.obj["config"])
    item = store.add_command(command, description, output, category=Category.parse(category), tags=tags)
    click.echo(item.id)


@cli.command()
@click.option("--category", type=_CATEGORY_CHOICE, default=None, help="Only list this category")
@click.option("--json", "as_json", is_flag=True, help="Output commands as JSON")
@click.pass_context
def commands(ctx: click.Context, category: str | None, as_json: bool) -> None:
    """List library commands, newest first."""
    store = _open_store(ctx.obj["config"])
    items = store.commands_in(Category.parse(category) if category else None)
    if as_json:
        click.echo(json.dumps([asdict(c) for c in items], indent=2))
        return
    for item in items:
        click.echo(f"{item.id}  [{item.category}]  {item.command}")
        if item.description:
            click.echo(f"  {item.description}")


@cli.command("delete-command")
@click.argument("command_id")
@click.pass_context
def delete_command(ctx: click.Context, command_id: str) -> None:
    """Remove a command from the library."""
    store = _open_store(ctx.obj["config"])
    try:
        store.delete_command(command_id)
    except KeyError as e:
        raise click.ClickException(str(e.args[0]))
    click.echo(f"Deleted command {command_id}")


# --- Search ---


@cli.command()
@click.argument("query")
@click.option("--limit", "-n", type=int, default=10, help="Max results to return")
@click.option("--source", type=click.Choice(["logs", "configs"]), default=None, help="Only search command logs or config files")
@click.option("--server", "server_id", default=None, help="Only search records of this server")
@click.option("--reindex", is_flag=True, help="Rebuild the search index before searching")
@click.option("--json", "as_json", is_flag=True, help="Output results as JSON")
@click.pass_context
def search(ctx: click.Context, query: str, limit: int, source: str | None, server_id: str | None, reindex: bool, as_json: bool) -> None:
    """Search saved command logs and config files."""
    from .search import DocumentSource, get_backend, reindex as do_reindex

    config = ctx.obj["config"]

    try:
        backend = get_backend(config.search_backend, config)
    except ValueError as e:
        raise click.ClickException(f"{e} (PM_SEARCH_BACKEND)")

    if reindex or not backend.is_ready():
        n = do_reindex(config, _open_store(config))
        if not as_json:
            click.echo(f"Indexed {n} document(s)" if reindex else f"Built index ({n} document(s))")
        # Reload: reindex wrote through its own backend instance
        backend = get_backend(config.search_backend, config)

    results = backend.search(
        query,
        limit=limit,
        source=DocumentSource(source) if source else None,
        server_id=server_id,
    )

    if as_json:
        output = [
            {
                "rank": r.rank,
                "score": r.score,
                "doc_id": r.document.doc_id,
                "source": r.document.source.value,
                "heading": r.document.heading,
                "content": r.document.content[:500],
            }
            for r in results
        ]
        click.echo(json.dumps(output, indent=2))
    elif results:
        for r in results:
            click.echo(f"\n--- [{r.rank}] {r.document.source.value}: {r.document.heading} (score: {r.score:.2f}) ---")
            _echo_preview(r.document.content)
    else:
        click.echo("No results found.")


# --- LLM helpers ---


@cli.command()
@click.argument("query")
@click.option("--save", is_flag=True, help="Add the suggestion to the command library")
@click.pass_context
def suggest(ctx: click.Context, query: str, save: bool) -> None:
    """Suggest a Linux command for a natural-language request."""
    from .assist import suggest_command

    config = ctx.obj["config"]
    try:
        suggestion = suggest_command(query, config)
    except Exception as e:
        raise click.ClickException(f"Command generation failed: {e}")

    click.echo(suggestion.command)
    if suggestion.description:
        click.echo(f"  {suggestion.description}")
    click.echo(f"  Category: {suggestion.category.value}")
    if save:
        item = _open_store(config).add_command(
            suggestion.command, suggestion.description, category=suggestion.category,
        )
        click.echo(f"Saved to library as {item.id}")


@cli.command()
@click.argument("log_id")
@click.option("--save", is_flag=True, help="Store the note on the log")
@click.pass_context
def note(ctx: click.Context, log_id: str, save: bool) -> None:
    """Write a short note explaining a logged command and its result."""
    from .assist import summarize_log

    config = ctx.obj["config"]
    store = _open_store(config)
    try:
        log = store.get_log(log_id)
    except KeyError as e:
        raise click.ClickException(str(e.args[0]))

    try:
        text = summarize_log(log.command, log.output or "", config)
    except Exception as e:
        raise click.ClickException(f"Note generation failed: {e}")

    click.echo(text)
    if save:
        store.update_log(log_id, note=text)
        _reindex_if_enabled(config, store)
        click.echo("Note saved.")


# --- Setup ---


@cli.command()
@click.pass_context
def install(ctx: click.Context) -> None:
    """Create the data directory and the env file for API keys."""
    config = ctx.obj["config"]
    config.ensure_data_dir()
    click.echo(f"Data dir: {config.data_dir}")

    if config.ensure_env_file():
        click.echo(f"Created {config.env_file}")
        click.echo(f"  Add your API key: {config.env_file}")
    else:
        click.echo(f"Env file: {config.env_file} (already exists)")


@cli.command()
@click.pass_context
def status(ctx: click.Context) -> None:
    """Show the knowledge base location, contents and configuration."""
    from .search import get_backend

    config = ctx.obj["config"]

    click.echo("Penguin Memo Status")
    click.echo("=" * 40)

    click.echo(f"\nData dir: {config.data_dir}")
    click.echo(f"  Exists: {config.data_dir.exists()}")

    if config.store_path.exists():
        store = _open_store(config)
        click.echo(f"\nStore: {config.store_path}")
        click.echo(
            f"  Commands: {len(store.commands)}, Servers: {len(store.servers)}, Threads: {len(store.threads)}, "
            f"Logs: {len(store.logs)}, Configs: {len(store.configs)}"
        )
    else:
        click.echo("\nStore: not created yet")

    click.echo(f"\nParse mode: {config.parse_mode}")
    try:
        ready = get_backend(config.search_backend, config).is_ready()
        click.echo(f"Search backend: {config.search_backend} ({'indexed' if ready else 'not indexed'})")
    except ValueError as e:
        click.echo(f"Search backend: {e}")

    click.echo(f"\nEnv file: {config.env_file}")
    if config.env_file.exists():
        env_lines = [
            l.strip() for l in config.env_file.read_text().splitlines()
            if l.strip() and not l.strip().startswith("#")
        ]
        click.echo(f"  Exists: yes ({len(env_lines)} key(s) configured)")
    else:
        click.echo("  Exists: no (run 'pmemo install' to create)")

    click.echo(f"\nAnthropic API key: {'set' if os.environ.get('ANTHROPIC_API_KEY') else 'not set'}")
    click.echo(f"OpenAI API key: {'set' if os.environ.get('OPENAI_API_KEY') else 'not set'}")


# --- Helpers ---


def _review(entries: list, exclude: tuple[int, ...], edits: tuple[str, ...]) -> list:
    """Apply --edit and --exclude (1-based entry numbers) to freshly parsed entries."""
    from .transcripts.review import remove_entry, update_entry

    numbered = {index: entry.id for index, entry in enumerate(entries, start=1)}

    for edit in edits:
        number, field, value = _parse_edit(edit)
        if number not in numbered:
            raise click.BadParameter(f"No entry #{number}", param_hint="--edit")
        try:
            entries = update_entry(entries, numbered[number], **{field: value})
        except ValueError as e:
            raise click.BadParameter(str(e), param_hint="--edit")

    for number in exclude:
        if number not in numbered:
            raise click.BadParameter(f"No entry #{number}", param_hint="--exclude")
        entries = remove_entry(entries, numbered[number])

    return entries


def _parse_edit(edit: str) -> tuple[int, str, str]:
    number, sep, assignment = edit.partition(":")
    field, eq, value = assignment.partition("=")
    if not sep or not eq or not number.strip().isdigit() or not field.strip():
        raise click.BadParameter(f"Expected N:FIELD=VALUE, got {edit!r}", param_hint="--edit")
    return int(number), field.strip(), value.replace("\\n", "\n")


def _echo_preview(text: str) -> None:
    lines = text.splitlines()
    for line in lines[:_PREVIEW_LINES]:
        click.echo(f"  {line}")
    if len(lines) > _PREVIEW_LINES:
        click.echo(f"  ... ({len(lines) - _PREVIEW_LINES} more lines)")


def _reindex_if_enabled(config: Config, store: Store) -> None:
    """Rebuild the search index after writes; a search failure never blocks a save."""
    if config.search_backend == "none":
        return
    try:
        from .search import reindex
        reindex(config, store)
    except Exception as e:
        _LOGGER.warning("Search reindex failed: %s", e)
