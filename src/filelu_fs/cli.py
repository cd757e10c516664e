"""Command-line interface for filelu_fs."""

from __future__ import annotations

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

import click

from filelu_fs import (
    FileInfo,
    FileLuClient,
    FileLuError,
    FolderInfo,
    PartialFailureError,
    UploadState,
    get_settings,
)


def get_client(key: str | None = None, root: str | None = None) -> FileLuClient:
    """Create a FileLuClient from options, the environment and any .env file."""
    settings = get_settings(key=key, root=root)
    return FileLuClient.from_settings(settings)


@contextmanager
def _client_session(ctx: click.Context) -> Iterator[FileLuClient]:
    """Open a client for one command and turn library errors into exit code 1."""
    try:
        client = get_client(ctx.obj["key"], ctx.obj["root"])
    except FileLuError as e:
        click.echo(click.style(f"Configuration error: {e}", fg="red"), err=True)
        sys.exit(1)
    try:
        yield client
    except PartialFailureError as e:
        click.echo(click.style(f"Partial failure: {e}", fg="yellow"), err=True)
        sys.exit(1)
    except FileLuError as e:
        click.echo(click.style(f"Error: {e}", fg="red"), err=True)
        sys.exit(1)
    finally:
        client.close()


@click.group()
@click.version_option(package_name="filelu-fs")
@click.option("--key", "-k", envvar="FILELU_KEY", help="FileLu rclone key")
@click.option(
    "--root",
    "-r",
    default=None,
    help="Folder id, name:id, file code or path used as root",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.pass_context
def main(ctx: click.Context, key: str | None, root: str | None, verbose: bool) -> None:
    """FileLu CLI - Browse and manage FileLu storage by path."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    ctx.ensure_object(dict)
    ctx.obj["key"] = key
    ctx.obj["root"] = root


@main.command("ls")
@click.argument("path", default="")
@click.pass_context
def list_folder(ctx: click.Context, path: str) -> None:
    """List contents of a folder.

    PATH: Folder path to list (default: root)

    Examples:

        filelu ls

        filelu ls Documents

        filelu ls "(42) Documents/(17) Reports"
    """
    with _client_session(ctx) as client:
        items = client.list_folder(path)

        if not items:
            click.echo(f"(empty folder: {path or '/'})")
        for item in items:
            if isinstance(item, FolderInfo):
                click.echo(click.style(f"  {item.path}/", fg="blue"))
            elif isinstance(item, FileInfo):
                click.echo(f"  {item.path}  ({_format_size(item.size)})")


@main.command()
@click.argument("files", nargs=-1, required=True, type=click.Path(exists=True, path_type=Path))
@click.option("--folder", "-f", default="", help="Target folder (default: root)")
@click.option(
    "--create-folder",
    is_flag=True,
    help="Create the target folder if it doesn't exist",
)
@click.option("--stop-on-error", is_flag=True, help="Stop at the first failed file")
@click.pass_context
def upload(
    ctx: click.Context,
    files: tuple[Path, ...],
    folder: str,
    create_folder: bool,
    stop_on_error: bool,
) -> None:
    """Upload files to FileLu.

    FILES: One or more local files to upload.

    Examples:

        filelu upload report.pdf

        filelu upload *.pdf --folder Documents/Articles --create-folder
    """
    with _client_session(ctx) as client:
        results = client.upload_many(
            list(files),
            folder,
            create_folder=create_folder,
            stop_on_error=stop_on_error,
        )

        done = 0
        for result in results:
            if result.state is UploadState.DONE:
                click.echo(
                    click.style("✓ ", fg="green") + f"{result.file_name} -> {result.cloud_path}"
                )
                done += 1
            elif result.state is UploadState.DUPLICATE:
                click.echo(
                    click.style("= ", fg="yellow")
                    + f"{result.file_name}: already in {result.cloud_path}, skipped"
                )
                done += 1
            else:
                click.echo(
                    click.style("✗ ", fg="red") + f"{result.file_name}: {result.error}",
                    err=True,
                )

        total = len(results)
        if done == total:
            click.echo(click.style(f"\nAll {total} file(s) uploaded successfully!", fg="green"))
        else:
            click.echo(f"\n{done}/{total} file(s) uploaded.", err=True)
            sys.exit(1)


@main.command()
@click.argument("path")
@click.option("--parents", "-p", is_flag=True, help="Create parent directories as needed")
@click.pass_context
def mkdir(ctx: click.Context, path: str, parents: bool) -> None:
    """Create a folder.

    PATH: Folder path to create

    Examples:

        filelu mkdir Inbox/Articles

        filelu mkdir Documents/Work/Projects --parents
    """
    with _client_session(ctx) as client:
        folder = client.mkdir(path, parents=parents)
        click.echo(click.style(f"Created folder: {folder.path}", fg="green"))


@main.command()
@click.argument("path")
@click.pass_context
def rmdir(ctx: click.Context, path: str) -> None:
    """Remove an empty folder."""
    with _client_session(ctx) as client:
        client.rmdir(path)
        click.echo(click.style(f"Removed folder: {path}", fg="green"))


@main.command("rm")
@click.argument("paths", nargs=-1, required=True)
@click.pass_context
def remove(ctx: click.Context, paths: tuple[str, ...]) -> None:
    """Delete files given as "(file_code) name" paths."""
    with _client_session(ctx) as client:
        for path in paths:
            client.remove(path)
            click.echo(f"Deleted: {path}")


@main.command("mv")
@click.argument("source")
@click.argument("dest")
@click.pass_context
def move(ctx: click.Context, source: str, dest: str) -> None:
    """Move a file or folder.

    Examples:

        filelu mv "(abc123def456) a.txt" Archive/a.txt

        filelu mv "(42) Old" Archive/Old
    """
    with _client_session(ctx) as client:
        results = client.move(source, dest)
        skipped = [r for r in results if r.state is UploadState.DUPLICATE]
        click.echo(
            click.style(f"Moved {len(results) - len(skipped)} file(s) to {dest}", fg="green")
        )
        for result in skipped:
            click.echo(f"  {result.cloud_path}: duplicate at destination, source kept")


@main.command("get")
@click.argument("path")
@click.argument("dest", type=click.Path(path_type=Path))
@click.option("--delete", is_flag=True, help="Delete the remote file after downloading")
@click.pass_context
def download(ctx: click.Context, path: str, dest: Path, delete: bool) -> None:
    """Download a file to a local path."""
    with _client_session(ctx) as client:
        if delete:
            written = client.move_to_local(path, dest)
        else:
            written = client.download(path, dest)
        click.echo(f"{dest} ({_format_size(written)})")


@main.command()
@click.pass_context
def about(ctx: click.Context) -> None:
    """Show storage usage."""
    with _client_session(ctx) as client:
        usage = client.about()
        click.echo(f"Total: {_format_size(usage.total)}")
        click.echo(f"Used:  {_format_size(usage.used)}")
        click.echo(f"Free:  {_format_size(usage.free)}")


def _format_size(size_bytes: int) -> str:
    """Format file size in human-readable form."""
    for unit in ["B", "KB", "MB", "GB"]:
        if size_bytes < 1024:
            return f"{size_bytes:.1f} {unit}" if unit != "B" else f"{size_bytes} {unit}"
        size_bytes /= 1024  # type: ignore[assignment]
    return f"{size_bytes:.1f} TB"


if __name__ == "__main__":
    main()
