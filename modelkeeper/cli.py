from __future__ import annotations

from pathlib import Path

import anyio
import click

from modelkeeper.persistence.errors import WorkspacePersistenceError


@click.group()
@click.option("--log-level", default=None, help="Log level (default: from MODELKEEPER_LOG_LEVEL or INFO).")
def main(log_level: str | None) -> None:
    """Modelkeeper - load, convert and sync data-modeling workspaces."""
    from modelkeeper.persistence.log import setup_logging
    from modelkeeper.persistence.settings import get_settings

    settings = get_settings()
    setup_logging(log_level or settings.log_level, serialize=settings.log_json, log_file=settings.log_path)


async def _open_source(path: Path):
    """A ``FileSource`` for a workspace folder or a ZIP archive."""
    from modelkeeper.persistence.loading.source import DirectorySource
    from modelkeeper.persistence.saving.archive import open_archive
    from modelkeeper.persistence.store.local import LocalDirectoryHandle

    if path.is_file():
        return await open_archive(path)
    return await DirectorySource.open(LocalDirectoryHandle(path))


def _run(func, *args):
    try:
        return anyio.run(func, *args)
    except WorkspacePersistenceError as exc:
        raise click.ClickException(str(exc)) from exc


# ---------------------------------------------------------------------------
# Inspection
# ---------------------------------------------------------------------------


@main.command()
@click.argument("path", type=click.Path(exists=True, path_type=Path))
def detect(path: Path) -> None:
    """Print the layout (v1 or v2) of a workspace folder or archive."""
    from modelkeeper.persistence.layout.detect import detect_format

    async def run() -> None:
        source = await _open_source(path)
        click.echo(detect_format(source.names()).value)

    _run(run)


@main.command()
@click.argument("path", type=click.Path(exists=True, path_type=Path))
@click.option("--json", "as_json", is_flag=True, default=False, help="Print the loaded snapshot as JSON.")
def load(path: Path, as_json: bool) -> None:
    """Load a workspace and print a summary (or the full snapshot)."""
    from modelkeeper.persistence.service import WorkspaceService

    async def run() -> None:
        result = await WorkspaceService().load(await _open_source(path))
        if as_json:
            click.echo(result.snapshot.model_dump_json(indent=2))
            return
        workspace = result.snapshot.workspace
        click.echo(f"{workspace.name} ({result.format.value}, id={workspace.id})")
        for name, count in result.snapshot.resources.counts().items():
            click.echo(f"  {name}: {count}")
        for issue in result.report.issues:
            click.echo(f"  ! {issue.kind.value}: {issue.path or issue.entity_id or ''} {issue.message}", err=True)

    _run(run)


# ---------------------------------------------------------------------------
# Conversion
# ---------------------------------------------------------------------------


@main.command()
@click.argument("source", type=click.Path(exists=True, path_type=Path))
@click.argument("dest", type=click.Path(file_okay=False, path_type=Path))
def save(source: Path, dest: Path) -> None:
    """Load SOURCE (any layout) and sync it into DEST in the flat layout."""
    from modelkeeper.persistence.service import WorkspaceService
    from modelkeeper.persistence.store.local import LocalDirectoryHandle

    async def run() -> None:
        service = WorkspaceService()
        result = await service.load(await _open_source(source))
        dest.mkdir(parents=True, exist_ok=True)
        service.bind_directory(result.snapshot.workspace.id, LocalDirectoryHandle(dest))
        outcome = await service.save(result.snapshot)
        report = outcome.sync
        if report is not None:
            click.echo(
                f"{len(report.written)} written, {len(report.unchanged)} unchanged, "
                f"{len(report.deleted)} deleted, {len(report.failed_deletions)} failed deletion(s)"
            )

    _run(run)


@main.command()
@click.argument("source", type=click.Path(exists=True, path_type=Path))
@click.argument("archive", type=click.Path(dir_okay=False, path_type=Path))
def pack(source: Path, archive: Path) -> None:
    """Load SOURCE and write it as a flat-layout ZIP ARCHIVE."""
    from modelkeeper.persistence.formats.yaml_engine import YamlFormatEngine
    from modelkeeper.persistence.saving.archive import write_archive
    from modelkeeper.persistence.saving.serializer import WorkspaceSerializer
    from modelkeeper.persistence.service import WorkspaceService
    from modelkeeper.persistence.settings import get_settings

    async def run() -> None:
        service = WorkspaceService()
        result = await service.load(await _open_source(source))
        serializer = WorkspaceSerializer(YamlFormatEngine(), write_readme=get_settings().write_readme)
        records = await serializer.serialize_snapshot(result.snapshot)
        path = await write_archive(records, archive)
        click.echo(f"Wrote {len(records)} file(s) to {path}")

    _run(run)


if __name__ == "__main__":
    main()
