"""ZIP archive sink.

Fallback output when no directory can be written (picker cancelled, no
permission).  Archives are byte-for-byte reproducible: members are sorted and
carry a fixed timestamp.  ``read_archive`` turns an archive back into a
``FileSource`` so it can be loaded like a directory.
"""

from __future__ import annotations

import io
import zipfile
from collections.abc import Sequence
from functools import partial
from pathlib import Path, PurePosixPath

from anyio import to_thread

from modelkeeper.persistence.loading.source import MemorySource
from modelkeeper.persistence.models.reports import FileRecord
from modelkeeper.persistence.store.local import _atomic_write_bytes

_FIXED_DATE = (1980, 1, 1, 0, 0, 0)


def pack_archive(records: Sequence[FileRecord]) -> bytes:
    """Pack records into an in-memory ZIP."""
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED) as zf:
        for record in sorted(records, key=lambda r: r.path):
            info = zipfile.ZipInfo(record.path, date_time=_FIXED_DATE)
            info.compress_type = zipfile.ZIP_DEFLATED
            info.external_attr = 0o644 << 16
            zf.writestr(info, record.content.encode("utf-8"))
    return buffer.getvalue()


def read_archive(data: bytes, name: str = "") -> MemorySource:
    """Open a ZIP as a ``MemorySource``.

    Directories, absolute paths and ``..`` members are ignored.  Members that
    are not UTF-8 text are skipped; they cannot be workspace files.
    """
    files: dict[str, str] = {}
    with zipfile.ZipFile(io.BytesIO(data), "r") as zf:
        for info in zf.infolist():
            if info.is_dir():
                continue
            path = PurePosixPath(info.filename)
            if path.is_absolute() or ".." in path.parts:
                continue
            try:
                files[str(path)] = zf.read(info).decode("utf-8")
            except UnicodeDecodeError:
                continue
    return MemorySource(files, name=name)


async def write_archive(records: Sequence[FileRecord], path: str | Path) -> Path:
    """Pack ``records`` and write the archive atomically to ``path``."""
    target = Path(path)
    data = pack_archive(records)
    await to_thread.run_sync(partial(_atomic_write_bytes, target, data))
    return target


async def open_archive(path: str | Path) -> MemorySource:
    target = Path(path)
    data = await to_thread.run_sync(target.read_bytes)
    return read_archive(data, name=target.stem)
