"""Fixture resolution and packaging for source uploads."""

import gzip
import io
from pathlib import Path
import tarfile

import structlog

from deploy_harness.errors import FixtureNotFoundError
from deploy_harness.models import Fixture

logger = structlog.get_logger(__name__)

EXCLUDED_NAMES = frozenset({".git"})


def resolve_fixture(ref: str | Path, base_dir: Path | None = None) -> Fixture:
    """Resolve a fixture path or name to an immutable Fixture.

    Args:
        ref: Directory path, or a bare name looked up under ``base_dir``
        base_dir: Directory holding named fixtures (e.g. spec/fixtures/repos)

    Raises:
        FixtureNotFoundError: No such directory, or it is empty
    """
    candidate = Path(ref).expanduser()
    if not candidate.is_dir() and base_dir is not None:
        candidate = Path(base_dir).expanduser() / ref

    if not candidate.is_dir():
        raise FixtureNotFoundError(f"Fixture directory not found: {ref}")
    if not any(candidate.iterdir()):
        raise FixtureNotFoundError(f"Fixture directory is empty: {candidate}")

    root = candidate.resolve()
    return Fixture(name=root.name, root=root)


def _iter_files(root: Path):
    for path in sorted(root.rglob("*")):
        relative = path.relative_to(root)
        if EXCLUDED_NAMES.intersection(relative.parts):
            continue
        if path.is_file():
            yield path, relative


def archive_fixture(fixture: Fixture) -> bytes:
    """Pack fixture contents into a gzipped tarball.

    Members are ordered by path and carry no ownership or mtime data, so the
    same tree always yields the same archive.
    """
    buffer = io.BytesIO()
    with (
        gzip.GzipFile(filename="", mode="wb", fileobj=buffer, mtime=0) as gz,
        tarfile.open(fileobj=gz, mode="w") as tar,
    ):
        for path, relative in _iter_files(fixture.root):
            info = tar.gettarinfo(str(path), arcname=relative.as_posix())
            info.uid = info.gid = 0
            info.uname = info.gname = ""
            info.mtime = 0
            with path.open("rb") as fh:
                tar.addfile(info, fh)

    data = buffer.getvalue()
    logger.debug("fixture_archived", fixture=fixture.name, size_bytes=len(data))
    return data
