import gzip
import io
import tarfile

from pydantic import ValidationError
import pytest

from deploy_harness.errors import FixtureNotFoundError, Stage
from deploy_harness.fixtures import archive_fixture, resolve_fixture
from deploy_harness.models import Fixture

from fakes import FIXTURES_DIR


def _members(archive: bytes) -> dict[str, bytes]:
    with tarfile.open(fileobj=io.BytesIO(archive), mode="r:gz") as tar:
        return {
            m.name: tar.extractfile(m).read() for m in tar.getmembers() if m.isfile()
        }


class TestResolveFixture:
    def test_resolves_path(self):
        fixture = resolve_fixture(FIXTURES_DIR / "node-21")

        assert fixture.name == "node-21"
        assert fixture.root == (FIXTURES_DIR / "node-21").resolve()

    def test_resolves_name_under_base_dir(self):
        fixture = resolve_fixture("node-21", base_dir=FIXTURES_DIR)

        assert fixture.root == (FIXTURES_DIR / "node-21").resolve()

    def test_missing_directory(self, tmp_path):
        with pytest.raises(FixtureNotFoundError) as exc_info:
            resolve_fixture("node-99", base_dir=tmp_path)

        assert exc_info.value.stage is Stage.FIXTURE

    def test_empty_directory(self, tmp_path):
        (tmp_path / "empty").mkdir()

        with pytest.raises(FixtureNotFoundError, match="empty"):
            resolve_fixture(tmp_path / "empty")

    def test_file_is_not_a_fixture(self, tmp_path):
        path = tmp_path / "app.js"
        path.write_text("console.log('hi')")

        with pytest.raises(FixtureNotFoundError):
            resolve_fixture(path)

    def test_fixture_is_immutable(self):
        fixture = resolve_fixture(FIXTURES_DIR / "node-21")

        with pytest.raises(ValidationError):
            fixture.name = "other"


class TestArchiveFixture:
    def test_contains_app_files(self):
        fixture = resolve_fixture(FIXTURES_DIR / "node-21")

        members = _members(archive_fixture(fixture))

        assert set(members) == {"Procfile", "index.js", "package.json"}
        assert b"Hello, world!" in members["index.js"]

    def test_skips_git_directory(self, tmp_path):
        root = tmp_path / "app"
        (root / ".git").mkdir(parents=True)
        (root / ".git" / "HEAD").write_text("ref: refs/heads/main\n")
        (root / "lib").mkdir()
        (root / "lib" / "server.js").write_text("module.exports = {}\n")

        members = _members(archive_fixture(Fixture(name="app", root=root)))

        assert set(members) == {"lib/server.js"}

    def test_archive_is_deterministic(self):
        fixture = resolve_fixture(FIXTURES_DIR / "node-21")

        first = archive_fixture(fixture)
        second = archive_fixture(fixture)

        assert first == second
        assert gzip.decompress(first)
