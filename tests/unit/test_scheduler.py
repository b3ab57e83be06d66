"""Tests for UploadScheduler — concurrency ceiling and fail-fast behavior."""

from __future__ import annotations

import asyncio
from pathlib import Path

import pytest

from webpub.core.scheduler import UploadScheduler
from webpub.core.uploader import FileUploader
from webpub.core.walker import list_files, resolve_root
from webpub.errors import UploadError, ValidationError


@pytest.fixture
def make_site(tmp_path: Path, make_tree):
    """Factory: a flat tree of *count* files, f0000.txt holding 0 bytes, etc."""

    def _factory(count: int) -> Path:
        files = {f"f{i:04d}.txt": b"x" * i for i in range(count)}
        return resolve_root(make_tree(tmp_path / "site", files))

    return _factory


def _run(scheduler: UploadScheduler, paths: list[Path]):
    return asyncio.run(scheduler.run(paths))


class TestConcurrencyBound:
    @pytest.mark.parametrize("limit", [1, 5, 10, 100])
    def test_never_exceeds_limit(self, make_site, make_backend, limit: int):
        """In-flight uploads must never exceed the limit."""
        root = make_site(150)
        backend = make_backend(delay=0.01)
        scheduler = UploadScheduler(FileUploader(backend, root).upload, limit)

        results = _run(scheduler, list_files(root))

        assert len(results) == 150
        assert backend.peak_in_flight <= limit
        assert scheduler.peak_in_flight <= limit

    def test_limit_is_reached(self, make_site, make_backend):
        """With enough work the limit must be reached."""
        root = make_site(20)
        scheduler = UploadScheduler(
            FileUploader(make_backend(delay=0.05), root).upload, 5
        )
        _run(scheduler, list_files(root))
        assert scheduler.peak_in_flight == 5

    def test_serial_with_limit_one(self, make_site, make_backend):
        """A limit of 1 must upload serially."""
        root = make_site(10)
        backend = make_backend(delay=0.005)
        _run(UploadScheduler(FileUploader(backend, root).upload, 1), list_files(root))
        assert backend.peak_in_flight == 1

    @pytest.mark.parametrize("limit", [0, -3])
    def test_limit_must_be_positive(self, limit: int):
        """Limits below 1 must be rejected."""
        with pytest.raises(ValidationError):
            UploadScheduler(lambda p: None, limit)  # type: ignore[arg-type, return-value]


class TestResults:
    def test_every_file_reported_once(self, make_site, make_backend):
        """Each file must be reported exactly once."""
        root = make_site(30)
        results = _run(
            UploadScheduler(FileUploader(make_backend(), root).upload, 4),
            list_files(root),
        )
        paths = [r.relative_path for r in results]
        assert sorted(paths) == [f"f{i:04d}.txt" for i in range(30)]

    def test_sizes_match_files(self, make_site, make_backend):
        """Reported sizes must match the files."""
        root = make_site(8)
        results = _run(
            UploadScheduler(FileUploader(make_backend(), root).upload, 3),
            list_files(root),
        )
        for r in results:
            assert r.size == int(r.relative_path[1:5])

    def test_empty_input(self):
        """No paths must give no results."""
        scheduler = UploadScheduler(lambda p: None, 3)  # type: ignore[arg-type, return-value]
        assert _run(scheduler, []) == []


class TestFailFast:
    def test_first_failure_is_raised(self, make_site, make_backend):
        """The first failure must be raised with its path."""
        root = make_site(10)
        backend = make_backend(fail_on={"f0003.txt"})
        scheduler = UploadScheduler(FileUploader(backend, root).upload, 2)

        with pytest.raises(UploadError) as excinfo:
            _run(scheduler, list_files(root))

        assert excinfo.value.path == "f0003.txt"
        assert "HTTP 500" in str(excinfo.value)
        assert scheduler.failed

    def test_queued_uploads_do_not_start_after_failure(self, make_site, make_backend):
        """Queued uploads must not start after a failure."""
        root = make_site(10)
        backend = make_backend(fail_on={"f0000.txt"})
        scheduler = UploadScheduler(FileUploader(backend, root).upload, 1)

        with pytest.raises(UploadError):
            _run(scheduler, sorted(list_files(root)))

        assert backend.uploads == []
        assert scheduler.skipped == 9

    def test_unexpected_backend_exception_becomes_upload_error(self, make_site):
        """Unexpected backend errors must surface as UploadError."""
        root = make_site(3)

        class Broken:
            def login(self) -> None:
                pass

            def upload_object(self, source, size=None):
                raise ConnectionResetError("peer reset")

        with pytest.raises(UploadError, match="peer reset"):
            _run(UploadScheduler(FileUploader(Broken(), root).upload, 2), list_files(root))
