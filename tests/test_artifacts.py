"""Artifact storage and ReportPublisher tests: naming, collision
avoidance, path validation and self-healing downloads."""

import pytest

from sugb_reports.artifacts import (
    LocalArtifactStore,
    ReportPublisher,
    artifact_name_from_ref,
    validate_artifact_name,
)
from sugb_reports.exceptions import ArtifactNotFoundError, ReportNotFoundError
from sugb_reports.interfaces import ReportRenderer
from sugb_reports.models import ReportOptions

RESPONSE_ID = "11111111-2222-3333-4444-555555555555"
FIXED_CLOCK = 1_700_000_000.123


class FakeRenderer(ReportRenderer):
    """Returns a tiny fake PDF; unknown ids raise ReportNotFoundError."""

    def __init__(self, known=(RESPONSE_ID,)):
        self.known = set(known)
        self.calls = []

    async def render(self, survey_response_id, options):
        self.calls.append((survey_response_id, options))
        if survey_response_id not in self.known:
            raise ReportNotFoundError(f"Survey response not found: {survey_response_id}")
        return f"%PDF-fake {survey_response_id} #{len(self.calls)}".encode()


@pytest.fixture
def store(tmp_path):
    return LocalArtifactStore(tmp_path / "pdfs")


@pytest.fixture
def renderer():
    return FakeRenderer()


@pytest.fixture
def publisher(renderer, store):
    return ReportPublisher(renderer, store, clock=lambda: FIXED_CLOCK)


# =====================================================================
# Name helpers
# =====================================================================


@pytest.mark.parametrize("name", ["", ".", "..", ".hidden.pdf", "a/b.pdf", "..\\x.pdf", "a\x00.pdf"])
def test_invalid_artifact_names(name):
    with pytest.raises(ValueError, match="Invalid artifact name"):
        validate_artifact_name(name)


def test_artifact_name_from_ref():
    assert artifact_name_from_ref("/api/v1/reports/download/x.pdf") == "x.pdf"
    assert artifact_name_from_ref("x.pdf") == "x.pdf"


# =====================================================================
# LocalArtifactStore
# =====================================================================


class TestLocalArtifactStore:
    """Flat-file storage with atomic writes."""

    @pytest.mark.asyncio
    async def test_write_read_exists(self, store):
        assert not await store.exists("a.pdf")
        await store.write("a.pdf", b"%PDF-1")
        assert await store.exists("a.pdf")
        assert await store.read("a.pdf") == b"%PDF-1"

    @pytest.mark.asyncio
    async def test_overwrite_leaves_no_temp_files(self, store):
        await store.write("a.pdf", b"one")
        await store.write("a.pdf", b"two")
        assert await store.read("a.pdf") == b"two"
        assert [p.name for p in store.directory.iterdir()] == ["a.pdf"]

    @pytest.mark.asyncio
    async def test_missing_read_raises(self, store):
        with pytest.raises(ArtifactNotFoundError):
            await store.read("missing.pdf")

    @pytest.mark.asyncio
    async def test_path_traversal_rejected(self, store):
        with pytest.raises(ValueError):
            await store.read("../etc/passwd")


# =====================================================================
# Publish
# =====================================================================


class TestPublish:
    """Naming and collision handling."""

    @pytest.mark.asyncio
    async def test_publish_names_and_stores(self, publisher, store):
        ref = await publisher.publish(RESPONSE_ID, ReportOptions())
        name = f"sugb-report-{RESPONSE_ID}-1700000000123.pdf"
        assert ref == f"/api/v1/reports/download/{name}"
        assert await store.read(name) == f"%PDF-fake {RESPONSE_ID} #1".encode()

    @pytest.mark.asyncio
    async def test_same_millisecond_publish_bumps_stamp(self, publisher):
        first = await publisher.publish(RESPONSE_ID, ReportOptions())
        second = await publisher.publish(RESPONSE_ID, ReportOptions())
        assert first.endswith("-1700000000123.pdf")
        assert second.endswith("-1700000000124.pdf")

    @pytest.mark.asyncio
    async def test_publish_unknown_response_stores_nothing(self, publisher, store):
        with pytest.raises(ReportNotFoundError):
            await publisher.publish("99999999-2222-3333-4444-555555555555", ReportOptions())
        assert not store.directory.exists()

    @pytest.mark.asyncio
    async def test_custom_download_prefix(self, renderer, store):
        publisher = ReportPublisher(
            renderer, store, download_prefix="/files/", clock=lambda: FIXED_CLOCK,
        )
        ref = await publisher.publish(RESPONSE_ID, ReportOptions())
        assert ref.startswith("/files/sugb-report-")


# =====================================================================
# Fetch
# =====================================================================


class TestFetch:
    """Downloads, including regeneration of vanished artifacts."""

    @pytest.mark.asyncio
    async def test_fetch_existing(self, publisher, renderer):
        ref = await publisher.publish(RESPONSE_ID, ReportOptions())
        data = await publisher.fetch(artifact_name_from_ref(ref))
        assert data == f"%PDF-fake {RESPONSE_ID} #1".encode()
        assert len(renderer.calls) == 1, "Existing artifact must not be re-rendered"

    @pytest.mark.asyncio
    async def test_fetch_missing_regenerates_under_same_name(self, publisher, renderer, store):
        ref = await publisher.publish(RESPONSE_ID, ReportOptions(include_charts=False))
        name = artifact_name_from_ref(ref)
        (store.directory / name).unlink()

        data = await publisher.fetch(name)
        assert data == f"%PDF-fake {RESPONSE_ID} #2".encode()
        assert renderer.calls[-1] == (RESPONSE_ID, ReportOptions()), "Rebuilt with default options"
        assert await store.read(name) == data, "Rebuilt artifact is stored again"

    @pytest.mark.asyncio
    async def test_fetch_uppercase_name_regenerates(self, publisher):
        name = f"SUGB-REPORT-{RESPONSE_ID}-1.PDF"
        data = await publisher.fetch(name)
        assert data.startswith(b"%PDF-fake")

    @pytest.mark.asyncio
    async def test_fetch_unrecognised_missing_name(self, publisher):
        with pytest.raises(ArtifactNotFoundError):
            await publisher.fetch("random.pdf")

    @pytest.mark.asyncio
    async def test_fetch_non_pdf_rejected(self, publisher):
        with pytest.raises(ValueError):
            await publisher.fetch("notes.txt")

    @pytest.mark.asyncio
    async def test_fetch_for_deleted_response(self, publisher):
        name = "sugb-report-99999999-2222-3333-4444-555555555555-1.pdf"
        with pytest.raises(ReportNotFoundError):
            await publisher.fetch(name)
