import json
from pathlib import Path

import pytest

from app.harvester import config, run
from app.harvester.error_codes import AutomationFailure, ErrorCode
from app.harvester.models import Partition, PartitionStatus
from app.harvester.persister import CSV_HEADER
from app.harvester.snapshot_surface import SnapshotSurface, snapshot_key
from app.harvester.utils import destination_path
from tests.test_harvest_step import SEARCH_URL, page_html, paged_source


@pytest.fixture(autouse=True)
def _settle_delays(monkeypatch):
    monkeypatch.setattr(config, "REVEAL_SETTLE_SECONDS", 0.5)
    monkeypatch.setattr(config, "ADVANCE_SETTLE_SECONDS", 1.0)


class _Factory:
    """Surface factory remembering every session it opened."""

    def __init__(self, pages, surface_cls=SnapshotSurface):
        self.pages = pages
        self.surface_cls = surface_cls
        self.opened = []

    def __call__(self):
        surface = self.surface_cls.from_html(self.pages)
        self.opened.append(surface)
        return surface


class _NextClickFails(SnapshotSurface):
    def click(self, element):
        if element.get("class") and "next-page-btn" in element.get("class"):
            raise AutomationFailure(ErrorCode.CLICK, "next page click intercepted")
        super().click(element)


def _rows(path: Path):
    return path.read_text(encoding="utf-8").splitlines()


def _seed(path: Path, count: int, city: str = "Roma"):
    path.parent.mkdir(parents=True, exist_ok=True)
    rows = [f'Vecchia {i},Cat,"Via Vecchia {i}, {city} (RM)",,,,,,' for i in range(count)]
    path.write_text("\n".join([CSV_HEADER] + rows) + "\n", encoding="utf-8")


def _write_snapshots(city: str, pages):
    city_dir = config.SNAPSHOT_DIR / snapshot_key(city)
    city_dir.mkdir(parents=True)
    for index, page in enumerate(pages, start=1):
        (city_dir / f"page_{index:02d}.html").write_text(page, encoding="utf-8")


def _harvest(factory, city="Roma"):
    return run.harvest_partition(Partition(SEARCH_URL, city), surface_factory=factory)


def test_fresh_partition_harvests_every_page():
    factory = _Factory(paged_source(3))

    result = _harvest(factory)

    destination = destination_path(SEARCH_URL)
    lines = _rows(destination)
    assert result.status == PartitionStatus.COMPLETED
    assert result.checkpoint == 0
    assert result.harvested == 30
    assert result.flushed == 30
    assert lines[0] == CSV_HEADER
    assert lines.count(CSV_HEADER) == 1
    assert [line.split(",")[0] for line in lines[1:]] == [f"Agenzia {i}" for i in range(30)]
    assert factory.opened[0].closed
    assert len(result.sample) == run.SAMPLE_SIZE


def _recording_flush(original, flushes):
    def _flush(self):
        written = original(self)
        if written:
            flushes.append(written)
        return written

    return _flush


def test_fresh_partition_flushes_in_batches(monkeypatch):
    flushes = []
    monkeypatch.setattr(
        run.BatchPersister,
        "flush",
        _recording_flush(run.BatchPersister.flush, flushes),
    )

    _harvest(_Factory(paged_source(3)))

    assert flushes == [20, 10]


def test_resume_skips_saved_rows():
    destination = destination_path(SEARCH_URL)
    _seed(destination, 15)
    factory = _Factory(paged_source(3))

    result = _harvest(factory)

    lines = _rows(destination)
    assert result.checkpoint == 15
    assert result.harvested == 15
    assert result.status == PartitionStatus.COMPLETED
    assert lines.count(CSV_HEADER) == 1
    assert len(lines) == 1 + 30
    new_names = [line.split(",")[0] for line in lines[16:]]
    assert new_names == [f"Agenzia {i}" for i in range(15, 30)]


def test_resume_ignores_other_cities_rows():
    destination = destination_path(SEARCH_URL)
    _seed(destination, 40, city="Milano")

    result = _harvest(_Factory(paged_source(2)))

    assert result.checkpoint == 0
    assert result.harvested == 20


def test_saturated_partition_is_skipped_without_session():
    destination = destination_path(SEARCH_URL)
    _seed(destination, 250)
    factory = _Factory(paged_source(3))

    result = _harvest(factory)

    assert result.status == PartitionStatus.SKIPPED
    assert result.checkpoint == 250
    assert factory.opened == []
    assert len(_rows(destination)) == 251


def test_capped_run_resumes_without_duplicates(monkeypatch):
    monkeypatch.setattr(config, "PARTITION_RECORD_CAP", 20)
    destination = destination_path(SEARCH_URL)

    first = _harvest(_Factory(paged_source(3)))

    assert first.status == PartitionStatus.CAPPED
    assert len(_rows(destination)) == 1 + 20

    monkeypatch.setattr(config, "PARTITION_RECORD_CAP", 200)
    second = _harvest(_Factory(paged_source(3)))

    lines = _rows(destination)
    names = [line.split(",")[0] for line in lines[1:]]
    assert second.checkpoint == 20
    assert second.status == PartitionStatus.COMPLETED
    assert names == [f"Agenzia {i}" for i in range(30)]
    assert len(set(names)) == len(names)


def test_rerun_after_completion_adds_nothing():
    destination = destination_path(SEARCH_URL)
    _harvest(_Factory(paged_source(2)))

    again = _harvest(_Factory(paged_source(2)))

    assert again.checkpoint == 20
    assert again.harvested == 0
    assert len(_rows(destination)) == 1 + 20


def test_stuck_pagination_exhausts_after_retry_cap():
    # One page whose next control never loads anything new.
    factory = _Factory([page_html(range(10), has_next=True)])

    result = _harvest(factory)

    surface = factory.opened[0]
    assert result.status == PartitionStatus.EXHAUSTED
    assert result.harvested == 10
    # One productive harvest plus cap + 1 empty ones, each preceded by an advance.
    assert surface.pauses.count(0.5) == 1 + config.MAX_EMPTY_HARVESTS + 1
    assert surface.pauses.count(1.0) == config.MAX_EMPTY_HARVESTS + 1
    assert len(_rows(destination_path(SEARCH_URL))) == 1 + 10
    assert surface.closed


def test_empty_last_page_completes_partition():
    empty_second_page = "<html><body><p>Nessun risultato</p></body></html>"
    factory = _Factory([page_html(range(10), has_next=True), empty_second_page])

    result = _harvest(factory)

    assert result.status == PartitionStatus.COMPLETED
    assert result.harvested == 10


def test_automation_failure_flushes_buffer_and_closes():
    factory = _Factory(paged_source(3), surface_cls=_NextClickFails)

    result = _harvest(factory)

    assert result.status == PartitionStatus.FAILED
    assert result.error_code == ErrorCode.CLICK
    assert result.harvested == 10
    assert result.flushed == 10
    assert len(_rows(destination_path(SEARCH_URL))) == 1 + 10
    assert factory.opened[0].closed


def test_navigation_failure_is_reported():
    factory = _Factory([])

    result = _harvest(factory)

    assert result.status == PartitionStatus.FAILED
    assert result.error_code == ErrorCode.NAVIGATION
    assert not destination_path(SEARCH_URL).exists()
    assert factory.opened[0].closed


def test_unreadable_checkpoint_fails_partition():
    destination = destination_path(SEARCH_URL)
    destination.mkdir(parents=True)
    factory = _Factory(paged_source(1))

    result = _harvest(factory)

    assert result.status == PartitionStatus.FAILED
    assert result.error_code == ErrorCode.PERSISTENCE
    assert factory.opened == []


def test_partitions_of_one_search_share_destination():
    _write_snapshots("Roma", paged_source(2, city="Roma"))
    _write_snapshots("Milano", paged_source(1, city="Milano"))

    results = run.run_search(
        SEARCH_URL,
        ["Roma", "Milano"],
        surface_factory=lambda: SnapshotSurface.from_directory(config.SNAPSHOT_DIR),
        pacing_seconds=0,
    )

    lines = _rows(destination_path(SEARCH_URL))
    assert [r.status for r in results] == [PartitionStatus.COMPLETED] * 2
    assert lines.count(CSV_HEADER) == 1
    assert sum("Roma (RM)" in line for line in lines) == 20
    assert sum("Milano (RM)" in line for line in lines) == 10


def test_run_all_writes_telemetry_and_summary():
    summary = run.run_all(
        [SEARCH_URL],
        ["Roma"],
        surface_factory=_Factory(paged_source(2)),
        pacing_seconds=0,
    )

    assert summary["searches"] == 1
    assert summary["partitions"] == 1
    assert summary["harvested"] == 20
    assert summary["failed_partitions"] == 0
    assert summary["failed_searches"] == []

    payload = json.loads(Path(summary["telemetry_path"]).read_text(encoding="utf-8"))
    assert payload["run_id"] == summary["run_id"]
    assert payload["mode"] == "snapshot"
    assert payload["summary"]["count_completed"] == 1
    assert payload["summary"]["harvested"] == 20
    assert payload["entries"][0]["city"] == "Roma"
    assert payload["searches"][SEARCH_URL] == {"partitions": 1, "harvested": 20, "flushed": 20}


def test_run_all_continues_after_failed_search(monkeypatch):
    other = SEARCH_URL.replace("Agenzie%20marketing", "Notai")
    original = run.run_search

    def flaky(url, *args, **kwargs):
        if url == SEARCH_URL:
            raise RuntimeError("search page changed")
        return original(url, *args, **kwargs)

    monkeypatch.setattr(run, "run_search", flaky)

    summary = run.run_all(
        [SEARCH_URL, other],
        ["Roma"],
        surface_factory=_Factory(paged_source(1)),
        pacing_seconds=0,
    )

    assert summary["failed_searches"] == [SEARCH_URL]
    assert summary["harvested"] == 10
    assert destination_path(other).exists()


def test_main_with_snapshot_directory():
    _write_snapshots("Roma", paged_source(2))

    code = run.main(
        ["--search", "Agenzie marketing", "--city", "Roma", "--backend", "snapshot", "--pacing", "0"]
    )

    assert code == 0
    lines = _rows(destination_path(SEARCH_URL))
    assert len(lines) == 1 + 20


def test_main_exports_workbook_on_request():
    _write_snapshots("Roma", paged_source(1))

    code = run.main(
        ["--search", "Agenzie marketing", "--city", "Roma", "--backend", "snapshot", "--export-excel"]
    )

    assert code == 0
    workbook = config.EXPORTS_DIR / destination_path(SEARCH_URL).with_suffix(".xlsx").name
    assert workbook.is_file()


def test_export_batch_reports_only_surviving_workbooks(monkeypatch):
    monkeypatch.setattr(config, "MAX_EXPORTS", 1)
    other = SEARCH_URL.replace("Agenzie%20marketing", "Notai")
    _seed(destination_path(SEARCH_URL), 2)
    _seed(destination_path(other), 3)

    exported = run._export_workbooks([SEARCH_URL, other], None)

    assert len(exported) == 1
    assert exported[0].endswith(destination_path(other).with_suffix(".xlsx").name)
    assert sorted(p.name for p in config.EXPORTS_DIR.glob("*.xlsx")) == [Path(exported[0]).name]


class _NextHiddenFromExists(SnapshotSurface):
    """Renders a next control but reports that it cannot be used."""

    def exists(self, scope, selector):
        if selector == run.PAGINE_GIALLE_SELECTORS.next_page:
            return False
        return super().exists(scope, selector)


def test_next_control_presence_decides_completion():
    factory = _Factory(paged_source(3), surface_cls=_NextHiddenFromExists)

    result = _harvest(factory)

    assert result.status == PartitionStatus.COMPLETED
    assert result.harvested == 10
    surface = factory.opened[0]
    assert len(surface.query_all(None, run.PAGINE_GIALLE_SELECTORS.listing)) == 10
