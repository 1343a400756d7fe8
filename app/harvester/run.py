"""Resumable harvester for directory search results.

Workflow per search URL:

- Expand the search into one partition per city.
- Run the partitions a wave at a time (5 concurrent browser sessions by
  default, with a short pause between waves).
- For every partition:
    - count the rows a previous run already saved for this city in the
      search's CSV and skip the city if it is already complete,
    - open the city's results page and click "show more" until the saved
      rows are rendered again,
    - harvest the listings past that point page by page, revealing phone
      numbers first, and append them to the CSV every 20 listings,
    - stop when the next-page control disappears, new results stop
      rendering, repeated harvests come back empty, or the per-city cap is
      reached.

Searches are processed one after another.
"""

from __future__ import annotations

import argparse
from functools import partial
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from . import config, sources
from .checkpoint import is_saturated, resolve_checkpoint
from .config_validation import validate_runtime_config
from .cursor import reconstruct_cursor
from .error_codes import AutomationFailure, AutomationTimeout, PersistenceFailure
from .harvest import harvest_page
from .logging_utils import _harvest_event
from .models import Partition, PartitionResult, PartitionStatus
from .page_selectors import PAGINE_GIALLE_SELECTORS, ListingSelectors
from .persister import BatchPersister, extract_mobile_number
from .retry_policy import EmptyHarvestRetry
from .scheduler import run_partitions
from .surface import AutomationSurface, SurfaceFactory, first_element, surface_factory_for
from .export_excel import export_listings_to_excel
from .telemetry import RunTelemetry
from .utils import destination_path, ensure_dirs, log_line, setup_run_logger

SAMPLE_SIZE = 5


def _harvest_loop(
    surface: AutomationSurface,
    persister: BatchPersister,
    result: PartitionResult,
    selectors: ListingSelectors,
) -> str:
    label = result.partition.label
    offset = result.checkpoint
    retry = EmptyHarvestRetry(label=label)

    while True:
        listings = harvest_page(surface, offset, selectors)
        log_line(f"[HARVEST] {label}: found {len(listings)} new listings (offset {offset})")
        if not retry.observe(len(listings)):
            log_line(f"[HARVEST] {label}: no new listings after repeated attempts; stopping.")
            return PartitionStatus.EXHAUSTED

        persister.extend(listings)
        offset += len(listings)
        result.harvested += len(listings)
        if listings:
            result.sample = listings[:SAMPLE_SIZE]

        if not surface.exists(None, selectors.next_page):
            log_line(f"[HARVEST] {label}: no next-page control; harvest complete.")
            return PartitionStatus.COMPLETED

        surface.click(first_element(surface, None, selectors.next_page))
        surface.pause(config.ADVANCE_SETTLE_SECONDS)
        try:
            surface.await_appearance(selectors.listing, config.APPEARANCE_TIMEOUT_MS)
        except AutomationTimeout as exc:
            log_line(f"[HARVEST] {label}: no new content after next page ({exc}); stopping.")
            return PartitionStatus.EXHAUSTED

        if result.checkpoint + result.harvested >= config.PARTITION_RECORD_CAP:
            log_line(
                f"[HARVEST] {label}: reached {config.PARTITION_RECORD_CAP} listings; stopping."
            )
            return PartitionStatus.CAPPED


def _log_sample(result: PartitionResult) -> None:
    for index, listing in enumerate(result.sample, start=1):
        phones = list(listing.phone_numbers) + ["N/A"] * 3
        log_line(
            f"[SAMPLE] {index}. {listing.name} | industry={listing.category} | "
            f"location={listing.location} | mobile={extract_mobile_number(listing) or 'Not found'} | "
            f"phones={phones[0]}, {phones[1]}, {phones[2]} | "
            f"whatsapp={listing.whatsapp_link or 'Not available'} | url={listing.business_url}"
        )


def harvest_partition(
    partition: Partition,
    *,
    surface_factory: SurfaceFactory,
    selectors: ListingSelectors = PAGINE_GIALLE_SELECTORS,
    output_dir: Optional[Path] = None,
) -> PartitionResult:
    """Harvest one city of one search, resuming from the saved CSV.

    Automation and persistence failures end the partition early with a
    ``failed`` result; they never propagate to sibling partitions.
    """

    label = partition.label
    destination = destination_path(partition.source_url, output_dir)
    result = PartitionResult(partition=partition, status=PartitionStatus.COMPLETED)

    try:
        result.checkpoint = resolve_checkpoint(destination, partition.city)
    except PersistenceFailure as exc:
        result.status = PartitionStatus.FAILED
        result.error_code = exc.error_code
        result.error = str(exc)
        _harvest_event("error", phase="checkpoint", partition=label, error=str(exc))
        return result

    if is_saturated(result.checkpoint):
        result.status = PartitionStatus.SKIPPED
        _harvest_event("state", phase="checkpoint", kind="skip_complete", partition=label, checkpoint=result.checkpoint)
        return result

    if result.checkpoint > 0:
        log_line(f"[HARVEST] {label}: resuming, {result.checkpoint} listings already saved")
    else:
        log_line(f"[HARVEST] {label}: starting fresh")

    persister = BatchPersister(destination, label=label)
    surface: Optional[AutomationSurface] = None
    try:
        surface = surface_factory()
        surface.navigate(partition.address)
        if result.checkpoint > 0:
            reconstruct_cursor(surface, result.checkpoint, selectors, label=label)
        status = _harvest_loop(surface, persister, result, selectors)
        persister.flush()
        result.status = status
    except AutomationFailure as exc:
        result.status = PartitionStatus.FAILED
        result.error_code = exc.error_code
        result.error = str(exc)
        _harvest_event("error", phase="automation", partition=label, error_code=exc.error_code, error=str(exc))
        try:
            persister.flush()
        except PersistenceFailure as flush_exc:
            _harvest_event("error", phase="flush", partition=label, error=str(flush_exc))
    except PersistenceFailure as exc:
        result.status = PartitionStatus.FAILED
        result.error_code = exc.error_code
        result.error = str(exc)
        _harvest_event("error", phase="flush", partition=label, error=str(exc))
    finally:
        result.flushed = persister.flushed
        if surface is not None:
            surface.close()

    _harvest_event(
        "partition",
        partition=label,
        status=result.status,
        checkpoint=result.checkpoint,
        harvested=result.harvested,
        flushed=result.flushed,
        destination=str(destination),
    )
    _log_sample(result)
    return result


def run_search(
    source_url: str,
    cities: Sequence[str],
    *,
    surface_factory: SurfaceFactory,
    selectors: ListingSelectors = PAGINE_GIALLE_SELECTORS,
    output_dir: Optional[Path] = None,
    width: Optional[int] = None,
    pacing_seconds: Optional[float] = None,
    telemetry: Optional[RunTelemetry] = None,
) -> List[PartitionResult]:
    """Harvest every city of one search and return the per-city results."""

    partitions = sources.build_partitions(source_url, cities)
    log_line(f"[RUN] {source_url}: {len(partitions)} partitions -> {destination_path(source_url, output_dir)}")
    worker = partial(
        harvest_partition,
        surface_factory=surface_factory,
        selectors=selectors,
        output_dir=output_dir,
    )
    results = run_partitions(partitions, worker, width=width, pacing_seconds=pacing_seconds)
    if telemetry is not None:
        for result in results:
            telemetry.add_result(result)
    return results


def run_all(
    search_urls: Optional[Sequence[str]] = None,
    cities: Optional[Sequence[str]] = None,
    *,
    backend: Optional[str] = None,
    surface_factory: Optional[SurfaceFactory] = None,
    output_dir: Optional[Path] = None,
    width: Optional[int] = None,
    pacing_seconds: Optional[float] = None,
) -> Dict[str, Any]:
    """Harvest each search in turn; a failing search does not stop the next."""

    ensure_dirs()
    setup_run_logger()
    factory = surface_factory or surface_factory_for(backend)
    urls = list(search_urls) if search_urls else sources.default_search_urls()
    city_list = sources.coerce_cities(cities)
    telemetry = RunTelemetry(mode=backend or config.HARVEST_BACKEND)

    results: List[PartitionResult] = []
    failed_searches: List[str] = []
    for url in urls:
        try:
            results.extend(
                run_search(
                    url,
                    city_list,
                    surface_factory=factory,
                    output_dir=output_dir,
                    width=width,
                    pacing_seconds=pacing_seconds,
                    telemetry=telemetry,
                )
            )
        except Exception as exc:  # noqa: BLE001
            failed_searches.append(url)
            _harvest_event("error", phase="search", url=url, error=str(exc))

    telemetry_path = telemetry.finalize({"failed_searches": failed_searches})
    summary = {
        "run_id": telemetry.run_id,
        "telemetry_path": telemetry_path,
        "searches": len(urls),
        "partitions": len(results),
        "harvested": sum(r.harvested for r in results),
        "failed_partitions": sum(1 for r in results if not r.ok),
        "failed_searches": failed_searches,
    }
    _harvest_event("run", **summary)
    return summary


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Harvest directory listings into per-search CSV files")
    parser.add_argument(
        "--search",
        dest="searches",
        action="append",
        default=None,
        help="Search query or full search URL; repeatable. Defaults to the built-in list.",
    )
    parser.add_argument(
        "--city",
        dest="cities",
        action="append",
        default=None,
        help="City to harvest; repeatable. Defaults to every built-in city.",
    )
    parser.add_argument("--output-dir", type=Path, default=None)
    parser.add_argument("--backend", choices=list(config.KNOWN_BACKENDS), default=None)
    parser.add_argument("--width", type=int, default=None, help="Partitions per wave")
    parser.add_argument("--pacing", type=float, default=None, help="Seconds between waves")
    parser.add_argument(
        "--export-excel",
        action="store_true",
        help="Write an Excel workbook for each harvested search after the run",
    )
    return parser


def _export_workbooks(search_urls: Sequence[str], output_dir: Optional[Path]) -> List[str]:
    exported: List[str] = []
    for url in search_urls:
        csv_path = destination_path(url, output_dir)
        if not csv_path.is_file():
            continue
        try:
            exported.append(export_listings_to_excel(csv_path))
        except (OSError, ValueError) as exc:
            _harvest_event("error", phase="export", url=url, error=str(exc))
            continue
        log_line(f"[EXPORT] {csv_path} -> {exported[-1]}")
    # Later exports in the same batch may have pruned earlier ones.
    return [path for path in exported if Path(path).is_file()]


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = _build_parser().parse_args(list(argv) if argv is not None else None)

    ensure_dirs()
    validate_runtime_config("cli", backend=args.backend)
    search_urls = [sources.search_url(s) for s in args.searches] if args.searches else None

    summary = run_all(
        search_urls,
        args.cities,
        backend=args.backend,
        output_dir=args.output_dir,
        width=args.width,
        pacing_seconds=args.pacing,
    )
    if args.export_excel:
        _export_workbooks(search_urls or sources.default_search_urls(), args.output_dir)
    return 0 if not summary["failed_searches"] else 1


__all__ = ["harvest_partition", "run_search", "run_all", "main"]


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())

