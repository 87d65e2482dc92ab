"""
Sync pipeline.

Workflow:
  1. Fetch the date list from the EPIC catalog and from the local mirror
  2. Reconcile: dates the catalog has that the mirror lacks
  3. Fetch the image manifest for each missing date (up to *limit* dates)
  4. Resolve each image's archive URL and download the PNG
  5. Optionally write a square JPEG thumbnail next to it

Failing to list either side's dates aborts the run. Anything that goes
wrong for a single date or image is recorded in the SyncReport and the
run moves on, unless fail_fast is set.
"""

from concurrent.futures import ThreadPoolExecutor

from epic_sync.config import Settings
from epic_sync.downloader import download_images
from epic_sync.errors import EpicSyncError
from epic_sync.models import DateResult, DownloadResult, ImageRecord, InvalidRecord, SyncReport
from epic_sync.nasa_api import EpicClient
from epic_sync.reconcile import limit_dates, missing_dates
from epic_sync.resize import resize_image


def _fetch_manifests(
    client: EpicClient, dates: list[str], workers: int, fail_fast: bool
) -> list[tuple[str, list[ImageRecord | InvalidRecord] | None, Exception | None]]:
    def fetch(date: str):
        try:
            return date, client.manifest_entries(date), None
        except EpicSyncError as e:
            if fail_fast:
                raise
            print(f"[SYNC] FAILED to fetch manifest for {date}: {e}")
            return date, None, e

    if workers <= 1:
        return [fetch(d) for d in dates]
    with ThreadPoolExecutor(max_workers=workers) as executor:
        return list(executor.map(fetch, dates))


def sync_date(
    client: EpicClient,
    date: str,
    images: list[ImageRecord | InvalidRecord],
    settings: Settings,
    workers: int = 1,
    resize: int | None = None,
    overwrite: bool = False,
    fail_fast: bool = False,
) -> DateResult:
    """Download every image of one date's manifest."""
    result = DateResult(date=date)
    slots: list[DownloadResult | None] = []
    jobs = []

    for record in images:
        if isinstance(record, InvalidRecord):
            if fail_fast:
                raise record.error
            print(f"[SYNC] Skipping invalid entry {record.name}: {record.error}")
            slots.append(DownloadResult(name=record.name, url="", error=record.error))
            continue
        try:
            url = client.image_url(record)
        except EpicSyncError as e:
            if fail_fast:
                raise
            print(f"[SYNC] Skipping {record.image}: {e}")
            slots.append(DownloadResult(name=record.image, url="", error=e))
            continue
        slots.append(None)
        jobs.append((url, record.image))

    downloaded = iter(download_images(
        client.session,
        jobs,
        settings.output_dir,
        timeout=settings.download_timeout,
        workers=workers,
        overwrite=overwrite,
        fail_fast=fail_fast,
    ))
    result.images = [slot if slot is not None else next(downloaded) for slot in slots]

    if resize is not None:
        for item in result.images:
            if not item.ok or item.path is None:
                continue
            try:
                item.thumbnail = resize_image(item.path, resize, item.name, settings.output_dir)
            except EpicSyncError as e:
                if fail_fast:
                    raise
                print(f"[SYNC] Thumbnail failed for {item.name}: {e}")
                item.error = e

    return result


def run_sync(
    client: EpicClient,
    settings: Settings,
    *,
    limit: int | None = None,
    workers: int = 1,
    resize: int | None = None,
    overwrite: bool = False,
    fail_fast: bool = False,
) -> SyncReport:
    """
    Bring the local archive up to date with the EPIC catalog.

    Parameters
    ----------
    client : EpicClient
        Client bound to the catalog and mirror URLs.
    settings : Settings
        Output directory and timeouts.
    limit : int | None
        Process at most this many missing dates (None = all).
    workers : int
        Maximum concurrent manifest fetches, and downloads per date.
    resize : int | None
        Thumbnail edge length in pixels; no thumbnails when None.
    overwrite : bool
        Re-download images already present in the output directory.
    fail_fast : bool
        Raise the first per-item error instead of recording it.

    Returns
    -------
    SyncReport

    Raises
    ------
    ValueError
        If *limit* is negative or *resize* is not positive; checked before
        any request is made.
    """
    if limit is not None and limit < 0:
        raise ValueError(f"limit must be >= 0, got {limit}")
    if resize is not None and resize <= 0:
        raise ValueError(f"resize must be positive, got {resize}")

    remote = client.remote_dates()
    local = client.local_dates()
    missing = missing_dates(remote, local)

    report = SyncReport(remote_count=len(remote), local_count=len(local), missing=missing)
    if not missing:
        print("[SYNC] Mirror is up to date. Nothing to do.")
        return report

    selected = limit_dates(missing, limit)
    print(f"[SYNC] {len(missing)} dates missing, processing {len(selected)}: {selected}")

    for date, images, error in _fetch_manifests(client, selected, workers, fail_fast):
        if error is not None:
            report.dates.append(DateResult(date=date, error=error))
            continue

        print(f"\n{'='*50}")
        print(f"[SYNC] Downloading {len(images)} images for {date}")
        print(f"{'='*50}")
        report.dates.append(sync_date(
            client, date, images, settings,
            workers=workers, resize=resize, overwrite=overwrite, fail_fast=fail_fast,
        ))

    return report
