"""
Image downloader.

Streams archive PNGs to disk. Each file is written to a ``.part``
sibling first and renamed into place only once the transfer completes,
so an interrupted download never leaves a truncated PNG behind.
"""

import os
import requests
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

from epic_sync.errors import EpicSyncError, StorageError, TransportError
from epic_sync.models import DownloadResult, is_plain_filename

CHUNK_SIZE = 8192


def _check_name(name: str) -> None:
    if not is_plain_filename(name):
        raise StorageError(f"Refusing to write outside the output directory: {name!r}")


def download_image(
    session: requests.Session,
    url: str,
    name: str,
    output_dir: str | Path,
    timeout: float = 120,
) -> Path:
    """
    Download *url* to ``{output_dir}/{name}.png``.

    Parameters
    ----------
    session : requests.Session
        Session used for the request.
    url : str
        Fully resolved archive URL.
    name : str
        Image base filename (without extension).
    output_dir : str | Path
        Destination directory. Created if it doesn't exist.
    timeout : float
        Connect/read timeout in seconds.

    Returns
    -------
    Path
        Path of the completed file.

    Raises
    ------
    TransportError
        On connection failure, timeout or non-2xx status.
    StorageError
        If the destination cannot be created or written, or *name* is not
        a plain file name.
    """
    _check_name(name)
    output_dir = Path(output_dir)
    dest = output_dir / f"{name}.png"
    part = output_dir / f"{name}.png.part"

    try:
        output_dir.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise StorageError(f"Cannot create output directory {output_dir}: {e}") from e

    try:
        resp = session.get(url, timeout=timeout, stream=True)
    except requests.RequestException as e:
        raise TransportError(f"GET {url} failed: {e}", url) from e

    try:
        try:
            resp.raise_for_status()
        except requests.HTTPError as e:
            raise TransportError(
                f"GET {url} failed with HTTP {resp.status_code}", url, resp.status_code
            ) from e

        try:
            f = open(part, "wb")
        except OSError as e:
            raise StorageError(f"Cannot create {part}: {e}") from e

        with f:
            try:
                for chunk in resp.iter_content(chunk_size=CHUNK_SIZE):
                    if chunk:
                        f.write(chunk)
            except requests.RequestException as e:
                raise TransportError(f"Transfer from {url} interrupted: {e}", url) from e
            except OSError as e:
                raise StorageError(f"Cannot write {part}: {e}") from e

        try:
            os.replace(part, dest)
        except OSError as e:
            raise StorageError(f"Cannot move {part} to {dest}: {e}") from e
    except Exception:
        part.unlink(missing_ok=True)
        raise
    finally:
        resp.close()

    return dest


def download_images(
    session: requests.Session,
    jobs: list[tuple[str, str]],
    output_dir: str | Path,
    timeout: float = 120,
    workers: int = 1,
    overwrite: bool = False,
    fail_fast: bool = False,
) -> list[DownloadResult]:
    """
    Download every ``(url, name)`` job, up to *workers* at a time.

    A failed job is recorded on its DownloadResult and does not stop the
    others, unless *fail_fast* is set, in which case the first error is
    raised. Results are returned in job order.

    Jobs sharing a name are fetched once; later duplicates are reported
    as skipped with the first job's path and error.
    """
    output_dir = Path(output_dir)

    def fetch(job: tuple[str, str]) -> DownloadResult:
        url, name = job
        result = DownloadResult(name=name, url=url)

        try:
            _check_name(name)
        except StorageError as e:
            if fail_fast:
                raise
            print(f"[DOWNLOAD]   FAILED {name!r}: {e}")
            result.error = e
            return result

        dest = output_dir / f"{name}.png"
        if dest.exists() and not overwrite:
            print(f"[DOWNLOAD]   Skipping {dest.name} (already downloaded)")
            result.path = dest
            result.skipped = True
            return result

        try:
            result.path = download_image(session, url, name, output_dir, timeout)
            print(f"[DOWNLOAD]   {dest.name}")
        except EpicSyncError as e:
            if fail_fast:
                raise
            print(f"[DOWNLOAD]   FAILED {name}: {e}")
            result.error = e
        return result

    unique: dict[str, tuple[str, str]] = {}
    for job in jobs:
        unique.setdefault(job[1], job)

    if workers <= 1:
        fetched = [fetch(job) for job in unique.values()]
    else:
        with ThreadPoolExecutor(max_workers=workers) as executor:
            fetched = list(executor.map(fetch, unique.values()))
    by_name = {r.name: r for r in fetched}

    results = []
    seen = set()
    for url, name in jobs:
        first = by_name[name]
        if name not in seen:
            seen.add(name)
            results.append(first)
            continue
        print(f"[DOWNLOAD]   Skipping duplicate entry {name}")
        results.append(DownloadResult(
            name=name, url=url, path=first.path, skipped=True, error=first.error,
        ))
    return results
