"""Date reconciliation between the EPIC catalog and the local mirror."""


def missing_dates(remote: list[str], local: list[str]) -> list[str]:
    """Return dates from *remote* that are absent from *local*, in remote order."""
    have = set(local)
    return [d for d in remote if d not in have]


def limit_dates(dates: list[str], limit: int | None) -> list[str]:
    """First *limit* dates, or all of them when limit is None."""
    if limit is None:
        return list(dates)
    if limit < 0:
        raise ValueError(f"limit must be >= 0, got {limit}")
    return dates[:limit]
