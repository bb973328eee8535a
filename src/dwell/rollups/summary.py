"""Store-wide summaries and duration formatting."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from ..storage.records import StoreData

__all__ = [
    "SiteTotal",
    "StoreSummary",
    "format_duration",
    "summarize_store",
]


def format_duration(seconds: int) -> str:
    """Human-readable duration.

    Examples
    --------
    >>> format_duration(3723)
    '1h 2m 3s'
    >>> format_duration(125)
    '2m 5s'
    >>> format_duration(7)
    '7s'
    """
    seconds = int(seconds)
    hours, remainder = divmod(seconds, 3600)
    minutes, secs = divmod(remainder, 60)

    if hours > 0:
        return f"{hours}h {minutes}m {secs}s"
    elif minutes > 0:
        return f"{minutes}m {secs}s"
    else:
        return f"{secs}s"


@dataclass
class SiteTotal:
    """Total time for one domain."""

    domain: str
    total_time: int


@dataclass
class StoreSummary:
    """Summary of a whole store.

    Attributes
    ----------
    sites : list[SiteTotal]
        Per-domain totals, largest first (ties by domain name)
    total_time : int
        Sum of all domains' totals
    """

    sites: list[SiteTotal] = field(default_factory=list)
    total_time: int = 0

    @property
    def total_sites(self) -> int:
        return len(self.sites)

    def to_dict(self) -> dict[str, Any]:
        return {
            "totalSites": self.total_sites,
            "totalTime": self.total_time,
            "sites": [{"domain": s.domain, "totalTime": s.total_time} for s in self.sites],
        }


def summarize_store(data: StoreData) -> StoreSummary:
    """Per-site totals sorted by time spent, with the grand total."""
    sites = [SiteTotal(domain=domain, total_time=int(record.get("totalTime", 0))) for domain, record in data.items()]
    sites.sort(key=lambda site: (-site.total_time, site.domain))
    return StoreSummary(sites=sites, total_time=sum(site.total_time for site in sites))
