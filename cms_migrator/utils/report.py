"""
Per-item outcomes and the run report returned by every pipeline.

Each record handled by a batch ends up as exactly one :class:`ItemResult`
(succeeded, skipped or failed, with a reason).  The :class:`RunReport`
aggregates them so a run can be inspected, and tested, without scraping
log output.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

SUCCEEDED = "succeeded"
SKIPPED = "skipped"
FAILED = "failed"


@dataclass
class ItemResult:
    key: str
    title: str
    status: str
    reason: str = ""
    record_id: Optional[str] = None


@dataclass
class RunReport:
    command: str
    results: List[ItemResult] = field(default_factory=list)
    # Free-form findings, e.g. projects with rendering issues
    issues: List[Dict[str, Any]] = field(default_factory=list)

    def add_succeeded(self, key: str, title: str, record_id: Optional[str] = None, reason: str = "") -> ItemResult:
        return self._add(ItemResult(key, title, SUCCEEDED, reason, record_id))

    def add_skipped(self, key: str, title: str, reason: str) -> ItemResult:
        return self._add(ItemResult(key, title, SKIPPED, reason))

    def add_failed(self, key: str, title: str, reason: str) -> ItemResult:
        return self._add(ItemResult(key, title, FAILED, reason))

    def _add(self, result: ItemResult) -> ItemResult:
        self.results.append(result)
        return result

    def _count(self, status: str) -> int:
        return sum(1 for r in self.results if r.status == status)

    @property
    def succeeded(self) -> int:
        return self._count(SUCCEEDED)

    @property
    def skipped(self) -> int:
        return self._count(SKIPPED)

    @property
    def failed(self) -> int:
        return self._count(FAILED)

    def reasons(self, status: Optional[str] = None) -> Dict[str, int]:
        """Count results by reason, optionally for one status only."""
        counter = Counter(
            r.reason for r in self.results if r.reason and (status is None or r.status == status)
        )
        return dict(counter)

    def summary(self) -> str:
        text = f"{self.command}: {self.succeeded} succeeded, {self.skipped} skipped, {self.failed} failed"
        reasons = self.reasons(FAILED)
        if reasons:
            details = "; ".join(f"{reason} ({count})" for reason, count in sorted(reasons.items()))
            text += f" [{details}]"
        return text
