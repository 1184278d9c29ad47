"""Application service layer: recompute orchestration over snapshots."""
from __future__ import annotations

import logging
import threading
from datetime import date
from decimal import Decimal
from typing import Iterable

from prodtrack.core.finance import build_finance_report, build_project_reports
from prodtrack.core.pricing import specification_price
from prodtrack.core.schema import FinanceReport, ParsedSpecification, ProjectReport
from prodtrack.core.settings import EngineSettings, get_settings
from prodtrack.core.spec_parser import parse_specification
from prodtrack.core.validation import AnomalyLog, validate_snapshot
from prodtrack.domain import AgencySnapshot
from prodtrack.infrastructure import (
    ChangeChannel,
    InMemorySnapshotRepository,
    LocalChangeChannel,
    SnapshotRepository,
)

logger = logging.getLogger(__name__)


class EngineService:
    """Coordinates recomputation of engine outputs for the latest snapshot.

    Results are cached per snapshot version.  A trigger carrying an older
    version than the cached one is ignored, and recomputing the same version
    yields the same output, so duplicated or reordered notifications are safe.
    """

    def __init__(
        self,
        repository: SnapshotRepository,
        channel: ChangeChannel,
        settings: EngineSettings | None = None,
    ) -> None:
        self._repository = repository
        self._channel = channel
        self._settings = settings or get_settings()
        self._lock = threading.Lock()
        self._version = -1
        self._snapshot: AgencySnapshot | None = None
        self._reports: list[ProjectReport] = []
        self._anomalies = AnomalyLog()
        self._finance: dict[tuple[str, date | None], tuple[FinanceReport, AnomalyLog]] = {}
        channel.subscribe(self.on_change)

    @property
    def settings(self) -> EngineSettings:
        return self._settings

    # ------------------------------------------------------------------
    # recompute trigger
    # ------------------------------------------------------------------
    def on_change(self, snapshot_version: int) -> None:
        with self._lock:
            if snapshot_version < self._version:
                logger.debug("ignoring stale change %s (cached %s)", snapshot_version, self._version)
                return
        self._recompute()

    def recompute(self) -> int:
        return self._recompute()

    def _recompute(self) -> int:
        snapshot = self._repository.current()
        validate_snapshot(snapshot)
        anomalies = AnomalyLog()
        reports = build_project_reports(snapshot, self._settings, anomalies)
        with self._lock:
            if snapshot.version < self._version:
                return self._version
            self._version = snapshot.version
            self._snapshot = snapshot
            self._reports = reports
            self._anomalies = anomalies
            self._finance = {}
        logger.info(
            "recomputed snapshot v%s: %d projects, anomalies=%s",
            snapshot.version,
            len(reports),
            dict(anomalies.counts),
        )
        return snapshot.version

    def _ensure_current(self) -> None:
        if self._version != self._repository.version():
            self._recompute()

    # ------------------------------------------------------------------
    # snapshot writes (stand-in for the storage collaborator)
    # ------------------------------------------------------------------
    def load_snapshot(self, records: dict[str, Iterable[dict]]) -> int:
        version = self._repository.replace(records)
        self._channel.publish(version)
        return version

    def append_records(self, collection: str, rows: Iterable[dict]) -> int:
        version = self._repository.append(collection, rows)
        self._channel.publish(version)
        return version

    # ------------------------------------------------------------------
    # reads
    # ------------------------------------------------------------------
    def version(self) -> int:
        self._ensure_current()
        return self._version

    def project_reports(self) -> list[ProjectReport]:
        self._ensure_current()
        return list(self._reports)

    def project_report(self, project_id: str) -> ProjectReport | None:
        for report in self.project_reports():
            if report.project_id == project_id:
                return report
        return None

    def finance_report(self, period: str, as_of: date | None = None) -> FinanceReport:
        return self._finance_entry(period, as_of)[0]

    def _finance_entry(self, period: str, as_of: date | None) -> tuple[FinanceReport, AnomalyLog]:
        self._ensure_current()
        key = (period, as_of)
        with self._lock:
            cached = self._finance.get(key)
            snapshot, reports, version = self._snapshot, self._reports, self._version
        if cached is not None:
            return cached

        anomalies = AnomalyLog()
        report = build_finance_report(
            snapshot or AgencySnapshot(),
            period,
            as_of=as_of,
            settings=self._settings,
            anomalies=anomalies,
            reports=reports,
        )
        with self._lock:
            if version == self._version:
                self._finance[key] = (report, anomalies)
        return report, anomalies

    def anomalies(self, period: str | None = None, as_of: date | None = None) -> dict[str, object]:
        """Snapshot-level anomaly counters, plus those of one finance period when asked."""

        self._ensure_current()
        with self._lock:
            result: dict[str, object] = {"version": self._version, **self._anomalies.as_dict()}
        if period is not None:
            _, finance_anomalies = self._finance_entry(period, as_of)
            result["finance"] = {
                "period": period,
                "as_of": as_of.isoformat() if as_of else None,
                **finance_anomalies.as_dict(),
            }
        return result

    def parse(self, text: str | None) -> tuple[ParsedSpecification, Decimal]:
        parsed = parse_specification(text, self._settings)
        return parsed, specification_price(parsed.items, self._settings)

    # ------------------------------------------------------------------
    # testing helpers
    # ------------------------------------------------------------------
    def reset(self) -> None:
        self._repository.reset()
        with self._lock:
            self._version = -1
            self._snapshot = None
            self._reports = []
            self._anomalies = AnomalyLog()
            self._finance = {}


_repository = InMemorySnapshotRepository()
_channel = LocalChangeChannel()
_service = EngineService(_repository, _channel)


def get_engine_service() -> EngineService:
    """Return the singleton engine service for the process."""

    return _service


def reset_engine_state() -> None:
    """Reset the in-memory store (used in tests)."""

    _service.reset()
