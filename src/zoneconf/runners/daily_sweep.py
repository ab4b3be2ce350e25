"""Daily decay sweep over every stored zone."""
import os
import time
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional

import psutil
from tqdm import tqdm

from zoneconf.config.settings import Settings
from zoneconf.data.locks import ZoneLockRegistry
from zoneconf.data.store import SqliteZoneStore
from zoneconf.domain.exceptions import ConcurrentUpdateError, SweepError, ZoneConfError
from zoneconf.domain.models import ZoneState
from zoneconf.processing.sweep import DailyDecaySweep, SweepOutcome
from zoneconf.utils.clock import as_utc, utcnow
from zoneconf.utils.itertools import chunked
from zoneconf.utils.timing import section_timer

logger = logging.getLogger(__name__)
summary_logger = logging.getLogger("zoneconf.summary")

@dataclass
class SweepReport:
    """Sweep run result."""
    zones_scanned: int = 0
    zones_decayed: int = 0
    zones_unchanged: int = 0
    hazards_expired: int = 0
    failed: Dict[str, str] = field(default_factory=dict)
    degraded_zones: List[str] = field(default_factory=list)
    offline_zones: List[str] = field(default_factory=list)
    processing_time: float = 0.0
    peak_rss_mb: float = 0.0
    dry_run: bool = False

    @property
    def zones_failed(self) -> int:
        return len(self.failed)


class DailySweepRunner:
    """
    Runs the daily sweep against a store, one zone at a time.

    - zones are read, swept and written under the zone's lock
    - a failure on one zone is logged and recorded, the rest carry on
    - SweepError only when every zone failed
    """

    def __init__(
        self,
        store: SqliteZoneStore,
        settings: Settings,
        *,
        locks: Optional[ZoneLockRegistry] = None,
    ):
        settings.validate()
        self.store = store
        self.settings = settings
        self.locks = locks or ZoneLockRegistry()
        self.sweep = DailyDecaySweep(settings.confidence)
        self.chunk_size = settings.processing.chunk_size
        self.process = psutil.Process(os.getpid())

    def run(self, now: Optional[datetime] = None) -> SweepReport:
        now = as_utc(now) if now is not None else utcnow()
        report = SweepReport(dry_run=self.settings.dry_run)

        zone_ids = self.store.list_zone_ids()
        summary_logger.info(f"[startup] Sweeping {len(zone_ids)} zones at {now.isoformat()}")

        pbar = None
        if self.settings.processing.show_progress and zone_ids:
            pbar = tqdm(total=len(zone_ids), desc="Sweep", unit="zone", ncols=100, leave=False)
        try:
            with section_timer(f"Daily sweep of {len(zone_ids)} zones", logger) as timer:
                for batch_index, batch in enumerate(chunked(zone_ids, self.chunk_size), 1):
                    batch_start = time.time()
                    for zone_id in batch:
                        self._sweep_one(zone_id, now, report)
                        if pbar:
                            pbar.update(1)
                    summary_logger.info(
                        f"[chunk-{batch_index}] Swept {len(batch)} zones in "
                        f"{time.time() - batch_start:.2f}s ({report.zones_failed} failures so far)"
                    )
                    self._sample_memory(report)
        finally:
            if pbar:
                pbar.close()

        report.processing_time = timer.seconds
        self._log_final_metrics(report)

        if zone_ids and report.zones_failed == len(zone_ids):
            raise SweepError(
                f"Sweep failed for all {len(zone_ids)} zones",
                failed_zones=list(report.failed),
            )
        return report

    def _sweep_one(self, zone_id: str, now: datetime, report: SweepReport) -> None:
        report.zones_scanned += 1
        attempts = self.settings.processing.retry_attempts
        try:
            for attempt in range(1, attempts + 1):
                try:
                    outcome = self._sweep_locked(zone_id, now)
                    break
                except ConcurrentUpdateError as e:
                    if attempt == attempts:
                        raise e.add_context("attempts", attempts)
                    logger.warning(
                        f"[sweep] Zone {zone_id} changed under the sweep "
                        f"(attempt {attempt}/{attempts}), retrying"
                    )
        except ConcurrentUpdateError as e:
            logger.warning(f"[sweep] Zone {zone_id} kept changing under the sweep: {e}")
            report.failed[zone_id] = str(e)
            return
        except ZoneConfError as e:
            logger.error(f"[sweep] Zone {zone_id} failed ({e.error_code}): {e}")
            report.failed[zone_id] = str(e)
            return
        except Exception as e:
            logger.exception(f"[sweep] Unexpected failure on zone {zone_id}")
            report.failed[zone_id] = f"{type(e).__name__}: {e}"
            return

        if outcome is None:
            # removed since listing
            report.zones_unchanged += 1
            return
        self._record(outcome, report)

    def _sweep_locked(self, zone_id: str, now: datetime) -> Optional[SweepOutcome]:
        """One read-sweep-write pass on a fresh copy of the zone."""
        with self.locks.hold(zone_id):
            current = self.store.fetch_state(zone_id)
            if current is None:
                return None
            outcome = self.sweep.sweep_zone(current, now)
            if outcome.changed and not self.settings.dry_run:
                self.store.upsert_state(outcome.state, expected_version=current.version)
        return outcome

    def _record(self, outcome: SweepOutcome, report: SweepReport) -> None:
        if outcome.changed and not outcome.already_swept:
            report.zones_decayed += 1
        elif not outcome.changed:
            report.zones_unchanged += 1
        if outcome.hazard_expired:
            report.hazards_expired += 1
        if outcome.state.state is ZoneState.DEGRADED:
            report.degraded_zones.append(outcome.zone_id)
        elif outcome.state.state is ZoneState.OFFLINE:
            report.offline_zones.append(outcome.zone_id)

    def _sample_memory(self, report: SweepReport) -> None:
        try:
            rss = self.process.memory_info().rss / 1e6  # MB
        except psutil.Error as e:
            logger.debug(f"[mem] Could not get memory info: {e}")
            return
        report.peak_rss_mb = max(report.peak_rss_mb, rss)
        logger.debug(f"[mem] RSS={rss:.1f}MB")

    def _log_final_metrics(self, report: SweepReport) -> None:
        summary_logger.info(f"[shutdown] Sweep completed in {report.processing_time:.2f} seconds")
        logger.info("=" * 60)
        logger.info("SWEEP METRICS" + (" (dry run)" if report.dry_run else ""))
        logger.info("=" * 60)
        logger.info(f"Zones scanned:       {report.zones_scanned:,}")
        logger.info(f"Zones decayed:       {report.zones_decayed:,}")
        logger.info(f"Zones unchanged:     {report.zones_unchanged:,}")
        logger.info(f"Zones failed:        {report.zones_failed:,}")
        logger.info(f"Hazards expired:     {report.hazards_expired:,}")
        logger.info(f"Degraded zones:      {len(report.degraded_zones):,}")
        logger.info(f"Offline zones:       {len(report.offline_zones):,}")
        logger.info(f"Peak RSS:            {report.peak_rss_mb:.1f}MB")
        for zone_id, reason in sorted(report.failed.items()):
            logger.info(f"  failed {zone_id}: {reason}")
        logger.info("=" * 60)

def run_daily_sweep(
    store: SqliteZoneStore,
    settings: Settings,
    now: Optional[datetime] = None,
) -> SweepReport:
    return DailySweepRunner(store, settings).run(now)
