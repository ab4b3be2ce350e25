"""Intel intake: persist a submission and recompute its zone."""

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Mapping, Optional

from zoneconf.config.settings import ConfidenceSettings, DEFAULT_CONFIDENCE
from zoneconf.data.locks import ZoneLockRegistry
from zoneconf.data.store import SqliteZoneStore
from zoneconf.domain.exceptions import ConcurrentUpdateError, ParameterValidationError
from zoneconf.domain.models import IntelSubmission, IntelType, PricePoint
from zoneconf.scoring.confidence import ConfidenceComposer
from zoneconf.scoring.detectors import check_price_anomaly, count_hazard_reports
from zoneconf.scoring.models import ConfidenceUpdate
from zoneconf.scoring.trust import trust_weight_for_karma, karma_reward
from zoneconf.utils.clock import as_utc, utcnow

logger = logging.getLogger(__name__)

@dataclass(frozen=True)
class IntakeResult:
    submission: IntelSubmission
    update: ConfidenceUpdate
    karma_earned: int
    attempts: int = 1

    @property
    def state(self):
        return self.update.state

    @property
    def factors(self):
        return self.update.factors


class IntelIntake:
    """
    Accepts a submission, stores it, and writes the zone's new state.

    Each zone update runs under the zone's lock and a version check; a lost
    race is retried from a fresh read up to `retry_attempts` times.
    """

    def __init__(
        self,
        store: SqliteZoneStore,
        *,
        config: ConfidenceSettings = DEFAULT_CONFIDENCE,
        locks: Optional[ZoneLockRegistry] = None,
        retry_attempts: int = 3,
    ):
        if retry_attempts < 1:
            raise ParameterValidationError(
                "retry_attempts", retry_attempts, expected_type="positive integer"
            )
        self.store = store
        self.config = config
        self.locks = locks or ZoneLockRegistry()
        self.retry_attempts = retry_attempts
        self.composer = ConfidenceComposer(config)

    def build_submission(
        self,
        zone_id: str,
        user_id: str,
        intel_type: Any,
        data: Optional[Mapping[str, Any]] = None,
        *,
        karma: Optional[float] = None,
        now: Optional[datetime] = None,
        submission_id: Optional[str] = None,
    ) -> IntelSubmission:
        """Validate raw input and attach the submitter's trust weight."""
        if not zone_id:
            raise ParameterValidationError("zone_id", zone_id, expected_type="non-empty string")
        if not user_id:
            raise ParameterValidationError("user_id", user_id, expected_type="non-empty string")
        submission = IntelSubmission(
            id=submission_id or str(uuid.uuid4()),
            zone_id=zone_id,
            user_id=user_id,
            intel_type=IntelType.parse(intel_type),
            data=dict(data or {}),
            trust_weight=trust_weight_for_karma(karma, config=self.config),
            created_at=as_utc(now) if now is not None else utcnow(),
        )
        if submission.intel_type is IntelType.PRICE_SUBMISSION:
            submission.price_point()
        return submission

    def submit(
        self,
        zone_id: str,
        user_id: str,
        intel_type: Any,
        data: Optional[Mapping[str, Any]] = None,
        *,
        karma: Optional[float] = None,
        now: Optional[datetime] = None,
    ) -> IntakeResult:
        submission = self.build_submission(
            zone_id, user_id, intel_type, data, karma=karma, now=now
        )
        return self.process(submission, now=submission.created_at)

    def process(self, submission: IntelSubmission, *, now: Optional[datetime] = None) -> IntakeResult:
        """
        Recompute `submission`'s zone and store both together.

        The submission row, the zone state and the price aggregate commit in
        one transaction; a failed attempt leaves nothing behind, so the same
        submission can be processed again.
        """
        now = as_utc(now) if now is not None else utcnow()

        last_error: Optional[ConcurrentUpdateError] = None
        for attempt in range(1, self.retry_attempts + 1):
            try:
                with self.locks.hold(submission.zone_id):
                    update = self._apply(submission, now)
            except ConcurrentUpdateError as e:
                last_error = e
                logger.warning(
                    "Concurrent update on zone %s (attempt %d/%d), retrying",
                    submission.zone_id, attempt, self.retry_attempts,
                )
                continue
            logger.info(
                "Zone %s <- %s: score %.1f (%s/%s)",
                submission.zone_id, submission.intel_type.value,
                update.state.score, update.state.level.value, update.state.state.value,
            )
            return IntakeResult(
                submission=submission,
                update=update,
                karma_earned=karma_reward(submission.intel_type),
                attempts=attempt,
            )

        raise last_error.add_context("attempts", self.retry_attempts)

    def _apply(self, submission: IntelSubmission, now: datetime) -> ConfidenceUpdate:
        cfg = self.config
        zone_id = submission.zone_id
        current = self.store.fetch_state(zone_id)

        window_hours = max(cfg.hazard.window_hours, cfg.conflict.window_hours, 24.0)
        window = self.store.fetch_submissions(
            zone_id, now - timedelta(hours=window_hours), until=now
        )
        # the submission is only stored with the state write below
        hazard_reports = count_hazard_reports(window + [submission], now, config=cfg)

        point: Optional[PricePoint] = None
        price_anomaly = False
        if submission.intel_type is IntelType.PRICE_SUBMISSION:
            point = submission.price_point()
            baseline = self.store.fetch_price_baseline(zone_id, point.item)
            price_anomaly = check_price_anomaly(point.price, baseline, config=cfg)

        update = self.composer.compose(
            current, submission, window, hazard_reports, price_anomaly, now=now
        )

        with self.store.transaction():
            self.store.insert_submission(submission)
            stored = self.store.upsert_state(
                update.state,
                expected_version=current.version if current is not None else None,
            )
            # anomaly check above saw the aggregate without this price
            if point is not None:
                self.store.record_price(zone_id, point, submission.created_at)

        return ConfidenceUpdate(state=stored, factors=update.factors)
