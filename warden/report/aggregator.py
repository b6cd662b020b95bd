"""Collect persisted TestRun artifacts into a Report"""

import glob
import json
import logging
import os
from datetime import datetime
from typing import Dict, List, Optional

from pydantic import ValidationError

from warden.config import Settings, settings
from warden.models import (
    ExpectedAlert,
    Report,
    ReportEntry,
    ReportStatus,
    RunState,
    Session,
    TestCategory,
    TestRun,
)

logger = logging.getLogger(__name__)


# Order of the summary table (run-all order with comprehensive brute force after the two sweeps)
REPORT_ORDER: List[TestCategory] = [
    TestCategory.PASSWORD_BRUTE,
    TestCategory.USERNAME_BRUTE,
    TestCategory.COMPREHENSIVE_BRUTE,
    TestCategory.SQL_INJECTION,
    TestCategory.HARMFUL_APPLICATION,
    TestCategory.SUSPICIOUS_QUERIES,
    TestCategory.ENUMERATION,
    TestCategory.SHELL_COMMANDS,
]

# What a correctly configured Defender for SQL should raise; reference only
EXPECTED_ALERTS: List[ExpectedAlert] = [
    ExpectedAlert(alert="SQL.MI_BruteForce", severity="High",
                  description="Multiple failed login attempts detected"),
    ExpectedAlert(alert="SQL.MI_PotentialSqlInjection", severity="High",
                  description="Active SQL injection attempts"),
    ExpectedAlert(alert="SQL.MI_HarmfulApplication", severity="High",
                  description="Connection from potentially harmful application"),
    ExpectedAlert(alert="SQL.MI_ShellExternalSourceAnomaly", severity="High",
                  description="Shell command execution attempts"),
    ExpectedAlert(alert="SQL.MI_VulnerabilityToSqlInjection", severity="Medium",
                  description="Potential SQL injection vulnerability"),
    ExpectedAlert(alert="SQL.MI_SuspiciousIpAnomaly", severity="Medium",
                  description="Access from suspicious IP address"),
    ExpectedAlert(alert="SQL.MI_PrincipalAnomaly", severity="Medium",
                  description="Unusual user access patterns"),
    ExpectedAlert(alert="SQL.MI_DomainAnomaly", severity="Medium",
                  description="Access from unusual domains"),
    ExpectedAlert(alert="SQL.MI_GeoAnomaly", severity="Medium",
                  description="Access from unusual geographical locations"),
    ExpectedAlert(alert="SQL.MI_DataCenterAnomaly", severity="Low",
                  description="Access from unusual Azure data centers"),
]


def classify(run: Optional[TestRun]) -> ReportStatus:
    if run is None:
        return ReportStatus.NOT_RUN
    if run.state == RunState.COMPLETED:
        return ReportStatus.COMPLETED
    if run.state == RunState.TIMED_OUT:
        return ReportStatus.COMPLETED_TIMED_OUT
    # failed, or interrupted while running
    return ReportStatus.NOT_COMPLETED


class ReportAggregator:
    """Read-only view over the results directory"""

    def __init__(self, config: Optional[Settings] = None):
        self.config = config or settings
        self.results_dir = self.config.results_dir

    def load_runs(self, session_id: Optional[str] = None) -> List[TestRun]:
        """All TestRun sidecars, optionally limited to one session"""
        runs = []
        for category in TestCategory:
            pattern = os.path.join(self.results_dir, f"{category.slug}_*.json")
            for path in sorted(glob.glob(pattern)):
                run = self._load(path)
                if run is None or run.category != category:
                    continue
                if session_id and run.session_id != session_id:
                    continue
                runs.append(run)
        return runs

    def aggregate(self, session: Optional[Session] = None, session_id: Optional[str] = None) -> Report:
        """Build the category -> outcome summary"""
        session_id = session.session_id if session else session_id
        runs = self.load_runs(session_id)
        logger.info(f"Aggregating {len(runs)} test run(s) for session {session_id or 'all'}")

        latest: Dict[TestCategory, TestRun] = {}
        for run in runs:
            current = latest.get(run.category)
            if current is None or self._sort_key(run) > self._sort_key(current):
                latest[run.category] = run

        entries = []
        for category in REPORT_ORDER:
            run = latest.get(category)
            entries.append(ReportEntry(
                category=category,
                status=classify(run),
                expected_alerts=category.expected_alerts,
                artifact=run.artifact if run else None,
                run_id=run.run_id if run else None,
                error=run.error if run else None,
            ))

        return Report(
            session_id=session_id,
            target=session.target.model_copy(update={"password": None}) if session else None,
            entries=entries,
            expected_alerts=list(EXPECTED_ALERTS),
            artifacts=sorted(r.artifact for r in runs if r.artifact),
        )

    @staticmethod
    def _sort_key(run: TestRun):
        when = run.started_at or run.completed_at or datetime.min
        return when, run.run_id

    @staticmethod
    def _load(path: str) -> Optional[TestRun]:
        try:
            with open(path, encoding="utf-8") as f:
                return TestRun.model_validate(json.load(f))
        except (OSError, json.JSONDecodeError, ValidationError) as e:
            logger.warning(f"Skipping unreadable artifact {path}: {e}")
            return None
