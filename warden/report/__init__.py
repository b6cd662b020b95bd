"""Warden reporting"""

import os
from datetime import datetime
from typing import Dict, Optional

from warden.config import Settings, settings
from warden.models import Report

from .aggregator import EXPECTED_ALERTS, REPORT_ORDER, ReportAggregator, classify
from .html import HtmlReporter
from .markdown import MarkdownReporter


def write_reports(report: Report, config: Optional[Settings] = None) -> Dict[str, str]:
    """Write the Markdown, HTML and JSON renditions with a shared timestamp"""
    config = config or settings
    stamp = datetime.now().strftime('%Y%m%d_%H%M%S')

    paths = {
        "markdown": MarkdownReporter(config).generate(report, stamp),
        "html": HtmlReporter(config).generate(report, stamp),
    }

    json_path = os.path.join(config.reports_dir, f"report_{report.session_id or 'all'}_{stamp}.json")
    with open(json_path, "w", encoding="utf-8") as f:
        f.write(report.model_dump_json(indent=2))
    paths["json"] = json_path

    return paths


__all__ = [
    "EXPECTED_ALERTS",
    "REPORT_ORDER",
    "HtmlReporter",
    "MarkdownReporter",
    "ReportAggregator",
    "classify",
    "write_reports",
]
