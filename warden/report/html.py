"""HTML report generator for Warden"""

import html
import os
from datetime import datetime
from typing import Optional

from warden.config import Settings, settings
from warden.models import Report, ReportStatus


STATUS_CLASSES = {
    ReportStatus.COMPLETED: "success",
    ReportStatus.COMPLETED_TIMED_OUT: "info",
    ReportStatus.NOT_COMPLETED: "warning",
    ReportStatus.NOT_RUN: "error",
}

STYLE = """
        body { font-family: Arial, sans-serif; margin: 20px; }
        .header { background-color: #0078d4; color: white; padding: 20px; border-radius: 5px; }
        .section { margin: 20px 0; padding: 15px; border-left: 4px solid #0078d4; background-color: #f8f9fa; }
        .success { background-color: #d4edda; }
        .warning { background-color: #fff3cd; }
        .error { background-color: #f8d7da; }
        .info { background-color: #d1ecf1; }
        table { width: 100%; border-collapse: collapse; margin: 10px 0; }
        th, td { border: 1px solid #ddd; padding: 8px; text-align: left; }
        th { background-color: #f2f2f2; }
"""


class HtmlReporter:
    """Generate a standalone HTML page for a test session"""

    def __init__(self, config: Optional[Settings] = None):
        self.config = config or settings
        self.output_dir = self.config.reports_dir
        os.makedirs(self.output_dir, exist_ok=True)

    def generate(self, report: Report, stamp: Optional[str] = None) -> str:
        stamp = stamp or datetime.now().strftime('%Y%m%d_%H%M%S')
        filepath = os.path.join(self.output_dir, f"report_{report.session_id or 'all'}_{stamp}.html")

        with open(filepath, "w", encoding="utf-8") as f:
            f.write(self.render(report))

        return filepath

    def render(self, report: Report) -> str:
        esc = html.escape
        target = esc(report.target.address) if report.target else "N/A"
        session = esc(report.session_id or "all sessions")

        rows = []
        for entry in report.entries:
            if entry.artifact:
                details = f'<a href="file://{esc(os.path.abspath(entry.artifact))}">View Details</a>'
            else:
                details = "Test not executed"
            if entry.error:
                details += f"<br><small>{esc(entry.error)}</small>"
            alerts = esc(", ".join(entry.expected_alerts)) if entry.status != ReportStatus.NOT_RUN else "N/A"
            rows.append(
                f'            <tr class="{STATUS_CLASSES[entry.status]}"><td>{esc(entry.category.title)}</td>'
                f"<td>{esc(entry.status.value)}</td><td>{alerts}</td><td>{details}</td></tr>"
            )

        files = "\n".join(
            f'            <li><a href="file://{esc(os.path.abspath(path))}">{esc(os.path.basename(path))}</a></li>'
            for path in report.artifacts
        ) or "            <li>No result files</li>"

        alerts = "\n".join(
            f"            <li><strong>{esc(a.alert)}</strong> ({esc(a.severity)}): {esc(a.description)}</li>"
            for a in report.expected_alerts
        )

        return f"""<!DOCTYPE html>
<html>
<head>
    <meta charset="utf-8">
    <title>Defender for SQL Testing Report - {session}</title>
    <style>{STYLE}    </style>
</head>
<body>
    <div class="header">
        <h1>Defender for SQL Testing Report</h1>
        <p><strong>Session:</strong> {session}</p>
        <p><strong>Target:</strong> {target}</p>
        <p><strong>Generated:</strong> {report.generated_at.strftime('%Y-%m-%d %H:%M:%S')}</p>
    </div>

    <div class="section">
        <h2>Test Results Summary</h2>
        <table>
            <tr><th>Test Category</th><th>Status</th><th>Expected Alerts</th><th>Details</th></tr>
{chr(10).join(rows)}
        </table>
        <p><strong>Completion Rate:</strong> {report.completed}/{report.total} tests completed</p>
    </div>

    <div class="section">
        <h2>Expected Defender Alerts</h2>
        <p>The following alerts should appear in Microsoft Defender for Cloud within 5-15 minutes:</p>
        <ul>
{alerts}
        </ul>
    </div>

    <div class="section">
        <h2>Test Files Generated</h2>
        <ul>
{files}
        </ul>
    </div>

    <div class="section">
        <h2>Monitoring Instructions</h2>
        <ol>
            <li>Open Microsoft Defender for Cloud in the Azure Portal</li>
            <li>Go to the <strong>Security alerts</strong> section</li>
            <li>Filter by <strong>Resource type: SQL</strong></li>
            <li>Look for alerts with timestamps matching this test session</li>
            <li>Review alert details and remediation recommendations</li>
        </ol>
    </div>

    <footer style="margin-top: 40px; padding-top: 20px; border-top: 1px solid #ddd; color: #666; font-size: 12px;">
        <p>Generated by Warden</p>
    </footer>
</body>
</html>
"""
