"""Markdown report generator for Warden"""

import os
from datetime import datetime
from typing import Optional

from warden.config import Settings, settings
from warden.models import Report, ReportStatus


STATUS_ICONS = {
    ReportStatus.COMPLETED: "✅",
    ReportStatus.COMPLETED_TIMED_OUT: "⏱️",
    ReportStatus.NOT_COMPLETED: "⚠️",
    ReportStatus.NOT_RUN: "❌",
}


class MarkdownReporter:
    """Generate Markdown reports for a test session"""

    def __init__(self, config: Optional[Settings] = None):
        self.config = config or settings
        self.output_dir = self.config.reports_dir
        os.makedirs(self.output_dir, exist_ok=True)

    def generate(self, report: Report, stamp: Optional[str] = None) -> str:
        """Render the report and save it, returning the file path"""
        content = self.render(report)

        stamp = stamp or datetime.now().strftime('%Y%m%d_%H%M%S')
        filename = f"report_{report.session_id or 'all'}_{stamp}.md"
        filepath = os.path.join(self.output_dir, filename)

        with open(filepath, "w", encoding="utf-8") as f:
            f.write(content)

        return filepath

    def render(self, report: Report) -> str:
        return "\n".join([
            self._generate_header(report),
            self._generate_summary(report),
            self._generate_alerts(report),
            self._generate_files(report),
            self._generate_validation(),
            self._generate_footer(report),
        ])

    def _generate_header(self, report: Report) -> str:
        target = report.target
        return f"""# Defender for SQL - Security Test Report

**Target:** {target.address if target else 'N/A'}
**Username:** {target.username if target else 'N/A'}
**Session:** {report.session_id or 'all sessions'}
**Generated:** {report.generated_at.strftime('%Y-%m-%d %H:%M:%S')}

---

"""

    def _generate_summary(self, report: Report) -> str:
        """Category -> outcome table"""
        rows = []
        for entry in report.entries:
            icon = STATUS_ICONS.get(entry.status, "")
            details = f"`{entry.artifact}`" if entry.artifact else "Test not executed"
            alerts = ", ".join(entry.expected_alerts) if entry.status != ReportStatus.NOT_RUN else "N/A"
            rows.append(f"| {entry.category.title} | {icon} {entry.status.value} | {alerts} | {details} |")

        errors = [e for e in report.entries if e.error]
        error_lines = ""
        if errors:
            error_lines = "\n### Errors\n\n" + "\n".join(
                f"- **{e.category.title}:** {e.error}" for e in errors
            ) + "\n"

        return f"""## Test Results Summary

| Test Category | Status | Expected Alerts | Details |
|---------------|--------|-----------------|---------|
{chr(10).join(rows)}

**Completion Rate:** {report.completed}/{report.total} tests completed ({report.completion_rate:g}%)
{error_lines}
---

"""

    def _generate_alerts(self, report: Report) -> str:
        """Expected alert catalogue grouped by severity"""
        sections = ["## Expected Alerts\n",
                    "The following alerts should appear in Microsoft Defender for Cloud within 5-15 minutes:\n"]

        for severity in ("High", "Medium", "Low"):
            alerts = [a for a in report.expected_alerts if a.severity == severity]
            if not alerts:
                continue
            sections.append(f"### {severity} Severity\n")
            sections.extend(f"- **{a.alert}**: {a.description}" for a in alerts)
            sections.append("")

        sections.append("---\n")
        return "\n".join(sections)

    def _generate_files(self, report: Report) -> str:
        if not report.artifacts:
            return ""
        files = "\n".join(f"- `{path}`" for path in report.artifacts)
        return f"## Files Generated\n\n{files}\n\n---\n"

    def _generate_validation(self) -> str:
        return """## Validation Steps

1. **Microsoft Defender for Cloud**: Check for new alerts in the security dashboard
2. **Log Analytics Workspace**: Query for security events and failed login attempts
3. **SQL MI Audit Logs**: Review authentication and query execution logs
4. **Defender for SQL Recommendations**: Check for new security recommendations

## Sample Queries for Log Analytics

```kusto
// Failed login attempts
AzureDiagnostics
| where Category == "SQLSecurityAuditEvents"
| where action_name_s == "FAILED_LOGIN"
| where TimeGenerated > ago(1h)
| summarize count() by client_ip_s, server_principal_name_s

// SQL injection attempts
AzureDiagnostics
| where Category == "SQLSecurityAuditEvents"
| where statement_s contains "OR 1=1" or statement_s contains "UNION SELECT"
| where TimeGenerated > ago(1h)

// Suspicious application connections
AzureDiagnostics
| where Category == "SQLSecurityAuditEvents"
| where application_name_s contains "sqlmap" or application_name_s contains "havij"
| where TimeGenerated > ago(1h)
```

## Next Steps

1. Verify that alerts were generated in Microsoft Defender for Cloud
2. Review individual test result files for detailed analysis
3. Test incident response procedures
4. Document any gaps in alert coverage for security team review
5. Schedule regular security testing

---

"""

    def _generate_footer(self, report: Report) -> str:
        return f"""*Report generated by Warden - Defender for SQL alert validation suite*
*Session ID: {report.session_id or 'all'}*
"""
