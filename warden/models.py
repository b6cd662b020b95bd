"""Core data models for Warden"""

from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional
from pydantic import BaseModel, Field
import uuid


class SizeClass(str, Enum):
    SMALL = "small"
    MEDIUM = "medium"
    LARGE = "large"


class Tier(str, Enum):
    QUICK = "quick"
    STANDARD = "standard"
    COMPREHENSIVE = "comprehensive"
    STEALTH = "stealth"
    CUSTOM = "custom"


class CategoryKind(str, Enum):
    CREDENTIAL_GUESS = "credential-guess"
    INJECTION_PROBE = "injection-probe"
    RECONNAISSANCE = "reconnaissance"
    ANOMALY_SIMULATION = "anomaly-simulation"


class TestCategory(str, Enum):
    __test__ = False

    PASSWORD_BRUTE = "password-brute"
    USERNAME_BRUTE = "username-brute"
    COMPREHENSIVE_BRUTE = "comprehensive-brute"
    SQL_INJECTION = "sql-injection"
    HARMFUL_APPLICATION = "harmful-application"
    SUSPICIOUS_QUERIES = "suspicious-queries"
    ENUMERATION = "enumeration"
    SHELL_COMMANDS = "shell-commands"

    @property
    def slug(self) -> str:
        """File-name form, e.g. password_brute"""
        return self.value.replace("-", "_")

    @property
    def kind(self) -> CategoryKind:
        return CATEGORY_INFO[self]["kind"]

    @property
    def title(self) -> str:
        return CATEGORY_INFO[self]["title"]

    @property
    def expected_alerts(self) -> List[str]:
        return CATEGORY_INFO[self]["alerts"]

    @property
    def is_brute_force(self) -> bool:
        return self.kind == CategoryKind.CREDENTIAL_GUESS


CATEGORY_INFO: Dict["TestCategory", dict] = {
    TestCategory.PASSWORD_BRUTE: {
        "title": "Password Brute Force",
        "kind": CategoryKind.CREDENTIAL_GUESS,
        "alerts": ["SQL.MI_BruteForce"],
    },
    TestCategory.USERNAME_BRUTE: {
        "title": "Username Enumeration",
        "kind": CategoryKind.CREDENTIAL_GUESS,
        "alerts": ["SQL.MI_BruteForce", "SQL.MI_PrincipalAnomaly"],
    },
    TestCategory.COMPREHENSIVE_BRUTE: {
        "title": "Comprehensive Brute Force",
        "kind": CategoryKind.CREDENTIAL_GUESS,
        "alerts": ["SQL.MI_BruteForce", "SQL.MI_PrincipalAnomaly"],
    },
    TestCategory.SQL_INJECTION: {
        "title": "SQL Injection",
        "kind": CategoryKind.INJECTION_PROBE,
        "alerts": ["SQL.MI_VulnerabilityToSqlInjection", "SQL.MI_PotentialSqlInjection"],
    },
    TestCategory.HARMFUL_APPLICATION: {
        "title": "Harmful Application",
        "kind": CategoryKind.ANOMALY_SIMULATION,
        "alerts": ["SQL.MI_HarmfulApplication"],
    },
    TestCategory.SUSPICIOUS_QUERIES: {
        "title": "Suspicious Queries",
        "kind": CategoryKind.ANOMALY_SIMULATION,
        "alerts": ["Various anomaly detection alerts"],
    },
    TestCategory.ENUMERATION: {
        "title": "Database Enumeration",
        "kind": CategoryKind.RECONNAISSANCE,
        "alerts": ["Reconnaissance activity detection"],
    },
    TestCategory.SHELL_COMMANDS: {
        "title": "Shell Commands",
        "kind": CategoryKind.ANOMALY_SIMULATION,
        "alerts": ["SQL.MI_ShellExternalSourceAnomaly (limited on MI)"],
    },
}


# Order used by "run all" (comprehensive brute force is password + username combined)
RUN_ALL_ORDER: List[TestCategory] = [
    TestCategory.PASSWORD_BRUTE,
    TestCategory.USERNAME_BRUTE,
    TestCategory.SQL_INJECTION,
    TestCategory.HARMFUL_APPLICATION,
    TestCategory.SUSPICIOUS_QUERIES,
    TestCategory.ENUMERATION,
    TestCategory.SHELL_COMMANDS,
]


class RunState(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    TIMED_OUT = "timed_out"

    @property
    def is_terminal(self) -> bool:
        return self in (RunState.COMPLETED, RunState.FAILED, RunState.TIMED_OUT)


ALLOWED_TRANSITIONS = {
    RunState.PENDING: {RunState.RUNNING, RunState.FAILED},
    RunState.RUNNING: {RunState.COMPLETED, RunState.FAILED, RunState.TIMED_OUT},
    RunState.COMPLETED: set(),
    RunState.FAILED: set(),
    RunState.TIMED_OUT: set(),
}


class TierPreset(BaseModel):
    model_config = {"frozen": True}

    threads: int = Field(gt=0)
    delay: float = Field(ge=0)
    wordlist: SizeClass


class Target(BaseModel):
    model_config = {"frozen": True}

    host: str
    port: int
    username: str
    password: Optional[str] = None

    @property
    def address(self) -> str:
        return f"{self.host}:{self.port}"

    @property
    def has_credentials(self) -> bool:
        return bool(self.username and self.password)


class Session(BaseModel):
    model_config = {"frozen": True}

    session_id: str
    target: Target
    start_time: datetime = Field(default_factory=lambda: datetime.now())


class RawOutput(BaseModel):
    label: str = ""
    application: Optional[str] = None
    command: List[str] = Field(default_factory=list)
    stdout: str = ""
    stderr: str = ""
    exit_code: Optional[int] = None
    timed_out: bool = False
    started_at: datetime = Field(default_factory=lambda: datetime.now())
    finished_at: Optional[datetime] = None

    @property
    def text(self) -> str:
        """Combined stdout/stderr as captured"""
        if self.stderr and self.stdout:
            return f"{self.stdout.rstrip()}\n{self.stderr}"
        return self.stdout or self.stderr


class WordlistTier(BaseModel):
    kind: str
    size_class: SizeClass
    entries: List[str]
    path: str

    def __len__(self) -> int:
        return len(self.entries)


class TestRun(BaseModel):
    __test__ = False

    run_id: str = Field(default_factory=lambda: str(uuid.uuid4())[:8])
    session_id: str
    category: TestCategory
    tier: Tier = Tier.STANDARD
    state: RunState = RunState.PENDING
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    artifact: Optional[str] = None
    steps: List[RawOutput] = Field(default_factory=list)
    notes: List[str] = Field(default_factory=list)
    error: Optional[str] = None
    credentials_found: List[str] = Field(default_factory=list)

    def transition(self, new_state: RunState):
        """Move along pending -> running -> {completed, failed, timed_out}"""
        if new_state not in ALLOWED_TRANSITIONS[self.state]:
            raise ValueError(f"Illegal TestRun transition {self.state.value} -> {new_state.value}")
        self.state = new_state
        if new_state == RunState.RUNNING:
            self.started_at = datetime.now()
        elif new_state.is_terminal:
            self.completed_at = datetime.now()

    @property
    def outcome(self) -> Optional[RunState]:
        return self.state if self.state.is_terminal else None

    @property
    def timed_out(self) -> bool:
        return any(step.timed_out for step in self.steps)

    @property
    def raw_output(self) -> str:
        return "\n".join(step.text for step in self.steps)


class ReportStatus(str, Enum):
    COMPLETED = "Completed"
    COMPLETED_TIMED_OUT = "Completed (timed out)"
    NOT_COMPLETED = "Not Completed"
    NOT_RUN = "Not Run"


class ExpectedAlert(BaseModel):
    alert: str
    severity: str
    description: str


class ReportEntry(BaseModel):
    category: TestCategory
    status: ReportStatus
    expected_alerts: List[str] = Field(default_factory=list)
    artifact: Optional[str] = None
    run_id: Optional[str] = None
    error: Optional[str] = None


class Report(BaseModel):
    session_id: Optional[str] = None
    target: Optional[Target] = None
    generated_at: datetime = Field(default_factory=lambda: datetime.now())
    entries: List[ReportEntry] = Field(default_factory=list)
    expected_alerts: List[ExpectedAlert] = Field(default_factory=list)
    artifacts: List[str] = Field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.entries)

    @property
    def completed(self) -> int:
        return sum(
            1 for e in self.entries
            if e.status in (ReportStatus.COMPLETED, ReportStatus.COMPLETED_TIMED_OUT)
        )

    @property
    def completion_rate(self) -> float:
        if not self.entries:
            return 0.0
        return round(self.completed * 100 / self.total, 2)

    def table(self) -> List[tuple]:
        """category -> outcome table, independent of generation time"""
        return [(e.category.value, e.status.value, e.artifact) for e in self.entries]
