from __future__ import annotations

import enum
import re
from dataclasses import dataclass
from typing import Optional

from logicmap.sanitize import LabelMode


class LanguageFamily(enum.Enum):
    PYTHON = "python"
    JAVA = "java"
    JAVASCRIPT = "javascript"
    TYPESCRIPT = "typescript"
    CSHARP = "csharp"
    SQL = "sql"


class SqlDialect(enum.Enum):
    TSQL = "tsql"
    MYSQL = "mysql"
    SPARK = "spark"
    GENERIC = "generic"


@dataclass(frozen=True)
class Language:
    family: LanguageFamily
    dialect: Optional[SqlDialect] = None
    grammar: Optional[str] = None  # tree-sitter grammar name, None for the stdlib ast path

    @property
    def label_mode(self) -> LabelMode:
        if self.family in (LanguageFamily.JAVASCRIPT, LanguageFamily.TYPESCRIPT):
            return LabelMode.STRICT
        return LabelMode.LENIENT

    @property
    def accumulates_variables(self) -> bool:
        """Tracers for these languages report variable diffs rather than full snapshots."""
        return self.family in (
            LanguageFamily.JAVA,
            LanguageFamily.JAVASCRIPT,
            LanguageFamily.TYPESCRIPT,
            LanguageFamily.CSHARP,
        )


# Display names offered to users (the free-form resolver accepts far more)
LANGUAGES = [
    "Python",
    "Java",
    "JavaScript",
    "TypeScript",
    "C#",
    "SQL Server SQL",
    "MySQL SQL",
    "Spark SQL",
]


def _sql_dialect(key: str) -> SqlDialect:
    if "spark" in key or "hive" in key or "databricks" in key:
        return SqlDialect.SPARK
    if "mysql" in key or "maria" in key:
        return SqlDialect.MYSQL
    if "server" in key or "tsql" in key or "t-sql" in key or "mssql" in key:
        return SqlDialect.TSQL
    return SqlDialect.GENERIC


def resolve_language(label: Optional[str]) -> Optional[Language]:
    """Map a free-form language label (case-insensitive) to a Language, or None if unsupported."""
    if not label:
        return None
    key = label.strip().lower()
    if not key:
        return None

    if "sql" in key or key in ("spark", "tsql", "t-sql", "mssql", "hive"):
        return Language(LanguageFamily.SQL, _sql_dialect(key), "sql")
    if key in ("python", "py", "python3") or key.startswith("python"):
        return Language(LanguageFamily.PYTHON)
    if key in ("c#", "csharp", "cs", "c sharp", "c-sharp", ".net"):
        return Language(LanguageFamily.CSHARP, grammar="csharp")
    if key in ("tsx",):
        return Language(LanguageFamily.TYPESCRIPT, grammar="tsx")
    if key in ("ts", "typescript") or "typescript" in key:
        return Language(LanguageFamily.TYPESCRIPT, grammar="typescript")
    if key in ("js", "jsx", "javascript", "node", "nodejs", "ecmascript") or "javascript" in key:
        return Language(LanguageFamily.JAVASCRIPT, grammar="javascript")
    if re.fullmatch(r"java\s*\d*", key):
        return Language(LanguageFamily.JAVA, grammar="java")
    return None
