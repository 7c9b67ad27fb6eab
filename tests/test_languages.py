import pytest

from logicmap.languages import LANGUAGES, LanguageFamily, SqlDialect, resolve_language
from logicmap.sanitize import LabelMode


@pytest.mark.parametrize(
    "label, family, grammar",
    [
        ("Python", LanguageFamily.PYTHON, None),
        ("python3", LanguageFamily.PYTHON, None),
        ("JAVA", LanguageFamily.JAVA, "java"),
        ("java 17", LanguageFamily.JAVA, "java"),
        ("JavaScript", LanguageFamily.JAVASCRIPT, "javascript"),
        ("js", LanguageFamily.JAVASCRIPT, "javascript"),
        ("TypeScript", LanguageFamily.TYPESCRIPT, "typescript"),
        ("tsx", LanguageFamily.TYPESCRIPT, "tsx"),
        ("C#", LanguageFamily.CSHARP, "csharp"),
        ("csharp", LanguageFamily.CSHARP, "csharp"),
    ],
)
def test_resolve_imperative_languages(label, family, grammar):
    lang = resolve_language(label)
    assert lang.family is family
    assert lang.grammar == grammar


@pytest.mark.parametrize(
    "label, dialect",
    [
        ("SQL Server SQL", SqlDialect.TSQL),
        ("tsql", SqlDialect.TSQL),
        ("MySQL SQL", SqlDialect.MYSQL),
        ("Spark SQL", SqlDialect.SPARK),
        ("sql", SqlDialect.GENERIC),
    ],
)
def test_resolve_sql_dialects(label, dialect):
    lang = resolve_language(label)
    assert lang.family is LanguageFamily.SQL
    assert lang.dialect is dialect


def test_unsupported_labels_resolve_to_none():
    assert resolve_language("cobol") is None
    assert resolve_language("") is None
    assert resolve_language(None) is None


def test_display_names_all_resolve():
    for name in LANGUAGES:
        assert resolve_language(name) is not None, name


def test_label_mode_and_variable_accumulation():
    assert resolve_language("javascript").label_mode is LabelMode.STRICT
    assert resolve_language("typescript").label_mode is LabelMode.STRICT
    assert resolve_language("python").label_mode is LabelMode.LENIENT
    assert resolve_language("java").accumulates_variables
    assert not resolve_language("python").accumulates_variables
