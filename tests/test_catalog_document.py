"""Tests for the format-preserving TOML document."""
import pytest

from catalog.document import TomlDocument, format_inline_table, format_key, format_string
from errors import ValidationError


CATALOG = '''# Shared versions
[versions]
kotlin = "1.9.0"  # language
okhttp = '4.11.0'

[libraries]
okhttp = { module = "com.squareup.okhttp3:okhttp", version.ref = "okhttp" }
guava = "com.google.guava:guava:31.1-jre"

[bundles]
net = ["okhttp", "guava"]

[plugins]
kotlin-jvm = { id = "org.jetbrains.kotlin.jvm", version.ref = "kotlin" }
'''


class TestIndexing:
    """Test value and table positions."""

    def test_render_is_identity(self):
        """An untouched document renders byte for byte."""
        assert TomlDocument(CATALOG).render() == CATALOG

    def test_value_spans(self):
        """Spans cover exactly the value tokens."""
        doc = TomlDocument(CATALOG)
        span = doc.span(("versions", "kotlin"))
        assert CATALOG[span.start:span.end] == '"1.9.0"'
        assert span.quote == '"'
        assert doc.span(("versions", "okhttp")).quote == "'"

    def test_dotted_key_inside_inline_table(self):
        """version.ref inside an inline table gets its full path."""
        doc = TomlDocument(CATALOG)
        span = doc.span(("libraries", "okhttp", "version", "ref"))
        assert CATALOG[span.start:span.end] == '"okhttp"'

    def test_arrays_and_semantic_values(self):
        """Arrays are indexed as a whole and values come from the TOML parser."""
        doc = TomlDocument(CATALOG)
        assert doc.span(("bundles", "net")).kind == "array"
        assert doc.get(("bundles", "net")) == ["okhttp", "guava"]
        assert doc.get(("versions", "missing"), "x") == "x"

    def test_quoted_keys_and_subtables(self):
        """Quoted keys and [table.sub] headers are indexed."""
        text = '[versions]\n"my.key" = "1"\n\n[libraries.okhttp]\nmodule = "a:b"\nversion = "1.0"\n'
        doc = TomlDocument(text)
        assert doc.span(("versions", "my.key")) is not None
        span = doc.span(("libraries", "okhttp", "version"))
        assert text[span.start:span.end] == '"1.0"'

    def test_multiline_string(self):
        """Multiline strings are skipped correctly."""
        text = '[metadata]\nnote = """\nline "one"\n"""\n[versions]\nx = "1"\n'
        doc = TomlDocument(text)
        span = doc.span(("versions", "x"))
        assert text[span.start:span.end] == '"1"'

    def test_invalid_toml(self):
        """Malformed TOML is a validation error."""
        with pytest.raises(ValidationError):
            TomlDocument("[versions\nx = 1\n")


class TestEdits:
    """Test in-place edits."""

    def test_set_string_keeps_quote_and_comment(self):
        """Only the value token changes."""
        doc = TomlDocument(CATALOG)
        doc.set_string(("versions", "okhttp"), "4.12.0")
        doc.set_string(("versions", "kotlin"), "1.9.20")
        expected = CATALOG.replace("'4.11.0'", "'4.12.0'").replace('"1.9.0"', '"1.9.20"')
        assert doc.render() == expected
        assert doc.get(("versions", "kotlin")) == "1.9.20"

    def test_set_string_inside_inline_table(self):
        """Strings nested in inline tables can be rewritten."""
        doc = TomlDocument(CATALOG)
        doc.set_string(("libraries", "okhttp", "version", "ref"), "http")
        assert 'version.ref = "http" }' in doc.render()

    def test_set_string_escapes_literal_quote(self):
        """A value that cannot live in a literal string is written as a basic string."""
        doc = TomlDocument(CATALOG)
        doc.set_string(("versions", "okhttp"), "it's")
        assert 'okhttp = "it\'s"' in doc.render()

    def test_set_string_missing_path(self):
        """Unknown paths raise KeyError."""
        doc = TomlDocument(CATALOG)
        with pytest.raises(KeyError):
            doc.set_string(("versions", "nope"), "1")
        with pytest.raises(KeyError):
            doc.set_string(("bundles", "net"), "1")

    def test_insert_entry_after_last_key(self):
        """New keys go right after the last entry of the table."""
        doc = TomlDocument(CATALOG)
        doc.insert_entry("versions", "retrofit", '"2.9.0"')
        expected = CATALOG.replace(
            "okhttp = '4.11.0'\n", "okhttp = '4.11.0'\nretrofit = \"2.9.0\"\n"
        )
        assert doc.render() == expected
        assert doc.get(("versions", "retrofit")) == "2.9.0"

    def test_insert_entry_without_trailing_newline(self):
        """A missing final newline is added before the new line."""
        doc = TomlDocument('[versions]\nx = "1"')
        doc.insert_entry("versions", "y", '"2"')
        assert doc.render() == '[versions]\nx = "1"\ny = "2"\n'

    def test_insert_entry_crlf(self):
        """CRLF documents get CRLF lines."""
        doc = TomlDocument('[versions]\r\nx = "1"\r\n\r\n[libraries]\r\n')
        doc.insert_entry("versions", "y", '"2"')
        assert doc.render() == '[versions]\r\nx = "1"\r\ny = "2"\r\n\r\n[libraries]\r\n'

    def test_insert_entry_root_dotted_keys(self):
        """Tables defined by root dotted keys keep the dotted style."""
        doc = TomlDocument('versions.kotlin = "1.9"\n')
        doc.insert_entry("versions", "ktor", '"2.3"')
        assert doc.render() == 'versions.kotlin = "1.9"\nversions.ktor = "2.3"\n'
        assert doc.get(("versions", "ktor")) == "2.3"

    def test_insert_entry_missing_table(self):
        """Inserting into an absent table raises KeyError."""
        doc = TomlDocument('[versions]\n')
        with pytest.raises(KeyError):
            doc.insert_entry("plugins", "x", '"1"')

    def test_ensure_table_appends_header(self):
        """A missing table is appended after a blank line."""
        doc = TomlDocument('[libraries]\na = "g:a:1"\n')
        doc.ensure_table("versions")
        doc.insert_entry("versions", "a", '"1"')
        assert doc.render() == '[libraries]\na = "g:a:1"\n\n[versions]\na = "1"\n'

    def test_ensure_table_existing_is_noop(self):
        """An existing table is left alone."""
        doc = TomlDocument(CATALOG)
        doc.ensure_table("versions")
        assert doc.render() == CATALOG

    def test_failed_edit_is_reverted(self):
        """An edit producing invalid TOML leaves the text unchanged."""
        doc = TomlDocument(CATALOG)
        with pytest.raises(ValidationError):
            doc.insert_entry("versions", "kotlin", '"2.0"')
        assert doc.render() == CATALOG


class TestFormatting:
    """Test token rendering helpers."""

    def test_format_key(self):
        """Bare keys stay bare, others are quoted."""
        assert format_key("okhttp-bom") == "okhttp-bom"
        assert format_key("a.b") == '"a.b"'

    def test_format_string(self):
        """Basic strings are escaped."""
        assert format_string('a"b\\c') == '"a\\"b\\\\c"'

    def test_format_inline_table(self):
        """Inline tables use Gradle catalog spacing."""
        assert format_inline_table([("module", '"g:a"'), ("version.ref", '"a"')]) == (
            '{ module = "g:a", version.ref = "a" }'
        )
