"""Tests for interpreting version catalog tables."""
import pytest

from catalog.model import Catalog, SlotShape
from errors import ParseError, ValidationError
from versioning.models import EntryKind


CATALOG = '''[versions]
okhttp = "4.11.0"
unused = "1.0"
bad = 3

[libraries]
okhttp = { module = "com.squareup.okhttp3:okhttp", version.ref = "okhttp" }
guava = "com.google.guava:guava:31.1-jre"
junit = { group = "junit", name = "junit", version = "4.13.1" }
okhttp-bom = { module = "com.squareup.okhttp3:okhttp-bom" }
rich = { module = "a:b", version = { strictly = "1.0" } }

[bundles]
net = ["okhttp"]

[plugins]
kotlin = { id = "org.jetbrains.kotlin.jvm", version = "1.9.0" }
detekt = "io.gitlab.arturbosch.detekt:1.23.0"
ksp = { id = "com.google.devtools.ksp", version.ref = "okhttp" }
'''


class TestCatalogParsing:
    """Test entry interpretation."""

    def test_tables_populated(self):
        """Well-formed entries land in their tables."""
        catalog = Catalog.from_text(CATALOG)
        assert list(catalog.versions) == ["okhttp", "unused"]
        assert list(catalog.libraries) == ["okhttp", "guava", "junit", "okhttp-bom"]
        assert list(catalog.plugins) == ["kotlin", "detekt", "ksp"]

    def test_malformed_entries_become_problems(self):
        """Unreadable entries are reported, not fatal."""
        catalog = Catalog.from_text(CATALOG)
        problems = {(p.alias, p.entry_kind) for p in catalog.problems}
        assert problems == {("bad", EntryKind.VERSION_REF), ("rich", EntryKind.LIBRARY)}
        assert all(isinstance(p.error, ParseError) for p in catalog.problems)
        assert catalog.has_alias(EntryKind.LIBRARY, "rich")

    def test_ref_entry(self):
        """version.ref entries point their slot at [versions]."""
        entry = Catalog.from_text(CATALOG).libraries["okhttp"]
        assert entry.uses_ref
        assert entry.ref == "okhttp"
        assert entry.literal is None
        assert entry.slot.shape is SlotShape.REF
        assert entry.slot.path == ("versions", "okhttp")

    def test_inline_coordinate_entry(self):
        """String notation keeps the version inside the coordinate."""
        catalog = Catalog.from_text(CATALOG)
        entry = catalog.libraries["guava"]
        assert str(entry.coordinate) == "com.google.guava:guava"
        assert entry.literal == "31.1-jre"
        assert entry.slot.shape is SlotShape.COORDINATE
        assert entry.slot.read(catalog.document) == "31.1-jre"

    def test_group_name_entry(self):
        """group/name notation with an inline version field."""
        catalog = Catalog.from_text(CATALOG)
        entry = catalog.libraries["junit"]
        assert (entry.coordinate.group, entry.coordinate.artifact) == ("junit", "junit")
        assert entry.slot.shape is SlotShape.FIELD
        assert entry.slot.path == ("libraries", "junit", "version")

    def test_versionless_entry(self):
        """BOM-managed entries have no version and no slot."""
        entry = Catalog.from_text(CATALOG).libraries["okhttp-bom"]
        assert not entry.has_version
        assert entry.slot is None

    def test_plugins(self):
        """Plugins resolve to marker coordinates."""
        catalog = Catalog.from_text(CATALOG)
        detekt = catalog.plugins["detekt"]
        assert detekt.coordinate.plugin_id == "io.gitlab.arturbosch.detekt"
        assert detekt.coordinate.artifact == "io.gitlab.arturbosch.detekt.gradle.plugin"
        assert detekt.literal == "1.23.0"
        assert catalog.plugins["kotlin"].slot.shape is SlotShape.FIELD

    def test_unknown_top_level_table(self):
        """Tables outside the catalog layout are rejected."""
        with pytest.raises(ValidationError):
            Catalog.from_text('[versions]\na = "1"\n\n[dependencies]\nb = "c"\n')

    def test_versions_not_a_table(self):
        """[versions] must be a table."""
        with pytest.raises(ValidationError):
            Catalog.from_text('versions = "1.0"\n')

    def test_empty_catalog(self):
        """An empty file is a valid, empty catalog."""
        catalog = Catalog.from_text("")
        assert not catalog.versions and not catalog.libraries and not catalog.plugins


class TestCatalogLookups:
    """Test alias and coordinate lookups."""

    def test_iteration_order(self):
        """Entries come versions first, then libraries, then plugins."""
        kinds = [e.kind for e in Catalog.from_text(CATALOG).iter_entries()]
        assert kinds == sorted(kinds, key=[EntryKind.VERSION_REF, EntryKind.LIBRARY, EntryKind.PLUGIN].index)

    def test_representative_prefers_libraries(self):
        """The first referring library represents a version alias."""
        catalog = Catalog.from_text(CATALOG)
        assert [e.alias for e in catalog.referrers("okhttp")] == ["okhttp", "ksp"]
        assert catalog.representative("okhttp").alias == "okhttp"
        assert catalog.representative("unused") is None

    def test_resolved_version(self):
        """Refs are followed to their literal."""
        catalog = Catalog.from_text(CATALOG)
        assert catalog.resolved_version(catalog.libraries["okhttp"]) == "4.11.0"
        assert catalog.resolved_version(catalog.libraries["okhttp-bom"]) is None

    def test_find_by_coordinate(self):
        """Coordinates map back to aliases."""
        catalog = Catalog.from_text(CATALOG)
        assert catalog.find_library("com.google.guava", "guava") == "guava"
        assert catalog.find_library("x", "y") is None
        assert catalog.find_plugin("org.jetbrains.kotlin.jvm") == "kotlin"

    def test_coordinate_slot_write(self):
        """Writing a coordinate slot replaces only the version part."""
        catalog = Catalog.from_text(CATALOG)
        catalog.slot_for(EntryKind.LIBRARY, "guava").write(catalog.document, "32.1.3-jre")
        assert catalog.render() == CATALOG.replace("guava:31.1-jre", "guava:32.1.3-jre")
