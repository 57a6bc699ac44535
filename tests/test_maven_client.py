"""Tests for the Maven repository client."""
from unittest.mock import patch

import pytest

from constants import Constants, RepositoryKinds
from errors import NetworkError
from registry.maven.client import MavenRepositoryClient, metadata_url, parse_metadata_versions
from versioning.models import Coordinate, RepositoryDescriptor


METADATA = """<?xml version="1.0" encoding="UTF-8"?>
<metadata>
  <groupId>com.squareup.okhttp3</groupId>
  <artifactId>okhttp</artifactId>
  <versioning>
    <latest>5.0.0-alpha.11</latest>
    <release>5.0.0-alpha.11</release>
    <versions>
      <version>4.11.0</version>
      <version>4.12.0</version>
      <version>5.0.0-alpha.11</version>
    </versions>
  </versioning>
</metadata>
"""

CENTRAL = RepositoryDescriptor(Constants.MAVEN_CENTRAL_URL, RepositoryKinds.MAVEN_CENTRAL, name="Maven Central")
CUSTOM = RepositoryDescriptor("https://repo.example.com/releases/", name="Example")
OKHTTP = Coordinate.library("com.squareup.okhttp3", "okhttp")


class TestMetadataUrl:
    """Test metadata URL construction."""

    def test_library_url(self):
        """Group dots become path segments."""
        assert metadata_url("https://repo1.maven.org/maven2/", OKHTTP) == (
            "https://repo1.maven.org/maven2/com/squareup/okhttp3/okhttp/maven-metadata.xml"
        )

    def test_plugin_marker_url(self):
        """Plugins resolve through their marker artifact."""
        coordinate = Coordinate.plugin("org.jetbrains.kotlin.jvm")
        assert metadata_url(Constants.PLUGIN_PORTAL_URL, coordinate) == (
            "https://plugins.gradle.org/m2/org/jetbrains/kotlin/jvm/"
            "org.jetbrains.kotlin.jvm.gradle.plugin/maven-metadata.xml"
        )


class TestParseMetadata:
    """Test maven-metadata.xml parsing."""

    def test_versions_list(self):
        """All listed versions are returned in source order."""
        assert parse_metadata_versions(METADATA) == ["4.11.0", "4.12.0", "5.0.0-alpha.11"]

    def test_release_fallback(self):
        """Metadata without a versions list falls back to release."""
        xml = "<metadata><versioning><release>1.2.3</release></versioning></metadata>"
        assert parse_metadata_versions(xml) == ["1.2.3"]

    def test_empty_metadata(self):
        """Metadata with no version information yields nothing."""
        assert parse_metadata_versions("<metadata/>") == []


class TestFetchVersions:
    """Test version lookups across repositories."""

    @patch('registry.maven.client.robust_get')
    def test_first_repository_wins(self, mock_get):
        """Versions from the first repository that has them are returned."""
        mock_get.return_value = (200, {}, METADATA)
        client = MavenRepositoryClient()
        assert client(OKHTTP, [CENTRAL, CUSTOM]) == ["4.11.0", "4.12.0", "5.0.0-alpha.11"]
        assert mock_get.call_count == 1

    @patch('registry.maven.client.robust_get')
    def test_not_found_falls_through(self, mock_get):
        """A 404 moves on to the next repository."""
        mock_get.side_effect = [(404, {}, "Not Found"), (200, {}, METADATA)]
        versions = MavenRepositoryClient().fetch_versions(OKHTTP, [CENTRAL, CUSTOM])
        assert versions[-1] == "5.0.0-alpha.11"
        urls = [c.args[0] for c in mock_get.call_args_list]
        assert urls[1] == "https://repo.example.com/releases/com/squareup/okhttp3/okhttp/maven-metadata.xml"

    @patch('registry.maven.client.robust_get')
    def test_not_found_everywhere(self, mock_get):
        """Nothing published is an empty result, not an error."""
        mock_get.return_value = (404, {}, "Not Found")
        assert MavenRepositoryClient().fetch_versions(OKHTTP, [CENTRAL, CUSTOM]) == []

    @patch('registry.maven.client.robust_get')
    def test_transport_failure_everywhere(self, mock_get):
        """No answer from any repository is a NetworkError."""
        mock_get.return_value = (0, {}, "Request failed after 3 attempts: timeout after 30s")
        with pytest.raises(NetworkError) as exc:
            MavenRepositoryClient().fetch_versions(OKHTTP, [CENTRAL, CUSTOM])
        assert "timeout" in str(exc.value)

    @patch('registry.maven.client.robust_get')
    def test_failure_then_not_found(self, mock_get):
        """A failure is tolerated when another repository answered."""
        mock_get.side_effect = [(503, {}, ""), (404, {}, "")]
        assert MavenRepositoryClient().fetch_versions(OKHTTP, [CENTRAL, CUSTOM]) == []

    @patch('registry.maven.client.robust_get')
    def test_invalid_xml(self, mock_get):
        """Unparseable metadata counts as a failure."""
        mock_get.return_value = (200, {}, "<metadata><versioning>")
        with pytest.raises(NetworkError):
            MavenRepositoryClient().fetch_versions(OKHTTP, [CENTRAL])

    @patch('registry.maven.client.robust_get')
    def test_no_repositories(self, mock_get):
        """An empty repository list asks nobody."""
        assert MavenRepositoryClient().fetch_versions(OKHTTP, []) == []
        mock_get.assert_not_called()
