"""Maven repository access (maven-metadata.xml lookups)."""
