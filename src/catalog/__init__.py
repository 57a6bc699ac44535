"""Gradle version catalog package.

- document.py: format-preserving TOML text with source positions
- model.py: catalog entries, version slots and the alias graph
- mutator.py: applying accepted updates and adding entries
- storage.py: loading and atomic saving
"""
