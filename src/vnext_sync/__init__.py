"""
vnext-sync — component synchronization and publication for vNext workflow
projects.

Keeps three stores of component definitions consistent: JSON files (and
their scripts) on disk, the instance index database, and the definition
publish API of the running engine.
"""

__version__ = "0.1.0"
