"""Central versioning and schema constants for the catalog probe."""

__all__ = ["__version__", "CONFIG_SCHEMA_VERSION"]

#: Semantic version of this codebase (bump using SemVer).
__version__ = "0.2.0"

#: Configuration schema version (increment if breaking changes to config format).
#: v1 used ``max_concurrency`` / ``output_path``; v2 renamed them.
CONFIG_SCHEMA_VERSION = 2
