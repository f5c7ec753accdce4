class LootseedError(Exception):
    """Base exception for the lootseed project."""


class CatalogError(LootseedError):
    """Raised at startup when catalog data is missing, empty or malformed."""


class ConfigError(LootseedError):
    """Raised when a tuning config file cannot be read."""


class SnapshotError(LootseedError):
    """Raised when a run snapshot cannot be restored (wrong version, unknown ids)."""
