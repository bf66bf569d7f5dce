# Andy Zhao
"""
Error taxonomy.

All of these are precondition failures, raised to the caller as-is.
The RANSAC loop itself only ever swallows DegenerateGeometryError for a single
minimal sample, since random minimal samples are often degenerate.
"""


class RobustDAError(Exception):
    """Base class for every error raised by robustda."""


class InvalidInputError(RobustDAError, ValueError):
    """Empty or malformed point sets / map files."""


class InsufficientDataError(RobustDAError):
    """The correspondence pool is smaller than the minimal sample size."""


class DegenerateGeometryError(RobustDAError):
    """A fit was attempted on too few, coincident or otherwise unconstraining points."""


class ConfigurationError(RobustDAError, ValueError):
    """Non-positive noise / threshold / probability, or inconsistent inlier bounds."""
