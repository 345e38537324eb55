"""Syntax of UIDs, MRNs and policy versions."""

from __future__ import annotations

import re

UID_PATTERN = re.compile(r"^[a-z0-9._-]{5,200}$")

# Lenient semantic version: optional "v", MAJOR[.MINOR[.PATCH]], prerelease, build.
# Leading zeros are accepted.
SEMVER_PATTERN = re.compile(
    r"^v?\d+(\.\d+)?(\.\d+)?"
    r"(-([0-9A-Za-z-]+(\.[0-9A-Za-z-]+)*))?"
    r"(\+([0-9A-Za-z-]+(\.[0-9A-Za-z-]+)*))?$"
)

INVALID_SEMVER = "Invalid Semantic Version"


def is_valid_uid(uid: str) -> bool:
    """Check a UID: lowercase alphanumerics, dot, hyphen, underscore; 5..200 chars.

    Examples
    --------
    >>> is_valid_uid("sshd-01")
    True
    >>> is_valid_uid("ssh")
    False
    """
    return UID_PATTERN.fullmatch(uid) is not None


def is_semver(version: str) -> bool:
    """Check whether a version string parses as a semantic version.

    Examples
    --------
    >>> is_semver("1.0.0")
    True
    >>> is_semver("1.x")
    False
    """
    return SEMVER_PATTERN.fullmatch(version) is not None


def is_mrn(identifier: str) -> bool:
    """True for globally qualified identifiers of the form ``//host/.../id``."""
    return identifier.startswith("//")
