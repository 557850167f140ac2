"""
Semantic version value type.

SemanticVersion is immutable; every operation returns a new value. Only
construction, parsing, rendering and single-step increments are supported.
"""

import re
from dataclasses import dataclass, replace
from enum import Enum
from typing import Optional, Tuple

from .errors import InvalidVersionError

IDENTIFIER_PATTERN = re.compile(r'^[0-9A-Za-z-]+$')

_VERSION_PATTERN = re.compile(
    r'^(?P<major>\d+)\.(?P<minor>\d+)\.(?P<patch>\d+)'
    r'(?:-(?P<prerelease>[^+]*))?'
    r'(?:\+(?P<metadata>.*))?$'
)


class BumpKind(Enum):
    """Which component an explicit bump increments."""

    MAJOR = 'major'
    MINOR = 'minor'
    PATCH = 'patch'

    @classmethod
    def parse(cls, value: Optional[str]) -> Optional['BumpKind']:
        """
        Map a bump name to a BumpKind.

        Args:
            value: 'major', 'minor' or 'patch' (any case), or None/empty

        Returns:
            BumpKind, or None when no bump was requested (auto mode)

        Raises:
            ValueError: If the name is not a known bump kind
        """
        if value is None:
            return None
        if isinstance(value, cls):
            return value
        text = str(value).strip().lower()
        if not text:
            return None
        try:
            return cls(text)
        except ValueError:
            raise ValueError(f'major, minor, and patch are the only valid bump options (got: {value})') from None


def split_identifiers(text: str) -> Tuple[str, ...]:
    """Split dot-separated identifiers, validating each one."""
    if not text:
        return ()
    identifiers = tuple(text.split('.'))
    for identifier in identifiers:
        if not IDENTIFIER_PATTERN.match(identifier):
            raise InvalidVersionError(f'invalid identifier [{identifier}] in [{text}]')
    return identifiers


@dataclass(frozen=True)
class SemanticVersion:
    """A major.minor.patch triple with optional prerelease and build metadata."""

    major: int
    minor: int
    patch: int
    prerelease: Tuple[str, ...] = ()
    build_metadata: Tuple[str, ...] = ()

    def __post_init__(self):
        for name in ('major', 'minor', 'patch'):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int) or value < 0:
                raise InvalidVersionError(f'{name} must be a non-negative integer (got: {value!r})')
        for name in ('prerelease', 'build_metadata'):
            identifiers = tuple(getattr(self, name))
            for identifier in identifiers:
                if not isinstance(identifier, str) or not IDENTIFIER_PATTERN.match(identifier):
                    raise InvalidVersionError(f'invalid {name} identifier [{identifier}]')
            object.__setattr__(self, name, identifiers)

    @classmethod
    def parse(cls, text: str) -> 'SemanticVersion':
        """
        Parse MAJOR.MINOR.PATCH[-PRERELEASE][+METADATA].

        Raises:
            InvalidVersionError: If any of major, minor or patch is missing or
                non-numeric, or an identifier is malformed
        """
        match = _VERSION_PATTERN.match(text.strip()) if isinstance(text, str) else None
        if not match:
            raise InvalidVersionError(f'Invalid Semantic Version [{text}]')
        prerelease = match.group('prerelease')
        metadata = match.group('metadata')
        if prerelease == '' or metadata == '':
            raise InvalidVersionError(f'Invalid Semantic Version [{text}]')
        return cls(
            int(match.group('major')),
            int(match.group('minor')),
            int(match.group('patch')),
            split_identifiers(prerelease or ''),
            split_identifiers(metadata or ''),
        )

    @property
    def core(self) -> Tuple[int, int, int]:
        return (self.major, self.minor, self.patch)

    def increment_major(self) -> 'SemanticVersion':
        return SemanticVersion(self.major + 1, 0, 0)

    def increment_minor(self) -> 'SemanticVersion':
        return SemanticVersion(self.major, self.minor + 1, 0)

    def increment_patch(self) -> 'SemanticVersion':
        return SemanticVersion(self.major, self.minor, self.patch + 1)

    def increment(self, kind: BumpKind) -> 'SemanticVersion':
        """Apply exactly one increment of the given kind."""
        if kind is BumpKind.MAJOR:
            return self.increment_major()
        if kind is BumpKind.MINOR:
            return self.increment_minor()
        if kind is BumpKind.PATCH:
            return self.increment_patch()
        raise ValueError(f'major, minor, and patch are the only valid bump options (got: {kind})')

    def with_prerelease(self, prerelease: str) -> 'SemanticVersion':
        """Replace the prerelease; an empty string clears it."""
        return replace(self, prerelease=split_identifiers(prerelease))

    def with_build_metadata(self, metadata: str) -> 'SemanticVersion':
        """Replace the build metadata; an empty string clears it."""
        return replace(self, build_metadata=split_identifiers(metadata))

    def __str__(self) -> str:
        text = f'{self.major}.{self.minor}.{self.patch}'
        if self.prerelease:
            text += '-' + '.'.join(self.prerelease)
        if self.build_metadata:
            text += '+' + '.'.join(self.build_metadata)
        return text


DEFAULT_VERSION = SemanticVersion(0, 0, 1)
