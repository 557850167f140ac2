"""
Release version resolution.

Turns a RepoState (and optionally an explicit bump) into the next chart
version. The functions here do no I/O apart from logging.
"""

import re
from dataclasses import dataclass
from typing import Optional, Tuple, Union

from loguru import logger

from .errors import AmbiguousTagError, ConfigurationError, InvalidVersionError, TagParseError
from .git import SHORT_SHA_LENGTH, RepoState
from .semantic_version import DEFAULT_VERSION, IDENTIFIER_PATTERN, BumpKind, SemanticVersion

MASTER_BRANCH = 'master'
DETACHED_BRANCH = 'head'

_BRANCH_REPLACE_PATTERN = re.compile(r'[^0-9A-Za-z-]+')


@dataclass(frozen=True)
class FromRepoState:
    """Derive the version from git history."""

    state: RepoState


@dataclass(frozen=True)
class FromManifestVersion:
    """Bump the version already recorded in Chart.yaml."""

    version: SemanticVersion


VersionSource = Union[FromRepoState, FromManifestVersion]


def normalize_branch(branch: str) -> str:
    """Lowercase a branch name and collapse disallowed character runs to '.'."""
    return _BRANCH_REPLACE_PATTERN.sub('.', branch.lower())


def parse_base_version(tag: Optional[str]) -> Tuple[SemanticVersion, bool]:
    """
    Parse the last tag into the version to build on.

    A single leading 'v' and then a single leading 'r' are stripped.

    Args:
        tag: Last tag, or None/empty when the repository has none

    Returns:
        tuple: (version, used_default) where used_default is True when the
        tag was missing and DEFAULT_VERSION was used instead

    Raises:
        TagParseError: If the tag is present but not a semantic version
    """
    if not tag:
        logger.info(f'unable to find any git tags using {DEFAULT_VERSION}')
        return DEFAULT_VERSION, True

    text = tag
    if text.startswith('v'):
        text = text[1:]
    if text.startswith('r'):
        text = text[1:]

    try:
        return SemanticVersion.parse(text), False
    except InvalidVersionError as e:
        raise TagParseError(text, str(e)) from e


def _prerelease_identifiers(seed: str) -> str:
    return '.'.join(part for part in seed.split('.') if part)


def resolve(state: RepoState, bump: Optional[BumpKind] = None) -> SemanticVersion:
    """
    Compute the next release version for a repository state.

    With an explicit bump the last tag is incremented once and everything
    else in the state is ignored. Without one the version is derived from the
    shape of the repository:

    - exactly at a tag: the tag's version
    - otherwise: the next patch, with prerelease '0.<branch>' off master
    - on master with commits since the tag: the commit count is appended to
      the prerelease
    - a 7 character short sha becomes the build metadata

    Raises:
        TagParseError: If the last tag is not a semantic version
        AmbiguousTagError: If HEAD is detached with zero commits since the
            tag yet not exactly at it (a lightweight tag)
    """
    base, _ = parse_base_version(state.last_tag)

    if bump is not None:
        return base.increment(bump)

    branch = normalize_branch(state.branch_name)
    version = base
    prerelease = ''

    if not state.is_exactly_at_tag:
        if branch == DETACHED_BRANCH and state.commits_since_tag == 0:
            raise AmbiguousTagError()
        version = version.increment_patch()
        if branch != MASTER_BRANCH:
            prerelease = '0.' + branch

    if branch == MASTER_BRANCH and state.commits_since_tag != 0:
        if prerelease:
            prerelease += '.'
        prerelease += str(state.commits_since_tag)

    prerelease = _prerelease_identifiers(prerelease)
    if prerelease:
        version = version.with_prerelease(prerelease)

    sha = state.short_sha
    if sha and (len(sha) != SHORT_SHA_LENGTH or not IDENTIFIER_PATTERN.match(sha)):
        logger.warning(f'ignoring the commit sha, it is not a {SHORT_SHA_LENGTH} character identifier [{sha}]')
        sha = None
    version = version.with_build_metadata(sha or '')

    logger.debug(f'Resolved version {version} from {state}')
    return version


def next_version(source: VersionSource, bump: Optional[BumpKind] = None) -> SemanticVersion:
    """
    Compute the next version from either git state or the chart's version.

    Raises:
        ConfigurationError: If a manifest source is used without a bump
    """
    if isinstance(source, FromRepoState):
        return resolve(source.state, bump)
    if isinstance(source, FromManifestVersion):
        if bump is None:
            raise ConfigurationError('--bump must be specified when using a helm source')
        return source.version.increment(bump)
    raise TypeError(f'unknown version source {source!r}')
