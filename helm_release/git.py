"""
Repository state from git.

GitRepoStateProvider answers the five questions the resolver needs. Each
answer can be overridden through a mapping of environment-style values so a
run is reproducible without a real repository:

    LAST_TAG     last reachable tag (present but empty means no tag)
    COMMITS      commits since that tag (integer)
    SHA          short commit hash
    BRANCH_NAME  current branch
    IS_TAGGED    whether HEAD is exactly at a tag (true/false)
"""

import re
import subprocess
from dataclasses import dataclass
from typing import Mapping, Optional

from loguru import logger

from .errors import VcsQueryError

LAST_TAG_ENV = 'LAST_TAG'
COMMITS_ENV = 'COMMITS'
SHA_ENV = 'SHA'
BRANCH_NAME_ENV = 'BRANCH_NAME'
IS_TAGGED_ENV = 'IS_TAGGED'

GIT_TIMEOUT = 10
SHORT_SHA_LENGTH = 7

_NO_TAG_MARKERS = ('No names found', 'No tags can describe')
_TRUE_VALUES = ('true', '1', 'yes', 't', 'y')

# TAG-COMMITS-gSHA as printed by describe --long; the tag itself may contain hyphens
_DESCRIBE_PATTERN = re.compile(r'-(\d+)-g[0-9a-f]+$')


@dataclass(frozen=True)
class RepoState:
    """Facts about the repository at HEAD, collected once per run."""

    last_tag: Optional[str]
    commits_since_tag: int
    short_sha: Optional[str]
    branch_name: str
    is_exactly_at_tag: bool

    def __post_init__(self):
        if self.commits_since_tag < 0:
            raise ValueError(f'commits_since_tag must be >= 0 (got: {self.commits_since_tag})')


def _has_no_tags(output: str) -> bool:
    return any(marker in output for marker in _NO_TAG_MARKERS)


class GitRepoStateProvider:
    """Query git in a working directory for the facts making up a RepoState."""

    def __init__(self, directory: str = '.', overrides: Optional[Mapping[str, str]] = None,
                 timeout: int = GIT_TIMEOUT):
        self.directory = directory
        self.overrides = overrides if overrides is not None else {}
        self.timeout = timeout

    def _run(self, *args: str) -> str:
        """
        Run a git command and return its stripped stdout.

        Raises:
            VcsQueryError: If git is missing, times out, or exits non-zero
        """
        command = ['git', *args]
        description = ' '.join(command)
        try:
            result = subprocess.run(
                command,
                capture_output=True,
                text=True,
                encoding='utf-8',
                errors='replace',
                timeout=self.timeout,
                cwd=self.directory,
            )
        except OSError as e:
            raise VcsQueryError(f'unable to run [{description}] in {self.directory}: {e}') from e
        except subprocess.TimeoutExpired as e:
            raise VcsQueryError(f'[{description}] timed out after {self.timeout}s') from e

        if result.returncode != 0:
            output = (result.stderr or result.stdout or '').strip()
            raise VcsQueryError(f'[{description}] failed in {self.directory}: {output}', output=output)

        logger.debug(f'{description} -> {result.stdout.strip()}')
        return result.stdout.strip()

    def validate(self) -> None:
        """Fail unless the directory is inside a git work tree."""
        try:
            self._run('rev-parse', '--git-dir')
        except VcsQueryError as e:
            raise VcsQueryError(f'{self.directory} is not a git repository: {e}', output=e.output) from e

    def last_tag(self) -> Optional[str]:
        if LAST_TAG_ENV in self.overrides:
            return self.overrides[LAST_TAG_ENV].strip() or None

        try:
            return self._run('describe', '--tags', '--abbrev=0') or None
        except VcsQueryError as e:
            if _has_no_tags(e.output):
                logger.debug(f'No tags reachable from HEAD in {self.directory}')
                return None
            raise

    def commits_since_tag(self) -> int:
        """
        Count commits between the last tag and HEAD.

        Without any reachable tag this is the total number of commits on HEAD.
        """
        value = self.overrides.get(COMMITS_ENV, '').strip()
        if value:
            try:
                commits = int(value)
            except ValueError:
                raise VcsQueryError(
                    f'expected {COMMITS_ENV} environment variable to be an integer instead of [{value}]'
                ) from None
            if commits < 0:
                raise VcsQueryError(f'{COMMITS_ENV} must not be negative (got: {commits})')
            return commits

        try:
            described = self._run('describe', '--tags', '--long')
        except VcsQueryError:
            return int(self._run('rev-list', '--count', 'HEAD'))

        match = _DESCRIBE_PATTERN.search(described)
        if match is None:
            raise VcsQueryError(f'unknown response from git describe --tags --long [{described}]', output=described)
        return int(match.group(1))

    def short_sha(self) -> Optional[str]:
        value = self.overrides.get(SHA_ENV, '').strip()
        if value:
            return value
        return self._run('rev-parse', f'--short={SHORT_SHA_LENGTH}', 'HEAD') or None

    def branch_name(self) -> str:
        value = self.overrides.get(BRANCH_NAME_ENV, '').strip()
        if value:
            return value
        return self._run('rev-parse', '--abbrev-ref', 'HEAD')

    def is_exactly_at_tag(self) -> bool:
        value = self.overrides.get(IS_TAGGED_ENV, '').strip()
        if value:
            return value.lower() in _TRUE_VALUES

        try:
            self._run('describe', '--exact-match')
        except VcsQueryError:
            return False
        return True

    def state(self) -> RepoState:
        """Collect every fact into a RepoState."""
        state = RepoState(
            last_tag=self.last_tag(),
            commits_since_tag=self.commits_since_tag(),
            short_sha=self.short_sha(),
            branch_name=self.branch_name(),
            is_exactly_at_tag=self.is_exactly_at_tag(),
        )
        logger.debug(f'Repository state: {state}')
        return state
