"""
Tests for git.py module.

Tests repository fact queries against a faked git binary, environment-style
overrides, and RepoState construction.
"""

import os
import shutil
import subprocess

import pytest
from unittest.mock import patch

from conftest import fake_git
from helm_release.errors import AmbiguousTagError, VcsQueryError
from helm_release.git import GitRepoStateProvider, RepoState
from helm_release.resolver import resolve

NO_NAMES = (128, '', 'fatal: No names found, cannot describe anything.\n')

TAGGED_REPO = {
    ('rev-parse', '--git-dir'): '.git',
    ('describe', '--tags', '--abbrev=0'): 'v1.4.0',
    ('describe', '--tags', '--long'): 'v1.4.0-3-g56a99c2',
    ('describe', '--exact-match'): (128, '', 'fatal: no tag exactly matches'),
    ('rev-parse', '--short=7', 'HEAD'): '56a99c2',
    ('rev-parse', '--abbrev-ref', 'HEAD'): 'feature/login',
}

UNTAGGED_REPO = {
    ('rev-parse', '--git-dir'): '.git',
    ('describe', '--tags', '--abbrev=0'): NO_NAMES,
    ('describe', '--tags', '--long'): NO_NAMES,
    ('describe', '--exact-match'): NO_NAMES,
    ('rev-list', '--count', 'HEAD'): '2',
    ('rev-parse', '--short=7', 'HEAD'): 'abcdef1',
    ('rev-parse', '--abbrev-ref', 'HEAD'): 'master',
}


@pytest.fixture
def provider():
    return GitRepoStateProvider('/repo', overrides={})


class TestRepoState:
    """Test the RepoState value."""

    def test_negative_commits_rejected(self):
        with pytest.raises(ValueError):
            RepoState(None, -1, None, 'master', False)


class TestTaggedRepository:
    """Test queries in a repository with tags."""

    @patch('helm_release.git.subprocess.run')
    def test_last_tag(self, mock_run, provider):
        mock_run.side_effect = fake_git(TAGGED_REPO)
        assert provider.last_tag() == 'v1.4.0'

    @patch('helm_release.git.subprocess.run')
    def test_commits_since_tag(self, mock_run, provider):
        mock_run.side_effect = fake_git(TAGGED_REPO)
        assert provider.commits_since_tag() == 3

    @patch('helm_release.git.subprocess.run')
    def test_commits_at_tag(self, mock_run, provider):
        mock_run.side_effect = fake_git({**TAGGED_REPO, ('describe', '--tags', '--long'): 'v1.4.0-0-g56a99c2'})
        assert provider.commits_since_tag() == 0

    @patch('helm_release.git.subprocess.run')
    def test_commits_with_hyphenated_tag(self, mock_run, provider):
        mock_run.side_effect = fake_git({**TAGGED_REPO, ('describe', '--tags', '--long'): 'release-1.0.0-12-g56a99c2'})
        assert provider.commits_since_tag() == 12

    @patch('helm_release.git.subprocess.run')
    def test_commits_at_hyphenated_tag(self, mock_run, provider):
        """Test that digits inside the tag name are not read as a commit count."""
        mock_run.side_effect = fake_git({**TAGGED_REPO, ('describe', '--tags', '--long'): 'deploy-3-final-0-g56a99c2'})
        assert provider.commits_since_tag() == 0

    @patch('helm_release.git.subprocess.run')
    def test_commits_unknown_describe_output(self, mock_run, provider):
        mock_run.side_effect = fake_git({**TAGGED_REPO, ('describe', '--tags', '--long'): 'v1.4.0'})
        with pytest.raises(VcsQueryError):
            provider.commits_since_tag()

    @patch('helm_release.git.subprocess.run')
    def test_short_sha(self, mock_run, provider):
        mock_run.side_effect = fake_git(TAGGED_REPO)
        assert provider.short_sha() == '56a99c2'

    @patch('helm_release.git.subprocess.run')
    def test_branch_name(self, mock_run, provider):
        mock_run.side_effect = fake_git(TAGGED_REPO)
        assert provider.branch_name() == 'feature/login'

    @patch('helm_release.git.subprocess.run')
    def test_not_exactly_at_tag(self, mock_run, provider):
        mock_run.side_effect = fake_git(TAGGED_REPO)
        assert provider.is_exactly_at_tag() is False

    @patch('helm_release.git.subprocess.run')
    def test_exactly_at_tag(self, mock_run, provider):
        mock_run.side_effect = fake_git({**TAGGED_REPO, ('describe', '--exact-match'): 'v1.4.0'})
        assert provider.is_exactly_at_tag() is True

    @patch('helm_release.git.subprocess.run')
    def test_state(self, mock_run, provider):
        mock_run.side_effect = fake_git(TAGGED_REPO)
        assert provider.state() == RepoState(
            last_tag='v1.4.0',
            commits_since_tag=3,
            short_sha='56a99c2',
            branch_name='feature/login',
            is_exactly_at_tag=False,
        )

    @patch('helm_release.git.subprocess.run')
    def test_commands_run_in_directory(self, mock_run, provider):
        mock_run.side_effect = fake_git(TAGGED_REPO)
        provider.short_sha()
        args, kwargs = mock_run.call_args
        assert args[0] == ['git', 'rev-parse', '--short=7', 'HEAD']
        assert kwargs['cwd'] == '/repo'
        assert kwargs['timeout'] == provider.timeout


class TestUntaggedRepository:
    """Test queries in a repository without tags."""

    @patch('helm_release.git.subprocess.run')
    def test_no_tag(self, mock_run, provider):
        mock_run.side_effect = fake_git(UNTAGGED_REPO)
        assert provider.last_tag() is None

    @patch('helm_release.git.subprocess.run')
    def test_commits_counts_all_history(self, mock_run, provider):
        mock_run.side_effect = fake_git(UNTAGGED_REPO)
        assert provider.commits_since_tag() == 2

    @patch('helm_release.git.subprocess.run')
    def test_state(self, mock_run, provider):
        mock_run.side_effect = fake_git(UNTAGGED_REPO)
        state = provider.state()
        assert state.last_tag is None
        assert state.commits_since_tag == 2
        assert state.is_exactly_at_tag is False


class TestFailures:
    """Test git failures."""

    @patch('helm_release.git.subprocess.run')
    def test_validate_not_a_repository(self, mock_run, provider):
        mock_run.side_effect = fake_git({
            ('rev-parse', '--git-dir'): (128, '', 'fatal: not a git repository'),
        })
        with pytest.raises(VcsQueryError) as exc_info:
            provider.validate()
        assert 'not a git repository' in str(exc_info.value)

    @patch('helm_release.git.subprocess.run')
    def test_validate_repository(self, mock_run, provider):
        mock_run.side_effect = fake_git(TAGGED_REPO)
        provider.validate()

    @patch('helm_release.git.subprocess.run')
    def test_last_tag_other_failure(self, mock_run, provider):
        mock_run.side_effect = fake_git({
            ('describe', '--tags', '--abbrev=0'): (128, '', 'fatal: bad object HEAD'),
        })
        with pytest.raises(VcsQueryError):
            provider.last_tag()

    @patch('helm_release.git.subprocess.run')
    def test_git_missing(self, mock_run, provider):
        mock_run.side_effect = FileNotFoundError('git')
        with pytest.raises(VcsQueryError):
            provider.short_sha()

    @patch('helm_release.git.subprocess.run')
    def test_git_timeout(self, mock_run, provider):
        mock_run.side_effect = subprocess.TimeoutExpired(['git'], 10)
        with pytest.raises(VcsQueryError):
            provider.branch_name()


class TestOverrides:
    """Test environment-style overrides."""

    @patch('helm_release.git.subprocess.run')
    def test_all_overridden_skips_git(self, mock_run):
        provider = GitRepoStateProvider('/repo', overrides={
            'LAST_TAG': '1.0.0',
            'COMMITS': '4',
            'SHA': '0000001',
            'BRANCH_NAME': 'otherBranch',
            'IS_TAGGED': 'false',
        })
        assert provider.state() == RepoState('1.0.0', 4, '0000001', 'otherBranch', False)
        mock_run.assert_not_called()

    def test_empty_last_tag_means_no_tag(self):
        provider = GitRepoStateProvider('/repo', overrides={'LAST_TAG': ''})
        assert provider.last_tag() is None

    def test_invalid_commits(self):
        provider = GitRepoStateProvider('/repo', overrides={'COMMITS': 'many'})
        with pytest.raises(VcsQueryError) as exc_info:
            provider.commits_since_tag()
        assert 'integer' in str(exc_info.value)

    def test_negative_commits(self):
        provider = GitRepoStateProvider('/repo', overrides={'COMMITS': '-2'})
        with pytest.raises(VcsQueryError):
            provider.commits_since_tag()

    @pytest.mark.parametrize('value,expected', [
        ('true', True), ('True', True), ('1', True), ('false', False), ('0', False), ('maybe', False),
    ])
    def test_is_tagged(self, value, expected):
        provider = GitRepoStateProvider('/repo', overrides={'IS_TAGGED': value})
        assert provider.is_exactly_at_tag() is expected

    def test_sha_passed_through(self):
        provider = GitRepoStateProvider('/repo', overrides={'SHA': 'abc'})
        assert provider.short_sha() == 'abc'

    @patch('helm_release.git.subprocess.run')
    def test_partial_override(self, mock_run):
        mock_run.side_effect = fake_git(TAGGED_REPO)
        provider = GitRepoStateProvider('/repo', overrides={'BRANCH_NAME': 'master'})
        state = provider.state()
        assert state.branch_name == 'master'
        assert state.last_tag == 'v1.4.0'


requires_git = pytest.mark.skipif(shutil.which('git') is None, reason='git is not installed')

GIT_IDENTITY = {
    'GIT_AUTHOR_NAME': 'Test',
    'GIT_AUTHOR_EMAIL': 'test@example.com',
    'GIT_COMMITTER_NAME': 'Test',
    'GIT_COMMITTER_EMAIL': 'test@example.com',
}


def git(repo, *args):
    """Run a git command in repo for test setup and return its stdout."""
    result = subprocess.run(
        ['git', '-c', 'commit.gpgsign=false', '-c', 'tag.gpgsign=false', *args],
        cwd=str(repo),
        env={**os.environ, **GIT_IDENTITY},
        capture_output=True,
        text=True,
        check=True,
    )
    return result.stdout.strip()


def commit(repo, message='change'):
    git(repo, 'commit', '-q', '--allow-empty', '-m', message)


@pytest.fixture
def repo(tmp_path):
    """An empty git repository on branch master."""
    path = tmp_path / 'repo'
    path.mkdir()
    git(path, 'init', '-q')
    git(path, 'symbolic-ref', 'HEAD', 'refs/heads/master')
    return path


@requires_git
class TestRealRepository:
    """Test queries against a real git repository."""

    def test_validate(self, repo):
        GitRepoStateProvider(str(repo)).validate()

    def test_no_tags(self, repo):
        commit(repo, 'first')
        commit(repo, 'second')
        state = GitRepoStateProvider(str(repo)).state()
        assert state.last_tag is None
        assert state.commits_since_tag == 2
        assert state.branch_name == 'master'
        assert state.is_exactly_at_tag is False
        assert str(resolve(state)) == f'0.0.2-2+{state.short_sha}'

    def test_annotated_tag_at_head(self, repo):
        commit(repo)
        git(repo, 'tag', '-a', 'v1.0.0', '-m', 'release 1.0.0')
        state = GitRepoStateProvider(str(repo)).state()
        assert state.last_tag == 'v1.0.0'
        assert state.commits_since_tag == 0
        assert state.is_exactly_at_tag is True
        assert str(resolve(state)) == f'1.0.0+{state.short_sha}'

    def test_commits_past_tag(self, repo):
        commit(repo)
        git(repo, 'tag', '-a', 'v1.0.0', '-m', 'release 1.0.0')
        commit(repo)
        state = GitRepoStateProvider(str(repo)).state()
        assert state.commits_since_tag == 1
        assert state.is_exactly_at_tag is False
        assert str(resolve(state)) == f'1.0.1-1+{state.short_sha}'

    def test_hyphenated_tag_at_head(self, repo):
        commit(repo)
        git(repo, 'tag', '-a', 'deploy-3-final', '-m', 'deploy')
        assert GitRepoStateProvider(str(repo)).commits_since_tag() == 0

    def test_lightweight_tag_on_detached_head_is_ambiguous(self, repo):
        commit(repo)
        git(repo, 'tag', '1.0.0')
        git(repo, 'checkout', '-q', '--detach')
        state = GitRepoStateProvider(str(repo)).state()
        assert state.branch_name == 'HEAD'
        assert state.commits_since_tag == 0
        assert state.is_exactly_at_tag is False
        with pytest.raises(AmbiguousTagError):
            resolve(state)

    def test_short_sha_ignores_configured_abbrev(self, repo):
        commit(repo)
        git(repo, 'config', 'core.abbrev', '12')
        sha = GitRepoStateProvider(str(repo)).short_sha()
        assert len(sha) == 7
        assert git(repo, 'rev-parse', 'HEAD').startswith(sha)

    def test_not_a_repository(self, tmp_path):
        plain = tmp_path / 'plain'
        plain.mkdir()
        with patch.dict('os.environ', {'GIT_CEILING_DIRECTORIES': str(tmp_path)}):
            with pytest.raises(VcsQueryError):
                GitRepoStateProvider(str(plain)).validate()
