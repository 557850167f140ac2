"""
Pytest configuration and shared fixtures for test suite.

Provides chart directories on disk, repository states, and a helper for
faking git subprocess calls.
"""

import subprocess
import textwrap
from unittest.mock import MagicMock

import pytest

from helm_release.git import RepoState

CHART_YAML = textwrap.dedent("""\
    apiVersion: v2
    name: demo
    description: A demo chart
    version: 1.2.3
    appVersion: 1.2.3
""")

VALUES_YAML = textwrap.dedent("""\
    replicaCount: 1
    image:
      repository: example/demo
      tag: latest
      pullPolicy: IfNotPresent
    service:
      port: 80
""")


def write_chart(directory, chart_yaml=CHART_YAML, values_yaml=VALUES_YAML):
    """Write a chart into directory and return its path as a string."""
    directory.mkdir(parents=True, exist_ok=True)
    (directory / 'Chart.yaml').write_text(chart_yaml, encoding='utf-8')
    if values_yaml is not None:
        (directory / 'values.yaml').write_text(values_yaml, encoding='utf-8')
    return str(directory)


@pytest.fixture
def chart_dir(tmp_path):
    """Create a single chart named 'demo' under a temporary directory."""
    return write_chart(tmp_path / 'demo')


@pytest.fixture
def repo_state():
    """A master branch one commit past tag 1.0.0."""
    return RepoState(
        last_tag='1.0.0',
        commits_since_tag=1,
        short_sha='0000001',
        branch_name='master',
        is_exactly_at_tag=False,
    )


@pytest.fixture
def mock_config(chart_dir):
    """Create a mock Config object with sensible defaults."""
    config = MagicMock()
    config.chart_path = chart_dir
    config.tag = ''
    config.tag_path = 'image.tag'
    config.print_computed_version = False
    config.bump = None
    config.source = 'git'
    config.strict = False
    config.log_level = 'INFO'
    config.config_file = None
    return config


def fake_git(responses):
    """
    Build a side_effect for subprocess.run that answers git commands.

    Args:
        responses: dict mapping the git arguments (tuple, without 'git') to
            either stdout text or a (returncode, stdout, stderr) tuple.
            Unknown commands fail with returncode 128.

    Returns:
        callable: Suitable as side_effect for a subprocess.run patch
    """
    def run(command, **kwargs):
        args = tuple(command[1:])
        response = responses.get(args)
        if response is None:
            return subprocess.CompletedProcess(command, 128, '', f'fatal: unexpected {args}')
        if isinstance(response, str):
            return subprocess.CompletedProcess(command, 0, response + '\n', '')
        returncode, stdout, stderr = response
        return subprocess.CompletedProcess(command, returncode, stdout, stderr)
    return run


__all__ = [
    'CHART_YAML',
    'VALUES_YAML',
    'fake_git',
    'write_chart',
]
