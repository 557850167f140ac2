"""
Command-line interface for helm-release.

Works out the chart's next release version from git history (or from the
chart's current version) and writes it into Chart.yaml, optionally updating
the image tag in values.yaml as well.
"""

import os
import sys
import argparse
from typing import List, Optional

from loguru import logger
from rich.console import Console

from .chart import DEFAULT_TAG_PATH, Chart
from .config import Config, load_config
from .errors import HelmReleaseError, VcsStateError
from .git import GitRepoStateProvider
from .logging_config import setup_logging
from .resolver import FromManifestVersion, FromRepoState, VersionSource, next_version
from .semantic_version import DEFAULT_VERSION, SemanticVersion

# Logs go to stderr; stdout is reserved for --print-computed-version
console = Console(stderr=True)


def parse_arguments(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        prog='helm-release',
        description='Determines the chart\'s next release number from git history '
                    'and optionally updates the image tag in values.yaml'
    )

    parser.add_argument('chart_path', nargs='?', default=None,
                        help='Directory containing the chart (default: current directory)')

    parser.add_argument('-t', '--tag', help='Sets the docker image tag in values.yaml')
    parser.add_argument('--path', dest='tag_path',
                        help=f'Sets the path to the image tag to modify in values.yaml (default: {DEFAULT_TAG_PATH})')
    parser.add_argument('--print-computed-version', action='store_true', default=None,
                        help='Print the computed version string to stdout instead of updating files')
    parser.add_argument('--bump', choices=['major', 'minor', 'patch'],
                        help='Bump major, minor, or patch instead of deriving the version from git history')
    parser.add_argument('--source', choices=['git', 'helm'],
                        help='Source of the version information (default: git)')
    parser.add_argument('--strict', action='store_true', default=None,
                        help='Fail on git state errors instead of falling back to the default version')

    parser.add_argument('--config', help='Config file (default: ~/.helm-release.yaml)')
    parser.add_argument('--log-level',
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL',
                                 'debug', 'info', 'warning', 'error', 'critical'],
                        help='Logging level (default: INFO)')

    return parser.parse_args(argv)


def build_version_source(config: Config, chart: Optional[Chart] = None) -> VersionSource:
    """Pick where the version comes from: git history or the chart itself."""
    if config.source == 'helm':
        chart = chart or Chart.discover(config.chart_path, config.tag_path)
        return FromManifestVersion(chart.current_version())

    provider = GitRepoStateProvider(config.chart_path, overrides=os.environ)
    provider.validate()
    return FromRepoState(provider.state())


def compute_version(config: Config, chart: Optional[Chart] = None) -> SemanticVersion:
    """
    Compute the release version for the configured source.

    Failed git queries abort the run in strict mode; otherwise the default
    version (bumped when a bump was requested) is used. An untrustworthy tag
    always aborts the run.
    """
    try:
        source = build_version_source(config, chart)
        return next_version(source, config.bump)
    except VcsStateError as e:
        if config.strict:
            raise
        logger.warning(f'{e}')
        fallback = DEFAULT_VERSION.increment(config.bump) if config.bump else DEFAULT_VERSION
        logger.warning(f'Falling back to version {fallback} (use --strict to fail instead)')
        return fallback


def run_release(config: Config) -> int:
    """Run the main release workflow."""
    if config.print_computed_version:
        version = compute_version(config)
        sys.stdout.write(f'{version}\n')
        sys.stdout.flush()
        return 0

    chart = Chart.discover(config.chart_path, config.tag_path)
    version = compute_version(config, chart)

    if config.tag:
        app_version = config.tag
        chart.release(version, app_version, image_tag=config.tag)
    else:
        app_version = str(version.with_build_metadata(''))
        chart.release(version, app_version)

    logger.info(f'Released chart {chart.name} at version {version} (appVersion {app_version})')
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the application."""
    setup_logging(console=console)

    args = parse_arguments(argv)

    if args.log_level:
        setup_logging(args.log_level.upper(), console=console)

    config = load_config(args)
    if config is None:
        return 1

    setup_logging(config.log_level, console=console)

    try:
        return run_release(config)
    except HelmReleaseError as e:
        logger.error(f'{e}')
        return 1


if __name__ == '__main__':
    sys.exit(main())
