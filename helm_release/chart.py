"""
Helm chart discovery and manifest I/O.

A chart is a directory holding Chart.yaml and values.yaml. The chart's
version lives in Chart.yaml; the image tag lives at a dotted path inside
values.yaml ('image.tag' unless overridden).
"""

import os
from typing import List, Optional

import yaml
from loguru import logger

from .document import Document, MappingNode, ScalarNode, from_native, set_at_path, to_native
from .errors import AmbiguousChartError, ChartNotFoundError, InvalidVersionError, ManifestIOError
from .semantic_version import SemanticVersion

CHART_FILE = 'Chart.yaml'
VALUES_FILE = 'values.yaml'
DEFAULT_TAG_PATH = 'image.tag'

VERSION_KEY = 'version'
APP_VERSION_KEY = 'appVersion'


def find_charts(directory: str) -> List[str]:
    """
    Find every chart directory under a directory.

    Args:
        directory: Directory to search recursively

    Returns:
        list: Sorted paths of directories containing a Chart.yaml
    """
    charts = []
    for root, dirs, files in os.walk(directory):
        dirs.sort()
        if CHART_FILE in files:
            charts.append(root)
    return sorted(charts)


class Chart:
    """A single Helm chart on disk."""

    def __init__(self, path: str, tag_path: Optional[str] = None):
        self.path = path
        self.name = os.path.basename(os.path.abspath(path))
        self.tag_path = tag_path or DEFAULT_TAG_PATH

    @classmethod
    def discover(cls, directory: str, tag_path: Optional[str] = None) -> 'Chart':
        """
        Locate exactly one chart under a directory.

        Raises:
            ChartNotFoundError: If no Chart.yaml exists below directory
            AmbiguousChartError: If more than one Chart.yaml exists
        """
        charts = find_charts(directory)
        if not charts:
            raise ChartNotFoundError(f'unable to find a {CHART_FILE} under {directory}')
        if len(charts) > 1:
            raise AmbiguousChartError(directory, charts)
        logger.debug(f'Found chart at {charts[0]}')
        return cls(charts[0], tag_path)

    @property
    def chart_file(self) -> str:
        return os.path.join(self.path, CHART_FILE)

    @property
    def values_file(self) -> str:
        return os.path.join(self.path, VALUES_FILE)

    def load_document(self, filename: str) -> Document:
        """
        Read and parse a YAML manifest.

        Raises:
            ManifestIOError: If the file cannot be read or is not valid YAML
        """
        try:
            with open(filename, 'r', encoding='utf-8') as f:
                return from_native(yaml.safe_load(f))
        except OSError as e:
            raise ManifestIOError(f'unable to read {filename}: {e}') from e
        except yaml.YAMLError as e:
            raise ManifestIOError(f'unable to parse {filename}: {e}') from e

    def write_document(self, filename: str, doc: Document) -> None:
        """
        Serialize a document back to YAML, preserving key order.

        Raises:
            ManifestIOError: If the file cannot be written
        """
        try:
            content = yaml.safe_dump(to_native(doc), sort_keys=False, default_flow_style=False)
        except yaml.YAMLError as e:
            raise ManifestIOError(f'unable to serialize {filename}: {e}') from e
        try:
            with open(filename, 'w', encoding='utf-8') as f:
                f.write(content)
        except OSError as e:
            raise ManifestIOError(f'unable to write {filename}: {e}') from e
        logger.debug(f'Wrote {filename}')

    def current_version(self) -> SemanticVersion:
        """
        Parse the version recorded in Chart.yaml.

        Raises:
            ManifestIOError: If Chart.yaml has no usable version field
        """
        doc = self.load_document(self.chart_file)
        if not isinstance(doc, MappingNode) or VERSION_KEY not in doc:
            raise ManifestIOError(f'{self.chart_file} has no {VERSION_KEY} field')
        node = doc[VERSION_KEY]
        raw = node.value if isinstance(node, ScalarNode) else None
        try:
            return SemanticVersion.parse(str(raw) if raw is not None else '')
        except InvalidVersionError as e:
            raise ManifestIOError(f'{self.chart_file} has an invalid {VERSION_KEY}: {e}') from e

    def render_chart(self, version: SemanticVersion, app_version: str) -> Document:
        """Return Chart.yaml with version and appVersion replaced."""
        doc = set_at_path(self.load_document(self.chart_file), VERSION_KEY, str(version))
        if APP_VERSION_KEY in doc:
            return set_at_path(doc, APP_VERSION_KEY, app_version)
        # appVersion is optional in a chart
        return doc.set(APP_VERSION_KEY, ScalarNode(app_version))

    def render_values(self, tag: str) -> Document:
        """Return values.yaml with the image tag replaced."""
        return set_at_path(self.load_document(self.values_file), self.tag_path, tag)

    def release(self, version: SemanticVersion, app_version: str, image_tag: Optional[str] = None) -> None:
        """
        Write the new version (and optionally image tag) into the chart.

        Both documents are rendered before anything is written. values.yaml is
        written first; if Chart.yaml then fails to write the two files are
        out of sync and the error says so.
        """
        chart_doc = self.render_chart(version, app_version)
        values_doc = self.render_values(image_tag) if image_tag is not None else None

        if values_doc is not None:
            logger.info(f'updating {self.tag_path} in {VALUES_FILE} to {image_tag}')
            self.write_document(self.values_file, values_doc)

        logger.info(f'updating the {CHART_FILE} to version {version}')
        try:
            self.write_document(self.chart_file, chart_doc)
        except ManifestIOError as e:
            if values_doc is None:
                raise
            raise ManifestIOError(
                f'{e}; {VALUES_FILE} was already updated so the chart manifests are now inconsistent'
            ) from e
