"""
helm-release

Determines a Helm chart's next release version from git history and writes
it, along with the image tag, into the chart's manifests.
"""

from ._version import __version__

__description__ = "Determine and apply the next release version of a Helm chart"
