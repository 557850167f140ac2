"""
Exception hierarchy for helm-release.

Every error the tool raises on purpose derives from HelmReleaseError so the
CLI can report it and exit non-zero without a traceback.
"""


class HelmReleaseError(Exception):
    """Base class for all helm-release errors."""


class ConfigurationError(HelmReleaseError):
    """Invalid combination of options."""


class DiscoveryError(HelmReleaseError):
    """The chart manifests could not be located."""


class ChartNotFoundError(DiscoveryError):
    """No Chart.yaml exists under the search directory."""


class AmbiguousChartError(DiscoveryError):
    """More than one Chart.yaml exists under the search directory."""

    def __init__(self, directory: str, paths: list):
        self.directory = directory
        self.paths = list(paths)
        listing = '\n\t'.join(self.paths)
        super().__init__(f'found more than a single chart in the following paths - \n\t{listing}')


class VcsStateError(HelmReleaseError):
    """Repository state could not be determined or trusted."""


class VcsQueryError(VcsStateError):
    """A git command failed."""

    def __init__(self, message: str, output: str = ''):
        super().__init__(message)
        self.output = output


class VersionError(HelmReleaseError):
    """A version could not be computed."""


class InvalidVersionError(VersionError, ValueError):
    """Text is not a valid semantic version."""


class TagParseError(InvalidVersionError):
    """The last git tag is not a valid semantic version."""

    def __init__(self, tag: str, reason: str):
        self.tag = tag
        super().__init__(f'{tag} {reason}')


class AmbiguousTagError(VersionError):
    """Detached HEAD with zero commits since the tag but no exact tag match."""

    def __init__(self):
        super().__init__(
            'this is likely a light-weight git tag. '
            'please use an annotated tag for helm release to function properly'
        )


class PathError(HelmReleaseError):
    """A dotted path could not be applied to a document."""


class InvalidPathError(PathError):
    """The dotted path itself is malformed."""

    def __init__(self, path: str):
        self.path = path
        super().__init__(f'invalid path [{path}]: segments must be non-empty')


class EmptyDocumentError(PathError):
    """The document has no content."""

    def __init__(self, path: str = ''):
        self.path = path
        super().__init__('the document is empty')


class MissingKeyError(PathError):
    """A key along the path does not exist."""

    def __init__(self, segment: str, path: str):
        self.segment = segment
        self.path = path
        super().__init__(f'key [{segment}] does not exist for path [{path}]')


class TypeMismatchError(PathError):
    """A node along the path is not a mapping."""

    def __init__(self, segment: str, path: str, actual_kind: str):
        self.segment = segment
        self.path = path
        self.actual_kind = actual_kind
        super().__init__(
            f'while processing key [{segment}] for path [{path}] expected a mapping, but got {actual_kind}'
        )


class ManifestIOError(HelmReleaseError):
    """A manifest file could not be read, parsed or written."""
