"""Report packaging pipeline.

This package bundles each eligible report's attached files and a generated
manifest into one zip archive, registers the archive against the report and
records the report's packaging status.

Public API
----------
ManifestRouting
    Routing metadata written into every manifest.
ManifestWriter
    Renders and stages manifest documents.
PackageArchiver
    Protocol (port) for archive output.
PackagingConfig
    Configuration for file locations, expected file count and the timer.
PackagingPipeline
    Run guard, eligibility fetch and per-report state machine.
PackagingPipelineDependencies
    Frozen dataclass grouping the pipeline's collaborators.
PackagingRun
    Handle on the report tasks launched by one trigger.
PeriodicTrigger
    In-process interval timer firing packaging runs.
ZipPackageArchiver
    Filesystem adapter writing deflated zip archives.
build_packaging_pipeline
    Assemble a pipeline from a store and configuration.
render_manifest
    Pure function rendering a manifest document.

The Dramatiq actor lives in :mod:`parcel.packaging.actor` and is not imported
here so that importing the package does not bind a broker.

Example:
>>> pipeline = build_packaging_pipeline(MetadataStore(session_factory))
>>> await pipeline.reconcile()
>>> run = await pipeline.trigger()
>>> outcomes = await run.wait()

"""

from parcel.packaging.archiver import PackageArchiver
from parcel.packaging.config import ManifestRouting, PackagingConfig
from parcel.packaging.factory import build_packaging_pipeline
from parcel.packaging.manifest import ManifestWriter, render_manifest
from parcel.packaging.outcome import (
    FailureReason,
    PackagingFailed,
    PackagingSucceeded,
)
from parcel.packaging.pipeline import (
    PackagingPipeline,
    PackagingPipelineDependencies,
    PackagingRun,
    RunStatus,
)
from parcel.packaging.scheduler import PeriodicTrigger
from parcel.packaging.zip_archiver import ZipPackageArchiver

__all__ = [
    "FailureReason",
    "ManifestRouting",
    "ManifestWriter",
    "PackageArchiver",
    "PackagingConfig",
    "PackagingFailed",
    "PackagingPipeline",
    "PackagingPipelineDependencies",
    "PackagingRun",
    "PackagingSucceeded",
    "PeriodicTrigger",
    "RunStatus",
    "ZipPackageArchiver",
    "build_packaging_pipeline",
    "render_manifest",
]
