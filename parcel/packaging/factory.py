"""Factory for building a PackagingPipeline from configuration.

Usage
-----
>>> from parcel.packaging.factory import build_packaging_pipeline
>>> pipeline = build_packaging_pipeline(MetadataStore(session_factory))

"""

from __future__ import annotations

import typing as typ

from parcel.packaging.config import PackagingConfig
from parcel.packaging.manifest import ManifestWriter
from parcel.packaging.observability import PackagingEventLogger
from parcel.packaging.pipeline import PackagingPipeline, PackagingPipelineDependencies
from parcel.packaging.zip_archiver import ZipPackageArchiver

if typ.TYPE_CHECKING:
    from parcel.packaging.pipeline import PackagingStore

__all__ = ["build_packaging_pipeline"]


def build_packaging_pipeline(
    store: PackagingStore,
    config: PackagingConfig | None = None,
) -> PackagingPipeline:
    """Assemble a pipeline writing manifests and zips under the file root.

    Parameters
    ----------
    store
        Metadata store gateway.
    config
        Packaging configuration; read from the environment when omitted.

    Returns
    -------
    PackagingPipeline
        Pipeline ready for reconciliation and triggering.

    """
    effective = config or PackagingConfig.from_env()
    dependencies = PackagingPipelineDependencies(
        store=store,
        manifest_writer=ManifestWriter(effective.file_root, effective.routing),
        archiver=ZipPackageArchiver(effective.file_root),
    )
    return PackagingPipeline(
        dependencies,
        config=effective,
        event_logger=PackagingEventLogger(),
    )
