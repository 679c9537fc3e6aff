"""Manifest ("borderel") rendering and staging.

The manifest is an XML descriptor bundled into every package. It carries the
routing metadata the receiving party uses to dispatch the delivery and one
entry per attached file::

    <ns1:Borderel xmlns:ns1="..." xmlns:xsi="..." xsi:schemaLocation="...">
      <ns1:RouteringsMetadata>
        <Entiteit>ABB</Entiteit>
        <Toepassing>BBC DR</Toepassing>
      </ns1:RouteringsMetadata>
      <ParameterSet>
        <ParameterParameterWaarde>
          <Parameter>SLEUTEL</Parameter>
          <ParameterWaarde>test</ParameterWaarde>
        </ParameterParameterWaarde>
        ...
      </ParameterSet>
      <ns1:Bestanden>
        <Bestand><Bestandsnaam>report.xbrl</Bestandsnaam></Bestand>
      </ns1:Bestanden>
    </ns1:Borderel>

Usage
-----
>>> writer = ManifestWriter(Path("/data/files"), ManifestRouting())
>>> path = await writer.stage(report, files)

"""

from __future__ import annotations

import asyncio
import contextlib
import typing as typ
import xml.etree.ElementTree as ET  # noqa: N817

from parcel.packaging.errors import ManifestBuildError

if typ.TYPE_CHECKING:
    import collections.abc as cabc
    from pathlib import Path

    from parcel.packaging.config import ManifestRouting
    from parcel.store.models import FileRecord, ReportRecord

MANIFEST_ENTRY_NAME = "borderel.xml"
BORDEREL_NAMESPACE = "http://MFT-01-00.abb.vlaanderen.be/Borderel"
XSI_NAMESPACE = "http://www.w3.org/2001/XMLSchema-instance"


def _text_element(parent: ET.Element, tag: str, text: str) -> ET.Element:
    element = ET.SubElement(parent, tag)
    element.text = text
    return element


def _parameter(parameter_set: ET.Element, name: str, value: str) -> None:
    pair = ET.SubElement(parameter_set, "ParameterParameterWaarde")
    _text_element(pair, "Parameter", name)
    _text_element(pair, "ParameterWaarde", value)


def render_manifest(
    report: ReportRecord,
    files: cabc.Sequence[FileRecord],
    routing: ManifestRouting,
    *,
    key: str | None = None,
) -> bytes:
    """Render the manifest for ``report`` as UTF-8 encoded XML.

    Parameters
    ----------
    report
        Report being packaged. The document does not embed report identity,
        so identical files and routing always render identical bytes.
    files
        Attached files, in the order they should be listed.
    routing
        Fixed routing metadata.
    key
        Value of the ``SLEUTEL`` parameter; ``routing.default_key`` when
        omitted.

    Returns
    -------
    bytes
        Pretty-printed XML document with an XML declaration.

    """
    del report
    root = ET.Element(
        "ns1:Borderel",
        {
            "xsi:schemaLocation": f"{BORDEREL_NAMESPACE} Borderel.xsd",
            "xmlns:xsi": XSI_NAMESPACE,
            "xmlns:ns1": BORDEREL_NAMESPACE,
        },
    )

    routing_block = ET.SubElement(root, "ns1:RouteringsMetadata")
    _text_element(routing_block, "Entiteit", routing.entity)
    _text_element(routing_block, "Toepassing", routing.application)

    parameter_set = ET.SubElement(root, "ParameterSet")
    _parameter(parameter_set, "SLEUTEL", key or routing.default_key)
    _parameter(parameter_set, "FLOW", routing.flow)

    listing = ET.SubElement(root, "ns1:Bestanden")
    for file in files:
        entry = ET.SubElement(listing, "Bestand")
        _text_element(entry, "Bestandsnaam", file.filename)

    ET.indent(root)
    return ET.tostring(root, encoding="utf-8", xml_declaration=True)


class ManifestWriter:
    """Stage rendered manifests on disk for the archive builder.

    Parameters
    ----------
    staging_dir
        Directory receiving ``{report_id}-borderel.xml`` files.
    routing
        Routing metadata passed to :func:`render_manifest`.

    """

    def __init__(self, staging_dir: Path, routing: ManifestRouting) -> None:
        """Initialise the writer with a staging directory and routing data."""
        self._staging_dir = staging_dir
        self._routing = routing

    def path_for(self, report: ReportRecord) -> Path:
        """Return the staging path used for ``report``."""
        return self._staging_dir / f"{report.id}-{MANIFEST_ENTRY_NAME}"

    async def stage(
        self,
        report: ReportRecord,
        files: cabc.Sequence[FileRecord],
        *,
        key: str | None = None,
    ) -> Path:
        """Render and write the manifest, returning the staged path.

        Raises
        ------
        ManifestBuildError
            If the document cannot be serialised or written.

        """
        try:
            document = render_manifest(report, files, self._routing, key=key)
        except (TypeError, ValueError) as exc:
            raise ManifestBuildError(report.id, str(exc)) from exc

        path = self.path_for(report)
        try:
            await asyncio.to_thread(path.write_bytes, document)
        except OSError as exc:
            with contextlib.suppress(OSError):
                path.unlink(missing_ok=True)
            raise ManifestBuildError(report.id, str(exc)) from exc
        return path
