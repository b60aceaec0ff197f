"""
Canonical ordering of project files for comparison.

The transform copies a document, orders sibling elements that carry an ID by
that ID and drops designer 'design-time-name' attributes. Two files holding
the same objects in a different order sort to the same text.
"""

import logging
from pathlib import Path
from typing import Optional, Union

from lxml import etree

from ..application.exceptions import CodecError, ProjectIOError, ProjectNotFoundError
from .xml_nodes import ENGINE_NAMESPACE, parse_document

SORT_STYLESHEET = f"""\
<xsl:stylesheet version="1.0"
    xmlns:xsl="http://www.w3.org/1999/XSL/Transform"
    xmlns:AS="{ENGINE_NAMESPACE}">
  <xsl:output method="xml" encoding="utf-8" indent="yes"/>
  <xsl:strip-space elements="*"/>

  <xsl:template match="@*[local-name()='design-time-name']"/>

  <xsl:template match="@*|comment()|processing-instruction()|text()">
    <xsl:copy/>
  </xsl:template>

  <xsl:template match="*">
    <xsl:copy>
      <xsl:apply-templates select="@*"/>
      <xsl:apply-templates select="node()">
        <xsl:sort select="AS:ID" data-type="text" order="ascending"/>
      </xsl:apply-templates>
    </xsl:copy>
  </xsl:template>
</xsl:stylesheet>
""".encode("utf-8")


class XsltSortTransform:
    """Applies an XSLT stylesheet that puts a project file in canonical order."""

    def __init__(self, stylesheet: Optional[bytes] = None):
        self.logger = logging.getLogger(self.__class__.__name__)
        xslt_root = etree.XML(stylesheet or SORT_STYLESHEET)
        self.transform = etree.XSLT(xslt_root)

    def sort_file(self, input_file: Union[Path, str], output_file: Union[Path, str]) -> Path:
        """
        Writes the sorted form of input_file to output_file.

        Raises:
            ProjectNotFoundError: If input_file does not exist.
            CodecError: If input_file is not well-formed or the transform fails.
            ProjectIOError: If output_file cannot be written.
        """
        input_file, output_file = Path(input_file), Path(output_file)
        if not input_file.is_file():
            raise ProjectNotFoundError(f"'{input_file}' does not exist")

        try:
            result = self.transform(parse_document(input_file))
        except (etree.XMLSyntaxError, etree.XSLTApplyError) as e:
            raise CodecError(f"Cannot sort '{input_file}': {e}") from e

        try:
            output_file.write_bytes(
                etree.tostring(
                    result, pretty_print=True, xml_declaration=True, encoding="utf-8"
                )
            )
        except OSError as e:
            raise ProjectIOError(f"Cannot write '{output_file}': {e}") from e

        self.logger.info(f"Sorted {input_file.name} into {output_file}")
        return output_file
