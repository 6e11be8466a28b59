"""
Shared fixtures for the bridge tests.

Run with: pytest tests/ -v
"""

import pytest

from xslt_bridge import ResourceTable, XsltBridge, reset_table, set_bridge


XSL_NS = 'xmlns:xsl="http://www.w3.org/1999/XSL/Transform"'

IDENTITY_XSLT = f"""<xsl:stylesheet version="1.0" {XSL_NS}>
  <xsl:template match="@*|node()">
    <xsl:copy><xsl:apply-templates select="@*|node()"/></xsl:copy>
  </xsl:template>
</xsl:stylesheet>"""

CONSTANT_XSLT = f"""<xsl:stylesheet version="1.0" {XSL_NS}>
  <xsl:template match="/"><out/></xsl:template>
</xsl:stylesheet>"""

PARAM_XSLT = f"""<xsl:stylesheet version="1.0" {XSL_NS}>
  <xsl:output method="text"/>
  <xsl:param name="name"/>
  <xsl:template match="/"><xsl:value-of select="$name"/></xsl:template>
</xsl:stylesheet>"""

TWO_PARAM_XSLT = f"""<xsl:stylesheet version="1.0" {XSL_NS}>
  <xsl:output method="text"/>
  <xsl:param name="first"/>
  <xsl:param name="second"/>
  <xsl:template match="/"><xsl:value-of select="concat($first, '|', $second)"/></xsl:template>
</xsl:stylesheet>"""

EMPTY_TEXT_XSLT = f"""<xsl:stylesheet version="1.0" {XSL_NS}>
  <xsl:output method="text"/>
  <xsl:template match="/"/>
</xsl:stylesheet>"""

TERMINATE_XSLT = f"""<xsl:stylesheet version="1.0" {XSL_NS}>
  <xsl:template match="/">
    <xsl:message terminate="yes">stop here</xsl:message>
  </xsl:template>
</xsl:stylesheet>"""

SAMPLE_XML = """<catalog>
  <book id="b1"><title>Dune</title><year>1965</year></book>
  <book id="b2"><title>Solaris</title><year>1961</year></book>
</catalog>"""


@pytest.fixture(autouse=True)
def fresh_globals():
    """Give every test a clean global table and default bridge."""
    reset_table()
    set_bridge(None)
    yield
    set_bridge(None)
    reset_table()


@pytest.fixture
def table():
    """Isolated resource table."""
    table = ResourceTable()
    yield table
    table.release_all()


@pytest.fixture
def bridge(table):
    """Bridge bound to the isolated table."""
    return XsltBridge(table=table)
