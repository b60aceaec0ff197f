import pytest

from ssas_builder.application.exceptions import CodecError, ProjectNotFoundError
from ssas_builder.infrastructure.sorter import XsltSortTransform
from ssas_builder.infrastructure.xml_nodes import parse_document, select

UNSORTED = """\
<Cube xmlns="http://schemas.microsoft.com/analysisservices/2003/engine"
      xmlns:dwd="http://schemas.microsoft.com/DataWarehouse/Designer/1.0">
  <ID>Sales</ID>
  <MeasureGroups>
    <MeasureGroup>
      <ID>Fact Internet Sales</ID>
      <Partitions>
        <Partition dwd:design-time-name="b"><ID>Internet_Sales_2004</ID></Partition>
        <Partition dwd:design-time-name="a"><ID>Internet_Sales_2002</ID></Partition>
        <Partition><ID>Internet_Sales_2003</ID></Partition>
      </Partitions>
    </MeasureGroup>
  </MeasureGroups>
</Cube>
"""


@pytest.fixture()
def sorter():
    return XsltSortTransform()


def test_sort_orders_siblings_by_id(sorter, tmp_path):
    source = tmp_path / "Sales.partitions"
    source.write_text(UNSORTED, encoding="utf-8")

    output = sorter.sort_file(source, tmp_path / "Sales.sorted.partitions")

    tree = parse_document(output)
    assert [node.text for node in select(tree, "//AS:Partition/AS:ID")] == [
        "Internet_Sales_2002",
        "Internet_Sales_2003",
        "Internet_Sales_2004",
    ]
    assert select(tree, "//@dwd:design-time-name") == []


def test_sorting_is_stable_under_reordering(sorter, tmp_path):
    first = tmp_path / "first.partitions"
    first.write_text(UNSORTED, encoding="utf-8")
    second = tmp_path / "second.partitions"
    second.write_text(
        UNSORTED.replace("Internet_Sales_2004", "SWAP")
        .replace("Internet_Sales_2002", "Internet_Sales_2004")
        .replace("SWAP", "Internet_Sales_2002"),
        encoding="utf-8",
    )

    a = sorter.sort_file(first, tmp_path / "a.xml").read_bytes()
    b = sorter.sort_file(second, tmp_path / "b.xml").read_bytes()

    assert a == b


def test_sort_missing_input(sorter, tmp_path):
    with pytest.raises(ProjectNotFoundError):
        sorter.sort_file(tmp_path / "missing.cube", tmp_path / "out.cube")


def test_sort_malformed_input(sorter, tmp_path):
    source = tmp_path / "broken.cube"
    source.write_text("<Cube>", encoding="utf-8")

    with pytest.raises(CodecError):
        sorter.sort_file(source, tmp_path / "out.cube")
