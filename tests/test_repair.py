import pytest
from lxml import etree

from ssas_builder.application.domain import Cube, MeasureGroup
from ssas_builder.application.exceptions import (
    CodecError,
    InvalidArgumentError,
    MeasureGroupNotFoundError,
)
from ssas_builder.infrastructure.xml_nodes import parse_document, select


@pytest.fixture()
def sales_cube(codec, project_file):
    return codec.deserialize(project_file.parent / "Sales.cube", Cube())


def measure_group_names(stream):
    root = etree.parse(stream).getroot()
    return {
        node.findtext("{*}ID"): [name.text for name in node.findall("{*}Name")]
        for node in select(root, "/AS:Cube/AS:MeasureGroups/AS:MeasureGroup")
    }


def test_inject_adds_one_name_per_measure_group(repairer, project_file, sales_cube):
    stream = repairer.inject_partition_names(project_file.parent / "Sales.partitions", sales_cube)

    assert measure_group_names(stream) == {
        "Fact Internet Sales": ["Internet Sales"],
        "Fact Reseller Sales": ["Reseller Sales"],
    }


def test_inject_leaves_the_file_on_disk_unchanged(repairer, project_file, sales_cube):
    partitions_file = project_file.parent / "Sales.partitions"
    before = partitions_file.read_bytes()

    repairer.inject_partition_names(partitions_file, sales_cube)

    assert partitions_file.read_bytes() == before


def test_inject_places_name_right_after_id(repairer, project_file, sales_cube):
    stream = repairer.inject_partition_names(project_file.parent / "Sales.partitions", sales_cube)

    root = etree.parse(stream).getroot()
    first = select(root, "//AS:MeasureGroup")[0]
    assert [etree.QName(child).localname for child in first][:2] == ["ID", "Name"]


def test_inject_keeps_an_existing_name(repairer, tmp_path, sales_cube):
    partitions_file = tmp_path / "Named.partitions"
    partitions_file.write_text(
        '<Cube xmlns="http://schemas.microsoft.com/analysisservices/2003/engine">'
        "<ID>Sales</ID><MeasureGroups><MeasureGroup>"
        "<ID>Fact Internet Sales</ID><Name>Kept</Name>"
        "</MeasureGroup></MeasureGroups></Cube>",
        encoding="utf-8",
    )

    stream = repairer.inject_partition_names(partitions_file, sales_cube)

    assert measure_group_names(stream) == {"Fact Internet Sales": ["Kept"]}


def test_inject_unknown_measure_group_fails(repairer, project_file):
    cube = Cube(id="Sales", name="Sales")
    cube.measure_groups.append(MeasureGroup(id="Fact Internet Sales", name="Internet Sales"))

    with pytest.raises(MeasureGroupNotFoundError) as excinfo:
        repairer.inject_partition_names(project_file.parent / "Sales.partitions", cube)

    assert excinfo.value.measure_group_id == "Fact Reseller Sales"
    assert excinfo.value.cube_name == "Sales"


def test_inject_requires_a_cube(repairer, project_file):
    with pytest.raises(InvalidArgumentError):
        repairer.inject_partition_names(project_file.parent / "Sales.partitions", None)


def test_inject_rejects_malformed_file(repairer, tmp_path, sales_cube):
    broken = tmp_path / "Broken.partitions"
    broken.write_text("<Cube><MeasureGroups>", encoding="utf-8")

    with pytest.raises(CodecError):
        repairer.inject_partition_names(broken, sales_cube)


def test_strip_partitions_file_removes_measure_group_artifacts(repairer, tmp_path):
    partitions_file = tmp_path / "Sales.partitions"
    partitions_file.write_text(
        '<Cube xmlns="http://schemas.microsoft.com/analysisservices/2003/engine">'
        "<ID>Sales</ID><Name>Sales</Name><MeasureGroups><MeasureGroup>"
        "<ID>MG</ID><Name>MG</Name><StorageMode>Molap</StorageMode>"
        "<ProcessingMode>Regular</ProcessingMode>"
        "<Partitions><Partition><ID>P</ID><Name>P</Name><StorageMode>Molap</StorageMode></Partition></Partitions>"
        "</MeasureGroup></MeasureGroups></Cube>",
        encoding="utf-8",
    )

    removed = repairer.strip_partitions_file(partitions_file)

    tree = parse_document(partitions_file)
    assert removed == 3
    assert select(tree, "//AS:MeasureGroup/AS:Name") == []
    assert select(tree, "//AS:MeasureGroup/AS:StorageMode") == []
    assert select(tree, "//AS:Partition/AS:Name")[0].text == "P"
    assert select(tree, "//AS:Partition/AS:StorageMode")[0].text == "Molap"
    assert select(tree, "/AS:Cube/AS:Name")[0].text == "Sales"


def test_strip_cube_file_removes_partition_content(repairer, tmp_path):
    cube_file = tmp_path / "Sales.cube"
    cube_file.write_text(
        '<Cube xmlns="http://schemas.microsoft.com/analysisservices/2003/engine">'
        "<ID>Sales</ID><MeasureGroups><MeasureGroup><ID>MG</ID><Name>MG</Name>"
        "<Measures><Measure><ID>M</ID></Measure></Measures>"
        "<Partitions><Partition><ID>P</ID></Partition></Partitions>"
        "<AggregationDesigns><AggregationDesign><ID>A</ID></AggregationDesign></AggregationDesigns>"
        "</MeasureGroup></MeasureGroups></Cube>",
        encoding="utf-8",
    )

    removed = repairer.strip_cube_file(cube_file)

    tree = parse_document(cube_file)
    assert removed == 2
    assert select(tree, "//AS:Partitions") == []
    assert select(tree, "//AS:AggregationDesigns") == []
    assert select(tree, "//AS:Measure/AS:ID")[0].text == "M"


def test_strip_file_without_artifacts_removes_nothing(repairer, project_file):
    assert repairer.strip_cube_file(project_file.parent / "Sales.cube") == 0
