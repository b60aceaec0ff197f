import io

import pytest
from lxml import etree

from ssas_builder.application.domain import Cube, Database, Dimension, MeasureGroup, Partition
from ssas_builder.application.exceptions import CodecError
from ssas_builder.infrastructure.xml_nodes import NAMESPACES, select

from sample_project import NS, PARTITIONS


def serialized(codec, source, include_defaults=False):
    sink = io.BytesIO()
    codec.serialize(sink, source, include_defaults)
    return etree.fromstring(sink.getvalue())


def test_deserialize_cube_reads_identity_and_measure_groups(codec, project_file):
    cube = codec.deserialize(project_file.parent / "Sales.cube", Cube())

    assert cube.id == "Sales"
    assert cube.name == "Sales"
    assert [mg.name for mg in cube.measure_groups] == [
        "Internet Sales",
        "Reseller Sales",
        "Exchange Rates",
    ]
    assert all(not mg.partitions for mg in cube.measure_groups)


def test_deserialize_keeps_unmapped_content_in_payload(codec, project_file):
    cube = codec.deserialize(project_file.parent / "Sales.cube", Cube())

    assert select(cube.payload, "AS:Dimensions/AS:Dimension/AS:DimensionID")
    assert select(cube.payload, "AS:MeasureGroups/*") == []


def test_deserialize_partition_document_with_names(codec):
    document = PARTITIONS.replace(
        "<ID>Fact Internet Sales</ID>", "<ID>Fact Internet Sales</ID><Name>Internet Sales</Name>"
    ).replace(
        "<ID>Fact Reseller Sales</ID>", "<ID>Fact Reseller Sales</ID><Name>Reseller Sales</Name>"
    )

    cube = codec.deserialize(io.BytesIO(document.encode("utf-8")), Cube())

    internet = cube.measure_groups.find("Fact Internet Sales")
    assert [p.id for p in internet.partitions] == ["Internet_Sales_2003", "Internet_Sales_2004"]
    assert [a.id for a in internet.aggregation_designs] == ["AggregationDesign"]


def test_deserialize_measure_group_without_name_fails(codec, project_file):
    with pytest.raises(CodecError, match="has no Name"):
        codec.deserialize(project_file.parent / "Sales.partitions", Cube())


def test_deserialize_wrong_root_fails(codec, project_file):
    with pytest.raises(CodecError, match="Expected a 'Cube' element"):
        codec.deserialize(project_file.parent / "Customer.dim", Cube())


def test_deserialize_malformed_document_fails(codec):
    with pytest.raises(CodecError):
        codec.deserialize(io.BytesIO(b"<Dimension><ID>"), Dimension())


def test_serialize_writes_partitions_inside_measure_groups(codec):
    measure_group = MeasureGroup(id="MG", name="MG")
    measure_group.partitions.append(Partition(id="P1", name="P1"))
    cube = Cube(id="Sales", name="Sales")
    cube.measure_groups.append(measure_group)

    root = serialized(codec, cube)

    assert root.nsmap[None] == NAMESPACES["AS"]
    assert select(root, "/AS:Cube/AS:MeasureGroups/AS:MeasureGroup/AS:Partitions/AS:Partition/AS:ID")[0].text == "P1"
    assert select(root, "//AS:AggregationDesigns") == []


def test_serialize_include_defaults_writes_empty_collections(codec):
    root = serialized(codec, Cube(id="Sales", name="Sales"), include_defaults=True)

    assert len(select(root, "/AS:Cube/AS:MeasureGroups")) == 1


def test_serialize_puts_identity_first(codec):
    root = serialized(codec, Dimension(id="Customer", name="Customer"))

    assert [etree.QName(child).localname for child in root] == ["ID", "Name"]


def test_database_round_trip_keeps_payload_and_children(codec, tmp_path):
    document = f"""<Database {NS}>
  <ID>DB</ID>
  <Name>DB</Name>
  <Language>1033</Language>
  <Dimensions>
    <Dimension><ID>Customer</ID><Name>Customer</Name></Dimension>
  </Dimensions>
</Database>"""
    database = codec.deserialize(io.BytesIO(document.encode("utf-8")), Database())

    root = serialized(codec, database)
    again = codec.deserialize(io.BytesIO(etree.tostring(root)), Database())

    assert [d.id for d in again.dimensions] == ["Customer"]
    assert select(root, "/AS:Database/AS:Language")[0].text == "1033"
