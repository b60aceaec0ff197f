import pytest

from sample_project import write_sample_project
from ssas_builder.application.service import (
    BuildService,
    ProjectAssembler,
    ProjectDisassembler,
)
from ssas_builder.infrastructure.codec import XmlObjectCodec
from ssas_builder.infrastructure.manifest import XmlManifestStore
from ssas_builder.infrastructure.repair import XmlFileRepairer
from ssas_builder.infrastructure.validation import EditionValidator


@pytest.fixture()
def project_file(tmp_path):
    return write_sample_project(tmp_path / "project")


@pytest.fixture()
def valid_project_file(tmp_path):
    return write_sample_project(tmp_path / "valid", include_empty_measure_group=False)


@pytest.fixture()
def codec():
    return XmlObjectCodec()


@pytest.fixture()
def repairer():
    return XmlFileRepairer()


@pytest.fixture()
def manifest_store():
    return XmlManifestStore()


@pytest.fixture()
def assembler(codec, manifest_store, repairer):
    return ProjectAssembler(codec=codec, manifest_store=manifest_store, repairer=repairer)


@pytest.fixture()
def disassembler(codec, manifest_store, repairer):
    return ProjectDisassembler(codec=codec, repairer=repairer, manifest_store=manifest_store)


@pytest.fixture()
def build_service(assembler, disassembler):
    return BuildService(
        assembler=assembler, disassembler=disassembler, validator=EditionValidator()
    )
