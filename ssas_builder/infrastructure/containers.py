"""
Dependency Injection container for the ssas_builder component.

This container uses the `dependency-injector` library to wire together all
the components of the application, such as services and infrastructure adapters,
based on the application's configuration.
"""

from dependency_injector import containers, providers

from ..application.domain import *
from ..application.service import BuildService, ProjectAssembler, ProjectDisassembler
from ..settings import settings

from .cleaner import DirectoryCleaner
from .codec import XmlObjectCodec
from .manifest import XmlManifestStore
from .repair import XmlFileRepairer
from .sorter import XsltSortTransform
from .validation import EditionValidator


class Container(containers.DeclarativeContainer):
    """DI container for wiring the application components."""

    cli_args = providers.Configuration()

    config = providers.Object(settings)

    codec: providers.Factory[ObjectCodec] = providers.Factory(XmlObjectCodec)

    manifest_store: providers.Factory[ManifestStore] = providers.Factory(
        XmlManifestStore
    )

    repairer: providers.Factory[FileRepairer] = providers.Factory(XmlFileRepairer)

    validator: providers.Factory[ModelValidator] = providers.Factory(EditionValidator)

    assembler = providers.Factory(
        ProjectAssembler,
        codec=codec,
        manifest_store=manifest_store,
        repairer=repairer,
    )

    disassembler = providers.Factory(
        ProjectDisassembler,
        codec=codec,
        repairer=repairer,
        manifest_store=manifest_store,
        allow_overwrite=config().disassemble.allow_overwrite,
        include_defaults=config().disassemble.include_defaults,
    )

    build_service = providers.Factory(
        BuildService,
        assembler=assembler,
        disassembler=disassembler,
        validator=validator,
    )

    cleaner = providers.Factory(
        DirectoryCleaner,
        show_progress=cli_args.progress,
    )

    sorter = providers.Singleton(XsltSortTransform)
