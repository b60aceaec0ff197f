import pytest

from ssas_builder.__main__ import build_parser, main


def test_build_command_writes_output(valid_project_file, tmp_path):
    target = tmp_path / "bin" / "AdventureWorks.asdatabase"

    code = main(["build", str(valid_project_file), str(target), "--edition", "Developer"])

    assert code == 0
    assert target.is_file()


def test_build_command_fails_on_validation_errors(valid_project_file, tmp_path):
    target = tmp_path / "bin" / "AdventureWorks.asdatabase"

    code = main(["build", str(valid_project_file), str(target), "--edition", "Standard"])

    assert code == 1
    assert not target.exists()


def test_build_command_reports_application_errors(tmp_path):
    code = main(["build", str(tmp_path / "Missing.dwproj"), str(tmp_path / "out.asdatabase")])

    assert code == 1


def test_disassemble_command_with_manifest(project_file, tmp_path):
    target = tmp_path / "split"

    code = main(["disassemble", str(project_file), str(target), "--write-manifest"])

    assert code == 0
    assert (target / "Sales.cube").is_file()
    assert (target / "Sales.partitions").is_file()
    assert (target / "AdventureWorks.dwproj").is_file()
    assert (target / "AdventureWorks.database").is_file()


def test_clean_command(project_file):
    code = main(["clean", str(project_file.parent), "--patterns", "*.cube", "--no-backup"])

    assert code == 0
    assert "CreatedTimestamp" not in (project_file.parent / "Sales.cube").read_text(encoding="utf-8")
    assert list(project_file.parent.glob("*.bak")) == []


def test_sort_command(project_file, tmp_path):
    output = tmp_path / "Sales.sorted.partitions"

    code = main(["sort", str(project_file.parent / "Sales.partitions"), str(output)])

    assert code == 0
    assert output.is_file()


def test_a_command_is_required():
    with pytest.raises(SystemExit):
        build_parser().parse_args([])
