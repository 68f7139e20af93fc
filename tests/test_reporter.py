import os
import stat

# noinspection PyPackageRequirements
import pytest

from errors import FileAccessError
from reporter import Reporter, write_in_place
from results import ChangeEntry, FormatResult

FORMATTED = b"package main\n\nfunc f() int {\n\tx := 1\n\n\treturn x\n}\n"


def _modified(unit: str) -> FormatResult:
    return FormatResult(
        unit=unit,
        content=FORMATTED,
        modified=True,
        changes=(ChangeEntry(kind="return", unit=unit, line=5, column=2),),
    )


def _unmodified(unit: str) -> FormatResult:
    return FormatResult(unit=unit, content=b"package main\n", modified=False)


@pytest.mark.parametrize("verbose,expected", [(True, "x.go: no changes needed\n"), (False, "")])
def test_unmodified_result(verbose, expected, make_config, report_stream):
    Reporter(make_config(verbose=verbose), report_stream).report(_unmodified("x.go"))

    assert report_stream.getvalue() == expected


def test_dry_run_reports_without_writing(make_config, report_stream, mocker):
    write = mocker.patch("reporter.write_in_place")

    Reporter(make_config(dry_run=True, write=True), report_stream).report(_modified("x.go"))

    assert report_stream.getvalue() == "x.go: would be modified\n"
    write.assert_not_called()


def test_verbose_dry_run_includes_change_log(make_config, report_stream):
    Reporter(make_config(dry_run=True, verbose=True), report_stream).report(_modified("x.go"))

    assert report_stream.getvalue() == (
        "x.go: would be modified\n"
        "- insert blank line before return at x.go:5:2\n"
    )


def test_write_replaces_file_and_keeps_permissions(tmp_path, make_config, report_stream):
    path = tmp_path / "x.go"
    path.write_bytes(b"package main\n")
    os.chmod(path, 0o640)

    Reporter(make_config(write=True), report_stream).report(_modified(str(path)))

    assert path.read_bytes() == FORMATTED
    assert stat.S_IMODE(os.stat(path).st_mode) == 0o640
    assert report_stream.getvalue() == ""
    assert [p.name for p in tmp_path.iterdir()] == ["x.go"]


def test_write_goes_through_symlink(tmp_path, make_config, report_stream):
    real = tmp_path / "real.go"
    real.write_bytes(b"package main\n")
    os.chmod(real, 0o600)
    link = tmp_path / "link.go"
    link.symlink_to(real)

    Reporter(make_config(write=True), report_stream).report(_modified(str(link)))

    assert link.is_symlink()
    assert os.readlink(link) == str(real)
    assert real.read_bytes() == FORMATTED
    assert stat.S_IMODE(os.stat(real).st_mode) == 0o600
    assert sorted(p.name for p in tmp_path.iterdir()) == ["link.go", "real.go"]


def test_verbose_write_reports_change_log(tmp_path, make_config, report_stream):
    path = tmp_path / "x.go"
    path.write_bytes(b"package main\n")
    unit = str(path)

    Reporter(make_config(write=True, verbose=True), report_stream).report(_modified(unit))

    assert report_stream.getvalue() == f"{unit}: formatted\n- insert blank line before return at {unit}:5:2\n"


def test_default_mode_prints_annotated_result(make_config, report_stream):
    Reporter(make_config(), report_stream).report(_modified("x.go"))

    assert report_stream.getvalue() == f"// x.go - formatted:\n{FORMATTED.decode()}\n"


def test_write_failure_raises_file_access_error(tmp_path):
    missing = tmp_path / "missing" / "x.go"

    with pytest.raises(FileAccessError) as exc_info:
        write_in_place(str(missing), FORMATTED)

    assert exc_info.value.unit == str(missing)
    assert exc_info.value.operation == "write"


@pytest.mark.parametrize("verbose,expected", [(True, "vendor skipped\n"), (False, "")])
def test_skipped_directory(verbose, expected, make_config, report_stream):
    Reporter(make_config(verbose=verbose), report_stream).skipped("vendor")

    assert report_stream.getvalue() == expected
