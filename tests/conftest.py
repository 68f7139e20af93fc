import io
from pathlib import Path

# noinspection PyPackageRequirements
import pytest

from configuration import FormatterConfig

TESTDATA = Path(__file__).parent / "testdata"


@pytest.fixture
def formatter_config():
    """Fixture providing a standard configuration, single-threaded."""
    return FormatterConfig(block_size=1, parallelism=1)


@pytest.fixture
def make_config():
    """Fixture building configurations from keyword overrides."""
    def _make(**overrides):
        values = {"block_size": 1, "parallelism": 1}
        values.update(overrides)
        return FormatterConfig(**values)

    return _make


@pytest.fixture
def testdata():
    return TESTDATA


@pytest.fixture
def read_fixture():
    """Fixture returning the raw bytes of a file under tests/testdata."""
    def _read(relative: str) -> bytes:
        return (TESTDATA / relative).read_bytes()

    return _read


@pytest.fixture
def report_stream():
    return io.StringIO()


@pytest.fixture
def go_tree(tmp_path):
    """
    Fixture creating a directory of Go files.

    Takes a mapping of relative path to source text and returns the root.
    """
    def _build(files: dict) -> Path:
        root = tmp_path / "src"
        for relative, text in files.items():
            path = root / relative
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(text, encoding="utf-8")
        root.mkdir(exist_ok=True)
        return root

    return _build
