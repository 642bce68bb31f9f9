"""
Pytest configuration and shared fixtures.

This module contains shared test fixtures and configuration
for the mcmctreer test suite.
"""

import io
import logging
import shutil
import tempfile
from pathlib import Path

import pytest
from Bio import Phylo

# Configure logging for tests
logging.basicConfig(level=logging.DEBUG)

APE_TREE = "((((human, (chimpanzee, bonobo)), gorilla), (orangutan, sumatran)), gibbon);"


@pytest.fixture(scope="session")
def test_data_dir():
    """Get the test data directory."""
    return Path(__file__).parent / "data"


@pytest.fixture
def temp_dir():
    """Create a temporary directory for each test."""
    temp_path = Path(tempfile.mkdtemp())
    yield temp_path
    shutil.rmtree(temp_path, ignore_errors=True)


@pytest.fixture
def figtree_file(test_data_dir):
    """MCMCTree FigTree.tre output for the seven-taxon ape tree."""
    return test_data_dir / "FigTree.tre"


@pytest.fixture
def ape_tree():
    """Fully resolved seven-taxon ape tree without branch lengths."""
    return Phylo.read(io.StringIO(APE_TREE.replace(" ", "")), "newick")


@pytest.fixture
def ape_tree_file(temp_dir):
    """The ape tree written to a Newick file."""
    path = temp_dir / "apes.nwk"
    path.write_text(APE_TREE.replace(" ", "") + "\n")
    return path


@pytest.fixture
def mono_groups():
    """Clade definitions used in the ape calibration examples."""
    return [
        ["human", "chimpanzee", "bonobo", "gorilla", "sumatran", "orangutan", "gibbon"],
        ["human", "chimpanzee", "bonobo", "gorilla"],
        ["human", "chimpanzee", "bonobo"],
        ["sumatran", "orangutan"],
    ]


@pytest.fixture
def minimum_times():
    return [1.5, 0.6, 0.8, 1.3]


@pytest.fixture
def maximum_times():
    return [3.0, 1.2, 1.2, 2.0]


@pytest.fixture
def caplog_debug(caplog):
    """Capture debug logs during tests."""
    with caplog.at_level(logging.DEBUG):
        yield caplog
