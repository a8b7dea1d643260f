"""Test configuration and fixtures for the MadCap toolkit.

Provides temporary Flare project layouts, a fresh pipeline context per test
and isolation of the configuration singleton from the user's own overrides.
"""

import logging
import shutil
import sys
import tempfile
from pathlib import Path
from typing import Dict

import pytest

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from madcap_toolkit.config import ConfigManager
from madcap_toolkit.core.context import PipelineContext
from madcap_toolkit.core.rules import PipelineRules
from madcap_toolkit.core.services import PreprocessingService

# Configure test logging
logging.basicConfig(
    level=logging.DEBUG,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)

TOPIC_TEMPLATE = """<?xml version="1.0" encoding="utf-8"?>
<html xmlns:MadCap="http://www.madcapsoftware.com/Schemas/MadCap.xsd">
    <head>
        <title>Topic</title>
        <link href="../Resources/Stylesheets/Styles.css" rel="stylesheet" type="text/css" />
    </head>
    <body>{body}</body>
</html>
"""

FLVAR_TEMPLATE = """<?xml version="1.0" encoding="utf-8"?>
<CatapultVariableSet>
{variables}
</CatapultVariableSet>
"""


def flare_topic(body: str) -> str:
    """Wrap *body* markup in a Flare topic document."""
    return TOPIC_TEMPLATE.format(body=body)


class FlareProject:
    """A throw-away Flare project tree on disk."""

    def __init__(self, root: Path) -> None:
        self.root = root
        self.content_dir = root / "Content"
        self.snippets_dir = self.content_dir / "Resources" / "Snippets"
        self.variable_sets_dir = root / "Project" / "VariableSets"
        self.snippets_dir.mkdir(parents=True)
        self.variable_sets_dir.mkdir(parents=True)

    def add_topic(self, relative: str, body: str) -> Path:
        path = self.content_dir / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(flare_topic(body), encoding="utf-8")
        return path

    def add_snippet(self, name: str, body: str) -> Path:
        path = self.snippets_dir / name
        path.write_text(flare_topic(body), encoding="utf-8")
        return path

    def add_variable_set(self, name: str, variables: Dict[str, str]) -> Path:
        lines = [
            f'    <Variable Name="{key}" EvaluatedDefinition="{value}">{value}</Variable>'
            for key, value in variables.items()
        ]
        path = self.variable_sets_dir / f"{name}.flvar"
        path.write_text(FLVAR_TEMPLATE.format(variables="\n".join(lines)), encoding="utf-8")
        return path


@pytest.fixture(autouse=True)
def isolated_config(monkeypatch, tmp_path):
    """Point user overrides at an empty directory and drop the singleton."""
    monkeypatch.setenv("MADCAP_TOOLKIT_CONFIG_DIR", str(tmp_path / "user-config"))
    monkeypatch.delenv("MADCAP_LOG_DIR", raising=False)
    monkeypatch.delenv("MADCAP_DEBUG_MODULES", raising=False)
    ConfigManager.reset()
    yield
    ConfigManager.reset()


@pytest.fixture
def temp_dir():
    """Creates a temporary directory for test operations."""
    temp_path = Path(tempfile.mkdtemp())
    yield temp_path
    shutil.rmtree(temp_path, ignore_errors=True)


@pytest.fixture
def flare_project(temp_dir):
    """Empty Flare project with Content and Project/VariableSets folders."""
    return FlareProject(temp_dir / "Docs")


@pytest.fixture
def topic():
    """Callable wrapping body markup into a full Flare topic."""
    return flare_topic


@pytest.fixture
def rules():
    return PipelineRules.from_config()


@pytest.fixture
def pipeline_context(rules):
    return PipelineContext(rules)


@pytest.fixture
def service(pipeline_context):
    return PreprocessingService(pipeline_context)


@pytest.fixture
def restore_logging():
    """Undo handler and level changes made by setup_logging()."""
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield
    for handler in list(root.handlers):
        if handler not in handlers:
            root.removeHandler(handler)
            handler.close()
    for handler in handlers:
        if handler not in root.handlers:
            root.addHandler(handler)
    root.setLevel(level)


def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line("markers", "integration: end-to-end pipeline tests")
    config.addinivalue_line("markers", "slow: long-running property tests")
