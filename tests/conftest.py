"""
Shared fixtures: bundled standards, a small hand-written standard and an
isolated environment for configuration-driven tests.
"""

import logging
import os
from datetime import datetime, timedelta, timezone

import pytest

from checklist_engine.standards.loader import load_pipeline_taxonomy, load_taxonomy, load_taxonomy_file
from checklist_engine.util.config import DEFAULT_ASVS_PATH, DEFAULT_SPVS_PATH

CONFIG_VARS = (
    'ASVS_DATA_PATH', 'SPVS_DATA_PATH', 'STRICT_CATEGORY_NAMES',
    'OUT_DIR', 'ENABLE_EXCEL', 'LOG_LEVEL', 'LOG_FILE',
)


def make_item(code, ordinal, description, min_level=1, **extra):
    """ASVS style requirement item with L1/L2/L3 Required markers."""
    item = {
        'Shortcode': code,
        'Ordinal': ordinal,
        'Description': description,
        'L1': {'Required': min_level <= 1, 'Requirement': ''},
        'L2': {'Required': min_level <= 2, 'Requirement': ''},
        'L3': {'Required': True, 'Requirement': ''},
    }
    item.update(extra)
    return item


@pytest.fixture(scope='session')
def asvs_index():
    """Bundled ASVS subset"""
    return load_taxonomy_file(DEFAULT_ASVS_PATH)


@pytest.fixture(scope='session')
def spvs_index():
    """Bundled SPVS pipeline standard"""
    return load_pipeline_taxonomy(DEFAULT_SPVS_PATH)


@pytest.fixture
def mini_document():
    """Small nested standard, deliberately out of source order"""
    return {
        'Name': 'Mini Standard',
        'ShortName': 'MINI',
        'Version': '0.1',
        'Description': 'Fixture standard',
        'Requirements': [
            {'Shortcode': 'V2', 'Ordinal': 2, 'Name': 'Authentication', 'Items': [
                {'Shortcode': 'V2.1', 'Ordinal': 1, 'Name': 'Password Security', 'Items': [
                    make_item('V2.1.2', 2, 'Second   password\n rule', 1, CWE=[521], NIST=['5.1.1.2']),
                    make_item('V2.1.1', 1, 'First password rule', 2),
                ]},
            ]},
            {'Shortcode': 'V1', 'Ordinal': 1, 'Name': 'Architecture', 'Items': [
                {'Shortcode': 'V1.1', 'Ordinal': 1, 'Name': 'Secure Software Development Lifecycle', 'Items': [
                    make_item('V1.1.1', 1, 'Secure lifecycle in use', 3),
                ]},
            ]},
            {'Shortcode': 'v99', 'Ordinal': 99, 'Name': 'Custom Controls', 'Items': [
                {'Shortcode': 'V99.1', 'Ordinal': 1, 'Name': 'Custom Section', 'Items': [
                    {'Shortcode': 'V99.1.1', 'Ordinal': 1, 'Description': 'Unclassified control', 'level': 'bogus'},
                ]},
            ]},
        ],
    }


@pytest.fixture
def mini_index(mini_document):
    return load_taxonomy(mini_document)


@pytest.fixture
def stepping_clock():
    """Clock that advances one second per call"""
    start = datetime(2024, 1, 1, tzinfo=timezone.utc)
    state = {'calls': 0}

    def clock():
        value = start + timedelta(seconds=state['calls'])
        state['calls'] += 1
        return value

    return clock


@pytest.fixture
def isolated_env(monkeypatch, tmp_path):
    """No engine variables from the caller's environment and no stray .env file"""
    for name in CONFIG_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
    yield tmp_path
    # load_dotenv writes straight into os.environ
    for name in CONFIG_VARS:
        os.environ.pop(name, None)


@pytest.fixture
def reset_logging():
    """Undo setup_logging: drop the handlers it installs and restore the root level"""
    root = logging.getLogger()
    level = root.level
    yield root
    for handler in list(root.handlers):
        if type(handler) in (logging.StreamHandler, logging.FileHandler):
            root.removeHandler(handler)
            handler.close()
    root.setLevel(level)
