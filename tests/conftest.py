"""Pytest configuration and fixtures for releasetool tests."""

import sys
from pathlib import Path
from typing import List
import pytest
import logging

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from releasetool.core.models import Unit
from releasetool.config.global_config_loader import GlobalConfig, PatchConfig, ReleaseConfig
from sample_values import UI_VALUES, CATALOG_VALUES

# Configure logging
logging.basicConfig(level=logging.INFO)


@pytest.fixture
def sample_units() -> List[Unit]:
    """Units of the retail store sample application"""
    return [
        Unit(name='ui', path_prefix='src/ui'),
        Unit(name='catalog', path_prefix='src/catalog'),
        Unit(name='cart', path_prefix='src/cart'),
        Unit(name='orders', path_prefix='src/orders'),
        Unit(name='checkout', path_prefix='src/checkout'),
    ]


@pytest.fixture
def chart_dir(tmp_path) -> Path:
    """Helm chart values files on disk"""
    for name, content in (('ui', UI_VALUES), ('catalog', CATALOG_VALUES)):
        chart = tmp_path / 'deploy' / name
        chart.mkdir(parents=True)
        (chart / 'values.yaml').write_text(content)
    return tmp_path


@pytest.fixture
def release_config(chart_dir) -> GlobalConfig:
    """Config with two units backed by values files"""
    return GlobalConfig(
        registry='123456789012.dkr.ecr.us-east-1.amazonaws.com/retail-store',
        units=[
            Unit(name='ui', path_prefix='src/ui',
                 values_file=str(chart_dir / 'deploy' / 'ui' / 'values.yaml')),
            Unit(name='catalog', path_prefix='src/catalog',
                 values_file=str(chart_dir / 'deploy' / 'catalog' / 'values.yaml')),
            Unit(name='cart', path_prefix='src/cart'),
        ],
        patch=PatchConfig(),
        release=ReleaseConfig(lock_timeout=5),
    )
