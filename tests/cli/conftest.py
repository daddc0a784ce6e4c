"""Shared fixtures for CLI tests."""

from pathlib import Path

import pytest
import yaml


@pytest.fixture
def tmp_config_path(tmp_path: Path) -> Path:
    """Config file pointing conversation storage into ``tmp_path``."""
    path = tmp_path / "tradeassist.yaml"
    path.write_text(
        yaml.dump(
            {
                "memory": {"storage_path": str(tmp_path / "conversations.db")},
                "vector_store": {"persist_directory": None},
            }
        )
    )
    return path


@pytest.fixture
def catalog_file(tmp_path: Path) -> Path:
    path = tmp_path / "catalog.yaml"
    path.write_text(
        yaml.dump(
            {
                "products": [
                    {"id": "p1", "sku": "HDPE-25", "name": "HDPE 25kg", "price": 950, "stock": 3}
                ],
                "knowledge": [
                    {"id": "kb1", "title": "Returns", "content": "14 days", "locale": "en"}
                ],
            }
        )
    )
    return path
