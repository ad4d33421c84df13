"""Unit tests for the configuration loader."""
from __future__ import annotations

from pathlib import Path

import pytest

from staged_flush.config import DEFAULT_OPTIMAL_BATCH_SIZE_BYTES, ConfigLoader


def test_config_loader_parses_catalog(tmp_path: Path) -> None:
    config_payload = """
    flush:
      optimal_batch_size_bytes: 1048576
      compression: false
    warehouse:
      db_path: data/test.db
    catalog:
      streams:
        - name: orders
          dataset_id: ds1
          table: orders_raw
        - name: customers
          namespace: shop
          dataset_id: ds1
          table: customers_raw
          object_name: customers_v2
          fields:
            - name: id
              type: string
            - name: loaded_at
              type: timestamp
            - name: body
              type: json
    """
    config_file = tmp_path / "config.yaml"
    config_file.write_text(config_payload)

    loader = ConfigLoader(path=config_file)

    assert loader.model.flush.optimal_batch_size_bytes == 1048576
    assert loader.model.flush.compression is False
    orders = loader.get_stream("orders")
    assert [field.name for field in orders.fields] == ["_raw_id", "_extracted_at", "_data"]
    customers = loader.get_stream("customers", namespace="shop")
    assert customers.object_name == "customers_v2"
    assert [field.type for field in customers.fields] == ["STRING", "TIMESTAMP", "JSON"]
    with pytest.raises(KeyError):
        loader.get_stream("customers")


def test_config_loader_defaults(tmp_path: Path) -> None:
    config_file = tmp_path / "config.yaml"
    config_file.write_text("")

    loader = ConfigLoader(path=config_file)

    assert loader.model.flush.optimal_batch_size_bytes == DEFAULT_OPTIMAL_BATCH_SIZE_BYTES == 25 * 1024 * 1024
    assert loader.model.flush.compression is True
    assert loader.model.catalog.streams == []


def test_config_loader_rejects_bad_identifiers(tmp_path: Path) -> None:
    config_file = tmp_path / "config.yaml"
    config_file.write_text(
        """
        catalog:
          streams:
            - name: orders
              dataset_id: ds1
              table: "orders; DROP TABLE x"
        """
    )
    with pytest.raises(ValueError, match="Invalid configuration"):
        ConfigLoader(path=config_file)


def test_config_loader_missing_file(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        ConfigLoader(path=tmp_path / "missing.yaml")
