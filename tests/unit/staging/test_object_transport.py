from __future__ import annotations

from unittest.mock import MagicMock

import pytest
from botocore.exceptions import ClientError

from staged_flush.buffer import SerializedBatchBuffer
from staged_flush.registry import FieldSpec, TableId
from staged_flush.run_context import RunContext
from staged_flush.staging.object_store import (
    ObjectStorageStagingTransport,
    S3Config,
    _object_key,
    _stage_prefix,
)
from staged_flush.warehouse import SQLiteWarehouse

SCHEMA = (
    FieldSpec("_raw_id", "STRING"),
    FieldSpec("_extracted_at", "TIMESTAMP"),
    FieldSpec("_data", "JSON"),
)
TABLE = TableId("ds1", "orders_raw")


def _make_transport(tmp_path, client):
    warehouse = SQLiteWarehouse(db_path=str(tmp_path / "warehouse.db"))
    transport = ObjectStorageStagingTransport(
        S3Config(bucket="bucket", prefix="/staging/"),
        warehouse,
        run_context=RunContext("run-1"),
        client=client,
    )
    return transport, warehouse


def _sealed(tmp_path, payloads):
    buffer = SerializedBatchBuffer(directory=tmp_path)
    for index, payload in enumerate(payloads):
        buffer.append(payload, index)
    buffer.seal()
    return buffer


def test_stage_prefix_mapping():
    prefix = _stage_prefix("root/", "ds1", "orders")
    assert prefix == "root/ds1/orders"
    assert _object_key(prefix, "run_id=run", "x.csv.gz") == "root/ds1/orders/run_id=run/x.csv.gz"


def test_upload_puts_file_under_run_partition(tmp_path):
    client = MagicMock()
    transport, _ = _make_transport(tmp_path, client)
    buffer = _sealed(tmp_path, [b'{"a":1}'])

    handle = transport.upload("ds1", "orders", buffer.batch)

    filename, bucket, key = client.upload_file.call_args[0]
    assert filename == str(buffer.path)
    assert bucket == "bucket"
    assert key.startswith("staging/ds1/orders/run_id=run-1/")
    assert key.endswith(".csv.gz")
    assert handle.key == key
    assert handle.location == f"s3://bucket/{key}"
    assert handle.compressed is True
    buffer.release()


def test_commit_streams_object_into_warehouse(tmp_path):
    buffer = _sealed(tmp_path, [b'{"a":1}', b'{"a":2}'])
    staged_bytes = buffer.path.read_bytes()
    client = MagicMock()
    client.download_fileobj.side_effect = lambda bucket, key, fileobj: fileobj.write(staged_bytes)
    transport, warehouse = _make_transport(tmp_path, client)

    handle = transport.upload("ds1", "orders", buffer.batch)
    transport.commit("ds1", "orders", TABLE, SCHEMA, handle)

    assert client.download_fileobj.call_args[0][:2] == ("bucket", handle.key)
    assert [row[2] for row in warehouse.fetch_rows(TABLE)] == ['{"a":1}', '{"a":2}']
    buffer.release()


def test_commit_propagates_client_errors(tmp_path):
    buffer = _sealed(tmp_path, [b"{}"])
    client = MagicMock()
    client.download_fileobj.side_effect = ClientError(
        {"Error": {"Code": "403", "Message": "Forbidden"}}, "GetObject"
    )
    transport, warehouse = _make_transport(tmp_path, client)
    handle = transport.upload("ds1", "orders", buffer.batch)

    with pytest.raises(ClientError):
        transport.commit("ds1", "orders", TABLE, SCHEMA, handle)
    assert warehouse.count_rows(TABLE) == 0
    buffer.release()


def test_clean_up_stage_deletes_listed_objects(tmp_path):
    client = MagicMock()
    client.get_paginator.return_value.paginate.return_value = [
        {"Contents": [{"Key": "staging/ds1/orders/run_id=run-1/a.csv.gz"}]},
        {"Contents": []},
    ]
    transport, _ = _make_transport(tmp_path, client)

    transport.clean_up_stage("ds1", "orders")

    client.get_paginator.return_value.paginate.assert_called_once_with(
        Bucket="bucket", Prefix="staging/ds1/orders/"
    )
    client.delete_objects.assert_called_once_with(
        Bucket="bucket",
        Delete={"Objects": [{"Key": "staging/ds1/orders/run_id=run-1/a.csv.gz"}]},
    )
