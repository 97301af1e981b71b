# tests/unit/storage/test_store_factory.py — v1
"""Tests for storage/store_factory.py."""

from __future__ import annotations

from unittest.mock import patch

from syndication.config.settings import Settings
from syndication.storage.local_store import LocalObjectStore
from syndication.storage.s3_store import S3ObjectStore
from syndication.storage.store_factory import create_object_store


class TestCreateObjectStore:
    def test_local(self, tmp_path):
        settings = Settings(_env_file=None, object_store_backend="local", local_store_root=tmp_path)
        assert isinstance(create_object_store(settings), LocalObjectStore)

    def test_s3_passes_region_and_endpoint(self):
        settings = Settings(
            _env_file=None,
            object_store_backend="s3",
            aws_region="eu-west-1",
            s3_endpoint_url="http://minio:9000",
        )
        with patch("boto3.client") as mock_client:
            store = create_object_store(settings)
        assert isinstance(store, S3ObjectStore)
        mock_client.assert_called_once_with(
            "s3", region_name="eu-west-1", endpoint_url="http://minio:9000"
        )
