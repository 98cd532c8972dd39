from unittest.mock import MagicMock, patch

import pytest
from botocore.exceptions import ClientError

from app.services import storage_service
from pdf_core.errors import StorageError


def test_download_reads_object_body():
    client = MagicMock()
    client.get_object.return_value = {"Body": MagicMock(read=MagicMock(return_value=b"%PDF-1.7"))}

    with patch.object(storage_service, "s3_client", return_value=client):
        assert storage_service.download("uploads/job-1/a.pdf") == b"%PDF-1.7"

    assert client.get_object.call_args.kwargs["Key"] == "uploads/job-1/a.pdf"


def test_download_missing_object_raises_storage_error():
    client = MagicMock()
    client.get_object.side_effect = ClientError({"Error": {"Code": "NoSuchKey", "Message": "gone"}}, "GetObject")

    with patch.object(storage_service, "s3_client", return_value=client):
        with pytest.raises(StorageError, match="uploads/job-1/a.pdf"):
            storage_service.download("uploads/job-1/a.pdf")


def test_ensure_bucket_creates_when_missing():
    client = MagicMock()
    client.head_bucket.side_effect = ClientError({"Error": {"Code": "404", "Message": "Not Found"}}, "HeadBucket")

    with patch.object(storage_service, "s3_client", return_value=client):
        storage_service.ensure_bucket()

    client.create_bucket.assert_called_once()
