"""Unit tests for the CV blob store"""

import io
from unittest.mock import MagicMock

import pytest
from botocore.exceptions import ClientError, EndpointConnectionError

from screener.app.core.exceptions import NotFoundException, StorageUnavailableException
from screener.app.services.storage_service import StorageService


def client_error(code: str) -> ClientError:
    return ClientError({"Error": {"Code": code, "Message": code}}, "GetObject")


@pytest.fixture
def s3_client():
    return MagicMock()


@pytest.fixture
def storage(s3_client):
    return StorageService(
        s3_client=s3_client,
        bucket_name="cvs-bucket",
        public_url_base="https://cdn.acme.test/cvs/",
    )


class TestStorageService:
    
    @pytest.mark.asyncio
    async def test_download(self, storage, s3_client):
        s3_client.get_object.return_value = {"Body": io.BytesIO(b"%PDF-1.4 data")}
        
        content = await storage.download("cvs/cand-1/cv.pdf")
        
        assert content == b"%PDF-1.4 data"
        s3_client.get_object.assert_called_once_with(Bucket="cvs-bucket", Key="cvs/cand-1/cv.pdf")
    
    @pytest.mark.asyncio
    @pytest.mark.parametrize("code", ["NoSuchKey", "404"])
    async def test_download_missing_object(self, storage, s3_client, code):
        s3_client.get_object.side_effect = client_error(code)
        
        with pytest.raises(NotFoundException):
            await storage.download("cvs/missing.pdf")
    
    @pytest.mark.asyncio
    async def test_download_access_denied(self, storage, s3_client):
        s3_client.get_object.side_effect = client_error("AccessDenied")
        
        with pytest.raises(StorageUnavailableException):
            await storage.download("cvs/cand-1/cv.pdf")
    
    @pytest.mark.asyncio
    async def test_download_connection_failure(self, storage, s3_client):
        s3_client.get_object.side_effect = EndpointConnectionError(endpoint_url="https://s3.test")
        
        with pytest.raises(StorageUnavailableException):
            await storage.download("cvs/cand-1/cv.pdf")
    
    @pytest.mark.asyncio
    async def test_create_signed_upload_url(self, storage, s3_client):
        s3_client.generate_presigned_url.return_value = "https://s3.test/signed"
        
        upload = await storage.create_signed_upload_url("cvs/cand-2/cv.docx", ttl=120)
        
        assert upload.upload_url == "https://s3.test/signed"
        assert upload.path == "cvs/cand-2/cv.docx"
        assert upload.public_url == "https://cdn.acme.test/cvs/cvs/cand-2/cv.docx"
        assert upload.expires_in == 120
        s3_client.generate_presigned_url.assert_called_once_with(
            "put_object",
            Params={"Bucket": "cvs-bucket", "Key": "cvs/cand-2/cv.docx"},
            ExpiresIn=120,
        )
    
    @pytest.mark.asyncio
    async def test_create_signed_upload_url_failure(self, storage, s3_client):
        s3_client.generate_presigned_url.side_effect = client_error("AccessDenied")
        
        with pytest.raises(StorageUnavailableException):
            await storage.create_signed_upload_url("cvs/x.pdf")
    
    @pytest.mark.parametrize(
        "location, expected",
        [
            ("cvs/cand-1/cv.pdf", "cvs/cand-1/cv.pdf"),
            ("https://cdn.acme.test/cvs/cand-1/my%20cv.pdf", "cand-1/my cv.pdf"),
            ("https://s3.us-east-1.amazonaws.com/cvs-bucket/cand-1/cv.pdf", "cand-1/cv.pdf"),
            ("https://cvs-bucket.s3.amazonaws.com/cand-1/cv.pdf", "cand-1/cv.pdf"),
        ],
    )
    def test_ensure_path_from_url(self, storage, location, expected):
        assert storage.ensure_path_from_url(location) == expected
    
    def test_public_url_round_trip(self, storage):
        assert storage.ensure_path_from_url(storage.public_url("cand-3/cv.pdf")) == "cand-3/cv.pdf"
