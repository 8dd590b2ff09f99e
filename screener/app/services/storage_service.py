"""S3 blob store for CV files"""

import asyncio
from typing import Optional
from urllib.parse import unquote, urlparse

import boto3
from botocore.exceptions import BotoCoreError, ClientError
from pydantic import BaseModel

from screener.app.core.config import settings
from screener.app.core.logging import get_logger
from screener.app.core.exceptions import NotFoundException, StorageUnavailableException

logger = get_logger(__name__)


class SignedUpload(BaseModel):
    """Presigned upload target handed to the uploader"""
    upload_url: str
    path: str
    public_url: str
    expires_in: int


class StorageService:
    """Service for CV blob operations"""
    
    def __init__(self, s3_client=None, bucket_name: str = None, public_url_base: str = None):
        """Initialize S3 client"""
        self.s3_client = s3_client or boto3.client(
            's3',
            aws_access_key_id=settings.AWS_ACCESS_KEY_ID,
            aws_secret_access_key=settings.AWS_SECRET_ACCESS_KEY,
            region_name=settings.AWS_REGION,
            endpoint_url=settings.S3_ENDPOINT_URL
        )
        self.bucket_name = bucket_name or settings.S3_BUCKET_CVS
        self.public_url_base = (
            public_url_base
            or settings.S3_PUBLIC_URL_BASE
            or f"https://{self.bucket_name}.s3.{settings.AWS_REGION}.amazonaws.com"
        ).rstrip("/")
    
    def public_url(self, path: str) -> str:
        """Public URL for a storage key"""
        return f"{self.public_url_base}/{path.lstrip('/')}"
    
    def ensure_path_from_url(self, path_or_url: str) -> str:
        """
        Normalize a CV location to a storage key
        
        Accepts either a bare key or a public URL produced by :meth:`public_url`.
        """
        if path_or_url.startswith(self.public_url_base + "/"):
            return unquote(path_or_url[len(self.public_url_base) + 1:])
        if path_or_url.startswith(("http://", "https://")):
            parsed = urlparse(path_or_url)
            path = unquote(parsed.path.lstrip("/"))
            # path-style URLs carry the bucket as the first segment
            if path.startswith(f"{self.bucket_name}/"):
                path = path[len(self.bucket_name) + 1:]
            return path
        return path_or_url
    
    async def download(self, path: str) -> bytes:
        """
        Download a CV from S3
        
        Args:
            path: S3 object key
        
        Returns:
            File content as bytes
        
        Raises:
            NotFoundException: If the object does not exist
            StorageUnavailableException: If the download fails
        """
        try:
            response = await asyncio.to_thread(
                self.s3_client.get_object,
                Bucket=self.bucket_name,
                Key=path
            )
            content = await asyncio.to_thread(response['Body'].read)
            logger.info(f"Downloaded CV from S3: {path} ({len(content)} bytes)")
            return content
        
        except ClientError as e:
            if e.response.get('Error', {}).get('Code') in ('NoSuchKey', '404'):
                logger.error(f"CV not found in S3: {path}")
                raise NotFoundException(f"CV not found: {path}") from e
            logger.error(f"S3 download failed: {str(e)}")
            raise StorageUnavailableException(f"Failed to download CV: {str(e)}") from e
        except BotoCoreError as e:
            logger.error(f"S3 download failed: {str(e)}")
            raise StorageUnavailableException(f"Failed to download CV: {str(e)}") from e
    
    async def create_signed_upload_url(self, path: str, ttl: Optional[int] = None) -> SignedUpload:
        """
        Generate a presigned PUT URL for uploading a CV
        
        Args:
            path: S3 object key the upload will be written to
            ttl: URL expiration time in seconds
        
        Returns:
            SignedUpload with the upload URL and the object's public URL
        
        Raises:
            StorageUnavailableException: If URL generation fails
        """
        expires_in = ttl or settings.SIGNED_URL_EXPIRES_IN_SECONDS
        try:
            url = await asyncio.to_thread(
                self.s3_client.generate_presigned_url,
                'put_object',
                Params={'Bucket': self.bucket_name, 'Key': path},
                ExpiresIn=expires_in
            )
        except (ClientError, BotoCoreError) as e:
            logger.error(f"Presigned upload URL generation failed: {str(e)}")
            raise StorageUnavailableException(f"Failed to create signed upload URL: {str(e)}") from e
        
        logger.info(f"Generated presigned upload URL for: {path}")
        return SignedUpload(
            upload_url=url,
            path=path,
            public_url=self.public_url(path),
            expires_in=expires_in
        )
