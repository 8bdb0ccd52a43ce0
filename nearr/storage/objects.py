"""Object storage for exchange artifacts."""

from typing import Iterator, Optional

import httpx
from supabase import Client

from ..errors import NotFound, UpstreamError
from ..logging_config import get_logger

logger = get_logger(__name__)

VCARD_CONTENT_TYPE = "text/vcard"


class ObjectStore:
    """Put, sign, stream and remove objects in one storage bucket."""

    def __init__(
        self,
        client: Client,
        bucket: str = "vcf_files",
        signed_url_ttl: int = 60,
        http_timeout: float = 10.0,
    ) -> None:
        """
        Initialize object store.

        Args:
            client: Service-role Supabase client
            bucket: Bucket name
            signed_url_ttl: Lifetime of signed URLs in seconds
            http_timeout: Timeout for fetching signed URLs
        """
        self.client = client
        self.bucket = bucket
        self.signed_url_ttl = signed_url_ttl
        self.http_timeout = http_timeout

    @property
    def _bucket(self):
        return self.client.storage.from_(self.bucket)

    def put(self, path: str, content: str, content_type: str = VCARD_CONTENT_TYPE) -> None:
        """Upload (or overwrite) an object."""
        try:
            self._bucket.upload(
                path,
                content.encode("utf-8"),
                file_options={"content-type": content_type, "upsert": "true"},
            )
        except Exception as e:
            raise UpstreamError(f"Upload of {path} failed: {e}", path=path) from e
        logger.info(f"Uploaded {path} to bucket {self.bucket}")

    def remove(self, path: str) -> None:
        """Delete an object."""
        try:
            self._bucket.remove([path])
        except Exception as e:
            raise UpstreamError(f"Removal of {path} failed: {e}", path=path) from e
        logger.info(f"Removed {path} from bucket {self.bucket}")

    def signed_url(self, path: str, expires_in: Optional[int] = None) -> str:
        """Create a time-limited download URL."""
        try:
            data = self._bucket.create_signed_url(path, expires_in or self.signed_url_ttl)
        except Exception as e:
            raise UpstreamError(f"Signing {path} failed: {e}", path=path) from e

        url = (data or {}).get("signedURL") or (data or {}).get("signedUrl")
        if not url:
            raise UpstreamError(f"Storage returned no signed URL for {path}", path=path)
        return url

    def stream(self, path: str, chunk_size: int = 64 * 1024) -> Iterator[bytes]:
        """Yield the object's bytes through a signed URL."""
        url = self.signed_url(path)
        with httpx.Client(timeout=self.http_timeout) as client:
            with client.stream("GET", url) as response:
                if response.status_code == 404:
                    raise NotFound(f"File {path} not found in storage.")
                try:
                    response.raise_for_status()
                except httpx.HTTPError as e:
                    raise UpstreamError(f"Fetching {path} failed: {e}", path=path) from e
                yield from response.iter_bytes(chunk_size)
