import logging
import os
import threading
from pathlib import Path
from typing import Optional

import httpx

from .config import HTTP_TIMEOUT, MAX_REDIRECTS, USER_AGENT
from .exceptions import DownloadCancelled, HttpError, NetworkError


def default_client() -> httpx.Client:
    return httpx.Client(
        follow_redirects=True,
        max_redirects=MAX_REDIRECTS,
        timeout=HTTP_TIMEOUT,
        headers={"User-Agent": USER_AGENT},
    )


class Fetcher:
    """
    Blocking GET requests that follow redirects.

    The client may be shared between threads, so one Fetcher can serve a
    download pool.
    """

    def __init__(self, client: Optional[httpx.Client] = None):
        self._client = client or default_client()
        self._cancelled = threading.Event()

    def cancel(self) -> None:
        """Make running and future fetch_to_file calls stop and drop their .part files."""
        self._cancelled.set()

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "Fetcher":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def fetch_bytes(self, url: str) -> bytes:
        logging.debug(f"GET {url}")
        try:
            response = self._client.get(url)
        except httpx.HTTPError as e:
            raise NetworkError(e, url) from e
        if not response.is_success:
            raise HttpError(response.status_code, url)
        return response.content

    def fetch_to_file(self, url: str, dest_path: str | os.PathLike) -> httpx.Headers:
        """
        Stream url into dest_path. The body goes to a .part file next to
        dest_path which is renamed into place once complete, and removed on
        any failure. Returns the response headers.
        """
        dest_path = Path(dest_path)
        dest_path.parent.mkdir(parents=True, exist_ok=True)
        tmp = dest_path.with_name(dest_path.name + ".part")
        logging.debug(f"GET {url} -> {dest_path}")

        try:
            with self._client.stream("GET", url) as response:
                if not response.is_success:
                    raise HttpError(response.status_code, url)
                with open(tmp, "wb") as f:
                    for chunk in response.iter_bytes(chunk_size=64 * 1024):
                        if self._cancelled.is_set():
                            raise DownloadCancelled(url)
                        f.write(chunk)
                headers = response.headers
            if self._cancelled.is_set():
                raise DownloadCancelled(url)
            os.replace(tmp, dest_path)
        except httpx.HTTPError as e:
            tmp.unlink(missing_ok=True)
            raise NetworkError(e, url) from e
        except BaseException:
            tmp.unlink(missing_ok=True)
            raise

        return headers
