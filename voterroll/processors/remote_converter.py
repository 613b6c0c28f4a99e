"""
Client for the whole-document conversion endpoint.

One multipart POST uploads the entire PDF; a 200 response carries the
voters as tabular text in the export layout.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import requests

from ..config import RemoteConfig, get_config
from ..exceptions import RemoteConversionError

logger = logging.getLogger("voterroll.remote")


class RemoteConverter:
    """Upload a PDF and return the converted tabular text."""

    def __init__(
        self,
        remote: Optional[RemoteConfig] = None,
        session: Optional[requests.Session] = None
    ):
        self.remote = remote or get_config().remote
        self.session = session or requests.Session()

    @property
    def is_configured(self) -> bool:
        return self.remote.is_configured

    def convert(self, pdf_path: Path) -> str:
        """
        Convert a PDF remotely.

        Returns:
            Tabular response body

        Raises:
            RemoteConversionError: Endpoint not configured, unreachable,
                or answered with a non-2xx status
        """
        if not self.is_configured:
            raise RemoteConversionError("REMOTE_CONVERTER_URL not set")

        pdf_path = Path(pdf_path)
        logger.info(f"Uploading {pdf_path.name} to conversion endpoint")

        try:
            with pdf_path.open("rb") as fh:
                response = self.session.post(
                    self.remote.url,
                    files={"file": (pdf_path.name, fh, "application/pdf")},
                    timeout=self.remote.timeout_sec,
                )
        except requests.RequestException as e:
            raise RemoteConversionError(f"Conversion endpoint unreachable: {e}") from e

        if not response.ok:
            raise RemoteConversionError(
                f"Conversion endpoint error ({response.status_code})",
                status_code=response.status_code,
                response_text=response.text or response.reason,
            )

        # Body is UTF-8 even when the server omits a charset
        return response.content.decode("utf-8", errors="replace")
