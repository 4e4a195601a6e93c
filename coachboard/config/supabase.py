# coachboard/config/supabase.py
"""
Shared supabase-py client for the record store.

The client is created on first use, not at import, so tests and tooling can
import the package without credentials. Missing or malformed credentials
leave the client as None; the record store reports that per read instead of
failing at startup.
"""
from __future__ import annotations

import logging
import re
from typing import Any, Dict, Optional
from urllib.parse import urlparse

from supabase import Client, create_client

from coachboard.config.settings import settings

logger = logging.getLogger(__name__)

_PROJECT_URL_RE = re.compile(r"^https://[A-Za-z0-9\-]+\.supabase\.co/?$")

# every deployment has program templates
HEALTH_TABLE = "budgets"


class SupabaseClient:
    """
    Lazily connected store client.

    `url` and `key` default to the SUPABASE_URL / SUPABASE_SERVICE_ROLE_KEY settings.
    """

    def __init__(self, url: Optional[str] = None, key: Optional[str] = None) -> None:
        self.url = (url if url is not None else settings.supabase_url or "").strip()
        self.key = key if key is not None else settings.supabase_service_role_key or ""
        self._client: Optional[Client] = None
        self._connect_error: Optional[str] = None
        self._attempted = False

    @property
    def configured(self) -> bool:
        return bool(self.url and self.key)

    def _connect(self) -> Optional[Client]:
        if not self.configured:
            self._connect_error = "missing_credentials"
            logger.warning("Supabase credentials missing; program reads will be unavailable")
            return None
        if not _PROJECT_URL_RE.match(self.url):
            self._connect_error = "invalid_url"
            logger.error("SUPABASE_URL %r is not https://<project>.supabase.co", self.url)
            return None
        try:
            client = create_client(self.url, self.key)
        except Exception as exc:
            self._connect_error = str(exc)
            logger.exception("Could not create Supabase client: %s", exc)
            return None
        logger.info("Connected Supabase client for host=%s", urlparse(self.url).netloc)
        return client

    @property
    def client(self) -> Optional[Client]:
        """The supabase-py client, or None when it cannot be created. Connects once."""
        if not self._attempted:
            self._attempted = True
            self._client = self._connect()
        return self._client

    def diagnostics(self) -> Dict[str, Any]:
        """Structural facts only; never the key."""
        return {
            "configured": self.configured,
            "client_present": self._client is not None,
            "host": urlparse(self.url).netloc or None,
            "connect_error": self._connect_error,
            "health_table": HEALTH_TABLE,
        }

    def health_check(self) -> bool:
        """
        Blocking one-row read of the program table. Callers run it in a
        thread with a timeout.
        """
        client = self.client
        if client is None:
            return False
        try:
            res = client.table(HEALTH_TABLE).select("id").limit(1).execute()
        except Exception as exc:
            logger.warning("Supabase health_check failed: %s", exc)
            return False
        status = getattr(res, "status_code", None)
        if isinstance(status, int) and status >= 400:
            logger.warning("Supabase health_check HTTP status: %s", status)
            return False
        return getattr(res, "data", None) is not None


supabase_client = SupabaseClient()
