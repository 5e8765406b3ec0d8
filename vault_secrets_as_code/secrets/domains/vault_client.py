"""Vault client construction and error translation."""
import logging
from contextlib import contextmanager
from typing import Iterator, Optional

import hvac
import requests

from .errors import TransportError
from .models import VaultConfig

logger = logging.getLogger(__name__)


def normalize_mount(path: str) -> str:
    """Strip surrounding slashes so 'transit/' and 'transit' address the same mount."""
    return path.strip("/")


@contextmanager
def translate_errors(action: str) -> Iterator[None]:
    """Re-raise hvac and HTTP failures as TransportError, keeping the cause."""
    try:
        yield
    except (hvac.exceptions.VaultError, requests.exceptions.RequestException) as e:
        raise TransportError(f"{action} failed: {e}") from e


class VaultClientFactory:
    """Builds an authenticated hvac client for one Vault server."""

    def __init__(self, config: VaultConfig, label: str = "vault"):
        self.config = config
        self.label = label
        self._client: Optional[hvac.Client] = None

    @property
    def client(self) -> hvac.Client:
        """Lazy-initialize client."""
        if self._client is None:
            self._client = self._connect()
        return self._client

    def _connect(self) -> hvac.Client:
        config = self.config
        verify = config.ca_cert_file if config.ca_cert_file else True
        client = hvac.Client(
            url=config.endpoint,
            token=config.token,
            verify=verify,
            timeout=config.timeout,
        )
        logger.debug(f"Created {self.label} client for {config.endpoint}")

        cert = config.auth_login_cert
        if cert is not None:
            with translate_errors(f"{self.label} cert login at auth/{cert.mount}"):
                client.auth.cert.login(
                    name=cert.name,
                    cacert=False,
                    cert_pem=cert.cert_file,
                    key_pem=cert.key_file,
                    mount_point=normalize_mount(cert.mount),
                )
            logger.info(f"Logged in to {self.label} using cert role {cert.name!r}")

        return client
