"""
Client configuration.

Values come from explicit overrides first, then the environment:

    - VDR_PROXY_URL:      gateway URL for HttpxProxyTransport
    - VDR_GENESIS_PATH:   newline-delimited genesis transactions file
    - VDR_TIMEOUT:        per-request HTTP timeout in seconds
    - VDR_SUBMITTER_DID:  submitter for anonymous reads
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping

from vdr_protocol.constants import DEFAULT_REQUEST_DID
from vdr_protocol.errors import ConfigError

DEFAULT_PROXY_URL = "http://127.0.0.1:3030"
DEFAULT_GENESIS_PATH = "pool_transactions_genesis"
DEFAULT_TIMEOUT = 30.0


@dataclass(frozen=True)
class ClientConfig:
    proxy_url: str = DEFAULT_PROXY_URL
    genesis_path: str = DEFAULT_GENESIS_PATH
    timeout: float = DEFAULT_TIMEOUT
    default_submitter: str = DEFAULT_REQUEST_DID

    @classmethod
    def from_env(
        cls,
        overrides: Mapping[str, Any] | None = None,
        environ: Mapping[str, str] | None = None,
    ) -> "ClientConfig":
        """Build a config from overrides, falling back to the environment.

        Args:
            overrides: Keys matching the field names take precedence.
            environ: Environment mapping. Defaults to ``os.environ``.

        Raises:
            ConfigError: If the timeout (override or VDR_TIMEOUT) is not a
                positive number.
        """
        ctx = dict(overrides or {})
        env = os.environ if environ is None else environ

        raw_timeout = ctx.get("timeout")
        if raw_timeout is None:
            raw_timeout = env.get("VDR_TIMEOUT", DEFAULT_TIMEOUT)
        try:
            timeout = float(raw_timeout)
        except (TypeError, ValueError) as exc:
            raise ConfigError(f"timeout must be a number, got: {raw_timeout!r}") from exc
        if timeout <= 0:
            raise ConfigError(f"timeout must be positive, got: {timeout}")

        return cls(
            proxy_url=ctx.get("proxy_url") or env.get("VDR_PROXY_URL", DEFAULT_PROXY_URL),
            genesis_path=ctx.get("genesis_path")
            or env.get("VDR_GENESIS_PATH", DEFAULT_GENESIS_PATH),
            timeout=timeout,
            default_submitter=ctx.get("default_submitter")
            or env.get("VDR_SUBMITTER_DID", DEFAULT_REQUEST_DID),
        )

    def read_genesis(self) -> bytes:
        """Genesis transactions, one JSON object per line, blank lines dropped.

        The lines are not parsed; the transport owns their meaning.
        """
        text = Path(self.genesis_path).read_bytes()
        lines = [line for line in text.splitlines() if line.strip()]
        return b"\n".join(lines) + b"\n"
