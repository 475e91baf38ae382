"""Etherscan-compatible explorer client for published contract source.

Uses the ``getsourcecode`` contract endpoint:
  GET {api_url}?module=contract&action=getsourcecode&address={address}&apikey={key}
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

import requests

from provcheck.engine.types import SourceBundle
from provcheck.errors import BundleDecodeFailure, FetchFailure
from provcheck.explorer.decode import DecodeError, decode_bundle

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_S = 30.0


@dataclass(frozen=True)
class RawSourcePayload:
    """Undecoded explorer record for one artifact."""

    artifact_id: str
    contract_name: str
    source_code: str


class ExplorerClient:
    """Fetch claimed source bundles from a block-explorer API."""

    def __init__(
        self,
        api_url: str,
        api_key: str = "",
        timeout: float = DEFAULT_TIMEOUT_S,
        session: requests.Session | None = None,
    ) -> None:
        self.api_url = api_url
        self.api_key = api_key
        self.timeout = timeout
        self.session = session or requests.Session()

    def _get(self, artifact_id: str) -> dict[str, Any]:
        params = {
            "module": "contract",
            "action": "getsourcecode",
            "address": artifact_id,
            "apikey": self.api_key,
        }
        try:
            resp = self.session.get(self.api_url, params=params, timeout=self.timeout)
            resp.raise_for_status()
            data = resp.json()
        except requests.Timeout as exc:
            raise FetchFailure(artifact_id, f"request timed out after {self.timeout}s") from exc
        except requests.RequestException as exc:
            raise FetchFailure(artifact_id, f"request failed: {exc}") from exc
        except ValueError as exc:
            raise FetchFailure(artifact_id, f"response is not JSON: {exc}") from exc

        if not isinstance(data, dict):
            raise FetchFailure(artifact_id, f"unexpected response type: {type(data).__name__}")
        return data

    def fetch_payload(self, artifact_id: str) -> RawSourcePayload:
        """Fetch the raw SourceCode record for artifact_id.

        Raises:
            FetchFailure: On transport, timeout, API error or missing verified source
        """
        logger.debug("Fetching source for %s from %s", artifact_id, self.api_url)
        data = self._get(artifact_id)

        if str(data.get("status")) != "1":
            raise FetchFailure(artifact_id, f"explorer API error: {data.get('result')}")

        result = data.get("result")
        if not isinstance(result, list) or not result or not isinstance(result[0], dict):
            raise FetchFailure(artifact_id, "explorer response has no result record")

        record = result[0]
        source_code = record.get("SourceCode") or ""
        if not isinstance(source_code, str) or not source_code.strip():
            raise FetchFailure(
                artifact_id,
                "no source code on record; the contract may not be verified on the explorer",
            )

        return RawSourcePayload(
            artifact_id=artifact_id,
            contract_name=str(record.get("ContractName") or "unknown"),
            source_code=source_code,
        )

    def fetch_bundle(self, artifact_id: str) -> SourceBundle:
        """Fetch and decode the claimed source bundle for artifact_id.

        Raises:
            FetchFailure: If the payload cannot be fetched
            BundleDecodeFailure: If the payload envelope is not recognized
        """
        payload = self.fetch_payload(artifact_id)
        decoded = decode_bundle(artifact_id, payload.contract_name, payload.source_code)
        if isinstance(decoded, DecodeError):
            raise BundleDecodeFailure(artifact_id, decoded.reason)

        logger.debug(
            "Decoded %d file(s) for %s (%s envelope)",
            len(decoded.bundle.files),
            artifact_id,
            decoded.envelope,
        )
        return decoded.bundle
