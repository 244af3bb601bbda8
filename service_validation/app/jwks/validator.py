"""
JWKS validation for the three supported sources.

Each ``validate_*`` method returns a successful verdict or raises one of the
shared error kinds. ``JwksValidator.validate`` is the single place where
those errors are folded into a failed ``JwksValidationResult``.
"""

import asyncio
import json
import os
from pathlib import Path
from typing import Any, List, Optional
from urllib.parse import SplitResult

import httpx
from jose.constants import ALGORITHMS

from shared.config import BaseConfig
from shared.errors import (
    ConfiguratorException,
    NetworkError,
    SecurityError,
    ValidationError,
)
from shared.logging import get_logger

from ..models import (
    ContentRequest,
    FileRequest,
    JwksValidationResult,
    UrlRequest,
    ValidationRequest,
)
from ..security.network import ensure_public_host, parse_jwks_url, resolve_host
from ..security.paths import canonicalize_within, ensure_real_path_within

MISSING_FILE_MESSAGE = "JWKS file does not exist at the specified path"


def supported_algorithms(keys: List[Any]) -> List[str]:
    """Distinct ``alg`` values that python-jose knows how to verify."""
    found = set()
    for key in keys:
        if isinstance(key, dict):
            alg = key.get("alg")
            if isinstance(alg, str) and alg in ALGORITHMS.SUPPORTED:
                found.add(alg)
    return sorted(found)


class JwksValidator:
    """Validates JSON Web Key Sets from URLs, files and inline content."""

    def __init__(
        self,
        base_dir: Path,
        *,
        connect_timeout: float = 5.0,
        total_timeout: float = 10.0,
        allow_private_addresses: bool = False,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        host_resolver=resolve_host,
    ):
        self.base_dir = Path(os.path.normpath(os.path.abspath(str(base_dir))))
        self.connect_timeout = connect_timeout
        self.total_timeout = total_timeout
        self.allow_private_addresses = allow_private_addresses
        self.transport = transport
        self.host_resolver = host_resolver
        self.logger = get_logger("validation.jwks")

    @classmethod
    def from_config(cls, config: BaseConfig, **kwargs) -> "JwksValidator":
        return cls(
            config.resolve_jwks_base_path(),
            connect_timeout=config.jwks_connect_timeout,
            total_timeout=config.jwks_total_timeout,
            allow_private_addresses=config.allow_private_addresses,
            **kwargs,
        )

    async def validate(self, request: ValidationRequest) -> JwksValidationResult:
        """Run the validation selected by ``request.source``.

        Only the four shared error kinds become failed verdicts; anything
        else propagates to the caller.
        """
        try:
            if isinstance(request, UrlRequest):
                return await self.validate_url(request.url, request.allow_private_addresses)
            if isinstance(request, FileRequest):
                return await self.validate_file(request.path)
            if isinstance(request, ContentRequest):
                return self.validate_content(request.content)
            raise ValidationError(f"Unsupported validation request: {type(request).__name__}")
        except SecurityError as exc:
            self.logger.warning(
                "security_violation",
                source=getattr(request, "source", None),
                message=exc.message,
                details=exc.details,
            )
            return JwksValidationResult.failure(exc)
        except ConfiguratorException as exc:
            self.logger.info(
                "JWKS validation failed",
                source=getattr(request, "source", None),
                code=exc.code,
                message=exc.message,
            )
            return JwksValidationResult.failure(exc)

    async def validate_url(
        self,
        url: str,
        allow_private_addresses: Optional[bool] = None,
    ) -> JwksValidationResult:
        """Fetch ``url`` and validate the body it serves.

        ``allow_private_addresses`` overrides the validator's default for
        this call. When internal addresses are refused, the host is resolved
        once and the connection goes to the checked address, with the
        original host sent as ``Host`` and as the TLS server name.
        """
        if not url or not url.strip():
            raise ValidationError("JWKS URL cannot be empty")
        url = url.strip()
        if allow_private_addresses is None:
            allow_private_addresses = self.allow_private_addresses

        parts, host, port = parse_jwks_url(url)

        try:
            body = await asyncio.wait_for(
                self._resolve_and_fetch(url, parts, host, port, allow_private_addresses),
                timeout=self.total_timeout,
            )
        except asyncio.TimeoutError as exc:
            raise NetworkError(
                f"Timed out fetching JWKS URL after {self.total_timeout:g}s",
                details={"url": url},
            ) from exc

        try:
            result = self.validate_content(body)
        except ValidationError as exc:
            exc.details["accessible"] = True
            raise

        self.logger.info("JWKS URL accessible and valid", url=url, key_count=result.key_count)
        return result

    async def _resolve_and_fetch(
        self,
        url: str,
        parts: SplitResult,
        host: str,
        port: int,
        allow_private_addresses: bool,
    ) -> str:
        if allow_private_addresses:
            return await self._fetch(url)

        address = await ensure_public_host(host, port, self.host_resolver)
        target = httpx.URL(url).copy_with(host=address)
        host_header = f"[{host}]" if ":" in host else host
        if parts.port is not None:
            host_header = f"{host_header}:{parts.port}"
        extensions = {"sni_hostname": host} if parts.scheme.lower() == "https" else None
        return await self._fetch(url, target=target, host_header=host_header, extensions=extensions)

    async def _fetch(
        self,
        url: str,
        *,
        target: Optional[httpx.URL] = None,
        host_header: Optional[str] = None,
        extensions: Optional[dict] = None,
    ) -> str:
        headers = {"Accept": "application/json"}
        if host_header:
            headers["Host"] = host_header
        timeout = httpx.Timeout(self.total_timeout, connect=self.connect_timeout)
        async with httpx.AsyncClient(timeout=timeout, transport=self.transport) as client:
            try:
                response = await client.get(
                    target if target is not None else url,
                    headers=headers,
                    extensions=extensions,
                )
            except httpx.TimeoutException as exc:
                raise NetworkError("Timed out fetching JWKS URL", details={"url": url}) from exc
            except httpx.HTTPError as exc:
                raise NetworkError(
                    f"Failed to fetch JWKS URL: {exc}",
                    details={"url": url},
                ) from exc

        if response.status_code != 200:
            raise NetworkError(
                f"JWKS URL returned status {response.status_code}",
                status_code=response.status_code,
                body=response.text,
                details={"url": url},
            )
        return response.text

    async def validate_file(self, path: str) -> JwksValidationResult:
        """Validate a JWKS file inside the allowed base directory."""
        if not path or not path.strip():
            raise ValidationError("JWKS file path cannot be empty")

        candidate = canonicalize_within(path.strip(), self.base_dir)
        content = await asyncio.to_thread(self._read_file, candidate)
        result = self.validate_content(content)
        self.logger.info("JWKS file valid", path=str(candidate), key_count=result.key_count)
        return result

    def _read_file(self, candidate: Path) -> str:
        real_path = ensure_real_path_within(candidate, self.base_dir)

        if not real_path.exists():
            raise ValidationError(MISSING_FILE_MESSAGE, details={"path": str(candidate)})
        if not real_path.is_file():
            raise ValidationError("JWKS path is not a regular file", details={"path": str(candidate)})
        if not os.access(real_path, os.R_OK):
            raise ValidationError("JWKS file is not readable", details={"path": str(candidate)})

        try:
            return real_path.read_text(encoding="utf-8")
        except UnicodeDecodeError as exc:
            raise ValidationError("JWKS file is not valid UTF-8 text") from exc
        except OSError as exc:
            raise ValidationError(f"JWKS file could not be read: {exc.strerror or exc}") from exc

    def validate_content(self, content: str) -> JwksValidationResult:
        """Check that ``content`` is a JWKS document with at least one key."""
        if content is None or not content.strip():
            raise ValidationError("JWKS content cannot be empty")

        try:
            document = json.loads(content)
        except (ValueError, RecursionError) as exc:
            raise ValidationError(f"Invalid JSON in JWKS content: {exc}") from exc

        if not isinstance(document, dict):
            raise ValidationError("JWKS content must be a JSON object")
        if "keys" not in document:
            raise ValidationError("JWKS content missing required 'keys' field")

        keys = document["keys"]
        if not isinstance(keys, list):
            raise ValidationError("JWKS 'keys' field must be an array")
        if not keys:
            raise ValidationError("JWKS content has empty 'keys' array")

        return JwksValidationResult.success(len(keys), supported_algorithms(keys))
