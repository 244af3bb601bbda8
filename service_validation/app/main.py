"""
JWKS validation service.

Serves validate-jwks-url, validate-jwks-file and validate-jwks-content under
the configured API prefix, answering every POST with a verdict body, plus
component-info for telling processors from controller services.
"""

import inspect
import json
from typing import Any, Callable, Dict, Optional

from fastapi import Query, Request
from fastapi.responses import JSONResponse

from component_client.http import COMPONENT_ID_HEADER
from shared.base_service import BaseService
from shared.config import ServiceConfig
from shared.errors import ComponentNotFoundError, NetworkError, ValidationError
from shared.logging import set_component_context

from .host.component_reader import HostComponentReader
from .jwks.validator import JwksValidator
from .models import (
    ContentRequest,
    FileRequest,
    JwksValidationResult,
    PayloadTooLargeError,
    UrlRequest,
)

# Names the processor whose issuer configuration governs private JWKS hosts.
PROCESSOR_ID_HEADER = "X-Processor-Id"


class ValidationService(BaseService):
    """Validation service implementation."""

    def __init__(
        self,
        config: Optional[ServiceConfig] = None,
        validator: Optional[JwksValidator] = None,
        component_reader: Optional[HostComponentReader] = None,
    ):
        super().__init__("validation", 8020, config)
        self.validator = validator or JwksValidator.from_config(self.config)
        self.component_reader = component_reader or HostComponentReader.from_config(self.config)
        self.logger.info(
            "Validation service configured",
            jwks_base_path=str(self.validator.base_dir),
            allow_private_addresses=self.validator.allow_private_addresses,
        )
        self._setup_validation_routes()

    def _setup_validation_routes(self):
        """Set up JWKS validation and component lookup routes."""
        prefix = self.config.api_prefix.rstrip("/")

        @self.app.post(f"{prefix}/validate-jwks-url")
        async def validate_jwks_url(request: Request):
            """Validate the JWKS served at a URL."""
            async def build(value: str) -> UrlRequest:
                allow = await self._allow_private_addresses(request)
                return UrlRequest(url=value, allow_private_addresses=allow)

            return await self._handle_validation(request, "url", ("jwksUrl",), build)

        @self.app.post(f"{prefix}/validate-jwks-file")
        async def validate_jwks_file(request: Request):
            """Validate a JWKS file below the allowed base directory."""
            return await self._handle_validation(
                request, "file", ("jwksFilePath", "filePath"), lambda value: FileRequest(path=value)
            )

        @self.app.post(f"{prefix}/validate-jwks-content")
        async def validate_jwks_content(request: Request):
            """Validate inline JWKS content."""
            return await self._handle_validation(
                request, "content", ("jwksContent",), lambda value: ContentRequest(content=value)
            )

        @self.app.get(f"{prefix}/component-info")
        async def component_info(request: Request, component_id: Optional[str] = Query(default=None, alias="id")):
            """Report whether an id names a processor or a controller service."""
            component_id = (component_id or request.headers.get(COMPONENT_ID_HEADER) or "").strip()
            if not component_id:
                return JSONResponse(status_code=400, content={"error": "Missing component ID"})

            set_component_context(component_id)
            try:
                info = await self.component_reader.get_component_info(component_id, headers=request.headers)
            except ComponentNotFoundError as exc:
                return JSONResponse(status_code=404, content={"error": exc.message})
            except ValidationError as exc:
                return JSONResponse(status_code=400, content={"error": exc.message})
            except NetworkError as exc:
                self.metrics.record_error(exc.code)
                return JSONResponse(status_code=502, content={"error": exc.message})

            return info.model_dump(by_alias=True)

        # Registered last so the concrete routes above win.
        @self.app.post(prefix + "/{endpoint:path}")
        async def unknown_endpoint(endpoint: str):
            """Any other POST under the prefix."""
            result = JwksValidationResult(valid=False, error="Endpoint not found", error_code="NOT_FOUND")
            return JSONResponse(status_code=404, content=result.to_payload())

    async def _allow_private_addresses(self, request: Request) -> Optional[bool]:
        """Per-processor setting when the caller names a processor, else ``None`` for the service default."""
        processor_id = (request.headers.get(PROCESSOR_ID_HEADER) or "").strip()
        if not processor_id:
            return None
        return await self.component_reader.allows_private_addresses(processor_id, headers=request.headers)

    async def _handle_validation(
        self,
        request: Request,
        source: str,
        field_names: tuple,
        build: Callable[[str], Any],
    ) -> JSONResponse:
        try:
            value = await self._read_field(request, field_names)
        except PayloadTooLargeError as exc:
            return self._verdict(source, JwksValidationResult.failure(exc), status_code=413)
        except ValidationError as exc:
            return self._verdict(source, JwksValidationResult.failure(exc))

        with self.metrics.time_operation("jwks_validation_duration_seconds", source=source):
            validation_request = build(value)
            if inspect.isawaitable(validation_request):
                validation_request = await validation_request
            result = await self.validator.validate(validation_request)
        return self._verdict(source, result)

    def _verdict(
        self,
        source: str,
        result: JwksValidationResult,
        status_code: Optional[int] = None,
    ) -> JSONResponse:
        self.metrics.record_validation(source, "valid" if result.valid else result.error_code)
        if status_code is None:
            status_code = 200 if result.valid else 400
        return JSONResponse(status_code=status_code, content=result.to_payload())

    async def _read_field(self, request: Request, field_names: tuple) -> str:
        """Return the first non-blank string among ``field_names`` in the JSON body."""
        limit = self.config.max_request_body_bytes
        declared = request.headers.get("content-length", "")
        if declared.isdigit() and int(declared) > limit:
            raise PayloadTooLargeError(limit)

        body = bytearray()
        async for chunk in request.stream():
            body.extend(chunk)
            if len(body) > limit:
                raise PayloadTooLargeError(limit)

        try:
            payload = json.loads(bytes(body))
        except (ValueError, RecursionError) as exc:
            raise ValidationError("Invalid JSON request body") from exc
        if not isinstance(payload, dict):
            raise ValidationError("Request body must be a JSON object")

        for name in field_names:
            value = payload.get(name)
            if isinstance(value, str) and value.strip():
                return value
        raise ValidationError(f"Missing required field: {field_names[0]}")

    async def _check_dependencies(self) -> Dict[str, str]:
        """Check validation dependencies."""
        base_dir = self.validator.base_dir
        return {"jwks_base_path": "ok" if base_dir.is_dir() else "missing"}


def create_app(config: Optional[ServiceConfig] = None, **kwargs):
    """Create FastAPI application."""
    service = ValidationService(config, **kwargs)
    return service.app


if __name__ == "__main__":
    service = ValidationService()
    service.run()
