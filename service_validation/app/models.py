"""
Request and verdict models for the validation service.
"""

from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator

from shared.errors import ConfiguratorException, ValidationError


class UrlRequest(BaseModel):
    """Validate the JWKS served at a URL."""
    source: Literal["url"] = "url"
    url: str
    allow_private_addresses: Optional[bool] = None


class FileRequest(BaseModel):
    """Validate a JWKS file below the allowed base directory."""
    source: Literal["file"] = "file"
    path: str


class ContentRequest(BaseModel):
    """Validate inline JWKS content."""
    source: Literal["content"] = "content"
    content: str


ValidationRequest = Annotated[
    Union[UrlRequest, FileRequest, ContentRequest],
    Field(discriminator="source"),
]


class JwksValidationResult(BaseModel):
    """Uniform verdict returned by every validation path."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    valid: bool
    accessible: bool = False
    error: Optional[str] = None
    key_count: int = Field(default=0, alias="keyCount")
    algorithms: List[str] = Field(default_factory=list)
    error_code: Optional[str] = Field(default=None, exclude=True)

    @model_validator(mode="after")
    def _check_consistency(self) -> "JwksValidationResult":
        if self.valid and (self.error is not None or self.key_count < 1):
            raise ValueError("a valid result needs at least one key and no error")
        return self

    @classmethod
    def success(cls, key_count: int, algorithms: Optional[List[str]] = None) -> "JwksValidationResult":
        return cls(valid=True, accessible=True, key_count=key_count, algorithms=algorithms or [])

    @classmethod
    def failure(cls, exc: ConfiguratorException) -> "JwksValidationResult":
        return cls(
            valid=False,
            accessible=bool(exc.details.get("accessible", False)),
            error=exc.message,
            error_code=exc.code,
        )

    def to_payload(self) -> Dict[str, Any]:
        """JSON body sent to HTTP callers."""
        return self.model_dump(by_alias=True)


class PayloadTooLargeError(ValidationError):
    """Request body exceeds the configured limit."""

    def __init__(self, limit: int):
        super().__init__("Request body too large", details={"limit_bytes": limit})


class ComponentInfoResponse(BaseModel):
    """Kind and implementation class of a hosted component."""

    model_config = ConfigDict(populate_by_name=True)

    type: str
    component_class: str = Field(alias="componentClass")
