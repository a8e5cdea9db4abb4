"""Pydantic schemas for API responses and tool inputs/outputs."""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


# ============================================================================
# RFC 9457 Problem Details
# ============================================================================


class ProblemDetail(BaseModel):
    """RFC 9457 Problem Details for HTTP API errors.

    Used for request-level failures (401 credentials, 400 routing, 500).
    Tool-level failures are NOT problems: they are embedded in the JSON-RPC
    result as ToolFailure.
    """

    type: str = Field(..., description="URI reference identifying the problem type")
    title: str = Field(..., description="Short, human-readable summary")
    status: int = Field(..., description="HTTP status code")
    detail: str | dict[str, Any] = Field(..., description="Human-readable explanation or structured error details")
    instance: Optional[str] = Field(None, description="URI reference identifying the specific occurrence")
    # Extension members shared with the tool failure envelope.
    error: bool = Field(True, description="Always true for error responses")
    message: Optional[str] = Field(None, description="Same text as detail when detail is a string")


# ============================================================================
# Tool failure envelope
# ============================================================================


class ToolFailure(BaseModel):
    """Structured failure returned from the tool dispatch boundary.

    Serialized as {"error": true, "message": ..., "code"?: ..., "details"?: ...}.
    """

    error: bool = True
    message: str
    code: Optional[int] = None
    details: Optional[Any] = None

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(exclude_none=True)


# ============================================================================
# deidentify / reidentify tools
# ============================================================================


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="forbid")


class DeidentifyInput(_CamelModel):
    """Input for the deidentify tool."""

    input_string: str = Field(..., alias="inputString", description="Text that may contain sensitive data")
    entities: Optional[list[str]] = Field(
        None,
        description="Entity types to detect (e.g. ssn, credit_card). Defaults to all supported types.",
    )


class DeidentifiedEntity(_CamelModel):
    """Entity replaced by a placeholder."""

    token: Optional[str] = None
    entity_type: Optional[str] = Field(None, alias="entityType")


class DeidentifyOutput(_CamelModel):
    """Output of the deidentify tool."""

    processed_text: str = Field(..., alias="processedText")
    word_count: int = Field(..., alias="wordCount")
    char_count: int = Field(..., alias="charCount")
    entities: list[DeidentifiedEntity] = Field(default_factory=list)


class ReidentifyInput(_CamelModel):
    """Input for the reidentify tool."""

    input_string: str = Field(..., alias="inputString", description="Text containing vault-token placeholders")


class ReidentifyOutput(_CamelModel):
    """Output of the reidentify tool."""

    processed_text: str = Field(..., alias="processedText")


# ============================================================================
# Service endpoints
# ============================================================================


class ServiceInfo(BaseModel):
    """Response for GET /."""

    service: str
    version: str
    status: str
    mcp_endpoint: str
