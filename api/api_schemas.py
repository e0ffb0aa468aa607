from pydantic import BaseModel, Field
from typing import Any, Dict, List, Optional


class RunRequest(BaseModel):
    """Request body for running a workflow"""
    inputData: Dict[str, Any] = Field(..., description="Raw input for the workflow's first step")


class RunResponse(BaseModel):
    """Successful workflow run"""
    status: str = Field(default="success", description="Always 'success'")
    run_id: str = Field(..., description="Run identifier")
    result: Dict[str, Any] = Field(..., description="Output of the last step")
    steps: List[Dict[str, Any]] = Field(default_factory=list, description="Completed steps with durations")


class ErrorResponse(BaseModel):
    """Structured failure of a workflow run"""
    status: str = Field(default="failed", description="Always 'failed'")
    run_id: Optional[str] = Field(None, description="Run identifier")
    kind: str = Field(..., description="Error category, e.g. ContractViolation")
    step: Optional[str] = Field(None, description="Step that failed")
    message: str = Field(..., description="Human readable description")


class StreamEvent(BaseModel):
    """Payload of one server-sent event"""
    type: str = Field(..., description="Type: fragment, result, error")
    content: str = Field(default="", description="Fragment text")
    metadata: Optional[Dict[str, Any]] = Field(None, description="Result or error details")
