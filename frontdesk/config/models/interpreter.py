"""Fallback interpreter configuration models."""

from pydantic import BaseModel, Field


class InterpreterConfig(BaseModel):
    """Configuration for the LLM-backed fallback interpreter."""

    provider: str = Field(default="mock", description="LLM provider name")
    model: str = Field(default="mock-model", description="Model identifier")
    timeout_ms: int = Field(
        default=2500,
        gt=0,
        description="Hard timeout for the interpreter call (milliseconds)",
    )
    max_tokens: int = Field(
        default=150,
        gt=0,
        description="Maximum tokens in the generated reply",
    )
    temperature: float = Field(
        default=0.3,
        ge=0.0,
        le=2.0,
        description="Sampling temperature",
    )
