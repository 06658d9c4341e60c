"""Schemas for the template catalog."""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class TemplateResponse(BaseModel):
    id: str
    name: str
    description: str
    icon: str
    category: str
    prompt_instructions: str
    output_structure: List[str] = Field(default_factory=list)
    contextual_prompts: Dict[str, bool] = Field(default_factory=dict)
    customizations: Dict[str, List[str]] = Field(default_factory=dict)
    business_context: Dict[str, Any] = Field(default_factory=dict)
    builtin: bool


class TemplateCreateRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: str = ""
    category: Optional[str] = Field(None, max_length=100)
    prompt_instructions: str = Field(..., min_length=1)
    output_structure: List[str] = Field(default_factory=list)
    contextual_prompts: Dict[str, bool] = Field(default_factory=dict)
    customizations: Dict[str, List[str]] = Field(default_factory=dict)


class TemplateUpdateRequest(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    category: Optional[str] = Field(None, max_length=100)
    prompt_instructions: Optional[str] = Field(None, min_length=1)
    output_structure: Optional[List[str]] = None
    contextual_prompts: Optional[Dict[str, bool]] = None
    customizations: Optional[Dict[str, List[str]]] = None
