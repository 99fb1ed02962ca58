"""Structured-output schemas for the LLM stages.

These are sent to the model as response schemas and used to validate what
comes back.
"""

from pydantic import BaseModel, Field


# =============================================================================
# Product analysis
# =============================================================================


class ProductAppearance(BaseModel):
    shape: str = Field(..., description="Overall shape of the product")
    color: list[str] = Field(..., description="Main colors")
    material: str = Field(..., description="Visible materials")
    size: str = Field(..., description="Approximate size")
    design_features: list[str] = Field(..., description="Distinctive design details")


class ProductFunctionality(BaseModel):
    main_function: str
    usage_method: str
    unique_selling_points: list[str]


class TargetAudience(BaseModel):
    age_range: str
    gender: str
    occupation: str
    lifestyle: str


class UsageScenario(BaseModel):
    primary_location: str
    usage_timing: str
    environment: str


class EmotionalPositioning(BaseModel):
    pain_points: list[str]
    benefits: list[str]
    emotional_appeal: str


class ProductAnalysis(BaseModel):
    """What the model sees in the uploaded product photos."""

    name: str = Field(..., min_length=1)
    description: str
    category: str
    appearance: ProductAppearance
    functionality: ProductFunctionality
    target_audience: TargetAudience
    usage_scenario: UsageScenario
    emotional_positioning: EmotionalPositioning


# =============================================================================
# Scripts
# =============================================================================


class ScriptCharacter(BaseModel):
    name: str
    age: str
    occupation: str
    personality: str
    emotional_arc: str


class UGCScript(BaseModel):
    title: str = Field(..., min_length=1)
    hook: str
    storyline: str
    character: ScriptCharacter
    key_scenes: list[str] = Field(..., min_length=1)


class MultipleScripts(BaseModel):
    scripts: list[UGCScript]


# =============================================================================
# Shot breakdown
# =============================================================================


class Shot(BaseModel):
    shot_number: int = Field(..., ge=1)
    title: str
    scene_reference: str
    duration: int = Field(..., ge=2, le=6, description="Shot length in seconds")
    shot_type: str
    camera_angle: str
    camera_movement: str
    time_description: str
    location_description: str
    action: str
    result: str
    atmosphere: str
    product_appearance: str
    lighting: str
    mood: str
    requires_product_in_frame: bool


class MultipleShots(BaseModel):
    shots: list[Shot] = Field(..., min_length=1)
