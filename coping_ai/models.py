from __future__ import annotations
from typing import List, Optional, Literal, Dict, Union
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

ConsentLevel = Literal["essential", "enhanced", "complete"]
ExerciseCategory = Literal["Mindfulness", "Cognitive", "Somatic", "Behavioral", "Grounding"]
DiagnosisStatus = Literal["healthy", "warning", "error"]


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class UserProfile(CamelModel):
    age: Optional[int] = Field(None, ge=0, le=130)
    location: Optional[str] = Field(None, description="Free text location or time zone")
    sleep_hours: Optional[float] = Field(None, ge=0, le=24, description="Average hours of sleep per night")
    caffeine_intake: Optional[Literal["none", "low", "moderate", "high"]] = None
    work_environment: Optional[Literal["office", "remote", "student", "outdoors_manual", "other"]] = None
    access_to_nature: Optional[Literal["yes", "limited", "no"]] = None
    activity_level: Optional[Literal["sedentary", "lightly_active", "moderately_active", "very_active"]] = None
    coping_styles: Optional[str] = Field(None, description="Coping styles the user found helpful before")
    learning_modality: Optional[Literal["visual", "auditory", "kinesthetic"]] = None
    diagnosed_disorders: Optional[str] = Field(None, description="Only shared with the model under complete consent")

    @field_validator("*", mode="before")
    @classmethod
    def _blank_is_unset(cls, value):
        # UI selects post "" for "not answered"
        if isinstance(value, str) and not value.strip():
            return None
        return value


class FeedbackEntry(BaseModel):
    rating: int = Field(..., ge=1, le=5)
    title: str


ExerciseFeedback = Dict[str, FeedbackEntry]


class Exercise(BaseModel):
    id: str
    title: str
    description: str
    category: ExerciseCategory
    steps: List[str]
    duration_minutes: Union[int, float]


class Source(BaseModel):
    url: str
    title: str


class ExercisePlan(CamelModel):
    exercises: List[Exercise]
    sources: List[Source] = Field(default_factory=list)
    calm_image_url: Optional[str] = None


class KnowledgeChunk(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    content: str


class ModelCatalog(BaseModel):
    models: List[str] = Field(default_factory=list)
    error: Optional[str] = Field(None, description="Error kind when the listing failed")
    detail: Optional[str] = Field(None, description="User-safe description of the failure")


class OllamaCatalog(ModelCatalog):
    local: List[str] = Field(default_factory=list)
    cloud: List[str] = Field(default_factory=list)


class Diagnosis(BaseModel):
    status: DiagnosisStatus
    message: str
    suggestions: List[str] = Field(default_factory=list)


class ModelValidation(BaseModel):
    model: str
    available: bool
    suggestion: Optional[str] = None


class RecommendedModel(BaseModel):
    name: str
    description: str
    size: str
