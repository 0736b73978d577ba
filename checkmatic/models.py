"""Pydantic models for data structures."""

from enum import Enum
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class Provenance(str, Enum):
    """Where a piece of text came from.

    User-typed text gets the injection-pattern screen; text produced by the
    page extractor or image transcription does not.
    """

    USER_INPUT = "user_input"
    EXTRACTED_CONTENT = "extracted_content"


class PhotoPayload(BaseModel):
    """Uploaded image, as sent by the browser client."""

    model_config = ConfigDict(populate_by_name=True)

    data: str = Field(..., description="base64 data URI")
    name: str
    size: float
    mime_type: str = Field(
        ...,
        validation_alias=AliasChoices("mimeType", "mime_type", "type"),
        serialization_alias="mimeType",
    )

    @property
    def base64_data(self) -> str:
        return self.data.split("base64,", 1)[1]


class LinkRequest(BaseModel):
    """Link mode: a URL that passed validation."""

    mode: Literal["link"] = "link"
    url: str


class TextRequest(BaseModel):
    """Text mode: sanitized user text."""

    mode: Literal["text"] = "text"
    content: str


class PhotoRequest(BaseModel):
    """Photo mode: a validated image upload."""

    mode: Literal["photo"] = "photo"
    photo: PhotoPayload


AnalysisRequest = Annotated[
    Union[LinkRequest, TextRequest, PhotoRequest],
    Field(discriminator="mode"),
]


class ExtractedArticle(BaseModel):
    """Title and body text derived from a fetched page."""

    title: str = ""
    content: str = ""
    method: Literal["readability", "paragraphs"] = "readability"


class SarcasmResult(BaseModel):
    """Sarcasm model output plus the probability of the sarcastic label."""

    score: float = 0.0
    raw: Any = None


class Classification(BaseModel):
    """One classification slot of the synthesis verdict."""

    type: str
    quote: str = ""
    model_confidence: Optional[float] = None
    llm_confidence: Optional[float] = Field(default=None, ge=0.0, le=1.0)
    llm_reason: str = ""
    llm_positive: bool = False


class SynthesisVerdict(BaseModel):
    """Shape the synthesis prompt asks for; replies that deviate are passed through."""

    summary: str
    primary_classification: Classification
    secondary_classification: Classification
    tertiary_classification: Classification


class CombinedResult(BaseModel):
    """Everything the orchestrator produced for one piece of text."""

    model_config = ConfigDict(populate_by_name=True)

    synthesis: Any
    zero_shot_analysis: Any = Field(default=None, serialization_alias="zeroShotAnalysis")
    sarcasm_analysis: Any = Field(default=None, serialization_alias="sarcasmAnalysis")
    political_bias_analysis: Any = Field(default=None, serialization_alias="politicalBiasAnalysis")

    def to_response(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True)
