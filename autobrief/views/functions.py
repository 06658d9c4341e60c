"""Wire schemas for the transcription and brief-generation endpoints."""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class TranscriptionOptions(BaseModel):
    """Options accepted by the transcription endpoint."""

    enableSpeakerDiarization: bool = Field(False, description="Label speakers in segments")
    enableProfanityFilter: bool = Field(False, description="Accepted for compatibility; not applied")
    languageCode: Optional[str] = Field(None, description="BCP-47 code; omitted means auto-detect")
    enableWordTimeOffsets: bool = Field(False, description="Accepted for compatibility")
    enableAutomaticPunctuation: bool = Field(True, description="Accepted for compatibility")
    model: Optional[str] = Field(None, description="Accepted for compatibility; not applied")
    useEnhanced: bool = Field(True, description="Accepted for compatibility")

    class Config:
        populate_by_name = True
        extra = "allow"


class TranscribeAudioRequest(BaseModel):
    """Request body for `/functions/transcribe-audio-enhanced`."""

    audioData: Optional[str] = Field(None, description="Base64 data URL of the audio")
    audioFormat: str = Field("mp3", description="Container format tag, e.g. mp3 or wav")
    options: TranscriptionOptions = Field(default_factory=TranscriptionOptions)
    originalFilename: Optional[str] = Field(None, description="Name of the uploaded file")
    fileSizeBytes: Optional[int] = Field(None, description="Size of the decoded audio in bytes")

    class Config:
        populate_by_name = True


class TranscriptSegment(BaseModel):
    speaker: str
    startTime: str
    endTime: str
    text: str
    confidence: float
    words: List[Dict[str, Any]] = Field(default_factory=list)


class TranscriptMetadata(BaseModel):
    duration: str = Field(..., description="HH:MM:SS length of the recognised audio")
    wordCount: int
    speakerCount: int
    averageConfidence: float
    languageDetected: Optional[str] = None
    processingTime: int = Field(..., description="Milliseconds spent serving the request")


class TranscribeAudioResponse(BaseModel):
    """Successful transcription response."""

    success: bool = True
    id: str = Field(..., description="Request identifier")
    fullText: str
    segments: List[TranscriptSegment] = Field(default_factory=list)
    metadata: TranscriptMetadata
    qualityScore: float
    warnings: List[str] = Field(default_factory=list)


class TranscriptionFailure(BaseModel):
    success: bool = False
    error: str
    requestId: str
    suggestions: List[str] = Field(default_factory=list)


class GenerateBriefOptions(BaseModel):
    """Options accepted by the brief-generation endpoint."""

    templateType: str = Field("meeting_summary", description="Built-in template id")
    tone: str = Field("professional", description="Writing tone")
    length: str = Field("detailed", description="detailed or concise")
    customInstructions: Optional[str] = Field(None, description="Extra requirements appended to the prompt")
    enhancedFormatting: bool = True
    includeMetrics: bool = True

    class Config:
        populate_by_name = True
        extra = "allow"


class GenerateBriefRequest(BaseModel):
    """Request body for `/functions/generate-brief`."""

    transcriptionText: Optional[str] = Field(None, description="Transcript text to summarise")
    options: GenerateBriefOptions = Field(default_factory=GenerateBriefOptions)

    class Config:
        populate_by_name = True


class GenerateBriefResponse(BaseModel):
    """Successful brief-generation response."""

    success: bool = True
    brief: str
    summary: str
    templateType: str
    briefWordCount: int
    summaryWordCount: int
    totalWordCount: int
    qualityScore: int
    briefQualityScore: int
    summaryQualityScore: int
    metadata: Dict[str, Any] = Field(default_factory=dict)


class GenerateBriefFailure(BaseModel):
    success: bool = False
    error: str
    timestamp: str
