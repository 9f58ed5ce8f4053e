from pydantic import BaseModel, ConfigDict, Field
from typing import Optional


class TranslateRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    text: Optional[str] = None
    target_language: Optional[str] = Field(None, alias="targetLanguage")

class TranslateResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    detected_language: str = Field(alias="detectedLanguage")
    translated_text: str = Field(alias="translatedText")
    message: Optional[str] = None

class SummarizeRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    conversation_text: Optional[str] = Field(None, alias="conversationText")

class SummarizeResponse(BaseModel):
    summary: str
