"""LLM-based document and image classification using OpenAI."""
import base64
import datetime
import json
import logging
from typing import List, Optional

from openai import AsyncOpenAI
from pydantic import BaseModel, Field, field_validator

from vault_worker.core.config import settings

logger = logging.getLogger(__name__)

MAX_TAGS = 5


class ClassificationResult(BaseModel):
    """Structured classification returned for one document or image."""

    title: Optional[str] = None
    summary: Optional[str] = None
    date: Optional[datetime.date] = None
    language: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    content: Optional[str] = None
    """Text read from an image (OCR / description); unused for documents."""

    @field_validator("date", mode="before")
    @classmethod
    def _parse_date(cls, value):
        if value in (None, ""):
            return None
        if isinstance(value, datetime.date):
            return value
        try:
            return datetime.date.fromisoformat(str(value)[:10])
        except ValueError:
            logger.warning(f"Ignoring unparseable document date: {value!r}")
            return None

    @field_validator("tags", mode="before")
    @classmethod
    def _clean_tags(cls, value):
        if not value:
            return []
        return [str(tag).strip() for tag in value if str(tag).strip()][:MAX_TAGS]


class ClassificationService:
    """Service for classifying vault documents and images with an LLM."""

    def __init__(self, api_key: Optional[str] = None, client: Optional[AsyncOpenAI] = None):
        """Initialize the classification service.

        Args:
            api_key: OpenAI API key (defaults to settings.OPENAI_API_KEY)
            client: Optional pre-built client
        """
        if client is None:
            api_key = api_key or settings.OPENAI_API_KEY
            if not api_key:
                raise ValueError("OpenAI API key is required")
            client = AsyncOpenAI(api_key=api_key)

        self.client = client
        self.model = settings.CLASSIFICATION_MODEL

    async def classify_document(self, content: str) -> ClassificationResult:
        """Classify a document from a sample of its text.

        Args:
            content: Bounded text sample

        Returns:
            ClassificationResult (``content`` is not set)
        """
        response = await self.client.chat.completions.create(
            model=self.model,
            messages=[
                {"role": "system", "content": self._build_system_prompt(image=False)},
                {"role": "user", "content": f"Document Content:\n{content}\n\nClassify the document as JSON."},
            ],
            response_format={"type": "json_object"},
            temperature=0.2,
            max_tokens=600,
        )
        return self._parse(response.choices[0].message.content)

    async def classify_image(self, content: bytes, mimetype: str = "image/jpeg") -> ClassificationResult:
        """Classify an image and read any text it contains.

        Args:
            content: Raw image bytes
            mimetype: Image MIME type used in the data URL

        Returns:
            ClassificationResult including the extracted ``content`` text
        """
        encoded = base64.b64encode(content).decode("ascii")
        response = await self.client.chat.completions.create(
            model=self.model,
            messages=[
                {"role": "system", "content": self._build_system_prompt(image=True)},
                {
                    "role": "user",
                    "content": [
                        {"type": "text", "text": "Classify this image as JSON."},
                        {"type": "image_url", "image_url": {"url": f"data:{mimetype};base64,{encoded}"}},
                    ],
                },
            ],
            response_format={"type": "json_object"},
            temperature=0.2,
            max_tokens=1500,
        )
        return self._parse(response.choices[0].message.content)

    def _parse(self, raw: Optional[str]) -> ClassificationResult:
        try:
            payload = json.loads(raw or "{}")
        except json.JSONDecodeError as e:
            logger.error(f"Classifier returned invalid JSON: {e}")
            raise ValueError(f"Classifier returned invalid JSON: {e}") from e

        return ClassificationResult.model_validate(payload)

    def _build_system_prompt(self, image: bool) -> str:
        """Build the system prompt for classification."""
        subject = "image (usually a photo of a receipt or invoice)" if image else "business document"
        content_rule = (
            '\n6. **content**: All legible text in the image, in reading order'
            if image
            else ""
        )
        content_field = ',\n  "content": "Text read from the image"' if image else ""

        return f"""You are a bookkeeping assistant that files documents for a small business.
Classify the {subject} you are given.

Provide:
1. **title**: Short descriptive title, e.g. "Invoice - Acme Corp - March 2024"
2. **summary**: One sentence describing the document
3. **date**: The document's own date (issue or transaction date) as YYYY-MM-DD, or null
4. **language**: ISO 639-1 code of the document's language, e.g. "en"
5. **tags**: 0 to {MAX_TAGS} broad lowercase tags (document type, vendor category, domain){content_rule}

Return JSON:
{{
  "title": "...",
  "summary": "...",
  "date": "YYYY-MM-DD",
  "language": "en",
  "tags": ["invoice", "software"]{content_field}
}}"""
