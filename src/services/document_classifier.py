"""Stage 1: decide what kind of document a raw text blob is.

Sends the raw text to the fast-tier Generative Text Service with a
classification prompt that enumerates the three hierarchy levels, the known
document types and the source formats the pipeline understands.  The JSON
reply becomes a :class:`~src.models.hierarchy.ClassifyResult`.

Failure contract
----------------
Classification has no fallback.  An empty reply, a reply that is not a JSON
object, or a ``hierarchyLevel`` outside STRATEGY / PLANNING / ORDER raises
:class:`~src.utils.errors.ClassificationError`, and the pipeline stops
before anything is written.  There is no retry pass here: retrying is the
caller's decision.
"""

from __future__ import annotations

from typing import Any

from src.interfaces.llm_provider import ILLMProvider, ModelTier
from src.models.hierarchy import ClassifyResult, HierarchyLevel
from src.utils.confidence import clamp_confidence, confidence_to_level
from src.utils.errors import ClassificationError, LLMError
from src.utils.llm_json import parse_json_object
from src.utils.logging import get_logger

_SYSTEM_PROMPT = (
    "You are a military document classifier.  You read documents of unknown "
    "format and return a single JSON object describing them."
)

_CLASSIFY_PROMPT = """Analyze the following document and determine:

1. **hierarchyLevel**: One of:
   - "STRATEGY" - High-level directives from general officers (NMS, Campaign Plans, JFC Guidance, Component Directives)
   - "PLANNING" - Staff-level documents (JIPTL, JPEL, SPINS, ACO, Component Priority Lists)
   - "ORDER" - Tactical-level orders (ATO, MTO, STO, OPORD, EXORD, FRAGORD)

2. **documentType**: Specific type (NMS, CAMPAIGN_PLAN, JFC_GUIDANCE, COMPONENT_GUIDANCE, JIPTL, JPEL, SPINS, ACO, ATO, MTO, STO, OPORD, EXORD, FRAGORD)

3. **sourceFormat**: The format the document is written in:
   - "USMTF" - Slash-delimited USMTF message (MSGID/ATO/...)
   - "OTH_GOLD" - NATO OTH-Gold format (TRACK/TRKNUM:...)
   - "MTF_XML" - XML-based NATO APP-11 format
   - "MEMORANDUM" - Official memorandum format
   - "OPORD_FORMAT" - 5-paragraph operations order format
   - "STAFF_DOC" - Staff product format (numbered paragraphs, annexes)
   - "PLAIN_TEXT" - Free-form plain text, email, chat message, note
   - "ABBREVIATED" - Terse/abbreviated (sticky note, quick message)

4. **confidence**: 0.0-1.0 how confident you are in the classification
5. **title**: Best title for this document
6. **issuingAuthority**: The organization/command that issued this
7. **effectiveDateStr**: The effective date if identifiable (ISO 8601 format)

Return ONLY valid JSON matching this exact structure:
{
  "hierarchyLevel": "...",
  "documentType": "...",
  "sourceFormat": "...",
  "confidence": 0.0,
  "title": "...",
  "issuingAuthority": "...",
  "effectiveDateStr": "..."
}
"""


class DocumentClassifier:
    """Maps raw text to a hierarchy level, document type and source format.

    The classifier is stateless apart from its injected provider, so one
    instance is shared by every ingestion in the process.
    """

    def __init__(
        self,
        llm_provider: ILLMProvider,
        max_tokens: int = 500,
        temperature: float = 0.1,
    ) -> None:
        self._llm = llm_provider
        self._max_tokens = max_tokens
        self._temperature = temperature
        self._logger = get_logger(__name__)

    async def classify(self, raw_text: str, source_hint: str | None = None) -> ClassifyResult:
        """Classify *raw_text*.

        Parameters
        ----------
        raw_text:
            The document exactly as submitted.
        source_hint:
            Optional caller guess at the source format (``"USMTF"``...).
            Advisory only: it is passed to the model and never enforced.

        Returns
        -------
        ClassifyResult
            The validated classification.

        Raises
        ------
        ClassificationError
            On an empty or unparseable reply, a provider failure, or an
            invalid hierarchy level.
        """
        provider_name = self._llm.get_provider_name()
        self._logger.info(
            "classification_start",
            text_chars=len(raw_text),
            source_hint=source_hint,
            llm_provider=provider_name,
        )

        try:
            response = await self._llm.complete(
                system_prompt=_SYSTEM_PROMPT,
                user_prompt=self._build_prompt(raw_text, source_hint),
                max_tokens=self._max_tokens,
                json_mode=True,
                temperature=self._temperature,
                model_tier=ModelTier.FAST,
            )
        except LLMError as exc:
            raise ClassificationError(
                message=f"Classification call failed: {exc.message}",
                provider_name=provider_name,
            ) from exc

        if not response or not response.strip():
            raise ClassificationError(
                message="Classification returned empty response",
                provider_name=provider_name,
            )

        try:
            parsed = parse_json_object(response)
        except ValueError as exc:
            self._logger.warning("classification_unparseable", error=str(exc))
            raise ClassificationError(
                message=f"Classification returned unparseable JSON: {exc}",
                provider_name=provider_name,
            ) from exc

        result = self._build_result(parsed, provider_name)
        self._logger.info(
            "classification_complete",
            hierarchy_level=result.hierarchy_level.value,
            document_type=result.document_type,
            source_format=result.source_format,
            confidence=result.confidence,
            confidence_level=confidence_to_level(result.confidence).value,
        )
        return result

    @staticmethod
    def _build_prompt(raw_text: str, source_hint: str | None) -> str:
        hint = ""
        if source_hint:
            hint = f"\n[HINT: The user suggests this might be {source_hint} format]\n"
        return f"{_CLASSIFY_PROMPT}\nDOCUMENT TO CLASSIFY:\n{hint}{raw_text}"

    @staticmethod
    def _build_result(parsed: dict[str, Any], provider_name: str) -> ClassifyResult:
        raw_level = parsed.get("hierarchyLevel")
        try:
            level = HierarchyLevel(str(raw_level).strip().upper())
        except ValueError as exc:
            raise ClassificationError(
                message=f"Invalid hierarchy level: {raw_level}",
                provider_name=provider_name,
            ) from exc

        def text(key: str, default: str) -> str:
            value = parsed.get(key)
            if value is None or not str(value).strip():
                return default
            return str(value).strip()

        effective = parsed.get("effectiveDateStr")
        return ClassifyResult(
            hierarchy_level=level,
            document_type=text("documentType", "UNKNOWN").upper(),
            source_format=text("sourceFormat", "PLAIN_TEXT").upper(),
            confidence=clamp_confidence(parsed.get("confidence")),
            title=text("title", ""),
            issuing_authority=text("issuingAuthority", ""),
            effective_date_str=str(effective).strip() if effective else None,
        )
