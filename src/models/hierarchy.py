"""Document hierarchy and classification models.

Every ingested document lands on exactly one of three hierarchy levels:

    STRATEGY  -> national / theater guidance (NMS, campaign plans, JFC guidance)
    PLANNING  -> staff products (JIPTL, JPEL, SPINS, ACO, priority lists)
    ORDER     -> tactical tasking orders (ATO, MTO, STO, OPORD, EXORD, FRAGORD)

The level is decided once by the DocumentClassifier
(src/services/document_classifier.py) and never changes afterwards.

Wire format note:
    These models serialize with camelCase aliases (``hierarchyLevel``,
    ``effectiveDateStr``...) because that is the JSON shape both the
    Generative Text Service returns and the API/WebSocket clients consume.
    ``populate_by_name=True`` lets Python code keep using snake_case.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class HierarchyLevel(str, Enum):  # noqa: UP042  (StrEnum requires Python 3.11+)
    """The three strictly ordered document hierarchy levels."""

    STRATEGY = "STRATEGY"
    PLANNING = "PLANNING"
    ORDER = "ORDER"

    @property
    def parent(self) -> HierarchyLevel | None:
        """The level a document of this level links up to, if any."""
        if self is HierarchyLevel.PLANNING:
            return HierarchyLevel.STRATEGY
        if self is HierarchyLevel.ORDER:
            return HierarchyLevel.PLANNING
        return None


# Shared model config for every camelCase wire model in the package.
WIRE_CONFIG = ConfigDict(
    frozen=True,
    alias_generator=to_camel,
    populate_by_name=True,
)


class ClassifyResult(BaseModel):
    """Output of stage 1: what kind of document the raw text is."""

    model_config = WIRE_CONFIG

    hierarchy_level: HierarchyLevel
    # Specific type, e.g. "JIPTL" or "ATO".  Free text: the model may
    # return types outside the documented list and they are kept verbatim.
    document_type: str = "UNKNOWN"
    # USMTF, OTH_GOLD, MTF_XML, MEMORANDUM, OPORD_FORMAT, STAFF_DOC,
    # PLAIN_TEXT or ABBREVIATED.
    source_format: str = "PLAIN_TEXT"
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    title: str = ""
    issuing_authority: str = ""
    effective_date_str: str | None = None


class ReviewFlag(BaseModel):
    """A low-confidence extraction note.  Never blocks persistence."""

    model_config = WIRE_CONFIG

    field: str
    raw_value: str = ""
    confidence: float = Field(default=0.5, ge=0.0, le=1.0)
    reason: str = ""
