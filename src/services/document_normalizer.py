"""Stage 2: extract a typed payload from a classified document.

The hierarchy level chosen by the classifier selects one of three
extraction schemas (strategy priorities, planning priorities, or a full
tasking-order tree).  The mid-tier Generative Text Service fills the
schema in as JSON, and this module turns that JSON into the frozen models
of src/models/normalized.py.

Permissiveness contract
-----------------------
The extraction output is treated as untrusted.  Only a *total* failure
(provider error, empty reply, reply that is not a JSON object) raises
:class:`~src.utils.errors.NormalizationError`.  Everything below that level
degrades gracefully through the coercion helpers in src/utils/coercion.py:

    unknown enum value      -> vocabulary default   + review flag
    bad / missing coordinate -> 0.0                 + review flag
    bad date                -> documented fallback + review flag
    bad priority rank       -> 1-based position    + review flag
    bad / oversized integer -> documented default  + review flag

so a single malformed waypoint never discards a 50-mission order.

Review flags the model reports about itself (``reviewFlags`` in the reply)
are popped off the payload and returned ahead of the locally raised ones.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from typing import Any

from pydantic import ValidationError

from src.interfaces.llm_provider import ILLMProvider, ModelTier
from src.models.enums import (
    MissionDomain,
    OrderType,
    SecurityClassification,
    SpaceCapability,
    SupportType,
    TimeWindowType,
    WaypointType,
)
from src.models.hierarchy import ClassifyResult, HierarchyLevel, ReviewFlag
from src.models.normalized import (
    MissionPackageSpec,
    MissionSpec,
    NormalizationOutcome,
    NormalizedOrder,
    NormalizedPlanning,
    NormalizedStrategy,
    PriorityItem,
    SpaceNeedSpec,
    SupportRequirementSpec,
    TargetSpec,
    TimeWindowSpec,
    WaypointSpec,
)
from src.utils.coercion import (
    coerce_bounded_int,
    coerce_coordinate,
    coerce_datetime,
    coerce_enum,
    coerce_float,
    coerce_int,
    coerce_text,
    flag,
    is_blank,
    parse_datetime,
)
from src.utils.confidence import clamp_confidence
from src.utils.errors import LLMError, NormalizationError
from src.utils.llm_json import parse_json_object
from src.utils.logging import get_logger

_SYSTEM_PROMPT = (
    "You convert military documents into structured JSON.  Return exactly one "
    "JSON object and nothing else."
)

_STRATEGY_PROMPT = """You are a military intelligence analyst extracting structured data from a strategic-level document.

Extract the following into JSON:
{
  "title": "Document title",
  "docType": "NMS|CAMPAIGN_PLAN|JFC_GUIDANCE|COMPONENT_GUIDANCE",
  "authorityLevel": "SecDef|CCDR|JFC|JFCC-Space|etc.",
  "effectiveDate": "ISO 8601 date",
  "priorities": [
    {
      "rank": 1,
      "effect": "The desired strategic effect",
      "description": "Short headline for this priority",
      "justification": "Why this priority matters"
    }
  ]
}

Extract ALL priorities mentioned, even implicit ones.  If the document lists
objectives, goals, or key tasks, treat each as a priority entry with a rank.
Leave effectiveDate null if no date is mentioned.
Return ONLY valid JSON.
"""

_PLANNING_PROMPT = """You are a military staff officer extracting structured data from a planning document.

Extract the following into JSON:
{
  "title": "Document title",
  "docType": "JIPTL|JPEL|COMPONENT_PRIORITY|SPINS|ACO",
  "authorityLevel": "Issuing staff or command",
  "effectiveDate": "ISO 8601 date",
  "priorities": [
    {
      "rank": 1,
      "effect": "The desired effect (DESTROY, DEGRADE, DENY, etc.)",
      "description": "Priority headline",
      "justification": "Doctrinal/operational reason for this priority",
      "targetId": "BE number or target reference if mentioned"
    }
  ]
}

Extract ALL priority entries, target lists, or prioritized effects.  Each
numbered item or target should be a separate priority entry.
Return ONLY valid JSON.
"""

_ORDER_PROMPT = """You are a military operations specialist normalizing a tasking order into structured JSON.

The order may be in ANY format (USMTF, OTH-Gold, XML, plain text, abbreviated note).
Extract ALL available information into this JSON structure:

{
  "orderId": "Order identifier (e.g., ATO-2026-025A)",
  "orderType": "ATO|MTO|STO|OPORD|EXORD|FRAGORD|ACO|SPINS",
  "issuingAuthority": "Issuing command",
  "effectiveStart": "ISO 8601",
  "effectiveEnd": "ISO 8601",
  "classification": "UNCLASSIFIED|CUI|CONFIDENTIAL|SECRET|TOP_SECRET",
  "atoDayNumber": null,
  "missionPackages": [
    {
      "packageId": "PKGA01",
      "priorityRank": 1,
      "missionType": "CAS|OCA|DCA|SEAD|ISR|TANKER|C2|ASW|PATROL|etc.",
      "effectDesired": "Text description of desired effect",
      "missions": [
        {
          "missionId": "MSN4001",
          "callsign": "VIPER 11",
          "domain": "AIR|MARITIME|SPACE|LAND",
          "platformType": "F-35A",
          "platformCount": 4,
          "missionType": "OCA",
          "waypoints": [
            {
              "waypointType": "DEP|IP|CP|TGT|EGR|REC|ORBIT|REFUEL|CAP|PATROL",
              "sequence": 1,
              "latitude": 33.075,
              "longitude": 44.039,
              "altitude_ft": 25000,
              "speed_kts": 450,
              "name": "Optional waypoint name"
            }
          ],
          "timeWindows": [
            {
              "windowType": "TOT|ONSTA|OFFSTA|REFUEL|COVERAGE|SUPPRESS|TRANSIT",
              "start": "ISO 8601",
              "end": "ISO 8601 or null"
            }
          ],
          "targets": [
            {
              "targetId": "TGT001",
              "beNumber": "BE number if known",
              "targetName": "Target name",
              "latitude": 33.075,
              "longitude": 44.039,
              "targetCategory": "AIR_DEFENSE|C2|LOGISTICS|NAVAL|etc.",
              "priorityRank": 1,
              "desiredEffect": "DESTROY|DEGRADE|DENY|DISRUPT|etc.",
              "collateralConcern": "LOW|MEDIUM|HIGH or null"
            }
          ],
          "supportRequirements": [
            { "supportType": "TANKER|SEAD|ISR|EW|ESCORT|CAP", "details": "Optional details" }
          ],
          "spaceNeeds": [
            { "capabilityType": "GPS|SATCOM|SATCOM_PROTECTED|SATCOM_WIDEBAND|SATCOM_TACTICAL|OPIR|ISR_SPACE|EW_SPACE|WEATHER|PNT|LINK16", "priority": 1 }
          ]
        }
      ]
    }
  ],
  "reviewFlags": [
    { "field": "fieldName", "rawValue": "original text", "confidence": 0.5, "reason": "Why this needs review" }
  ]
}

CRITICAL INSTRUCTIONS:
- Parse coordinates from ANY format (DMS, decimal, MGRS, killbox) into decimal degrees
- Parse dates from ANY format (DTG, ISO 8601, plain language) into ISO 8601
- If a field is ambiguous, include it in reviewFlags
- If information is missing, make reasonable defaults and flag them
- For USMTF: parse slash-delimited sets (AMSNDAT/, MSNACFT/, GTGTLOC/, etc.)
- For OTH-Gold: parse colon-separated key-value pairs
- For abbreviated/sticky note: extract what you can and flag gaps
Return ONLY valid JSON.
"""

# Fallbacks for order sub-fields with no closed vocabulary.
_UNKNOWN = "UNKNOWN"
_DEFAULT_PACKAGE_RANK = 99
_DEFAULT_DESIRED_EFFECT = "NEUTRALIZE"
_DEFAULT_SPACE_PRIORITY = 5
_DEFAULT_ORDER_DURATION = timedelta(hours=24)

_Builder = Callable[[dict[str, Any], str, ClassifyResult, list[ReviewFlag]], Any]


class DocumentNormalizer:
    """Turns raw text plus its classification into a typed payload.

    Dispatch is a single table lookup on the hierarchy level; each entry
    pairs an extraction prompt with the builder that validates its reply.
    """

    def __init__(
        self,
        llm_provider: ILLMProvider,
        max_tokens: int = 8000,
        temperature: float = 0.1,
    ) -> None:
        self._llm = llm_provider
        self._max_tokens = max_tokens
        self._temperature = temperature
        self._logger = get_logger(__name__)
        self._schemas: dict[HierarchyLevel, tuple[str, _Builder]] = {
            HierarchyLevel.STRATEGY: (_STRATEGY_PROMPT, self._build_strategy),
            HierarchyLevel.PLANNING: (_PLANNING_PROMPT, self._build_planning),
            HierarchyLevel.ORDER: (_ORDER_PROMPT, self._build_order),
        }

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def normalize(
        self, raw_text: str, classification: ClassifyResult
    ) -> NormalizationOutcome:
        """Extract the payload for ``classification.hierarchy_level``.

        Parameters
        ----------
        raw_text:
            The document exactly as submitted.
        classification:
            Stage 1 output.  Supplies the schema choice and the defaults
            for title, type, authority and effective date.

        Returns
        -------
        NormalizationOutcome
            The typed payload plus all review flags (model-reported first).

        Raises
        ------
        NormalizationError
            If the extraction call fails, its reply is not a JSON object, or
            no payload can be built from it.
        """
        level = classification.hierarchy_level
        prompt, builder = self._schemas[level]
        provider_name = self._llm.get_provider_name()
        self._logger.info(
            "normalization_start",
            hierarchy_level=level.value,
            text_chars=len(raw_text),
            llm_provider=provider_name,
        )

        try:
            response = await self._llm.complete(
                system_prompt=_SYSTEM_PROMPT,
                user_prompt=f"{prompt}\nDOCUMENT:\n{raw_text}",
                max_tokens=self._max_tokens,
                json_mode=True,
                temperature=self._temperature,
                model_tier=ModelTier.MID,
            )
        except LLMError as exc:
            raise NormalizationError(
                message=f"Normalization call failed: {exc.message}",
                provider_name=provider_name,
            ) from exc

        if not response or not response.strip():
            raise NormalizationError(
                message="Normalization returned empty response",
                provider_name=provider_name,
            )

        try:
            parsed = parse_json_object(response)
        except ValueError as exc:
            self._logger.warning("normalization_unparseable", error=str(exc))
            raise NormalizationError(
                message=f"Normalization returned unparseable JSON: {exc}",
                provider_name=provider_name,
            ) from exc

        review_flags = self._inline_flags(parsed.pop("reviewFlags", None))
        local_flags: list[ReviewFlag] = []
        try:
            payload = builder(parsed, raw_text, classification, local_flags)
        except ValidationError as exc:
            raise NormalizationError(
                message=f"Normalized payload failed validation: {exc}",
                provider_name=provider_name,
            ) from exc
        except Exception as exc:
            # Anything else a builder raises is still a stage 2 failure.
            self._logger.error(
                "normalization_builder_failed",
                error=str(exc),
                error_type=type(exc).__name__,
            )
            raise NormalizationError(
                message=f"Normalized payload could not be built: {exc}",
                provider_name=provider_name,
            ) from exc

        outcome = NormalizationOutcome(
            payload=payload,
            review_flags=[*review_flags, *local_flags],
        )
        self._logger.info(
            "normalization_complete",
            hierarchy_level=level.value,
            preview=outcome.preview_counts(),
            model_flags=len(review_flags),
            coercion_flags=len(local_flags),
        )
        return outcome

    # ------------------------------------------------------------------
    # Review flags reported by the model
    # ------------------------------------------------------------------

    def _inline_flags(self, raw: Any) -> list[ReviewFlag]:
        if not isinstance(raw, list):
            return []
        flags: list[ReviewFlag] = []
        for item in raw:
            if not isinstance(item, dict):
                self._logger.debug("inline_review_flag_skipped", item=str(item)[:80])
                continue
            flags.append(
                ReviewFlag(
                    field=coerce_text(item.get("field"), _UNKNOWN.lower()),
                    raw_value=coerce_text(item.get("rawValue")),
                    confidence=clamp_confidence(item.get("confidence"), default=0.5),
                    reason=coerce_text(item.get("reason")),
                )
            )
        return flags

    # ------------------------------------------------------------------
    # Strategy / planning builders
    # ------------------------------------------------------------------

    def _build_strategy(
        self,
        parsed: dict[str, Any],
        raw_text: str,
        classification: ClassifyResult,
        flags: list[ReviewFlag],
    ) -> NormalizedStrategy:
        return NormalizedStrategy(
            **self._document_fields(parsed, raw_text, classification, flags),
            priorities=_build_priorities(parsed.get("priorities"), flags, with_target=False),
        )

    def _build_planning(
        self,
        parsed: dict[str, Any],
        raw_text: str,
        classification: ClassifyResult,
        flags: list[ReviewFlag],
    ) -> NormalizedPlanning:
        return NormalizedPlanning(
            **self._document_fields(parsed, raw_text, classification, flags),
            priorities=_build_priorities(parsed.get("priorities"), flags, with_target=True),
        )

    @staticmethod
    def _document_fields(
        parsed: dict[str, Any],
        raw_text: str,
        classification: ClassifyResult,
        flags: list[ReviewFlag],
    ) -> dict[str, Any]:
        # Content is always the submitted text so source attribution can
        # search the exact characters that produced each priority.
        return {
            "title": coerce_text(parsed.get("title"), classification.title or "Untitled"),
            "doc_type": coerce_text(parsed.get("docType"), classification.document_type).upper(),
            "authority_level": coerce_text(
                parsed.get("authorityLevel"), classification.issuing_authority or _UNKNOWN
            ),
            "content": raw_text,
            "effective_date": _effective_date(
                parsed.get("effectiveDate"), classification.effective_date_str, flags
            ),
        }

    # ------------------------------------------------------------------
    # Order builder
    # ------------------------------------------------------------------

    def _build_order(
        self,
        parsed: dict[str, Any],
        raw_text: str,
        classification: ClassifyResult,
        flags: list[ReviewFlag],
    ) -> NormalizedOrder:
        now = datetime.now(timezone.utc)  # noqa: UP017

        raw_type = parsed.get("orderType")
        if is_blank(raw_type) and classification.document_type in OrderType.values():
            raw_type = classification.document_type
        order_type = coerce_enum(OrderType, raw_type, "orderType", flags)

        start = coerce_datetime(parsed.get("effectiveStart"), "effectiveStart", flags, now, flag_missing=True)
        default_end = _plus_default_duration(start)
        if default_end is None:
            flag(
                flags,
                "effectiveStart",
                start.isoformat(),
                f"Effective start too close to the calendar limit; defaulted to {now.isoformat()}",
            )
            start = now
            default_end = now + _DEFAULT_ORDER_DURATION
        end = coerce_datetime(parsed.get("effectiveEnd"), "effectiveEnd", flags, default_end)
        if end < start:
            flag(flags, "effectiveEnd", end.isoformat(), "Effective end precedes start; defaulted to start + 24h")
            end = default_end
        builder = _OrderTreeBuilder(
            stamp=int(now.timestamp() * 1000), window=(start, end), flags=flags
        )

        packages = [
            builder.package(raw, f"missionPackages[{i}]", i)
            for i, raw in enumerate(_as_list(parsed.get("missionPackages"), "missionPackages", flags))
        ]

        return NormalizedOrder(
            order_id=coerce_text(parsed.get("orderId"), f"{order_type.value}-INGEST-{builder.stamp}"),
            order_type=order_type,
            issuing_authority=coerce_text(
                parsed.get("issuingAuthority"), classification.issuing_authority or _UNKNOWN
            ),
            effective_start=start,
            effective_end=end,
            classification=coerce_enum(
                SecurityClassification, parsed.get("classification"), "classification", flags
            ),
            raw_text=raw_text,
            raw_format=classification.source_format,
            ato_day_number=coerce_bounded_int(
                parsed.get("atoDayNumber"), "atoDayNumber", flags, None, minimum=None
            ),
            mission_packages=[p for p in packages if p is not None],
        )


class _OrderTreeBuilder:
    """Walks one order's package/mission tree, applying defaults and flags.

    Fallback identifiers share one millisecond stamp per order and a
    running counter, so generated ids stay unique within the order.
    """

    def __init__(
        self, stamp: int, window: tuple[datetime, datetime], flags: list[ReviewFlag]
    ) -> None:
        self.stamp = stamp
        self.window = window
        self.flags = flags
        self._missions = 0
        self._targets = 0

    def package(self, raw: Any, path: str, index: int) -> MissionPackageSpec | None:
        if not isinstance(raw, dict):
            flag(self.flags, path, raw, "Mission package is not an object; skipped")
            return None
        missions = [
            self.mission(item, f"{path}.missions[{j}]")
            for j, item in enumerate(_as_list(raw.get("missions"), f"{path}.missions", self.flags))
        ]
        return MissionPackageSpec(
            package_id=coerce_text(raw.get("packageId"), f"PKG-{self.stamp}-{index + 1}"),
            priority_rank=coerce_bounded_int(
                raw.get("priorityRank"), f"{path}.priorityRank", self.flags, _DEFAULT_PACKAGE_RANK
            ),
            mission_type=coerce_text(raw.get("missionType"), _UNKNOWN),
            effect_desired=coerce_text(raw.get("effectDesired")),
            missions=[m for m in missions if m is not None],
        )

    def mission(self, raw: Any, path: str) -> MissionSpec | None:
        if not isinstance(raw, dict):
            flag(self.flags, path, raw, "Mission is not an object; skipped")
            return None
        self._missions += 1
        flags = self.flags

        waypoints = [
            self.waypoint(item, f"{path}.waypoints[{k}]", k)
            for k, item in enumerate(_as_list(raw.get("waypoints"), f"{path}.waypoints", flags))
        ]
        windows = [
            self.time_window(item, f"{path}.timeWindows[{k}]")
            for k, item in enumerate(_as_list(raw.get("timeWindows"), f"{path}.timeWindows", flags))
        ]
        targets = [
            self.target(item, f"{path}.targets[{k}]")
            for k, item in enumerate(_as_list(raw.get("targets"), f"{path}.targets", flags))
        ]
        support = [
            self.support(item, f"{path}.supportRequirements[{k}]")
            for k, item in enumerate(
                _as_list(raw.get("supportRequirements"), f"{path}.supportRequirements", flags)
            )
        ]
        space = [
            self.space_need(item, f"{path}.spaceNeeds[{k}]")
            for k, item in enumerate(_as_list(raw.get("spaceNeeds"), f"{path}.spaceNeeds", flags))
        ]

        platform_count = coerce_bounded_int(raw.get("platformCount"), f"{path}.platformCount", flags, 1)
        callsign = coerce_text(raw.get("callsign"))
        return MissionSpec(
            mission_id=coerce_text(raw.get("missionId"), f"MSN-{self.stamp}-{self._missions}"),
            domain=coerce_enum(MissionDomain, raw.get("domain"), f"{path}.domain", flags),
            platform_type=coerce_text(raw.get("platformType"), _UNKNOWN),
            platform_count=platform_count,
            mission_type=coerce_text(raw.get("missionType"), _UNKNOWN),
            callsign=callsign or None,
            waypoints=[w for w in waypoints if w is not None],
            time_windows=[w for w in windows if w is not None],
            targets=[t for t in targets if t is not None],
            support_requirements=[s for s in support if s is not None],
            space_needs=[s for s in space if s is not None],
        )

    def waypoint(self, raw: Any, path: str, index: int) -> WaypointSpec | None:
        if not isinstance(raw, dict):
            flag(self.flags, path, raw, "Waypoint is not an object; skipped")
            return None
        altitude = raw.get("altitude_ft", raw.get("altitudeFt"))
        speed = raw.get("speed_kts", raw.get("speedKts"))
        name = coerce_text(raw.get("name"))
        return WaypointSpec(
            waypoint_type=coerce_enum(WaypointType, raw.get("waypointType"), f"{path}.waypointType", self.flags),
            sequence=coerce_bounded_int(raw.get("sequence"), f"{path}.sequence", self.flags, index + 1),
            latitude=coerce_coordinate(raw.get("latitude"), f"{path}.latitude", self.flags, limit=90.0),
            longitude=coerce_coordinate(raw.get("longitude"), f"{path}.longitude", self.flags, limit=180.0),
            altitude_ft=coerce_float(altitude),
            speed_kts=coerce_float(speed),
            name=name or None,
        )

    def time_window(self, raw: Any, path: str) -> TimeWindowSpec | None:
        if not isinstance(raw, dict):
            flag(self.flags, path, raw, "Time window is not an object; skipped")
            return None
        order_start, _ = self.window
        end = None
        if not is_blank(raw.get("end")):
            end = parse_datetime(raw.get("end"))
            if end is None:
                flag(self.flags, f"{path}.end", raw.get("end"), "Unparseable date; window left open")
        return TimeWindowSpec(
            window_type=coerce_enum(TimeWindowType, raw.get("windowType"), f"{path}.windowType", self.flags),
            start=coerce_datetime(raw.get("start"), f"{path}.start", self.flags, order_start, flag_missing=True),
            end=end,
        )

    def target(self, raw: Any, path: str) -> TargetSpec | None:
        if not isinstance(raw, dict):
            flag(self.flags, path, raw, "Target is not an object; skipped")
            return None
        self._targets += 1
        be_number = coerce_text(raw.get("beNumber"))
        category = coerce_text(raw.get("targetCategory"))
        collateral = coerce_text(raw.get("collateralConcern"))
        return TargetSpec(
            target_id=coerce_text(raw.get("targetId"), f"TGT-{self.stamp}-{self._targets}"),
            target_name=coerce_text(raw.get("targetName"), _UNKNOWN),
            latitude=coerce_coordinate(raw.get("latitude"), f"{path}.latitude", self.flags, limit=90.0),
            longitude=coerce_coordinate(raw.get("longitude"), f"{path}.longitude", self.flags, limit=180.0),
            desired_effect=coerce_text(raw.get("desiredEffect"), _DEFAULT_DESIRED_EFFECT),
            be_number=be_number or None,
            target_category=category or None,
            priority_rank=coerce_bounded_int(
                raw.get("priorityRank"), f"{path}.priorityRank", self.flags, None
            ),
            collateral_concern=collateral or None,
        )

    def support(self, raw: Any, path: str) -> SupportRequirementSpec | None:
        if not isinstance(raw, dict):
            flag(self.flags, path, raw, "Support requirement is not an object; skipped")
            return None
        details = coerce_text(raw.get("details"))
        return SupportRequirementSpec(
            support_type=coerce_enum(SupportType, raw.get("supportType"), f"{path}.supportType", self.flags),
            details=details or None,
        )

    def space_need(self, raw: Any, path: str) -> SpaceNeedSpec | None:
        if not isinstance(raw, dict):
            flag(self.flags, path, raw, "Space need is not an object; skipped")
            return None
        start, end = self.window
        return SpaceNeedSpec(
            capability_type=coerce_enum(
                SpaceCapability, raw.get("capabilityType"), f"{path}.capabilityType", self.flags
            ),
            priority=coerce_bounded_int(
                raw.get("priority"), f"{path}.priority", self.flags, _DEFAULT_SPACE_PRIORITY
            ),
            start_time=start,
            end_time=end,
        )


# ---------------------------------------------------------------------------
# Module helpers
# ---------------------------------------------------------------------------

def _as_list(raw: Any, field: str, flags: list[ReviewFlag]) -> list[Any]:
    """Return *raw* if it is a list; otherwise ``[]`` (flagged unless missing)."""
    if isinstance(raw, list):
        return raw
    if raw is not None:
        flag(flags, field, str(raw)[:200], "Expected a list; ignored")
    return []


def _plus_default_duration(start: datetime) -> datetime | None:
    """``start + 24h``, or ``None`` when that passes ``datetime.max``."""
    try:
        return start + _DEFAULT_ORDER_DURATION
    except OverflowError:
        return None


def _effective_date(
    raw: Any, classified: str | None, flags: list[ReviewFlag]
) -> datetime:
    """Extracted date, else the classifier's date, else now (flagged)."""
    parsed = parse_datetime(raw)
    if parsed is not None:
        return parsed
    if not is_blank(raw):
        flag(flags, "effectiveDate", raw, "Unparseable effective date")

    parsed = parse_datetime(classified)
    if parsed is not None:
        return parsed

    now = datetime.now(timezone.utc)  # noqa: UP017
    flag(flags, "effectiveDate", raw, f"Effective date missing; defaulted to {now.isoformat()}")
    return now


def _build_priorities(
    raw: Any, flags: list[ReviewFlag], *, with_target: bool
) -> list[PriorityItem]:
    """Build ranked priority items with unique positive ranks.

    A missing, non-positive or repeated rank is replaced by the item's
    1-based position, or the next unused rank when that position is taken.
    """
    items: list[PriorityItem] = []
    used: set[int] = set()
    for index, entry in enumerate(_as_list(raw, "priorities", flags)):
        path = f"priorities[{index}]"
        if not isinstance(entry, dict):
            flag(flags, path, entry, "Priority is not an object; skipped")
            continue

        rank = coerce_int(entry.get("rank"))
        if rank is None or rank < 1 or rank in used:
            replacement = index + 1
            while replacement in used:
                replacement += 1
            flag(flags, f"{path}.rank", entry.get("rank"), f"Invalid or duplicate rank; re-ranked to {replacement}")
            rank = replacement
        used.add(rank)

        target_id = coerce_text(entry.get("targetId")) if with_target else ""
        items.append(
            PriorityItem(
                rank=rank,
                effect=coerce_text(entry.get("effect")),
                description=coerce_text(entry.get("description")),
                justification=coerce_text(entry.get("justification")),
                target_id=target_id or None,
            )
        )
    return items
