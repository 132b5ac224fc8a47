from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any

from pydantic import Field, ValidationInfo, field_validator

from .landmarks import VisionMode
from .metrics import CamelModel

class ReportSection(CamelModel):
    @field_validator("*", mode="before")
    @classmethod
    def _lenient(cls, v: Any, info: ValidationInfo) -> Any:
        # Model output: null falls back to the field default, bare numbers become text.
        default = cls.model_fields[info.field_name].default
        if v is None:
            return default
        if isinstance(default, str) and isinstance(v, (int, float)):
            return str(v)
        return v

# ---- face sections ----

class SanTingAnalysis(ReportSection):
    overview: str = ""
    upper: str = ""
    middle: str = ""
    lower: str = ""

class WuGuanAnalysis(ReportSection):
    brow: str = ""
    eye: str = ""
    nose: str = ""
    mouth: str = ""
    ear: str = ""
    ear_is_inferred: bool = True

class TwelvePalacesAnalysis(ReportSection):
    ming_gong: str = ""
    cai_bo: str = ""
    xiong_di: str = ""
    tian_zhai: str = ""
    nan_nv: str = ""
    nu_pu: str = ""
    fu_qi: str = ""
    qian_yi: str = ""
    ji_e: str = ""
    guan_lu: str = ""
    fu_de: str = ""
    fu_mu: str = ""

class DynamicAnalysis(ReportSection):
    bone_structure: str = ""
    complexion: str = ""
    spirit_essence: str = ""
    is_inferred: bool = True

class SummaryAdvice(ReportSection):
    personality: str = ""
    career: str = ""
    wealth: str = ""
    love: str = ""
    health: str = ""
    lucky: str = ""

# ---- hand sections ----

class PalmTypeAnalysis(ReportSection):
    element: str = ""
    description: str = ""
    personality: str = ""
    career: str = ""

class MainLinesAnalysis(ReportSection):
    life_line: str = ""
    wisdom_line: str = ""
    emotion_line: str = ""

class SecondaryLinesAnalysis(ReportSection):
    career_line: str = ""
    success_line: str = ""
    marriage_line: str = ""
    wealth_line: str = ""

class MountsAnalysis(ReportSection):
    jupiter: str = ""
    saturn: str = ""
    apollo: str = ""
    mercury: str = ""
    venus: str = ""
    moon: str = ""

class HandComparisonAnalysis(ReportSection):
    innate: str = ""
    acquired: str = ""
    comparison: str = ""

class AnalysisReport(CamelModel):
    mode: VisionMode
    title: str = ""
    score: int = 0
    archetype: str = ""
    poem: str = ""

    san_ting: SanTingAnalysis | None = None
    wu_guan: WuGuanAnalysis | None = None
    twelve_palaces: TwelvePalacesAnalysis | None = None
    dynamic: DynamicAnalysis | None = None
    summary: SummaryAdvice | None = None

    palm_type: PalmTypeAnalysis | None = None
    main_lines: MainLinesAnalysis | None = None
    secondary_lines: SecondaryLinesAnalysis | None = None
    mounts: MountsAnalysis | None = None
    hand_comparison: HandComparisonAnalysis | None = None

    # Legacy flat narrative fields (zoneAnalysis, handShapeAnalysis, postureAnalysis, ...).
    details: dict[str, Any] = Field(default_factory=dict)

    @field_validator("title", "archetype", "poem", mode="before")
    @classmethod
    def _text_or_empty(cls, v: Any) -> Any:
        return "" if v is None else v

    @field_validator("score", mode="before")
    @classmethod
    def _whole_score(cls, v: Any) -> Any:
        if v is None:
            return 0
        if isinstance(v, str):
            try:
                v = float(v.strip())
            except ValueError:
                return v
        if isinstance(v, float):
            return int(round(v))
        return v


# Section order per mode; the first entry decides whether the extended shape is present.
EXTENDED_SECTIONS: dict[VisionMode, tuple[str, ...]] = {
    VisionMode.FACE: ("san_ting", "wu_guan", "twelve_palaces", "dynamic", "summary"),
    VisionMode.HAND: ("palm_type", "main_lines", "secondary_lines", "mounts", "hand_comparison", "summary"),
    VisionMode.BODY: (),
}

@dataclass(frozen=True)
class ExtendedReport:
    mode: VisionMode
    # section name -> {field name -> value}, only sections the service returned
    sections: dict[str, dict[str, Any]] = field(default_factory=dict)
    kind: str = "extended"

@dataclass(frozen=True)
class LegacyReport:
    mode: VisionMode
    fields: dict[str, str] = field(default_factory=dict)
    kind: str = "legacy"

ReportBody = ExtendedReport | LegacyReport

def normalize_report(report: AnalysisReport) -> ReportBody:
    """Resolve which report shape is present.

    Presentation code reads report bodies only through this function.
    """
    names = EXTENDED_SECTIONS.get(report.mode, ())
    if names and getattr(report, names[0]) is not None:
        sections: dict[str, dict[str, Any]] = {}
        for name in names:
            section = getattr(report, name)
            if section is not None:
                sections[name] = section.model_dump()
        return ExtendedReport(mode=report.mode, sections=sections)

    fields = {k: str(v) for k, v in report.details.items() if v is not None and str(v).strip()}
    return LegacyReport(mode=report.mode, fields=fields)
