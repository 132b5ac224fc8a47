from __future__ import annotations

from ..schemas.landmarks import VisionMode
from ..schemas.metrics import BodyMetrics, EarMetrics, FaceMetrics, FaceRatios, HandMetrics, VisionMetrics

# Used when an optional face ratio was not measured (e.g. metrics loaded from JSON).
FACE_RATIO_DEFAULTS: dict[str, float] = {
    "avg_eye_size": 0.15,
    "eye_distance": 0.22,
    "nose_height_ratio": 0.24,
    "lip_ratio": 1.2,
    "mouth_curve": 0.0,
    "brow_gap": 0.12,
    "cheekbone_width": 0.9,
    "cheekbone_height": 0.1,
    "chin_sharpness": 0.5,
    "face_symmetry": 0.9,
}

DOMINANT_LABELS = {
    "upper": "upper zone (heavenly court)",
    "middle": "middle zone (nose and cheekbones)",
    "lower": "lower zone (earthly pavilion)",
    "balanced": "three zones balanced",
}
ELEMENT_LABELS = {
    "earth": "earth (square palm, short fingers)",
    "fire": "fire (long palm, short fingers)",
    "air": "air (square palm, long fingers)",
    "water": "water (long palm, long fingers)",
}
POSTURE_LABELS = {
    "upright": "upright and centered",
    "slouch": "chest drawn in, torso shifted",
    "leaning_left": "leaning left",
    "leaning_right": "leaning right",
}

def resolve_face_ratios(ratios: FaceRatios) -> dict[str, float]:
    """All face ratios with named defaults filled in for unmeasured ones."""
    out = ratios.model_dump()
    for k, default in FACE_RATIO_DEFAULTS.items():
        if out.get(k) is None:
            out[k] = default
    return out

def zone_shares(face: FaceMetrics) -> tuple[float, float, float]:
    z = face.zones
    total = z.upper + z.middle + z.lower
    if total <= 0:
        return (1 / 3, 1 / 3, 1 / 3)
    return (z.upper / total, z.middle / total, z.lower / total)

def _pct(v: float, digits: int = 1) -> str:
    return f"{v * 100:.{digits}f}%"

def format_face_metrics(face: FaceMetrics, ear: EarMetrics | None = None) -> str:
    up, mid, low = zone_shares(face)
    r = resolve_face_ratios(face.ratios)
    lines = [
        "[Face measurements]",
        "",
        "1. Three zones:",
        f"- Upper (hairline to brows): {_pct(up)}",
        f"- Middle (brows to nose tip): {_pct(mid)}",
        f"- Lower (philtrum to chin): {_pct(low)}",
        f"- Dominant: {DOMINANT_LABELS[face.zones.dominant]}",
        "",
        "2. Features:",
        f"- Brow thickness: {_pct(r['brow_thickness'], 2)}",
        f"- Eye roundness: {_pct(r['eye_roundness'])}",
        f"- Nose width ratio: {_pct(r['nose_width_ratio'])}",
        f"- Lip fullness: {_pct(r['lip_fullness'])}",
        f"- Jaw width: {_pct(r['jaw_width'])}",
        f"- Eye spacing: {_pct(r['eye_distance'])}",
        f"- Nose bridge height: {_pct(r['nose_height_ratio'])}",
        f"- Brow gap: {_pct(r['brow_gap'])}",
        f"- Face symmetry: {_pct(r['face_symmetry'])}",
    ]

    p = face.twelve_palaces
    if p is not None:
        lines += [
            "",
            "3. Twelve palaces:",
            f"- Yintang width (life palace): {_pct(p.yintang_width)}",
            f"- Forehead fullness (career palace): {_pct(p.forehead_fullness)}",
            f"- Forehead corner width (travel palace): {_pct(p.forehead_corner_width)}",
            f"- Eye tail width (spouse palace): {_pct(p.eye_tail_width)}",
            f"- Tear trough fullness (children palace): {_pct(p.tear_trough_fullness)}",
            f"- Nasal root height (health palace): {_pct(p.shan_gen_height)}",
            f"- Cheekbone support: {_pct(p.cheekbone_support)}",
        ]

    lines += ["", "4. Ears:"]
    if ear is not None and ear.has_ear_image:
        lines += [
            f"- Position: {ear.position or 'medium'}",
            f"- Lobe: {ear.lobe_fullness or 'medium'}",
            f"- Size: {ear.size or 'medium'}",
        ]
    else:
        lines.append("- No ear photo supplied; infer from the overall face and mark it as inferred")
    return "\n".join(lines)

def format_hand_metrics(hand: HandMetrics) -> str:
    return "\n".join([
        "[Hand measurements]",
        f"- Palm type: {ELEMENT_LABELS[hand.element]}",
        f"- Palm width/height: {hand.palm_ratio:.2f}",
        f"- Middle finger/palm height: {hand.finger_length_ratio:.2f}",
    ])

def format_body_metrics(body: BodyMetrics) -> str:
    return "\n".join([
        "[Posture measurements]",
        f"- Posture type: {POSTURE_LABELS[body.posture_type]}",
        f"- Shoulder imbalance: {_pct(abs(body.shoulder_balance))}",
        f"- Head tilt: {_pct(abs(body.head_tilt))}",
        f"- Torso offset: {_pct(abs(body.torso_alignment))}",
    ])

def format_metrics(metrics: VisionMetrics) -> str:
    if metrics.mode == VisionMode.FACE:
        return format_face_metrics(metrics.face, metrics.ear)
    if metrics.mode == VisionMode.HAND:
        return format_hand_metrics(metrics.hand)
    return format_body_metrics(metrics.body)

_PRINCIPLES = """Principles:
1. Base the reading on the measurements given; do not invent data.
2. Use the vocabulary of classical Chinese physiognomy.
3. Keep a mysterious, professional and encouraging tone.
4. Mark anything that cannot be measured from landmarks with "[inferred]".
5. Be specific and personal rather than generic."""

_COMMON_FIELDS = """  "title": "reading title, a few words",
  "score": integer between 50 and 99,
  "archetype": "archetype label",
  "poem": "four-line verse, lines separated by \\n","""

FACE_SCHEMA = """{
%s
  "sanTing": {"overview": "...", "upper": "...", "middle": "...", "lower": "..."},
  "wuGuan": {"brow": "...", "eye": "...", "nose": "...", "mouth": "...", "ear": "...", "earIsInferred": true},
  "twelvePalaces": {"mingGong": "...", "caiBo": "...", "xiongDi": "...", "tianZhai": "...", "nanNv": "...", "nuPu": "...",
                    "fuQi": "...", "qianYi": "...", "jiE": "...", "guanLu": "...", "fuDe": "...", "fuMu": "..."},
  "dynamic": {"boneStructure": "[inferred] ...", "complexion": "[inferred] ...", "spiritEssence": "...", "isInferred": true},
  "summary": {"personality": "...", "career": "...", "wealth": "...", "love": "...", "health": "...", "lucky": "..."},
  "details": {}
}""" % _COMMON_FIELDS

HAND_SCHEMA = """{
%s
  "palmType": {"element": "...", "description": "...", "personality": "...", "career": "..."},
  "mainLines": {"lifeLine": "...", "wisdomLine": "...", "emotionLine": "..."},
  "secondaryLines": {"careerLine": "[inferred] ...", "successLine": "[inferred] ...", "marriageLine": "[inferred] ...", "wealthLine": "[inferred] ..."},
  "mounts": {"jupiter": "...", "saturn": "...", "apollo": "...", "mercury": "...", "venus": "...", "moon": "..."},
  "handComparison": {"innate": "...", "acquired": "...", "comparison": "..."},
  "summary": {"personality": "...", "career": "...", "wealth": "...", "love": "...", "health": "...", "lucky": "..."},
  "details": {}
}""" % _COMMON_FIELDS

BODY_SCHEMA = """{
%s
  "details": {"postureAnalysis": "...", "energyAnalysis": "...", "healthAdvice": "..."}
}""" % _COMMON_FIELDS

_SUBJECT = {
    VisionMode.FACE: ("face reading", FACE_SCHEMA),
    VisionMode.HAND: ("palm reading", HAND_SCHEMA),
    VisionMode.BODY: ("posture reading", BODY_SCHEMA),
}

def system_prompt(mode: VisionMode) -> str:
    subject, schema = _SUBJECT[VisionMode(mode)]
    return (
        f"You are the reading engine of an AI {subject} system, versed in classical "
        f"physiognomy and modern psychology.\n\n{_PRINCIPLES}\n\n"
        f"Reply with a single JSON object in exactly this shape:\n{schema}"
    )

def user_prompt(metrics: VisionMetrics) -> str:
    subject, _ = _SUBJECT[metrics.mode]
    return (
        f"{format_metrics(metrics)}\n\n"
        f"Give an in-depth {subject} based on the data above. Return plain JSON only, "
        "without markdown code fences."
    )
