"""Rule-based readings that need no network.

Produces reports in the legacy flat `details` shape. Used when no narrative
endpoint is configured, or explicitly via `--local` on the CLI.
"""
from __future__ import annotations

from ..schemas.landmarks import VisionMode
from ..schemas.metrics import BodyMetrics, FaceMetrics, HandMetrics, VisionMetrics
from ..schemas.report import AnalysisReport
from .prompt import resolve_face_ratios, zone_shares

# dominant zone -> (title, archetype, base score)
ZONE_ARCHETYPES = {
    "upper": ("Star of Insight", "Thinker · Wood", 75),
    "middle": ("Star of Command", "Doer · Fire", 80),
    "lower": ("Keeper of Treasure", "Steady · Earth", 78),
    "balanced": ("Harmony of Yin", "Balanced · Water", 82),
}

ZONE_TEXT = {
    "upper": (
        "A broad, full upper zone. Early years run smoothly; you learn fast and plan well.",
        "An exceptionally high upper zone: sharp abstract thinking and a strategist's mind.",
    ),
    "middle": (
        "A strong middle zone. Mid-life brings momentum; you act decisively and carry responsibility.",
        "A commanding middle zone: iron will and a natural leader's drive in demanding settings.",
    ),
    "lower": (
        "A solid lower zone. Later life is settled; you value family, patience and steady growth.",
        "A wide, generous lower zone: deep reserves, reliability and a talent for building wealth over time.",
    ),
    "balanced": (
        "The three zones are evenly matched. Fortune rises steadily with few sharp swings; "
        "you balance reason and empathy and thrive where coordination matters.",
    ),
}

FACE_POEMS = {
    "upper": ("A lofty brow holds wisdom deep,\nearly honours yours to keep.", "High heaven's court, a scholar's fate,\npatient work will make you great."),
    "middle": ("Nose and cheek bear power's mark,\nmid-life fire lights the dark.", "Strong the bridge and bright the brow,\nthe climb is yours, begin it now."),
    "lower": ("A rounded chin, a fortune sound,\nlater years with plenty crowned.", "Broad the jaw and long the road,\nlate rewards for the heavy load."),
    "balanced": ("Three zones even, calm and clear,\nfew the storms throughout the year.", "Where the face is kind and fair,\ngood fortune follows everywhere."),
}

def _band(value: float, bands: list[tuple[float, str]], fallback: str) -> str:
    """First text whose threshold value exceeds; bands ordered high to low."""
    for thr, text in bands:
        if value > thr:
            return text
    return fallback

def _face_score(up: float, mid: float, low: float, r: dict[str, float]) -> int:
    features = [
        (up, 8), (mid, 10), (low, 8), (r["face_symmetry"], 12),
        (r["eye_roundness"] if r["eye_roundness"] > 0.35 else 0.7 - r["eye_roundness"], 5),
        (r["nose_height_ratio"], 6),
        (r["cheekbone_width"] if r["cheekbone_width"] > 0.9 else 0.85, 5),
        (r["lip_fullness"], 4), (r["jaw_width"], 4),
    ]
    score = 70 + sum(v * w for v, w in features)
    return max(50, min(99, int(score)))

def face_reading(face: FaceMetrics) -> AnalysisReport:
    dominant = face.zones.dominant
    up, mid, low = zone_shares(face)
    r = resolve_face_ratios(face.ratios)
    title, archetype, _ = ZONE_ARCHETYPES[dominant]

    share = {"upper": up, "middle": mid, "lower": low}.get(dominant, 0.0)
    variants = ZONE_TEXT[dominant]
    zone = variants[1] if len(variants) > 1 and share > 0.36 else variants[0]

    eye = _band(r["eye_roundness"], [
        (0.52, "Large round eyes: open, expressive and emotionally generous."),
        (0.40, "Well-proportioned eyes: reason and feeling held in balance."),
    ], "Long narrow eyes: observant, reserved and strategic.")
    if r["eye_distance"] > 0.25:
        eye += " Wide-set eyes show a tolerant, easy-going nature."
    elif r["eye_distance"] < 0.20:
        eye += " Close-set eyes show focus, at times stubbornness."

    nose = _band(r["nose_width_ratio"], [
        (0.28, "Full nose wings: a strong grip on material fortune."),
        (0.24, "A balanced nose: a measured attitude toward money."),
    ], "A slender nose: reputation and ideals matter more than wealth.")
    if r["nose_height_ratio"] > 0.26:
        nose += " A high bridge signals self-respect and firm principles."
    elif r["nose_height_ratio"] < 0.22:
        nose += " A low bridge signals an easy-going manner; build confidence."

    mouth = _band(r["lip_fullness"], [
        (0.40, "Full lips: warm, eloquent and well liked."),
        (0.30, "Balanced lips: you know when to speak and when to hold back."),
    ], "Thin lips: precise words and strong principles.")
    if r["mouth_curve"] > 0.01:
        mouth += " Upturned corners show a natural optimism."

    brow = _band(r["brow_thickness"], [
        (0.012, "Thick brows: bold, loyal and quick to act."),
        (0.008, "Moderate brows: firmness tempered by flexibility."),
    ], "Fine brows: gentle, careful and analytical.")
    if r["brow_gap"] > 0.15:
        brow += " A wide gap between the brows shows an open heart."
    elif r["brow_gap"] < 0.10:
        brow += " A narrow gap between the brows hints at overthinking."

    if r["cheekbone_width"] > 0.95:
        cheekbone = "Broad cheekbones: a natural organiser with strong social reach."
    elif r["cheekbone_width"] < 0.88:
        cheekbone = "Reserved cheekbones: you prefer expertise to power struggles."
    else:
        cheekbone = "Moderate cheekbones: leadership without domination."

    jaw = _band(r["jaw_width"], [(0.85, "A wide jaw: persistence and a secure later life.")],
                "A balanced jaw: able to push and to adapt.")
    if r["jaw_width"] < 0.75:
        jaw = "A slender jaw: agile and adaptable; work on stamina."

    symmetry = _band(r["face_symmetry"], [
        (0.95, "Highly symmetric features: steady fortune and an honest, trusted presence."),
        (0.88, "Good symmetry: a fairly stable temperament."),
    ], "Some asymmetry: several sides to your character, and a source of originality.")

    fortune = "\n\n".join([
        _stage("Early years (to 30)", up),
        _stage("Middle years (30-50)", mid),
        _stage("Later years (50+)", low),
    ])

    careers: list[str] = []
    if up > 0.33:
        careers += ["research", "strategy"]
    if mid > 0.33:
        careers += ["management", "entrepreneurship"]
    if r["eye_roundness"] > 0.48:
        careers += ["design", "counselling"]
    if r["nose_width_ratio"] > 0.27:
        careers += ["finance", "real estate"]
    if r["eye_roundness"] < 0.38:
        careers += ["data analysis", "law"]
    if r["lip_fullness"] > 0.38:
        careers += ["teaching", "public relations"]
    careers = list(dict.fromkeys(careers))[:6] or ["roles that combine several strengths"]

    score = _face_score(up, mid, low, r)
    poems = FACE_POEMS[dominant]
    poem = poems[int(score + r["face_symmetry"] * 100) % len(poems)]

    if up > 0.35 and r["eye_roundness"] < 0.35:
        title = "Mind of Heaven"
    elif r["lip_fullness"] > 0.40 and r["eye_roundness"] > 0.50:
        title = "Star of Blessings"
    elif r["face_symmetry"] > 0.95:
        title += " · Noble"

    return AnalysisReport(
        mode=VisionMode.FACE,
        title=title,
        score=score,
        archetype=archetype,
        poem=poem,
        details={
            "zoneAnalysis": zone,
            "eyeAnalysis": eye,
            "noseAnalysis": nose,
            "mouthAnalysis": mouth,
            "browAnalysis": brow,
            "cheekboneAnalysis": cheekbone,
            "jawAnalysis": jaw,
            "symmetryAnalysis": symmetry,
            "fortuneAnalysis": fortune,
            "careerSuggestion": "Suggested directions: " + ", ".join(careers) + ".",
        },
    )

def _stage(label: str, share: float) -> str:
    if share > 0.34:
        return f"{label}: a strong period with support from others."
    if share < 0.30:
        return f"{label}: effort now becomes strength later."
    return f"{label}: steady progress through your own work."

# element -> (title, archetype, score, shape text, career text)
HAND_READINGS = {
    "earth": ("Hand of Earth", "Builder (earth)", 82,
              "Square palm, short fingers: grounded, hard-working, values order.",
              "Suits construction, engineering, logistics and other practical fields."),
    "fire": ("Hand of Fire", "Leader (fire)", 88,
             "Long palm, short fingers: energetic, ambitious, loves a challenge.",
             "Suits entrepreneurship, sales, performance and sport."),
    "air": ("Hand of Air", "Sage (air)", 85,
            "Square palm, long fingers: curious, communicative, logical.",
            "Suits education, media, law, writing and research."),
    "water": ("Hand of Water", "Artist (water)", 80,
              "Long palm, long fingers: sensitive, intuitive, imaginative.",
              "Suits the arts, counselling, care work and design."),
}

def hand_reading(hand: HandMetrics) -> AnalysisReport:
    title, archetype, score, shape, career = HAND_READINGS[hand.element]
    if hand.finger_length_ratio > 0.8:
        fingers = "Long fingers: you look for meaning beyond the material and have a fine aesthetic sense."
    else:
        fingers = "Sturdy fingers: practical, results first."
    return AnalysisReport(
        mode=VisionMode.HAND,
        title=title,
        score=score,
        archetype=archetype,
        poem="The palm holds heaven and earth,\nits lines reveal what you are worth.",
        details={"handShapeAnalysis": shape, "fingerAnalysis": fingers, "careerAdvice": career},
    )

# posture -> (title, archetype, score, posture, energy, health)
BODY_READINGS = {
    "upright": ("Pine in Wind", "Gentleman (upright)", 92,
                "A straight spine and level shoulders: principled, open and balanced.",
                "Energy flows freely; focus comes easily.",
                "Keep it up; tai chi or meditation will deepen the steadiness."),
    "slouch": ("Resting Tortoise", "Strategist (hidden)", 75,
               "A drawn-in chest: deep thinking and quiet strength, perhaps carrying pressure lately.",
               "Energy sinks inward and can stagnate in the chest.",
               "Open the chest with stretches and look up more often."),
    "leaning": ("Willow in Breeze", "Wanderer (changing)", 72,
                "Uneven shoulders: adaptable and spontaneous, sometimes undecided.",
                "Energy leans to one side; the higher shoulder holds hidden tension.",
                "Watch for spinal imbalance; practise mountain pose and notice your stance."),
}

def body_reading(body: BodyMetrics) -> AnalysisReport:
    key = "leaning" if body.posture_type.startswith("leaning") else body.posture_type
    title, archetype, score, posture, energy, health = BODY_READINGS[key]
    return AnalysisReport(
        mode=VisionMode.BODY,
        title=title,
        score=score,
        archetype=archetype,
        poem="Stand like a pine and sit like a bell,\nstraight bones and soft sinews keep you well.",
        details={"postureAnalysis": posture, "energyAnalysis": energy, "healthAdvice": health},
    )

class LocalNarrativeService:
    def generate(self, metrics: VisionMetrics) -> AnalysisReport:
        if metrics.mode == VisionMode.FACE:
            return face_reading(metrics.face)
        if metrics.mode == VisionMode.HAND:
            return hand_reading(metrics.hand)
        return body_reading(metrics.body)
