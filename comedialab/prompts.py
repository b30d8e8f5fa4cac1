"""Prompt text and response schemas for the comedy assistant."""

from typing import Any, Dict, Optional

from comedialab.models import JokeParts, Technique

MENTOR_PERSONA = (
    "Act as a senior stand-up comedy writer with expertise in the Greg Dean "
    "method and Leo Lins' mapping style."
)
LANGUAGE_RULE = "Answer in the same language as the material you were given."

GREG_DEAN_INSTRUCTION = (
    "Apply the Greg Dean method: identify the 'Connector' (the element with a "
    "double meaning in the setup), make the 'Assumption' clear and create a "
    "'Reinterpretation' (punchline) that surprises."
)
LEO_LINS_INSTRUCTION = (
    "Apply Leo Lins' style: use Mapping. List traits of the subject, look for "
    "technical angles, explore the absurd and, where it fits, use acid humor "
    "or sharp social observation. Focus on word economy."
)

_STRING = {"type": "STRING"}
_PARTS_PROPERTIES = {"premise": _STRING, "setup": _STRING, "punchline": _STRING}
_PARTS_REQUIRED = ["premise", "setup", "punchline"]

THEMES_SCHEMA: Dict[str, Any] = {
    "type": "OBJECT",
    "properties": {
        "ideas": {"type": "ARRAY", "items": _STRING},
        "explanation": _STRING,
    },
    "required": ["ideas"],
}

SUGGESTIONS_SCHEMA: Dict[str, Any] = {
    "type": "OBJECT",
    "properties": {
        "suggestions": {
            "type": "ARRAY",
            "items": {
                "type": "OBJECT",
                "properties": _PARTS_PROPERTIES,
                "required": _PARTS_REQUIRED,
            },
        }
    },
    "required": ["suggestions"],
}

REFINED_SCHEMA: Dict[str, Any] = {
    "type": "OBJECT",
    "properties": {**_PARTS_PROPERTIES, "explanation": _STRING},
    "required": _PARTS_REQUIRED,
}


def themes_prompt(context: Optional[str] = None, count: int = 5) -> str:
    context = (context or "").strip()
    if context:
        return (
            f"Generate {count} unusual themes for stand-up jokes based on the context: "
            f"{context}. Focus on everyday situations, social observations or "
            f"personal frustrations. {LANGUAGE_RULE}"
        )
    return f"Generate {count} random, highly relatable themes for stand-up comedy jokes."


def expand_prompt(theme: str, count: int = 3) -> str:
    return f"""Act as a comedy writing mentor who knows Greg Dean and Leo Lins.
For the theme "{theme}", suggest {count} different approaches.
For each approach, provide:
1. A clear premise.
2. A setup that builds a solid assumption (Greg Dean).
3. A punchline that reveals an unexpected reinterpretation (the "connector").
Think of original, technical and funny angles. {LANGUAGE_RULE}"""


def technique_instruction(technique: Technique) -> str:
    if technique == Technique.GREG_DEAN:
        return GREG_DEAN_INSTRUCTION
    if technique == Technique.LEO_LINS:
        return LEO_LINS_INSTRUCTION
    return f'Use the "{technique.value}" technique to improve this joke.'


def refine_prompt(parts: JokeParts, technique: Technique) -> str:
    return f"""{MENTOR_PERSONA}
{technique_instruction(technique)}

Original premise: {parts.premise}
Original setup: {parts.setup}
Original punchline: {parts.punchline}

Return the improved version. {LANGUAGE_RULE}"""
