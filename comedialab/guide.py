"""The technique glossary, deep links into it and share links."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple
from urllib.parse import urlencode

GUIDE_PREFIX = "guide-"
SECTION_PARAM = "section"


@dataclass(frozen=True)
class GuideSection:
    id: str
    title: str
    summary: str
    badge: str = ""
    points: Tuple[str, ...] = ()
    examples: Tuple[Tuple[str, str], ...] = field(default_factory=tuple)


SECTIONS: List[GuideSection] = [
    GuideSection(
        id="guide-greg-dean",
        title="The Greg Dean System",
        badge="METHOD",
        summary=(
            "The most technical method in comedy. It rests on the Assumption (what the "
            "audience thinks will happen) and the Reinterpretation (what actually happens)."
        ),
        points=(
            "Connector: the element in the setup that allows two meanings.",
            "Target: the wrong assumption the audience makes.",
        ),
        examples=(
            (
                "I told my doctor I broke my arm in two places. He told me to stop going to those places.",
                'Connector: "places" (Assumption: spots on the body; Reinterpretation: locations).',
            ),
            (
                "I asked my girlfriend what she wanted for her birthday. She said 'something with diamonds'. So I gave her a deck of cards.",
                'Connector: "diamonds" (Assumption: jewels; Reinterpretation: the card suit).',
            ),
            (
                "My wife told me to embrace my mistakes. So I hugged her.",
                'Connector: "mistakes" (Assumption: failures; Reinterpretation: a person).',
            ),
        ),
    ),
    GuideSection(
        id="guide-leo-lins",
        title="Mapping (Leo Lins)",
        badge="STYLE",
        summary=(
            "Exhaustive exploration. Before writing the joke you map every noun, verb and "
            "concept related to the topic. The joke comes from linking two distant points "
            "of that map."
        ),
        points=(
            "Mapping 'Airplane': seat, turbine, parachute, price of a snack, crying child, fear of falling.",
        ),
        examples=(
            (
                "Flying is the only situation where you pay a fortune to be stuck in a seat smaller than your car's and still pray the 'turbulence' is just a drunk driver.",
                "Map: Seat, High price, Turbulence, Fear, Confinement.",
            ),
            (
                "Christmas is the only time of year you let strangers dressed in red into your house to leave a present. Any other month you'd call the police.",
                "Map: Christmas, Strangers, Red outfit, Presents, Break-in, Police.",
            ),
        ),
    ),
    GuideSection(
        id="guide-structure",
        title="1. Premise, Setup and Punchline",
        summary=(
            "Premise: the idea or topic, something the audience gets instantly. Setup: the "
            "context that builds an expectation. Punchline: the twist that breaks it."
        ),
        examples=(
            (
                "I hate the gym. It's the only place where everyone is sweating for a goal and you just want to go home and eat pizza.",
                "",
            ),
        ),
    ),
    GuideSection(
        id="guide-callback",
        title="2. The Callback",
        summary="A reference to something said earlier in the set.",
        examples=(("My cat still thinks I'm the guy who cleans his litter box as a hobby.", ""),),
    ),
    GuideSection(
        id="guide-rule-of-three",
        title="3. Rule of Three",
        summary="Pattern, pattern, rhythmic break.",
        examples=(("There are three kinds of lies: lies, damned lies and résumés.", ""),),
    ),
    GuideSection(
        id="guide-pun",
        title="4. Pun",
        summary="Playing with the multiple meanings of a word.",
        examples=(("Why did the coffee file a police report? It got mugged.", ""),),
    ),
    GuideSection(
        id="guide-irony",
        title="5. Irony",
        summary="The gap between social expectation and reality.",
        examples=(("I love how people post #grateful while cursing the driver next to them in traffic.", ""),),
    ),
    GuideSection(
        id="guide-misdirection",
        title="6. Misdirection",
        summary="Lead the audience to a logical conclusion, then deliver an unexpected ending.",
        examples=(
            (
                "Last night a burglar broke in looking for money. I got out of bed and we searched together.",
                "",
            ),
        ),
    ),
    GuideSection(
        id="guide-surprise",
        title="7. Surprise",
        summary="A completely unexpected element that interrupts the logical flow of the story.",
        examples=(
            (
                "My wife said I should be more affectionate. So now I hug her every time she's doing the dishes. She hates it, but I feel like a hero.",
                "",
            ),
        ),
    ),
    GuideSection(
        id="guide-dramatic-irony",
        title="8. Dramatic Irony",
        summary=(
            "The audience holds a crucial piece of information the character in the joke "
            "doesn't, which builds comic tension."
        ),
        examples=(
            (
                "The skydiving instructor yelling 'Relax, the reserve never fails!' while he forgot to put on his own harness.",
                "",
            ),
        ),
    ),
    GuideSection(
        id="guide-sarcasm",
        title="9. Sarcasm",
        summary=(
            "Irony used to mock or show contempt, usually by saying the opposite of what "
            "you mean with a specific tone."
        ),
        examples=(
            (
                "Ah yes, because nothing says 'serious professional' like a video call with your cat walking across your head.",
                "",
            ),
        ),
    ),
]

SECTIONS_BY_ID: Dict[str, GuideSection] = {s.id: s for s in SECTIONS}


def section_from_fragment(fragment: Optional[str]) -> Optional[str]:
    """Return the guide section a ``#guide-<id>`` link points at, if it exists."""
    if not fragment:
        return None
    section_id = fragment.lstrip("#")
    if not section_id.startswith(GUIDE_PREFIX):
        return None
    return section_id if section_id in SECTIONS_BY_ID else None


def share_url(section_id: str, base_url: str) -> str:
    base = base_url.split("#", 1)[0].split("?", 1)[0]
    return f"{base}?{urlencode({SECTION_PARAM: section_id})}#{section_id}"


def share_payload(section_id: str, base_url: str) -> Dict[str, str]:
    section = SECTIONS_BY_ID[section_id]
    return {
        "title": f"Comedy technique: {section.title}",
        "text": f"Check out this stand-up technique on ComediaLab: {section.title}",
        "url": share_url(section_id, base_url),
    }


# Rewrites a #guide-<id> fragment into the query string, which the server can see.
FRAGMENT_BRIDGE_SCRIPT = """
<script>
(function() {
  const loc = window.parent.location;
  if (!loc.hash || loc.hash.indexOf('#guide-') !== 0) { return; }
  const params = new URLSearchParams(loc.search);
  const section = loc.hash.substring(1);
  if (params.get('%(param)s') === section) { return; }
  params.set('%(param)s', section);
  loc.replace(loc.pathname + '?' + params.toString() + loc.hash);
})();
</script>
""" % {"param": SECTION_PARAM}
