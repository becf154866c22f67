# knowledge_quiz/visuals/prompt_compiler.py
from __future__ import annotations

from dataclasses import dataclass
from typing import List, Tuple

# Stile "diagramma da libro di testo". La parte dopo NEGATIVE: va nel negative_prompt.
DIAGRAM_STYLE = """
educational diagram, textbook illustration, clean flat colors, white background
clear legible text labels pointing to key parts, simple composition
NEGATIVE: photo, photorealistic, blurry, low quality, watermark, signature, cluttered, nsfw
"""


@dataclass(frozen=True)
class SDPrompt:
    prompt: str
    negative_prompt: str


def compile_illustration_prompt(illustration_request: str, style: str = DIAGRAM_STYLE) -> SDPrompt:
    """
    Compone il prompt per Stable Diffusion:
      - richiesta del valutatore (soggetto) SEMPRE in testa
      - stile globale in coda
      - NEGATIVE: estratto dallo stile come negative_prompt
    """
    request = (illustration_request or "").strip()
    if not request:
        raise ValueError("Richiesta illustrazione vuota.")

    pos_style, neg_style = _split_negative(style)

    chunks: List[str] = [f"diagram of {request}"]
    chunks.extend(_to_chunks(pos_style))

    return SDPrompt(prompt=_join(chunks), negative_prompt=_join(_to_chunks(neg_style)))


# -------------------------
# Helpers
# -------------------------

def _split_negative(text: str) -> Tuple[str, str]:
    """
    Se trova 'NEGATIVE:' (case-insensitive) separa positivo/negativo.
    """
    if not text:
        return "", ""

    idx = text.upper().find("NEGATIVE:")
    if idx < 0:
        return text, ""
    return text[:idx].strip(), text[idx + len("NEGATIVE:"):].strip()


def _to_chunks(text: str) -> List[str]:
    # righe non vuote, commenti '#' ignorati
    out: List[str] = []
    for line in (text or "").splitlines():
        s = line.strip()
        if s and not s.startswith("#"):
            out.append(s)
    return out


def _join(chunks: List[str]) -> str:
    # unione in stile SD: virgole tra chunk
    parts = [c.strip().strip(",") for c in chunks if c and c.strip()]
    joined = ", ".join(parts).strip().strip(",")
    while ", ," in joined:
        joined = joined.replace(", ,", ",")
    return joined
