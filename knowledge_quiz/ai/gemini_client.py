# knowledge_quiz/ai/gemini_client.py
from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, TypeVar

from knowledge_quiz.domain.models import ReferenceDocument

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class GeminiConfig:
    api_key: str
    model: str = "gemini-2.0-flash"  # cambia in .env/config se vuoi
    temperature: float = 0.7
    max_output_tokens: int = 2048
    timeout_sec: float = 60.0

    @staticmethod
    def from_env() -> "GeminiConfig":
        return GeminiConfig(
            api_key=os.environ.get("GEMINI_API_KEY", "").strip(),
            model=os.environ.get("GEMINI_MODEL", "gemini-2.0-flash").strip(),
            temperature=float(os.environ.get("GEMINI_TEMPERATURE", "0.7")),
            max_output_tokens=int(os.environ.get("GEMINI_MAX_TOKENS", "2048")),
            timeout_sec=float(os.environ.get("GEMINI_TIMEOUT_SEC", "60")),
        )


class GeminiClient:
    """
    Client basato sul nuovo SDK google.genai (pacchetto: google-genai).
    Restituisce sempre il testo generato, e offre helper per JSON.
    Il documento di riferimento (se presente) viaggia come Part inline.
    """

    def __init__(self, cfg: GeminiConfig):
        if not cfg.api_key:
            raise ValueError("GeminiConfig.api_key è vuoto.")
        self.cfg = cfg

        # Import SOLO nuovo SDK
        from google import genai  # type: ignore
        from google.genai import types  # type: ignore

        self._types = types
        self._client = genai.Client(
            api_key=cfg.api_key,
            http_options=types.HttpOptions(timeout=int(cfg.timeout_sec * 1000)),
        )

    def generate_text(
        self,
        prompt: str,
        document: Optional[ReferenceDocument] = None,
        json_mode: bool = False,
    ) -> str:
        """
        Genera testo dal modello.
        """
        types = self._types
        contents: Any = prompt
        if document is not None:
            contents = [
                types.Part.from_bytes(data=document.data, mime_type=document.mime_type),
                prompt,
            ]

        resp = self._client.models.generate_content(
            model=self.cfg.model,
            contents=contents,
            config=types.GenerateContentConfig(
                temperature=self.cfg.temperature,
                max_output_tokens=self.cfg.max_output_tokens,
                response_mime_type="application/json" if json_mode else None,
            ),
        )
        text = (resp.text or "").strip()
        if not text:
            raise RuntimeError("Risposta vuota da Gemini.")
        return text

    def generate_json(self, prompt: str, document: Optional[ReferenceDocument] = None) -> Dict[str, Any]:
        """
        Chiede al modello di produrre JSON e lo parse-a.
        Tenta anche estrazione robusta se il modello “incarta” il JSON.
        """
        raw = self.generate_text(prompt, document=document, json_mode=True)
        return parse_json_object(raw)


def ask_json(
    llm: "GeminiClient",
    prompt: str,
    parse: Callable[[Dict[str, Any]], T],
    attempts: int = 3,
    document: Optional[ReferenceDocument] = None,
    label: str = "LLM",
) -> T:
    """
    Chiama il modello e applica il parser; ritenta fino ad `attempts` volte
    (JSON malformato, campi mancanti, errori di rete). Solleva l'ultimo errore.
    """
    last_error: Optional[Exception] = None
    for attempt in range(max(1, attempts)):
        try:
            return parse(llm.generate_json(prompt, document=document))
        except Exception as e:
            last_error = e
            logger.warning("[%s] Errore (Tentativo %d/%d): %s", label, attempt + 1, attempts, e)
    assert last_error is not None
    raise last_error


def parse_json_object(raw: str) -> Dict[str, Any]:
    json_text = _extract_json_text(raw)
    try:
        data = json.loads(json_text)
    except Exception as e:
        raise RuntimeError(
            "JSON non valido da Gemini.\n"
            f"RAW (inizio): {raw[:800]}\n"
            f"JSON_EXTRACT (inizio): {json_text[:800]}"
        ) from e
    if not isinstance(data, dict):
        raise RuntimeError(f"JSON da Gemini non è un oggetto: {type(data).__name__}")
    return data


def _extract_json_text(raw: str) -> str:
    """
    Estrae JSON da:
    - raw JSON puro
    - raw con ```json ... ```
    - raw con testo extra (cerchiamo la prima { e l'ultima })
    """
    s = raw.strip()

    # Caso 1: blocco markdown ```json
    if s.startswith("```"):
        # rimuove le triple backtick iniziali/finali
        s = s.strip("`").strip()
        # se inizia con "json\n"
        if s.lower().startswith("json"):
            s = s.split("\n", 1)[-1].strip()

    # Caso 2: già JSON
    if s.startswith("{") and s.endswith("}"):
        return s

    # Caso 3: estrai tra prima { e ultima }
    first = s.find("{")
    last = s.rfind("}")
    if first != -1 and last != -1 and last > first:
        return s[first : last + 1]

    # fallback: ritorna tutto e lasciamo fallire json.loads con errore chiaro
    return s
