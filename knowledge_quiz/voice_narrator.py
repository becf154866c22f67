# knowledge_quiz/voice_narrator.py
"""
Canale di narrazione: al massimo UNA frase "viva" alla volta.

- speak() annulla l'audio in riproduzione o in arrivo e ne chiede uno nuovo.
- Ogni richiesta ha un token crescente: un risultato arrivato per una
  richiesta superata viene scartato.
- Errori o audio assente = stato SILENT, mai un'eccezione verso il chiamante.

Sintesi tramite Google Cloud TTS, riproduzione tramite pygame.
Supporto per testi lunghi (>5000 bytes) tramite chunking automatico.
"""

import logging
import os
import re
import tempfile
import threading
import time
import uuid
from dataclasses import dataclass
from typing import Callable, List, Optional

from knowledge_quiz.domain.enums import Language, NarrationState
from knowledge_quiz.domain.errors import EnrichmentFailure

logger = logging.getLogger(__name__)

# Mappa Voci (fallback: voce standard della lingua)
VOICE_MAP = {
    Language.ENGLISH: "en-US-Neural2-D",
    Language.SPANISH: "es-ES-Neural2-B",
    Language.FRENCH: "fr-FR-Neural2-B",
    Language.GERMAN: "de-DE-Neural2-B",
    Language.PORTUGUESE: "pt-BR-Neural2-B",
}


@dataclass(frozen=True)
class TTSConfig:
    enabled: bool = True
    speaking_rate: float = 1.0
    timeout_sec: float = 30.0
    max_chunk_chars: int = 4000

    @staticmethod
    def from_env() -> "TTSConfig":
        return TTSConfig(
            enabled=os.environ.get("TTS_ENABLED", "1").strip().lower() in ("1", "true", "yes", "on"),
            speaking_rate=float(os.environ.get("TTS_SPEAKING_RATE", "1.0")),
            timeout_sec=float(os.environ.get("TTS_TIMEOUT_SEC", "30")),
        )


def _sanitize_text_for_tts(text: str) -> str:
    """Pulisce il testo dal markdown prima della sintesi."""
    if not text: return ""
    s = str(text).strip()
    s = s.replace("*", "").replace("_", "").replace("#", "").replace("`", "")
    s = re.sub(r"<[^>]+>", " ", s)
    s = re.sub(r"\[(.*?)\]\(.*?\)", r"\1", s)
    return re.sub(r"\s+", " ", s).strip()


def _split_text(text: str, max_chars: int = 4000) -> List[str]:
    """Divide il testo in pezzi più piccoli di max_chars senza tagliare le parole."""
    if len(text) <= max_chars:
        return [text]

    chunks = []
    while len(text) > max_chars:
        # Cerca l'ultimo punto fermo entro il limite
        split_idx = text.rfind('.', 0, max_chars)
        if split_idx == -1:
            # Se non ci sono punti, cerca uno spazio
            split_idx = text.rfind(' ', 0, max_chars)
        if split_idx == -1:
            # Se è una parola gigante, taglia brutalmente
            split_idx = max_chars - 1

        chunks.append(text[:split_idx + 1])
        text = text[split_idx + 1:].strip()

    if text:
        chunks.append(text)
    return chunks


class GoogleSpeechSynthesizer:
    """(text, lingua) -> bytes MP3 oppure None."""

    def __init__(self, config: TTSConfig = TTSConfig()):
        self.config = config
        from google.cloud import texttospeech  # type: ignore

        self._tts = texttospeech
        self._client = texttospeech.TextToSpeechClient()

    def synthesize(self, text: str, language: Language) -> Optional[bytes]:
        clean_text = _sanitize_text_for_tts(text)
        if not clean_text:
            return None

        tts = self._tts
        voice = tts.VoiceSelectionParams(language_code=language.code, name=VOICE_MAP.get(language))
        audio_config = tts.AudioConfig(
            audio_encoding=tts.AudioEncoding.MP3,
            speaking_rate=self.config.speaking_rate,
        )

        # DIVIDI IL TESTO IN CHUNK PER EVITARE L'ERRORE 5000 BYTES
        audio = b""
        for chunk in _split_text(clean_text, self.config.max_chunk_chars):
            try:
                response = self._client.synthesize_speech(
                    input=tts.SynthesisInput(text=chunk),
                    voice=voice,
                    audio_config=audio_config,
                    timeout=self.config.timeout_sec,
                )
            except Exception as e:
                raise EnrichmentFailure(f"Sintesi vocale fallita ({language.code}): {e}") from e
            audio += response.audio_content
        return audio or None


class PygameAudioPlayer:
    def __init__(self):
        import pygame  # type: ignore

        self._pygame = pygame
        self._init_lock = threading.Lock()
        # mixer.music è un canale unico: un solo ciclo load -> play -> unload alla volta
        self._play_lock = threading.Lock()

    def _ensure_mixer(self) -> bool:
        with self._init_lock:
            if self._pygame.mixer.get_init():
                return True
            try:
                self._pygame.mixer.init()
                logger.info("[AUDIO] Mixer inizializzato.")
                return True
            except self._pygame.error as e:
                logger.warning("[AUDIO] Errore init pygame: %s", e)
                return False

    def play(self, audio: bytes, should_stop: Callable[[], bool]) -> None:
        """
        Riproduce in modo bloccante finché finisce o should_stop() diventa True.
        Una richiesta superata mentre aspetta il canale non viene mai riprodotta.
        """
        if not self._ensure_mixer():
            return
        with self._play_lock:
            if should_stop():
                return
            music = self._pygame.mixer.music
            temp_path = os.path.join(tempfile.gettempdir(), f"narration_{uuid.uuid4().hex}.mp3")
            with open(temp_path, "wb") as f:
                f.write(audio)
            try:
                music.load(temp_path)
                music.play()
                clock = self._pygame.time.Clock()
                while music.get_busy() and not should_stop():
                    clock.tick(10)
                if should_stop():
                    music.stop()
            finally:
                # Pulizia file temporaneo
                music.unload()
                time.sleep(0.1)
                os.remove(temp_path)

    def stop(self) -> None:
        if self._pygame.mixer.get_init():
            self._pygame.mixer.music.stop()

    def shutdown(self) -> None:
        self.stop()
        self._pygame.mixer.quit()


def _spawn_daemon(target, *args) -> None:
    threading.Thread(target=target, args=args, daemon=True).start()


class NarrationChannel:
    def __init__(self, synthesizer=None, player=None, spawn: Callable = _spawn_daemon):
        self.synthesizer = synthesizer
        self.player = player
        self._spawn = spawn
        self._lock = threading.Lock()
        self._token = 0
        self.state = NarrationState.IDLE
        self.live_text: Optional[str] = None

    @property
    def token(self) -> int:
        return self._token

    def speak(self, text: str, language: Language = Language.ENGLISH) -> Optional[int]:
        """Ritorna il token della richiesta, None se il testo è vuoto (no-op)."""
        if not text or not text.strip():
            return None
        with self._lock:
            self._token += 1
            token = self._token
            self._stop_player()
            if self.synthesizer is None:
                self.state = NarrationState.SILENT
                self.live_text = None
                return token
            self.state = NarrationState.FETCHING
            self.live_text = text
        self._spawn(self._playback_worker, token, text, language)
        return token

    def cancel(self) -> None:
        with self._lock:
            self._token += 1
            self._stop_player()
            self.state = NarrationState.IDLE
            self.live_text = None

    def shutdown(self) -> None:
        self.cancel()
        if self.player is not None and hasattr(self.player, "shutdown"):
            self.player.shutdown()

    def is_current(self, token: int) -> bool:
        return token == self._token

    def _stop_player(self) -> None:
        if self.player is None:
            return
        try:
            self.player.stop()
        except Exception as e:
            logger.warning("[AUDIO] Errore stop: %s", e)

    def _playback_worker(self, token: int, text: str, language: Language) -> None:
        try:
            audio = self.synthesizer.synthesize(text, language)
        except Exception as e:
            logger.warning("[AUDIO] Errore sintesi: %s", e)
            audio = None

        with self._lock:
            if token != self._token:
                logger.debug("[AUDIO] Richiesta %d superata: audio scartato.", token)
                return
            if not audio or self.player is None:
                self.state = NarrationState.SILENT
                return
            self.state = NarrationState.PLAYING

        try:
            self.player.play(audio, should_stop=lambda: token != self._token)
        except Exception as e:
            logger.warning("[AUDIO] Errore riproduzione: %s", e)

        with self._lock:
            if token == self._token:
                self.state = NarrationState.IDLE
                self.live_text = None
