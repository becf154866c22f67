# knowledge_quiz/visuals/sd_client.py
import base64
import io
import logging
import os
import uuid
from dataclasses import dataclass
from typing import Optional

import requests
from PIL import Image

from knowledge_quiz.domain.models import Illustration
from knowledge_quiz.visuals.prompt_compiler import compile_illustration_prompt

logger = logging.getLogger(__name__)


@dataclass
class SDConfig:
    url: str = "http://127.0.0.1:7860"
    timeout_sec: float = 120.0
    output_dir: Optional[str] = None
    enabled: bool = True
    steps: int = 24
    width: int = 768
    height: int = 512

    @staticmethod
    def from_env():
        return SDConfig(
            url=os.environ.get("SD_URL", "http://127.0.0.1:7860").strip().rstrip("/"),
            timeout_sec=float(os.environ.get("SD_TIMEOUT_SEC", "120")),
            output_dir=os.environ.get("SD_OUTPUT_DIR", "").strip() or None,
            enabled=os.environ.get("SD_ENABLED", "1").strip().lower() in ("1", "true", "yes", "on"),
        )


class SDClient:
    def __init__(self, config: SDConfig):
        self.config = config

    def generate_image(self, illustration_request: str) -> Optional[Illustration]:
        """
        Invia la richiesta a Stable Diffusion WebUI (Automatic1111).
        None se l'immagine non è disponibile: l'assenza NON è un errore fatale.
        """
        if not self.config.enabled:
            return None
        if not (illustration_request or "").strip():
            logger.warning("[SD] Richiesta illustrazione vuota: salto.")
            return None

        sd_prompt = compile_illustration_prompt(illustration_request)
        payload = {
            "prompt": sd_prompt.prompt,
            "negative_prompt": sd_prompt.negative_prompt,
            "steps": self.config.steps,
            "cfg_scale": 7,
            "width": self.config.width,  # orizzontale per i diagrammi
            "height": self.config.height,
            "sampler_name": "DPM++ 2M Karras",
            "batch_size": 1,
        }

        try:
            response = requests.post(
                f"{self.config.url}/sdapi/v1/txt2img", json=payload, timeout=self.config.timeout_sec
            )
        except requests.exceptions.ConnectionError:
            logger.warning("[SD] Impossibile connettersi a Stable Diffusion. WebUI aperto con --api?")
            return None
        except requests.exceptions.RequestException as e:
            logger.warning("[SD] Errore richiesta: %s", e)
            return None

        if response.status_code != 200:
            logger.warning("[SD] Errore API: %s - %s", response.status_code, response.text[:300])
            return None

        try:
            body = response.json() or {}
        except ValueError as e:
            logger.warning("[SD] Risposta non JSON: %s", e)
            return None
        images = (body.get("images") or []) if isinstance(body, dict) else []
        if not images:
            logger.warning("[SD] Nessuna immagine nella risposta.")
            return None

        return self._decode(images[0])

    def _decode(self, b64_image: str) -> Optional[Illustration]:
        # Decodifica base64 + verifica con Pillow che sia davvero un'immagine
        try:
            image_data = base64.b64decode(b64_image)
            with Image.open(io.BytesIO(image_data)) as img:
                img.load()
                width, height = img.size
                png = io.BytesIO()
                img.save(png, format="PNG")
        except Exception as e:
            logger.warning("[SD] Immagine non valida: %s", e)
            return None

        data = png.getvalue()
        path = None
        if self.config.output_dir:
            os.makedirs(self.config.output_dir, exist_ok=True)
            path = os.path.join(self.config.output_dir, f"illustration_{uuid.uuid4().hex[:6]}.png")
            with open(path, "wb") as f:
                f.write(data)
            logger.info("[SD] Immagine salvata: %s", path)

        return Illustration(data=data, mime_type="image/png", width=width, height=height, path=path)
