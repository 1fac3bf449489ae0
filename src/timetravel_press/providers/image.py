"""Image generation provider with support for multiple backends."""

from __future__ import annotations

import base64
import logging
import time
from io import BytesIO
from typing import Any, Awaitable, Callable

from google import genai
from google.genai import types
from PIL import Image, ImageDraw, ImageFont, ImageOps
from tenacity import retry, retry_if_exception, stop_after_attempt, wait_exponential

from ..constants import NewspaperStyle
from .config import ImageProviderConfig, ProviderConfig, load_provider_config

_logger = logging.getLogger("ai_calls")

# Type for AI event callback
AIEventCallback = Callable[[dict[str, Any]], Awaitable[None]] | None

IMAGE_PROMPT_TEMPLATE = """Create a vintage Japanese newspaper photograph from the specified era.
Style requirements:
- Photorealistic vintage newspaper print quality
- Halftone dot texture
- Ink bleed effect
- Aged paper texture
- Monochrome or sepia newsprint aesthetic
- {era} era photography style
- Professional photojournalism composition

Subject: {subject}"""

STYLE_MODIFIERS = [
    "photorealistic vintage newspaper print",
    "halftone dots texture",
    "ink bleed effect",
    "aged paper texture",
    "monochrome newsprint",
]

ERA_NAMES = {
    NewspaperStyle.SHOWA: "Japanese Showa",
    NewspaperStyle.HEISEI: "Japanese Heisei",
    NewspaperStyle.REIWA: "Japanese Reiwa, retro-filtered",
}

DEFAULT_SIZE = (512, 384)

# Sepia newsprint palette for placeholders
_PAPER_COLOR = (212, 196, 168)
_INK_COLOR = (61, 61, 61)


def build_image_prompt(prompt: str, era: NewspaperStyle | str) -> str:
    """Wrap an article image prompt in the vintage newspaper template."""
    era = NewspaperStyle(era)
    subject = f"{prompt}, {', '.join(STYLE_MODIFIERS)}"
    return IMAGE_PROMPT_TEMPLATE.format(era=ERA_NAMES[era], subject=subject)


def to_data_uri(image_bytes: bytes, mime_type: str = "image/jpeg") -> str:
    """Encode image bytes as a data URI."""
    encoded = base64.b64encode(image_bytes).decode("ascii")
    return f"data:{mime_type};base64,{encoded}"


def _is_transient(error: BaseException) -> bool:
    """Rate-limit and overload errors are worth retrying."""
    message = str(error)
    return any(code in message for code in ("429", "503", "RESOURCE_EXHAUSTED", "UNAVAILABLE"))


class ImageProvider:
    """Unified image generation provider.

    Backends:
    - gemini: Gemini image models via google-genai
    - placeholder: locally rendered sepia card (no network)

    ``generate`` never raises. A failure on every backend yields ``None`` so a
    batch of calls can be gathered uniformly.

    Usage:
        provider = ImageProvider()
        data_uri = await provider.generate("crowd at the Olympic opening", "showa")
    """

    def __init__(self, config: ProviderConfig | None = None, event_callback: AIEventCallback = None):
        """Initialize image provider.

        Args:
            config: Provider configuration. If None, loads from default config file.
            event_callback: Optional callback for AI events (for progress tracking).
        """
        self.config = config or load_provider_config()
        self._event_callback = event_callback
        self._genai_clients: dict[str, genai.Client] = {}
        self._current_provider: str | None = None
        self._total_calls = 0

    async def _emit_event(self, event: dict[str, Any]) -> None:
        """Emit an AI event if callback is set."""
        if self._event_callback:
            await self._event_callback(event)

    def _get_genai_client(self, config: ImageProviderConfig) -> genai.Client:
        """Get or create a google-genai client for the configured key."""
        api_key = config.get_api_key()
        if not api_key:
            raise ValueError(f"{config.api_key_env or 'api_key'} not set")
        if api_key not in self._genai_clients:
            self._genai_clients[api_key] = genai.Client(api_key=api_key)
        return self._genai_clients[api_key]

    async def generate(self, prompt: str, era: NewspaperStyle | str) -> str | None:
        """Generate one image as a data URI.

        Args:
            prompt: Article image prompt.
            era: Newspaper style the photo should imitate.

        Returns:
            ``data:image/jpeg;base64,...`` or None when every backend failed.
        """
        try:
            full_prompt = build_image_prompt(prompt, era)
        except ValueError as e:
            _logger.warning(f"IMAGE_PROMPT_ERROR | era:{era} | error:{e}")
            return None

        failed_providers: list[str] = []

        for provider_name, provider_config in self.config.get_enabled_image_providers():
            try:
                self._current_provider = provider_name

                await self._emit_event({
                    "type": "image_call",
                    "provider": provider_name,
                    "model": provider_config.model,
                    "prompt_preview": full_prompt[:200],
                    "failed_providers": failed_providers.copy(),
                })

                start_time = time.time()

                if provider_config.type == "gemini":
                    image_bytes = await self._generate_gemini(provider_config, full_prompt)
                elif provider_config.type == "placeholder":
                    image_bytes = self._generate_placeholder(provider_config, prompt)
                else:
                    raise ValueError(f"Unknown provider type: {provider_config.type}")

                if not image_bytes:
                    raise ValueError("Provider returned an empty image")

                duration = time.time() - start_time
                self._total_calls += 1

                _logger.info(
                    f"IMAGE_RESPONSE | provider:{provider_name} | model:{provider_config.model} | "
                    f"duration:{duration:.2f}s | bytes:{len(image_bytes)}"
                )
                await self._emit_event({
                    "type": "image_response",
                    "provider": provider_name,
                    "model": provider_config.model,
                    "duration_seconds": duration,
                    "total_calls": self._total_calls,
                    "image_size_bytes": len(image_bytes),
                    "failed_providers": failed_providers.copy(),
                })

                return to_data_uri(image_bytes)

            except Exception as e:
                failed_providers.append(provider_name)
                _logger.warning(f"IMAGE_ERROR | provider:{provider_name} | error:{e}")
                await self._emit_event({
                    "type": "image_error",
                    "provider": provider_name,
                    "error": str(e)[:100],
                    "failed_providers": failed_providers.copy(),
                })
                if self.config.provider_settings.fallback_on_error:
                    continue
                return None

        return None

    async def _generate_gemini(self, config: ImageProviderConfig, prompt: str) -> bytes:
        """Generate image using a Gemini image model."""
        client = self._get_genai_client(config)
        response = await self._call_gemini(client, config, prompt)

        if response.candidates:
            for part in response.candidates[0].content.parts or []:
                inline = getattr(part, "inline_data", None)
                if inline and inline.data and (inline.mime_type or "").startswith("image/"):
                    size = self._configured_size(config)
                    return self._fit_image(inline.data, size)

        raise ValueError("No image in Gemini response")

    @retry(
        retry=retry_if_exception(_is_transient),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def _call_gemini(
        self,
        client: genai.Client,
        config: ImageProviderConfig,
        prompt: str,
    ) -> Any:
        """Call the Gemini API, retrying rate-limit and overload errors."""
        image_config = None
        if "aspect_ratio" in config.settings:
            image_config = types.ImageConfig(aspect_ratio=config.settings["aspect_ratio"])

        return await client.aio.models.generate_content(
            model=config.model,
            contents=prompt,
            config=types.GenerateContentConfig(
                response_modalities=["IMAGE", "TEXT"],
                image_config=image_config,
            ),
        )

    def _configured_size(self, config: ImageProviderConfig) -> tuple[int, int]:
        width = int(config.settings.get("width", DEFAULT_SIZE[0]))
        height = int(config.settings.get("height", DEFAULT_SIZE[1]))
        return (width, height)

    def _generate_placeholder(self, config: ImageProviderConfig, prompt: str) -> bytes:
        """Render a sepia newsprint card standing in for a photo."""
        width, height = self._configured_size(config)
        img = Image.new("RGB", (width, height), _PAPER_COLOR)
        draw = ImageDraw.Draw(img)

        # Halftone dot field
        step = 12
        for y in range(step, height - step, step):
            for x in range(step, width - step, step):
                radius = 1 + ((x + y) // step) % 3
                draw.ellipse((x - radius, y - radius, x + radius, y + radius), fill=(190, 172, 142))

        draw.rectangle((4, 4, width - 5, height - 5), outline=_INK_COLOR, width=3)

        font = ImageFont.load_default()
        caption = prompt.encode("ascii", "ignore").decode("ascii")[:48] or "TIMETRAVEL PRESS"
        draw.text((16, height - 28), caption, fill=_INK_COLOR, font=font)

        output = BytesIO()
        img.save(output, format="JPEG", quality=85)
        return output.getvalue()

    def _fit_image(self, image_bytes: bytes, target_size: tuple[int, int]) -> bytes:
        """Cover-crop to the slot size and re-encode as JPEG."""
        with Image.open(BytesIO(image_bytes)) as img:
            fitted = ImageOps.fit(img.convert("RGB"), target_size, Image.Resampling.LANCZOS)

        output = BytesIO()
        fitted.save(output, format="JPEG", quality=90, optimize=True)
        return output.getvalue()

    @property
    def current_provider(self) -> str | None:
        """Get the name of the last used provider."""
        return self._current_provider

    @property
    def total_calls(self) -> int:
        """Get total number of successful image calls."""
        return self._total_calls
