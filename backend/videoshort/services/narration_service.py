import asyncio
import logging
from typing import Optional

import httpx
from elevenlabs import ElevenLabs, VoiceSettings
from elevenlabs.core.api_error import ApiError

from ..config import Settings
from ..errors import CredentialMissing, EmptyResult, InvalidInput, UpstreamError

logger = logging.getLogger(__name__)

DEFAULT_VOICE = "Aria"

# Caller-facing preset names to ElevenLabs voice ids
VOICE_IDS = {
    "Aria": "9BWtsMINqrJLrRacOk9x",
    "Roger": "CwhRBWXzGAHq8TQ4Fs17",
    "Sarah": "EXAVITQu4vr4xnSDxMaL",
    "Laura": "FGY2WhTYpPnrIDTdsKH5",
    "Charlie": "IKne3meq5aSn9XLyUdCD",
}

OUTPUT_FORMAT = "mp3_44100_128"

VOICE_SETTINGS = VoiceSettings(
    stability=0.5,
    similarity_boost=0.5,
    style=0.5,
    use_speaker_boost=True,
)


def resolve_voice_id(voice_name: Optional[str]) -> str:
    """Map a preset name to its ElevenLabs id; unknown names get the default preset"""
    return VOICE_IDS.get(voice_name, VOICE_IDS[DEFAULT_VOICE])


class NarrationProcessor:
    def __init__(self, settings: Settings, client: Optional[ElevenLabs] = None):
        self.api_key = settings.ELEVEN_API_KEY
        self.model = settings.ELEVEN_MODEL
        if client is None and self.api_key:
            client = ElevenLabs(api_key=self.api_key, base_url=settings.ELEVEN_BASE_URL)
        self.elevenlabs_client = client

    async def generate_voiceover(self, text: str, voice_id: str) -> bytes:
        """Generate an MP3 narration for the script with Eleven Labs"""
        if not self.api_key or self.elevenlabs_client is None:
            raise CredentialMissing("ElevenLabs API key not found")
        if not isinstance(text, str) or not text.strip():
            raise InvalidInput("Invalid text input for voice generation")
        if not voice_id or not isinstance(voice_id, str):
            raise InvalidInput("Invalid voice ID")

        logger.info("Generating voice narration, voice id %s, text length %d", voice_id, len(text))

        def _sync_convert() -> bytes:
            audio = self.elevenlabs_client.text_to_speech.convert(
                voice_id=voice_id,
                text=text.strip(),
                model_id=self.model,
                output_format=OUTPUT_FORMAT,
                voice_settings=VOICE_SETTINGS,
            )
            # The SDK streams the body back in chunks
            return b"".join(audio)

        try:
            audio_data = await asyncio.to_thread(_sync_convert)
        except ApiError as e:
            logger.error("ElevenLabs API error: %s %s", e.status_code, e.body)
            raise UpstreamError(
                f"ElevenLabs API error: {e.status_code} - {e.body}",
                status_code=e.status_code,
                body=e.body,
            ) from e
        except httpx.TransportError as e:
            logger.error("ElevenLabs request failed: %s", e)
            raise UpstreamError(f"ElevenLabs request failed: {e}") from e

        if not audio_data:
            raise EmptyResult("ElevenLabs API returned empty audio data")

        logger.info("Voice narration generated successfully, size: %d bytes", len(audio_data))
        return audio_data
