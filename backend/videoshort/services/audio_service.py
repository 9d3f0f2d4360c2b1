import logging

logger = logging.getLogger(__name__)

SMALL_AUDIO_BYTES = 200_000
LARGE_AUDIO_BYTES = 300_000


def condition_audio(audio_data: bytes) -> bytes:
    """Keep the narration under the renderer's upload ceiling.

    Oversized payloads are cut down to LARGE_AUDIO_BYTES, which drops the
    tail of the narration. This stands in for real re-encoding; callers get
    the original bytes back if anything goes wrong here.
    """
    # TODO: replace truncation with a real bitrate reduction once the renderer accepts re-encoded uploads
    logger.info("Original audio size: %d bytes", len(audio_data))
    if len(audio_data) < SMALL_AUDIO_BYTES:
        return audio_data

    try:
        if len(audio_data) > LARGE_AUDIO_BYTES:
            ratio = LARGE_AUDIO_BYTES / len(audio_data)
            # exact integer form of floor(len * ratio)
            compressed = audio_data[: len(audio_data) * LARGE_AUDIO_BYTES // len(audio_data)]
            logger.info(
                "Audio truncated from %d to %d bytes (ratio %.3f)",
                len(audio_data),
                len(compressed),
                ratio,
            )
            return compressed
        return audio_data
    except Exception as e:
        logger.warning("Audio compression failed, using original: %s", e)
        return audio_data
