"""Application configuration. Loads from env vars."""
from pydantic_settings import BaseSettings
from typing import Literal


class Settings(BaseSettings):
    """App settings. Override via environment variables."""

    # Audio: PCM 16-bit mono, 16kHz
    SAMPLE_RATE: int = 16000

    # Frame: 20ms @ 16kHz = 320 samples = 640 bytes
    FRAME_MS: int = 20

    @property
    def FRAME_BYTES(self) -> int:
        return self.SAMPLE_RATE * self.FRAME_MS // 1000 * 2

    # Frame classifier: "energy" = mean |amplitude| only; "webrtc" = energy AND webrtcvad speech
    VAD_MODE: Literal["energy", "webrtc"] = "energy"
    VAD_AGGRESSIVENESS: int = 2  # webrtcvad 0..3
    ENERGY_THRESHOLD: float = 1000.0  # mean |sample| on int16 scale

    # Segmentation: pause closes an utterance; long silence ends the session
    PAUSE_THRESHOLD_SECONDS: float = 2.0
    SILENCE_THRESHOLD_SECONDS: float = 60.0

    # Transcription gate: skip buffers too short or too quiet to be worth an ASR call
    MIN_UTTERANCE_MS: float = 1500.0
    # Only frames above ENERGY_THRESHOLD are buffered, so this rejects buffers only when it is
    # set above ENERGY_THRESHOLD or ENERGY_THRESHOLD is lowered below it
    MIN_SPEECH_ENERGY: float = 500.0

    # ASR backend: "auto" = local first, Cloudflare fallback | "local" | "cloudflare"
    ASR_BACKEND: Literal["auto", "local", "cloudflare"] = "auto"
    TRANSCRIBE_TIMEOUT_SECONDS: float = 30.0
    TRANSCRIBE_LANGUAGE: str = "en"
    TRANSCRIBE_PROMPT: str = (
        "This is a professional business meeting conversation. Participants are discussing "
        "projects, deadlines, action items, and business strategy. Use proper punctuation "
        "and capitalization."
    )

    # Cloudflare Workers AI: remote ASR, sentiment, advice and summary
    CLOUDFLARE_ACCOUNT_ID: str = ""
    CLOUDFLARE_API_TOKEN: str = ""
    REMOTE_WHISPER_MODEL: str = "@cf/openai/whisper-large-v3-turbo"

    # Local Whisper: model loaded once at startup
    LOCAL_WHISPER_MODEL: str = "base"  # tiny | base | small | medium | large-v3
    LOCAL_WHISPER_DEVICE: Literal["cpu", "cuda"] = "cpu"
    LOCAL_WHISPER_COMPUTE_TYPE: Literal["int8", "float16"] = "int8"
    LOCAL_WHISPER_BEAM_SIZE: int = 5

    # Enrichment
    SENTIMENT_MODEL: str = "@cf/huggingface/distilbert-sst-2-int8"
    SENTIMENT_NEUTRAL_BELOW: float = 0.6  # top score below this → neutral
    LLM_MODEL: str = "@cf/meta/llama-3.1-8b-instruct"
    ADVICE_MAX_TOKENS: int = 100
    SUMMARY_MAX_TOKENS: int = 500
    LLM_TIMEOUT_SECONDS: float = 30.0

    # Session close: bounded wait for in-flight utterances before the transcript is final
    FORCED_FLUSH_TIMEOUT_SECONDS: float = 5.0

    # Session persistence: in-memory always; files under TRANSCRIPT_DIR when enabled
    SESSION_SAVE_ENABLED: bool = True
    TRANSCRIPT_DIR: str = "./transcripts"
    TRANSCRIPT_ADD_TIMESTAMPS: bool = True  # prefix each insight line with [MM:SS.ss]
    SESSION_HISTORY_LIMIT: int = 50

    # Logging: level (DEBUG, INFO, WARNING, ERROR); file path empty = console only
    LOG_LEVEL: str = "INFO"
    LOG_FILE: str = ""

    class Config:
        env_file = ".env"
        extra = "ignore"


def get_settings() -> Settings:
    return Settings()
