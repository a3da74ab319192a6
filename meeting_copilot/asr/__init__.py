"""ASR: gate, ordered local/remote fallback, Whisper-compatible engines."""
from .base import ASREngine
from .local_whisper import LocalWhisperEngine, load_whisper_model
from .cloudflare import CloudflareWhisperEngine
from .orchestrator import TranscriptionOrchestrator, build_engines
from .gate import GateDecision, TranscriptionGate

__all__ = [
    "ASREngine",
    "LocalWhisperEngine",
    "CloudflareWhisperEngine",
    "load_whisper_model",
    "TranscriptionOrchestrator",
    "build_engines",
    "GateDecision",
    "TranscriptionGate",
]
