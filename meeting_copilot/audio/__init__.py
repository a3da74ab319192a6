"""Audio pipeline: frame splitting, frame classification, pause-based segmentation."""
from .receiver import AudioReceiver
from .vad import FrameActivity, FrameClassifier, classify_frame, frame_energy
from .segmenter import UtteranceBuffer, UtteranceSegmenter
from .wav import pcm_bytes_to_float32, pcm_to_wav

__all__ = [
    "AudioReceiver",
    "FrameActivity",
    "FrameClassifier",
    "classify_frame",
    "frame_energy",
    "UtteranceBuffer",
    "UtteranceSegmenter",
    "pcm_bytes_to_float32",
    "pcm_to_wav",
]
