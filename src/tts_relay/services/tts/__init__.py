"""
Speech pipeline package.

Modules, in data-flow order:

- subtitles: SRT text → ordered TimedSegments
- text_segmenter: plain text → bounded chunks
- synthesizer: one segment → AudioSegment via the speech endpoint
- assembler: AudioSegments → one AssembledTrack (simple or duration-aware)
- delivery: AssembledTrack → retained file URL or inline base64 payload
- pipeline: sequences the stages for one request

    raw text ─▶ segments ─▶ audio segments ─▶ merged track ─▶ output
"""

from .assembler import AudioAssembler
from .delivery import PersistToRetentionStore, ReturnInline
from .pipeline import SpeechPipeline
from .subtitles import parse_srt
from .synthesizer import SegmentSynthesizer
from .text_segmenter import TextSegmenter

__all__ = [
    "AudioAssembler",
    "PersistToRetentionStore",
    "ReturnInline",
    "SegmentSynthesizer",
    "SpeechPipeline",
    "TextSegmenter",
    "parse_srt",
]
