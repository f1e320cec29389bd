"""Convert a text or subtitle file to speech from the command line.

Usage:
    tts-relay-synthesize story.txt -o story.mp3 --cookie "$SPEECH_COOKIE"
    tts-relay-synthesize episode.srt -o episode.mp3 --voice BV075_streaming
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
import sys
from pathlib import Path

from .config import get_settings
from .services.speech_client import SpeechClient
from .services.tts.assembler import AudioAssembler
from .services.tts.delivery import ReturnInline
from .services.tts.errors import SpeechError
from .services.tts.pipeline import SpeechPipeline
from .services.tts.synthesizer import SegmentSynthesizer
from .services.tts.transcoder import create_transcoder
from .services.tts.types import SpeechJob
from .services.tts.voices import DEFAULT_VOICE_ID, VOICE_IDS

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Synthesize a text or SRT file into one MP3 file",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s notes.txt -o notes.mp3 --cookie "sessionid=..."
  %(prog)s subs.srt -o subs.mp3 --voice vi_female_huong
  %(prog)s - --srt -o out.mp3 < subs.srt
""",
    )
    parser.add_argument("input", help="Input file, or - for stdin")
    parser.add_argument("--output", "-o", required=True, help="Output MP3 path")
    parser.add_argument(
        "--voice",
        "-v",
        default=DEFAULT_VOICE_ID,
        choices=sorted(VOICE_IDS),
        help="Voice identifier",
    )
    parser.add_argument(
        "--cookie",
        default=os.getenv("SPEECH_COOKIE"),
        help="Speech endpoint session cookie (default: $SPEECH_COOKIE)",
    )
    parser.add_argument(
        "--srt",
        action="store_true",
        help="Treat input as SRT subtitles (implied by a .srt extension)",
    )
    parser.add_argument(
        "--no-timing",
        action="store_true",
        help="Join subtitle segments back to back instead of following cue times",
    )
    return parser


async def synthesize_file(args: argparse.Namespace) -> int:
    settings = get_settings()

    if args.input == "-":
        text = sys.stdin.read()
        is_srt = args.srt
    else:
        source = Path(args.input)
        if not source.is_file():
            print(f"Input file not found: {source}", file=sys.stderr)
            return 2
        text = source.read_text(encoding="utf-8")
        is_srt = args.srt or source.suffix.lower() == ".srt"

    job = SpeechJob(
        text=text,
        voice=args.voice,
        input_type="srt" if is_srt else "text",
        credential=(args.cookie or "").strip(),
    )

    speech_client = SpeechClient(settings)
    transcoder = None if args.no_timing else create_transcoder(settings)
    pipeline = SpeechPipeline(
        SegmentSynthesizer(speech_client),
        AudioAssembler(transcoder),
        ReturnInline(),
        max_text_chars=settings.text_max_chars,
        chunk_max_chars=settings.chunk_max_chars,
        pacing_seconds=settings.synthesis_pacing_seconds,
    )

    try:
        pipeline.validate(job)
        track = await pipeline.render(job)
    except SpeechError as exc:
        print(f"Error: {exc.public_message}", file=sys.stderr)
        logger.debug("Synthesis failed", exc_info=True)
        return 1
    finally:
        await speech_client.aclose()

    output = Path(args.output)
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_bytes(track.data)

    if track.timing_dropped and not args.no_timing:
        print("Warning: ffmpeg unavailable, subtitle timing was not preserved", file=sys.stderr)
    print(f"Wrote {len(track.data)} bytes to {output} ({track.mode} assembly)")
    return 0


def main(argv: list[str] | None = None) -> int:
    log_level = getattr(logging, os.getenv("LOG_LEVEL", "WARNING").upper(), logging.WARNING)
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    args = build_parser().parse_args(argv)
    return asyncio.run(synthesize_file(args))


if __name__ == "__main__":
    sys.exit(main())
