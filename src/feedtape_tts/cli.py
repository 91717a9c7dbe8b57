"""
Command-Line Interface for feedtape-tts.

Synthesizes articles without running the HTTP server. Quotas still apply:
requests are charged to a local pro user held in memory for the run.

Usage Examples:
    # Single text synthesis
    feedtape-tts --text "Hello world." --out hello.mp3

    # Positional text (same as above)
    feedtape-tts "Hello world." --out hello.mp3

    # Batch processing from file (one article per line)
    feedtape-tts --file articles.txt --out output_dir/

    # Dry-run mode (normalize, detect, split; no provider call)
    feedtape-tts --text "Hola a todos." --dry-run --json

    # Override provider and language
    feedtape-tts --text "Bonjour" --provider openai --language fr

    # List providers
    feedtape-tts --providers

Environment Variables:
    FEEDTAPE_TTS_SETTINGS: Settings file (default config/settings.yaml)
    FEEDTAPE_TTS_PROVIDER: Provider override (polly, openai)
    AWS_REGION / AWS credentials: Polly
    OPENAI_API_KEY: OpenAI
"""

from __future__ import annotations

import argparse
import copy
import json
import os
from pathlib import Path
from typing import Any, Dict, List, Optional
from uuid import uuid4

from feedtape_tts.core.config import ConfigValidationError, Settings, load_settings
from feedtape_tts.core.errors import TTSError
from feedtape_tts.core.logging import configure_logging, fail, get_logger, info, set_request_id
from feedtape_tts.services.validators import ValidationError, validate_language
from feedtape_tts.stores.base import SubscriptionTier
from feedtape_tts.stores.memory import InMemoryUsageStore, InMemoryUserStore
from feedtape_tts.tts.chunker import split_into_batches
from feedtape_tts.tts.language import LanguageDetector
from feedtape_tts.tts.provider import available_providers, create_provider
from feedtape_tts.utils.text import normalize_text

LOCAL_USER_ID = "local"


def _parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="feedtape-tts CLI (serverless article synthesis)")

    parser.add_argument("text_pos", nargs="?", help="Text to synthesize (positional)")
    parser.add_argument("--text", help="Text to synthesize")
    parser.add_argument("--file", help="Batch input file (1 line = 1 article)")

    parser.add_argument("--out", help="Output path (file or dir in batch mode)")

    parser.add_argument("--config", help="Settings file (default: $FEEDTAPE_TTS_SETTINGS or config/settings.yaml)")
    parser.add_argument("--provider", help="Provider override (polly, openai)")
    parser.add_argument("--language", help="Language override (en, es, fr, de, it, pt)")

    parser.add_argument("--dry-run", action="store_true",
                        help="Normalize, detect and split without synthesis")
    parser.add_argument("--json", action="store_true",
                        help="Print JSON summary")
    parser.add_argument("--providers", action="store_true",
                        help="List available providers")

    return parser.parse_args(argv)


def _load_texts(args: argparse.Namespace) -> List[str]:
    """
    Load input texts from arguments or file.

    Raises:
        SystemExit: If no input provided or conflicting options used.
    """
    text = args.text or args.text_pos

    if args.file:
        if text:
            raise SystemExit("Use --file without --text or positional text.")
        lines = Path(args.file).read_text(encoding="utf-8").splitlines()
        items = [line.strip() for line in lines if line.strip()]
        if not items:
            raise SystemExit("Input file is empty.")
        return items

    if not text:
        raise SystemExit("Provide --text or a positional text.")
    return [text]


def _resolve_output_paths(args: argparse.Namespace, count: int, extension: str) -> List[Path]:
    if args.file:
        out_dir = Path(args.out or "out")
        out_dir.mkdir(parents=True, exist_ok=True)
        return [out_dir / f"item_{i + 1:03d}.{extension}" for i in range(count)]

    out_path = Path(args.out or f"out.{extension}")
    out_path.parent.mkdir(parents=True, exist_ok=True)
    return [out_path]


def _load_cli_settings(args: argparse.Namespace) -> Settings:
    """Settings file (if present) with the --provider override applied."""
    path = args.config or os.getenv("FEEDTAPE_TTS_SETTINGS", "config/settings.yaml")
    try:
        settings = load_settings(path)
    except FileNotFoundError:
        if args.config:
            raise SystemExit(f"Settings file not found: {path}")
        settings = Settings(raw={})

    if not args.provider:
        return settings
    raw = copy.deepcopy(settings.raw)
    raw.setdefault("tts", {})["provider"] = args.provider.strip().lower()
    return Settings(raw=raw)


def _summary_for_text(
    text: str,
    detector: LanguageDetector,
    max_batch_size: int,
    language: Optional[str],
) -> Dict[str, Any]:
    """Dry-run analysis of one text: what synthesis would send upstream."""
    norm, _ = normalize_text(text)
    if language:
        code, confidence, fell_back = validate_language(language), 1.0, False
    elif norm:
        code, confidence, fell_back = detector.detect_with_confidence(norm)
    else:
        code, confidence, fell_back = detector.default, 0.0, True

    batches = split_into_batches(norm, max_batch_size).batches if norm else []
    return {
        "text_len": len(text),
        "char_count": len(norm),
        "language": code.value,
        "confidence": round(confidence, 3),
        "fallback": fell_back,
        "batches": len(batches),
        "batch_lengths": [len(b) for b in batches],
    }


def _print_payload(payload: Dict[str, Any], as_json: bool) -> None:
    if as_json:
        print(json.dumps(payload, ensure_ascii=False))
    else:
        print(payload)


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main CLI entry point.

    Returns:
        Exit code (0 for success, 1 for synthesis errors).
    """
    args = _parse_args(argv)

    if args.providers:
        for name in available_providers():
            print(name)
        return 0

    configure_logging()
    log = get_logger("feedtape-tts.cli")
    set_request_id(str(uuid4())[:12])

    settings = _load_cli_settings(args)
    try:
        config = settings.get_service_config()
        if args.language:
            validate_language(args.language)
        provider = create_provider(settings)
    except (ConfigValidationError, ValueError, ValidationError) as e:
        raise SystemExit(str(e))

    texts = _load_texts(args)
    detector = LanguageDetector.from_config(config)

    if args.dry_run:
        summaries = [
            _summary_for_text(t, detector, provider.max_batch_size, args.language)
            for t in texts
        ]
        payload = {"ok": True, "dry_run": True, "provider": provider.name, "items": summaries}
        info(log, "dry_run", items=len(texts), provider=provider.name)
        _print_payload(payload, args.json)
        print("DRY_RUN_OK")
        return 0

    from feedtape_tts.services.tts_service import TTSService

    users = InMemoryUserStore()
    users.create(LOCAL_USER_ID, tier=SubscriptionTier.PRO)
    service = TTSService(
        settings,
        user_store=users,
        usage_store=InMemoryUsageStore(),
        provider=provider,
        detector=detector,
    )

    out_paths = _resolve_output_paths(args, len(texts), provider.output_format)
    results = []
    for index, (text, out_path) in enumerate(zip(texts, out_paths)):
        info(log, "synth_start", chars=len(text), out=str(out_path))
        try:
            res = service.synthesize(LOCAL_USER_ID, text, f"cli://item/{index + 1}", language=args.language)
        except TTSError as e:
            fail(log, "synth_failed", error=e.code, message=e.message)
            _print_payload({"ok": False, "dry_run": False, "items": results, **e.to_dict()}, args.json)
            return 1

        out_path.write_bytes(res.audio_bytes)
        results.append({
            "out": str(out_path),
            "bytes": len(res.audio_bytes),
            "language": res.language_detected.value,
            "char_count": res.char_count,
            "duration_seconds": res.duration_seconds,
        })

    _print_payload({"ok": True, "dry_run": False, "provider": provider.name, "items": results}, args.json)
    print("CLI_OK")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
