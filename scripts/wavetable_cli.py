"""CLI script: generate, inspect and export single-cycle wavetables.

Usage:
    # Save a preset as the editor's current state:
    python scripts/wavetable_cli.py preset saw --db data/wavetable.db

    # Print the strongest harmonics of a preset, a JSON export or saved state:
    python scripts/wavetable_cli.py analyze --preset square --top 8
    python scripts/wavetable_cli.py analyze --json exports/wavetable.json
    python scripts/wavetable_cli.py analyze --db data/wavetable.db

    # Export (supercollider | wav | json):
    python scripts/wavetable_cli.py export wav --preset triangle --frequency 220 \\
        --output exports/triangle.wav

Output:
    Summary lines printed to stdout; files written where --output / --db point.

Environment variables read (all optional, see core/wavetable/config.py):
    WAVETABLE_SAMPLE_COUNT       — default: 1024
    WAVETABLE_HARMONIC_COUNT     — default: 64
    WAVETABLE_PREVIEW_FREQUENCY  — default: 440.0
    WAVETABLE_EXPORT_SAMPLE_RATE — default: 44100
    WAVETABLE_EXPORT_DURATION    — default: 1.0
"""

from __future__ import annotations

import argparse
import json
import logging
import sqlite3
import sys
from pathlib import Path

# Allow running from the repo root without installing the package.
sys.path.insert(0, str(Path(__file__).parent.parent))

from dotenv import load_dotenv  # noqa: E402
from pydantic import ValidationError  # noqa: E402

from core.wavetable.config import EditorConfig  # noqa: E402
from core.wavetable.presets import available_presets, generate_preset  # noqa: E402
from core.wavetable.transform import to_frequency_domain  # noqa: E402
from core.wavetable.waveform import Waveform  # noqa: E402
from wavetable_io.export import EXPORT_FORMATS, default_filename, write_export  # noqa: E402
from wavetable_io.state_store import (  # noqa: E402
    DEFAULT_DB_PATH,
    SqliteStateStore,
    WaveformPayload,
)

logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")
logger = logging.getLogger(__name__)


def _add_source_args(parser: argparse.ArgumentParser) -> None:
    source = parser.add_mutually_exclusive_group()
    source.add_argument(
        "--preset",
        choices=available_presets(),
        default=None,
        help="Use a generated preset as input.",
    )
    source.add_argument(
        "--json",
        type=str,
        default=None,
        metavar="PATH",
        help='Read a {"sampleRate", "samples"} JSON export.',
    )
    source.add_argument(
        "--db",
        type=str,
        default=None,
        metavar="PATH",
        help=f"Read the editor's saved waveform (e.g. {DEFAULT_DB_PATH}).",
    )


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Wavetable generation and export tool.")
    sub = parser.add_subparsers(dest="command", required=True)

    preset = sub.add_parser("preset", help="Store a preset as the editor's current waveform.")
    preset.add_argument("name", choices=available_presets())
    preset.add_argument("--db", type=str, default=str(DEFAULT_DB_PATH), metavar="PATH")

    analyze = sub.add_parser("analyze", help="Print the strongest harmonics.")
    _add_source_args(analyze)
    analyze.add_argument("--top", type=int, default=8, metavar="N")

    export = sub.add_parser("export", help="Write the waveform to a file.")
    export.add_argument("format", choices=EXPORT_FORMATS)
    _add_source_args(export)
    export.add_argument("--output", type=str, default=None, metavar="PATH")
    export.add_argument("--frequency", type=float, default=None, metavar="HZ")

    return parser.parse_args(argv)


def _load_source(args: argparse.Namespace, config: EditorConfig) -> Waveform:
    if args.json:
        raw = json.loads(Path(args.json).read_text(encoding="utf-8"))
        return WaveformPayload.model_validate(raw).to_waveform()
    if args.db:
        waveform = SqliteStateStore(Path(args.db)).load_waveform()
        if waveform is None:
            raise ValueError(f"No saved waveform in {args.db}")
        return waveform
    return generate_preset(args.preset or config.default_preset, config.sample_count)


def _cmd_preset(args: argparse.Namespace, config: EditorConfig) -> None:
    waveform = generate_preset(args.name, config.sample_count)
    store = SqliteStateStore(Path(args.db))
    store.save_waveform(waveform)
    store.save_spectrum(to_frequency_domain(waveform, config.harmonic_count))
    print(f"Saved {args.name} ({waveform.sample_count} samples) to {args.db}")


def _cmd_analyze(args: argparse.Namespace, config: EditorConfig) -> None:
    waveform = _load_source(args, config)
    spectrum = to_frequency_domain(waveform, config.harmonic_count)
    ranked = sorted(
        enumerate(spectrum.harmonics), key=lambda item: item[1].amplitude, reverse=True
    )
    print(f"{waveform.sample_count} samples, peak {waveform.peak():.4f}")
    print(f"{'harmonic':>8}  {'amplitude':>9}  {'phase':>7}")
    for index, harmonic in ranked[: max(0, args.top)]:
        print(f"{index + 1:>8}  {harmonic.amplitude:>9.4f}  {harmonic.phase:>7.4f}")


def _cmd_export(args: argparse.Namespace, config: EditorConfig) -> None:
    waveform = _load_source(args, config)
    output = Path(args.output) if args.output else Path("exports") / default_filename(args.format)
    path = write_export(
        waveform,
        args.format,
        output,
        frequency=args.frequency or config.preview_frequency,
        sample_rate=config.export_sample_rate,
        duration=config.export_duration,
    )
    print(f"Wrote {path}")


_COMMANDS = {
    "preset": _cmd_preset,
    "analyze": _cmd_analyze,
    "export": _cmd_export,
}


def main(argv: list[str] | None = None) -> int:
    load_dotenv()
    args = _parse_args(argv)
    try:
        config = EditorConfig.from_env()
        _COMMANDS[args.command](args, config)
    except (ValueError, ValidationError, OSError, sqlite3.Error) as exc:
        logger.error("%s", exc)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
