import argparse
import importlib
import logging
import os
import sys
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv

from layerpipe.assets import AssetNormalizer
from layerpipe.config import PipelineConfig, load_config
from layerpipe.core import AssetPipeline
from layerpipe.engine import EngineOutput
from layerpipe.errors import LayerPipelineError
from layerpipe.messaging import build_llm_from_env
from layerpipe.transcode import OutputTranscoder


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Prepare layer assets for a generative collection and finalize its output."
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to the collection config JSON file (defaults are used when omitted).",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    prepare = sub.add_parser("prepare", help="Sort and size-bound the layer folders.")
    prepare.add_argument("--assets", type=Path, required=True, help="Folder of layer categories.")
    prepare.add_argument(
        "--sorted",
        type=Path,
        required=True,
        help="Destination for the normalized tree (wiped on every run).",
    )

    finalize = sub.add_parser("finalize", help="Resize/convert generated images, rewrite metadata.")
    finalize.add_argument(
        "--output",
        type=Path,
        required=True,
        help="Engine output folder containing `images` and `erc721 metadata`.",
    )

    run = sub.add_parser("run", help="Prepare, generate with an engine, finalize.")
    run.add_argument("--assets", type=Path, required=True, help="Folder of layer categories.")
    run.add_argument(
        "--work-root",
        type=Path,
        default=Path("."),
        help="Root for data_sorted/, output/ and cache/.",
    )
    run.add_argument(
        "--engine",
        required=True,
        help="Engine factory as `module:callable`; called without arguments.",
    )
    return parser.parse_args(argv)


def load_engine(spec: str):
    module_name, _, attr = spec.partition(":")
    if not module_name or not attr:
        raise LayerPipelineError(f"engine must look like `module:callable`, got {spec!r}")
    try:
        factory = getattr(importlib.import_module(module_name), attr)
    except (ImportError, AttributeError) as exc:
        raise LayerPipelineError(f"cannot load engine {spec!r}: {exc}") from exc
    return factory()


def main(argv: Optional[List[str]] = None) -> int:
    # Load environment variables from a local .env file if present
    # (e.g. OPENAI_API_KEY=sk-...).
    load_dotenv()
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    args = parse_args(argv)

    try:
        # With OPENAI_API_KEY set, item descriptions are written by the LLM;
        # otherwise the description template is used as-is (no network calls).
        llm = build_llm_from_env(dict(os.environ))
        config = load_config(args.config, llm=llm) if args.config else PipelineConfig()

        if args.command == "prepare":
            print(f"🧹 Preparing assets in {args.sorted}")
            report = AssetNormalizer(config).normalize(args.assets, args.sorted)
            print(
                f"✅ {len(report.categories)} layer folders, "
                f"{report.count('resized')} resized, {len(report.problems)} problems"
            )
            for problem in report.problems:
                print(f"⚠️  {problem.source}: {problem.reason}")

        elif args.command == "finalize":
            output = EngineOutput.under(args.output)
            print(f"🔄 Resizing and converting images to {config.output_format}...")
            report = OutputTranscoder(config).transcode(output.metadata_dir, output.images_dir)
            print(
                f"✅ Converted {len(report.converted)} images "
                f"({config.output_width}x{config.output_height}px, "
                f"{config.output_quality}% quality), skipped {len(report.skipped)}"
            )

        else:
            pipeline = AssetPipeline(
                assets_dir=args.assets,
                work_root=args.work_root,
                engine=load_engine(args.engine),
                config=config,
            )
            report = pipeline.run()
            print(f"✅ Done ({report.format_timings()})")

    except LayerPipelineError as exc:
        print(f"❌ {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
