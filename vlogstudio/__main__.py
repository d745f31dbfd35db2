"""
Main entry point for vlogstudio.

    python -m vlogstudio serve
    python -m vlogstudio images "sunrise over paddy fields" --count 4 --style folk
    python -m vlogstudio video "temple festival at night" --model cheap
"""
import argparse
import asyncio
import base64
import json
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from loguru import logger

from .config.settings import Settings
from .core.errors import GenerationError
from .core.models import AspectRatio, QualityTier, Style
from .generation.service import GenerationService
from .utils.logging_config import setup_logging_from_settings

EXTENSIONS = {
    "image/png": ".png",
    "image/jpeg": ".jpg",
    "image/webp": ".webp",
    "video/mp4": ".mp4",
    "video/webm": ".webm",
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Multi-provider image and video generation")
    parser.add_argument("--env-file", type=Path, help="Path to a .env file")
    subparsers = parser.add_subparsers(dest="command", required=True)

    serve = subparsers.add_parser("serve", help="Run the HTTP API")
    serve.add_argument("--host", help="Bind address (default: HOST setting)")
    serve.add_argument("--port", type=int, help="Port (default: PORT setting)")

    def add_generation_arguments(command: argparse.ArgumentParser) -> None:
        command.add_argument("prompt", help="What to generate")
        command.add_argument(
            "--style",
            choices=[s.value for s in Style],
            default=Style.VIBRANT.value,
            help="Visual style"
        )
        command.add_argument(
            "--aspect-ratio",
            choices=[a.value for a in AspectRatio],
            default=AspectRatio.PORTRAIT.value,
            help="Output aspect ratio"
        )
        command.add_argument(
            "--model",
            choices=[t.value for t in QualityTier],
            default=QualityTier.BALANCED.value,
            help="Quality tier"
        )
        command.add_argument(
            "--output",
            type=Path,
            default=Path("output"),
            help="Directory for generated files"
        )

    images = subparsers.add_parser("images", help="Generate a batch of scene images")
    add_generation_arguments(images)
    images.add_argument("--count", type=int, help="Number of scenes")

    video = subparsers.add_parser("video", help="Generate one video clip")
    add_generation_arguments(video)
    video.add_argument("--duration", type=int, help="Clip length in seconds")

    return parser


def write_artifact(item: Dict[str, Any], output_dir: Path, stem: str) -> Optional[Path]:
    """Decode a data URI from a response item and write it to disk."""
    data = item.get("data") or ""
    if not data.startswith("data:"):
        logger.warning(f"{stem}: no inline data to write")
        return None
    header, encoded = data.split(",", 1)
    mime_type = header[len("data:"):].split(";")[0]
    path = output_dir / f"{stem}{EXTENSIONS.get(mime_type, '.bin')}"
    path.write_bytes(base64.b64decode(encoded))
    return path


async def run_generation(args: argparse.Namespace, settings: Settings) -> int:
    args.output.mkdir(parents=True, exist_ok=True)
    written: List[Path] = []

    async with GenerationService(settings) as service:
        try:
            if args.command == "images":
                response = await service.generate_images(
                    args.prompt,
                    count=args.count,
                    style=args.style,
                    aspect_ratio=args.aspect_ratio,
                    quality_tier=args.model,
                )
                for index, image in enumerate(response["images"], start=1):
                    path = write_artifact(image, args.output, f"scene_{index:02d}_{image['source']}")
                    if path:
                        written.append(path)
                for error in response["errors"]:
                    logger.warning(f"Scene {error['scene']} failed: {error['message']}")
            else:
                response = await service.generate_video(
                    args.prompt,
                    style=args.style,
                    aspect_ratio=args.aspect_ratio,
                    quality_tier=args.model,
                    duration=args.duration,
                )
                path = write_artifact(response["video"], args.output, f"video_{response['video']['source']}")
                if path:
                    written.append(path)
        except GenerationError as e:
            logger.error(f"Generation failed: {e}")
            print(json.dumps(e.to_response(), indent=2), file=sys.stderr)
            return 1

    for path in written:
        print(path)
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    args = build_parser().parse_args(argv)
    settings = Settings.from_env(args.env_file)
    setup_logging_from_settings(settings)

    if not settings.validate():
        logger.error("Invalid settings; check retry, poll and batch values")
        return 2

    if args.command == "serve":
        import uvicorn

        from .api.app import create_app

        uvicorn.run(
            create_app(settings),
            host=args.host or settings.HOST,
            port=args.port or settings.PORT,
            log_level=settings.LOG_LEVEL.lower(),
        )
        return 0

    return asyncio.run(run_generation(args, settings))


if __name__ == "__main__":
    sys.exit(main())
