"""Run a single text or image generation from the command line.

Prints the same JSON envelope the edge proxy returns.
"""
from __future__ import annotations
import argparse
import asyncio
import json
import logging
import sys
import time

from poet_proxy.common.config import load_settings
from poet_proxy.common.envelope import MSG_FAILURE, error_envelope, success_envelope
from poet_proxy.common.errors import ProxyError
from poet_proxy.common.logging_setup import setup_logging
from poet_proxy.common.schema import GenerationMode, GenerationRequest
from poet_proxy.upstream.gemini import generate

LOGGER = logging.getLogger("poet_proxy.cli.generate")


def main(argv: list[str] | None = None) -> int:
    ap = argparse.ArgumentParser(description="Generate a poem or image via Gemini")
    ap.add_argument("--prompt", required=True, help="User prompt")
    ap.add_argument("--type", default="text", choices=[m.value for m in GenerationMode])
    ap.add_argument("--cfg", default=None, help="YAML config path")
    args = ap.parse_args(argv)

    settings = load_settings(args.cfg)
    setup_logging(settings.log_level, stream=sys.stderr)

    if not args.prompt:
        ap.error("prompt must not be empty")
    request = GenerationRequest(mode=GenerationMode.parse(args.type), prompt=args.prompt)

    start = time.time()
    try:
        result = asyncio.run(generate(request, settings.require_api_key(), settings=settings))
    except ProxyError as e:
        LOGGER.error("Generation failed: %s", e)
        print(json.dumps(error_envelope(MSG_FAILURE, str(e)), ensure_ascii=False, indent=2))
        return 1

    LOGGER.info("Latency: %sms", int((time.time() - start) * 1000))
    print(json.dumps(success_envelope(request, result), ensure_ascii=False, indent=2))
    return 0

if __name__ == "__main__":
    sys.exit(main())
